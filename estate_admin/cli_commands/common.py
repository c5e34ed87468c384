"""
Shared plumbing for CLI commands: the API client, stores and table output.

Everything is built lazily on the root click context so a test can pre-seed
``ctx.obj`` with its own client.
"""

import sys
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence

import click
from rich.console import Console
from rich.table import Table

from estate_admin.core.config import Settings, get_settings
from estate_admin.core.exceptions import ConfigurationError
from estate_admin.core.models import PaginationDescriptor, Record
from estate_admin.data.api_client import ApiClient
from estate_admin.data.auth import SessionStore
from estate_admin.domain.summaries import SummaryFigure
from estate_admin.store.registry import StoreRegistry

console = Console()

# Nested objects and long text make list tables unreadable
MAX_LIST_COLUMNS = 8


def _root_obj(ctx: click.Context) -> dict:
    return ctx.find_root().ensure_object(dict)


def get_app_settings(ctx: click.Context) -> Settings:
    obj = _root_obj(ctx)
    if "settings" not in obj:
        try:
            obj["settings"] = get_settings()
        except ConfigurationError as e:
            fail(e.message)
    return obj["settings"]


def get_session(ctx: click.Context) -> SessionStore:
    obj = _root_obj(ctx)
    if "session" not in obj:
        obj["session"] = SessionStore(get_app_settings(ctx).session_path)
    return obj["session"]


def get_client(ctx: click.Context) -> ApiClient:
    """API client authenticated with the configured token, else the stored session."""
    obj = _root_obj(ctx)
    if "client" not in obj:
        settings = get_app_settings(ctx)
        session = get_session(ctx)
        client = ApiClient(
            settings.api,
            token_provider=lambda: settings.api.token or session.token,
            on_unauthorized=session.clear,
        )
        ctx.find_root().call_on_close(client.close)
        obj["client"] = client
    return obj["client"]


def get_registry(ctx: click.Context) -> StoreRegistry:
    obj = _root_obj(ctx)
    if "registry" not in obj:
        obj["registry"] = StoreRegistry(get_client(ctx))
    return obj["registry"]


def fail(message: str) -> None:
    """Print an error and exit non-zero."""
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def format_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, Decimal):
        return f"{value:,.2f}" if value != value.to_integral_value() else f"{value:,.0f}"
    return str(value)


def _scalar_fields(record: Record) -> List[str]:
    data = record.model_dump()
    return [k for k, v in data.items() if not isinstance(v, (dict, list))]


def records_table(
    records: Sequence[Record], title: str, columns: Optional[Iterable[str]] = None
) -> Table:
    """Tabulate records; by default the first scalar fields of the first record."""
    table = Table(title=title)
    if not records:
        table.add_column("(no records)")
        return table

    names = list(columns) if columns else _scalar_fields(records[0])[:MAX_LIST_COLUMNS]
    for name in names:
        table.add_column(name, style="cyan" if name == "id" else None)
    for record in records:
        table.add_row(*(format_value(getattr(record, name, None)) for name in names))
    return table


def record_table(record: Record, title: str) -> Table:
    """Two-column field/value view of one record."""
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in record.model_dump().items():
        if isinstance(value, (dict, list)):
            continue
        table.add_row(name, format_value(getattr(record, name, value)))
    return table


def summary_table(figures: Sequence[SummaryFigure]) -> Table:
    table = Table(title="Summary")
    table.add_column("Figure")
    table.add_column("Value", justify="right")
    table.add_column("Scope", style="dim")
    for figure in figures:
        table.add_row(figure.label, figure.formatted, figure.scope.value)
    return table


def pagination_line(pagination: Optional[PaginationDescriptor]) -> str:
    if pagination is None:
        return ""
    return (
        f"Page {pagination.current_page} of {max(pagination.total_pages, 1)} "
        f"({pagination.total_items} total, {pagination.items_per_page} per page)"
    )
