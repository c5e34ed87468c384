"""
Generic CRUD commands that work for every backend resource.
"""

from typing import Dict, Optional, Tuple

import click

from estate_admin.cli_commands.common import (
    console,
    fail,
    get_app_settings,
    get_registry,
    pagination_line,
    record_table,
    records_table,
)
from estate_admin.data.resources import DEFINITIONS

RESOURCE_NAMES = click.Choice(sorted(DEFINITIONS))


def _parse_filters(pairs: Tuple[str, ...]) -> Dict[str, str]:
    filters = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint="--filter")
        filters[key.strip()] = value.strip()
    return filters


@click.group()
def resources():
    """List, inspect and delete any backend resource."""
    pass


@resources.command("list")
@click.argument("resource", type=RESOURCE_NAMES)
@click.option("--page", type=int, default=1, show_default=True, help="Page number")
@click.option("--per-page", type=int, help="Records per page (default from DEFAULT_PER_PAGE)")
@click.option("--filter", "filters", multiple=True, help="Filter as key=value; repeatable")
@click.pass_context
def list_records(
    ctx, resource: str, page: int, per_page: Optional[int], filters: Tuple[str, ...]
):
    """
    List one page of RESOURCE.
    """
    store = get_registry(ctx)[resource]
    per_page = per_page or get_app_settings(ctx).default_per_page

    result = store.fetch(filters=_parse_filters(filters), page=page, per_page=per_page)
    if result is None:
        fail(store.error or f"Failed to fetch {store.plural}")

    console.print(records_table(store.records, title=resource))
    console.print(pagination_line(store.pagination))


@resources.command("show")
@click.argument("resource", type=RESOURCE_NAMES)
@click.argument("record_id")
@click.pass_context
def show_record(ctx, resource: str, record_id: str):
    """Show a single RESOURCE record by id."""
    store = get_registry(ctx)[resource]
    record = store.fetch_by_id(record_id)
    if record is None:
        fail(store.error or f"Failed to fetch {store.label}")

    console.print(record_table(record, title=f"{store.label} {record.id}"))


@resources.command("delete")
@click.argument("resource", type=RESOURCE_NAMES)
@click.argument("record_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_record(ctx, resource: str, record_id: str, yes: bool):
    """Delete a RESOURCE record by id."""
    store = get_registry(ctx)[resource]
    if not yes:
        click.confirm(f"Delete {store.label} {record_id}?", abort=True)

    if not store.delete(record_id):
        fail(store.error or f"Failed to delete {store.label}")

    console.print(f"[green]✓[/green] Deleted {store.label} {record_id}")
