"""
Main application entry point for Estate Admin.

Provides the CLI interface to the estate management backend.
"""

from typing import Optional

import click

from estate_admin.cli_commands.auth import auth
from estate_admin.cli_commands.banking import banking
from estate_admin.cli_commands.common import console
from estate_admin.cli_commands.resources import resources
from estate_admin.cli_commands.water import water
from estate_admin.core.config import (
    get_settings,
    print_configuration_summary,
    validate_required_settings,
)
from estate_admin.core.exceptions import ConfigurationError
from estate_admin.core.logging import set_correlation_id, setup_logging


def _is_production(obj: dict) -> bool:
    settings = obj.get("settings")
    if settings is None:
        try:
            settings = get_settings()
        except ConfigurationError:
            # Reported by whichever command needs the settings
            return False
    return settings.environment.lower() in ("production", "prod")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--correlation-id", help="Set correlation ID for request tracing")
@click.option("--json-logs", is_flag=True, help="Log JSON lines (default in production)")
@click.pass_context
def main(ctx, debug: bool, correlation_id: Optional[str], json_logs: bool):
    """Operator console for the estate management backend.

    Water supply billing, well and toilet collections, banking, rentals and
    construction records, all served by the same REST API.
    """
    # Ensure context object exists
    ctx.ensure_object(dict)

    setup_logging(debug=debug, json_logs=json_logs or _is_production(ctx.obj))

    if correlation_id:
        set_correlation_id(correlation_id)

    # Store global options
    ctx.obj["debug"] = debug
    ctx.obj["correlation_id"] = correlation_id


# Add subcommand groups
main.add_command(resources)
main.add_command(water)
main.add_command(banking)
main.add_command(auth)


@main.command()
def config():
    """Show configuration summary and validation status."""
    print_configuration_summary()

    missing = validate_required_settings()
    if missing:
        console.print("\n[red]Configuration issues:[/red]")
        for item in missing:
            console.print(f"  • {item}")
    else:
        console.print("\n[green]✓ Configuration valid[/green]")


if __name__ == "__main__":
    main()
