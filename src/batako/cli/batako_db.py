"""CLI module for database setup."""

import click

from ..storage import seed_reference_data
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS, help="Database schema and reference data")
def cli() -> None:
    """Root command for database setup."""


@cli.command("init")
@cli_command
def init_command(ctx: CLIContext) -> int:
    """Create the schema (idempotent)."""
    try:
        storage = ctx.storage
        return handle_cli_success(ctx, {"db_path": str(storage.db.db_path), "initialized": True})
    except Exception as exc:
        return handle_cli_error(ctx, exc, "db.init")


@cli.command("seed")
@cli_command
def seed_command(ctx: CLIContext) -> int:
    """Insert the cement and sand reference types."""
    try:
        inserted = seed_reference_data(ctx.storage.db)
        return handle_cli_success(ctx, inserted)
    except Exception as exc:
        return handle_cli_error(ctx, exc, "db.seed")
