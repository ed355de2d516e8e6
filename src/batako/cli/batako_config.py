"""CLI module for configuration."""

from pathlib import Path

import click

from ..config.settings import generate_example_env
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS, help="Configuration helpers")
def cli() -> None:
    """Root command for configuration."""


@cli.command("example")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="Write to file instead of stdout")
def example_command(output: Path | None) -> None:
    """Print an example .env file."""
    text = generate_example_env(output)
    if output is None:
        click.echo(text, nl=False)
    else:
        click.echo(f"Wrote {output}")


@cli.command("show")
@cli_command
def show_command(ctx: CLIContext) -> int:
    """Show the effective settings."""
    try:
        settings = ctx.settings
        data = {
            "db_path": str(settings.db_path),
            "default_timezone": settings.default_timezone,
            "query_timeout": settings.query_timeout,
            "pay_rate": settings.pay_rate,
            "unit_price": settings.unit_price,
            "pay_weekday": settings.pay_weekday,
            "pay_time": settings.pay_time,
            "scheduler_enabled": settings.scheduler_enabled,
            "log_level": settings.log_level,
            "log_dir": str(settings.log_dir) if settings.log_dir else None,
        }
        return handle_cli_success(ctx, data)
    except Exception as exc:
        return handle_cli_error(ctx, exc, "config.show")
