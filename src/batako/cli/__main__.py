#!/usr/bin/env python3
"""Main CLI module for Batako."""

import sys
from pathlib import Path

import click

from .batako_config import cli as config_cli
from .batako_db import cli as db_cli
from .batako_report import dashboard_command, window_command
from .batako_salary import cli as salary_cli
from .batako_scheduler import cli as scheduler_cli

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
EPILOG = """
Examples:
  batako db init                    # Create the schema
  batako db seed                    # Insert cement/sand types
  batako window --unit week         # This week's Monday..Sunday
  batako window --month 7           # July, relative to the current month
  batako dashboard --json           # Monthly dashboard snapshot
  batako salary generate            # Store this week's pay now
  batako salary monthly --month 3   # Pay records overlapping March
  batako scheduler run              # Fire weekly pay until Ctrl+C
""".strip()


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Batako - production, stock and weekly pay records",
    epilog=EPILOG,
)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (default: ./.env)",
)
@click.option("--quiet", "-q", is_flag=True, help="No log output on the console")
@click.pass_context
def cli(ctx: click.Context, env_file: Path | None, quiet: bool) -> None:
    """Root CLI command."""
    ctx.obj = {"env_file": env_file, "quiet": quiet}


cli.add_command(db_cli, "db")
cli.add_command(window_command, "window")
cli.add_command(dashboard_command, "dashboard")
cli.add_command(salary_cli, "salary")
cli.add_command(scheduler_cli, "scheduler")
cli.add_command(config_cli, "config")


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    try:
        normalized_args = list(args) if args is not None else None
        return cli.main(args=normalized_args, standalone_mode=False) or 0
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
