"""CLI module for weekly pay records."""

from datetime import datetime

import click

from ..core.errors import NotFoundError
from ..core.time import get_current_time, get_default_timezone
from ..pipelines import create_salary_pipeline
from ..rollups import month_offset_for
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

DATE_FORMAT = click.DateTime(formats=["%Y-%m-%d"])


def _local_day(value: datetime | None) -> datetime | None:
    """Attach the default timezone to a ``--date`` value."""
    if value is None:
        return None
    return value.replace(tzinfo=get_default_timezone())


@click.group(context_settings=CONTEXT_SETTINGS, help="Weekly pay records")
def cli() -> None:
    """Root command for pay records."""


@cli.command("generate")
@click.option(
    "--date",
    "day",
    type=DATE_FORMAT,
    help="Firing date; pays the last week completed before it (default: today)",
)
@cli_command
def generate_command(ctx: CLIContext, day: datetime | None) -> int:
    """Compute and store pay for the last completed week, as the scheduled job does."""
    try:
        storage = ctx.storage
        pipeline = create_salary_pipeline(storage.production, storage.salary, settings=ctx.settings)
        record = pipeline.generate_weekly_salary(_local_day(day))
        return handle_cli_success(ctx, record.to_dict())
    except Exception as exc:
        return handle_cli_error(ctx, exc, "salary.generate")


@cli.command("weekly")
@click.option("--date", "day", type=DATE_FORMAT, help="Any day of the week (default: today)")
@cli_command
def weekly_command(ctx: CLIContext, day: datetime | None) -> int:
    """Show the pay record covering a day."""
    try:
        record = ctx.storage.salary.get_weekly(_local_day(day))
        if record is None:
            raise NotFoundError("Pay record for week")
        return handle_cli_success(ctx, record.to_dict())
    except Exception as exc:
        return handle_cli_error(ctx, exc, "salary.weekly")


@cli.command("monthly")
@click.option("--month", "target_month", type=int, help="Calendar month 1-12 (default: current month)")
@cli_command
def monthly_command(ctx: CLIContext, target_month: int | None) -> int:
    """List pay records overlapping a month."""
    try:
        storage = ctx.storage
        now = get_current_time()
        offset = month_offset_for(target_month, now) if target_month is not None else 0
        records = storage.salary.get_monthly(offset, now)

        if ctx.json_output:
            return handle_cli_success(ctx, [r.to_dict() for r in records], meta={"count": len(records)})

        lines = [
            f"{r.period_start.date()} .. {r.period_end.date()}: {r.total_production} units, pay {r.computed_pay:g}"
            for r in records
        ]
        return handle_cli_success(ctx, lines or "No pay records")
    except Exception as exc:
        return handle_cli_error(ctx, exc, "salary.monthly")
