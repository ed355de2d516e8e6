"""CLI module for reporting windows and the dashboard snapshot."""

import click

from ..core.time import get_current_time
from ..rollups import compute_window, create_snapshot_aggregator, month_offset_for
from ..rollups.time_windows import WINDOW_UNITS
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success


@click.command("window")
@click.option("--unit", type=click.Choice(list(WINDOW_UNITS)), default="month", show_default=True)
@click.option("--offset", type=int, default=0, show_default=True, help="Periods from now (negative = past)")
@click.option("--month", "target_month", type=int, help="Calendar month 1-12 (month unit only)")
@cli_command
def window_command(ctx: CLIContext, unit: str, offset: int, target_month: int | None) -> int:
    """Print the inclusive date range for a relative period."""
    try:
        settings = ctx.settings
        now = get_current_time()
        if target_month is not None:
            unit = "month"
            offset = month_offset_for(target_month, now)

        window = compute_window(unit, now, offset, settings.default_timezone)
        return handle_cli_success(ctx, window.to_dict(), meta={"offset": offset})
    except Exception as exc:
        return handle_cli_error(ctx, exc, "window")


@click.command("dashboard")
@click.option("--month", "target_month", type=int, help="Calendar month 1-12 (default: current month)")
@click.option("--offset", type=int, default=0, show_default=True, help="Months from now (negative = past)")
@cli_command
def dashboard_command(ctx: CLIContext, target_month: int | None, offset: int) -> int:
    """Build the monthly dashboard snapshot."""
    try:
        storage = ctx.storage
        now = get_current_time()
        if target_month is not None:
            offset = month_offset_for(target_month, now)

        snapshot = create_snapshot_aggregator(storage.dashboard).build_monthly(offset, now)
        return handle_cli_success(ctx, snapshot.to_dict())
    except Exception as exc:
        return handle_cli_error(ctx, exc, "dashboard")
