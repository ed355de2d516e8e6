"""CLI module running the weekly pay scheduler in the foreground."""

import signal
import threading

import click

from ..pipelines import create_salary_pipeline
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS, help="Background pay scheduler")
def cli() -> None:
    """Root command for the scheduler."""


@cli.command("run")
@click.option("--run-for", type=float, help="Stop after N seconds (default: until SIGINT/SIGTERM)")
@cli_command
def run_command(ctx: CLIContext, run_for: float | None) -> int:
    """Fire the weekly pay job on schedule until interrupted."""
    try:
        settings = ctx.settings
        if not settings.scheduler_enabled:
            ctx.output("Scheduler disabled (BATAKO_SCHEDULER_ENABLED=false)", status="warning")
            return 0

        storage = ctx.storage
        pipeline = create_salary_pipeline(storage.production, storage.salary, settings=settings)
        shutdown = threading.Event()

        def request_shutdown(signum, frame):
            shutdown.set()

        previous = {sig: signal.signal(sig, request_shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            job_id = pipeline.start()
            if not ctx.json_output:
                click.echo(f"Weekly pay scheduled ({pipeline.config.trigger().describe()}); Ctrl+C to stop")
            shutdown.wait(timeout=run_for)
        finally:
            pipeline.stop()
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        job = pipeline.scheduler.get_job(job_id)
        return handle_cli_success(
            ctx,
            {
                "job_id": job_id,
                "run_count": job.run_count if job else 0,
                "error_count": job.error_count if job else 0,
            },
        )
    except Exception as exc:
        return handle_cli_error(ctx, exc, "scheduler.run")
