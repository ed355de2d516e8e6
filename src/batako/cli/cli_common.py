"""Common CLI utilities: JSON output, stable exit codes, lazy runtime wiring."""

from __future__ import annotations

import functools
import json
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from ..config.settings import ConfigError, Settings, load_settings
from ..core.errors import ConflictError, NotFoundError, StoreError, ValidationError
from ..core.time import set_default_timezone
from ..observability.loguru_config import configure_loguru, get_logger
from ..storage import create_database, create_storage

if TYPE_CHECKING:
    from ..storage import Storage

log = get_logger("batako")


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0
    VALIDATION_ERROR = 2  # Bad input value
    CONFLICT = 3  # Record already exists
    NOT_FOUND = 4  # Referenced record missing
    STORE_ERROR = 5  # Database, I/O or timeout failure
    CONFIG_ERROR = 6  # Missing or invalid settings
    UNKNOWN_ERROR = 7  # Unknown/unexpected error


def exit_code_for(exc: BaseException) -> ExitCode:
    """Map an exception to its stable exit code."""
    if isinstance(exc, ConfigError):
        return ExitCode.CONFIG_ERROR
    if isinstance(exc, ValidationError):
        return ExitCode.VALIDATION_ERROR
    if isinstance(exc, ConflictError):
        return ExitCode.CONFLICT
    if isinstance(exc, NotFoundError):
        return ExitCode.NOT_FOUND
    if isinstance(exc, StoreError):
        return ExitCode.STORE_ERROR
    return ExitCode.UNKNOWN_ERROR


class CLIContext:
    """Per-command context: output mode plus lazily built settings and storage."""

    def __init__(
        self,
        json_output: bool = False,
        verbose: bool = False,
        env_file: Path | None = None,
        quiet: bool = False,
    ):
        self.json_output = json_output
        self.verbose = verbose
        self.env_file = env_file
        self.quiet = quiet
        self._settings: Settings | None = None
        self._storage: Storage | None = None

    @property
    def settings(self) -> Settings:
        """Settings for this invocation; also applies timezone and logging.

        Raises
        ------
        ConfigError
            If settings are missing or invalid
        """
        if self._settings is None:
            settings = load_settings(self.env_file)
            set_default_timezone(settings.default_timezone)
            configure_loguru(
                log_dir=settings.log_dir,
                level="DEBUG" if self.verbose else settings.log_level,
                enable_console=not self.quiet,
            )
            self._settings = settings
        return self._settings

    @property
    def storage(self) -> Storage:
        if self._storage is None:
            settings = self.settings
            db = create_database(settings.db_path, timeout=settings.query_timeout)
            self._storage = create_storage(db, unit_price=settings.unit_price)
        return self._storage

    def output(
        self, data: Any, status: str = "success", error: str | None = None, meta: dict[str, Any] | None = None
    ) -> None:
        """Output result in appropriate format.

        Args:
            data: Result data
            status: Status ("success", "error", "warning")
            error: Error message if status is error
            meta: Additional metadata
        """
        if self.json_output:
            result: dict[str, Any] = {"status": status}

            if error:
                result["error"] = error
            else:
                result["data"] = data

            if meta:
                result["meta"] = meta

            click.echo(json.dumps(result, ensure_ascii=False, indent=2, default=str))
            return

        if status == "error":
            click.echo(f"❌ {error}", err=True)
        elif status == "warning":
            click.echo(f"⚠️  {data}")
        elif isinstance(data, dict):
            _echo_mapping(data)
        elif isinstance(data, list):
            for item in data:
                click.echo(f"  - {item}")
        else:
            click.echo(data)


def _echo_mapping(data: dict[str, Any], indent: int = 0) -> None:
    pad = "  " * indent
    for key, value in data.items():
        if isinstance(value, dict):
            click.echo(f"{pad}{key}:")
            _echo_mapping(value, indent + 1)
        else:
            click.echo(f"{pad}{key}: {value}")


def cli_command(func):
    """Decorator adding ``--json``/``--verbose`` and exit-code handling.

    The wrapped function receives a :class:`CLIContext` first and returns an
    exit code; a non-zero code ends the process with that status.
    """

    @click.option("--json", "json_output", is_flag=True, help="Output as JSON (machine-readable)")
    @click.option("--verbose", "-v", is_flag=True, help="Verbose output")
    @functools.wraps(func)
    def wrapper(json_output: bool, verbose: bool, *args: Any, **kwargs: Any) -> int:
        root = click.get_current_context().find_root()
        options = root.obj or {}
        ctx = CLIContext(
            json_output=json_output,
            verbose=verbose,
            env_file=options.get("env_file"),
            quiet=options.get("quiet", False),
        )

        code = int(func(ctx, *args, **kwargs))
        if code != ExitCode.SUCCESS:
            click.get_current_context().exit(code)
        return code

    return wrapper


def handle_cli_error(ctx: CLIContext, exc: Exception, cmd: str) -> int:
    """Report a failed command and return its exit code."""
    exit_code = exit_code_for(exc)

    if exit_code is ExitCode.UNKNOWN_ERROR:
        log.opt(exception=exc).error("Command failed: {cmd}", cmd=cmd)
    else:
        log.warning("Command failed: {cmd}", cmd=cmd, error=str(exc), error_type=type(exc).__name__)

    meta: dict[str, Any] = {"exit_code": int(exit_code), "error_type": type(exc).__name__}
    ctx.output(None, status="error", error=str(exc), meta=meta)

    return int(exit_code)


def handle_cli_success(ctx: CLIContext, data: Any, meta: dict[str, Any] | None = None) -> int:
    ctx.output(data, status="success", meta=meta)
    return int(ExitCode.SUCCESS)
