"""Loguru configuration with timing for store and scheduler operations.

This module provides centralized loguru configuration with:
- Colourised console output
- Structured JSON logs, one file per component
- Context manager for timing operations
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "COMPONENTS",
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("store", "scheduler", "aggregator")


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "100 MB",
    retention: str = "10 days",
    compression: str = "zip",
    enable_console: bool = True,
) -> None:
    """Configure loguru sinks.

    Parameters
    ----------
    log_dir
        Directory for JSONL log files (no file sinks when None)
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    rotation
        Log rotation policy (e.g., "100 MB", "1 day")
    retention
        Log retention policy (e.g., "10 days", "1 week")
    compression
        Compression for rotated logs (zip, gz, bz2, xz)
    enable_console
        Enable console output

    Example
    -------
    >>> from batako.observability.loguru_config import configure_loguru
    >>> configure_loguru(log_dir=Path("logs"), level="INFO")
    """
    logger.remove()

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "batako.jsonl",
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            serialize=True,
            enqueue=True,
        )

        for component in COMPONENTS:
            logger.add(
                log_dir / f"{component}.jsonl",
                format="{message}",
                level=level,
                rotation=rotation,
                retention=retention,
                compression=compression,
                serialize=True,
                enqueue=True,
                filter=lambda record, comp=component: record["extra"].get("component") == comp,
            )

    logger.configure(extra={"component": "batako"})
    logger.info("Loguru configured", log_dir=str(log_dir) if log_dir else None, level=level)


def get_logger(component: str = "batako") -> Any:
    """Get logger instance bound to a component (store, scheduler, aggregator)."""
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "batako",
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Time an operation and log its duration.

    Success is logged at DEBUG; a raised exception is logged at ERROR with
    the duration and then re-raised.

    Yields
    ------
    dict
        Context dictionary that can be updated with additional data

    Example
    -------
    >>> with timing_context("dashboard.build", component="aggregator") as ctx:
    ...     snapshot = aggregator.build_snapshot(window)
    ...     ctx["unit"] = window.unit
    """
    start_time = time.perf_counter()
    context: dict[str, Any] = dict(metadata)
    log = logger.bind(component=component, timing=True, operation=operation)

    try:
        yield context
    except Exception as exc:
        duration_ms = (time.perf_counter() - start_time) * 1000
        log.error(
            f"FAILED: {operation}",
            duration_ms=duration_ms,
            error=str(exc),
            error_type=type(exc).__name__,
            **context,
        )
        raise
    else:
        duration_ms = (time.perf_counter() - start_time) * 1000
        log.debug(f"END: {operation}", duration_ms=duration_ms, **context)
