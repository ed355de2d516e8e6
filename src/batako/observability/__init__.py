"""Observability module for Batako.

Provides loguru configuration, component loggers and timing instrumentation.
"""

from .loguru_config import configure_loguru, get_logger, timing_context

__all__ = [
    "configure_loguru",
    "get_logger",
    "timing_context",
]
