"""Error taxonomy shared by stores, aggregators and the CLI.

Every error carries an ``http_status`` so a request layer can translate it
without inspecting concrete types.
"""

from __future__ import annotations

__all__ = [
    "BatakoError",
    "ConflictError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
]


class BatakoError(Exception):
    """Base class for all domain errors."""

    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BatakoError, ValueError):
    """Input is malformed or out of range."""

    http_status = 400


class NotFoundError(BatakoError):
    """A row or piece of reference data does not exist.

    Parameters
    ----------
    resource
        Human-readable resource name, e.g. ``"Cement type Conch"``
    """

    http_status = 404

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(BatakoError):
    """A write would violate a uniqueness rule."""

    http_status = 409


class StoreError(BatakoError):
    """Generic I/O failure: query error, lost connection or timeout."""

    http_status = 500
