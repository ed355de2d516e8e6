"""sqlite3 store shared by every repository.

Each call gets its own connection, so concurrent readers never share a
cursor. Every connection carries a deadline enforced through sqlite's
progress handler: a statement running past it is interrupted and surfaces
as ``StoreError``. Multi-statement writes run inside ``transaction()``.
"""

from __future__ import annotations

import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from ..core.errors import BatakoError, ConflictError, StoreError, ValidationError
from ..core.time import get_current_time, to_db_timestamp
from ..observability.loguru_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [
    "DEFAULT_QUERY_TIMEOUT",
    "SCHEMA",
    "Database",
    "create_database",
    "db_now",
    "translate_error",
]

DEFAULT_QUERY_TIMEOUT = 5.0

# Progress handler is invoked every N sqlite VM instructions
_PROGRESS_STEPS = 1000

log = get_logger("store")

SCHEMA = """
CREATE TABLE IF NOT EXISTS cement_types (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS cement_stocks (
    id TEXT PRIMARY KEY,
    cement_type_id INTEGER NOT NULL REFERENCES cement_types(id),
    quantity INTEGER NOT NULL,
    price_per_bag REAL NOT NULL,
    purchase_date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_cement_stocks_purchase_date
ON cement_stocks(purchase_date);

CREATE TABLE IF NOT EXISTS sand_types (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS sand_purchases (
    id TEXT PRIMARY KEY,
    sand_type_id INTEGER NOT NULL REFERENCES sand_types(id),
    quantity INTEGER NOT NULL,
    price_per_truck REAL NOT NULL,
    purchase_date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sand_purchases_purchase_date
ON sand_purchases(purchase_date);

CREATE TABLE IF NOT EXISTS productions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    quantity INTEGER NOT NULL,
    cement_used REAL NOT NULL DEFAULT 0,
    sand_used REAL NOT NULL DEFAULT 0,
    production_date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_productions_production_date
ON productions(production_date);

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    customer TEXT NOT NULL,
    address TEXT NOT NULL DEFAULT '',
    quantity INTEGER NOT NULL,
    total_price REAL NOT NULL,
    purchase_date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_transactions_purchase_date
ON transactions(purchase_date);

CREATE TABLE IF NOT EXISTS employee_salary (
    id TEXT PRIMARY KEY,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    total_production INTEGER NOT NULL,
    salary REAL NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (start_date, end_date)
);

CREATE INDEX IF NOT EXISTS idx_employee_salary_end_date
ON employee_salary(end_date);
"""


def translate_error(exc: sqlite3.Error, *, timeout: float | None = None) -> BatakoError:
    """Map a sqlite3 exception onto the domain error taxonomy."""
    message = str(exc)

    if isinstance(exc, sqlite3.IntegrityError):
        if "UNIQUE" in message:
            return ConflictError(f"Record with this data already exists ({message})")
        if "FOREIGN KEY" in message:
            return ValidationError(f"Invalid reference ({message})")

    if isinstance(exc, sqlite3.OperationalError) and "interrupted" in message:
        return StoreError(f"Query timed out after {timeout}s")

    return StoreError(f"Database error: {message}")


class Database:
    """Connection factory and schema owner for one sqlite file.

    Parameters
    ----------
    db_path
        Path to the sqlite database file
    timeout
        Default per-call timeout in seconds
    """

    def __init__(self, db_path: Path | str, *, timeout: float = DEFAULT_QUERY_TIMEOUT) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout

    def connect(self) -> sqlite3.Connection:
        """Open a new autocommit connection with foreign keys enforced."""
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self, timeout: float | None = None) -> Iterator[sqlite3.Connection]:
        """Yield a fresh connection bounded by a deadline.

        sqlite3 errors raised inside the block are translated into domain
        errors; domain errors pass through unchanged.
        """
        timeout = timeout or self.timeout
        try:
            conn = self.connect()
        except sqlite3.Error as exc:
            raise translate_error(exc, timeout=timeout) from exc

        deadline = time.monotonic() + timeout
        conn.set_progress_handler(lambda: int(time.monotonic() > deadline), _PROGRESS_STEPS)

        try:
            yield conn
        except sqlite3.Error as exc:
            error = translate_error(exc, timeout=timeout)
            log.warning("Store call failed", error=str(exc), error_type=type(error).__name__)
            raise error from exc
        finally:
            conn.close()

    @contextmanager
    def transaction(self, timeout: float | None = None) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside ``BEGIN IMMEDIATE``.

        Commits when the block exits normally, rolls back on any exception.
        """
        with self.connection(timeout) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            else:
                conn.commit()

    def init_schema(self) -> None:
        """Create tables and indexes (idempotent)."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA)
        log.info("Schema ready", db_path=str(self.db_path))


def create_database(db_path: Path | str, *, timeout: float = DEFAULT_QUERY_TIMEOUT, init: bool = True) -> Database:
    """Factory function to create a database handle.

    Parameters
    ----------
    db_path
        Path to sqlite database
    timeout
        Per-call timeout in seconds
    init
        Create the schema if missing

    Returns
    -------
    Database
        Ready-to-use database handle
    """
    db = Database(db_path, timeout=timeout)
    if init:
        db.init_schema()
    return db


def db_now() -> str:
    """Current time encoded for a ``created_at``/``updated_at`` column."""
    return to_db_timestamp(get_current_time())
