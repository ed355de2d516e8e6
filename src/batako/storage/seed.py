"""Reference data: cement and sand type names."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..observability.loguru_config import get_logger

if TYPE_CHECKING:
    from .database import Database

__all__ = ["CEMENT_TYPES", "SAND_TYPES", "seed_reference_data"]

CEMENT_TYPES = ("Tiga Roda", "Conch", "Merdeka", "Padang", "Rajawali")
SAND_TYPES = ("Putih", "Kuning")

log = get_logger("store")


def seed_reference_data(db: Database) -> dict[str, int]:
    """Insert default type names; existing names are left alone.

    Returns
    -------
    dict[str, int]
        Number of rows actually inserted per table
    """
    inserted = {"cement_types": 0, "sand_types": 0}

    with db.transaction() as conn:
        for name in CEMENT_TYPES:
            cursor = conn.execute("INSERT OR IGNORE INTO cement_types (name) VALUES (?)", (name,))
            inserted["cement_types"] += cursor.rowcount
        for name in SAND_TYPES:
            cursor = conn.execute("INSERT OR IGNORE INTO sand_types (name) VALUES (?)", (name,))
            inserted["sand_types"] += cursor.rowcount

    log.info("Reference data seeded", **inserted)
    return inserted
