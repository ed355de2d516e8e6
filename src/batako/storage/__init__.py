"""sqlite-backed stores for stock, production, sales and pay."""

from .database import Database, create_database
from .seed import seed_reference_data
from .stores import Storage, create_storage

__all__ = [
    "Database",
    "Storage",
    "create_database",
    "create_storage",
    "seed_reference_data",
]
