"""Shared fixtures: a fresh sqlite database per test and fixed clocks."""

import os
from datetime import UTC, datetime

import pytest

from batako.core.time import TimeConfig, set_default_timezone
from batako.storage import create_database, create_storage, seed_reference_data


@pytest.fixture(autouse=True)
def default_timezone():
    """Every test starts in UTC and restores the zone afterwards."""
    original = TimeConfig.get_default_timezone_name()
    set_default_timezone("UTC")
    yield
    set_default_timezone(original)


@pytest.fixture
def clean_env():
    """Remove BATAKO_* variables and reset the global settings."""
    original_env = os.environ.copy()

    for var in [k for k in os.environ if k.startswith("BATAKO_")]:
        del os.environ[var]

    import batako.config.settings as settings_module

    settings_module._settings = None

    yield

    os.environ.clear()
    os.environ.update(original_env)
    settings_module._settings = None


@pytest.fixture
def db(tmp_path):
    return create_database(tmp_path / "batako.db", timeout=5.0)


@pytest.fixture
def storage(db):
    seed_reference_data(db)
    return create_storage(db, unit_price=1600.0)


@pytest.fixture
def march_15():
    """Friday 2024-03-15 noon, UTC."""
    return datetime(2024, 3, 15, 12, 0, tzinfo=UTC)
