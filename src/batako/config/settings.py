"""Centralized configuration.

Loads configuration from a .env file and the process environment and
provides typed access to settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time as dt_time
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

__all__ = [
    "WEEKDAYS",
    "ConfigError",
    "Settings",
    "generate_example_env",
    "get_settings",
    "load_env_file",
    "load_settings",
    "parse_time_of_day",
]

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """Centralized settings for Batako.

    Attributes
    ----------
    db_path : Path
        sqlite database file (required)
    default_timezone : str
        IANA zone for "now" and all reporting windows
    query_timeout : float
        Per-call store timeout in seconds
    pay_rate : float
        Pay per produced unit
    unit_price : float
        Sale price per unit
    pay_weekday : str
        Weekday the pay job fires on
    pay_time : str
        Time of day the pay job fires at (HH:MM)
    scheduler_enabled : bool
        Start the pay scheduler with the host process
    log_level : str
        Logging level
    log_dir : Path | None
        Directory for JSONL logs (console only when unset)
    """

    db_path: Path

    default_timezone: str = "UTC"
    query_timeout: float = 5.0

    # Weekly pay
    pay_rate: float = 450.0
    unit_price: float = 1600.0
    pay_weekday: str = "wednesday"
    pay_time: str = "17:16"
    scheduler_enabled: bool = True

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self):
        """Validate settings after initialization."""
        if not self.db_path:
            raise ConfigError(
                "db_path is required. Set BATAKO_DB_PATH in .env or environment (e.g., BATAKO_DB_PATH=batako.db)"
            )

        if isinstance(self.db_path, str):
            self.db_path = Path(self.db_path)

        if self.log_dir and isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

        try:
            ZoneInfo(self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"BATAKO_DEFAULT_TZ is not a valid timezone: {self.default_timezone}") from exc

        if self.query_timeout <= 0:
            raise ConfigError(f"BATAKO_QUERY_TIMEOUT must be positive, got: {self.query_timeout}")
        if self.pay_rate <= 0:
            raise ConfigError(f"BATAKO_PAY_RATE must be positive, got: {self.pay_rate}")
        if self.unit_price <= 0:
            raise ConfigError(f"BATAKO_UNIT_PRICE must be positive, got: {self.unit_price}")

        self.pay_weekday = self.pay_weekday.strip().lower()
        if self.pay_weekday not in WEEKDAYS:
            raise ConfigError(
                f"BATAKO_PAY_WEEKDAY must be one of {', '.join(WEEKDAYS)}, got: {self.pay_weekday}"
            )

        parse_time_of_day(self.pay_time)

    @property
    def pay_weekday_index(self) -> int:
        """Trigger weekday as ``datetime.weekday()`` (Monday=0)."""
        return WEEKDAYS.index(self.pay_weekday)

    @property
    def pay_time_of_day(self) -> dt_time:
        return parse_time_of_day(self.pay_time)

    @classmethod
    def from_env(cls, env_file: Path | str | None = None) -> Settings:
        """Load settings from environment.

        Loads from .env file if present, otherwise from os.environ.

        Raises
        ------
        ConfigError
            If required settings are missing or invalid
        """
        if env_file is None:
            env_file = Path(".env")

        if isinstance(env_file, str):
            env_file = Path(env_file)

        if env_file.exists():
            load_env_file(env_file)

        try:
            db_path = os.environ.get("BATAKO_DB_PATH")
            if not db_path:
                raise ConfigError(
                    "BATAKO_DB_PATH is required.\n\n"
                    "Quick fix:\n"
                    "  1. Run `batako config example > .env`\n"
                    "  2. Set BATAKO_DB_PATH=batako.db in .env\n"
                    "  3. Run your command again\n\n"
                    "Or set it in environment: export BATAKO_DB_PATH=batako.db"
                )

            return cls(
                db_path=Path(db_path),
                default_timezone=os.environ.get("BATAKO_DEFAULT_TZ", "UTC"),
                query_timeout=float(os.environ.get("BATAKO_QUERY_TIMEOUT", "5.0")),
                pay_rate=float(os.environ.get("BATAKO_PAY_RATE", "450")),
                unit_price=float(os.environ.get("BATAKO_UNIT_PRICE", "1600")),
                pay_weekday=os.environ.get("BATAKO_PAY_WEEKDAY", "wednesday"),
                pay_time=os.environ.get("BATAKO_PAY_TIME", "17:16"),
                scheduler_enabled=os.environ.get("BATAKO_SCHEDULER_ENABLED", "true").lower() == "true",
                log_level=os.environ.get("BATAKO_LOG_LEVEL", "INFO"),
                log_dir=Path(os.environ["BATAKO_LOG_DIR"]) if "BATAKO_LOG_DIR" in os.environ else None,
            )

        except (ValueError, KeyError) as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc


def parse_time_of_day(value: str) -> dt_time:
    """Parse ``HH:MM`` into a time.

    Raises
    ------
    ConfigError
        If the value is not a valid time of day
    """
    try:
        hour_str, minute_str = value.strip().split(":")
        return dt_time(int(hour_str), int(minute_str))
    except ValueError as exc:
        raise ConfigError(f"BATAKO_PAY_TIME must be HH:MM, got: {value!r}") from exc


def load_env_file(env_file: Path) -> None:
    """Load environment variables from .env file."""
    with open(env_file) as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                os.environ[key] = value


# Global settings instance
_settings: Settings | None = None


def load_settings(env_file: Path | str | None = None) -> Settings:
    """Load settings from environment and make them current.

    Raises
    ------
    ConfigError
        If required settings missing (clear error message)
    """
    global _settings
    _settings = Settings.from_env(env_file)
    return _settings


def get_settings() -> Settings:
    """Get current settings.

    Raises
    ------
    ConfigError
        If settings not loaded
    """
    global _settings
    if _settings is None:
        raise ConfigError("Settings not loaded. Call load_settings() first or set BATAKO_DB_PATH.")
    return _settings


def generate_example_env(output_path: Path | None = None) -> str:
    """Generate example .env file with all settings."""
    example = """# Batako Configuration
# Copy this to .env and adjust values

# ====================
# Core Settings
# ====================

# Path to sqlite database (required)
BATAKO_DB_PATH=batako.db

# Default timezone (optional, default: UTC)
# Examples: UTC, Asia/Jakarta, Europe/Brussels
BATAKO_DEFAULT_TZ=Asia/Jakarta

# Per-query timeout in seconds (optional, default: 5.0)
BATAKO_QUERY_TIMEOUT=5.0

# ====================
# Pricing & Weekly Pay
# ====================

# Pay per produced unit (optional, default: 450)
BATAKO_PAY_RATE=450

# Sale price per unit (optional, default: 1600)
BATAKO_UNIT_PRICE=1600

# When the weekly pay job fires (optional, default: wednesday 17:16)
BATAKO_PAY_WEEKDAY=wednesday
BATAKO_PAY_TIME=17:16

# Start the pay scheduler with the host process (optional, default: true)
BATAKO_SCHEDULER_ENABLED=true

# ====================
# Logging
# ====================

# Log level (optional, default: INFO)
# Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
BATAKO_LOG_LEVEL=INFO

# Log directory for JSONL files (optional, logs to console if not set)
# BATAKO_LOG_DIR=logs
"""

    if output_path:
        output_path.write_text(example)

    return example
