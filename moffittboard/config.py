"""
MoffittBoard — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from moffittboard/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # SQLite
    DATABASE_PATH: str = "data/moffittboard.db"

    # Login: only addresses on this domain may join the board
    ALLOWED_EMAIL_DOMAIN: str = "berkeley.edu"

    # Daily reset: boundary is RESET_HOUR:00 in RESET_TIMEZONE, not host-local time
    RESET_TIMEZONE: str = "America/Los_Angeles"
    RESET_HOUR: int = 0
    RESET_CHECK_INTERVAL_SECONDS: int = 60

    # Leaderboard
    LEADERBOARD_SIZE: int = 10

    # Geofence (optional): check-ins must come from near the library
    GEOFENCE_ENABLED: bool = False
    GEOFENCE_LAT: float = 37.8726
    GEOFENCE_LON: float = -122.2607
    GEOFENCE_RADIUS_METERS: float = 150.0

    @field_validator("RESET_HOUR", mode="before")
    @classmethod
    def parse_hour(cls, v: str | int) -> int:
        hour = int(v)
        if not 0 <= hour <= 23:
            raise ValueError(f"RESET_HOUR out of range: {hour}")
        return hour

    @field_validator("RESET_CHECK_INTERVAL_SECONDS", "LEADERBOARD_SIZE", mode="before")
    @classmethod
    def parse_positive(cls, v: str | int) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"Expected a positive integer, got {value}")
        return value

    @field_validator("GEOFENCE_ENABLED", mode="before")
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in ("1", "true", "yes", "on")

    @field_validator("ALLOWED_EMAIL_DOMAIN", mode="before")
    @classmethod
    def parse_domain(cls, v: str) -> str:
        return v.strip().lstrip("@").lower()


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/moffittboard.db"),
        ALLOWED_EMAIL_DOMAIN=os.getenv("ALLOWED_EMAIL_DOMAIN", "berkeley.edu"),
        RESET_TIMEZONE=os.getenv("RESET_TIMEZONE", "America/Los_Angeles"),
        RESET_HOUR=os.getenv("RESET_HOUR", "0"),
        RESET_CHECK_INTERVAL_SECONDS=os.getenv("RESET_CHECK_INTERVAL_SECONDS", "60"),
        LEADERBOARD_SIZE=os.getenv("LEADERBOARD_SIZE", "10"),
        GEOFENCE_ENABLED=os.getenv("GEOFENCE_ENABLED", "false"),
        GEOFENCE_LAT=os.getenv("GEOFENCE_LAT", "37.8726"),
        GEOFENCE_LON=os.getenv("GEOFENCE_LON", "-122.2607"),
        GEOFENCE_RADIUS_METERS=os.getenv("GEOFENCE_RADIUS_METERS", "150"),
    )


# Singleton — imported by all other modules as:
#   from moffittboard.config import settings
settings = _load_settings()
