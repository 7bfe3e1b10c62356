"""Configuration management from environment variables."""

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from automute.db.models import RINGER_MODES
from automute.utils import constants

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    OWNER_CHAT_ID: int = int(os.getenv("OWNER_CHAT_ID", "0") or 0)

    # Database
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./data/automute.db"))

    # Wall clock used for weekdays and timer windows
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Locations
    DEFAULT_RADIUS_METERS: float = float(
        os.getenv("DEFAULT_RADIUS_METERS", str(constants.DEFAULT_RADIUS_METERS))
    )
    DEFAULT_LOCATION_MODE: str = os.getenv(
        "DEFAULT_LOCATION_MODE", constants.DEFAULT_LOCATION_MODE
    ).upper()

    # Device
    DND_ACCESS_GRANTED: bool = _env_bool("DND_ACCESS_GRANTED", True)

    # Restore NORMAL when the last location disappears while the app holds the mute
    RESTORE_WHEN_NO_LOCATIONS: bool = _env_bool("RESTORE_WHEN_NO_LOCATIONS", False)

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.TELEGRAM_BOT_TOKEN:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable is required")

        if not cls.OWNER_CHAT_ID:
            raise ValueError("OWNER_CHAT_ID environment variable is required")

        try:
            ZoneInfo(cls.TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown TIMEZONE: {cls.TIMEZONE}")

        if cls.DEFAULT_RADIUS_METERS <= 0:
            raise ValueError("DEFAULT_RADIUS_METERS must be greater than 0")

        if cls.DEFAULT_LOCATION_MODE not in RINGER_MODES:
            raise ValueError(
                f"DEFAULT_LOCATION_MODE must be one of {', '.join(RINGER_MODES)}"
            )

        # Ensure database directory exists
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
