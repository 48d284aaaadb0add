import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./campus_wellness.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Weekly availability windows are wall-clock times in this zone.
SCHEDULING_TIMEZONE = os.getenv("SCHEDULING_TIMEZONE", "UTC")

DEFAULT_SLOT_MINUTES = int(os.getenv("DEFAULT_SLOT_MINUTES", "60"))
MAX_SLOT_MINUTES = 240
MAX_LISTING_RANGE_DAYS = int(os.getenv("MAX_LISTING_RANGE_DAYS", "31"))


def get_scheduling_zone() -> ZoneInfo:
    return ZoneInfo(SCHEDULING_TIMEZONE)


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    try:
        get_scheduling_zone()
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"SCHEDULING_TIMEZONE is not a known zone: {SCHEDULING_TIMEZONE!r}") from exc
    if DEFAULT_SLOT_MINUTES <= 0 or DEFAULT_SLOT_MINUTES % 5 != 0:
        raise RuntimeError("DEFAULT_SLOT_MINUTES must be a positive multiple of 5.")
