import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./coaching.db")

# Railway/Heroku style URLs use the legacy scheme
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:5173"])

BUSINESS_TZ = os.getenv("BUSINESS_TZ", "America/Toronto")
BOOKING_LEAD_TIME_HOURS = int(os.getenv("BOOKING_LEAD_TIME_HOURS", "24"))
DEFAULT_APPOINTMENT_MINUTES = int(os.getenv("DEFAULT_APPOINTMENT_MINUTES", "30"))
SEED_DEFAULT_SERVICES = _get_bool(os.getenv("SEED_DEFAULT_SERVICES"), default=True)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))


def business_timezone() -> ZoneInfo:
    return ZoneInfo(BUSINESS_TZ)


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")

    try:
        business_timezone()
    except ZoneInfoNotFoundError as exc:
        raise RuntimeError(f"BUSINESS_TZ {BUSINESS_TZ!r} is not a known timezone.") from exc
