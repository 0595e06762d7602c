import os

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

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

VIDEO_API_KEY = os.getenv("VIDEO_API_KEY", "")
VIDEO_API_SECRET = os.getenv("VIDEO_API_SECRET", "")
VIDEO_SESSION_ID = os.getenv("VIDEO_SESSION_ID", "")
VIDEO_APPLICATION_ID = os.getenv("VIDEO_APPLICATION_ID", "")
VIDEO_TOKEN_ALGORITHM = "HS256"

# Scheduling
SLOT_DURATION_MINUTES = 30
BOOKING_LOOKAHEAD_MINUTES = 15
SLOT_HORIZON_DAYS = 4

# Video room opens this long before the start and closes this long after the end.
VIDEO_JOIN_WINDOW_MINUTES = 30
VIDEO_TOKEN_GRACE_HOURS = 3


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
