"""Application settings read from the environment (and `.env`)."""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_name: str
    database_url: str
    sql_echo: bool
    jwt_access_secret: str
    jwt_refresh_secret: str
    jwt_access_expires_minutes: int
    jwt_refresh_expires_days: int
    frontend_url: str
    whatsapp_bot_number: str
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    cors_origins: tuple


def _int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    extra = os.getenv("CORS_ORIGINS", "")
    if extra:
        origins.extend(o.strip() for o in extra.split(",") if o.strip())

    return Settings(
        app_name="Worship Bands API",
        database_url=os.getenv("DATABASE_URL", "sqlite:///./worship_bands.db"),
        sql_echo=_bool(os.getenv("SQL_ECHO"), False),
        jwt_access_secret=os.getenv("JWT_ACCESS_SECRET", "default-access-secret"),
        jwt_refresh_secret=os.getenv("JWT_REFRESH_SECRET", "default-refresh-secret"),
        jwt_access_expires_minutes=_int(os.getenv("JWT_ACCESS_EXPIRES_MINUTES"), 30),
        jwt_refresh_expires_days=_int(os.getenv("JWT_REFRESH_EXPIRES_DAYS"), 30),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/"),
        whatsapp_bot_number=os.getenv("WHATSAPP_BOT_NUMBER", "+50663017707"),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT"), 587),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        cors_origins=tuple(origins),
    )
