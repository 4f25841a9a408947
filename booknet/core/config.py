"""
Configuration helpers for the booknet backend.

Routers and services read configuration through get_settings() instead of
touching os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    public_base_url: str
    activation_url: str
    reset_url: str
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    jwt_secret: str
    jwt_expiration_seconds: int
    token_ttl_minutes: int
    activation_code_length: int
    photos_output_path: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    public_base = os.getenv("PUBLIC_BASE_URL", "http://localhost:4200").rstrip("/")
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        database_url=os.getenv("DATABASE_URL", ""),
        public_base_url=public_base,
        activation_url=os.getenv("ACTIVATION_URL", f"{public_base}/activate-account"),
        reset_url=os.getenv("RESET_URL", f"{public_base}/reset-password"),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "465"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret-change-me"),
        jwt_expiration_seconds=_int(os.getenv("JWT_EXPIRATION_SECONDS", "86400"), 86400),
        token_ttl_minutes=_int(os.getenv("TOKEN_TTL_MINUTES", "15"), 15),
        activation_code_length=_int(os.getenv("ACTIVATION_CODE_LENGTH", "6"), 6),
        photos_output_path=os.getenv("PHOTOS_OUTPUT_PATH", "./uploads"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
