"""
Process configuration.

All settings are read from environment variables once at startup. A ``.env``
file in the working directory is loaded first (python-dotenv) so local
development does not need exported variables; real environment variables
always win over the file.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_PORT = 8080
DEFAULT_BUCKET = "media"
DEFAULT_UPLOAD_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_MAIL_API_URL = "https://api.resend.com/emails"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return a stripped env var, treating empty strings as unset."""
    value = os.getenv(name, "").strip()
    return value or default


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Environment-backed settings for the gateway process."""

    port: int = DEFAULT_PORT
    host: str = "0.0.0.0"
    log_level: str = "INFO"

    # Supabase: database, auth and storage
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_service_key: Optional[str] = None
    supabase_jwt_secret: Optional[str] = None
    supabase_public_url: Optional[str] = None
    storage_bucket: str = DEFAULT_BUCKET

    # Upload intake
    upload_temp_dir: Optional[str] = None
    upload_max_bytes: int = DEFAULT_UPLOAD_MAX_BYTES

    # Mail transport (Resend)
    resend_api_key: Optional[str] = None
    mail_from: Optional[str] = None
    mail_api_url: str = DEFAULT_MAIL_API_URL
    mail_timeout_seconds: float = 10.0

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    static_dir: str = "public"

    @classmethod
    def from_env(cls) -> "Settings":
        cors_env = _env("CORS_ORIGINS")
        cors_origins = (
            [o.strip() for o in cors_env.split(",") if o.strip()]
            if cors_env
            else ["*"]
        )

        return cls(
            port=_env_int("PORT", DEFAULT_PORT),
            host=_env("HOST", "0.0.0.0"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            supabase_url=_env("SUPABASE_URL"),
            supabase_key=_env("SUPABASE_KEY"),
            supabase_service_key=_env("SUPABASE_SERVICE_KEY"),
            supabase_jwt_secret=_env("SUPABASE_JWT_SECRET"),
            supabase_public_url=_env("SUPABASE_PUBLIC_URL"),
            storage_bucket=_env("STORAGE_BUCKET", DEFAULT_BUCKET),
            upload_temp_dir=_env("UPLOAD_TEMP_DIR"),
            upload_max_bytes=_env_int("UPLOAD_MAX_BYTES", DEFAULT_UPLOAD_MAX_BYTES),
            resend_api_key=_env("RESEND_API_KEY"),
            mail_from=_env("MAIL_FROM"),
            mail_api_url=_env("MAIL_API_URL", DEFAULT_MAIL_API_URL),
            mail_timeout_seconds=_env_float("MAIL_TIMEOUT_SECONDS", 10.0),
            cors_origins=cors_origins,
            static_dir=_env("STATIC_DIR", "public"),
        )

    @property
    def database_key(self) -> Optional[str]:
        """Service-role key when configured (bypasses RLS), else the anon key."""
        return self.supabase_service_key or self.supabase_key


@lru_cache()
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()
