from __future__ import annotations

import os
from functools import lru_cache
from zoneinfo import ZoneInfo
from dotenv import load_dotenv, find_dotenv

_env_path = find_dotenv(".env") or ".env"
load_dotenv(_env_path, override=False)


def _float_env(name: str, default: str) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return float(default)


class Settings:
    """Central configuration (env driven)."""

    def __init__(self) -> None:
        # Supabase project
        self.supabase_url: str = os.getenv("SUPABASE_URL", "").strip().rstrip("/")
        self.supabase_anon_key: str = os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY", "")
        self.supabase_service_role_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
        self.supabase_jwt_secret: str = os.getenv("SUPABASE_JWT_SECRET", "")
        self.query_timeout: float = _float_env("SUPABASE_QUERY_TIMEOUT", "5")
        # Storage
        self.storage_bucket: str = os.getenv("STORAGE_BUCKET", "uploads")
        self.upload_timeout: float = _float_env("UPLOAD_TIMEOUT", "60")
        # Identity / sessions
        self.admin_email: str = os.getenv("ADMIN_EMAIL", "admin@admin.com").strip().lower()
        self.session_ttl_hours: float = _float_env("SESSION_TTL_HOURS", "24")
        # Calendar day boundaries
        self.timezone: str = os.getenv("APP_TIMEZONE", "Asia/Dhaka")
        # Live bindings
        self.binding_poll_seconds: float = _float_env("BINDING_POLL_SECONDS", "0")
        self.step_retries: int = max(1, int(_float_env("STEP_RETRIES", "3")))
        # App meta
        self.app_name: str = "Pathshala Backend"
        self.app_version: str = os.getenv("APP_VERSION", "dev")
        self.debug: bool = os.getenv("DEBUG", "False").lower() == "true"
        self.allow_origins: str = os.getenv(
            "ALLOW_ORIGINS",
            "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173",
        )

    @property
    def supabase_key(self) -> str:
        return self.supabase_anon_key

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def auth_base(self) -> str | None:
        return f"{self.supabase_url}/auth/v1" if self.supabase_url else None


@lru_cache()
def get_settings() -> Settings:
    return Settings()
