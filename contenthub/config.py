"""
Application Configuration.

Pydantic Settings model for the Content Hub web application.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Site ---
    SITE_URL: str = "http://localhost:8000"
    SITE_NAME: str = "Content Hub"

    # --- Auth / Session ---
    ADMIN_CHECK_TIMEOUT_S: float = Field(default=10.0, gt=0)
    GUARD_WAIT_S: float = Field(default=5.0, ge=0)
    SESSION_REGISTRY_MAX: int = Field(default=1000, ge=1)
    SELF_SERVICE_ADMIN_ENABLED: bool = False

    # --- Cookies (per-browser storage) ---
    AUTH_COOKIE_NAME: str = "hub_sid"
    COOKIE_SECURE: bool = False
    CONSENT_COOKIE_MAX_AGE_S: int = 365 * 24 * 60 * 60

    # --- Logging ---
    LOG_FILE: str = "contenthub.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing.
        This validator logs a warning so operators know the app is running
        with placeholder values.
        """
        _log = logging.getLogger("contenthub.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY.get_secret_value():
            _log.warning(
                "SUPABASE_URL or SUPABASE_ANON_KEY is empty; every "
                "remote call will fail until they are configured."
            )

        return self

    @property
    def is_supabase_configured(self) -> bool:
        """``True`` when both the project URL and the anon key are set."""
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY.get_secret_value())


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern to avoid the lock overhead on the
    fast path while remaining thread-safe during first initialisation.

    Prefer direct constructor injection of ``AppConfig``; this factory
    exists for the entry point and the logger defaults.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
