# src/teamtask/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Every value has a sane local default so the client starts against a dev server.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from dotenv import load_dotenv

from .core.errors import ConfigError

ENV_PREFIX = "TEAMTASK"

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    app_version: str
    log_level: str
    debug_mode: bool

    # ---- API ----
    api_base_url: str
    api_timeout_seconds: float
    session_cookie_name: str

    # ---- Feature flags ----
    dark_mode_enabled: bool
    due_date_reminders_enabled: bool

    # ---- UI tuning ----
    notification_ttl_seconds: float
    due_soon_days: int

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    state_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "Team Task Manager")
        app_version = _env(_k("APP_VERSION"), "1.0.0")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        debug_mode = _env_bool(_k("DEBUG_MODE"), False)

        api_base_url = _env(_k("API_BASE_URL"), "http://localhost:5000/api").strip()
        api_timeout_seconds = _env_float(_k("API_TIMEOUT_SECONDS"), 30.0)
        session_cookie_name = _env(_k("SESSION_COOKIE_NAME"), "sessionId")

        dark_mode_enabled = _env_bool(_k("ENABLE_DARK_MODE"), True)
        due_date_reminders_enabled = _env_bool(_k("ENABLE_DUE_DATE_REMINDERS"), True)

        notification_ttl_seconds = _env_float(_k("NOTIFICATION_TTL_SECONDS"), 5.0)
        due_soon_days = _env_int(_k("DUE_SOON_DAYS"), 3)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/teamtask"))
        state_path = _env_path(_k("STATE_PATH"), data_dir / "state.json")

        settings = Settings(
            app_name=app_name,
            app_version=app_version,
            log_level=log_level,
            debug_mode=debug_mode,
            api_base_url=api_base_url,
            api_timeout_seconds=api_timeout_seconds,
            session_cookie_name=session_cookie_name,
            dark_mode_enabled=dark_mode_enabled,
            due_date_reminders_enabled=due_date_reminders_enabled,
            notification_ttl_seconds=notification_ttl_seconds,
            due_soon_days=due_soon_days,
            data_dir=data_dir,
            state_path=state_path,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.api_base_url:
            raise ConfigError(f"{_k('API_BASE_URL')} is required but not set")
        if self.api_timeout_seconds <= 0:
            raise ConfigError(f"{_k('API_TIMEOUT_SECONDS')} must be positive")
        if self.notification_ttl_seconds < 0:
            raise ConfigError(f"{_k('NOTIFICATION_TTL_SECONDS')} must not be negative")

    def log_summary(self) -> None:
        """Log resolved settings (used when debug_mode is on)."""
        for key, value in asdict(self).items():
            logger.info("config %s=%s", key, value)


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
