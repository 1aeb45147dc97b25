# src/teamtask/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires the HTTP client, durable storage and stores into AppState.
"""

from __future__ import annotations

import logging

from ..api.client import HttpApiClient
from ..collections.tasks import TaskCollection
from ..collections.teams import TeamCollection
from ..config import get_settings
from ..core.ports import ApiClient, DurableStorage, ThemeSink, Timer
from ..core.state import AppState
from ..persistence import JsonFileStorage
from ..session.manager import SessionManager
from ..ui.overlay import DocumentRoot, OverlayCoordinator

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.state_path.parent.mkdir(parents=True, exist_ok=True)


def create_app_state(
        *,
        settings=None,
        api: ApiClient | None = None,
        storage: DurableStorage | None = None,
        theme_sink: ThemeSink | None = None,
        timer: Timer | None = None,
) -> AppState:
    """
    Build AppState from the provided settings and collaborators.

    Anything not passed in gets the production implementation; with
    settings=None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if storage is None:
        _ensure_local_dirs(settings)
        storage = JsonFileStorage(settings.state_path)
    if api is None:
        api = HttpApiClient.from_settings(settings)

    session = SessionManager(api, storage)
    teams = TeamCollection(api, current_user=lambda: session.user)
    tasks = TaskCollection(api, teams)
    overlay = OverlayCoordinator(
        storage=storage,
        theme_sink=theme_sink or DocumentRoot(),
        timer=timer,
        notification_ttl=float(settings.notification_ttl_seconds),
        dark_mode_enabled=bool(settings.dark_mode_enabled),
    )

    logger.debug("AppState wired (api=%s, storage=%s)", type(api).__name__, type(storage).__name__)
    return AppState(
        settings=settings,
        api=api,
        storage=storage,
        session=session,
        teams=teams,
        tasks=tasks,
        overlay=overlay,
    )
