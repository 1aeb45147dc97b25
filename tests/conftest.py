# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from teamtask.cli.bootstrap import create_app_state
from teamtask.collections.tasks import TaskCollection
from teamtask.collections.teams import TeamCollection
from teamtask.core.state import AppState
from teamtask.persistence import MemoryStorage
from teamtask.session.manager import SessionManager
from teamtask.ui.overlay import OverlayCoordinator

from .fakes import FakeApiClient, ManualTimer, RecordingThemeSink


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the stores.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="teamtask-test",
        app_version="0.0.0",
        log_level="DEBUG",
        debug_mode=False,
        # API (never reached: tests inject FakeApiClient)
        api_base_url="http://testserver/api",
        api_timeout_seconds=5.0,
        session_cookie_name="sessionId",
        # Features
        dark_mode_enabled=True,
        due_date_reminders_enabled=True,
        notification_ttl_seconds=5.0,
        due_soon_days=3,
        # Paths (tmp per test run)
        data_dir=tmp_path,
        state_path=tmp_path / "state.json",
    )


@pytest.fixture()
def api() -> FakeApiClient:
    return FakeApiClient()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def theme_sink() -> RecordingThemeSink:
    return RecordingThemeSink()


@pytest.fixture()
def timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture()
def state(
        settings: SimpleNamespace,
        api: FakeApiClient,
        storage: MemoryStorage,
        theme_sink: RecordingThemeSink,
        timer: ManualTimer,
) -> AppState:
    """AppState wired with deterministic fakes (same wiring as the CLI)."""
    return create_app_state(
        settings=settings,
        api=api,
        storage=storage,
        theme_sink=theme_sink,
        timer=timer,
    )


@pytest.fixture()
def session(state: AppState) -> SessionManager:
    return state.session


@pytest.fixture()
def teams(state: AppState) -> TeamCollection:
    return state.teams


@pytest.fixture()
def tasks(state: AppState) -> TaskCollection:
    return state.tasks


@pytest.fixture()
def overlay(state: AppState) -> OverlayCoordinator:
    return state.overlay
