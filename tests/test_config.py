# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from teamtask.config import Settings
from teamtask.core.errors import ConfigError


def test_defaults(monkeypatch) -> None:
    for name in ("API_BASE_URL", "DATA_DIR", "STATE_PATH", "ENABLE_DARK_MODE", "NOTIFICATION_TTL_SECONDS"):
        monkeypatch.delenv(f"TEAMTASK_{name}", raising=False)

    s = Settings.from_env()

    assert s.api_base_url == "http://localhost:5000/api"
    assert s.dark_mode_enabled is True
    assert s.notification_ttl_seconds == 5.0
    assert s.state_path == Path(".local/teamtask") / "state.json"


def test_env_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TEAMTASK_API_BASE_URL", "https://tasks.example.com/api")
    monkeypatch.setenv("TEAMTASK_ENABLE_DARK_MODE", "off")
    monkeypatch.setenv("TEAMTASK_DUE_SOON_DAYS", "not-a-number")
    monkeypatch.setenv("TEAMTASK_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("TEAMTASK_STATE_PATH", raising=False)

    s = Settings.from_env()

    assert s.api_base_url == "https://tasks.example.com/api"
    assert s.dark_mode_enabled is False
    assert s.due_soon_days == 3
    assert s.state_path == tmp_path / "state.json"


@pytest.mark.parametrize(
    ("name", "value"),
    [("API_BASE_URL", "  "), ("API_TIMEOUT_SECONDS", "0"), ("NOTIFICATION_TTL_SECONDS", "-1")],
)
def test_invalid_settings_raise_config_error(monkeypatch, name, value) -> None:
    monkeypatch.setenv(f"TEAMTASK_{name}", value)
    with pytest.raises(ConfigError):
        Settings.from_env()
