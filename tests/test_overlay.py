# tests/test_overlay.py

from __future__ import annotations

import pytest

from teamtask.core.errors import ValidationFailure
from teamtask.core.models import OverlayKind, OverlayMode, Severity, Theme
from teamtask.persistence import UI_NAMESPACE, MemoryStorage
from teamtask.ui.overlay import DocumentRoot, OverlayCoordinator, theme_from_durable

from .fakes import ManualTimer, RecordingThemeSink


def test_open_replaces_previous_overlay(overlay) -> None:
    overlay.open(OverlayKind.TEAM, {"id": "T1"})
    overlay.open("task", {"id": "9"})

    assert overlay.state.active is OverlayKind.TASK
    assert overlay.state.payload == {"id": "9"}
    assert overlay.state.mode is OverlayMode.EDIT


def test_create_mode_and_close(overlay) -> None:
    overlay.open(OverlayKind.MEMBER)
    assert overlay.state.mode is OverlayMode.CREATE

    overlay.close()
    assert not overlay.state.is_open
    assert overlay.state.payload is None
    assert overlay.state.mode is None


def test_unknown_kind_rejected(overlay) -> None:
    with pytest.raises(ValidationFailure):
        overlay.open("settings")
    assert not overlay.state.is_open


def test_update_payload_only_when_open(overlay) -> None:
    overlay.update_payload({"id": "x"})
    assert overlay.state.payload is None

    overlay.open(OverlayKind.TASK)
    overlay.update_payload({"id": "x"})
    assert overlay.state.payload == {"id": "x"}
    assert overlay.state.active is OverlayKind.TASK


def test_notifications_queue_and_auto_dismiss(overlay, timer: ManualTimer) -> None:
    first = overlay.notify("Saved", Severity.SUCCESS)
    second = overlay.notify("Saved")

    assert second > first
    assert [n.message for n in overlay.notifications] == ["Saved", "Saved"]
    assert overlay.notifications[1].severity is Severity.INFO
    assert [h.delay for h in timer.pending] == [5.0, 5.0]

    timer.fire_all()
    assert overlay.notifications == []


def test_dismiss_cancels_timer(overlay, timer: ManualTimer) -> None:
    note = overlay.notify("Oops", "error")
    assert overlay.dismiss(note)
    assert overlay.notifications == []
    assert timer.pending == []
    assert timer.handles[0].cancelled
    assert not overlay.dismiss(note)


def test_clear_notifications(overlay, timer: ManualTimer) -> None:
    overlay.notify("a")
    overlay.notify("b", Severity.WARNING)
    overlay.clear_notifications()
    assert overlay.notifications == []
    assert timer.pending == []


def test_unknown_severity_rejected(overlay) -> None:
    with pytest.raises(ValidationFailure):
        overlay.notify("x", "fatal")


def test_no_timer_scheduled_when_ttl_disabled() -> None:
    timer = ManualTimer()
    overlay = OverlayCoordinator(timer=timer, notification_ttl=0)
    overlay.notify("sticky")
    assert timer.handles == []
    assert len(overlay.notifications) == 1


def test_default_timer_outside_event_loop_keeps_notification() -> None:
    overlay = OverlayCoordinator()
    overlay.notify("no loop")
    assert len(overlay.notifications) == 1


def test_theme_toggle_persists_and_applies(overlay, storage, theme_sink: RecordingThemeSink) -> None:
    overlay.initialize_theme()
    assert theme_sink.writes == [("data-theme", "light")]

    assert overlay.toggle_theme() is Theme.DARK
    assert theme_sink.current == "dark"
    assert storage.read(UI_NAMESPACE) == {"theme": "dark"}

    overlay.toggle_theme()
    assert storage.read(UI_NAMESPACE) == {"theme": "light"}


def test_theme_restored_from_storage() -> None:
    storage = MemoryStorage({UI_NAMESPACE: {"theme": "dark"}})
    root = DocumentRoot()
    overlay = OverlayCoordinator(storage=storage, theme_sink=root)

    assert overlay.initialize_theme() is Theme.DARK
    assert root.get_attribute("data-theme") == "dark"


def test_dark_mode_flag_off_pins_light() -> None:
    storage = MemoryStorage({UI_NAMESPACE: {"theme": "dark"}})
    sink = RecordingThemeSink()
    overlay = OverlayCoordinator(storage=storage, theme_sink=sink, dark_mode_enabled=False)

    assert overlay.theme is Theme.LIGHT
    assert overlay.toggle_theme() is Theme.LIGHT
    assert overlay.set_theme("dark") is Theme.LIGHT
    assert sink.current == "light"


def test_theme_sink_failure_is_logged_not_raised() -> None:
    class Broken:
        def set_attribute(self, name: str, value: str) -> None:
            raise RuntimeError("no document")

    overlay = OverlayCoordinator(theme_sink=Broken())
    assert overlay.set_theme(Theme.DARK) is Theme.DARK


def test_bad_theme_values() -> None:
    assert theme_from_durable({"theme": "sepia"}) is None
    assert theme_from_durable(None) is None
    with pytest.raises(ValidationFailure):
        OverlayCoordinator().set_theme("sepia")


def test_sidebar_flag(overlay) -> None:
    assert overlay.toggle_sidebar() is True
    assert overlay.set_sidebar_open(False) is False


def test_reset_keeps_theme(overlay, timer: ManualTimer) -> None:
    overlay.set_theme(Theme.DARK)
    overlay.open(OverlayKind.TEAM)
    overlay.notify("x")
    overlay.toggle_sidebar()

    overlay.reset()

    assert not overlay.state.is_open
    assert overlay.notifications == []
    assert not overlay.sidebar_open
    assert timer.pending == []
    assert overlay.theme is Theme.DARK
