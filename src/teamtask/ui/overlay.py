# src/teamtask/ui/overlay.py

"""
UI-only state: the single overlay slot, transient notifications, the sidebar
flag and the theme.

Overlay state machine: Closed --open(k, p)--> Open(k, p) --close()--> Closed.
open() while open replaces the current overlay outright (no stacking).
A non-None payload means the overlay edits that entity; None means create.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from ..core.errors import ValidationFailure
from ..core.models import Notification, OverlayKind, OverlayMode, Severity, Theme
from ..core.ports import DurableStorage, ThemeSink, Timer, TimerHandle
from ..core.store import Store
from ..persistence import UI_NAMESPACE

logger = logging.getLogger(__name__)

THEME_ATTRIBUTE = "data-theme"


@dataclass(slots=True, frozen=True)
class OverlayState:
    active: OverlayKind | None = None
    payload: Any = None

    @property
    def is_open(self) -> bool:
        return self.active is not None

    @property
    def mode(self) -> OverlayMode | None:
        if self.active is None:
            return None
        return OverlayMode.EDIT if self.payload is not None else OverlayMode.CREATE


class DocumentRoot:
    """In-process stand-in for the document element the theme attribute lands on."""

    def __init__(self) -> None:
        self.attributes: dict[str, str] = {}

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)


def theme_to_durable(theme: Theme) -> dict[str, Any]:
    return {"theme": theme.value}


def theme_from_durable(data: Mapping[str, Any] | None) -> Theme | None:
    if not data:
        return None
    try:
        return Theme(data.get("theme"))
    except ValueError:
        logger.warning("Ignoring unknown persisted theme: %r", data.get("theme"))
        return None


def loop_timer(delay: float, callback: Callable[[], None]) -> TimerHandle | None:
    """Schedule on the running asyncio loop; outside a loop nothing is scheduled."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running event loop; notification will not auto-dismiss")
        return None
    return loop.call_later(delay, callback)


def _coerce_kind(kind: OverlayKind | str) -> OverlayKind:
    try:
        return OverlayKind(kind)
    except ValueError as e:
        allowed = ", ".join(k.value for k in OverlayKind)
        raise ValidationFailure(f"Unknown overlay kind: {kind!r} (expected one of: {allowed})") from e


class OverlayCoordinator(Store):
    def __init__(
            self,
            *,
            storage: DurableStorage | None = None,
            theme_sink: ThemeSink | None = None,
            timer: Timer | None = None,
            notification_ttl: float = 5.0,
            dark_mode_enabled: bool = True,
    ) -> None:
        super().__init__()
        self._storage = storage
        self._sink = theme_sink
        self._timer = timer or loop_timer
        self._ttl = notification_ttl
        self._dark_mode_enabled = dark_mode_enabled

        self.state = OverlayState()
        self.notifications: list[Notification] = []
        self.sidebar_open = False
        self._ids = itertools.count(1)
        self._timers: dict[int, TimerHandle] = {}

        restored = theme_from_durable(storage.read(UI_NAMESPACE)) if storage is not None else None
        self.theme = self._allowed(restored or Theme.LIGHT)

    # ---- overlay ----

    def open(self, kind: OverlayKind | str, payload: Any = None) -> OverlayState:
        k = _coerce_kind(kind)
        if self.state.is_open:
            logger.debug("Replacing open %s overlay with %s", self.state.active, k)
        self.state = OverlayState(active=k, payload=payload)
        self._notify()
        return self.state

    def close(self) -> None:
        if not self.state.is_open:
            return
        self.state = OverlayState()
        self._notify()

    def update_payload(self, payload: Any) -> None:
        if not self.state.is_open:
            return
        self.state = replace(self.state, payload=payload)
        self._notify()

    # ---- notifications ----

    def notify(self, message: str, severity: Severity | str = Severity.INFO) -> int:
        try:
            sev = Severity(severity)
        except ValueError as e:
            raise ValidationFailure(f"Unknown severity: {severity!r}") from e

        note = Notification(id=next(self._ids), message=message, severity=sev)
        self.notifications = [*self.notifications, note]
        if self._ttl > 0:
            handle = self._timer(self._ttl, lambda: self._expire(note.id))
            if handle is not None:
                self._timers[note.id] = handle
        self._notify()
        return note.id

    def _expire(self, note_id: int) -> None:
        self._timers.pop(note_id, None)
        self._remove(note_id)

    def _remove(self, note_id: int) -> bool:
        remaining = [n for n in self.notifications if n.id != note_id]
        if len(remaining) == len(self.notifications):
            return False
        self.notifications = remaining
        self._notify()
        return True

    def dismiss(self, note_id: int) -> bool:
        handle = self._timers.pop(note_id, None)
        if handle is not None:
            handle.cancel()
        return self._remove(note_id)

    def cancel_timers(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    def clear_notifications(self) -> None:
        self.cancel_timers()
        if self.notifications:
            self.notifications = []
            self._notify()

    # ---- sidebar ----

    def toggle_sidebar(self) -> bool:
        return self.set_sidebar_open(not self.sidebar_open)

    def set_sidebar_open(self, is_open: bool) -> bool:
        self.sidebar_open = bool(is_open)
        self._notify()
        return self.sidebar_open

    # ---- theme ----

    def _allowed(self, theme: Theme) -> Theme:
        if theme is Theme.DARK and not self._dark_mode_enabled:
            return Theme.LIGHT
        return theme

    def _apply_theme(self) -> None:
        if self._sink is None:
            return
        try:
            self._sink.set_attribute(THEME_ATTRIBUTE, self.theme.value)
        except Exception:
            logger.exception("Failed to apply theme %s", self.theme)

    def _persist_theme(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.write(UI_NAMESPACE, theme_to_durable(self.theme))
        except Exception:
            logger.exception("Failed to persist theme")

    def initialize_theme(self) -> Theme:
        """Apply the restored (or default) theme once at startup."""
        self._apply_theme()
        logger.debug("Theme initialized: %s", self.theme)
        return self.theme

    def set_theme(self, theme: Theme | str) -> Theme:
        try:
            wanted = Theme(theme)
        except ValueError as e:
            raise ValidationFailure(f"Unknown theme: {theme!r}") from e

        resolved = self._allowed(wanted)
        if resolved is not wanted:
            logger.info("Dark mode is disabled; keeping the light theme")
        self.theme = resolved
        self._persist_theme()
        self._apply_theme()
        self._notify()
        return self.theme

    def toggle_theme(self) -> Theme:
        return self.set_theme(self.theme.flipped)

    # ---- lifecycle ----

    def reset(self) -> None:
        """Drop per-session UI state; the theme is a device preference and stays."""
        self.cancel_timers()
        self.state = OverlayState()
        self.notifications = []
        self.sidebar_open = False
        self._notify()
