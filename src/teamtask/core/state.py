# src/teamtask/core/state.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..collections.tasks import TaskCollection
from ..collections.teams import TeamCollection
from ..session.manager import SessionManager
from ..ui.overlay import OverlayCoordinator
from .ports import ApiClient, DurableStorage

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    # Store Settings on the state so commands can read feature flags.
    settings: Any

    api: ApiClient
    storage: DurableStorage | None
    session: SessionManager
    teams: TeamCollection
    tasks: TaskCollection
    overlay: OverlayCoordinator

    async def start(self) -> None:
        """Apply the persisted theme, then ask the server who we are."""
        self.overlay.initialize_theme()
        await self.session.probe()

    async def logout(self) -> None:
        """End the session and drop every per-user slice (theme survives)."""
        await self.session.logout()
        self.overlay.reset()
        self.tasks.reset()
        self.teams.reset()

    async def shutdown(self) -> None:
        self.overlay.cancel_timers()
        aclose = getattr(self.api, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception:
            logger.exception("Failed to close API client")
