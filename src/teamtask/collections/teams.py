# src/teamtask/collections/teams.py

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..api.endpoints import TeamsApi
from ..core.errors import ValidationFailure
from ..core.models import Team, UserProfile
from ..core.ports import ApiClient
from .base import CollectionStore
from .members import MembershipSubstore

logger = logging.getLogger(__name__)


class TeamCollection(CollectionStore[Team]):
    """
    Teams the current user belongs to, plus the member substore for the
    selected team. Listeners of the collection also hear member updates.
    """

    resource = "teams"

    def __init__(
            self,
            api: ApiClient,
            current_user: Callable[[], UserProfile | None] = lambda: None,
    ) -> None:
        super().__init__(api)
        self.members = MembershipSubstore(api, current_user=current_user, on_left_team=self._after_leave)
        self.members.subscribe(self._notify)

    def resource_api(self, api: ApiClient) -> TeamsApi:
        return TeamsApi(api)

    def parse_item(self, raw: Mapping[str, Any]) -> Team:
        return Team.from_api(raw)

    def validate_create(self, data: Mapping[str, Any]) -> None:
        if not str(data.get("name") or "").strip():
            raise ValidationFailure("Team name is required")

    @property
    def selected_team(self) -> Team | None:
        return self.members.scope

    def select(self, team: Team | str | None) -> Team | None:
        """Select by Team or id; an unknown id raises ValidationFailure."""
        if isinstance(team, str):
            found = self.get(team)
            if found is None:
                raise ValidationFailure(f"Unknown team: {team}")
            team = found
        logger.debug("Selecting team %s", team.id if team else None)
        self.members.select(team)
        return team

    async def load(self, filter: Any = None) -> None:
        """Teams are not filtered server-side; `filter` is accepted and ignored."""
        await super().load()
        scope = self.members.scope
        if scope is not None and self.error is None:
            self.members.rescope(self.get(scope.id))

    def search(self, term: str) -> list[Team]:
        needle = (term or "").strip().lower()
        if not needle:
            return list(self.items)
        return [
            t for t in self.items
            if needle in t.name.lower() or needle in (t.description or "").lower()
        ]

    def after_delete(self, item_id: str) -> None:
        scope = self.members.scope
        if scope is not None and scope.id == item_id:
            logger.debug("Selected team %s was deleted; clearing scope", item_id)
            self.members.select(None)

    async def leave(self, team_id: str) -> None:
        await self.members.leave(team_id)

    async def _after_leave(self, team_id: str) -> None:
        await self.load()

    def reset(self) -> None:
        self.members.reset()
        super().reset()
