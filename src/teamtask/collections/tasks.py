# src/teamtask/collections/tasks.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..api.client import unwrap
from ..api.endpoints import TasksApi, TeamsApi
from ..core.errors import ClientError, MalformedResponse, ValidationFailure
from ..core.models import FilterDescriptor, FilterField, Member, Task, TaskFormOptions
from ..core.ports import ApiClient
from ..core.store import RequestSequencer
from .base import CollectionStore

if TYPE_CHECKING:
    from .teams import TeamCollection

logger = logging.getLogger(__name__)


class TaskCollection(CollectionStore[Task]):
    """
    Task list narrowed by a FilterDescriptor.

    Any effective filter change reloads. The only other store it touches is
    TeamCollection, read-only, for the task editor's team/member choices.
    """

    resource = "tasks"
    _resource: TasksApi

    def __init__(self, api: ApiClient, teams: TeamCollection | None = None) -> None:
        super().__init__(api)
        self._teams = teams
        self.filter = FilterDescriptor()
        self.dashboard_stats: dict[str, Any] | None = None
        self.dashboard_error: str | None = None
        self._dashboard_loads = RequestSequencer()
        self._teams_api = TeamsApi(api)
        self.assignees: list[Member] = []
        self.assignees_team_id: str | None = None
        self.assignees_error: str | None = None
        self._assignee_loads = RequestSequencer()

    def resource_api(self, api: ApiClient) -> TasksApi:
        return TasksApi(api)

    def parse_item(self, raw: Mapping[str, Any]) -> Task:
        return Task.from_api(raw)

    def active_query(self) -> dict[str, str] | None:
        return self.filter.to_query() or None

    def validate_create(self, data: Mapping[str, Any]) -> None:
        if not str(data.get("title") or "").strip():
            raise ValidationFailure("Task title is required")
        if not str(data.get("team_id") or "").strip():
            raise ValidationFailure("Please select a team")

    # ---- filters ----

    async def load(self, filter: FilterDescriptor | None = None) -> None:
        """Reload with the active filter; a supplied filter becomes the active one first."""
        if filter is not None:
            self.filter = filter.normalized()
        await super().load()

    async def set_filter(self, partial: Mapping[FilterField | str, Any]) -> FilterDescriptor:
        """
        Merge `partial` into the active filter and reload if anything changed.

        Changing team_id clears assigned_to in the same update.
        """
        try:
            nxt = self.filter.merged(partial)
        except ValidationFailure as e:
            self.error = e.message
            self._notify()
            raise

        if nxt == self.filter:
            return self.filter

        self.filter = nxt
        self._notify()
        await self.load()
        return self.filter

    async def reset_filter(self) -> None:
        self.filter = FilterDescriptor()
        self._notify()
        await self.load()

    # ---- dashboard ----

    async def load_dashboard(self) -> None:
        token = self._dashboard_loads.issue()
        self._begin()
        failure: ClientError | None = None
        stats: Any = None
        try:
            payload = await self._resource.dashboard()
            stats = unwrap(payload)
        except ClientError as e:
            failure = e
        finally:
            self._end()

        if not self._dashboard_loads.is_current(token):
            logger.debug("Discarding stale dashboard response")
            self._notify()
            return

        if failure is not None:
            logger.warning("Loading dashboard failed: %s", failure.message)
            self.dashboard_error = failure.message
        else:
            self.dashboard_stats = dict(stats) if isinstance(stats, Mapping) else {}
            self.dashboard_error = None
        self._notify()

    def overdue(self) -> list[Task]:
        return [t for t in self.items if t.is_overdue()]

    def due_soon(self, days: int = 3) -> list[Task]:
        return [t for t in self.items if t.is_due_soon(days)]

    # ---- assignees ----

    async def load_assignees(self, team_id: str | None) -> None:
        """
        Fetch the members of `team_id` as assignee choices for the task editor
        and filter. Independent of the team store's selected scope; a response
        for a team that is no longer the requested one is dropped.
        """
        token = self._assignee_loads.issue()
        if not team_id:
            self.assignees = []
            self.assignees_team_id = None
            self.assignees_error = None
            self._notify()
            return

        team_id = str(team_id)
        self.assignees_team_id = team_id
        members: list[Member] = []
        failure: ClientError | None = None

        self._begin()
        try:
            payload = await self._teams_api.members(team_id)
            raw = unwrap(payload, "members")
            if not isinstance(raw, list):
                raise MalformedResponse(200, "Expected a list of members.", payload)
            members = [Member.from_api(r) for r in raw]
        except ClientError as e:
            failure = e
        except (KeyError, TypeError, ValueError) as e:
            failure = MalformedResponse(200, "Invalid member entry in response.")
            logger.debug("assignee parse error", exc_info=e)
        finally:
            self._end()

        if not self._assignee_loads.is_current(token) or self.assignees_team_id != team_id:
            logger.debug("Discarding stale assignees response for team %s", team_id)
            self._notify()
            return

        if failure is not None:
            logger.warning("Loading assignees of team %s failed: %s", team_id, failure.message)
            self.assignees = []
            self.assignees_error = failure.message
        else:
            self.assignees = members
            self.assignees_error = None
        self._notify()

    # ---- cross-store read ----

    def form_options(self, team_id: str | None = None) -> TaskFormOptions:
        """
        Snapshot of the teams and the members of `team_id` the task editor can
        offer. Members come from load_assignees(), or from the team store when
        `team_id` is its selected scope. Never awaits the team store.
        """
        members: list[Member] = []
        if team_id and self.assignees_team_id == str(team_id):
            members = list(self.assignees)
        if self._teams is None:
            return TaskFormOptions(members=members)
        scope = self._teams.selected_team
        if not members and team_id and scope is not None and scope.id == str(team_id):
            members = list(self._teams.members.items)
        return TaskFormOptions(teams=list(self._teams.items), members=members)

    def reset(self) -> None:
        self._dashboard_loads.invalidate()
        self._assignee_loads.invalidate()
        self.assignees = []
        self.assignees_team_id = None
        self.assignees_error = None
        self.filter = FilterDescriptor()
        self.dashboard_stats = None
        self.dashboard_error = None
        super().reset()
