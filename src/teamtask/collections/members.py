# src/teamtask/collections/members.py

"""
Members of the currently selected team (the "scope").

The member list is only valid for the scope it was fetched under:
- select() with a different team (or None) drops the list immediately;
- a load_members() response is applied only if its scope is still selected
  and no newer member request was issued since.
Permission checks run locally before any round-trip; a rejected action leaves
state untouched, records the error and raises.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, NoReturn

from ..api.client import unwrap
from ..api.endpoints import TeamsApi
from ..core.errors import ClientError, MalformedResponse, StateInvariantViolation, ValidationFailure
from ..core.models import Member, Role, Team, UserProfile
from ..core.ports import ApiClient, JsonPayload
from ..core.store import RequestSequencer, Store

logger = logging.getLogger(__name__)

CurrentUser = Callable[[], UserProfile | None]
TeamLeftHook = Callable[[str], Awaitable[None]]


class MembershipSubstore(Store):
    def __init__(
            self,
            api: ApiClient,
            *,
            current_user: CurrentUser,
            on_left_team: TeamLeftHook | None = None,
    ) -> None:
        super().__init__()
        self._teams_api = TeamsApi(api)
        self._current_user = current_user
        self._on_left_team = on_left_team
        self.scope: Team | None = None
        self.items: list[Member] = []
        self.error: str | None = None
        self._in_flight = 0
        self._loads = RequestSequencer()
        self._generation = 0

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    # ---- scope ----

    def select(self, team: Team | None) -> None:
        """Set the scope. A different team (or None) invalidates the cached members."""
        same = team is not None and self.scope is not None and team.id == self.scope.id
        self.scope = team
        if not same:
            self._loads.invalidate()
            self.items = []
            self.error = None
        self._notify()

    def rescope(self, team: Team | None) -> None:
        """Refresh the scoped Team record after a team reload (None: it vanished)."""
        if self.scope is None:
            return
        if team is None:
            logger.info("Selected team %s is gone; clearing scope", self.scope.id)
            self.select(None)
            return
        if team.id == self.scope.id and team != self.scope:
            self.scope = team
            self._notify()

    def reset(self) -> None:
        self._loads.invalidate()
        self._generation += 1
        self.scope = None
        self.items = []
        self.error = None
        self._in_flight = 0
        self._notify()

    # ---- helpers ----

    def get(self, member_id: str) -> Member | None:
        for m in self.items:
            if m.id == str(member_id):
                return m
        return None

    def is_self(self, member: Member) -> bool:
        me = self._current_user()
        return me is not None and member.user_id == me.id

    def owner_count(self) -> int:
        return sum(1 for m in self.items if m.role is Role.OWNER)

    def can_edit_role(self, member: Member) -> bool:
        """Same rule update_role() enforces, for views that hide the control."""
        return (
            self.scope is not None
            and self.scope.role is Role.OWNER
            and not self.is_self(member)
            and member.role is not Role.OWNER
        )

    def can_remove(self, member: Member) -> bool:
        if self.scope is None:
            return False
        if self.is_self(member):
            return True
        return self.scope.role.can_manage_members and member.role is not Role.OWNER

    def _reject(self, exc: ClientError) -> NoReturn:
        logger.info("Member action rejected: %s", exc.message)
        self.error = exc.message
        self._notify()
        raise exc

    def _require_scope(self) -> Team:
        if self.scope is None:
            self._reject(ValidationFailure("Select a team first"))
        return self.scope

    def _require_member(self, member_id: str) -> Member:
        member = self.get(member_id)
        if member is None:
            self._reject(ValidationFailure(f"Unknown member: {member_id}"))
        return member

    def _coerce_role(self, role: Role | str) -> Role:
        try:
            return Role(role)
        except ValueError:
            self._reject(ValidationFailure(f"Invalid role: {role!r}"))

    # ---- read ----

    async def load_members(self, team_id: str | None = None) -> None:
        if self.scope is None:
            logger.info("load_members without a selected team; ignoring")
            self.error = "Select a team first"
            self._notify()
            return

        scope_id = self.scope.id if team_id is None else str(team_id)
        if scope_id != self.scope.id:
            logger.info("load_members(%s) does not match selected team %s; ignoring", scope_id, self.scope.id)
            self.error = "Select a team first"
            self._notify()
            return

        token = self._loads.issue()
        members: list[Member] = []
        failure: ClientError | None = None

        self._in_flight += 1
        self._notify()
        try:
            payload = await self._teams_api.members(scope_id)
            raw = unwrap(payload, "members")
            if not isinstance(raw, list):
                raise MalformedResponse(200, "Expected a list of members.", payload)
            members = [Member.from_api(r) for r in raw]
        except ClientError as e:
            failure = e
        except (KeyError, TypeError, ValueError) as e:
            failure = MalformedResponse(200, "Invalid member entry in response.")
            logger.debug("member parse error", exc_info=e)
        finally:
            self._in_flight = max(0, self._in_flight - 1)

        still_scoped = self.scope is not None and self.scope.id == scope_id
        if not (self._loads.is_current(token) and still_scoped):
            logger.debug("Discarding stale members response for team %s", scope_id)
            self._notify()
            return

        if failure is not None:
            logger.warning("Loading members of team %s failed: %s", scope_id, failure.message)
            self.error = failure.message
        else:
            self.items = members
            self.error = None
        self._notify()

    # ---- mutations ----

    async def _mutate(self, team_id: str, action: str, call: Callable[[], Awaitable[JsonPayload]]) -> JsonPayload:
        generation = self._generation
        self.error = None
        self._in_flight += 1
        self._notify()
        try:
            payload = await call()
        except ClientError as e:
            logger.warning("Member %s failed (team %s): %s", action, team_id, e.message)
            if self._generation == generation:
                self.error = e.message
            raise
        finally:
            self._in_flight = max(0, self._in_flight - 1)
            self._notify()

        logger.info("Member %s ok (team %s)", action, team_id)
        if self._generation != generation:
            logger.debug("Members were reset during %s; skipping reload", action)
            return payload
        if self.scope is not None and self.scope.id == team_id:
            await self.load_members(team_id)
        return payload

    async def add(self, email: str, role: Role | str = Role.MEMBER) -> JsonPayload:
        team = self._require_scope()
        new_role = self._coerce_role(role)
        if not team.role.can_manage_members:
            self._reject(StateInvariantViolation("Only owners and admins can add members"))
        if new_role is Role.OWNER:
            self._reject(StateInvariantViolation("A team can only have one owner"))
        if not (email or "").strip():
            self._reject(ValidationFailure("Email is required"))

        body: dict[str, Any] = {"email": email.strip(), "role": new_role.value}
        return await self._mutate(team.id, "add", lambda: self._teams_api.add_member(team.id, body))

    async def update_role(self, member_id: str, role: Role | str) -> JsonPayload | None:
        team = self._require_scope()
        new_role = self._coerce_role(role)
        target = self._require_member(member_id)

        if team.role is not Role.OWNER:
            self._reject(StateInvariantViolation("Only the team owner can change member roles"))
        if self.is_self(target):
            self._reject(StateInvariantViolation("You cannot change your own role"))
        if target.role is Role.OWNER and self.owner_count() <= 1:
            self._reject(StateInvariantViolation("The team owner's role cannot be changed"))
        if new_role is Role.OWNER:
            self._reject(StateInvariantViolation("Ownership transfer is not supported"))
        if new_role is target.role:
            return None

        return await self._mutate(
            team.id,
            "role update",
            lambda: self._teams_api.update_member_role(team.id, target.id, new_role.value),
        )

    async def remove(self, member_id: str) -> JsonPayload:
        """Remove another member, or leave the team when the target is the acting user."""
        team = self._require_scope()
        target = self._require_member(member_id)

        if self.is_self(target):
            return await self.leave(team.id)

        if not team.role.can_manage_members:
            self._reject(StateInvariantViolation("Only owners and admins can remove members"))
        if target.role is Role.OWNER:
            self._reject(StateInvariantViolation("The team owner cannot be removed"))

        return await self._mutate(team.id, "removal", lambda: self._teams_api.remove_member(team.id, target.id))

    async def leave(self, team_id: str) -> JsonPayload:
        """Leave a team: drops the scope if it was that team and invalidates the team list."""
        team_id = str(team_id)
        generation = self._generation
        self.error = None
        self._in_flight += 1
        self._notify()
        try:
            payload = await self._teams_api.leave(team_id)
        except ClientError as e:
            logger.warning("Leaving team %s failed: %s", team_id, e.message)
            if self._generation == generation:
                self.error = e.message
            raise
        finally:
            self._in_flight = max(0, self._in_flight - 1)
            self._notify()

        logger.info("Left team %s", team_id)
        if self._generation != generation:
            logger.debug("Members were reset while leaving team %s; skipping reload", team_id)
            return payload
        if self.scope is not None and self.scope.id == team_id:
            self.select(None)
        if self._on_left_team is not None:
            await self._on_left_team(team_id)
        return payload
