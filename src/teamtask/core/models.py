# src/teamtask/core/models.py

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..utils import dates
from .errors import ValidationFailure


def _coerce(enum_cls: type[StrEnum], raw: Any, what: str) -> Any:
    """Coerce a wire string into a closed enum, rejecting unknown values."""
    try:
        return enum_cls(raw)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationFailure(f"Invalid {what}: {raw!r} (expected one of: {allowed})") from e


def _opt_str(raw: Any) -> str | None:
    if raw is None or raw == "":
        return None
    return str(raw)


class Role(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @property
    def can_manage_members(self) -> bool:
        return self in (Role.OWNER, Role.ADMIN)


class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"

    @classmethod
    def from_api(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_api(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class SessionStatus(StrEnum):
    IDLE = "idle"
    CHECKING = "checking"
    READY = "ready"


class OverlayKind(StrEnum):
    TEAM = "team"
    TASK = "task"
    MEMBER = "member"


class OverlayMode(StrEnum):
    CREATE = "create"
    EDIT = "edit"


class Severity(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"

    @property
    def flipped(self) -> Theme:
        return Theme.DARK if self is Theme.LIGHT else Theme.LIGHT


class FilterField(StrEnum):
    SEARCH = "search"
    TEAM_ID = "team_id"
    STATUS = "status"
    PRIORITY = "priority"
    ASSIGNED_TO = "assigned_to"
    ASSIGNED_TO_ME = "assigned_to_me"


# ---- entities ----


@dataclass(slots=True, frozen=True)
class UserProfile:
    id: str
    email: str
    first_name: str
    last_name: str
    avatar_url: str | None = None

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> UserProfile:
        return cls(
            id=str(raw["id"]),
            email=str(raw.get("email") or ""),
            first_name=str(raw.get("first_name") or ""),
            last_name=str(raw.get("last_name") or ""),
            avatar_url=_opt_str(raw.get("avatar_url")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "avatar_url": self.avatar_url,
        }

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email


@dataclass(slots=True)
class Team:
    id: str
    name: str
    description: str
    role: Role
    member_count: int = 0
    task_count: int = 0

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> Team:
        try:
            role = Role(raw.get("role") or Role.MEMBER)
        except ValueError:
            # Unknown role from the server: least privilege.
            role = Role.MEMBER
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            description=str(raw.get("description") or ""),
            role=role,
            member_count=int(raw.get("member_count") or 0),
            task_count=int(raw.get("task_count") or 0),
        )


@dataclass(slots=True)
class Member:
    id: str
    user_id: str
    first_name: str
    last_name: str
    email: str
    role: Role

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> Member:
        try:
            role = Role(raw.get("role") or Role.MEMBER)
        except ValueError:
            role = Role.MEMBER
        return cls(
            id=str(raw["id"]),
            user_id=str(raw.get("user_id") or ""),
            first_name=str(raw.get("first_name") or ""),
            last_name=str(raw.get("last_name") or ""),
            email=str(raw.get("email") or ""),
            role=role,
        )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email


@dataclass(slots=True)
class Task:
    id: str
    title: str
    team_id: str
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    description: str | None = None
    assigned_to: str | None = None
    due_date: str | None = None

    # Read-only fields joined in by the server for display.
    team_name: str | None = None
    assignee_first_name: str | None = None
    assignee_last_name: str | None = None

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> Task:
        return cls(
            id=str(raw["id"]),
            title=str(raw.get("title") or ""),
            team_id=str(raw.get("team_id") or ""),
            status=TaskStatus.from_api(raw.get("status")),
            priority=Priority.from_api(raw.get("priority")),
            description=_opt_str(raw.get("description")),
            assigned_to=_opt_str(raw.get("assigned_to")),
            due_date=_opt_str(raw.get("due_date")),
            team_name=_opt_str(raw.get("team_name")),
            assignee_first_name=_opt_str(raw.get("assignee_first_name")),
            assignee_last_name=_opt_str(raw.get("assignee_last_name")),
        )

    @property
    def assignee_name(self) -> str | None:
        if not self.assignee_first_name and not self.assignee_last_name:
            return None
        return f"{self.assignee_first_name or ''} {self.assignee_last_name or ''}".strip()

    def is_overdue(self, *, now: datetime | None = None) -> bool:
        if self.status == TaskStatus.COMPLETED:
            return False
        return dates.is_overdue(self.due_date, now=now)

    def is_due_soon(self, days: int = 3, *, now: datetime | None = None) -> bool:
        if self.status == TaskStatus.COMPLETED:
            return False
        return dates.is_due_soon(self.due_date, days, now=now)


# ---- filter descriptor ----


@dataclass(slots=True, frozen=True)
class FilterDescriptor:
    """
    Composite query for the task collection.

    Invariant: an empty team_id implies an empty assigned_to
    (no cross-team assignee filtering).
    """

    search: str = ""
    team_id: str = ""
    status: TaskStatus | str = ""
    priority: Priority | str = ""
    assigned_to: str = ""
    assigned_to_me: bool = False

    def merged(self, partial: Mapping[FilterField | str, Any]) -> FilterDescriptor:
        """
        Return a new descriptor with `partial` applied.

        Keys must be FilterField members (or their string values). Changing
        team_id always clears assigned_to in the same update.
        """
        changes: dict[str, Any] = {}
        for raw_key, value in partial.items():
            key = _coerce(FilterField, raw_key, "filter field")
            changes[key.value] = _normalize_filter_value(key, value)

        nxt = replace(self, **changes)
        if nxt.team_id != self.team_id:
            nxt = replace(nxt, assigned_to="")
        return nxt.normalized()

    def normalized(self) -> FilterDescriptor:
        if not self.team_id and self.assigned_to:
            return replace(self, assigned_to="")
        return self

    @property
    def is_empty(self) -> bool:
        return self == FilterDescriptor()

    def to_query(self) -> dict[str, str]:
        """Only non-empty fields are sent."""
        params: dict[str, str] = {}
        if self.search:
            params["search"] = self.search
        if self.team_id:
            params["team_id"] = self.team_id
        if self.status:
            params["status"] = str(self.status)
        if self.priority:
            params["priority"] = str(self.priority)
        if self.assigned_to:
            params["assigned_to"] = self.assigned_to
        if self.assigned_to_me:
            params["assigned_to_me"] = "true"
        return params

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _normalize_filter_value(key: FilterField, value: Any) -> Any:
    if key is FilterField.ASSIGNED_TO_ME:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if value is None or value == "":
        return ""
    if key is FilterField.STATUS:
        return _coerce(TaskStatus, value, "status")
    if key is FilterField.PRIORITY:
        return _coerce(Priority, value, "priority")
    return str(value).strip() if key is FilterField.SEARCH else str(value)


@dataclass(slots=True, frozen=True)
class Notification:
    id: int
    message: str
    severity: Severity = Severity.INFO


@dataclass(slots=True, frozen=True)
class TaskFormOptions:
    """Snapshot of what the task editor can offer (teams + scoped members)."""

    teams: list[Team] = field(default_factory=list)
    members: list[Member] = field(default_factory=list)
