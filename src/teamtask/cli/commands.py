# src/teamtask/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, cast

from ..core.errors import ClientError
from ..core.models import FilterField, OverlayKind, Role, Severity, Task, Theme
from ..core.state import AppState
from ..session.validation import validate_email, validate_registration
from ..utils.dates import format_relative_date

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command. Store errors come back
        as text; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                result = cast(CommandHandler3, handler)(state, args, emit)
            else:
                result = cast(CommandHandler2, handler)(state, args)
            if inspect.isawaitable(result):
                result = await result
        except ClientError as e:
            logger.debug("/%s failed: %s", name, e.message)
            return f"Error: {e.message}"
        return cast(str, result)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def _fmt_task(task: Task) -> str:
    parts = [f"[{task.id}] {task.title}", task.status.value, task.priority.value]
    if task.team_name:
        parts.append(task.team_name)
    if task.assignee_name:
        parts.append(f"@{task.assignee_name}")
    rel = format_relative_date(task.due_date)
    if rel:
        parts.append(rel)
    return " | ".join(parts)


def _require_login(state: AppState) -> str | None:
    if not state.session.is_authenticated:
        return "Not logged in. Use /login <email> <password>."
    return None


# ---- session ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.session.session
    who = f"{s.user.display_name} <{s.user.email}>" if s.user else "anonymous"
    scope = state.teams.selected_team
    flt = ", ".join(f"{k}={v}" for k, v in state.tasks.filter.to_query().items()) or "none"
    lines = [
        "Status:",
        f"  Session: {s.status.value} ({who})",
        f"  Theme: {state.overlay.theme.value}",
        f"  Selected team: {scope.name if scope else 'none'}",
        f"  Task filter: {flt}",
        f"  Cached: {len(state.tasks.items)} tasks, {len(state.teams.items)} teams",
    ]
    has_cookie = getattr(state.api, "has_session_cookie", None)
    if has_cookie is not None:
        lines.append(f"  Session cookie: {'present' if has_cookie else 'absent'}")
    if s.error:
        lines.append(f"  Last session error: {s.error}")
    return "\n".join(lines)


async def cmd_login(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    email, password = args
    validate_email(email)
    await state.session.login({"email": email, "password": password})
    user = state.session.user
    state.overlay.notify("Welcome back!", Severity.SUCCESS)
    return f"Logged in as {user.display_name if user else email}."


async def cmd_register(state: AppState, args: list[str]) -> str:
    if len(args) != 4:
        return "Usage: /register <first_name> <last_name> <email> <password>"
    data = dict(zip(("first_name", "last_name", "email", "password"), args))
    validate_registration(data)
    await state.session.register(data)
    state.overlay.notify("Account created successfully!", Severity.SUCCESS)
    return f"Registered and logged in as {data['email']}."


async def cmd_logout(state: AppState, args: list[str]) -> str:
    await state.logout()
    return "Logged out."


# ---- tasks ----


async def cmd_tasks(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /tasks          -> reload with the active filter
    /tasks overdue  -> overdue tasks from the cached list
    /tasks soon     -> tasks due within the configured window
    """
    if msg := _require_login(state):
        return msg

    sub = args[0].lower() if args else ""
    if sub == "overdue":
        items = state.tasks.overdue()
    elif sub == "soon":
        items = state.tasks.due_soon(int(getattr(state.settings, "due_soon_days", 3)))
    else:
        if emit:
            emit("Loading tasks...")
        await state.tasks.load()
        if state.tasks.error:
            return f"Error: {state.tasks.error}"
        items = state.tasks.items
        if getattr(state.settings, "due_date_reminders_enabled", False):
            overdue = state.tasks.overdue()
            if overdue:
                state.overlay.notify(f"{len(overdue)} task(s) overdue", Severity.WARNING)

    if not items:
        return "No tasks."
    return "\n".join(_fmt_task(t) for t in items)


async def cmd_filter(state: AppState, args: list[str]) -> str:
    """/filter key=value ... (keys: search, team_id, status, priority, assigned_to, assigned_to_me)."""
    if msg := _require_login(state):
        return msg
    if not args:
        current = state.tasks.filter.as_dict()
        return "Filter:\n" + "\n".join(f"  {k}={v!s}" for k, v in current.items())

    partial: dict[FilterField | str, Any] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            return f"Expected key=value, got {arg!r}."
        partial[key] = value
    flt = await state.tasks.set_filter(partial)
    return f"Filter set: {flt.to_query() or 'none'} ({len(state.tasks.items)} tasks)"


async def cmd_reset_filter(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    await state.tasks.reset_filter()
    return f"Filter cleared ({len(state.tasks.items)} tasks)."


async def cmd_task_new(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    if len(args) < 2:
        return "Usage: /task-new <team_id> <title...>"
    team_id, title = args[0], " ".join(args[1:])
    state.overlay.open(OverlayKind.TASK)
    await state.tasks.create({"team_id": team_id, "title": title})
    state.overlay.close()
    state.overlay.notify("Task created successfully", Severity.SUCCESS)
    return f"Task created ({len(state.tasks.items)} tasks)."


async def cmd_task_status(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    if len(args) != 2:
        return "Usage: /task-status <task_id> <todo|in_progress|review|completed>"
    task_id, status = args
    task = state.tasks.get(task_id)
    state.overlay.open(OverlayKind.TASK, task)
    await state.tasks.update(task_id, {"status": status})
    state.overlay.close()
    state.overlay.notify("Task updated successfully", Severity.SUCCESS)
    return f"Task {task_id} -> {status}."


async def cmd_task_del(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    if len(args) != 1:
        return "Usage: /task-del <task_id>"
    await state.tasks.delete(args[0])
    state.overlay.notify("Task deleted", Severity.SUCCESS)
    return f"Task {args[0]} deleted."


async def cmd_dashboard(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    await state.tasks.load_dashboard()
    if state.tasks.dashboard_error:
        return f"Error: {state.tasks.dashboard_error}"
    data = state.tasks.dashboard_stats or {}
    stats = data.get("stats") or {}
    keys = ("total", "todo", "in_progress", "review", "completed")
    lines = ["Dashboard:"] + [f"  {k}: {stats.get(k) or 0}" for k in keys]
    lines.append(f"  due soon: {len(data.get('due_soon') or [])}")
    lines.append(f"  overdue: {len(data.get('overdue') or [])}")
    return "\n".join(lines)


async def cmd_assignees(state: AppState, args: list[str]) -> str:
    """/assignees <team_id>: who a task in that team can be assigned to."""
    if msg := _require_login(state):
        return msg
    if len(args) != 1:
        return "Usage: /assignees <team_id>"
    await state.tasks.load_assignees(args[0])
    if state.tasks.assignees_error:
        return f"Error: {state.tasks.assignees_error}"
    members = state.tasks.form_options(args[0]).members
    if not members:
        return "No assignees."
    return "\n".join(f"  [{m.user_id}] {m.display_name} ({m.role.value})" for m in members)


# ---- teams / members ----


async def cmd_teams(state: AppState, args: list[str]) -> str:
    """/teams [search term]"""
    if msg := _require_login(state):
        return msg
    await state.teams.load()
    if state.teams.error:
        return f"Error: {state.teams.error}"
    teams = state.teams.search(" ".join(args))
    if not teams:
        return "No teams."
    selected = state.teams.selected_team
    return "\n".join(
        f"{'*' if selected and selected.id == t.id else ' '} [{t.id}] {t.name} ({t.role.value}, {t.member_count} members)"
        for t in teams
    )


async def cmd_team_new(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    if not args:
        return "Usage: /team-new <name> [description...]"
    state.overlay.open(OverlayKind.TEAM)
    await state.teams.create({"name": args[0], "description": " ".join(args[1:])})
    state.overlay.close()
    state.overlay.notify("Team created successfully", Severity.SUCCESS)
    return f"Team {args[0]!r} created."


async def cmd_team_del(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    if len(args) != 1:
        return "Usage: /team-del <team_id>"
    await state.teams.delete(args[0])
    state.overlay.notify("Team deleted", Severity.SUCCESS)
    return f"Team {args[0]} deleted."


async def cmd_select(state: AppState, args: list[str]) -> str:
    """/select <team_id> | /select none"""
    if msg := _require_login(state):
        return msg
    if len(args) != 1:
        return "Usage: /select <team_id|none>"
    if args[0].lower() == "none":
        state.teams.select(None)
        return "Team selection cleared."
    team = state.teams.select(args[0])
    await state.teams.members.load_members()
    return f"Selected {team.name if team else args[0]} ({len(state.teams.members.items)} members)."


async def cmd_members(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    store = state.teams.members
    if store.scope is None:
        return "No team selected. Use /select <team_id>."
    await store.load_members()
    if store.error:
        return f"Error: {store.error}"
    if not store.items:
        return "No members."
    lines = [f"Members of {store.scope.name}:"]
    for m in store.items:
        me = " (you)" if store.is_self(m) else ""
        editable = " *" if store.can_edit_role(m) else ""
        lines.append(f"  [{m.id}] {m.display_name} <{m.email}> {m.role.value}{editable}{me}")
    lines.append("  (* role can be changed with /role)")
    return "\n".join(lines)


async def cmd_role(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    if len(args) != 2:
        return "Usage: /role <member_id> <admin|member>"
    await state.teams.members.update_role(args[0], args[1])
    state.overlay.notify("Member role updated", Severity.SUCCESS)
    return f"Member {args[0]} is now {args[1]}."


async def cmd_remove(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    if len(args) != 1:
        return "Usage: /remove <member_id>"
    await state.teams.members.remove(args[0])
    state.overlay.notify("Member removed", Severity.SUCCESS)
    return f"Member {args[0]} removed."


async def cmd_leave(state: AppState, args: list[str]) -> str:
    """/leave [team_id] (defaults to the selected team)"""
    if msg := _require_login(state):
        return msg
    scope = state.teams.selected_team
    team_id = args[0] if args else (scope.id if scope else None)
    if not team_id:
        return "Usage: /leave <team_id>"
    await state.teams.leave(team_id)
    state.overlay.notify("You left the team", Severity.INFO)
    return f"Left team {team_id}."


async def cmd_add_member(state: AppState, args: list[str]) -> str:
    if msg := _require_login(state):
        return msg
    if not args or len(args) > 2:
        return "Usage: /add-member <email> [admin|member]"
    role = args[1] if len(args) == 2 else Role.MEMBER
    state.overlay.open(OverlayKind.MEMBER)
    await state.teams.members.add(args[0], role)
    state.overlay.close()
    state.overlay.notify("Member added successfully", Severity.SUCCESS)
    return f"Added {args[0]}."


# ---- ui ----


def cmd_theme(state: AppState, args: list[str]) -> str:
    """/theme | /theme light | /theme dark | /theme toggle"""
    if not args:
        return f"Theme is {state.overlay.theme.value}."
    arg = args[0].lower()
    if arg == "toggle":
        theme = state.overlay.toggle_theme()
    else:
        theme = state.overlay.set_theme(arg)
    if arg == Theme.DARK and theme is not Theme.DARK:
        return "Dark mode is disabled; theme stays light."
    return f"Theme set to {theme.value}."


def cmd_notes(state: AppState, args: list[str]) -> str:
    """/notes | /notes dismiss <id> | /notes clear"""
    overlay = state.overlay
    if args and args[0].lower() == "clear":
        overlay.clear_notifications()
        return "Notifications cleared."
    if len(args) == 2 and args[0].lower() == "dismiss":
        try:
            note_id = int(args[1])
        except ValueError:
            return "Usage: /notes dismiss <id>"
        return "Dismissed." if overlay.dismiss(note_id) else f"No notification {note_id}."
    if not overlay.notifications:
        return "No notifications."
    return "\n".join(f"  #{n.id} [{n.severity.value}] {n.message}" for n in overlay.notifications)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show session, theme, scope and filter.")
registry.register("login", cmd_login, help_text="Log in: /login <email> <password>.")
registry.register("register", cmd_register, help_text="Create an account: /register <first> <last> <email> <password>.")
registry.register("logout", cmd_logout, help_text="Log out and clear local state.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks | /tasks overdue | /tasks soon.")
registry.register("filter", cmd_filter, help_text="Show or set the task filter: /filter key=value ...")
registry.register("reset-filter", cmd_reset_filter, help_text="Clear the task filter.")
registry.register("task-new", cmd_task_new, help_text="Create a task: /task-new <team_id> <title...>.")
registry.register("task-status", cmd_task_status, help_text="Change a task's status: /task-status <id> <status>.")
registry.register("task-del", cmd_task_del, help_text="Delete a task: /task-del <id>.")
registry.register("dashboard", cmd_dashboard, help_text="Show task statistics.")
registry.register("assignees", cmd_assignees, help_text="List possible assignees: /assignees <team_id>.")
registry.register("teams", cmd_teams, help_text="List teams: /teams [search].")
registry.register("team-new", cmd_team_new, help_text="Create a team: /team-new <name> [description...].")
registry.register("team-del", cmd_team_del, help_text="Delete a team: /team-del <id>.")
registry.register("select", cmd_select, help_text="Select a team: /select <team_id|none>.")
registry.register("members", cmd_members, help_text="List members of the selected team.")
registry.register("role", cmd_role, help_text="Change a member's role: /role <member_id> <role>.")
registry.register("remove", cmd_remove, help_text="Remove a member: /remove <member_id>.")
registry.register("leave", cmd_leave, help_text="Leave a team: /leave [team_id].")
registry.register("add-member", cmd_add_member, help_text="Add a member: /add-member <email> [role].")
registry.register("theme", cmd_theme, help_text="Theme: /theme [light|dark|toggle].")
registry.register("notes", cmd_notes, help_text="Notifications: /notes | /notes dismiss <id> | /notes clear.")
