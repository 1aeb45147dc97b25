# src/teamtask/utils/dates.py

"""Due-date helpers shared by the task model and the console views."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone

_SECONDS_PER_DAY = 24 * 60 * 60


def parse_date(raw: str | date | None) -> datetime | None:
    """
    Parse an ISO date or datetime string into an aware datetime (UTC if naive).

    Returns None for empty or unparsable input.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, date):
        dt = datetime(raw.year, raw.month, raw.day)
    else:
        s = str(raw).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def format_date(raw: str | date | None) -> str | None:
    dt = parse_date(raw)
    if dt is None:
        return None
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"


def format_relative_date(raw: str | date | None, *, now: datetime | None = None) -> str | None:
    dt = parse_date(raw)
    if dt is None:
        return None

    diff_days = math.ceil((dt - _now(now)).total_seconds() / _SECONDS_PER_DAY)

    if diff_days < 0:
        return f"{abs(diff_days)} days overdue"
    if diff_days == 0:
        return "Due today"
    if diff_days == 1:
        return "Due tomorrow"
    if diff_days <= 7:
        return f"Due in {diff_days} days"
    return format_date(dt)


def is_overdue(raw: str | date | None, *, now: datetime | None = None) -> bool:
    dt = parse_date(raw)
    if dt is None:
        return False
    return dt < _now(now)


def is_due_soon(raw: str | date | None, days: int = 3, *, now: datetime | None = None) -> bool:
    dt = parse_date(raw)
    if dt is None:
        return False
    diff_days = (dt - _now(now)).total_seconds() / _SECONDS_PER_DAY
    return 0 <= diff_days <= days
