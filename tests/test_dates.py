# tests/test_dates.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from teamtask.utils import dates

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_parse_date_variants() -> None:
    assert dates.parse_date("2024-03-10") == datetime(2024, 3, 10, tzinfo=timezone.utc)
    assert dates.parse_date("2024-03-10T08:30:00Z").hour == 8
    assert dates.parse_date("") is None
    assert dates.parse_date("next tuesday") is None


def test_format_date() -> None:
    assert dates.format_date("2024-03-05") == "Mar 5, 2024"
    assert dates.format_date(None) is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-03-08T12:00:00Z", "2 days overdue"),
        ("2024-03-10T12:00:00Z", "Due today"),
        ("2024-03-11T12:00:00Z", "Due tomorrow"),
        ("2024-03-14T12:00:00Z", "Due in 4 days"),
        ("2024-04-01T12:00:00Z", "Apr 1, 2024"),
    ],
)
def test_format_relative_date(raw, expected) -> None:
    assert dates.format_relative_date(raw, now=NOW) == expected


def test_overdue_and_due_soon() -> None:
    assert dates.is_overdue("2024-03-09", now=NOW)
    assert not dates.is_overdue("2024-03-12", now=NOW)
    assert not dates.is_overdue(None, now=NOW)

    assert dates.is_due_soon("2024-03-12", now=NOW)
    assert not dates.is_due_soon("2024-03-20", now=NOW)
    assert dates.is_due_soon("2024-03-20", 14, now=NOW)
    assert not dates.is_due_soon("2024-03-09", now=NOW)
