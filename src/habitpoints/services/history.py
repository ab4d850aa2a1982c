"""Presence windows used for sparklines and the weekly grid."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from ..errors import InvalidArgumentError
from ..models.habit import HabitEntry

DEFAULT_WINDOW_DAYS = 7


def project_recent_history(
    entries: Iterable[HabitEntry], today: date, window_days: int = DEFAULT_WINDOW_DAYS
) -> list[bool]:
    """Return one flag per day, oldest first, ending at ``today``.

    Any entry counts as presence here, including ``False`` and partial values.
    The flag for ``today - k`` sits at index ``window_days - 1 - k``.
    """

    if window_days < 1:
        raise InvalidArgumentError("window_days must be at least 1")

    logged_days = {entry.target_date for entry in entries}
    return [
        (today - timedelta(days=offset)) in logged_days
        for offset in range(window_days - 1, -1, -1)
    ]


def week_days(today: date) -> list[date]:
    """Return the Sunday-to-Saturday week containing ``today``."""

    days_since_sunday = (today.weekday() + 1) % 7
    sunday = today - timedelta(days=days_since_sunday)
    return [sunday + timedelta(days=index) for index in range(7)]


def week_presence(entries: Iterable[HabitEntry], today: date) -> list[bool]:
    """Flags for each day of the current week with at least one entry."""

    logged_days = {entry.target_date for entry in entries}
    return [day in logged_days for day in week_days(today)]


__all__ = [
    "DEFAULT_WINDOW_DAYS",
    "project_recent_history",
    "week_days",
    "week_presence",
]
