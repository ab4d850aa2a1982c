"""Streak evaluation over a goal's dated entries.

The evaluator walks backward one calendar day at a time from a reference
date. Only full completions grow the streak; partial/show-up entries keep it
alive without growing it. A missed day (no entry, or an explicit ``False``)
breaks the run unless a shield covers it.

Shields: one shield is earned for every 7 full completions, and at most one
shield is spent per evaluation, on the first missed day of the run. The
shield covers that miss when 7 full completions sit on either side of it:
the days the backward walk has already counted, or the days before the miss
on the calendar. The latter are visited after the miss, so the shield is
granted provisionally and settled once the walk ends. An unlogged or missed
``today`` is never bridged; the streak is 0 until today is logged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Optional

from ..domain.entry_value import EntryKind, EntryValue
from ..models.habit import HabitEntry

MAX_LOOKBACK_DAYS = 365
SHIELD_INTERVAL_DAYS = 7

# (minimum streak, multiplier), highest tier first
MULTIPLIER_TIERS: tuple[tuple[int, float], ...] = ((14, 1.5), (7, 1.2))
BASE_MULTIPLIER = 1.0


@dataclass(frozen=True, slots=True)
class StreakInfo:
    """Computed streak state; never persisted."""

    current_streak: int = 0
    multiplier: float = BASE_MULTIPLIER
    has_shield: bool = False
    shield_active: bool = False
    last_completed_date: Optional[date] = None

    def to_dict(self) -> dict[str, Any]:
        """Wire representation with camelCase keys."""
        return {
            "currentStreak": self.current_streak,
            "multiplier": self.multiplier,
            "hasShield": self.has_shield,
            "shieldActive": self.shield_active,
            "lastCompletedDate": (
                self.last_completed_date.isoformat() if self.last_completed_date else None
            ),
        }


def multiplier_for(streak: int) -> float:
    """Return the points multiplier for a streak length."""

    for minimum, multiplier in MULTIPLIER_TIERS:
        if streak >= minimum:
            return multiplier
    return BASE_MULTIPLIER


def shields_earned(full_completions: int) -> int:
    return full_completions // SHIELD_INTERVAL_DAYS


def _values_by_day(entries: Iterable[HabitEntry]) -> dict[date, EntryValue]:
    by_day: dict[date, EntryValue] = {}
    for entry in entries:
        # Duplicate dates are not expected; the first one seen wins.
        by_day.setdefault(entry.target_date, entry.entry_value)
    return by_day


def evaluate_streak(entries: Iterable[HabitEntry], today: date) -> StreakInfo:
    """Compute streak, multiplier and shield state as of ``today``.

    ``entries`` may be the goal's whole history or any window that covers the
    365 days ending at ``today``. With nothing logged for ``today`` the
    streak is 0.
    """

    by_day = _values_by_day(entries)
    if not by_day:
        return StreakInfo()

    streak = 0
    misses = 0
    last_completed: Optional[date] = None
    # State just before the provisional shield was spent: (streak, last_completed)
    before_shield: Optional[tuple[int, Optional[date]]] = None

    cursor = today
    for _ in range(MAX_LOOKBACK_DAYS):
        value = by_day.get(cursor)
        if value is not None and value.kind is not EntryKind.MISS:
            if value.kind is EntryKind.FULL:
                streak += 1
            misses = 0
            if last_completed is None:
                last_completed = cursor
        else:
            misses += 1
            if misses == 1 and before_shield is None and cursor != today:
                before_shield = (streak, last_completed)
            else:
                break
        cursor -= timedelta(days=1)

    shield_used = False
    if before_shield is not None:
        streak_at_miss, last_at_miss = before_shield
        if shields_earned(streak_at_miss) > 0 or shields_earned(streak - streak_at_miss) > 0:
            shield_used = True
        else:
            # No seven-day run on either side of the miss: the run ended there.
            streak, last_completed = streak_at_miss, last_at_miss

    return StreakInfo(
        current_streak=streak,
        multiplier=multiplier_for(streak),
        has_shield=shields_earned(streak) > 0,
        shield_active=shield_used,
        last_completed_date=last_completed,
    )


__all__ = [
    "MAX_LOOKBACK_DAYS",
    "MULTIPLIER_TIERS",
    "SHIELD_INTERVAL_DAYS",
    "StreakInfo",
    "evaluate_streak",
    "multiplier_for",
    "shields_earned",
]
