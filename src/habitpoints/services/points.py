"""Points awarded for a single habit entry."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..domain.entry_value import EntryKind
from ..models.habit import DEFAULT_BASE_POINTS, HabitEntry, HabitTemplate
from .streaks import StreakInfo

# Partial and show-up effort share one flat reward, never multiplied.
PARTIAL_EFFORT_POINTS = 25


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""

    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def full_completion_points(base_points: Optional[int], multiplier: float) -> int:
    base = DEFAULT_BASE_POINTS if base_points is None else base_points
    # str() keeps 1.2 as exactly 1.2 instead of its binary approximation
    return round_half_up(Decimal(str(base)) * Decimal(str(multiplier)))


def calculate_points(
    entry: HabitEntry, template: Optional[HabitTemplate], streak: StreakInfo
) -> int:
    """Return the integer points to award for ``entry``.

    No template means no known base value, so nothing is awarded.
    """

    if template is None:
        return 0

    kind = entry.entry_value.kind
    if kind is EntryKind.FULL:
        return full_completion_points(template.base_points, streak.multiplier)
    if kind is EntryKind.PARTIAL:
        return PARTIAL_EFFORT_POINTS
    return 0


__all__ = [
    "PARTIAL_EFFORT_POINTS",
    "calculate_points",
    "full_completion_points",
    "round_half_up",
]
