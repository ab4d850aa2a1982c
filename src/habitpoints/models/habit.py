"""Habit templates, monthly goals and the daily entries logged against them."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, ClassVar, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field

from ..domain.entry_value import EntryValue
from .base import Document, utcnow

DEFAULT_BASE_POINTS = 100
DEFAULT_PARTIAL_POINTS = 25
DEFAULT_SHOW_UP_POINTS = 1


class HabitTemplate(Document, table=True):
    """Static configuration for a habit the user tracks."""

    __tablename__: ClassVar[str] = "habit_template"

    user_id: str = Field(nullable=False, index=True, max_length=64)
    name: str = Field(nullable=False, max_length=80)
    description: Optional[str] = Field(default=None, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=32)
    allow_show_up: bool = Field(default=False, nullable=False)
    # None means "not configured"; the points calculator falls back to 100.
    base_points: Optional[int] = Field(default=DEFAULT_BASE_POINTS)
    # Kept for older documents only, partial effort always awards a fixed amount.
    partial_points: Optional[int] = Field(default=DEFAULT_PARTIAL_POINTS)
    show_up_points: Optional[int] = Field(default=DEFAULT_SHOW_UP_POINTS)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)


class MonthlyGoal(Document, table=True):
    """Binds a habit template to one calendar month with its logging rules."""

    __tablename__: ClassVar[str] = "monthly_goal"

    user_id: str = Field(nullable=False, index=True, max_length=64)
    habit_id: str = Field(nullable=False, index=True, max_length=64)
    month: str = Field(nullable=False, index=True, max_length=7)  # YYYY-MM
    ui: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    goal: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    logging: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    constraints: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )

    @property
    def allows_next_day_completion(self) -> bool:
        return bool((self.logging or {}).get("allowNextDayCompletion"))


class HabitEntry(Document, table=True):
    """One user's record for one goal on one calendar day."""

    __tablename__: ClassVar[str] = "habit_entry"
    __table_args__ = (
        UniqueConstraint("monthly_goal_id", "target_date", name="uq_habit_entry_goal_date"),
    )

    monthly_goal_id: str = Field(nullable=False, index=True, max_length=64)
    user_id: str = Field(nullable=False, index=True, max_length=64)
    target_date: date = Field(nullable=False, index=True)
    timestamp: datetime = Field(default_factory=utcnow, nullable=False)
    # Wire value: True, False, "showUp", any other string, or a number.
    value: Any = Field(sa_column=Column(JSON, nullable=False))

    @property
    def entry_value(self) -> EntryValue:
        return EntryValue.from_wire(self.value)
