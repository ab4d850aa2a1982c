"""One-off goals that award a fixed number of points once."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlmodel import Field

from .base import Document, utcnow


class Milestone(Document, table=True):
    """A milestone, optionally attached to a habit."""

    __tablename__: ClassVar[str] = "milestone"

    user_id: str = Field(nullable=False, index=True, max_length=64)
    habit_id: Optional[str] = Field(default=None, index=True, max_length=64)
    name: str = Field(nullable=False, max_length=80)
    description: Optional[str] = Field(default=None, max_length=255)
    point_value: int = Field(default=0, nullable=False)
    is_completed: bool = Field(default=False, nullable=False)
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
