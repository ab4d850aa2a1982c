"""Rewards the user buys with points."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlmodel import Field

from .base import Document, utcnow


class Reward(Document, table=True):
    """A reward that can be redeemed once."""

    __tablename__: ClassVar[str] = "reward"

    user_id: str = Field(nullable=False, index=True, max_length=64)
    name: str = Field(nullable=False, max_length=80)
    description: Optional[str] = Field(default=None, max_length=255)
    cost: int = Field(default=0, nullable=False)
    is_redeemed: bool = Field(default=False, nullable=False)
    redeemed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
