"""User profile holding the point balance."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlmodel import Field

from .base import Document, utcnow


class User(Document, table=True):
    """Authenticated user; ``id`` is the uid issued by the auth provider."""

    __tablename__: ClassVar[str] = "user"

    email: str = Field(default="", max_length=255)
    name: str = Field(nullable=False, max_length=80)
    points: int = Field(default=0, nullable=False)
    partner_id: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
