"""Shared columns for every stored document."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


def new_document_id() -> str:
    """Return an opaque identifier for a new document."""

    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(SQLModel):
    """Opaque string id plus the version counter used for conflict detection."""

    id: str = Field(default_factory=new_document_id, primary_key=True, max_length=64)
    version: int = Field(default=1, nullable=False)
