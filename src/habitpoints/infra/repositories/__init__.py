"""Concrete repository implementations using SQLModel."""

from .store import SQLModelDocumentStore, SQLModelTransaction

__all__ = ["SQLModelDocumentStore", "SQLModelTransaction"]
