"""Repository protocol definitions for domain layer."""

from .store import DocumentStore, StoreTransaction

__all__ = ["DocumentStore", "StoreTransaction"]
