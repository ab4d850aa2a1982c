"""Document store protocol."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, TypeVar

from sqlmodel import SQLModel

DocT = TypeVar("DocT", bound=SQLModel)
ResultT = TypeVar("ResultT")


class StoreTransaction(Protocol):
    """Reads run immediately; writes are buffered and applied at commit.

    All reads must happen before the first write.
    """

    def get(self, model: type[DocT], doc_id: str) -> Optional[DocT]:
        """Read a document by id."""
        ...

    def query(self, model: type[DocT], **equals: Any) -> list[DocT]:
        """Read documents whose fields equal the given values."""
        ...

    def create(self, doc: SQLModel) -> None:
        """Insert a new document."""
        ...

    def update(self, doc: SQLModel, **changes: Any) -> None:
        """Write ``changes`` if ``doc`` is unchanged since it was read."""
        ...

    def touch(self, doc: SQLModel) -> None:
        """Bump the version of ``doc`` so concurrent writers conflict."""
        ...

    def delete(self, doc: SQLModel) -> None:
        """Delete ``doc`` if it is unchanged since it was read."""
        ...


class DocumentStore(Protocol):
    """Get-by-id, equality queries and retried atomic transactions."""

    def get(self, model: type[DocT], doc_id: str) -> Optional[DocT]:
        """Read a document by id outside a transaction."""
        ...

    def query(self, model: type[DocT], **equals: Any) -> list[DocT]:
        """Query documents by equality filters outside a transaction."""
        ...

    def run_transaction(self, body: Callable[[StoreTransaction], ResultT]) -> ResultT:
        """Run ``body`` atomically, re-running it on write conflicts."""
        ...
