"""SQLModel implementation of the document store."""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import Session, SQLModel, select

from ...errors import TransactionConflictError
from ...infra.database import SessionFactory
from ...logging_config import get_logger
from ...models.base import Document

logger = get_logger(__name__)

DocT = TypeVar("DocT", bound=SQLModel)
ResultT = TypeVar("ResultT")

_CREATE = "create"
_UPDATE = "update"
_DELETE = "delete"


def _equality_statement(model: type[DocT], equals: dict[str, Any]):
    statement = select(model)
    for field, value in equals.items():
        statement = statement.where(getattr(model, field) == value)
    return statement


class SQLModelTransaction:
    """One attempt of a store transaction bound to a single session.

    Writes are buffered and applied in order by :meth:`commit`. Updates and
    deletes only succeed against the version that was read; anything else is a
    conflict and the whole attempt is thrown away.
    """

    def __init__(self, session: Session):
        self.session = session
        self._writes: list[tuple[str, Document, dict[str, Any]]] = []

    def _ensure_reading(self) -> None:
        if self._writes:
            raise RuntimeError("Transactions require all reads to run before any write")

    def get(self, model: type[DocT], doc_id: str) -> Optional[DocT]:
        """Read a document by id."""
        self._ensure_reading()
        return self.session.get(model, doc_id)

    def query(self, model: type[DocT], **equals: Any) -> list[DocT]:
        """Read documents matching every equality filter."""
        self._ensure_reading()
        return list(self.session.exec(_equality_statement(model, equals)).all())

    def create(self, doc: Document) -> None:
        self._writes.append((_CREATE, doc, {}))

    def update(self, doc: Document, **changes: Any) -> None:
        self._writes.append((_UPDATE, doc, changes))

    def touch(self, doc: Document) -> None:
        self._writes.append((_UPDATE, doc, {}))

    def delete(self, doc: Document) -> None:
        self._writes.append((_DELETE, doc, {}))

    def commit(self) -> None:
        """Apply buffered writes and commit, or raise on conflict."""
        connection = self.session.connection()
        for op, doc, changes in self._writes:
            table = type(doc).__table__  # type: ignore[attr-defined]
            if op == _CREATE:
                self.session.add(doc)
                try:
                    self.session.flush()
                except IntegrityError as exc:
                    raise TransactionConflictError(
                        f"{table.name} {doc.id} collides with an existing document"
                    ) from exc
                continue

            matches = (table.c.id == doc.id) & (table.c.version == doc.version)
            if op == _UPDATE:
                new_version = doc.version + 1
                result = connection.execute(
                    update(table).where(matches).values(version=new_version, **changes)
                )
            else:
                result = connection.execute(delete(table).where(matches))

            if result.rowcount != 1:
                raise TransactionConflictError(f"{table.name} {doc.id} changed during transaction")

            if op == _UPDATE:
                for key, value in changes.items():
                    set_committed_value(doc, key, value)
                set_committed_value(doc, "version", new_version)
            elif doc in self.session:
                self.session.expunge(doc)

        self.session.commit()


class SQLModelDocumentStore:
    """Document store backed by a SQLModel session factory."""

    def __init__(self, session_factory: SessionFactory, *, max_attempts: int = 5):
        """Initialize with a session factory and the retry budget for conflicts."""
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.session_factory = session_factory
        self.max_attempts = max_attempts

    def get(self, model: type[DocT], doc_id: str) -> Optional[DocT]:
        """Retrieve a document by ID."""
        with self.session_factory() as session:
            obj = session.get(model, doc_id)
            if obj is not None:
                session.expunge(obj)
            return obj

    def query(self, model: type[DocT], **equals: Any) -> list[DocT]:
        """List documents matching every equality filter."""
        with self.session_factory() as session:
            rows = list(session.exec(_equality_statement(model, equals)).all())
            session.expunge_all()
            return rows

    def run_transaction(self, body: Callable[[SQLModelTransaction], ResultT]) -> ResultT:
        """Run ``body`` in a fresh session per attempt until it commits.

        Business-rule errors raised by ``body`` roll back and propagate at once;
        only :class:`TransactionConflictError` triggers another attempt.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.session_factory() as session:
                    transaction = SQLModelTransaction(session)
                    result = body(transaction)
                    transaction.commit()
                    session.expunge_all()
                return result
            except TransactionConflictError as exc:
                if attempt == self.max_attempts:
                    logger.error(
                        "Transaction gave up after %s attempts",
                        attempt,
                        extra={"attempts": attempt, "reason": exc.message},
                    )
                    raise
                logger.warning(
                    "Transaction conflict, retrying",
                    extra={"attempt": attempt, "reason": exc.message},
                )
        raise AssertionError("unreachable")  # pragma: no cover
