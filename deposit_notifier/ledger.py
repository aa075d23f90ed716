"""Dedup ledger: which transaction ids have already triggered a notification.

Two interfaces:

- :class:`DedupLedger`: ``exists`` + ``record``. Check-then-write is not
  atomic; overlapping runs can both notify for the same id.
- :class:`AtomicLedger`: adds ``insert_if_absent`` (a single conditional
  insert that reports whether this caller created the row) and ``release``
  (drop a claim whose notification never went out). The dispatcher prefers
  these when the ledger provides them.

Every storage failure surfaces as :class:`StorageUnavailable`.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ledger_db import Base, ProcessedDeposit
from ledger_db.client import get_session_maker

from .errors import StorageUnavailable
from .models import ProcessedRecord


@runtime_checkable
class DedupLedger(Protocol):
    def exists(self, transaction_id: str) -> bool: ...

    def record(self, transaction_id: str, processed_at: datetime) -> None: ...


@runtime_checkable
class AtomicLedger(DedupLedger, Protocol):
    def insert_if_absent(self, transaction_id: str, processed_at: datetime) -> bool: ...

    def release(self, transaction_id: str) -> None: ...


# ---------------------------------------------------------------------------
# In-memory (dry runs, tests)
# ---------------------------------------------------------------------------


class InMemoryLedger:
    """Process-local ledger with plain check-then-write semantics."""

    def __init__(self, processed: dict[str, datetime] | None = None) -> None:
        self._records: dict[str, datetime] = dict(processed or {})

    def exists(self, transaction_id: str) -> bool:
        return transaction_id in self._records

    def record(self, transaction_id: str, processed_at: datetime) -> None:
        # First write wins; records are never rewritten.
        self._records.setdefault(transaction_id, processed_at)

    def get(self, transaction_id: str) -> ProcessedRecord | None:
        ts = self._records.get(transaction_id)
        return None if ts is None else ProcessedRecord(id=transaction_id, processed_at=ts)

    def __len__(self) -> int:
        return len(self._records)


# ---------------------------------------------------------------------------
# SQL (SQLAlchemy)
# ---------------------------------------------------------------------------


class SqlLedger:
    """Ledger backed by the ``processed_deposits`` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str | None = None) -> SqlLedger:
        """Build a ledger on the shared engine (``DATABASE_URL`` when omitted)."""

        try:
            return cls(get_session_maker(database_url=database_url))
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"cannot open ledger database: {e}") from e

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageUnavailable(f"ledger {action} failed: {e}") from e
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create the ledger table if it does not exist (no migrations)."""

        with self._session("schema creation") as session:
            Base.metadata.create_all(bind=session.get_bind(), tables=[ProcessedDeposit.__table__])

    def exists(self, transaction_id: str) -> bool:
        with self._session("lookup") as session:
            found = session.execute(
                select(ProcessedDeposit.transaction_id).where(
                    ProcessedDeposit.transaction_id == transaction_id
                )
            ).first()
        return found is not None

    def get(self, transaction_id: str) -> ProcessedRecord | None:
        with self._session("lookup") as session:
            row = session.get(ProcessedDeposit, transaction_id)
            if row is None:
                return None
            return ProcessedRecord(id=row.transaction_id, processed_at=row.processed_at)

    def _insert_ignoring_conflict(
        self, session: Session, transaction_id: str, processed_at: datetime
    ) -> bool:
        values = {"transaction_id": transaction_id, "processed_at": processed_at}
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(ProcessedDeposit).values(values).on_conflict_do_nothing(
                index_elements=[ProcessedDeposit.transaction_id]
            )
        elif dialect == "sqlite":
            stmt = sqlite_insert(ProcessedDeposit).values(values).on_conflict_do_nothing(
                index_elements=[ProcessedDeposit.transaction_id]
            )
        else:
            # Generic path: rely on the primary key to reject the duplicate.
            try:
                with session.begin_nested():
                    session.add(ProcessedDeposit(**values))
                return True
            except IntegrityError:
                return False
        result = session.execute(stmt)
        return result.rowcount == 1

    def record(self, transaction_id: str, processed_at: datetime) -> None:
        """Persist a record; a second call for the same id is a no-op."""

        with self._session("write") as session:
            self._insert_ignoring_conflict(session, transaction_id, processed_at)

    def insert_if_absent(self, transaction_id: str, processed_at: datetime) -> bool:
        """Create the record and return ``True``, or ``False`` if it exists."""

        with self._session("claim") as session:
            return self._insert_ignoring_conflict(session, transaction_id, processed_at)

    def release(self, transaction_id: str) -> None:
        with self._session("release") as session:
            session.execute(
                delete(ProcessedDeposit).where(ProcessedDeposit.transaction_id == transaction_id)
            )


__all__ = ["AtomicLedger", "DedupLedger", "InMemoryLedger", "SqlLedger"]
