from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from deposit_notifier.errors import StorageUnavailable
from deposit_notifier.ledger import AtomicLedger, DedupLedger, InMemoryLedger, SqlLedger
from tests.helpers.db import bootstrap_sqlite_ledger, count_records, sqlite_url

T0 = datetime(2026, 10, 17, 8, 0, tzinfo=UTC)
T1 = datetime(2026, 10, 17, 9, 0, tzinfo=UTC)


def test_unseen_id_does_not_exist(tmp_path: Path):
    ledger, _ = bootstrap_sqlite_ledger(tmp_path / "ledger.db")
    assert ledger.exists("never-seen") is False
    assert ledger.get("never-seen") is None


def test_record_then_exists(tmp_path: Path):
    ledger, engine = bootstrap_sqlite_ledger(tmp_path / "ledger.db")

    ledger.record("tx-1", T0)

    assert ledger.exists("tx-1") is True
    record = ledger.get("tx-1")
    assert record is not None
    assert record.id == "tx-1"
    assert record.processed_at.replace(tzinfo=None) == T0.replace(tzinfo=None)
    assert count_records(engine) == 1


def test_record_twice_keeps_first_record(tmp_path: Path):
    ledger, engine = bootstrap_sqlite_ledger(tmp_path / "ledger.db")

    ledger.record("tx-1", T0)
    ledger.record("tx-1", T1)

    assert count_records(engine) == 1
    record = ledger.get("tx-1")
    assert record is not None
    assert record.processed_at.replace(tzinfo=None) == T0.replace(tzinfo=None)


def test_insert_if_absent_reports_who_created_the_record(tmp_path: Path):
    ledger, engine = bootstrap_sqlite_ledger(tmp_path / "ledger.db")
    # A second ledger on the same file stands in for an overlapping run.
    other_engine = create_engine(sqlite_url(tmp_path / "ledger.db"))
    other = SqlLedger(sessionmaker(bind=other_engine, class_=Session))

    assert ledger.insert_if_absent("tx-1", T0) is True
    assert other.insert_if_absent("tx-1", T1) is False
    assert other.exists("tx-1") is True
    assert count_records(engine) == 1


def test_release_removes_the_claim(tmp_path: Path):
    ledger, _ = bootstrap_sqlite_ledger(tmp_path / "ledger.db")

    ledger.insert_if_absent("tx-1", T0)
    ledger.release("tx-1")

    assert ledger.exists("tx-1") is False
    assert ledger.insert_if_absent("tx-1", T1) is True


def test_missing_table_surfaces_as_storage_unavailable(tmp_path: Path):
    engine = create_engine(sqlite_url(tmp_path / "empty.db"))
    ledger = SqlLedger(sessionmaker(bind=engine, class_=Session))

    with pytest.raises(StorageUnavailable, match="lookup"):
        ledger.exists("tx-1")
    with pytest.raises(StorageUnavailable, match="write"):
        ledger.record("tx-1", T0)


def test_from_url_uses_shared_engine(tmp_path: Path):
    url = sqlite_url(tmp_path / "shared.db")
    ledger = SqlLedger.from_url(url)
    ledger.create_schema()

    ledger.record("tx-9", T0)

    assert SqlLedger.from_url(url).exists("tx-9")


def test_protocol_membership():
    memory = InMemoryLedger()
    assert isinstance(memory, DedupLedger)
    assert not isinstance(memory, AtomicLedger)
    assert isinstance(SqlLedger(sessionmaker()), AtomicLedger)


def test_in_memory_ledger_first_write_wins():
    ledger = InMemoryLedger()
    ledger.record("a", T0)
    ledger.record("a", T1)
    record = ledger.get("a")
    assert record is not None and record.processed_at == T0
    assert len(ledger) == 1
