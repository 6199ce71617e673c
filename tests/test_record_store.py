"""Unit tests for the SQLAlchemy record store (in-memory SQLite)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import threading
import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import OperationalError
from app.database import create_tables
from app.exceptions import StoreFailure
from app.services.record_codec import key_for, normalize_search_key, validate_for_save
from app.services.record_store import SqlRecordStore


def make_record(plate="XYZ999", name="Ali", contract="C-001", images=("img1",)):
    return validate_for_save(plate, name, contract, list(images)).record


class TestSqlRecordStore:
    @pytest.mark.asyncio
    async def test_save_then_lookup_any_case(self, db_session):
        store = SqlRecordStore(db_session)
        record = make_record()
        await store.put(key_for("owner", record.license_plate), record)

        found = await store.get(normalize_search_key("owner", "xyz999"))
        assert found.license_plate == "XYZ999"
        assert found.vehicle_number == "XYZ999"
        assert found.employee_name == "Ali"
        assert found.contract_number == "C-001"
        assert found.images == ["img1"]

        assert await store.get(normalize_search_key("owner", " XyZ999 ")) is not None

    @pytest.mark.asyncio
    async def test_put_assigns_timestamps(self, db_session):
        store = SqlRecordStore(db_session)
        record = make_record()
        stored = await store.put(key_for("owner", "XYZ999"), record)
        assert stored.created_at is not None
        assert stored.updated_at is not None

    @pytest.mark.asyncio
    async def test_second_save_fully_replaces(self, db_session):
        store = SqlRecordStore(db_session)
        key = key_for("owner", "AB1234")
        first = await store.put(key, make_record("AB1234", "Ali", "C-001", ["a", "b", "c"]))
        await store.put(key, make_record("ab1234", "Veli", "C-002", ["z"]))

        found = await store.get(key)
        assert found.employee_name == "Veli"
        assert found.contract_number == "C-002"
        assert found.images == ["z"]
        assert found.created_at == first.created_at

    @pytest.mark.asyncio
    async def test_unknown_key_returns_none(self, db_session):
        store = SqlRecordStore(db_session)
        assert await store.get(key_for("owner", "NOPE1")) is None

    @pytest.mark.asyncio
    async def test_owner_namespaces_do_not_collide(self, db_session):
        store = SqlRecordStore(db_session)
        await store.put(key_for("owner-a", "AB1"), make_record("AB1", name="Ali"))
        await store.put(key_for("owner-b", "AB1"), make_record("AB1", name="Ayse"))

        assert (await store.get(key_for("owner-a", "ab1"))).employee_name == "Ali"
        assert (await store.get(key_for("owner-b", "ab1"))).employee_name == "Ayse"
        assert await store.get(key_for("owner-c", "ab1")) is None

    @pytest.mark.asyncio
    async def test_put_failure_raises_store_failure(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        store = SqlRecordStore(db)

        with pytest.raises(StoreFailure):
            await store.put(key_for("owner", "AB1"), make_record("AB1"))
        db.rollback.assert_called_once()
        db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_failure_raises_store_failure(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = OperationalError(
            "SELECT", {}, Exception("db down"))
        store = SqlRecordStore(db)

        with pytest.raises(StoreFailure):
            await store.get(key_for("owner", "AB1"))
        db.rollback.assert_called_once()


@pytest.fixture
def file_sessions(tmp_path):
    """Independent sessions on one SQLite file."""
    engine = create_engine(f"sqlite:///{tmp_path / 'records.db'}",
                           connect_args={"check_same_thread": False})
    create_tables(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    sessions = [Session(), Session(), Session()]
    try:
        yield sessions
    finally:
        for s in sessions:
            s.close()
        engine.dispose()


class TestConcurrentSaves:
    @pytest.mark.asyncio
    async def test_overlapping_first_saves_last_write_wins(self, file_sessions):
        db_a, db_b, db_reader = file_sessions
        store_a, store_b = SqlRecordStore(db_a), SqlRecordStore(db_b)
        key = key_for("owner", "AB1234")

        # store_a looked the key up before store_b's insert committed
        real_find = store_a._find
        lookups = []

        def stale_find(k):
            lookups.append(k)
            return None if len(lookups) == 1 else real_find(k)

        store_a._find = stale_find

        first = await store_b.put(key, make_record("AB1234", name="First", images=["a", "b"]))
        last = await store_a.put(key, make_record("AB1234", name="Last", images=["z"]))

        assert last.employee_name == "Last"
        found = await SqlRecordStore(db_reader).get(key)
        assert found.employee_name == "Last"
        assert found.images == ["z"]
        assert found.created_at == first.created_at


class TestOffEventLoop:
    @pytest.mark.asyncio
    async def test_session_calls_run_in_worker_thread(self):
        loop_thread = threading.get_ident()
        seen = []
        db = MagicMock()

        def query(*args):
            seen.append(threading.get_ident())
            return MagicMock(**{"filter.return_value.first.return_value": None})

        db.query.side_effect = query
        assert await SqlRecordStore(db).get(key_for("owner", "AB1")) is None
        assert seen and seen[0] != loop_thread
