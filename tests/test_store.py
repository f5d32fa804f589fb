"""Tests for the SQL event store."""

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError

from ward_capacity.errors import StoreUnavailable
from ward_capacity.schemas import CapacityKey
from ward_capacity.store import SqlEventStore

KEY = CapacityKey("fac_a", "emergency")
OTHER = CapacityKey("fac_b", "emergency")


class TestEvents:
    def test_range_count_is_inclusive(self, store):
        for ts in (100, 200, 300):
            store.append(KEY, ts, f"e{ts}")
        assert store.range_count(KEY, 100, 300) == 3
        assert store.range_count(KEY, 101, 299) == 1

    def test_range_count_scoped_by_key(self, store):
        store.append(KEY, 100, "a")
        store.append(OTHER, 100, "b")
        assert store.range_count(KEY, 0, 1000) == 1

    def test_evict_events(self, store):
        store.append(KEY, 100, "old")
        store.append(KEY, 500, "new")
        store.append(OTHER, 100, "other-old")
        assert store.evict_events(KEY, 200) == 1
        assert store.range_count(KEY, 0, 1000) == 1
        assert store.range_count(OTHER, 0, 1000) == 1


class TestHistory:
    def test_values_in_time_order(self, store):
        store.append_history_sample(KEY, 300, 30)
        store.append_history_sample(KEY, 100, 10)
        store.append_history_sample(OTHER, 200, 99)
        assert store.range_history_values(KEY) == [10.0, 30.0]

    def test_prune_history(self, store):
        store.append_history_sample(KEY, 100, 10)
        store.append_history_sample(KEY, 300, 30)
        assert store.prune_history(KEY, 200) == 1
        assert store.range_history_values(KEY) == [30.0]


class TestStatusAndKeys:
    def test_exchange_status_returns_previous(self, store):
        assert store.exchange_status(KEY, "available") is None
        assert store.exchange_status(KEY, "busy") == "available"
        assert store.exchange_status(KEY, "busy") == "busy"
        assert store.exchange_status(OTHER, "full") is None

    def test_keys_union_of_events_and_history(self, store):
        store.append(KEY, 100, "a")
        store.append_history_sample(OTHER, 100, 5)
        store.append(KEY, 200, "b")
        assert store.keys() == [KEY, OTHER]


class TestFailures:
    def test_missing_tables_raise_store_unavailable(self, tmp_path):
        bare = SqlEventStore(f"sqlite:///{tmp_path / 'empty.sqlite'}")
        with pytest.raises(StoreUnavailable):
            bare.range_count(KEY, 0, 1)

    def test_unreachable_database(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'db.sqlite'}")
        with pytest.raises(StoreUnavailable):
            SqlEventStore(engine).init_schema()


class TestConcurrentStatus:
    def test_first_exchange_from_many_threads(self, store):
        barrier = threading.Barrier(8)
        previous, errors = [], []

        def worker():
            barrier.wait()
            try:
                previous.append(store.exchange_status(KEY, "available"))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert previous.count(None) == 1
        assert previous.count("available") == 7

    def test_lost_insert_race_retries_as_update(self, store, monkeypatch):
        store.exchange_status(KEY, "available")
        real = store._exchange
        calls = []

        def racing(conn, key, status):
            calls.append(status)
            if len(calls) == 1:
                raise IntegrityError("INSERT INTO ward_status", {}, Exception("UNIQUE constraint failed"))
            return real(conn, key, status)

        monkeypatch.setattr(store, "_exchange", racing)
        assert store.exchange_status(KEY, "busy") == "available"
        assert len(calls) == 2

    def test_repeated_integrity_error_is_store_unavailable(self, store, monkeypatch):
        def always(conn, key, status):
            raise IntegrityError("INSERT INTO ward_status", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(store, "_exchange", always)
        with pytest.raises(StoreUnavailable):
            store.exchange_status(KEY, "busy")
