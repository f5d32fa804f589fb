## ward_capacity/store.py

from __future__ import annotations
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional
from sqlalchemy import (BigInteger, Column, Float, Index, Integer, MetaData, String, Table,
                        create_engine, delete, func, select, union, update)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from .errors import StoreUnavailable
from .schemas import CapacityKey
from .utils import logger

metadata = MetaData()

capacity_events = Table(
    "capacity_events", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("facility_id", String(128), nullable=False),
    Column("ward_id", String(128), nullable=False),
    Column("occurred_at", BigInteger, nullable=False),
    Column("unique_value", String(64), nullable=False),
    Index("ix_capacity_events_key_ts", "facility_id", "ward_id", "occurred_at"),
)

capacity_history = Table(
    "capacity_history", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("facility_id", String(128), nullable=False),
    Column("ward_id", String(128), nullable=False),
    Column("recorded_at", BigInteger, nullable=False),
    Column("window_count", Float, nullable=False),
    Index("ix_capacity_history_key_ts", "facility_id", "ward_id", "recorded_at"),
)

ward_status = Table(
    "ward_status", metadata,
    Column("facility_id", String(128), primary_key=True),
    Column("ward_id", String(128), primary_key=True),
    Column("status", String(16), nullable=False),
)


class EventStore(ABC):
    """Time-indexed event and history storage, scoped by CapacityKey.

    Timestamps are epoch milliseconds. ``append`` must be atomic per call;
    nothing else is assumed about concurrent writers.
    """

    @abstractmethod
    def append(self, key: CapacityKey, timestamp: int, unique_value: str) -> None: ...

    @abstractmethod
    def range_count(self, key: CapacityKey, min_ts: int, max_ts: int) -> int: ...

    @abstractmethod
    def evict_events(self, key: CapacityKey, before_ts: int) -> int: ...

    @abstractmethod
    def append_history_sample(self, key: CapacityKey, timestamp: int, value: float) -> None: ...

    @abstractmethod
    def range_history_values(self, key: CapacityKey) -> List[float]: ...

    @abstractmethod
    def prune_history(self, key: CapacityKey, before_ts: int) -> int: ...

    @abstractmethod
    def exchange_status(self, key: CapacityKey, status: str) -> Optional[str]:
        """Store ``status`` as the key's last published status, returning the previous one."""

    @abstractmethod
    def keys(self) -> List[CapacityKey]: ...


def _key_filter(table: Table, key: CapacityKey):
    return (table.c.facility_id == key.facility_id) & (table.c.ward_id == key.ward_id)


class SqlEventStore(EventStore):
    """EventStore on a relational table indexed on (facility_id, ward_id, timestamp)."""

    def __init__(self, uri_or_engine: str | Engine):
        if isinstance(uri_or_engine, Engine):
            self.engine = uri_or_engine
        else:
            connect_args = {"check_same_thread": False} if uri_or_engine.startswith("sqlite") else {}
            self.engine = create_engine(uri_or_engine, future=True, connect_args=connect_args)

    def init_schema(self) -> "SqlEventStore":
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Could not create capacity tables: {e}") from e
        return self

    @contextmanager
    def _tx(self) -> Iterator[Connection]:
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            logger.error(f"Event store error: {e}")
            raise StoreUnavailable(str(e)) from e

    def append(self, key, timestamp, unique_value):
        with self._tx() as conn:
            conn.execute(capacity_events.insert().values(
                facility_id=key.facility_id, ward_id=key.ward_id,
                occurred_at=timestamp, unique_value=unique_value))

    def range_count(self, key, min_ts, max_ts):
        stmt = (select(func.count()).select_from(capacity_events)
                .where(_key_filter(capacity_events, key))
                .where(capacity_events.c.occurred_at >= min_ts)
                .where(capacity_events.c.occurred_at <= max_ts))
        with self._tx() as conn:
            return int(conn.execute(stmt).scalar_one())

    def evict_events(self, key, before_ts):
        stmt = (delete(capacity_events)
                .where(_key_filter(capacity_events, key))
                .where(capacity_events.c.occurred_at < before_ts))
        with self._tx() as conn:
            return conn.execute(stmt).rowcount

    def append_history_sample(self, key, timestamp, value):
        with self._tx() as conn:
            conn.execute(capacity_history.insert().values(
                facility_id=key.facility_id, ward_id=key.ward_id,
                recorded_at=timestamp, window_count=value))

    def range_history_values(self, key):
        stmt = (select(capacity_history.c.window_count)
                .where(_key_filter(capacity_history, key))
                .order_by(capacity_history.c.recorded_at))
        with self._tx() as conn:
            return [float(v) for v in conn.execute(stmt).scalars()]

    def prune_history(self, key, before_ts):
        stmt = (delete(capacity_history)
                .where(_key_filter(capacity_history, key))
                .where(capacity_history.c.recorded_at < before_ts))
        with self._tx() as conn:
            return conn.execute(stmt).rowcount

    def _exchange(self, conn: Connection, key: CapacityKey, status: str) -> Optional[str]:
        # A no-op update takes the row's write lock before it is read.
        touched = conn.execute(update(ward_status).where(_key_filter(ward_status, key))
                               .values(status=ward_status.c.status)).rowcount
        if not touched:
            conn.execute(ward_status.insert().values(
                facility_id=key.facility_id, ward_id=key.ward_id, status=status))
            return None
        previous = conn.execute(
            select(ward_status.c.status).where(_key_filter(ward_status, key))
        ).scalar_one()
        if previous != status:
            conn.execute(update(ward_status).where(_key_filter(ward_status, key)).values(status=status))
        return previous

    def exchange_status(self, key, status):
        for attempt in (1, 2):
            try:
                with self.engine.begin() as conn:
                    return self._exchange(conn, key, status)
            except IntegrityError as e:
                # Another writer created the row first; the second attempt updates it.
                if attempt == 2:
                    raise StoreUnavailable(str(e)) from e
                logger.debug(f"Status row for {key} created concurrently, retrying exchange")
            except SQLAlchemyError as e:
                logger.error(f"Event store error: {e}")
                raise StoreUnavailable(str(e)) from e

    def keys(self):
        stmt = union(
            select(capacity_events.c.facility_id, capacity_events.c.ward_id),
            select(capacity_history.c.facility_id, capacity_history.c.ward_id),
        )
        with self._tx() as conn:
            rows = conn.execute(stmt).all()
        return sorted(CapacityKey(f, w) for f, w in rows)
