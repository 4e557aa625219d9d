"""SQLite-backed persistence helpers for the tracking service."""

from __future__ import annotations

import pickle
import sqlite3
import threading
from typing import Generic, Iterator, List, Optional, TypeVar

from .domain import Batch, ProductionOrder, ScanEvent
from .repository import DuplicateRecordError, RecordNotFoundError

T = TypeVar("T")


class SQLiteRepository(Generic[T]):
    """Repository implementation that persists records inside SQLite."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        table: str,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._connection = connection
        self._table = table
        self._lock = lock or threading.RLock()
        with self._lock:
            self._connection.execute(
                f"CREATE TABLE IF NOT EXISTS {table} ("  # nosec - static table names
                "id TEXT PRIMARY KEY, payload BLOB NOT NULL)"
            )
            self._connection.commit()

    def __contains__(self, item_id: object) -> bool:
        if not isinstance(item_id, str):
            return False
        with self._lock:
            cursor = self._connection.execute(
                f"SELECT 1 FROM {self._table} WHERE id = ? LIMIT 1", (item_id,)
            )
            return cursor.fetchone() is not None

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())

    def __len__(self) -> int:
        with self._lock:
            cursor = self._connection.execute(f"SELECT COUNT(1) FROM {self._table}")
            value = cursor.fetchone()
        return int(value[0]) if value else 0

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------
    def add(self, item_id: str, item: T) -> None:
        payload = pickle.dumps(item)
        with self._lock:
            if item_id in self:
                raise DuplicateRecordError(f"Record with id {item_id!r} already exists")
            self._connection.execute(
                f"INSERT INTO {self._table} (id, payload) VALUES (?, ?)",
                (item_id, payload),
            )
            self._connection.commit()

    def upsert(self, item_id: str, item: T) -> None:
        payload = pickle.dumps(item)
        with self._lock:
            self._connection.execute(
                f"INSERT INTO {self._table} (id, payload) VALUES (?, ?) "
                "ON CONFLICT(id) DO UPDATE SET payload = excluded.payload",
                (item_id, payload),
            )
            self._connection.commit()

    def get(self, item_id: str) -> T:
        with self._lock:
            cursor = self._connection.execute(
                f"SELECT payload FROM {self._table} WHERE id = ?", (item_id,)
            )
            row = cursor.fetchone()
        if row is None:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")
        return pickle.loads(row[0])

    def remove(self, item_id: str) -> None:
        with self._lock:
            cursor = self._connection.execute(
                f"DELETE FROM {self._table} WHERE id = ?", (item_id,)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Record with id {item_id!r} not found")
            self._connection.commit()

    def list(self) -> List[T]:
        with self._lock:
            cursor = self._connection.execute(
                f"SELECT payload FROM {self._table} ORDER BY id"
            )
            rows = cursor.fetchall()
        return [pickle.loads(row[0]) for row in rows]


def _timestamp_key(event: ScanEvent) -> str:
    # fixed width so text ordering matches time ordering
    return event.timestamp.isoformat(timespec="microseconds")


class SQLiteScanLog:
    """Append-only scan event table ordered by part and timestamp."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        table: str = "scan_events",
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._connection = connection
        self._table = table
        self._lock = lock or threading.RLock()
        with self._lock:
            self._connection.execute(
                f"CREATE TABLE IF NOT EXISTS {table} ("  # nosec - static table names
                "seq INTEGER PRIMARY KEY AUTOINCREMENT, "
                "id TEXT UNIQUE NOT NULL, part_id TEXT NOT NULL, order_id TEXT, "
                "station TEXT NOT NULL, scanned_at TEXT NOT NULL, payload BLOB NOT NULL)"
            )
            self._connection.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{table}_part "
                f"ON {table} (part_id, scanned_at)"
            )
            self._connection.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{table}_order ON {table} (order_id)"
            )
            self._connection.commit()

    def __len__(self) -> int:
        with self._lock:
            value = self._connection.execute(f"SELECT COUNT(1) FROM {self._table}").fetchone()
        return int(value[0]) if value else 0

    def _select(self, where: str = "", params: tuple = (), suffix: str = "") -> List[ScanEvent]:
        query = f"SELECT payload FROM {self._table} {where} {suffix}"
        with self._lock:
            rows = self._connection.execute(query, params).fetchall()
        return [pickle.loads(row[0]) for row in rows]

    def append(self, event: ScanEvent) -> None:
        with self._lock:
            self._connection.execute(
                f"INSERT INTO {self._table} "
                "(id, part_id, order_id, station, scanned_at, payload) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    event.id,
                    event.part_id,
                    event.order_id,
                    event.station,
                    _timestamp_key(event),
                    pickle.dumps(event),
                ),
            )
            self._connection.commit()

    def latest_for_part(self, part_id: str) -> Optional[ScanEvent]:
        events = self._select(
            "WHERE part_id = ?", (part_id,), "ORDER BY scanned_at DESC, seq DESC LIMIT 1"
        )
        return events[0] if events else None

    def events_for_part(self, part_id: str) -> List[ScanEvent]:
        return self._select("WHERE part_id = ?", (part_id,), "ORDER BY scanned_at, seq")

    def events_for_order(self, order_id: str) -> List[ScanEvent]:
        return self._select(
            "WHERE order_id = ?", (order_id,), "ORDER BY part_id, scanned_at, seq"
        )

    def latest_per_part(self) -> List[ScanEvent]:
        return self._select(
            f"WHERE seq = (SELECT latest.seq FROM {self._table} AS latest "
            f"WHERE latest.part_id = {self._table}.part_id "
            "ORDER BY latest.scanned_at DESC, latest.seq DESC LIMIT 1)",
            (),
            "ORDER BY scanned_at",
        )


class ShopFloorDatabase:
    """Convenience facade bundling the SQLite stores for all aggregates."""

    def __init__(self, path: str) -> None:
        connection = sqlite3.connect(path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        self._connection = connection
        self._lock = threading.RLock()
        self.orders = SQLiteRepository[ProductionOrder](connection, "orders", self._lock)
        self.batches = SQLiteRepository[Batch](connection, "batches", self._lock)
        self.scan_events = SQLiteScanLog(connection, "scan_events", self._lock)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        with self._lock:
            self._connection.close()

    def __enter__(self) -> "ShopFloorDatabase":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[BaseException],
    ) -> None:
        self.close()


__all__ = ["SQLiteRepository", "SQLiteScanLog", "ShopFloorDatabase"]
