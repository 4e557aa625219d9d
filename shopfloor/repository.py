"""Simple in-memory repositories used by the tracking service layer."""

from __future__ import annotations

import threading
from typing import Dict, Generic, Iterator, List, MutableMapping, Optional, TypeVar

from .domain import ScanEvent

T = TypeVar("T")


class RepositoryError(RuntimeError):
    """Base exception for repository errors."""


class DuplicateRecordError(RepositoryError):
    """Raised when attempting to insert a record that already exists."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record is missing."""


class InMemoryRepository(Generic[T]):
    """Generic repository backed by a simple dictionary."""

    def __init__(self) -> None:
        self._items: MutableMapping[str, T] = {}

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item_id: str, item: T) -> None:
        if item_id in self._items:
            raise DuplicateRecordError(f"Record with id {item_id!r} already exists")
        self._items[item_id] = item

    def upsert(self, item_id: str, item: T) -> None:
        self._items[item_id] = item

    def get(self, item_id: str) -> T:
        try:
            return self._items[item_id]
        except KeyError as exc:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found") from exc

    def remove(self, item_id: str) -> None:
        if item_id not in self._items:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")
        del self._items[item_id]

    def list(self) -> List[T]:
        return list(self._items.values())

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())


class InMemoryScanLog:
    """Append-only scan event log keyed by part id.

    Events for a part are kept in append order, which is also timestamp order
    because the ledger assigns monotonic timestamps per part.
    """

    def __init__(self) -> None:
        self._by_part: Dict[str, List[ScanEvent]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(events) for events in self._by_part.values())

    def append(self, event: ScanEvent) -> None:
        with self._lock:
            self._by_part.setdefault(event.part_id, []).append(event)

    def latest_for_part(self, part_id: str) -> Optional[ScanEvent]:
        with self._lock:
            events = self._by_part.get(part_id)
            if not events:
                return None
            return max(events, key=lambda event: event.timestamp)

    def events_for_part(self, part_id: str) -> List[ScanEvent]:
        with self._lock:
            events = list(self._by_part.get(part_id, ()))
        events.sort(key=lambda event: event.timestamp)
        return events

    def events_for_order(self, order_id: str) -> List[ScanEvent]:
        with self._lock:
            events = [
                event
                for part_events in self._by_part.values()
                for event in part_events
                if event.order_id == order_id
            ]
        events.sort(key=lambda event: (event.part_id, event.timestamp))
        return events

    def latest_per_part(self) -> List[ScanEvent]:
        with self._lock:
            snapshot = [list(events) for events in self._by_part.values() if events]
        return [max(events, key=lambda event: event.timestamp) for events in snapshot]


__all__ = [
    "InMemoryRepository",
    "InMemoryScanLog",
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
]
