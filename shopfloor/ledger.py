"""Append-only part tracking ledger."""

from __future__ import annotations

import logging
import threading
import weakref
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol
from uuid import uuid4

from .domain import PartProgress, ScanEvent, Station, utcnow
from .stations import StationRef, StationRegistry

logger = logging.getLogger(__name__)

CLOCK_TICK = timedelta(microseconds=1)


class ScanLog(Protocol):
    """Storage contract shared by the in-memory and SQLite scan logs."""

    def append(self, event: ScanEvent) -> None: ...

    def latest_for_part(self, part_id: str) -> Optional[ScanEvent]: ...

    def events_for_part(self, part_id: str) -> List[ScanEvent]: ...

    def events_for_order(self, order_id: str) -> List[ScanEvent]: ...

    def latest_per_part(self) -> List[ScanEvent]: ...


class _PartLocks:
    """Lazily created mutex per part id.

    Entries live only while some caller holds a reference to the lock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def __call__(self, part_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(part_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[part_id] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)


class PartTrackingLedger:
    """Records scans and answers where each part currently is.

    The current station of a part is the station of its scan with the latest
    timestamp. Timestamps are assigned here and are strictly increasing per
    part, and writes for one part are serialized, so "latest" is always well
    defined. Scans for different parts do not block each other.
    """

    def __init__(
        self,
        registry: StationRegistry,
        scan_log: ScanLog,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.registry = registry
        self._log = scan_log
        self._clock = clock
        self._part_locks = _PartLocks()

    def record_scan(
        self,
        part_id: str,
        order_id: Optional[str],
        station: StationRef,
        scanned_by: str,
        notes: Optional[str] = None,
        *,
        part_name: str = "",
        scanned_by_name: str = "",
        barcode: str = "",
    ) -> ScanEvent:
        target = self.registry.get(station)
        if not part_id:
            raise ValueError("A scan needs a part id")
        with self._part_locks(part_id):
            previous = self._log.latest_for_part(part_id)
            timestamp = self._clock()
            if previous is not None and timestamp <= previous.timestamp:
                timestamp = previous.timestamp + CLOCK_TICK
            event = ScanEvent(
                id=str(uuid4()),
                part_id=part_id,
                order_id=order_id,
                station=target.code,
                scanned_by=scanned_by or "system",
                timestamp=timestamp,
                notes=notes,
                previous_station=previous.station if previous else None,
                part_name=part_name or (previous.part_name if previous else ""),
                scanned_by_name=scanned_by_name,
                barcode=barcode,
            )
            self._log.append(event)
        if previous is not None and self.registry.ordinal_of(previous.station) > target.ordinal:
            logger.info(
                "Rework: part %s moved back from %s to %s", part_id, previous.station, target.code
            )
        else:
            logger.debug("Part %s scanned at %s by %s", part_id, target.code, event.scanned_by)
        return event

    def current_station_of(self, part_id: str) -> Optional[Station]:
        """Return the part's current station, or ``None`` if it was never scanned."""

        latest = self._log.latest_for_part(part_id)
        if latest is None:
            return None
        return self.registry.get(latest.station)

    def history_of(self, part_id: str) -> List[ScanEvent]:
        return self._log.events_for_part(part_id)

    def progress_of(self, part_id: str) -> PartProgress:
        history = self.history_of(part_id)
        if not history:
            return PartProgress(part_id=part_id, current_station=None)
        latest = history[-1]
        return PartProgress(
            part_id=part_id,
            current_station=self.registry.get(latest.station),
            last_scan=latest.timestamp,
            history=history,
        )

    def parts_at_station(self, station: StationRef) -> List[ScanEvent]:
        target = self.registry.get(station)
        latest = [event for event in self._log.latest_per_part() if event.station == target.code]
        latest.sort(key=lambda event: event.timestamp)
        return latest

    def order_tracking(self, order_id: str) -> List[PartProgress]:
        grouped: Dict[str, List[ScanEvent]] = defaultdict(list)
        for event in self._log.events_for_order(order_id):
            grouped[event.part_id].append(event)
        summary = []
        for part_id, events in grouped.items():
            events.sort(key=lambda event: event.timestamp)
            # current station spans the part's full history
            progress = self.progress_of(part_id)
            progress.history = events
            summary.append(progress)
        summary.sort(key=lambda progress: progress.part_id)
        return summary


__all__ = ["PartTrackingLedger", "ScanLog", "CLOCK_TICK"]
