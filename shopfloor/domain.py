"""Core data structures for shop-floor part tracking."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Set, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BatchStatus(str, Enum):
    """Lifecycle stages for a production batch."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    PAUSED = "Paused"
    COMPLETED = "Completed"

    @property
    def is_active(self) -> bool:
        return self is not BatchStatus.COMPLETED


PENDING_ORDER_STATUS = "Pending"
COMPLETED_ORDER_STATUS = "Completed"
# Lifecycle values the order directory treats as "not yet in production".
PRE_PRODUCTION_STATUSES = frozenset({PENDING_ORDER_STATUS, "Draft"})


@dataclass(frozen=True, slots=True)
class Station:
    """A fixed point in the physical production pipeline."""

    code: str
    name: str
    ordinal: int
    status_label: str


@dataclass(frozen=True, slots=True)
class ScanEvent:
    """Immutable record that a part was seen at a station."""

    id: str
    part_id: str
    order_id: Optional[str]
    station: str
    scanned_by: str
    timestamp: datetime
    notes: Optional[str] = None
    previous_station: Optional[str] = None
    part_name: str = ""
    scanned_by_name: str = ""
    barcode: str = ""


@dataclass(slots=True)
class PartProgress:
    """Derived view of one part's position in the pipeline."""

    part_id: str
    current_station: Optional[Station]
    last_scan: Optional[datetime] = None
    history: List[ScanEvent] = field(default_factory=list)

    @property
    def is_started(self) -> bool:
        return self.current_station is not None


@dataclass(slots=True)
class ProductionOrder:
    """An order handed to the shop floor with a fixed set of parts."""

    id: str
    order_number: str
    customer_name: str
    part_ids: Tuple[str, ...]
    lifecycle_status: str = PENDING_ORDER_STATUS
    sent_to_production_at: datetime = field(default_factory=utcnow)

    @property
    def panel_count(self) -> int:
        return len(self.part_ids)


@dataclass(frozen=True, slots=True)
class BatchOrder:
    """Snapshot of an order taken when it was added to a batch."""

    order_id: str
    order_number: str
    customer_name: str
    panel_count: int


@dataclass(slots=True)
class Batch:
    """Operator-defined group of orders processed together."""

    id: str
    name: str
    orders: List[BatchOrder]
    status: BatchStatus = BatchStatus.PENDING
    progress: int = 0
    completed_panels: int = 0
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    terminal_order_ids: Set[str] = field(default_factory=set)
    skipped_order_ids: Tuple[str, ...] = tuple()

    @property
    def order_ids(self) -> List[str]:
        return [order.order_id for order in self.orders]

    @property
    def total_panels(self) -> int:
        return sum(order.panel_count for order in self.orders)

    @property
    def is_active(self) -> bool:
        return self.status.is_active


__all__ = [
    "BatchStatus",
    "Station",
    "ScanEvent",
    "PartProgress",
    "ProductionOrder",
    "BatchOrder",
    "Batch",
    "PENDING_ORDER_STATUS",
    "COMPLETED_ORDER_STATUS",
    "PRE_PRODUCTION_STATUSES",
    "utcnow",
]
