"""Service layer that wires the tracking core together."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from .aggregator import OrderStatusAggregator
from .batches import BatchManager
from .directory import OrderDirectory
from .domain import Batch, PartProgress, ProductionOrder, ScanEvent, utcnow
from .ledger import PartTrackingLedger, ScanLog
from .repository import InMemoryRepository, InMemoryScanLog
from .stations import StationRef, StationRegistry


@dataclass(slots=True)
class OrderSummary:
    """An order together with its live derived status."""

    order: ProductionOrder
    status: str
    completed_parts: int
    batch_id: Optional[str] = None


class ShopFloorService:
    """Facade that exposes the production tracking use-cases to clients.

    A scan flows through the ledger, then the aggregator recomputes the
    owning order's status, the directory's lifecycle field is refreshed, and
    any active batch holding the order is re-checked.
    """

    def __init__(
        self,
        registry: Optional[StationRegistry] = None,
        *,
        scan_log: Optional[ScanLog] = None,
        order_repo: Optional[InMemoryRepository[ProductionOrder]] = None,
        batch_repo: Optional[InMemoryRepository[Batch]] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.registry = registry or StationRegistry.default()
        self.ledger = PartTrackingLedger(
            self.registry,
            scan_log if scan_log is not None else InMemoryScanLog(),
            clock=clock,
        )
        self.aggregator = OrderStatusAggregator(self.ledger)
        self.directory = OrderDirectory(order_repo)
        self.batches = BatchManager(
            self.ledger, self.aggregator, self.directory, batch_repo, clock=clock
        )

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    def send_to_production(
        self,
        order_number: str,
        customer_name: str,
        part_ids: Sequence[str],
        *,
        order_id: Optional[str] = None,
    ) -> ProductionOrder:
        return self.directory.send_to_production(
            order_number, customer_name, part_ids, order_id=order_id
        )

    def order_status(self, order_id: str) -> str:
        return self.aggregator.order_status(self.directory.get(order_id))

    def order_summary(self, order_id: str) -> OrderSummary:
        order = self.directory.get(order_id)
        return OrderSummary(
            order=order,
            status=self.aggregator.order_status(order),
            completed_parts=self.aggregator.completed_part_count(order),
            batch_id=self.batches.active_order_ids().get(order.id),
        )

    def list_order_summaries(self) -> List[OrderSummary]:
        assigned = self.batches.active_order_ids()
        return [
            OrderSummary(
                order=order,
                status=self.aggregator.order_status(order),
                completed_parts=self.aggregator.completed_part_count(order),
                batch_id=assigned.get(order.id),
            )
            for order in self.directory.list_orders()
        ]

    def order_tracking(self, order_id: str) -> List[PartProgress]:
        order = self.directory.get(order_id)
        return [self.ledger.progress_of(part_id) for part_id in order.part_ids]

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------
    def record_scan(
        self,
        part_id: str,
        station: StationRef,
        scanned_by: str,
        *,
        order_id: Optional[str] = None,
        notes: Optional[str] = None,
        part_name: str = "",
        scanned_by_name: str = "",
        barcode: str = "",
    ) -> ScanEvent:
        self.registry.get(station)
        order = self.directory.resolve_part(part_id, order_id)
        event = self.ledger.record_scan(
            part_id,
            order.id,
            station,
            scanned_by,
            notes,
            part_name=part_name,
            scanned_by_name=scanned_by_name,
            barcode=barcode or part_id,
        )
        self.refresh_order(order.id)
        return event

    def refresh_order(self, order_id: str) -> str:
        """Recompute an order's status and push it to the directory and its batch."""

        order = self.directory.refresh_lifecycle_status(order_id, self.aggregator.order_status)
        batch_id = self.batches.active_order_ids().get(order.id)
        if batch_id is not None:
            self.batches.check_completion(batch_id)
        return order.lifecycle_status

    def current_station_of(self, part_id: str):
        return self.ledger.current_station_of(part_id)

    def history_of(self, part_id: str) -> List[ScanEvent]:
        return self.ledger.history_of(part_id)

    def part_progress(self, part_id: str) -> PartProgress:
        self.directory.order_for_part(part_id)
        return self.ledger.progress_of(part_id)

    def parts_at_station(self, station: StationRef) -> List[ScanEvent]:
        return self.ledger.parts_at_station(station)


__all__ = ["ShopFloorService", "OrderSummary"]
