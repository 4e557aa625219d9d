"""Order status derivation from per-part ledger state."""

from __future__ import annotations

from typing import Iterable, Optional

from .domain import COMPLETED_ORDER_STATUS, PENDING_ORDER_STATUS, ProductionOrder, Station
from .ledger import PartTrackingLedger

UNSTARTED_ORDINAL = -1


class OrderStatusAggregator:
    """Computes one status per order using a "slowest part wins" rule.

    An order is only as far along as its least advanced part. Unstarted parts
    count as sitting before the first station, so a single unscanned part
    keeps the whole order Pending. Nothing is stored: every call reads the
    ledger, which makes repeated calls return the same result until the next
    scan.
    """

    def __init__(self, ledger: PartTrackingLedger) -> None:
        self.ledger = ledger

    @property
    def registry(self):
        return self.ledger.registry

    def _ordinal(self, part_id: str) -> int:
        station = self.ledger.current_station_of(part_id)
        return UNSTARTED_ORDINAL if station is None else station.ordinal

    def minimum_ordinal(self, part_ids: Iterable[str]) -> Optional[int]:
        ordinals = [self._ordinal(part_id) for part_id in part_ids]
        if not ordinals:
            return None
        return min(ordinals)

    def minimum_station(self, part_ids: Iterable[str]) -> Optional[Station]:
        """Return the least advanced station, or ``None`` if any part is unstarted."""

        lowest = self.minimum_ordinal(part_ids)
        if lowest is None or lowest == UNSTARTED_ORDINAL:
            return None
        for station in self.registry.stations():
            if station.ordinal == lowest:
                return station
        return None

    def status_for_parts(self, part_ids: Iterable[str]) -> str:
        station = self.minimum_station(part_ids)
        if station is None:
            return PENDING_ORDER_STATUS
        if self.registry.is_terminal(station):
            return COMPLETED_ORDER_STATUS
        return station.status_label

    def order_status(self, order: ProductionOrder) -> str:
        return self.status_for_parts(order.part_ids)

    def is_completed(self, order: ProductionOrder) -> bool:
        return self.order_status(order) == COMPLETED_ORDER_STATUS

    def completed_part_count(self, order: ProductionOrder) -> int:
        terminal = self.registry.terminal.ordinal
        return sum(1 for part_id in order.part_ids if self._ordinal(part_id) == terminal)


__all__ = ["OrderStatusAggregator", "UNSTARTED_ORDINAL"]
