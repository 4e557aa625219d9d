"""Order and part directory for orders sent to production."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from .domain import PRE_PRODUCTION_STATUSES, ProductionOrder
from .errors import UnknownOrder, UnknownPart
from .repository import DuplicateRecordError, InMemoryRepository, RecordNotFoundError

logger = logging.getLogger(__name__)


class OrderDirectory:
    """Owns order records and answers which order a part belongs to.

    Part sets are fixed when an order is sent to production. The
    ``lifecycle_status`` field is a human-readable copy of the derived order
    status, refreshed by the service after scans.
    """

    def __init__(self, order_repo: Optional[InMemoryRepository[ProductionOrder]] = None) -> None:
        self.orders = order_repo if order_repo is not None else InMemoryRepository()
        self._part_index: Dict[str, str] = {}
        self._lock = threading.Lock()
        for order in self.orders.list():
            for part_id in order.part_ids:
                self._part_index[part_id] = order.id

    def send_to_production(
        self,
        order_number: str,
        customer_name: str,
        part_ids: Sequence[str],
        *,
        order_id: Optional[str] = None,
    ) -> ProductionOrder:
        parts = tuple(dict.fromkeys(part_id for part_id in part_ids if part_id))
        if not parts:
            raise ValueError("An order sent to production must contain at least one part")
        with self._lock:
            taken = [part_id for part_id in parts if part_id in self._part_index]
            if taken:
                raise DuplicateRecordError(
                    "Parts already belong to another order: " + ", ".join(taken)
                )
            order = ProductionOrder(
                id=order_id or str(uuid4()),
                order_number=order_number,
                customer_name=customer_name,
                part_ids=parts,
            )
            self.orders.add(order.id, order)
            for part_id in parts:
                self._part_index[part_id] = order.id
        logger.info("Order %s sent to production with %d parts", order.order_number, len(parts))
        return order

    def get(self, order_id: str) -> ProductionOrder:
        try:
            return self.orders.get(order_id)
        except RecordNotFoundError:
            raise UnknownOrder(order_id) from None

    def __contains__(self, order_id: object) -> bool:
        return order_id in self.orders

    def list_orders(self) -> List[ProductionOrder]:
        return sorted(self.orders.list(), key=lambda order: order.sent_to_production_at)

    def order_for_part(self, part_id: str) -> ProductionOrder:
        order_id = self._part_index.get(part_id)
        if order_id is None:
            raise UnknownPart(part_id)
        return self.get(order_id)

    def resolve_part(self, part_id: str, order_id: Optional[str] = None) -> ProductionOrder:
        """Return the order owning ``part_id``, checking it against ``order_id`` if given."""

        if order_id is None:
            return self.order_for_part(part_id)
        order = self.get(order_id)
        if part_id not in order.part_ids:
            raise UnknownPart(part_id, order_id)
        return order

    def update_lifecycle_status(self, order_id: str, status: str) -> ProductionOrder:
        with self._lock:
            return self._set_lifecycle_status(self.get(order_id), status)

    def refresh_lifecycle_status(
        self, order_id: str, derive: Callable[[ProductionOrder], str]
    ) -> ProductionOrder:
        """Derive the order's status and store it while holding the directory lock.

        Concurrent refreshes of one order are applied in the order they derive
        their status, so the last write always reflects the newest ledger state.
        """

        with self._lock:
            order = self.get(order_id)
            return self._set_lifecycle_status(order, derive(order))

    def _set_lifecycle_status(self, order: ProductionOrder, status: str) -> ProductionOrder:
        if order.lifecycle_status != status:
            logger.info(
                "Order %s status %s -> %s", order.order_number, order.lifecycle_status, status
            )
            order.lifecycle_status = status
            self.orders.upsert(order.id, order)
        return order

    def pending_orders(self) -> List[ProductionOrder]:
        return [
            order
            for order in self.list_orders()
            if order.lifecycle_status in PRE_PRODUCTION_STATUSES
        ]


__all__ = ["OrderDirectory"]
