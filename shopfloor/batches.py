"""Batch lifecycle management for multi-order production runs."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from .aggregator import OrderStatusAggregator
from .directory import OrderDirectory
from .domain import (
    PENDING_ORDER_STATUS,
    Batch,
    BatchOrder,
    BatchStatus,
    ProductionOrder,
    utcnow,
)
from .errors import (
    EmptyBatch,
    InvalidBatchTransition,
    OrderAlreadyBatched,
    PartialBatchStartFailure,
)
from .ledger import PartTrackingLedger
from .repository import InMemoryRepository, RecordNotFoundError

logger = logging.getLogger(__name__)

BATCH_SCANNER_ID = "batch-system"
BATCH_SCANNER_NAME = "Batch Processing"


class BatchManager:
    """Groups orders into batches and tracks them through the pipeline.

    Batch records keep a snapshot of their orders for display. Progress and
    completion are always derived from the ledger through the aggregator; the
    stored ``progress`` is only the last computed value. Once an order has
    been seen at the terminal station it keeps counting toward progress, so
    progress never goes down for a batch. Completion itself is decided on the
    live status of every member order, so a reworked order holds the batch
    open even when progress already shows 100.
    """

    def __init__(
        self,
        ledger: PartTrackingLedger,
        aggregator: OrderStatusAggregator,
        directory: OrderDirectory,
        batch_repo: Optional[InMemoryRepository[Batch]] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.ledger = ledger
        self.aggregator = aggregator
        self.directory = directory
        self.batches = batch_repo if batch_repo is not None else InMemoryRepository()
        self._clock = clock
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, batch_id: str) -> Batch:
        return self.batches.get(batch_id)

    def list_batches(self) -> List[Batch]:
        return sorted(self.batches.list(), key=lambda batch: batch.created_at, reverse=True)

    def active_order_ids(self) -> Dict[str, str]:
        """Map each order in a non-completed batch to that batch's id."""

        assigned: Dict[str, str] = {}
        for batch in self.batches.list():
            if batch.is_active:
                for order_id in batch.order_ids:
                    assigned[order_id] = batch.id
        return assigned

    def batch_candidates(self) -> List[ProductionOrder]:
        assigned = self.active_order_ids()
        return [order for order in self.directory.pending_orders() if order.id not in assigned]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def create_batch(self, order_ids: Sequence[str], name: Optional[str] = None) -> Batch:
        requested = list(dict.fromkeys(order_ids))
        if not requested:
            raise EmptyBatch()
        orders = [self.directory.get(order_id) for order_id in requested]
        with self._lock:
            assigned = self.active_order_ids()
            batched = [order.id for order in orders if order.id in assigned]
            started = [
                order.id
                for order in orders
                if order.id not in assigned
                and self.aggregator.order_status(order) != PENDING_ORDER_STATUS
            ]
            skipped = tuple(batched + started)
            accepted = [order for order in orders if order.id not in skipped]
            if not accepted:
                if batched:
                    raise OrderAlreadyBatched(batched)
                raise EmptyBatch("No pending orders to batch: " + ", ".join(started))
            now = self._clock()
            batch = Batch(
                id=f"BATCH-{uuid4().hex[:12].upper()}",
                name=(name or "").strip()
                or f"Batch {now:%Y-%m-%d} - {len(accepted)} orders",
                orders=[
                    BatchOrder(
                        order_id=order.id,
                        order_number=order.order_number,
                        customer_name=order.customer_name,
                        panel_count=order.panel_count,
                    )
                    for order in accepted
                ],
                created_at=now,
                skipped_order_ids=skipped,
            )
            self.batches.add(batch.id, batch)
        if batched:
            logger.warning(
                "Batch %s skipped orders already in an active batch: %s",
                batch.id,
                ", ".join(batched),
            )
        if started:
            logger.warning(
                "Batch %s skipped orders already in production: %s",
                batch.id,
                ", ".join(started),
            )
        logger.info("Created batch %s (%s) with %d orders", batch.id, batch.name, len(accepted))
        return batch

    def start_batch(self, batch_id: str, order_ids: Optional[Sequence[str]] = None) -> Batch:
        """Move a batch into Processing and send its orders to the first station.

        Only unstarted parts are scanned, so resuming a paused batch or
        retrying failed orders never moves a part backward. Passing
        ``order_ids`` restricts the run to those member orders, which is how a
        caller retries after :class:`PartialBatchStartFailure`.
        """

        with self._lock:
            batch = self.get(batch_id)
            retry = order_ids is not None and batch.status is BatchStatus.PROCESSING
            if batch.status not in {BatchStatus.PENDING, BatchStatus.PAUSED} and not retry:
                raise InvalidBatchTransition(batch.id, batch.status.value, "start")
            if order_ids is not None:
                unknown = [order_id for order_id in order_ids if order_id not in batch.order_ids]
                if unknown:
                    raise ValueError(
                        f"Orders not in batch {batch.id!r}: " + ", ".join(unknown)
                    )
                targets = list(dict.fromkeys(order_ids))
            else:
                targets = batch.order_ids
            batch.status = BatchStatus.PROCESSING
            if batch.started_at is None:
                batch.started_at = self._clock()
            self.batches.upsert(batch.id, batch)
        logger.info("Starting batch %s with %d orders", batch.id, len(targets))

        failures: Dict[str, str] = {}
        for order_id in targets:
            try:
                self._send_order_to_floor(batch, order_id)
            except Exception as exc:
                logger.error("Batch %s: could not start order %s: %s", batch.id, order_id, exc)
                failures[order_id] = str(exc) or exc.__class__.__name__
        if failures:
            raise PartialBatchStartFailure(batch.id, failures)
        return self.get(batch.id)

    def _send_order_to_floor(self, batch: Batch, order_id: str) -> None:
        order = self.directory.get(order_id)
        first = self.ledger.registry.first
        for part_id in order.part_ids:
            if self.ledger.current_station_of(part_id) is not None:
                continue
            self.ledger.record_scan(
                part_id,
                order.id,
                first,
                BATCH_SCANNER_ID,
                notes=f"Batch {batch.name} started - sent to production floor",
                scanned_by_name=BATCH_SCANNER_NAME,
            )
        self.directory.refresh_lifecycle_status(order.id, self.aggregator.order_status)

    def pause_batch(self, batch_id: str) -> Batch:
        with self._lock:
            batch = self.get(batch_id)
            if batch.status is not BatchStatus.PROCESSING:
                raise InvalidBatchTransition(batch.id, batch.status.value, "pause")
            batch.status = BatchStatus.PAUSED
            self.batches.upsert(batch.id, batch)
        logger.info("Paused batch %s", batch.id)
        return batch

    def check_completion(self, batch_id: str) -> Batch:
        with self._lock:
            batch = self.get(batch_id)
            if batch.status is BatchStatus.COMPLETED:
                return batch
            completed_panels = 0
            all_terminal = bool(batch.orders)
            for member in batch.orders:
                try:
                    order = self.directory.get(member.order_id)
                except RecordNotFoundError:
                    logger.warning(
                        "Batch %s references missing order %s", batch.id, member.order_id
                    )
                    all_terminal = False
                    continue
                if self.aggregator.is_completed(order):
                    batch.terminal_order_ids.add(order.id)
                else:
                    all_terminal = False
                completed_panels += self.aggregator.completed_part_count(order)
            total = len(batch.orders)
            progress = round(len(batch.terminal_order_ids) * 100 / total) if total else 0
            batch.progress = max(batch.progress, progress)
            batch.completed_panels = completed_panels
            if all_terminal and batch.status is BatchStatus.PROCESSING:
                self._mark_completed(batch)
                logger.info("Batch %s completed: all orders reached the terminal station", batch.id)
            self.batches.upsert(batch.id, batch)
        return batch

    def check_active_batches(self) -> List[Batch]:
        """Re-evaluate every Processing batch; returns the ones that completed."""

        finished = []
        for batch in self.batches.list():
            if batch.status is not BatchStatus.PROCESSING:
                continue
            checked = self.check_completion(batch.id)
            if checked.status is BatchStatus.COMPLETED:
                finished.append(checked)
        return finished

    def complete_batch(self, batch_id: str) -> Batch:
        with self._lock:
            batch = self.get(batch_id)
            self._mark_completed(batch)
            self.batches.upsert(batch.id, batch)
        logger.info("Batch %s completed manually", batch.id)
        return batch

    def _mark_completed(self, batch: Batch) -> None:
        batch.status = BatchStatus.COMPLETED
        batch.progress = 100
        if batch.completed_at is None:
            batch.completed_at = self._clock()

    def delete_batch(self, batch_id: str) -> None:
        with self._lock:
            self.batches.remove(batch_id)
        logger.info("Deleted batch %s", batch_id)


__all__ = ["BatchManager", "BATCH_SCANNER_ID", "BATCH_SCANNER_NAME"]
