"""Exception taxonomy for the production tracking core."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Tuple

from .repository import RecordNotFoundError


class ShopFloorError(Exception):
    """Base exception for errors raised by the tracking core."""


class InvalidStation(ShopFloorError, ValueError):
    """Raised when a station name is not part of the configured pipeline."""

    def __init__(self, station: object) -> None:
        super().__init__(f"Unknown station {station!r}")
        self.station = station


class UnknownOrder(ShopFloorError, RecordNotFoundError):
    """Raised when an order id is not known to the order directory."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id!r} not found")
        self.order_id = order_id


class UnknownPart(ShopFloorError, RecordNotFoundError):
    """Raised when a part id does not belong to any known order."""

    def __init__(self, part_id: str, order_id: Optional[str] = None) -> None:
        if order_id is None:
            message = f"Part {part_id!r} not found"
        else:
            message = f"Part {part_id!r} does not belong to order {order_id!r}"
        super().__init__(message)
        self.part_id = part_id
        self.order_id = order_id


class EmptyBatch(ShopFloorError, ValueError):
    """Raised when a batch would be created without any orders."""

    def __init__(self, message: str = "A batch must contain at least one order") -> None:
        super().__init__(message)


class OrderAlreadyBatched(EmptyBatch):
    """Raised when every requested order already belongs to an active batch."""

    def __init__(self, order_ids: Iterable[str]) -> None:
        self.order_ids: Tuple[str, ...] = tuple(order_ids)
        joined = ", ".join(self.order_ids)
        super().__init__(f"Orders already assigned to an active batch: {joined}")


class InvalidBatchTransition(ShopFloorError):
    """Raised when a batch control action does not fit the current status."""

    def __init__(self, batch_id: str, current: str, action: str) -> None:
        super().__init__(f"Cannot {action} batch {batch_id!r} while it is {current}")
        self.batch_id = batch_id
        self.current = current
        self.action = action


class PartialBatchStartFailure(ShopFloorError):
    """Raised when some member orders did not receive their initial scan.

    The batch stays in Processing. ``failures`` maps each failed order id to
    the reason so the caller can retry only those orders.
    """

    def __init__(self, batch_id: str, failures: Mapping[str, str]) -> None:
        self.batch_id = batch_id
        self.failures = dict(failures)
        super().__init__(
            f"Batch {batch_id!r} started with {len(self.failures)} failed order(s): "
            + ", ".join(sorted(self.failures))
        )

    @property
    def failed_order_ids(self) -> Tuple[str, ...]:
        return tuple(self.failures)


__all__ = [
    "ShopFloorError",
    "InvalidStation",
    "UnknownOrder",
    "UnknownPart",
    "EmptyBatch",
    "OrderAlreadyBatched",
    "InvalidBatchTransition",
    "PartialBatchStartFailure",
]
