"""Production part tracking for a woodworking shop.

This package records station scans for individual cabinet parts, derives
order status with a "slowest part wins" rule, and manages batches of orders
sent through the pipeline together.
"""

from .aggregator import OrderStatusAggregator
from .batches import BatchManager
from .directory import OrderDirectory
from .domain import (
    Batch,
    BatchOrder,
    BatchStatus,
    PartProgress,
    ProductionOrder,
    ScanEvent,
    Station,
)
from .errors import (
    EmptyBatch,
    InvalidBatchTransition,
    InvalidStation,
    OrderAlreadyBatched,
    PartialBatchStartFailure,
    ShopFloorError,
    UnknownOrder,
    UnknownPart,
)
from .ledger import PartTrackingLedger
from .services import ShopFloorService
from .stations import StationRegistry

__all__ = [
    "Batch",
    "BatchOrder",
    "BatchStatus",
    "PartProgress",
    "ProductionOrder",
    "ScanEvent",
    "Station",
    "StationRegistry",
    "PartTrackingLedger",
    "OrderStatusAggregator",
    "OrderDirectory",
    "BatchManager",
    "ShopFloorService",
    "ShopFloorError",
    "InvalidStation",
    "EmptyBatch",
    "OrderAlreadyBatched",
    "PartialBatchStartFailure",
    "InvalidBatchTransition",
    "UnknownOrder",
    "UnknownPart",
]
