from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from shopfloor import ShopFloorService, StationRegistry


class FixedClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 4, 7, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def registry() -> StationRegistry:
    return StationRegistry.default()


@pytest.fixture
def service(registry, clock) -> ShopFloorService:
    return ShopFloorService(registry, clock=clock)


@pytest.fixture
def two_orders(service):
    first = service.send_to_production("ORD-001", "Keukenstudio Jansen", ["P1", "P2"])
    second = service.send_to_production("ORD-002", "Bakker Interiors", ["P3", "P4", "P5"])
    return first, second


def finish_order(service, order, scanned_by="operator"):
    for part_id in order.part_ids:
        service.record_scan(part_id, "complete", scanned_by)
