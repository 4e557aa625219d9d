from shopfloor import OrderStatusAggregator, ProductionOrder


def test_order_without_scans_is_pending(service, two_orders):
    first, _ = two_orders
    assert service.order_status(first.id) == "Pending"


def test_order_with_no_parts_is_pending(service):
    empty = ProductionOrder(id="O-EMPTY", order_number="X", customer_name="", part_ids=())
    assert service.aggregator.order_status(empty) == "Pending"
    assert service.aggregator.minimum_station(()) is None


def test_one_unstarted_part_keeps_order_pending(service, two_orders):
    first, _ = two_orders
    service.record_scan("P1", "cnc", "op-1")
    assert service.order_status(first.id) == "Pending"


def test_slowest_part_sets_status(service, two_orders, clock):
    # Scenario A
    first, _ = two_orders
    service.record_scan("P1", "wallsaw", "op-1")
    service.record_scan("P2", "wallsaw", "op-1")
    clock.advance()
    service.record_scan("P1", "cnc", "op-2")
    assert service.order_status(first.id) == "Cutting"

    # Scenario B
    service.record_scan("P2", "cnc", "op-2")
    assert service.order_status(first.id) == "Drilling"


def test_status_is_idempotent(service, two_orders):
    first, _ = two_orders
    service.record_scan("P1", "banding", "op-1")
    service.record_scan("P2", "packaging", "op-1")
    results = {service.order_status(first.id) for _ in range(5)}
    assert results == {"Edge Banding"}


def test_completed_only_when_every_part_is_terminal(service, two_orders):
    first, _ = two_orders
    service.record_scan("P1", "complete", "op-1")
    assert service.order_status(first.id) == "Pending"
    service.record_scan("P2", "packaging", "op-1")
    assert service.order_status(first.id) == "Assembly"
    service.record_scan("P2", "complete", "op-1")
    assert service.order_status(first.id) == "Completed"
    assert service.aggregator.is_completed(first)
    assert service.aggregator.completed_part_count(first) == 2


def test_rework_regresses_completed_order(service, two_orders, clock):
    # Scenario E
    _, second = two_orders
    for part_id in second.part_ids:
        service.record_scan(part_id, "packaging", "op-1")
        service.record_scan(part_id, "complete", "op-1")
    assert service.order_status(second.id) == "Completed"
    clock.advance()
    service.record_scan("P3", "cnc", "qc", notes="rework")
    assert service.current_station_of("P3").code == "cnc"
    assert service.order_status(second.id) == "Drilling"
    assert service.directory.get(second.id).lifecycle_status == "Drilling"


def test_out_of_order_scans_are_tolerated(service, two_orders):
    first, _ = two_orders
    service.record_scan("P1", "packaging", "op-1")
    service.record_scan("P1", "wallsaw", "op-1")
    service.record_scan("P2", "banding", "op-1")
    assert service.order_status(first.id) == "Cutting"


def test_aggregator_reads_ledger_directly(service):
    aggregator = OrderStatusAggregator(service.ledger)
    service.ledger.record_scan("X1", None, "cnc", "op-1")
    service.ledger.record_scan("X2", None, "banding", "op-1")
    assert aggregator.status_for_parts(["X1", "X2"]) == "Drilling"
    assert aggregator.minimum_station(["X1", "X2"]).code == "cnc"
