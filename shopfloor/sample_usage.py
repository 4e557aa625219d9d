"""Demonstration script for the shop-floor production tracking service."""

from __future__ import annotations

from pprint import pprint

from . import PartialBatchStartFailure, ShopFloorService


def main() -> None:
    shop = ShopFloorService()

    # Orders handed over from the design department
    kitchen = shop.send_to_production(
        "ORD-2024-101",
        "Keukenstudio Jansen",
        ["K101-SIDE-L", "K101-SIDE-R", "K101-TOP", "K101-BOTTOM"],
    )
    wardrobe = shop.send_to_production(
        "ORD-2024-102",
        "Interieurbouw de Graaf",
        ["W102-DOOR-1", "W102-DOOR-2", "W102-SHELF"],
    )

    print("Batch candidates")
    for order in shop.batches.batch_candidates():
        print(f" - {order.order_number} ({order.customer_name}): {order.panel_count} panels")

    batch = shop.batches.create_batch([kitchen.id, wardrobe.id], name="Week 42 run")
    try:
        batch = shop.batches.start_batch(batch.id)
    except PartialBatchStartFailure as failure:
        print(f"Some orders did not start: {failure.failures}")

    print(f"\n{batch.name}: {batch.status.value}, {batch.total_panels} panels")
    for order in (kitchen, wardrobe):
        print(f" - {order.order_number}: {shop.order_status(order.id)}")

    # Shop floor scans. One kitchen panel lags behind at the wall saw.
    for part_id in kitchen.part_ids[1:]:
        shop.record_scan(part_id, "cnc", "operator-cnc", scanned_by_name="R. Visser")
    print(f"\nAfter CNC scans, {kitchen.order_number} is {shop.order_status(kitchen.id)}")
    shop.record_scan(kitchen.part_ids[0], "cnc", "operator-cnc", scanned_by_name="R. Visser")
    print(f"All kitchen panels at CNC, {kitchen.order_number} is {shop.order_status(kitchen.id)}")

    for order in (kitchen, wardrobe):
        for part_id in order.part_ids:
            for station in ("banding", "packaging", "complete"):
                shop.record_scan(part_id, station, "operator-floor")

    # A damaged door goes back to the CNC for rework
    shop.record_scan(
        wardrobe.part_ids[0], "cnc", "operator-qc", notes="Hinge bore misaligned"
    )
    print(f"\nRework on {wardrobe.part_ids[0]}: {wardrobe.order_number} is {shop.order_status(wardrobe.id)}")

    batch = shop.batches.check_completion(batch.id)
    print(f"Batch progress {batch.progress}% ({batch.status.value})")

    print("\nScan history")
    pprint([(event.station, event.previous_station, event.notes) for event in shop.history_of(wardrobe.part_ids[0])])


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
