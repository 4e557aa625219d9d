import time

import pytest

from shopfloor import BatchStatus
from shopfloor.poller import BatchCompletionPoller


def test_interval_must_be_positive(service):
    with pytest.raises(ValueError):
        BatchCompletionPoller(service.batches, 0)


def test_run_once_completes_finished_batches(service, two_orders):
    first, _ = two_orders
    batch = service.batches.create_batch([first.id])
    service.batches.start_batch(batch.id)
    for part_id in first.part_ids:
        service.ledger.record_scan(part_id, first.id, "complete", "op-1")

    poller = BatchCompletionPoller(service.batches, interval=60)
    assert poller.run_once() == 1
    assert service.batches.get(batch.id).status is BatchStatus.COMPLETED
    assert poller.run_once() == 0


def test_run_once_logs_and_survives_errors(service, monkeypatch, caplog):
    def broken():
        raise RuntimeError("database locked")

    monkeypatch.setattr(service.batches, "check_active_batches", broken)
    poller = BatchCompletionPoller(service.batches, interval=60)
    assert poller.run_once() == 0
    assert "Batch completion check failed" in caplog.text


def test_background_thread_picks_up_completion(service, two_orders):
    first, _ = two_orders
    batch = service.batches.create_batch([first.id])
    service.batches.start_batch(batch.id)
    for part_id in first.part_ids:
        service.ledger.record_scan(part_id, first.id, "complete", "op-1")

    poller = BatchCompletionPoller(service.batches, interval=0.01)
    poller.start()
    try:
        assert poller.running
        deadline = time.monotonic() + 2.0
        while time.monotonic() < deadline:
            if service.batches.get(batch.id).status is BatchStatus.COMPLETED:
                break
            time.sleep(0.01)
    finally:
        poller.stop()
    assert not poller.running
    assert service.batches.get(batch.id).status is BatchStatus.COMPLETED
