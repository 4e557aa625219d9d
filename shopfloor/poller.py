"""Background worker that periodically checks batch completion."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .batches import BatchManager

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class BatchCompletionPoller:
    """Runs ``check_active_batches`` on a fixed interval in a daemon thread."""

    def __init__(self, manager: BatchManager, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be positive")
        self.manager = manager
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        """Check all Processing batches once; returns how many completed."""

        try:
            finished = self.manager.check_active_batches()
        except Exception:
            logger.exception("Batch completion check failed")
            return 0
        for batch in finished:
            logger.info("Poller marked batch %s as completed", batch.id)
        return len(finished)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.run_once()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="batch-completion-poller", daemon=True
        )
        self._thread.start()
        logger.info("Batch completion poller started (interval %.1fs)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout if timeout is not None else self.interval + 1.0)
            logger.info("Batch completion poller stopped")


__all__ = ["BatchCompletionPoller", "DEFAULT_POLL_INTERVAL"]
