from __future__ import annotations

import logging
from threading import Event, Thread, current_thread
from typing import Callable

logger = logging.getLogger(__name__)


class TTLSweeper:
    """Background thread that runs ``sweep`` once every ``interval`` seconds."""

    def __init__(self, sweep: Callable[[], int], interval: float, name: str = "ember-cache-ttl-sweeper"):
        self.interval = interval
        self._sweep = sweep
        self._stop_event = Event()
        self._thread = Thread(target=self._run, name=name, daemon=True)

    def start(self) -> "TTLSweeper":
        self._thread.start()
        logger.debug("TTL sweeper started (interval=%ss)", self.interval)
        return self

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                expired = self._sweep()
                if expired:
                    logger.debug("TTL sweep evicted %d expired entries", expired, extra={"entries": expired})
            except Exception:
                logger.exception("Error in TTL sweep")

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def stop(self, timeout: float = 5) -> None:
        self._stop_event.set()
        if self._thread.is_alive() and self._thread is not current_thread():
            self._thread.join(timeout=timeout)
        logger.debug("TTL sweeper stopped")
