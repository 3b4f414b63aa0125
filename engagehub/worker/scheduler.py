"""Fixed-interval driver for the job processor."""

from __future__ import annotations

import logging
import signal
import threading
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SchedulerDriver:
    """
    Calls ``cycle`` every ``interval_ms`` until stopped.

    Ticks are aligned to the wall clock from start-up (no jitter); a tick that
    falls while a cycle is still running is skipped rather than queued.
    """

    def __init__(self, cycle: Callable[[], Any], interval_ms: int = 5000):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self.cycle = cycle
        self.interval = interval_ms / 1000.0
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def install_signal_handlers(self) -> None:
        def _handler(signum, frame):
            logger.info(f"Received signal {signum}, stopping worker")
            self.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, _handler)

    def trigger(self) -> Optional[Any]:
        """Run one cycle now. Errors are logged, never raised."""
        try:
            return self.cycle()
        except Exception:
            logger.exception("Processing cycle failed")
            return None

    def run_forever(self, max_ticks: Optional[int] = None) -> int:
        """Block running ticks until stop(); returns the number of ticks fired."""
        ticks = 0
        next_at = time.monotonic()
        while not self._stop.is_set():
            if max_ticks is not None and ticks >= max_ticks:
                break
            next_at += self.interval
            self.trigger()
            ticks += 1
            delay = next_at - time.monotonic()
            if delay < 0:
                # Overran: skip the missed ticks instead of firing them back to back.
                skipped = int(-delay // self.interval) + 1
                next_at += skipped * self.interval
                delay = next_at - time.monotonic()
            self._stop.wait(max(0.0, delay))
        logger.info("Scheduler stopped")
        return ticks
