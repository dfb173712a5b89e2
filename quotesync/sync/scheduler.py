"""Periodic timer that drives fetch-and-sync cycles."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .protocol import CycleReport

logger = logging.getLogger("quotesync.sync.scheduler")

DEFAULT_INTERVAL_SECONDS = 30


class SyncScheduler:
    """Runs ``tick`` on a daemon thread every ``interval_seconds``.

    Overlap is handled by the tick itself (the session's single-flight guard),
    so a slow cycle makes later ticks report SKIPPED instead of piling up.
    """

    def __init__(
        self,
        tick: Callable[[], CycleReport],
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        run_immediately: bool = True,
        on_report: Optional[Callable[[CycleReport], None]] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self.tick = tick
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self.on_report = on_report
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.running:
            return True
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="quotesync-sync",
            daemon=True,
        )
        self._thread.start()
        logger.info("Sync scheduler started (every %ss)", self.interval_seconds)
        return True

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Sync scheduler stopped")

    def run_once(self) -> Optional[CycleReport]:
        """Run a single tick, reporting it; errors are logged, not raised."""
        self.ticks += 1
        try:
            report = self.tick()
        except Exception as e:
            logger.error("Sync tick failed: %s", e)
            return None
        if self.on_report:
            self.on_report(report)
        return report

    def _loop(self) -> None:
        if self.run_immediately and not self._stop.is_set():
            self.run_once()
        while not self._stop.wait(self.interval_seconds):
            self.run_once()


__all__ = ["SyncScheduler", "DEFAULT_INTERVAL_SECONDS"]
