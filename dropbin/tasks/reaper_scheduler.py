"""
Reaper Scheduler

In-process interval thread that runs the expiration reaper for
single-process deployments (REAPER_MODE=thread). Multi-process deployments
use the Celery beat task in cleanup_task instead.
"""

import logging
import threading
from typing import Optional

from dropbin.application.expiration_reaper import ExpirationReaper, ReapReport

logger = logging.getLogger(__name__)


class ReaperScheduler:
    """Runs ExpirationReaper.run_cycle() every interval_seconds on a daemon thread."""

    def __init__(self, reaper: ExpirationReaper, interval_seconds: float = 60):
        self.reaper = reaper
        self.interval_seconds = interval_seconds
        self.last_report: Optional[ReapReport] = None
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name="expiration-reaper", daemon=True)

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()
            logger.info(f"Expiration reaper started (every {self.interval_seconds}s)")

    def shutdown(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if wait and self._thread.is_alive():
            self._thread.join(timeout)

    def run_once(self) -> ReapReport:
        self.last_report = self.reaper.run_cycle()
        return self.last_report

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Expiration reaper cycle failed")
