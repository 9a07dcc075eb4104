"""
Active Expiry Sweeper

Runs Keyspace.sweep() periodically on a background thread so expired keys
that are never accessed again still get removed.
"""

import logging
import threading
from typing import Optional

from ..config.settings import settings
from .keyspace import Keyspace

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Background thread removing expired entries at a fixed interval.

    Usage:
        sweeper = ExpirySweeper(keyspace, interval=0.1)
        sweeper.start()
        ...
        sweeper.stop()
    """

    def __init__(self, keyspace: Keyspace, interval: float = None):
        """
        Args:
            keyspace: Keyspace to sweep
            interval: Seconds between passes (default settings.SWEEP_INTERVAL)

        Raises:
            ValueError: If interval is not positive
        """
        self.keyspace = keyspace
        self.interval = interval if interval is not None else settings.SWEEP_INTERVAL
        if self.interval <= 0:
            raise ValueError("interval must be positive")

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.passes = 0
        self.removed = 0

    def start(self) -> None:
        if self.is_running():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="kvengine-expiry-sweeper",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Expiry sweeper started (interval={self.interval}s)")

    def stop(self, timeout: float = 1.0) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout)
        self._thread = None
        logger.debug("Expiry sweeper stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        """Run one sweep pass synchronously."""
        removed = self.keyspace.sweep()
        self.passes += 1
        self.removed += removed
        return removed

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.run_once()
            except Exception:
                # Keep sweeping; a failed pass only delays cleanup
                logger.exception("Expiry sweep failed")
