"""
Periodic tick for elapsed-time display.

Runs a daemon thread that calls back every interval while started. The
callback only refreshes display values; distance, speed and laps are
driven by GPS samples alone.
"""

import logging
import threading
from typing import Callable, Optional

from motolap import config

logger = logging.getLogger('motolap.timer')


class ElapsedTimer:
    """Repeating timer that can be started and stopped many times."""

    def __init__(self, callback: Callable[[], None],
                 interval: float = config.TICK_INTERVAL_S):
        self.callback = callback
        self.interval = interval
        self.thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self):
        """Start ticking (no-op if already running)."""
        if self.running:
            return
        self._stop_event = threading.Event()
        self.thread = threading.Thread(
            target=self._loop, args=(self._stop_event,), daemon=True
        )
        self.thread.start()

    def stop(self):
        """
        Stop ticking.

        Does not join: the callback may be waiting on a lock held by the
        caller. The old thread exits at its next wake-up.
        """
        self._stop_event.set()
        self.thread = None

    def _loop(self, stop_event: threading.Event):
        while not stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.warning("Elapsed timer callback failed: %s", e)
