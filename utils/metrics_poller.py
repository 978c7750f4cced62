"""Periodic metric snapshots for live feedback."""

import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class MetricsPoller:
    """
    Call ``source()`` every ``interval_s`` seconds on a background thread
    and pass the snapshot to ``callback``.

    Usage:
        poller = MetricsPoller(session.snapshot, show_live, interval_s=1.0)
        poller.start()
        ...
        poller.stop()
    """

    def __init__(
        self,
        source: Callable[[], object],
        callback: Callable[[object], None],
        interval_s: float = 1.0,
        name: str = "metrics-poller"
    ):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")

        self.source = source
        self.callback = callback
        self.interval_s = interval_s
        self.name = name
        self.polls = 0

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, source, callback, config: Dict) -> 'MetricsPoller':
        """Build with ``session.poll_interval_s`` (default 1 s)."""
        session_config = config.get('session', {}) or {}
        return cls(source, callback, float(session_config.get('poll_interval_s', 1.0)))

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start polling. No-op when already running."""
        with self._lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        logger.debug(f"{self.name} started (interval {self.interval_s}s)")

    def stop(self, timeout: Optional[float] = None):
        """Stop polling and wait for the thread. Idempotent."""
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self.interval_s * 2 + 1.0)
            logger.debug(f"{self.name} stopped after {self.polls} polls")

    def poll_once(self):
        snapshot = self.source()
        self.polls += 1
        self.callback(snapshot)

    def _run(self):
        while not self._stop_event.wait(self.interval_s):
            try:
                self.poll_once()
            except Exception as e:
                # Live feedback only; the next tick retries
                logger.warning(f"{self.name} poll failed: {e}")
