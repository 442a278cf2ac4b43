"""
Periodic sweep of expired cache entries.
"""
import logging
import threading
import time
from typing import Callable, Optional

from utils.metrics import cache_entries, cache_eviction_counter

from .cache import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 12 * 60 * 60


class JanitorTask:
    """
    Background thread that evicts stale entries on a fixed period.

    Keys that are never requested again would otherwise stay in the store
    forever; lazy eviction only happens on read.
    """

    def __init__(
        self,
        store: CacheStore,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="cache-janitor"
        )
        self._thread.start()
        logger.info(f"Cache janitor started, sweeping every {self.interval_seconds}s")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Cancel the timer and wait for an in-progress sweep to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("Cache janitor stopped")

    def run_once(self) -> int:
        """Evict every entry that is stale by its own TTL. Returns the count."""
        now = self._clock()
        evicted = 0
        for key, entry in self.store.entries():
            if not entry.is_fresh(now) and self.store.delete(key, entry):
                evicted += 1

        if evicted:
            cache_eviction_counter.labels(reason="sweep").inc(evicted)
        cache_entries.set(len(self.store))
        logger.info(f"Cache sweep evicted {evicted} entries")
        return evicted

    def _run(self) -> None:
        # wait() returns True once stop() is called
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Cache sweep failed")
