"""
Request coalescing for concurrent cache misses on the same key.

When several requests miss on one key while a fetch is outstanding, only
the first one goes upstream and the rest wait for its result.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class InFlightFetch:
    """Tracks an outstanding upstream fetch."""

    event: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[BaseException] = None
    started_at: float = field(default_factory=time.time)
    waiter_count: int = 0


class RequestCoalescer:
    """
    Shares one upstream fetch among concurrent callers of the same key.

    - The first caller for a key runs ``fetch_fn``
    - Later callers for that key block until it finishes
    - Everyone gets the same result, or the same exception

    Waiters block without a deadline by default; the fetch itself is
    bounded by the transport timeout.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._in_flight: Dict[str, InFlightFetch] = {}
        self._lock = threading.Lock()
        self._timeout = timeout

    def get_or_fetch(self, cache_key: str, fetch_fn: Callable[[], Any]) -> Any:
        """
        Either join an in-flight fetch for ``cache_key`` or start one.

        Raises:
            TimeoutError: If a timeout is configured and the wait exceeds it
            Exception: Whatever ``fetch_fn`` raised
        """
        with self._lock:
            in_flight = self._in_flight.get(cache_key)
            if in_flight is not None:
                in_flight.waiter_count += 1
                logger.debug(
                    f"Joining in-flight fetch (waiters: {in_flight.waiter_count})",
                    extra={"cache_key": cache_key},
                )
                is_initiator = False
            else:
                in_flight = InFlightFetch()
                self._in_flight[cache_key] = in_flight
                is_initiator = True

        if is_initiator:
            try:
                in_flight.result = fetch_fn()
            except Exception as e:
                in_flight.error = e
            finally:
                with self._lock:
                    self._in_flight.pop(cache_key, None)
                in_flight.event.set()

            if in_flight.error is not None:
                raise in_flight.error
            return in_flight.result

        if not in_flight.event.wait(timeout=self._timeout):
            raise TimeoutError(
                f"Fetch for {cache_key} still running after {self._timeout}s"
            )

        if in_flight.error is not None:
            raise in_flight.error
        return in_flight.result

    @property
    def active_fetches(self) -> int:
        with self._lock:
            return len(self._in_flight)
