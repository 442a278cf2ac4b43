"""
Read-through coordination between the cache store and the One Call provider.
"""
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from utils.metrics import (
    cache_entries,
    cache_eviction_counter,
    cache_lookup_counter,
    fetch_counter,
    fetch_duration,
    rejected_request_counter,
)

from .cache import CacheEntry, CacheStore
from .coalescer import RequestCoalescer
from .models import ForecastRequest, validate_request
from .policies import build_cache_key, get_cache_ttl_ms
from .provider import FetchError, OpenWeatherProvider, build_api_url

logger = logging.getLogger(__name__)

# deliver(request, body) hands a response body back to whoever asked
Deliver = Callable[[ForecastRequest, Any], None]


class Outcome(Enum):
    CACHE_HIT = "cache_hit"
    FETCHED = "fetched"
    INVALID_REQUEST = "invalid_request"
    FETCH_FAILED = "fetch_failed"


@dataclass
class HandleResult:
    outcome: Outcome
    cache_key: Optional[str] = None
    detail: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.outcome in (Outcome.CACHE_HIT, Outcome.FETCHED)


class ReadThroughCoordinator:
    """
    Serves forecast requests from the cache, fetching upstream on a miss.

    Per request:
    - Reject it if credentials or coordinates are missing
    - Deliver a fresh cached body if there is one
    - Otherwise drop any stale entry, fetch, deliver, then store

    Failures are logged and end the request; nothing is raised to the
    caller and nothing is cached.
    """

    def __init__(
        self,
        store: CacheStore,
        provider: Optional[OpenWeatherProvider] = None,
        coalescer: Optional[RequestCoalescer] = None,
        clock: Callable[[], float] = time.time,
        max_workers: int = 4,
    ):
        self.store = store
        self.provider = provider or OpenWeatherProvider()
        self.coalescer = coalescer
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="forecast-fetch"
        )

    def submit(self, request: ForecastRequest, deliver: Deliver) -> "Future[HandleResult]":
        """Handle a request on the worker pool so other keys are not held up."""
        return self._executor.submit(self.handle, request, deliver)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def handle(self, request: ForecastRequest, deliver: Deliver) -> HandleResult:
        log_extra = {"instance_id": request.instance_id}

        problem = validate_request(request)
        if problem is not None:
            reason, message = problem
            rejected_request_counter.labels(reason=reason).inc()
            logger.error(message, extra={**log_extra, "status": reason})
            return HandleResult(Outcome.INVALID_REQUEST, detail=message)

        key = build_cache_key(request)
        log_extra["cache_key"] = key

        cached = self._get_fresh_entry(key)
        if cached is not None:
            logger.info("Retrieved data from cache", extra={**log_extra, "status": "hit"})
            self._deliver(deliver, request, cached.body, log_extra)
            return HandleResult(Outcome.CACHE_HIT, cache_key=key)

        start_time = time.time()
        try:
            body = self._fetch(key, request)
        except (FetchError, TimeoutError) as e:
            duration_ms = int((time.time() - start_time) * 1000)
            fetch_counter.labels(status="failure").inc()
            logger.error(
                f"Error fetching data: {e}",
                extra={
                    **log_extra,
                    "status": getattr(e, "status_code", None) or "fetch_failed",
                    "duration_ms": duration_ms,
                },
            )
            response_text = getattr(e, "response_text", None)
            if response_text:
                logger.debug(f"Upstream response: {response_text}", extra=log_extra)
            return HandleResult(Outcome.FETCH_FAILED, cache_key=key, detail=str(e))
        except Exception as e:
            fetch_counter.labels(status="failure").inc()
            logger.exception(
                "Unexpected error fetching data",
                extra={**log_extra, "status": "fetch_failed"},
            )
            return HandleResult(
                Outcome.FETCH_FAILED, cache_key=key, detail=f"Unexpected error: {e}"
            )

        duration_ms = int((time.time() - start_time) * 1000)
        fetch_counter.labels(status="success").inc()
        fetch_duration.observe(duration_ms / 1000.0)
        logger.info(
            "Retrieved data from OpenWeatherMap API",
            extra={**log_extra, "status": "miss", "duration_ms": duration_ms},
        )

        self._deliver(deliver, request, body, log_extra)
        self.store.put(
            key,
            CacheEntry(
                key=key,
                stored_at=self._clock(),
                ttl_ms=get_cache_ttl_ms(request.update_interval),
                body=body,
            ),
        )
        cache_entries.set(len(self.store))
        return HandleResult(Outcome.FETCHED, cache_key=key)

    def _get_fresh_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self.store.get(key)
        if entry is None:
            cache_lookup_counter.labels(result="miss").inc()
            return None

        # Freshness is judged by the TTL the entry was written with
        if entry.is_fresh(self._clock()):
            cache_lookup_counter.labels(result="hit").inc()
            return entry

        cache_lookup_counter.labels(result="stale").inc()
        if self.store.delete(key, entry):
            cache_eviction_counter.labels(reason="stale_read").inc()
            cache_entries.set(len(self.store))
        return None

    def _fetch(self, key: str, request: ForecastRequest) -> Any:
        url = build_api_url(request)
        if self.coalescer is None:
            return self.provider.fetch(url)
        return self.coalescer.get_or_fetch(key, lambda: self.provider.fetch(url))

    def _deliver(
        self, deliver: Deliver, request: ForecastRequest, body: Any, log_extra: dict
    ) -> None:
        try:
            deliver(request, body)
        except Exception:
            logger.exception("Failed to deliver forecast data", extra=log_extra)
