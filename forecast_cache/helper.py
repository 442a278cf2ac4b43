"""
Forecast helper: owns the cache and dispatches channel notifications.
"""
import logging
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from .cache import CacheStore
from .coalescer import RequestCoalescer
from .config import Settings
from .coordinator import ReadThroughCoordinator
from .janitor import JanitorTask
from .models import ForecastRequest
from .provider import OpenWeatherProvider

logger = logging.getLogger(__name__)

FORECAST_GET = "OPENWEATHER_ONE_CALL_FORECAST_GET"
FORECAST_DATA = "OPENWEATHER_ONE_CALL_FORECAST_DATA"

SendNotification = Callable[[str, Dict[str, Any]], None]


def build_response_payload(request: ForecastRequest, body: Any) -> Dict[str, Any]:
    """Tag a fetched body with the instance that asked for it."""
    if isinstance(body, dict):
        payload = dict(body)
    else:
        payload = {"data": body}
    payload["instanceId"] = request.instance_id
    return payload


class ForecastHelper:
    """
    Lifecycle owner for one cache instance.

    ``start()`` creates the store, coordinator and janitor; ``stop()`` tears
    them down. Incoming notifications go through
    ``notification_received`` and responses leave through
    ``send_notification``.
    """

    def __init__(
        self,
        send_notification: SendNotification,
        settings: Optional[Settings] = None,
        provider: Optional[OpenWeatherProvider] = None,
    ):
        self.settings = settings or Settings()
        self.send_notification = send_notification
        self._provider = provider
        self.store: Optional[CacheStore] = None
        self.coordinator: Optional[ReadThroughCoordinator] = None
        self.janitor: Optional[JanitorTask] = None
        self._stopped = False

    def start(self, run_janitor: bool = True) -> None:
        logger.info("Starting forecast helper")
        self._stopped = False
        self.store = CacheStore()
        self.coordinator = ReadThroughCoordinator(
            self.store,
            provider=self._provider
            or OpenWeatherProvider(timeout=self.settings.fetch_timeout_seconds),
            coalescer=RequestCoalescer() if self.settings.coalesce_fetches else None,
            max_workers=self.settings.fetch_workers,
        )
        self.janitor = JanitorTask(
            self.store, interval_seconds=self.settings.janitor_interval_seconds
        )
        if run_janitor:
            self.janitor.start()

    def stop(self) -> None:
        logger.info("Shutting down forecast helper")
        if self.janitor is not None:
            self.janitor.stop()
        self._stopped = True
        coordinator, self.coordinator = self.coordinator, None
        if coordinator is not None:
            coordinator.shutdown(wait=True)

    def parse_request(self, payload: Dict[str, Any]) -> ForecastRequest:
        """Build a request model, filling in the configured endpoint."""
        payload = dict(payload)
        if not payload.get("endpoint"):
            payload["endpoint"] = self.settings.forecast_endpoint
        return ForecastRequest.model_validate(payload)

    def notification_received(
        self, notification: str, payload: Any
    ) -> Optional[Future]:
        """
        Dispatch a channel notification.

        Returns the future of the scheduled request, or None if the
        notification was ignored, the payload was unusable or the helper
        has been stopped.
        """
        if notification != FORECAST_GET:
            logger.debug(f"Ignoring notification {notification}")
            return None
        coordinator = self.coordinator
        if coordinator is None:
            if self._stopped:
                logger.warning("Forecast helper is stopped, dropping request")
                return None
            raise RuntimeError("ForecastHelper.start() has not been called")
        if not isinstance(payload, dict):
            logger.error("Forecast request payload must be a JSON object")
            return None

        try:
            request = self.parse_request(payload)
        except ValidationError as e:
            logger.error(f"Invalid forecast request: {e.errors()}")
            return None

        try:
            return coordinator.submit(request, self._send_weather_data)
        except RuntimeError:
            # stop() shut the worker pool down while this request was parsed
            logger.warning("Forecast helper is stopped, dropping request")
            return None

    def _send_weather_data(self, request: ForecastRequest, body: Any) -> None:
        self.send_notification(FORECAST_DATA, build_response_payload(request, body))
