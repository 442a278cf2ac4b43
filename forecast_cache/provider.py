"""
OpenWeather One Call data provider.
"""
import logging
from typing import Any, Optional
from urllib.parse import urlencode

import requests

from .models import ForecastRequest

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Upstream fetch failed: non-2xx status, transport error or bad body."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


def build_api_url(request: ForecastRequest) -> str:
    """
    Build the One Call URL for a request.

    Query parameters: lat, lon, optional units, optional lang, appid.
    """
    params = {"lat": request.latitude, "lon": request.longitude}
    if request.units:
        params["units"] = request.units
    if request.language:
        params["lang"] = request.language
    params["appid"] = request.apikey
    return f"{request.endpoint}?{urlencode(params)}"


class OpenWeatherProvider:
    def __init__(self, timeout: float = 15):
        self.timeout = timeout

    def fetch(self, url: str) -> Any:
        """
        Fetch and decode a JSON body from the given URL.

        Raises FetchError on any failure; never retries.
        """
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Transport error: {e}")

        logger.debug(f"Upstream responded with HTTP {response.status_code}")

        if not response.ok:
            raise FetchError(
                f"HTTP {response.status_code} {response.reason}",
                status_code=response.status_code,
                response_text=_truncate(response.text),
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                f"Invalid JSON body: {e}",
                status_code=response.status_code,
                response_text=_truncate(response.text),
            )

    def fetch_forecast(self, request: ForecastRequest) -> Any:
        return self.fetch(build_api_url(request))


def _truncate(text: Optional[str], limit: int = 500) -> Optional[str]:
    if not isinstance(text, str):
        return None
    return text if len(text) <= limit else text[:limit] + "..."
