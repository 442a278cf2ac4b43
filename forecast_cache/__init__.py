"""
Read-through cache for OpenWeather One Call forecasts.
"""
from .cache import CacheEntry, CacheStore
from .coalescer import RequestCoalescer
from .coordinator import HandleResult, Outcome, ReadThroughCoordinator
from .helper import FORECAST_DATA, FORECAST_GET, ForecastHelper
from .janitor import JanitorTask
from .models import ForecastRequest, validate_request
from .policies import build_cache_key, get_cache_ttl_ms
from .provider import FetchError, OpenWeatherProvider, build_api_url

__all__ = [
    "CacheEntry",
    "CacheStore",
    "RequestCoalescer",
    "HandleResult",
    "Outcome",
    "ReadThroughCoordinator",
    "FORECAST_DATA",
    "FORECAST_GET",
    "ForecastHelper",
    "JanitorTask",
    "ForecastRequest",
    "validate_request",
    "build_cache_key",
    "get_cache_ttl_ms",
    "FetchError",
    "OpenWeatherProvider",
    "build_api_url",
]
