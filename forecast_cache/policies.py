"""
Cache key derivation and TTL policy.
"""
import json
import math

from .models import ForecastRequest

# Entries expire slightly before the caller's next scheduled refresh, so a
# request arriving on schedule always gets new data.
TTL_FRACTION = 0.99


def build_cache_key(request: ForecastRequest) -> str:
    """
    Generate the cache key for a request.

    Only the fields that change what the response represents are used:
    coordinates, units and language. Credentials, endpoint and update
    interval never affect the key.
    """
    identity = {"lat": request.latitude, "lon": request.longitude}
    if request.units:
        identity["units"] = request.units
    if request.language:
        identity["lang"] = request.language
    return json.dumps(identity, separators=(",", ":"))


def get_cache_ttl_ms(update_interval_minutes: float) -> float:
    """Lifetime in milliseconds for an entry written with this update interval."""
    if not math.isfinite(update_interval_minutes) or update_interval_minutes <= 0:
        raise ValueError("update interval must be a positive finite number")
    return update_interval_minutes * 60 * 1000 * TTL_FRACTION
