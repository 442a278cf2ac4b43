"""
Prometheus metrics for the forecast cache.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

# Application info metric
app_info = Info(
    "owmcache_app_info",
    "Application information for the forecast cache",
)

# HTTP request metrics
request_counter = Counter(
    "owmcache_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

request_duration = Histogram(
    "owmcache_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Cache metrics
cache_lookup_counter = Counter(
    "owmcache_cache_lookups_total",
    "Cache lookups by result",
    ["result"],  # hit, miss, stale
)

cache_eviction_counter = Counter(
    "owmcache_cache_evictions_total",
    "Cache entries removed",
    ["reason"],  # stale_read, sweep
)

cache_entries = Gauge(
    "owmcache_cache_entries",
    "Number of entries currently cached",
)

# Upstream fetch metrics
fetch_counter = Counter(
    "owmcache_upstream_fetches_total",
    "Upstream One Call fetches",
    ["status"],  # success, failure
)

fetch_duration = Histogram(
    "owmcache_upstream_fetch_duration_seconds",
    "Upstream fetch duration in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

# Rejected requests
rejected_request_counter = Counter(
    "owmcache_rejected_requests_total",
    "Requests dropped before reaching the cache",
    ["reason"],
)

# Health metrics
health_check_counter = Counter(
    "owmcache_health_checks_total",
    "Total number of health check requests",
    ["status"],
)


def set_app_info(version: str, environment: str = "production"):
    """Set application information."""
    app_info.info(
        {
            "version": version,
            "environment": environment,
            "application": "openweather-forecast-cache",
        }
    )


def get_metrics() -> bytes:
    """Get all metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
