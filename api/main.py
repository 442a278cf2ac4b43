"""
FastAPI application exposing the forecast cache over HTTP.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from forecast_cache.config import Settings
from forecast_cache.coordinator import Outcome
from forecast_cache.helper import ForecastHelper, build_response_payload
from forecast_cache.logging_config import setup_logging
from forecast_cache.models import ForecastRequest
from utils.metrics import (
    get_content_type,
    get_metrics,
    health_check_counter,
    request_counter,
    request_duration,
    set_app_info,
)

settings = Settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


def _drop_notification(notification: str, payload: Dict[str, Any]) -> None:
    # HTTP callers get their reply from the route, not the channel
    pass


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan event handler."""
    logger.info("Forecast cache API starting up")

    helper = ForecastHelper(_drop_notification, settings=settings)
    helper.start()
    app.state.helper = helper

    logger.info(
        f"Configuration: FORECAST_ENDPOINT={settings.forecast_endpoint}, "
        f"FETCH_WORKERS={settings.fetch_workers}, "
        f"COALESCE_FETCHES={settings.coalesce_fetches}"
    )
    set_app_info(version="1.0.0", environment=settings.environment)
    logger.info("Forecast cache API startup complete")

    yield

    logger.info("Forecast cache API shutting down")
    helper.stop()
    logger.info("Forecast cache API shutdown complete")


app = FastAPI(
    title="OpenWeather Forecast Cache",
    description="Read-through cache for OpenWeather One Call forecasts",
    version="1.0.0",
    lifespan=lifespan,
)


# Metrics collection middleware
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """
    Collect Prometheus metrics for HTTP requests.
    """
    # Skip metrics collection for the metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    endpoint = request.url.path
    request_counter.labels(
        method=request.method, endpoint=endpoint, status_code=response.status_code
    ).inc()
    request_duration.labels(method=request.method, endpoint=endpoint).observe(duration)

    return response


class HealthResponse(BaseModel):
    ok: bool


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    health_check_counter.labels(status="ok").inc()
    return HealthResponse(ok=True)


@app.get("/metrics")
async def metrics_endpoint():
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type=get_content_type())


@app.post("/v1/forecast")
def get_forecast(forecast_request: ForecastRequest, raw_request: Request):
    """
    Return the forecast for a coordinate, from cache when still fresh.
    """
    helper: ForecastHelper = raw_request.app.state.helper
    # The cache key ignores the endpoint, so HTTP callers never choose it
    forecast_request = forecast_request.model_copy(
        update={"endpoint": settings.forecast_endpoint}
    )

    delivered: Dict[str, Any] = {}

    def deliver(request: ForecastRequest, body: Any) -> None:
        delivered["payload"] = build_response_payload(request, body)

    result = helper.coordinator.handle(forecast_request, deliver)

    if result.outcome == Outcome.INVALID_REQUEST:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "hint": result.detail},
        )
    if result.outcome == Outcome.FETCH_FAILED:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "fetch_failed", "hint": result.detail},
        )
    if "payload" not in delivered:
        # deliver() itself failed; the coordinator has logged it
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "internal_error", "hint": "Server error occurred"},
        )

    cache_status = "HIT" if result.outcome == Outcome.CACHE_HIT else "MISS"
    return JSONResponse(content=delivered["payload"], headers={"X-Cache": cache_status})


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Custom HTTP exception handler for consistent error responses."""
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}

    return JSONResponse(status_code=exc.status_code, content=content)


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run("api.main:app", host="0.0.0.0", port=port, log_level="info")
