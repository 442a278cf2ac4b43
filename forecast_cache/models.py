"""
Inbound request model for forecast lookups.
"""
import math
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ENDPOINT = "https://api.openweathermap.org/data/3.0/onecall"
DEFAULT_UPDATE_INTERVAL_MINUTES = 10

VALID_UNITS = ("metric", "imperial")


class ForecastRequest(BaseModel):
    """
    A forecast request as sent by a display instance.

    Field names follow the wire payload (``updateInterval``, ``instanceId``);
    the snake_case names are accepted too.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    apikey: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    units: Optional[str] = None
    language: Optional[str] = None
    update_interval: float = Field(
        DEFAULT_UPDATE_INTERVAL_MINUTES, alias="updateInterval"
    )
    endpoint: str = DEFAULT_ENDPOINT
    # Opaque; echoed back to the caller as sent
    instance_id: Any = Field(None, alias="instanceId")

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def blank_coordinate(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("units")
    @classmethod
    def normalize_units(cls, v):
        """Blank units mean the provider default."""
        if v is None or not v.strip():
            return None
        v = v.strip().lower()
        if v not in VALID_UNITS:
            raise ValueError("units must be 'metric', 'imperial' or blank")
        return v

    @field_validator("language", "apikey")
    @classmethod
    def blank_to_none(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip()


def validate_request(request: ForecastRequest) -> Optional[Tuple[str, str]]:
    """
    Check the preconditions for fetching a forecast.

    Returns (reason, message) for the first problem found, or None if the
    request can be served.
    """
    if not request.apikey:
        return (
            "missing_apikey",
            "No API key configured. Get an API key at "
            "https://openweathermap.org/api/one-call-api",
        )
    if request.latitude is None or request.longitude is None:
        return "missing_coordinates", "Latitude and/or longitude not provided."
    if not math.isfinite(request.update_interval) or request.update_interval <= 0:
        return (
            "invalid_update_interval",
            "updateInterval must be a positive number of minutes.",
        )
    return None
