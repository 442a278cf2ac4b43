"""
Environment-driven settings.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DEFAULT_ENDPOINT


class Settings(BaseSettings):
    """Settings loaded from environment variables (LOG_LEVEL, FETCH_WORKERS, ...)."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    log_level: str = "INFO"
    forecast_endpoint: str = DEFAULT_ENDPOINT
    fetch_timeout_seconds: float = Field(15, gt=0)
    fetch_workers: int = Field(4, ge=1)
    janitor_interval_seconds: float = Field(12 * 60 * 60, gt=0)  # every 12 hours
    coalesce_fetches: bool = True
    environment: str = Field("local", validation_alias="DEPLOYMENT_ENV")
