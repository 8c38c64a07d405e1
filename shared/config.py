"""
Shared configuration management for the dashboard metrics backend.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Metric files
    metrics_bucket: str = Field(default="recidiviz-staging-dashboard-data")
    metrics_cache_ttl_seconds: int = Field(default=60 * 60)
    metrics_download_timeout_seconds: float = Field(default=10.0)
    metrics_serve_stale_on_error: bool = Field(default=False)
    metric_files_path: Optional[str] = Field(default=None)
    metric_file_suffix: str = Field(default=".json")

    # Object storage
    object_store_backend: str = Field(default="gcs")
    object_store_local_root: str = Field(default="./data")
    gcs_base_url: str = Field(default="https://storage.googleapis.com")
    gcs_access_token: Optional[str] = Field(default=None)
    gcs_max_attempts: int = Field(default=3)
    gcs_request_timeout_seconds: Optional[float] = Field(default=None)

    @field_validator("metrics_cache_ttl_seconds", "metrics_download_timeout_seconds")
    @classmethod
    def _must_be_positive(cls, value):
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("gcs_request_timeout_seconds")
    @classmethod
    def _optional_positive(cls, value):
        if value is not None and value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("object_store_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in ("gcs", "local"):
            raise ValueError(f"unknown object store backend: {value}")
        return value


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
