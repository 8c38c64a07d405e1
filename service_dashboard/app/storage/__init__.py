"""
Object storage backends for metric files.

- gcs: Google Cloud Storage JSON API over httpx (production)
- local: a directory mirroring the bucket layout (development)
"""

from shared.config import BaseConfig
from .object_store import (
    ObjectNotFoundError,
    ObjectPermissionError,
    ObjectStore,
    ObjectStoreError,
    ObjectStoreTransientError,
)
from .gcs_store import GCSObjectStore, attempt_timeout
from .local_store import LocalObjectStore


def create_object_store(config: BaseConfig) -> ObjectStore:
    """Build the backend selected by ``object_store_backend``."""
    if config.object_store_backend == "local":
        return LocalObjectStore(config.object_store_local_root)
    request_timeout = config.gcs_request_timeout_seconds or attempt_timeout(
        config.metrics_download_timeout_seconds, config.gcs_max_attempts
    )
    return GCSObjectStore(
        config.gcs_base_url,
        access_token=config.gcs_access_token,
        max_attempts=config.gcs_max_attempts,
        request_timeout=request_timeout,
    )


__all__ = [
    "ObjectStore",
    "ObjectStoreError",
    "ObjectNotFoundError",
    "ObjectPermissionError",
    "ObjectStoreTransientError",
    "GCSObjectStore",
    "attempt_timeout",
    "LocalObjectStore",
    "create_object_store",
]
