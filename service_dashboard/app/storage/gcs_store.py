"""
Google Cloud Storage backend over the JSON API.
"""

from typing import Optional
from urllib.parse import quote

import httpx

from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception
from .object_store import (
    ObjectNotFoundError,
    ObjectPermissionError,
    ObjectStore,
    ObjectStoreError,
    ObjectStoreTransientError,
)


DEFAULT_GCS_BASE_URL = "https://storage.googleapis.com"
RETRY_MAX_DELAY = 5.0


def attempt_timeout(download_timeout: float, max_attempts: int, retry_base_delay: float = 0.5) -> float:
    """Per-request timeout that fits every attempt and its backoff inside ``download_timeout``."""
    max_attempts = max(1, max_attempts)
    backoff = sum(
        min(retry_base_delay * (2.0 ** attempt), RETRY_MAX_DELAY) * 1.1
        for attempt in range(max_attempts - 1)
    )
    remaining = download_timeout - backoff
    if remaining <= 0:
        return download_timeout / max_attempts
    return remaining / max_attempts


class GCSObjectStore(ObjectStore):
    """Downloads metric files with ``GET /storage/v1/b/{bucket}/o/{object}?alt=media``."""

    name = "gcs"

    def __init__(
        self,
        base_url: str = DEFAULT_GCS_BASE_URL,
        *,
        access_token: Optional[str] = None,
        max_attempts: int = 3,
        retry_base_delay: float = 0.5,
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.request_timeout = request_timeout
        self.logger = get_logger("dashboard.storage.gcs")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        self.retry_config = RetryConfig(
            max_attempts=max_attempts,
            base_delay=retry_base_delay,
            max_delay=RETRY_MAX_DELAY,
            exponential_base=2.0,
            jitter=True,
        )
        self._download_with_retry = retry_on_exception(
            (ObjectStoreTransientError,), config=self.retry_config
        )(self._download_once)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.access_token}"} if self.access_token else {}
            self._client = httpx.AsyncClient(
                timeout=self.request_timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    def object_url(self, bucket: str, file_name: str) -> str:
        return f"{self.base_url}/storage/v1/b/{quote(bucket, safe='')}/o/{quote(file_name, safe='')}"

    async def download(self, bucket: str, file_name: str) -> bytes:
        try:
            return await self._download_with_retry(bucket, file_name)
        except RetryError as exc:
            raise exc.last_exception

    async def _download_once(self, bucket: str, file_name: str) -> bytes:
        url = self.object_url(bucket, file_name)
        try:
            response = await self._get_client().get(url, params={"alt": "media"})
        except httpx.TransportError as exc:
            raise ObjectStoreTransientError(bucket, file_name, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code == 200:
            self.logger.debug("Downloaded object", bucket=bucket, file=file_name, size=len(response.content))
            return response.content

        if response.status_code == 404:
            raise ObjectNotFoundError(bucket, file_name, f"Object not found: gs://{bucket}/{file_name}")

        if response.status_code in (401, 403):
            raise ObjectPermissionError(
                bucket, file_name, f"Access denied ({response.status_code}): gs://{bucket}/{file_name}"
            )

        if response.status_code == 429 or response.status_code >= 500:
            raise ObjectStoreTransientError(
                bucket, file_name, f"Unexpected status {response.status_code} for gs://{bucket}/{file_name}"
            )

        self.logger.error(
            "Object download failed",
            bucket=bucket,
            file=file_name,
            status_code=response.status_code,
            response=response.text,
        )
        raise ObjectStoreError(bucket, file_name, f"Unexpected status {response.status_code}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
