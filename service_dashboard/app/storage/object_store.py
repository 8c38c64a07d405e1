"""
Object store interface consumed by the metrics cache.
"""

from typing import Optional


class ObjectStoreError(Exception):
    """Base error for object store downloads."""

    def __init__(self, bucket: str, file_name: str, message: Optional[str] = None):
        self.bucket = bucket
        self.file_name = file_name
        super().__init__(message or f"gs://{bucket}/{file_name}")


class ObjectNotFoundError(ObjectStoreError):
    """The object does not exist."""


class ObjectPermissionError(ObjectStoreError):
    """The caller may not read the object."""


class ObjectStoreTransientError(ObjectStoreError):
    """Network or server-side failure that may succeed on a later attempt."""


class ObjectStore:
    """Downloads named blobs from named buckets.

    Implementations raise one of the ``ObjectStoreError`` subclasses on
    failure. Callers treat every failure the same way.
    """

    name = "base"

    async def download(self, bucket: str, file_name: str) -> bytes:
        """Return the raw contents of ``bucket/file_name``. Override in subclasses."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release any held connections."""
        return None
