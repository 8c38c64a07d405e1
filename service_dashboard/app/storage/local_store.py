"""
Local directory backend, laid out as ``{root}/{bucket}/{file_name}``.

Used for development against a copy of the metrics bucket.
"""

import asyncio
from pathlib import Path
from typing import Union

from shared.logging import get_logger
from .object_store import (
    ObjectNotFoundError,
    ObjectPermissionError,
    ObjectStore,
    ObjectStoreTransientError,
)


class LocalObjectStore(ObjectStore):
    """Reads objects from disk in the default executor."""

    name = "local"

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.logger = get_logger("dashboard.storage.local")

    def _resolve(self, bucket: str, file_name: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        path = (bucket_dir / file_name).resolve()
        if bucket_dir != self.root / bucket or bucket_dir not in path.parents:
            raise ObjectPermissionError(bucket, file_name, f"Path escapes store root: {bucket}/{file_name}")
        return path

    async def download(self, bucket: str, file_name: str) -> bytes:
        path = self._resolve(bucket, file_name)
        loop = asyncio.get_running_loop()
        try:
            contents = await loop.run_in_executor(None, path.read_bytes)
        except FileNotFoundError as exc:
            raise ObjectNotFoundError(bucket, file_name, f"Object not found: {path}") from exc
        except PermissionError as exc:
            raise ObjectPermissionError(bucket, file_name, f"Access denied: {path}") from exc
        except OSError as exc:
            raise ObjectStoreTransientError(bucket, file_name, f"{type(exc).__name__}: {exc}") from exc

        self.logger.debug("Read object", bucket=bucket, file=file_name, size=len(contents))
        return contents
