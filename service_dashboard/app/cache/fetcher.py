"""
Fetch-and-merge: turn one metric type into one metric bundle.
"""

import asyncio
import json
import time
from typing import Any, Dict, Union

from shared.logging import get_logger
from ..catalog import MetricFileCatalog
from ..exceptions import DecodeError, FetchError
from ..storage import ObjectStore

MetricBundle = Dict[str, Any]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def decode_metric_file(metric_type: str, file_name: str, contents: Union[bytes, str]) -> Any:
    """Decode downloaded file contents. Empty content decodes to ``None``."""
    if isinstance(contents, (bytes, bytearray)):
        try:
            text = bytes(contents).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(metric_type, file_name, f"invalid UTF-8: {exc}") from exc
    else:
        text = contents

    if not text:
        return None

    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise DecodeError(metric_type, file_name, str(exc)) from exc


class MetricsFetcher:
    """Downloads every file of a metric type concurrently and merges them.

    The merge is all-or-nothing: the first failed download or undecodable
    file fails the whole call. Sibling downloads still in flight are left to
    finish and their results are dropped.
    """

    def __init__(
        self,
        store: ObjectStore,
        catalog: MetricFileCatalog,
        bucket: str,
        *,
        download_timeout: float = 10.0,
    ):
        self.store = store
        self.catalog = catalog
        self.bucket = bucket
        self.download_timeout = download_timeout
        self.logger = get_logger("dashboard.fetcher")

    async def fetch_and_merge(self, metric_type: str) -> MetricBundle:
        files = self.catalog.files_for(metric_type)

        self.logger.info(
            "Fetching metrics from object store",
            metric_type=metric_type,
            bucket=self.bucket,
            file_count=len(files),
        )
        start = time.perf_counter()

        contents = await asyncio.gather(
            *(self._download(metric_type, file_name) for file_name in files)
        )

        bundle: MetricBundle = {}
        for file_name, raw in zip(files, contents):
            bundle[self.catalog.file_key(file_name)] = decode_metric_file(metric_type, file_name, raw)

        self.logger.info(
            "Fetched all metrics from object store",
            metric_type=metric_type,
            bucket=self.bucket,
            file_count=len(files),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return bundle

    async def _download(self, metric_type: str, file_name: str) -> bytes:
        try:
            return await asyncio.wait_for(
                self.store.download(self.bucket, file_name),
                timeout=self.download_timeout,
            )
        except asyncio.TimeoutError as exc:
            cause = TimeoutError(f"download exceeded {self.download_timeout}s")
            self.logger.warning(
                "Metric file download timed out",
                metric_type=metric_type,
                file=file_name,
                timeout_seconds=self.download_timeout,
            )
            raise FetchError(metric_type, file_name, cause) from exc
        except Exception as exc:
            self.logger.warning(
                "Metric file download failed",
                metric_type=metric_type,
                file=file_name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise FetchError(metric_type, file_name, exc) from exc
