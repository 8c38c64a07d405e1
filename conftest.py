"""
Shared pytest fixtures: an in-memory object store that counts downloads and a
manually advanced clock.
"""

import asyncio
from typing import Dict, List, Optional, Tuple, Union

import pytest

from service_dashboard.app.cache import MetricsCache, MetricsFetcher
from service_dashboard.app.catalog import MetricFileCatalog
from service_dashboard.app.storage import ObjectNotFoundError, ObjectStore

TEST_BUCKET = "test-dashboard-data"

StoredValue = Union[bytes, str, Exception]


class FakeObjectStore(ObjectStore):
    """Object store backed by a dict of file name -> contents or exception."""

    name = "memory"

    def __init__(self, objects: Optional[Dict[str, StoredValue]] = None, *, delay: float = 0.0):
        self.objects: Dict[str, StoredValue] = dict(objects or {})
        self.delay = delay
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    async def download(self, bucket: str, file_name: str) -> bytes:
        self.calls.append((bucket, file_name))
        if self.gate is not None:
            await self.gate.wait()
        elif self.delay:
            await asyncio.sleep(self.delay)

        if file_name not in self.objects:
            raise ObjectNotFoundError(bucket, file_name, f"Object not found: {file_name}")
        value = self.objects[file_name]
        if isinstance(value, Exception):
            raise value
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    def download_count(self, file_name: Optional[str] = None) -> int:
        if file_name is None:
            return len(self.calls)
        return sum(1 for _, name in self.calls if name == file_name)

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sample_objects() -> Dict[str, StoredValue]:
    return {
        "admissions_by_type_60_days.json": '{"a": 1}',
        "admissions_by_type_by_month.json": "[]",
        "admissions_versus_releases_by_month.json": "",
        "reincarceration_rate_by_release_facility.json": '[{"facility": "NDSP", "rate": 0.21}]',
        "reincarceration_rate_by_stay_length.json": '[{"stay_length": "0-12", "rate": 0.18}]',
        "reincarceration_rate_by_transitional_facility.json": "[]",
        "reincarcerations_by_month.json": '[{"month": "2019-01", "count": 42}]',
        "revocations_by_month.json": '[{"month": "2019-01", "count": 17}]',
        "revocations_by_race_60_days.json": '{"WHITE": 10, "BLACK": 4}',
        "revocations_by_supervision_type_by_month.json": "[]",
        "revocations_by_violation_type_by_month.json": "null",
    }


@pytest.fixture
def fake_store():
    return FakeObjectStore(sample_objects())


@pytest.fixture
def catalog():
    return MetricFileCatalog()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher(fake_store, catalog):
    return MetricsFetcher(fake_store, catalog, TEST_BUCKET, download_timeout=1.0)


@pytest.fixture
def metrics_cache(fetcher, clock):
    return MetricsCache(fetcher, ttl_seconds=3600, clock=clock)
