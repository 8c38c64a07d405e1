"""
Unit tests for fetch-and-merge.
"""

import asyncio

import pytest

from conftest import TEST_BUCKET, FakeObjectStore, sample_objects
from service_dashboard.app.cache import MetricsFetcher, decode_metric_file
from service_dashboard.app.exceptions import ConfigurationError, DecodeError, FetchError
from service_dashboard.app.storage import (
    ObjectNotFoundError,
    ObjectPermissionError,
    ObjectStoreTransientError,
)


class TestDecodeMetricFile:
    """Test cases for decode_metric_file."""

    def test_empty_bytes_decode_to_none(self):
        assert decode_metric_file("admission", "a.json", b"") is None

    def test_empty_string_decodes_to_none(self):
        assert decode_metric_file("admission", "a.json", "") is None

    def test_json_object(self):
        assert decode_metric_file("admission", "a.json", b'{"a": 1}') == {"a": 1}

    def test_json_null(self):
        assert decode_metric_file("admission", "a.json", b"null") is None

    def test_utf8_content(self):
        assert decode_metric_file("admission", "a.json", '{"name": "Bureau"}'.encode("utf-8")) == {"name": "Bureau"}

    def test_invalid_json(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_metric_file("admission", "a.json", b"{not json")

        assert exc_info.value.file_name == "a.json"
        assert exc_info.value.details["file"] == "a.json"

    def test_whitespace_is_not_empty(self):
        with pytest.raises(DecodeError):
            decode_metric_file("admission", "a.json", b"   ")

    @pytest.mark.parametrize("contents", [b"NaN", b'{"rate": Infinity}', b"[-Infinity]"])
    def test_non_standard_constants_rejected(self, contents):
        with pytest.raises(DecodeError) as exc_info:
            decode_metric_file("admission", "a.json", contents)

        assert "non-standard JSON constant" in exc_info.value.details["reason"]

    def test_invalid_utf8(self):
        with pytest.raises(DecodeError):
            decode_metric_file("admission", "a.json", b"\xff\xfe{}")


class TestMetricsFetcher:
    """Test cases for MetricsFetcher."""

    @pytest.mark.asyncio
    async def test_admission_bundle(self, fetcher, fake_store):
        """Object, array and empty file merge under their file keys."""
        bundle = await fetcher.fetch_and_merge("admission")

        assert bundle == {
            "admissions_by_type_60_days": {"a": 1},
            "admissions_by_type_by_month": [],
            "admissions_versus_releases_by_month": None,
        }
        assert sorted(name for _, name in fake_store.calls) == sorted([
            "admissions_by_type_60_days.json",
            "admissions_by_type_by_month.json",
            "admissions_versus_releases_by_month.json",
        ])
        assert all(bucket == TEST_BUCKET for bucket, _ in fake_store.calls)

    @pytest.mark.asyncio
    async def test_unknown_metric_type_makes_no_calls(self, fetcher, fake_store):
        with pytest.raises(ConfigurationError):
            await fetcher.fetch_and_merge("unknown_type")

        assert fake_store.download_count() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error_cls", [
        ObjectNotFoundError,
        ObjectPermissionError,
        ObjectStoreTransientError,
    ])
    async def test_download_failure_fails_whole_bundle(self, fetcher, fake_store, error_cls):
        cause = error_cls(TEST_BUCKET, "admissions_by_type_by_month.json")
        fake_store.objects["admissions_by_type_by_month.json"] = cause

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_and_merge("admission")

        assert exc_info.value.file_name == "admissions_by_type_by_month.json"
        assert exc_info.value.metric_type == "admission"
        assert exc_info.value.cause is cause

    @pytest.mark.asyncio
    async def test_missing_object_is_fetch_error(self, fetcher, fake_store):
        del fake_store.objects["revocations_by_month.json"]

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_and_merge("revocation")

        assert isinstance(exc_info.value.cause, ObjectNotFoundError)

    @pytest.mark.asyncio
    async def test_unexpected_store_exception_is_fetch_error(self, fetcher, fake_store):
        fake_store.objects["revocations_by_month.json"] = RuntimeError("socket closed")

        with pytest.raises(FetchError):
            await fetcher.fetch_and_merge("revocation")

    @pytest.mark.asyncio
    async def test_decode_failure_fails_whole_bundle(self, fetcher, fake_store):
        fake_store.objects["revocations_by_race_60_days.json"] = "{truncated"

        with pytest.raises(DecodeError) as exc_info:
            await fetcher.fetch_and_merge("revocation")

        assert exc_info.value.file_name == "revocations_by_race_60_days.json"

    @pytest.mark.asyncio
    async def test_download_timeout(self, catalog):
        store = FakeObjectStore(sample_objects(), delay=5.0)
        fetcher = MetricsFetcher(store, catalog, TEST_BUCKET, download_timeout=0.01)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_and_merge("admission")

        assert isinstance(exc_info.value.cause, TimeoutError)

    @pytest.mark.asyncio
    async def test_downloads_run_concurrently(self, catalog):
        """All downloads of a metric type are in flight at the same time."""
        store = FakeObjectStore(sample_objects())
        store.gate = asyncio.Event()
        fetcher = MetricsFetcher(store, catalog, TEST_BUCKET, download_timeout=1.0)

        task = asyncio.create_task(fetcher.fetch_and_merge("reincarceration"))
        for _ in range(10):
            await asyncio.sleep(0)

        assert store.download_count() == 4
        store.gate.set()
        bundle = await task
        assert set(bundle) == {
            "reincarceration_rate_by_release_facility",
            "reincarceration_rate_by_stay_length",
            "reincarceration_rate_by_transitional_facility",
            "reincarcerations_by_month",
        }
