"""
Read-through metric bundle cache with a fixed TTL.

Entries expire a fixed time after the fetch that produced them; reads never
extend that. At most one fetch per metric type runs at a time, and callers
arriving during a fetch share its outcome.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from shared.errors import DashboardException
from shared.logging import get_logger
from ..catalog import MetricFileCatalog
from .fetcher import MetricBundle, MetricsFetcher

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL_SECONDS = 60 * 60


@dataclass(frozen=True)
class CacheEntry:
    """A metric bundle and the window it may be served in."""

    metric_type: str
    bundle: MetricBundle
    fetched_at: float
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


class MetricsCache:
    """Serves metric bundles, fetching each metric type at most once per TTL window."""

    def __init__(
        self,
        fetcher: MetricsFetcher,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        serve_stale_on_error: bool = False,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self.serve_stale_on_error = serve_stale_on_error
        self.metrics = metrics
        self.logger = get_logger("dashboard.metrics_cache")
        self._clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, "asyncio.Task[MetricBundle]"] = {}

        self.stats = {
            "hits": 0,
            "misses": 0,
            "coalesced": 0,
            "refreshes": 0,
            "failures": 0,
            "stale_served": 0,
        }

    @property
    def catalog(self) -> MetricFileCatalog:
        return self.fetcher.catalog

    async def fetch_metrics(self, metric_type: str) -> MetricBundle:
        """Return the bundle for ``metric_type``, fetching it on a miss.

        The returned mapping is shared with other callers and must not be
        mutated.
        """
        # Unknown types fail here, before any object store traffic
        self.catalog.files_for(metric_type)

        entry = self._entries.get(metric_type)
        if entry is not None and entry.is_fresh(self._clock()):
            self._record_request(metric_type, "hit")
            return entry.bundle

        task = self._inflight.get(metric_type)
        if task is None:
            self._record_request(metric_type, "miss")
            task = asyncio.get_running_loop().create_task(self._refresh(metric_type))
            task.add_done_callback(_retrieve_exception)
            self._inflight[metric_type] = task
        else:
            self._record_request(metric_type, "coalesced")
            self.logger.debug("Awaiting in-flight fetch", metric_type=metric_type)

        # A cancelled caller must not cancel the fetch other callers wait on
        return await asyncio.shield(task)

    async def fetch_admission_metrics(self) -> MetricBundle:
        return await self.fetch_metrics("admission")

    async def fetch_reincarceration_metrics(self) -> MetricBundle:
        return await self.fetch_metrics("reincarceration")

    async def fetch_revocation_metrics(self) -> MetricBundle:
        return await self.fetch_metrics("revocation")

    async def _refresh(self, metric_type: str) -> MetricBundle:
        previous = self._entries.get(metric_type)
        try:
            if self.metrics:
                with self.metrics.time_operation("metrics_fetch_duration_seconds", metric_type=metric_type):
                    bundle = await self.fetcher.fetch_and_merge(metric_type)
            else:
                bundle = await self.fetcher.fetch_and_merge(metric_type)
        except DashboardException as exc:
            self.stats["failures"] += 1
            self._record_failure(metric_type, exc.code)
            if self.serve_stale_on_error and previous is not None:
                self.stats["stale_served"] += 1
                self.logger.warning(
                    "Refresh failed, serving stale metrics",
                    metric_type=metric_type,
                    error=exc.message,
                    stale_for_seconds=round(self._clock() - previous.expires_at, 3),
                )
                return previous.bundle
            self.logger.error(
                "Metric fetch failed",
                metric_type=metric_type,
                code=exc.code,
                error=exc.message,
                details=exc.details,
            )
            raise
        except Exception as exc:
            self.stats["failures"] += 1
            self._record_failure(metric_type, type(exc).__name__)
            raise
        finally:
            if self._inflight.get(metric_type) is asyncio.current_task():
                del self._inflight[metric_type]

        now = self._clock()
        self._entries[metric_type] = CacheEntry(
            metric_type=metric_type,
            bundle=bundle,
            fetched_at=now,
            expires_at=now + self.ttl_seconds,
        )
        self.stats["refreshes"] += 1
        self.logger.info(
            "Cached metrics",
            metric_type=metric_type,
            files=len(bundle),
            ttl_seconds=self.ttl_seconds,
        )
        return bundle

    def clear(self) -> None:
        """Drop every cached entry. In-flight fetches still install their result."""
        self._entries.clear()

    def get_entry(self, metric_type: str) -> Optional[CacheEntry]:
        return self._entries.get(metric_type)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        total_requests = self.stats["hits"] + self.stats["misses"] + self.stats["coalesced"]
        hit_rate = (self.stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        entries: Dict[str, Dict[str, Any]] = {}
        for metric_type, entry in self._entries.items():
            entries[metric_type] = {
                "files": len(entry.bundle),
                "age_seconds": round(now - entry.fetched_at, 3),
                "expires_in_seconds": round(entry.expires_at - now, 3),
                "fresh": entry.is_fresh(now),
            }

        in_flight: List[str] = sorted(self._inflight)
        return {
            **self.stats,
            "total_requests": total_requests,
            "hit_rate_percent": round(hit_rate, 1),
            "ttl_seconds": self.ttl_seconds,
            "serve_stale_on_error": self.serve_stale_on_error,
            "entries": entries,
            "in_flight": in_flight,
        }

    def _record_request(self, metric_type: str, result: str) -> None:
        key = {"hit": "hits", "miss": "misses", "coalesced": "coalesced"}[result]
        self.stats[key] += 1
        if self.metrics:
            self.metrics.increment_counter(
                "metrics_cache_requests_total", metric_type=metric_type, result=result
            )

    def _record_failure(self, metric_type: str, error: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(
                "metrics_fetch_failures_total", metric_type=metric_type, error=error
            )


def _retrieve_exception(task: asyncio.Task) -> None:
    # Every waiter may have been cancelled; mark the outcome as observed.
    if not task.cancelled():
        task.exception()
