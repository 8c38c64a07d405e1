"""
Dashboard metrics service.

Exposes the cached metric bundles consumed by the dashboard views.
"""

from typing import Any, Callable, Dict, Optional

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from .cache import MetricsCache, MetricsFetcher
from .catalog import MetricFileCatalog, load_catalog
from .storage import ObjectStore, create_object_store


SERVICE_NAME = "dashboard"
DEFAULT_PORT = 3001


class DashboardService(BaseService):
    """Dashboard metrics service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        store: Optional[ObjectStore] = None,
        catalog: Optional[MetricFileCatalog] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(SERVICE_NAME, DEFAULT_PORT, config=config or get_config(SERVICE_NAME, DEFAULT_PORT))

        self.catalog = catalog or load_catalog(
            self.config.metric_files_path, suffix=self.config.metric_file_suffix
        )
        self.store = store or create_object_store(self.config)
        self.fetcher = MetricsFetcher(
            self.store,
            self.catalog,
            self.config.metrics_bucket,
            download_timeout=self.config.metrics_download_timeout_seconds,
        )
        cache_kwargs: Dict[str, Any] = {}
        if clock is not None:
            cache_kwargs["clock"] = clock
        self.metrics_cache = MetricsCache(
            self.fetcher,
            ttl_seconds=self.config.metrics_cache_ttl_seconds,
            serve_stale_on_error=self.config.metrics_serve_stale_on_error,
            metrics=self.metrics,
            **cache_kwargs,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            self.metrics_cache.clear()
            await self.store.close()

        self.logger.info(
            "Dashboard service configured",
            bucket=self.config.metrics_bucket,
            backend=self.store.name,
            metric_types=self.catalog.metric_types(),
            ttl_seconds=self.config.metrics_cache_ttl_seconds,
        )

        self._setup_dashboard_routes()

    def _setup_dashboard_routes(self):
        """Set up metric routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Dashboard backend - Metrics Service",
                "version": "1.0.0",
                "metric_types": self.catalog.metric_types(),
            }

        @self.app.get("/api/admission")
        async def admission_metrics():
            """Admission metric bundle."""
            return await self.metrics_cache.fetch_admission_metrics()

        @self.app.get("/api/reincarceration")
        async def reincarceration_metrics():
            """Reincarceration metric bundle."""
            return await self.metrics_cache.fetch_reincarceration_metrics()

        @self.app.get("/api/revocation")
        async def revocation_metrics():
            """Revocation metric bundle."""
            return await self.metrics_cache.fetch_revocation_metrics()

        @self.app.get("/api/metrics/{metric_type}")
        async def metrics_by_type(metric_type: str):
            """Metric bundle for any configured metric type."""
            return await self.metrics_cache.fetch_metrics(metric_type)

        @self.app.get("/api/cache/stats")
        async def cache_stats():
            """Metric cache statistics."""
            return self.metrics_cache.get_stats()

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report the configured object store; storage is only touched on cache misses."""
        return {
            "object_store": {
                "backend": self.store.name,
                "bucket": self.config.metrics_bucket,
            },
            "metric_types": len(self.catalog),
        }


def create_app():
    """Create FastAPI application."""
    service = DashboardService()
    return service.app


if __name__ == "__main__":
    service = DashboardService()
    service.run()
