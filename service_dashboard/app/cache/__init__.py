"""
Metric bundle caching package.

MetricsCache keeps one bundle per metric type in memory with an absolute
TTL; MetricsFetcher produces bundles from the object store.
"""

from .fetcher import MetricBundle, MetricsFetcher, decode_metric_file
from .metrics_cache import CacheEntry, MetricsCache

__all__ = ["CacheEntry", "MetricBundle", "MetricsCache", "MetricsFetcher", "decode_metric_file"]
