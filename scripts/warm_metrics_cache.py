#!/usr/bin/env python3
"""
Fetch every configured metric bundle once and report the outcome.

Runs the same fetch-and-merge path the dashboard service uses on a cache
miss, so it doubles as a pre-flight check that every file in the bucket
downloads and decodes before the service is pointed at it.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared.config import get_config
from shared.errors import DashboardException
from shared.logging import configure_logging
from service_dashboard.app.cache import MetricsCache, MetricsFetcher
from service_dashboard.app.catalog import load_catalog
from service_dashboard.app.storage import create_object_store


async def warm(
    *,
    metric_types: Optional[List[str]],
    overrides: Dict[str, Any],
) -> Dict[str, Any]:
    """Fetch the requested metric types concurrently and return a summary."""
    config = get_config("dashboard-warm", 0, **overrides)
    configure_logging("dashboard-warm", config.log_level)

    catalog = load_catalog(config.metric_files_path, suffix=config.metric_file_suffix)
    store = create_object_store(config)
    cache = MetricsCache(
        MetricsFetcher(store, catalog, config.metrics_bucket, download_timeout=config.metrics_download_timeout_seconds),
        ttl_seconds=config.metrics_cache_ttl_seconds,
    )

    planned = metric_types or catalog.metric_types()
    summary: Dict[str, Any] = {
        "bucket": config.metrics_bucket,
        "backend": store.name,
        "planned": planned,
        "warmed": {},
        "errors": [],
    }

    try:
        results = await asyncio.gather(
            *(cache.fetch_metrics(metric_type) for metric_type in planned),
            return_exceptions=True,
        )
    finally:
        await store.close()

    for metric_type, outcome in zip(planned, results):
        if isinstance(outcome, DashboardException):
            summary["errors"].append({
                "metric_type": metric_type,
                "code": outcome.code,
                "message": outcome.message,
                "details": outcome.details,
            })
            continue
        if isinstance(outcome, BaseException):
            raise outcome
        summary["warmed"][metric_type] = sorted(outcome.keys())

    return summary


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch and validate dashboard metric bundles.")
    parser.add_argument("metric_types", nargs="*", help="Metric types to fetch (default: all configured)")
    parser.add_argument("--bucket", default=None, help="Override DASHBOARD_METRICS_BUCKET")
    parser.add_argument("--backend", choices=["gcs", "local"], default=None, help="Override DASHBOARD_OBJECT_STORE_BACKEND")
    parser.add_argument("--local-root", default=None, help="Root directory for the local backend")
    parser.add_argument("--metric-files", type=Path, default=None, help="YAML metric type -> file table")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write JSON summary")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    overrides: Dict[str, Any] = {}
    if args.bucket:
        overrides["metrics_bucket"] = args.bucket
    if args.backend:
        overrides["object_store_backend"] = args.backend
    if args.local_root:
        overrides["object_store_local_root"] = args.local_root
    if args.metric_files:
        overrides["metric_files_path"] = str(args.metric_files)

    try:
        summary = asyncio.run(warm(metric_types=args.metric_types or None, overrides=overrides))
    except KeyboardInterrupt:
        return 130
    except DashboardException as exc:
        print(f"[metrics-warm] failed: {exc.message}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))

    if args.output:
        args.output.write_text(json.dumps(summary, indent=2))

    return 1 if summary["errors"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
