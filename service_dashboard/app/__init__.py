"""
Dashboard metrics service package.

Serves the pre-computed metric files behind the dashboard charts. Files live
in object storage; they are pulled down per metric type, merged into one
bundle and cached in memory with a fixed TTL. The TTL is unaffected by reads,
so files are re-fetched at a predictable cadence and updates in the bucket
show up without hammering storage.

Structure:
- app.main: FastAPI app and routes.
- app.catalog: metric type to file list table.
- app.cache: read-through TTL cache and the fetch-and-merge step.
- app.storage: object store interface and backends.
- app.exceptions: errors surfaced to API callers.
"""
