"""Prometheus metrics definitions for the workbench.

- Engine boot metrics (attempts by status, duration)
- Pack load metrics (loads by status, views registered, duration)
- Query metrics (executions by status, duration, rows returned)
"""

from prometheus_client import Counter, Histogram

# =============================================================================
# Engine Metrics
# =============================================================================

ENGINE_BOOTS = Counter(
    "discogs_workbench_engine_boots_total",
    "Total number of engine boot attempts",
    ["status"]
)

ENGINE_BOOT_DURATION = Histogram(
    "discogs_workbench_engine_boot_duration_seconds",
    "Engine boot duration in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0]
)

# =============================================================================
# Pack Load Metrics
# =============================================================================

PACK_LOADS = Counter(
    "discogs_workbench_pack_loads_total",
    "Total number of dataset pack loads",
    ["status"]
)

PACK_LOAD_DURATION = Histogram(
    "discogs_workbench_pack_load_duration_seconds",
    "Dataset pack load duration in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0]
)

VIEWS_REGISTERED = Counter(
    "discogs_workbench_views_registered_total",
    "Total number of pack views created",
    ["view"]
)

# =============================================================================
# Query Metrics
# =============================================================================

QUERY_COUNT = Counter(
    "discogs_workbench_queries_total",
    "Total number of queries executed",
    ["status"]  # success, error, rejected
)

QUERY_DURATION = Histogram(
    "discogs_workbench_query_duration_seconds",
    "Query execution duration in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0]
)

QUERY_ROWS = Histogram(
    "discogs_workbench_query_rows",
    "Rows returned by a query before display truncation",
    buckets=[0, 1, 10, 50, 100, 1000, 10000, 100000]
)
