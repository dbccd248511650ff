"""Prometheus metrics for the event catalog service."""
from prometheus_client import Counter, Gauge, Histogram, generate_latest

http_requests_total = Counter(
    'event_catalog_http_requests_total',
    'Total HTTP requests handled',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'event_catalog_http_request_duration_seconds',
    'HTTP request latency',
    ['method', 'endpoint'],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0)
)

catalog_mutations_total = Counter(
    'event_catalog_mutations_total',
    'Catalog mutations by operation and outcome',
    ['operation', 'outcome']  # outcome: success, validation_error, not_found, upstream_error, storage_error, timeout
)

catalog_events = Gauge(
    'event_catalog_events',
    'Number of events in the catalog after the last read or write'
)

catalog_corrupt_reads_total = Counter(
    'event_catalog_corrupt_reads_total',
    'Catalog reads that degraded to an empty list',
    ['reason']
)

asset_deletions_total = Counter(
    'event_catalog_asset_deletions_total',
    'Blob store deletions by outcome',
    ['outcome']  # deleted, missing, skipped, failed
)


def get_metrics() -> bytes:
    """Render the default registry in the Prometheus text format."""
    return generate_latest()
