"""
Prometheus metrics collection for the POI discovery engine.

Provides RED metrics (Rate, Errors, Duration) per source adapter plus
cache effectiveness counters.
"""

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    REGISTRY,
)

# Use the default registry
metrics_registry = REGISTRY

# Discovery requests
discovery_requests_total = Counter(
    "discovery_requests_total",
    "Total discovery requests by outcome",
    ["category", "outcome"],  # outcome: complete, cached, config_error, all_failed, error, stale
    registry=metrics_registry,
)

discovery_stale_discards_total = Counter(
    "discovery_stale_discards_total",
    "Phase results dropped because a newer discovery superseded them",
    registry=metrics_registry,
)

# Source Adapter Metrics
discovery_provider_duration_seconds = Histogram(
    "discovery_provider_duration_seconds",
    "Source adapter call duration in seconds, retries included",
    ["source"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
    registry=metrics_registry,
)

discovery_provider_errors_total = Counter(
    "discovery_provider_errors_total",
    "Total failed source adapter attempts",
    ["source", "error_type"],
    registry=metrics_registry,
)

discovery_provider_retries_total = Counter(
    "discovery_provider_retries_total",
    "Total source adapter retries",
    ["source"],
    registry=metrics_registry,
)

discovery_results_count = Histogram(
    "discovery_results_count",
    "Number of POIs returned by a source adapter",
    ["source"],
    buckets=[0, 1, 5, 10, 20, 50, 100],
    registry=metrics_registry,
)

# Cache Metrics
cache_hits_total = Counter(
    "cache_hits_total",
    "Total cache hits",
    ["cache_type"],  # results, enrichment
    registry=metrics_registry,
)

cache_misses_total = Counter(
    "cache_misses_total",
    "Total cache misses",
    ["cache_type"],
    registry=metrics_registry,
)

cache_entries = Gauge(
    "cache_entries",
    "Current number of cache entries",
    ["cache_type"],
    registry=metrics_registry,
)
