"""
Observability infrastructure for the POI discovery engine.

Provides:
- Structured logging tagged with the running discovery
- Sentry error tracking for unexpected failures
- Prometheus metrics for providers, caches and discoveries
"""

from .logging import discovery_log_context, get_correlation_id
from .metrics import (
    metrics_registry,
    discovery_requests_total,
    discovery_provider_duration_seconds,
    discovery_provider_errors_total,
    discovery_provider_retries_total,
    discovery_results_count,
    discovery_stale_discards_total,
    cache_hits_total,
    cache_misses_total,
    cache_entries,
)

__all__ = [
    "discovery_log_context",
    "get_correlation_id",
    "metrics_registry",
    "discovery_requests_total",
    "discovery_provider_duration_seconds",
    "discovery_provider_errors_total",
    "discovery_provider_retries_total",
    "discovery_results_count",
    "discovery_stale_discards_total",
    "cache_hits_total",
    "cache_misses_total",
    "cache_entries",
]
