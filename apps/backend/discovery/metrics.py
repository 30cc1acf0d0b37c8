"""Discovery observability metrics.

Structured logging and per-request metrics for the discovery pipeline.
Metrics tracked:
- provider success rate: sources that answered vs. sources attempted
- result funnel: raw records, unique places after dedup, ranked after filters
- latency: end-to-end and per-source (retries included)
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from discovery.models import ProviderStatusSnapshot

logger = logging.getLogger("discovery.metrics")


@dataclass
class ProviderMetrics:
    """Metrics for a single source adapter run."""
    source: str
    status: str  # ok, error, timeout, exhausted
    result_count: int
    latency_ms: float
    attempts: int = 1
    error_message: Optional[str] = None


@dataclass
class DiscoveryMetrics:
    """Aggregated metrics for a single discovery request."""
    origin_id: str = ""
    category: str = ""
    epoch: int = 0
    force_refresh: bool = False
    from_cache: bool = False
    stale: bool = False
    total_results: int = 0
    unique_results: int = 0
    ranked_results: int = 0
    providers_called: int = 0
    providers_succeeded: int = 0
    providers_failed: int = 0
    total_latency_ms: float = 0.0
    provider_metrics: List[ProviderMetrics] = field(default_factory=list)

    def success_rate(self) -> float:
        """Calculate provider success rate."""
        if self.providers_called == 0:
            return 0.0
        return self.providers_succeeded / self.providers_called

    def has_results(self) -> bool:
        return self.ranked_results > 0

    def record_provider(self, status: ProviderStatusSnapshot) -> None:
        self.provider_metrics.append(
            ProviderMetrics(
                source=status.source.value,
                status=status.status,
                result_count=status.result_count,
                latency_ms=float(status.latency_ms),
                attempts=status.attempts,
                error_message=status.message,
            )
        )
        self.providers_called += 1
        if status.succeeded:
            self.providers_succeeded += 1
        else:
            self.providers_failed += 1

    def record_results(self, total: int, unique: int, ranked: int) -> None:
        self.total_results = total
        self.unique_results = unique
        self.ranked_results = ranked


class DiscoveryMetricsCollector:
    """Creates one ``DiscoveryMetrics`` per discovery and logs it on exit."""

    @contextmanager
    def track_discovery(
        self,
        origin_id: str = "",
        category: str = "",
        epoch: int = 0,
        force_refresh: bool = False,
    ) -> Iterator[DiscoveryMetrics]:
        metrics = DiscoveryMetrics(
            origin_id=origin_id, category=category, epoch=epoch, force_refresh=force_refresh
        )
        started = time.monotonic()
        try:
            yield metrics
        finally:
            metrics.total_latency_ms = (time.monotonic() - started) * 1000
            self._log_metrics(metrics)

    def _log_metrics(self, m: DiscoveryMetrics) -> None:
        provider_summary = [
            {
                "source": pm.source,
                "status": pm.status,
                "results": pm.result_count,
                "attempts": pm.attempts,
                "latency_ms": round(pm.latency_ms, 1),
            }
            for pm in m.provider_metrics
        ]

        log_data = {
            "event": "discovery_complete",
            "origin_id": m.origin_id,
            "category": m.category,
            "epoch": m.epoch,
            "force_refresh": m.force_refresh,
            "from_cache": m.from_cache,
            "stale": m.stale,
            "results": {
                "total": m.total_results,
                "unique": m.unique_results,
                "ranked": m.ranked_results,
            },
            "providers": {
                "called": m.providers_called,
                "succeeded": m.providers_succeeded,
                "failed": m.providers_failed,
                "success_rate": round(m.success_rate(), 2),
                "details": provider_summary,
            },
            "latency_ms": round(m.total_latency_ms, 1),
            "success": m.has_results(),
        }

        if m.stale:
            logger.info("Discovery superseded by a newer request", extra=log_data)
        elif m.providers_failed == m.providers_called and m.providers_called > 0:
            logger.error("Discovery failed - all sources failed", extra=log_data)
        elif m.providers_failed > 0:
            logger.warning("Discovery completed with source failures", extra=log_data)
        elif not m.has_results() and not m.from_cache:
            logger.warning("Discovery completed but no results", extra=log_data)
        else:
            logger.info("Discovery completed successfully", extra=log_data)


def log_discovery_start(origin_id: str, category: str, epoch: int, sources: List[str]) -> None:
    logger.info(
        "Discovery started",
        extra={
            "event": "discovery_start",
            "origin_id": origin_id,
            "category": category,
            "epoch": epoch,
            "sources_requested": sources,
        },
    )


def log_provider_result(status: ProviderStatusSnapshot) -> None:
    logger.info(
        f"Source {status.source.value} completed",
        extra={
            "event": "provider_complete",
            "source": status.source.value,
            "status": status.status,
            "result_count": status.result_count,
            "attempts": status.attempts,
            "latency_ms": status.latency_ms,
        },
    )
