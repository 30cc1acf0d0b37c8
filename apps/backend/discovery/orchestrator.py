"""
Phased, retried, parallel fetching against the source adapters.

Phase 1 runs the designated fast source alone so a partial list can be shown
early. Phase 2 fans out to every remaining source and joins once all of them
have settled. Each request carries an epoch; only the latest issued epoch may
publish. Superseded requests run to completion but their results are
dropped at the next publish point. This is cooperative, best-effort
cancellation: work already spent on a stale request is not reclaimed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from discovery.adapters.base import SourceAdapter
from discovery.cache import ResultCache
from discovery.dedup import Deduplicator
from discovery.executors.base import (
    AdapterRun,
    RetryPolicy,
    Sleeper,
    run_adapter_with_retry,
    run_adapters_concurrently,
)
from discovery.metrics import (
    DiscoveryMetrics,
    DiscoveryMetricsCollector,
    log_discovery_start,
    log_provider_result,
)
from discovery.models import (
    POI,
    DiscoveryPhase,
    DiscoveryRequest,
    POISource,
    ProviderStatusSnapshot,
)
from discovery.ranker import Ranker
from observability.metrics import discovery_stale_discards_total

logger = logging.getLogger(__name__)

PhasePublisher = Callable[
    [DiscoveryRequest, DiscoveryPhase, List[POI], Tuple[ProviderStatusSnapshot, ...]], None
]


@dataclass(frozen=True)
class DiscoveryOutcome:
    """Final, ranked result of one request that was still current."""

    request: DiscoveryRequest
    pois: Tuple[POI, ...]
    statuses: Tuple[ProviderStatusSnapshot, ...]

    @property
    def successful_sources(self) -> int:
        return sum(1 for s in self.statuses if s.succeeded)

    @property
    def total_sources(self) -> int:
        return len(self.statuses)

    @property
    def all_sources_failed(self) -> bool:
        return bool(self.statuses) and self.successful_sources == 0


class FetchOrchestrator:
    def __init__(
        self,
        adapters: Mapping[POISource, SourceAdapter],
        deduplicator: Deduplicator,
        ranker: Ranker,
        cache: ResultCache,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        phase_one_source: POISource = POISource.WIKIPEDIA,
        metrics: Optional[DiscoveryMetricsCollector] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.adapters = dict(adapters)
        self.deduplicator = deduplicator
        self.ranker = ranker
        self.cache = cache
        self.retry_policy = retry_policy or RetryPolicy()
        self.phase_one_source = phase_one_source
        self.metrics = metrics or DiscoveryMetricsCollector()
        self._sleep = sleep
        self._epoch = 0

    @property
    def current_epoch(self) -> int:
        return self._epoch

    def issue_epoch(self) -> int:
        """Issue the next epoch and make it current, superseding in-flight work."""
        self._epoch += 1
        return self._epoch

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    def plan(self, sources: Sequence[POISource]) -> Tuple[Optional[POISource], List[POISource]]:
        """Split the request's sources into the phase-one source and the rest."""
        usable = [s for s in sources if s in self.adapters]
        phase_one = self.phase_one_source if self.phase_one_source in usable else None
        phase_two = [s for s in usable if s != phase_one]
        return phase_one, phase_two

    def _discard(self, request: DiscoveryRequest, metrics: DiscoveryMetrics, stage: str) -> None:
        metrics.stale = True
        discovery_stale_discards_total.inc()
        logger.info(
            f"Dropping {stage} results for superseded epoch {request.epoch}",
            extra={
                "event": "stale_discard",
                "epoch": request.epoch,
                "current_epoch": self._epoch,
                "origin_id": request.origin.id,
                "stage": stage,
            },
        )

    def _record(self, metrics: DiscoveryMetrics, run: AdapterRun) -> None:
        metrics.record_provider(run.status)
        log_provider_result(run.status)

    def _merge_and_rank(
        self, request: DiscoveryRequest, collected: List[List[POI]]
    ) -> Tuple[List[POI], List[POI]]:
        merged = self.deduplicator.deduplicate_sources(collected)
        ranked = self.ranker.rank(merged, request.enabled_types, request.type_order)
        return merged, ranked

    async def run(
        self, request: DiscoveryRequest, publish: PhasePublisher
    ) -> Optional[DiscoveryOutcome]:
        """Run a request to completion. Returns None when it was superseded."""
        phase_one, phase_two = self.plan(request.sources)
        statuses: List[ProviderStatusSnapshot] = []
        collected: List[List[POI]] = []

        log_discovery_start(
            request.origin.id,
            request.category.value,
            request.epoch,
            [s.value for s in ([phase_one] if phase_one else []) + phase_two],
        )

        with self.metrics.track_discovery(
            origin_id=request.origin.id,
            category=request.category.value,
            epoch=request.epoch,
            force_refresh=request.force_refresh,
        ) as metrics:
            if phase_one is not None:
                run = await run_adapter_with_retry(
                    self.adapters[phase_one],
                    request.origin,
                    request.radius_m,
                    request.enabled_types,
                    language=request.language,
                    policy=self.retry_policy,
                    sleep=self._sleep,
                )
                if not self.is_current(request.epoch):
                    self._discard(request, metrics, "phase1")
                    return None
                self._record(metrics, run)
                statuses.append(run.status)
                collected.append(run.pois)

            _, partial = self._merge_and_rank(request, collected)
            publish(request, DiscoveryPhase.PHASE1_PARTIAL, partial, tuple(statuses))
            publish(request, DiscoveryPhase.PHASE2_LOADING, partial, tuple(statuses))

            if phase_two:
                runs = await run_adapters_concurrently(
                    [self.adapters[s] for s in phase_two],
                    request.origin,
                    request.radius_m,
                    request.enabled_types,
                    language=request.language,
                    policy=self.retry_policy,
                    sleep=self._sleep,
                )
                if not self.is_current(request.epoch):
                    self._discard(request, metrics, "phase2")
                    return None
                for run in runs:
                    self._record(metrics, run)
                    statuses.append(run.status)
                    collected.append(run.pois)

            merged, ranked = self._merge_and_rank(request, collected)
            metrics.record_results(
                total=sum(len(pois) for pois in collected),
                unique=len(merged),
                ranked=len(ranked),
            )

            outcome = DiscoveryOutcome(request=request, pois=tuple(ranked), statuses=tuple(statuses))
            if outcome.all_sources_failed:
                logger.warning(
                    "Every source failed, result not cached",
                    extra={"origin_id": request.origin.id, "category": request.category.value},
                )
            else:
                self.cache.put(request.cache_key, ranked)
            return outcome
