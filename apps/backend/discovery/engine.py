"""
Public facade over the discovery pipeline.

The engine owns the observable state. Every change produces a new immutable
``DiscoveryState`` that is pushed synchronously to each subscriber:

    Idle -> Phase1Loading -> Phase1Partial -> Phase2Loading -> Complete

Any loading phase can end in Error on an unexpected, non-adapter failure.
Configuration problems also land in Error, before any network call.

A new ``discover()`` while loading starts over under a fresh epoch. The older
request keeps running and is dropped by the orchestrator's staleness check.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, FrozenSet, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from discovery.adapters.base import SourceAdapter
from discovery.cache import EnrichmentCache, ResultCache
from discovery.config import EngineConfig
from discovery.constants import MAX_SEARCH_RADIUS_M, MIN_SEARCH_RADIUS_M
from discovery.dedup import Deduplicator
from discovery.exceptions import (
    AllProvidersDisabled,
    AllSourcesFailed,
    AllTypesDisabled,
    ConfigurationError,
    DiscoveryError,
    UnexpectedFailure,
)
from discovery.executors.base import RetryPolicy, Sleeper
from discovery.metrics import DiscoveryMetricsCollector
from discovery.models import (
    POI,
    DiscoveryPhase,
    DiscoveryRequest,
    DiscoverySettings,
    DiscoveryState,
    Origin,
    PlaceEnrichment,
    POICategory,
    POISource,
    POIType,
    ProviderStatusSnapshot,
)
from discovery.orchestrator import DiscoveryOutcome, FetchOrchestrator
from discovery.ranker import Ranker
from discovery.utils.languages import language_for_country
from observability.logging import discovery_log_context
from observability.metrics import discovery_requests_total
from observability.sentry_config import capture_exception

logger = logging.getLogger(__name__)

StateListener = Callable[[DiscoveryState], None]


class EnrichmentProvider(Protocol):
    async def fetch_place_details(self, place_id: str) -> PlaceEnrichment:
        ...


class AggregationEngine:
    def __init__(
        self,
        adapters: Mapping[POISource, SourceAdapter],
        *,
        deduplicator: Optional[Deduplicator] = None,
        ranker: Optional[Ranker] = None,
        cache: Optional[ResultCache] = None,
        enrichment_cache: Optional[EnrichmentCache] = None,
        enrichment_provider: Optional[EnrichmentProvider] = None,
        config: Optional[EngineConfig] = None,
        settings_provider: Optional[Callable[[], DiscoverySettings]] = None,
        metrics: Optional[DiscoveryMetricsCollector] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.config = config or EngineConfig()
        self.adapters = dict(adapters)
        self.deduplicator = deduplicator or Deduplicator(
            proximity_threshold_m=self.config.proximity_threshold_m,
            name_similarity=self.config.name_similarity,
        )
        self.ranker = ranker or Ranker(display_limit=self.config.display_limit)
        self.cache = cache if cache is not None else ResultCache(self.config.cache_capacity)
        self.enrichment_cache = enrichment_cache if enrichment_cache is not None else EnrichmentCache()
        if enrichment_provider is None:
            google = self.adapters.get(POISource.GOOGLE_PLACES)
            if google is not None and hasattr(google, "fetch_place_details"):
                enrichment_provider = google
        self.enrichment_provider = enrichment_provider
        self._settings_provider = settings_provider or DiscoverySettings

        self.orchestrator = FetchOrchestrator(
            self.adapters,
            self.deduplicator,
            self.ranker,
            self.cache,
            retry_policy=RetryPolicy(
                max_attempts=self.config.max_attempts,
                radius_step_m=self.config.radius_step_m,
                min_radius_m=self.config.min_radius_m,
                base_delay_s=self.config.retry_base_delay_s,
                timeout_s=self.config.adapter_timeout_s,
            ),
            phase_one_source=self.config.phase_one_source,
            metrics=metrics,
            sleep=sleep,
        )

        self._listeners: List[StateListener] = []
        self._state = DiscoveryState()
        self._radius_override: Optional[int] = None
        self._last_call: Optional[Tuple[Origin, POICategory, Optional[DiscoverySettings]]] = None

    # -- observation --------------------------------------------------------

    @property
    def state(self) -> DiscoveryState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self, state: DiscoveryState) -> DiscoveryState:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener raised; continuing with remaining listeners")
        return state

    def _snapshot(
        self,
        phase: DiscoveryPhase,
        *,
        origin: Optional[Origin],
        category: POICategory,
        pois: Sequence[POI] = (),
        statuses: Sequence[ProviderStatusSnapshot] = (),
        error: Optional[DiscoveryError] = None,
        from_cache: bool = False,
    ) -> DiscoveryState:
        type_filter = self._state.type_filter
        search_text = self._state.search_text
        filtered = self.ranker.filter_view(pois, type_filter, search_text)
        return DiscoveryState(
            phase=phase,
            epoch=self.orchestrator.current_epoch,
            origin=origin,
            category=category,
            pois=tuple(pois),
            filtered_pois=tuple(filtered),
            display_pois=tuple(self.ranker.display(filtered)),
            error=error.to_error_info() if error is not None else None,
            successful_sources=sum(1 for s in statuses if s.succeeded),
            total_sources=len(statuses),
            provider_statuses=tuple(statuses),
            type_filter=type_filter,
            search_text=search_text,
            from_cache=from_cache,
        )

    def _refilter(self, type_filter: FrozenSet[POIType], search_text: str) -> DiscoveryState:
        current = self._state
        filtered = self.ranker.filter_view(current.pois, type_filter, search_text)
        return self._publish(
            current.model_copy(
                update={
                    "type_filter": type_filter,
                    "search_text": search_text,
                    "filtered_pois": tuple(filtered),
                    "display_pois": tuple(self.ranker.display(filtered)),
                }
            )
        )

    # -- discovery ----------------------------------------------------------

    def _build_request(
        self,
        epoch: int,
        origin: Origin,
        category: POICategory,
        settings: DiscoverySettings,
        force_refresh: bool,
    ) -> DiscoveryRequest:
        enabled_sources = settings.sources_for(category)
        sources = tuple(
            sorted(
                (s for s in enabled_sources if s in self.adapters),
                key=lambda s: (s != self.config.phase_one_source, -s.priority),
            )
        )
        if not sources:
            raise AllProvidersDisabled(
                category,
                detail={
                    "enabled_sources": sorted(s.value for s in settings.enabled_sources),
                    "configured_sources": sorted(s.value for s in self.adapters),
                },
            )
        enabled_types = settings.types_for(category)
        if not enabled_types:
            raise AllTypesDisabled(category)

        return DiscoveryRequest(
            epoch=epoch,
            origin=origin,
            category=category,
            sources=sources,
            enabled_types=enabled_types,
            type_order=settings.type_order,
            radius_m=self._radius_override or settings.search_radius_m,
            force_refresh=force_refresh,
            language=language_for_country(origin.country) if settings.use_local_content else None,
        )

    def _on_phase(
        self,
        request: DiscoveryRequest,
        phase: DiscoveryPhase,
        pois: List[POI],
        statuses: Tuple[ProviderStatusSnapshot, ...],
    ) -> None:
        if not self.orchestrator.is_current(request.epoch):
            return
        self._publish(
            self._snapshot(
                phase, origin=request.origin, category=request.category, pois=pois, statuses=statuses
            )
        )

    async def discover(
        self,
        origin: Origin,
        category: POICategory = POICategory.ATTRACTION,
        force_refresh: bool = False,
        settings: Optional[DiscoverySettings] = None,
    ) -> Optional[DiscoveryState]:
        """Discover POIs around ``origin``.

        Returns the final state published for this request, or None when a
        newer request superseded it before it finished.
        """
        self._last_call = (origin, category, settings)
        resolved = settings or self._settings_provider()
        epoch = self.orchestrator.issue_epoch()

        with discovery_log_context(epoch=epoch, origin_id=origin.id, category=category.value):
            try:
                request = self._build_request(epoch, origin, category, resolved, force_refresh)
            except ConfigurationError as e:
                logger.warning(
                    f"Discovery not started: {e.message}",
                    extra={"event": "discovery_config_error", "error": e.code, "origin_id": origin.id},
                )
                discovery_requests_total.labels(category=category.value, outcome="config_error").inc()
                return self._publish(
                    self._snapshot(DiscoveryPhase.ERROR, origin=origin, category=category, error=e)
                )

            if not force_refresh:
                cached = self.cache.get(request.cache_key)
                if cached is not None:
                    logger.info(
                        f"Serving {len(cached)} cached POIs for {origin.id}/{category.value}",
                        extra={"event": "discovery_cache_hit", "origin_id": origin.id},
                    )
                    discovery_requests_total.labels(category=category.value, outcome="cached").inc()
                    ranked = self.ranker.rank(cached, request.enabled_types, request.type_order)
                    return self._publish(
                        self._snapshot(
                            DiscoveryPhase.COMPLETE,
                            origin=origin,
                            category=category,
                            pois=ranked,
                            from_cache=True,
                        )
                    )

            self._publish(self._snapshot(DiscoveryPhase.PHASE1_LOADING, origin=origin, category=category))
            try:
                outcome = await self.orchestrator.run(request, self._on_phase)
            except Exception as e:
                return self._fail(request, e)

            if outcome is None:
                discovery_requests_total.labels(category=category.value, outcome="stale").inc()
                return None
            return self._complete(outcome)

    def _complete(self, outcome: DiscoveryOutcome) -> DiscoveryState:
        request = outcome.request
        error: Optional[DiscoveryError] = None
        if outcome.all_sources_failed:
            error = AllSourcesFailed(
                detail={"sources": [s.source.value for s in outcome.statuses]}
            )
        discovery_requests_total.labels(
            category=request.category.value,
            outcome="all_failed" if error else "complete",
        ).inc()
        return self._publish(
            self._snapshot(
                DiscoveryPhase.COMPLETE,
                origin=request.origin,
                category=request.category,
                pois=outcome.pois,
                statuses=outcome.statuses,
                error=error,
            )
        )

    def _fail(self, request: DiscoveryRequest, exc: Exception) -> Optional[DiscoveryState]:
        failure = UnexpectedFailure(exc)
        logger.exception(
            "Discovery aborted by unexpected failure",
            extra={"event": "discovery_error", "origin_id": request.origin.id, "epoch": request.epoch},
        )
        capture_exception(exc, tags={"category": request.category.value}, extra={"epoch": request.epoch})
        discovery_requests_total.labels(category=request.category.value, outcome="error").inc()
        if not self.orchestrator.is_current(request.epoch):
            return None
        return self._publish(
            self._snapshot(
                DiscoveryPhase.ERROR,
                origin=request.origin,
                category=request.category,
                error=failure,
            )
        )

    async def retry(self) -> Optional[DiscoveryState]:
        """Re-issue the last discovery, bypassing the cache."""
        if self._last_call is None:
            logger.warning("retry() called before any discovery")
            return None
        origin, category, settings = self._last_call
        return await self.discover(origin, category, force_refresh=True, settings=settings)

    def clear(self) -> DiscoveryState:
        """Back to Idle. Drops current results and supersedes in-flight work; keeps the cache."""
        self.orchestrator.issue_epoch()
        self._last_call = None
        return self._publish(
            DiscoveryState(epoch=self.orchestrator.current_epoch, category=self._state.category)
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    # -- views over the last ranked result ------------------------------------

    def update_type_filter(self, types: Iterable[POIType]) -> DiscoveryState:
        """Show only these types. An empty set shows everything."""
        return self._refilter(frozenset(types), self._state.search_text)

    def update_search_text(self, text: str) -> DiscoveryState:
        return self._refilter(self._state.type_filter, text or "")

    def clear_filters(self) -> DiscoveryState:
        return self._refilter(frozenset(), "")

    def update_search_radius(self, radius_m: Optional[int]) -> None:
        """Temporarily override the settings radius for later discoveries. None restores it."""
        if radius_m is not None and not MIN_SEARCH_RADIUS_M <= radius_m <= MAX_SEARCH_RADIUS_M:
            raise ValueError(
                f"radius_m must be between {MIN_SEARCH_RADIUS_M} and {MAX_SEARCH_RADIUS_M}"
            )
        self._radius_override = radius_m

    def find_by_id(self, poi_id: str) -> Optional[POI]:
        for poi in self._state.pois:
            if poi.id == poi_id:
                return poi
        return None

    # -- enrichment -----------------------------------------------------------

    async def fetch_enrichment(self, poi: POI) -> POI:
        """Merge secondary place details into ``poi``. Returns it unchanged on failure."""
        if not poi.place_id or self.enrichment_provider is None:
            return poi

        enrichment = self.enrichment_cache.get(poi.place_id)
        if enrichment is None:
            try:
                enrichment = await self.enrichment_provider.fetch_place_details(poi.place_id)
            except Exception as e:
                logger.warning(
                    f"Enrichment failed for {poi.id}: {type(e).__name__}: {e}",
                    extra={"event": "enrichment_error", "poi_id": poi.id},
                )
                return poi
            self.enrichment_cache.put(poi.place_id, enrichment)
        return poi.merge_enrichment(enrichment)

    async def aclose(self) -> None:
        for adapter in self.adapters.values():
            await adapter.aclose()
