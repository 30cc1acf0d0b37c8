"""POI discovery: multi-source fetching, deduplication, ranking and caching."""

from .models import (
    DEFAULT_TYPE_ORDER,
    POI,
    DiscoveryErrorInfo,
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
from .exceptions import (
    AdapterError,
    AdapterFailure,
    AllProvidersDisabled,
    AllSourcesFailed,
    AllTypesDisabled,
    ConfigurationError,
    DiscoveryError,
    UnexpectedFailure,
)
from .adapters import SourceAdapter
from .cache import EnrichmentCache, ResultCache
from .config import EngineConfig, ProviderConfig
from .dedup import Deduplicator
from .engine import AggregationEngine
from .orchestrator import DiscoveryOutcome, FetchOrchestrator
from .ranker import Ranker

__all__ = [
    "DEFAULT_TYPE_ORDER",
    "POI",
    "DiscoveryErrorInfo",
    "DiscoveryPhase",
    "DiscoveryRequest",
    "DiscoverySettings",
    "DiscoveryState",
    "Origin",
    "PlaceEnrichment",
    "POICategory",
    "POISource",
    "POIType",
    "ProviderStatusSnapshot",
    "AdapterError",
    "AdapterFailure",
    "AllProvidersDisabled",
    "AllSourcesFailed",
    "AllTypesDisabled",
    "ConfigurationError",
    "DiscoveryError",
    "UnexpectedFailure",
    "SourceAdapter",
    "EnrichmentCache",
    "ResultCache",
    "EngineConfig",
    "ProviderConfig",
    "Deduplicator",
    "AggregationEngine",
    "DiscoveryOutcome",
    "FetchOrchestrator",
    "Ranker",
]
