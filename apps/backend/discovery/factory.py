"""Wiring of adapters and engine from environment configuration."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from discovery.adapters import (
    GooglePlacesAdapter,
    OverpassAdapter,
    SourceAdapter,
    WikidataAdapter,
    WikipediaGeosearchAdapter,
)
from discovery.config import EngineConfig, ProviderConfig
from discovery.engine import AggregationEngine
from discovery.models import DiscoverySettings, POISource

logger = logging.getLogger(__name__)


def build_adapters(config: Optional[ProviderConfig] = None) -> Dict[POISource, SourceAdapter]:
    """Instantiate every adapter whose credentials are available."""
    config = config or ProviderConfig.from_env()
    adapters: Dict[POISource, SourceAdapter] = {
        POISource.WIKIPEDIA: WikipediaGeosearchAdapter(
            config.wikipedia_language, user_agent=config.user_agent
        ),
        POISource.OVERPASS: OverpassAdapter(config.overpass_url, user_agent=config.user_agent),
        POISource.WIKIDATA: WikidataAdapter(
            config.wikidata_sparql_url, config.wikipedia_language, user_agent=config.user_agent
        ),
    }
    if config.google_places_api_key:
        adapters[POISource.GOOGLE_PLACES] = GooglePlacesAdapter(
            config.google_places_api_key, config.wikipedia_language, user_agent=config.user_agent
        )
    else:
        logger.info("[factory] GOOGLE_PLACES_API_KEY not set, Google Places disabled")

    logger.info(f"[factory] Available sources: {[s.value for s in adapters]}")
    return adapters


def build_engine_from_env(
    settings_provider: Optional[Callable[[], DiscoverySettings]] = None,
) -> AggregationEngine:
    return AggregationEngine(
        build_adapters(ProviderConfig.from_env()),
        config=EngineConfig.from_env(),
        settings_provider=settings_provider,
    )
