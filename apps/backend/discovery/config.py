"""Environment-driven configuration for the discovery engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from discovery.constants import (
    DEFAULT_ADAPTER_TIMEOUT_S,
    DEFAULT_CACHE_CAPACITY,
    DEFAULT_DISPLAY_LIMIT,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MIN_RETRY_RADIUS_M,
    DEFAULT_NAME_SIMILARITY,
    DEFAULT_PROXIMITY_THRESHOLD_M,
    DEFAULT_RADIUS_STEP_M,
    DEFAULT_RETRY_BASE_DELAY_S,
    DEFAULT_USER_AGENT,
)
from discovery.models import POISource

logger = logging.getLogger(__name__)

load_dotenv(Path(__file__).parent.parent / ".env")


def _env_int(name: str, default: int, minimum: Optional[int] = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"[config] Invalid {name}={raw!r}, using default {default}")
        return default
    if minimum is not None and value < minimum:
        logger.warning(f"[config] {name}={value} is below {minimum}, using default {default}")
        return default
    return value


def _env_float(
    name: str,
    default: float,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    exclusive_minimum: bool = False,
) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"[config] Invalid {name}={raw!r}, using default {default}")
        return default
    too_low = minimum is not None and (value <= minimum if exclusive_minimum else value < minimum)
    too_high = maximum is not None and value > maximum
    if too_low or too_high:
        logger.warning(f"[config] {name}={value} is out of range, using default {default}")
        return default
    return value


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for retry, caching, dedup and display."""

    cache_capacity: int = DEFAULT_CACHE_CAPACITY
    display_limit: int = DEFAULT_DISPLAY_LIMIT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    radius_step_m: int = DEFAULT_RADIUS_STEP_M
    min_radius_m: int = DEFAULT_MIN_RETRY_RADIUS_M
    retry_base_delay_s: float = DEFAULT_RETRY_BASE_DELAY_S
    adapter_timeout_s: float = DEFAULT_ADAPTER_TIMEOUT_S
    proximity_threshold_m: float = DEFAULT_PROXIMITY_THRESHOLD_M
    name_similarity: float = DEFAULT_NAME_SIMILARITY
    phase_one_source: POISource = POISource.WIKIPEDIA

    def __post_init__(self) -> None:
        if self.cache_capacity < 1:
            raise ValueError("cache_capacity must be at least 1")
        if self.display_limit < 1:
            raise ValueError("display_limit must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.radius_step_m < 0 or self.min_radius_m < 1:
            raise ValueError("radius_step_m must be >= 0 and min_radius_m >= 1")
        if self.retry_base_delay_s < 0 or self.adapter_timeout_s <= 0:
            raise ValueError("retry delay must be >= 0 and adapter timeout > 0")
        if not 0.0 < self.name_similarity <= 1.0:
            raise ValueError("name_similarity must be in (0, 1]")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        phase_one_raw = os.getenv("DISCOVERY_PHASE_ONE_SOURCE", POISource.WIKIPEDIA.value)
        try:
            phase_one = POISource(phase_one_raw.strip().lower())
        except ValueError:
            logger.warning(
                f"[config] Unknown DISCOVERY_PHASE_ONE_SOURCE={phase_one_raw!r}, using wikipedia"
            )
            phase_one = POISource.WIKIPEDIA

        return cls(
            cache_capacity=_env_int("DISCOVERY_CACHE_CAPACITY", DEFAULT_CACHE_CAPACITY, minimum=1),
            display_limit=_env_int("DISCOVERY_DISPLAY_LIMIT", DEFAULT_DISPLAY_LIMIT, minimum=1),
            max_attempts=_env_int("DISCOVERY_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS, minimum=1),
            radius_step_m=_env_int("DISCOVERY_RADIUS_STEP_M", DEFAULT_RADIUS_STEP_M, minimum=0),
            min_radius_m=_env_int("DISCOVERY_MIN_RADIUS_M", DEFAULT_MIN_RETRY_RADIUS_M, minimum=1),
            retry_base_delay_s=_env_float(
                "DISCOVERY_RETRY_BASE_DELAY_S", DEFAULT_RETRY_BASE_DELAY_S, minimum=0.0
            ),
            adapter_timeout_s=_env_float(
                "DISCOVERY_ADAPTER_TIMEOUT_S", DEFAULT_ADAPTER_TIMEOUT_S, minimum=0.0, exclusive_minimum=True
            ),
            proximity_threshold_m=_env_float(
                "DISCOVERY_PROXIMITY_THRESHOLD_M", DEFAULT_PROXIMITY_THRESHOLD_M, minimum=0.0
            ),
            name_similarity=_env_float(
                "DISCOVERY_NAME_SIMILARITY",
                DEFAULT_NAME_SIMILARITY,
                minimum=0.0,
                maximum=1.0,
                exclusive_minimum=True,
            ),
            phase_one_source=phase_one,
        )


@dataclass(frozen=True)
class ProviderConfig:
    """Credentials and endpoints for the HTTP source adapters."""

    google_places_api_key: Optional[str] = None
    wikipedia_language: str = "en"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    wikidata_sparql_url: str = "https://query.wikidata.org/sparql"
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        return cls(
            google_places_api_key=os.getenv("GOOGLE_PLACES_API_KEY") or None,
            wikipedia_language=os.getenv("WIKIPEDIA_LANGUAGE", "en").strip() or "en",
            overpass_url=os.getenv("OVERPASS_API_URL", cls.overpass_url),
            wikidata_sparql_url=os.getenv("WIKIDATA_SPARQL_URL", cls.wikidata_sparql_url),
            user_agent=os.getenv("DISCOVERY_USER_AGENT", DEFAULT_USER_AGENT),
        )
