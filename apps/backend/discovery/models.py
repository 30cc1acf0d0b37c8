"""Typed models for the POI discovery pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from discovery.constants import (
    DEFAULT_SEARCH_RADIUS_M,
    MAX_SEARCH_RADIUS_M,
    MIN_SEARCH_RADIUS_M,
)

ProviderStatus = Literal["ok", "error", "timeout", "exhausted"]


class POICategory(str, Enum):
    ATTRACTION = "attraction"
    COMMERCIAL = "commercial"


class POIType(str, Enum):
    # Attractions
    MONUMENT = "monument"
    MUSEUM = "museum"
    RELIGIOUS_SITE = "religious_site"
    PARK = "park"
    VIEWPOINT = "viewpoint"
    TOURIST_ATTRACTION = "tourist_attraction"
    HISTORIC_SITE = "historic_site"
    LANDMARK = "landmark"
    SQUARE = "square"
    OTHER = "other"
    # Commercial
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    BAKERY = "bakery"
    SUPERMARKET = "supermarket"
    HARDWARE_STORE = "hardware_store"
    PHARMACY = "pharmacy"
    GAS_STATION = "gas_station"
    HOTEL = "hotel"
    BAR = "bar"
    FAST_FOOD = "fast_food"

    @property
    def category(self) -> POICategory:
        if self in _COMMERCIAL_TYPES:
            return POICategory.COMMERCIAL
        return POICategory.ATTRACTION

    @classmethod
    def for_category(cls, category: POICategory) -> FrozenSet["POIType"]:
        return frozenset(t for t in cls if t.category == category)


_COMMERCIAL_TYPES = frozenset(
    {
        POIType.RESTAURANT,
        POIType.CAFE,
        POIType.BAKERY,
        POIType.SUPERMARKET,
        POIType.HARDWARE_STORE,
        POIType.PHARMACY,
        POIType.GAS_STATION,
        POIType.HOTEL,
        POIType.BAR,
        POIType.FAST_FOOD,
    }
)

DEFAULT_TYPE_ORDER: Tuple[POIType, ...] = (
    POIType.TOURIST_ATTRACTION,
    POIType.MUSEUM,
    POIType.HISTORIC_SITE,
    POIType.MONUMENT,
    POIType.LANDMARK,
    POIType.VIEWPOINT,
    POIType.RELIGIOUS_SITE,
    POIType.PARK,
    POIType.SQUARE,
    POIType.OTHER,
    POIType.RESTAURANT,
    POIType.CAFE,
    POIType.BAKERY,
    POIType.BAR,
    POIType.FAST_FOOD,
    POIType.SUPERMARKET,
    POIType.PHARMACY,
    POIType.HARDWARE_STORE,
    POIType.GAS_STATION,
    POIType.HOTEL,
)


class POISource(str, Enum):
    """Provider tags. Higher priority wins authoritative fields on merge."""

    GOOGLE_PLACES = "google_places"
    WIKIPEDIA = "wikipedia"
    WIKIDATA = "wikidata"
    OVERPASS = "overpass"

    @property
    def priority(self) -> int:
        return _SOURCE_PRIORITY[self]

    @property
    def categories(self) -> FrozenSet[POICategory]:
        return _SOURCE_CATEGORIES[self]

    def supports(self, category: POICategory) -> bool:
        return category in self.categories


_SOURCE_PRIORITY: Dict[POISource, int] = {
    POISource.GOOGLE_PLACES: 4,
    POISource.WIKIPEDIA: 3,
    POISource.WIKIDATA: 2,
    POISource.OVERPASS: 1,
}

_SOURCE_CATEGORIES: Dict[POISource, FrozenSet[POICategory]] = {
    POISource.GOOGLE_PLACES: frozenset(POICategory),
    POISource.WIKIPEDIA: frozenset({POICategory.ATTRACTION}),
    POISource.WIKIDATA: frozenset({POICategory.ATTRACTION}),
    POISource.OVERPASS: frozenset(POICategory),
}


def sort_sources(sources: Iterable[POISource]) -> Tuple[POISource, ...]:
    """Deduplicate provider tags and order them by descending priority."""
    return tuple(sorted(set(sources), key=lambda s: -s.priority))


class Origin(BaseModel):
    """The place a discovery is centred on. ``id`` keys the result cache."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    country: Optional[str] = None


class PlaceEnrichment(BaseModel):
    """Optional secondary details for a single place, merged field by field."""

    model_config = ConfigDict(frozen=True)

    description: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0.0, le=5.0)
    user_ratings_total: Optional[int] = Field(None, ge=0)
    formatted_address: Optional[str] = None
    phone_number: Optional[str] = None
    price_level: Optional[int] = Field(None, ge=0, le=4)
    is_open_now: Optional[bool] = None
    opening_hours: Optional[str] = None


class POI(BaseModel):
    """A discovered point of interest."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: POIType
    category: POICategory
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    distance_from_origin: float = Field(..., ge=0.0)
    sources: Tuple[POISource, ...]
    notability_score: int = Field(0, ge=0, le=100)

    description: Optional[str] = None
    wikipedia_title: Optional[str] = None
    wikipedia_lang: Optional[str] = None
    wikidata_id: Optional[str] = None
    place_id: Optional[str] = None
    image_url: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0.0, le=5.0)
    price_level: Optional[int] = Field(None, ge=0, le=4)
    user_ratings_total: Optional[int] = Field(None, ge=0)
    formatted_address: Optional[str] = None
    phone_number: Optional[str] = None
    is_open_now: Optional[bool] = None

    discovered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="before")
    @classmethod
    def _derive_category(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("category") is None and data.get("type") is not None:
            data = dict(data)
            data["category"] = POIType(data["type"]).category
        return data

    @field_validator("sources", mode="before")
    @classmethod
    def _normalize_sources(cls, value: Any) -> Tuple[POISource, ...]:
        if value is None:
            value = ()
        if isinstance(value, (str, POISource)):
            value = (value,)
        ordered = sort_sources(POISource(item) for item in value)
        if not ordered:
            raise ValueError("POI must have at least one source")
        return ordered

    @property
    def primary_source(self) -> POISource:
        return self.sources[0]

    @property
    def priority(self) -> int:
        return self.primary_source.priority

    def merge_enrichment(self, enrichment: PlaceEnrichment) -> "POI":
        """Return a copy with non-empty enrichment fields applied."""
        update: Dict[str, Any] = {}
        if enrichment.description:
            update["description"] = enrichment.description
        for name in (
            "website",
            "rating",
            "user_ratings_total",
            "formatted_address",
            "phone_number",
            "price_level",
            "is_open_now",
            "opening_hours",
        ):
            value = getattr(enrichment, name)
            if value is not None:
                update[name] = value
        if not update:
            return self
        return self.model_copy(update=update)


class DiscoverySettings(BaseModel):
    """Per-call preferences supplied by the settings collaborator."""

    model_config = ConfigDict(frozen=True)

    enabled_sources: FrozenSet[POISource] = Field(default_factory=lambda: frozenset(POISource))
    enabled_types: FrozenSet[POIType] = Field(default_factory=lambda: frozenset(POIType))
    type_order: Tuple[POIType, ...] = DEFAULT_TYPE_ORDER
    search_radius_m: int = Field(
        DEFAULT_SEARCH_RADIUS_M, ge=MIN_SEARCH_RADIUS_M, le=MAX_SEARCH_RADIUS_M
    )
    use_local_content: bool = False

    def types_for(self, category: POICategory) -> FrozenSet[POIType]:
        return frozenset(t for t in self.enabled_types if t.category == category)

    def sources_for(self, category: POICategory) -> FrozenSet[POISource]:
        return frozenset(s for s in self.enabled_sources if s.supports(category))


class DiscoveryRequest(BaseModel):
    """One ``discover()`` call, tagged with the epoch that issued it."""

    model_config = ConfigDict(frozen=True)

    epoch: int = Field(..., ge=1)
    origin: Origin
    category: POICategory
    sources: Tuple[POISource, ...]
    enabled_types: FrozenSet[POIType]
    type_order: Tuple[POIType, ...] = DEFAULT_TYPE_ORDER
    radius_m: int = Field(..., gt=0)
    force_refresh: bool = False
    # None lets each adapter use its configured language
    language: Optional[str] = None

    @property
    def cache_key(self) -> Tuple[str, POICategory]:
        return (self.origin.id, self.category)


class ProviderStatusSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: POISource
    status: ProviderStatus
    result_count: int = Field(0, ge=0)
    latency_ms: int = Field(0, ge=0)
    attempts: int = Field(0, ge=0)
    radii_m: Tuple[int, ...] = ()
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "ok"


class DiscoveryPhase(str, Enum):
    IDLE = "idle"
    PHASE1_LOADING = "phase1_loading"
    PHASE1_PARTIAL = "phase1_partial"
    PHASE2_LOADING = "phase2_loading"
    COMPLETE = "complete"
    ERROR = "error"


LOADING_PHASES = frozenset(
    {DiscoveryPhase.PHASE1_LOADING, DiscoveryPhase.PHASE1_PARTIAL, DiscoveryPhase.PHASE2_LOADING}
)


class DiscoveryErrorInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class DiscoveryState(BaseModel):
    """Immutable snapshot of the engine, published on every state change."""

    model_config = ConfigDict(frozen=True)

    phase: DiscoveryPhase = DiscoveryPhase.IDLE
    epoch: int = 0
    origin: Optional[Origin] = None
    category: POICategory = POICategory.ATTRACTION
    pois: Tuple[POI, ...] = ()
    filtered_pois: Tuple[POI, ...] = ()
    display_pois: Tuple[POI, ...] = ()
    error: Optional[DiscoveryErrorInfo] = None
    successful_sources: int = 0
    total_sources: int = 0
    provider_statuses: Tuple[ProviderStatusSnapshot, ...] = ()
    type_filter: FrozenSet[POIType] = frozenset()
    search_text: str = ""
    from_cache: bool = False

    @property
    def is_loading(self) -> bool:
        return self.phase in LOADING_PHASES

    @property
    def has_results(self) -> bool:
        return bool(self.pois)
