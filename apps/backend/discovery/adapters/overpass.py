"""OpenStreetMap Overpass adapter."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, FrozenSet, List, Optional, Tuple

import httpx

from discovery.adapters.base import HttpSourceAdapter, within_radius
from discovery.constants import DEFAULT_USER_AGENT
from discovery.exceptions import AdapterError
from discovery.models import POI, Origin, POISource, POIType

logger = logging.getLogger(__name__)

MIN_REQUEST_INTERVAL_S = 1.0

# (key, value regex) selectors per POI type
TYPE_SELECTORS: Dict[POIType, List[Tuple[str, str]]] = {
    POIType.MONUMENT: [("historic", "monument|memorial")],
    POIType.HISTORIC_SITE: [("historic", "archaeological_site|castle|ruins|fort|manor|palace")],
    POIType.MUSEUM: [("tourism", "museum|gallery")],
    POIType.VIEWPOINT: [("tourism", "viewpoint")],
    POIType.TOURIST_ATTRACTION: [("tourism", "attraction|artwork|zoo|aquarium|theme_park")],
    POIType.PARK: [("leisure", "park")],
    POIType.RELIGIOUS_SITE: [("amenity", "place_of_worship")],
    POIType.SQUARE: [("place", "square")],
    POIType.OTHER: [("amenity", "theatre|cinema|arts_centre|library|community_centre")],
    POIType.RESTAURANT: [("amenity", "restaurant")],
    POIType.CAFE: [("amenity", "cafe")],
    POIType.BAKERY: [("shop", "bakery")],
    POIType.SUPERMARKET: [("shop", "supermarket")],
    POIType.HARDWARE_STORE: [("shop", "hardware|doityourself")],
    POIType.PHARMACY: [("amenity", "pharmacy")],
    POIType.GAS_STATION: [("amenity", "fuel")],
    POIType.HOTEL: [("tourism", "hotel")],
    POIType.BAR: [("amenity", "bar|pub")],
    POIType.FAST_FOOD: [("amenity", "fast_food")],
}

_AMENITY_TYPES = {
    "restaurant": POIType.RESTAURANT,
    "cafe": POIType.CAFE,
    "pharmacy": POIType.PHARMACY,
    "fuel": POIType.GAS_STATION,
    "bar": POIType.BAR,
    "pub": POIType.BAR,
    "fast_food": POIType.FAST_FOOD,
    "place_of_worship": POIType.RELIGIOUS_SITE,
}

_SHOP_TYPES = {
    "bakery": POIType.BAKERY,
    "supermarket": POIType.SUPERMARKET,
    "hardware": POIType.HARDWARE_STORE,
    "doityourself": POIType.HARDWARE_STORE,
}

_TOURISM_TYPES = {
    "hotel": POIType.HOTEL,
    "museum": POIType.MUSEUM,
    "gallery": POIType.MUSEUM,
    "viewpoint": POIType.VIEWPOINT,
}


def classify_tags(tags: Dict[str, str]) -> POIType:
    historic = tags.get("historic")
    if historic:
        return POIType.MONUMENT if historic in ("monument", "memorial") else POIType.HISTORIC_SITE
    tourism = tags.get("tourism")
    if tourism:
        return _TOURISM_TYPES.get(tourism, POIType.TOURIST_ATTRACTION)
    if tags.get("leisure") == "park":
        return POIType.PARK
    if tags.get("place") == "square":
        return POIType.SQUARE
    amenity = tags.get("amenity")
    if amenity in _AMENITY_TYPES:
        return _AMENITY_TYPES[amenity]
    shop = tags.get("shop")
    if shop in _SHOP_TYPES:
        return _SHOP_TYPES[shop]
    return POIType.OTHER


def notability_from_tags(tags: Dict[str, str]) -> int:
    score = 50
    if tags.get("wikidata"):
        score += 20
    if tags.get("wikipedia"):
        score += 15
    if tags.get("website"):
        score += 5
    if tags.get("unesco") or tags.get("heritage:operator", "").lower() == "whc":
        score += 30
    return max(0, min(100, score))


def split_wikipedia_tag(value: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """``"en:Eiffel Tower"`` -> ``("en", "Eiffel Tower")``."""
    if not value:
        return None, None
    lang, sep, title = value.partition(":")
    if not sep or not title.strip():
        return None, value.strip() or None
    return lang.strip().lower() or None, title.strip()


def build_query(origin: Origin, radius_m: int, enabled_types: FrozenSet[POIType]) -> str:
    around = f"(around:{radius_m},{origin.latitude},{origin.longitude})"
    statements: List[str] = []
    seen = set()
    for poi_type, selectors in TYPE_SELECTORS.items():
        if poi_type not in enabled_types:
            continue
        for key, pattern in selectors:
            if (key, pattern) in seen:
                continue
            seen.add((key, pattern))
            statements.append(f'  nw["{key}"~"^({pattern})$"]["name"]{around};')
    body = "\n".join(statements)
    return f"[out:json][timeout:25];\n(\n{body}\n);\nout center tags;"


class OverpassAdapter(HttpSourceAdapter):
    """Named OSM nodes and ways matching the enabled POI types."""

    source = POISource.OVERPASS
    timeout_seconds = 25.0

    def __init__(
        self,
        base_url: str = "https://overpass-api.de/api/interpreter",
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        min_interval_s: float = MIN_REQUEST_INTERVAL_S,
    ):
        super().__init__(user_agent=user_agent, transport=transport)
        self.base_url = base_url
        self.min_interval_s = min_interval_s
        self._last_request_at: Optional[float] = None
        self._rate_lock = asyncio.Lock()

    async def _respect_rate_limit(self) -> None:
        async with self._rate_lock:
            if self._last_request_at is not None:
                elapsed = time.monotonic() - self._last_request_at
                if elapsed < self.min_interval_s:
                    await asyncio.sleep(self.min_interval_s - elapsed)
            self._last_request_at = time.monotonic()

    async def fetch(
        self,
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
        *,
        language: Optional[str] = None,
    ) -> List[POI]:
        if not any(t in TYPE_SELECTORS for t in enabled_types):
            return []

        await self._respect_rate_limit()
        query = build_query(origin, radius_m, enabled_types)
        async with self._client() as client:
            response = await client.post(self.base_url, data={"data": query})
        if response.status_code == 504:
            raise AdapterError(self.source.value, "server timeout, radius too large", detail={"status_code": 504})
        data = self._decode(response)

        remark = str(data.get("remark") or "")
        if "error" in remark.lower():
            raise AdapterError(self.source.value, f"API error: {remark[:200]}")

        pois: List[POI] = []
        for element in data.get("elements", []):
            poi = self._to_poi(element, origin, radius_m, enabled_types)
            if poi is not None:
                pois.append(poi)
        return pois

    def _to_poi(
        self,
        element: dict,
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
    ) -> Optional[POI]:
        tags = element.get("tags") or {}
        name = str(tags.get("name") or "").strip()
        if not name or "unnamed" in name.lower():
            return None

        center = element.get("center") or {}
        try:
            lat = float(element.get("lat", center.get("lat")))
            lon = float(element.get("lon", center.get("lon")))
        except (TypeError, ValueError):
            logger.debug(f"[overpass] Skipping element without coordinates: {element.get('id')}")
            return None

        poi_type = classify_tags(tags)
        if poi_type not in enabled_types:
            return None
        distance = within_radius(origin, lat, lon, radius_m)
        if distance is None:
            return None

        wiki_lang, wiki_title = split_wikipedia_tag(tags.get("wikipedia"))
        return POI(
            id=f"{self.source.value}:{element.get('type', 'node')}/{element.get('id')}",
            name=name,
            type=poi_type,
            latitude=lat,
            longitude=lon,
            distance_from_origin=distance,
            sources=(self.source,),
            description=tags.get("description"),
            wikipedia_title=wiki_title,
            wikipedia_lang=wiki_lang,
            wikidata_id=tags.get("wikidata"),
            website=tags.get("website") or tags.get("contact:website"),
            opening_hours=tags.get("opening_hours"),
            phone_number=tags.get("phone") or tags.get("contact:phone"),
            notability_score=notability_from_tags(tags),
        )
