"""Google Places API (New) adapter and place-details enrichment."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, FrozenSet, List, Optional

import httpx

from discovery.adapters.base import HttpSourceAdapter, within_radius
from discovery.constants import DEFAULT_USER_AGENT
from discovery.exceptions import AdapterError
from discovery.models import POI, Origin, PlaceEnrichment, POISource, POIType

logger = logging.getLogger(__name__)

SEARCH_URL = "https://places.googleapis.com/v1/places:searchNearby"
DETAILS_URL = "https://places.googleapis.com/v1/places"
MAX_RESULT_COUNT = 20
MAX_RADIUS_M = 50000

SEARCH_FIELD_MASK = ",".join(
    [
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.location",
        "places.types",
        "places.rating",
        "places.userRatingCount",
        "places.priceLevel",
        "places.websiteUri",
        "places.editorialSummary",
    ]
)
DETAILS_FIELD_MASK = ",".join(
    [
        "editorialSummary",
        "websiteUri",
        "rating",
        "userRatingCount",
        "formattedAddress",
        "nationalPhoneNumber",
        "priceLevel",
        "currentOpeningHours",
    ]
)

# Google place types requested per POI type; the first match maps back
GOOGLE_TYPES: Dict[POIType, List[str]] = {
    POIType.MUSEUM: ["museum", "art_gallery"],
    POIType.MONUMENT: ["historical_landmark"],
    POIType.HISTORIC_SITE: ["historical_landmark"],
    POIType.PARK: ["park", "national_park"],
    POIType.RELIGIOUS_SITE: ["church", "mosque", "synagogue", "hindu_temple"],
    POIType.TOURIST_ATTRACTION: ["tourist_attraction"],
    POIType.RESTAURANT: ["restaurant"],
    POIType.CAFE: ["cafe", "coffee_shop"],
    POIType.BAKERY: ["bakery"],
    POIType.SUPERMARKET: ["supermarket", "grocery_store"],
    POIType.HARDWARE_STORE: ["hardware_store", "home_improvement_store"],
    POIType.PHARMACY: ["pharmacy", "drugstore"],
    POIType.GAS_STATION: ["gas_station"],
    POIType.HOTEL: ["hotel", "lodging"],
    POIType.BAR: ["bar", "night_club"],
    POIType.FAST_FOOD: ["fast_food_restaurant", "meal_takeaway"],
}

PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}


def classify_google_types(types: List[str], enabled_types: FrozenSet[POIType]) -> Optional[POIType]:
    for google_type in types:
        for poi_type, candidates in GOOGLE_TYPES.items():
            if poi_type in enabled_types and google_type in candidates:
                return poi_type
    return None


def notability_from_rating(rating: Optional[float], count: Optional[int]) -> int:
    """Rated, often-reviewed places score highest. Unrated places get 40."""
    if rating is None:
        return 40
    score = 40 + rating * 6 + min(30.0, math.log10((count or 0) + 1) * 7.5)
    return max(0, min(100, int(round(score))))


def _text(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("text")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class GooglePlacesAdapter(HttpSourceAdapter):
    source = POISource.GOOGLE_PLACES
    timeout_seconds = 15.0

    def __init__(
        self,
        api_key: str,
        language: str = "en",
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("Google Places API key is required")
        super().__init__(user_agent=user_agent, transport=transport)
        self.api_key = api_key
        self.language = language

    def _headers(self, field_mask: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": field_mask,
        }

    async def fetch(
        self,
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
        *,
        language: Optional[str] = None,
    ) -> List[POI]:
        included: List[str] = []
        for poi_type, candidates in GOOGLE_TYPES.items():
            if poi_type in enabled_types:
                included.extend(c for c in candidates if c not in included)
        if not included:
            return []

        body = {
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": origin.latitude, "longitude": origin.longitude},
                    "radius": float(max(1, min(radius_m, MAX_RADIUS_M))),
                }
            },
            "includedTypes": included,
            "maxResultCount": MAX_RESULT_COUNT,
            "languageCode": language or self.language,
        }
        async with self._client() as client:
            response = await client.post(SEARCH_URL, json=body, headers=self._headers(SEARCH_FIELD_MASK))
        data = self._decode(response)

        pois: List[POI] = []
        for place in data.get("places", []):
            poi = self._to_poi(place, origin, radius_m, enabled_types)
            if poi is not None:
                pois.append(poi)
        return pois

    def _to_poi(
        self,
        place: Dict[str, Any],
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
    ) -> Optional[POI]:
        place_id = place.get("id")
        name = _text(place.get("displayName"))
        location = place.get("location") or {}
        if not place_id or not name:
            return None
        try:
            lat = float(location["latitude"])
            lon = float(location["longitude"])
        except (KeyError, TypeError, ValueError):
            logger.debug(f"[google_places] Skipping {place_id}: missing location")
            return None

        poi_type = classify_google_types(place.get("types") or [], enabled_types)
        if poi_type is None:
            return None
        distance = within_radius(origin, lat, lon, radius_m)
        if distance is None:
            return None

        rating = place.get("rating")
        count = place.get("userRatingCount")
        return POI(
            id=f"{self.source.value}:{place_id}",
            name=name,
            type=poi_type,
            latitude=lat,
            longitude=lon,
            distance_from_origin=distance,
            sources=(self.source,),
            description=_text(place.get("editorialSummary")),
            place_id=place_id,
            website=place.get("websiteUri"),
            rating=rating,
            user_ratings_total=count,
            price_level=PRICE_LEVELS.get(place.get("priceLevel") or ""),
            formatted_address=place.get("formattedAddress"),
            notability_score=notability_from_rating(rating, count),
        )

    async def fetch_place_details(self, place_id: str) -> PlaceEnrichment:
        """Secondary detail lookup for one place."""
        async with self._client() as client:
            response = await client.get(
                f"{DETAILS_URL}/{place_id}",
                params={"languageCode": self.language},
                headers=self._headers(DETAILS_FIELD_MASK),
            )
        data = self._decode(response)
        if "error" in data:
            raise AdapterError(self.source.value, f"details error: {data['error']}")

        hours = data.get("currentOpeningHours") or {}
        weekday = hours.get("weekdayDescriptions") or []
        return PlaceEnrichment(
            description=_text(data.get("editorialSummary")),
            website=data.get("websiteUri"),
            rating=data.get("rating"),
            user_ratings_total=data.get("userRatingCount"),
            formatted_address=data.get("formattedAddress"),
            phone_number=data.get("nationalPhoneNumber"),
            price_level=PRICE_LEVELS.get(data.get("priceLevel") or ""),
            is_open_now=hours.get("openNow"),
            opening_hours="; ".join(weekday) if weekday else None,
        )
