"""Wikipedia geosearch adapter (fast phase-one source)."""

from __future__ import annotations

import logging
from typing import FrozenSet, List, Optional

import httpx

from discovery.adapters.base import HttpSourceAdapter, within_radius
from discovery.constants import DEFAULT_USER_AGENT, MAX_SEARCH_RADIUS_M
from discovery.exceptions import AdapterError
from discovery.models import POI, Origin, POISource, POIType

logger = logging.getLogger(__name__)

WIKIPEDIA_NOTABILITY = 75
GEOSEARCH_LIMIT = 50


class WikipediaGeosearchAdapter(HttpSourceAdapter):
    """MediaWiki ``list=geosearch``: geotagged articles around a point."""

    source = POISource.WIKIPEDIA
    timeout_seconds = 10.0

    def __init__(
        self,
        language: str = "en",
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(user_agent=user_agent, transport=transport)
        self.language = language

    def api_url(self, language: str) -> str:
        return f"https://{language}.wikipedia.org/w/api.php"

    async def fetch(
        self,
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
        *,
        language: Optional[str] = None,
    ) -> List[POI]:
        # Every geosearch hit is typed as a tourist attraction
        if POIType.TOURIST_ATTRACTION not in enabled_types:
            return []

        lang = language or self.language
        params = {
            "action": "query",
            "list": "geosearch",
            "gscoord": f"{origin.latitude}|{origin.longitude}",
            "gsradius": min(radius_m, MAX_SEARCH_RADIUS_M),
            "gslimit": GEOSEARCH_LIMIT,
            "gsnamespace": 0,
            "format": "json",
        }
        async with self._client() as client:
            response = await client.get(self.api_url(lang), params=params)
        data = self._decode(response)

        if "error" in data:
            info = data["error"].get("info", "unknown error")
            raise AdapterError(self.source.value, f"API error: {info}")

        pois: List[POI] = []
        for item in data.get("query", {}).get("geosearch", []):
            poi = self._to_poi(item, origin, radius_m, lang)
            if poi is not None:
                pois.append(poi)
        return pois

    def _to_poi(self, item: dict, origin: Origin, radius_m: int, lang: str) -> Optional[POI]:
        try:
            title = str(item["title"]).strip()
            lat = float(item["lat"])
            lon = float(item["lon"])
            page_id = item["pageid"]
        except (KeyError, TypeError, ValueError):
            logger.debug(f"[wikipedia] Skipping malformed geosearch item: {item!r}")
            return None
        if not title:
            return None

        distance = within_radius(origin, lat, lon, radius_m)
        if distance is None:
            return None

        return POI(
            id=f"{self.source.value}:{lang}:{page_id}",
            name=title,
            type=POIType.TOURIST_ATTRACTION,
            latitude=lat,
            longitude=lon,
            distance_from_origin=distance,
            sources=(self.source,),
            wikipedia_title=title,
            wikipedia_lang=lang,
            notability_score=WIKIPEDIA_NOTABILITY,
        )
