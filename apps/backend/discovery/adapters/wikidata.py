"""Wikidata SPARQL adapter."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
from urllib.parse import unquote, urlsplit

import httpx

from discovery.adapters.base import HttpSourceAdapter, within_radius
from discovery.constants import DEFAULT_USER_AGENT
from discovery.exceptions import AdapterError
from discovery.models import POI, Origin, POISource, POIType

logger = logging.getLogger(__name__)

RESULT_LIMIT = 100
_WKT_POINT = re.compile(r"Point\(\s*([-\d.eE]+)\s+([-\d.eE]+)\s*\)")

# Wikidata classes queried, with the POI type each maps to
CLASS_TYPES: Dict[str, POIType] = {
    "Q570116": POIType.TOURIST_ATTRACTION,
    "Q33506": POIType.MUSEUM,
    "Q4989906": POIType.MONUMENT,
    "Q839954": POIType.HISTORIC_SITE,
    "Q23413": POIType.HISTORIC_SITE,
    "Q12518": POIType.LANDMARK,
    "Q811979": POIType.LANDMARK,
    "Q16970": POIType.RELIGIOUS_SITE,
    "Q44539": POIType.RELIGIOUS_SITE,
    "Q34627": POIType.RELIGIOUS_SITE,
    "Q32815": POIType.RELIGIOUS_SITE,
    "Q22698": POIType.PARK,
}

SPARQL_TEMPLATE = """
SELECT ?place ?placeLabel ?coord ?class ?wikipedia ?description ?inception ?visitorCount ?heritageStatus
WHERE {{
  SERVICE wikibase:around {{
    ?place wdt:P625 ?coord.
    bd:serviceParam wikibase:center "Point({lon} {lat})"^^geo:wktLiteral.
    bd:serviceParam wikibase:radius "{radius_km}".
  }}
  VALUES ?class {{ {classes} }}
  ?place wdt:P31/wdt:P279* ?class.
  OPTIONAL {{
    ?wikipedia schema:about ?place;
               schema:isPartOf <https://{lang}.wikipedia.org/>.
  }}
  OPTIONAL {{
    ?place schema:description ?description.
    FILTER(LANG(?description) = "{lang}")
  }}
  OPTIONAL {{ ?place wdt:P571 ?inception. }}
  OPTIONAL {{ ?place wdt:P1174 ?visitorCount. }}
  OPTIONAL {{
    ?place wdt:P1435 ?heritage.
    ?heritage rdfs:label ?heritageStatus.
    FILTER(LANG(?heritageStatus) = "en")
  }}
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "{lang},en". }}
}}
LIMIT {limit}
"""


def _value(binding: Dict[str, Any], key: str) -> Optional[str]:
    cell = binding.get(key)
    if not isinstance(cell, dict):
        return None
    value = cell.get("value")
    return str(value) if value is not None else None


def parse_wkt_point(value: str) -> Tuple[float, float]:
    """``"Point(2.2945 48.8584)"`` -> ``(48.8584, 2.2945)`` as (lat, lon)."""
    match = _WKT_POINT.search(value)
    if not match:
        raise ValueError(f"Invalid WKT coordinate: {value}")
    return float(match.group(2)), float(match.group(1))


def wikipedia_from_url(url: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Article URL -> (language, title)."""
    if not url:
        return None, None
    parts = urlsplit(url)
    lang = parts.netloc.split(".")[0] or None
    title = unquote(parts.path.rsplit("/", 1)[-1]).replace("_", " ").strip()
    return lang, title or None


def notability_from_binding(binding: Dict[str, Any]) -> int:
    score = 60
    if _value(binding, "wikipedia"):
        score += 15
    heritage = _value(binding, "heritageStatus")
    if heritage:
        score += 30 if "UNESCO" in heritage or "World Heritage" in heritage else 15
    visitors = _value(binding, "visitorCount") or ""
    if visitors.replace(".", "", 1).isdigit() and float(visitors) > 1_000_000:
        score += 10
    if _value(binding, "inception"):
        score += 5
    return max(0, min(100, score))


class WikidataAdapter(HttpSourceAdapter):
    """Knowledge-graph entities of touristic classes within the radius."""

    source = POISource.WIKIDATA
    timeout_seconds = 30.0

    def __init__(
        self,
        base_url: str = "https://query.wikidata.org/sparql",
        language: str = "en",
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(user_agent=user_agent, transport=transport)
        self.base_url = base_url
        self.language = language

    def build_query(
        self,
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
        language: Optional[str] = None,
    ) -> str:
        classes = " ".join(f"wd:{qid}" for qid, t in CLASS_TYPES.items() if t in enabled_types)
        return SPARQL_TEMPLATE.format(
            lat=origin.latitude,
            lon=origin.longitude,
            radius_km=round(radius_m / 1000.0, 3),
            classes=classes,
            lang=language or self.language,
            limit=RESULT_LIMIT,
        )

    async def fetch(
        self,
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
        *,
        language: Optional[str] = None,
    ) -> List[POI]:
        if not any(t in enabled_types for t in CLASS_TYPES.values()):
            return []

        query = self.build_query(origin, radius_m, enabled_types, language)
        params = {"query": query, "format": "json"}
        async with self._client() as client:
            response = await client.get(
                self.base_url,
                params=params,
                headers={"Accept": "application/sparql-results+json"},
            )
        if response.status_code == 503:
            raise AdapterError(self.source.value, "service temporarily unavailable", detail={"status_code": 503})
        data = self._decode(response)

        results = data.get("results")
        if not isinstance(results, dict):
            raise AdapterError(self.source.value, "missing results block")

        by_id: Dict[str, POI] = {}
        for binding in results.get("bindings", []):
            poi = self._to_poi(binding, origin, radius_m, enabled_types)
            # One row per (entity, class, optional) combination; keep the best
            if poi is not None:
                existing = by_id.get(poi.id)
                if existing is None or poi.notability_score > existing.notability_score:
                    by_id[poi.id] = poi
        return list(by_id.values())

    def _to_poi(
        self,
        binding: Dict[str, Any],
        origin: Origin,
        radius_m: int,
        enabled_types: FrozenSet[POIType],
    ) -> Optional[POI]:
        entity = _value(binding, "place")
        name = _value(binding, "placeLabel")
        coord = _value(binding, "coord")
        if not entity or not name or not coord:
            return None
        qid = entity.rsplit("/", 1)[-1]
        # Unlabelled entities come back labelled with their own QID
        if name == qid:
            return None
        try:
            lat, lon = parse_wkt_point(coord)
        except ValueError:
            logger.debug(f"[wikidata] Skipping {qid}: bad coordinate {coord!r}")
            return None

        class_id = (_value(binding, "class") or "").rsplit("/", 1)[-1]
        poi_type = CLASS_TYPES.get(class_id, POIType.LANDMARK)
        if poi_type not in enabled_types:
            return None
        distance = within_radius(origin, lat, lon, radius_m)
        if distance is None:
            return None

        wiki_lang, wiki_title = wikipedia_from_url(_value(binding, "wikipedia"))
        return POI(
            id=f"{self.source.value}:{qid}",
            name=name,
            type=poi_type,
            latitude=lat,
            longitude=lon,
            distance_from_origin=distance,
            sources=(self.source,),
            description=_value(binding, "description"),
            wikipedia_title=wiki_title,
            wikipedia_lang=wiki_lang,
            wikidata_id=qid,
            notability_score=notability_from_binding(binding),
        )
