"""HTTP adapters exercised against httpx.MockTransport."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from discovery.adapters import (
    GooglePlacesAdapter,
    OverpassAdapter,
    WikidataAdapter,
    WikipediaGeosearchAdapter,
)
from discovery.adapters.overpass import build_query, classify_tags, split_wikipedia_tag
from discovery.adapters.wikidata import parse_wkt_point, wikipedia_from_url
from discovery.exceptions import AdapterError
from discovery.models import POICategory, POISource, POIType

ATTRACTIONS = POIType.for_category(POICategory.ATTRACTION)
COMMERCIAL = POIType.for_category(POICategory.COMMERCIAL)


def _transport(payload=None, status_code=200, seen=None, text=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


def _unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    return httpx.MockTransport(handler)


# -- Wikipedia ----------------------------------------------------------------


@pytest.mark.asyncio
async def test_wikipedia_geosearch_maps_articles(paris):
    seen = []
    payload = {
        "query": {
            "geosearch": [
                {"pageid": 9232, "title": "Eiffel Tower", "lat": 48.8584, "lon": 2.2945},
                {"pageid": 1, "title": "Far away", "lat": 48.0, "lon": 2.0},
                {"pageid": 2, "lat": 48.85},
            ]
        }
    }
    adapter = WikipediaGeosearchAdapter("en", transport=_transport(payload, seen=seen))

    pois = await adapter.fetch(paris, 5000, ATTRACTIONS)

    assert len(pois) == 1
    eiffel = pois[0]
    assert eiffel.id == "wikipedia:en:9232"
    assert eiffel.type == POIType.TOURIST_ATTRACTION
    assert eiffel.sources == (POISource.WIKIPEDIA,)
    assert eiffel.wikipedia_title == "Eiffel Tower"
    assert eiffel.wikipedia_lang == "en"
    assert 4000 < eiffel.distance_from_origin < 5000

    params = seen[0].url.params
    assert seen[0].url.host == "en.wikipedia.org"
    assert params["list"] == "geosearch"
    assert params["gsradius"] == "5000"
    assert params["gscoord"] == "48.8566|2.3522"


@pytest.mark.asyncio
async def test_wikipedia_skips_request_when_attractions_disabled(paris):
    adapter = WikipediaGeosearchAdapter(transport=_unreachable())
    assert await adapter.fetch(paris, 5000, frozenset({POIType.MUSEUM})) == []


@pytest.mark.asyncio
async def test_wikipedia_uses_requested_language(paris):
    seen = []
    item = {"pageid": 9232, "title": "Tour Eiffel", "lat": 48.8584, "lon": 2.2945}
    payload = {"query": {"geosearch": [item]}}
    adapter = WikipediaGeosearchAdapter("en", transport=_transport(payload, seen=seen))

    pois = await adapter.fetch(paris, 5000, ATTRACTIONS, language="fr")

    assert seen[0].url.host == "fr.wikipedia.org"
    assert pois[0].id == "wikipedia:fr:9232"
    assert pois[0].wikipedia_lang == "fr"


@pytest.mark.asyncio
async def test_wikipedia_api_error_raises(paris):
    payload = {"error": {"code": "badcoord", "info": "Invalid coordinate provided"}}
    adapter = WikipediaGeosearchAdapter(transport=_transport(payload))

    with pytest.raises(AdapterError, match="Invalid coordinate"):
        await adapter.fetch(paris, 5000, ATTRACTIONS)


@pytest.mark.asyncio
async def test_http_error_status_raises_adapter_error(paris):
    adapter = WikipediaGeosearchAdapter(transport=_transport({}, status_code=500))

    with pytest.raises(AdapterError) as exc_info:
        await adapter.fetch(paris, 5000, ATTRACTIONS)

    assert exc_info.value.source == "wikipedia"
    assert exc_info.value.detail["status_code"] == 500


@pytest.mark.asyncio
async def test_rate_limited_response_raises(paris):
    adapter = WikipediaGeosearchAdapter(transport=_transport({}, status_code=429))

    with pytest.raises(AdapterError, match="rate limit"):
        await adapter.fetch(paris, 5000, ATTRACTIONS)


@pytest.mark.asyncio
async def test_invalid_json_raises(paris):
    adapter = WikipediaGeosearchAdapter(transport=_transport(text="<html>oops</html>"))

    with pytest.raises(AdapterError, match="invalid JSON"):
        await adapter.fetch(paris, 5000, ATTRACTIONS)


# -- Overpass -----------------------------------------------------------------


def test_classify_tags():
    assert classify_tags({"historic": "memorial"}) == POIType.MONUMENT
    assert classify_tags({"historic": "castle"}) == POIType.HISTORIC_SITE
    assert classify_tags({"tourism": "gallery"}) == POIType.MUSEUM
    assert classify_tags({"tourism": "zoo"}) == POIType.TOURIST_ATTRACTION
    assert classify_tags({"amenity": "pub"}) == POIType.BAR
    assert classify_tags({"shop": "doityourself"}) == POIType.HARDWARE_STORE
    assert classify_tags({"amenity": "bench"}) == POIType.OTHER


def test_split_wikipedia_tag():
    assert split_wikipedia_tag("fr:Tour Eiffel") == ("fr", "Tour Eiffel")
    assert split_wikipedia_tag("Tour Eiffel") == (None, "Tour Eiffel")
    assert split_wikipedia_tag(None) == (None, None)


def test_build_query_only_selects_enabled_types(paris):
    query = build_query(paris, 3000, frozenset({POIType.MUSEUM, POIType.PARK}))

    assert '"tourism"~"^(museum|gallery)$"' in query
    assert '"leisure"~"^(park)$"' in query
    assert "restaurant" not in query
    assert "(around:3000,48.8566,2.3522)" in query
    assert query.endswith("out center tags;")


@pytest.mark.asyncio
async def test_overpass_maps_nodes_and_ways(paris):
    seen = []
    payload = {
        "elements": [
            {
                "type": "way",
                "id": 5013364,
                "center": {"lat": 48.8583, "lon": 2.2944},
                "tags": {
                    "name": "Tour Eiffel",
                    "tourism": "attraction",
                    "wikidata": "Q243",
                    "wikipedia": "fr:Tour Eiffel",
                },
            },
            {"type": "node", "id": 1, "lat": 48.857, "lon": 2.35, "tags": {"tourism": "artwork"}},
            {"type": "node", "id": 2, "lat": 48.857, "lon": 2.35, "tags": {"name": "Le Café", "amenity": "cafe"}},
        ]
    }
    adapter = OverpassAdapter(transport=_transport(payload, seen=seen), min_interval_s=0)

    pois = await adapter.fetch(paris, 5000, ATTRACTIONS)

    assert [p.id for p in pois] == ["overpass:way/5013364"]
    eiffel = pois[0]
    assert eiffel.type == POIType.TOURIST_ATTRACTION
    assert eiffel.wikidata_id == "Q243"
    assert (eiffel.wikipedia_lang, eiffel.wikipedia_title) == ("fr", "Tour Eiffel")
    assert eiffel.notability_score == 85

    request = seen[0]
    assert request.method == "POST"
    query = parse_qs(request.content.decode())["data"][0]
    assert "around:5000" in query


@pytest.mark.asyncio
async def test_overpass_gateway_timeout_raises(paris):
    adapter = OverpassAdapter(transport=_transport({}, status_code=504), min_interval_s=0)

    with pytest.raises(AdapterError, match="server timeout"):
        await adapter.fetch(paris, 5000, ATTRACTIONS)


@pytest.mark.asyncio
async def test_overpass_runtime_remark_raises(paris):
    payload = {"elements": [], "remark": "runtime error: Query timed out"}
    adapter = OverpassAdapter(transport=_transport(payload), min_interval_s=0)

    with pytest.raises(AdapterError, match="runtime error"):
        await adapter.fetch(paris, 5000, ATTRACTIONS)


# -- Wikidata -----------------------------------------------------------------


def test_parse_wkt_point_returns_lat_lon():
    assert parse_wkt_point("Point(2.2945 48.8584)") == (48.8584, 2.2945)
    with pytest.raises(ValueError):
        parse_wkt_point("nonsense")


def test_wikipedia_from_url():
    assert wikipedia_from_url("https://en.wikipedia.org/wiki/Eiffel_Tower") == ("en", "Eiffel Tower")
    assert wikipedia_from_url("https://fr.wikipedia.org/wiki/Sacr%C3%A9-C%C5%93ur") == ("fr", "Sacré-Cœur")
    assert wikipedia_from_url(None) == (None, None)


def _binding(qid, label, coord, cls="Q570116", **extra):
    row = {
        "place": {"type": "uri", "value": f"http://www.wikidata.org/entity/{qid}"},
        "placeLabel": {"type": "literal", "value": label},
        "coord": {"type": "literal", "value": coord},
        "class": {"type": "uri", "value": f"http://www.wikidata.org/entity/{cls}"},
    }
    for key, value in extra.items():
        row[key] = {"type": "literal", "value": value}
    return row


@pytest.mark.asyncio
async def test_wikidata_keeps_best_row_per_entity(paris):
    seen = []
    payload = {
        "results": {
            "bindings": [
                _binding("Q243", "Eiffel Tower", "Point(2.2945 48.8584)"),
                _binding(
                    "Q243",
                    "Eiffel Tower",
                    "Point(2.2945 48.8584)",
                    wikipedia="https://en.wikipedia.org/wiki/Eiffel_Tower",
                    heritageStatus="part of UNESCO World Heritage Site",
                ),
                _binding("Q999", "Q999", "Point(2.35 48.85)"),
                _binding("Q19675", "Louvre", "Point(2.3376 48.8606)", cls="Q33506"),
            ]
        }
    }
    adapter = WikidataAdapter(transport=_transport(payload, seen=seen))

    pois = {p.id: p for p in await adapter.fetch(paris, 5000, ATTRACTIONS)}

    assert set(pois) == {"wikidata:Q243", "wikidata:Q19675"}
    eiffel = pois["wikidata:Q243"]
    assert eiffel.wikidata_id == "Q243"
    assert eiffel.wikipedia_title == "Eiffel Tower"
    assert eiffel.notability_score == 100
    assert pois["wikidata:Q19675"].type == POIType.MUSEUM

    assert seen[0].url.params["format"] == "json"
    assert "wikibase:around" in seen[0].url.params["query"]


@pytest.mark.asyncio
async def test_wikidata_query_localizes_labels(paris):
    seen = []
    adapter = WikidataAdapter(transport=_transport({"results": {"bindings": []}}, seen=seen))

    assert await adapter.fetch(paris, 5000, ATTRACTIONS, language="de") == []

    query = seen[0].url.params["query"]
    assert "<https://de.wikipedia.org/>" in query
    assert 'wikibase:language "de,en"' in query


@pytest.mark.asyncio
async def test_wikidata_skips_request_for_commercial_types(paris):
    adapter = WikidataAdapter(transport=_unreachable())
    assert await adapter.fetch(paris, 5000, COMMERCIAL) == []


@pytest.mark.asyncio
async def test_wikidata_missing_results_raises(paris):
    adapter = WikidataAdapter(transport=_transport({"head": {}}))

    with pytest.raises(AdapterError, match="missing results"):
        await adapter.fetch(paris, 5000, ATTRACTIONS)


# -- Google Places ------------------------------------------------------------


def test_google_adapter_requires_key():
    with pytest.raises(ValueError):
        GooglePlacesAdapter("")


@pytest.mark.asyncio
async def test_google_places_search(paris):
    seen = []
    payload = {
        "places": [
            {
                "id": "ChIJLU7jZClu5kcR4PcOOO6p3I0",
                "displayName": {"text": "Eiffel Tower", "languageCode": "en"},
                "location": {"latitude": 48.8584, "longitude": 2.2945},
                "types": ["tourist_attraction", "point_of_interest"],
                "rating": 4.7,
                "userRatingCount": 300000,
                "priceLevel": "PRICE_LEVEL_MODERATE",
                "websiteUri": "https://www.toureiffel.paris",
            },
            {
                "id": "no-location",
                "displayName": {"text": "Ghost"},
                "types": ["museum"],
            },
        ]
    }
    adapter = GooglePlacesAdapter("test-key", transport=_transport(payload, seen=seen))

    pois = await adapter.fetch(paris, 5000, ATTRACTIONS)

    assert len(pois) == 1
    eiffel = pois[0]
    assert eiffel.id == "google_places:ChIJLU7jZClu5kcR4PcOOO6p3I0"
    assert eiffel.place_id == "ChIJLU7jZClu5kcR4PcOOO6p3I0"
    assert eiffel.type == POIType.TOURIST_ATTRACTION
    assert eiffel.price_level == 2
    assert eiffel.notability_score == 98

    request = seen[0]
    assert request.headers["X-Goog-Api-Key"] == "test-key"
    body = json.loads(request.content)
    assert body["locationRestriction"]["circle"]["radius"] == 5000.0
    assert "tourist_attraction" in body["includedTypes"]
    assert "restaurant" not in body["includedTypes"]
    assert body["languageCode"] == "en"


@pytest.mark.asyncio
async def test_google_place_details():
    seen = []
    payload = {
        "editorialSummary": {"text": "Wrought-iron lattice tower."},
        "websiteUri": "https://www.toureiffel.paris",
        "rating": 4.7,
        "userRatingCount": 300000,
        "nationalPhoneNumber": "0892 70 12 39",
        "currentOpeningHours": {
            "openNow": True,
            "weekdayDescriptions": ["Monday: 9:30 AM – 11:45 PM", "Tuesday: 9:30 AM – 11:45 PM"],
        },
    }
    adapter = GooglePlacesAdapter("test-key", transport=_transport(payload, seen=seen))

    details = await adapter.fetch_place_details("ChIJLU7jZClu5kcR4PcOOO6p3I0")

    assert details.description == "Wrought-iron lattice tower."
    assert details.is_open_now is True
    assert details.opening_hours.startswith("Monday")
    assert details.phone_number == "0892 70 12 39"
    assert seen[0].url.path.endswith("/places/ChIJLU7jZClu5kcR4PcOOO6p3I0")
