"""Tests for POI ranking and view filters."""

from discovery.models import POISource, POIType
from discovery.ranker import Ranker, resolve_type_order
from fakes import make_poi

O = POISource.OVERPASS


def _sample():
    return [
        make_poi("p1", "Parc Monceau", O, poi_type=POIType.PARK, score=60),
        make_poi("m1", "Louvre", O, poi_type=POIType.MUSEUM, score=90),
        make_poi("m2", "Orsay", O, poi_type=POIType.MUSEUM, score=95),
        make_poi("m3", "Rodin", O, poi_type=POIType.MUSEUM, score=90),
        make_poi("c1", "Cafe", O, poi_type=POIType.CAFE, score=99),
        make_poi("v1", "Montmartre", O, poi_type=POIType.VIEWPOINT, score=70),
    ]


def test_rank_groups_by_type_priority_then_notability():
    ranked = Ranker().rank(
        _sample(),
        enabled_types=frozenset({POIType.MUSEUM, POIType.PARK, POIType.VIEWPOINT}),
        type_order=[POIType.PARK, POIType.MUSEUM],
    )
    # Viewpoint is unlisted, so it follows the default order after the caller's types
    assert [p.id for p in ranked] == ["p1", "m2", "m1", "m3", "v1"]


def test_rank_drops_disabled_types():
    ranked = Ranker().rank(_sample(), enabled_types=frozenset({POIType.CAFE}))
    assert [p.id for p in ranked] == ["c1"]


def test_rank_ties_keep_input_order():
    pois = _sample()
    forward = Ranker().rank(pois, type_order=[POIType.MUSEUM])
    museum_ids = [p.id for p in forward if p.type == POIType.MUSEUM]
    assert museum_ids == ["m2", "m1", "m3"]

    swapped = [pois[3], pois[1]] + [p for p in pois if p.id not in ("m1", "m3")]
    museum_ids = [p.id for p in Ranker().rank(swapped) if p.type == POIType.MUSEUM]
    assert museum_ids == ["m2", "m3", "m1"]


def test_rank_is_deterministic():
    ranker = Ranker()
    pois = _sample()
    order = [POIType.VIEWPOINT, POIType.CAFE]
    first = ranker.rank(pois, type_order=order)
    for _ in range(5):
        assert ranker.rank(pois, type_order=order) == first


def test_rank_without_type_order_uses_default_order():
    ranked = Ranker().rank(_sample())
    assert [p.type for p in ranked] == [
        POIType.MUSEUM,
        POIType.MUSEUM,
        POIType.MUSEUM,
        POIType.VIEWPOINT,
        POIType.PARK,
        POIType.CAFE,
    ]


def test_resolve_type_order_lists_every_type_once():
    order = resolve_type_order([POIType.CAFE, POIType.CAFE, POIType.PARK])
    assert order[:2] == [POIType.CAFE, POIType.PARK]
    assert len(order) == len(set(order)) == len(POIType)


def test_display_caps_without_touching_full_list():
    pois = [make_poi(f"o{i}", f"Place {i}", O, score=i) for i in range(40)]
    ranker = Ranker(display_limit=25)
    ranked = ranker.rank(pois)
    display = ranker.display(ranked)
    assert len(display) == 25
    assert len(ranked) == 40
    assert display == ranked[:25]


def test_filter_view_by_type_and_text():
    ranked = Ranker().rank(_sample())
    assert [p.id for p in Ranker.filter_view(ranked, frozenset({POIType.MUSEUM}), "")] == ["m2", "m1", "m3"]
    assert [p.id for p in Ranker.filter_view(ranked, frozenset(), "LOUV")] == ["m1"]
    assert Ranker.filter_view(ranked) == ranked
