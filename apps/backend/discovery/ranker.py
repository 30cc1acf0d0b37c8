"""
Deterministic ordering of deduplicated POIs.

Keeps enabled types only, groups by type, sorts each group by notability
(descending, stable), then concatenates groups following the caller's type
priority list, falling back to the default order for unlisted types.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from discovery.constants import DEFAULT_DISPLAY_LIMIT
from discovery.models import DEFAULT_TYPE_ORDER, POI, POIType
from discovery.utils.text import matches_search


def resolve_type_order(type_order: Optional[Sequence[POIType]] = None) -> List[POIType]:
    """Caller order first, then default order, then any remaining enum members."""
    resolved: List[POIType] = []
    for poi_type in list(type_order or ()) + list(DEFAULT_TYPE_ORDER) + list(POIType):
        if poi_type not in resolved:
            resolved.append(poi_type)
    return resolved


class Ranker:
    def __init__(self, display_limit: int = DEFAULT_DISPLAY_LIMIT):
        self.display_limit = display_limit

    def rank(
        self,
        pois: Iterable[POI],
        enabled_types: Optional[FrozenSet[POIType]] = None,
        type_order: Optional[Sequence[POIType]] = None,
    ) -> List[POI]:
        groups: Dict[POIType, List[POI]] = {}
        for poi in pois:
            if enabled_types is not None and poi.type not in enabled_types:
                continue
            groups.setdefault(poi.type, []).append(poi)

        ranked: List[POI] = []
        for poi_type in resolve_type_order(type_order):
            group = groups.get(poi_type)
            if group:
                # sorted() is stable, ties keep input order
                ranked.extend(sorted(group, key=lambda p: -p.notability_score))
        return ranked

    def display(self, ranked: Sequence[POI], limit: Optional[int] = None) -> List[POI]:
        return list(ranked[: limit if limit is not None else self.display_limit])

    @staticmethod
    def filter_view(
        ranked: Sequence[POI],
        type_filter: FrozenSet[POIType] = frozenset(),
        search_text: str = "",
    ) -> List[POI]:
        """Narrow an already-ranked list. Empty filter and empty text keep everything."""
        return [
            poi
            for poi in ranked
            if (not type_filter or poi.type in type_filter) and matches_search(poi.name, search_text)
        ]
