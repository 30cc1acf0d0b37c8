"""
Cross-source identity resolution.

Two POIs describe the same place when they share an external reference
(Wikidata QID, provider place id, Wikipedia article) or when they lie within
the proximity threshold and their names are fuzzy-equal. Matches collapse
into one record: the higher-priority source keeps its display fields, the
sources are unioned, and null fields are filled from the other record.

Candidates are visited in a canonical order (source priority, then id) and
each is compared against the accumulated output, so the merged set does not
depend on the order the source lists arrive in.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

from discovery.constants import DEFAULT_NAME_SIMILARITY, DEFAULT_PROXIMITY_THRESHOLD_M
from discovery.models import POI, sort_sources
from discovery.utils.geo import haversine_m
from discovery.utils.text import names_match, normalize_name

logger = logging.getLogger(__name__)

# Optional fields filled from the lower-priority record when the primary lacks them
FILLABLE_FIELDS = (
    "description",
    "wikipedia_title",
    "wikipedia_lang",
    "wikidata_id",
    "place_id",
    "image_url",
    "website",
    "opening_hours",
    "rating",
    "price_level",
    "user_ratings_total",
    "formatted_address",
    "phone_number",
    "is_open_now",
)


def _canonical_key(poi: POI) -> Tuple[Any, ...]:
    return (-poi.priority, poi.id, poi.name, poi.latitude, poi.longitude, -poi.notability_score)


class Deduplicator:
    def __init__(
        self,
        proximity_threshold_m: float = DEFAULT_PROXIMITY_THRESHOLD_M,
        name_similarity: float = DEFAULT_NAME_SIMILARITY,
    ):
        self.proximity_threshold_m = proximity_threshold_m
        self.name_similarity = name_similarity

    def shares_reference(self, a: POI, b: POI) -> bool:
        if a.id == b.id:
            return True
        if a.wikidata_id and a.wikidata_id == b.wikidata_id:
            return True
        if a.place_id and a.place_id == b.place_id:
            return True
        if a.wikipedia_title and b.wikipedia_title:
            same_lang = (
                a.wikipedia_lang is None
                or b.wikipedia_lang is None
                or a.wikipedia_lang.lower() == b.wikipedia_lang.lower()
            )
            if same_lang and normalize_name(a.wikipedia_title) == normalize_name(b.wikipedia_title):
                return True
        return False

    def is_same_place(self, a: POI, b: POI) -> bool:
        if self.shares_reference(a, b):
            return True
        distance = haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)
        if distance > self.proximity_threshold_m:
            return False
        return names_match(a.name, b.name, self.name_similarity)

    def merge(self, a: POI, b: POI) -> POI:
        """Merge two records of the same place. Symmetric in its arguments."""
        primary, secondary = sorted((a, b), key=_canonical_key)

        update: Dict[str, Any] = {
            "sources": sort_sources(primary.sources + secondary.sources),
            "discovered_at": min(primary.discovered_at, secondary.discovered_at),
        }
        for name in FILLABLE_FIELDS:
            if getattr(primary, name) is None and getattr(secondary, name) is not None:
                update[name] = getattr(secondary, name)
        return primary.model_copy(update=update)

    def _single_pass(self, candidates: List[POI]) -> List[POI]:
        accumulated: List[POI] = []
        for candidate in sorted(candidates, key=_canonical_key):
            for index, existing in enumerate(accumulated):
                if self.is_same_place(existing, candidate):
                    accumulated[index] = self.merge(existing, candidate)
                    break
            else:
                accumulated.append(candidate)
        return accumulated

    def deduplicate(self, pois: Iterable[POI]) -> List[POI]:
        """Collapse duplicates until no two remaining records match."""
        current = list(pois)
        incoming = len(current)
        while True:
            merged = self._single_pass(current)
            # A merge can fill references that make two survivors match
            if len(merged) == len(current):
                break
            current = merged
        if incoming != len(merged):
            logger.debug(f"[dedup] {incoming} records -> {len(merged)} places")
        return merged

    def deduplicate_sources(self, source_lists: Iterable[Iterable[POI]]) -> List[POI]:
        """Deduplicate several per-source result lists into one."""
        combined: List[POI] = []
        for pois in source_lists:
            combined.extend(pois)
        return self.deduplicate(combined)
