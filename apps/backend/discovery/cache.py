"""Result and enrichment caches."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple

from discovery.constants import DEFAULT_CACHE_CAPACITY
from discovery.models import POI, PlaceEnrichment, POICategory
from observability.metrics import cache_entries, cache_hits_total, cache_misses_total

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, POICategory]


class ResultCache:
    """Bounded cache of ranked results keyed by (origin id, category).

    Eviction is least-recently-inserted: reads never refresh an entry, and a
    ``put`` on an existing key replaces the whole entry and counts as a new
    insertion.
    """

    cache_type = "results"

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[CacheKey, Tuple[POI, ...]]" = OrderedDict()

    def get(self, key: CacheKey) -> Optional[List[POI]]:
        entry = self._entries.get(key)
        if entry is None:
            cache_misses_total.labels(cache_type=self.cache_type).inc()
            return None
        cache_hits_total.labels(cache_type=self.cache_type).inc()
        return list(entry)

    def put(self, key: CacheKey, pois: Iterable[POI]) -> None:
        self._entries.pop(key, None)
        self._entries[key] = tuple(pois)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"[cache] Evicted {evicted[0]}/{evicted[1].value}")
        cache_entries.labels(cache_type=self.cache_type).set(len(self._entries))

    def invalidate(self, key: CacheKey) -> bool:
        removed = self._entries.pop(key, None) is not None
        cache_entries.labels(cache_type=self.cache_type).set(len(self._entries))
        return removed

    def clear(self) -> None:
        self._entries.clear()
        cache_entries.labels(cache_type=self.cache_type).set(0)

    def keys(self) -> List[CacheKey]:
        """Keys from oldest to newest insertion."""
        return list(self._entries.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class EnrichmentCache:
    """Place details keyed by provider place id. Never evicts."""

    cache_type = "enrichment"

    def __init__(self):
        self._entries: Dict[str, PlaceEnrichment] = {}

    def get(self, place_id: str) -> Optional[PlaceEnrichment]:
        entry = self._entries.get(place_id)
        if entry is None:
            cache_misses_total.labels(cache_type=self.cache_type).inc()
        else:
            cache_hits_total.labels(cache_type=self.cache_type).inc()
        return entry

    def put(self, place_id: str, enrichment: PlaceEnrichment) -> None:
        self._entries[place_id] = enrichment
        cache_entries.labels(cache_type=self.cache_type).set(len(self._entries))

    def __contains__(self, place_id: object) -> bool:
        return place_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
