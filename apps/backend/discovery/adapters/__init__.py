"""Source adapters for external place providers."""

from .base import HttpSourceAdapter, SourceAdapter
from .google_places import GooglePlacesAdapter
from .overpass import OverpassAdapter
from .wikidata import WikidataAdapter
from .wikipedia import WikipediaGeosearchAdapter

__all__ = [
    "GooglePlacesAdapter",
    "HttpSourceAdapter",
    "OverpassAdapter",
    "SourceAdapter",
    "WikidataAdapter",
    "WikipediaGeosearchAdapter",
]
