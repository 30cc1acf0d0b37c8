"""Utility helpers for geodesic distance and place-name comparison."""

from .geo import haversine_m
from .languages import language_for_country
from .text import matches_search, name_similarity, names_match, normalize_name

__all__ = [
    "haversine_m",
    "language_for_country",
    "matches_search",
    "name_similarity",
    "names_match",
    "normalize_name",
]
