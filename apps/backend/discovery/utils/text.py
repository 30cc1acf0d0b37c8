"""Place-name normalization and fuzzy comparison."""

from __future__ import annotations

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

from discovery.constants import DEFAULT_NAME_SIMILARITY, MIN_CONTAINMENT_LENGTH

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: str) -> str:
    """Casefold, strip diacritics and punctuation, collapse whitespace."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _NON_WORD.sub(" ", stripped.casefold())
    return _WHITESPACE.sub(" ", stripped).strip()


def name_similarity(a: str, b: str) -> float:
    """Normalized Levenshtein similarity in [0, 1] of two normalized names."""
    left, right = normalize_name(a), normalize_name(b)
    return Levenshtein.normalized_similarity(left, right)


def names_match(a: str, b: str, threshold: float = DEFAULT_NAME_SIMILARITY) -> bool:
    """Fuzzy name equality: exact after normalization, containment, or near-equality."""
    left, right = normalize_name(a), normalize_name(b)
    if not left or not right:
        return False
    if left == right:
        return True
    shorter, longer = sorted((left, right), key=len)
    if len(shorter) >= MIN_CONTAINMENT_LENGTH and shorter in longer:
        return True
    return name_similarity(left, right) >= threshold


def matches_search(name: str, query: str) -> bool:
    """Search-box matching. Empty query matches everything."""
    needle = normalize_name(query)
    if not needle:
        return True
    return needle in normalize_name(name)
