"""Country name to ISO 639-1 language code lookup for localized provider content."""

from typing import Dict, Optional

DEFAULT_LANGUAGE = "en"

COUNTRY_LANGUAGES: Dict[str, str] = {
    # Europe
    "Germany": "de",
    "Austria": "de",
    "Switzerland": "de",
    "France": "fr",
    "Spain": "es",
    "Italy": "it",
    "Portugal": "pt",
    "Netherlands": "nl",
    "Belgium": "nl",
    "Poland": "pl",
    "Czech Republic": "cs",
    "Slovakia": "sk",
    "Hungary": "hu",
    "Romania": "ro",
    "Bulgaria": "bg",
    "Greece": "el",
    "Denmark": "da",
    "Sweden": "sv",
    "Norway": "no",
    "Finland": "fi",
    "Iceland": "is",
    "Russia": "ru",
    "Ukraine": "uk",
    "Belarus": "be",
    "Croatia": "hr",
    "Serbia": "sr",
    "Slovenia": "sl",
    "Lithuania": "lt",
    "Latvia": "lv",
    "Estonia": "et",
    "Turkey": "tr",
    # Asia
    "Japan": "ja",
    "China": "zh",
    "South Korea": "ko",
    "Korea": "ko",
    "Taiwan": "zh",
    "Thailand": "th",
    "Vietnam": "vi",
    "Indonesia": "id",
    "Malaysia": "ms",
    "Philippines": "fil",
    "India": "hi",
    "Pakistan": "ur",
    "Bangladesh": "bn",
    "Iran": "fa",
    "Iraq": "ar",
    "Saudi Arabia": "ar",
    "United Arab Emirates": "ar",
    "Israel": "he",
    # Americas and Oceania
    "United States": "en",
    "United Kingdom": "en",
    "Canada": "en",
    "Australia": "en",
    "New Zealand": "en",
    "Ireland": "en",
    "Mexico": "es",
    "Argentina": "es",
    "Chile": "es",
    "Colombia": "es",
    "Peru": "es",
    "Venezuela": "es",
    "Brazil": "pt",
    # Africa
    "South Africa": "af",
    "Egypt": "ar",
    "Morocco": "ar",
    "Algeria": "ar",
    "Tunisia": "ar",
    "Kenya": "sw",
    "Tanzania": "sw",
}


def language_for_country(country: Optional[str]) -> str:
    """Language to request content in for ``country``. Unknown countries get English."""
    if not country:
        return DEFAULT_LANGUAGE
    return COUNTRY_LANGUAGES.get(country.strip(), DEFAULT_LANGUAGE)
