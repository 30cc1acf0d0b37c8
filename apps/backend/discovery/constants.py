"""Shared constants for the discovery module."""

# Mean Earth radius used by the haversine distance
EARTH_RADIUS_M = 6371000.0

DEFAULT_SEARCH_RADIUS_M = 5000
MIN_SEARCH_RADIUS_M = 1000
MAX_SEARCH_RADIUS_M = 10000

DEFAULT_CACHE_CAPACITY = 10
DEFAULT_DISPLAY_LIMIT = 25

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RADIUS_STEP_M = 500
DEFAULT_MIN_RETRY_RADIUS_M = 1000
DEFAULT_RETRY_BASE_DELAY_S = 0.5
DEFAULT_ADAPTER_TIMEOUT_S = 15.0

DEFAULT_PROXIMITY_THRESHOLD_M = 50.0
DEFAULT_NAME_SIMILARITY = 0.7
# Shorter names are only matched by equality or similarity, never containment
MIN_CONTAINMENT_LENGTH = 4

GENERIC_FAILURE_MESSAGE = "Unable to discover nearby places. Please try again."
ALL_SOURCES_FAILED_MESSAGE = "Unable to reach any place provider. Please try again."
CONFIGURATION_MESSAGE = "at least one {category} type/source must be enabled"

DEFAULT_USER_AGENT = "poi-discovery-engine/1.0"
