import pytest

from discovery.config import EngineConfig, ProviderConfig
from discovery.factory import build_adapters
from discovery.models import POISource

ENGINE_VARS = [
    "DISCOVERY_CACHE_CAPACITY",
    "DISCOVERY_DISPLAY_LIMIT",
    "DISCOVERY_MAX_ATTEMPTS",
    "DISCOVERY_RADIUS_STEP_M",
    "DISCOVERY_MIN_RADIUS_M",
    "DISCOVERY_RETRY_BASE_DELAY_S",
    "DISCOVERY_ADAPTER_TIMEOUT_S",
    "DISCOVERY_PROXIMITY_THRESHOLD_M",
    "DISCOVERY_NAME_SIMILARITY",
    "DISCOVERY_PHASE_ONE_SOURCE",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENGINE_VARS + ["GOOGLE_PLACES_API_KEY", "WIKIPEDIA_LANGUAGE", "DISCOVERY_USER_AGENT"]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_engine_config_defaults(clean_env):
    config = EngineConfig.from_env()

    assert config.cache_capacity == 10
    assert config.display_limit == 25
    assert config.max_attempts == 3
    assert config.radius_step_m == 500
    assert config.phase_one_source == POISource.WIKIPEDIA


def test_engine_config_reads_environment(clean_env):
    clean_env.setenv("DISCOVERY_CACHE_CAPACITY", "4")
    clean_env.setenv("DISCOVERY_RETRY_BASE_DELAY_S", "0.25")
    clean_env.setenv("DISCOVERY_PHASE_ONE_SOURCE", "Overpass")

    config = EngineConfig.from_env()

    assert config.cache_capacity == 4
    assert config.retry_base_delay_s == 0.25
    assert config.phase_one_source == POISource.OVERPASS


def test_invalid_values_fall_back_to_defaults(clean_env):
    clean_env.setenv("DISCOVERY_MAX_ATTEMPTS", "three")
    clean_env.setenv("DISCOVERY_NAME_SIMILARITY", "")
    clean_env.setenv("DISCOVERY_PHASE_ONE_SOURCE", "bing")

    config = EngineConfig.from_env()

    assert config.max_attempts == 3
    assert config.name_similarity == 0.7
    assert config.phase_one_source == POISource.WIKIPEDIA


@pytest.mark.parametrize(
    "name, value, field, default",
    [
        ("DISCOVERY_MAX_ATTEMPTS", "0", "max_attempts", 3),
        ("DISCOVERY_CACHE_CAPACITY", "-2", "cache_capacity", 10),
        ("DISCOVERY_MIN_RADIUS_M", "0", "min_radius_m", 1000),
        ("DISCOVERY_NAME_SIMILARITY", "1.5", "name_similarity", 0.7),
        ("DISCOVERY_NAME_SIMILARITY", "0", "name_similarity", 0.7),
        ("DISCOVERY_ADAPTER_TIMEOUT_S", "0", "adapter_timeout_s", 15.0),
        ("DISCOVERY_RETRY_BASE_DELAY_S", "-1", "retry_base_delay_s", 0.5),
    ],
)
def test_out_of_range_environment_values_fall_back_to_defaults(clean_env, name, value, field, default):
    clean_env.setenv(name, value)

    config = EngineConfig.from_env()

    assert getattr(config, field) == default


@pytest.mark.parametrize(
    "kwargs",
    [
        {"cache_capacity": 0},
        {"display_limit": 0},
        {"max_attempts": 0},
        {"min_radius_m": 0},
        {"adapter_timeout_s": 0},
        {"name_similarity": 1.5},
    ],
)
def test_engine_config_rejects_out_of_range_values(kwargs):
    with pytest.raises(ValueError):
        EngineConfig(**kwargs)


def test_google_adapter_only_built_with_key(clean_env):
    without_key = build_adapters(ProviderConfig.from_env())
    assert POISource.GOOGLE_PLACES not in without_key
    assert set(without_key) == {POISource.WIKIPEDIA, POISource.WIKIDATA, POISource.OVERPASS}

    clean_env.setenv("GOOGLE_PLACES_API_KEY", "secret")
    clean_env.setenv("WIKIPEDIA_LANGUAGE", "fr")
    config = ProviderConfig.from_env()
    adapters = build_adapters(config)

    assert config.google_places_api_key == "secret"
    assert adapters[POISource.WIKIPEDIA].language == "fr"
    assert POISource.GOOGLE_PLACES in adapters
