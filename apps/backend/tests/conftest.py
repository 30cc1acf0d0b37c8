import os
import sys

import pytest

# Add parent directory to path to allow importing discovery and observability
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from discovery.models import Origin


@pytest.fixture
def paris():
    return Origin(id="paris", name="Paris", latitude=48.8566, longitude=2.3522, country="France")


@pytest.fixture
def london():
    return Origin(id="london", name="London", latitude=51.5074, longitude=-0.1278)


@pytest.fixture
def recorded_sleeps():
    """A sleep replacement that records requested delays without waiting."""
    delays = []

    async def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep
