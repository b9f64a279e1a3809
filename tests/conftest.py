"""
Shared pytest fixtures for motolap tests.
"""

import os
import sys
import pytest
import tempfile
import json

# Add project root and tests dir to path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)
sys.path.insert(0, os.path.join(PROJECT_ROOT, 'tests'))

from fixtures.gps_test_data import (  # noqa: E402
    TEST_COURSE_REFERENCE,
    TEST_COURSE_TOLERANCE_M,
)
from motolap.core.session_manager import SessionManager  # noqa: E402
from motolap.data.course_registry import CourseRegistry  # noqa: E402
from motolap.data.models import Course, GpsSample  # noqa: E402
from motolap.data.session_store import SessionStore  # noqa: E402
from motolap.hardware.geo_sampler import ReplayGeoSampler  # noqa: E402
from motolap.utils.geometry import offset_position  # noqa: E402
from motolap.utils.settings import InMemorySettingsStore  # noqa: E402


class FakeClock:
    """Manually advanced clock returning Unix-style timestamps."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


def sample_at(north_m, east_m, timestamp, speed=None, accuracy=5.0,
              origin=TEST_COURSE_REFERENCE, altitude=None):
    """Build a sample offset from the test course reference point."""
    lat, lon = offset_position(origin[0], origin[1], north_m, east_m)
    return GpsSample.create(lat=lat, lon=lon, timestamp=timestamp,
                            altitude=altitude, speed=speed, accuracy=accuracy)


@pytest.fixture
def make_sample():
    """Factory for samples at a (north, east) offset from the test course."""
    return sample_at


@pytest.fixture
def clock():
    """Fake clock shared by the session manager and the test."""
    return FakeClock()


@pytest.fixture
def settings():
    """Empty in-memory settings store."""
    return InMemorySettingsStore()


@pytest.fixture
def sampler():
    """Replay sampler that tests push samples into."""
    return ReplayGeoSampler()


@pytest.fixture
def registry(settings):
    return CourseRegistry(settings)


@pytest.fixture
def store(settings):
    return SessionStore(settings)


@pytest.fixture
def test_course():
    """Course at (35.0, 135.0) with a 50m tolerance radius."""
    return Course(
        name="Test Circuit",
        lat=TEST_COURSE_REFERENCE[0],
        lon=TEST_COURSE_REFERENCE[1],
        tolerance_radius=TEST_COURSE_TOLERANCE_M,
        expected_lap_distance=1200.0,
    )


@pytest.fixture
def manager(sampler, registry, store, clock, settings):
    """Session manager wired to in-memory stores and the fake clock."""
    mgr = SessionManager(sampler, registry, store, clock=clock,
                         settings=settings, tick_interval=3600.0)
    yield mgr
    mgr._timer.stop()


@pytest.fixture
def temp_settings_file():
    """Create a temporary settings file for testing SettingsStore."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        f.write('{}')
        temp_path = f.name
    yield temp_path
    # Cleanup
    if os.path.exists(temp_path):
        os.remove(temp_path)


@pytest.fixture
def temp_settings_with_data():
    """Create a temporary settings file with pre-populated data."""
    test_data = {
        "lap_timer": {
            "tolerance_radius_m": 40.0,
            "kalman_enabled": False
        },
        "display": {
            "units": "metric"
        }
    }
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        json.dump(test_data, f)
        temp_path = f.name
    yield temp_path
    # Cleanup
    if os.path.exists(temp_path):
        os.remove(temp_path)
