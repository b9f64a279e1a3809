"""
Application wiring.

Builds the process-wide lap timer services once at startup and hands the
same instances to whoever needs them.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from motolap import config
from motolap.core.session_manager import SessionManager
from motolap.data.course_registry import CourseRegistry
from motolap.data.session_store import SessionStore
from motolap.hardware.geo_sampler import GeoSampler, SmoothedGeoSampler
from motolap.utils.gps_kalman_filter import GPSKalmanFilter
from motolap.utils.settings import SettingsStore

logger = logging.getLogger('motolap.app')


@dataclass
class LapTimerServices:
    """The wired set of services for one process."""
    settings: object
    sampler: GeoSampler
    courses: CourseRegistry
    sessions: SessionStore
    manager: SessionManager


def wrap_sampler(sampler: GeoSampler, settings) -> GeoSampler:
    """Apply Kalman smoothing if enabled in settings (default from config)."""
    enabled = settings.get(config.SETTING_KALMAN_ENABLED, config.KALMAN_FILTER_ENABLED)
    if enabled:
        logger.info("GPS smoothing enabled")
        return SmoothedGeoSampler(sampler, GPSKalmanFilter())
    return sampler


def create_services(
    sampler: GeoSampler,
    settings=None,
    clock: Callable[[], float] = time.time,
    settings_path: Optional[str] = None,
) -> LapTimerServices:
    """
    Build settings, course registry, session store and session manager.

    Args:
        sampler: Source of GPS samples
        settings: Existing settings store, or None to open the JSON file
        clock: Source of "now" for session and lap timestamps
        settings_path: JSON settings file when settings is None
    """
    if settings is None:
        settings = SettingsStore(settings_path)

    sampler = wrap_sampler(sampler, settings)
    courses = CourseRegistry(settings)
    sessions = SessionStore(settings)
    manager = SessionManager(sampler, courses, sessions, clock=clock, settings=settings)

    return LapTimerServices(
        settings=settings,
        sampler=sampler,
        courses=courses,
        sessions=sessions,
        manager=manager,
    )
