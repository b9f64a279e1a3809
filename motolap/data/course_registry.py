"""
Course registry - built-in circuits plus user-defined courses.

Preset courses are seeded at construction and are always part of any
listing. Only custom courses are written to the settings store, as a
whole collection under config.COURSES_KEY.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from motolap import config
from motolap.data.codec import CodecError, decode_courses, encode_courses
from motolap.data.models import Course
from motolap.utils.geometry import haversine_distance

logger = logging.getLogger('motolap.courses')


PRESET_COURSES: Tuple[Course, ...] = (
    Course(
        id="preset-suzuka",
        name="Suzuka Circuit",
        lat=34.8431,
        lon=136.5407,
        tolerance_radius=config.PRESET_TOLERANCE_RADIUS_M,
        expected_lap_distance=5807.0,
        is_preset=True,
        created_at=0.0,
    ),
    Course(
        id="preset-fuji",
        name="Fuji Speedway",
        lat=35.3681,
        lon=138.9107,
        tolerance_radius=config.PRESET_TOLERANCE_RADIUS_M,
        expected_lap_distance=4563.0,
        is_preset=True,
        created_at=0.0,
    ),
    Course(
        id="preset-motegi",
        name="Twin Ring Motegi",
        lat=36.5389,
        lon=140.2269,
        tolerance_radius=config.PRESET_TOLERANCE_RADIUS_M,
        expected_lap_distance=4801.0,
        is_preset=True,
        created_at=0.0,
    ),
)


@dataclass
class NearbyCourse:
    """A course found near a position, with its distance to the S/F point."""
    course: Course
    distance_m: float


class CourseRegistry:
    """Key-value store over Course records, keyed by course id."""

    def __init__(self, settings, presets: Tuple[Course, ...] = PRESET_COURSES):
        """
        Args:
            settings: Settings store (get/set) holding the custom courses
            presets: Built-in courses, never persisted or deleted
        """
        self._settings = settings
        self._presets = tuple(presets)
        self._preset_ids = {c.id for c in self._presets}

    @property
    def presets(self) -> List[Course]:
        return list(self._presets)

    def _load_custom(self) -> List[Course]:
        """Load custom courses; unreadable data is treated as no courses."""
        try:
            courses = decode_courses(self._settings.get(config.COURSES_KEY))
        except CodecError as e:
            logger.warning("Could not decode saved courses, using presets only: %s", e)
            return []
        return [c for c in courses if c.id not in self._preset_ids]

    def _save_custom(self, courses: List[Course]) -> bool:
        try:
            saved = self._settings.set(config.COURSES_KEY, encode_courses(courses))
        except Exception as e:
            logger.warning("Could not save courses: %s", e)
            return False
        if saved is False:
            logger.warning("Courses were not persisted")
            return False
        return True

    def list_courses(self) -> List[Course]:
        """All courses: presets first, then custom courses in creation order."""
        return list(self._presets) + self._load_custom()

    def custom_courses(self) -> List[Course]:
        return self._load_custom()

    def get(self, course_id: str) -> Optional[Course]:
        for course in self.list_courses():
            if course.id == course_id:
                return course
        return None

    def find_by_name(self, name: str) -> List[Course]:
        """Courses with this name (names are not unique)."""
        return [c for c in self.list_courses() if c.name == name]

    def add(self, course: Course) -> bool:
        """
        Save a user-defined course.

        Returns:
            False if the course is flagged preset, its id is already used,
            or it could not be persisted
        """
        if course.is_preset or course.id in self._preset_ids:
            logger.warning("Refusing to save preset course '%s'", course.name)
            return False

        courses = self._load_custom()
        if any(c.id == course.id for c in courses):
            logger.warning("Course id %s already exists", course.id)
            return False

        courses.append(course)
        if not self._save_custom(courses):
            return False
        logger.info("Saved course '%s' (%.0fm radius)", course.name, course.tolerance_radius)
        return True

    def create(
        self,
        name: str,
        lat: float,
        lon: float,
        tolerance_radius: float = config.DEFAULT_TOLERANCE_RADIUS_M,
        expected_lap_distance: Optional[float] = None,
    ) -> Course:
        """Create, save and return a new custom course with a fresh id."""
        course = Course(
            name=name,
            lat=lat,
            lon=lon,
            tolerance_radius=tolerance_radius,
            expected_lap_distance=expected_lap_distance,
        )
        self.add(course)
        return course

    def delete(self, course: Union[Course, str]) -> bool:
        """
        Delete a custom course by object or id.

        Preset courses are silently kept.

        Returns:
            True if a course was removed
        """
        if isinstance(course, Course):
            if course.is_preset:
                logger.debug("Ignoring delete of preset course '%s'", course.name)
                return False
            course_id = course.id
        else:
            course_id = course

        if course_id in self._preset_ids:
            logger.debug("Ignoring delete of preset course %s", course_id)
            return False

        courses = self._load_custom()
        remaining = [c for c in courses if c.id != course_id]
        if len(remaining) == len(courses):
            return False

        if not self._save_custom(remaining):
            return False
        logger.info("Deleted course %s", course_id)
        return True

    def find_nearby(
        self,
        lat: float,
        lon: float,
        max_distance_km: float = None
    ) -> List[NearbyCourse]:
        """
        Find courses within specified distance of GPS position.

        Args:
            lat, lon: GPS coordinates (decimal degrees)
            max_distance_km: Maximum distance to search (km)

        Returns:
            List of NearbyCourse, sorted by distance (nearest first)
        """
        if max_distance_km is None:
            max_distance_km = config.COURSE_SEARCH_RADIUS_KM

        nearby = []
        for course in self.list_courses():
            distance = haversine_distance(lat, lon, course.lat, course.lon)
            if distance <= max_distance_km * 1000.0:
                nearby.append(NearbyCourse(course=course, distance_m=distance))

        nearby.sort(key=lambda n: n.distance_m)
        return nearby
