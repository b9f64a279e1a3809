"""
Unit tests for the course registry.
Tests presets, custom course persistence and nearby search.
"""

import pytest

from fixtures.gps_test_data import PRESET_LAP_DISTANCES
from motolap import config
from motolap.data.course_registry import PRESET_COURSES, CourseRegistry
from motolap.data.models import Course


class TestPresets:
    """Tests for built-in courses."""

    @pytest.mark.unit
    def test_presets_listed_on_empty_store(self, registry):
        """Test that a fresh registry lists exactly the presets."""
        courses = registry.list_courses()
        assert [c.id for c in courses] == [c.id for c in PRESET_COURSES]
        assert all(c.is_preset for c in courses)

    @pytest.mark.unit
    def test_preset_lap_distances(self, registry):
        for course in registry.presets:
            assert course.expected_lap_distance == PRESET_LAP_DISTANCES[course.id]
            assert course.tolerance_radius == 50.0

    @pytest.mark.unit
    def test_delete_preset_is_noop(self, registry, settings):
        """Test that deleting a preset returns False and changes nothing."""
        preset = registry.presets[0]
        assert registry.delete(preset) is False
        assert registry.delete(preset.id) is False
        assert preset.id in [c.id for c in registry.list_courses()]
        assert settings.get(config.COURSES_KEY) is None

    @pytest.mark.unit
    def test_presets_not_persisted(self, registry, settings):
        registry.create("Home", 35.0, 135.0)
        stored = settings.get(config.COURSES_KEY)
        assert len(stored) == 1
        assert stored[0]['is_preset'] is False


class TestCustomCourses:
    """Tests for adding and deleting custom courses."""

    @pytest.mark.unit
    def test_create_appears_after_presets(self, registry):
        course = registry.create("Home", 35.0, 135.0, tolerance_radius=40.0,
                                 expected_lap_distance=1500.0)
        courses = registry.list_courses()
        assert courses[-1] == course
        assert len(courses) == len(PRESET_COURSES) + 1
        assert registry.get(course.id) == course

    @pytest.mark.unit
    def test_persisted_across_instances(self, registry, settings):
        """Test that a second registry on the same store sees the course."""
        course = registry.create("Home", 35.0, 135.0)
        other = CourseRegistry(settings)
        assert other.get(course.id) == course

    @pytest.mark.unit
    def test_delete_removes_exactly_one(self, registry):
        """Test that deleting one custom course keeps the others."""
        a = registry.create("A", 35.0, 135.0)
        b = registry.create("B", 35.1, 135.1)
        c = registry.create("A", 35.2, 135.2)

        assert registry.delete(b) is True
        ids = [x.id for x in registry.custom_courses()]
        assert ids == [a.id, c.id]

    @pytest.mark.unit
    def test_delete_unknown_id(self, registry):
        registry.create("A", 35.0, 135.0)
        assert registry.delete("no-such-course") is False
        assert len(registry.custom_courses()) == 1

    @pytest.mark.unit
    def test_add_rejects_duplicates_and_presets(self, registry):
        course = Course(name="A", lat=35.0, lon=135.0)
        assert registry.add(course) is True
        assert registry.add(course) is False
        assert registry.add(Course(name="P", lat=1.0, lon=1.0, is_preset=True)) is False
        assert registry.add(Course(name="P", lat=1.0, lon=1.0, id="preset-fuji")) is False
        assert len(registry.custom_courses()) == 1

    @pytest.mark.unit
    def test_duplicate_names_allowed(self, registry):
        registry.create("Same", 35.0, 135.0)
        registry.create("Same", 36.0, 136.0)
        assert len(registry.find_by_name("Same")) == 2


class TestCorruptData:
    """Tests for unreadable course data."""

    @pytest.mark.unit
    @pytest.mark.parametrize("stored", [
        "garbage",
        [{"id": "x"}],
        [{"id": "x", "name": "A", "lat": "35", "lon": 135.0,
          "tolerance_radius": 30.0, "is_preset": False, "created_at": 1.0}],
    ])
    def test_falls_back_to_presets(self, settings, stored):
        """Test that undecodable courses leave only the presets."""
        settings.set(config.COURSES_KEY, stored)
        registry = CourseRegistry(settings)
        assert [c.id for c in registry.list_courses()] == [c.id for c in PRESET_COURSES]

    @pytest.mark.unit
    def test_stored_preset_ids_ignored(self, settings):
        settings.set(config.COURSES_KEY, [{
            "id": "preset-suzuka", "name": "Fake", "lat": 0.0, "lon": 0.0,
            "tolerance_radius": 1.0, "is_preset": False, "created_at": 1.0,
        }])
        registry = CourseRegistry(settings)
        assert registry.get("preset-suzuka").name == "Suzuka Circuit"
        assert registry.custom_courses() == []


class TestFindNearby:
    """Tests for nearby course search."""

    @pytest.mark.unit
    def test_nearest_first(self, registry):
        far = registry.create("Far", 35.05, 135.0)
        near = registry.create("Near", 35.01, 135.0)
        results = registry.find_nearby(35.0, 135.0)
        assert [r.course.id for r in results] == [near.id, far.id]
        assert results[0].distance_m == pytest.approx(1112, rel=0.01)

    @pytest.mark.unit
    def test_radius_limit(self, registry):
        registry.create("Far", 35.5, 135.0)
        assert registry.find_nearby(35.0, 135.0, max_distance_km=10) == []
        assert len(registry.find_nearby(35.0, 135.0, max_distance_km=100)) == 1

    @pytest.mark.unit
    def test_finds_presets(self, registry):
        results = registry.find_nearby(34.8431, 136.5407)
        assert results[0].course.id == "preset-suzuka"
        assert results[0].distance_m == pytest.approx(0.0, abs=1e-6)


class TestWriteFailure:
    """Tests for courses that cannot be persisted."""

    @pytest.mark.unit
    def test_add_reports_failure(self, temp_settings_file):
        import os
        from motolap.utils.settings import SettingsStore
        settings = SettingsStore(os.path.join(temp_settings_file, 'settings.json'))
        registry = CourseRegistry(settings)
        assert registry.add(Course(name="Home", lat=35.0, lon=135.0)) is False
