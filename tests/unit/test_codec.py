"""
Unit tests for the session/course codec.
Tests field naming, optional-field omission and malformed input.
"""

import json

import pytest

from motolap.data.codec import (
    CodecError,
    decode_course,
    decode_courses,
    decode_lap,
    decode_sample,
    decode_session,
    decode_sessions,
    encode_course,
    encode_courses,
    encode_lap,
    encode_sample,
    encode_session,
    encode_sessions,
)
from motolap.data.models import Course, GpsSample, Lap, Session


@pytest.fixture
def full_session():
    """Session with two closed laps, one open lap and a short track."""
    return Session(
        id="s1",
        course_id="c1",
        course_name="Test Circuit",
        start_time=1000.0,
        end_time=1250.0,
        bike_id="b1",
        bike_name="CBR600RR",
        start_lat=35.0,
        start_lon=135.0,
        total_distance=2450.5,
        laps=[
            Lap(1, 1000.0, 35.0, 135.0, end_time=1090.0, end_lat=35.0001,
                end_lon=135.0001, lap_distance=1200.0, max_speed=40.0, avg_speed=25.0),
            Lap(2, 1090.0, 35.0, 135.0, end_time=1180.0, end_lat=35.0002,
                end_lon=135.0, lap_distance=1210.0, max_speed=42.0, avg_speed=26.0),
            Lap(3, 1180.0, 35.0, 135.0, lap_distance=40.5),
        ],
        track_points=[
            GpsSample(35.0, 135.0, 1000.0, altitude=12.0, speed=0.0, accuracy=4.0),
            GpsSample(35.001, 135.0, 1001.0),
        ],
    )


class TestSessionCodec:
    """Tests for session encoding."""

    @pytest.mark.unit
    def test_round_trip_through_json(self, full_session):
        """Test a session survives encode -> JSON -> decode unchanged."""
        text = json.dumps(encode_session(full_session))
        assert decode_session(json.loads(text)) == full_session

    @pytest.mark.unit
    def test_field_names(self, full_session):
        data = encode_session(full_session)
        assert set(data) == {
            'id', 'course_id', 'course_name', 'start_time', 'end_time',
            'bike_id', 'bike_name', 'start_lat', 'start_lon',
            'total_distance', 'laps', 'track_points',
        }

    @pytest.mark.unit
    def test_absent_optionals_omitted(self):
        """Test that None optional fields are left out, not written as null."""
        session = Session(course_name="Free mode", start_time=1.0,
                          start_lat=0.0, start_lon=0.0, id="s2")
        data = encode_session(session)
        for key in ('course_id', 'end_time', 'bike_id', 'bike_name'):
            assert key not in data
        assert data['laps'] == []
        assert data['track_points'] == []
        assert decode_session(data) == session

    @pytest.mark.unit
    def test_open_lap_has_no_end_fields(self):
        lap = Lap(3, 1180.0, 35.0, 135.0, lap_distance=40.5)
        data = encode_lap(lap)
        assert 'end_time' not in data
        assert 'end_lat' not in data
        assert 'end_lon' not in data
        decoded = decode_lap(data)
        assert decoded.end_time is None
        assert decoded.lap_number == 3
        assert isinstance(decoded.lap_number, int)

    @pytest.mark.unit
    def test_sample_optional_fields(self):
        """Test unknown speed and altitude are omitted from track points."""
        data = encode_sample(GpsSample(35.0, 135.0, 1.0))
        assert 'speed' not in data
        assert 'altitude' not in data
        assert decode_sample(data).speed is None

    @pytest.mark.unit
    def test_collections(self, full_session):
        encoded = encode_sessions([full_session])
        assert decode_sessions(encoded) == [full_session]
        assert decode_sessions(None) == []
        assert decode_sessions([]) == []


class TestCourseCodec:
    """Tests for course encoding."""

    @pytest.mark.unit
    def test_round_trip(self):
        course = Course(name="Track", lat=35.0, lon=135.0, tolerance_radius=40.0,
                        expected_lap_distance=3000.0, id="c1", created_at=123.0)
        assert decode_course(json.loads(json.dumps(encode_course(course)))) == course

    @pytest.mark.unit
    def test_missing_expected_lap_distance(self):
        course = Course(name="Track", lat=35.0, lon=135.0, id="c1", created_at=1.0)
        data = encode_course(course)
        assert 'expected_lap_distance' not in data
        assert decode_course(data).expected_lap_distance is None

    @pytest.mark.unit
    def test_collections(self):
        courses = [Course(name="A", lat=1.0, lon=2.0, id="a", created_at=1.0)]
        assert decode_courses(encode_courses(courses)) == courses
        assert decode_courses(None) == []


class TestMalformedInput:
    """Tests for CodecError on bad data."""

    @pytest.mark.unit
    def test_missing_required_field(self, full_session):
        data = encode_session(full_session)
        del data['start_time']
        with pytest.raises(CodecError, match="start_time"):
            decode_session(data)

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["1000", True, None, [1]])
    def test_wrong_number_type(self, full_session, value):
        """Test that strings and booleans are not accepted as numbers."""
        data = encode_session(full_session)
        data['start_time'] = value
        with pytest.raises(CodecError):
            decode_session(data)

    @pytest.mark.unit
    def test_collection_not_a_list(self):
        with pytest.raises(CodecError):
            decode_sessions({"id": "s1"})
        with pytest.raises(CodecError):
            decode_courses("courses")

    @pytest.mark.unit
    def test_item_not_an_object(self):
        with pytest.raises(CodecError):
            decode_sessions([42])

    @pytest.mark.unit
    def test_is_preset_must_be_bool(self):
        course = Course(name="A", lat=1.0, lon=2.0, id="a", created_at=1.0)
        data = encode_course(course)
        data['is_preset'] = "no"
        with pytest.raises(CodecError):
            decode_course(data)

    @pytest.mark.unit
    def test_codec_error_is_value_error(self):
        assert issubclass(CodecError, ValueError)

    @pytest.mark.unit
    def test_lap_number_must_be_integral(self):
        """Test a fractional lap number is rejected and a whole float accepted."""
        data = encode_lap(Lap(2, 1000.0, 35.0, 135.0))
        data['lap_number'] = 2.7
        with pytest.raises(CodecError, match="lap_number"):
            decode_lap(data)
        data['lap_number'] = 2.0
        assert decode_lap(data).lap_number == 2
