"""
Field-named encoding of sessions and courses.

Collections are encoded as lists of plain dicts suitable for JSON. Optional
fields are omitted when absent rather than written as null or a default,
so decoding restores exactly what was encoded.
"""

from typing import Any, Callable, Dict, List, Optional

from motolap.data.models import Course, GpsSample, Lap, Session


class CodecError(ValueError):
    """Raised when persisted data cannot be decoded."""


def _put_optional(data: Dict[str, Any], key: str, value: Any):
    if value is not None:
        data[key] = value


def _required(data: Dict[str, Any], key: str, kind: Callable = float) -> Any:
    try:
        value = data[key]
    except KeyError:
        raise CodecError(f"missing field '{key}'") from None
    return _coerce(key, value, kind)


def _optional(data: Dict[str, Any], key: str, kind: Callable = float) -> Any:
    if key not in data:
        return None
    return _coerce(key, data[key], kind)


def _coerce(key: str, value: Any, kind: Callable) -> Any:
    if kind is bool:
        if not isinstance(value, bool):
            raise CodecError(f"field '{key}' must be a boolean")
        return value
    if kind is str:
        if not isinstance(value, str):
            raise CodecError(f"field '{key}' must be a string")
        return value
    # Numbers: reject bools and strings, which float() would accept
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CodecError(f"field '{key}' must be a number")
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise CodecError(f"field '{key}' must be an integer")
    return kind(value)


def _require_mapping(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise CodecError(f"{what} must be an object")
    return data


def _require_list(data: Any, what: str) -> List[Any]:
    if not isinstance(data, list):
        raise CodecError(f"{what} must be a list")
    return data


# =============================================================================
# GPS samples
# =============================================================================

def encode_sample(sample: GpsSample) -> Dict[str, Any]:
    data = {
        'lat': sample.lat,
        'lon': sample.lon,
        'timestamp': sample.timestamp,
        'accuracy': sample.accuracy,
    }
    _put_optional(data, 'altitude', sample.altitude)
    _put_optional(data, 'speed', sample.speed)
    return data


def decode_sample(data: Any) -> GpsSample:
    data = _require_mapping(data, "track point")
    return GpsSample(
        lat=_required(data, 'lat'),
        lon=_required(data, 'lon'),
        timestamp=_required(data, 'timestamp'),
        altitude=_optional(data, 'altitude'),
        speed=_optional(data, 'speed'),
        accuracy=_required(data, 'accuracy'),
    )


# =============================================================================
# Laps
# =============================================================================

def encode_lap(lap: Lap) -> Dict[str, Any]:
    data = {
        'lap_number': lap.lap_number,
        'start_time': lap.start_time,
        'start_lat': lap.start_lat,
        'start_lon': lap.start_lon,
        'lap_distance': lap.lap_distance,
        'max_speed': lap.max_speed,
        'avg_speed': lap.avg_speed,
    }
    _put_optional(data, 'end_time', lap.end_time)
    _put_optional(data, 'end_lat', lap.end_lat)
    _put_optional(data, 'end_lon', lap.end_lon)
    return data


def decode_lap(data: Any) -> Lap:
    data = _require_mapping(data, "lap")
    return Lap(
        lap_number=_required(data, 'lap_number', int),
        start_time=_required(data, 'start_time'),
        start_lat=_required(data, 'start_lat'),
        start_lon=_required(data, 'start_lon'),
        end_time=_optional(data, 'end_time'),
        end_lat=_optional(data, 'end_lat'),
        end_lon=_optional(data, 'end_lon'),
        lap_distance=_required(data, 'lap_distance'),
        max_speed=_required(data, 'max_speed'),
        avg_speed=_required(data, 'avg_speed'),
    )


# =============================================================================
# Sessions
# =============================================================================

def encode_session(session: Session) -> Dict[str, Any]:
    data = {
        'id': session.id,
        'course_name': session.course_name,
        'start_time': session.start_time,
        'start_lat': session.start_lat,
        'start_lon': session.start_lon,
        'total_distance': session.total_distance,
        'laps': [encode_lap(lap) for lap in session.laps],
        'track_points': [encode_sample(p) for p in session.track_points],
    }
    _put_optional(data, 'course_id', session.course_id)
    _put_optional(data, 'end_time', session.end_time)
    _put_optional(data, 'bike_id', session.bike_id)
    _put_optional(data, 'bike_name', session.bike_name)
    return data


def decode_session(data: Any) -> Session:
    data = _require_mapping(data, "session")
    laps = _require_list(data.get('laps', []), "laps")
    points = _require_list(data.get('track_points', []), "track_points")
    return Session(
        id=_required(data, 'id', str),
        course_id=_optional(data, 'course_id', str),
        course_name=_required(data, 'course_name', str),
        start_time=_required(data, 'start_time'),
        end_time=_optional(data, 'end_time'),
        bike_id=_optional(data, 'bike_id', str),
        bike_name=_optional(data, 'bike_name', str),
        laps=[decode_lap(lap) for lap in laps],
        total_distance=_required(data, 'total_distance'),
        start_lat=_required(data, 'start_lat'),
        start_lon=_required(data, 'start_lon'),
        track_points=[decode_sample(p) for p in points],
    )


def encode_sessions(sessions: List[Session]) -> List[Dict[str, Any]]:
    return [encode_session(s) for s in sessions]


def decode_sessions(data: Optional[Any]) -> List[Session]:
    """Decode a stored session collection. None decodes to an empty list."""
    if data is None:
        return []
    return [decode_session(item) for item in _require_list(data, "sessions")]


# =============================================================================
# Courses
# =============================================================================

def encode_course(course: Course) -> Dict[str, Any]:
    data = {
        'id': course.id,
        'name': course.name,
        'lat': course.lat,
        'lon': course.lon,
        'tolerance_radius': course.tolerance_radius,
        'is_preset': course.is_preset,
        'created_at': course.created_at,
    }
    _put_optional(data, 'expected_lap_distance', course.expected_lap_distance)
    return data


def decode_course(data: Any) -> Course:
    data = _require_mapping(data, "course")
    return Course(
        id=_required(data, 'id', str),
        name=_required(data, 'name', str),
        lat=_required(data, 'lat'),
        lon=_required(data, 'lon'),
        tolerance_radius=_required(data, 'tolerance_radius'),
        expected_lap_distance=_optional(data, 'expected_lap_distance'),
        is_preset=_required(data, 'is_preset', bool),
        created_at=_required(data, 'created_at'),
    )


def encode_courses(courses: List[Course]) -> List[Dict[str, Any]]:
    return [encode_course(c) for c in courses]


def decode_courses(data: Optional[Any]) -> List[Course]:
    """Decode a stored course collection. None decodes to an empty list."""
    if data is None:
        return []
    return [decode_course(item) for item in _require_list(data, "courses")]
