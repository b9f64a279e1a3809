"""
Core data structures for the lap timer.

Unit Conventions
----------------
All measurements in this module use SI units unless otherwise noted:

- Time: seconds (float, Unix timestamps with millisecond precision)
- Distance: metres
- Speed: metres per second (m/s)
- Coordinates: decimal degrees (WGS84)

Display code converts to km/h and M:SS.mmm via motolap.utils.formatting,
but all internal calculations and storage use these base units.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from motolap import config


def new_id() -> str:
    """Generate a unique identifier for courses and sessions."""
    return uuid.uuid4().hex


class TimerState(Enum):
    """Lifecycle state shared by the session manager and lap detector."""
    IDLE = "idle"
    TRACKING = "tracking"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class GpsSample:
    """
    Single positioned, timestamped GPS reading.

    Attributes:
        lat: Latitude in decimal degrees (WGS84, -90 to +90).
        lon: Longitude in decimal degrees (WGS84, -180 to +180).
        timestamp: Unix timestamp in seconds of the fix.
        altitude: Altitude above sea level in metres, if reported.
        speed: Ground speed in m/s, or None when unknown. Negative
            receiver readings mean "unknown" and are stored as None.
        accuracy: Horizontal accuracy estimate in metres. Lower is better.
    """
    lat: float
    lon: float
    timestamp: float
    altitude: Optional[float] = None
    speed: Optional[float] = None
    accuracy: float = config.GPS_DEFAULT_ACCURACY_M

    @classmethod
    def create(cls, lat: float, lon: float, timestamp: float,
               altitude: Optional[float] = None,
               speed: Optional[float] = None,
               accuracy: float = config.GPS_DEFAULT_ACCURACY_M) -> 'GpsSample':
        """Build a sample from raw provider values, dropping invalid speeds."""
        if speed is not None and speed < 0:
            speed = None
        return cls(lat=lat, lon=lon, timestamp=timestamp, altitude=altitude,
                   speed=speed, accuracy=accuracy)

    @property
    def valid_speed(self) -> Optional[float]:
        """Speed in m/s if the reading is usable, otherwise None."""
        if self.speed is None or self.speed < 0:
            return None
        return self.speed

    @property
    def position(self) -> Tuple[float, float]:
        return (self.lat, self.lon)


@dataclass
class Course:
    """
    Named start/finish reference used for lap detection.

    Attributes:
        name: Display name, not required to be unique.
        lat, lon: Start/finish reference point in decimal degrees.
        tolerance_radius: Crossing detection radius in metres. A radius
            of zero disables automatic lap detection.
        expected_lap_distance: Informational lap length in metres.
        is_preset: Built-in courses cannot be deleted.
        id: Unique identifier assigned at creation.
        created_at: Unix timestamp of creation.
    """
    name: str
    lat: float
    lon: float
    tolerance_radius: float = config.DEFAULT_TOLERANCE_RADIUS_M
    expected_lap_distance: Optional[float] = None
    is_preset: bool = False
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=time.time)

    @property
    def reference(self) -> Tuple[float, float]:
        return (self.lat, self.lon)

    @classmethod
    def free_mode(cls) -> 'Course':
        """Unsaved course with no reference point; laps are manual only."""
        return cls(
            name=config.FREE_MODE_COURSE_NAME,
            lat=0.0,
            lon=0.0,
            tolerance_radius=0.0,
        )


@dataclass
class Lap:
    """
    One timed segment of a session.

    A lap is open while end_time is None. Closed laps carry their end
    time and position, and the speed figures accumulated during the lap.
    """
    lap_number: int
    start_time: float
    start_lat: float
    start_lon: float
    end_time: Optional[float] = None
    end_lat: Optional[float] = None
    end_lon: Optional[float] = None
    lap_distance: float = 0.0
    max_speed: float = 0.0
    avg_speed: float = 0.0

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    @property
    def lap_time(self) -> Optional[float]:
        """Lap time in seconds, or None while the lap is open."""
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


@dataclass
class Session:
    """
    One continuous timing run against a course.

    course_name and bike_name are denormalised so a session stays
    readable after its course is deleted.
    """
    course_name: str
    start_time: float
    start_lat: float
    start_lon: float
    course_id: Optional[str] = None
    end_time: Optional[float] = None
    bike_id: Optional[str] = None
    bike_name: Optional[str] = None
    laps: List[Lap] = field(default_factory=list)
    total_distance: float = 0.0
    track_points: List[GpsSample] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def duration(self, now: Optional[float] = None) -> float:
        """Elapsed seconds, measured to now while the session is running."""
        end = self.end_time
        if end is None:
            end = now if now is not None else time.time()
        return end - self.start_time

    @property
    def completed_lap_times(self) -> List[float]:
        return [lap.lap_time for lap in self.laps if lap.lap_time is not None]

    @property
    def best_lap_time(self) -> Optional[float]:
        times = self.completed_lap_times
        return min(times) if times else None

    @property
    def best_lap(self) -> Optional[Lap]:
        completed = [lap for lap in self.laps if lap.is_completed]
        if not completed:
            return None
        return min(completed, key=lambda lap: lap.lap_time)

    @property
    def average_lap_time(self) -> Optional[float]:
        times = self.completed_lap_times
        if not times:
            return None
        return sum(times) / len(times)

    @property
    def total_laps(self) -> int:
        return len(self.laps)

    @property
    def max_speed(self) -> float:
        """Highest lap max speed in m/s (0.0 without laps)."""
        if not self.laps:
            return 0.0
        return max(lap.max_speed for lap in self.laps)

    @property
    def average_speed(self) -> float:
        """Mean of the per-lap average speeds in m/s (0.0 without laps)."""
        if not self.laps:
            return 0.0
        return sum(lap.avg_speed for lap in self.laps) / len(self.laps)
