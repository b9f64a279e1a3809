"""
Track recorder - turns GPS samples into running session totals.

Accumulates session and lap distance, current/max speed, the recorded
track and proximity to the course start/finish point.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from motolap.data.models import Course, GpsSample
from motolap.utils.geometry import haversine_distance

logger = logging.getLogger('motolap.track')


@dataclass
class RecordResult:
    """Outcome of recording one sample."""
    segment_distance: float
    distance_to_reference: Optional[float]
    near_start_line: bool


class TrackRecorder:
    """
    Running totals for the active session.

    The owner only feeds samples while the session is tracking; the
    recorder itself does not know about pause state.
    """

    def __init__(self, course: Optional[Course] = None):
        self.course = course
        self.reset()

    def reset(self):
        """Clear all session and lap counters."""
        self.last_sample: Optional[GpsSample] = None
        self.track_points: List[GpsSample] = []
        self.session_distance = 0.0
        self.current_speed = 0.0
        self.distance_to_reference: Optional[float] = None
        self.near_start_line = False
        self._reset_lap_counters()

    def _reset_lap_counters(self):
        self.lap_distance = 0.0
        self.lap_max_speed = 0.0
        self.lap_speeds: List[float] = []

    def start_new_lap(self):
        """Reset per-lap counters; session totals and track are kept."""
        self._reset_lap_counters()

    @property
    def lap_average_speed(self) -> float:
        """Mean of the valid speed readings for the current lap (0.0 if none)."""
        if not self.lap_speeds:
            return 0.0
        return sum(self.lap_speeds) / len(self.lap_speeds)

    def record(self, sample: GpsSample) -> RecordResult:
        """
        Record one sample.

        Args:
            sample: Next GPS sample in arrival order

        Returns:
            RecordResult with the added distance and start-line proximity
        """
        segment = 0.0
        if self.last_sample is not None:
            segment = haversine_distance(
                self.last_sample.lat, self.last_sample.lon,
                sample.lat, sample.lon
            )
            self.session_distance += segment
            self.lap_distance += segment

        # Bad fixes keep the previous speed rather than dropping to zero
        speed = sample.valid_speed
        if speed is not None:
            self.current_speed = speed
            self.lap_max_speed = max(self.lap_max_speed, speed)
            self.lap_speeds.append(speed)

        self.track_points.append(sample)
        self.last_sample = sample

        self._update_reference_distance(sample)

        return RecordResult(
            segment_distance=segment,
            distance_to_reference=self.distance_to_reference,
            near_start_line=self.near_start_line,
        )

    def _update_reference_distance(self, sample: GpsSample):
        """Update distance to the S/F point and the near-start-line flag."""
        course = self.course
        # No course, or a zero radius (free mode): never near the line
        if course is None or course.tolerance_radius <= 0:
            self.distance_to_reference = None
            self.near_start_line = False
            return

        self.distance_to_reference = haversine_distance(
            sample.lat, sample.lon, course.lat, course.lon
        )
        self.near_start_line = self.distance_to_reference <= course.tolerance_radius
