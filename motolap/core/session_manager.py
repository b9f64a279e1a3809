"""
Session manager - owns the lifecycle of a lap timing session.

Consumes GPS samples from a GeoSampler, feeds them through the track
recorder and lap detector, and persists the finished session on stop.

State machine:
    idle -> tracking -> (paused <-> tracking) -> idle

Invalid transitions are silent no-ops: the call returns False/None and
the state is unchanged.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Union

from motolap import config
from motolap.core.elapsed_timer import ElapsedTimer
from motolap.core.lap_detector import LapDetector
from motolap.core.track_recorder import TrackRecorder
from motolap.data.course_registry import CourseRegistry
from motolap.data.models import Course, GpsSample, Lap, Session, TimerState
from motolap.data.session_store import SessionStore
from motolap.utils.formatting import format_lap_time

logger = logging.getLogger('motolap.session')

# Listener events
EVENT_STATE_CHANGED = "state_changed"
EVENT_LAP_COMPLETED = "lap_completed"
EVENT_SAMPLE_RECORDED = "sample_recorded"
EVENT_SESSION_SAVED = "session_saved"

Listener = Callable[[str, Any], None]


class SessionManager:
    """
    Lap timer session owner.

    All mutation of session, lap and track state happens under one lock,
    so samples are processed one at a time in arrival order even when the
    sampler delivers them from its own thread.
    """

    def __init__(
        self,
        sampler,
        courses: CourseRegistry,
        store: SessionStore,
        clock: Callable[[], float] = time.time,
        settings=None,
        tick_interval: float = config.TICK_INTERVAL_S,
    ):
        """
        Args:
            sampler: GeoSampler delivering GPS samples
            courses: Course registry for course management
            store: Session store for finished sessions
            clock: Source of "now" as a Unix timestamp
            settings: Optional settings store for user overrides
            tick_interval: Elapsed-time display refresh (seconds)
        """
        self.sampler = sampler
        self.courses = courses
        self.store = store
        self.clock = clock
        self.settings = settings

        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._timer = ElapsedTimer(self._on_tick, tick_interval)

        self.recorder = TrackRecorder()
        self.detector = LapDetector()

        self.state = TimerState.IDLE
        self.current_session: Optional[Session] = None
        self.current_course: Optional[Course] = None
        self.session_start_time: Optional[float] = None
        self.lap_start_time: Optional[float] = None
        self.current_lap = 0
        self.laps: List[Lap] = []
        self.total_time = 0.0
        self.current_lap_time = 0.0

    # =========================================================================
    # Observers
    # =========================================================================

    def add_listener(self, listener: Listener):
        """Register a callback receiving (event, payload)."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: str, payload: Any = None):
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception as e:
                logger.warning("Listener failed on %s: %s", event, e)

    def _set_state(self, state: TimerState):
        self.state = state
        self._emit(EVENT_STATE_CHANGED, state)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, course: Course, bike_id: Optional[str] = None,
              bike_name: Optional[str] = None) -> bool:
        """
        Start a new session against a course.

        Returns:
            False (and does nothing) unless the timer is idle
        """
        with self._lock:
            if self.state != TimerState.IDLE:
                logger.debug("Ignoring start while %s", self.state.value)
                return False

            self._reset_counters()
            now = self.clock()

            self.current_course = course
            self.recorder.course = course
            self.current_session = Session(
                course_id=course.id,
                course_name=course.name,
                start_time=now,
                start_lat=course.lat,
                start_lon=course.lon,
                bike_id=bike_id,
                bike_name=bike_name,
            )
            self.session_start_time = now
            self.lap_start_time = now
            self.current_lap = 1

            self._set_state(TimerState.TRACKING)
            self.sampler.subscribe(self.process_sample)
            self.sampler.start_updates()
            self._timer.start()

            logger.info("Session started on '%s'%s", course.name,
                        f" with {bike_name}" if bike_name else "")
            return True

    def pause(self) -> bool:
        """Suspend sample consumption; counters are kept."""
        with self._lock:
            if self.state != TimerState.TRACKING:
                logger.debug("Ignoring pause while %s", self.state.value)
                return False

            self.sampler.unsubscribe(self.process_sample)
            self._timer.stop()
            self._refresh_elapsed()
            self._set_state(TimerState.PAUSED)
            logger.info("Session paused on lap %d", self.current_lap)
            return True

    def resume(self) -> bool:
        """Resume sample consumption without any backfill."""
        with self._lock:
            if self.state != TimerState.PAUSED:
                logger.debug("Ignoring resume while %s", self.state.value)
                return False

            self._set_state(TimerState.TRACKING)
            self.sampler.subscribe(self.process_sample)
            self._timer.start()
            logger.info("Session resumed on lap %d", self.current_lap)
            return True

    def stop(self) -> Optional[Session]:
        """
        Finish the session and persist it.

        An open lap is stored as-is (no end time); it is not force-closed.

        Returns:
            The finished session, or None if the timer was idle
        """
        with self._lock:
            if self.state == TimerState.IDLE or self.current_session is None:
                logger.debug("Ignoring stop while idle")
                return None

            self.sampler.unsubscribe(self.process_sample)
            self._timer.stop()

            now = self.clock()
            started = self.current_session
            laps = list(self.laps)
            open_lap = self._open_lap()
            if open_lap is not None:
                laps.append(open_lap)

            session = Session(
                id=started.id,
                course_id=started.course_id,
                course_name=started.course_name,
                start_time=started.start_time,
                end_time=now,
                bike_id=started.bike_id,
                bike_name=started.bike_name,
                laps=laps,
                total_distance=self.recorder.session_distance,
                start_lat=started.start_lat,
                start_lon=started.start_lon,
                track_points=list(self.recorder.track_points),
            )

            self._set_state(TimerState.COMPLETED)
            if self.store.save(session):
                self._emit(EVENT_SESSION_SAVED, session)

            logger.info("Session stopped: %d laps, %.0fm, best %s",
                        session.total_laps, session.total_distance,
                        format_lap_time(session.best_lap_time)
                        if session.best_lap_time is not None else "-")

            self.current_session = None
            self._reset_counters()
            self._set_state(TimerState.IDLE)

        # Outside the lock: stopping may join a sampler thread blocked in process_sample
        self.sampler.stop_updates()
        return session

    def _reset_counters(self):
        self.recorder.reset()
        self.detector.reset()
        self.current_course = None
        self.recorder.course = None
        self.session_start_time = None
        self.lap_start_time = None
        self.current_lap = 0
        self.laps = []
        self.total_time = 0.0
        self.current_lap_time = 0.0

    # =========================================================================
    # Laps
    # =========================================================================

    def complete_lap(self) -> Optional[Lap]:
        """
        Close the open lap and open the next one.

        Works on any lap number, including lap 1.

        Returns:
            The completed lap, or None unless tracking
        """
        with self._lock:
            if self.state != TimerState.TRACKING or self.lap_start_time is None:
                logger.debug("Ignoring lap completion while %s", self.state.value)
                return None
            return self._close_lap()

    def _lap_start_position(self):
        course = self.current_course
        if course is None:
            return 0.0, 0.0
        return course.lat, course.lon

    def _open_lap(self) -> Optional[Lap]:
        """The in-progress lap built from the current counters."""
        if self.lap_start_time is None:
            return None
        start_lat, start_lon = self._lap_start_position()
        return Lap(
            lap_number=self.current_lap,
            start_time=self.lap_start_time,
            start_lat=start_lat,
            start_lon=start_lon,
            lap_distance=self.recorder.lap_distance,
            max_speed=self.recorder.lap_max_speed,
            avg_speed=self.recorder.lap_average_speed,
        )

    def _close_lap(self) -> Lap:
        now = self.clock()
        last = self.recorder.last_sample

        lap = self._open_lap()
        lap.end_time = now
        if last is not None:
            lap.end_lat = last.lat
            lap.end_lon = last.lon

        self.laps.append(lap)

        self.current_lap += 1
        self.lap_start_time = now
        self.current_lap_time = 0.0
        self.recorder.start_new_lap()

        logger.info("Lap %d - %s (%.0fm)", lap.lap_number,
                    format_lap_time(lap.lap_time), lap.lap_distance)
        self._emit(EVENT_LAP_COMPLETED, lap)
        return lap

    # =========================================================================
    # Samples
    # =========================================================================

    def process_sample(self, sample: GpsSample):
        """
        Consume one GPS sample (sampler callback).

        Samples arriving while not tracking are dropped, not buffered.
        """
        with self._lock:
            if self.state != TimerState.TRACKING:
                return

            result = self.recorder.record(sample)
            if self.detector.observe(result.near_start_line, self.current_lap):
                self._close_lap()

            self._emit(EVENT_SAMPLE_RECORDED, sample)

    # =========================================================================
    # Elapsed time (display only)
    # =========================================================================

    def _on_tick(self):
        with self._lock:
            if self.state == TimerState.TRACKING:
                self._refresh_elapsed()

    def _refresh_elapsed(self):
        now = self.clock()
        if self.session_start_time is not None:
            self.total_time = now - self.session_start_time
        if self.lap_start_time is not None:
            self.current_lap_time = now - self.lap_start_time

    # =========================================================================
    # Live values
    # =========================================================================

    @property
    def current_speed(self) -> float:
        return self.recorder.current_speed

    @property
    def max_speed(self) -> float:
        """Max speed of the current lap in m/s."""
        return self.recorder.lap_max_speed

    @property
    def distance(self) -> float:
        """Cumulative session distance in metres."""
        return self.recorder.session_distance

    @property
    def near_start_line(self) -> bool:
        return self.recorder.near_start_line

    @property
    def distance_to_reference(self) -> Optional[float]:
        return self.recorder.distance_to_reference

    @property
    def last_sample(self) -> Optional[GpsSample]:
        return self.recorder.last_sample

    @property
    def gps_accuracy(self) -> Optional[float]:
        """Horizontal accuracy of the latest fix in metres, or None."""
        sample = self.recorder.last_sample or getattr(self.sampler, 'last_sample', None)
        return sample.accuracy if sample is not None else None

    def check_gps_accuracy(self, threshold: float = config.GPS_ACCURACY_THRESHOLD_M) -> bool:
        """True if the latest fix is accurate enough to start timing."""
        accuracy = self.gps_accuracy
        return accuracy is not None and accuracy <= threshold

    def snapshot(self) -> Dict[str, Any]:
        """Current timing state for display."""
        with self._lock:
            session = self.current_session
            best_times = [lap.lap_time for lap in self.laps]
            last_lap = self.laps[-1] if self.laps else None
            return {
                'state': self.state.value,
                'course_name': session.course_name if session else None,
                'lap_number': self.current_lap,
                'current_lap_time': self.current_lap_time,
                'total_time': self.total_time,
                'current_speed': self.current_speed,
                'max_speed': self.max_speed,
                'distance': self.distance,
                'near_start_line': self.near_start_line,
                'distance_to_reference': self.distance_to_reference,
                'gps_accuracy': self.gps_accuracy,
                'total_laps': len(self.laps),
                'last_lap_time': last_lap.lap_time if last_lap else None,
                'best_lap_time': min(best_times) if best_times else None,
            }

    # =========================================================================
    # Courses
    # =========================================================================

    def create_course(
        self,
        name: str,
        lat: float,
        lon: float,
        tolerance_radius: Optional[float] = None,
        expected_lap_distance: Optional[float] = None,
    ) -> Course:
        """Create and save a custom course."""
        if tolerance_radius is None:
            tolerance_radius = config.DEFAULT_TOLERANCE_RADIUS_M
            if self.settings is not None:
                tolerance_radius = self.settings.get(
                    config.SETTING_TOLERANCE_RADIUS, tolerance_radius
                )
        return self.courses.create(
            name, lat, lon,
            tolerance_radius=tolerance_radius,
            expected_lap_distance=expected_lap_distance,
        )

    def list_courses(self) -> List[Course]:
        return self.courses.list_courses()

    def delete_course(self, course: Union[Course, str]) -> bool:
        return self.courses.delete(course)

    # =========================================================================
    # History
    # =========================================================================

    def saved_sessions(self) -> List[Session]:
        """All persisted sessions, most recent start first."""
        return self.store.all_sessions()

    def sessions_for_course(self, course_id: str) -> List[Session]:
        return self.store.sessions_for_course(course_id)

    def best_lap_for_course(self, course_id: str) -> Optional[Lap]:
        return self.store.best_lap_for_course(course_id)

    def delete_session(self, session_id: str) -> bool:
        return self.store.delete(session_id)
