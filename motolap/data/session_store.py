"""
Persistent storage for lap timing sessions.

Sessions are stored as one collection under config.SESSIONS_KEY in the
settings store. Every change is a read-modify-write of the whole
collection; writes are best-effort and failures are only logged.
"""

import logging
from typing import List, Optional

from motolap import config
from motolap.data.codec import CodecError, decode_sessions, encode_sessions
from motolap.data.models import Lap, Session

logger = logging.getLogger('motolap.sessions')


class SessionStore:
    """Manages persistent storage of finished sessions."""

    def __init__(self, settings):
        """
        Args:
            settings: Settings store (get/set) holding the session collection
        """
        self._settings = settings

    def _load(self) -> List[Session]:
        """Load all sessions in stored order; unreadable data is treated as empty."""
        try:
            return decode_sessions(self._settings.get(config.SESSIONS_KEY))
        except CodecError as e:
            logger.warning("Could not decode saved sessions, ignoring them: %s", e)
            return []

    def _write(self, sessions: List[Session]) -> bool:
        try:
            saved = self._settings.set(config.SESSIONS_KEY, encode_sessions(sessions))
        except Exception as e:
            logger.warning("Could not save sessions: %s", e)
            return False
        # Host stores may return None from set(); only an explicit False is a failure
        if saved is False:
            logger.warning("Sessions were not persisted")
            return False
        return True

    def save(self, session: Session) -> bool:
        """
        Append a finished session to the stored collection.

        Returns:
            True if the collection was written
        """
        sessions = self._load()
        sessions.append(session)
        saved = self._write(sessions)
        if saved:
            logger.info("Saved session %s (%s, %d laps)",
                        session.id, session.course_name, session.total_laps)
        return saved

    def all_sessions(self) -> List[Session]:
        """All sessions, most recent start first."""
        return sorted(self._load(), key=lambda s: s.start_time, reverse=True)

    def get(self, session_id: str) -> Optional[Session]:
        for session in self._load():
            if session.id == session_id:
                return session
        return None

    def delete(self, session_id: str) -> bool:
        """
        Delete a session by id.

        Returns:
            True if a session was removed
        """
        sessions = self._load()
        remaining = [s for s in sessions if s.id != session_id]
        if len(remaining) == len(sessions):
            return False
        if not self._write(remaining):
            return False
        logger.info("Deleted session %s", session_id)
        return True

    def sessions_for_course(self, course_id: str) -> List[Session]:
        """Sessions run against a course id, most recent first."""
        return [s for s in self.all_sessions() if s.course_id == course_id]

    def best_lap_for_course(self, course_id: str) -> Optional[Lap]:
        """
        Fastest completed lap across all sessions for a course.

        Returns:
            The lap with the minimum lap time, or None if none completed
        """
        best = None
        for session in self.sessions_for_course(course_id):
            for lap in session.laps:
                if lap.lap_time is None:
                    continue
                if best is None or lap.lap_time < best.lap_time:
                    best = lap
        return best
