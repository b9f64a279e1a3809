"""
Lap timing engine: track recorder, lap detector and session manager.
"""

from motolap.core.lap_detector import LapDetector
from motolap.core.session_manager import SessionManager
from motolap.core.track_recorder import RecordResult, TrackRecorder

__all__ = [
    'LapDetector',
    'RecordResult',
    'SessionManager',
    'TrackRecorder',
]
