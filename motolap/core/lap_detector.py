"""
Start/finish line crossing detection.

Crossings are edge-triggered on the track recorder's near-start-line
flag: a lap boundary fires only when the rider enters the tolerance
radius, not on every sample spent inside it.
"""

from motolap import config


class LapDetector:
    """
    Detects start/finish line entries from the near-start-line signal.

    Lap 1 never completes automatically: a session starts at the line, so
    detection arms from first_auto_lap onwards and lap 1 is closed by hand.
    """

    def __init__(self, first_auto_lap: int = config.FIRST_AUTO_LAP):
        self.first_auto_lap = first_auto_lap
        self.was_near = False

    def reset(self):
        """Forget the previous near-line state (new session)."""
        self.was_near = False

    def observe(self, near_start_line: bool, current_lap: int) -> bool:
        """
        Feed the near-line flag for the latest sample.

        Args:
            near_start_line: True if the sample is within the tolerance radius
            current_lap: Number of the lap currently open

        Returns:
            True if the current lap should be completed
        """
        rising_edge = near_start_line and not self.was_near
        self.was_near = near_start_line
        return rising_edge and current_lap >= self.first_auto_lap
