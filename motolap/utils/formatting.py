"""
Display formatting for lap times, speeds and distances.

All inputs are SI units (seconds, m/s, metres).
"""


def mps_to_kmh(mps):
    """Convert metres per second to km/h."""
    return mps * 3.6


def kmh_to_mps(kmh):
    """Convert km/h to metres per second."""
    return kmh / 3.6


def format_lap_time(seconds: float) -> str:
    """
    Format a lap time as M:SS.mmm, or S.mmm under a minute.

    Rounded to the nearest millisecond. Negative times keep their sign.
    """
    if seconds < 0:
        return "-" + format_lap_time(-seconds)
    total_ms = int(round(seconds * 1000))
    minutes, rem_ms = divmod(total_ms, 60_000)
    secs, millis = divmod(rem_ms, 1000)
    if minutes > 0:
        return f"{minutes}:{secs:02d}.{millis:03d}"
    return f"{secs}.{millis:03d}"


def format_short_time(seconds: float) -> str:
    """Format a duration as M:SS, or Ns under a minute."""
    minutes, secs = divmod(int(seconds), 60)
    if minutes > 0:
        return f"{minutes}:{secs:02d}"
    return f"{secs}s"


def format_speed_kmh(mps: float) -> str:
    """Format a speed in m/s as km/h with one decimal."""
    return f"{mps_to_kmh(mps):.1f} km/h"


def format_distance(metres: float) -> str:
    """Format a distance as whole metres, or km with two decimals from 1000m."""
    if metres < 1000:
        return f"{metres:.0f}m"
    return f"{metres / 1000:.2f}km"
