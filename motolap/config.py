"""
Configuration file for the motolap lap timer.

Contains settings for GPS filtering, course detection, session timing and
storage locations. Values here are defaults; the settings store may
override the ones marked as user-adjustable.
"""

import os

# =============================================================================
# Storage
# =============================================================================

# Root directory for persistent data
DATA_DIR = os.path.expanduser("~/.motolap")

# JSON key-value settings file (sessions and custom courses live here)
SETTINGS_FILE = os.path.join(DATA_DIR, "settings.json")

# Logical keys for the two persisted collections
SESSIONS_KEY = "lap_time_sessions"
COURSES_KEY = "timing_courses"

# User-adjustable settings keys
SETTING_TOLERANCE_RADIUS = "lap_timer.tolerance_radius_m"
SETTING_KALMAN_ENABLED = "lap_timer.kalman_enabled"


# =============================================================================
# GPS Kalman Filter Settings
# =============================================================================

# Off by default: phone/receiver fixes are usually pre-filtered
KALMAN_FILTER_ENABLED = False

KALMAN_PROCESS_NOISE = 0.5      # Vehicle dynamics uncertainty (m/s²)
                                 # Lower = smoother but slower response

KALMAN_MEASUREMENT_NOISE = 5.0  # GPS measurement uncertainty (meters)
                                 # Should match your GPS accuracy (±5m typical)

KALMAN_INITIAL_UNCERTAINTY = 10.0  # Initial position uncertainty (meters)

KALMAN_MAX_GAP_S = 1.0          # Reinitialise after a gap longer than this


# =============================================================================
# GPS Fix Quality
# =============================================================================

GPS_ACCURACY_THRESHOLD_M = 20.0  # Fixes worse than this trigger a warning
                                  # before a session is started

GPS_DEFAULT_ACCURACY_M = 5.0     # Used when the receiver reports no estimate

GPS_HDOP_TO_METRES = 5.0         # Rough UERE for converting HDOP to metres


# =============================================================================
# GPS Serial Settings (NMEA receiver)
# =============================================================================

GPS_SERIAL_PORT = "/dev/serial0"
GPS_BAUD_RATE = 9600
GPS_SERIAL_TIMEOUT_S = 0.5

KNOTS_TO_MPS = 0.514444


# =============================================================================
# Course Settings
# =============================================================================

DEFAULT_TOLERANCE_RADIUS_M = 30.0   # Start/finish crossing radius (meters)
                                     # for user-created courses

PRESET_TOLERANCE_RADIUS_M = 50.0    # Radius used by the built-in circuits

COURSE_SEARCH_RADIUS_KM = 10.0      # Maximum distance for nearby course lookup

FREE_MODE_COURSE_NAME = "Free mode"


# =============================================================================
# Session Timing Settings
# =============================================================================

TICK_INTERVAL_S = 0.1            # Display refresh for elapsed times
                                  # Has no effect on distance or lap state

FIRST_AUTO_LAP = 2               # Auto lap detection arms from this lap on
