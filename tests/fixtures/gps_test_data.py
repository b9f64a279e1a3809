"""
GPS test data fixtures.
Contains known GPS coordinates, expected distances and a test circuit
for lap timing tests.
"""

# Major cities with known approximate distances
CITY_COORDINATES = {
    'london': (51.5074, -0.1278),
    'paris': (48.8566, 2.3522),
    'tokyo': (35.6762, 139.6503),
    'osaka': (34.6937, 135.5023),
    'new_york': (40.7128, -74.0060),
    'sydney': (-33.8688, 151.2093),
    'quito': (-0.1807, -78.4678),  # Near equator
}

# Known distances between cities (in metres, approximate)
CITY_DISTANCES = {
    ('london', 'paris'): 344_000,       # ~344 km
    ('tokyo', 'osaka'): 392_000,        # ~392 km
    ('london', 'new_york'): 5_570_000,  # ~5570 km (transatlantic)
    ('sydney', 'tokyo'): 7_820_000,     # ~7820 km
}

# Test circuit: start/finish reference and tolerance used by the
# session scenarios
TEST_COURSE_REFERENCE = (35.0, 135.0)
TEST_COURSE_TOLERANCE_M = 50.0

# Offsets (north, east) in metres from the reference for one lap of a
# rectangular circuit: leave the line, go round, come back inside 50m
TEST_LAP_OFFSETS = [
    (0.0, 0.0),        # on the line
    (0.0, 100.0),      # leaving
    (0.0, 300.0),
    (200.0, 300.0),
    (200.0, 0.0),
    (100.0, -100.0),
    (20.0, -10.0),     # back within tolerance
]

# Preset circuits and their expected lap lengths (metres)
PRESET_LAP_DISTANCES = {
    'preset-suzuka': 5807.0,
    'preset-fuji': 4563.0,
    'preset-motegi': 4801.0,
}
