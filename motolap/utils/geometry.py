"""
Shared geometry functions for GPS calculations.
"""

import math
from typing import Any, Iterable, List, Tuple

EARTH_RADIUS_M = 6371000  # Earth's mean radius in meters


def _get_lat_lon(point: Any) -> Tuple[float, float]:
    """Extract (lat, lon) from a tuple or an object with .lat/.lon."""
    if hasattr(point, 'lat'):
        return point.lat, point.lon
    return point[0], point[1]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great circle distance between two GPS points in meters.

    Args:
        lat1, lon1: First point (decimal degrees)
        lat2, lon2: Second point (decimal degrees)

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def point_distance(a: Any, b: Any) -> float:
    """Great circle distance between two points (tuples or .lat/.lon objects)."""
    lat1, lon1 = _get_lat_lon(a)
    lat2, lon2 = _get_lat_lon(b)
    return haversine_distance(lat1, lon1, lat2, lon2)


def cumulative_distances(points: List[Any]) -> List[float]:
    """Calculate cumulative distance along a list of points.

    Points can be (lat, lon) tuples or objects with .lat/.lon attributes.
    """
    distances = [0.0]
    for i in range(1, len(points)):
        distances.append(distances[-1] + point_distance(points[i - 1], points[i]))
    return distances


def path_length(points: Iterable[Any]) -> float:
    """Total length of a path in meters (0.0 for fewer than two points)."""
    points = list(points)
    if len(points) < 2:
        return 0.0
    return cumulative_distances(points)[-1]


def offset_position(lat: float, lon: float,
                    north_m: float, east_m: float) -> Tuple[float, float]:
    """
    Move a position by a small north/east offset in meters.

    Uses an equirectangular approximation, accurate to well under a metre
    for offsets of a few kilometres.
    """
    dlat = north_m / EARTH_RADIUS_M
    dlon = east_m / (EARTH_RADIUS_M * math.cos(math.radians(lat)))
    return lat + math.degrees(dlat), lon + math.degrees(dlon)
