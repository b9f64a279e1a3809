"""
GPS Kalman Filter for position smoothing.

Implements a constant velocity Kalman filter to smooth GPS noise before
samples reach the track recorder. Disabled by default
(config.KALMAN_FILTER_ENABLED); smoothing changes accumulated distance.
"""

import numpy as np
from dataclasses import replace
from typing import Optional

from motolap import config
from motolap.data.models import GpsSample

METERS_PER_DEGREE_LAT = 110540.0
METERS_PER_DEGREE_LON_EQUATOR = 111320.0


class GPSKalmanFilter:
    """
    Kalman filter for GPS position smoothing.

    Uses constant velocity model with 4D state vector:
    [latitude, longitude, velocity_lat, velocity_lon]
    """

    def __init__(
        self,
        process_noise: float = config.KALMAN_PROCESS_NOISE,
        measurement_noise: float = config.KALMAN_MEASUREMENT_NOISE,
        initial_uncertainty: float = config.KALMAN_INITIAL_UNCERTAINTY,
        max_gap: float = config.KALMAN_MAX_GAP_S,
    ):
        """
        Initialise GPS Kalman filter.

        Args:
            process_noise: Process noise (vehicle dynamics uncertainty) in m/s²
            measurement_noise: GPS measurement noise in meters
            initial_uncertainty: Initial position uncertainty in meters
            max_gap: Reinitialise when samples are further apart (seconds)
        """
        self.process_noise = process_noise
        self.measurement_noise = measurement_noise
        self.initial_uncertainty = initial_uncertainty
        self.max_gap = max_gap

        self.state: Optional[np.ndarray] = None
        self.covariance: Optional[np.ndarray] = None
        self.last_time: Optional[float] = None
        self.meters_per_degree_lon = METERS_PER_DEGREE_LON_EQUATOR

    def reset(self):
        """Reset filter state."""
        self.state = None
        self.covariance = None
        self.last_time = None

    def filter(self, sample: GpsSample) -> GpsSample:
        """
        Smooth one sample.

        Returns:
            Copy of the sample with filtered lat/lon; timestamp, speed,
            altitude and accuracy are carried over unchanged.
        """
        lat, lon = self.update(sample.lat, sample.lon, sample.timestamp)
        return replace(sample, lat=lat, lon=lon)

    def update(self, lat: float, lon: float, timestamp: float):
        """
        Update filter with new GPS measurement.

        Returns:
            Filtered (lat, lon)
        """
        self.meters_per_degree_lon = METERS_PER_DEGREE_LON_EQUATOR * np.cos(np.radians(lat))

        if self.state is None:
            return self._initialise(lat, lon, timestamp)

        dt = timestamp - self.last_time
        if dt <= 0 or dt > self.max_gap:
            # Invalid time delta or gap too large - reinitialise
            return self._initialise(lat, lon, timestamp)

        self._predict(dt)
        self._update_measurement(lat, lon)
        self.last_time = timestamp

        return float(self.state[0]), float(self.state[1])

    def _initialise(self, lat: float, lon: float, timestamp: float):
        """Initialise filter with first measurement."""
        self.state = np.array([lat, lon, 0.0, 0.0])

        lat_std = self.initial_uncertainty / METERS_PER_DEGREE_LAT
        lon_std = self.initial_uncertainty / self.meters_per_degree_lon
        vel_std = 0.1  # degrees/second

        self.covariance = np.diag([
            lat_std**2,
            lon_std**2,
            vel_std**2,
            vel_std**2
        ])
        self.last_time = timestamp
        return lat, lon

    def _predict(self, dt: float):
        """Prediction step using a constant velocity model."""
        F = np.array([
            [1, 0, dt, 0],
            [0, 1, 0, dt],
            [0, 0, 1, 0],
            [0, 0, 0, 1]
        ])

        self.state = F @ self.state

        # Process noise converted from m/s² to degrees/s²
        q_lat = self.process_noise / METERS_PER_DEGREE_LAT
        q_lon = self.process_noise / self.meters_per_degree_lon

        Q = np.array([
            [q_lat**2 * dt**4 / 4, 0, q_lat**2 * dt**3 / 2, 0],
            [0, q_lon**2 * dt**4 / 4, 0, q_lon**2 * dt**3 / 2],
            [q_lat**2 * dt**3 / 2, 0, q_lat**2 * dt**2, 0],
            [0, q_lon**2 * dt**3 / 2, 0, q_lon**2 * dt**2]
        ])

        self.covariance = F @ self.covariance @ F.T + Q

    def _update_measurement(self, lat: float, lon: float):
        """Correct the prediction with a position measurement."""
        H = np.array([
            [1, 0, 0, 0],
            [0, 1, 0, 0]
        ])

        r_lat = self.measurement_noise / METERS_PER_DEGREE_LAT
        r_lon = self.measurement_noise / self.meters_per_degree_lon
        R = np.diag([r_lat**2, r_lon**2])

        innovation = np.array([lat, lon]) - H @ self.state
        S = H @ self.covariance @ H.T + R
        K = self.covariance @ H.T @ np.linalg.inv(S)

        self.state = self.state + K @ innovation
        self.covariance = (np.eye(4) - K @ H) @ self.covariance

    def position_uncertainty(self) -> Optional[float]:
        """RMS position uncertainty in meters, or None before the first update."""
        if self.covariance is None:
            return None
        lat_std_m = np.sqrt(self.covariance[0, 0]) * METERS_PER_DEGREE_LAT
        lon_std_m = np.sqrt(self.covariance[1, 1]) * self.meters_per_degree_lon
        return float(np.sqrt(lat_std_m**2 + lon_std_m**2))
