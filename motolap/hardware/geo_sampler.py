"""
GeoSampler - push/subscribe source of GPS samples.

The lap timer never talks to a location provider directly. It subscribes
a callback to a GeoSampler and calls start_updates()/stop_updates() to
control the flow. Permission handling and one-shot fixes belong to the
concrete provider.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from motolap.data.models import GpsSample
from motolap.utils.gps_kalman_filter import GPSKalmanFilter

logger = logging.getLogger('motolap.gps')

SampleCallback = Callable[[GpsSample], None]


class GeoSampler:
    """
    Base class for sample sources.

    Subclasses call _publish() for every new fix; samples published while
    updates are stopped are dropped.
    """

    def __init__(self):
        self._subscribers: List[SampleCallback] = []
        self._subscribers_lock = threading.Lock()
        self.updating = False
        self.last_sample: Optional[GpsSample] = None

    @property
    def is_updating(self) -> bool:
        return self.updating

    def subscribe(self, callback: SampleCallback):
        """Register a callback for new samples (idempotent)."""
        with self._subscribers_lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: SampleCallback):
        """Remove a callback; unknown callbacks are ignored."""
        with self._subscribers_lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def start_updates(self):
        """Begin delivering samples."""
        self.updating = True

    def stop_updates(self):
        """Stop delivering samples."""
        self.updating = False

    def _publish(self, sample: GpsSample) -> bool:
        """
        Deliver a sample to all subscribers in subscription order.

        Returns:
            True if the sample was delivered
        """
        if not self.updating:
            return False

        self.last_sample = sample
        with self._subscribers_lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(sample)
            except Exception as e:
                logger.warning("GPS subscriber failed: %s", e)
        return True


class ReplayGeoSampler(GeoSampler):
    """Publishes recorded or synthetic samples on demand."""

    def __init__(self, samples: Iterable[GpsSample] = ()):
        super().__init__()
        self.samples = list(samples)

    def push(self, sample: GpsSample) -> bool:
        """Publish one sample immediately."""
        return self._publish(sample)

    def replay(self, samples: Iterable[GpsSample] = None) -> int:
        """
        Publish samples in order.

        Args:
            samples: Samples to publish, defaults to the ones given at construction

        Returns:
            Number of samples delivered
        """
        delivered = 0
        for sample in (self.samples if samples is None else samples):
            if self._publish(sample):
                delivered += 1
        return delivered


class SmoothedGeoSampler(GeoSampler):
    """Wraps another sampler and Kalman-filters its positions."""

    def __init__(self, inner: GeoSampler, kalman: GPSKalmanFilter = None):
        super().__init__()
        self.inner = inner
        self.kalman = kalman or GPSKalmanFilter()

    def start_updates(self):
        super().start_updates()
        self.kalman.reset()
        self.inner.subscribe(self._on_inner_sample)
        self.inner.start_updates()

    def stop_updates(self):
        super().stop_updates()
        self.inner.unsubscribe(self._on_inner_sample)
        self.inner.stop_updates()

    def _on_inner_sample(self, sample: GpsSample):
        self._publish(self.kalman.filter(sample))
