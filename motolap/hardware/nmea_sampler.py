"""
NMEA serial GeoSampler.

Reads NMEA sentences from a serial GPS receiver and publishes a GpsSample
after every valid RMC sentence. GGA sentences supply altitude and an
HDOP-based accuracy estimate for the following samples.
"""

import calendar
import logging
import threading
import time
from typing import Optional

import serial

from motolap import config
from motolap.data.models import GpsSample
from motolap.hardware.geo_sampler import GeoSampler

logger = logging.getLogger('motolap.gps')


def nmea_checksum_ok(sentence: str) -> bool:
    """Verify the XOR checksum of an NMEA sentence ($...*HH)."""
    if not sentence.startswith('$') or '*' not in sentence:
        return False
    data_part, checksum = sentence.split('*', 1)
    calc_checksum = 0
    for char in data_part[1:]:  # Skip $
        calc_checksum ^= ord(char)
    return f"{calc_checksum:02X}" == checksum.strip().upper()


def _parse_coordinate(value: str, hemisphere: str, degree_digits: int) -> float:
    """Convert DDMM.MMMM / DDDMM.MMMM plus hemisphere to decimal degrees."""
    degrees = float(value[:degree_digits])
    minutes = float(value[degree_digits:])
    result = degrees + minutes / 60.0
    if hemisphere in ('S', 'W'):
        result = -result
    return result


def _parse_utc(time_str: str, date_str: str) -> Optional[float]:
    """RMC time (HHMMSS.sss) and date (DDMMYY) to a Unix timestamp."""
    if len(time_str) < 6 or len(date_str) < 6:
        return None
    try:
        fraction = float(time_str[6:]) if len(time_str) > 6 else 0.0
        fields = (
            2000 + int(date_str[4:6]), int(date_str[2:4]), int(date_str[0:2]),
            int(time_str[0:2]), int(time_str[2:4]), int(time_str[4:6]),
        )
        return calendar.timegm(fields) + fraction
    except ValueError:
        return None


class NmeaParser:
    """Stateful RMC/GGA parser producing GpsSamples."""

    def __init__(self):
        self.altitude: Optional[float] = None
        self.accuracy: float = config.GPS_DEFAULT_ACCURACY_M
        self.satellites = 0
        self.has_fix = False

    def parse_line(self, line: str) -> Optional[GpsSample]:
        """
        Parse one sentence.

        Returns:
            A sample for a valid RMC fix, otherwise None
        """
        if line.startswith('$GPRMC') or line.startswith('$GNRMC'):
            return self.parse_rmc(line)
        if line.startswith('$GPGGA') or line.startswith('$GNGGA'):
            self.parse_gga(line)
        return None

    def parse_rmc(self, sentence: str) -> Optional[GpsSample]:
        """
        Parse GPRMC/GNRMC sentence.

        Format: $GPRMC,time,status,lat,N/S,lon,E/W,speed,course,date,mag,mode*checksum
        Example: $GPRMC,123519,A,4807.038,N,01131.000,E,022.4,084.4,230394,003.1,W*6A
        """
        if not nmea_checksum_ok(sentence):
            return None

        parts = sentence.split('*')[0].split(',')
        if len(parts) < 10:
            return None

        # Status: A=valid, V=invalid
        self.has_fix = parts[2] == 'A'
        if not self.has_fix or not parts[3] or not parts[5]:
            return None

        try:
            lat = _parse_coordinate(parts[3], parts[4], 2)
            lon = _parse_coordinate(parts[5], parts[6], 3)
            speed = float(parts[7]) * config.KNOTS_TO_MPS if parts[7] else None
        except (ValueError, IndexError):
            return None

        timestamp = _parse_utc(parts[1], parts[9])
        if timestamp is None:
            timestamp = time.time()

        return GpsSample.create(
            lat=lat,
            lon=lon,
            timestamp=timestamp,
            altitude=self.altitude,
            speed=speed,
            accuracy=self.accuracy,
        )

    def parse_gga(self, sentence: str):
        """
        Parse GPGGA/GNGGA sentence for satellites, HDOP and altitude.

        Format: $GPGGA,time,lat,N/S,lon,E/W,quality,num_sats,hdop,alt,M,geoid,M,...*checksum
        Example: $GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,47.0,M,,*47
        """
        if not nmea_checksum_ok(sentence):
            return

        parts = sentence.split('*')[0].split(',')
        if len(parts) < 10:
            return

        try:
            if parts[7]:
                self.satellites = int(parts[7])
            if parts[8]:
                self.accuracy = float(parts[8]) * config.GPS_HDOP_TO_METRES
            if parts[9]:
                self.altitude = float(parts[9])
        except ValueError:
            pass


class NmeaGeoSampler(GeoSampler):
    """
    GeoSampler reading a serial NMEA receiver in a worker thread.

    Serial errors are counted; after max_consecutive_errors the port is
    reopened. While the port is down no samples are published and the
    lap timer keeps its last-known counters.
    """

    def __init__(self, port: str = config.GPS_SERIAL_PORT,
                 baud_rate: int = config.GPS_BAUD_RATE):
        super().__init__()
        self.port = port
        self.baud_rate = baud_rate
        self.serial_port = None
        self.parser = NmeaParser()
        self.thread: Optional[threading.Thread] = None
        self.consecutive_errors = 0
        self.max_consecutive_errors = 10

    def start_updates(self):
        if self.updating:
            return
        super().start_updates()
        self._open()
        self.thread = threading.Thread(target=self._worker_loop, daemon=True)
        self.thread.start()

    def stop_updates(self):
        super().stop_updates()
        if self.thread:
            self.thread.join(timeout=2.0)
            self.thread = None
        self._close()

    def _open(self):
        try:
            self.serial_port = serial.Serial(
                port=self.port,
                baudrate=self.baud_rate,
                timeout=config.GPS_SERIAL_TIMEOUT_S
            )
            self.consecutive_errors = 0
            logger.info("GPS: Connected to %s at %s baud", self.port, self.baud_rate)
        except serial.SerialException as e:
            logger.warning("GPS: Failed to open %s: %s", self.port, e)
            self.serial_port = None

    def _close(self):
        if self.serial_port:
            try:
                self.serial_port.close()
            except serial.SerialException:
                pass
        self.serial_port = None

    def _worker_loop(self):
        """Read, split into sentences, parse and publish until stopped."""
        buffer = ""
        while self.updating:
            try:
                if self.serial_port is None:
                    time.sleep(0.5)
                    self._open()
                    continue

                if self.serial_port.in_waiting > 0:
                    data = self.serial_port.read(self.serial_port.in_waiting)
                    buffer += data.decode('ascii', errors='ignore')

                    while '\r\n' in buffer:
                        line, buffer = buffer.split('\r\n', 1)
                        self.feed_line(line)

                    self.consecutive_errors = 0

                time.sleep(0.01)

            except serial.SerialException as e:
                self.consecutive_errors += 1
                if self.consecutive_errors == 3:
                    logger.warning("GPS: Serial error: %s", e)
                elif self.consecutive_errors >= self.max_consecutive_errors:
                    logger.warning("GPS: Too many errors, attempting reconnect...")
                    self._close()
                    self.consecutive_errors = 0
                time.sleep(0.1)

    def feed_line(self, line: str) -> Optional[GpsSample]:
        """Parse one NMEA line and publish the resulting sample, if any."""
        sample = self.parser.parse_line(line.strip())
        if sample is not None:
            self._publish(sample)
        return sample
