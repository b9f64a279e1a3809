"""
motolap command line.

Lists courses and saved sessions, manages custom courses, and replays a
recorded GPS track through the lap timer.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from motolap.app import create_services
from motolap.data.codec import CodecError, decode_sample
from motolap.data.models import Course, GpsSample, Session
from motolap.hardware.geo_sampler import ReplayGeoSampler
from motolap.utils.formatting import (
    format_distance,
    format_lap_time,
    format_short_time,
    format_speed_kmh,
)

logger = logging.getLogger('motolap.cli')


class SampleClock:
    """Clock that follows the timestamp of the sample being replayed."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def load_samples(path: str) -> List[GpsSample]:
    """Load a JSON list of track points (codec field names)."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise CodecError("sample file must contain a list")
    samples = [decode_sample(item) for item in data]
    samples.sort(key=lambda s: s.timestamp)
    return samples


def _resolve_course(courses, key: str) -> Optional[Course]:
    course = courses.get(key)
    if course is not None:
        return course
    matches = courses.find_by_name(key)
    return matches[0] if matches else None


def print_session(session: Session, out=None):
    out = out if out is not None else sys.stdout
    best = session.best_lap_time
    print(f"{session.course_name}  laps={session.total_laps}  "
          f"time={format_short_time(session.duration())}  "
          f"distance={format_distance(session.total_distance)}  "
          f"best={format_lap_time(best) if best is not None else '-'}", file=out)
    for lap in session.laps:
        lap_time = format_lap_time(lap.lap_time) if lap.lap_time is not None else "open"
        print(f"  Lap {lap.lap_number:>2}  {lap_time:>10}  "
              f"{format_distance(lap.lap_distance):>8}  "
              f"max {format_speed_kmh(lap.max_speed)}  "
              f"avg {format_speed_kmh(lap.avg_speed)}", file=out)


def replay(manager, source: ReplayGeoSampler, clock: SampleClock,
           samples: List[GpsSample], course: Course, marks: List[float],
           bike_name: Optional[str] = None) -> Optional[Session]:
    """
    Run a recorded track through the session manager.

    Args:
        manager: SessionManager wired to source (possibly via smoothing)
        source: Replay sampler the samples are pushed into
        clock: SampleClock shared with the session manager
        samples: Time-ordered samples
        course: Course to time against
        marks: Timestamps at which a lap is completed by hand; marks
            before the first sample are dropped
    """
    if not samples:
        return None

    first = samples[0].timestamp
    early = [m for m in marks if m < first]
    if early:
        logger.warning("Ignoring %d lap mark(s) before the first sample at %.3f",
                       len(early), first)
    pending_marks = sorted(m for m in marks if m >= first)

    clock.now = first
    manager.start(course, bike_name=bike_name)

    for sample in samples:
        while pending_marks and pending_marks[0] <= sample.timestamp:
            clock.now = pending_marks.pop(0)
            manager.complete_lap()
        clock.now = sample.timestamp
        source.push(sample)

    return manager.stop()


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="motolap",
        description="motolap - GPS lap timer for motorcycles",
    )
    parser.add_argument("--settings", help="Path to the JSON settings file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("courses", help="List preset and custom courses")

    add = sub.add_parser("add-course", help="Create a custom course")
    add.add_argument("name")
    add.add_argument("lat", type=float)
    add.add_argument("lon", type=float)
    add.add_argument("--radius", type=float, help="Tolerance radius in metres")
    add.add_argument("--lap-distance", type=float, help="Expected lap distance in metres")

    delete = sub.add_parser("delete-course", help="Delete a custom course")
    delete.add_argument("course_id")

    sessions = sub.add_parser("sessions", help="List saved sessions")
    sessions.add_argument("--course", help="Only sessions for this course id")

    rep = sub.add_parser("replay", help="Replay a recorded GPS track")
    rep.add_argument("samples", help="JSON file with a list of track points")
    rep.add_argument("--course", required=True, help="Course id or name")
    rep.add_argument("--mark", type=float, action="append", default=[],
                     help="Timestamp of a manual lap mark (repeatable)")
    rep.add_argument("--bike-name", help="Bike name stored with the session")

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    clock = SampleClock()
    source = ReplayGeoSampler()
    services = create_services(source, clock=clock,
                               settings_path=args.settings)

    if args.command == "courses":
        for course in services.courses.list_courses():
            kind = "preset" if course.is_preset else "custom"
            expected = (format_distance(course.expected_lap_distance)
                        if course.expected_lap_distance is not None else "-")
            print(f"{course.id}  {course.name}  ({kind}, "
                  f"{course.tolerance_radius:.0f}m, lap {expected})")
        return 0

    if args.command == "add-course":
        course = services.manager.create_course(
            args.name, args.lat, args.lon,
            tolerance_radius=args.radius,
            expected_lap_distance=args.lap_distance,
        )
        print(course.id)
        return 0

    if args.command == "delete-course":
        if not services.manager.delete_course(args.course_id):
            print(f"Course not deleted: {args.course_id}", file=sys.stderr)
            return 1
        return 0

    if args.command == "sessions":
        if args.course:
            found = services.manager.sessions_for_course(args.course)
        else:
            found = services.manager.saved_sessions()
        for session in found:
            print_session(session)
        return 0

    if args.command == "replay":
        course = _resolve_course(services.courses, args.course)
        if course is None:
            print(f"Unknown course: {args.course}", file=sys.stderr)
            return 1
        try:
            samples = load_samples(args.samples)
        except (OSError, ValueError) as e:
            print(f"Could not load samples: {e}", file=sys.stderr)
            return 1
        session = replay(services.manager, source, clock, samples, course, args.mark,
                         bike_name=args.bike_name)
        if session is None:
            print("No samples to replay", file=sys.stderr)
            return 1
        print_session(session)
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
