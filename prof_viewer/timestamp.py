"""
Timestamps and Intervals
========================

Nanosecond-resolution timestamps and closed time intervals used throughout
the viewer. All operations are pure; both classes are immutable and hashable
so they can be used directly as cache keys.

Degenerate intervals (start == stop) are legal. ``Interval.unlerp`` on a
zero-duration interval returns 0.0 and ``Interval.lerp`` returns ``start``,
so no NaN ever reaches layout math.

Author: Prof Viewer Core
Version: 1.0
"""

from dataclasses import dataclass
from typing import Optional

from prof_viewer.utils.error_handler import InvalidIntervalError

I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1

NS_PER_US = 1_000
NS_PER_MS = 1_000_000
NS_PER_S = 1_000_000_000


def _unit_for(ns: int):
    """Pick (divisor, unit name) for displaying a nanosecond value."""
    ns = abs(ns)
    if ns >= NS_PER_S:
        return NS_PER_S, "s"
    if ns >= NS_PER_MS:
        return NS_PER_MS, "ms"
    if ns >= NS_PER_US:
        return NS_PER_US, "us"
    return 1, "ns"


def _format_units(ns: int, divisor: int) -> str:
    sign = "-" if ns < 0 else ""
    units, remainder = divmod(abs(ns), divisor)
    return f"{sign}{units}.{remainder // (divisor // 1_000):03d}"


@dataclass(frozen=True, order=True)
class Timestamp:
    """A signed 64-bit count of nanoseconds."""

    ns: int = 0

    def __post_init__(self):
        if not isinstance(self.ns, int) or isinstance(self.ns, bool):
            raise TypeError(f"Timestamp requires an int nanosecond count, got {type(self.ns).__name__}")
        if not I64_MIN <= self.ns <= I64_MAX:
            raise ValueError(f"Timestamp {self.ns} does not fit in a signed 64-bit integer")

    def __add__(self, other: 'Timestamp') -> 'Timestamp':
        if not isinstance(other, Timestamp):
            return NotImplemented
        return Timestamp(self.ns + other.ns)

    def __sub__(self, other: 'Timestamp') -> 'Timestamp':
        if not isinstance(other, Timestamp):
            return NotImplemented
        return Timestamp(self.ns - other.ns)

    def __str__(self):
        divisor, unit = _unit_for(self.ns)
        if divisor == 1:
            return f"{self.ns} {unit}"
        return f"{_format_units(self.ns, divisor)} {unit}"


@dataclass(frozen=True, order=True)
class Interval:
    """
    Closed time interval ``[start, stop]``.

    Raises:
        InvalidIntervalError: If start > stop
    """

    start: Timestamp
    stop: Timestamp

    def __post_init__(self):
        if self.start > self.stop:
            raise InvalidIntervalError(
                f"Interval start {self.start.ns} is after stop {self.stop.ns}"
            )

    @classmethod
    def from_ns(cls, start: int, stop: int) -> 'Interval':
        """Build an interval from raw nanosecond counts."""
        return cls(Timestamp(start), Timestamp(stop))

    def duration_ns(self) -> int:
        return self.stop.ns - self.start.ns

    def duration(self) -> Timestamp:
        return self.stop - self.start

    def contains(self, point: Timestamp) -> bool:
        """Check if a timestamp lies in the interval (both ends inclusive)."""
        return self.start <= point <= self.stop

    def contains_interval(self, other: 'Interval') -> bool:
        """Check if this interval fully contains another."""
        return self.start <= other.start and other.stop <= self.stop

    def overlaps(self, other: 'Interval') -> bool:
        """Check overlap with another interval; touching endpoints count."""
        return not (other.stop < self.start or other.start > self.stop)

    def intersection(self, other: 'Interval') -> Optional['Interval']:
        """
        Intersect with another interval.

        Returns:
            Optional[Interval]: The common part, or None if the intervals are disjoint
        """
        if not self.overlaps(other):
            return None
        return Interval(max(self.start, other.start), min(self.stop, other.stop))

    def union(self, other: 'Interval') -> 'Interval':
        """Smallest interval covering both intervals."""
        return Interval(min(self.start, other.start), max(self.stop, other.stop))

    def unlerp(self, time: Timestamp) -> float:
        """
        Convert a timestamp into [0,1] relative space.

        Values outside the interval map outside [0,1]. A zero-duration
        interval maps every timestamp to 0.0.
        """
        duration = self.duration_ns()
        if duration == 0:
            return 0.0
        return (time.ns - self.start.ns) / duration

    def lerp(self, value: float) -> Timestamp:
        """Convert [0,1] relative space into a timestamp (rounded to the nearest ns)."""
        return Timestamp(int(round(value * self.duration_ns())) + self.start.ns)

    def __str__(self):
        start_ns = self.start.ns
        stop_ns = self.stop.ns
        duration = Timestamp(stop_ns - start_ns)
        divisor, unit = _unit_for(stop_ns)
        if divisor == 1:
            return f"from {start_ns} to {stop_ns} {unit} (duration: {duration})"
        return (
            f"from {_format_units(start_ns, divisor)} to {_format_units(stop_ns, divisor)} "
            f"{unit} (duration: {duration})"
        )
