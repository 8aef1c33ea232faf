"""
Tile Contents
=============

Tiles are the unit of fetch and caching. A ``TileID`` names one contiguous
chunk of the time axis; ``SummaryTile`` and ``SlotTile`` hold the content of
that chunk for a summary or slot entry. Tiles are immutable once built.

Items straddling a tile boundary are clipped to the tile interval, never
duplicated across tiles.
"""

import bisect
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from prof_viewer.timestamp import Interval, Timestamp

logger = logging.getLogger(__name__)

# A display field is a string, an interval, or empty (None)
FieldValue = Union[str, Interval, None]


@dataclass(frozen=True, order=True)
class TileID:
    interval: Interval

    @property
    def start(self) -> Timestamp:
        return self.interval.start

    @property
    def stop(self) -> Timestamp:
        return self.interval.stop

    def __str__(self):
        return f"Tile({self.interval.start.ns}..{self.interval.stop.ns})"


@dataclass(frozen=True)
class UtilPoint:
    time: Timestamp
    util: float

    def __post_init__(self):
        if not 0.0 <= self.util <= 1.0:
            raise ValueError(f"Utilization {self.util} outside [0, 1]")


@dataclass(frozen=True)
class Item:
    """
    One interval record drawn in a slot row.

    Attributes:
        interval: Time covered by the item
        color: Display color as a hex string
        fields: Ordered (name, value) display fields for tooltips
    """
    interval: Interval
    color: str
    fields: Tuple[Tuple[str, FieldValue], ...] = ()

    def clipped(self, interval: Interval) -> Optional['Item']:
        """
        Clip the item to an interval.

        Returns:
            Optional[Item]: The clipped item, or None if it lies outside the interval
        """
        common = self.interval.intersection(interval)
        if common is None:
            return None
        if common == self.interval:
            return self
        return Item(common, self.color, self.fields)

    def get_field(self, name: str) -> FieldValue:
        for field_name, value in self.fields:
            if field_name == name:
                return value
        return None


@dataclass(frozen=True)
class SummaryTile:
    tile_id: TileID
    utilization: Tuple[UtilPoint, ...] = ()

    @classmethod
    def build(cls, tile_id: TileID, points: Iterable[UtilPoint]) -> 'SummaryTile':
        """Sort the samples by time and keep those inside the tile interval."""
        kept = sorted(
            (p for p in points if tile_id.interval.contains(p.time)),
            key=lambda p: p.time,
        )
        return cls(tile_id, tuple(kept))

    def util_at(self, time: Timestamp) -> Optional[float]:
        """
        Linearly interpolate utilization at a time.

        Returns:
            Optional[float]: Interpolated value, or None if the tile has no samples
                or the time is outside the sampled range
        """
        points = self.utilization
        if not points or time < points[0].time or time > points[-1].time:
            return None
        times = [p.time for p in points]
        i = bisect.bisect_left(times, time)
        if points[i].time == time:
            return points[i].util
        before, after = points[i - 1], points[i]
        fraction = Interval(before.time, after.time).unlerp(time)
        return before.util + (after.util - before.util) * fraction


@dataclass(frozen=True)
class SlotTile:
    """Per-row items of a slot, restricted to one tile."""

    tile_id: TileID
    items: Tuple[Tuple[Item, ...], ...] = field(default_factory=tuple)

    @classmethod
    def build(cls, tile_id: TileID, rows: Sequence[Iterable[Item]]) -> 'SlotTile':
        """Clip every item to the tile interval and drop the ones outside it."""
        clipped_rows = []
        dropped = 0
        for row in rows:
            clipped = []
            for item in row:
                result = item.clipped(tile_id.interval)
                if result is None:
                    dropped += 1
                    continue
                clipped.append(result)
            clipped.sort(key=lambda item: item.interval.start)
            clipped_rows.append(tuple(clipped))
        if dropped:
            logger.debug(f"Dropped {dropped} items outside {tile_id}")
        return cls(tile_id, tuple(clipped_rows))

    @property
    def rows(self) -> int:
        return len(self.items)

    def item_at(self, row: int, time: Timestamp) -> Optional[Item]:
        """Find the item of a row covering a time, for hover and tooltips."""
        if not 0 <= row < len(self.items):
            return None
        for item in self.items[row]:
            if item.interval.contains(time):
                return item
            if item.interval.start > time:
                break
        return None

    def item_count(self) -> int:
        return sum(len(row) for row in self.items)


def make_fields(pairs: List[Tuple[str, FieldValue]]) -> Tuple[Tuple[str, FieldValue], ...]:
    """Freeze a list of display fields for use in an Item."""
    return tuple((str(name), value) for name, value in pairs)
