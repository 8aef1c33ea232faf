"""
Data Source Boundary
====================

This module defines the contract a profiling backend implements to feed the
viewer, plus helpers backends can use to partition a requested interval into
tiles.

Tile partitions live on the integer nanosecond grid: tiles are closed
intervals, the first starts at the request start, the last stops at the
request stop, and each next tile starts exactly 1 ns after the previous one
stops. The tiles are therefore pairwise non-overlapping and their union is
the request.

Author: Prof Viewer Core
Version: 1.0
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from prof_viewer.data.entry import EntryID, EntryInfo
from prof_viewer.data.tiles import SlotTile, SummaryTile, TileID
from prof_viewer.timestamp import Interval, Timestamp

logger = logging.getLogger(__name__)


class DataSource(ABC):
    """
    Abstract backend contract.

    Tile fetches may be slow; the viewer caches their results per
    (entry, tile) key and never asks twice for a tile it already holds.
    Background fetches call ``fetch_summary_tile``/``fetch_slot_tile`` from
    worker threads.
    """

    @abstractmethod
    def interval(self) -> Interval:
        """Total time range of the dataset, stable for the session."""

    @abstractmethod
    def fetch_info(self) -> EntryInfo:
        """Schema tree of the dataset, built once and cached by the backend."""

    @abstractmethod
    def request_tiles(self, entry_id: EntryID, request_interval: Interval) -> List[TileID]:
        """Partition ``request_interval`` into tiles for an entry."""

    @abstractmethod
    def fetch_summary_tile(self, entry_id: EntryID, tile_id: TileID) -> SummaryTile:
        """Utilization samples of a summary entry within exactly the tile interval."""

    @abstractmethod
    def fetch_slot_tile(self, entry_id: EntryID, tile_id: TileID) -> SlotTile:
        """Items of a slot entry clipped to exactly the tile interval."""


def split_evenly(interval: Interval, count: int) -> List[TileID]:
    """
    Split an interval into ``count`` tiles of (nearly) equal width.

    Fewer tiles are returned when the interval holds fewer than ``count``
    nanoseconds.

    Args:
        interval: Interval to partition
        count: Desired number of tiles

    Returns:
        List[TileID]: Gapless, non-overlapping tiles covering the interval
    """
    if count < 1:
        raise ValueError(f"Tile count must be positive, got {count}")
    points = interval.duration_ns() + 1
    count = min(count, points)
    start = interval.start.ns
    tiles = []
    for i in range(count):
        tile_start = start + i * points // count
        tile_stop = start + (i + 1) * points // count - 1
        tiles.append(TileID(Interval(Timestamp(tile_start), Timestamp(tile_stop))))
    return tiles


def aligned_tiles(interval: Interval, tile_ns: int) -> List[TileID]:
    """
    Partition an interval along a fixed grid of ``tile_ns`` wide tiles.

    Interior tiles keep the same key no matter where the request starts, so
    overlapping requests share them; only the edge tiles are clipped.

    Args:
        interval: Interval to partition
        tile_ns: Grid width in nanoseconds

    Returns:
        List[TileID]: Gapless, non-overlapping tiles covering the interval
    """
    if tile_ns < 1:
        raise ValueError(f"Tile width must be positive, got {tile_ns}")
    tiles = []
    k = interval.start.ns // tile_ns
    while k * tile_ns <= interval.stop.ns:
        tile_start = max(interval.start.ns, k * tile_ns)
        tile_stop = min(interval.stop.ns, (k + 1) * tile_ns - 1)
        tiles.append(TileID(Interval(Timestamp(tile_start), Timestamp(tile_stop))))
        k += 1
    return tiles


def tile_width_for(interval: Interval, tiles_per_view: int) -> int:
    """
    Power-of-two tile width giving roughly ``tiles_per_view`` tiles for an interval.

    Rounding to a power of two keeps the grid stable while the user pans at a
    fixed zoom level.
    """
    points = interval.duration_ns() + 1
    target = max(1, -(-points // max(1, tiles_per_view)))
    width = 1
    while width < target:
        width *= 2
    return width
