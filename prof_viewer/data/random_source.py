"""
Random Data Source
==================

Synthetic backend producing a node -> kind -> processor hierarchy with random
row counts, utilization curves generated by recursive midpoint displacement
and evenly spaced items in every slot row.

Tile content is a pure function of (seed, entry, tile), so refetching a tile
yields identical data and fetches are safe to run from worker threads.

Author: Prof Viewer Core
Version: 1.0
"""

import logging
import random
import threading
import time
from typing import List, Optional

from prof_viewer.data.data_source import DataSource, aligned_tiles, tile_width_for
from prof_viewer.data.entry import EntryID, EntryInfo, PanelInfo, SlotInfo, SummaryInfo
from prof_viewer.data.tiles import Item, SlotTile, SummaryTile, TileID, UtilPoint, make_fields
from prof_viewer.styles import Colors
from prof_viewer.timestamp import Interval, Timestamp
from prof_viewer.utils.error_handler import EntryMismatchError

logger = logging.getLogger(__name__)


class RandomDataSource(DataSource):
    """Deterministic pseudo-random profile for demos and tests."""

    KINDS = ["CPU", "GPU", "OMP", "Py", "Util", "Chan", "SysMem"]

    # Recursion depth of the utilization curve (2**(LEVELS+1) + 1 samples per tile)
    SUMMARY_LEVELS = 8

    def __init__(self, seed: int = 0, nodes: int = 64, procs: int = 8,
                 max_rows: int = 64, items_per_row: int = 333,
                 tiles_per_view: int = 3, latency_s: float = 0.0):
        """
        Initialize the random data source.

        Args:
            seed: Seed making the dataset reproducible
            nodes: Number of top-level node panels
            procs: Slots per kind panel
            max_rows: Exclusive upper bound of the random row count per slot
            items_per_row: Items generated per row per tile
            tiles_per_view: Approximate number of tiles per request
            latency_s: Artificial delay per tile fetch, to mimic a slow backend
        """
        self.seed = seed
        self.node_count = nodes
        self.procs = procs
        self.max_rows = max_rows
        self.items_per_row = items_per_row
        self.tiles_per_view = tiles_per_view
        self.latency_s = latency_s

        self._info: Optional[EntryInfo] = None
        self._interval: Optional[Interval] = None
        self._lock = threading.Lock()

    def interval(self) -> Interval:
        if self._interval is None:
            rng = random.Random(self.seed)
            self._interval = Interval(Timestamp(0), Timestamp(rng.randrange(1_000_000, 2_000_000)))
        return self._interval

    def fetch_info(self) -> EntryInfo:
        with self._lock:
            if self._info is None:
                self._info = self._build_info()
                logger.info(f"Built schema with {self.node_count} nodes")
            return self._info

    def _build_info(self) -> EntryInfo:
        rng = random.Random(self.seed + 1)
        node_slots = []
        for node in range(self.node_count):
            kind_slots = []
            for i, kind in enumerate(self.KINDS):
                proc_slots = []
                for proc in range(self.procs):
                    proc_slots.append(SlotInfo(
                        short_name=f"{kind[0].lower()}{proc}",
                        long_name=f"Node {node} {kind} {proc}",
                        max_rows=rng.randrange(0, self.max_rows),
                    ))
                kind_slots.append(PanelInfo(
                    short_name=kind.lower(),
                    long_name=f"Node {node} {kind}",
                    summary=SummaryInfo(color=Colors.cycle(Colors.SUMMARY_PALETTE, i)),
                    slots=proc_slots,
                ))
            node_slots.append(PanelInfo(
                short_name=f"n{node}",
                long_name=f"Node {node}",
                summary=None,
                slots=kind_slots,
            ))
        return PanelInfo(short_name="root", long_name="root", summary=None, slots=node_slots)

    def request_tiles(self, entry_id: EntryID, request_interval: Interval) -> List[TileID]:
        width = tile_width_for(request_interval, self.tiles_per_view)
        return aligned_tiles(request_interval, width)

    def _rng_for(self, entry_id: EntryID, tile_id: TileID) -> random.Random:
        return random.Random(hash((self.seed, entry_id.path, tile_id.start.ns, tile_id.stop.ns)))

    def _simulate_latency(self):
        if self.latency_s > 0:
            time.sleep(self.latency_s)

    def fetch_summary_tile(self, entry_id: EntryID, tile_id: TileID) -> SummaryTile:
        entry = self.fetch_info().get(entry_id)
        if not isinstance(entry, SummaryInfo):
            raise EntryMismatchError("Trying to fetch a summary tile on something that is not a summary", entry_id)
        self._simulate_latency()

        rng = self._rng_for(entry_id, tile_id)
        first = UtilPoint(tile_id.start, rng.random())
        last = UtilPoint(tile_id.stop, rng.random())
        utilization = [first]
        self._generate_point(rng, first, last, self.SUMMARY_LEVELS, self.SUMMARY_LEVELS, utilization)
        utilization.append(last)
        return SummaryTile.build(tile_id, utilization)

    def _generate_point(self, rng: random.Random, first: UtilPoint, last: UtilPoint,
                        level: int, max_level: int, utilization: List[UtilPoint]):
        point_time = Timestamp((first.time.ns + last.time.ns) // 2)
        util = (first.util + last.util) * 0.5
        diff = (rng.random() - 0.5) / 1.2 ** (max_level - level)
        point = UtilPoint(point_time, min(1.0, max(0.0, util + diff)))
        if level > 0:
            self._generate_point(rng, first, point, level - 1, max_level, utilization)
        utilization.append(point)
        if level > 0:
            self._generate_point(rng, point, last, level - 1, max_level, utilization)

    def fetch_slot_tile(self, entry_id: EntryID, tile_id: TileID) -> SlotTile:
        entry = self.fetch_info().get(entry_id)
        if not isinstance(entry, SlotInfo):
            raise EntryMismatchError("Trying to fetch a slot tile on something that is not a slot", entry_id)
        self._simulate_latency()

        n = self.items_per_row
        items = []
        for row in range(entry.max_rows):
            row_items = []
            for i in range(n):
                start = tile_id.interval.lerp((i + 0.05) / n)
                stop = tile_id.interval.lerp((i + 0.95) / n)
                interval = Interval(start, stop)
                row_items.append(Item(
                    interval=interval,
                    color=Colors.cycle(Colors.ITEM_PALETTE, row * n + i),
                    fields=make_fields([
                        ("Title", f"{entry.long_name} item {i}"),
                        ("Row", str(row)),
                        ("Interval", interval),
                    ]),
                ))
            items.append(row_items)
        return SlotTile.build(tile_id, items)
