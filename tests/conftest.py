import os

# Avoid GUI crashes in headless CI - MUST be set before any Qt imports
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from PyQt5.QtCore import QCoreApplication

from prof_viewer.data.data_source import DataSource
from prof_viewer.data.entry import EntryID, PanelInfo, SlotInfo, SummaryInfo
from prof_viewer.data.tiles import Item, SlotTile, SummaryTile, TileID, UtilPoint
from prof_viewer.timestamp import Interval
from prof_viewer.utils.error_handler import EntryMismatchError


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class CountingDataSource(DataSource):
    """
    Small in-memory backend recording every fetch.

    Schema: root -> one panel 'p' with a summary and two slots of 1 and 2 rows.
    Tiles are fixed 100 ns chunks.
    """

    def __init__(self, stop_ns=999, fail_times=0):
        self._interval = Interval.from_ns(0, stop_ns)
        self.fail_times = fail_times
        self.fetches = []
        self.info = PanelInfo("root", "root", slots=[
            PanelInfo("p", "Panel", summary=SummaryInfo("#0000FF"), slots=[
                SlotInfo("a", "Slot A", 1),
                SlotInfo("b", "Slot B", 2),
            ]),
        ])

    def interval(self):
        return self._interval

    def fetch_info(self):
        return self.info

    def request_tiles(self, entry_id, request_interval):
        tiles = []
        k = request_interval.start.ns // 100
        while k * 100 <= request_interval.stop.ns:
            tiles.append(TileID(Interval.from_ns(
                max(k * 100, request_interval.start.ns),
                min(k * 100 + 99, request_interval.stop.ns),
            )))
            k += 1
        return tiles

    def _maybe_fail(self):
        if self.fail_times > 0:
            self.fail_times -= 1
            raise IOError("backend unavailable")

    def fetch_summary_tile(self, entry_id, tile_id):
        self.fetches.append((entry_id, tile_id))
        if not isinstance(self.info.get(entry_id), SummaryInfo):
            raise EntryMismatchError("not a summary", entry_id)
        self._maybe_fail()
        return SummaryTile.build(tile_id, [
            UtilPoint(tile_id.start, 0.0),
            UtilPoint(tile_id.stop, 1.0),
        ])

    def fetch_slot_tile(self, entry_id, tile_id):
        self.fetches.append((entry_id, tile_id))
        slot = self.info.get(entry_id)
        if not isinstance(slot, SlotInfo):
            raise EntryMismatchError("not a slot", entry_id)
        self._maybe_fail()
        rows = [[Item(tile_id.interval, "#FF0000", (("Row", str(r)),))] for r in range(slot.max_rows)]
        return SlotTile.build(tile_id, rows)


@pytest.fixture
def counting_source():
    return CountingDataSource()


@pytest.fixture
def make_source():
    return CountingDataSource


@pytest.fixture
def slot_a():
    return EntryID.root().child(0).child(0)


@pytest.fixture
def summary_p():
    return EntryID.root().child(0).summary()

