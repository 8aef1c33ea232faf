"""
Tests for tile partitioning and the random data source.
"""

import pytest

from prof_viewer.data.data_source import aligned_tiles, split_evenly, tile_width_for
from prof_viewer.data.entry import EntryID, EntryKind, PanelInfo, SlotInfo
from prof_viewer.data.random_source import RandomDataSource
from prof_viewer.data.tiles import TileID
from prof_viewer.styles import Colors
from prof_viewer.timestamp import Interval
from prof_viewer.utils.error_handler import EntryMismatchError


def assert_partition(tiles, interval):
    assert tiles
    assert tiles[0].start == interval.start
    assert tiles[-1].stop == interval.stop
    for prev, nxt in zip(tiles, tiles[1:]):
        assert nxt.start.ns == prev.stop.ns + 1


@pytest.mark.parametrize("start,stop,count", [
    (0, 999, 3),
    (17, 1_234_567, 7),
    (5, 5, 4),
    (0, 2, 10),
])
def test_split_evenly_partitions(start, stop, count):
    interval = Interval.from_ns(start, stop)
    tiles = split_evenly(interval, count)
    assert_partition(tiles, interval)
    assert len(tiles) == min(count, stop - start + 1)


def test_split_evenly_rejects_zero_tiles():
    with pytest.raises(ValueError):
        split_evenly(Interval.from_ns(0, 10), 0)


def test_aligned_tiles_share_interior_keys():
    first = aligned_tiles(Interval.from_ns(0, 999), 256)
    shifted = aligned_tiles(Interval.from_ns(300, 1_299), 256)
    assert_partition(first, Interval.from_ns(0, 999))
    assert_partition(shifted, Interval.from_ns(300, 1_299))
    assert TileID(Interval.from_ns(512, 767)) in first
    assert TileID(Interval.from_ns(512, 767)) in shifted


def test_tile_width_is_power_of_two():
    width = tile_width_for(Interval.from_ns(0, 999), 3)
    assert width == 512
    assert tile_width_for(Interval.from_ns(0, 0), 3) == 1


@pytest.fixture
def source():
    return RandomDataSource(seed=3, nodes=2, procs=2, max_rows=5, items_per_row=4)


def test_random_source_schema(source):
    info = source.fetch_info()
    assert info is source.fetch_info()
    assert info.nodes() == 2
    assert info.kinds() == [k.lower() for k in RandomDataSource.KINDS]
    cpu = info.get(EntryID((0, 0)))
    assert isinstance(cpu, PanelInfo)
    assert cpu.summary is not None
    assert all(isinstance(slot, SlotInfo) for slot in cpu.slots)


def test_random_source_interval_is_stable(source):
    interval = source.interval()
    assert interval == source.interval()
    assert interval.start.ns == 0
    assert 1_000_000 <= interval.stop.ns < 2_000_000


def test_random_source_request_tiles_partition(source):
    view = Interval.from_ns(1_234, 567_890)
    assert_partition(source.request_tiles(EntryID((0, 0, 0)), view), view)


def test_random_source_fetches_are_deterministic(source):
    summary = EntryID((0, 0)).summary()
    tile_id = source.request_tiles(summary, source.interval())[0]
    first = source.fetch_summary_tile(summary, tile_id)
    assert first == source.fetch_summary_tile(summary, tile_id)
    assert all(tile_id.interval.contains(p.time) for p in first.utilization)
    assert all(0.0 <= p.util <= 1.0 for p in first.utilization)


def test_random_source_slot_items_within_tile(source):
    slot = EntryID((1, 0, 0))
    max_rows = source.fetch_info().get(slot).max_rows
    tile_id = source.request_tiles(slot, source.interval())[1]
    result = source.fetch_slot_tile(slot, tile_id)
    assert result.rows == max_rows
    for row in result.items:
        assert len(row) == source.items_per_row
        for item in row:
            assert tile_id.interval.contains_interval(item.interval)
            assert item.get_field("Interval") == item.interval


def test_random_source_rejects_wrong_entry_kind(source):
    tile_id = source.request_tiles(EntryID.root(), source.interval())[0]
    with pytest.raises(EntryMismatchError):
        source.fetch_summary_tile(EntryID((0, 0, 0)), tile_id)
    with pytest.raises(EntryMismatchError):
        source.fetch_slot_tile(EntryID((0, 0)).summary(), tile_id)


def test_random_source_colors_are_paintable(source):
    for _, info in source.fetch_info().walk():
        if info.kind is EntryKind.SUMMARY:
            assert Colors.is_valid(info.color)
    assert all(Colors.is_valid(c) for c in Colors.SUMMARY_PALETTE + Colors.ITEM_PALETTE)
    assert Colors.is_valid(Colors.PLACEHOLDER)
    assert not Colors.is_valid("not-a-color")
