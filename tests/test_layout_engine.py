"""
Tests for layout heights, viewport culling and expansion handling.
"""

import pytest

from prof_viewer.data.entry import EntryID, EntryKind, PanelInfo, SlotInfo, SummaryInfo
from prof_viewer.data.tile_cache import TileCache
from prof_viewer.rendering.layout_engine import ExpansionState, LayoutContext, LayoutEngine
from prof_viewer.timestamp import Interval, Timestamp
from prof_viewer.utils.error_handler import ErrorHandler


@pytest.fixture
def context():
    return LayoutContext(row_height=10.0, padding=4.0, summary_rows=2,
                         collapsed_rows=4, placeholder_height=20.0)


def three_slots():
    return [SlotInfo("a", "A", 1), SlotInfo("b", "B", 2), SlotInfo("c", "C", 3)]


def test_root_children_heights_and_positions(context):
    engine = LayoutEngine(PanelInfo("root", "root", slots=three_slots()), context=context)
    assert engine.total_height() == 68.0

    result = engine.layout(0, 1000)
    positions = [(v.y_top, v.y_bottom) for v in result.visits]
    assert positions == [(0.0, 10.0), (14.0, 34.0), (38.0, 68.0)]
    assert result.culled == 0
    assert not result.stopped_early


def test_expanded_and_collapsed_panel(context):
    root = PanelInfo("root", "root", slots=[PanelInfo("p", "P", slots=three_slots())])
    engine = LayoutEngine(root, context=context)
    panel = EntryID.root().child(0)

    # Collapsed panel without a summary shows a placeholder
    assert engine.height(panel) == 20.0

    engine.expansion.set_expanded(panel, True)
    engine.layout(0, 100)
    assert engine.height(panel) == 68.0
    assert engine.total_height() == 68.0


def test_panel_with_summary(context):
    root = PanelInfo("root", "root", slots=[
        PanelInfo("p", "P", summary=SummaryInfo("#0000FF"), slots=three_slots()),
    ])
    engine = LayoutEngine(root, context=context)
    panel = EntryID.root().child(0)
    assert engine.height(panel) == 20.0

    engine.expansion.toggle(panel)
    result = engine.layout(0, 1000)
    assert engine.height(panel) == 20.0 + 4.0 + 68.0
    assert result.visited_ids()[:3] == [panel, panel.summary(), panel.child(0)]


def test_slot_heights(context):
    slots = [SlotInfo("big", "Big", 10), SlotInfo("empty", "Empty", 0)]
    engine = LayoutEngine(PanelInfo("root", "root", slots=slots), context=context)
    big = EntryID.root().child(0)
    assert engine.height(big) == 40.0
    assert engine.height(EntryID.root().child(1)) == 20.0

    engine.expansion.toggle(big)
    engine.layout(0, 10)
    assert engine.height(big) == 100.0


def test_viewport_culling(context):
    engine = LayoutEngine(PanelInfo("root", "root", slots=three_slots()), context=context)
    result = engine.layout(15, 25)
    assert result.visited_ids() == [EntryID.root().child(1)]
    assert result.culled == 1
    assert result.stopped_early


def test_viewport_is_half_open(context):
    engine = LayoutEngine(PanelInfo("root", "root", slots=three_slots()), context=context)
    # The first child ends at 10 and the second starts at 14
    assert engine.layout(10, 14).visits == []
    assert engine.layout(9, 14).visited_ids() == [EntryID.root().child(0)]


def test_reversed_viewport_is_swapped(context):
    engine = LayoutEngine(PanelInfo("root", "root", slots=three_slots()), context=context)
    assert engine.layout(25, 15).visited_ids() == [EntryID.root().child(1)]


def test_culling_skips_collapsed_and_offscreen_subtrees(context):
    nodes = [PanelInfo(f"n{i}", f"Node {i}", slots=three_slots()) for i in range(100)]
    engine = LayoutEngine(PanelInfo("root", "root", slots=nodes), context=context)
    for i in range(100):
        engine.expansion.set_expanded(EntryID.root().child(i), True)

    # Each node is 68 high, so node 10 starts at 10 * 72 = 720
    result = engine.layout(720, 730)
    assert engine.total_height() == 100 * 68 + 99 * 4
    assert result.visited_ids() == [EntryID((10,)), EntryID((10, 0))]
    assert result.culled == 10
    assert result.stopped_early


def test_expansion_toggle_lags_one_pass(context):
    root = PanelInfo("root", "root", slots=[PanelInfo("p", "P", slots=three_slots())])
    engine = LayoutEngine(root, context=context)
    panel = EntryID.root().child(0)

    engine.expansion.toggle(panel)
    assert engine.expansion.has_pending()
    assert not engine.expansion.is_expanded(panel)
    assert engine.total_height() == 20.0

    result = engine.layout(0, 1000)
    assert result.total_height == 68.0
    assert engine.expansion.expanded_ids() == [panel]

    engine.expansion.toggle(panel)
    engine.expansion.toggle(panel)
    assert engine.expansion.apply_pending() == 2
    assert engine.expansion.is_expanded(panel)


def test_root_is_always_expanded(context):
    engine = LayoutEngine(PanelInfo("root", "root", slots=three_slots()), context=context)
    engine.expansion.set_expanded(EntryID.root(), False)
    assert len(engine.layout(0, 1000).visits) == 3


def test_node_range(context):
    nodes = [PanelInfo(f"n{i}", f"Node {i}", slots=three_slots()) for i in range(5)]
    engine = LayoutEngine(PanelInfo("root", "root", slots=nodes), context=context)

    assert engine.set_node_range(-5, 100) == (0, 4)
    assert engine.set_node_range(3, 1) == (1, 1)

    engine.set_node_range(1, 2)
    assert engine.layout(0, 1000).visited_ids() == [EntryID((1,)), EntryID((2,))]
    assert engine.total_height() == 20.0 + 4.0 + 20.0

    engine.clear_node_range()
    assert engine.node_range is None
    assert len(engine.layout(0, 1000).visits) == 5


def test_tiles_requested_only_for_visited_entries(context, counting_source):
    cache = TileCache(counting_source)
    engine = LayoutEngine(counting_source.fetch_info(), cache, ExpansionState(), context)
    panel = EntryID.root().child(0)
    engine.expansion.set_expanded(panel, True)

    # Summary occupies [0, 20); slot a starts at 24
    result = engine.layout(0, 10, Interval.from_ns(0, 199))
    assert result.visited_ids() == [panel, panel.summary()]
    assert {entry for entry, _ in counting_source.fetches} == {panel.summary()}
    summary_visit = result.visits[1]
    assert summary_visit.kind is EntryKind.SUMMARY
    assert len(summary_visit.tiles) == 2
    assert summary_visit.pending_tiles == 0


def test_no_tiles_without_view_interval(context, counting_source):
    cache = TileCache(counting_source)
    engine = LayoutEngine(counting_source.fetch_info(), cache, context=context)
    engine.layout(0, 1000)
    assert counting_source.fetches == []


def test_hit_test_and_item_at(context, counting_source):
    cache = TileCache(counting_source)
    engine = LayoutEngine(counting_source.fetch_info(), cache, context=context)
    panel = EntryID.root().child(0)
    engine.expansion.set_expanded(panel, True)
    result = engine.layout(0, 100, Interval.from_ns(0, 99))

    assert result.hit_test(25).entry_id == panel.child(0)
    # The padding gap between slots belongs to the panel
    assert result.hit_test(36).entry_id == panel
    assert result.hit_test(500) is None

    item = engine.item_at(result, 25, Timestamp(50))
    assert item is not None
    assert item.interval == Interval.from_ns(0, 99)
    assert engine.item_at(result, 36, Timestamp(50)) is None
    # Slot b has two rows: [38, 48) and [48, 58)
    assert engine.item_at(result, 50, Timestamp(50)).get_field("Row") == "1"


def test_layout_root_must_be_panel():
    with pytest.raises(TypeError):
        LayoutEngine(SlotInfo("s", "S", 1))


def test_failed_tile_partition_leaves_visit_without_tiles(context, counting_source, monkeypatch):
    def backend_down(entry_id, request_interval):
        raise IOError("backend down")

    monkeypatch.setattr(counting_source, "request_tiles", backend_down)
    handler = ErrorHandler()
    cache = TileCache(counting_source, handler)
    engine = LayoutEngine(counting_source.fetch_info(), cache, context=context)

    result = engine.layout(0, 1000, Interval.from_ns(0, 199))

    panel = EntryID.root().child(0)
    assert result.visited_ids() == [panel, panel.summary()]
    assert result.visits[1].tiles == []
    assert handler.get_error_count() == 1
    assert cache.get_cache_stats()['failures'] == 1
