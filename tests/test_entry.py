"""
Tests for EntryID addressing and the EntryInfo schema tree.
"""

import pytest

from prof_viewer.data.entry import (
    SUMMARY_INDEX, EntryID, EntryIndex, EntryKind, PanelInfo, SlotInfo, SummaryInfo,
)
from prof_viewer.utils.error_handler import EntryMismatchError


@pytest.fixture
def tree():
    """root -> 2 nodes -> (cpu, gpu) kind panels -> slots."""
    nodes = []
    for n in range(2):
        nodes.append(PanelInfo(f"n{n}", f"Node {n}", slots=[
            PanelInfo("cpu", f"Node {n} CPU", summary=SummaryInfo("#0000FF"), slots=[
                SlotInfo("c0", "CPU 0", 3),
                SlotInfo("c1", "CPU 1", 0),
            ]),
            PanelInfo("gpu", f"Node {n} GPU", slots=[SlotInfo("g0", "GPU 0", 1)]),
        ]))
    return PanelInfo("root", "root", slots=nodes)


def test_path_decoding():
    entry = EntryID((0, 1, SUMMARY_INDEX))
    assert entry.level() == 3
    assert entry.is_summary()
    assert entry.slot_index(0) == 0
    assert entry.slot_index(1) == 1
    assert entry.slot_index(2) is None
    assert entry.index(2) is EntryIndex.SUMMARY
    assert entry.index(3) is None
    assert entry.last_index().is_summary
    assert list(entry) == [EntryIndex(0), EntryIndex(1), EntryIndex.SUMMARY]
    assert str(entry) == "/0/1/s"


def test_builders():
    root = EntryID.root()
    assert root.level() == 0
    assert not root.is_summary()
    assert root.parent() is None
    slot = root.child(2).child(5)
    assert slot.path == (2, 5)
    assert slot.last_slot_index() == 5
    assert slot.parent() == root.child(2)
    assert root.child(2).summary().path == (2, SUMMARY_INDEX)
    with pytest.raises(ValueError):
        root.child(-1)
    with pytest.raises(ValueError):
        EntryID((0, -2))


def test_entry_ids_are_ordered_and_hashable():
    panel = EntryID.root().child(0)
    ids = [panel.child(1), panel.child(0), panel.summary()]
    # The summary sorts before the ordinary children
    assert sorted(ids) == [panel.summary(), panel.child(0), panel.child(1)]
    assert len({panel.child(0), EntryID((0, 0))}) == 1


def test_get_resolves_paths(tree):
    cpu = EntryID.root().child(1).child(0)
    assert tree.get(EntryID.root()) is tree
    assert tree.get(cpu).long_name == "Node 1 CPU"
    assert tree.get(cpu.child(0)).max_rows == 3
    assert tree.get(cpu.summary()).kind is EntryKind.SUMMARY


def test_get_missing_child_returns_none(tree):
    assert tree.get(EntryID((5,))) is None
    assert tree.get(EntryID((0, 0, 9))) is None
    # The gpu panel has no summary
    assert tree.get(EntryID((0, 1)).summary()) is None


def test_get_through_leaf_raises_mismatch(tree):
    with pytest.raises(EntryMismatchError):
        tree.get(EntryID((0, 0, 0, 0)))
    with pytest.raises(EntryMismatchError):
        tree.get(EntryID((0, 0, SUMMARY_INDEX, 0)))


def test_nodes_and_kinds(tree):
    assert tree.nodes() == 2
    assert tree.kinds() == ["cpu", "gpu"]


def test_kinds_requires_panel_shape():
    flat = PanelInfo("root", "root", slots=[SlotInfo("s", "Slot", 1)])
    assert flat.nodes() == 1
    with pytest.raises(EntryMismatchError):
        flat.kinds()
    with pytest.raises(EntryMismatchError):
        SlotInfo("s", "Slot", 1).nodes()


def test_walk_in_display_order(tree):
    walked = [str(entry_id) for entry_id, _ in tree.walk()]
    assert walked[:6] == ["/", "/0", "/0/0", "/0/0/s", "/0/0/0", "/0/0/1"]
    assert len(walked) == 1 + 2 * (1 + 1 + 1 + 2 + 1 + 1)
    for entry_id, info in tree.walk():
        assert tree.get(entry_id) is info


def test_schema_validation():
    with pytest.raises(ValueError):
        SlotInfo("s", "Slot", -1)
    with pytest.raises(EntryMismatchError):
        PanelInfo("p", "Panel", slots=[SummaryInfo("#FF0000")])
