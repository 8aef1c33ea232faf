"""
Layout Engine - Hierarchical layout and viewport culling.

This module turns the expand/collapse state of the entry tree plus a vertical
viewport and a visible time window into a minimal list of node visits:

- Recursive height computation for panels, slots and summaries
- Viewport culling (subtrees outside the viewport are never walked)
- Tile requests for the visible time window of every visited summary/slot
- Hit testing for hover and tooltips

Expansion toggles are queued and applied at the start of the next layout
pass, so a click shows up one frame later.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from prof_viewer.data.entry import EntryID, EntryInfo, EntryKind, PanelInfo
from prof_viewer.data.tile_cache import Tile, TileCache
from prof_viewer.data.tiles import Item, SlotTile, TileID
from prof_viewer.timestamp import Interval, Timestamp

logger = logging.getLogger(__name__)


@dataclass
class LayoutContext:
    """
    Layout parameters shared by every pass.

    Attributes:
        row_height: Height of one slot row (and of one summary row)
        padding: Vertical gap between sibling entries
        summary_rows: Rows occupied by a summary curve
        collapsed_rows: Rows shown by a collapsed slot
        placeholder_height: Height of a collapsed panel without summary, or of an empty slot
    """
    row_height: float = 20.0
    padding: float = 4.0
    summary_rows: int = 2
    collapsed_rows: int = 4
    placeholder_height: float = 20.0

    @property
    def summary_height(self) -> float:
        return self.summary_rows * self.row_height


class ExpansionState:
    """Expanded flags keyed by EntryID; entries are collapsed by default."""

    def __init__(self):
        self._expanded: Dict[EntryID, bool] = {}
        self._pending: List[Tuple[EntryID, Optional[bool]]] = []

    def is_expanded(self, entry_id: EntryID) -> bool:
        return self._expanded.get(entry_id, False)

    def toggle(self, entry_id: EntryID):
        """Queue a toggle; it takes effect on the next layout pass."""
        self._pending.append((entry_id, None))

    def set_expanded(self, entry_id: EntryID, expanded: bool):
        """Queue an explicit state change for the next layout pass."""
        self._pending.append((entry_id, expanded))

    def has_pending(self) -> bool:
        return bool(self._pending)

    def apply_pending(self) -> int:
        """
        Apply queued changes in order.

        Returns:
            int: Number of changes applied
        """
        pending, self._pending = self._pending, []
        for entry_id, value in pending:
            if value is None:
                value = not self.is_expanded(entry_id)
            if value:
                self._expanded[entry_id] = True
            else:
                self._expanded.pop(entry_id, None)
        if pending:
            logger.debug(f"Applied {len(pending)} expansion changes")
        return len(pending)

    def expanded_ids(self) -> List[EntryID]:
        return sorted(self._expanded)


@dataclass
class NodeVisit:
    """One entry intersecting the viewport, with its tiles for the view window."""
    entry_id: EntryID
    info: EntryInfo
    level: int
    y_top: float
    y_bottom: float
    expanded: bool = False
    tiles: List[Tuple[TileID, Optional[Tile]]] = field(default_factory=list)

    @property
    def kind(self) -> EntryKind:
        return self.info.kind

    @property
    def height(self) -> float:
        return self.y_bottom - self.y_top

    @property
    def pending_tiles(self) -> int:
        """Tiles not available yet (in flight or failed); drawn as placeholders."""
        return sum(1 for _, tile in self.tiles if tile is None)

    def contains_y(self, y: float) -> bool:
        return self.y_top <= y < self.y_bottom


@dataclass
class LayoutPass:
    """Result of one layout pass."""
    total_height: float
    viewport_top: float
    viewport_bottom: float
    view_interval: Optional[Interval] = None
    visits: List[NodeVisit] = field(default_factory=list)
    culled: int = 0
    stopped_early: bool = False

    def visited_ids(self) -> List[EntryID]:
        return [visit.entry_id for visit in self.visits]

    def hit_test(self, y: float) -> Optional[NodeVisit]:
        """Deepest visited entry at a vertical position."""
        # Children are visited after their parent, so the last match is the deepest
        for visit in reversed(self.visits):
            if visit.contains_y(y):
                return visit
        return None

    @property
    def extent(self) -> Optional[Tuple[float, float]]:
        """Min and max y of the visited content."""
        if not self.visits:
            return None
        return (min(v.y_top for v in self.visits), max(v.y_bottom for v in self.visits))


class LayoutEngine:
    """
    Computes heights and walks the entries intersecting the viewport.

    The engine reads the expansion state and the node range; it never
    changes the schema. Tiles are requested through the TileCache only for
    visited summaries and slots.
    """

    def __init__(self, info: EntryInfo, tile_cache: Optional[TileCache] = None,
                 expansion: Optional[ExpansionState] = None,
                 context: Optional[LayoutContext] = None):
        """
        Initialize the layout engine.

        Args:
            info: Root of the schema tree (a panel)
            tile_cache: Cache used to request tiles of visited entries
            expansion: Expanded flags; a fresh state is created if omitted
            context: Layout parameters
        """
        if not isinstance(info, PanelInfo):
            raise TypeError("Layout root must be a panel")
        self.info = info
        self.tile_cache = tile_cache
        self.expansion = expansion or ExpansionState()
        self.context = context or LayoutContext()
        self._node_range: Optional[Tuple[int, int]] = None

    # Node selection

    def set_node_range(self, lo: int, hi: int) -> Tuple[int, int]:
        """
        Restrict the top-level nodes shown to the inclusive range [lo, hi].

        Bounds are clamped to the available nodes, and a reversed range is
        healed by clamping lo to hi.

        Returns:
            Tuple[int, int]: The range actually applied
        """
        last = max(0, len(self.info.slots) - 1)
        hi = min(max(hi, 0), last)
        lo = min(max(lo, 0), last)
        if lo > hi:
            lo = hi
        self._node_range = (lo, hi)
        return self._node_range

    def clear_node_range(self):
        self._node_range = None

    @property
    def node_range(self) -> Optional[Tuple[int, int]]:
        return self._node_range

    def _root_admits(self, index: int) -> bool:
        if self._node_range is None:
            return True
        lo, hi = self._node_range
        return lo <= index <= hi

    # Heights

    def _children(self, entry_id: EntryID, info: PanelInfo, expanded: bool):
        """Displayed children of a panel: its summary, then its slots if expanded."""
        children = []
        if info.summary is not None:
            children.append((entry_id.summary(), info.summary))
        if expanded:
            root = entry_id.level() == 0
            for i, slot in enumerate(info.slots):
                if root and not self._root_admits(i):
                    continue
                children.append((entry_id.child(i), slot))
        return children

    def _is_expanded(self, entry_id: EntryID) -> bool:
        # The root is always expanded
        return entry_id.level() == 0 or self.expansion.is_expanded(entry_id)

    def height(self, entry_id: EntryID, info: Optional[EntryInfo] = None) -> float:
        """Height of an entry given the current expansion state."""
        if info is None:
            info = self.info.get(entry_id)
            if info is None:
                raise KeyError(f"No entry {entry_id}")
        return self._height(entry_id, info, {})

    def _height(self, entry_id: EntryID, info: EntryInfo, memo: Dict[EntryID, float]) -> float:
        cached = memo.get(entry_id)
        if cached is not None:
            return cached

        ctx = self.context
        if info.kind is EntryKind.SUMMARY:
            result = ctx.summary_height
        elif info.kind is EntryKind.SLOT:
            rows = info.max_rows if self.expansion.is_expanded(entry_id) else min(info.max_rows, ctx.collapsed_rows)
            result = rows * ctx.row_height if rows > 0 else ctx.placeholder_height
        else:
            children = self._children(entry_id, info, self._is_expanded(entry_id))
            if not children:
                result = ctx.placeholder_height
            else:
                result = sum(self._height(cid, cinfo, memo) for cid, cinfo in children)
                result += ctx.padding * (len(children) - 1)

        memo[entry_id] = result
        return result

    def total_height(self) -> float:
        return self._height(EntryID.root(), self.info, {})

    # Traversal

    def layout(self, viewport_top: float, viewport_bottom: float,
               view_interval: Optional[Interval] = None) -> LayoutPass:
        """
        Run one layout pass.

        An entry occupying [y, y + height) is visited when it intersects
        [viewport_top, viewport_bottom).

        Args:
            viewport_top: Top of the visible area in content coordinates
            viewport_bottom: Bottom of the visible area in content coordinates
            view_interval: Visible time window; tiles are requested only when given

        Returns:
            LayoutPass: Visited entries in display order plus culling counters
        """
        self.expansion.apply_pending()
        if viewport_bottom < viewport_top:
            viewport_top, viewport_bottom = viewport_bottom, viewport_top

        if self.tile_cache is not None:
            self.tile_cache.set_visible_interval(view_interval)

        memo: Dict[EntryID, float] = {}
        root = EntryID.root()
        result = LayoutPass(
            total_height=self._height(root, self.info, memo),
            viewport_top=viewport_top,
            viewport_bottom=viewport_bottom,
            view_interval=view_interval,
        )
        self._layout_children(root, self.info, 0.0, 1, result, memo)

        logger.debug(
            f"Layout pass: {len(result.visits)} visited, {result.culled} culled, "
            f"height {result.total_height}"
        )
        return result

    def _layout_children(self, entry_id: EntryID, info: PanelInfo, y: float, level: int,
                         result: LayoutPass, memo: Dict[EntryID, float]) -> bool:
        """
        Lay out the displayed children of a panel starting at ``y``.

        Returns:
            bool: False once a child starts below the viewport, which ends the whole pass
        """
        for child_id, child in self._children(entry_id, info, self._is_expanded(entry_id)):
            h = self._height(child_id, child, memo)
            if y >= result.viewport_bottom:
                # Below the viewport; everything after is further down
                result.stopped_early = True
                return False
            if y + h <= result.viewport_top:
                # Above the viewport
                result.culled += 1
                y += h + self.context.padding
                continue

            if not self._visit(child_id, child, y, h, level, result, memo):
                return False
            y += h + self.context.padding
        return True

    def _visit(self, entry_id: EntryID, info: EntryInfo, y: float, h: float, level: int,
               result: LayoutPass, memo: Dict[EntryID, float]) -> bool:
        expanded = self.expansion.is_expanded(entry_id)
        visit = NodeVisit(entry_id, info, level, y, y + h, expanded)
        result.visits.append(visit)

        if info.kind is EntryKind.PANEL:
            return self._layout_children(entry_id, info, y, level + 1, result, memo)

        if self.tile_cache is not None and result.view_interval is not None:
            if info.kind is EntryKind.SUMMARY:
                visit.tiles = list(self.tile_cache.summary_tiles(entry_id, result.view_interval))
            else:
                visit.tiles = list(self.tile_cache.slot_tiles(entry_id, result.view_interval))
        return True

    # Hover / tooltip lookup

    def row_at(self, visit: NodeVisit, y: float) -> Optional[int]:
        """Slot row under a vertical position."""
        if visit.kind is not EntryKind.SLOT or not visit.contains_y(y):
            return None
        row = int((y - visit.y_top) // self.context.row_height)
        if row >= visit.info.max_rows:
            return None
        return row

    def item_at(self, layout_pass: LayoutPass, y: float, time: Timestamp) -> Optional[Item]:
        """Item under the cursor, or None."""
        visit = layout_pass.hit_test(y)
        if visit is None:
            return None
        row = self.row_at(visit, y)
        if row is None:
            return None
        for tile_id, tile in visit.tiles:
            if isinstance(tile, SlotTile) and tile_id.interval.contains(time):
                return tile.item_at(row, time)
        return None
