"""
Viewer Session
==============

Top-level state of one viewer: the shared view interval controller, one
window per data source (each with its own tile cache, expansion state and
layout engine) and the configuration they are built from.

The session is owned by the interactive loop; layout passes borrow the
session's LayoutContext instead of reading global state.

Author: Prof Viewer Core
Version: 1.0
"""

import logging
from typing import List, Optional, Tuple

from prof_viewer.config import ViewerConfig
from prof_viewer.data.data_source import DataSource
from prof_viewer.data.entry import EntryID
from prof_viewer.data.tile_cache import TileCache
from prof_viewer.rendering.layout_engine import ExpansionState, LayoutContext, LayoutEngine, LayoutPass
from prof_viewer.rendering.view_controller import ViewIntervalController
from prof_viewer.timestamp import Interval
from prof_viewer.utils.error_handler import ErrorHandler

logger = logging.getLogger(__name__)


class ViewerWindow:
    """Everything the viewer keeps for one data source."""

    def __init__(self, data_source: DataSource, context: LayoutContext,
                 error_handler: Optional[ErrorHandler] = None, background: bool = False):
        """
        Initialize a window.

        Args:
            data_source: Backend to display
            context: Layout parameters shared with the session
            error_handler: Handler recording tile fetch failures
            background: Fetch tiles on worker threads
        """
        self.data_source = data_source
        self.info = data_source.fetch_info()
        self.tile_cache = TileCache(data_source, error_handler, background)
        self.expansion = ExpansionState()
        self.engine = LayoutEngine(self.info, self.tile_cache, self.expansion, context)

    def toggle_expanded(self, entry_id: EntryID):
        """Queue an expand/collapse toggle for the next frame."""
        self.expansion.toggle(entry_id)

    def set_node_range(self, lo: int, hi: int) -> Tuple[int, int]:
        return self.engine.set_node_range(lo, hi)

    def nodes(self) -> int:
        return self.info.nodes()

    def kinds(self) -> List[str]:
        return self.info.kinds()

    def layout(self, viewport_top: float, viewport_bottom: float,
               view_interval: Optional[Interval]) -> LayoutPass:
        return self.engine.layout(viewport_top, viewport_bottom, view_interval)

    def shutdown(self):
        self.tile_cache.shutdown()


class ViewerSession:
    """
    Owns the process-wide view interval and the windows drawn with it.

    Every window is laid out against the same view interval; the total
    interval is the union of all data source extents.
    """

    def __init__(self, config: Optional[ViewerConfig] = None):
        """
        Initialize the session.

        Args:
            config: Viewer preferences; defaults are used if omitted
        """
        self.config = config or ViewerConfig()
        self.context = self.config.layout_context()
        self.error_handler = ErrorHandler()
        self.controller = ViewIntervalController(
            min_drag_distance=float(self.config.get('view', 'min_drag_distance')),
            zoom_factor=float(self.config.get('view', 'zoom_factor')),
        )
        self.windows: List[ViewerWindow] = []
        self.frame_count = 0

        logger.info("ViewerSession initialized")

    def add_source(self, data_source: DataSource) -> ViewerWindow:
        """Open a window on a data source and extend the total interval."""
        window = ViewerWindow(
            data_source,
            self.context,
            self.error_handler,
            bool(self.config.get('cache', 'background_fetch')),
        )
        self.controller.view_changed.connect(window.tile_cache.set_visible_interval)
        self.windows.append(window)
        self.controller.add_extent(data_source.interval())
        logger.info(f"Added data source {type(data_source).__name__} ({window.nodes()} nodes)")
        return window

    @property
    def view_interval(self) -> Optional[Interval]:
        return self.controller.view_interval

    def frame(self, viewport_top: float, viewport_bottom: float) -> List[LayoutPass]:
        """
        Run one layout pass per window against the current view interval.

        Returns:
            List[LayoutPass]: One pass per window, in window order
        """
        self.frame_count += 1
        view = self.controller.view_interval
        return [window.layout(viewport_top, viewport_bottom, view) for window in self.windows]

    def shutdown(self):
        """Stop background fetches of every window."""
        for window in self.windows:
            window.shutdown()
        logger.info("ViewerSession shut down")
