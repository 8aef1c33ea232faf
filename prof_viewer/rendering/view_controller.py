"""
View Interval Controller - Owns the visible time window.

This module provides the ViewIntervalController class which manages:
- The total interval (union of all known data extents)
- The view interval used by layout and tile requests
- Drag-to-zoom selection with a minimum drag distance
- Zoom, pan and reset-to-total operations
- Mapping between screen x positions and timestamps
"""

import logging
from typing import Optional

from PyQt5.QtCore import QObject, pyqtSignal

from prof_viewer.timestamp import Interval, Timestamp

logger = logging.getLogger(__name__)


class ViewIntervalController(QObject):
    """
    Single owner of the visible time window.

    Screen positions are given in pixels together with the width of the
    timeline area; they are mapped to time through the current view
    interval.

    Signals:
        view_changed: Emitted with the new view interval
        total_changed: Emitted with the new total interval
    """

    view_changed = pyqtSignal(object)
    total_changed = pyqtSignal(object)

    # Drags shorter than this (in pixels) are treated as clicks
    MIN_DRAG_DISTANCE = 5.0

    # Zoom step used by zoom_in / zoom_out
    ZOOM_FACTOR = 2.0

    def __init__(self, total_interval: Optional[Interval] = None,
                 min_drag_distance: float = MIN_DRAG_DISTANCE,
                 zoom_factor: float = ZOOM_FACTOR):
        """
        Initialize the controller.

        Args:
            total_interval: Initial total interval; the view starts out equal to it
            min_drag_distance: Minimum drag distance in pixels for a zoom to commit
            zoom_factor: Factor applied by zoom_in / zoom_out
        """
        super().__init__()
        if zoom_factor <= 1.0:
            raise ValueError(f"Zoom factor must be greater than 1, got {zoom_factor}")
        self.min_drag_distance = min_drag_distance
        self.zoom_factor = zoom_factor
        self._total_interval = total_interval
        self._view_interval = total_interval
        self._drag_origin: Optional[float] = None
        self._drag_candidate: Optional[Interval] = None

    @property
    def total_interval(self) -> Optional[Interval]:
        return self._total_interval

    @property
    def view_interval(self) -> Optional[Interval]:
        return self._view_interval

    def add_extent(self, interval: Interval):
        """Grow the total interval to cover another data extent."""
        if self._total_interval is None:
            self._total_interval = interval
        else:
            self._total_interval = self._total_interval.union(interval)
        self.total_changed.emit(self._total_interval)
        if self._view_interval is None:
            self._set_view(self._total_interval)

    def set_view_interval(self, interval: Interval) -> bool:
        """
        Set the view interval, clamped into the total interval.

        Returns:
            bool: True if the view changed
        """
        return self._set_view(self._clamp(interval))

    def reset(self) -> bool:
        """Show the whole total interval."""
        if self._total_interval is None:
            return False
        logger.debug("View reset to total interval")
        return self._set_view(self._total_interval)

    def _set_view(self, interval: Optional[Interval]) -> bool:
        if interval is None or interval == self._view_interval:
            return False
        self._view_interval = interval
        logger.debug(f"View interval: {interval}")
        self.view_changed.emit(interval)
        return True

    def _clamp(self, interval: Interval) -> Interval:
        total = self._total_interval
        if total is None:
            return interval
        if interval.duration_ns() >= total.duration_ns():
            return total
        if interval.start < total.start:
            shift = total.start - interval.start
            return Interval(interval.start + shift, interval.stop + shift)
        if interval.stop > total.stop:
            shift = interval.stop - total.stop
            return Interval(interval.start - shift, interval.stop - shift)
        return interval

    # Screen mapping

    def time_at(self, x: float, width: float) -> Optional[Timestamp]:
        """Timestamp under a screen x position."""
        if self._view_interval is None or width <= 0:
            return None
        fraction = max(0.0, min(1.0, x / width))
        return self._view_interval.lerp(fraction)

    def x_for(self, time: Timestamp, width: float) -> Optional[float]:
        """Screen x position of a timestamp (may lie outside [0, width])."""
        if self._view_interval is None:
            return None
        return self._view_interval.unlerp(time) * width

    # Drag to zoom

    @property
    def is_dragging(self) -> bool:
        return self._drag_origin is not None

    @property
    def drag_candidate(self) -> Optional[Interval]:
        """Interval currently selected by an ongoing drag, for highlighting."""
        return self._drag_candidate

    def begin_drag(self, x: float, width: float):
        """Record the drag origin."""
        if self._view_interval is None or width <= 0:
            return
        self._drag_origin = x
        self._drag_candidate = None

    def update_drag(self, x: float, width: float) -> Optional[Interval]:
        """
        Compute the candidate interval for the current pointer position.

        Returns:
            Optional[Interval]: Candidate view interval, or None when not dragging
        """
        if self._drag_origin is None:
            return None
        start = self.time_at(min(self._drag_origin, x), width)
        stop = self.time_at(max(self._drag_origin, x), width)
        if start is None or stop is None:
            return None
        self._drag_candidate = Interval(start, stop)
        return self._drag_candidate

    def end_drag(self, x: float, width: float) -> bool:
        """
        Finish the drag, committing the candidate if the drag was long enough.

        Returns:
            bool: True if the view interval changed
        """
        if self._drag_origin is None:
            return False
        origin = self._drag_origin
        candidate = self.update_drag(x, width)
        self.cancel_drag()

        if candidate is None or abs(x - origin) <= self.min_drag_distance:
            logger.debug("Drag shorter than minimum distance; ignored")
            return False
        return self._set_view(candidate)

    def cancel_drag(self):
        self._drag_origin = None
        self._drag_candidate = None

    # Zoom and pan

    def zoom(self, factor: float, anchor: float = 0.5) -> bool:
        """
        Zoom around an anchor.

        Args:
            factor: > 1 zooms in, < 1 zooms out
            anchor: Fraction of the view that stays fixed on screen

        Returns:
            bool: True if the view changed
        """
        view = self._view_interval
        if view is None or factor <= 0:
            return False
        anchor = max(0.0, min(1.0, anchor))
        anchor_time = view.lerp(anchor)
        duration = max(1, int(round(view.duration_ns() / factor)))
        start = anchor_time.ns - int(round(duration * anchor))
        return self.set_view_interval(Interval.from_ns(start, start + duration))

    def zoom_in(self, anchor: float = 0.5) -> bool:
        return self.zoom(self.zoom_factor, anchor)

    def zoom_out(self, anchor: float = 0.5) -> bool:
        return self.zoom(1.0 / self.zoom_factor, anchor)

    def pan(self, fraction: float) -> bool:
        """
        Shift the view by a fraction of its width (positive moves later in time).

        Returns:
            bool: True if the view changed
        """
        view = self._view_interval
        if view is None:
            return False
        shift = int(round(view.duration_ns() * fraction))
        return self.set_view_interval(Interval.from_ns(view.start.ns + shift, view.stop.ns + shift))

    def __repr__(self):
        return (
            f"ViewIntervalController(total={self._total_interval}, "
            f"view={self._view_interval})"
        )
