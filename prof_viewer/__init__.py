"""
Profile Viewer Core

This package provides the data-virtualization core of an interactive
timeline/profile viewer: interval arithmetic, entry addressing, the data
source contract, the tile cache, the layout/culling engine and the view
interval controller.
"""

__version__ = "1.0.0"
__author__ = "Prof Viewer Development Team"

from .timestamp import Interval, Timestamp
from .session import ViewerSession, ViewerWindow

__all__ = ['Interval', 'Timestamp', 'ViewerSession', 'ViewerWindow']
