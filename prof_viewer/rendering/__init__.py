"""
Layout and View Control

Viewport culling layout engine and the view interval controller.
"""

from .layout_engine import ExpansionState, LayoutContext, LayoutEngine, LayoutPass, NodeVisit
from .view_controller import ViewIntervalController

__all__ = [
    'ExpansionState', 'LayoutContext', 'LayoutEngine', 'LayoutPass', 'NodeVisit',
    'ViewIntervalController',
]
