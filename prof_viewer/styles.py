"""Centralized color definitions for the profile viewer."""

from PyQt5.QtGui import QColor


class Colors:
    # Item palette
    BLUE = "#0000FF"
    GREEN = "#00FF00"
    RED = "#FF0000"
    YELLOW = "#FFFF00"
    KHAKI = "#F0E68C"
    DARK_GREEN = "#006400"
    DARK_BLUE = "#00008B"

    # Placeholder for tiles that are loading or failed
    PLACEHOLDER = "#64748B"

    SUMMARY_PALETTE = (BLUE, GREEN, RED, YELLOW)
    ITEM_PALETTE = (BLUE, GREEN, RED, YELLOW, KHAKI, DARK_GREEN, DARK_BLUE)

    @staticmethod
    def is_valid(color: str) -> bool:
        """Check that a color string is something Qt can paint with."""
        return QColor(color).isValid()

    @staticmethod
    def cycle(palette, index: int) -> str:
        return palette[index % len(palette)]
