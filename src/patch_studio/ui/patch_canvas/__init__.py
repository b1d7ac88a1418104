"""
Patch Canvas UI components.

This package provides the visual interaction graph editor.
"""

from patch_studio.ui.patch_canvas.canvas import (
    PatchCanvas,
    SOCKET_COLORS,
)

__all__ = [
    "PatchCanvas",
    "SOCKET_COLORS",
]
