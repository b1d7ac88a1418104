"""
Timing Nodes package.

Nodes that turn frame time into values.
"""

from __future__ import annotations

from patch_studio.core.node_types import NodeRegistry
from patch_studio.nodes.timing.clock import ClockNode, TimeNode


def register_timing_nodes(registry: NodeRegistry) -> None:
    """Register timing nodes with the given registry."""
    registry.register_class(ClockNode)
    registry.register_class(TimeNode)


__all__ = [
    "ClockNode",
    "TimeNode",
    "register_timing_nodes",
]
