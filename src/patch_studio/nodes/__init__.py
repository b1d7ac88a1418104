"""
Nodes package - All node implementations.

This package contains node implementations organized by category:
- timing: Clock, Time
- arithmetic: Add, Subtract, Multiply, Divide
- animation: Spin, Pulse, Float, Fade
- object: Position, Rotation, Scale, Opacity, SceneObject, Vector
"""

from __future__ import annotations

from patch_studio.core.node_types import NodeRegistry
from patch_studio.nodes.animation import register_animation_nodes
from patch_studio.nodes.arithmetic import register_arithmetic_nodes
from patch_studio.nodes.object import register_object_nodes
from patch_studio.nodes.timing import register_timing_nodes


def register_all_nodes(registry: NodeRegistry | None = None) -> NodeRegistry:
    """Register all built-in nodes, by default with the shared registry."""
    if registry is None:
        registry = NodeRegistry.instance()
    register_timing_nodes(registry)
    register_arithmetic_nodes(registry)
    register_animation_nodes(registry)
    register_object_nodes(registry)
    return registry


__all__ = [
    "register_all_nodes",
]
