"""
Animation Nodes package.

Behaviours that produce periodic motion values.
"""

from __future__ import annotations

from patch_studio.core.node_types import NodeRegistry
from patch_studio.nodes.animation.behaviours import (
    BehaviourNode,
    FadeNode,
    FloatNode,
    PulseNode,
    SpinNode,
)


def register_animation_nodes(registry: NodeRegistry) -> None:
    """Register behaviour nodes with the given registry."""
    for node_class in (SpinNode, PulseNode, FloatNode, FadeNode):
        registry.register_class(node_class)


__all__ = [
    "BehaviourNode",
    "FadeNode",
    "FloatNode",
    "PulseNode",
    "SpinNode",
    "register_animation_nodes",
]
