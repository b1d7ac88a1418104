"""
Object Nodes package.

Nodes that read and write properties of scene objects.
"""

from __future__ import annotations

from patch_studio.core.node_types import NodeRegistry
from patch_studio.nodes.object.properties import (
    ObjectPropertyNode,
    OpacityNode,
    PositionNode,
    RotationNode,
    ScaleNode,
    SceneObjectNode,
    TransformPropertyNode,
    VectorNode,
    upgrade_object_property,
)


def register_object_nodes(registry: NodeRegistry) -> None:
    """Register object property nodes with the given registry."""
    for node_class in (PositionNode, RotationNode, ScaleNode, OpacityNode, SceneObjectNode, VectorNode):
        registry.register_class(node_class)
    registry.register_upgrade("ObjectProperty", upgrade_object_property)


__all__ = [
    "ObjectPropertyNode",
    "OpacityNode",
    "PositionNode",
    "RotationNode",
    "ScaleNode",
    "SceneObjectNode",
    "TransformPropertyNode",
    "VectorNode",
    "register_object_nodes",
    "upgrade_object_property",
]
