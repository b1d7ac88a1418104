"""
Arithmetic Nodes package.

Pure math on numbers.
"""

from __future__ import annotations

from patch_studio.core.node_types import NodeRegistry
from patch_studio.nodes.arithmetic.math_nodes import (
    AddNode,
    BinaryMathNode,
    DivideNode,
    MultiplyNode,
    SubtractNode,
)


def register_arithmetic_nodes(registry: NodeRegistry) -> None:
    """Register math nodes with the given registry."""
    for node_class in (AddNode, SubtractNode, MultiplyNode, DivideNode):
        registry.register_class(node_class)


__all__ = [
    "AddNode",
    "BinaryMathNode",
    "DivideNode",
    "MultiplyNode",
    "SubtractNode",
    "register_arithmetic_nodes",
]
