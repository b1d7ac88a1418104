"""
Node Type System - Definitions and registry for node types.

This module defines how node types are made available:
- NodeCategory: Groups shown in the node library menu
- NodeType: A registered type name bound to a constructor
- NodeRegistry: Registry of available node types, used both for
  interactive creation and for deserialization
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from patch_studio.core.errors import UnknownNodeTypeError

if TYPE_CHECKING:
    from patch_studio.core.node import PatchNode


class NodeCategory(Enum):
    """Categories for organizing nodes in the library."""
    TIMING = "timing"
    MATH = "math"
    ANIMATION = "animation"
    OBJECT = "object"
    CUSTOM = "custom"


CATEGORY_COLORS: dict[NodeCategory, str] = {
    NodeCategory.TIMING: "#2b6cb0",
    NodeCategory.MATH: "#4a5568",
    NodeCategory.ANIMATION: "#805ad5",
    NodeCategory.OBJECT: "#2f855a",
    NodeCategory.CUSTOM: "#718096",
}


NodeConstructor = Callable[..., "PatchNode"]

# Rewrites a saved node entry of an old type into the current format
NodeUpgrade = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass
class NodeType:
    """
    A registered node type.

    Attributes:
        type_name: Name stored in saved graphs, e.g. "Spin"
        constructor: Callable ``(x, y, **kwargs) -> PatchNode``
        category: Library group
        description: Tooltip text
    """
    type_name: str
    constructor: NodeConstructor
    category: NodeCategory = NodeCategory.CUSTOM
    description: str = ""

    @property
    def color(self) -> str:
        """Header color for the canvas."""
        return CATEGORY_COLORS.get(self.category, CATEGORY_COLORS[NodeCategory.CUSTOM])

    @property
    def needs_object(self) -> bool:
        """True if nodes of this type bind to a scene object."""
        return self.category == NodeCategory.OBJECT


class NodeRegistry:
    """
    Registry of available node types.

    Node packages register their classes here and the UI uses the
    registry to populate the node library. A shared instance is
    available through ``instance()``; graphs may also be handed their
    own registry (tests do this to stay isolated).
    """

    _instance: NodeRegistry | None = None

    @classmethod
    def instance(cls) -> NodeRegistry:
        """Get the shared instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self):
        self._types: dict[str, NodeType] = {}
        self._upgrades: dict[str, NodeUpgrade] = {}

    def register(
        self,
        type_name: str,
        constructor: NodeConstructor,
        category: NodeCategory | None = None,
        description: str | None = None,
    ) -> NodeType:
        """
        Register a node constructor under ``type_name``.

        Registering a name again replaces the previous constructor.
        Category and description default to the constructor's class
        attributes when it is a PatchNode subclass.
        """
        if category is None:
            category = getattr(constructor, "category", NodeCategory.CUSTOM)
        if description is None:
            description = getattr(constructor, "description", "")
        node_type = NodeType(type_name, constructor, category, description)
        self._types[type_name] = node_type
        return node_type

    def register_class(self, node_class: type[PatchNode]) -> NodeType:
        """Register a PatchNode subclass under its ``type_name``."""
        return self.register(node_class.type_name, node_class)

    def unregister(self, type_name: str) -> NodeType | None:
        """Unregister a node type."""
        return self._types.pop(type_name, None)

    def create(self, type_name: str, x: float = 0.0, y: float = 0.0, **kwargs: Any) -> PatchNode:
        """
        Construct a new node of ``type_name``.

        Raises:
            UnknownNodeTypeError: If no constructor is registered under the name.
        """
        node_type = self._types.get(type_name)
        if node_type is None:
            raise UnknownNodeTypeError(type_name)
        return node_type.constructor(x, y, **kwargs)

    def register_upgrade(self, old_type: str, upgrade: NodeUpgrade) -> None:
        """Map saved entries of a retired type name onto a current type."""
        self._upgrades[old_type] = upgrade

    def upgrade(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Bring a saved node entry up to date.

        Entries of a current type are returned unchanged.
        """
        upgrade = self._upgrades.get(data.get("type"))
        if upgrade is None or data.get("type") in self._types:
            return data
        return upgrade(data)

    def get(self, type_name: str) -> NodeType | None:
        """Get a node type by name."""
        return self._types.get(type_name)

    def types(self) -> list[str]:
        """All registered type names, in registration order."""
        return list(self._types)

    def get_all(self) -> list[NodeType]:
        """Get all registered node types."""
        return list(self._types.values())

    def by_category(self, category: NodeCategory) -> list[NodeType]:
        """Get all node types in a category."""
        return [t for t in self._types.values() if t.category == category]

    def search(self, query: str) -> list[NodeType]:
        """Search node types by name or description."""
        query = query.lower()
        return [
            t for t in self._types.values()
            if query in t.type_name.lower() or query in t.description.lower()
        ]

    def clear(self) -> None:
        """Remove all registered types (for testing)."""
        self._types.clear()
        self._upgrades.clear()

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._types
