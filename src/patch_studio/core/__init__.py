"""
Core module - Data structures, evaluation engine, and persistence.

This module provides the fundamental building blocks for Patch Studio:
- Graph: Interaction graph, connections and evaluation
- Node: Node base classes and sockets
- Data Types: Socket types and vector values
- Node Types: Type registry
- Bridge: Host editor protocol
- Project: Settings and project files
"""

from patch_studio.core.bridge import (
    HostBridge,
    NullBridge,
)

from patch_studio.core.data_types import (
    DataType,
    Vector3,
    coerce_value,
    decode_value,
    encode_value,
)

from patch_studio.core.errors import (
    GraphError,
    GraphInvariantError,
    InvalidConnectionError,
    UnknownNodeTypeError,
)

from patch_studio.core.graph import (
    Connection,
    GraphChange,
    GraphEvent,
    InteractionGraph,
    LoadReport,
    PassReport,
)

from patch_studio.core.node import (
    BoundObjectNode,
    FrameContext,
    InputSocket,
    NodeError,
    NodeId,
    NodeState,
    OutputSocket,
    PatchNode,
    Point2D,
    new_node_id,
)

from patch_studio.core.node_types import (
    NodeCategory,
    NodeRegistry,
    NodeType,
)

from patch_studio.core.project import (
    EditorSettings,
    load_project,
    load_settings,
    save_project,
    save_settings,
)


__all__ = [
    # bridge.py
    "HostBridge",
    "NullBridge",
    # data_types.py
    "DataType",
    "Vector3",
    "coerce_value",
    "decode_value",
    "encode_value",
    # errors.py
    "GraphError",
    "GraphInvariantError",
    "InvalidConnectionError",
    "UnknownNodeTypeError",
    # graph.py
    "Connection",
    "GraphChange",
    "GraphEvent",
    "InteractionGraph",
    "LoadReport",
    "PassReport",
    # node.py
    "BoundObjectNode",
    "FrameContext",
    "InputSocket",
    "NodeError",
    "NodeId",
    "NodeState",
    "OutputSocket",
    "PatchNode",
    "Point2D",
    "new_node_id",
    # node_types.py
    "NodeCategory",
    "NodeRegistry",
    "NodeType",
    # project.py
    "EditorSettings",
    "load_project",
    "load_settings",
    "save_project",
    "save_settings",
]
