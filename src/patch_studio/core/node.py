"""
Patch Node - Base class for every node in the interaction graph.

This module defines:
- InputSocket / OutputSocket: Typed, named slots on a node
- NodeState: Lifecycle of a node relative to its graph
- FrameContext: Per-pass timing information handed to process()
- PatchNode: Base class implementing the socket contract and serialization
- BoundObjectNode: Base class for nodes that drive a scene object property
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, ClassVar, Collection, NewType
from uuid import uuid4

from patch_studio.core.bridge import HostBridge, NullBridge
from patch_studio.core.data_types import DataType, Vector3, decode_value, encode_value
from patch_studio.core.node_types import NodeCategory


logger = logging.getLogger(__name__)


NodeId = NewType("NodeId", str)


def new_node_id() -> NodeId:
    """Generate a new unique node ID."""
    return NodeId(f"node_{uuid4().hex}")


def _copy_value(value: Any) -> Any:
    if isinstance(value, Vector3):
        return value.copy()
    return value


@dataclass
class Point2D:
    """2D point for node positioning on the canvas."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Point2D) -> Point2D:
        return Point2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point2D) -> Point2D:
        return Point2D(self.x - other.x, self.y - other.y)


@dataclass
class InputSocket:
    """
    An input slot on a node.

    Attributes:
        name: Socket identifier, unique among the node's inputs
        data_type: Type of data accepted
        default_value: Value restored when the socket is disconnected
        value: Current value (upstream value while connected)
    """
    name: str
    data_type: DataType
    default_value: Any = None
    value: Any = None

    def reset(self) -> None:
        """Put the default value back on the socket."""
        self.value = _copy_value(self.default_value)


@dataclass
class OutputSocket:
    """An output slot on a node holding the last computed value."""
    name: str
    data_type: DataType
    value: Any = None


@dataclass
class NodeError:
    """Error information from a failed process() call."""
    message: str
    details: str | None = None
    recoverable: bool = True


class NodeState(Enum):
    """Lifecycle of a node. No transition skips a state."""
    UNATTACHED = auto()     # Constructed, not in a graph yet
    ATTACHED = auto()       # In a graph, processed every pass
    DETACHED = auto()       # Being removed; outputs frozen
    DESTROYED = auto()      # Gone from the graph, id retired


@dataclass
class FrameContext:
    """
    Timing information for one evaluation pass.

    Attributes:
        frame: Pass counter, starting at 1
        delta_time: Seconds since the previous pass (already clamped)
        time: Seconds accumulated over all passes
    """
    frame: int
    delta_time: float
    time: float
    changed_objects: set[str] = field(default_factory=set)

    def record_object_change(self, object_id: str) -> None:
        """Note that a bound object was modified during this pass."""
        self.changed_objects.add(object_id)


class PatchNode:
    """
    Base class for all interaction graph nodes.

    Subclasses declare their sockets in ``__init__`` and implement
    ``process()``. Values are pulled: the graph refreshes connected inputs
    before calling ``process()``, and ``set_output_value()`` only stores.
    """

    type_name: ClassVar[str] = "Node"
    category: ClassVar[NodeCategory] = NodeCategory.CUSTOM
    description: ClassVar[str] = ""

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        *,
        node_id: str | None = None,
        bridge: HostBridge | None = None,
    ):
        self._id = NodeId(node_id) if node_id else new_node_id()
        self.position = Point2D(float(x), float(y))
        self.inputs: list[InputSocket] = []
        self.outputs: list[OutputSocket] = []
        self.bridge: HostBridge = bridge or NullBridge()
        self.state = NodeState.UNATTACHED
        self.error: NodeError | None = None

    @property
    def id(self) -> NodeId:
        """Stable identifier; never changes after construction."""
        return self._id

    @property
    def display_name(self) -> str:
        """Title shown on the canvas."""
        return self.type_name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._id} at ({self.position.x:g}, {self.position.y:g})>"

    # --- Socket declaration ---

    def add_input(
        self,
        name: str,
        data_type: DataType = DataType.NUMBER,
        default_value: Any = 0.0,
    ) -> InputSocket:
        """Declare an input socket. Only valid during construction."""
        self._check_declaring()
        if any(s.name == name for s in self.inputs):
            raise ValueError(f"Duplicate input socket: {name}")
        socket = InputSocket(name, data_type, default_value, _copy_value(default_value))
        self.inputs.append(socket)
        return socket

    def add_output(self, name: str, data_type: DataType = DataType.NUMBER) -> OutputSocket:
        """Declare an output socket. Only valid during construction."""
        self._check_declaring()
        if any(s.name == name for s in self.outputs):
            raise ValueError(f"Duplicate output socket: {name}")
        socket = OutputSocket(name, data_type)
        self.outputs.append(socket)
        return socket

    def _check_declaring(self) -> None:
        if self.state is not NodeState.UNATTACHED:
            raise RuntimeError("Sockets can only be declared before the node joins a graph")

    # --- Socket access ---

    def get_input(self, name: str) -> InputSocket:
        for socket in self.inputs:
            if socket.name == name:
                return socket
        raise KeyError(f"{self.type_name} has no input '{name}'")

    def get_output(self, name: str) -> OutputSocket:
        for socket in self.outputs:
            if socket.name == name:
                return socket
        raise KeyError(f"{self.type_name} has no output '{name}'")

    def input_index(self, name: str) -> int:
        return self.inputs.index(self.get_input(name))

    def output_index(self, name: str) -> int:
        return self.outputs.index(self.get_output(name))

    def get_input_value(self, name: str) -> Any:
        """Value currently on an input (upstream value or current/default)."""
        return self.get_input(name).value

    def set_input_value(self, name: str, value: Any) -> None:
        """Set the current value of an input, as a user edit would."""
        self.get_input(name).value = _copy_value(value)

    def get_output_value(self, name: str) -> Any:
        return self.get_output(name).value

    def set_output_value(self, name: str, value: Any) -> None:
        """Store a value for downstream nodes. Ignored once detached."""
        if self.state in (NodeState.DETACHED, NodeState.DESTROYED):
            logger.debug("Ignoring output write on %s node %s", self.state.name, self._id)
            return
        self.get_output(name).value = value

    # --- Behaviour ---

    def process(self, context: FrameContext) -> None:
        """Compute outputs from inputs. Override in subclasses."""

    def on_connection_removed(self, input_index: int) -> None:
        """Called after the connection feeding ``input_index`` went away."""
        self.inputs[input_index].reset()

    def dispose(self) -> None:
        """Release resources held by the node. Override if needed."""

    # --- Lifecycle (driven by the graph) ---

    def attach(self) -> None:
        self._transition(NodeState.UNATTACHED, NodeState.ATTACHED)

    def detach(self) -> None:
        self._transition(NodeState.ATTACHED, NodeState.DETACHED)

    def destroy(self) -> None:
        self._transition(NodeState.DETACHED, NodeState.DESTROYED)
        self.dispose()

    def _transition(self, expected: NodeState, new_state: NodeState) -> None:
        if self.state is not expected:
            raise RuntimeError(
                f"Node {self._id} cannot go {self.state.name} -> {new_state.name}"
            )
        self.state = new_state

    # --- Serialization ---

    def serialize(self) -> dict[str, Any]:
        """Convert node state to a JSON-compatible dictionary."""
        return {
            "id": self._id,
            "type": self.type_name,
            "x": self.position.x,
            "y": self.position.y,
            "inputs": {s.name: encode_value(s.value) for s in self.inputs},
        }

    def deserialize(self, data: dict[str, Any]) -> None:
        """
        Restore position and input values from serialized data.

        The id is not touched; it is passed to the constructor instead.
        Unknown input names are ignored, undecodable values keep the default.
        """
        self.position = Point2D(float(data.get("x", 0.0)), float(data.get("y", 0.0)))
        for name, raw in (data.get("inputs") or {}).items():
            try:
                socket = self.get_input(name)
            except KeyError:
                logger.info("%s %s: ignoring unknown input '%s'", self.type_name, self._id, name)
                continue
            try:
                socket.value = decode_value(raw, socket.data_type)
            except (TypeError, ValueError, KeyError) as e:
                logger.info(
                    "%s %s: bad value for input '%s' (%s), keeping default",
                    self.type_name, self._id, name, e,
                )


class BoundObjectNode(PatchNode):
    """
    A node bound to a scene object by its stable id.

    The object is resolved through the bridge every time it is needed,
    so a deleted object simply resolves to None and a recreated one
    rebinds without any bookkeeping.
    """

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        *,
        object_id: str | None = None,
        node_id: str | None = None,
        bridge: HostBridge | None = None,
    ):
        super().__init__(x, y, node_id=node_id, bridge=bridge)
        self.object_id = object_id

    @property
    def bound_object(self) -> Any | None:
        if not self.object_id:
            return None
        return self.bridge.get_object_by_stable_id(self.object_id)

    @property
    def object_name(self) -> str:
        obj = self.bound_object
        return getattr(obj, "name", None) or "Object"

    @property
    def display_name(self) -> str:
        return f"{self.object_name} {self.type_name}"

    def bind(self, object_id: str | None) -> None:
        """Bind to another object and pick up its current values."""
        self.object_id = object_id
        self.sync_from_object()

    def sync_from_object(self, skip: Collection[int] = ()) -> bool:
        """
        Copy the live object's values into the input sockets.

        Inputs whose index is in ``skip`` keep their current value; the
        graph passes the connected ones. Returns False when no object is
        bound or it cannot be resolved.
        """
        obj = self.bound_object
        if obj is None:
            return False
        kept = {index: self.inputs[index].value for index in skip}
        self.read_object(obj)
        for index, value in kept.items():
            self.inputs[index].value = value
        return True

    def adopt_values_as_defaults(self) -> None:
        """Make the current input values the ones restored on disconnect."""
        for socket in self.inputs:
            socket.default_value = _copy_value(socket.value)

    def read_object(self, obj: Any) -> None:
        """Copy property values from ``obj`` into inputs. Override."""

    def on_connection_removed(self, input_index: int) -> None:
        # Keep the object where the animation left it
        if not self.sync_from_object():
            super().on_connection_removed(input_index)

    def serialize(self) -> dict[str, Any]:
        data = super().serialize()
        data["objectId"] = self.object_id
        data["objectName"] = self.object_name
        return data

    def deserialize(self, data: dict[str, Any]) -> None:
        super().deserialize(data)
        self.object_id = data.get("objectId")
        # The object may have changed since the save; trust the live value
        if self.sync_from_object():
            self.adopt_values_as_defaults()
