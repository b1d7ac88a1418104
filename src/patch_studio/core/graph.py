"""
Interaction Graph - Nodes, connections and per-frame evaluation.

This module defines:
- Connection: A wire from one node's output socket to another node's input
- GraphChange / GraphEvent: Change notifications sent to listeners
- LoadReport / PassReport: Results of deserialize() and evaluate()
- InteractionGraph: The graph itself
"""

from __future__ import annotations

import heapq
import logging
import threading
import time
import traceback
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from patch_studio.core.bridge import HostBridge, NullBridge
from patch_studio.core.data_types import coerce_value
from patch_studio.core.errors import (
    GraphError,
    GraphInvariantError,
    InvalidConnectionError,
    UnknownNodeTypeError,
)
from patch_studio.core.node import (
    BoundObjectNode,
    FrameContext,
    NodeError,
    NodeId,
    NodeState,
    PatchNode,
)
from patch_studio.core.node_types import NodeRegistry


logger = logging.getLogger(__name__)


GRAPH_FORMAT_VERSION = 1

DEFAULT_MAX_DELTA_TIME = 0.25

# Grid used to place nodes created without a position
GRID_ORIGIN = (100.0, 100.0)
GRID_SPACING = (160.0, 140.0)
GRID_COLUMNS = 5


@dataclass(frozen=True)
class Connection:
    """
    A connection (wire) between two nodes.

    The id is derived from the endpoints, so two connections between the
    same sockets are the same connection.
    """
    from_node_id: str
    from_output_index: int
    to_node_id: str
    to_input_index: int

    @property
    def id(self) -> str:
        return (
            f"{self.from_node_id}-{self.from_output_index}-"
            f"{self.to_node_id}-{self.to_input_index}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fromNodeId": self.from_node_id,
            "fromOutputIndex": self.from_output_index,
            "toNodeId": self.to_node_id,
            "toInputIndex": self.to_input_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Connection:
        """
        Create a connection from serialized data.

        Raises:
            KeyError: If a field is missing
            ValueError: If an index is not an integer
        """
        from_index = data["fromOutputIndex"]
        to_index = data["toInputIndex"]
        for index in (from_index, to_index):
            if isinstance(index, bool) or not isinstance(index, int):
                raise ValueError(f"Socket index must be an integer, got {index!r}")
        return cls(
            from_node_id=str(data["fromNodeId"]),
            from_output_index=from_index,
            to_node_id=str(data["toNodeId"]),
            to_input_index=to_index,
        )


class GraphChange(Enum):
    """Kinds of change reported to graph listeners."""
    NODE_ADDED = "node_added"
    NODE_REMOVED = "node_removed"
    NODE_MOVED = "node_moved"
    INPUT_CHANGED = "input_changed"
    CONNECTION_ADDED = "connection_added"
    CONNECTION_REMOVED = "connection_removed"
    LOADED = "loaded"
    CLEARED = "cleared"
    EVALUATED = "evaluated"     # A pass changed at least one bound object


@dataclass
class GraphEvent:
    """A single change notification."""
    change: GraphChange
    node_id: str | None = None
    connection: Connection | None = None


GraphListener = Callable[[GraphEvent], None]


@dataclass
class LoadReport:
    """What deserialize() could not restore."""
    nodes_loaded: int = 0
    connections_loaded: int = 0
    skipped_nodes: list[str] = field(default_factory=list)
    dropped_connections: list[str] = field(default_factory=list)
    unbound: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.skipped_nodes or self.dropped_connections or self.unbound)

    def summary(self) -> str:
        return (
            f"loaded {self.nodes_loaded} nodes and {self.connections_loaded} connections; "
            f"skipped {len(self.skipped_nodes)} nodes, "
            f"dropped {len(self.dropped_connections)} connections, "
            f"{len(self.unbound)} nodes without their object"
        )


@dataclass
class PassReport:
    """Result of one evaluate() pass."""
    frame: int
    delta_time: float
    processed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    changed_objects: set[str] = field(default_factory=set)


class InteractionGraph:
    """
    The interaction graph of a scene.

    Owns nodes (insertion ordered) and connections. Every connection
    endpoint refers to a present node, every input has at most one
    producer and the connection set stays acyclic.

    The graph is single-writer: it belongs to the thread that created it.
    Other threads hand work over with ``submit()``; it runs at the start
    of the next ``evaluate()``.
    """

    def __init__(
        self,
        registry: NodeRegistry | None = None,
        bridge: HostBridge | None = None,
        *,
        max_delta_time: float = DEFAULT_MAX_DELTA_TIME,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.registry = registry if registry is not None else NodeRegistry.instance()
        self.bridge: HostBridge = bridge or NullBridge()
        self.max_delta_time = max_delta_time
        self._clock = clock

        self._nodes: dict[NodeId, PatchNode] = {}
        self._connections: dict[str, Connection] = {}
        self._retired: set[str] = set()
        self._listeners: list[GraphListener] = []

        # Cached between structural changes
        self._order: list[NodeId] | None = None
        self._incoming: dict[str, list[Connection]] | None = None

        self._owner = threading.get_ident()
        self._pending: deque[Callable[[InteractionGraph], Any]] = deque()

        self._frame = 0
        self._time = 0.0
        self._last_tick: float | None = None
        self._reported_errors: dict[str, tuple[str, str]] = {}

    # --- Node operations ---

    @property
    def nodes(self) -> list[PatchNode]:
        """All nodes in insertion order (copy)."""
        return list(self._nodes.values())

    def get_node(self, node_id: str) -> PatchNode | None:
        """Get a node by ID."""
        return self._nodes.get(node_id)

    def add_node(self, node: PatchNode) -> PatchNode:
        """
        Add a constructed node to the graph.

        Nodes built without a bridge get the graph's bridge.

        Raises:
            GraphInvariantError: On a duplicate or retired id, or if the
                node already belongs to a graph.
        """
        self._check_owner()
        self._check_addable(node)
        self._attach(node)
        logger.debug("Added %s node %s", node.type_name, node.id)
        self._emit(GraphChange.NODE_ADDED, node_id=node.id)
        return node

    def create_node(
        self,
        type_name: str,
        x: float | None = None,
        y: float | None = None,
        **kwargs: Any,
    ) -> PatchNode:
        """
        Create a node through the registry and add it.

        Without a position the node goes to the next free grid cell.

        Raises:
            UnknownNodeTypeError: If the type is not registered.
        """
        self._check_owner()
        if x is None or y is None:
            x, y = self.find_available_position()
        kwargs.setdefault("bridge", self.bridge)
        node = self.registry.create(type_name, x, y, **kwargs)
        return self.add_node(node)

    def remove_node(self, node_id: str) -> PatchNode | None:
        """
        Remove a node and every connection touching it.

        Returns the removed node, or None if it was not in the graph.
        """
        self._check_owner()
        node = self._nodes.get(node_id)
        if node is None:
            return None

        node.detach()
        for conn in list(self._connections.values()):
            if conn.from_node_id == node_id or conn.to_node_id == node_id:
                self._remove_connection(conn)

        del self._nodes[node.id]
        self._invalidate()
        node.destroy()
        self._retired.add(node.id)
        self._reported_errors.pop(node.id, None)
        logger.debug("Removed %s node %s", node.type_name, node.id)
        self._emit(GraphChange.NODE_REMOVED, node_id=node.id)
        return node

    def move_node(self, node_id: str, x: float, y: float) -> None:
        """Move a node on the canvas."""
        self._check_owner()
        node = self._require_node(node_id)
        node.position.x = float(x)
        node.position.y = float(y)
        self._emit(GraphChange.NODE_MOVED, node_id=node.id)

    def set_input_value(self, node_id: str, name: str, value: Any) -> None:
        """
        Edit the value of an input, as the user would.

        Raises:
            KeyError: If the node has no such input.
        """
        self._check_owner()
        node = self._require_node(node_id)
        node.set_input_value(name, value)
        if self.get_input_connection(node_id, node.input_index(name)) is not None:
            logger.debug("Input %s.%s is connected; edit is overwritten next pass", node_id, name)
        self._emit(GraphChange.INPUT_CHANGED, node_id=node.id)

    def sync_object(self, object_id: str) -> list[str]:
        """
        Pick up an edit made to a scene object outside the graph.

        Every node bound to the object copies the new values into its
        unconnected inputs, so the next pass does not write the old ones
        back. Connected inputs stay driven by their producers.

        Returns the ids of the nodes that were updated.
        """
        self._check_owner()
        synced = []
        for node in self._nodes.values():
            if not isinstance(node, BoundObjectNode) or node.object_id != object_id:
                continue
            connected = [
                conn.to_input_index for conn in self._connections.values()
                if conn.to_node_id == node.id
            ]
            if node.sync_from_object(skip=connected):
                synced.append(node.id)
        for node_id in synced:
            self._emit(GraphChange.INPUT_CHANGED, node_id=node_id)
        return synced

    def find_available_position(self) -> tuple[float, float]:
        """First grid cell not already taken by a node."""
        taken = [(n.position.x, n.position.y) for n in self._nodes.values()]
        index = 0
        while True:
            row, col = divmod(index, GRID_COLUMNS)
            x = GRID_ORIGIN[0] + col * GRID_SPACING[0]
            y = GRID_ORIGIN[1] + row * GRID_SPACING[1]
            if not any(abs(x - tx) < GRID_SPACING[0] / 2 and abs(y - ty) < GRID_SPACING[1] / 2
                       for tx, ty in taken):
                return x, y
            index += 1

    # --- Connection operations ---

    @property
    def connections(self) -> list[Connection]:
        """All connections (copy)."""
        return list(self._connections.values())

    def add_connection(
        self,
        from_node_id: str,
        from_output_index: int,
        to_node_id: str,
        to_input_index: int,
    ) -> Connection:
        """
        Connect an output socket to an input socket.

        An existing connection on the input is replaced. Connecting the
        same sockets twice returns the existing connection unchanged.

        Raises:
            InvalidConnectionError: If an endpoint does not exist, the
                types are incompatible or the wire would close a cycle.
        """
        self._check_owner()
        conn = Connection(from_node_id, from_output_index, to_node_id, to_input_index)
        self._validate_connection(conn)

        existing = self.get_input_connection(to_node_id, to_input_index)
        if existing == conn:
            return existing
        if existing is not None:
            self._remove_connection(existing)

        self._connections[conn.id] = conn
        self._invalidate()
        self._pull(conn)
        logger.debug("Connected %s", conn.id)
        self._emit(GraphChange.CONNECTION_ADDED, node_id=to_node_id, connection=conn)
        return conn

    def remove_connection(self, connection_id: str) -> Connection | None:
        """Remove a connection by ID. Unknown ids are ignored."""
        self._check_owner()
        conn = self._connections.get(connection_id)
        if conn is None:
            return None
        self._remove_connection(conn)
        return conn

    def get_input_connection(self, node_id: str, input_index: int) -> Connection | None:
        """Get the connection feeding a specific input."""
        for conn in self._connections.values():
            if conn.to_node_id == node_id and conn.to_input_index == input_index:
                return conn
        return None

    def get_output_connections(
        self, node_id: str, output_index: int | None = None
    ) -> list[Connection]:
        """Get all connections leaving a node, or one of its outputs."""
        return [
            conn for conn in self._connections.values()
            if conn.from_node_id == node_id
            and (output_index is None or conn.from_output_index == output_index)
        ]

    def _validate_connection(self, conn: Connection) -> None:
        source = self._nodes.get(conn.from_node_id)
        target = self._nodes.get(conn.to_node_id)
        if source is None:
            raise InvalidConnectionError(f"no source node {conn.from_node_id}")
        if target is None:
            raise InvalidConnectionError(f"no target node {conn.to_node_id}")
        if not 0 <= conn.from_output_index < len(source.outputs):
            raise InvalidConnectionError(
                f"{source.type_name} has no output #{conn.from_output_index}"
            )
        if not 0 <= conn.to_input_index < len(target.inputs):
            raise InvalidConnectionError(
                f"{target.type_name} has no input #{conn.to_input_index}"
            )

        output = source.outputs[conn.from_output_index]
        socket = target.inputs[conn.to_input_index]
        if not output.data_type.is_compatible_with(socket.data_type):
            raise InvalidConnectionError(
                f"type mismatch: {output.data_type.name} output '{output.name}' "
                f"cannot feed {socket.data_type.name} input '{socket.name}'"
            )
        if self._would_create_cycle(conn):
            raise InvalidConnectionError(
                f"connecting {source.type_name} to {target.type_name} would create a cycle"
            )

    def _would_create_cycle(self, connection: Connection) -> bool:
        """Check if adding this connection would create a cycle."""
        if connection.from_node_id == connection.to_node_id:
            return True

        # If the source is reachable from the target, source->target closes a loop
        visited: set[str] = set()
        to_visit = [connection.to_node_id]

        while to_visit:
            current = to_visit.pop()
            if current in visited:
                continue
            visited.add(current)

            for conn in self._connections.values():
                if conn.from_node_id == current:
                    if conn.to_node_id == connection.from_node_id:
                        return True
                    to_visit.append(conn.to_node_id)

        return False

    def _remove_connection(self, conn: Connection) -> None:
        del self._connections[conn.id]
        self._invalidate()
        target = self._nodes.get(conn.to_node_id)
        if target is not None and target.state is NodeState.ATTACHED:
            target.on_connection_removed(conn.to_input_index)
        logger.debug("Disconnected %s", conn.id)
        self._emit(GraphChange.CONNECTION_REMOVED, node_id=conn.to_node_id, connection=conn)

    # --- Graph analysis ---

    def get_execution_order(self) -> list[NodeId]:
        """
        Get nodes in topological order for evaluation.

        Kahn's algorithm; when several nodes are ready the one added
        first goes first. The result is cached until the next
        structural change.
        """
        if self._order is not None:
            return list(self._order)

        rank = {node_id: i for i, node_id in enumerate(self._nodes)}
        in_degree = {node_id: 0 for node_id in self._nodes}
        downstream: dict[str, list[str]] = {node_id: [] for node_id in self._nodes}
        incoming: dict[str, list[Connection]] = {node_id: [] for node_id in self._nodes}
        for conn in self._connections.values():
            in_degree[conn.to_node_id] += 1
            downstream[conn.from_node_id].append(conn.to_node_id)
            incoming[conn.to_node_id].append(conn)

        ready = [(rank[nid], nid) for nid, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        order: list[NodeId] = []
        while ready:
            _, node_id = heapq.heappop(ready)
            order.append(node_id)
            for nid in downstream[node_id]:
                in_degree[nid] -= 1
                if in_degree[nid] == 0:
                    heapq.heappush(ready, (rank[nid], nid))

        if len(order) != len(self._nodes):
            raise GraphInvariantError("Graph contains a cycle")

        self._order = order
        self._incoming = incoming
        return list(order)

    def get_upstream_nodes(self, node_id: str) -> set[str]:
        """Get all nodes that this node depends on (directly or indirectly)."""
        upstream: set[str] = set()
        to_visit = [node_id]

        while to_visit:
            current = to_visit.pop()
            for conn in self._connections.values():
                if conn.to_node_id == current and conn.from_node_id not in upstream:
                    upstream.add(conn.from_node_id)
                    to_visit.append(conn.from_node_id)

        return upstream

    def get_downstream_nodes(self, node_id: str) -> set[str]:
        """Get all nodes that depend on this node (directly or indirectly)."""
        downstream: set[str] = set()
        to_visit = [node_id]

        while to_visit:
            current = to_visit.pop()
            for conn in self._connections.values():
                if conn.from_node_id == current and conn.to_node_id not in downstream:
                    downstream.add(conn.to_node_id)
                    to_visit.append(conn.to_node_id)

        return downstream

    def _invalidate(self) -> None:
        self._order = None
        self._incoming = None

    # --- Evaluation ---

    def submit(self, fn: Callable[[InteractionGraph], Any]) -> None:
        """
        Queue a mutation to run on the owner thread.

        Safe to call from any thread. ``fn`` receives the graph and runs
        at the start of the next evaluate().
        """
        self._pending.append(fn)

    def evaluate(self, delta_time: float | None = None) -> PassReport:
        """
        Run one evaluation pass.

        Queued mutations run first. Every node is then processed once in
        topological order with its connected inputs refreshed from the
        upstream outputs. A node that raises keeps its previous outputs
        and gets ``error`` set; the rest of the pass continues.

        Args:
            delta_time: Seconds since the previous pass. Measured from the
                graph clock when omitted. Clamped to [0, max_delta_time].
        """
        self._check_owner()
        self._drain_pending()

        now = self._clock()
        if delta_time is None:
            delta_time = 0.0 if self._last_tick is None else now - self._last_tick
        self._last_tick = now
        delta_time = min(max(float(delta_time), 0.0), self.max_delta_time)

        self._frame += 1
        self._time += delta_time
        context = FrameContext(frame=self._frame, delta_time=delta_time, time=self._time)
        report = PassReport(frame=self._frame, delta_time=delta_time)

        order = self.get_execution_order()
        incoming = self._incoming or {}
        for node_id in order:
            node = self._nodes[node_id]
            for conn in incoming.get(node_id, ()):
                self._pull(conn)
            try:
                node.process(context)
            except Exception as e:
                self._record_failure(node, e)
                report.failed.append(node_id)
                continue
            if node.error is not None:
                logger.info("%s node %s recovered", node.type_name, node_id)
                node.error = None
                self._reported_errors.pop(node_id, None)
            report.processed.append(node_id)

        report.changed_objects = set(context.changed_objects)
        if report.changed_objects:
            self._emit(GraphChange.EVALUATED)
        return report

    def _pull(self, conn: Connection) -> None:
        """Copy an upstream output value onto the connected input."""
        source = self._nodes[conn.from_node_id]
        target = self._nodes[conn.to_node_id]
        output = source.outputs[conn.from_output_index]
        if output.value is None:
            return
        socket = target.inputs[conn.to_input_index]
        socket.value = coerce_value(output.value, output.data_type, socket.data_type)

    def _record_failure(self, node: PatchNode, error: Exception) -> None:
        message = str(error) or type(error).__name__
        node.error = NodeError(message=message, details=traceback.format_exc())
        key = (type(error).__name__, message)
        if self._reported_errors.get(node.id) != key:
            self._reported_errors[node.id] = key
            logger.warning("%s node %s failed: %s", node.type_name, node.id, message)
        else:
            logger.debug("%s node %s still failing: %s", node.type_name, node.id, message)

    def _drain_pending(self) -> None:
        while self._pending:
            fn = self._pending.popleft()
            try:
                fn(self)
            except GraphError as e:
                logger.warning("Queued graph change failed: %s", e)

    # --- Serialization ---

    def serialize(self) -> dict[str, Any]:
        """Convert the graph to a JSON-compatible dictionary."""
        return {
            "nodes": [node.serialize() for node in self._nodes.values()],
            "connections": [conn.to_dict() for conn in self._connections.values()],
            "metadata": {"version": GRAPH_FORMAT_VERSION},
        }

    def deserialize(self, data: dict[str, Any]) -> LoadReport:
        """
        Replace the graph contents with serialized data.

        Loading is tolerant: unknown node types are skipped, connections
        that are dangling or invalid are dropped, and nodes whose object
        is gone keep the object id so they rebind if it comes back.
        """
        self._check_owner()
        self._reset()
        report = LoadReport()

        nodes_data = data.get("nodes") or []
        if isinstance(nodes_data, dict):
            # Older saves keyed nodes by id
            nodes_data = list(nodes_data.values())

        for item in nodes_data:
            node = self._load_node(item, report)
            if node is None:
                continue
            self._attach(node)
            report.nodes_loaded += 1
            if isinstance(node, BoundObjectNode) and node.object_id and node.bound_object is None:
                logger.info("%s node %s: object %s not found", node.type_name, node.id, node.object_id)
                report.unbound.append(node.id)

        for item in data.get("connections") or []:
            try:
                conn = Connection.from_dict(item)
                self._validate_connection(conn)
                if self.get_input_connection(conn.to_node_id, conn.to_input_index) is not None:
                    raise InvalidConnectionError("input already connected")
            except (KeyError, TypeError, ValueError, InvalidConnectionError) as e:
                logger.info("Dropping connection %r: %s", item, e)
                report.dropped_connections.append(repr(item))
                continue
            self._connections[conn.id] = conn
            report.connections_loaded += 1
        self._invalidate()

        if report.ok:
            logger.info("Graph %s", report.summary())
        else:
            logger.warning("Graph %s", report.summary())
        self._emit(GraphChange.LOADED)
        return report

    def _load_node(self, item: Any, report: LoadReport) -> PatchNode | None:
        if not isinstance(item, dict):
            logger.info("Skipping malformed node entry %r", item)
            report.skipped_nodes.append(repr(item))
            return None

        item = self.registry.upgrade(item)
        node_id = item.get("id")
        type_name = item.get("type")
        label = f"{node_id} ({type_name})"
        if not node_id or node_id in self._nodes:
            logger.info("Skipping node %s: missing or duplicate id", label)
            report.skipped_nodes.append(label)
            return None

        try:
            node = self.registry.create(
                type_name, item.get("x", 0.0), item.get("y", 0.0),
                node_id=str(node_id), bridge=self.bridge,
            )
            node.deserialize(item)
        except UnknownNodeTypeError:
            logger.info("Skipping node %s: unknown type", label)
            report.skipped_nodes.append(label)
            return None
        except Exception as e:
            logger.info("Skipping node %s: %s", label, e)
            report.skipped_nodes.append(label)
            return None
        return node

    # --- Listeners ---

    def add_listener(self, listener: GraphListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: GraphListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(
        self,
        change: GraphChange,
        node_id: str | None = None,
        connection: Connection | None = None,
    ) -> None:
        event = GraphEvent(change, node_id, connection)
        for listener in list(self._listeners):
            listener(event)
        self.bridge.notify_graph_changed()

    # --- Utility ---

    def clear(self) -> None:
        """Remove all nodes and connections and start a new session."""
        self._check_owner()
        self._reset()
        self._emit(GraphChange.CLEARED)

    def _reset(self) -> None:
        for node in list(self._nodes.values()):
            node.detach()
            node.destroy()
        self._nodes.clear()
        self._connections.clear()
        self._retired.clear()
        self._reported_errors.clear()
        self._invalidate()
        self._frame = 0
        self._time = 0.0
        self._last_tick = None

    def _attach(self, node: PatchNode) -> None:
        if isinstance(node.bridge, NullBridge):
            node.bridge = self.bridge
        node.attach()
        self._nodes[node.id] = node
        self._invalidate()

    def _check_addable(self, node: PatchNode) -> None:
        if node.state is not NodeState.UNATTACHED:
            raise GraphInvariantError(f"Node {node.id} is {node.state.name}, expected UNATTACHED")
        if node.id in self._nodes:
            raise GraphInvariantError(f"Duplicate node id {node.id}")
        if node.id in self._retired:
            raise GraphInvariantError(f"Node id {node.id} was removed and cannot be reused")

    def _require_node(self, node_id: str) -> PatchNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise GraphInvariantError(f"No node {node_id}")
        return node

    def _check_owner(self) -> None:
        if threading.get_ident() != self._owner:
            raise GraphInvariantError(
                "Graph mutated from a foreign thread; use submit() instead"
            )

    @property
    def frame(self) -> int:
        """Number of passes run since the graph was created or loaded."""
        return self._frame

    def __len__(self) -> int:
        """Return the number of nodes."""
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        """Check if a node exists in the graph."""
        return node_id in self._nodes
