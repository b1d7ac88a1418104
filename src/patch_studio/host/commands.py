"""
Graph Commands - Undo/redo for interaction graph edits.

Each command applies one edit and knows how to revert it. Removed node
ids are retired by the graph, so undoing a removal restores the node as a
new instance with a new id. The history keeps an ``IdMap`` from old ids to
their replacements, and commands resolve every id through it, which keeps
older commands on the stack valid.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from patch_studio.core.errors import GraphError, GraphInvariantError
from patch_studio.core.graph import Connection, InteractionGraph
from patch_studio.core.node import PatchNode


logger = logging.getLogger(__name__)


# Seconds within which a command may merge into the previous one
MERGE_WINDOW = 1.0


class IdMap:
    """Follows node ids through undo/redo re-creations."""

    def __init__(self):
        self._aliases: dict[str, str] = {}

    def alias(self, old_id: str, new_id: str) -> None:
        if old_id != new_id:
            self._aliases[old_id] = new_id

    def resolve(self, node_id: str) -> str:
        seen = set()
        while node_id in self._aliases and node_id not in seen:
            seen.add(node_id)
            node_id = self._aliases[node_id]
        return node_id

    def resolve_connection(self, conn: Connection) -> Connection:
        return Connection(
            self.resolve(conn.from_node_id),
            conn.from_output_index,
            self.resolve(conn.to_node_id),
            conn.to_input_index,
        )

    def clear(self) -> None:
        self._aliases.clear()


class GraphCommand(Protocol):
    """Protocol for undoable graph edits."""

    def apply(self, graph: InteractionGraph, ids: IdMap) -> None:
        ...

    def undo(self, graph: InteractionGraph, ids: IdMap) -> None:
        ...


def _restore_node(graph: InteractionGraph, snapshot: dict[str, Any]) -> PatchNode:
    """Recreate a node from its serialized form under a fresh id."""
    node = graph.registry.create(
        snapshot["type"], snapshot.get("x", 0.0), snapshot.get("y", 0.0), bridge=graph.bridge
    )
    node.deserialize(snapshot)
    return graph.add_node(node)


def _reconnect(graph: InteractionGraph, ids: IdMap, connections: list[Connection]) -> None:
    for conn in connections:
        conn = ids.resolve_connection(conn)
        try:
            graph.add_connection(
                conn.from_node_id, conn.from_output_index, conn.to_node_id, conn.to_input_index
            )
        except GraphError as e:
            logger.warning("Could not restore connection %s: %s", conn.id, e)


def _require(graph: InteractionGraph, node_id: str) -> PatchNode:
    node = graph.get_node(node_id)
    if node is None:
        raise GraphInvariantError(f"No node {node_id}")
    return node


@dataclass
class AddNodeCommand:
    """Create a node of a registered type."""

    type_name: str
    x: float
    y: float
    object_id: str | None = None
    node_id: str | None = field(default=None, init=False)
    _snapshot: dict[str, Any] | None = field(default=None, init=False, repr=False)

    def apply(self, graph: InteractionGraph, ids: IdMap) -> None:
        if self._snapshot is None:
            kwargs = {"object_id": self.object_id} if self.object_id else {}
            node = graph.create_node(self.type_name, self.x, self.y, **kwargs)
        else:
            node = _restore_node(graph, self._snapshot)
            ids.alias(self.node_id, node.id)
        self.node_id = node.id

    def undo(self, graph: InteractionGraph, ids: IdMap) -> None:
        if self.node_id is None:
            raise RuntimeError("Command has not been applied")
        node_id = ids.resolve(self.node_id)
        node = _require(graph, node_id)
        self.node_id = node_id
        self._snapshot = node.serialize()
        graph.remove_node(node_id)


@dataclass
class RemoveNodeCommand:
    """Remove a node while capturing its state and wiring for undo."""

    node_id: str
    _snapshot: dict[str, Any] | None = field(default=None, init=False, repr=False)
    _connections: list[Connection] = field(default_factory=list, init=False, repr=False)

    def apply(self, graph: InteractionGraph, ids: IdMap) -> None:
        self.node_id = ids.resolve(self.node_id)
        node = _require(graph, self.node_id)
        self._snapshot = node.serialize()
        self._connections = [
            conn for conn in graph.connections
            if self.node_id in (conn.from_node_id, conn.to_node_id)
        ]
        graph.remove_node(self.node_id)

    def undo(self, graph: InteractionGraph, ids: IdMap) -> None:
        if self._snapshot is None:
            raise RuntimeError("Command has not been applied")
        node = _restore_node(graph, self._snapshot)
        ids.alias(self.node_id, node.id)
        self.node_id = node.id
        _reconnect(graph, ids, self._connections)


@dataclass
class AddConnectionCommand:
    """Connect two sockets, remembering any connection it replaced."""

    from_node_id: str
    from_output_index: int
    to_node_id: str
    to_input_index: int
    changed: bool = field(default=True, init=False)
    _replaced: Connection | None = field(default=None, init=False, repr=False)

    def _resolved(self, ids: IdMap) -> Connection:
        return ids.resolve_connection(Connection(
            self.from_node_id, self.from_output_index, self.to_node_id, self.to_input_index
        ))

    def apply(self, graph: InteractionGraph, ids: IdMap) -> None:
        conn = self._resolved(ids)
        existing = graph.get_input_connection(conn.to_node_id, conn.to_input_index)
        self.changed = existing != conn
        self._replaced = existing if self.changed else None
        graph.add_connection(
            conn.from_node_id, conn.from_output_index, conn.to_node_id, conn.to_input_index
        )

    def undo(self, graph: InteractionGraph, ids: IdMap) -> None:
        if not self.changed:
            return
        graph.remove_connection(self._resolved(ids).id)
        if self._replaced is not None:
            _reconnect(graph, ids, [self._replaced])


@dataclass
class RemoveConnectionCommand:
    """Disconnect a wire."""

    connection: Connection
    changed: bool = field(default=True, init=False)

    def apply(self, graph: InteractionGraph, ids: IdMap) -> None:
        removed = graph.remove_connection(ids.resolve_connection(self.connection).id)
        self.changed = removed is not None

    def undo(self, graph: InteractionGraph, ids: IdMap) -> None:
        if not self.changed:
            return
        _reconnect(graph, ids, [self.connection])


@dataclass
class MoveNodeCommand:
    """
    Move a node on the canvas.

    Moves of the same node made within the history's merge window
    collapse into one undo step.
    """

    node_id: str
    old_x: float
    old_y: float
    new_x: float
    new_y: float

    def apply(self, graph: InteractionGraph, ids: IdMap) -> None:
        graph.move_node(ids.resolve(self.node_id), self.new_x, self.new_y)

    def undo(self, graph: InteractionGraph, ids: IdMap) -> None:
        graph.move_node(ids.resolve(self.node_id), self.old_x, self.old_y)

    def merge(self, other: Any, ids: IdMap) -> bool:
        """Absorb a following move of the same node."""
        if not isinstance(other, MoveNodeCommand):
            return False
        if ids.resolve(other.node_id) != ids.resolve(self.node_id):
            return False
        self.new_x, self.new_y = other.new_x, other.new_y
        return True


@dataclass
class SetInputValueCommand:
    """Edit an input value."""

    node_id: str
    name: str
    value: Any
    _previous: Any = field(default=None, init=False, repr=False)

    def apply(self, graph: InteractionGraph, ids: IdMap) -> None:
        node_id = ids.resolve(self.node_id)
        self._previous = _require(graph, node_id).get_input_value(self.name)
        graph.set_input_value(node_id, self.name, self.value)

    def undo(self, graph: InteractionGraph, ids: IdMap) -> None:
        graph.set_input_value(ids.resolve(self.node_id), self.name, self._previous)


@dataclass
class CommandGroup:
    """Several commands applied and undone as one step."""

    commands: list[GraphCommand]

    @property
    def changed(self) -> bool:
        return any(getattr(command, "changed", True) for command in self.commands)

    def apply(self, graph: InteractionGraph, ids: IdMap) -> None:
        applied: list[GraphCommand] = []
        try:
            for command in self.commands:
                command.apply(graph, ids)
                applied.append(command)
        except GraphError:
            for command in reversed(applied):
                command.undo(graph, ids)
            raise

    def undo(self, graph: InteractionGraph, ids: IdMap) -> None:
        for command in reversed(self.commands):
            command.undo(graph, ids)


class CommandHistory:
    """Undo/redo manager around an InteractionGraph."""

    def __init__(
        self,
        graph: InteractionGraph,
        max_depth: int = 100,
        *,
        merge_window: float = MERGE_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.graph = graph
        self.max_depth = max_depth
        self.merge_window = merge_window
        self.ids = IdMap()
        self._clock = clock
        self._last_execute = float("-inf")
        self._undo_stack: list[GraphCommand] = []
        self._redo_stack: list[GraphCommand] = []

    def execute(self, command: GraphCommand) -> GraphCommand:
        """
        Apply a command and push it on the undo stack.

        Errors from the graph propagate and nothing is pushed. A command
        that reports ``changed = False`` after applying is not recorded.
        """
        command.apply(self.graph, self.ids)
        if not getattr(command, "changed", True):
            logger.debug("%s changed nothing; not recorded", type(command).__name__)
            return command
        self._redo_stack.clear()

        now = self._clock()
        recent = now - self._last_execute <= self.merge_window
        self._last_execute = now

        last = self._undo_stack[-1] if self._undo_stack else None
        merge = getattr(last, "merge", None)
        if recent and merge is not None and merge(command, self.ids):
            return last

        self._undo_stack.append(command)
        if len(self._undo_stack) > self.max_depth:
            del self._undo_stack[0]
        return command

    def undo(self) -> GraphCommand | None:
        if not self._undo_stack:
            return None
        command = self._undo_stack.pop()
        command.undo(self.graph, self.ids)
        self._redo_stack.append(command)
        self._last_execute = float("-inf")
        return command

    def redo(self) -> GraphCommand | None:
        if not self._redo_stack:
            return None
        command = self._redo_stack.pop()
        command.apply(self.graph, self.ids)
        self._undo_stack.append(command)
        self._last_execute = float("-inf")
        return command

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def clear(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()
        self.ids.clear()
        self._last_execute = float("-inf")
