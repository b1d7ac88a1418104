"""
Patch Canvas Controller - Pointer input to graph mutations.

The controller holds the canvas view state (pan, zoom, selection, drags)
and performs hit testing against the live graph. It has no Qt dependency:
the canvas widget forwards its events here in screen coordinates and
repaints from the state exposed below.

Structural errors raised by the graph are caught and reported through
``status_message`` ("cannot connect: ...") instead of propagating into
the event loop.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable

from patch_studio.core.errors import GraphError
from patch_studio.core.graph import Connection, InteractionGraph
from patch_studio.core.node import PatchNode
from patch_studio.host.commands import (
    AddConnectionCommand,
    CommandGroup,
    CommandHistory,
    GraphCommand,
    MoveNodeCommand,
    RemoveConnectionCommand,
    RemoveNodeCommand,
)


logger = logging.getLogger(__name__)


# Layout constants (canvas units)
NODE_HEADER_HEIGHT = 28
NODE_MIN_WIDTH = 150
NODE_PADDING = 10
SOCKET_RADIUS = 6
SOCKET_SPACING = 22
TITLE_CHAR_WIDTH = 7


@dataclass
class CanvasTransform:
    """Handles canvas pan and zoom transformations."""
    offset_x: float = 0.0
    offset_y: float = 0.0
    zoom: float = 1.0

    MIN_ZOOM = 0.1
    MAX_ZOOM = 4.0

    def screen_to_canvas(self, x: float, y: float) -> tuple[float, float]:
        """Convert screen coordinates to canvas coordinates."""
        return (
            (x - self.offset_x) / self.zoom,
            (y - self.offset_y) / self.zoom,
        )

    def canvas_to_screen(self, x: float, y: float) -> tuple[float, float]:
        """Convert canvas coordinates to screen coordinates."""
        return (
            x * self.zoom + self.offset_x,
            y * self.zoom + self.offset_y,
        )

    def zoom_at(self, x: float, y: float, factor: float) -> None:
        """Zoom centered on a screen point."""
        cx, cy = self.screen_to_canvas(x, y)
        self.zoom = max(self.MIN_ZOOM, min(self.MAX_ZOOM, self.zoom * factor))

        # Keep the point under the cursor
        new_sx, new_sy = self.canvas_to_screen(cx, cy)
        self.offset_x += x - new_sx
        self.offset_y += y - new_sy


@dataclass(frozen=True)
class SocketRef:
    """A socket on a node, by index."""
    node_id: str
    index: int
    is_output: bool


class DragMode(Enum):
    NONE = auto()
    PAN = auto()
    MOVE = auto()
    CONNECT = auto()
    SELECT = auto()


class MouseButton(Enum):
    LEFT = auto()
    MIDDLE = auto()
    RIGHT = auto()


# --- Layout ---

def node_size(node: PatchNode) -> tuple[float, float]:
    """Width and height of a node on the canvas."""
    width = max(NODE_MIN_WIDTH, len(node.display_name) * TITLE_CHAR_WIDTH + 40)
    rows = max(len(node.inputs), len(node.outputs), 1)
    return width, NODE_HEADER_HEIGHT + NODE_PADDING * 2 + rows * SOCKET_SPACING


def socket_position(node: PatchNode, index: int, is_output: bool) -> tuple[float, float]:
    """Canvas position of a socket centre."""
    width, _ = node_size(node)
    x = node.position.x + (width if is_output else 0.0)
    y = node.position.y + NODE_HEADER_HEIGHT + NODE_PADDING + SOCKET_SPACING / 2 + index * SOCKET_SPACING
    return x, y


def bezier_points(
    x1: float, y1: float, x2: float, y2: float, steps: int = 16
) -> list[tuple[float, float]]:
    """Sample the wire curve between two sockets."""
    dx = max(abs(x2 - x1) * 0.5, 50.0)
    points = []
    for i in range(steps + 1):
        t = i / steps
        u = 1 - t
        bx = u**3 * x1 + 3 * u**2 * t * (x1 + dx) + 3 * u * t**2 * (x2 - dx) + t**3 * x2
        by = u**3 * y1 + 3 * u**2 * t * y1 + 3 * u * t**2 * y2 + t**3 * y2
        points.append((bx, by))
    return points


def _distance_to_segment(
    px: float, py: float, ax: float, ay: float, bx: float, by: float
) -> float:
    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - ax, py - ay)
    t = max(0.0, min(1.0, ((px - ax) * dx + (py - ay) * dy) / length_sq))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


def _single_step(commands: list[GraphCommand]) -> GraphCommand:
    """One undo step for an edit that touched one or more nodes."""
    return commands[0] if len(commands) == 1 else CommandGroup(commands)


class CanvasController:
    """
    Interaction logic of the patch canvas.

    Mutations go through the command history when one is given, so they
    can be undone; otherwise they go straight to the graph.
    """

    def __init__(
        self,
        graph: InteractionGraph,
        history: CommandHistory | None = None,
    ):
        self.graph = graph
        self.history = history
        self.transform = CanvasTransform()

        self.selected_nodes: set[str] = set()
        self.selected_connection: str | None = None
        self.hovered_node: str | None = None
        self.status_message = ""

        self.drag_mode = DragMode.NONE
        self._drag_start_screen: tuple[float, float] = (0.0, 0.0)
        self._drag_start_offset: tuple[float, float] = (0.0, 0.0)
        self._drag_origins: dict[str, tuple[float, float]] = {}
        self.connection_start: SocketRef | None = None
        self.pointer: tuple[float, float] = (0.0, 0.0)     # Canvas coordinates
        self.selection_start: tuple[float, float] | None = None

        self.on_status: Callable[[str], None] | None = None
        self.on_context_menu: Callable[[float, float], None] | None = None

    # --- Hit testing (canvas coordinates) ---

    def node_at(self, x: float, y: float) -> str | None:
        """Topmost node under a canvas point."""
        for node in reversed(self.graph.nodes):
            width, height = node_size(node)
            if (node.position.x <= x <= node.position.x + width
                    and node.position.y <= y <= node.position.y + height):
                return node.id
        return None

    def socket_at(self, x: float, y: float) -> SocketRef | None:
        """Socket within reach of a canvas point."""
        hit_radius = SOCKET_RADIUS * 1.5
        for node in reversed(self.graph.nodes):
            for index in range(len(node.outputs)):
                sx, sy = socket_position(node, index, True)
                if math.hypot(x - sx, y - sy) < hit_radius:
                    return SocketRef(node.id, index, True)
            for index in range(len(node.inputs)):
                sx, sy = socket_position(node, index, False)
                if math.hypot(x - sx, y - sy) < hit_radius:
                    return SocketRef(node.id, index, False)
        return None

    def connection_at(self, x: float, y: float, threshold: float = 8.0) -> str | None:
        """Wire passing near a canvas point."""
        for conn in self.graph.connections:
            points = self.connection_points(conn)
            for (ax, ay), (bx, by) in zip(points, points[1:]):
                if _distance_to_segment(x, y, ax, ay, bx, by) < threshold:
                    return conn.id
        return None

    def connection_points(self, conn: Connection) -> list[tuple[float, float]]:
        source = self.graph.get_node(conn.from_node_id)
        target = self.graph.get_node(conn.to_node_id)
        if source is None or target is None:
            return []
        x1, y1 = socket_position(source, conn.from_output_index, True)
        x2, y2 = socket_position(target, conn.to_input_index, False)
        return bezier_points(x1, y1, x2, y2)

    # --- Selection ---

    def select(self, node_id: str | None, add: bool = False) -> None:
        """Select a node (or deselect all if None)."""
        if not add:
            self.selected_nodes.clear()
        if node_id is not None and node_id in self.graph:
            self.selected_nodes.add(node_id)

    def select_in_box(self, x1: float, y1: float, x2: float, y2: float) -> None:
        """Add every node overlapping the canvas rectangle to the selection."""
        left, right = min(x1, x2), max(x1, x2)
        top, bottom = min(y1, y2), max(y1, y2)
        for node in self.graph.nodes:
            width, height = node_size(node)
            if (node.position.x < right and node.position.x + width > left
                    and node.position.y < bottom and node.position.y + height > top):
                self.selected_nodes.add(node.id)

    def prune_selection(self) -> None:
        """Forget selected items that no longer exist."""
        self.selected_nodes = {nid for nid in self.selected_nodes if nid in self.graph}
        if self.selected_connection and not any(
            c.id == self.selected_connection for c in self.graph.connections
        ):
            self.selected_connection = None

    # --- Pointer events (screen coordinates) ---

    def press(self, sx: float, sy: float, button: MouseButton = MouseButton.LEFT,
              additive: bool = False) -> None:
        cx, cy = self.transform.screen_to_canvas(sx, sy)
        self.pointer = (cx, cy)

        if button == MouseButton.MIDDLE:
            self.drag_mode = DragMode.PAN
            self._drag_start_screen = (sx, sy)
            self._drag_start_offset = (self.transform.offset_x, self.transform.offset_y)
            return

        if button == MouseButton.RIGHT:
            if self.on_context_menu is not None:
                self.on_context_menu(cx, cy)
            return

        socket = self.socket_at(cx, cy)
        if socket is not None:
            self.selected_connection = None
            self.drag_mode = DragMode.CONNECT
            self.connection_start = socket
            return

        node_id = self.node_at(cx, cy)
        if node_id is not None:
            self.selected_connection = None
            if additive:
                self.selected_nodes.symmetric_difference_update({node_id})
            elif node_id not in self.selected_nodes:
                self.select(node_id)
            self.drag_mode = DragMode.MOVE
            self._drag_start_screen = (sx, sy)
            self._drag_origins = {}
            for nid in self.selected_nodes:
                node = self.graph.get_node(nid)
                if node is not None:
                    self._drag_origins[nid] = (node.position.x, node.position.y)
            return

        conn_id = self.connection_at(cx, cy)
        if conn_id is not None:
            self.selected_connection = conn_id
            self.select(None)
            return

        self.selected_connection = None
        if not additive:
            self.select(None)
        self.drag_mode = DragMode.SELECT
        self.selection_start = (cx, cy)

    def move(self, sx: float, sy: float) -> None:
        cx, cy = self.transform.screen_to_canvas(sx, sy)
        self.pointer = (cx, cy)

        if self.drag_mode == DragMode.PAN:
            self.transform.offset_x = self._drag_start_offset[0] + sx - self._drag_start_screen[0]
            self.transform.offset_y = self._drag_start_offset[1] + sy - self._drag_start_screen[1]
        elif self.drag_mode == DragMode.MOVE:
            dx = (sx - self._drag_start_screen[0]) / self.transform.zoom
            dy = (sy - self._drag_start_screen[1]) / self.transform.zoom
            for nid, (ox, oy) in self._drag_origins.items():
                if nid in self.graph:
                    self.graph.move_node(nid, ox + dx, oy + dy)
        elif self.drag_mode == DragMode.NONE:
            self.hovered_node = self.node_at(cx, cy)

    def release(self, sx: float, sy: float) -> None:
        cx, cy = self.transform.screen_to_canvas(sx, sy)
        self.pointer = (cx, cy)
        mode, self.drag_mode = self.drag_mode, DragMode.NONE

        if mode == DragMode.MOVE:
            self._finish_move()
        elif mode == DragMode.CONNECT and self.connection_start is not None:
            target = self.socket_at(cx, cy)
            start, self.connection_start = self.connection_start, None
            if target is not None:
                self._finish_connect(start, target)
        elif mode == DragMode.SELECT and self.selection_start is not None:
            self.select_in_box(*self.selection_start, cx, cy)
            self.selection_start = None

    def wheel(self, sx: float, sy: float, delta: float) -> None:
        self.transform.zoom_at(sx, sy, 1.1 if delta > 0 else 0.9)

    def cancel(self) -> None:
        """Abort the current drag. A node move snaps back."""
        if self.drag_mode == DragMode.MOVE:
            for nid, (ox, oy) in self._drag_origins.items():
                if nid in self.graph:
                    self.graph.move_node(nid, ox, oy)
        self.drag_mode = DragMode.NONE
        self.connection_start = None
        self.selection_start = None
        self._drag_origins = {}

    # --- Edits ---

    def delete_selected(self) -> None:
        """Delete the selected wire, or else the selected nodes."""
        if self.selected_connection is not None:
            conn = next(
                (c for c in self.graph.connections if c.id == self.selected_connection), None
            )
            self.selected_connection = None
            if conn is not None:
                self._apply(RemoveConnectionCommand(conn), lambda: self.graph.remove_connection(conn.id))
            return

        node_ids = [node.id for node in self.graph.nodes if node.id in self.selected_nodes]
        self.selected_nodes.clear()
        if node_ids:
            self._apply(
                _single_step([RemoveNodeCommand(nid) for nid in node_ids]),
                lambda: [self.graph.remove_node(nid) for nid in node_ids],
            )

    def frame_all(self, width: float, height: float, padding: float = 50.0) -> None:
        """Fit every node into a viewport of the given screen size."""
        nodes = self.graph.nodes
        if not nodes or width <= 0 or height <= 0:
            return
        boxes = [(n.position.x, n.position.y, *node_size(n)) for n in nodes]
        min_x = min(x for x, _, _, _ in boxes) - padding
        min_y = min(y for _, y, _, _ in boxes) - padding
        max_x = max(x + w for x, _, w, _ in boxes) + padding
        max_y = max(y + h for _, y, _, h in boxes) + padding

        self.transform.zoom = min(width / (max_x - min_x), height / (max_y - min_y), 1.0)
        self.transform.offset_x = width / 2 - (min_x + max_x) / 2 * self.transform.zoom
        self.transform.offset_y = height / 2 - (min_y + max_y) / 2 * self.transform.zoom

    def set_status(self, message: str) -> None:
        self.status_message = message
        if self.on_status is not None:
            self.on_status(message)

    def _finish_move(self) -> None:
        origins, self._drag_origins = self._drag_origins, {}
        if self.history is None:
            return
        moves = []
        for nid, (ox, oy) in origins.items():
            node = self.graph.get_node(nid)
            if node is None or (node.position.x, node.position.y) == (ox, oy):
                continue
            moves.append(MoveNodeCommand(nid, ox, oy, node.position.x, node.position.y))
        if moves:
            self.history.execute(_single_step(moves))

    def _finish_connect(self, start: SocketRef, target: SocketRef) -> None:
        if start.is_output == target.is_output:
            self.set_status("cannot connect: both sockets are "
                            + ("outputs" if start.is_output else "inputs"))
            return
        source, sink = (start, target) if start.is_output else (target, start)
        args = (source.node_id, source.index, sink.node_id, sink.index)
        if self._apply(AddConnectionCommand(*args), lambda: self.graph.add_connection(*args),
                       prefix="cannot connect"):
            self.set_status("")

    def _apply(self, command: GraphCommand, direct: Callable[[], object],
               prefix: str = "cannot edit") -> bool:
        try:
            if self.history is not None:
                self.history.execute(command)
            else:
                direct()
        except GraphError as e:
            logger.info("%s: %s", prefix, e)
            self.set_status(f"{prefix}: {e}")
            return False
        self.prune_selection()
        return True
