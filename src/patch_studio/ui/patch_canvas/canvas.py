"""
Patch Canvas - QPainter-based interaction graph editor.

The widget paints the live graph and forwards mouse, wheel and key
events to a CanvasController, which owns all interaction logic.
"""

from __future__ import annotations

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import (
    QColor,
    QFont,
    QKeyEvent,
    QMouseEvent,
    QPainter,
    QPainterPath,
    QPaintEvent,
    QPen,
    QWheelEvent,
)
from PySide6.QtWidgets import QWidget

from patch_studio.core.data_types import DataType
from patch_studio.core.graph import InteractionGraph
from patch_studio.core.node import PatchNode
from patch_studio.core.node_types import CATEGORY_COLORS, NodeCategory
from patch_studio.host.commands import CommandHistory
from patch_studio.ui.canvas_controller import (
    NODE_HEADER_HEIGHT,
    SOCKET_RADIUS,
    SOCKET_SPACING,
    CanvasController,
    DragMode,
    MouseButton,
    bezier_points,
    node_size,
    socket_position,
)


# Socket colors by data type
SOCKET_COLORS = {
    DataType.NUMBER: QColor("#3b82f6"),      # Blue
    DataType.BOOLEAN: QColor("#ef4444"),     # Red
    DataType.VECTOR3: QColor("#f59e0b"),     # Orange
    DataType.TEXT: QColor("#22c55e"),        # Green
    DataType.OBJECT: QColor("#14b8a6"),      # Teal
    DataType.ANY: QColor("#9ca3af"),         # Gray
}

_BUTTONS = {
    Qt.MouseButton.LeftButton: MouseButton.LEFT,
    Qt.MouseButton.MiddleButton: MouseButton.MIDDLE,
    Qt.MouseButton.RightButton: MouseButton.RIGHT,
}


class PatchCanvas(QWidget):
    """
    Canvas widget for displaying and editing an interaction graph.

    Signals:
        status_changed: A user-facing status message (empty to clear)
        context_menu_requested: Right click at canvas x, y
    """

    status_changed = Signal(str)
    context_menu_requested = Signal(float, float)

    GRID_SIZE = 20

    def __init__(
        self,
        graph: InteractionGraph,
        history: CommandHistory | None = None,
        parent: QWidget | None = None,
    ):
        super().__init__(parent)

        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self.controller = CanvasController(graph, history)
        self.controller.on_status = self.status_changed.emit
        self.controller.on_context_menu = self.context_menu_requested.emit

        # Styling
        self._background_color = QColor("#1a1a2e")
        self._grid_color = QColor("#2a2a3e")
        self._selection_color = QColor("#4a9eff")
        self._error_color = QColor("#ef4444")

        self._title_font = QFont("Inter", 10, QFont.Weight.Bold)
        self._socket_font = QFont("Inter", 8)

        self.setMinimumSize(400, 300)

    @property
    def graph(self) -> InteractionGraph:
        return self.controller.graph

    def frame_all(self) -> None:
        """Adjust view to show all nodes."""
        self.controller.frame_all(self.width(), self.height())
        self.update()

    # --- Rendering ---

    def paintEvent(self, event: QPaintEvent) -> None:
        """Render the canvas."""
        self.controller.prune_selection()
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        painter.fillRect(self.rect(), self._background_color)
        self._draw_grid(painter)

        for conn in self.graph.connections:
            color = (self._selection_color if conn.id == self.controller.selected_connection
                     else QColor("#888888"))
            width = 3 if conn.id == self.controller.selected_connection else 2
            self._draw_wire(painter, self.controller.connection_points(conn), color, width)

        if self.controller.drag_mode == DragMode.CONNECT:
            self._draw_temp_connection(painter)

        for node in self.graph.nodes:
            self._draw_node(painter, node)

        if self.controller.drag_mode == DragMode.SELECT:
            self._draw_selection_box(painter)

        painter.end()

    def _draw_grid(self, painter: QPainter) -> None:
        """Draw the background grid."""
        transform = self.controller.transform
        painter.setPen(QPen(self._grid_color, 1))

        spacing = self.GRID_SIZE * transform.zoom
        if spacing < 10:
            spacing *= 5  # Show every 5th line when zoomed out

        x = transform.offset_x % spacing
        while x < self.width():
            painter.drawLine(int(x), 0, int(x), self.height())
            x += spacing

        y = transform.offset_y % spacing
        while y < self.height():
            painter.drawLine(0, int(y), self.width(), int(y))
            y += spacing

    def _draw_node(self, painter: QPainter, node: PatchNode) -> None:
        """Draw a single node."""
        painter.save()
        transform = self.controller.transform
        zoom = transform.zoom

        width, height = node_size(node)
        sx, sy = transform.canvas_to_screen(node.position.x, node.position.y)
        sw, sh = width * zoom, height * zoom
        header_h = NODE_HEADER_HEIGHT * zoom

        rect = QRectF(sx, sy, sw, sh)
        path = QPainterPath()
        path.addRoundedRect(rect, 8, 8)
        painter.fillPath(path, QColor("#2d2d3d"))

        # Header with only the top corners rounded
        header_path = QPainterPath()
        header_path.moveTo(sx + 8, sy)
        header_path.lineTo(sx + sw - 8, sy)
        header_path.arcTo(QRectF(sx + sw - 16, sy, 16, 16), 90, -90)
        header_path.lineTo(sx + sw, sy + header_h)
        header_path.lineTo(sx, sy + header_h)
        header_path.lineTo(sx, sy + 8)
        header_path.arcTo(QRectF(sx, sy, 16, 16), 180, -90)
        header_path.closeSubpath()
        category = getattr(node, "category", NodeCategory.CUSTOM)
        painter.fillPath(header_path, QColor(CATEGORY_COLORS.get(category, "#718096")))

        if node.error is not None:
            pen = QPen(self._error_color, 2)
        elif node.id in self.controller.selected_nodes:
            pen = QPen(self._selection_color, 2)
        elif node.id == self.controller.hovered_node:
            pen = QPen(QColor("#6b7280"), 2)
        else:
            pen = QPen(QColor("#3f3f4f"), 1)
        painter.setPen(pen)
        painter.drawPath(path)

        painter.setPen(Qt.GlobalColor.white)
        title_font = QFont(self._title_font)
        title_font.setPointSizeF(max(1.0, title_font.pointSizeF() * zoom))
        painter.setFont(title_font)
        painter.drawText(QRectF(sx + 10, sy, sw - 20, header_h),
                         Qt.AlignmentFlag.AlignVCenter, node.display_name)

        socket_font = QFont(self._socket_font)
        socket_font.setPointSizeF(max(1.0, socket_font.pointSizeF() * zoom))
        painter.setFont(socket_font)
        radius = SOCKET_RADIUS * zoom
        spacing = SOCKET_SPACING * zoom

        for index, socket in enumerate(node.inputs):
            px, py = transform.canvas_to_screen(*socket_position(node, index, False))
            painter.setBrush(SOCKET_COLORS.get(socket.data_type, SOCKET_COLORS[DataType.ANY]))
            painter.setPen(QPen(Qt.GlobalColor.white, 1))
            painter.drawEllipse(QPointF(px, py), radius, radius)
            painter.setPen(QColor("#cccccc"))
            painter.drawText(QRectF(px + radius + 4, py - spacing / 2, sw / 2, spacing),
                             Qt.AlignmentFlag.AlignVCenter, socket.name)

        for index, socket in enumerate(node.outputs):
            px, py = transform.canvas_to_screen(*socket_position(node, index, True))
            painter.setBrush(SOCKET_COLORS.get(socket.data_type, SOCKET_COLORS[DataType.ANY]))
            painter.setPen(QPen(Qt.GlobalColor.white, 1))
            painter.drawEllipse(QPointF(px, py), radius, radius)
            painter.setPen(QColor("#cccccc"))
            painter.drawText(QRectF(px - sw / 2, py - spacing / 2, sw / 2 - radius - 4, spacing),
                             Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignRight,
                             socket.name)

        painter.restore()

    def _draw_wire(
        self,
        painter: QPainter,
        points: list[tuple[float, float]],
        color: QColor,
        width: int = 2,
    ) -> None:
        if not points:
            return
        transform = self.controller.transform
        path = QPainterPath()
        path.moveTo(*transform.canvas_to_screen(*points[0]))
        for point in points[1:]:
            path.lineTo(*transform.canvas_to_screen(*point))
        painter.setPen(QPen(color, width))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(path)

    def _draw_temp_connection(self, painter: QPainter) -> None:
        """Draw the connection being dragged."""
        start = self.controller.connection_start
        node = self.graph.get_node(start.node_id) if start else None
        if start is None or node is None:
            return
        x1, y1 = socket_position(node, start.index, start.is_output)
        x2, y2 = self.controller.pointer
        if not start.is_output:
            x1, y1, x2, y2 = x2, y2, x1, y1
        self._draw_wire(painter, bezier_points(x1, y1, x2, y2), self._selection_color)

    def _draw_selection_box(self, painter: QPainter) -> None:
        """Draw the selection rectangle."""
        if self.controller.selection_start is None:
            return
        transform = self.controller.transform
        x1, y1 = transform.canvas_to_screen(*self.controller.selection_start)
        x2, y2 = transform.canvas_to_screen(*self.controller.pointer)
        rect = QRectF(min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))

        fill_color = QColor(self._selection_color)
        fill_color.setAlpha(30)
        painter.fillRect(rect, fill_color)
        painter.setPen(QPen(self._selection_color, 1, Qt.PenStyle.DashLine))
        painter.drawRect(rect)

    # --- Events ---

    def mousePressEvent(self, event: QMouseEvent) -> None:
        button = _BUTTONS.get(event.button())
        if button is None:
            return
        pos = event.position()
        additive = bool(event.modifiers() & Qt.KeyboardModifier.ControlModifier)
        self.controller.press(pos.x(), pos.y(), button, additive)
        if self.controller.drag_mode == DragMode.PAN:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        pos = event.position()
        self.controller.move(pos.x(), pos.y())
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        pos = event.position()
        if self.controller.drag_mode == DragMode.PAN:
            self.setCursor(Qt.CursorShape.ArrowCursor)
        self.controller.release(pos.x(), pos.y())
        self.update()

    def wheelEvent(self, event: QWheelEvent) -> None:
        pos = event.position()
        self.controller.wheel(pos.x(), pos.y(), event.angleDelta().y())
        self.update()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        key = event.key()
        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self.controller.delete_selected()
        elif key == Qt.Key.Key_F:
            self.frame_all()
        elif key == Qt.Key.Key_Escape:
            self.controller.cancel()
        else:
            super().keyPressEvent(event)
            return
        self.update()
