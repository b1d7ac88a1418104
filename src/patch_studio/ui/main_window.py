"""
Main Window - The patch editor window.

Hosts the patch canvas, drives the frame timer that evaluates the graph,
and exposes file and undo/redo actions.
"""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QSettings, QTimer
from PySide6.QtGui import QAction, QCursor, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QLabel,
    QMainWindow,
    QMenu,
    QMessageBox,
    QWidget,
)

from patch_studio.core.errors import GraphError
from patch_studio.core.graph import GraphChange, GraphEvent
from patch_studio.core.node_types import NodeCategory
from patch_studio.host.commands import AddNodeCommand
from patch_studio.host.editor import Editor
from patch_studio.host.scene import SceneObject
from patch_studio.ui.patch_canvas import PatchCanvas


logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """
    The main application window for Patch Studio.

    Contains:
    - Menu bar with File, Edit and View menus
    - The patch canvas as central widget
    - Status bar with frame and node counters
    """

    def __init__(self, editor: Editor, parent: QWidget | None = None):
        super().__init__(parent)

        self.setWindowTitle("Patch Studio")
        self.setMinimumSize(1000, 700)

        self._settings = QSettings("PatchStudio", "PatchStudio")
        self._editor = editor
        self._project_path: Path | None = None

        self._canvas = PatchCanvas(editor.graph, editor.history)
        self._canvas.status_changed.connect(self._on_status)
        self._canvas.context_menu_requested.connect(self._on_canvas_context_menu)
        self.setCentralWidget(self._canvas)

        self._setup_menu_bar()
        self._setup_status_bar()
        self._editor.graph.add_listener(self._on_graph_event)

        # Frame loop
        self._frame_timer = QTimer(self)
        self._frame_timer.setInterval(editor.settings.frame_interval_ms)
        self._frame_timer.timeout.connect(self._on_frame)
        self._frame_timer.start()

        self._restore_state()

    def _setup_menu_bar(self) -> None:
        """Create and configure the menu bar."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("&File")

        new_action = QAction("&New Project", self)
        new_action.setShortcut(QKeySequence.StandardKey.New)
        new_action.triggered.connect(self._on_new_project)
        file_menu.addAction(new_action)

        open_action = QAction("&Open Project...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._on_open_project)
        file_menu.addAction(open_action)

        file_menu.addSeparator()

        save_action = QAction("&Save", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self._on_save_project)
        file_menu.addAction(save_action)

        save_as_action = QAction("Save &As...", self)
        save_as_action.setShortcut(QKeySequence("Ctrl+Shift+S"))
        save_as_action.triggered.connect(self._on_save_project_as)
        file_menu.addAction(save_as_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.setShortcut(QKeySequence.StandardKey.Quit)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        # Edit menu
        edit_menu = menubar.addMenu("&Edit")

        undo_action = QAction("&Undo", self)
        undo_action.setShortcut(QKeySequence.StandardKey.Undo)
        undo_action.triggered.connect(self._on_undo)
        edit_menu.addAction(undo_action)

        redo_action = QAction("&Redo", self)
        redo_action.setShortcut(QKeySequence.StandardKey.Redo)
        redo_action.triggered.connect(self._on_redo)
        edit_menu.addAction(redo_action)

        # View menu
        view_menu = menubar.addMenu("&View")

        frame_action = QAction("&Frame All", self)
        frame_action.setShortcut(QKeySequence("F"))
        frame_action.triggered.connect(self._canvas.frame_all)
        view_menu.addAction(frame_action)

        pause_action = QAction("&Pause Evaluation", self)
        pause_action.setCheckable(True)
        pause_action.setShortcut(QKeySequence("Space"))
        pause_action.toggled.connect(self._on_pause_toggled)
        view_menu.addAction(pause_action)

    def _setup_status_bar(self) -> None:
        """Create and configure the status bar."""
        status_bar = self.statusBar()
        status_bar.showMessage("Ready")

        self._status_nodes = QLabel("Nodes: 0")
        status_bar.addPermanentWidget(self._status_nodes)

        self._status_frame = QLabel("Frame: 0")
        status_bar.addPermanentWidget(self._status_frame)

    def _restore_state(self) -> None:
        """Restore window geometry and the last session."""
        geometry = self._settings.value("geometry")
        if geometry:
            self.restoreGeometry(geometry)

        report = self._editor.restore_last_session()
        if report is not None and not report.ok:
            self.statusBar().showMessage(f"Session restored: {report.summary()}", 5000)
        if len(self._editor.scene) == 0:
            self._add_demo_scene()
        self._update_counters()

    def _add_demo_scene(self) -> None:
        """Give an empty session something to animate."""
        for name in ("Cube", "Sphere", "Cone"):
            self._editor.add_object(SceneObject(name=name))

    # --- Frame loop ---

    def _on_frame(self) -> None:
        report = self._editor.tick()
        self._status_frame.setText(f"Frame: {report.frame}")
        if report.failed:
            self._status_frame.setText(f"Frame: {report.frame} ({len(report.failed)} failing)")
        self._canvas.update()

    def _on_pause_toggled(self, paused: bool) -> None:
        if paused:
            self._frame_timer.stop()
            self.statusBar().showMessage("Evaluation paused")
        else:
            self._frame_timer.start()
            self.statusBar().showMessage("Evaluation running", 2000)

    def _on_graph_event(self, event: GraphEvent) -> None:
        if event.change != GraphChange.EVALUATED:
            self._update_counters()

    def _update_counters(self) -> None:
        self._status_nodes.setText(f"Nodes: {len(self._editor.graph)}")

    def _on_status(self, message: str) -> None:
        if message:
            self.statusBar().showMessage(message, 4000)
        else:
            self.statusBar().clearMessage()

    # --- Canvas context menu ---

    def _on_canvas_context_menu(self, x: float, y: float) -> None:
        """Offer every registered node type, grouped by category."""
        menu = QMenu(self)
        add_menu = menu.addMenu("Add Node")
        registry = self._editor.graph.registry

        for category in NodeCategory:
            node_types = registry.by_category(category)
            if not node_types:
                continue
            category_menu = add_menu.addMenu(category.value.title())
            for node_type in node_types:
                if node_type.needs_object:
                    object_menu = category_menu.addMenu(node_type.type_name)
                    for obj in self._editor.scene:
                        action = object_menu.addAction(obj.name)
                        action.triggered.connect(
                            lambda _=False, t=node_type.type_name, o=obj.uuid: self._add_node(t, x, y, o)
                        )
                else:
                    action = category_menu.addAction(node_type.type_name)
                    action.setToolTip(node_type.description)
                    action.triggered.connect(
                        lambda _=False, t=node_type.type_name: self._add_node(t, x, y)
                    )

        menu.addSeparator()
        frame_action = menu.addAction("Frame All (F)")
        frame_action.triggered.connect(self._canvas.frame_all)

        menu.exec(QCursor.pos())

    def _add_node(self, type_name: str, x: float, y: float, object_id: str | None = None) -> None:
        try:
            self._editor.history.execute(AddNodeCommand(type_name, x, y, object_id))
        except GraphError as e:
            self.statusBar().showMessage(f"cannot add node: {e}", 4000)
            return
        self.statusBar().showMessage(f"Added {type_name} node", 2000)
        self._canvas.update()

    # --- Menu action handlers ---

    def _on_new_project(self) -> None:
        self._editor.graph.clear()
        self._project_path = None
        self.statusBar().showMessage("New project created", 3000)
        self._canvas.update()

    def _on_open_project(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open Project", "", "Patch Studio Projects (*.json);;All Files (*)"
        )
        if not file_path:
            return
        try:
            report = self._editor.load(Path(file_path))
        except (OSError, ValueError) as e:
            QMessageBox.warning(self, "Open Project", f"Could not open {file_path}:\n{e}")
            return
        self._project_path = Path(file_path)
        self.statusBar().showMessage(f"Opened: {file_path} ({report.summary()})", 5000)
        self._canvas.frame_all()

    def _on_save_project(self) -> None:
        if self._project_path is None:
            self._on_save_project_as()
            return
        self._save_to(self._project_path)

    def _on_save_project_as(self) -> None:
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Save Project As", "", "Patch Studio Projects (*.json);;All Files (*)"
        )
        if file_path:
            self._save_to(Path(file_path))

    def _save_to(self, path: Path) -> None:
        try:
            self._editor.save(path, name=path.stem)
        except OSError as e:
            QMessageBox.warning(self, "Save Project", f"Could not save {path}:\n{e}")
            return
        self._project_path = path
        self.statusBar().showMessage(f"Saved: {path}", 3000)

    def _on_undo(self) -> None:
        if self._editor.history.undo() is None:
            self.statusBar().showMessage("Nothing to undo", 2000)
        self._canvas.update()

    def _on_redo(self) -> None:
        if self._editor.history.redo() is None:
            self.statusBar().showMessage("Nothing to redo", 2000)
        self._canvas.update()

    def closeEvent(self, event) -> None:
        """Save state before closing."""
        self._frame_timer.stop()
        self._settings.setValue("geometry", self.saveGeometry())
        self._editor.close()
        super().closeEvent(event)
