"""
Editor - Host side of the interaction graph.

The Editor owns the scene, the graph and the undo history, and is the
HostBridge the graph talks to. Graph change notifications are wired to a
debounced autosave of the whole editor state.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable

from patch_studio.core.graph import GraphChange, GraphEvent, InteractionGraph, LoadReport, PassReport
from patch_studio.core.node_types import NodeRegistry
from patch_studio.core.project import (
    LAST_SESSION_NAME,
    EditorSettings,
    get_last_session_path,
    load_project,
    save_project,
)
from patch_studio.host.autosave import Autosave
from patch_studio.host.commands import CommandHistory
from patch_studio.host.scene import Scene, SceneObject


logger = logging.getLogger(__name__)


ObjectListener = Callable[[SceneObject], None]


class Editor:
    """
    Scene editor hosting an interaction graph.

    Args:
        settings: Editor settings (defaults if omitted)
        registry: Node registry for the graph
        storage: Callable receiving the editor state on autosave. Defaults
            to writing the last-session project file.
        clock: Monotonic clock shared by the graph and autosave
    """

    def __init__(
        self,
        settings: EditorSettings | None = None,
        registry: NodeRegistry | None = None,
        *,
        storage: Callable[[dict[str, Any]], Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or EditorSettings()
        self.scene = Scene()
        self.graph = InteractionGraph(
            registry,
            bridge=self,
            max_delta_time=self.settings.max_delta_time,
            clock=clock,
        )
        self.history = CommandHistory(self.graph, clock=clock)
        self._storage = storage or self._write_last_session
        self.autosave = Autosave(
            self._autosave,
            delay=self.settings.autosave_delay,
            enabled=self.settings.autosave_enabled,
            clock=clock,
        )
        self._object_listeners: list[ObjectListener] = []
        self.graph.add_listener(self._on_graph_event)

    # --- HostBridge ---

    def get_object_by_stable_id(self, object_id: str) -> SceneObject | None:
        return self.scene.get_object(object_id)

    def notify_object_changed(self, obj: Any) -> None:
        """Called by nodes after the graph wrote to ``obj``."""
        for listener in list(self._object_listeners):
            listener(obj)

    def notify_graph_changed(self) -> None:
        self.autosave.schedule()

    # --- Scene ---

    def add_object(self, obj: SceneObject) -> SceneObject:
        self.scene.add_object(obj)
        self.autosave.schedule()
        return obj

    def remove_object(self, uuid: str) -> SceneObject | None:
        """Remove an object. Nodes bound to it go idle but keep the id."""
        obj = self.scene.remove_object(uuid)
        if obj is not None:
            self.autosave.schedule()
        return obj

    def object_changed(self, obj: SceneObject) -> None:
        """
        Report an edit made to ``obj`` outside the graph.

        Call this after moving an object in the viewport or from a script.
        Nodes bound to it take over the new values instead of restoring
        their old inputs on the next tick.
        """
        synced = self.graph.sync_object(obj.uuid)
        logger.debug("Object %s edited; resynced %d node(s)", obj.uuid, len(synced))
        self.autosave.schedule()

    def add_object_listener(self, listener: ObjectListener) -> None:
        self._object_listeners.append(listener)

    # --- Frame loop ---

    def tick(self, delta_time: float | None = None) -> PassReport:
        """Evaluate the graph once and give autosave a chance to write."""
        report = self.graph.evaluate(delta_time)
        self.autosave.poll()
        return report

    # --- Persistence ---

    def to_json(self) -> dict[str, Any]:
        """Editor state: the scene and the interaction graph."""
        return {
            "scene": self.scene.to_dict(),
            "interactionGraph": self.graph.serialize(),
        }

    def from_json(self, data: dict[str, Any]) -> LoadReport:
        """
        Restore editor state.

        The scene is loaded first so graph nodes can rebind to objects.
        """
        self.scene.load_dict(data.get("scene") or {})
        report = self.graph.deserialize(data.get("interactionGraph") or {})
        # What is loaded is what is stored
        self.autosave.cancel()
        return report

    def save(self, path: Path | None = None, name: str = "project") -> Path:
        path = save_project(self.to_json(), path=path, name=name)
        logger.info("Saved project to %s", path)
        return path

    def load(self, path: Path) -> LoadReport:
        data = load_project(path)
        logger.info("Loading project %s", path)
        return self.from_json(data)

    def restore_last_session(self) -> LoadReport | None:
        """Load the autosaved session if there is one."""
        path = self.settings.autosave_path or get_last_session_path()
        if not path.exists():
            return None
        try:
            return self.load(path)
        except (OSError, ValueError) as e:
            logger.warning("Could not restore last session from %s: %s", path, e)
            return None

    def close(self) -> None:
        """Write any pending autosave."""
        self.autosave.flush()

    def _autosave(self) -> None:
        self._storage(self.to_json())

    def _write_last_session(self, state: dict[str, Any]) -> None:
        save_project(state, path=self.settings.autosave_path or get_last_session_path(),
                     name=LAST_SESSION_NAME)

    def _on_graph_event(self, event: GraphEvent) -> None:
        if event.change in (GraphChange.LOADED, GraphChange.CLEARED):
            self.history.clear()
