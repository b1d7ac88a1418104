"""
Host module - The editor side of the bridge.

- Scene: Scene objects driven by the graph
- Editor: HostBridge implementation owning scene, graph and history
- Autosave: Debounced persistence on change
- Commands: Undo/redo for graph edits
"""

from patch_studio.host.autosave import Autosave
from patch_studio.host.commands import (
    AddConnectionCommand,
    AddNodeCommand,
    CommandGroup,
    CommandHistory,
    GraphCommand,
    IdMap,
    MoveNodeCommand,
    RemoveConnectionCommand,
    RemoveNodeCommand,
    SetInputValueCommand,
)
from patch_studio.host.editor import Editor
from patch_studio.host.scene import Scene, SceneObject, new_object_id


__all__ = [
    # autosave.py
    "Autosave",
    # commands.py
    "AddConnectionCommand",
    "AddNodeCommand",
    "CommandGroup",
    "CommandHistory",
    "GraphCommand",
    "IdMap",
    "MoveNodeCommand",
    "RemoveConnectionCommand",
    "RemoveNodeCommand",
    "SetInputValueCommand",
    # editor.py
    "Editor",
    # scene.py
    "Scene",
    "SceneObject",
    "new_object_id",
]
