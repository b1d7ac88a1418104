"""
Host Bridge - The narrow interface between the graph and the host editor.

Nodes and the graph never reach into editor internals. Everything they
need from the host goes through these three calls.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class HostBridge(Protocol):
    """Protocol implemented by the host editor."""

    def get_object_by_stable_id(self, object_id: str) -> Any | None:
        """
        Resolve a scene object by its stable identifier.

        Returns None if no such object exists (deleted, never loaded).
        """
        ...

    def notify_object_changed(self, obj: Any) -> None:
        """Tell the host a scene object was modified by the graph."""
        ...

    def notify_graph_changed(self) -> None:
        """Tell the host the graph changed and should be persisted."""
        ...


class NullBridge:
    """Bridge with no scene, used when a graph runs without a host."""

    def get_object_by_stable_id(self, object_id: str) -> Any | None:
        return None

    def notify_object_changed(self, obj: Any) -> None:
        pass

    def notify_graph_changed(self) -> None:
        pass
