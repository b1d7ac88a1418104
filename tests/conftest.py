from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    """
    Ensure `src/` is on sys.path so tests can import `patch_studio`
    without requiring an editable install.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"
    sys.path.insert(0, str(src_root))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry():
    """A private registry with every built-in node type."""
    from patch_studio.core.node_types import NodeRegistry
    from patch_studio.nodes import register_all_nodes

    return register_all_nodes(NodeRegistry())


@pytest.fixture
def editor(registry, clock):
    """An editor whose autosave writes into a list instead of a file."""
    from patch_studio.core.project import EditorSettings
    from patch_studio.host.editor import Editor

    saved: list[dict] = []
    ed = Editor(EditorSettings(autosave_delay=1.0), registry, storage=saved.append, clock=clock)
    ed.saved = saved
    return ed


@pytest.fixture
def graph(editor):
    return editor.graph
