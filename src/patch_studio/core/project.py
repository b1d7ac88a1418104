"""
Project Persistence - Editor settings and project files on disk.

Projects hold the scene and the interaction graph blob as JSON. Settings
and projects live under the same per-user data directory; the autosaved
last session is a project file with a reserved name.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


PROJECT_FORMAT_VERSION = 1

# Per-user storage directory
DATA_DIR = Path.home() / ".local" / "share" / "patch_studio"
LAST_SESSION_NAME = "_last_session"


def get_data_dir(base_dir: Path | None = None) -> Path:
    """Get the data directory, creating it if needed."""
    directory = base_dir or DATA_DIR
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def get_projects_dir(base_dir: Path | None = None) -> Path:
    """Get the project storage directory, creating it if needed."""
    directory = get_data_dir(base_dir) / "projects"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def get_last_session_path(base_dir: Path | None = None) -> Path:
    """Get the path for the autosaved last session."""
    return get_projects_dir(base_dir) / f"{LAST_SESSION_NAME}.json"


@dataclass
class EditorSettings:
    """
    Editor-wide settings.

    Loaded from ``settings.json`` in the data directory when present.
    """
    # Evaluation
    frame_rate: int = 60
    max_delta_time: float = 0.25

    # Autosave
    autosave_enabled: bool = True
    autosave_delay: float = 1.0
    autosave_path: Path | None = None   # None means the last-session file

    # Diagnostics
    log_level: str = "INFO"

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary for serialization."""
        return {
            "frame_rate": self.frame_rate,
            "max_delta_time": self.max_delta_time,
            "autosave_enabled": self.autosave_enabled,
            "autosave_delay": self.autosave_delay,
            "autosave_path": str(self.autosave_path) if self.autosave_path else None,
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EditorSettings:
        """Create settings from dictionary."""
        return cls(
            frame_rate=int(data.get("frame_rate", 60)),
            max_delta_time=float(data.get("max_delta_time", 0.25)),
            autosave_enabled=bool(data.get("autosave_enabled", True)),
            autosave_delay=float(data.get("autosave_delay", 1.0)),
            autosave_path=Path(data["autosave_path"]) if data.get("autosave_path") else None,
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    @property
    def frame_interval_ms(self) -> int:
        """Frame timer interval in milliseconds."""
        return max(1, round(1000 / max(1, self.frame_rate)))


def load_settings(base_dir: Path | None = None) -> EditorSettings:
    """
    Load settings from the data directory.

    A missing or unreadable file gives the defaults.
    """
    path = (base_dir or DATA_DIR) / "settings.json"
    if not path.exists():
        return EditorSettings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return EditorSettings.from_dict(data)
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return EditorSettings()


def save_settings(settings: EditorSettings, base_dir: Path | None = None) -> Path:
    """Write settings to the data directory."""
    path = get_data_dir(base_dir) / "settings.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    return path


def save_project(
    state: dict[str, Any],
    path: Path | None = None,
    name: str = "project",
    base_dir: Path | None = None,
) -> Path:
    """
    Save an editor state to disk.

    Args:
        state: Editor state with ``scene`` and ``interactionGraph`` keys
        path: Optional specific path, otherwise uses the projects directory
        name: Project name (used for filename if path not specified)

    Returns:
        Path where the project was saved
    """
    project_data = {
        "version": PROJECT_FORMAT_VERSION,
        "name": name,
        "saved_at": datetime.now().isoformat(),
        "scene": state.get("scene", {}),
        "interactionGraph": state.get("interactionGraph", {}),
    }

    if path is None:
        path = get_projects_dir(base_dir) / f"{name}.json"

    # Write next to the target first so a crash never leaves half a file
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(project_data, f, indent=2)
    tmp_path.replace(path)

    logger.debug("Saved project %s to %s", name, path)
    return path


def load_project(path: Path) -> dict[str, Any]:
    """
    Load a project from disk.

    Returns:
        Project data dict with ``scene`` and ``interactionGraph``

    Raises:
        FileNotFoundError: If the project file doesn't exist
        ValueError: If the project format is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Project not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict) or "version" not in data or "interactionGraph" not in data:
        raise ValueError(f"Invalid project format: {path}")

    return data


def list_projects(base_dir: Path | None = None) -> list[dict[str, Any]]:
    """
    List all saved projects.

    Returns:
        List of project metadata dicts with 'name', 'path', 'saved_at'
    """
    projects = []
    for path in get_projects_dir(base_dir).glob("*.json"):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            projects.append({
                "name": data.get("name", path.stem),
                "path": path,
                "saved_at": data.get("saved_at"),
                "node_count": len(data.get("interactionGraph", {}).get("nodes", [])),
            })
        except (json.JSONDecodeError, AttributeError, OSError):
            continue

    # Sort by most recent
    projects.sort(key=lambda p: p.get("saved_at") or "", reverse=True)
    return projects
