"""
Scene Model - The objects an interaction graph can drive.

Objects are looked up by a stable uuid that survives save and load, so
graphs store ids rather than references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator
from uuid import uuid4

from patch_studio.core.data_types import DataType, Vector3, decode_value


def new_object_id() -> str:
    """Generate a new stable object ID."""
    return str(uuid4())


@dataclass
class SceneObject:
    """A scene object with a transform, visibility and material opacity."""
    name: str = "Object"
    uuid: str = field(default_factory=new_object_id)
    position: Vector3 = field(default_factory=Vector3)
    rotation: Vector3 = field(default_factory=Vector3)     # Radians
    scale: Vector3 = field(default_factory=lambda: Vector3(1.0, 1.0, 1.0))
    visible: bool = True
    opacity: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "name": self.name,
            "position": self.position.to_list(),
            "rotation": self.rotation.to_list(),
            "scale": self.scale.to_list(),
            "visible": self.visible,
            "opacity": self.opacity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SceneObject:
        obj = cls(name=data.get("name", "Object"), uuid=data.get("uuid") or new_object_id())
        for prop in ("position", "rotation", "scale"):
            if data.get(prop) is not None:
                setattr(obj, prop, decode_value(data[prop], DataType.VECTOR3))
        obj.visible = bool(data.get("visible", True))
        obj.opacity = float(data.get("opacity", 1.0))
        return obj


class Scene:
    """Ordered collection of scene objects keyed by uuid."""

    def __init__(self):
        self._objects: dict[str, SceneObject] = {}

    def add_object(self, obj: SceneObject) -> SceneObject:
        if obj.uuid in self._objects:
            raise ValueError(f"Duplicate object uuid {obj.uuid}")
        self._objects[obj.uuid] = obj
        return obj

    def remove_object(self, uuid: str) -> SceneObject | None:
        return self._objects.pop(uuid, None)

    def get_object(self, uuid: str) -> SceneObject | None:
        return self._objects.get(uuid)

    def find_by_name(self, name: str) -> SceneObject | None:
        for obj in self._objects.values():
            if obj.name == name:
                return obj
        return None

    @property
    def objects(self) -> list[SceneObject]:
        return list(self._objects.values())

    def clear(self) -> None:
        self._objects.clear()

    def to_dict(self) -> dict[str, Any]:
        return {"objects": [obj.to_dict() for obj in self._objects.values()]}

    def load_dict(self, data: dict[str, Any]) -> None:
        """Replace the scene contents with serialized objects."""
        self._objects.clear()
        for item in data.get("objects") or []:
            obj = SceneObject.from_dict(item)
            self._objects[obj.uuid] = obj

    def __iter__(self) -> Iterator[SceneObject]:
        return iter(list(self._objects.values()))

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, uuid: str) -> bool:
        return uuid in self._objects
