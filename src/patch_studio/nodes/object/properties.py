"""
Object Property Nodes - Write graph values onto live scene objects.

A property node is bound to one object by its stable id. Each pass it
writes its inputs onto the object (only when something actually changed),
notifies the host through the bridge, and mirrors the values on its
outputs. When the object cannot be resolved the node does nothing.
"""

from __future__ import annotations

from typing import Any, ClassVar

from patch_studio.core.data_types import DataType, Vector3
from patch_studio.core.node import BoundObjectNode, FrameContext, PatchNode
from patch_studio.core.node_types import NodeCategory


AXES = ("x", "y", "z")


class ObjectPropertyNode(BoundObjectNode):
    """Base for nodes bound to a scene object."""

    category = NodeCategory.OBJECT

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.declare_sockets()
        # Disconnecting falls back to the values the object had when bound
        if self.sync_from_object():
            self.adopt_values_as_defaults()

    def declare_sockets(self) -> None:
        raise NotImplementedError

    def write_object(self, obj: Any) -> bool:
        """Apply input values to ``obj``. Returns True if anything changed."""
        raise NotImplementedError

    def mirror_outputs(self) -> None:
        raise NotImplementedError

    def process(self, context: FrameContext) -> None:
        obj = self.bound_object
        if obj is None:
            return
        if self.write_object(obj):
            context.record_object_change(self.object_id)
            self.bridge.notify_object_changed(obj)
        self.mirror_outputs()


class TransformPropertyNode(ObjectPropertyNode):
    """Drives one Vector3 transform attribute through inputs x, y, z."""

    property_name: ClassVar[str] = ""
    default_component: ClassVar[float] = 0.0

    def declare_sockets(self) -> None:
        for axis in AXES:
            self.add_input(axis, DataType.NUMBER, self.default_component)
        self.add_output(self.property_name, DataType.VECTOR3)
        for axis in AXES:
            self.add_output(axis, DataType.NUMBER)

    def input_vector(self) -> Vector3:
        return Vector3(*(float(self.get_input_value(axis)) for axis in AXES))

    def read_object(self, obj: Any) -> None:
        current: Vector3 = getattr(obj, self.property_name)
        for axis, value in zip(AXES, current):
            self.set_input_value(axis, float(value))

    def write_object(self, obj: Any) -> bool:
        target = self.input_vector()
        current: Vector3 = getattr(obj, self.property_name)
        if current.isclose(target):
            return False
        current.set(target.x, target.y, target.z)
        return True

    def mirror_outputs(self) -> None:
        vector = self.input_vector()
        self.set_output_value(self.property_name, vector)
        for axis, value in zip(AXES, vector):
            self.set_output_value(axis, value)


class PositionNode(TransformPropertyNode):
    type_name = "Position"
    description = "Object position"
    property_name = "position"


class RotationNode(TransformPropertyNode):
    """Object rotation in radians."""

    type_name = "Rotation"
    description = "Object rotation (radians)"
    property_name = "rotation"


class ScaleNode(TransformPropertyNode):
    type_name = "Scale"
    description = "Object scale"
    property_name = "scale"
    default_component = 1.0


class OpacityNode(ObjectPropertyNode):
    """Material opacity, clamped to [0, 1] on write."""

    type_name = "Opacity"
    description = "Object material opacity"

    def declare_sockets(self) -> None:
        self.add_input("opacity", DataType.NUMBER, 1.0)
        self.add_output("opacity", DataType.NUMBER)

    def _target(self) -> float:
        return min(1.0, max(0.0, float(self.get_input_value("opacity"))))

    def read_object(self, obj: Any) -> None:
        self.set_input_value("opacity", float(obj.opacity))

    def write_object(self, obj: Any) -> bool:
        target = self._target()
        if abs(float(obj.opacity) - target) <= 1e-9:
            return False
        obj.opacity = target
        return True

    def mirror_outputs(self) -> None:
        self.set_output_value("opacity", self._target())


class SceneObjectNode(ObjectPropertyNode):
    """
    Every transform axis of an object plus its visibility.

    Inputs are named ``position.x`` ... ``scale.z`` and ``visible``; the
    outputs add the three vectors and an ``object`` output carrying the
    object id.
    """

    type_name = "SceneObject"
    description = "All transform axes and visibility of an object"

    PROPERTIES: ClassVar[tuple[tuple[str, float], ...]] = (
        ("position", 0.0),
        ("rotation", 0.0),
        ("scale", 1.0),
    )

    @property
    def display_name(self) -> str:
        return self.object_name

    def declare_sockets(self) -> None:
        for prop, default in self.PROPERTIES:
            for axis in AXES:
                self.add_input(f"{prop}.{axis}", DataType.NUMBER, default)
        self.add_input("visible", DataType.BOOLEAN, True)

        for prop, _ in self.PROPERTIES:
            self.add_output(prop, DataType.VECTOR3)
            for axis in AXES:
                self.add_output(f"{prop}.{axis}", DataType.NUMBER)
        self.add_output("object", DataType.OBJECT)
        self.add_output("visible", DataType.BOOLEAN)

    def _vector(self, prop: str) -> Vector3:
        return Vector3(*(float(self.get_input_value(f"{prop}.{axis}")) for axis in AXES))

    def read_object(self, obj: Any) -> None:
        for prop, _ in self.PROPERTIES:
            for axis, value in zip(AXES, getattr(obj, prop)):
                self.set_input_value(f"{prop}.{axis}", float(value))
        self.set_input_value("visible", bool(obj.visible))

    def write_object(self, obj: Any) -> bool:
        changed = False
        for prop, _ in self.PROPERTIES:
            target = self._vector(prop)
            current: Vector3 = getattr(obj, prop)
            if not current.isclose(target):
                current.set(target.x, target.y, target.z)
                changed = True
        visible = bool(self.get_input_value("visible"))
        if bool(obj.visible) != visible:
            obj.visible = visible
            changed = True
        return changed

    def mirror_outputs(self) -> None:
        for prop, _ in self.PROPERTIES:
            vector = self._vector(prop)
            self.set_output_value(prop, vector)
            for axis, value in zip(AXES, vector):
                self.set_output_value(f"{prop}.{axis}", value)
        self.set_output_value("object", self.object_id)
        self.set_output_value("visible", bool(self.get_input_value("visible")))


class VectorNode(PatchNode):
    """Compose x, y, z numbers into a vector. Not bound to any object."""

    type_name = "Vector"
    category = NodeCategory.MATH
    description = "Combine x, y, z into a vector"

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        for axis in AXES:
            self.add_input(axis, DataType.NUMBER, 0.0)
        self.add_output("vector", DataType.VECTOR3)
        for axis in AXES:
            self.add_output(axis, DataType.NUMBER)

    def process(self, context: FrameContext) -> None:
        vector = Vector3(*(float(self.get_input_value(axis)) for axis in AXES))
        self.set_output_value("vector", vector)
        for axis, value in zip(AXES, vector):
            self.set_output_value(axis, value)


LEGACY_PROPERTY_TYPES: dict[str, str] = {
    "position": PositionNode.type_name,
    "rotation": RotationNode.type_name,
    "scale": ScaleNode.type_name,
}


def upgrade_object_property(data: dict[str, Any]) -> dict[str, Any]:
    """
    Convert an ``ObjectProperty`` entry written by the first patch editor.

    Those saves named the property in ``propertyType``, the object in
    ``objectUuid`` and the canvas position as a ``{"x", "y"}`` mapping.
    Their input values are not carried over; the node resyncs from the
    live object when it loads.
    """
    type_name = LEGACY_PROPERTY_TYPES.get(str(data.get("propertyType", "")).lower())
    if type_name is None:
        return data
    position = data.get("position")
    if not isinstance(position, dict):
        position = data
    upgraded = {
        key: value for key, value in data.items()
        if key not in ("propertyType", "objectUuid", "position", "properties")
    }
    upgraded.update(
        type=type_name,
        x=position.get("x", 0.0),
        y=position.get("y", 0.0),
        objectId=data.get("objectId") or data.get("objectUuid"),
    )
    return upgraded
