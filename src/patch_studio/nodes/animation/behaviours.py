"""
Animation Behaviour Nodes - Periodic motion driven by frame time.

Each behaviour integrates the frame delta into a phase, so changing the
speed mid-animation continues smoothly from the current position instead
of jumping. The phase is saved with the graph.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from patch_studio.core.data_types import DataType
from patch_studio.core.node import FrameContext, PatchNode
from patch_studio.core.node_types import NodeCategory


TAU = 2.0 * math.pi


def _breath(phase: float) -> float:
    """Map a cycle phase in [0, 1) to a 0..1..0 ease starting at 0."""
    return (math.sin(phase * TAU - math.pi / 2.0) + 1.0) / 2.0


class BehaviourNode(PatchNode):
    """Base for behaviours that cycle ``speed`` times per minute."""

    category = NodeCategory.ANIMATION

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.phase = 0.0

    def advance(self, context: FrameContext) -> float:
        """Advance the phase by one frame and return it."""
        per_minute = float(self.get_input_value("speed") or 0.0)
        self.phase = (self.phase + context.delta_time * per_minute / 60.0) % 1.0
        return self.phase

    def serialize(self) -> dict[str, Any]:
        data = super().serialize()
        data["phase"] = self.phase
        return data

    def deserialize(self, data: dict[str, Any]) -> None:
        super().deserialize(data)
        self.phase = float(data.get("phase", 0.0)) % 1.0


class SpinNode(PatchNode):
    """Continuous rotation in radians at ``speed`` revolutions per minute."""

    type_name = "Spin"
    category = NodeCategory.ANIMATION
    description = "Continuous rotation (rpm)"

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.add_input("speed", DataType.NUMBER, 60.0)
        self.add_input("clockwise", DataType.BOOLEAN, True)
        self.add_output("rotation", DataType.NUMBER)
        self.rotation = 0.0

    @property
    def display_name(self) -> str:
        speed = self.get_input_value("speed")
        direction = "CW" if self.get_input_value("clockwise") else "CCW"
        return f"Spin ({speed:g} rpm {direction})"

    def process(self, context: FrameContext) -> None:
        rpm = float(self.get_input_value("speed") or 0.0)
        direction = 1.0 if self.get_input_value("clockwise") else -1.0
        self.rotation += context.delta_time * (rpm / 60.0) * TAU * direction
        self.set_output_value("rotation", self.rotation)

    def serialize(self) -> dict[str, Any]:
        data = super().serialize()
        data["rotation"] = self.rotation
        return data

    def deserialize(self, data: dict[str, Any]) -> None:
        super().deserialize(data)
        self.rotation = float(data.get("rotation", 0.0))


class PulseNode(BehaviourNode):
    """Scale that breathes between 1 - amount and 1 + amount."""

    type_name = "Pulse"
    description = "Rhythmic scale (bpm)"

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.add_input("speed", DataType.NUMBER, 20.0)
        self.add_input("amount", DataType.NUMBER, 0.2)
        self.add_output("scale", DataType.NUMBER)

    @property
    def display_name(self) -> str:
        speed = self.get_input_value("speed")
        amount = round(float(self.get_input_value("amount")) * 100)
        return f"Pulse ({speed:g} bpm, {amount}%)"

    def process(self, context: FrameContext) -> None:
        phase = self.advance(context)
        amount = float(self.get_input_value("amount"))
        self.set_output_value("scale", 1.0 + (_breath(phase) - 0.5) * amount * 2.0)


class FloatNode(BehaviourNode):
    """Vertical bobbing offset between -height/2 and +height/2."""

    type_name = "Float"
    description = "Up and down bobbing (bpm)"

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.add_input("speed", DataType.NUMBER, 30.0)
        self.add_input("height", DataType.NUMBER, 1.0)
        self.add_output("position", DataType.NUMBER)

    @property
    def display_name(self) -> str:
        return f"Float ({self.get_input_value('speed'):g} bpm)"

    def process(self, context: FrameContext) -> None:
        phase = self.advance(context)
        height = float(self.get_input_value("height"))
        self.set_output_value("position", math.sin(phase * TAU) * height * 0.5)


class FadeNode(BehaviourNode):
    """Opacity easing between ``min`` and ``max``, clamped to [0, 1]."""

    type_name = "Fade"
    description = "Opacity fade in and out (bpm)"

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.add_input("speed", DataType.NUMBER, 40.0)
        self.add_input("min", DataType.NUMBER, 0.0)
        self.add_input("max", DataType.NUMBER, 1.0)
        self.add_output("opacity", DataType.NUMBER)

    @property
    def display_name(self) -> str:
        speed = self.get_input_value("speed")
        low = round(float(self.get_input_value("min")) * 100)
        high = round(float(self.get_input_value("max")) * 100)
        return f"Fade ({speed:g} bpm, {low}%-{high}%)"

    def process(self, context: FrameContext) -> None:
        phase = self.advance(context)
        low = float(self.get_input_value("min"))
        high = float(self.get_input_value("max"))
        opacity = low + _breath(phase) * (high - low)
        self.set_output_value("opacity", float(np.clip(opacity, 0.0, 1.0)))
