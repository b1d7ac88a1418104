"""
Timing Nodes - Sources of time for everything downstream.

Both nodes advance with the frame delta time handed to process(), never
with wall-clock reads, so a paused or throttled editor stays consistent.
Elapsed time is not saved: a loaded graph starts its clocks from zero.
"""

from __future__ import annotations

import math
from typing import Any

from patch_studio.core.data_types import DataType
from patch_studio.core.node import FrameContext, PatchNode
from patch_studio.core.node_types import NodeCategory


class ClockNode(PatchNode):
    """Elapsed time with play/pause/reset controls."""

    type_name = "Clock"
    category = NodeCategory.TIMING
    description = "Elapsed time in seconds and milliseconds"

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.add_input("speed", DataType.NUMBER, 1.0)
        self.add_output("time", DataType.NUMBER)
        self.add_output("seconds", DataType.NUMBER)
        self.add_output("milliseconds", DataType.NUMBER)

        self.elapsed = 0.0
        self.is_running = True

    @property
    def display_name(self) -> str:
        return "Clock" if self.is_running else "Clock (paused)"

    def play(self) -> None:
        self.is_running = True

    def pause(self) -> None:
        self.is_running = False

    def reset(self) -> None:
        self.elapsed = 0.0

    def process(self, context: FrameContext) -> None:
        if self.is_running:
            speed = float(self.get_input_value("speed") or 0.0)
            self.elapsed += context.delta_time * speed

        self.set_output_value("time", self.elapsed)
        self.set_output_value("seconds", float(math.floor(self.elapsed)))
        self.set_output_value("milliseconds", self.elapsed * 1000.0)

    def serialize(self) -> dict[str, Any]:
        data = super().serialize()
        data["isRunning"] = self.is_running
        return data

    def deserialize(self, data: dict[str, Any]) -> None:
        super().deserialize(data)
        self.is_running = data.get("isRunning") is not False


class TimeNode(PatchNode):
    """Scaled time plus its sine and cosine, and the frame delta."""

    type_name = "Time"
    category = NodeCategory.TIMING
    description = "Scaled time with sin/cos and frame delta"

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.add_input("speed", DataType.NUMBER, 1.0)
        self.add_output("time", DataType.NUMBER)
        self.add_output("deltaTime", DataType.NUMBER)
        self.add_output("sin", DataType.NUMBER)
        self.add_output("cos", DataType.NUMBER)

        self.elapsed = 0.0

    def reset(self) -> None:
        self.elapsed = 0.0

    def process(self, context: FrameContext) -> None:
        speed = float(self.get_input_value("speed") or 0.0)
        self.elapsed += context.delta_time * speed

        self.set_output_value("time", self.elapsed)
        self.set_output_value("deltaTime", context.delta_time)
        self.set_output_value("sin", math.sin(self.elapsed))
        self.set_output_value("cos", math.cos(self.elapsed))
