"""
Math Nodes - Pure arithmetic on two numbers.
"""

from __future__ import annotations

from typing import Any, ClassVar

from patch_studio.core.data_types import DataType
from patch_studio.core.node import FrameContext, PatchNode
from patch_studio.core.node_types import NodeCategory


class BinaryMathNode(PatchNode):
    """Base for nodes computing ``result = operate(a, b)``."""

    category = NodeCategory.MATH
    default_a: ClassVar[float] = 0.0
    default_b: ClassVar[float] = 0.0
    symbol: ClassVar[str] = "?"

    def __init__(self, x: float = 0.0, y: float = 0.0, **kwargs: Any):
        super().__init__(x, y, **kwargs)
        self.add_input("a", DataType.NUMBER, self.default_a)
        self.add_input("b", DataType.NUMBER, self.default_b)
        self.add_output("result", DataType.NUMBER)

    @property
    def display_name(self) -> str:
        return f"{self.type_name} (a {self.symbol} b)"

    def operate(self, a: float, b: float) -> float:
        raise NotImplementedError

    def process(self, context: FrameContext) -> None:
        a = float(self.get_input_value("a"))
        b = float(self.get_input_value("b"))
        self.set_output_value("result", self.operate(a, b))


class AddNode(BinaryMathNode):
    type_name = "Add"
    description = "a + b"
    symbol = "+"

    def operate(self, a: float, b: float) -> float:
        return a + b


class SubtractNode(BinaryMathNode):
    type_name = "Subtract"
    description = "a - b"
    symbol = "-"

    def operate(self, a: float, b: float) -> float:
        return a - b


class MultiplyNode(BinaryMathNode):
    type_name = "Multiply"
    description = "a * b"
    default_a = 1.0
    default_b = 1.0
    symbol = "*"

    def operate(self, a: float, b: float) -> float:
        return a * b


class DivideNode(BinaryMathNode):
    """a / b. Division by zero raises and the graph records it on the node."""

    type_name = "Divide"
    description = "a / b"
    default_a = 1.0
    default_b = 1.0
    symbol = "/"

    def operate(self, a: float, b: float) -> float:
        if b == 0:
            raise ZeroDivisionError("division by zero")
        return a / b
