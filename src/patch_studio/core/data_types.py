"""
Data Types - Values that flow through interaction graph connections.

This module defines:
- DataType: Enum of socket data types and their compatibility rules
- Vector3: Mutable 3-component vector used for transforms
- Value coercion and JSON encoding helpers for socket values
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

import numpy as np
from numpy.typing import NDArray


class DataType(Enum):
    """
    Enumeration of data types that can flow through node connections.

    Each input/output socket has a DataType that determines what
    kinds of connections are valid.
    """
    NUMBER = auto()         # Float scalar
    BOOLEAN = auto()        # True/False
    VECTOR3 = auto()        # x, y, z triple
    TEXT = auto()           # String
    OBJECT = auto()         # Scene object reference (output only)

    # Special types
    ANY = auto()            # Accepts any type (for utility nodes)

    def is_compatible_with(self, other: DataType) -> bool:
        """
        Check if an output of this type can feed an input of ``other``.

        Exact matches and ANY always connect. A NUMBER output may feed a
        VECTOR3 input; the scalar is broadcast to all three components.
        """
        if self == DataType.ANY or other == DataType.ANY:
            return True
        if self == DataType.NUMBER and other == DataType.VECTOR3:
            return True
        return self == other


@dataclass
class Vector3:
    """3D vector for positions, rotations (radians) and scales."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_array(cls, array: NDArray | list | tuple) -> Vector3:
        """Create a vector from any 3-element sequence."""
        arr = np.asarray(array, dtype=np.float64).reshape(3)
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    @classmethod
    def broadcast(cls, scalar: float) -> Vector3:
        """Create a vector with all components set to ``scalar``."""
        return cls.from_array(np.full(3, float(scalar)))

    def to_array(self) -> NDArray[np.float64]:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def to_list(self) -> list[float]:
        return [self.x, self.y, self.z]

    def set(self, x: float, y: float, z: float) -> None:
        """Set all components in place."""
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    def copy(self) -> Vector3:
        return Vector3(self.x, self.y, self.z)

    def isclose(self, other: Vector3, tolerance: float = 1e-9) -> bool:
        """Component-wise comparison within ``tolerance``."""
        return bool(np.allclose(self.to_array(), other.to_array(), atol=tolerance, rtol=0.0))

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3.from_array(self.to_array() + other.to_array())

    def __sub__(self, other: Vector3) -> Vector3:
        return Vector3.from_array(self.to_array() - other.to_array())

    def __mul__(self, factor: float) -> Vector3:
        return Vector3.from_array(self.to_array() * float(factor))

    __rmul__ = __mul__

    def __iter__(self):
        return iter((self.x, self.y, self.z))


def coerce_value(value: Any, source: DataType, target: DataType) -> Any:
    """
    Convert a value read from a ``source`` output for a ``target`` input.

    Only the documented NUMBER -> VECTOR3 broadcast changes the value;
    everything else passes through untouched.
    """
    if source == DataType.NUMBER and target == DataType.VECTOR3:
        if isinstance(value, Vector3):
            return value.copy()
        return Vector3.broadcast(value)
    if isinstance(value, Vector3):
        return value.copy()
    return value


def encode_value(value: Any) -> Any:
    """Convert a socket value to a JSON-compatible value."""
    if isinstance(value, Vector3):
        return value.to_list()
    if isinstance(value, np.generic):
        return value.item()
    return value


def decode_value(value: Any, data_type: DataType) -> Any:
    """
    Convert a JSON value back into a socket value of ``data_type``.

    Raises:
        ValueError: If the value cannot represent ``data_type``.
    """
    if value is None:
        return None
    if data_type == DataType.VECTOR3:
        if isinstance(value, dict):
            return Vector3(float(value["x"]), float(value["y"]), float(value["z"]))
        return Vector3.from_array(value)
    if data_type == DataType.NUMBER:
        return float(value)
    if data_type == DataType.BOOLEAN:
        return bool(value)
    if data_type == DataType.TEXT:
        return str(value)
    return value
