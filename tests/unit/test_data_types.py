"""
Tests for socket data types and value helpers.
"""

import numpy as np
import pytest

from patch_studio.core.data_types import (
    DataType,
    Vector3,
    coerce_value,
    decode_value,
    encode_value,
)


class TestDataType:
    """Tests for connection compatibility rules."""

    def test_exact_match(self):
        assert DataType.NUMBER.is_compatible_with(DataType.NUMBER)
        assert DataType.VECTOR3.is_compatible_with(DataType.VECTOR3)

    def test_any_connects_both_ways(self):
        assert DataType.ANY.is_compatible_with(DataType.TEXT)
        assert DataType.BOOLEAN.is_compatible_with(DataType.ANY)

    def test_number_broadcasts_to_vector(self):
        assert DataType.NUMBER.is_compatible_with(DataType.VECTOR3)
        assert not DataType.VECTOR3.is_compatible_with(DataType.NUMBER)

    def test_mismatch(self):
        assert not DataType.NUMBER.is_compatible_with(DataType.TEXT)
        assert not DataType.OBJECT.is_compatible_with(DataType.NUMBER)


class TestVector3:
    """Tests for the Vector3 value type."""

    def test_defaults(self):
        v = Vector3()
        assert v.to_list() == [0.0, 0.0, 0.0]

    def test_from_array(self):
        v = Vector3.from_array(np.array([1, 2, 3]))
        assert (v.x, v.y, v.z) == (1.0, 2.0, 3.0)
        assert isinstance(v.x, float)

    def test_from_array_wrong_length(self):
        with pytest.raises(ValueError):
            Vector3.from_array([1, 2])

    def test_broadcast(self):
        assert Vector3.broadcast(2.5).to_list() == [2.5, 2.5, 2.5]

    def test_arithmetic(self):
        a = Vector3(1, 2, 3)
        b = Vector3(1, 1, 1)
        assert (a + b).to_list() == [2.0, 3.0, 4.0]
        assert (a - b).to_list() == [0.0, 1.0, 2.0]
        assert (2 * a).to_list() == [2.0, 4.0, 6.0]

    def test_set_in_place(self):
        v = Vector3()
        v.set(4, 5, 6)
        assert list(v) == [4.0, 5.0, 6.0]

    def test_copy_is_independent(self):
        v = Vector3(1, 2, 3)
        c = v.copy()
        c.x = 9
        assert v.x == 1

    def test_isclose(self):
        assert Vector3(1, 2, 3).isclose(Vector3(1, 2, 3 + 1e-12))
        assert not Vector3(1, 2, 3).isclose(Vector3(1, 2, 3.1))


class TestValueHelpers:
    """Tests for coercion and JSON encoding."""

    def test_coerce_number_to_vector(self):
        result = coerce_value(3.0, DataType.NUMBER, DataType.VECTOR3)
        assert result == Vector3(3.0, 3.0, 3.0)

    def test_coerce_copies_vectors(self):
        v = Vector3(1, 2, 3)
        result = coerce_value(v, DataType.VECTOR3, DataType.VECTOR3)
        assert result == v
        assert result is not v

    def test_coerce_passthrough(self):
        assert coerce_value(True, DataType.BOOLEAN, DataType.ANY) is True

    def test_encode_vector(self):
        assert encode_value(Vector3(1, 2, 3)) == [1.0, 2.0, 3.0]

    def test_encode_numpy_scalar(self):
        value = encode_value(np.float64(0.5))
        assert value == 0.5
        assert type(value) is float

    def test_decode_vector_from_list_and_dict(self):
        assert decode_value([1, 2, 3], DataType.VECTOR3) == Vector3(1, 2, 3)
        assert decode_value({"x": 1, "y": 2, "z": 3}, DataType.VECTOR3) == Vector3(1, 2, 3)

    def test_decode_scalars(self):
        assert decode_value("2.5", DataType.NUMBER) == 2.5
        assert decode_value(0, DataType.BOOLEAN) is False
        assert decode_value(12, DataType.TEXT) == "12"
        assert decode_value(None, DataType.NUMBER) is None

    def test_decode_bad_number(self):
        with pytest.raises(ValueError):
            decode_value("fast", DataType.NUMBER)
