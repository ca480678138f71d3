# tests/test_scalar.py
"""Unit tests for linode_engine.scalar."""

from __future__ import annotations

import numpy as np
import pytest

from linode_engine.scalar import (
    DEFAULT_DTYPE,
    ScalarType,
    as_float_array,
    machine_epsilon,
    resolve_dtype,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (np.zeros(2, dtype=np.float32), np.float32),
        (np.zeros(2, dtype=np.float64), np.float64),
        ([1, 2, 3], np.float64),
        (np.array([True, False]), np.float64),
        (3, np.float64),
    ],
)
def test_resolve_dtype(value: object, expected: type) -> None:
    """Floats keep their precision; integers and booleans become float64."""
    assert resolve_dtype(value) == np.dtype(expected)


def test_explicit_dtype_wins() -> None:
    """An explicit dtype overrides inference."""
    assert resolve_dtype([1.0, 2.0], np.float32) == np.dtype(np.float32)


@pytest.mark.parametrize("value", [np.array([1 + 2j]), np.array(["a"])])
def test_unsupported_element_types(value: np.ndarray) -> None:
    """Complex and non-numeric inputs are rejected."""
    with pytest.raises(ValueError, match="not"):
        resolve_dtype(value)


def test_as_float_array_promotes_integers() -> None:
    """Integer lists come back as float64 arrays."""
    arr = as_float_array([[1, 2], [3, 4]])
    assert arr.dtype == DEFAULT_DTYPE
    assert arr.shape == (2, 2)


def test_as_float_array_avoids_copy() -> None:
    """Arrays that already conform are returned as-is."""
    arr = np.ones(3)
    assert as_float_array(arr) is arr


def test_machine_epsilon() -> None:
    """Epsilon follows the requested precision."""
    assert machine_epsilon() == np.finfo(np.float64).eps
    assert machine_epsilon(np.float32) == pytest.approx(np.finfo(np.float32).eps)
    assert machine_epsilon(np.float32) > machine_epsilon(np.float64)


def test_scalar_type_members() -> None:
    """Elements of floating arrays are ScalarType instances."""
    assert isinstance(np.ones(1, dtype=np.float32)[0], ScalarType)
    assert isinstance(as_float_array([1, 2])[0], ScalarType)
    assert not isinstance(np.int64(1), ScalarType)
