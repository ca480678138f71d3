# tests/test_substitution.py
"""Unit tests for linode_engine.substitution."""

from __future__ import annotations

import numpy as np
import pytest

from linode_engine.errors import DimensionError
from linode_engine.matrix import Matrix, Vector
from linode_engine.substitution import (
    backward_substitute,
    forward_substitute,
    substitute_backward,
    substitute_forward,
)


def _lower(rng: np.random.Generator, n: int) -> np.ndarray:
    return np.tril(rng.normal(size=(n, n))) + n * np.eye(n)


def test_forward_substitution_recovers_solution(rng: np.random.Generator) -> None:
    """Solving L x = L x_true returns x_true."""
    lower = _lower(rng, 5)
    x_true = rng.normal(size=5)
    assert np.allclose(forward_substitute(lower, lower @ x_true), x_true)


def test_backward_substitution_recovers_solution(rng: np.random.Generator) -> None:
    """Solving U x = U x_true returns x_true."""
    upper = _lower(rng, 5).T
    x_true = rng.normal(size=5)
    assert np.allclose(backward_substitute(upper, upper @ x_true), x_true)


def test_batched_right_hand_sides(rng: np.random.Generator) -> None:
    """A 2D right-hand side solves each column."""
    lower = _lower(rng, 4)
    x_true = rng.normal(size=(4, 3))
    x = forward_substitute(lower, lower @ x_true)
    assert x.shape == (4, 3)
    assert np.allclose(x, x_true)


def test_unit_diagonal_ignores_stored_diagonal() -> None:
    """With unit_diagonal the stored diagonal is not read."""
    lower = np.array([[7.0, 0.0], [2.0, 9.0]])
    x = forward_substitute(lower, np.array([1.0, 4.0]), unit_diagonal=True)
    assert np.allclose(x, [1.0, 2.0])


def test_container_types_are_preserved() -> None:
    """Vector in gives Vector out; Matrix in gives Matrix out."""
    upper = Matrix.from_rows([[2.0, 1.0], [0.0, 4.0]])
    v = substitute_backward(upper, Vector.new_column([4.0, 8.0]))
    assert isinstance(v, Vector)
    assert v.allclose(Vector.new_column([1.0, 2.0]))

    m = substitute_forward(upper.T, Matrix.identity(2))
    assert isinstance(m, Matrix)
    assert (upper.T @ m).allclose(Matrix.identity(2))


def test_shape_violations_raise() -> None:
    """Non-square factors or mismatched rows are dimension errors."""
    with pytest.raises(DimensionError, match="triangular factor"):
        forward_substitute(np.ones((2, 3)), np.ones(2))
    with pytest.raises(DimensionError, match="right-hand side"):
        backward_substitute(np.eye(3), np.ones(2))
