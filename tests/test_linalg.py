# tests/test_linalg.py
"""Unit tests for the linode_engine.linalg solve/inverse facade."""

from __future__ import annotations

import numpy as np
import pytest

from linode_engine.decompositions import dec_cholesky, dec_lu, dec_qr
from linode_engine.errors import DimensionError
from linode_engine.linalg import Inverse, Solve, det, inv, solve
from linode_engine.matrix import Matrix, Vector

pytestmark = pytest.mark.usefixtures("backend")


def test_solve_result_type_follows_rhs(rng: np.random.Generator) -> None:
    """Vector in, vector out; matrix in, matrix out; array in, array out."""
    a = Matrix.from_numpy(rng.normal(size=(4, 4)) + 4.0 * np.eye(4))
    x_true = rng.normal(size=4)
    b = a.to_numpy() @ x_true

    x_vec = solve(a, Vector.new_column(b))
    assert isinstance(x_vec, Vector)
    assert x_vec.is_column
    assert np.allclose(x_vec.to_numpy(), x_true)

    x_mat = solve(a, Matrix.from_numpy(b[:, None]))
    assert isinstance(x_mat, Matrix)
    assert x_mat.shape == (4, 1)

    x_arr = solve(a, b)
    assert isinstance(x_arr, np.ndarray)
    assert np.allclose(x_arr, x_true)


def test_solve_matrix_rhs_is_inverse_for_identity(rng: np.random.Generator) -> None:
    """solve(A, I) equals inv(A)."""
    a = rng.normal(size=(3, 3)) + 3.0 * np.eye(3)
    x = solve(a, Matrix.identity(3))
    a_inv = inv(a)
    assert a_inv is not None
    assert x.allclose(a_inv)
    assert np.allclose(a @ a_inv.to_numpy(), np.eye(3))


def test_singular_returns_none() -> None:
    """Singular systems give None."""
    a = np.array([[1.0, 2.0], [2.0, 4.0]])
    assert solve(a, np.array([1.0, 1.0])) is None
    assert inv(a) is None
    assert det(a) == pytest.approx(0.0)


def test_dispatch_to_decomposition_objects(rng: np.random.Generator) -> None:
    """Decompositions implement Solve/Inverse and are used directly."""
    b0 = rng.normal(size=(4, 4))
    a = b0 @ b0.T + 4.0 * np.eye(4)
    rhs = rng.normal(size=4)
    expected = np.linalg.solve(a, rhs)

    chol = dec_cholesky(a)
    lu = dec_lu(a)
    qr = dec_qr(a)
    for dec in (chol, lu, qr):
        assert isinstance(dec, Solve)
        assert np.allclose(solve(dec, rhs), expected)
    for dec in (chol, lu):
        assert isinstance(dec, Inverse)
        assert np.allclose(inv(dec).to_numpy(), np.linalg.inv(a))


def test_shape_violations() -> None:
    """Non-square A or mismatched rhs are dimension errors."""
    with pytest.raises(DimensionError, match="square"):
        solve(np.ones((2, 3)), np.ones(2))
    with pytest.raises(DimensionError, match="square"):
        inv(np.ones((3, 2)))
    with pytest.raises(DimensionError, match="square"):
        det(np.ones((1, 2)))
    with pytest.raises(DimensionError):
        solve(np.eye(3), Vector.new_column([1.0, 2.0]))


def test_det_of_permutation() -> None:
    """A single row swap flips the sign."""
    assert det([[0.0, 1.0], [1.0, 0.0]]) == pytest.approx(-1.0)
    assert det(np.diag([2.0, 3.0, 4.0])) == pytest.approx(24.0)
