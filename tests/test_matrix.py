# tests/test_matrix.py
"""Unit tests for linode_engine.matrix.

This module verifies:
- Column-major construction and the buffer length contract.
- Indexing, rows/columns as oriented vectors, transpose.
- Arithmetic and the matrix product with matrices and vectors.
- Vector orientation rules.
- Householder reflectors.
"""

from __future__ import annotations

import numpy as np
import pytest

from linode_engine.errors import DimensionError
from linode_engine.matrix import Matrix, Vector, as_matrix, as_vector, householder


def test_constructor_reads_column_major_buffer() -> None:
    """Data is laid out column by column."""
    m = Matrix(2, 3, [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    assert m.shape == (2, 3)
    assert m[0, 1] == 3.0
    assert m[1, 2] == 6.0
    assert np.array_equal(m.data, [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])


def test_constructor_rejects_wrong_length() -> None:
    """A buffer not matching rows*cols is a dimension error."""
    with pytest.raises(DimensionError, match="does not match"):
        Matrix(2, 2, [1.0, 2.0, 3.0])


def test_from_rows_and_integer_promotion() -> None:
    """Nested rows build a row-major view; integers become float64."""
    m = Matrix.from_rows([[1, 2], [3, 4]])
    assert m.dtype == np.float64
    assert m[1, 0] == 3.0
    with pytest.raises(DimensionError, match="same length"):
        Matrix.from_rows([[1.0, 2.0], [3.0]])


def test_complex_input_rejected() -> None:
    """Complex element types are not supported."""
    with pytest.raises(ValueError, match="complex"):
        Matrix.from_numpy(np.eye(2, dtype=complex))


def test_float32_is_preserved() -> None:
    """Floating dtypes other than float64 are kept."""
    m = Matrix.from_numpy(np.eye(3, dtype=np.float32))
    assert m.dtype == np.float32


def test_rows_and_columns_are_oriented() -> None:
    """get_row gives a row vector and get_column a column vector."""
    m = Matrix.from_rows([[1.0, 2.0], [3.0, 4.0]])
    row = m.get_row(1)
    col = m.get_column(1)
    assert row.is_row
    assert col.is_column
    assert list(row) == [3.0, 4.0]
    assert list(col) == [2.0, 4.0]
    assert m[0].is_row
    assert m[:, 0].is_column


def test_setitem_and_clone_are_independent() -> None:
    """clone() copies storage."""
    m = Matrix.zeros(2, 2)
    c = m.clone()
    m[0, 0] = 5.0
    assert m[0, 0] == 5.0
    assert c[0, 0] == 0.0


def test_transpose() -> None:
    """Transpose swaps the dimensions."""
    m = Matrix.from_rows([[1.0, 2.0, 3.0]])
    assert m.T.shape == (3, 1)
    assert m.T[2, 0] == 3.0


def test_arithmetic() -> None:
    """Elementwise add/sub and scalar scaling."""
    a = Matrix.from_rows([[1.0, 2.0], [3.0, 4.0]])
    b = Matrix.identity(2)
    assert (a + b)[0, 0] == 2.0
    assert (a - b)[1, 1] == 3.0
    assert (2.0 * a)[1, 0] == 6.0
    assert (a / 2.0)[0, 1] == 1.0
    assert (-a)[0, 0] == -1.0
    assert (a + 1.0)[0, 0] == 2.0
    with pytest.raises(DimensionError, match="shape mismatch"):
        _ = a + Matrix.zeros(3, 3)


def test_matmul_matrix_and_vector() -> None:
    """Matrix @ matrix and matrix @ column vector."""
    a = Matrix.from_rows([[1.0, 2.0], [3.0, 4.0]])
    assert (a @ Matrix.identity(2)) == a
    v = a @ Vector.new_column([1.0, 1.0])
    assert isinstance(v, Vector)
    assert v.is_column
    assert list(v) == [3.0, 7.0]
    with pytest.raises(DimensionError):
        _ = a @ Vector.new_row([1.0, 1.0])
    with pytest.raises(DimensionError):
        _ = a @ Matrix.zeros(3, 1)


def test_vector_products_follow_orientation() -> None:
    """row @ column is a scalar, column @ row an outer product."""
    r = Vector.new_row([1.0, 2.0])
    c = Vector.new_column([3.0, 4.0])
    assert r @ c == pytest.approx(11.0)
    outer = c @ r
    assert isinstance(outer, Matrix)
    assert outer.shape == (2, 2)
    left = r @ Matrix.identity(2)
    assert left.is_row
    with pytest.raises(DimensionError):
        _ = c @ c


def test_vector_helpers() -> None:
    """norm, dot, argmax, abs and transpose."""
    v = Vector.new_column([3.0, -4.0])
    assert v.norm() == pytest.approx(5.0)
    assert v.dot(v.T) == pytest.approx(25.0)
    assert v.abs().argmax() == 1
    assert v.T.is_row
    assert v.dim() == (2, 1)
    assert v.T.dim() == (1, 2)


def test_argmax_takes_first_on_ties() -> None:
    """The first maximal entry wins."""
    assert Vector.new_column([1.0, 5.0, 5.0]).argmax() == 1


def test_coercion_helpers() -> None:
    """as_matrix / as_vector accept arrays and containers."""
    assert as_matrix([[1.0, 0.0], [0.0, 1.0]]) == Matrix.identity(2)
    assert as_vector(np.ones((1, 3))).is_row
    assert as_vector(np.ones((3, 1))).is_column
    with pytest.raises(DimensionError, match="not a row or column"):
        as_vector(np.ones((2, 2)))


def test_householder_zeroes_tail() -> None:
    """The reflector annihilates the entries below k and is orthogonal."""
    v = np.array([1.0, 2.0, 2.0, 1.0])
    p = householder(v, 1).to_numpy()
    out = p @ v
    assert np.allclose(out[2:], 0.0)
    assert out[0] == pytest.approx(1.0)
    assert abs(out[1]) == pytest.approx(np.linalg.norm(v[1:]))
    assert np.allclose(p @ p.T, np.eye(4))


def test_householder_identity_when_tail_is_zero() -> None:
    """Nothing to annihilate gives the identity."""
    p = householder(np.array([1.0, 2.0, 0.0]), 1)
    assert p == Matrix.identity(3)
