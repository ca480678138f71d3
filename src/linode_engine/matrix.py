# linode_engine/src/linode_engine/matrix.py
"""Dense matrix and vector containers.

Matrix stores its elements in a column-major (Fortran-ordered) NumPy buffer so
that `Matrix(rows, cols, data)` accepts the flat column-major layout directly
and the buffer can be handed to LAPACK without reordering. Vector is a thin
1D wrapper whose orientation (row or column) is part of its identity and
decides how it composes with matrices.

Both containers behave as value types: arithmetic returns new objects and
`clone()` is the explicit copy. Decomposition routines never alias the
storage of their input.

Design notes:
    * `@` is the matrix product; `*` is reserved for scalar scaling.
    * Containers convert to ndarrays through `__array__`, so NumPy functions
      accept them directly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from numbers import Real
from typing import TYPE_CHECKING, Any, Literal, TypeAlias, cast

import numpy as np

from .errors import DimensionError
from .scalar import DEFAULT_DTYPE, FloatArray, as_float_array, resolve_dtype

if TYPE_CHECKING:
    from numpy.typing import DTypeLike

Orientation: TypeAlias = Literal["column", "row"]

# =============================================================================
# Error message constants
# =============================================================================

_DATA_LEN_ERROR = "data length {actual} does not match rows*cols = {expected}"
_DATA_NDIM_ERROR = "data must be a flat 1D buffer; got ndim={ndim}"
_NEGATIVE_DIM_ERROR = "rows and cols must be non-negative; got ({rows}, {cols})"
_SHAPE_MISMATCH_ERROR = "shape mismatch: {left} vs {right}"
_MATMUL_ERROR = "cannot multiply {left} by {right}"
_ORIENTATION_ERROR = "orientation must be 'column' or 'row'; got {orientation!r}"
_VECTOR_NDIM_ERROR = "vector data must be 1D; got ndim={ndim}"
_NOT_A_VECTOR_ERROR = "matrix of shape {shape} is not a row or column vector"
_MATRIX_NDIM_ERROR = "expected a 2D matrix-like input; got ndim={ndim}"
_ROWS_RAGGED_ERROR = "all rows must have the same length"
_HOUSEHOLDER_INDEX_ERROR = "householder index {k} out of range for length {n}"


# =============================================================================
# Matrix
# =============================================================================


class Matrix:
    """Dense column-major matrix of a floating element type.

    Attributes:
        rows: Number of rows.
        cols: Number of columns.
    """

    __slots__ = ("_a",)

    def __init__(
        self,
        rows: int,
        cols: int,
        data: Sequence[float] | FloatArray,
        *,
        dtype: DTypeLike | None = None,
    ) -> None:
        """Create a matrix from a flat column-major buffer.

        Args:
            rows: Number of rows.
            cols: Number of columns.
            data: Flat buffer of length rows*cols in column-major order.
            dtype: Optional floating dtype; inferred from data if None.

        Raises:
            DimensionError: If the buffer is not flat or has the wrong length.
        """
        if rows < 0 or cols < 0:
            raise DimensionError(_NEGATIVE_DIM_ERROR.format(rows=rows, cols=cols))

        flat = as_float_array(data, dtype)
        if flat.ndim != 1:
            raise DimensionError(_DATA_NDIM_ERROR.format(ndim=flat.ndim))
        if flat.size != rows * cols:
            raise DimensionError(
                _DATA_LEN_ERROR.format(actual=flat.size, expected=rows * cols)
            )

        self._a: FloatArray = np.array(
            flat.reshape((rows, cols), order="F"), order="F", copy=True
        )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def _wrap(cls, arr: FloatArray) -> Matrix:
        """Wrap a 2D array without validation (takes ownership)."""
        obj = cls.__new__(cls)
        obj._a = np.asfortranarray(arr)
        return obj

    @classmethod
    def from_numpy(cls, arr: object, *, dtype: DTypeLike | None = None) -> Matrix:
        """Create a matrix from a 2D array-like (copied).

        Args:
            arr: 2D array-like.
            dtype: Optional floating dtype.

        Raises:
            DimensionError: If the input is not 2D.

        Returns:
            New Matrix.
        """
        a = as_float_array(arr, dtype)
        if a.ndim != 2:
            raise DimensionError(_MATRIX_NDIM_ERROR.format(ndim=a.ndim))
        return cls._wrap(np.array(a, order="F", copy=True))

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[float]],
        *,
        dtype: DTypeLike | None = None,
    ) -> Matrix:
        """Create a matrix from a row-major nested sequence.

        Args:
            rows: Sequence of equally sized rows.
            dtype: Optional floating dtype.

        Raises:
            DimensionError: If rows are ragged.

        Returns:
            New Matrix.
        """
        lengths = {len(row) for row in rows}
        if len(lengths) > 1:
            raise DimensionError(_ROWS_RAGGED_ERROR)
        if not rows:
            return cls.zeros(0, 0, dtype=dtype)
        return cls.from_numpy(np.asarray(rows), dtype=dtype)

    @classmethod
    def zeros(cls, rows: int, cols: int, *, dtype: DTypeLike = DEFAULT_DTYPE) -> Matrix:
        """Return a rows x cols matrix of zeros."""
        return cls._wrap(np.zeros((rows, cols), dtype=resolve_dtype(0.0, dtype)))

    @classmethod
    def identity(cls, n: int, *, dtype: DTypeLike = DEFAULT_DTYPE) -> Matrix:
        """Return the n x n identity matrix."""
        return cls._wrap(np.eye(n, dtype=resolve_dtype(0.0, dtype)))

    one = identity

    # ------------------------------------------------------------------
    # Shape / storage
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        """Number of rows."""
        return int(self._a.shape[0])

    @property
    def cols(self) -> int:
        """Number of columns."""
        return int(self._a.shape[1])

    @property
    def shape(self) -> tuple[int, int]:
        """Return (rows, cols)."""
        return self.rows, self.cols

    def dim(self) -> tuple[int, int]:
        """Return (rows, cols)."""
        return self.shape

    @property
    def dtype(self) -> np.dtype:
        """Element dtype."""
        return self._a.dtype

    @property
    def data(self) -> FloatArray:
        """Flat column-major view of the buffer (read-only)."""
        view = self._a.ravel(order="F")
        view.flags.writeable = False
        return view

    def is_square(self) -> bool:
        """Return True if rows == cols."""
        return self.rows == self.cols

    def to_numpy(self) -> FloatArray:
        """Return a 2D ndarray copy."""
        return np.array(self._a, copy=True)

    def clone(self) -> Matrix:
        """Return a deep copy."""
        return Matrix._wrap(np.array(self._a, order="F", copy=True))

    def __array__(self, dtype: DTypeLike | None = None, copy: bool | None = None) -> FloatArray:
        arr = self._a if dtype is None else self._a.astype(dtype)
        if copy:
            return np.array(arr, copy=True)
        return arr

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def __getitem__(self, key: Any) -> Any:
        out = self._a[key]
        if np.ndim(out) == 0:
            return out
        if out.ndim == 2:
            return Matrix._wrap(np.array(out, order="F", copy=True))
        # 1D slice: a fixed row index yields a row vector.
        row_fixed = isinstance(key, (int, np.integer)) or (
            isinstance(key, tuple) and isinstance(key[0], (int, np.integer))
        )
        return Vector(out, orientation="row" if row_fixed else "column")

    def __setitem__(self, key: Any, value: object) -> None:
        self._a[key] = np.asarray(value)

    def get_row(self, i: int) -> Vector:
        """Return row i as a row vector."""
        return Vector(self._a[i, :], orientation="row")

    def get_column(self, j: int) -> Vector:
        """Return column j as a column vector."""
        return Vector(self._a[:, j], orientation="column")

    def diag(self) -> Vector:
        """Return the main diagonal as a column vector."""
        return Vector(np.diag(self._a), orientation="column")

    def transpose(self) -> Matrix:
        """Return the transpose."""
        return Matrix._wrap(np.array(self._a.T, order="F", copy=True))

    @property
    def T(self) -> Matrix:  # noqa: N802
        """Return the transpose."""
        return self.transpose()

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _elementwise(
        self,
        other: object,
        op: Callable[[FloatArray, Any], FloatArray],
    ) -> Matrix:
        if isinstance(other, Matrix):
            if other.shape != self.shape:
                raise DimensionError(
                    _SHAPE_MISMATCH_ERROR.format(left=self.shape, right=other.shape)
                )
            return Matrix._wrap(op(self._a, other._a))
        if isinstance(other, (Real, np.floating, np.integer)):
            return Matrix._wrap(op(self._a, float(other)))
        return NotImplemented

    def __add__(self, other: object) -> Matrix:
        return self._elementwise(other, np.add)

    def __radd__(self, other: object) -> Matrix:
        return self._elementwise(other, np.add)

    def __sub__(self, other: object) -> Matrix:
        return self._elementwise(other, np.subtract)

    def __rsub__(self, other: object) -> Matrix:
        return self._elementwise(other, lambda a, b: np.subtract(b, a))

    def __mul__(self, other: object) -> Matrix:
        if isinstance(other, (Real, np.floating, np.integer)):
            return Matrix._wrap(self._a * float(other))
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other: object) -> Matrix:
        if isinstance(other, (Real, np.floating, np.integer)):
            return Matrix._wrap(self._a / float(other))
        return NotImplemented

    def __neg__(self) -> Matrix:
        return Matrix._wrap(-self._a)

    def __matmul__(self, other: object) -> Matrix | Vector:
        if isinstance(other, Matrix):
            if self.cols != other.rows:
                raise DimensionError(
                    _MATMUL_ERROR.format(left=self.shape, right=other.shape)
                )
            return Matrix._wrap(self._a @ other._a)
        if isinstance(other, Vector):
            if not other.is_column or self.cols != len(other):
                raise DimensionError(
                    _MATMUL_ERROR.format(left=self.shape, right=other.dim())
                )
            return Vector(self._a @ other.to_numpy(), orientation="column")
        return NotImplemented

    # ------------------------------------------------------------------
    # Comparison / display
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._a, other._a))

    __hash__ = None  # type: ignore[assignment]

    def allclose(self, other: Matrix, *, rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        """Return True if other has the same shape and is elementwise close."""
        return self.shape == other.shape and bool(
            np.allclose(self._a, other._a, rtol=rtol, atol=atol)
        )

    def __repr__(self) -> str:
        return f"Matrix({self.rows}, {self.cols}, dtype={self.dtype}, data=\n{self._a})"


# =============================================================================
# Vector
# =============================================================================


class Vector:
    """Dense row or column vector.

    The orientation determines how the vector composes with matrices:
    `Matrix @ column -> column`, `row @ Matrix -> row`, `row @ column -> scalar`.
    """

    __slots__ = ("_orientation", "_v")

    def __init__(
        self,
        data: Sequence[float] | FloatArray,
        orientation: Orientation = "column",
        *,
        dtype: DTypeLike | None = None,
    ) -> None:
        """Create a vector.

        Args:
            data: 1D array-like of elements.
            orientation: "column" (n x 1) or "row" (1 x n).
            dtype: Optional floating dtype.

        Raises:
            DimensionError: If data is not 1D.
            ValueError: If the orientation is unknown.
        """
        if orientation not in ("column", "row"):
            raise ValueError(_ORIENTATION_ERROR.format(orientation=orientation))
        arr = as_float_array(data, dtype)
        if arr.ndim != 1:
            raise DimensionError(_VECTOR_NDIM_ERROR.format(ndim=arr.ndim))
        self._v: FloatArray = np.array(arr, copy=True)
        self._orientation: Orientation = orientation

    @classmethod
    def new_column(cls, data: Sequence[float] | FloatArray) -> Vector:
        """Create a column vector."""
        return cls(data, orientation="column")

    @classmethod
    def new_row(cls, data: Sequence[float] | FloatArray) -> Vector:
        """Create a row vector."""
        return cls(data, orientation="row")

    @classmethod
    def zeros(
        cls,
        n: int,
        orientation: Orientation = "column",
        *,
        dtype: DTypeLike = DEFAULT_DTYPE,
    ) -> Vector:
        """Return a zero vector of length n."""
        return cls(np.zeros(n, dtype=resolve_dtype(0.0, dtype)), orientation)

    # ------------------------------------------------------------------
    # Shape / storage
    # ------------------------------------------------------------------

    @property
    def orientation(self) -> Orientation:
        """Return "column" or "row"."""
        return self._orientation

    @property
    def is_column(self) -> bool:
        """True for a column vector."""
        return self._orientation == "column"

    @property
    def is_row(self) -> bool:
        """True for a row vector."""
        return self._orientation == "row"

    def dim(self) -> tuple[int, int]:
        """Return (n, 1) for a column vector, (1, n) for a row vector."""
        n = int(self._v.size)
        return (n, 1) if self.is_column else (1, n)

    @property
    def shape(self) -> tuple[int, int]:
        """Return the 2D shape implied by the orientation."""
        return self.dim()

    @property
    def dtype(self) -> np.dtype:
        """Element dtype."""
        return self._v.dtype

    def __len__(self) -> int:
        return int(self._v.size)

    def __iter__(self) -> Iterator[float]:
        return iter(self._v.tolist())

    def to_numpy(self) -> FloatArray:
        """Return a 1D ndarray copy."""
        return np.array(self._v, copy=True)

    def to_matrix(self) -> Matrix:
        """Return the vector as an n x 1 or 1 x n Matrix."""
        return Matrix._wrap(np.array(self._v.reshape(self.dim()), order="F", copy=True))

    def clone(self) -> Vector:
        """Return a deep copy."""
        return Vector(self._v, self._orientation)

    def __array__(self, dtype: DTypeLike | None = None, copy: bool | None = None) -> FloatArray:
        arr = self._v if dtype is None else self._v.astype(dtype)
        if copy:
            return np.array(arr, copy=True)
        return arr

    def __getitem__(self, key: int | slice) -> Any:
        out = self._v[key]
        if np.ndim(out) == 0:
            return out
        return Vector(out, self._orientation)

    def __setitem__(self, key: int | slice, value: object) -> None:
        self._v[key] = np.asarray(value)

    def transpose(self) -> Vector:
        """Return the vector with flipped orientation."""
        return Vector(self._v, "row" if self.is_column else "column")

    @property
    def T(self) -> Vector:  # noqa: N802
        """Return the vector with flipped orientation."""
        return self.transpose()

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _elementwise(
        self,
        other: object,
        op: Callable[[FloatArray, Any], FloatArray],
    ) -> Vector:
        if isinstance(other, Vector):
            if other.dim() != self.dim():
                raise DimensionError(
                    _SHAPE_MISMATCH_ERROR.format(left=self.dim(), right=other.dim())
                )
            return Vector(op(self._v, other._v), self._orientation)
        if isinstance(other, (Real, np.floating, np.integer)):
            return Vector(op(self._v, float(other)), self._orientation)
        return NotImplemented

    def __add__(self, other: object) -> Vector:
        return self._elementwise(other, np.add)

    def __radd__(self, other: object) -> Vector:
        return self._elementwise(other, np.add)

    def __sub__(self, other: object) -> Vector:
        return self._elementwise(other, np.subtract)

    def __rsub__(self, other: object) -> Vector:
        return self._elementwise(other, lambda a, b: np.subtract(b, a))

    def __mul__(self, other: object) -> Vector:
        if isinstance(other, (Real, np.floating, np.integer)):
            return Vector(self._v * float(other), self._orientation)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other: object) -> Vector:
        if isinstance(other, (Real, np.floating, np.integer)):
            return Vector(self._v / float(other), self._orientation)
        return NotImplemented

    def __neg__(self) -> Vector:
        return Vector(-self._v, self._orientation)

    def __matmul__(self, other: object) -> Any:
        if isinstance(other, Vector):
            if len(other) != len(self) or self.orientation == other.orientation:
                raise DimensionError(
                    _MATMUL_ERROR.format(left=self.dim(), right=other.dim())
                )
            if self.is_row:
                return self._v @ other._v
            return Matrix._wrap(np.outer(self._v, other._v))
        if isinstance(other, Matrix):
            if not self.is_row or len(self) != other.rows:
                raise DimensionError(
                    _MATMUL_ERROR.format(left=self.dim(), right=other.shape)
                )
            return Vector(self._v @ other.to_numpy(), orientation="row")
        return NotImplemented

    def dot(self, other: Vector) -> float:
        """Return the inner product, ignoring orientation."""
        if len(other) != len(self):
            raise DimensionError(
                _SHAPE_MISMATCH_ERROR.format(left=len(self), right=len(other))
            )
        return float(self._v @ other._v)

    def norm(self, p: float = 2.0) -> float:
        """Return the p-norm."""
        return float(np.linalg.norm(self._v, ord=p))

    def abs(self) -> Vector:
        """Return the elementwise absolute value."""
        return Vector(np.abs(self._v), self._orientation)

    def argmax(self) -> int:
        """Return the index of the largest element (first one on ties)."""
        return int(np.argmax(self._v))

    # ------------------------------------------------------------------
    # Comparison / display
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self.dim() == other.dim() and bool(np.array_equal(self._v, other._v))

    __hash__ = None  # type: ignore[assignment]

    def allclose(self, other: Vector, *, rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        """Return True if other has the same shape and is elementwise close."""
        return self.dim() == other.dim() and bool(
            np.allclose(self._v, other._v, rtol=rtol, atol=atol)
        )

    def __repr__(self) -> str:
        return f"Vector({self._v.tolist()}, orientation={self._orientation!r})"


# =============================================================================
# Coercion helpers
# =============================================================================


def as_matrix(x: object, *, dtype: DTypeLike | None = None) -> Matrix:
    """Coerce a Matrix, Vector or 2D array-like into a Matrix.

    Args:
        x: Input object.
        dtype: Optional floating dtype for array-like input.

    Returns:
        Matrix (the same object if x already is one).
    """
    if isinstance(x, Matrix):
        return x
    if isinstance(x, Vector):
        return x.to_matrix()
    return Matrix.from_numpy(x, dtype=dtype)


def as_vector(x: object, *, dtype: DTypeLike | None = None) -> Vector:
    """Coerce a Vector, single-row/column Matrix or 1D array-like into a Vector.

    Args:
        x: Input object.
        dtype: Optional floating dtype for array-like input.

    Raises:
        DimensionError: If x is 2D with neither dimension equal to 1.

    Returns:
        Vector (the same object if x already is one).
    """
    if isinstance(x, Vector):
        return x
    arr = as_float_array(x, dtype)
    if arr.ndim == 1:
        return Vector(arr, "column")
    if arr.ndim == 2 and arr.shape[1] == 1:
        return Vector(arr[:, 0], "column")
    if arr.ndim == 2 and arr.shape[0] == 1:
        return Vector(arr[0, :], "row")
    raise DimensionError(_NOT_A_VECTOR_ERROR.format(shape=arr.shape))


def unwrap_rhs(rhs: object) -> tuple[FloatArray, Callable[[FloatArray], Any]]:
    """Split a right-hand side into a raw array and a function restoring its type.

    Vectors become 1D arrays, matrices 2D arrays; ndarrays pass through.

    Args:
        rhs: Vector, Matrix or array-like right-hand side.

    Returns:
        Tuple of (array, rewrap) where rewrap(out) rebuilds the input's type.
    """
    if isinstance(rhs, Vector):
        orientation = rhs.orientation
        return rhs.to_numpy(), lambda out: Vector(out, orientation)
    if isinstance(rhs, Matrix):
        return rhs.to_numpy(), lambda out: Matrix.from_numpy(out)
    arr = as_float_array(rhs)
    return arr, lambda out: cast("FloatArray", out)


# =============================================================================
# Elementary reflectors
# =============================================================================


def householder_vector(v: object, k: int) -> FloatArray | None:
    """Return the unit vector u of the reflector zeroing v[k+1:].

    The reflector is `I - 2 u u^T` restricted to indices k..n-1. Returns None
    when the entries below position k are already zero.

    Args:
        v: 1D array-like.
        k: Index of the entry that keeps the norm of v[k:].

    Raises:
        DimensionError: If k is out of range.

    Returns:
        Unit vector of length n-k, or None.
    """
    x = as_float_array(v).reshape(-1)
    n = x.size
    if k < 0 or k >= n:
        raise DimensionError(_HOUSEHOLDER_INDEX_ERROR.format(k=k, n=n))

    tail = x[k:]
    if not np.any(tail[1:]):
        return None

    alpha = -np.copysign(np.linalg.norm(tail), tail[0])
    u = np.array(tail, copy=True)
    u[0] -= alpha
    return u / np.linalg.norm(u)


def householder(v: Vector | FloatArray, k: int) -> Matrix:
    """Return the Householder reflector that zeroes the entries of v below k.

    Args:
        v: Vector whose entries k+1.. are annihilated.
        k: Pivot index.

    Returns:
        Symmetric orthogonal n x n Matrix (identity if nothing to annihilate).
    """
    x = as_float_array(v).reshape(-1)
    n = x.size
    p = np.eye(n, dtype=x.dtype)
    u = householder_vector(x, k)
    if u is not None:
        p[k:, k:] -= 2.0 * np.outer(u, u)
    return Matrix._wrap(p)
