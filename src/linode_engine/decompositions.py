# linode_engine/src/linode_engine/decompositions.py
"""Dense matrix decompositions.

Entry points:

- dec_lu(A)         -> LUDec          P A = L U (partial pivoting)
- dec_qr(A)         -> QRDec          A = Q R   (rows >= cols, economy form)
- dec_cholesky(A)   -> CholeskyDec | None   A = L L^T for SPD A
- dec_hessenberg(A) -> HessenbergDec  A = Q H Q^T, H upper Hessenberg

Each entry point validates its preconditions, runs the configured backend
kernel (see backends.py) on a private copy of the input, and wraps the
factors in an immutable result object. Dimension violations raise
DimensionError; numerically singular or non-positive-definite input is
reported by returning None (from dec_cholesky, and from solve/inv on the
result objects).

Zero-pivot policy (LU):
    A column whose active part is at or below backends.pivot_tolerance (a
    relative threshold, so rounding residue counts as zero) is left in place
    and marked as a zero pivot; the factorization still satisfies P A = L U and
    LUDec.is_singular becomes True. solve()/inv() then return None and det()
    returns 0.

Sign normalization:
    QR and Hessenberg factors are unique only up to column signs. Both are
    normalized here (diag(R) >= 0, first subdiagonal of H >= 0) so every
    backend yields the same factors.
"""

from __future__ import annotations

import warnings
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from .backends import get_backend
from .errors import DimensionError
from .matrix import Matrix, as_matrix, unwrap_rhs

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .scalar import FloatArray

# =============================================================================
# Error / warning message constants
# =============================================================================

_SQUARE_ERROR = "{name} requires a square matrix; got shape {shape}"
_EMPTY_ERROR = "{name} requires a non-empty matrix"
_QR_SHAPE_ERROR = "QR decomposition requires rows >= cols; got shape {shape}"
_RHS_ROWS_ERROR = "right-hand side has {actual} rows; expected {expected}"
_NOT_SYMMETRIC_WARNING = (
    "dec_cholesky received a non-symmetric matrix; only its lower triangle is used"
)


def _require_square(a: Matrix, name: str) -> None:
    if not a.is_square():
        raise DimensionError(_SQUARE_ERROR.format(name=name, shape=a.shape))


def _require_non_empty(a: Matrix, name: str) -> None:
    if a.rows == 0 or a.cols == 0:
        raise DimensionError(_EMPTY_ERROR.format(name=name))


def _require_rhs_rows(b: FloatArray, rows: int) -> None:
    if b.ndim not in {1, 2} or b.shape[0] != rows:
        raise DimensionError(_RHS_ROWS_ERROR.format(actual=b.shape, expected=rows))


def _permutation_matrix(perm: NDArray[np.intp], dtype: np.dtype) -> Matrix:
    """Row i of P has its single 1 in column perm[i]."""
    m = perm.size
    p = np.zeros((m, m), dtype=dtype)
    p[np.arange(m), perm] = 1.0
    return Matrix.from_numpy(p)


def _permutation_sign(perm: NDArray[np.intp]) -> float:
    """Return +1/-1 for an even/odd permutation."""
    seen = np.zeros(perm.size, dtype=bool)
    sign = 1.0
    for start in range(perm.size):
        if seen[start]:
            continue
        length = 0
        j = start
        while not seen[j]:
            seen[j] = True
            j = int(perm[j])
            length += 1
        if length % 2 == 0:
            sign = -sign
    return sign


# =============================================================================
# Result objects
# =============================================================================


@dataclass(frozen=True, slots=True)
class LUDec:
    """LU decomposition P A = L U.

    Attributes:
        l: Unit lower-triangular factor (m x k).
        u: Upper-triangular factor (k x n).
        p: Permutation matrix (m x m) with exactly one 1 per row and column.
        perm: Compact form of p; row i of P A is row perm[i] of A.
        singular: True if the kernel met a zero pivot.
    """

    l: Matrix  # noqa: E741
    u: Matrix
    p: Matrix
    perm: NDArray[np.intp] = field(repr=False, compare=False)
    singular: bool = False

    def lup(self) -> tuple[Matrix, Matrix, Matrix]:
        """Return (L, U, P)."""
        return self.l, self.u, self.p

    @property
    def is_singular(self) -> bool:
        """True if elimination met a zero pivot."""
        return self.singular

    def _require_square(self) -> int:
        if self.l.rows != self.u.cols:
            raise DimensionError(
                _SQUARE_ERROR.format(name="LU solve", shape=(self.l.rows, self.u.cols))
            )
        return self.l.rows

    def solve(self, rhs: Any) -> Any:
        """Solve A x = rhs.

        The right-hand side is permuted, forward-substituted through L and
        backward-substituted through U using the configured backend kernels.

        Args:
            rhs: Vector, Matrix or ndarray with as many rows as A.

        Raises:
            DimensionError: If A is not square or rhs has the wrong row count.

        Returns:
            Solution typed like rhs, or None if A is singular.
        """
        n = self._require_square()
        b, rewrap = unwrap_rhs(rhs)
        _require_rhs_rows(b, n)
        if self.is_singular:
            return None

        backend = get_backend()
        y = backend.solve_lower(self.l.to_numpy(), b[self.perm], unit_diagonal=True)
        return rewrap(backend.solve_upper(self.u.to_numpy(), y))

    def inv(self) -> Matrix | None:
        """Return A^-1 by solving against the identity, or None if singular."""
        n = self._require_square()
        return self.solve(Matrix.identity(n, dtype=self.u.dtype))

    def det(self) -> float:
        """Return det(A) = sign(P) * prod(diag(U)); 0 for a singular A."""
        self._require_square()
        if self.singular:
            return 0.0
        diag = self.u.diag().to_numpy()
        return _permutation_sign(self.perm) * float(np.prod(diag))


@dataclass(frozen=True, slots=True)
class QRDec:
    """QR decomposition A = Q R (economy form).

    Attributes:
        q: Factor with orthonormal columns (m x n).
        r: Upper-triangular factor (n x n) with non-negative diagonal.
    """

    q: Matrix
    r: Matrix

    def qr(self) -> tuple[Matrix, Matrix]:
        """Return (Q, R)."""
        return self.q, self.r

    def solve(self, rhs: Any) -> Any:
        """Solve A x = rhs in the least-squares sense (exact for square A).

        Args:
            rhs: Vector, Matrix or ndarray with as many rows as A.

        Returns:
            Solution typed like rhs, or None if R is singular.
        """
        b, rewrap = unwrap_rhs(rhs)
        _require_rhs_rows(b, self.q.rows)
        r = self.r.to_numpy()
        if np.any(np.diag(r) == 0.0):
            return None
        qtb = self.q.to_numpy().T @ b
        return rewrap(get_backend().solve_upper(r, qtb))


@dataclass(frozen=True, slots=True)
class CholeskyDec:
    """Cholesky decomposition A = L L^T.

    Attributes:
        l: Lower-triangular factor with positive diagonal.
    """

    l: Matrix  # noqa: E741

    def solve(self, rhs: Any) -> Any:
        """Solve A x = rhs via L y = rhs, L^T x = y."""
        b, rewrap = unwrap_rhs(rhs)
        _require_rhs_rows(b, self.l.rows)
        backend = get_backend()
        lower = self.l.to_numpy()
        y = backend.solve_lower(lower, b)
        return rewrap(backend.solve_upper(lower.T.copy(), y))

    def inv(self) -> Matrix:
        """Return A^-1."""
        return self.solve(Matrix.identity(self.l.rows, dtype=self.l.dtype))


@dataclass(frozen=True, slots=True)
class HessenbergDec:
    """Hessenberg decomposition A = Q H Q^T.

    Iterating yields (Q, H), so `q, h = dec_hessenberg(a)` works.

    Attributes:
        q: Orthogonal factor.
        h: Upper Hessenberg factor with non-negative first subdiagonal.
    """

    q: Matrix
    h: Matrix

    def qh(self) -> tuple[Matrix, Matrix]:
        """Return (Q, H)."""
        return self.q, self.h

    def __iter__(self) -> Iterator[Matrix]:
        yield self.q
        yield self.h


# =============================================================================
# Decompositions
# =============================================================================


def dec_lu(a: object) -> LUDec:
    """LU decomposition with partial pivoting.

    Args:
        a: m x n Matrix or 2D array-like.

    Raises:
        DimensionError: If a is empty.

    Returns:
        LUDec with P A = L U.
    """
    mat = as_matrix(a)
    _require_non_empty(mat, "LU decomposition")
    factors = get_backend().lu(mat.to_numpy())
    dtype = factors.upper.dtype
    return LUDec(
        l=Matrix.from_numpy(factors.lower),
        u=Matrix.from_numpy(factors.upper),
        p=_permutation_matrix(factors.perm, dtype),
        perm=factors.perm,
        singular=factors.singular,
    )


def dec_cholesky(a: object) -> CholeskyDec | None:
    """Cholesky decomposition of a symmetric positive-definite matrix.

    Args:
        a: Square Matrix or 2D array-like.

    Raises:
        DimensionError: If a is empty or not square.

    Returns:
        CholeskyDec, or None if a is not positive definite.
    """
    mat = as_matrix(a)
    _require_square(mat, "Cholesky decomposition")
    _require_non_empty(mat, "Cholesky decomposition")

    arr = mat.to_numpy()
    if not np.allclose(arr, arr.T):
        warnings.warn(_NOT_SYMMETRIC_WARNING, RuntimeWarning, stacklevel=2)

    lower = get_backend().cholesky(arr)
    if lower is None:
        return None
    return CholeskyDec(l=Matrix.from_numpy(lower))


def dec_qr(a: object) -> QRDec:
    """QR decomposition A = Q R.

    Args:
        a: m x n Matrix or 2D array-like with m >= n.

    Raises:
        DimensionError: If a is empty or m < n.

    Returns:
        QRDec with Q (m x n) and R (n x n), diag(R) >= 0.
    """
    mat = as_matrix(a)
    if mat.rows < mat.cols:
        raise DimensionError(_QR_SHAPE_ERROR.format(shape=mat.shape))
    _require_non_empty(mat, "QR decomposition")

    q, r = get_backend().qr(mat.to_numpy())
    signs = np.where(np.diag(r) < 0.0, -1.0, 1.0).astype(r.dtype)
    return QRDec(
        q=Matrix.from_numpy(q * signs[np.newaxis, :]),
        r=Matrix.from_numpy(r * signs[:, np.newaxis]),
    )


def dec_hessenberg(a: object) -> HessenbergDec:
    """Hessenberg decomposition A = Q H Q^T.

    Args:
        a: Square, non-empty Matrix or 2D array-like.

    Raises:
        DimensionError: If a is empty or not square.

    Returns:
        HessenbergDec; unpacks as (Q, H).
    """
    mat = as_matrix(a)
    _require_square(mat, "Hessenberg decomposition")
    _require_non_empty(mat, "Hessenberg decomposition")

    q, h = get_backend().hessenberg(mat.to_numpy())

    # D = diag(signs) with signs[k+1] * signs[k] * h[k+1, k] >= 0.
    n = mat.rows
    signs = np.ones(n, dtype=h.dtype)
    for k in range(n - 1):
        signs[k + 1] = -signs[k] if h[k + 1, k] < 0.0 else signs[k]

    return HessenbergDec(
        q=Matrix.from_numpy(q * signs[np.newaxis, :]),
        h=Matrix.from_numpy(h * np.outer(signs, signs)),
    )
