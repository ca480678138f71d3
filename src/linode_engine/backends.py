# linode_engine/src/linode_engine/backends.py
"""Numerical kernels behind the decomposition engine.

Two backends implement the same kernel contract:

- NativeBackend ("native"): portable reference implementations written with
  NumPy array operations (pivoted Gaussian elimination, Cholesky-Banachiewicz,
  Givens QR, Householder Hessenberg reduction, substitution loops).
- LapackBackend ("lapack"): the same factorizations delegated to LAPACK
  through scipy.linalg (getrf, potrf, geqrf/orgqr, gehrd/orghr, trtrs).

Kernels work on plain 2D ndarrays and return raw factors; the decomposition
layer (decompositions.py) owns validation, sign normalization and the result
objects, so both backends feed one algorithm.

Backend selection:
    The active backend is resolved once from the LINODE_ENGINE_BACKEND
    environment variable when this module is imported (default "lapack") and
    may be replaced explicitly with `set_backend` (or `config.configure`).
    Individual calls never choose a backend.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Literal, TypeAlias

import numpy as np
from scipy.linalg import get_lapack_funcs, hessenberg, qr, solve_triangular

from .errors import ConfigError
from .matrix import householder_vector
from .scalar import machine_epsilon
from .substitution import backward_substitute, forward_substitute

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from .scalar import FloatArray

BackendName: TypeAlias = Literal["native", "lapack"]

BACKEND_ENV_VAR: Final[str] = "LINODE_ENGINE_BACKEND"
DEFAULT_BACKEND: Final[BackendName] = "lapack"

_UNKNOWN_BACKEND_ERROR = "Unknown backend: {name!r}; expected one of {choices}"
_LAPACK_ARGUMENT_ERROR = "Internal error: LAPACK {routine} rejected argument {arg}"


def pivot_tolerance(a: FloatArray) -> float:
    """Return the magnitude at or below which an LU pivot counts as zero.

    The threshold is max(m, n) * eps * max|A|, so rank-deficient input is
    flagged the same way whether elimination leaves an exact zero or a
    rounding residue.
    """
    if a.size == 0:
        return 0.0
    return max(a.shape) * machine_epsilon(a.dtype) * float(np.max(np.abs(a)))


@dataclass(frozen=True, slots=True)
class LUFactors:
    """Raw output of an LU kernel.

    Attributes:
        lower: Unit lower-trapezoidal factor, shape (m, k).
        upper: Upper-trapezoidal factor, shape (k, n).
        perm: Row permutation; row i of P @ A is row perm[i] of A.
        singular: True if a pivot at or below pivot_tolerance was met.
    """

    lower: FloatArray
    upper: FloatArray
    perm: NDArray[np.intp]
    singular: bool


# =============================================================================
# Kernel contract
# =============================================================================


class LinalgBackend(ABC):
    """Kernel contract shared by the portable and LAPACK backends."""

    name: BackendName

    @abstractmethod
    def lu(self, a: FloatArray) -> LUFactors:
        """Factor P A = L U with partial pivoting."""

    @abstractmethod
    def cholesky(self, a: FloatArray) -> FloatArray | None:
        """Return lower L with A = L L^T, or None if A is not positive definite."""

    @abstractmethod
    def qr(self, a: FloatArray) -> tuple[FloatArray, FloatArray]:
        """Return economy (Q, R) with A = Q R."""

    @abstractmethod
    def hessenberg(self, a: FloatArray) -> tuple[FloatArray, FloatArray]:
        """Return (Q, H) with A = Q H Q^T and H upper Hessenberg."""

    @abstractmethod
    def solve_lower(
        self,
        lower: FloatArray,
        b: FloatArray,
        *,
        unit_diagonal: bool = False,
    ) -> FloatArray:
        """Solve L x = b for lower-triangular L."""

    @abstractmethod
    def solve_upper(self, upper: FloatArray, b: FloatArray) -> FloatArray:
        """Solve U x = b for upper-triangular U."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# =============================================================================
# Portable reference backend
# =============================================================================


class NativeBackend(LinalgBackend):
    """Portable NumPy implementations of every kernel."""

    name: BackendName = "native"

    def lu(self, a: FloatArray) -> LUFactors:
        """Gaussian elimination with partial pivoting.

        The pivot is the first entry of maximal magnitude in the active column.
        A column whose active part is at or below pivot_tolerance needs no
        elimination; it is left in place and recorded as a zero pivot.

        Args:
            a: Input matrix, shape (m, n).

        Returns:
            LU factors.
        """
        m, n = a.shape
        k = min(m, n)
        work = np.array(a, copy=True)
        lower = np.zeros((m, k), dtype=work.dtype)
        perm = np.arange(m, dtype=np.intp)
        singular = False
        tol = pivot_tolerance(work)

        for j in range(k):
            pivot = j + int(np.argmax(np.abs(work[j:, j])))
            if abs(work[pivot, j]) <= tol:
                singular = True
                continue

            if pivot != j:
                work[[j, pivot], :] = work[[pivot, j], :]
                lower[[j, pivot], :j] = lower[[pivot, j], :j]
                perm[[j, pivot]] = perm[[pivot, j]]

            factors = work[j + 1 :, j] / work[j, j]
            lower[j + 1 :, j] = factors
            work[j + 1 :, j:] -= np.outer(factors, work[j, j:])

        np.fill_diagonal(lower, 1.0)
        upper = np.triu(work[:k, :])
        return LUFactors(lower=lower, upper=upper, perm=perm, singular=singular)

    def cholesky(self, a: FloatArray) -> FloatArray | None:
        """Row-by-row Cholesky factorization reading the lower triangle.

        Args:
            a: Symmetric matrix, shape (n, n).

        Returns:
            Lower-triangular factor, or None if a diagonal term is not positive.
        """
        n = a.shape[0]
        lower = np.zeros_like(a)

        for i in range(n):
            for j in range(i + 1):
                partial = lower[i, :j] @ lower[j, :j]
                if i == j:
                    diag = a[i, i] - partial
                    if not diag > 0.0:
                        return None
                    lower[i, j] = np.sqrt(diag)
                else:
                    lower[i, j] = (a[i, j] - partial) / lower[j, j]
        return lower

    def qr(self, a: FloatArray) -> tuple[FloatArray, FloatArray]:
        """QR factorization by Givens rotations.

        Sub-diagonal entries are zeroed column by column from the bottom up;
        each rotation acts on two adjacent rows of R and is accumulated into
        the matching columns of Q, keeping Q @ R == A throughout.

        Args:
            a: Input matrix, shape (m, n) with m >= n.

        Returns:
            Economy factors Q (m, n) and R (n, n).
        """
        m, n = a.shape
        r = np.array(a, copy=True)
        q = np.eye(m, dtype=r.dtype)

        for j in range(n):
            for i in range(m - 1, j, -1):
                b = r[i, j]
                if b == 0.0:
                    continue
                f = r[i - 1, j]
                radius = np.hypot(f, b)
                c = f / radius
                s = b / radius

                row_top = r[i - 1, j:].copy()
                r[i - 1, j:] = c * row_top + s * r[i, j:]
                r[i, j:] = -s * row_top + c * r[i, j:]
                r[i, j] = 0.0

                col_left = q[:, i - 1].copy()
                q[:, i - 1] = c * col_left + s * q[:, i]
                q[:, i] = -s * col_left + c * q[:, i]

        return q[:, :n], np.triu(r[:n, :])

    def hessenberg(self, a: FloatArray) -> tuple[FloatArray, FloatArray]:
        """Householder reduction to upper Hessenberg form.

        Step k applies the reflector P_k that zeroes column k-1 below row k on
        both sides, H <- P_k H P_k^T, and accumulates Q <- P_k Q; the returned
        orthogonal factor is Q^T so that A = Q H Q^T.

        Args:
            a: Square input matrix.

        Returns:
            Tuple (Q, H).
        """
        m = a.shape[0]
        h = np.array(a, copy=True)
        q = np.eye(m, dtype=h.dtype)

        for k in range(1, m):
            u = householder_vector(h[:, k - 1], k)
            if u is None:
                continue
            h[k:, :] -= 2.0 * np.outer(u, u @ h[k:, :])
            h[:, k:] -= 2.0 * np.outer(h[:, k:] @ u, u)
            q[k:, :] -= 2.0 * np.outer(u, u @ q[k:, :])

        return q.T.copy(), np.triu(h, -1)

    def solve_lower(
        self,
        lower: FloatArray,
        b: FloatArray,
        *,
        unit_diagonal: bool = False,
    ) -> FloatArray:
        """Forward substitution."""
        return forward_substitute(lower, b, unit_diagonal=unit_diagonal)

    def solve_upper(self, upper: FloatArray, b: FloatArray) -> FloatArray:
        """Backward substitution."""
        return backward_substitute(upper, b)


# =============================================================================
# LAPACK backend
# =============================================================================


def _lapack_input(a: FloatArray) -> FloatArray:
    """LAPACK has single and double precision routines only."""
    if a.dtype in (np.float32, np.float64):
        return np.asfortranarray(a)
    return np.asfortranarray(a, dtype=np.float64)


class LapackBackend(LinalgBackend):
    """LAPACK-backed kernels via scipy.linalg."""

    name: BackendName = "lapack"

    def lu(self, a: FloatArray) -> LUFactors:
        """Partial-pivoting LU via xGETRF.

        Args:
            a: Input matrix, shape (m, n).

        Raises:
            RuntimeError: If LAPACK reports an illegal argument.

        Returns:
            LU factors.
        """
        a_in = _lapack_input(a)
        m, n = a_in.shape
        k = min(m, n)

        (getrf,) = get_lapack_funcs(("getrf",), (a_in,))
        lu_packed, piv, info = getrf(a_in, overwrite_a=False)
        if info < 0:
            raise RuntimeError(_LAPACK_ARGUMENT_ERROR.format(routine="getrf", arg=-info))

        # piv is 0-based: row i was interchanged with row piv[i].
        perm = np.arange(m, dtype=np.intp)
        for i, p in enumerate(piv[:k]):
            perm[[i, p]] = perm[[p, i]]

        lower = np.tril(lu_packed[:, :k], -1) + np.eye(m, k, dtype=lu_packed.dtype)
        upper = np.triu(lu_packed[:k, :])
        tol = pivot_tolerance(a_in)
        singular = info > 0 or bool(np.any(np.abs(np.diag(upper)) <= tol))
        return LUFactors(lower=lower, upper=upper, perm=perm, singular=singular)

    def cholesky(self, a: FloatArray) -> FloatArray | None:
        """Cholesky factorization via xPOTRF (lower triangle).

        Args:
            a: Symmetric matrix.

        Returns:
            Lower-triangular factor, or None when xPOTRF reports a nonzero status.
        """
        a_in = _lapack_input(a)
        (potrf,) = get_lapack_funcs(("potrf",), (a_in,))
        lower, info = potrf(a_in, lower=True, clean=True, overwrite_a=False)
        if info != 0:
            return None
        return np.asarray(lower)

    def qr(self, a: FloatArray) -> tuple[FloatArray, FloatArray]:
        """Economy QR via xGEQRF/xORGQR."""
        q_mat, r_mat = qr(_lapack_input(a), mode="economic", check_finite=False)
        return np.asarray(q_mat), np.asarray(r_mat)

    def hessenberg(self, a: FloatArray) -> tuple[FloatArray, FloatArray]:
        """Hessenberg reduction via xGEHRD/xORGHR."""
        h_mat, q_mat = hessenberg(_lapack_input(a), calc_q=True, check_finite=False)
        return np.asarray(q_mat), np.triu(np.asarray(h_mat), -1)

    def solve_lower(
        self,
        lower: FloatArray,
        b: FloatArray,
        *,
        unit_diagonal: bool = False,
    ) -> FloatArray:
        """Triangular solve via xTRTRS."""
        return np.asarray(
            solve_triangular(
                lower, b, lower=True, unit_diagonal=unit_diagonal, check_finite=False
            )
        )

    def solve_upper(self, upper: FloatArray, b: FloatArray) -> FloatArray:
        """Triangular solve via xTRTRS."""
        return np.asarray(solve_triangular(upper, b, lower=False, check_finite=False))


# =============================================================================
# Selection
# =============================================================================

_BACKENDS: Final[dict[str, type[LinalgBackend]]] = {
    "native": NativeBackend,
    "lapack": LapackBackend,
}


def make_backend(name: str) -> LinalgBackend:
    """Instantiate a backend by name.

    Args:
        name: "native" or "lapack" (case-insensitive).

    Raises:
        ConfigError: If the name is unknown.

    Returns:
        New backend instance.
    """
    key = str(name).strip().lower()
    backend_cls = _BACKENDS.get(key)
    if backend_cls is None:
        raise ConfigError(
            _UNKNOWN_BACKEND_ERROR.format(name=name, choices=sorted(_BACKENDS))
        )
    return backend_cls()


def _backend_from_env() -> LinalgBackend:
    return make_backend(os.environ.get(BACKEND_ENV_VAR, DEFAULT_BACKEND))


_ACTIVE_BACKEND: LinalgBackend = _backend_from_env()


def get_backend() -> LinalgBackend:
    """Return the configured backend."""
    return _ACTIVE_BACKEND


def set_backend(backend: str | LinalgBackend) -> LinalgBackend:
    """Replace the configured backend.

    Meant to be called at configuration time, before any decomposition runs.

    Args:
        backend: Backend name or instance.

    Returns:
        The previously configured backend (so callers can restore it).
    """
    global _ACTIVE_BACKEND  # noqa: PLW0603
    previous = _ACTIVE_BACKEND
    _ACTIVE_BACKEND = backend if isinstance(backend, LinalgBackend) else make_backend(backend)
    return previous
