# linode_engine/src/linode_engine/linalg.py
"""Solve / inverse facade over the decomposition engine.

`solve(A, rhs)` and `inv(A)` accept either a matrix (factored with LU on the
configured backend) or any object that already knows how to solve, such as a
decomposition result. Singular systems return None; shape violations raise
DimensionError.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .decompositions import dec_lu
from .errors import DimensionError
from .matrix import Matrix, as_matrix

_SQUARE_ERROR = "{op} requires a square matrix; got shape {shape}"


@runtime_checkable
class Solve(Protocol):
    """Anything that can solve A x = rhs for a fixed A."""

    def solve(self, rhs: Any) -> Any:
        """Return x typed like rhs, or None if A is singular."""
        ...


@runtime_checkable
class Inverse(Protocol):
    """Anything that can produce A^-1 for a fixed A."""

    def inv(self) -> Matrix | None:
        """Return A^-1, or None if A is singular."""
        ...


def _square(a: object, op: str) -> Matrix:
    mat = as_matrix(a)
    if not mat.is_square():
        raise DimensionError(_SQUARE_ERROR.format(op=op, shape=mat.shape))
    return mat


def solve(a: object, rhs: Any) -> Any:
    """Solve A x = rhs.

    Args:
        a: Square matrix (Matrix or 2D array-like), or an object implementing
            `Solve` (for example a CholeskyDec or QRDec).
        rhs: Vector, Matrix or ndarray right-hand side.

    Raises:
        DimensionError: If A is not square or rhs does not match its rows.

    Returns:
        Solution with the type of rhs, or None if A is singular.
    """
    if isinstance(a, Solve):
        return a.solve(rhs)
    return dec_lu(_square(a, "solve")).solve(rhs)


def inv(a: object) -> Matrix | None:
    """Return A^-1, or None if A is singular.

    Args:
        a: Square matrix, or an object implementing `Inverse`.

    Raises:
        DimensionError: If A is not square.
    """
    if isinstance(a, Inverse):
        return a.inv()
    return dec_lu(_square(a, "inv")).inv()


def det(a: object) -> float:
    """Return det(A) computed from the LU factors."""
    return dec_lu(_square(a, "det")).det()
