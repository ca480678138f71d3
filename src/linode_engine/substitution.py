# linode_engine/src/linode_engine/substitution.py
"""Forward and backward substitution for triangular systems.

Both routines accept either a single right-hand side (1D) or a batch of
right-hand sides stored as columns (2D) and share one row-by-row loop for the
two shapes: row i of the solution is a scalar for 1D input and a length-k row
for 2D input, and the update `x[i] -= T[i, :i] @ x[:i]` is valid for both.

The array kernels (`forward_substitute`, `backward_substitute`) are what the
portable backend uses; `substitute_forward` / `substitute_backward` are the
container-facing wrappers that return the same type they were given.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import numpy as np

from .errors import raise_dimension_error
from .matrix import Matrix, Vector, as_matrix, unwrap_rhs
from .scalar import FloatArray, as_float_array

if TYPE_CHECKING:
    from numpy.typing import NDArray

RHS = TypeVar("RHS", Vector, Matrix, np.ndarray)


def _validate_triangular_system(t: FloatArray, b: FloatArray) -> None:
    if t.ndim != 2 or t.shape[0] != t.shape[1]:
        raise_dimension_error(
            name="triangular factor", expected="a square 2D matrix", got=t.shape
        )
    if b.ndim not in {1, 2} or b.shape[0] != t.shape[0]:
        raise_dimension_error(
            name="right-hand side",
            expected=f"1D or 2D with {t.shape[0]} rows",
            got=b.shape,
        )


def forward_substitute(
    lower: FloatArray,
    b: FloatArray,
    *,
    unit_diagonal: bool = False,
) -> FloatArray:
    """Solve L x = b for lower-triangular L.

    Args:
        lower: Square lower-triangular array (entries above the diagonal are
            ignored).
        b: Right-hand side, shape (n,) or (n, k).
        unit_diagonal: If True, the diagonal of L is taken to be 1 and not read.

    Returns:
        Solution array with the shape of b.
    """
    lower_arr = as_float_array(lower)
    b_arr = as_float_array(b)
    _validate_triangular_system(lower_arr, b_arr)

    x: NDArray[np.floating] = np.array(
        b_arr, dtype=np.result_type(lower_arr, b_arr), copy=True
    )
    for i in range(lower_arr.shape[0]):
        x[i] -= lower_arr[i, :i] @ x[:i]
        if not unit_diagonal:
            x[i] /= lower_arr[i, i]
    return x


def backward_substitute(
    upper: FloatArray,
    b: FloatArray,
    *,
    unit_diagonal: bool = False,
) -> FloatArray:
    """Solve U x = b for upper-triangular U, from the last row upward.

    Args:
        upper: Square upper-triangular array (entries below the diagonal are
            ignored).
        b: Right-hand side, shape (n,) or (n, k).
        unit_diagonal: If True, the diagonal of U is taken to be 1 and not read.

    Returns:
        Solution array with the shape of b.
    """
    upper_arr = as_float_array(upper)
    b_arr = as_float_array(b)
    _validate_triangular_system(upper_arr, b_arr)

    x: NDArray[np.floating] = np.array(
        b_arr, dtype=np.result_type(upper_arr, b_arr), copy=True
    )
    for i in range(upper_arr.shape[0] - 1, -1, -1):
        x[i] -= upper_arr[i, i + 1 :] @ x[i + 1 :]
        if not unit_diagonal:
            x[i] /= upper_arr[i, i]
    return x


def substitute_forward(lower: Matrix | FloatArray, b: RHS) -> RHS:
    """Forward substitution returning the same container type as b.

    Args:
        lower: Lower-triangular Matrix or 2D array.
        b: Vector, Matrix or ndarray right-hand side.

    Returns:
        Solution of L x = b, typed like b.
    """
    b_arr, rewrap = unwrap_rhs(b)
    return rewrap(forward_substitute(as_matrix(lower).to_numpy(), b_arr))


def substitute_backward(upper: Matrix | FloatArray, b: RHS) -> RHS:
    """Backward substitution returning the same container type as b.

    Args:
        upper: Upper-triangular Matrix or 2D array.
        b: Vector, Matrix or ndarray right-hand side.

    Returns:
        Solution of U x = b, typed like b.
    """
    b_arr, rewrap = unwrap_rhs(b)
    return rewrap(backward_substitute(as_matrix(upper).to_numpy(), b_arr))
