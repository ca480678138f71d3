# linode_engine/src/linode_engine/scalar.py
"""Scalar capability set.

Every algorithm in linode_engine is parameterized by a single floating-point
element type. NumPy's floating dtypes provide the required capabilities
(ordering, abs, sqrt/pow/exp, exact zero/one, conversion from float64 and
integer literals), so the capability set is expressed as a dtype policy:

- floating inputs keep their dtype (float32, float64, longdouble),
- integer and boolean inputs are promoted to float64,
- complex inputs are rejected.
"""

from __future__ import annotations

from typing import Any, Final, TypeAlias

import numpy as np
import numpy.typing as npt
from numpy.typing import DTypeLike

FloatArray: TypeAlias = npt.NDArray[np.floating[Any]]
ScalarType: TypeAlias = np.float32 | np.float64 | np.longdouble

DEFAULT_DTYPE: Final = np.dtype(np.float64)

_COMPLEX_ERROR = "complex element type {dtype} is not supported"
_NON_NUMERIC_ERROR = "element type {dtype} is not numeric"


def resolve_dtype(x: object, dtype: DTypeLike | None = None) -> np.dtype:
    """Resolve the floating dtype an algorithm should run in.

    Args:
        x: Array-like input.
        dtype: Optional explicit dtype overriding inference.

    Raises:
        ValueError: If the resolved element type is complex or non-numeric.

    Returns:
        A floating NumPy dtype.
    """
    resolved = np.dtype(dtype) if dtype is not None else np.asarray(x).dtype

    if np.issubdtype(resolved, np.complexfloating):
        raise ValueError(_COMPLEX_ERROR.format(dtype=resolved))
    if np.issubdtype(resolved, np.floating):
        return resolved
    if np.issubdtype(resolved, np.integer) or np.issubdtype(resolved, np.bool_):
        return DEFAULT_DTYPE
    raise ValueError(_NON_NUMERIC_ERROR.format(dtype=resolved))


def as_float_array(x: object, dtype: DTypeLike | None = None) -> FloatArray:
    """Convert input to a floating ndarray following the dtype policy.

    Args:
        x: Array-like input.
        dtype: Optional explicit dtype.

    Returns:
        Floating ndarray (a copy only when conversion is needed).
    """
    return np.asarray(x, dtype=resolve_dtype(x, dtype))


def machine_epsilon(dtype: DTypeLike = DEFAULT_DTYPE) -> float:
    """Return the machine epsilon of a floating dtype."""
    return float(np.finfo(resolve_dtype(0.0, dtype)).eps)
