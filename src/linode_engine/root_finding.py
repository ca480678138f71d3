# linode_engine/src/linode_engine/root_finding.py
"""Newton-Raphson root finding for systems g(z) = 0.

The function object supplies the residual and its Jacobian; each iteration
solves J(z) dz = g(z) through the solve facade and updates z <- z - dz.
Iteration stops once ||dz||_2 < tolerance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import numpy as np

from .errors import RootFindingError, raise_dimension_error
from .linalg import solve
from .scalar import as_float_array

if TYPE_CHECKING:
    from .scalar import FloatArray

_SINGULAR_JACOBIAN_ERROR = "Jacobian is singular at iteration {iteration}"
_NOT_CONVERGED_ERROR = (
    "Newton-Raphson did not converge in {max_iter} iterations "
    "(last step norm {step_norm:.3e}, tolerance {tolerance:.3e})"
)
_NON_FINITE_ERROR = "Newton-Raphson produced a non-finite iterate at iteration {iteration}"
_MAX_ITER_ERROR = "max_iter must be >= 1"
_TOLERANCE_ERROR = "tolerance must be > 0"


class RootFunction(Protocol):
    """Residual g(z) with Jacobian dg/dz."""

    def eval(self, z: FloatArray) -> FloatArray:
        """Return g(z), same length as z."""
        ...

    def jacobian(self, z: FloatArray) -> object:
        """Return dg/dz as an (n, n) matrix-like."""
        ...


@dataclass(frozen=True, slots=True)
class NewtonRaphson:
    """Newton-Raphson iteration with an absolute step tolerance.

    Attributes:
        max_iter: Maximum number of Newton updates.
        tolerance: Convergence threshold on ||dz||_2.
    """

    max_iter: int = 100
    tolerance: float = 1e-8

    def __post_init__(self) -> None:
        if self.max_iter < 1:
            raise ValueError(_MAX_ITER_ERROR)
        if not self.tolerance > 0.0:
            raise ValueError(_TOLERANCE_ERROR)

    def find_root(self, function: RootFunction, x0: object) -> FloatArray:
        """Find z with g(z) = 0 starting from x0.

        Args:
            function: Residual and Jacobian provider.
            x0: Initial guess (1D array-like).

        Raises:
            RootFindingError: If the Jacobian is singular, an iterate becomes
                non-finite, or the iteration budget runs out.

        Returns:
            The root as a 1D ndarray.
        """
        z = np.array(as_float_array(x0), copy=True).reshape(-1)
        step_norm = float("inf")

        for iteration in range(1, self.max_iter + 1):
            g = as_float_array(function.eval(z)).reshape(-1)
            if g.shape != z.shape:
                raise_dimension_error(name="residual", expected=str(z.shape), got=g.shape)

            dz = solve(function.jacobian(z), g)
            if dz is None:
                raise RootFindingError(_SINGULAR_JACOBIAN_ERROR.format(iteration=iteration))

            z = z - dz
            if not np.all(np.isfinite(z)):
                raise RootFindingError(_NON_FINITE_ERROR.format(iteration=iteration))

            step_norm = float(np.linalg.norm(dz))
            if step_norm < self.tolerance:
                return z

        raise RootFindingError(
            _NOT_CONVERGED_ERROR.format(
                max_iter=self.max_iter, step_norm=step_norm, tolerance=self.tolerance
            )
        )
