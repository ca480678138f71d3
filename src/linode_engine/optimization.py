# linode_engine/src/linode_engine/optimization.py
"""Local optimization built on the solve facade.

- GaussNewton: nonlinear least squares min ||r(x)||^2; each step solves the
  linearized problem J dx ~= r through a QR decomposition.
- Newton: minimization of a twice differentiable f with an Armijo
  backtracking line search. The search direction solves H d = -grad f and
  falls back to steepest descent when that system is singular or d is not a
  sufficient descent direction (grad^T d > -rho ||grad||^2).
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Protocol

import numpy as np

from .decompositions import dec_qr
from .linalg import solve
from .scalar import as_float_array

if TYPE_CHECKING:
    from .scalar import FloatArray

_ITERS_ERROR = "iters must be >= 1; got {iters}"
_TOLERANCE_ERROR = "tolerance must be >= 0; got {tolerance}"
_SIGMA_ERROR = "sigma must be in (0, 1); got {sigma}"
_RHO_ERROR = "rho must be > 0; got {rho}"
_RANK_DEFICIENT_WARNING = "Gauss-Newton stopped at iteration {iteration}: Jacobian is rank deficient"
_LINE_SEARCH_WARNING = "Newton line search failed to decrease f at iteration {iteration}"

# Halvings before the line search gives up.
_MAX_BACKTRACKS: Final[int] = 60


class Residual(Protocol):
    """Vector residual r(x) with Jacobian dr/dx, shape (m, n), m >= n."""

    def eval(self, x: FloatArray) -> object:
        """Return r(x)."""
        ...

    def jacobian(self, x: FloatArray) -> object:
        """Return dr/dx."""
        ...


class Objective(Protocol):
    """Scalar objective with gradient and Hessian."""

    def eval(self, x: FloatArray) -> object:
        """Return f(x) (scalar or length-1 array)."""
        ...

    def jacobian(self, x: FloatArray) -> object:
        """Return the gradient (length n, or a 1 x n row)."""
        ...

    def hessian(self, x: FloatArray) -> object:
        """Return the (n, n) Hessian."""
        ...


@dataclass(frozen=True, slots=True)
class OptimResult:
    """Outcome of a minimization.

    Attributes:
        arg: Final iterate.
        n_iter: Number of iterations performed.
        converged: True if the step tolerance was met.
    """

    arg: FloatArray
    n_iter: int
    converged: bool


def _as_state(x: object) -> FloatArray:
    return np.array(as_float_array(x), copy=True).reshape(-1)


@dataclass(frozen=True, slots=True)
class GaussNewton:
    """Gauss-Newton iteration for nonlinear least squares.

    Attributes:
        iters: Maximum number of iterations.
        tolerance: Stop once ||dx||_2 <= tolerance.
    """

    iters: int = 100
    tolerance: float = 1e-10

    def __post_init__(self) -> None:
        if self.iters < 1:
            raise ValueError(_ITERS_ERROR.format(iters=self.iters))
        if self.tolerance < 0.0:
            raise ValueError(_TOLERANCE_ERROR.format(tolerance=self.tolerance))

    def minimize(self, problem: Residual, x0: object) -> OptimResult:
        """Minimize ||r(x)||^2 starting from x0.

        Args:
            problem: Residual and Jacobian provider.
            x0: Initial guess.

        Returns:
            OptimResult. A rank-deficient Jacobian stops the iteration with a
            RuntimeWarning and converged=False.
        """
        x = _as_state(x0)
        for iteration in range(1, self.iters + 1):
            r = _as_state(problem.eval(x))
            dx = dec_qr(problem.jacobian(x)).solve(r)
            if dx is None:
                warnings.warn(
                    _RANK_DEFICIENT_WARNING.format(iteration=iteration),
                    RuntimeWarning,
                    stacklevel=2,
                )
                return OptimResult(arg=x, n_iter=iteration - 1, converged=False)
            x = x - dx
            if float(np.linalg.norm(dx)) <= self.tolerance:
                return OptimResult(arg=x, n_iter=iteration, converged=True)
        return OptimResult(arg=x, n_iter=self.iters, converged=False)


@dataclass(frozen=True, slots=True)
class Newton:
    """Newton's method with Armijo backtracking.

    Attributes:
        iters: Maximum number of iterations.
        sigma: Armijo sufficient-decrease constant, in (0, 1).
        rho: Descent test constant for the Newton direction.
        tolerance: Stop once ||alpha d||_2 <= tolerance.
    """

    iters: int = 100
    sigma: float = 0.5
    rho: float = 1e-8
    tolerance: float = 1e-10

    def __post_init__(self) -> None:
        if self.iters < 1:
            raise ValueError(_ITERS_ERROR.format(iters=self.iters))
        if not 0.0 < self.sigma < 1.0:
            raise ValueError(_SIGMA_ERROR.format(sigma=self.sigma))
        if not self.rho > 0.0:
            raise ValueError(_RHO_ERROR.format(rho=self.rho))
        if self.tolerance < 0.0:
            raise ValueError(_TOLERANCE_ERROR.format(tolerance=self.tolerance))

    def _direction(self, hessian: object, grad: FloatArray) -> FloatArray:
        d = solve(hessian, -grad)
        if d is None or float(grad @ d) > -self.rho * float(grad @ grad):
            return -grad
        return d

    def minimize(self, problem: Objective, x0: object) -> OptimResult:
        """Minimize f starting from x0.

        Args:
            problem: Objective with gradient and Hessian.
            x0: Initial guess.

        Returns:
            OptimResult.
        """
        x = _as_state(x0)

        def f(z: FloatArray) -> float:
            return float(np.asarray(problem.eval(z)).reshape(-1)[0])

        for iteration in range(1, self.iters + 1):
            grad = _as_state(problem.jacobian(x))
            if not np.any(grad):
                return OptimResult(arg=x, n_iter=iteration - 1, converged=True)

            d = self._direction(problem.hessian(x), grad)
            f_x = f(x)
            slope = float(grad @ d)

            alpha = 1.0
            for _ in range(_MAX_BACKTRACKS):
                if f(x + alpha * d) <= f_x + self.sigma * alpha * slope:
                    break
                alpha /= 2.0
            else:
                warnings.warn(
                    _LINE_SEARCH_WARNING.format(iteration=iteration),
                    RuntimeWarning,
                    stacklevel=2,
                )
                return OptimResult(arg=x, n_iter=iteration, converged=False)

            step = alpha * d
            x = x + step
            if float(np.linalg.norm(step)) <= self.tolerance:
                return OptimResult(arg=x, n_iter=iteration, converged=True)

        return OptimResult(arg=x, n_iter=self.iters, converged=False)
