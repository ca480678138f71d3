# linode_engine/src/linode_engine/ode_problem.py
"""ODE problem descriptors and trajectories.

A problem is any object exposing:

    func(t, x)      -> dx/dt            (ExplicitODE)
    time_span()     -> (t0, t1)
    init_cond()     -> x0
    jacobian(t, x)  -> df/dx            (ImplicitODE only)

`ODEProblem` is the concrete dataclass wrapping plain callables. Problems are
read-only descriptors; steppers query them and never mutate them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

from .errors import raise_dimension_error
from .scalar import as_float_array

if TYPE_CHECKING:
    from .scalar import FloatArray

RHSFunction = Callable[[float, "FloatArray"], object]
JacobianFunction = Callable[[float, "FloatArray"], object]

_TIME_SPAN_ORDER_ERROR = "time span must satisfy t0 <= t1; got ({t0}, {t1})"
_TIME_SPAN_FINITE_ERROR = "time span must be finite; got ({t0}, {t1})"
_NO_JACOBIAN_ERROR = "problem has no jacobian; implicit methods require one"
_EMPTY_TRAJECTORY_ERROR = "trajectory is empty"
_TRAJECTORY_LENGTH_ERROR = "times ({n_t}) and states ({n_x}) differ in length"


@runtime_checkable
class ExplicitODE(Protocol):
    """Initial value problem x' = f(t, x)."""

    def func(self, t: float, x: FloatArray) -> object:
        """Return f(t, x)."""
        ...

    def time_span(self) -> tuple[float, float]:
        """Return (t0, t1)."""
        ...

    def init_cond(self) -> object:
        """Return x(t0)."""
        ...


@runtime_checkable
class ImplicitODE(ExplicitODE, Protocol):
    """Explicit problem that also provides the Jacobian df/dx."""

    def jacobian(self, t: float, x: FloatArray) -> object:
        """Return df/dx at (t, x) as an (n, n) matrix-like."""
        ...


@dataclass(frozen=True, eq=False)
class ODEProblem:
    """Initial value problem built from callables.

    Attributes:
        rhs: Right-hand side f(t, x).
        t_span: Integration interval (t0, t1).
        x0: Initial state.
        jac: Optional Jacobian df/dx(t, x).
    """

    rhs: RHSFunction
    t_span: tuple[float, float]
    x0: Sequence[float] | FloatArray
    jac: JacobianFunction | None = None

    def func(self, t: float, x: FloatArray) -> object:
        """Return f(t, x)."""
        return self.rhs(t, x)

    def time_span(self) -> tuple[float, float]:
        """Return (t0, t1)."""
        return self.t_span

    def init_cond(self) -> FloatArray:
        """Return a fresh copy of the initial state."""
        return np.array(as_float_array(self.x0), copy=True).reshape(-1)

    def jacobian(self, t: float, x: FloatArray) -> object:
        """Return df/dx.

        Raises:
            TypeError: If the problem was built without a Jacobian.
        """
        if self.jac is None:
            raise TypeError(_NO_JACOBIAN_ERROR)
        return self.jac(t, x)


@dataclass(frozen=True, slots=True, eq=False)
class Trajectory:
    """Accepted (time, state) pairs of one solve.

    Unpacks as `times, states = trajectory`.

    Attributes:
        times: Strictly increasing times, shape (n,).
        states: States, shape (n, dim); row i belongs to times[i].
    """

    times: FloatArray
    states: FloatArray

    def __post_init__(self) -> None:
        if self.times.shape[0] != self.states.shape[0]:
            raise ValueError(
                _TRAJECTORY_LENGTH_ERROR.format(
                    n_t=self.times.shape[0], n_x=self.states.shape[0]
                )
            )

    @classmethod
    def from_lists(cls, times: list[float], states: list[FloatArray]) -> Trajectory:
        """Freeze the lists accumulated by a stepper."""
        t_arr = np.asarray(times, dtype=np.float64)
        x_arr = np.array(states) if states else np.empty((0, 0))
        t_arr.flags.writeable = False
        x_arr.flags.writeable = False
        return cls(times=t_arr, states=x_arr)

    def __iter__(self) -> Iterator[FloatArray]:
        yield self.times
        yield self.states

    def __len__(self) -> int:
        return int(self.times.shape[0])

    @property
    def final_time(self) -> float:
        """Last recorded time."""
        if len(self) == 0:
            raise IndexError(_EMPTY_TRAJECTORY_ERROR)
        return float(self.times[-1])

    @property
    def final_state(self) -> FloatArray:
        """Last recorded state."""
        if len(self) == 0:
            raise IndexError(_EMPTY_TRAJECTORY_ERROR)
        return self.states[-1]


# =============================================================================
# Problem access helpers used by the steppers
# =============================================================================


def time_span_of(problem: ExplicitODE) -> tuple[float, float]:
    """Return a validated (t0, t1).

    Raises:
        ValueError: If t0 > t1 or either bound is not finite.
    """
    t0, t1 = (float(v) for v in problem.time_span())
    if not (np.isfinite(t0) and np.isfinite(t1)):
        raise ValueError(_TIME_SPAN_FINITE_ERROR.format(t0=t0, t1=t1))
    if t0 > t1:
        raise ValueError(_TIME_SPAN_ORDER_ERROR.format(t0=t0, t1=t1))
    return t0, t1


def initial_state(problem: ExplicitODE) -> FloatArray:
    """Return the initial condition as a fresh 1D float array."""
    return np.array(as_float_array(problem.init_cond()), copy=True).reshape(-1)


def evaluate_rhs(problem: ExplicitODE, t: float, x: FloatArray) -> FloatArray:
    """Evaluate f(t, x) and check it matches the state shape.

    Raises:
        DimensionError: If f returns the wrong number of components.
    """
    dx = as_float_array(problem.func(t, x)).reshape(-1)
    if dx.shape != x.shape:
        raise_dimension_error(name="rhs output", expected=str(x.shape), got=dx.shape)
    return dx


def evaluate_jacobian(problem: ImplicitODE, t: float, x: FloatArray) -> FloatArray:
    """Evaluate df/dx(t, x) as an (n, n) array.

    Raises:
        DimensionError: If the Jacobian is not (n, n).
    """
    jac = as_float_array(np.asarray(problem.jacobian(t, x)))
    n = x.shape[0]
    if jac.ndim == 0 and n == 1:
        jac = jac.reshape(1, 1)
    if jac.shape != (n, n):
        raise_dimension_error(name="jacobian", expected=f"({n}, {n})", got=jac.shape)
    return jac
