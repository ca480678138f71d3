# linode_engine/src/linode_engine/ode_solver.py
"""Steppers that integrate an ODE problem over its time span.

Steppers:
    - FixedStepper:         uniform step h with an explicit (or embedded) RK
                            method; the last step is clipped to land on t1.
    - ImplicitFixedStepper: uniform step h with implicit Euler.
    - AdaptiveStepper:      error-controlled step size with an embedded pair.
    - DormandPrince54Solver: AdaptiveStepper preset to Dormand-Prince 5(4).

`solve_ode(problem, method, ...)` picks the stepper from the method kind.

Adaptive step control:
    Each attempt yields (x_new, x_alt) from one set of stages. The scaled
    error is

        err = sqrt(mean(((x_new - x_alt) / (abs_tol + rel_tol * max(|x_new|, |x_alt|)))^2))

    and the step is accepted iff err <= 1. Accepted or not, the step size is
    rescaled by clamp(fac * err^(-1/(q+1)), fac_min, fac_max), q being the
    higher order of the pair; err == 0 uses fac_max.

Failure policy (all steppers):
    - Running out of the step budget before reaching t1 raises
      StepBudgetExceededError carrying the partial trajectory.
    - max_reject consecutive rejections (or a step size that no longer
      advances t) raise StepRejectionError.
    - Root finder failures inside implicit steps propagate unchanged.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

import numpy as np

from .errors import StepBudgetExceededError, StepRejectionError
from .ode_methods import (
    DORMAND_PRINCE54,
    EmbeddedRungeKutta,
    ExplicitRungeKutta,
    ImplicitEuler,
    get_method,
)
from .ode_problem import ImplicitODE, Trajectory, initial_state, time_span_of

if TYPE_CHECKING:
    from collections.abc import Callable

    from .ode_methods import ODEMethod
    from .ode_problem import ExplicitODE
    from .root_finding import NewtonRaphson
    from .scalar import FloatArray

# =============================================================================
# Errors / messages
# =============================================================================

_STEP_SIZE_ERROR = "step_size must be finite and > 0; got {step_size}"
_N_MAX_ERROR = "n_max must be >= 1; got {n_max}"
_H0_ERROR = "h_0 must be finite and > 0; got {h_0}"
_FAC_ERROR = "fac must be > 0; got {fac}"
_FAC_RANGE_ERROR = "require 0 < fac_min <= fac_max; got fac_min={fac_min}, fac_max={fac_max}"
_TOL_NEGATIVE_ERROR = "abs_tol and rel_tol must be >= 0"
_TOL_ZERO_ERROR = "abs_tol and rel_tol must not both be 0"
_MAX_REJECT_ERROR = "max_reject must be >= 1; got {max_reject}"
_BUDGET_ERROR = "Exceeded n_max={n_max} steps at t={t} before reaching t_stop={t_stop}"
_TOO_MANY_REJECTS_ERROR = "Too many consecutive rejected steps ({rejects}) at t={t}"
_STEP_UNDERFLOW_ERROR = "step size {h} no longer advances t={t}"
_EMBEDDED_REQUIRED_ERROR = "Adaptive stepping requires an embedded method; got {method}"
_EXPLICIT_REQUIRED_ERROR = "FixedStepper requires an explicit Runge-Kutta method; got {method}"
_IMPLICIT_REQUIRED_ERROR = "ImplicitFixedStepper requires ImplicitEuler; got {method}"
_JACOBIAN_REQUIRED_ERROR = "implicit methods require a problem providing jacobian(t, x)"
_STEP_SIZE_REQUIRED_ERROR = "Method '{method}' requires step_size"
_H0_SPAN_WARNING = "h_0={h_0} exceeds the integration span {span}; the first step is clipped"

# Tolerance on span / h when counting uniform steps.
_STEP_COUNT_SLACK = 1e-9


# =============================================================================
# Configuration
# =============================================================================


@dataclass(slots=True, frozen=True)
class AdaptiveConfig:
    """Configuration for adaptive stepping.

    Attributes:
        n_max: Maximum number of accepted steps.
        h_0: Initial step size.
        fac: Safety factor applied to the step size proposal.
        fac_min: Minimum multiplicative change of the step size.
        fac_max: Maximum multiplicative change of the step size.
        abs_tol: Absolute tolerance on the local error estimate.
        rel_tol: Relative tolerance on the local error estimate.
        max_reject: Maximum number of consecutive rejected attempts.
    """

    n_max: int = 1000
    h_0: float = 0.02
    fac: float = 0.8
    fac_min: float = 0.001
    fac_max: float = 3.0
    abs_tol: float = 1e-5
    rel_tol: float = 1e-2
    max_reject: int = 50

    def __post_init__(self) -> None:
        if self.n_max < 1:
            raise ValueError(_N_MAX_ERROR.format(n_max=self.n_max))
        if not (math.isfinite(self.h_0) and self.h_0 > 0.0):
            raise ValueError(_H0_ERROR.format(h_0=self.h_0))
        if not self.fac > 0.0:
            raise ValueError(_FAC_ERROR.format(fac=self.fac))
        if not 0.0 < self.fac_min <= self.fac_max:
            raise ValueError(
                _FAC_RANGE_ERROR.format(fac_min=self.fac_min, fac_max=self.fac_max)
            )
        if self.abs_tol < 0.0 or self.rel_tol < 0.0:
            raise ValueError(_TOL_NEGATIVE_ERROR)
        if self.abs_tol == 0.0 and self.rel_tol == 0.0:
            raise ValueError(_TOL_ZERO_ERROR)
        if self.max_reject < 1:
            raise ValueError(_MAX_REJECT_ERROR.format(max_reject=self.max_reject))


def _check_step_size(step_size: float) -> None:
    if not (math.isfinite(step_size) and step_size > 0.0):
        raise ValueError(_STEP_SIZE_ERROR.format(step_size=step_size))


def _check_n_max(n_max: int | None) -> None:
    if n_max is not None and n_max < 1:
        raise ValueError(_N_MAX_ERROR.format(n_max=n_max))


# =============================================================================
# Fixed-step integration
# =============================================================================

def _integrate_fixed(
    problem: ExplicitODE,
    step: Callable[[float, FloatArray, float], FloatArray],
    step_size: float,
    n_max: int | None,
) -> Trajectory:
    """Uniform stepping from t0 to t1; the final step lands exactly on t1."""
    t0, t1 = time_span_of(problem)
    x = initial_state(problem)
    times: list[float] = [t0]
    states: list[FloatArray] = [x.copy()]

    n_steps = max(math.ceil((t1 - t0) / step_size - _STEP_COUNT_SLACK), 0)
    t = t0
    for i in range(n_steps):
        if n_max is not None and i >= n_max:
            raise StepBudgetExceededError(
                _BUDGET_ERROR.format(n_max=n_max, t=t, t_stop=t1),
                Trajectory.from_lists(times, states),
            )
        t_next = t1 if i == n_steps - 1 else min(t0 + (i + 1) * step_size, t1)
        x = step(t, x, t_next - t)
        t = t_next
        times.append(t)
        states.append(x.copy())

    return Trajectory.from_lists(times, states)


@dataclass(frozen=True)
class FixedStepper:
    """Uniform step size integrator for explicit Runge-Kutta methods.

    Attributes:
        step_size: Step size h.
        n_max: Optional step budget; None means unbounded.
    """

    step_size: float
    n_max: int | None = None

    def __post_init__(self) -> None:
        _check_step_size(self.step_size)
        _check_n_max(self.n_max)

    def solve(
        self,
        problem: ExplicitODE,
        method: str | ExplicitRungeKutta | EmbeddedRungeKutta,
    ) -> Trajectory:
        """Integrate problem over its time span.

        Embedded pairs are accepted and advance with their propagated weights.

        Args:
            problem: Explicit ODE problem.
            method: Method name or object.

        Raises:
            TypeError: If method is implicit.
            StepBudgetExceededError: If n_max steps do not reach t1.

        Returns:
            Trajectory including the initial point.
        """
        resolved = get_method(method)
        if isinstance(resolved, ExplicitRungeKutta):
            rk = resolved

            def step(t: float, x: FloatArray, h: float) -> FloatArray:
                return rk.do_step(problem, t, x, h)

        elif isinstance(resolved, EmbeddedRungeKutta):
            pair = resolved

            def step(t: float, x: FloatArray, h: float) -> FloatArray:
                return pair.do_step(problem, t, x, h)[0]

        else:
            raise TypeError(_EXPLICIT_REQUIRED_ERROR.format(method=resolved.name))

        return _integrate_fixed(problem, step, self.step_size, self.n_max)


@dataclass(frozen=True)
class ImplicitFixedStepper:
    """Uniform step size integrator for implicit Euler.

    Attributes:
        step_size: Step size h.
        n_max: Optional step budget; None means unbounded.
    """

    step_size: float
    n_max: int | None = None

    def __post_init__(self) -> None:
        _check_step_size(self.step_size)
        _check_n_max(self.n_max)

    def solve(
        self,
        problem: ImplicitODE,
        method: str | ImplicitEuler | None = None,
    ) -> Trajectory:
        """Integrate problem over its time span with implicit Euler.

        Args:
            problem: ODE problem providing jacobian(t, x).
            method: ImplicitEuler instance (or its name); default settings if None.

        Raises:
            TypeError: If the method is not implicit or the problem has no Jacobian.
            RootFindingError: If a Newton solve fails.
            StepBudgetExceededError: If n_max steps do not reach t1.

        Returns:
            Trajectory including the initial point.
        """
        resolved = ImplicitEuler() if method is None else get_method(method)
        if not isinstance(resolved, ImplicitEuler):
            raise TypeError(_IMPLICIT_REQUIRED_ERROR.format(method=resolved.name))
        if not isinstance(problem, ImplicitODE):
            raise TypeError(_JACOBIAN_REQUIRED_ERROR)

        return _integrate_fixed(
            problem,
            lambda t, x, h: resolved.do_step(problem, t, x, h),
            self.step_size,
            self.n_max,
        )


# =============================================================================
# Adaptive integration
# =============================================================================


@dataclass(frozen=True)
class AdaptiveStepper:
    """Error-controlled integrator for embedded Runge-Kutta pairs.

    Attributes:
        config: Step control configuration.
    """

    config: AdaptiveConfig = field(default_factory=AdaptiveConfig)

    def error_norm(self, x_new: FloatArray, x_alt: FloatArray) -> float:
        """Compute the RMS scaled difference between the two solutions.

        Args:
            x_new: Propagated solution.
            x_alt: Embedded solution.

        Returns:
            Scaled error; inf if it is not finite.
        """
        scale = self.config.abs_tol + self.config.rel_tol * np.maximum(
            np.abs(x_new), np.abs(x_alt)
        )
        ratio = (x_new - x_alt) / scale
        v = float(np.sqrt(np.mean(ratio * ratio)))
        if not np.isfinite(v):
            return float("inf")
        return v

    def _step_factor(self, err: float, exponent: float) -> float:
        cfg = self.config
        if err <= 0.0:
            return cfg.fac_max
        fac = cfg.fac * (err ** (-exponent))
        return min(cfg.fac_max, max(cfg.fac_min, fac))

    def solve(
        self,
        problem: ExplicitODE,
        method: str | EmbeddedRungeKutta = "dopri54",
    ) -> Trajectory:
        """Integrate problem over its time span with adaptive step control.

        Args:
            problem: Explicit ODE problem.
            method: Embedded method name or object.

        Raises:
            TypeError: If the method has no embedded error estimator.
            StepBudgetExceededError: If n_max accepted steps do not reach t1.
            StepRejectionError: If too many consecutive attempts are rejected
                or the step size underflows.

        Returns:
            Trajectory of accepted steps including the initial point.
        """
        resolved = get_method(method)
        if not isinstance(resolved, EmbeddedRungeKutta):
            raise TypeError(_EMBEDDED_REQUIRED_ERROR.format(method=resolved.name))

        cfg = self.config
        t0, t1 = time_span_of(problem)
        x = initial_state(problem)
        times: list[float] = [t0]
        states: list[FloatArray] = [x.copy()]

        exponent = 1.0 / float(max(resolved.order) + 1)
        h = cfg.h_0
        if t1 > t0 and h > t1 - t0:
            warnings.warn(
                _H0_SPAN_WARNING.format(h_0=h, span=t1 - t0),
                RuntimeWarning,
                stacklevel=2,
            )

        t = t0
        n = 0
        rejects = 0
        while t < t1 and n < cfg.n_max:
            remaining = t1 - t
            last = h >= remaining
            h_try = remaining if last else h

            x_new, x_alt = resolved.do_step(problem, t, x, h_try)
            err = self.error_norm(x_new, x_alt)

            if err <= 1.0:
                t = t1 if last else t + h_try
                x = x_new
                times.append(t)
                states.append(x.copy())
                n += 1
                rejects = 0
            else:
                rejects += 1
                if rejects >= cfg.max_reject:
                    raise StepRejectionError(
                        _TOO_MANY_REJECTS_ERROR.format(rejects=rejects, t=t)
                    )

            h = h_try * self._step_factor(err, exponent)
            if t < t1 and not t + h > t:
                raise StepRejectionError(_STEP_UNDERFLOW_ERROR.format(h=h, t=t))

        if t < t1:
            raise StepBudgetExceededError(
                _BUDGET_ERROR.format(n_max=cfg.n_max, t=t, t_stop=t1),
                Trajectory.from_lists(times, states),
            )
        return Trajectory.from_lists(times, states)


@dataclass(frozen=True)
class DormandPrince54Solver:
    """Adaptive Dormand-Prince 5(4) integrator.

    Attributes:
        config: Step control configuration.
    """

    config: AdaptiveConfig = field(default_factory=AdaptiveConfig)

    def solve(self, problem: ExplicitODE) -> Trajectory:
        """Integrate problem over its time span."""
        return AdaptiveStepper(self.config).solve(
            problem, EmbeddedRungeKutta(DORMAND_PRINCE54)
        )


# =============================================================================
# Public entry point
# =============================================================================


def solve_ode(
    problem: ExplicitODE,
    method: str | ODEMethod = "dopri54",
    *,
    step_size: float | None = None,
    config: AdaptiveConfig | None = None,
    root_finder: NewtonRaphson | None = None,
) -> Trajectory:
    """Integrate an initial value problem.

    Stepper selection:
        - embedded pair without step_size: AdaptiveStepper(config),
        - embedded pair with step_size, or a fixed-step RK method: FixedStepper,
        - implicit Euler: ImplicitFixedStepper.

    Fixed-step runs take their step budget from config.n_max when a config is
    given and are unbounded otherwise.

    Args:
        problem: ODE problem.
        method: Method name or object.
        step_size: Uniform step size for fixed-step methods.
        config: Adaptive configuration (and fixed-step budget).
        root_finder: Newton-Raphson settings for implicit Euler; replaces the
            method's own root finder when given.

    Raises:
        ValueError: If a fixed-step method is requested without step_size.

    Returns:
        Trajectory of the solve.
    """
    resolved = get_method(method)

    if isinstance(resolved, EmbeddedRungeKutta) and step_size is None:
        return AdaptiveStepper(config or AdaptiveConfig()).solve(problem, resolved)

    if step_size is None:
        raise ValueError(_STEP_SIZE_REQUIRED_ERROR.format(method=resolved.name))

    n_max = config.n_max if config is not None else None
    if isinstance(resolved, ImplicitEuler):
        if root_finder is not None:
            resolved = replace(resolved, root_finder=root_finder)
        return ImplicitFixedStepper(step_size, n_max).solve(problem, resolved)  # type: ignore[arg-type]
    return FixedStepper(step_size, n_max).solve(problem, resolved)
