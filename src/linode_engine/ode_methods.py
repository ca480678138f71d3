# linode_engine/src/linode_engine/ode_methods.py
"""Single-step ODE methods.

Supported methods (see `get_method`):
    Fixed-step explicit Runge-Kutta:
        - "euler":        Explicit Euler (order 1).
        - "midpoint":     Explicit midpoint (order 2).
        - "heun":         Heun / trapezoidal RK2 (order 2).
        - "ralston":      Ralston RK2 (order 2).
        - "kutta3":       Kutta's third-order method (order 3).
        - "rk4":          Classical Runge-Kutta (order 4).
    Embedded pairs (adaptive):
        - "heun-euler21": Heun with Euler estimator, orders (2, 1).
        - "bs32":         Bogacki-Shampine, orders (3, 2).
        - "rkf45":        Runge-Kutta-Fehlberg, orders (5, 4).
        - "cash-karp54":  Cash-Karp, orders (5, 4).
        - "dopri54":      Dormand-Prince, orders (5, 4).
    Implicit:
        - "implicit-euler": Backward Euler solved with Newton-Raphson (order 1).

Every explicit method is a Butcher tableau driven by one stage loop. Embedded
pairs reuse the same stages for both weight rows; the propagated solution is
the higher-order row `b` and `b_alt` only feeds the error estimate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Literal, TypeAlias

import numpy as np

from .ode_problem import evaluate_jacobian, evaluate_rhs
from .root_finding import NewtonRaphson

if TYPE_CHECKING:
    from .ode_problem import ExplicitODE, ImplicitODE
    from .scalar import FloatArray

# =============================================================================
# Errors / messages
# =============================================================================

_TABLEAU_SHAPE_ERROR = "Butcher matrix must be ({s}, {s}); got {shape}"
_TABLEAU_WEIGHTS_ERROR = "{name} must have {s} entries; got {n}"
_TABLEAU_EXPLICIT_ERROR = "Butcher matrix must be strictly lower triangular"
_TABLEAU_CONSISTENCY_ERROR = "{name} must sum to 1; got {total}"
_TABLEAU_ROW_SUM_ERROR = "row sums of the Butcher matrix must equal c"
_TABLEAU_ORDER_ERROR = "order must be >= 1"
_NOT_EMBEDDED_ERROR = "tableau {name!r} has no embedded weights"
_UNKNOWN_METHOD_ERROR = "Unknown method: {method}"

_TABLEAU_TOL: Final[float] = 1e-12

MethodName: TypeAlias = Literal[
    "euler",
    "midpoint",
    "heun",
    "ralston",
    "kutta3",
    "rk4",
    "heun-euler21",
    "bs32",
    "rkf45",
    "cash-karp54",
    "dopri54",
    "implicit-euler",
]


# =============================================================================
# Butcher tableaux
# =============================================================================


@dataclass(frozen=True, eq=False)
class ButcherTableau:
    """Explicit Runge-Kutta coefficients.

    Attributes:
        name: Display name.
        a: Stage coupling matrix, strictly lower triangular, shape (s, s).
        b: Weights of the propagated solution, shape (s,).
        c: Stage nodes, shape (s,).
        order: Order of the `b` solution.
        b_alt: Optional embedded weights, shape (s,).
        order_alt: Order of the `b_alt` solution.
    """

    name: str
    a: FloatArray
    b: FloatArray
    c: FloatArray
    order: int
    b_alt: FloatArray | None = None
    order_alt: int | None = None

    def __post_init__(self) -> None:
        s = self.b.shape[0]
        if self.a.shape != (s, s):
            raise ValueError(_TABLEAU_SHAPE_ERROR.format(s=s, shape=self.a.shape))
        if self.c.shape != (s,):
            raise ValueError(_TABLEAU_WEIGHTS_ERROR.format(name="c", s=s, n=self.c.size))
        if np.any(np.triu(self.a) != 0.0):
            raise ValueError(_TABLEAU_EXPLICIT_ERROR)
        if not np.allclose(self.a.sum(axis=1), self.c, atol=_TABLEAU_TOL):
            raise ValueError(_TABLEAU_ROW_SUM_ERROR)
        if self.order < 1:
            raise ValueError(_TABLEAU_ORDER_ERROR)

        weights = [("b", self.b)]
        if self.b_alt is not None:
            weights.append(("b_alt", self.b_alt))
        for name, w in weights:
            if w.shape != (s,):
                raise ValueError(_TABLEAU_WEIGHTS_ERROR.format(name=name, s=s, n=w.size))
            total = float(w.sum())
            if abs(total - 1.0) > _TABLEAU_TOL:
                raise ValueError(_TABLEAU_CONSISTENCY_ERROR.format(name=name, total=total))

    @property
    def stages(self) -> int:
        """Number of stages."""
        return int(self.b.shape[0])

    @property
    def is_embedded(self) -> bool:
        """True if the tableau carries an embedded error estimator."""
        return self.b_alt is not None


def _tableau(
    name: str,
    rows: list[list[float]],
    b: list[float],
    order: int,
    *,
    b_alt: list[float] | None = None,
    order_alt: int | None = None,
) -> ButcherTableau:
    """Build a tableau from the nonzero lower rows of A; c is the row sums."""
    s = len(b)
    a = np.zeros((s, s), dtype=np.float64)
    for i, row in enumerate(rows, start=1):
        a[i, : len(row)] = row
    return ButcherTableau(
        name=name,
        a=a,
        b=np.asarray(b, dtype=np.float64),
        c=a.sum(axis=1),
        order=order,
        b_alt=None if b_alt is None else np.asarray(b_alt, dtype=np.float64),
        order_alt=order_alt,
    )


EULER: Final = _tableau("Euler", [], [1.0], 1)

MIDPOINT: Final = _tableau("Midpoint", [[1 / 2]], [0.0, 1.0], 2)

HEUN: Final = _tableau("Heun", [[1.0]], [1 / 2, 1 / 2], 2)

RALSTON: Final = _tableau("Ralston", [[2 / 3]], [1 / 4, 3 / 4], 2)

KUTTA3: Final = _tableau("Kutta3", [[1 / 2], [-1.0, 2.0]], [1 / 6, 2 / 3, 1 / 6], 3)

RK4: Final = _tableau(
    "RungeKutta4",
    [[1 / 2], [0.0, 1 / 2], [0.0, 0.0, 1.0]],
    [1 / 6, 1 / 3, 1 / 3, 1 / 6],
    4,
)

HEUN_EULER21: Final = _tableau(
    "HeunEuler21",
    [[1.0]],
    [1 / 2, 1 / 2],
    2,
    b_alt=[1.0, 0.0],
    order_alt=1,
)

BOGACKI_SHAMPINE32: Final = _tableau(
    "BogackiShampine32",
    [[1 / 2], [0.0, 3 / 4], [2 / 9, 1 / 3, 4 / 9]],
    [2 / 9, 1 / 3, 4 / 9, 0.0],
    3,
    b_alt=[7 / 24, 1 / 4, 1 / 3, 1 / 8],
    order_alt=2,
)

RUNGE_KUTTA_FEHLBERG54: Final = _tableau(
    "RungeKuttaFehlberg54",
    [
        [1 / 4],
        [3 / 32, 9 / 32],
        [1932 / 2197, -7200 / 2197, 7296 / 2197],
        [439 / 216, -8.0, 3680 / 513, -845 / 4104],
        [-8 / 27, 2.0, -3544 / 2565, 1859 / 4104, -11 / 40],
    ],
    [16 / 135, 0.0, 6656 / 12825, 28561 / 56430, -9 / 50, 2 / 55],
    5,
    b_alt=[25 / 216, 0.0, 1408 / 2565, 2197 / 4104, -1 / 5, 0.0],
    order_alt=4,
)

CASH_KARP54: Final = _tableau(
    "CashKarp54",
    [
        [1 / 5],
        [3 / 40, 9 / 40],
        [3 / 10, -9 / 10, 6 / 5],
        [-11 / 54, 5 / 2, -70 / 27, 35 / 27],
        [1631 / 55296, 175 / 512, 575 / 13824, 44275 / 110592, 253 / 4096],
    ],
    [37 / 378, 0.0, 250 / 621, 125 / 594, 0.0, 512 / 1771],
    5,
    b_alt=[2825 / 27648, 0.0, 18575 / 48384, 13525 / 55296, 277 / 14336, 1 / 4],
    order_alt=4,
)

DORMAND_PRINCE54: Final = _tableau(
    "DormandPrince54",
    [
        [1 / 5],
        [3 / 40, 9 / 40],
        [44 / 45, -56 / 15, 32 / 9],
        [19372 / 6561, -25360 / 2187, 64448 / 6561, -212 / 729],
        [9017 / 3168, -355 / 33, 46732 / 5247, 49 / 176, -5103 / 18656],
        [35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84],
    ],
    [35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84, 0.0],
    5,
    b_alt=[
        5179 / 57600,
        0.0,
        7571 / 16695,
        393 / 640,
        -92097 / 339200,
        187 / 2100,
        1 / 40,
    ],
    order_alt=4,
)


# =============================================================================
# Explicit Runge-Kutta methods
# =============================================================================


@dataclass(frozen=True)
class _RungeKuttaBase:
    tableau: ButcherTableau

    @property
    def name(self) -> str:
        """Tableau name."""
        return self.tableau.name

    def _stages(
        self,
        problem: ExplicitODE,
        t: float,
        x: FloatArray,
        h: float,
    ) -> FloatArray:
        """Return the stage derivatives k, shape (s, dim)."""
        tab = self.tableau
        k = np.empty((tab.stages, x.shape[0]), dtype=np.result_type(x, np.float64))
        for i in range(tab.stages):
            x_stage = x + h * (tab.a[i, :i] @ k[:i]) if i else x
            k[i] = evaluate_rhs(problem, t + tab.c[i] * h, x_stage)
        return k


@dataclass(frozen=True)
class ExplicitRungeKutta(_RungeKuttaBase):
    """Fixed-step explicit Runge-Kutta method."""

    @property
    def order(self) -> int:
        """Order of the method."""
        return self.tableau.order

    def do_step(
        self,
        problem: ExplicitODE,
        t: float,
        x: FloatArray,
        h: float,
    ) -> FloatArray:
        """Advance x from t to t + h.

        Args:
            problem: ODE problem.
            t: Current time.
            x: Current state.
            h: Step size.

        Returns:
            State at t + h.
        """
        k = self._stages(problem, t, x, h)
        return x + h * (self.tableau.b @ k)


@dataclass(frozen=True)
class EmbeddedRungeKutta(_RungeKuttaBase):
    """Explicit Runge-Kutta pair sharing one set of stages."""

    def __post_init__(self) -> None:
        if not self.tableau.is_embedded:
            raise ValueError(_NOT_EMBEDDED_ERROR.format(name=self.tableau.name))

    @property
    def order(self) -> tuple[int, int]:
        """Orders (p, p_alt) of the propagated and embedded solutions."""
        return self.tableau.order, int(self.tableau.order_alt or 0)

    def do_step(
        self,
        problem: ExplicitODE,
        t: float,
        x: FloatArray,
        h: float,
    ) -> tuple[FloatArray, FloatArray]:
        """Advance x from t to t + h with both weight rows.

        Args:
            problem: ODE problem.
            t: Current time.
            x: Current state.
            h: Step size.

        Returns:
            Tuple (x_new, x_alt) of the propagated and embedded solutions.
        """
        k = self._stages(problem, t, x, h)
        b_alt = self.tableau.b_alt
        if b_alt is None:
            raise ValueError(_NOT_EMBEDDED_ERROR.format(name=self.tableau.name))
        return x + h * (self.tableau.b @ k), x + h * (b_alt @ k)


# =============================================================================
# Implicit Euler
# =============================================================================


@dataclass(frozen=True, slots=True)
class _ImplicitEulerResidual:
    """g(z) = x + h f(t, z) - z for one backward Euler step.

    Built fresh for every step; t is the end of the step.
    """

    problem: ImplicitODE
    t: float
    x: FloatArray
    h: float

    def eval(self, z: FloatArray) -> FloatArray:
        return self.x + self.h * evaluate_rhs(self.problem, self.t, z) - z

    def jacobian(self, z: FloatArray) -> FloatArray:
        jac = self.h * evaluate_jacobian(self.problem, self.t, z)
        jac[np.diag_indices_from(jac)] -= 1.0
        return jac


@dataclass(frozen=True)
class ImplicitEuler:
    """Backward Euler: x_{n+1} = x_n + h f(t_{n+1}, x_{n+1}).

    Attributes:
        root_finder: Newton-Raphson solver for the per-step equation.
    """

    root_finder: NewtonRaphson = field(default_factory=NewtonRaphson)
    name: str = "ImplicitEuler"

    @property
    def order(self) -> int:
        """Order of the method."""
        return 1

    def do_step(
        self,
        problem: ImplicitODE,
        t: float,
        x: FloatArray,
        h: float,
    ) -> FloatArray:
        """Advance x from t to t + h.

        The previous state is the initial Newton guess.

        Args:
            problem: ODE problem with a Jacobian.
            t: Current time.
            x: Current state.
            h: Step size.

        Raises:
            RootFindingError: If the Newton iteration fails.

        Returns:
            State at t + h.
        """
        residual = _ImplicitEulerResidual(problem=problem, t=t + h, x=x, h=h)
        return self.root_finder.find_root(residual, x)


# =============================================================================
# Lookup
# =============================================================================

ODEMethod: TypeAlias = ExplicitRungeKutta | EmbeddedRungeKutta | ImplicitEuler

_FIXED_TABLEAUX: Final[dict[str, ButcherTableau]] = {
    "euler": EULER,
    "midpoint": MIDPOINT,
    "heun": HEUN,
    "ralston": RALSTON,
    "kutta3": KUTTA3,
    "rk4": RK4,
}

_EMBEDDED_TABLEAUX: Final[dict[str, ButcherTableau]] = {
    "heun-euler21": HEUN_EULER21,
    "bs32": BOGACKI_SHAMPINE32,
    "rkf45": RUNGE_KUTTA_FEHLBERG54,
    "cash-karp54": CASH_KARP54,
    "dopri54": DORMAND_PRINCE54,
}

_ALIASES: Final[dict[str, str]] = {
    "rungekutta4": "rk4",
    "heuneuler21": "heun-euler21",
    "bogackishampine32": "bs32",
    "rungekuttafehlberg54": "rkf45",
    "cashkarp54": "cash-karp54",
    "dormandprince54": "dopri54",
    "backward-euler": "implicit-euler",
}


def _normalize_method(method: str) -> MethodName:
    """Normalize and validate a method string.

    Raises:
        ValueError: If the method is unknown.
    """
    method_norm = str(method).strip().lower().replace("_", "-")
    method_norm = _ALIASES.get(method_norm, method_norm)
    if (
        method_norm not in _FIXED_TABLEAUX
        and method_norm not in _EMBEDDED_TABLEAUX
        and method_norm != "implicit-euler"
    ):
        raise ValueError(_UNKNOWN_METHOD_ERROR.format(method=method))
    return method_norm  # type: ignore[return-value]


def get_method(method: str | ODEMethod) -> ODEMethod:
    """Resolve a method name (or pass a method object through).

    Args:
        method: Method name, alias, or an existing method object.

    Raises:
        ValueError: If the name is unknown.

    Returns:
        Method object.
    """
    if isinstance(method, (ExplicitRungeKutta, EmbeddedRungeKutta, ImplicitEuler)):
        return method
    name = _normalize_method(method)
    if name == "implicit-euler":
        return ImplicitEuler()
    if name in _EMBEDDED_TABLEAUX:
        return EmbeddedRungeKutta(_EMBEDDED_TABLEAUX[name])
    return ExplicitRungeKutta(_FIXED_TABLEAUX[name])
