# tests/test_optimization.py
"""Unit tests for linode_engine.optimization."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pytest

from linode_engine.optimization import GaussNewton, Newton


@dataclass
class _ExpFit:
    """Residuals of y = a * exp(b * t) against exact samples."""

    t: np.ndarray
    y: np.ndarray

    def eval(self, x: np.ndarray) -> np.ndarray:
        return x[0] * np.exp(x[1] * self.t) - self.y

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        e = np.exp(x[1] * self.t)
        return np.column_stack([e, x[0] * self.t * e])


@dataclass
class _RankDeficient:
    """Two parameters that only enter as their sum."""

    def eval(self, x: np.ndarray) -> np.ndarray:
        return np.array([x[0] + x[1] - 1.0, x[0] + x[1] - 1.0])

    def jacobian(self, x: np.ndarray) -> np.ndarray:  # noqa: ARG002
        return np.zeros((2, 2))


@dataclass
class _Rosenbrock:
    """f(x, y) = (1 - x)^2 + 100 (y - x^2)^2."""

    def eval(self, x: np.ndarray) -> float:
        return float((1.0 - x[0]) ** 2 + 100.0 * (x[1] - x[0] ** 2) ** 2)

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        return np.array(
            [
                -2.0 * (1.0 - x[0]) - 400.0 * x[0] * (x[1] - x[0] ** 2),
                200.0 * (x[1] - x[0] ** 2),
            ]
        )

    def hessian(self, x: np.ndarray) -> np.ndarray:
        return np.array(
            [
                [2.0 - 400.0 * (x[1] - 3.0 * x[0] ** 2), -400.0 * x[0]],
                [-400.0 * x[0], 200.0],
            ]
        )


@dataclass
class _Quadratic:
    """f(x) = x^T diag(d) x / 2 + sum(x^4); indefinite near 0 when d has negatives."""

    d: np.ndarray

    def eval(self, x: np.ndarray) -> float:
        return float(0.5 * np.sum(self.d * x * x) + np.sum(x**4))

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        return self.d * x + 4.0 * x**3

    def hessian(self, x: np.ndarray) -> np.ndarray:
        return np.diag(self.d + 12.0 * x**2)


def test_gauss_newton_fits_exponential() -> None:
    """Exact data is fitted to high accuracy."""
    t = np.linspace(0.0, 1.0, 10)
    problem = _ExpFit(t=t, y=2.0 * np.exp(-1.5 * t))
    result = GaussNewton(iters=50, tolerance=1e-12).minimize(problem, [1.0, -1.0])
    assert result.converged
    assert np.allclose(result.arg, [2.0, -1.5], atol=1e-8)


def test_gauss_newton_rank_deficient_warns() -> None:
    """A rank-deficient Jacobian stops the iteration without converging."""
    with pytest.warns(RuntimeWarning, match="rank deficient"):
        result = GaussNewton().minimize(_RankDeficient(), [0.0, 0.0])
    assert not result.converged
    assert result.n_iter == 0


def test_newton_minimizes_rosenbrock() -> None:
    """Newton with line search reaches the Rosenbrock minimum."""
    result = Newton(iters=200, sigma=1e-4, rho=1e-8).minimize(_Rosenbrock(), [-1.2, 1.0])
    assert result.converged
    assert np.allclose(result.arg, [1.0, 1.0], atol=1e-6)


def test_newton_falls_back_to_descent_for_indefinite_hessian() -> None:
    """Where the Newton direction is uphill, steepest descent takes over."""
    problem = _Quadratic(d=np.array([1.0, -1.0]))
    result = Newton(iters=200, sigma=1e-4).minimize(problem, [0.0, 0.1])
    assert result.converged
    assert np.allclose(result.arg, [0.0, 0.5], atol=1e-6)


def test_newton_stationary_start() -> None:
    """A zero gradient at x0 converges immediately."""
    result = Newton().minimize(_Quadratic(d=np.array([1.0, 1.0])), [0.0, 0.0])
    assert result.converged
    assert result.n_iter == 0


@pytest.mark.parametrize(
    ("cls", "kwargs", "match"),
    [
        (GaussNewton, {"iters": 0}, "iters"),
        (Newton, {"sigma": 1.0}, "sigma"),
        (Newton, {"rho": 0.0}, "rho"),
    ],
)
def test_settings_validated(cls: type, kwargs: dict[str, float], match: str) -> None:
    """Invalid settings are rejected at construction."""
    with pytest.raises(ValueError, match=match):
        cls(**kwargs)
