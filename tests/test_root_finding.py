# tests/test_root_finding.py
"""Unit tests for linode_engine.root_finding.NewtonRaphson."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pytest

from linode_engine.errors import RootFindingError
from linode_engine.matrix import Matrix
from linode_engine.root_finding import NewtonRaphson


@dataclass
class _Circle:
    """x^2 + y^2 = 4, x = y."""

    def eval(self, z: np.ndarray) -> np.ndarray:
        return np.array([z[0] ** 2 + z[1] ** 2 - 4.0, z[0] - z[1]])

    def jacobian(self, z: np.ndarray) -> Matrix:
        return Matrix.from_rows([[2.0 * z[0], 2.0 * z[1]], [1.0, -1.0]])


@dataclass
class _Flat:
    """Constant residual with a zero Jacobian."""

    def eval(self, z: np.ndarray) -> np.ndarray:
        return np.ones_like(z)

    def jacobian(self, z: np.ndarray) -> np.ndarray:
        return np.zeros((z.size, z.size))


@dataclass
class _Cube:
    """z^3 = 8."""

    def eval(self, z: np.ndarray) -> np.ndarray:
        return z**3 - 8.0

    def jacobian(self, z: np.ndarray) -> np.ndarray:
        return np.diag(3.0 * z**2)


def test_converges_on_system() -> None:
    """The root of a 2D system is found from a nearby guess."""
    root = NewtonRaphson().find_root(_Circle(), [1.0, 2.0])
    assert np.allclose(root, [np.sqrt(2.0), np.sqrt(2.0)])


def test_scalar_equation() -> None:
    """One-dimensional problems work with 1-element arrays."""
    root = NewtonRaphson(max_iter=50, tolerance=1e-12).find_root(_Cube(), [1.0])
    assert root[0] == pytest.approx(2.0)


def test_singular_jacobian_raises() -> None:
    """A singular Jacobian is a root finding failure."""
    with pytest.raises(RootFindingError, match="singular"):
        NewtonRaphson().find_root(_Flat(), [0.0, 0.0])


def test_iteration_budget_raises() -> None:
    """Running out of iterations is a root finding failure."""
    with pytest.raises(RootFindingError, match="did not converge"):
        NewtonRaphson(max_iter=2, tolerance=1e-14).find_root(_Cube(), [10.0])


@pytest.mark.parametrize(
    ("kwargs", "match"),
    [({"max_iter": 0}, "max_iter"), ({"tolerance": 0.0}, "tolerance")],
)
def test_invalid_settings(kwargs: dict[str, float], match: str) -> None:
    """Settings are validated at construction."""
    with pytest.raises(ValueError, match=match):
        NewtonRaphson(**kwargs)  # type: ignore[arg-type]
