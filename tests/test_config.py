# tests/test_config.py
"""Unit tests for linode_engine.config."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from linode_engine.backends import LapackBackend, NativeBackend, get_backend, set_backend
from linode_engine.config import EngineConfig, configure, load_config, parse_config
from linode_engine.errors import ConfigError, RootFindingError, StepBudgetExceededError
from linode_engine.ode_problem import ODEProblem
from linode_engine.ode_solver import AdaptiveConfig
from linode_engine.root_finding import NewtonRaphson


def test_defaults_match_native_dataclasses() -> None:
    """An empty config converts to the solver defaults."""
    cfg = EngineConfig()
    assert cfg.backend == "lapack"
    assert cfg.to_adaptive_config() == AdaptiveConfig()
    assert cfg.to_root_finder() == NewtonRaphson()


def test_parse_config_nested_values() -> None:
    """Nested sections populate the native configuration."""
    cfg = parse_config(
        {
            "backend": "native",
            "adaptive": {"abs_tol": 1e-8, "rel_tol": 1e-6, "n_max": 50},
            "newton": {"max_iter": 7},
        }
    )
    adaptive = cfg.to_adaptive_config()
    assert adaptive.abs_tol == pytest.approx(1e-8)
    assert adaptive.n_max == 50
    assert cfg.to_root_finder().max_iter == 7


def test_extra_fields_are_allowed() -> None:
    """Unknown fields pass through."""
    cfg = parse_config({"backend": "native", "project": "demo"})
    assert cfg.backend == "native"


@pytest.mark.parametrize(
    "data",
    [
        {"backend": "cuda"},
        {"adaptive": {"h_0": -1.0}},
        {"adaptive": {"fac_min": 5.0, "fac_max": 1.0}},
        {"adaptive": {"abs_tol": 0.0, "rel_tol": 0.0}},
        {"newton": {"tolerance": 0.0}},
    ],
)
def test_invalid_values_raise_config_error(data: dict[str, object]) -> None:
    """Validation errors surface as ConfigError."""
    with pytest.raises(ConfigError, match="Invalid engine configuration"):
        parse_config(data)


def test_load_config_from_yaml(tmp_path: Path) -> None:
    """YAML files are parsed and validated."""
    path = tmp_path / "engine.yaml"
    path.write_text(
        "backend: native\nadaptive:\n  abs_tol: 1.0e-7\n  rel_tol: 1.0e-5\n",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.backend == "native"
    assert cfg.to_adaptive_config().rel_tol == pytest.approx(1e-5)


def test_load_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    """An empty document is the default configuration."""
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == EngineConfig()


@pytest.mark.parametrize(
    ("text", "match"),
    [
        ("backend: [native\n", "Invalid YAML"),
        ("- native\n- lapack\n", "must be a mapping"),
    ],
)
def test_load_config_bad_documents(tmp_path: Path, text: str, match: str) -> None:
    """Malformed YAML or a non-mapping root are config errors."""
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match=match):
        load_config(path)


def test_load_config_missing_file(tmp_path: Path) -> None:
    """A missing file is a config error."""
    with pytest.raises(ConfigError, match="Could not read"):
        load_config(tmp_path / "missing.yaml")


def test_configure_sets_backend() -> None:
    """configure() switches the backend and returns the previous one."""
    original = get_backend()
    try:
        previous = configure(EngineConfig(backend="native"))
        assert previous is original
        assert isinstance(get_backend(), NativeBackend)
        configure(EngineConfig(backend="lapack"))
        assert isinstance(get_backend(), LapackBackend)
    finally:
        set_backend(original)


def test_solve_applies_newton_settings() -> None:
    """EngineConfig.solve hands the newton section to implicit Euler."""
    problem = ODEProblem(
        rhs=lambda t, x: -(x**3),  # noqa: ARG005
        t_span=(0.0, 1.0),
        x0=[1.0],
        jac=lambda t, x: np.diag(-3.0 * x**2),  # noqa: ARG005
    )
    traj = EngineConfig().solve(problem, "implicit-euler", step_size=0.2)
    assert traj.final_time == 1.0

    strict = parse_config({"newton": {"max_iter": 1}})
    with pytest.raises(RootFindingError, match="did not converge"):
        strict.solve(problem, "implicit-euler", step_size=0.2)


def test_solve_applies_adaptive_settings() -> None:
    """The adaptive section drives the default embedded solve."""
    problem = ODEProblem(lambda t, x: -x, (0.0, 100.0), [1.0])  # noqa: ARG005
    with pytest.raises(StepBudgetExceededError):
        parse_config({"adaptive": {"n_max": 2}}).solve(problem)
