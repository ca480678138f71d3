# linode_engine/src/linode_engine/config.py
"""File-facing configuration for linode_engine.

`EngineConfig` is the pydantic schema for YAML configuration files. It keeps
YAML-friendly defaults and bounds, and converts into the native frozen
dataclasses used by the solvers (AdaptiveConfig, NewtonRaphson).

Example YAML:

    backend: native
    adaptive:
      abs_tol: 1.0e-6
      rel_tol: 1.0e-3

Notes:
    - Unknown fields are allowed and ignored (`extra="allow"`), so engine
      settings can live inside a larger application config.
    - The backend is applied with `configure`, once, before solving.
    - `EngineConfig.solve` passes the adaptive and Newton sections to
      solve_ode.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .backends import DEFAULT_BACKEND, LinalgBackend, set_backend
from .errors import ConfigError
from .ode_solver import AdaptiveConfig, solve_ode
from .root_finding import NewtonRaphson

if TYPE_CHECKING:
    from .ode_methods import ODEMethod
    from .ode_problem import ExplicitODE, Trajectory

_FAC_RANGE_ERROR = "fac_min ({fac_min}) must not exceed fac_max ({fac_max})"
_TOL_ZERO_ERROR = "abs_tol and rel_tol must not both be 0"
_READ_ERROR = "Could not read configuration file {path}: {err}"
_YAML_ERROR = "Invalid YAML in {path}: {err}"
_TOP_LEVEL_ERROR = "Configuration root must be a mapping; got {kind}"
_VALIDATION_ERROR = "Invalid engine configuration: {err}"


class AdaptiveSettings(BaseModel):
    """Adaptive step control settings (see AdaptiveConfig)."""

    model_config = ConfigDict(extra="allow")

    n_max: int = Field(default=1000, ge=1, description="Maximum accepted steps")
    h_0: float = Field(default=0.02, gt=0.0, description="Initial step size")
    fac: float = Field(default=0.8, gt=0.0, description="Step size safety factor")
    fac_min: float = Field(default=0.001, gt=0.0)
    fac_max: float = Field(default=3.0, gt=0.0)
    abs_tol: float = Field(default=1e-5, ge=0.0)
    rel_tol: float = Field(default=1e-2, ge=0.0)
    max_reject: int = Field(default=50, ge=1)

    @model_validator(mode="after")
    def _check_ranges(self) -> AdaptiveSettings:
        if self.fac_min > self.fac_max:
            raise ValueError(
                _FAC_RANGE_ERROR.format(fac_min=self.fac_min, fac_max=self.fac_max)
            )
        if self.abs_tol == 0.0 and self.rel_tol == 0.0:
            raise ValueError(_TOL_ZERO_ERROR)
        return self


class NewtonSettings(BaseModel):
    """Newton-Raphson settings for implicit stepping."""

    model_config = ConfigDict(extra="allow")

    max_iter: int = Field(default=100, ge=1)
    tolerance: float = Field(default=1e-8, gt=0.0)


class EngineConfig(BaseModel):
    """Top-level configuration schema.

    Attributes:
        backend: Linear algebra backend, "native" or "lapack".
        adaptive: Adaptive step control settings.
        newton: Newton-Raphson settings.
    """

    model_config = ConfigDict(extra="allow")

    backend: Literal["native", "lapack"] = Field(
        default=DEFAULT_BACKEND,
        description="Linear algebra backend",
    )
    adaptive: AdaptiveSettings = Field(default_factory=AdaptiveSettings)
    newton: NewtonSettings = Field(default_factory=NewtonSettings)

    def to_adaptive_config(self) -> AdaptiveConfig:
        """Convert the adaptive settings to a native AdaptiveConfig.

        Returns:
            Fully constructed AdaptiveConfig instance.
        """
        a = self.adaptive
        return AdaptiveConfig(
            n_max=a.n_max,
            h_0=a.h_0,
            fac=a.fac,
            fac_min=a.fac_min,
            fac_max=a.fac_max,
            abs_tol=a.abs_tol,
            rel_tol=a.rel_tol,
            max_reject=a.max_reject,
        )

    def to_root_finder(self) -> NewtonRaphson:
        """Return the NewtonRaphson solver described by the settings."""
        return NewtonRaphson(
            max_iter=self.newton.max_iter, tolerance=self.newton.tolerance
        )

    def solve(
        self,
        problem: ExplicitODE,
        method: str | ODEMethod = "dopri54",
        *,
        step_size: float | None = None,
    ) -> Trajectory:
        """Run solve_ode with the adaptive and Newton settings of this config.

        Args:
            problem: ODE problem.
            method: Method name or object.
            step_size: Uniform step size for fixed-step methods.

        Returns:
            Trajectory of the solve.
        """
        return solve_ode(
            problem,
            method,
            step_size=step_size,
            config=self.to_adaptive_config(),
            root_finder=self.to_root_finder(),
        )


def parse_config(data: dict[str, Any] | None) -> EngineConfig:
    """Validate a mapping (for example a parsed YAML document).

    Args:
        data: Configuration mapping; None gives the defaults.

    Raises:
        ConfigError: If validation fails.

    Returns:
        Validated EngineConfig.
    """
    try:
        return EngineConfig.model_validate(data or {})
    except ValidationError as exc:
        raise ConfigError(_VALIDATION_ERROR.format(err=exc)) from exc


def load_config(path: str | Path) -> EngineConfig:
    """Load and validate a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or does not
            validate.

    Returns:
        Validated EngineConfig.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(_READ_ERROR.format(path=p, err=exc)) from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(_YAML_ERROR.format(path=p, err=exc)) from exc

    if data is not None and not isinstance(data, dict):
        raise ConfigError(_TOP_LEVEL_ERROR.format(kind=type(data).__name__))
    return parse_config(data)


def configure(config: EngineConfig) -> LinalgBackend:
    """Apply the process-wide parts of a configuration.

    Args:
        config: Validated configuration.

    Returns:
        The previously configured backend.
    """
    return set_backend(config.backend)
