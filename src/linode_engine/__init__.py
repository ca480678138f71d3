"""linode_engine dense linear algebra and ODE integration package."""

from __future__ import annotations

from .backends import (
    LapackBackend,
    LinalgBackend,
    NativeBackend,
    get_backend,
    make_backend,
    set_backend,
)
from .config import EngineConfig, configure, load_config, parse_config
from .decompositions import (
    CholeskyDec,
    HessenbergDec,
    LUDec,
    QRDec,
    dec_cholesky,
    dec_hessenberg,
    dec_lu,
    dec_qr,
)
from .errors import (
    ConfigError,
    DimensionError,
    IntegrationError,
    LinodeEngineError,
    RootFindingError,
    StepBudgetExceededError,
    StepRejectionError,
)
from .linalg import Inverse, Solve, det, inv, solve
from .matrix import Matrix, Vector, as_matrix, as_vector, householder
from .ode_methods import (
    ButcherTableau,
    EmbeddedRungeKutta,
    ExplicitRungeKutta,
    ImplicitEuler,
    get_method,
)
from .ode_problem import ExplicitODE, ImplicitODE, ODEProblem, Trajectory
from .ode_solver import (
    AdaptiveConfig,
    AdaptiveStepper,
    DormandPrince54Solver,
    FixedStepper,
    ImplicitFixedStepper,
    solve_ode,
)
from .optimization import GaussNewton, Newton, OptimResult
from .root_finding import NewtonRaphson
from .substitution import substitute_backward, substitute_forward

__version__ = "0.1.0"

__all__ = [
    "AdaptiveConfig",
    "AdaptiveStepper",
    "ButcherTableau",
    "CholeskyDec",
    "ConfigError",
    "DimensionError",
    "DormandPrince54Solver",
    "EmbeddedRungeKutta",
    "EngineConfig",
    "ExplicitODE",
    "ExplicitRungeKutta",
    "FixedStepper",
    "GaussNewton",
    "HessenbergDec",
    "ImplicitEuler",
    "ImplicitFixedStepper",
    "ImplicitODE",
    "IntegrationError",
    "Inverse",
    "LUDec",
    "LapackBackend",
    "LinalgBackend",
    "LinodeEngineError",
    "Matrix",
    "NativeBackend",
    "Newton",
    "NewtonRaphson",
    "ODEProblem",
    "OptimResult",
    "QRDec",
    "RootFindingError",
    "Solve",
    "StepBudgetExceededError",
    "StepRejectionError",
    "Trajectory",
    "Vector",
    "__version__",
    "as_matrix",
    "as_vector",
    "configure",
    "dec_cholesky",
    "dec_hessenberg",
    "dec_lu",
    "dec_qr",
    "det",
    "get_backend",
    "get_method",
    "householder",
    "inv",
    "load_config",
    "make_backend",
    "parse_config",
    "set_backend",
    "solve",
    "solve_ode",
    "substitute_backward",
    "substitute_forward",
]
