# linode_engine/src/linode_engine/errors.py
"""Error types shared across linode_engine.

This module centralizes the exception hierarchy:

- precondition violations (caller bugs) derive from ValueError,
- runtime failures of iterative algorithms derive from RuntimeError.

Numerically singular or non-positive-definite inputs are *not* errors; the
decomposition and solve entry points signal them by returning None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ode_problem import Trajectory


class LinodeEngineError(Exception):
    """Base exception for linode_engine errors."""


class DimensionError(LinodeEngineError, ValueError):
    """Raised when matrix/vector dimensions violate an operation's contract."""


class ConfigError(LinodeEngineError, ValueError):
    """Raised when an engine or solver configuration is invalid."""


class RootFindingError(LinodeEngineError, RuntimeError):
    """Raised when Newton-Raphson iteration fails to converge."""


class IntegrationError(LinodeEngineError, RuntimeError):
    """Base class for failures while integrating an ODE."""


class StepBudgetExceededError(IntegrationError):
    """Raised when an integrator runs out of steps before reaching t_stop.

    Attributes:
        trajectory: The partial trajectory accepted before the budget ran out.
    """

    def __init__(self, msg: str, trajectory: Trajectory) -> None:
        """Initialize with a message and the partial trajectory.

        Args:
            msg: Error message.
            trajectory: Trajectory covered so far.
        """
        super().__init__(msg)
        self.trajectory = trajectory


class StepRejectionError(IntegrationError):
    """Raised when an adaptive integrator rejects too many consecutive steps."""


def raise_dimension_error(*, name: str, expected: str, got: object) -> None:
    """Raise a standardized DimensionError.

    Args:
        name: Name of the object with the shape issue.
        expected: Human-readable expected shape description.
        got: Actual observed shape/value.

    Raises:
        DimensionError: Always.
    """
    msg = f"{name} has an invalid shape. Expected {expected}. Got: {got!r}."
    raise DimensionError(msg)
