# linode_engine/examples/simple_sir.py
"""Single-location SIR integrated three ways with linode_engine.

This example compares:

- RK4 with a uniform step (FixedStepper),
- Dormand-Prince 5(4) with adaptive step control (AdaptiveStepper),
- implicit Euler with a uniform step (ImplicitFixedStepper, needs the Jacobian).

We model a normalized SIR system with state x = (S, I, R) and S + I + R = 1,
and print the number of steps, the final state and the conservation drift
max |S+I+R-1| of each run.
"""

from __future__ import annotations

import numpy as np

from linode_engine import AdaptiveConfig, ODEProblem, solve_ode


def sir_rhs(t: float, x: np.ndarray, *, beta: float, gamma: float) -> np.ndarray:  # noqa: ARG001
    """Right-hand side of the normalized SIR model.

    Args:
        t: Current time (unused).
        x: State (S, I, R).
        beta: Transmission rate.
        gamma: Recovery rate.

    Returns:
        (dS/dt, dI/dt, dR/dt).
    """
    s, i, _ = x
    new_inf = beta * s * i
    recov = gamma * i
    return np.array([-new_inf, new_inf - recov, recov])


def sir_jacobian(t: float, x: np.ndarray, *, beta: float, gamma: float) -> np.ndarray:  # noqa: ARG001
    """Jacobian of sir_rhs with respect to x."""
    s, i, _ = x
    return np.array(
        [
            [-beta * i, -beta * s, 0.0],
            [beta * i, beta * s - gamma, 0.0],
            [0.0, gamma, 0.0],
        ]
    )


def compute_conservation_drift(states: np.ndarray) -> float:
    """Compute max |S+I+R-1| over all stored states.

    Args:
        states: State history, shape (n_times, 3).

    Returns:
        Maximum absolute conservation drift.
    """
    return float(np.max(np.abs(states.sum(axis=1) - 1.0)))


def main() -> None:
    """Run the three integrations and print a summary."""
    beta = 0.30
    gamma = 1.0 / 7.0
    initial_infected = 0.01
    total_time = 160.0

    problem = ODEProblem(
        rhs=lambda t, x: sir_rhs(t, x, beta=beta, gamma=gamma),
        t_span=(0.0, total_time),
        x0=[1.0 - initial_infected, initial_infected, 0.0],
        jac=lambda t, x: sir_jacobian(t, x, beta=beta, gamma=gamma),
    )

    runs = {
        "rk4, h=0.2": solve_ode(problem, "rk4", step_size=0.2),
        "dopri54, adaptive": solve_ode(
            problem, config=AdaptiveConfig(abs_tol=1e-8, rel_tol=1e-6, n_max=10_000)
        ),
        "implicit-euler, h=0.2": solve_ode(problem, "implicit-euler", step_size=0.2),
    }

    for label, traj in runs.items():
        s, i, r = traj.final_state
        drift = compute_conservation_drift(traj.states)
        print(  # noqa: T201
            f"{label:<24} steps={len(traj) - 1:>5}  "
            f"S={s:.4f} I={i:.4f} R={r:.4f}  drift={drift:.2e}"
        )


if __name__ == "__main__":
    main()
