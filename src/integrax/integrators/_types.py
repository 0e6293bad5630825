"""Type definitions for the Runge-Kutta step kernels.

Provides the core data types shared by every step function and by the
drivers in :mod:`integrax.ode`:

- :class:`StepResult`: Output of every step function, containing the new
  state, the derivative at the new state, the timestep used, and the
  normalized error estimate.
- :class:`AdaptiveConfig`: Tolerances and step-size controller constants
  for the embedded methods (RK23, RKF45, DP54).

Both types are :class:`~typing.NamedTuple` instances, which JAX treats as
pytrees automatically.
"""

from __future__ import annotations

from typing import NamedTuple

from jax import Array


class StepResult(NamedTuple):
    """Result of a single trial step.

    Returned by all step functions (``rk4_step``, ``rk23_step``,
    ``rkf45_step``, ``dp54_step``). A step function never decides
    acceptance; the caller compares ``error_estimate`` against 1.0.

    Attributes:
        state: State vector at time ``t + dt_used``.
        derivative: Right-hand side evaluated at ``(t + dt_used, state)``.
            Used as the first stage of the next step and as the end-point
            slope for Hermite dense output.
        dt_used: Timestep of this trial.
        error_estimate: Normalized RMS error estimate. A value <= 1.0 means
            the step met the tolerance. Always 0.0 for RK4.
    """

    state: Array
    derivative: Array
    dt_used: Array
    error_estimate: Array


class AdaptiveConfig(NamedTuple):
    """Configuration for adaptive step-size control.

    Used by ``rk23_step``, ``rkf45_step`` and ``dp54_step`` to compute the
    normalized error, and by :func:`~integrax.ode.solve_ivp` to adjust
    the step size after each trial.

    Attributes:
        abs_tol: Absolute error tolerance per component. Components with
            magnitude near zero are controlled by this tolerance.
        rel_tol: Relative error tolerance per component. Components with
            large magnitude are controlled by this tolerance.
        safety_factor: Multiplicative safety factor applied to step-size
            predictions. Values < 1.0 produce conservative step sizes.
        min_scale_factor: Minimum allowed ratio ``dt_next / dt_used``.
        max_scale_factor: Maximum allowed ratio ``dt_next / dt_used``.
        min_step: Absolute minimum allowed step size. A step rejected at
            or below this size ends the integration with a failure.
        max_step: Absolute maximum allowed step size.
    """

    abs_tol: float = 1e-6
    rel_tol: float = 1e-3
    safety_factor: float = 0.9
    min_scale_factor: float = 0.2
    max_scale_factor: float = 10.0
    min_step: float = 0.0
    max_step: float = float("inf")
