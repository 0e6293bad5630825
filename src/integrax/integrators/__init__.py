"""Runge-Kutta step kernels for initial-value problems.

Provides a fixed-step and three embedded Runge-Kutta methods, all written
with ``jax.numpy`` and driven from Python by :mod:`integrax.ode`.

Available integrators:

- :func:`rk4_step` -- Classic 4th-order Runge-Kutta (fixed step)
- :func:`rk23_step` -- Bogacki-Shampine 3(2) (embedded, FSAL)
- :func:`rkf45_step` -- Runge-Kutta-Fehlberg 4(5) (embedded)
- :func:`dp54_step` -- Dormand-Prince 5(4) (embedded, FSAL)

All step functions share a common interface::

    result = step_fn(dynamics, t, state, dt, config, deriv)

where ``dynamics(t, x) -> dx`` defines the ODE right-hand side, ``deriv``
optionally supplies ``dynamics(t, state)``, and the result is a
:class:`StepResult` named tuple. Step functions only propose a step;
acceptance and step-size control live with the caller.
"""

from integrax.integrators._adaptive import (
    compute_error_norm,
    compute_next_step_size,
    select_initial_step,
)
from integrax.integrators._types import AdaptiveConfig, StepResult
from integrax.integrators.dp54 import dp54_step
from integrax.integrators.rk4 import rk4_step
from integrax.integrators.rk23 import rk23_step
from integrax.integrators.rkf45 import rkf45_step

__all__ = [
    "AdaptiveConfig",
    "StepResult",
    "compute_error_norm",
    "compute_next_step_size",
    "select_initial_step",
    "rk4_step",
    "rk23_step",
    "rkf45_step",
    "dp54_step",
]
