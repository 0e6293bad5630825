"""Runge-Kutta-Fehlberg 4(5) embedded step (RKF45).

Implements the Fehlberg embedded Runge-Kutta method with a 5th-order
solution for propagation and a 4th-order solution for error estimation.
The method uses 6 stages per step, plus one evaluation at the new state
that the next step reuses as its first stage.

The Butcher tableau coefficients are taken from the standard Fehlberg
formulation:

- Nodes (c): [0, 1/4, 3/8, 12/13, 1, 1/2]
- 5th-order weights (b_high): [16/135, 0, 6656/12825, 28561/56430, -9/50, 2/55]
- 4th-order weights (b_low): [25/216, 0, 1408/2565, 2197/4104, -1/5, 0]
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from integrax.config import get_dtype
from integrax.integrators._adaptive import compute_error_norm
from integrax.integrators._types import AdaptiveConfig, StepResult

# Butcher tableau coefficients as Python tuples (cast at call time).
# Nodes
_C = (0.0, 1.0 / 4.0, 3.0 / 8.0, 12.0 / 13.0, 1.0, 1.0 / 2.0)

# Coupling coefficients (lower-triangular rows)
_A1 = (1.0 / 4.0,)
_A2 = (3.0 / 32.0, 9.0 / 32.0)
_A3 = (1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0)
_A4 = (439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0)
_A5 = (-8.0 / 27.0, 2.0, -3544.0 / 2565.0, 1859.0 / 4104.0, -11.0 / 40.0)

# 5th-order weights (primary solution)
_B_HIGH = (16.0 / 135.0, 0.0, 6656.0 / 12825.0, 28561.0 / 56430.0, -9.0 / 50.0, 2.0 / 55.0)

# 4th-order weights (error estimation)
_B_LOW = (25.0 / 216.0, 0.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0, 0.0)


def rkf45_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    config: AdaptiveConfig | None = None,
    deriv: ArrayLike | None = None,
) -> StepResult:
    """Perform a single RKF45 trial step.

    Advances the state from time ``t`` to ``t + dt`` with the 5th-order
    Fehlberg solution and reports the normalized error of the embedded
    4th-order solution. The caller decides whether to accept the step.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Trial timestep. May be negative for backward integration.
        config: Tolerances for the error norm. Uses default
            :class:`AdaptiveConfig` if ``None``.
        deriv: Known value of ``dynamics(t, state)``. Evaluated when
            ``None``.

    Returns:
        StepResult: Named tuple with fields:
            - ``state``: 5th-order state at ``t + dt``.
            - ``derivative``: ``dynamics(t + dt, state)``.
            - ``dt_used``: Equals ``dt``.
            - ``error_estimate``: Normalized error of the trial step.

    Examples:
        ```python
        import jax.numpy as jnp
        from integrax.integrators import rkf45_step
        def harmonic(t, x):
            return jnp.array([x[1], -x[0]])
        result = rkf45_step(harmonic, 0.0, jnp.array([1.0, 0.0]), 0.1)
        result.state  # ~[cos(0.1), -sin(0.1)]
        ```
    """
    if config is None:
        config = AdaptiveConfig()

    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    h = jnp.asarray(dt, dtype=dtype)

    def f(ti, xi):
        return jnp.asarray(dynamics(ti, xi), dtype=dtype)

    k0 = f(t, state) if deriv is None else jnp.asarray(deriv, dtype=dtype)
    k1 = f(t + _C[1] * h, state + h * _A1[0] * k0)
    k2 = f(t + _C[2] * h, state + h * (_A2[0] * k0 + _A2[1] * k1))
    k3 = f(t + _C[3] * h, state + h * (_A3[0] * k0 + _A3[1] * k1 + _A3[2] * k2))
    k4 = f(
        t + _C[4] * h,
        state + h * (_A4[0] * k0 + _A4[1] * k1 + _A4[2] * k2 + _A4[3] * k3),
    )
    k5 = f(
        t + _C[5] * h,
        state + h * (_A5[0] * k0 + _A5[1] * k1 + _A5[2] * k2 + _A5[3] * k3 + _A5[4] * k4),
    )

    # 5th-order solution (primary)
    state_high = state + h * (
        _B_HIGH[0] * k0 + _B_HIGH[2] * k2 + _B_HIGH[3] * k3 + _B_HIGH[4] * k4 + _B_HIGH[5] * k5
    )

    # 4th-order solution (for error estimation)
    state_low = state + h * (_B_LOW[0] * k0 + _B_LOW[2] * k2 + _B_LOW[3] * k3 + _B_LOW[4] * k4)

    error = compute_error_norm(
        state_high - state_low, state_high, state, config.abs_tol, config.rel_tol
    )

    return StepResult(
        state=state_high,
        derivative=f(t + h, state_high),
        dt_used=h,
        error_estimate=error,
    )
