"""Dormand-Prince 5(4) embedded step (DP54).

Implements the Dormand-Prince embedded Runge-Kutta method with a 5th-order
solution for propagation and a 4th-order solution for error estimation.
The method uses 7 stages per step.

The Dormand-Prince method has the First-Same-As-Last (FSAL) property: the
7th stage of step *n* is the derivative at the new state, identical to the
1st stage of step *n+1* when the step is accepted. :func:`dp54_step`
returns it as ``StepResult.derivative`` and accepts it back through
``deriv``, so an accepted step costs six new evaluations.

The Butcher tableau coefficients are the standard Dormand-Prince values:

- Nodes (c): [0, 1/5, 3/10, 4/5, 8/9, 1, 1]
- 5th-order weights (b_high): [35/384, 0, 500/1113, 125/192, -2187/6784, 11/84, 0]
- 4th-order weights (b_low): [5179/57600, 0, 7571/16695, 393/640, -92097/339200,
  187/2100, 1/40]
"""

from __future__ import annotations

from typing import Callable, Optional

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from integrax.config import get_dtype
from integrax.integrators._adaptive import compute_error_norm
from integrax.integrators._types import AdaptiveConfig, StepResult

# Butcher tableau coefficients as Python tuples (cast at call time).
# Nodes
_C = (0.0, 1.0 / 5.0, 3.0 / 10.0, 4.0 / 5.0, 8.0 / 9.0, 1.0, 1.0)

# Coupling coefficients (lower-triangular rows)
_A1 = (1.0 / 5.0,)
_A2 = (3.0 / 40.0, 9.0 / 40.0)
_A3 = (44.0 / 45.0, -56.0 / 15.0, 32.0 / 9.0)
_A4 = (19372.0 / 6561.0, -25360.0 / 2187.0, 64448.0 / 6561.0, -212.0 / 729.0)
_A5 = (9017.0 / 3168.0, -355.0 / 33.0, 46732.0 / 5247.0, 49.0 / 176.0, -5103.0 / 18656.0)

# 5th-order weights (primary solution); the 7th stage row equals these
_B_HIGH = (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0, 11.0 / 84.0, 0.0)

# 4th-order weights (error estimation)
_B_LOW = (
    5179.0 / 57600.0,
    0.0,
    7571.0 / 16695.0,
    393.0 / 640.0,
    -92097.0 / 339200.0,
    187.0 / 2100.0,
    1.0 / 40.0,
)


def dp54_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    config: Optional[AdaptiveConfig] = None,
    deriv: Optional[ArrayLike] = None,
) -> StepResult:
    """Perform a single DP54 trial step.

    Advances the state from time ``t`` to ``t + dt`` with the 5th-order
    Dormand-Prince solution and reports the normalized error of the
    embedded 4th-order solution. The caller decides whether to accept the
    step.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Trial timestep. May be negative for backward integration.
        config: Tolerances for the error norm. Uses default
            :class:`AdaptiveConfig` if ``None``.
        deriv: Known value of ``dynamics(t, state)``, typically the
            ``derivative`` of the previous accepted step. Evaluated when
            ``None``.

    Returns:
        StepResult: Named tuple with fields:
            - ``state``: 5th-order state at ``t + dt``.
            - ``derivative``: ``dynamics(t + dt, state)`` (the FSAL stage).
            - ``dt_used``: Equals ``dt``.
            - ``error_estimate``: Normalized error of the trial step.

    Examples:
        ```python
        import jax.numpy as jnp
        from integrax.integrators import dp54_step
        def harmonic(t, x):
            return jnp.array([x[1], -x[0]])
        result = dp54_step(harmonic, 0.0, jnp.array([1.0, 0.0]), 0.1)
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
        state
        + h * (_A5[0] * k0 + _A5[1] * k1 + _A5[2] * k2 + _A5[3] * k3 + _A5[4] * k4),
    )

    # 5th-order solution (primary); note _B_HIGH[1] = _B_HIGH[6] = 0
    state_high = state + h * (
        _B_HIGH[0] * k0
        + _B_HIGH[2] * k2
        + _B_HIGH[3] * k3
        + _B_HIGH[4] * k4
        + _B_HIGH[5] * k5
    )

    # FSAL stage
    k6 = f(t + _C[6] * h, state_high)

    # 4th-order solution (for error estimation)
    state_low = state + h * (
        _B_LOW[0] * k0
        + _B_LOW[2] * k2
        + _B_LOW[3] * k3
        + _B_LOW[4] * k4
        + _B_LOW[5] * k5
        + _B_LOW[6] * k6
    )

    error = compute_error_norm(
        state_high - state_low, state_high, state, config.abs_tol, config.rel_tol
    )

    return StepResult(
        state=state_high,
        derivative=k6,
        dt_used=h,
        error_estimate=error,
    )
