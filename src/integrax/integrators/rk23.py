"""Bogacki-Shampine 3(2) embedded step (RK23).

A low-order embedded pair for loose tolerances or mildly non-smooth
right-hand sides. The 3rd-order solution is propagated and the embedded
2nd-order solution estimates the error. Like Dormand-Prince it is FSAL:
the 4th stage is the derivative at the new state.

- Nodes (c): [0, 1/2, 3/4, 1]
- 3rd-order weights (b_high): [2/9, 1/3, 4/9, 0]
- 2nd-order weights (b_low): [7/24, 1/4, 1/3, 1/8]
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from integrax.config import get_dtype
from integrax.integrators._adaptive import compute_error_norm
from integrax.integrators._types import AdaptiveConfig, StepResult

_C = (0.0, 1.0 / 2.0, 3.0 / 4.0, 1.0)

_B_HIGH = (2.0 / 9.0, 1.0 / 3.0, 4.0 / 9.0, 0.0)

# b_high - b_low
_E = (-5.0 / 72.0, 1.0 / 12.0, 1.0 / 9.0, -1.0 / 8.0)


def rk23_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    config: AdaptiveConfig | None = None,
    deriv: ArrayLike | None = None,
) -> StepResult:
    """Perform a single Bogacki-Shampine trial step.

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
        StepResult: 3rd-order state at ``t + dt``, the FSAL derivative,
        ``dt`` and the normalized error.
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
    k1 = f(t + _C[1] * h, state + h * 0.5 * k0)
    k2 = f(t + _C[2] * h, state + h * 0.75 * k1)

    state_high = state + h * (_B_HIGH[0] * k0 + _B_HIGH[1] * k1 + _B_HIGH[2] * k2)
    k3 = f(t + h, state_high)

    error_vec = h * (_E[0] * k0 + _E[1] * k1 + _E[2] * k2 + _E[3] * k3)
    error = compute_error_norm(error_vec, state_high, state, config.abs_tol, config.rel_tol)

    return StepResult(
        state=state_high,
        derivative=k3,
        dt_used=h,
        error_estimate=error,
    )
