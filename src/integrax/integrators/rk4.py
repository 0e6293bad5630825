"""Classic four-stage Runge-Kutta step (RK4).

The fixed-step kernel behind ``solve_ivp(method="RK4")`` and the substeps
of :func:`~integrax.ode.odeint`. Stage nodes are 0, 1/2, 1/2, 1 with
weights 1/6, 1/3, 1/3, 1/6; local error is :math:`O(h^5)`.

The kernel carries no error estimate. :func:`~integrax.ode.odeint` builds
one by step doubling instead.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from integrax.config import get_dtype
from integrax.integrators._types import AdaptiveConfig, StepResult


def rk4_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    config: AdaptiveConfig | None = None,
    deriv: ArrayLike | None = None,
) -> StepResult:
    """Perform a single RK4 integration step.

    Advances the state from time ``t`` to ``t + dt`` using the classic
    4th-order Runge-Kutta method, then evaluates the derivative at the new
    state so the next step (and dense output) can reuse it.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Timestep to take. May be negative for backward integration.
        config: Ignored. Accepted so all step functions share one
            signature.
        deriv: Known value of ``dynamics(t, state)``. Evaluated when
            ``None``.

    Returns:
        StepResult: Named tuple with fields:
            - ``state``: State at ``t + dt``.
            - ``derivative``: ``dynamics(t + dt, state)``.
            - ``dt_used``: Always equals ``dt``.
            - ``error_estimate``: Always 0.0 (no error estimate for
              fixed-step methods).

    Examples:
        ```python
        import jax.numpy as jnp
        from integrax.integrators import rk4_step
        def harmonic(t, x):
            return jnp.array([x[1], -x[0]])
        result = rk4_step(harmonic, 0.0, jnp.array([1.0, 0.0]), 0.01)
        result.state  # ~[cos(0.01), -sin(0.01)]
        ```
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    def f(ti, xi):
        return jnp.asarray(dynamics(ti, xi), dtype=dtype)

    k1 = f(t, state) if deriv is None else jnp.asarray(deriv, dtype=dtype)
    k2 = f(t + 0.5 * dt, state + 0.5 * dt * k1)
    k3 = f(t + 0.5 * dt, state + 0.5 * dt * k2)
    k4 = f(t + dt, state + dt * k3)

    state_new = state + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

    return StepResult(
        state=state_new,
        derivative=f(t + dt, state_new),
        dt_used=dt,
        error_estimate=jnp.asarray(0.0, dtype=dtype),
    )
