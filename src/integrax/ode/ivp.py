"""Adaptive initial-value problem driver.

:func:`solve_ivp` advances ``dy/dt = fun(t, y, *args)`` from ``t_span[0]``
to ``t_span[1]`` by repeatedly proposing trial steps with one of the
Runge-Kutta kernels in :mod:`integrax.integrators`:

- Each trial either passes (normalized error <= 1) and advances the state,
  or is rejected and retried with a smaller step. Steps never grow
  immediately after a rejection.
- The final step is shortened to land exactly on ``t_span[1]``, or
  stretched onto it when the remainder would be below the step floor.
  Fixed-step nodes are computed as ``t0 + k*h`` so rounding does not
  accumulate across steps.
- Integration fails, returning ``success=False`` and the trajectory so
  far, when a rejected step is already at the minimum step size or the
  right-hand side produces a non-finite value.

Backward integration (``t_span[1] < t_span[0]``) negates the step sign;
output times then decrease monotonically.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import NamedTuple, Optional, Sequence

import jax.numpy as jnp
import numpy as np
from jax import Array
from jax.typing import ArrayLike

from integrax.config import get_dtype
from integrax.integrators import (
    AdaptiveConfig,
    StepResult,
    compute_next_step_size,
    dp54_step,
    rk4_step,
    rk23_step,
    rkf45_step,
    select_initial_step,
)
from integrax.ode._dense import DenseSolution, hermite_interpolate
from integrax.ode._types import OdeResult

logger = logging.getLogger(__name__)

# Fixed-step methods take this many steps across the span by default
_FIXED_STEPS = 100

_MESSAGES = {
    0: "The solver successfully reached the end of the integration interval.",
    -1: "Required step size is less than spacing between numbers.",
}


class _Method(NamedTuple):
    step: Callable[..., StepResult]
    error_order: Optional[float]


METHODS = {
    "RK45": _Method(dp54_step, 4.0),
    "RKF45": _Method(rkf45_step, 4.0),
    "RK23": _Method(rk23_step, 2.0),
    "RK4": _Method(rk4_step, None),
}


def _all_finite(*arrays: Array) -> bool:
    return all(bool(jnp.all(jnp.isfinite(a))) for a in arrays)


def _validate_t_eval(t_eval: ArrayLike, t0: float, tf: float, direction: float) -> Array:
    t_eval = jnp.asarray(t_eval, dtype=get_dtype())
    if t_eval.ndim != 1:
        raise ValueError(f"t_eval must be one-dimensional, got shape {t_eval.shape}")
    lo, hi = min(t0, tf), max(t0, tf)
    if t_eval.shape[0] and (float(jnp.min(t_eval)) < lo or float(jnp.max(t_eval)) > hi):
        raise ValueError(f"Values in t_eval are not within t_span [{t0}, {tf}]")
    if t_eval.shape[0] > 1 and not bool(jnp.all(direction * jnp.diff(t_eval) > 0.0)):
        order = "increasing" if direction > 0 else "decreasing"
        raise ValueError(f"t_eval must be strictly {order} to match t_span")
    return t_eval


def solve_ivp(
    fun: Callable[..., ArrayLike],
    t_span: Sequence[float],
    y0: ArrayLike,
    method: str = "RK45",
    t_eval: Optional[ArrayLike] = None,
    dense_output: bool = False,
    first_step: Optional[float] = None,
    max_step: float = math.inf,
    min_step: float = 0.0,
    rtol: float = 1e-6,
    atol: float = 1e-9,
    args: tuple = (),
) -> OdeResult:
    """Solve an initial-value problem for a system of ODEs.

    Args:
        fun: Right-hand side ``fun(t, y, *args) -> dy/dt``. Receives ``y``
            as a 1-D array and must return a sequence of the same length.
        t_span: ``(t0, tf)``. ``tf < t0`` integrates backward.
        y0: Initial state, a number or a 1-D sequence.
        method: ``"RK45"`` (Dormand-Prince, default), ``"RKF45"``,
            ``"RK23"`` (Bogacki-Shampine) or ``"RK4"`` (fixed step).
            Case-insensitive.
        t_eval: Times at which to report the solution, monotonic in the
            solve direction and inside ``t_span``. Filled by Hermite
            interpolation within accepted steps. When ``None`` every
            accepted step is reported.
        dense_output: Attach a :class:`DenseSolution` as ``sol``.
        first_step: Initial step size. Chosen automatically when ``None``;
            for ``"RK4"`` this is the fixed step (default
            ``|tf - t0| / 100``).
        max_step: Upper bound on the step size.
        min_step: Lower bound on the step size. A rejected step at this
            size fails the integration.
        rtol: Relative tolerance.
        atol: Absolute tolerance.
        args: Extra positional arguments forwarded to *fun*.

    Returns:
        OdeResult: ``t``, ``y`` (rows per time), ``success``, ``nfev``,
        ``message``, ``status`` and ``sol``.

    Raises:
        ValueError: On malformed ``t_span``, ``y0``, ``t_eval``, tolerances,
            step bounds, or an unknown *method*.

    Examples:
        ```python
        from integrax import solve_ivp
        res = solve_ivp(lambda t, y: -y, (0.0, 1.0), [1.0])
        res.y[-1]  # ~[0.3679]
        ```
    """
    dtype = get_dtype()

    if len(t_span) != 2:
        raise ValueError(f"t_span must contain exactly two values, got {len(t_span)}")
    t0, tf = float(t_span[0]), float(t_span[1])
    if not (math.isfinite(t0) and math.isfinite(tf)):
        raise ValueError(f"t_span must be finite, got ({t0}, {tf})")

    key = str(method).upper()
    if key not in METHODS:
        raise ValueError(f"Unknown method '{method}'. Must be one of: {', '.join(METHODS)}")
    stepper = METHODS[key]

    y0 = jnp.atleast_1d(jnp.asarray(y0, dtype=dtype))
    if y0.ndim != 1 or y0.shape[0] == 0:
        raise ValueError(f"y0 must be a non-empty 1-D sequence, got shape {y0.shape}")
    if rtol < 0.0 or atol < 0.0:
        raise ValueError(f"Tolerances must be non-negative, got rtol={rtol}, atol={atol}")
    if not max_step > 0.0:
        raise ValueError(f"max_step must be positive, got {max_step}")
    if min_step < 0.0 or min_step > max_step:
        raise ValueError(f"min_step must lie in [0, max_step], got {min_step}")
    if first_step is not None and not first_step > 0.0:
        raise ValueError(f"first_step must be positive, got {first_step}")

    direction = 1.0 if tf >= t0 else -1.0
    if t_eval is not None:
        t_eval = _validate_t_eval(t_eval, t0, tf, direction)

    nfev = 0
    size = y0.shape[0]

    def dynamics(t, y):
        nonlocal nfev
        nfev += 1
        dy = jnp.asarray(fun(t, y, *args), dtype=dtype)
        if dy.size != size:
            raise ValueError(
                f"fun returned {dy.size} derivative components for a state of size {size}"
            )
        return dy.reshape(y0.shape)

    # Output accumulators
    eval_index = 0
    if t_eval is None:
        ts_out: list = [t0]
        ys_out: list = [y0]
    else:
        ts_out, ys_out = [], []
        if t_eval.shape[0] and float(t_eval[0]) == t0:
            ts_out.append(t0)
            ys_out.append(y0)
            eval_index = 1

    def finish(status: int, message: str, segments=None) -> OdeResult:
        t_arr = jnp.asarray(ts_out, dtype=dtype)
        y_arr = jnp.stack(ys_out) if ys_out else jnp.zeros((0, size), dtype=dtype)
        sol = None
        if segments is not None and len(segments[0]) > 1:
            sol = DenseSolution(*segments)
        if status < 0:
            logger.warning("solve_ivp failed: %s", message)
        logger.debug(
            "solve_ivp (%s): %d outputs, %d evaluations", key, t_arr.shape[0], nfev
        )
        return OdeResult(
            t=t_arr,
            y=y_arr,
            success=status == 0,
            nfev=nfev,
            message=message,
            status=status,
            sol=sol,
        )

    if t0 == tf:
        return finish(0, _MESSAGES[0])

    t, y = t0, y0
    f = dynamics(t0, y0)
    segments = ([t0], [y0], [f]) if dense_output else None
    if not _all_finite(f):
        return finish(-1, f"Derivative evaluated to a non-finite value at t={t0:g}.", segments)

    span = abs(tf - t0)
    config = AdaptiveConfig(abs_tol=atol, rel_tol=rtol, min_step=min_step, max_step=max_step)
    adaptive = stepper.error_order is not None

    if first_step is not None:
        h_abs = first_step
    elif adaptive:
        h_abs = select_initial_step(
            dynamics, t0, y0, f, direction, stepper.error_order, atol, rtol, span, max_step
        )
    else:
        h_abs = span / _FIXED_STEPS
    h_abs = min(h_abs, max_step)
    n_steps = 0

    while direction * (t - tf) < 0.0:
        step_floor = max(min_step, 10.0 * abs(float(np.nextafter(t, direction * np.inf)) - t))
        step_rejected = False

        while True:
            if h_abs < step_floor:
                return finish(-1, _MESSAGES[-1], segments)

            if adaptive:
                t_new = t + h_abs * direction
            else:
                t_new = t0 + (n_steps + 1) * h_abs * direction
            if direction * (t_new - tf) > 0.0 or abs(tf - t_new) <= step_floor:
                t_new = tf
            h = t_new - t

            result = stepper.step(dynamics, t, y, h, config, f)
            if not _all_finite(result.state, result.derivative):
                return finish(
                    -1, f"Derivative evaluated to a non-finite value near t={t_new:g}.", segments
                )

            if not adaptive:
                break

            error = float(result.error_estimate)
            if math.isnan(error):
                error = math.inf
            if error <= 1.0:
                h_abs = abs(float(compute_next_step_size(
                    error, h, stepper.error_order, config.safety_factor,
                    config.min_scale_factor,
                    1.0 if step_rejected else config.max_scale_factor,
                    config.min_step, config.max_step,
                )))
                break

            if abs(h) <= step_floor:
                return finish(-1, _MESSAGES[-1], segments)
            h_abs = abs(float(compute_next_step_size(
                error, h, stepper.error_order, config.safety_factor,
                config.min_scale_factor, 1.0, 0.0, config.max_step,
            )))
            step_rejected = True

        y_new, f_new = result.state, result.derivative

        if t_eval is None:
            ts_out.append(t_new)
            ys_out.append(y_new)
        else:
            start = eval_index
            while eval_index < t_eval.shape[0] and direction * (float(t_eval[eval_index]) - t_new) <= 0.0:
                eval_index += 1
            if eval_index > start:
                chunk = t_eval[start:eval_index]
                ts_out.extend(chunk.tolist())
                ys_out.extend(hermite_interpolate(chunk, t, t_new, y, y_new, f, f_new))

        if segments is not None:
            segments[0].append(t_new)
            segments[1].append(y_new)
            segments[2].append(f_new)

        t, y, f = t_new, y_new, f_new
        n_steps += 1

    return finish(0, _MESSAGES[0], segments)
