"""Cubic Hermite dense output for accepted Runge-Kutta steps.

Within a step from ``(t0, y0)`` to ``(t1, y1)`` with end-point slopes
``f0`` and ``f1`` the state is approximated by

.. math::

    y(t_0 + s h) \\approx h_{00}(s) y_0 + h_{10}(s) h f_0
        + h_{01}(s) y_1 + h_{11}(s) h f_1

with the cubic Hermite basis polynomials. The interpolant is continuous
with a continuous first derivative across steps and is third-order
accurate, independent of the stepping method.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from integrax.config import get_dtype


def hermite_interpolate(
    t: ArrayLike,
    t0: ArrayLike,
    t1: ArrayLike,
    y0: ArrayLike,
    y1: ArrayLike,
    f0: ArrayLike,
    f1: ArrayLike,
) -> Array:
    """Evaluate the cubic Hermite interpolant of one step at time(s) *t*.

    Args:
        t: Evaluation time, scalar or shape ``(k,)``.
        t0: Step start time.
        t1: Step end time (``t1 != t0``).
        y0: State at ``t0``, shape ``(m,)`` or ``(k, m)``.
        y1: State at ``t1``.
        f0: Derivative at ``t0``.
        f1: Derivative at ``t1``.

    Returns:
        jax.Array: Interpolated state, shape ``(m,)`` for scalar *t* or
        ``(k, m)`` for vector *t*.
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    t0 = jnp.asarray(t0, dtype=dtype)
    h = jnp.asarray(t1, dtype=dtype) - t0
    s = ((t - t0) / h)[..., None]

    s2 = s * s
    s3 = s2 * s
    h00 = 2.0 * s3 - 3.0 * s2 + 1.0
    h10 = s3 - 2.0 * s2 + s
    h01 = -2.0 * s3 + 3.0 * s2
    h11 = s3 - s2

    return h00 * y0 + h10 * h[..., None] * f0 + h01 * y1 + h11 * h[..., None] * f1


class DenseSolution:
    """Piecewise cubic Hermite interpolant over a sequence of accepted steps.

    Calling the object with a time (or array of times) returns the
    interpolated state(s). Times outside the integrated span are
    extrapolated from the first or last step.

    Args:
        ts: Step boundaries, shape ``(n + 1,)``, monotonic.
        ys: States at the boundaries, shape ``(n + 1, m)``.
        fs: Derivatives at the boundaries, shape ``(n + 1, m)``.
    """

    def __init__(self, ts: ArrayLike, ys: ArrayLike, fs: ArrayLike):
        dtype = get_dtype()
        self.ts = jnp.asarray(ts, dtype=dtype)
        self.ys = jnp.asarray(ys, dtype=dtype)
        self.fs = jnp.asarray(fs, dtype=dtype)
        if self.ts.shape[0] < 2:
            raise ValueError("DenseSolution needs at least one step")
        self.direction = 1.0 if float(self.ts[-1]) >= float(self.ts[0]) else -1.0
        self.t_min = float(jnp.min(self.ts))
        self.t_max = float(jnp.max(self.ts))

    def __call__(self, t: ArrayLike) -> Array:
        t = jnp.asarray(t, dtype=get_dtype())
        scalar = t.ndim == 0
        t = jnp.atleast_1d(t)

        ordered = self.direction * self.ts
        idx = jnp.searchsorted(ordered, self.direction * t, side="left") - 1
        idx = jnp.clip(idx, 0, self.ts.shape[0] - 2)

        y = hermite_interpolate(
            t,
            self.ts[idx],
            self.ts[idx + 1],
            self.ys[idx],
            self.ys[idx + 1],
            self.fs[idx],
            self.fs[idx + 1],
        )
        return y[0] if scalar else y
