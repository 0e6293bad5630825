"""Composite rules over pre-sampled data.

- :func:`trapz`: composite trapezoidal rule, exact for piecewise-linear
  data on any spacing.
- :func:`simps`: composite Simpson's rule on arbitrary spacing, exact for
  quadratics. With an even sample count the largest odd prefix uses
  Simpson's rule and the final interval is integrated under the parabola
  through the last three samples.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from integrax.config import get_dtype


def _spacing(y: Array, x: ArrayLike | None, dx: float) -> Array:
    if y.ndim != 1:
        raise ValueError(f"Samples must be one-dimensional, got shape {y.shape}")
    if x is None:
        return jnp.full(y.shape[0] - 1, dx, dtype=get_dtype())
    x = jnp.asarray(x, dtype=get_dtype())
    if x.shape != y.shape:
        raise ValueError(
            f"x and y must have the same length, got {x.shape[0] if x.ndim else 0} and {y.shape[0]}"
        )
    return jnp.diff(x)


def trapz(y: ArrayLike, x: ArrayLike | None = None, dx: float = 1.0) -> float:
    """Integrate samples with the composite trapezoidal rule.

    Args:
        y: Sample values, at least two.
        x: Sample coordinates. When ``None`` the samples are ``dx`` apart.
        dx: Uniform spacing used when *x* is ``None``.

    Returns:
        float: The integral estimate.

    Raises:
        ValueError: If fewer than two samples are given or *x* and *y*
            differ in length.

    Examples:
        ```python
        from integrax import trapz
        trapz([0.0, 0.25, 1.0], x=[0.0, 0.25, 1.0])  # 0.5
        ```
    """
    y = jnp.asarray(y, dtype=get_dtype())
    if y.ndim == 1 and y.shape[0] < 2:
        raise ValueError(f"trapz needs at least 2 samples, got {y.shape[0]}")
    h = _spacing(y, x, dx)
    return float(jnp.sum(0.5 * h * (y[1:] + y[:-1])))


def _simpson_pairs(y: Array, h: Array) -> Array:
    """Simpson's rule over consecutive interval pairs; ``len(h)`` is even."""
    h0 = h[0::2]
    h1 = h[1::2]
    hsum = h0 + h1
    y0 = y[0:-1:2]
    y1 = y[1::2]
    y2 = y[2::2]
    return jnp.sum(
        hsum / 6.0
        * ((2.0 - h1 / h0) * y0 + hsum**2 / (h0 * h1) * y1 + (2.0 - h0 / h1) * y2)
    )


def simps(y: ArrayLike, x: ArrayLike | None = None, dx: float = 1.0) -> float:
    """Integrate samples with the composite Simpson's rule.

    Args:
        y: Sample values, at least two. Two samples reduce to the
            trapezoidal rule.
        x: Sample coordinates, possibly non-uniform. When ``None`` the
            samples are ``dx`` apart.
        dx: Uniform spacing used when *x* is ``None``.

    Returns:
        float: The integral estimate.

    Raises:
        ValueError: If fewer than two samples are given, *x* and *y*
            differ in length, or two coordinates coincide.

    Examples:
        ```python
        from integrax import simps
        simps([0.0, 0.25, 1.0], dx=0.5)  # 1/3
        ```
    """
    y = jnp.asarray(y, dtype=get_dtype())
    if y.ndim == 1 and y.shape[0] < 2:
        raise ValueError(f"simps needs at least 2 samples, got {y.shape[0]}")
    h = _spacing(y, x, dx)
    if bool(jnp.any(h == 0.0)):
        raise ValueError("Sample spacing must be non-zero")

    n = y.shape[0]
    if n == 2:
        return float(0.5 * h[0] * (y[0] + y[1]))
    if n % 2 == 1:
        return float(_simpson_pairs(y, h))

    total = _simpson_pairs(y[:-1], h[:-1])

    # Last interval under the parabola through the final three samples
    h0 = h[-2]
    h1 = h[-1]
    alpha = (2.0 * h1**2 + 3.0 * h0 * h1) / (6.0 * (h0 + h1))
    beta = (h1**2 + 3.0 * h0 * h1) / (6.0 * h0)
    eta = h1**3 / (6.0 * h0 * (h0 + h1))
    total = total + alpha * y[-1] + beta * y[-2] - eta * y[-3]
    return float(total)
