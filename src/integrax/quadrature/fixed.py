"""Fixed-order Gauss-Legendre quadrature."""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

import jax.numpy as jnp

from integrax.config import get_dtype
from integrax.quadrature._integrand import ScalarIntegrand
from integrax.quadrature._tables import gauss_legendre
from integrax.quadrature.adaptive import _check_bounds


def fixed_quad(
    func: Callable[..., Any],
    a: float,
    b: float,
    n: int = 5,
    args: tuple = (),
) -> float | complex:
    """Integrate ``func(x, *args)`` over ``[a, b]`` with an ``n``-point Gauss rule.

    The tabulated nodes on ``[-1, 1]`` are mapped onto ``[a, b]`` by
    ``x = (b - a)/2 * xi + (a + b)/2`` and the weighted sum is scaled by
    ``(b - a)/2``. Polynomials of degree ``2n - 1`` or less are integrated
    exactly. No error estimate is produced.

    Args:
        func: Integrand ``f(x, *args)``. Complex return values are
            supported.
        a: Finite lower limit.
        b: Finite upper limit.
        n: Number of Gauss-Legendre nodes, ``1 <= n <= 64``.
        args: Extra positional arguments forwarded to *func*.

    Returns:
        float | complex: The integral estimate.

    Raises:
        ValueError: If a limit is infinite or NaN, or *n* is out of range.

    Examples:
        ```python
        from integrax import fixed_quad
        fixed_quad(lambda x: x**3, 0.0, 1.0, n=2)  # 0.25
        ```
    """
    a, b = _check_bounds(a, b)
    if not (math.isfinite(a) and math.isfinite(b)):
        raise ValueError(f"fixed_quad requires finite limits, got a={a}, b={b}")

    nodes, weights = gauss_legendre(n)
    half = 0.5 * (b - a)
    center = 0.5 * (a + b)

    integrand = ScalarIntegrand(func, args)
    samples = jnp.asarray(
        [integrand(x) for x in (half * nodes + center).tolist()], dtype=get_dtype()
    )
    return integrand.pack(half * (weights @ samples))
