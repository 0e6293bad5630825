"""Romberg integration.

Builds the triangular Richardson extrapolation table over trapezoid
estimates at successively halved step sizes:

.. math::

    R_{k,0} = T(h_k), \\qquad h_k = (b - a) / 2^k

    R_{k,m} = \\frac{4^m R_{k,m-1} - R_{k-1,m-1}}{4^m - 1}

Each refinement level reuses all previous samples and evaluates only the
``2^{k-1}`` new midpoints. Iteration stops when consecutive diagonal
entries differ by less than ``tol`` or after ``divmax`` levels.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import Any

import jax.numpy as jnp

from integrax.config import get_dtype
from integrax.quadrature._types import QuadratureResult
from integrax.quadrature.adaptive import _check_bounds

logger = logging.getLogger(__name__)


def romberg(
    func: Callable[..., Any],
    a: float,
    b: float,
    args: tuple = (),
    tol: float = 1e-8,
    divmax: int = 10,
    full_output: bool = False,
):
    """Integrate ``func(x, *args)`` over ``[a, b]`` by Romberg extrapolation.

    Args:
        func: Real integrand ``f(x, *args)``.
        a: Finite lower limit.
        b: Finite upper limit.
        args: Extra positional arguments forwarded to *func*.
        tol: Absolute convergence threshold on the change of the
            extrapolated diagonal.
        divmax: Maximum refinement level; at most ``2**divmax + 1``
            samples are taken.
        full_output: Return a :class:`QuadratureResult` instead of
            ``(value, error)``.

    Returns:
        tuple: ``(value, error)`` where ``error`` is the last diagonal
        change, or a :class:`QuadratureResult`.

    Raises:
        ValueError: If a limit is infinite or NaN, *tol* is not positive,
            or *divmax* is less than 1.
    """
    a, b = _check_bounds(a, b)
    if not (math.isfinite(a) and math.isfinite(b)):
        raise ValueError(f"romberg requires finite limits, got a={a}, b={b}")
    if tol <= 0.0:
        raise ValueError(f"tol must be positive, got {tol}")
    if divmax < 1:
        raise ValueError(f"divmax must be at least 1, got {divmax}")

    if a == b:
        result = QuadratureResult(value=0.0, error=0.0, neval=0, converged=True)
        return result if full_output else (result.value, result.error)

    dtype = get_dtype()

    def f(x):
        return float(func(x, *args))

    width = b - a
    neval = 2
    previous = [0.5 * width * (f(a) + f(b))]
    error = math.inf
    converged = False

    for k in range(1, divmax + 1):
        npoints = 2 ** (k - 1)
        h = width / (2 * npoints)
        midpoints = (a + h * (2.0 * jnp.arange(npoints, dtype=dtype) + 1.0)).tolist()
        new_sum = float(jnp.sum(jnp.asarray([f(x) for x in midpoints], dtype=dtype)))
        neval += npoints

        row = [0.5 * previous[0] + h * new_sum]
        for m in range(1, k + 1):
            factor = 4.0**m
            row.append((factor * row[m - 1] - previous[m - 1]) / (factor - 1.0))

        error = abs(row[k] - previous[k - 1])
        previous = row
        if error < tol:
            converged = True
            break

    if not converged:
        logger.warning(
            "Romberg did not converge after %d refinements; last change %.3g exceeds tol %.3g",
            divmax, error, tol,
        )

    result = QuadratureResult(value=previous[-1], error=error, neval=neval, converged=converged)
    if full_output:
        return result
    return result.value, result.error
