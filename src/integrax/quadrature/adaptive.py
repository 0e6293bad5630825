"""Adaptive Gauss-Kronrod quadrature over finite and infinite intervals.

:func:`quad` integrates a scalar callable with the globally adaptive
strategy of QUADPACK's QAG routine:

1. Apply the Gauss-Kronrod 7-15 pair to the whole interval. The Kronrod
   sum is the value estimate; its difference from the embedded Gauss sum
   drives the error estimate.
2. While the summed error exceeds ``epsabs + epsrel * |value|``, bisect
   the segment with the largest error and re-estimate both halves.
3. Stop when the tolerance is met, the work list holds ``limit``
   segments, or no segment can be split further. In the last two cases
   the best estimate is returned with ``converged=False``.

Subdivision runs over an explicit work list, so the cost of a call is
bounded by ``limit`` segments of 15 evaluations each regardless of the
integrand.

Infinite limits are mapped onto a finite interval before integration:

.. math::

    \\int_a^{\\infty} f(x)\\,dx = \\int_0^1 f\\!\\left(a + \\frac{t}{1-t}\\right)
        \\frac{dt}{(1-t)^2}

and similarly for ``(-inf, b]`` and ``(-inf, inf)``. The Kronrod nodes never
touch the interval endpoints, so the singular Jacobian is never evaluated
there.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import Any, NamedTuple

import jax.numpy as jnp
from jax import Array

from integrax.config import get_dtype, get_machine_epsilon
from integrax.quadrature._integrand import ScalarIntegrand
from integrax.quadrature._tables import gauss_kronrod_15
from integrax.quadrature._types import QuadratureResult

logger = logging.getLogger(__name__)

QUAD_EPSABS = 1.49e-8
QUAD_EPSREL = 1.49e-8
QUAD_LIMIT = 50

# Bisection depth past which a segment is no longer split
_MAX_DEPTH = 60


class _Segment(NamedTuple):
    a: float
    b: float
    value: Array
    error: float
    depth: int


def _check_bounds(a: Any, b: Any) -> tuple[float, float]:
    a = float(a)
    b = float(b)
    if math.isnan(a) or math.isnan(b):
        raise ValueError(f"Integration limits must not be NaN, got a={a}, b={b}")
    return a, b


def _check_tolerances(epsabs: float, epsrel: float, limit: int) -> None:
    if epsabs < 0.0 or epsrel < 0.0:
        raise ValueError(
            f"Tolerances must be non-negative, got epsabs={epsabs}, epsrel={epsrel}"
        )
    if epsabs == 0.0 and epsrel == 0.0:
        raise ValueError("At least one of epsabs and epsrel must be positive")
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")


def map_to_finite(
    func: Callable[[float], tuple[float, ...]], a: float, b: float
) -> tuple[Callable[[float], tuple[float, ...]], float, float]:
    """Rewrite an integral with infinite limits over a finite interval.

    Args:
        func: Channel-valued integrand ``x -> (f_1, ..., f_c)``.
        a: Lower limit, ``a < b``. May be ``-inf``.
        b: Upper limit. May be ``inf``.

    Returns:
        tuple: ``(g, lo, hi)`` with ``g`` the transformed integrand, Jacobian
        included, such that the integral of ``g`` over ``[lo, hi]`` equals the
        integral of ``func`` over ``[a, b]``. Finite limits are returned
        unchanged.
    """
    if math.isfinite(a) and math.isfinite(b):
        return func, a, b

    if math.isfinite(a):
        def upper_ray(t):
            s = 1.0 - t
            return tuple(v / (s * s) for v in func(a + t / s))

        return upper_ray, 0.0, 1.0

    if math.isfinite(b):
        def lower_ray(t):
            return tuple(v / (t * t) for v in func(b - (1.0 - t) / t))

        return lower_ray, 0.0, 1.0

    def real_line(t):
        s = 1.0 - t * t
        jacobian = (1.0 + t * t) / (s * s)
        return tuple(v * jacobian for v in func(t / s))

    return real_line, -1.0, 1.0


def _kronrod_segment(
    func: Callable[[float], tuple[float, ...]], a: float, b: float, depth: int
) -> _Segment:
    """Apply the Gauss-Kronrod 7-15 pair to ``[a, b]``.

    The error estimate follows QUADPACK ``qk15``: the Kronrod-Gauss
    difference is scaled by the integrand's variation on the segment and
    floored at ``50 * eps * |resabs|``. Non-finite samples are zeroed and
    give the segment an infinite error, so it is bisected first.
    """
    dtype = get_dtype()
    eps = get_machine_epsilon()
    tiny = float(jnp.finfo(dtype).tiny)

    xgk, wgk, wg = gauss_kronrod_15()
    center = 0.5 * (a + b)
    half = 0.5 * (b - a)

    nodes = (center + half * xgk).tolist()
    samples = jnp.asarray([func(x) for x in nodes], dtype=dtype)

    finite = jnp.isfinite(samples)
    singular = not bool(jnp.all(finite))
    samples = jnp.where(finite, samples, 0.0)

    resk = wgk @ samples
    resg = wg @ samples
    reskh = 0.5 * resk
    resabs = (wgk @ jnp.abs(samples)) * abs(half)
    resasc = (wgk @ jnp.abs(samples - reskh)) * abs(half)

    err = jnp.abs((resk - resg) * half)
    scaled = resasc * jnp.minimum(1.0, (200.0 * err / jnp.where(resasc == 0.0, 1.0, resasc)) ** 1.5)
    err = jnp.where((resasc != 0.0) & (err != 0.0), scaled, err)
    err = jnp.where(resabs > tiny / (50.0 * eps), jnp.maximum(50.0 * eps * resabs, err), err)

    error = math.inf if singular else float(jnp.sqrt(jnp.sum(err**2)))
    return _Segment(a=a, b=b, value=resk * half, error=error, depth=depth)


def _splittable(segment: _Segment) -> bool:
    if segment.depth >= _MAX_DEPTH:
        return False
    mid = 0.5 * (segment.a + segment.b)
    return segment.a < mid < segment.b


def adaptive_kronrod(
    func: Callable[[float], tuple[float, ...]],
    a: float,
    b: float,
    epsabs: float = QUAD_EPSABS,
    epsrel: float = QUAD_EPSREL,
    limit: int = QUAD_LIMIT,
) -> tuple[Array, float, bool]:
    """Globally adaptive Gauss-Kronrod integration of a channel integrand.

    Args:
        func: Integrand ``x -> (f_1, ..., f_c)`` on the finite interval.
        a: Finite lower limit, ``a < b``.
        b: Finite upper limit.
        epsabs: Absolute tolerance.
        epsrel: Relative tolerance.
        limit: Maximum number of segments in the work list.

    Returns:
        tuple: ``(value, error, converged)`` with ``value`` an array of
        one entry per channel.
    """
    segments = [_kronrod_segment(func, a, b, 0)]

    while True:
        value = jnp.sum(jnp.stack([s.value for s in segments]), axis=0)
        error = math.fsum(s.error for s in segments)
        tolerance = epsabs + epsrel * float(jnp.linalg.norm(value))
        if error <= tolerance:
            return value, error, True

        if len(segments) >= limit:
            logger.warning(
                "Maximum number of subdivisions (%d) reached on [%g, %g]; "
                "estimated error %.3g exceeds tolerance %.3g",
                limit, a, b, error, tolerance,
            )
            return value, error, False

        candidates = [i for i, s in enumerate(segments) if _splittable(s)]
        if not candidates:
            logger.warning(
                "Subdivision reached machine resolution on [%g, %g]; "
                "estimated error %.3g exceeds tolerance %.3g",
                a, b, error, tolerance,
            )
            return value, error, False

        worst = segments.pop(max(candidates, key=lambda i: segments[i].error))
        mid = 0.5 * (worst.a + worst.b)
        segments.append(_kronrod_segment(func, worst.a, mid, worst.depth + 1))
        segments.append(_kronrod_segment(func, mid, worst.b, worst.depth + 1))


def integrate_interval(
    integrand: ScalarIntegrand,
    a: float,
    b: float,
    epsabs: float = QUAD_EPSABS,
    epsrel: float = QUAD_EPSREL,
    limit: int = QUAD_LIMIT,
) -> QuadratureResult:
    """Integrate a wrapped integrand over ``[a, b]`` with any limit order.

    Handles empty intervals, reversed limits and infinite limits, then
    delegates to :func:`adaptive_kronrod`.
    """
    if a == b:
        return QuadratureResult(value=0.0, error=0.0, neval=0, converged=True)

    sign = 1.0
    if a > b:
        a, b = b, a
        sign = -1.0

    func, lo, hi = map_to_finite(integrand, a, b)
    value, error, converged = adaptive_kronrod(func, lo, hi, epsabs, epsrel, limit)

    return QuadratureResult(
        value=integrand.pack(sign * value),
        error=error,
        neval=integrand.neval,
        converged=converged,
    )


def quad(
    func: Callable[..., Any],
    a: float,
    b: float,
    args: tuple = (),
    epsabs: float = QUAD_EPSABS,
    epsrel: float = QUAD_EPSREL,
    limit: int = QUAD_LIMIT,
    full_output: bool = False,
):
    """Compute a definite integral with adaptive Gauss-Kronrod quadrature.

    Integrates ``func(x, *args)`` from *a* to *b*. Either limit may be
    infinite. If the first evaluation of *func* returns a complex number
    (or a mapping with ``re``/``im`` keys) the real and imaginary parts
    are integrated over a shared subdivision and a complex value is
    returned.

    Exceptions raised by *func* propagate to the caller.

    Args:
        func: Integrand ``f(x, *args) -> float | complex | {"re", "im"}``.
        a: Lower limit. May be ``-inf`` or ``inf``.
        b: Upper limit. May be ``-inf`` or ``inf``.
        args: Extra positional arguments forwarded to *func*.
        epsabs: Absolute error tolerance.
        epsrel: Relative error tolerance.
        limit: Maximum number of subintervals.
        full_output: Return the full :class:`QuadratureResult` instead of
            ``(value, error)``.

    Returns:
        tuple: ``(value, error)``, or a :class:`QuadratureResult` when
        *full_output* is ``True``.

    Raises:
        ValueError: If a limit is NaN or the tolerances are invalid.

    Examples:
        ```python
        import math
        from integrax import quad
        quad(lambda x: x**2, 0.0, 1.0)          # (0.3333..., ~4e-15)
        quad(lambda x: math.exp(-x), 0.0, math.inf)  # (1.0, ...)
        ```
    """
    a, b = _check_bounds(a, b)
    _check_tolerances(epsabs, epsrel, limit)

    integrand = ScalarIntegrand(func, args)
    result = integrate_interval(integrand, a, b, epsabs, epsrel, limit)
    logger.debug(
        "quad on [%g, %g]: %d evaluations, error %.3g", a, b, result.neval, result.error
    )

    if full_output:
        return result
    return result.value, result.error
