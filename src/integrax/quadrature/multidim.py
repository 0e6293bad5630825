"""Double and triple integrals by nested adaptive quadrature.

The outer variable is integrated with the adaptive Gauss-Kronrod core; at
every outer sample the inner integral is itself a full adaptive
integration with the outer variables held fixed. Inner limits may depend
on the outer variables.

The reported error is that of the outermost integration; inner integrals
are taken as converged to their own tolerance.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Union

from integrax.quadrature._integrand import ScalarIntegrand
from integrax.quadrature._types import QuadratureResult
from integrax.quadrature.adaptive import (
    QUAD_EPSABS,
    QUAD_EPSREL,
    QUAD_LIMIT,
    _check_bounds,
    _check_tolerances,
    integrate_interval,
)

logger = logging.getLogger(__name__)

Bound = Union[float, Callable[..., float]]


def _as_bound(bound: Bound) -> Callable[..., float]:
    if callable(bound):
        return bound
    value = float(bound)
    return lambda *_: value


class _CountingIntegrand:
    """Counts calls of the innermost user integrand across all nesting levels."""

    def __init__(self, func: Callable[..., Any], args: tuple):
        self.func = func
        self.args = tuple(args)
        self.neval = 0

    def __call__(self, *coords: float) -> Any:
        self.neval += 1
        return self.func(*coords, *self.args)


def dblquad(
    func: Callable[..., Any],
    xa: float,
    xb: float,
    ya: Bound,
    yb: Bound,
    args: tuple = (),
    epsabs: float = QUAD_EPSABS,
    epsrel: float = QUAD_EPSREL,
    limit: int = QUAD_LIMIT,
    full_output: bool = False,
):
    """Compute a double integral.

    Integrates ``func(y, x, *args)`` for ``x`` in ``[xa, xb]`` and ``y`` in
    ``[ya(x), yb(x)]``. Note the innermost-first argument order.

    Args:
        func: Integrand ``f(y, x, *args)``.
        xa: Lower limit of the outer variable ``x``.
        xb: Upper limit of the outer variable ``x``.
        ya: Lower limit of ``y``, a constant or a callable ``ya(x)``.
        yb: Upper limit of ``y``, a constant or a callable ``yb(x)``.
        args: Extra positional arguments forwarded to *func*.
        epsabs: Absolute tolerance at each level.
        epsrel: Relative tolerance at each level.
        limit: Maximum number of subintervals at each level.
        full_output: Return a :class:`QuadratureResult` instead of
            ``(value, error)``.

    Returns:
        tuple: ``(value, error)`` or a :class:`QuadratureResult`.

    Examples:
        ```python
        from integrax import dblquad
        dblquad(lambda y, x: x * y, 0.0, 1.0, 0.0, 1.0)  # (0.25, ...)
        ```
    """
    xa, xb = _check_bounds(xa, xb)
    _check_tolerances(epsabs, epsrel, limit)
    lower_y = _as_bound(ya)
    upper_y = _as_bound(yb)
    inner = _CountingIntegrand(func, args)

    def integrate_y(x):
        y_integrand = ScalarIntegrand(lambda y: inner(y, x))
        y0, y1 = _check_bounds(lower_y(x), upper_y(x))
        return integrate_interval(y_integrand, y0, y1, epsabs, epsrel, limit).value

    outer = integrate_interval(ScalarIntegrand(integrate_y), xa, xb, epsabs, epsrel, limit)
    result = outer._replace(neval=inner.neval)
    logger.debug("dblquad: %d evaluations, error %.3g", result.neval, result.error)

    if full_output:
        return result
    return result.value, result.error


def tplquad(
    func: Callable[..., Any],
    xa: float,
    xb: float,
    ya: Bound,
    yb: Bound,
    za: Bound,
    zb: Bound,
    args: tuple = (),
    epsabs: float = QUAD_EPSABS,
    epsrel: float = QUAD_EPSREL,
    limit: int = QUAD_LIMIT,
    full_output: bool = False,
):
    """Compute a triple integral.

    Integrates ``func(z, y, x, *args)`` for ``x`` in ``[xa, xb]``, ``y`` in
    ``[ya(x), yb(x)]`` and ``z`` in ``[za(x, y), zb(x, y)]``.

    Args:
        func: Integrand ``f(z, y, x, *args)``.
        xa: Lower limit of ``x``.
        xb: Upper limit of ``x``.
        ya: Lower limit of ``y``, a constant or a callable ``ya(x)``.
        yb: Upper limit of ``y``, a constant or a callable ``yb(x)``.
        za: Lower limit of ``z``, a constant or a callable ``za(x, y)``.
        zb: Upper limit of ``z``, a constant or a callable ``zb(x, y)``.
        args: Extra positional arguments forwarded to *func*.
        epsabs: Absolute tolerance at each level.
        epsrel: Relative tolerance at each level.
        limit: Maximum number of subintervals at each level.
        full_output: Return a :class:`QuadratureResult` instead of
            ``(value, error)``.

    Returns:
        tuple: ``(value, error)`` or a :class:`QuadratureResult`.
    """
    xa, xb = _check_bounds(xa, xb)
    _check_tolerances(epsabs, epsrel, limit)
    lower_y = _as_bound(ya)
    upper_y = _as_bound(yb)
    lower_z = _as_bound(za)
    upper_z = _as_bound(zb)
    inner = _CountingIntegrand(func, args)

    def integrate_z(y, x):
        z_integrand = ScalarIntegrand(lambda z: inner(z, y, x))
        z0, z1 = _check_bounds(lower_z(x, y), upper_z(x, y))
        return integrate_interval(z_integrand, z0, z1, epsabs, epsrel, limit).value

    def integrate_y(x):
        y_integrand = ScalarIntegrand(lambda y: integrate_z(y, x))
        y0, y1 = _check_bounds(lower_y(x), upper_y(x))
        return integrate_interval(y_integrand, y0, y1, epsabs, epsrel, limit).value

    outer = integrate_interval(ScalarIntegrand(integrate_y), xa, xb, epsabs, epsrel, limit)
    result = outer._replace(neval=inner.neval)
    logger.debug("tplquad: %d evaluations, error %.3g", result.neval, result.error)

    if full_output:
        return result
    return result.value, result.error
