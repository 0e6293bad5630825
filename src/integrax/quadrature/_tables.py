"""Node and weight tables for the quadrature rules.

All tables live on the reference interval ``[-1, 1]`` as Python tuples and
are cast to the active dtype at call time.

- Gauss-Kronrod 7-15: the 15-point Kronrod extension of the 7-point Gauss
  rule (QUADPACK ``qk15`` constants). The Gauss rule reuses the odd
  Kronrod nodes, so one set of 15 samples yields both estimates.
- Gauss-Legendre: ``n``-point rules for ``n = 1..64``, built once at
  import from :func:`numpy.polynomial.legendre.leggauss`.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from numpy.polynomial.legendre import leggauss

from integrax.config import get_dtype

# Kronrod abscissae, descending, positive half (qk15 xgk)
_XGK_HALF = (
    0.991455371120812639206854697526329,
    0.949107912342758524526189684047851,
    0.864864423359769072789712788640926,
    0.741531185599394439863864773280788,
    0.586087235467691130294144845693013,
    0.405845151377397166906606412076961,
    0.207784955007898467600689403773245,
    0.000000000000000000000000000000000,
)

# Kronrod weights matching _XGK_HALF (qk15 wgk)
_WGK_HALF = (
    0.022935322010529224963732008058970,
    0.063092092629978553290700663189204,
    0.104790010322250183839876322541518,
    0.140653259715525918745189590510238,
    0.169004726639267902826583426598550,
    0.190350578064785409913256402421014,
    0.204432940075298892414161999234649,
    0.209482141084727828012999174891714,
)

# 7-point Gauss weights for Kronrod nodes 1, 3, 5 and the centre (qk15 wg)
_WG_HALF = (
    0.129484966168869693270611432679082,
    0.279705391489276667901467771423780,
    0.381830050505118944950369775488975,
    0.417959183673469387755102040816327,
)

# Full 15-point tables in ascending node order
XGK15 = tuple(-x for x in _XGK_HALF[:7]) + (0.0,) + tuple(reversed(_XGK_HALF[:7]))
WGK15 = _WGK_HALF[:7] + (_WGK_HALF[7],) + tuple(reversed(_WGK_HALF[:7]))
WG7 = (
    0.0, _WG_HALF[0], 0.0, _WG_HALF[1], 0.0, _WG_HALF[2], 0.0,
    _WG_HALF[3],
    0.0, _WG_HALF[2], 0.0, _WG_HALF[1], 0.0, _WG_HALF[0], 0.0,
)

MAX_GAUSS_LEGENDRE_ORDER = 64

_GAUSS_LEGENDRE = tuple(
    (tuple(nodes.tolist()), tuple(weights.tolist()))
    for nodes, weights in (leggauss(n) for n in range(1, MAX_GAUSS_LEGENDRE_ORDER + 1))
)


def gauss_kronrod_15() -> tuple[Array, Array, Array]:
    """Return the Gauss-Kronrod 7-15 rule on ``[-1, 1]``.

    Returns:
        tuple: ``(nodes, kronrod_weights, gauss_weights)`` as arrays of
        length 15 in ascending node order. ``gauss_weights`` is zero at
        the eight nodes that belong only to the Kronrod rule.
    """
    dtype = get_dtype()
    return (
        jnp.asarray(XGK15, dtype=dtype),
        jnp.asarray(WGK15, dtype=dtype),
        jnp.asarray(WG7, dtype=dtype),
    )


def gauss_legendre(n: int) -> tuple[Array, Array]:
    """Return the ``n``-point Gauss-Legendre rule on ``[-1, 1]``.

    The rule integrates polynomials of degree ``2n - 1`` exactly.

    Args:
        n: Number of nodes, ``1 <= n <= 64``.

    Returns:
        tuple: ``(nodes, weights)`` arrays of length ``n``.

    Raises:
        ValueError: If *n* is outside the tabulated range.
    """
    if int(n) != n or not 1 <= n <= MAX_GAUSS_LEGENDRE_ORDER:
        raise ValueError(
            f"Gauss-Legendre order must be an integer in [1, {MAX_GAUSS_LEGENDRE_ORDER}], "
            f"got {n!r}"
        )
    nodes, weights = _GAUSS_LEGENDRE[int(n) - 1]
    dtype = get_dtype()
    return jnp.asarray(nodes, dtype=dtype), jnp.asarray(weights, dtype=dtype)
