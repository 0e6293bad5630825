"""Definite-integral quadrature in one, two and three dimensions.

Available routines:

- :func:`quad` -- Adaptive Gauss-Kronrod 7-15, infinite limits, complex
  integrands
- :func:`dblquad` / :func:`tplquad` -- Nested adaptive quadrature
- :func:`fixed_quad` -- Fixed-order Gauss-Legendre
- :func:`romberg` -- Richardson-extrapolated trapezoid sequence
- :func:`trapz` / :func:`simps` -- Composite rules over sampled data
"""

from integrax.quadrature._tables import gauss_kronrod_15, gauss_legendre
from integrax.quadrature._types import QuadratureResult
from integrax.quadrature.adaptive import quad
from integrax.quadrature.fixed import fixed_quad
from integrax.quadrature.multidim import dblquad, tplquad
from integrax.quadrature.romberg import romberg
from integrax.quadrature.sampled import simps, trapz

__all__ = [
    "QuadratureResult",
    "gauss_kronrod_15",
    "gauss_legendre",
    "quad",
    "dblquad",
    "tplquad",
    "fixed_quad",
    "romberg",
    "trapz",
    "simps",
]
