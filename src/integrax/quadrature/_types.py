"""Result type shared by the quadrature routines."""

from __future__ import annotations

from typing import NamedTuple, Union


class QuadratureResult(NamedTuple):
    """Outcome of a definite-integral approximation.

    Returned by ``quad``, ``dblquad``, ``tplquad`` and ``romberg`` when
    called with ``full_output=True``.

    Attributes:
        value: Integral estimate. A ``complex`` when the integrand returned
            complex values, otherwise a ``float``.
        error: Non-negative estimate of the absolute error. Infinite when a
            non-finite integrand sample could not be isolated.
        neval: Number of integrand evaluations. For nested integrals this
            counts calls of the innermost integrand.
        converged: ``False`` when the subdivision or refinement limit was
            reached before the tolerance was met.
    """

    value: Union[float, complex]
    error: float
    neval: int
    converged: bool = True
