"""Result types returned by the ODE drivers."""

from __future__ import annotations

from typing import NamedTuple, Optional

from jax import Array

from integrax.ode._dense import DenseSolution


class OdeResult(NamedTuple):
    """Solution of an initial-value problem from :func:`~integrax.ode.solve_ivp`.

    Attributes:
        t: Output times, shape ``(n,)``, monotonic in the solve direction.
        y: States at ``t``, shape ``(n, m)``; row ``i`` is the state at
            ``t[i]``.
        success: ``True`` if the end of the interval was reached.
        nfev: Number of right-hand side evaluations, including rejected
            trial steps and the starting-step probe.
        message: Human-readable termination reason.
        status: ``0`` on success, ``-1`` on failure.
        sol: Piecewise cubic Hermite interpolant over the integrated span
            when ``dense_output=True``, otherwise ``None``.
    """

    t: Array
    y: Array
    success: bool
    nfev: int
    message: str
    status: int = 0
    sol: Optional[DenseSolution] = None


class OdeintInfo(NamedTuple):
    """Diagnostics returned by :func:`~integrax.ode.odeint` with ``full_output=True``.

    Attributes:
        nfe: Number of derivative evaluations.
        nst: Number of RK4 substeps taken.
        hu: Substep size used on each grid interval, shape ``(n - 1,)``.
        message: Termination message.
    """

    nfe: int
    nst: int
    hu: Array
    message: str
