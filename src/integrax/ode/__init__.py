"""Initial-value ODE solvers.

- :func:`solve_ivp` -- Adaptive embedded Runge-Kutta driver with dense
  output, ``fun(t, y, *args)`` convention
- :func:`odeint` -- Fixed-grid RK4 driver, ``func(y, t, *args)`` convention
"""

from integrax.ode._dense import DenseSolution, hermite_interpolate
from integrax.ode._types import OdeintInfo, OdeResult
from integrax.ode.ivp import METHODS, solve_ivp
from integrax.ode.odeint import odeint

__all__ = [
    "DenseSolution",
    "METHODS",
    "OdeResult",
    "OdeintInfo",
    "hermite_interpolate",
    "odeint",
    "solve_ivp",
]
