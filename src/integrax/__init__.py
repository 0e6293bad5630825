"""
integrax is a numerical integration toolkit implemented with JAX: adaptive
quadrature in one to three dimensions and Runge-Kutta initial-value solvers.
"""

from .config import set_dtype, get_dtype, get_machine_epsilon

from .quadrature import (
    QuadratureResult,
    gauss_kronrod_15,
    gauss_legendre,
    quad,
    dblquad,
    tplquad,
    fixed_quad,
    romberg,
    trapz,
    simps,
)

from .integrators import (
    StepResult,
    AdaptiveConfig,
    rk4_step,
    rk23_step,
    rkf45_step,
    dp54_step,
)

from .ode import (
    DenseSolution,
    OdeResult,
    OdeintInfo,
    solve_ivp,
    odeint,
)

__all__ = [
    # Config
    "set_dtype",
    "get_dtype",
    "get_machine_epsilon",
    # Quadrature
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
    # Integrators
    "StepResult",
    "AdaptiveConfig",
    "rk4_step",
    "rk23_step",
    "rkf45_step",
    "dp54_step",
    # ODE solvers
    "DenseSolution",
    "OdeResult",
    "OdeintInfo",
    "solve_ivp",
    "odeint",
]
