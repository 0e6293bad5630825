"""Grid-driven ODE integration with classic RK4 substeps.

:func:`odeint` walks a caller-supplied time grid and reports the state at
every grid point. The right-hand side takes the state first,
``func(y, t, *args)``, unlike :func:`~integrax.ode.solve_ivp`.

Each grid interval is split into equal RK4 substeps. With ``rtol`` or
``atol`` set, the substep count doubles until the step-doubling error
estimate of the finer solution passes the mixed tolerance.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from integrax.config import get_dtype
from integrax.integrators import compute_error_norm, rk4_step
from integrax.ode._types import OdeintInfo

logger = logging.getLogger(__name__)

ODEINT_RTOL = 1.49012e-8
ODEINT_ATOL = 1.49012e-8

# RK4 step-doubling: error of the half-step solution is (fine - coarse) / (2^4 - 1)
_RICHARDSON = 15.0


def _rk4_substeps(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    ta: float,
    tb: float,
    y: Array,
    f: Array,
    count: int,
) -> tuple[Array, Array]:
    h = (tb - ta) / count
    t = ta
    for i in range(count):
        t_next = tb if i == count - 1 else ta + (i + 1) * h
        result = rk4_step(dynamics, t, y, t_next - t, deriv=f)
        y, f = result.state, result.derivative
        if not (bool(jnp.all(jnp.isfinite(y))) and bool(jnp.all(jnp.isfinite(f)))):
            raise RuntimeError(f"odeint: non-finite state or derivative at t={t_next:g}")
        t = t_next
    return y, f


def odeint(
    func: Callable[..., ArrayLike],
    y0: ArrayLike,
    t: ArrayLike,
    args: tuple = (),
    rtol: Optional[float] = None,
    atol: Optional[float] = None,
    substeps: int = 1,
    mxstep: int = 500,
    full_output: bool = False,
):
    """Integrate a system of ODEs over a fixed time grid.

    Args:
        func: Right-hand side ``func(y, t, *args) -> dy/dt``. Note the
            state-first argument order.
        y0: Initial state at ``t[0]``, a number or a 1-D sequence.
        t: Output times, at least two, strictly increasing or strictly
            decreasing.
        args: Extra positional arguments forwarded to every call of
            *func*.
        rtol: Relative tolerance. Enables substep refinement when set
            (default ``1.49012e-8`` if only *atol* is given).
        atol: Absolute tolerance. Enables substep refinement when set
            (default ``1.49012e-8`` if only *rtol* is given).
        substeps: RK4 substeps per grid interval before refinement.
        mxstep: Maximum substeps per grid interval during refinement.
        full_output: Also return an :class:`OdeintInfo`.

    Returns:
        jax.Array | tuple: States of shape ``(len(t), len(y0))`` with the
        first row equal to ``y0``; with *full_output*, ``(y, info)``.

    Raises:
        ValueError: On a malformed grid, state or option.
        RuntimeError: If a non-finite value appears or refinement needs
            more than *mxstep* substeps on one interval.

    Examples:
        ```python
        import jax.numpy as jnp
        from integrax import odeint
        t = jnp.linspace(0.0, 1.0, 11)
        y = odeint(lambda y, t, k: -k * y, [1.0], t, args=(2.0,))
        ```
    """
    dtype = get_dtype()

    y0 = jnp.atleast_1d(jnp.asarray(y0, dtype=dtype))
    if y0.ndim != 1 or y0.shape[0] == 0:
        raise ValueError(f"y0 must be a non-empty 1-D sequence, got shape {y0.shape}")

    grid = jnp.asarray(t, dtype=dtype)
    if grid.ndim != 1 or grid.shape[0] < 2:
        raise ValueError("t must be a 1-D sequence with at least two points")
    if not bool(jnp.all(jnp.isfinite(grid))):
        raise ValueError("t must contain only finite values")
    steps = jnp.diff(grid)
    if not (bool(jnp.all(steps > 0.0)) or bool(jnp.all(steps < 0.0))):
        raise ValueError("t must be strictly increasing or strictly decreasing")

    if int(substeps) != substeps or substeps < 1:
        raise ValueError(f"substeps must be a positive integer, got {substeps}")
    if mxstep < substeps:
        raise ValueError(f"mxstep ({mxstep}) must be at least substeps ({substeps})")

    refine = rtol is not None or atol is not None
    if refine:
        rtol = ODEINT_RTOL if rtol is None else rtol
        atol = ODEINT_ATOL if atol is None else atol
        if rtol < 0.0 or atol < 0.0 or (rtol == 0.0 and atol == 0.0):
            raise ValueError(f"Invalid tolerances rtol={rtol}, atol={atol}")

    nfe = 0
    size = y0.shape[0]

    def dynamics(ti, yi):
        nonlocal nfe
        nfe += 1
        dy = jnp.asarray(func(yi, ti, *args), dtype=dtype)
        if dy.size != size:
            raise ValueError(
                f"func returned {dy.size} derivative components for a state of size {size}"
            )
        return dy.reshape(y0.shape)

    times = grid.tolist()
    rows = [y0]
    hu = []
    nst = 0

    y = y0
    f = dynamics(times[0], y0)
    if not bool(jnp.all(jnp.isfinite(f))):
        raise RuntimeError(f"odeint: non-finite derivative at t={times[0]:g}")

    for ta, tb in zip(times[:-1], times[1:]):
        count = int(substeps)
        y_next, f_next = _rk4_substeps(dynamics, ta, tb, y, f, count)
        nst += count

        while refine:
            fine = 2 * count
            if fine > mxstep:
                raise RuntimeError(
                    f"odeint: more than mxstep={mxstep} substeps needed on [{ta:g}, {tb:g}]"
                )
            y_fine, f_fine = _rk4_substeps(dynamics, ta, tb, y, f, fine)
            nst += fine
            error = compute_error_norm(
                (y_fine - y_next) / _RICHARDSON, y_fine, y, atol, rtol
            )
            count = fine
            y_next, f_next = y_fine, f_fine
            if float(error) <= 1.0:
                break

        rows.append(y_next)
        hu.append((tb - ta) / count)
        y, f = y_next, f_next

    logger.debug("odeint: %d grid points, %d substeps, %d evaluations", len(times), nst, nfe)

    y_out = jnp.stack(rows)
    if full_output:
        info = OdeintInfo(
            nfe=nfe,
            nst=nst,
            hu=jnp.asarray(hu, dtype=dtype),
            message="Integration successful.",
        )
        return y_out, info
    return y_out
