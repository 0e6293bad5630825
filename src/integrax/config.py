"""Module-wide floating-point precision configuration.

Provides ``set_dtype`` and ``get_dtype`` to control the float dtype used
for every array integrax builds internally: quadrature node tables,
integrand samples, ODE states and derivatives.  The default is
``jnp.float64``, so importing integrax enables JAX's 64-bit mode
(``jax_enable_x64``).  Quadrature tolerances near ``1e-10`` are not
reachable in single precision.

Switching to ``jnp.float32`` trades accuracy for speed.  Error floors in
the adaptive quadrature and the minimum ODE step size scale with the
machine epsilon of the active dtype (see :func:`get_machine_epsilon`).
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_VALID_DTYPES = (jnp.float32, jnp.float64)

_dtype = jnp.float64
jax.config.update("jax_enable_x64", True)


def set_dtype(dtype) -> None:
    """Set the module-wide float dtype for integrax.

    If *dtype* is ``jnp.float64``, JAX's 64-bit mode is enabled via
    ``jax.config.update("jax_enable_x64", True)``.

    Args:
        dtype: One of ``jnp.float32`` or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: "
            f"jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the current module-wide float dtype.

    Returns:
        The active float dtype (default ``jnp.float64``).
    """
    return _dtype


def get_machine_epsilon() -> float:
    """Return the machine epsilon of the active float dtype.

    Returns:
        float: ``2.22e-16`` for ``float64``, ``1.19e-7`` for ``float32``.
    """
    return float(jnp.finfo(_dtype).eps)
