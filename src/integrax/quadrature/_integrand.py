"""Integrand wrapper normalizing user callables to value channels.

A scalar integrand may return a real number, a complex number, or a
mapping ``{"re": ..., "im": ...}``. The first evaluation decides which, and
the choice is committed for the rest of the call: real integrands yield one
channel, complex integrands yield two (real part, imaginary part) that are
integrated over the same subdivision.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import jax.numpy as jnp


def is_complex_value(value: Any) -> bool:
    """Return ``True`` if an integrand sample should be treated as complex.

    Args:
        value: A value returned by a user integrand.

    Returns:
        bool: ``True`` for Python/NumPy/JAX complex scalars and for
        mappings carrying an ``re`` or ``im`` key.
    """
    if isinstance(value, Mapping):
        return "re" in value or "im" in value
    if isinstance(value, complex):
        return True
    return bool(jnp.iscomplexobj(value))


def _complex_channels(value: Any) -> tuple[float, float]:
    if isinstance(value, Mapping):
        return float(value.get("re", 0.0)), float(value.get("im", 0.0))
    z = complex(value)
    return z.real, z.imag


class ScalarIntegrand:
    """Callable wrapper around ``func(x, *args)`` that counts evaluations.

    Attributes:
        is_complex: ``None`` until the first evaluation, then the committed
            return kind.
        neval: Number of calls made so far.
    """

    def __init__(self, func: Callable[..., Any], args: tuple = ()):
        self.func = func
        self.args = tuple(args)
        self.is_complex: bool | None = None
        self.neval = 0

    def __call__(self, x: float) -> tuple[float, ...]:
        value = self.func(x, *self.args)
        self.neval += 1
        if self.is_complex is None:
            self.is_complex = is_complex_value(value)
        if self.is_complex:
            return _complex_channels(value)
        return (float(value),)

    def pack(self, channels) -> float | complex:
        """Convert a channel vector back to the integrand's value kind."""
        channels = [float(c) for c in channels]
        if self.is_complex:
            return complex(channels[0], channels[1])
        return channels[0]
