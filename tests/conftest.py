import jax.numpy as jnp
import pytest

from integrax.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    Individual tests may switch to float32; restoring the default here
    keeps tolerance assertions in other modules independent of test order.
    """
    set_dtype(jnp.float64)
