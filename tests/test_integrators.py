"""Tests for the integrax.integrators module.

Tests cover:
- Polynomial exactness (RK4 is exact for degree <= 3 polynomials)
- Exponential decay with known solution
- Harmonic oscillator accuracy
- Backward integration
- Derivative reuse (FSAL) through the ``deriv`` argument
- Embedded error estimates (RK23, RKF45, DP54)
- Step-size control helpers
- JIT and vmap compatibility
"""

import math

import jax
import jax.numpy as jnp
import pytest

from integrax.integrators import (
    AdaptiveConfig,
    StepResult,
    compute_error_norm,
    compute_next_step_size,
    dp54_step,
    rk4_step,
    rk23_step,
    rkf45_step,
    select_initial_step,
)

# Tolerances
_SINGLE_TOL = 1e-4
_ADAPTIVE_TOL = 1e-3


# ──────────────────────────────────────────────
# Helper dynamics functions
# ──────────────────────────────────────────────

def _exponential_decay(t, x):
    """dx/dt = -x. Solution: x(t) = x0 * exp(-t)."""
    return -x


def _harmonic_oscillator(t, x):
    """d^2q/dt^2 = -q. State: [q, dq/dt]. Solution: [cos(t), -sin(t)]."""
    return jnp.array([x[1], -x[0]])


def _linear_dynamics(t, x):
    """dx/dt = 1. Solution: x(t) = x0 + t."""
    return jnp.ones_like(x)


def _quadratic_dynamics(t, x):
    """dx/dt = 2t. Solution: x(t) = x0 + t^2."""
    return 2.0 * t * jnp.ones_like(x)


def _cubic_dynamics(t, x):
    """dx/dt = 3t^2. Solution: x(t) = x0 + t^3."""
    return 3.0 * t**2 * jnp.ones_like(x)


class _CountingDynamics:
    """Wraps a dynamics function and counts its evaluations."""

    def __init__(self, func):
        self.func = func
        self.calls = 0

    def __call__(self, t, x):
        self.calls += 1
        return self.func(t, x)


# ──────────────────────────────────────────────
# StepResult and AdaptiveConfig tests
# ──────────────────────────────────────────────

class TestTypes:
    def test_step_result_fields(self):
        """StepResult has the expected fields."""
        result = StepResult(
            state=jnp.array([1.0]),
            derivative=jnp.array([-1.0]),
            dt_used=jnp.array(0.1),
            error_estimate=jnp.array(0.0),
        )
        assert result.state.shape == (1,)
        assert float(result.derivative[0]) == pytest.approx(-1.0)
        assert float(result.dt_used) == pytest.approx(0.1)
        assert float(result.error_estimate) == pytest.approx(0.0)

    def test_adaptive_config_defaults(self):
        """AdaptiveConfig has reasonable defaults."""
        config = AdaptiveConfig()
        assert config.abs_tol == 1e-6
        assert config.rel_tol == 1e-3
        assert config.safety_factor == 0.9
        assert config.min_scale_factor == 0.2
        assert config.max_scale_factor == 10.0
        assert config.min_step == 0.0
        assert math.isinf(config.max_step)

    def test_adaptive_config_custom(self):
        """AdaptiveConfig accepts custom values."""
        config = AdaptiveConfig(abs_tol=1e-10, rel_tol=1e-8)
        assert config.abs_tol == 1e-10
        assert config.rel_tol == 1e-8


# ──────────────────────────────────────────────
# Step-size control tests
# ──────────────────────────────────────────────

class TestStepControl:
    def test_error_norm_is_rms(self):
        """The error norm is the RMS of the scaled components."""
        error = compute_error_norm(
            jnp.array([3.0, 4.0]), jnp.zeros(2), jnp.zeros(2), abs_tol=1.0, rel_tol=0.0
        )
        assert float(error) == pytest.approx(math.sqrt(12.5))

    def test_error_norm_relative_scale(self):
        """Relative tolerance scales with the larger of old and new state."""
        error = compute_error_norm(
            jnp.array([1.0]), jnp.array([10.0]), jnp.array([-20.0]), abs_tol=0.0, rel_tol=0.1
        )
        assert float(error) == pytest.approx(0.5)

    def test_next_step_grows_on_small_error(self):
        """A tiny error grows the step up to the maximum scale factor."""
        h = compute_next_step_size(1e-12, 0.1, 4.0, 0.9, 0.2, 10.0, 0.0, math.inf)
        assert float(h) == pytest.approx(1.0)

    def test_next_step_shrinks_on_large_error(self):
        """A huge error shrinks the step to the minimum scale factor."""
        h = compute_next_step_size(1e12, 0.1, 4.0, 0.9, 0.2, 10.0, 0.0, math.inf)
        assert float(h) == pytest.approx(0.02)

    def test_next_step_formula(self):
        """Moderate errors follow 0.9 * err^(-1/(p+1))."""
        h = compute_next_step_size(2.0, 0.1, 4.0, 0.9, 0.2, 10.0, 0.0, math.inf)
        assert float(h) == pytest.approx(0.1 * 0.9 * 2.0 ** (-0.2))

    def test_next_step_preserves_sign(self):
        """Backward steps stay negative."""
        h = compute_next_step_size(0.5, -0.1, 4.0, 0.9, 0.2, 10.0, 0.0, math.inf)
        assert float(h) < 0.0

    def test_next_step_respects_max_step(self):
        """The absolute step never exceeds max_step."""
        h = compute_next_step_size(1e-12, 0.1, 4.0, 0.9, 0.2, 10.0, 0.0, 0.3)
        assert float(h) == pytest.approx(0.3)

    def test_initial_step_positive_and_bounded(self):
        """Initial step selection returns a positive step within the span."""
        dynamics = _CountingDynamics(_exponential_decay)
        y0 = jnp.array([1.0])
        h = select_initial_step(
            dynamics, 0.0, y0, -y0, 1.0, 4.0, 1e-6, 1e-3, span=1.0
        )
        assert 0.0 < h <= 1.0
        assert dynamics.calls == 1

    def test_initial_step_respects_max_step(self):
        """Initial step selection honors max_step."""
        y0 = jnp.array([1.0])
        h = select_initial_step(
            _exponential_decay, 0.0, y0, -y0, 1.0, 4.0, 1e-2, 1e-2, span=10.0, max_step=1e-3
        )
        assert h == pytest.approx(1e-3)

    def test_initial_step_zero_state(self):
        """A zero state and derivative fall back to a small finite step."""
        y0 = jnp.zeros(2)
        h = select_initial_step(
            lambda t, x: jnp.zeros_like(x), 0.0, y0, y0, 1.0, 4.0, 1e-6, 1e-3, span=1.0
        )
        assert 0.0 < h <= 1.0


# ──────────────────────────────────────────────
# RK4 tests
# ──────────────────────────────────────────────

class TestRK4:
    def test_exponential_decay(self):
        """RK4 approximates exponential decay with small error."""
        x0 = jnp.array([1.0])
        dt = 0.1
        result = rk4_step(_exponential_decay, 0.0, x0, dt)
        expected = jnp.exp(-dt)
        assert jnp.allclose(result.state, jnp.array([expected]), atol=1e-6)

    def test_linear_exactness(self):
        """RK4 is exact for linear dynamics (dx/dt = 1)."""
        x0 = jnp.array([5.0])
        dt = 1.0
        result = rk4_step(_linear_dynamics, 0.0, x0, dt)
        expected = x0 + dt
        assert jnp.allclose(result.state, expected, atol=1e-12)

    def test_quadratic_exactness(self):
        """RK4 is exact for quadratic dynamics (dx/dt = 2t)."""
        x0 = jnp.array([0.0])
        t0 = 1.0
        dt = 0.5
        result = rk4_step(_quadratic_dynamics, t0, x0, dt)
        # x(t0+dt) = x0 + (t0+dt)^2 - t0^2 = (1.5)^2 - 1^2 = 1.25
        expected = jnp.array([(t0 + dt) ** 2 - t0**2])
        assert jnp.allclose(result.state, expected, atol=1e-12)

    def test_cubic_exactness(self):
        """RK4 is exact for cubic dynamics (dx/dt = 3t^2)."""
        x0 = jnp.array([0.0])
        result = rk4_step(_cubic_dynamics, 0.0, x0, 1.0)
        assert jnp.allclose(result.state, jnp.array([1.0]), atol=1e-12)

    def test_harmonic_oscillator_multi_step(self):
        """RK4 tracks the harmonic oscillator over many small steps."""
        state = jnp.array([1.0, 0.0])
        dt = 0.01
        n_steps = 1000  # 10 seconds
        t = 0.0
        for _ in range(n_steps):
            state = rk4_step(_harmonic_oscillator, t, state, dt).state
            t += dt

        t_final = dt * n_steps
        expected = jnp.array([jnp.cos(t_final), -jnp.sin(t_final)])
        assert jnp.allclose(state, expected, atol=1e-6)

    def test_step_result_fields(self):
        """RK4 returns the used step, zero error and the end derivative."""
        x0 = jnp.array([1.0])
        result = rk4_step(_exponential_decay, 0.0, x0, 0.1)
        assert float(result.dt_used) == pytest.approx(0.1)
        assert float(result.error_estimate) == 0.0
        assert jnp.allclose(result.derivative, -result.state)

    def test_supplied_derivative_saves_evaluation(self):
        """Passing deriv skips the first-stage evaluation."""
        x0 = jnp.array([1.0])
        dynamics = _CountingDynamics(_exponential_decay)
        rk4_step(dynamics, 0.0, x0, 0.1)
        without = dynamics.calls
        dynamics.calls = 0
        rk4_step(dynamics, 0.0, x0, 0.1, deriv=-x0)
        assert dynamics.calls == without - 1

    def test_backward_integration(self):
        """RK4 supports negative dt for backward integration."""
        x0 = jnp.array([1.0])
        dt = 0.1
        result_fwd = rk4_step(_exponential_decay, 0.0, x0, dt)
        result_bwd = rk4_step(_exponential_decay, dt, result_fwd.state, -dt)
        assert jnp.allclose(result_bwd.state, x0, atol=1e-5)

    def test_user_error_propagates(self):
        """Exceptions raised by the dynamics reach the caller."""
        def failing(t, x):
            raise KeyError("boom")

        with pytest.raises(KeyError):
            rk4_step(failing, 0.0, jnp.array([1.0]), 0.1)


# ──────────────────────────────────────────────
# RK23 tests
# ──────────────────────────────────────────────

class TestRK23:
    def test_exponential_decay(self):
        """RK23 approximates exponential decay."""
        x0 = jnp.array([1.0])
        dt = 0.1
        result = rk23_step(_exponential_decay, 0.0, x0, dt)
        assert jnp.allclose(result.state, jnp.array([jnp.exp(-dt)]), atol=1e-4)

    def test_quadratic_exactness(self):
        """The 3rd-order solution is exact for dx/dt = 2t."""
        x0 = jnp.array([0.0])
        result = rk23_step(_quadratic_dynamics, 1.0, x0, 0.5)
        assert jnp.allclose(result.state, jnp.array([1.25]), atol=1e-12)

    def test_fsal_derivative(self):
        """The returned derivative is the right-hand side at the new state."""
        x0 = jnp.array([1.0, 0.0])
        dt = 0.1
        result = rk23_step(_harmonic_oscillator, 0.0, x0, dt)
        assert jnp.allclose(result.derivative, _harmonic_oscillator(dt, result.state), atol=1e-14)

    def test_fsal_evaluation_count(self):
        """With deriv supplied an RK23 step costs three evaluations."""
        dynamics = _CountingDynamics(_exponential_decay)
        x0 = jnp.array([1.0])
        rk23_step(dynamics, 0.0, x0, 0.1, deriv=-x0)
        assert dynamics.calls == 3

    def test_error_grows_with_step(self):
        """Larger steps produce larger error estimates."""
        x0 = jnp.array([1.0, 0.0])
        small = rk23_step(_harmonic_oscillator, 0.0, x0, 0.01)
        large = rk23_step(_harmonic_oscillator, 0.0, x0, 0.5)
        assert float(small.error_estimate) < float(large.error_estimate)


# ──────────────────────────────────────────────
# RKF45 tests
# ──────────────────────────────────────────────

class TestRKF45:
    def test_exponential_decay(self):
        """RKF45 approximates exponential decay accurately."""
        x0 = jnp.array([1.0])
        dt = 0.5
        result = rkf45_step(_exponential_decay, 0.0, x0, dt)
        expected = jnp.exp(-dt)
        assert jnp.allclose(result.state, jnp.array([expected]), atol=1e-5)

    def test_harmonic_oscillator(self):
        """RKF45 approximates harmonic oscillator."""
        x0 = jnp.array([1.0, 0.0])
        dt = 0.1
        result = rkf45_step(_harmonic_oscillator, 0.0, x0, dt)
        expected = jnp.array([jnp.cos(dt), -jnp.sin(dt)])
        assert jnp.allclose(result.state, expected, atol=_ADAPTIVE_TOL)

    def test_error_estimate_finite(self):
        """RKF45 produces a finite error estimate."""
        x0 = jnp.array([1.0, 0.0])
        result = rkf45_step(_harmonic_oscillator, 0.0, x0, 0.1)
        assert jnp.isfinite(result.error_estimate)

    def test_step_acceptance(self):
        """RKF45 error is within tolerance for a small step."""
        x0 = jnp.array([1.0, 0.0])
        config = AdaptiveConfig(abs_tol=1e-4, rel_tol=1e-2)
        result = rkf45_step(_harmonic_oscillator, 0.0, x0, 0.01, config=config)
        assert float(result.error_estimate) <= 1.0

    def test_tighter_tolerance_larger_error(self):
        """The same step measured against tighter tolerances has a larger normalized error."""
        x0 = jnp.array([1.0, 0.0])
        loose = rkf45_step(
            _harmonic_oscillator, 0.0, x0, 1.0, config=AdaptiveConfig(abs_tol=1e-2, rel_tol=1e-1)
        )
        tight = rkf45_step(
            _harmonic_oscillator, 0.0, x0, 1.0, config=AdaptiveConfig(abs_tol=1e-8, rel_tol=1e-6)
        )
        assert float(tight.error_estimate) > float(loose.error_estimate)
        assert float(tight.error_estimate) > 1.0

    def test_backward_integration(self):
        """RKF45 supports negative dt for backward integration."""
        x0 = jnp.array([1.0])
        dt = 0.5
        result_fwd = rkf45_step(_exponential_decay, 0.0, x0, dt)
        result_bwd = rkf45_step(_exponential_decay, dt, result_fwd.state, -dt)
        assert jnp.allclose(result_bwd.state, x0, atol=1e-3)

    def test_derivative_at_new_state(self):
        """RKF45 reports the right-hand side at the new state."""
        x0 = jnp.array([2.0])
        result = rkf45_step(_exponential_decay, 0.0, x0, 0.2)
        assert jnp.allclose(result.derivative, -result.state, atol=1e-14)


# ──────────────────────────────────────────────
# DP54 tests
# ──────────────────────────────────────────────

class TestDP54:
    def test_exponential_decay(self):
        """DP54 approximates exponential decay accurately."""
        x0 = jnp.array([1.0])
        dt = 0.5
        result = dp54_step(_exponential_decay, 0.0, x0, dt)
        expected = jnp.exp(-dt)
        assert jnp.allclose(result.state, jnp.array([expected]), atol=1e-5)

    def test_harmonic_oscillator(self):
        """DP54 approximates harmonic oscillator."""
        x0 = jnp.array([1.0, 0.0])
        dt = 0.1
        result = dp54_step(_harmonic_oscillator, 0.0, x0, dt)
        expected = jnp.array([jnp.cos(dt), -jnp.sin(dt)])
        assert jnp.allclose(result.state, expected, atol=1e-8)

    def test_error_estimate_finite(self):
        """DP54 produces a finite error estimate."""
        x0 = jnp.array([1.0, 0.0])
        result = dp54_step(_harmonic_oscillator, 0.0, x0, 0.1)
        assert jnp.isfinite(result.error_estimate)

    def test_step_acceptance(self):
        """DP54 error is within tolerance for a small step."""
        x0 = jnp.array([1.0, 0.0])
        config = AdaptiveConfig(abs_tol=1e-4, rel_tol=1e-2)
        result = dp54_step(_harmonic_oscillator, 0.0, x0, 0.01, config=config)
        assert float(result.error_estimate) <= 1.0

    def test_fsal_derivative(self):
        """The 7th stage equals the right-hand side at the new state."""
        x0 = jnp.array([1.0, 0.0])
        dt = 0.2
        result = dp54_step(_harmonic_oscillator, 0.0, x0, dt)
        assert jnp.allclose(result.derivative, _harmonic_oscillator(dt, result.state), atol=1e-14)

    def test_fsal_evaluation_count(self):
        """With deriv supplied a DP54 step costs six evaluations."""
        dynamics = _CountingDynamics(_exponential_decay)
        x0 = jnp.array([1.0])
        dp54_step(dynamics, 0.0, x0, 0.1, deriv=-x0)
        assert dynamics.calls == 6

    def test_backward_integration(self):
        """DP54 supports negative dt for backward integration."""
        x0 = jnp.array([1.0])
        dt = 0.5
        result_fwd = dp54_step(_exponential_decay, 0.0, x0, dt)
        result_bwd = dp54_step(_exponential_decay, dt, result_fwd.state, -dt)
        assert jnp.allclose(result_bwd.state, x0, atol=1e-3)


# ──────────────────────────────────────────────
# Cross-method consistency tests
# ──────────────────────────────────────────────

class TestCrossMethod:
    def test_all_methods_agree_small_step(self):
        """All methods agree for a small step on harmonic oscillator."""
        x0 = jnp.array([1.0, 0.0])
        dt = 0.01
        r_rk4 = rk4_step(_harmonic_oscillator, 0.0, x0, dt)
        r_rk23 = rk23_step(_harmonic_oscillator, 0.0, x0, dt)
        r_rkf = rkf45_step(_harmonic_oscillator, 0.0, x0, dt)
        r_dp = dp54_step(_harmonic_oscillator, 0.0, x0, dt)
        assert jnp.allclose(r_rk4.state, r_rk23.state, atol=_SINGLE_TOL)
        assert jnp.allclose(r_rk4.state, r_rkf.state, atol=_SINGLE_TOL)
        assert jnp.allclose(r_rk4.state, r_dp.state, atol=_SINGLE_TOL)

    def test_all_methods_agree_exponential(self):
        """The fourth- and fifth-order methods agree for exponential decay."""
        x0 = jnp.array([2.0])
        dt = 0.1
        expected = jnp.array([2.0 * jnp.exp(-dt)])
        for step in (rk4_step, rkf45_step, dp54_step):
            assert jnp.allclose(step(_exponential_decay, 0.0, x0, dt).state, expected, atol=1e-5)


# ──────────────────────────────────────────────
# JAX compatibility tests
# ──────────────────────────────────────────────

class TestJAXCompatibility:
    def test_jit_rk4(self):
        """rk4_step is JIT-compilable."""
        x0 = jnp.array([1.0, 0.0])

        @jax.jit
        def step(t, x, dt):
            return rk4_step(_harmonic_oscillator, t, x, dt)

        result = step(0.0, x0, 0.01)
        expected = jnp.array([jnp.cos(0.01), -jnp.sin(0.01)])
        assert jnp.allclose(result.state, expected, atol=1e-8)

    def test_jit_dp54(self):
        """dp54_step is JIT-compilable."""
        x0 = jnp.array([1.0, 0.0])

        @jax.jit
        def step(t, x, dt):
            return dp54_step(_harmonic_oscillator, t, x, dt)

        result = step(0.0, x0, 0.1)
        assert jnp.all(jnp.isfinite(result.state))
        assert jnp.isfinite(result.error_estimate)

    def test_vmap_rk4(self):
        """rk4_step works with vmap over a batch of initial conditions."""
        x0_batch = jnp.array([
            [1.0, 0.0],
            [0.0, 1.0],
            [0.5, 0.5],
        ])

        def step(x0):
            return rk4_step(_harmonic_oscillator, 0.0, x0, 0.01).state

        results = jax.vmap(step)(x0_batch)
        assert results.shape == (3, 2)

    def test_grad_rk4(self):
        """rk4_step supports gradient computation."""
        def loss(x0):
            result = rk4_step(_harmonic_oscillator, 0.0, x0, 0.01)
            return jnp.sum(result.state**2)

        x0 = jnp.array([1.0, 0.0])
        grad = jax.grad(loss)(x0)
        assert grad.shape == (2,)
        assert jnp.all(jnp.isfinite(grad))
