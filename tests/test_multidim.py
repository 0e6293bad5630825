"""Tests for nested double and triple quadrature."""

import math

import pytest

from integrax.quadrature import QuadratureResult, dblquad, tplquad


class TestDblquad:
    def test_constant_unit_square(self):
        """A constant integrates to the area of the unit square."""
        value, _ = dblquad(lambda y, x: 1.0, 0.0, 1.0, 0.0, 1.0)
        assert value == pytest.approx(1.0, abs=1e-12)

    def test_product(self):
        """x*y over the unit square integrates to 1/4."""
        value, _ = dblquad(lambda y, x: x * y, 0.0, 1.0, 0.0, 1.0)
        assert value == pytest.approx(0.25, abs=1e-12)

    def test_argument_order(self):
        """The integrand receives the inner variable first."""
        # y in [0, 2], x in [0, 1]: integral of y is 2, of x is 1
        value, _ = dblquad(lambda y, x: y, 0.0, 1.0, 0.0, 2.0)
        assert value == pytest.approx(2.0, abs=1e-12)

    def test_callable_inner_bounds(self):
        """The triangle 0 <= y <= x <= 1 has area 1/2."""
        value, _ = dblquad(lambda y, x: 1.0, 0.0, 1.0, 0.0, lambda x: x)
        assert value == pytest.approx(0.5, abs=1e-12)

    def test_quarter_disc(self):
        """The quarter unit disc has area pi/4."""
        value, _ = dblquad(
            lambda y, x: 1.0, 0.0, 1.0, 0.0, lambda x: math.sqrt(1.0 - x * x)
        )
        assert value == pytest.approx(math.pi / 4.0, abs=1e-6)

    def test_args_forwarded(self):
        value, _ = dblquad(lambda y, x, k: k, 0.0, 1.0, 0.0, 1.0, args=(3.0,))
        assert value == pytest.approx(3.0, abs=1e-12)

    def test_infinite_outer_limit(self):
        """exp(-x) * y over [0, inf) x [0, 1] integrates to 1/2."""
        value, _ = dblquad(lambda y, x: math.exp(-x) * y, 0.0, math.inf, 0.0, 1.0)
        assert value == pytest.approx(0.5, abs=1e-6)

    def test_complex_integrand(self):
        value, _ = dblquad(lambda y, x: 1j * x * y, 0.0, 1.0, 0.0, 1.0)
        assert value == pytest.approx(0.25j, abs=1e-12)

    def test_full_output_counts_innermost_calls(self):
        """neval counts evaluations of the user integrand."""
        calls = []

        def f(y, x):
            calls.append((y, x))
            return x * y

        result = dblquad(f, 0.0, 1.0, 0.0, 1.0, full_output=True)
        assert isinstance(result, QuadratureResult)
        assert result.converged
        assert result.neval == len(calls)
        assert result.neval == 15 * 15

    def test_nan_bound_raises(self):
        with pytest.raises(ValueError):
            dblquad(lambda y, x: 1.0, 0.0, 1.0, 0.0, lambda x: math.nan)


class TestTplquad:
    def test_constant_unit_cube(self):
        value, _ = tplquad(lambda z, y, x: 1.0, 0.0, 1.0, 0.0, 1.0, 0.0, 1.0)
        assert value == pytest.approx(1.0, abs=1e-12)

    def test_product(self):
        """x*y*z over the unit cube integrates to 1/8."""
        value, _ = tplquad(lambda z, y, x: x * y * z, 0.0, 1.0, 0.0, 1.0, 0.0, 1.0)
        assert value == pytest.approx(0.125, abs=1e-12)

    def test_simplex_volume(self):
        """The unit simplex has volume 1/6."""
        value, _ = tplquad(
            lambda z, y, x: 1.0,
            0.0, 1.0,
            0.0, lambda x: 1.0 - x,
            0.0, lambda x, y: 1.0 - x - y,
        )
        assert value == pytest.approx(1.0 / 6.0, abs=1e-10)

    def test_args_and_full_output(self):
        result = tplquad(
            lambda z, y, x, k: k * z, 0.0, 1.0, 0.0, 1.0, 0.0, 1.0,
            args=(4.0,), full_output=True,
        )
        assert result.value == pytest.approx(2.0, abs=1e-12)
        assert result.neval == 15**3
