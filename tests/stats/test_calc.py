#!filepath: tests/stats/test_calc.py
import math
from decimal import Decimal

import pytest

from crimestat.stats import calc
from crimestat.utils.errors import TypeMismatchError, ZeroCountError
from crimestat.values.value import DecimalPolicy, Value, Variant


def f(x: float) -> Value:
    return Value(Variant.FLOAT64, x)


def test_mean_float():
    assert calc.mean(f(6.0), 3) == Value(Variant.FLOAT64, 2.0)


def test_mean_int_is_true_division():
    assert calc.mean(Value(Variant.INT64, 7), 2) == Value(Variant.FLOAT64, 3.5)


def test_mean_big_integer_gives_big_decimal():
    out = calc.mean(Value(Variant.BIG_INTEGER, 10 ** 30), 4)
    assert out.variant is Variant.BIG_DECIMAL
    assert out.raw == Decimal(25) * Decimal(10) ** 28


def test_mean_big_decimal_uses_policy():
    out = calc.mean(Value(Variant.BIG_DECIMAL, Decimal(2)), 3, DecimalPolicy(places=2))
    assert out.raw == Decimal("0.67")


@pytest.mark.parametrize("fn", [
    lambda: calc.mean(f(1.0), 0),
    lambda: calc.variance(f(1.0), f(1.0), 0),
    lambda: calc.stddev(f(1.0), f(1.0), 0),
    lambda: calc.correlation(f(1.0), f(1.0), f(1.0), f(1.0), f(1.0), 0),
])
def test_zero_count_raises(fn):
    with pytest.raises(ZeroCountError):
        fn()


def test_variance_and_stddev():
    # x = 1, 2, 3
    assert calc.variance(f(6.0), f(14.0), 3) == pytest.approx(2.0 / 3.0)
    assert calc.stddev(f(6.0), f(14.0), 3) == pytest.approx(0.816496580927726)


def test_variance_integer_path_is_exact():
    var = calc.variance(Value(Variant.INT64, 6), Value(Variant.INT64, 14), 3)
    assert var == pytest.approx(2.0 / 3.0)


def test_variance_clamps_rounding_noise():
    assert calc.variance(f(3.0), f(3.0 - 1e-12), 3) == 0.0


def test_variance_rejects_inconsistent_sums():
    with pytest.raises(ValueError):
        calc.variance(f(10.0), f(1.0), 2)


def test_variance_mixed_variants():
    with pytest.raises(TypeMismatchError):
        calc.variance(f(1.0), Value(Variant.INT64, 1), 1)


def test_correlation_perfect_linear():
    # x = 1..3, y = 2x + 1
    r = calc.correlation(f(34.0), f(6.0), f(15.0), f(14.0), f(83.0), 3)
    assert r == pytest.approx(1.0)


def test_correlation_negative_integer():
    # x = 1..3, y = -x
    i = lambda v: Value(Variant.INT64, v)  # noqa: E731
    r = calc.correlation(i(-14), i(6), i(-6), i(14), i(14), 3)
    assert r == pytest.approx(-1.0)


def test_correlation_constant_series_is_nan():
    # x = 1..3, y = 5 constant
    assert math.isnan(calc.correlation(f(30.0), f(6.0), f(15.0), f(14.0), f(75.0), 3))
