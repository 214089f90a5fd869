#!filepath: crimestat/stats/calc.py
"""
Descriptive-statistic formulas over running sums.

    mean     = sum / count
    variance = sumSq / count - mean^2
    stddev   = sqrt(variance)
    cor      = (n*Sxy - Sx*Sy) / sqrt((n*Sxx - Sx^2) * (n*Syy - Sy^2))

FLOAT64 sums are computed in float. INT64 / BIG_INTEGER / BIG_DECIMAL sums
are computed in Decimal under the caller's DecimalPolicy, so integer sums
never lose precision before the final float conversion.
"""
from __future__ import annotations

import math
from decimal import Decimal

from crimestat.utils.errors import TypeMismatchError, ZeroCountError
from crimestat.values.value import DEFAULT_DECIMAL_POLICY, DecimalPolicy, Value, Variant

# relative tolerance under which a negative variance is rounding noise
_NEG_VARIANCE_TOL = 1e-9


def _check_count(count: int, what: str) -> None:
    if count <= 0:
        raise ZeroCountError(f"{what} over a count of {count}")


def _same_variant(op: str, *values: Value) -> Variant:
    first = values[0].variant
    for v in values[1:]:
        if v.variant is not first:
            raise TypeMismatchError(op, first, v.variant)
    if not first.numeric:
        raise TypeMismatchError(op, first, first)
    return first


def mean(total: Value, count: int, policy: DecimalPolicy = DEFAULT_DECIMAL_POLICY) -> Value:
    """
    FLOAT64 / INT64 -> FLOAT64 (true division)
    BIG_INTEGER / BIG_DECIMAL -> BIG_DECIMAL (policy rounding)
    """
    _check_count(count, "mean")
    _same_variant("mean", total)
    if total.variant in (Variant.FLOAT64, Variant.INT64):
        return Value(Variant.FLOAT64, total.raw / count)
    return Value(Variant.BIG_DECIMAL, policy.divide(total.as_decimal(), Decimal(count)))


def variance(
        total: Value,
        total_sq: Value,
        count: int,
        policy: DecimalPolicy = DEFAULT_DECIMAL_POLICY,
) -> float:
    _check_count(count, "variance")
    variant = _same_variant("variance", total, total_sq)

    if variant is Variant.FLOAT64:
        m = total.raw / count
        avg_sq = total_sq.raw / count
        var = avg_sq - m * m
    else:
        n = Decimal(count)
        m = policy.divide(total.as_decimal(), n)
        avg_sq = policy.divide(total_sq.as_decimal(), n)
        var = avg_sq - m * m

    if var < 0:
        if abs(var) > _NEG_VARIANCE_TOL * max(1, abs(avg_sq)):
            raise ValueError(
                f"negative variance {var}: sum of squares does not match sum (inconsistent input)"
            )
        var = 0
    return float(var)


def stddev(
        total: Value,
        total_sq: Value,
        count: int,
        policy: DecimalPolicy = DEFAULT_DECIMAL_POLICY,
) -> float:
    return math.sqrt(variance(total, total_sq, count, policy))


def correlation(
        sum_xy: Value,
        sum_x: Value,
        sum_y: Value,
        sum_x_sq: Value,
        sum_y_sq: Value,
        count: int,
        policy: DecimalPolicy = DEFAULT_DECIMAL_POLICY,
) -> float:
    """
    Pearson correlation from running sums. NaN when either series is
    constant (zero spread), as the coefficient is undefined there.
    """
    _check_count(count, "correlation")
    variant = _same_variant("correlation", sum_xy, sum_x, sum_y, sum_x_sq, sum_y_sq)

    if variant is Variant.FLOAT64:
        n = float(count)
        num = n * sum_xy.raw - sum_x.raw * sum_y.raw
        dx = n * sum_x_sq.raw - sum_x.raw ** 2
        dy = n * sum_y_sq.raw - sum_y.raw ** 2
        if dx <= 0 or dy <= 0:
            return math.nan
        return num / math.sqrt(dx * dy)

    n = Decimal(count)
    sx, sy = sum_x.as_decimal(), sum_y.as_decimal()
    num = n * sum_xy.as_decimal() - sx * sy
    dx = n * sum_x_sq.as_decimal() - sx ** 2
    dy = n * sum_y_sq.as_decimal() - sy ** 2
    if dx <= 0 or dy <= 0:
        return math.nan
    return float(policy.divide(num, policy.sqrt(dx * dy)))
