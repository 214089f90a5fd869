#!filepath: crimestat/values/value.py
from __future__ import annotations

import decimal
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Optional

from crimestat.utils.datetime_utils import DateTimeUtils
from crimestat.utils.errors import TypeMismatchError
from crimestat.utils.logger import logs

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class Variant(str, Enum):
    """
    The representation a Value currently holds.

    Arithmetic is only defined between two Values of the same variant.
    """

    INT64 = "int64"
    FLOAT64 = "float64"
    BIG_INTEGER = "big_integer"
    BIG_DECIMAL = "big_decimal"
    STRING = "string"
    DATE = "date"
    DATETIME = "datetime"

    @property
    def numeric(self) -> bool:
        return self in _NUMERIC

    @classmethod
    def from_name(cls, name: "str | Variant") -> "Variant":
        """
        Accepts the canonical names plus the type names used by the
        output-types files of the crime/weather/stock stages.
        """
        if isinstance(name, Variant):
            return name
        key = str(name).strip().lower()
        try:
            return _ALIASES[key]
        except KeyError:
            raise ValueError(f"unknown value variant: {name!r}") from None


_NUMERIC = frozenset(
    {Variant.INT64, Variant.FLOAT64, Variant.BIG_INTEGER, Variant.BIG_DECIMAL}
)

_ALIASES: Dict[str, Variant] = {
    **{v.value: v for v in Variant},
    "long": Variant.INT64,
    "int": Variant.INT64,
    "integer": Variant.INT64,
    "double": Variant.FLOAT64,
    "float": Variant.FLOAT64,
    "biginteger": Variant.BIG_INTEGER,
    "bigint": Variant.BIG_INTEGER,
    "bigdecimal": Variant.BIG_DECIMAL,
    "decimal": Variant.BIG_DECIMAL,
    "str": Variant.STRING,
    "localdate": Variant.DATE,
    "localdatetime": Variant.DATETIME,
}

_WIDENED: Dict[frozenset, Variant] = {
    frozenset({Variant.INT64, Variant.FLOAT64}): Variant.FLOAT64,
    frozenset({Variant.INT64, Variant.BIG_INTEGER}): Variant.BIG_INTEGER,
    frozenset({Variant.INT64, Variant.BIG_DECIMAL}): Variant.BIG_DECIMAL,
    frozenset({Variant.FLOAT64, Variant.BIG_INTEGER}): Variant.BIG_DECIMAL,
    frozenset({Variant.FLOAT64, Variant.BIG_DECIMAL}): Variant.BIG_DECIMAL,
    frozenset({Variant.BIG_INTEGER, Variant.BIG_DECIMAL}): Variant.BIG_DECIMAL,
}


def widen(a: Variant, b: Variant) -> Variant:
    """
    The numeric variant both `a` and `b` convert into without losing their
    kind (integer -> float -> decimal). Non-numeric pairs have none.
    """
    if a is b:
        return a
    try:
        return _WIDENED[frozenset({a, b})]
    except KeyError:
        raise TypeMismatchError("widen", a, b) from None


@dataclass(frozen=True)
class DecimalPolicy:
    """
    Rounding applied to BIG_DECIMAL division.

    rounding  : a `decimal` rounding constant, ROUND_UP by default
    precision : significant digits for the division context
    places    : optional fixed number of decimal places to quantize to
    """

    rounding: str = decimal.ROUND_UP
    precision: int = 34
    places: Optional[int] = None

    def divide(self, a: Decimal, b: Decimal) -> Decimal:
        with decimal.localcontext() as ctx:
            ctx.prec = self.precision
            ctx.rounding = self.rounding
            q = a / b
            if self.places is not None:
                q = q.quantize(Decimal(1).scaleb(-self.places), rounding=self.rounding)
            return q

    def sqrt(self, a: Decimal) -> Decimal:
        with decimal.localcontext() as ctx:
            ctx.prec = self.precision
            ctx.rounding = self.rounding
            return a.sqrt()


DEFAULT_DECIMAL_POLICY = DecimalPolicy()


# ==================================================
# Per-variant operation tables
# ==================================================
@dataclass(frozen=True)
class _VariantOps:
    coerce: Callable[[Any], Any]
    parse: Callable[[str, Optional[str]], Any]
    default: Any
    render: Callable[[Any], str] = str
    add: Optional[Callable[[Any, Any], Any]] = None
    sub: Optional[Callable[[Any, Any], Any]] = None
    mul: Optional[Callable[[Any, Any], Any]] = None
    div: Optional[Callable[[Any, Any, DecimalPolicy], Any]] = None
    pow: Optional[Callable[[Any, int], Any]] = None


def _int64(v: int) -> int:
    if not INT64_MIN <= v <= INT64_MAX:
        raise OverflowError(f"int64 overflow: {v}")
    return v


def _strict_int(v: Any) -> int:
    if isinstance(v, bool):
        raise TypeError("bool is not an integer value")
    if isinstance(v, float):
        if not v.is_integer():
            raise ValueError(f"non-integral value {v}")
        return int(v)
    return int(v)


def _parse_int(s: str, _fmt: Optional[str]) -> int:
    s = s.strip()
    try:
        return int(s)
    except ValueError:
        # "12.0" style integers from upstream float formatting
        d = Decimal(s)
        if d != d.to_integral_value():
            raise
        return int(d)


def _parse_decimal(s: str, _fmt: Optional[str]) -> Decimal:
    try:
        return Decimal(s.strip())
    except InvalidOperation:
        raise ValueError(f"invalid decimal: {s!r}") from None


def _render_float(v: float) -> str:
    return repr(float(v))


_OPS: Dict[Variant, _VariantOps] = {
    Variant.INT64: _VariantOps(
        coerce=lambda v: _int64(_strict_int(v)),
        parse=lambda s, f: _int64(_parse_int(s, f)),
        default=0,
        add=lambda a, b: _int64(a + b),
        sub=lambda a, b: _int64(a - b),
        mul=lambda a, b: _int64(a * b),
        div=lambda a, b, _p: _int64(a // b),
        pow=lambda a, n: _int64(a ** n),
    ),
    Variant.FLOAT64: _VariantOps(
        coerce=float,
        parse=lambda s, f: float(s.strip()),
        default=0.0,
        render=_render_float,
        add=lambda a, b: a + b,
        sub=lambda a, b: a - b,
        mul=lambda a, b: a * b,
        div=lambda a, b, _p: a / b,
        pow=lambda a, n: a ** n,
    ),
    Variant.BIG_INTEGER: _VariantOps(
        coerce=_strict_int,
        parse=_parse_int,
        default=0,
        add=lambda a, b: a + b,
        sub=lambda a, b: a - b,
        mul=lambda a, b: a * b,
        div=lambda a, b, _p: a // b,
        pow=lambda a, n: a ** n,
    ),
    Variant.BIG_DECIMAL: _VariantOps(
        coerce=lambda v: v if isinstance(v, Decimal) else Decimal(str(v)),
        parse=_parse_decimal,
        default=Decimal(0),
        add=lambda a, b: a + b,
        sub=lambda a, b: a - b,
        mul=lambda a, b: a * b,
        div=lambda a, b, p: p.divide(a, b),
        pow=lambda a, n: a ** n,
    ),
    Variant.STRING: _VariantOps(
        coerce=str,
        parse=lambda s, f: s,
        default="",
    ),
    Variant.DATE: _VariantOps(
        coerce=DateTimeUtils.parse_date,
        parse=lambda s, f: DateTimeUtils.parse_date(s, f),
        default=date.min,
        render=lambda v: v.isoformat(),
    ),
    Variant.DATETIME: _VariantOps(
        coerce=DateTimeUtils.parse_datetime,
        parse=lambda s, f: DateTimeUtils.parse_datetime(s, f),
        default=datetime.min,
        render=lambda v: v.isoformat(),
    ),
}

_missing = set(Variant) - set(_OPS)
if _missing:
    raise RuntimeError(f"no operations registered for variants {sorted(_missing)}")


# ==================================================
# Value
# ==================================================
@dataclass(frozen=True)
class Value:
    """
    Tagged scalar.

    Immutable: every operation returns a new Value. Arithmetic requires both
    operands to carry the same variant, otherwise TypeMismatchError.
    """

    variant: Variant
    raw: Any

    # --------------------------------------------------
    # construction
    # --------------------------------------------------
    @classmethod
    def typed(cls, raw: Any, variant: Variant) -> "Value":
        return cls(variant, _OPS[variant].coerce(raw))

    @classmethod
    def of(cls, obj: Any) -> "Value":
        """Infer the variant from a plain Python object."""
        if isinstance(obj, Value):
            return obj
        if isinstance(obj, bool):
            raise TypeError("bool values are not supported")
        if isinstance(obj, int):
            if INT64_MIN <= obj <= INT64_MAX:
                return cls(Variant.INT64, obj)
            return cls(Variant.BIG_INTEGER, obj)
        if isinstance(obj, float):
            return cls(Variant.FLOAT64, obj)
        if isinstance(obj, Decimal):
            return cls(Variant.BIG_DECIMAL, obj)
        if isinstance(obj, datetime):
            return cls(Variant.DATETIME, obj)
        if isinstance(obj, date):
            return cls(Variant.DATE, obj)
        if isinstance(obj, str):
            return cls(Variant.STRING, obj)
        raise TypeError(f"cannot wrap {type(obj).__name__} in a Value")

    @classmethod
    def default(cls, variant: Variant) -> "Value":
        return cls(variant, _OPS[variant].default)

    @classmethod
    def zero(cls, variant: Variant) -> "Value":
        if not variant.numeric:
            raise TypeError(f"{variant.value} has no zero")
        return cls.default(variant)

    @classmethod
    def parse(cls, text: Optional[str], variant: Variant, fmt: Optional[str] = None) -> "Value":
        """
        Convert text to `variant`.

        Never raises on bad input: the variant default is substituted and a
        warning logged, so one bad field does not abort the record.
        """
        if text is None:
            return cls.default(variant)
        try:
            return cls.parse_strict(text, variant, fmt)
        except (ValueError, TypeError, OverflowError, ArithmeticError) as e:
            logs.warning(
                f"[Value] cannot parse {text!r} as {variant.value} ({e}); using default"
            )
            return cls.default(variant)

    @classmethod
    def parse_strict(cls, text: str, variant: Variant, fmt: Optional[str] = None) -> "Value":
        """As parse(), but bad input raises."""
        return cls(variant, _OPS[variant].parse(text, fmt))

    def copy_of(self) -> "Value":
        return Value(self.variant, self.raw)

    def promote(self, variant: Variant) -> "Value":
        """Explicit conversion to a wider numeric variant; never narrows."""
        if self.variant is variant:
            return self
        if widen(self.variant, variant) is not variant:
            raise TypeMismatchError("promote", self.variant, variant)
        return Value.typed(self.raw, variant)

    # --------------------------------------------------
    # arithmetic
    # --------------------------------------------------
    def _binary(self, op: str, other: "Value") -> Callable:
        if not isinstance(other, Value) or other.variant is not self.variant:
            raise TypeMismatchError(op, self.variant, getattr(other, "variant", type(other).__name__))
        fn = getattr(_OPS[self.variant], op)
        if fn is None:
            raise TypeMismatchError(op, self.variant, other.variant)
        return fn

    def add(self, other: "Value") -> "Value":
        return Value(self.variant, self._binary("add", other)(self.raw, other.raw))

    def subtract(self, other: "Value") -> "Value":
        return Value(self.variant, self._binary("sub", other)(self.raw, other.raw))

    def multiply(self, other: "Value") -> "Value":
        return Value(self.variant, self._binary("mul", other)(self.raw, other.raw))

    def divide(self, other: "Value", policy: DecimalPolicy = DEFAULT_DECIMAL_POLICY) -> "Value":
        """
        INT64 / BIG_INTEGER use floor division, BIG_DECIMAL rounds according
        to `policy` (ROUND_UP unless the caller says otherwise).
        """
        fn = self._binary("div", other)
        return Value(self.variant, fn(self.raw, other.raw, policy))

    def pow(self, exponent: int) -> "Value":
        fn = _OPS[self.variant].pow
        if fn is None:
            raise TypeMismatchError("pow", self.variant, "int")
        return Value(self.variant, fn(self.raw, int(exponent)))

    def min(self, other: "Value") -> "Value":
        self._check_same("min", other)
        return other if other.raw < self.raw else self

    def max(self, other: "Value") -> "Value":
        self._check_same("max", other)
        return other if other.raw > self.raw else self

    def _check_same(self, op: str, other: "Value") -> None:
        if not isinstance(other, Value) or other.variant is not self.variant:
            raise TypeMismatchError(op, self.variant, getattr(other, "variant", type(other).__name__))

    # --------------------------------------------------
    # accessors
    # --------------------------------------------------
    @property
    def is_numeric(self) -> bool:
        return self.variant.numeric

    def is_zero(self) -> bool:
        return self.is_numeric and self.raw == 0

    def as_float(self) -> float:
        if not self.is_numeric:
            raise TypeError(f"{self.variant.value} value is not numeric")
        return float(self.raw)

    def as_decimal(self) -> Decimal:
        if not self.is_numeric:
            raise TypeError(f"{self.variant.value} value is not numeric")
        if isinstance(self.raw, float):
            return Decimal(repr(self.raw))
        return Decimal(self.raw)

    def render(self) -> str:
        return _OPS[self.variant].render(self.raw)

    def __str__(self) -> str:
        return self.render()
