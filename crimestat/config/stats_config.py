# crimestat/config/stats_config.py
from __future__ import annotations

import decimal
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from crimestat.keys.key_tag import metric_of
from crimestat.utils.datetime_utils import DateRange
from crimestat.values.value import DecimalPolicy, Variant

_ROUNDING_MODES = {
    name: getattr(decimal, name)
    for name in (
        "ROUND_UP",
        "ROUND_DOWN",
        "ROUND_CEILING",
        "ROUND_FLOOR",
        "ROUND_HALF_UP",
        "ROUND_HALF_DOWN",
        "ROUND_HALF_EVEN",
        "ROUND_05UP",
    )
}


class DecimalConfig(BaseModel):
    """
    BIG_DECIMAL division policy. ROUND_UP matches the historical output of
    the stats stage; change it here, never implicitly.
    """

    model_config = ConfigDict(frozen=True)

    rounding: str = "ROUND_UP"
    precision: int = Field(default=34, ge=1)
    places: Optional[int] = Field(default=None, ge=0)

    @field_validator("rounding")
    @classmethod
    def _known_rounding(cls, v: str) -> str:
        v = v.upper()
        if v not in _ROUNDING_MODES:
            raise ValueError(f"unknown rounding mode {v}; expected one of {sorted(_ROUNDING_MODES)}")
        return v

    def policy(self) -> DecimalPolicy:
        return DecimalPolicy(
            rounding=_ROUNDING_MODES[self.rounding],
            precision=self.precision,
            places=self.places,
        )


class StatsConfig(BaseModel):
    """
    StatsConfig（FROZEN）

    variables     : tracked field names, emitted by the stats mapper
    output_types  : per-field numeric variant (missing -> float64)
    promote_mixed_pairs : mixed-variant pairs multiply in their widened
                          variant; off -> such pairs get no product term
    date filter   : inclusive, applied to the record date key
    """

    model_config = ConfigDict(frozen=True)

    variables: List[str]
    output_types: Dict[str, Variant] = Field(default_factory=dict)
    promote_mixed_pairs: bool = True

    filter_start_date: Optional[date] = None
    filter_end_date: Optional[date] = None
    date_format: Optional[str] = None

    decimal: DecimalConfig = Field(default_factory=DecimalConfig)
    stats_path: str = "stats/stats.txt"

    @field_validator("output_types", mode="before")
    @classmethod
    def _variant_names(cls, v):
        if isinstance(v, dict):
            return {k: Variant.from_name(t) for k, t in v.items()}
        return v

    @field_validator("variables")
    @classmethod
    def _unique_variables(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one variable must be tracked")
        dupes = sorted({x for x in v if v.count(x) > 1})
        if dupes:
            raise ValueError(f"duplicate variables {dupes}")
        bad = [x for x in v if not x or "+" in x or metric_of(x) is not None]
        if bad:
            raise ValueError(f"invalid variable names {bad}")
        return v

    @model_validator(mode="after")
    def _check_dates(self) -> "StatsConfig":
        self.filter_range()
        return self

    def variant_of(self, name: str) -> Variant:
        return self.output_types.get(name, Variant.FLOAT64)

    def filter_range(self) -> DateRange:
        return DateRange(self.filter_start_date, self.filter_end_date)

    def decimal_policy(self) -> DecimalPolicy:
        return self.decimal.policy()
