#!filepath: crimestat/stats/summary.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from crimestat.io.stats_file import parse_count, parse_stats_lines, read_counts, read_stats
from crimestat.keys.key_tag import Metric, canonical_pair, tag, tag_chain
from crimestat.stats import calc
from crimestat.values.value import DEFAULT_DECIMAL_POLICY, DecimalPolicy, Value, Variant, widen


class Stat(str, Enum):
    STDDEV = "STDDEV"
    VARIANCE = "VARIANCE"
    MEAN = "MEAN"
    MIN = "MIN"
    MAX = "MAX"
    COR = "COR"


FIELD_STATS = (Stat.STDDEV, Stat.VARIANCE, Stat.MEAN, Stat.MIN, Stat.MAX)


@dataclass
class StatResult:
    """Requested statistics for one field (or one field pair for COR)."""

    id: str
    values: Dict[Stat, float] = field(default_factory=dict)

    def get(self, stat: Stat) -> Optional[float]:
        return self.values.get(Stat(stat))

    @property
    def success(self) -> bool:
        return bool(self.values)

    @property
    def mean(self) -> Optional[float]:
        return self.get(Stat.MEAN)

    @property
    def variance(self) -> Optional[float]:
        return self.get(Stat.VARIANCE)

    @property
    def stddev(self) -> Optional[float]:
        return self.get(Stat.STDDEV)

    @property
    def min(self) -> Optional[float]:
        return self.get(Stat.MIN)

    @property
    def max(self) -> Optional[float]:
        return self.get(Stat.MAX)


class StatsSummary:
    """
    StatsSummary (read side of the stats stage)

    Reads back the persisted per-key entries and derives:
        MEAN / VARIANCE / STDDEV from  f-SUM, f-SQ-SUM, f-CNT
        MIN / MAX                from  f-MIN, f-MAX
        COR                      from  f+g-PRD-SUM, f-SUM, g-SUM, f-SQ-SUM, g-SQ-SUM, f-CNT

    Persisted values are typed by the field's configured variant; a field
    without one is read as FLOAT64.
    """

    def __init__(
            self,
            entries: Mapping[str, str],
            types: Optional[Mapping[str, Variant]] = None,
            policy: DecimalPolicy = DEFAULT_DECIMAL_POLICY,
    ):
        self.entries = dict(entries)
        self.types = dict(types or {})
        self.policy = policy

    @classmethod
    def from_file(cls, path: str | Path, types=None, policy: DecimalPolicy = DEFAULT_DECIMAL_POLICY) -> "StatsSummary":
        return cls(read_stats(path), types, policy)

    @classmethod
    def from_lines(cls, lines: Iterable[str], types=None, policy: DecimalPolicy = DEFAULT_DECIMAL_POLICY) -> "StatsSummary":
        return cls(parse_stats_lines(lines), types, policy)

    # --------------------------------------------------
    # raw accessors
    # --------------------------------------------------
    def variant_of(self, name: str) -> Variant:
        return self.types.get(name, Variant.FLOAT64)

    def _text(self, key: str) -> str:
        try:
            return self.entries[key]
        except KeyError:
            raise KeyError(f"stats entry {key!r} not found") from None

    def value(self, key: str, variant: Variant) -> Value:
        # persisted stats are machine written: a bad entry is corrupt input, not noise
        text = self._text(key)
        try:
            return Value.parse_strict(text, variant)
        except (ValueError, ArithmeticError) as e:
            raise ValueError(f"stats entry {key}={text!r} is not a {variant.value}: {e}") from None

    def count(self, name: str) -> int:
        return parse_count(self._text(tag(name, Metric.CNT)))

    def counts(self, names: Iterable[str]) -> Dict[str, int]:
        return read_counts(self.entries, names)

    def _sum(self, name: str, variant: Variant) -> Value:
        return self.value(tag(name, Metric.SUM), variant)

    def _sum_sq(self, name: str, variant: Variant) -> Value:
        return self.value(tag_chain(name, [Metric.SQ, Metric.SUM]), variant)

    # --------------------------------------------------
    # statistics
    # --------------------------------------------------
    def calc_stat(self, name: str, stats: Iterable[Stat] = FIELD_STATS) -> StatResult:
        stats = [Stat(s) for s in stats]
        if Stat.COR in stats:
            raise ValueError("COR is a pair statistic; use calc_correlation")

        variant = self.variant_of(name)
        result = StatResult(name)

        if {Stat.MEAN, Stat.VARIANCE, Stat.STDDEV} & set(stats):
            total = self._sum(name, variant)
            n = self.count(name)
            if Stat.MEAN in stats:
                result.values[Stat.MEAN] = calc.mean(total, n, self.policy).as_float()
            if Stat.VARIANCE in stats or Stat.STDDEV in stats:
                var = calc.variance(total, self._sum_sq(name, variant), n, self.policy)
                if Stat.VARIANCE in stats:
                    result.values[Stat.VARIANCE] = var
                if Stat.STDDEV in stats:
                    result.values[Stat.STDDEV] = var ** 0.5

        if Stat.MIN in stats:
            result.values[Stat.MIN] = self.value(tag(name, Metric.MIN), variant).as_float()
        if Stat.MAX in stats:
            result.values[Stat.MAX] = self.value(tag(name, Metric.MAX), variant).as_float()

        return result

    def calc_correlation(self, name1: str, name2: str) -> StatResult:
        # sums of a mixed pair are read in the variant its product was built in
        variant = widen(self.variant_of(name1), self.variant_of(name2))
        pair_key = canonical_pair(name1, name2)

        cor = calc.correlation(
            self.value(tag_chain(pair_key, [Metric.PRD, Metric.SUM]), variant),
            self._sum(name1, variant),
            self._sum(name2, variant),
            self._sum_sq(name1, variant),
            self._sum_sq(name2, variant),
            self.count(name1),
            self.policy,
        )
        return StatResult(pair_key, {Stat.COR: cor})

    def calc_all_correlation(self, names: Iterable[str]) -> Dict[str, float]:
        """canonical pair key -> Pearson r, for every unordered pair in `names`"""
        out: Dict[str, float] = {}
        for a, b in combinations(sorted(set(names)), 2):
            res = self.calc_correlation(a, b)
            out[res.id] = res.values[Stat.COR]
        return out

    def calc_all(self, names: Iterable[str], stats: Iterable[Stat] = FIELD_STATS) -> List[StatResult]:
        stats = list(stats)
        return [self.calc_stat(n, stats) for n in names]
