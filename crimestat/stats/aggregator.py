#!filepath: crimestat/stats/aggregator.py
from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from crimestat.config.stats_config import StatsConfig
from crimestat.io.records import FeatureRecord, FeatureRecordParser
from crimestat.keys.key_tag import Metric, canonical_pair, is_standard, tag
from crimestat.mapreduce.job import MapReduceJob
from crimestat.stats import calc
from crimestat.utils.datetime_utils import DateRange
from crimestat.utils.logger import logs
from crimestat.values.value import DecimalPolicy, Value, Variant, widen


# ============================================================
# partial aggregate (combiner output)
# ============================================================
@dataclass(frozen=True)
class PartialAggregate:
    """
    Fold of some of one key's values.

    merge() is associative and commutative, and a raw Value folds in as a
    one-element partial, so a reducer gets the same answer whether it sees
    raw values, partials or a mix of both.
    """

    total: Value
    count: int
    zero_count: int
    low: Optional[Value] = None
    high: Optional[Value] = None

    @classmethod
    def of(cls, value: Value, extremes: bool) -> "PartialAggregate":
        return cls(
            total=value,
            count=1,
            zero_count=1 if value.is_zero() else 0,
            low=value if extremes else None,
            high=value if extremes else None,
        )

    def merge(self, other: "PartialAggregate") -> "PartialAggregate":
        return PartialAggregate(
            total=self.total.add(other.total),
            count=self.count + other.count,
            zero_count=self.zero_count + other.zero_count,
            low=_pick(self.low, other.low, Value.min),
            high=_pick(self.high, other.high, Value.max),
        )


def _pick(a: Optional[Value], b: Optional[Value], fn) -> Optional[Value]:
    if a is None:
        return b
    if b is None:
        return a
    return fn(a, b)


Entry = Union[Value, PartialAggregate]


def fold(values: Iterable[Entry], extremes: bool) -> PartialAggregate:
    acc: Optional[PartialAggregate] = None
    for v in values:
        part = v if isinstance(v, PartialAggregate) else PartialAggregate.of(v, extremes)
        acc = part if acc is None else acc.merge(part)
    if acc is None:
        raise ValueError("cannot fold an empty value group")
    return acc


# ============================================================
# key selection
# ============================================================
class TrackedFieldKeys:
    """
    Which keys the mapper emits for a record.

    Every tracked field gives `f` and `f-SQ`; every unordered pair of tracked
    fields gives one canonical `f+g-PRD`. A mixed-variant pair multiplies in
    the widened variant of the two (long * double -> double, anything *
    bigdecimal -> bigdecimal). With promote_mixed_pairs off such pairs get
    no product term.
    """

    def __init__(
            self,
            variables: Sequence[str],
            types: Mapping[str, Variant],
            promote_mixed_pairs: bool = True,
    ):
        self.variables = list(variables)
        self.types = dict(types)

        self.pairs: List[Tuple[str, str, str]] = []
        self.pair_variants: Dict[str, Variant] = {}
        mixed = []
        skipped = []
        for a, b in combinations(sorted(self.variables), 2):
            key = tag(canonical_pair(a, b), Metric.PRD)
            if self.types[a] is not self.types[b]:
                if not promote_mixed_pairs:
                    skipped.append(canonical_pair(a, b))
                    continue
                mixed.append(canonical_pair(a, b))
            self.pairs.append((a, b, key))
            self.pair_variants[key] = widen(self.types[a], self.types[b])

        if mixed:
            logs.info(f"[TrackedFieldKeys] widened product terms for mixed-variant pairs {mixed}")
        if skipped:
            logs.warning(
                f"[TrackedFieldKeys] no product terms for mixed-variant pairs {skipped}"
            )

    def emit(self, fields: Mapping[str, Value]) -> Iterator[Tuple[str, Value]]:
        for name in self.variables:
            v = fields[name]
            yield name, v
            yield tag(name, Metric.SQ), v.pow(2)

        for a, b, key in self.pairs:
            variant = self.pair_variants[key]
            yield key, fields[a].promote(variant).multiply(fields[b].promote(variant))


# ============================================================
# aggregator job
# ============================================================
class StatsAggregator(MapReduceJob[str, str, Entry, Tuple[str, Value]]):
    """
    StatsAggregator

    map     : line -> (f, v), (f-SQ, v^2), (f+g-PRD, v_f*v_g)
    combine : values of one key -> one PartialAggregate
    reduce  : values / partials of one key ->
                standard key : key-SUM, key-CNT, key-ZERO, key-MEAN, key-MIN, key-MAX
                tagged key   : key-SUM, key-CNT, key-ZERO, key-MEAN

    Records outside the date filter are dropped in map.
    """

    name = "stats"

    def __init__(
            self,
            variables: Sequence[str],
            types: Mapping[str, Variant],
            date_range: DateRange = DateRange(),
            policy: DecimalPolicy = DecimalPolicy(),
            parser: Optional[FeatureRecordParser] = None,
            keys: Optional[TrackedFieldKeys] = None,
            promote_mixed_pairs: bool = True,
    ):
        self.variables = list(variables)
        self.types = {f: types.get(f, Variant.FLOAT64) for f in self.variables}
        non_numeric = [f for f, t in self.types.items() if not t.numeric]
        if non_numeric:
            raise ValueError(f"tracked fields must be numeric: {non_numeric}")

        self.date_range = date_range
        self.policy = policy
        self.parser = parser or FeatureRecordParser(self.types)
        self.keys = keys or TrackedFieldKeys(self.variables, self.types, promote_mixed_pairs)

    @classmethod
    def from_config(cls, cfg: StatsConfig) -> "StatsAggregator":
        types = {f: cfg.variant_of(f) for f in cfg.variables}
        return cls(
            variables=cfg.variables,
            types=types,
            date_range=cfg.filter_range(),
            policy=cfg.decimal_policy(),
            parser=FeatureRecordParser(types, cfg.date_format),
            promote_mixed_pairs=cfg.promote_mixed_pairs,
        )

    # --------------------------------------------------
    # map
    # --------------------------------------------------
    def map(self, item: Union[str, FeatureRecord]) -> Iterator[Tuple[str, Entry]]:
        record = self.parser.parse(item) if isinstance(item, str) else item
        if record is None or not self.date_range.contains(record.date):
            return iter(())
        fields = {
            f: record.get(f) or Value.default(self.types[f])
            for f in self.variables
        }
        return self.keys.emit(fields)

    # --------------------------------------------------
    # combine
    # --------------------------------------------------
    def combine(self, key: str, values: List[Entry]) -> Iterator[Tuple[str, Entry]]:
        yield key, fold(values, extremes=is_standard(key))

    # --------------------------------------------------
    # reduce
    # --------------------------------------------------
    def reduce(self, key: str, values: List[Entry]) -> Iterator[Tuple[str, Value]]:
        standard = is_standard(key)
        agg = fold(values, extremes=standard)

        out = [
            (tag(key, Metric.SUM), agg.total),
            (tag(key, Metric.CNT), Value(Variant.INT64, agg.count)),
            (tag(key, Metric.ZERO), Value(Variant.INT64, agg.zero_count)),
            (tag(key, Metric.MEAN), calc.mean(agg.total, agg.count, self.policy)),
        ]
        if standard:
            out.append((tag(key, Metric.MIN), agg.low))
            out.append((tag(key, Metric.MAX), agg.high))

        return iter(sorted(out, key=lambda kv: kv[0]))
