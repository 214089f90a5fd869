#!filepath: tests/stats/test_aggregator.py
import random
from datetime import date
from decimal import Decimal

import pytest

from crimestat.config.executor_config import ExecutorConfig
from crimestat.mapreduce.executor import MapReduceExecutor
from crimestat.stats.aggregator import PartialAggregate, StatsAggregator, fold
from crimestat.utils.datetime_utils import DateRange
from crimestat.values.value import Value, Variant


def run_local(job, lines, shuffle: bool = False, seed: int = 0):
    """map + group + reduce without the executor"""
    grouped = {}
    for line in lines:
        for k, v in job.map(line):
            grouped.setdefault(k, []).append(v)
    out = {}
    rng = random.Random(seed)
    for k in sorted(grouped):
        vs = grouped[k]
        if shuffle:
            rng.shuffle(vs)
        out.update(dict(job.reduce(k, vs)))
    return out


@pytest.fixture
def x_job():
    return StatsAggregator(["x"], {"x": Variant.FLOAT64})


# ------------------------------------------------------------
# map
# ------------------------------------------------------------
def test_product_key_emitted_once_in_canonical_order(make_lines):
    job = StatsAggregator(["b", "a"], {"a": Variant.FLOAT64, "b": Variant.FLOAT64})
    (line,) = make_lines({"2001-01-01": {"a": 2.0, "b": 3.0}})

    emitted = dict(job.map(line))

    assert set(emitted) == {"a", "a-SQ", "b", "b-SQ", "a+b-PRD"}
    assert "b+a-PRD" not in emitted
    assert emitted["a+b-PRD"] == Value.of(6.0)
    assert emitted["b-SQ"] == Value.of(9.0)


def test_map_is_idempotent(make_lines):
    job = StatsAggregator(["a", "b"], {"a": Variant.FLOAT64, "b": Variant.FLOAT64})
    (line,) = make_lines({"2001-01-01": {"a": 2.0, "b": 3.0}})
    assert list(job.map(line)) == list(job.map(line))


def test_map_applies_date_filter(make_lines):
    lines = make_lines({"2001-01-01": {"x": 1.0}, "2003-01-01": {"x": 2.0}})
    open_job = StatsAggregator(["x"], {"x": Variant.FLOAT64})
    filtered = StatsAggregator(
        ["x"], {"x": Variant.FLOAT64}, date_range=DateRange(None, date(2002, 1, 1)),
    )

    assert len(list(open_job.map(lines[1]))) == 2
    assert list(filtered.map(lines[1])) == []
    assert len(list(filtered.map(lines[0]))) == 2


def test_map_skips_comment_lines(x_job):
    assert list(x_job.map("# variables\tx")) == []
    assert list(x_job.map("")) == []


def test_missing_field_uses_variant_default(make_lines):
    job = StatsAggregator(["x", "y"], {"x": Variant.INT64, "y": Variant.INT64})
    lines = make_lines({"2001-01-01": {"x": 4, "y": 1}, "2001-01-02": {"x": 5}})

    out = run_local(job, lines)

    assert out["y-CNT"] == Value.of(2)
    assert out["y-ZERO"] == Value.of(1)
    assert out["y-SUM"] == Value.of(1)


def test_mixed_variant_pair_multiplies_in_widened_variant(make_lines):
    job = StatsAggregator(
        ["n", "t", "d"],
        {"n": Variant.INT64, "t": Variant.FLOAT64, "d": Variant.BIG_DECIMAL},
    )
    (line,) = make_lines({"2001-01-01": {"n": 2, "t": 1.5, "d": "0.25"}})

    out = dict(job.map(line))

    assert out["n+t-PRD"] == Value.of(3.0)
    assert out["d+n-PRD"] == Value.of(Decimal("0.50"))
    assert out["d+t-PRD"] == Value.of(Decimal("0.375"))
    # the fields themselves keep their own variants
    assert out["n"] == Value.of(2)
    assert out["n-SQ"] == Value.of(4)


def test_mixed_variant_pairs_skipped_when_promotion_off(make_lines):
    job = StatsAggregator(
        ["n", "t"], {"n": Variant.INT64, "t": Variant.FLOAT64}, promote_mixed_pairs=False,
    )
    (line,) = make_lines({"2001-01-01": {"n": 2, "t": 1.5}})

    keys = {k for k, _ in job.map(line)}

    assert keys == {"n", "n-SQ", "t", "t-SQ"}
    assert job.keys.pairs == []


def test_non_numeric_tracked_field_rejected():
    with pytest.raises(ValueError):
        StatsAggregator(["s"], {"s": Variant.STRING})


# ------------------------------------------------------------
# reduce
# ------------------------------------------------------------
def test_reduce_standard_and_tagged_keys(make_lines, x_job):
    lines = make_lines({f"2001-01-0{i}": {"x": float(i)} for i in (1, 2, 3)})

    out = run_local(x_job, lines)

    assert out["x-SUM"] == Value.of(6.0)
    assert out["x-CNT"] == Value.of(3)
    assert out["x-ZERO"] == Value.of(0)
    assert out["x-MEAN"] == Value.of(2.0)
    assert out["x-MIN"] == Value.of(1.0)
    assert out["x-MAX"] == Value.of(3.0)

    assert out["x-SQ-SUM"] == Value.of(14.0)
    assert out["x-SQ-CNT"] == Value.of(3)
    assert "x-SQ-MIN" not in out
    assert "x-SQ-MAX" not in out


def test_reduce_output_sorted_by_key(x_job):
    keys = [k for k, _ in x_job.reduce("x", [Value.of(1.0)])]
    assert keys == sorted(keys)


def test_reduce_is_permutation_invariant(make_lines):
    job = StatsAggregator(["a", "b"], {"a": Variant.BIG_DECIMAL, "b": Variant.BIG_DECIMAL})
    lines = make_lines({
        f"2001-01-{i:02d}": {"a": Decimal(i) / Decimal(8), "b": Decimal(i * i)}
        for i in range(1, 20)
    })

    base = run_local(job, lines)
    for seed in range(5):
        assert run_local(job, lines, shuffle=True, seed=seed) == base


def test_int64_mean_is_true_division(make_lines):
    job = StatsAggregator(["n"], {"n": Variant.INT64})
    out = run_local(job, make_lines({"2001-01-01": {"n": 1}, "2001-01-02": {"n": 2}}))
    assert out["n-MEAN"] == Value.of(1.5)
    assert out["n-SUM"] == Value.of(3)


def test_big_decimal_mean_rounds_up():
    job = StatsAggregator(["d"], {"d": Variant.BIG_DECIMAL})
    vals = [Value.of(Decimal(1)), Value.of(Decimal(0)), Value.of(Decimal(0))]
    out = dict(job.reduce("d", vals))
    assert str(out["d-MEAN"].raw).endswith("4")


# ------------------------------------------------------------
# combiner
# ------------------------------------------------------------
def test_partial_merge_is_associative_and_commutative():
    a, b, c = (PartialAggregate.of(Value.of(v), True) for v in (1.0, 0.0, 5.0))

    left = a.merge(b).merge(c)
    right = a.merge(b.merge(c))
    swapped = c.merge(a).merge(b)

    assert left == right == swapped
    assert left.count == 3 and left.zero_count == 1
    assert left.low == Value.of(0.0) and left.high == Value.of(5.0)


def test_fold_accepts_mixed_raw_values_and_partials():
    partial = fold([Value.of(1), Value.of(2)], extremes=True)
    mixed = fold([partial, Value.of(3)], extremes=True)
    flat = fold([Value.of(1), Value.of(2), Value.of(3)], extremes=True)
    assert mixed == flat


def test_combiner_passes_do_not_change_output(x_job):
    values = [Value.of(float(v)) for v in (4, 0, 1, 9, 2)]
    direct = list(x_job.reduce("x", values))

    # two combiner passes over a split of the input, then reduce
    (_, p1), = x_job.combine("x", values[:2])
    (_, p2), = x_job.combine("x", values[2:])
    (_, p3), = x_job.combine("x", [p2])
    combined = list(x_job.reduce("x", [p1, p3]))

    assert combined == direct


def test_executor_partitioning_and_combiner_invariance(make_lines):
    job = StatsAggregator(["a", "b"], {"a": Variant.INT64, "b": Variant.INT64})
    lines = make_lines({
        f"2001-02-{i:02d}": {"a": i % 5, "b": 3 * i - 7}
        for i in range(1, 28)
    })

    baseline = MapReduceExecutor(ExecutorConfig(num_partitions=1, use_combiner=False)).run(job, lines)
    for cfg in (
        ExecutorConfig(num_partitions=4, use_combiner=True),
        ExecutorConfig(num_partitions=7, use_combiner=False, shuffle_seed=3),
        ExecutorConfig(num_partitions=27, use_combiner=True, shuffle_seed=11),
    ):
        assert MapReduceExecutor(cfg).run(job, lines) == baseline
