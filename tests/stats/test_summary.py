#!filepath: tests/stats/test_summary.py
import math

import pytest

from crimestat.config.executor_config import ExecutorConfig
from crimestat.io.stats_file import format_entry
from crimestat.mapreduce.executor import MapReduceExecutor
from crimestat.stats.aggregator import StatsAggregator
from crimestat.stats.summary import FIELD_STATS, Stat, StatsSummary
from crimestat.utils.errors import MissingCoefficientError
from crimestat.values.value import Variant


def summarize(lines, variables, types):
    job = StatsAggregator(variables, types)
    entries = MapReduceExecutor(ExecutorConfig(num_partitions=2)).run(job, lines)
    return StatsSummary.from_lines([format_entry(k, v) for k, v in entries], types)


@pytest.fixture
def linear_summary(make_lines):
    # y = 2x + 1, z constant
    rows = {f"2001-01-0{i}": {"x": float(i), "y": 2.0 * i + 1, "z": 5.0} for i in (1, 2, 3)}
    types = {"x": Variant.FLOAT64, "y": Variant.FLOAT64, "z": Variant.FLOAT64}
    return summarize(make_lines(rows), ["x", "y", "z"], types)


def test_field_stats(linear_summary):
    res = linear_summary.calc_stat("x")

    assert res.success
    assert res.mean == pytest.approx(2.0)
    assert res.variance == pytest.approx(0.6667, abs=1e-4)
    assert res.stddev == pytest.approx(0.8165, abs=1e-4)
    assert res.min == 1.0
    assert res.max == 3.0


def test_requested_subset_only(linear_summary):
    res = linear_summary.calc_stat("y", [Stat.MEAN])
    assert res.values == {Stat.MEAN: pytest.approx(5.0)}
    assert res.stddev is None


def test_cor_is_not_a_field_stat(linear_summary):
    with pytest.raises(ValueError):
        linear_summary.calc_stat("x", [Stat.COR])


def test_correlation(linear_summary):
    res = linear_summary.calc_correlation("y", "x")
    assert res.id == "x+y"
    assert res.get(Stat.COR) == pytest.approx(1.0)


def test_all_correlation_nan_for_constant(linear_summary):
    cors = linear_summary.calc_all_correlation(["z", "x", "y"])
    assert set(cors) == {"x+y", "x+z", "y+z"}
    assert math.isnan(cors["x+z"])
    assert math.isnan(cors["y+z"])


def test_calc_all(linear_summary):
    results = linear_summary.calc_all(["x", "y"])
    assert [r.id for r in results] == ["x", "y"]
    assert all(set(r.values) == set(FIELD_STATS) for r in results)


def test_counts(linear_summary):
    assert linear_summary.count("x") == 3
    assert linear_summary.counts(["x", "y"]) == {"x": 3, "y": 3}
    with pytest.raises(MissingCoefficientError):
        linear_summary.counts(["x", "w"])


def test_integer_fields(make_lines):
    rows = {f"2001-01-0{i}": {"n": i, "m": 10 - i} for i in (1, 2, 3, 4)}
    types = {"n": Variant.INT64, "m": Variant.INT64}
    summary = summarize(make_lines(rows), ["n", "m"], types)

    assert summary.calc_stat("n").mean == pytest.approx(2.5)
    assert summary.calc_stat("n").variance == pytest.approx(1.25)
    assert summary.calc_correlation("n", "m").get(Stat.COR) == pytest.approx(-1.0)


def test_mixed_variant_correlation(make_lines):
    # t = n / 2 + 1, d = 3 - n
    rows = {
        f"2001-01-0{i}": {"n": i, "t": i / 2 + 1, "d": str(3 - i)} for i in (1, 2, 3, 4)
    }
    types = {"n": Variant.INT64, "t": Variant.FLOAT64, "d": Variant.BIG_DECIMAL}
    summary = summarize(make_lines(rows), ["n", "t", "d"], types)

    cors = summary.calc_all_correlation(["n", "t", "d"])

    assert cors["n+t"] == pytest.approx(1.0)
    assert cors["d+n"] == pytest.approx(-1.0)
    assert cors["d+t"] == pytest.approx(-1.0)


def test_big_decimal_fields(make_lines):
    rows = {f"2001-01-0{i}": {"d": f"{i}.5"} for i in (1, 2, 3)}
    summary = summarize(make_lines(rows), ["d"], {"d": Variant.BIG_DECIMAL})

    res = summary.calc_stat("d")
    assert res.mean == pytest.approx(2.5)
    assert res.variance == pytest.approx(2.0 / 3.0)


def test_missing_entry():
    summary = StatsSummary.from_lines(["x-SUM\t1.0"])
    with pytest.raises(KeyError):
        summary.calc_stat("x")


def test_corrupt_entry():
    summary = StatsSummary.from_lines(["x-SUM\tabc", "x-CNT\tcount:1", "x-SQ-SUM\t1.0"])
    with pytest.raises(ValueError):
        summary.calc_stat("x", [Stat.MEAN])


def test_from_file(tmp_path):
    path = tmp_path / "stats.txt"
    path.write_text(
        "# run\tr1\n"
        "x-CNT\tcount:2\nx-SUM\t3.0\nx-SQ-SUM\t5.0\nx-MIN\t1.0\nx-MAX\t2.0\n",
        encoding="utf-8",
    )
    res = StatsSummary.from_file(path).calc_stat("x")
    assert res.mean == pytest.approx(1.5)
    assert res.variance == pytest.approx(0.25)
