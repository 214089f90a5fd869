#!filepath: tests/keys/test_key_tag.py
import pytest

from crimestat.keys.key_tag import (
    Metric,
    SplitKey,
    canonical_pair,
    is_standard,
    metric_of,
    pair,
    split,
    split_tag,
    tag,
    tag_chain,
)


def test_tag_and_split_round_trip():
    for base in ("x", "temp_max", "IXIC_close", "feels-like"):
        for m in Metric:
            assert split(tag(base, m)) == SplitKey(base, None, m)


def test_pair_round_trip():
    key = tag(pair("a", "b"), Metric.PRD)
    assert key == "a+b-PRD"
    assert split(key) == SplitKey("a", "b", Metric.PRD)
    assert split("a+b") == SplitKey("a", "b", None)


def test_chained_tags_keep_the_inner_tag_on_the_base():
    key = tag_chain("x", [Metric.ERR, Metric.SQ])
    assert key == "x-ERR-SQ"
    assert split_tag(key) == ("x-ERR", Metric.SQ)
    assert split(key) == SplitKey("x-ERR", None, Metric.SQ)


def test_canonical_pair_is_order_independent():
    assert canonical_pair("b", "a") == canonical_pair("a", "b") == "a+b"
    with pytest.raises(ValueError):
        canonical_pair("a", "a")


def test_pair_rejects_separator_in_base():
    with pytest.raises(ValueError):
        pair("a+b", "c")
    with pytest.raises(ValueError):
        tag("", Metric.SUM)


def test_is_standard():
    assert is_standard("x")
    assert is_standard("feels-like")  # '-like' is not a metric
    assert not is_standard("x-SQ")
    assert not is_standard("a+b")
    assert not is_standard("a+b-PRD")


def test_metric_of_unknown_suffix():
    assert metric_of("x-FOO") is None
    assert metric_of("-SUM") is None
    assert metric_of("x-CNT") is Metric.CNT
