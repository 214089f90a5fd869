#!filepath: crimestat/keys/key_tag.py
from __future__ import annotations

from enum import Enum
from typing import Iterable, NamedTuple, Optional


class Metric(str, Enum):
    """
    Derived-metric suffixes carried on aggregate keys.

    Key forms:
        'key'             : standard key, raw field value
        'key-TAG'         : metric TAG of field 'key'
        'key1+key2-TAG'   : metric TAG of the pair (key1, key2)
        'key-TAG1-TAG2'   : chained tags, e.g. 'x-ERR-SQ'
    """

    SUM = "SUM"
    SQ = "SQ"
    MIN = "MIN"
    MAX = "MAX"
    CNT = "CNT"  # count
    ZERO = "ZERO"  # count of zero values
    MEAN = "MEAN"
    PRD = "PRD"  # product of two fields
    ERR = "ERR"  # error
    PDW = "PDW"  # partial derivative, weight
    PDB = "PDB"  # partial derivative, bias
    YHAT = "YHAT"  # predicted value


KEY_TAG_SPLIT = "-"
KEY_KEY_SPLIT = "+"

_METRIC_NAMES = {m.value: m for m in Metric}


class SplitKey(NamedTuple):
    base1: str
    base2: Optional[str] = None
    metric: Optional[Metric] = None


def _check_base(base: str) -> None:
    if not base:
        raise ValueError("empty key base")
    if KEY_KEY_SPLIT in base:
        raise ValueError(f"key base {base!r} may not contain {KEY_KEY_SPLIT!r}")


def tag(base: str, metric: Metric) -> str:
    """'base' + SQ -> 'base-SQ'"""
    if not base:
        raise ValueError("empty key base")
    return f"{base}{KEY_TAG_SPLIT}{Metric(metric).value}"


def tag_chain(base: str, metrics: Iterable[Metric]) -> str:
    """'x' + [ERR, SQ] -> 'x-ERR-SQ'"""
    key = base
    for m in metrics:
        key = tag(key, m)
    return key


def pair(k1: str, k2: str) -> str:
    """'a', 'b' -> 'a+b' (order preserved)"""
    _check_base(k1)
    _check_base(k2)
    return f"{k1}{KEY_KEY_SPLIT}{k2}"


def canonical_pair(k1: str, k2: str) -> str:
    """
    Order-independent pair key: the lexicographically smaller name first, so
    an unordered pair of fields maps to exactly one key.
    """
    if k1 == k2:
        raise ValueError(f"cannot pair {k1!r} with itself")
    return pair(k1, k2) if k1 < k2 else pair(k2, k1)


def is_canonical_order(k1: str, k2: str) -> bool:
    """True when (k1, k2) is the emitting order for the pair; the reverse is skipped."""
    return k1 < k2


def is_pair(key: str) -> bool:
    return KEY_KEY_SPLIT in key


def metric_of(key: str) -> Optional[Metric]:
    """The trailing metric tag of `key`, or None."""
    head, sep, tail = key.rpartition(KEY_TAG_SPLIT)
    if not sep or not head:
        return None
    return _METRIC_NAMES.get(tail)


def is_metric(key: str, metric: Metric) -> bool:
    return metric_of(key) is Metric(metric)


def is_standard(key: str) -> bool:
    """
    Neither paired nor tagged. Standard keys are the only ones eligible for
    MIN/MAX aggregation.
    """
    return not is_pair(key) and metric_of(key) is None


def split_tag(key: str) -> tuple[str, Optional[Metric]]:
    """'x-ERR-SQ' -> ('x-ERR', SQ); untagged keys return (key, None)."""
    metric = metric_of(key)
    if metric is None:
        return key, None
    return key[: -(len(metric.value) + len(KEY_TAG_SPLIT))], metric


def split(key: str) -> SplitKey:
    """
    Reverse tag()/pair():

        'x'          -> SplitKey('x')
        'x-SQ'       -> SplitKey('x', None, SQ)
        'a+b-PRD'    -> SplitKey('a', 'b', PRD)
        'a+b'        -> SplitKey('a', 'b')
    """
    base, metric = split_tag(key)
    if is_pair(base):
        k1, _, k2 = base.partition(KEY_KEY_SPLIT)
        return SplitKey(k1, k2, metric)
    return SplitKey(base, None, metric)
