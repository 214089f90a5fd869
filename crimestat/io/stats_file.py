#!filepath: crimestat/io/stats_file.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from crimestat.io.records import COMMENT_PREFIX, KEY_VALUE_SPLIT
from crimestat.keys.key_tag import Metric, metric_of, tag
from crimestat.utils.errors import MissingCoefficientError
from crimestat.utils.logger import logs
from crimestat.values.value import Value

COUNT_PREFIX = "count:"
_COUNT_METRICS = (Metric.CNT, Metric.ZERO)


# --------------------------------------------------
# encode
# --------------------------------------------------
def format_count(n: int) -> str:
    return f"{COUNT_PREFIX}{int(n)}"


def format_entry(key: str, value: Value) -> str:
    """
    'x-SUM<TAB>6.0'; CNT / ZERO entries are written as 'x-CNT<TAB>count:3'.
    """
    if metric_of(key) in _COUNT_METRICS:
        return f"{key}{KEY_VALUE_SPLIT}{format_count(value.raw)}"
    return f"{key}{KEY_VALUE_SPLIT}{value.render()}"


def format_header(header: Mapping[str, object]) -> List[str]:
    return [f"{COMMENT_PREFIX} {k}{KEY_VALUE_SPLIT}{v}" for k, v in header.items()]


def write_stats(
        path: str | Path,
        entries: Iterable[Tuple[str, Value]],
        header: Optional[Mapping[str, object]] = None,
) -> Path:
    """Write reducer output, one entry per line, after optional '#' header lines."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = format_header(header or {})
    lines.extend(format_entry(k, v) for k, v in entries)

    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logs.info(f"[StatsFile] wrote {len(lines)} lines -> {path}")
    return path


# --------------------------------------------------
# decode
# --------------------------------------------------
def parse_stats_lines(lines: Iterable[str]) -> Dict[str, str]:
    """key -> raw text value; '#' comment and blank lines are skipped."""
    out: Dict[str, str] = {}
    for line in lines:
        line = line.rstrip("\r\n")
        if not line.strip() or line.startswith(COMMENT_PREFIX):
            continue
        key, sep, value = line.partition(KEY_VALUE_SPLIT)
        if not sep:
            raise ValueError(f"malformed stats line: {line!r}")
        out[key.strip()] = value.strip()
    return out


def read_stats(path: str | Path) -> Dict[str, str]:
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        return parse_stats_lines(f)


def parse_count(text: str) -> int:
    """'count:3' -> 3 (a bare '3' is accepted too)"""
    text = text.strip()
    if text.startswith(COUNT_PREFIX):
        text = text[len(COUNT_PREFIX):]
    return int(text)


def read_counts(entries: Mapping[str, str], fields: Iterable[str]) -> Dict[str, int]:
    """
    Per-field observation counts from 'field-CNT<TAB>count:N' entries.

    Every requested field must be present.
    """
    fields = list(fields)
    missing = [f for f in fields if tag(f, Metric.CNT) not in entries]
    if missing:
        raise MissingCoefficientError("count", missing)
    return {f: parse_count(entries[tag(f, Metric.CNT)]) for f in fields}
