#!filepath: crimestat/io/records.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from crimestat.utils.datetime_utils import DateTimeUtils
from crimestat.values.value import Value, Variant

KEY_VALUE_SPLIT = "\t"
FIELD_SPLIT = ","
FIELD_JOIN = ", "
NAME_VALUE_SPLIT = ":"
COMMENT_PREFIX = "#"


# ============================================================
# text codec
# ============================================================
def split_line(line: str) -> Optional[Tuple[str, str]]:
    """
    'dateKey<TAB>payload' -> (dateKey, payload)

    Blank and '#' comment lines yield None.
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.lstrip().startswith(COMMENT_PREFIX):
        return None
    key, sep, payload = line.partition(KEY_VALUE_SPLIT)
    if not sep:
        raise ValueError(f"missing key/value separator in line: {line[:60]!r}")
    return key.strip(), payload


def parse_fields(payload: str) -> Dict[str, str]:
    """'a:1, b:2.5, c:sky is clear' -> {'a': '1', 'b': '2.5', 'c': 'sky is clear'}"""
    out: Dict[str, str] = {}
    for part in payload.split(FIELD_SPLIT):
        part = part.strip()
        if not part:
            continue
        # values may contain ':' (times), names never do
        name, sep, value = part.partition(NAME_VALUE_SPLIT)
        if not sep:
            continue
        out[name.strip()] = value.strip()
    return out


def format_fields(fields: Mapping[str, object]) -> str:
    return FIELD_JOIN.join(f"{k}{NAME_VALUE_SPLIT}{_render(v)}" for k, v in fields.items())


def format_line(key: object, fields: Mapping[str, object]) -> str:
    return f"{_render(key)}{KEY_VALUE_SPLIT}{format_fields(fields)}"


def _render(v: object) -> str:
    if isinstance(v, Value):
        return v.render()
    if isinstance(v, date):
        return v.isoformat()
    return str(v)


# ============================================================
# typed records
# ============================================================
@dataclass(frozen=True)
class FeatureRecord:
    """One date's joined features (field name -> Value, insertion order kept)."""

    date: date
    fields: Dict[str, Value] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Value:
        return self.fields[name]

    def __contains__(self, name: str) -> bool:
        return name in self.fields

    def get(self, name: str, default: Optional[Value] = None) -> Optional[Value]:
        return self.fields.get(name, default)


class FeatureRecordParser:
    """
    Line -> FeatureRecord, typed by a field -> Variant mapping.

    Only the typed fields are kept. A field missing from the line gets its
    variant default; a field that does not parse gets the default and a
    warning (Value.parse).
    """

    def __init__(self, types: Mapping[str, Variant], date_format: Optional[str] = None):
        self.types = dict(types)
        self.date_format = date_format

    def parse_date(self, key: str) -> date:
        return DateTimeUtils.parse_date(key, self.date_format)

    def parse(self, line: str) -> Optional[FeatureRecord]:
        split = split_line(line)
        if split is None:
            return None
        key, payload = split
        raw = parse_fields(payload)
        return FeatureRecord(
            date=self.parse_date(key),
            fields={
                name: Value.parse(raw.get(name), variant, self.date_format)
                for name, variant in self.types.items()
            },
        )

    def parse_all(self, lines: Iterable[str]) -> Iterable[FeatureRecord]:
        for line in lines:
            rec = self.parse(line)
            if rec is not None:
                yield rec


def read_lines(paths: Iterable[str | Path]) -> List[str]:
    """All lines of the given record files, in file order."""
    lines: List[str] = []
    for p in paths:
        with Path(p).open("r", encoding="utf-8") as f:
            lines.extend(line.rstrip("\r\n") for line in f)
    return lines
