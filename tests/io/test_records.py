#!filepath: tests/io/test_records.py
from datetime import date

import pytest

from crimestat.io.records import (
    FeatureRecordParser,
    format_line,
    parse_fields,
    read_lines,
    split_line,
)
from crimestat.values.value import Value, Variant


def test_split_line():
    assert split_line("2001-01-02\ta:1, b:2\n") == ("2001-01-02", "a:1, b:2")


@pytest.mark.parametrize("line", ["", "   ", "# comment", "  # indented comment"])
def test_split_line_skips_blank_and_comments(line):
    assert split_line(line) is None


def test_split_line_requires_tab():
    with pytest.raises(ValueError):
        split_line("2001-01-02 a:1")


def test_parse_fields_keeps_colons_in_values():
    assert parse_fields("a:1, t:12:30:00, c:sky is clear, , junk") == {
        "a": "1",
        "t": "12:30:00",
        "c": "sky is clear",
    }


def test_format_line():
    line = format_line(date(2001, 1, 2), {"a": Value.of(1), "b": 2.5, "c": "x"})
    assert line == "2001-01-02\ta:1, b:2.5, c:x"


def test_parser_types_and_defaults():
    parser = FeatureRecordParser({"n": Variant.INT64, "x": Variant.FLOAT64, "m": Variant.INT64})
    rec = parser.parse("2001-01-02\tn:3, x:oops, other:9")

    assert rec.date == date(2001, 1, 2)
    assert rec["n"] == Value(Variant.INT64, 3)
    assert rec["x"] == Value(Variant.FLOAT64, 0.0)
    assert rec["m"] == Value(Variant.INT64, 0)
    assert "other" not in rec


def test_parser_date_format():
    parser = FeatureRecordParser({"x": Variant.FLOAT64}, date_format="%d/%m/%Y")
    assert parser.parse("02/01/2001\tx:1.0").date == date(2001, 1, 2)


def test_parser_alternate_date_keys():
    parser = FeatureRecordParser({})
    assert parser.parse("20010102\t").date == date(2001, 1, 2)
    assert parser.parse("2001/01/02\t").date == date(2001, 1, 2)


def test_parse_all_skips_comments(xy_lines):
    parser = FeatureRecordParser({"x": Variant.FLOAT64})
    records = list(parser.parse_all(xy_lines))
    assert len(records) == 7
    assert records[0]["x"] == Value.of(1.0)


def test_read_lines(tmp_path):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.txt"
    a.write_text("l1\r\nl2\n", encoding="utf-8")
    b.write_text("l3\n", encoding="utf-8")
    assert read_lines([a, b]) == ["l1", "l2", "l3"]
