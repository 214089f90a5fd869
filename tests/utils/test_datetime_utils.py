#!filepath: tests/utils/test_datetime_utils.py
from datetime import date, datetime

import pytest

from crimestat.utils.datetime_utils import DateRange, DateTimeUtils


@pytest.mark.parametrize("text", ["2001-01-02", "2001/01/02", "20010102", "2001-01-02 10:00:00"])
def test_parse_date_formats(text):
    assert DateTimeUtils.parse_date(text) == date(2001, 1, 2)


def test_parse_date_explicit_format():
    assert DateTimeUtils.parse_date("02.01.2001", "%d.%m.%Y") == date(2001, 1, 2)
    with pytest.raises(ValueError):
        DateTimeUtils.parse_date("2001-01-02", "%d.%m.%Y")


def test_parse_date_rejects_garbage():
    with pytest.raises(ValueError):
        DateTimeUtils.parse_date("yesterday")


def test_parse_datetime():
    assert DateTimeUtils.parse_datetime("2001-01-02T03:04:05") == datetime(2001, 1, 2, 3, 4, 5)


def test_date_range_inclusive_and_open():
    r = DateRange(date(2001, 1, 1), date(2001, 12, 31))
    assert r.contains(date(2001, 1, 1))
    assert r.contains(date(2001, 12, 31))
    assert not r.contains(date(2002, 1, 1))
    assert DateRange().contains(date.min)
    assert str(DateRange(None, date(2001, 1, 1))) == "-inf..2001-01-01"


def test_date_range_within():
    outer = DateRange(date(2001, 1, 1), date(2001, 12, 31))
    assert DateRange(date(2001, 2, 1), date(2001, 3, 1)).within(outer)
    assert not DateRange(None, date(2001, 3, 1)).within(outer)
    assert outer.within(DateRange())


def test_date_range_reversed():
    with pytest.raises(ValueError):
        DateRange(date(2002, 1, 1), date(2001, 1, 1))
