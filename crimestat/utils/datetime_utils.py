#!filepath: crimestat/utils/datetime_utils.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, date
from typing import Optional, Union


class DateTimeUtils:
    DATE_FORMATS = ["%Y-%m-%d", "%Y/%m/%d", "%Y%m%d"]
    DATETIME_FORMATS = [
        "%Y-%m-%d %H:%M:%S.%f",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S",
        "%Y/%m/%d %H:%M:%S",
    ]

    # ================================================================
    # date key of a feature record ("2001-01-02", "2001/01/02", "20010102")
    # ================================================================
    @classmethod
    def parse_date(cls, value: Union[str, date, datetime], fmt: Optional[str] = None) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        s = str(value).strip()
        if fmt:
            return datetime.strptime(s, fmt).date()

        for f in cls.DATE_FORMATS:
            try:
                # drop any time-of-day suffix on the date key
                return datetime.strptime(s[:8] if f == "%Y%m%d" else s[:10], f).date()
            except ValueError:
                pass

        raise ValueError(f"unparseable date: {value!r}")

    @classmethod
    def parse_datetime(cls, value: Union[str, datetime], fmt: Optional[str] = None) -> datetime:
        if isinstance(value, datetime):
            return value

        s = str(value).strip()
        formats = [fmt] if fmt else cls.DATETIME_FORMATS
        for f in formats:
            try:
                return datetime.strptime(s, f)
            except ValueError:
                pass

        raise ValueError(f"unparseable datetime: {value!r}")


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive [start, end] date filter. An open end (None) matches everything
    on that side.
    """

    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self):
        if self.start and self.end and self.start > self.end:
            raise ValueError(f"date range start {self.start} is after end {self.end}")

    def contains(self, d: date) -> bool:
        if self.start is not None and d < self.start:
            return False
        if self.end is not None and d > self.end:
            return False
        return True

    def within(self, other: "DateRange") -> bool:
        """True when this range lies entirely inside `other`."""
        if other.start is not None and (self.start is None or self.start < other.start):
            return False
        if other.end is not None and (self.end is None or self.end > other.end):
            return False
        return True

    def __str__(self) -> str:
        return f"{self.start or '-inf'}..{self.end or '+inf'}"
