# backend/lib/water_core/periods.py
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

from .errors import InputError


@dataclass(frozen=True, order=True)
class Period:
    """
    One billing cycle. Field order gives the ordering: year first, then month.
    Values are not validated, so Period(2024, 13) is kept as is.
    """
    year: int
    month: int

    @property
    def label(self) -> str:
        return f"{self.month}/{self.year}"

    @property
    def key(self) -> str:
        # YYYY-MM, sorts the same way as the Period itself for sane values
        return f"{self.year:04d}-{self.month:02d}"

    @classmethod
    def from_date(cls, d: date) -> "Period":
        return cls(year=d.year, month=d.month)


def period_of(reading) -> Period:
    return Period(year=reading.year, month=reading.month)


def sort_chronologically(readings: Iterable) -> List:
    """Oldest first. Every chart and table goes through this."""
    return sorted(readings, key=period_of)


def parse_period_date(text: str, end_of_month: bool = False) -> date:
    """
    Parse 'YYYY-MM-DD' or 'YYYY-MM'. For the short form the first day of the
    month is used, or the last one when end_of_month is set.
    """
    value = (text or "").strip()
    try:
        if len(value) == 7:
            parsed = datetime.strptime(value, "%Y-%m").date()
            if end_of_month:
                parsed = parsed.replace(day=monthrange(parsed.year, parsed.month)[1])
            return parsed
        return date.fromisoformat(value)
    except ValueError:
        raise InputError(f"Invalid date '{text}', expected YYYY-MM or YYYY-MM-DD")


@dataclass(frozen=True)
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def parse(cls, start: Optional[str], end: Optional[str]) -> "DateRange":
        return cls(
            start=parse_period_date(start) if start else None,
            end=parse_period_date(end, end_of_month=True) if end else None,
        )

    def validate(self) -> "DateRange":
        if self.start and self.end and self.start > self.end:
            raise InputError(
                f"Start date {self.start.isoformat()} is after end date {self.end.isoformat()}"
            )
        return self

    def contains(self, period: Period) -> bool:
        if self.start and period < Period.from_date(self.start):
            return False
        if self.end and period > Period.from_date(self.end):
            return False
        return True

    def filter(self, readings: Iterable) -> List:
        return [r for r in readings if self.contains(period_of(r))]
