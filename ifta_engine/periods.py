"""
IFTA reporting periods.

IFTA returns are filed per calendar quarter. A TaxPeriod is an immutable
(year, quarter) value that knows its half-open date range, its
neighbours, and its return due date. Dates are calendar dates in the
reporting calendar; no time-zone conversion is ever applied.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ifta_engine.exceptions import InvalidPeriod

_MONTH_LABELS = ("Jan-Mar", "Apr-Jun", "Jul-Sep", "Oct-Dec")

# Accepts "2025Q1", "2025-Q1", "Q1 2025", "Q1-2025", "q1/2025"
_PERIOD_PATTERNS = (
    re.compile(r"^(?P<year>\d{4})[\s\-/]?[Qq](?P<quarter>\d)$"),
    re.compile(r"^[Qq](?P<quarter>\d)[\s\-/]?(?P<year>\d{4})$"),
)


def _first_of_next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


@dataclass(frozen=True, order=True)
class TaxPeriod:
    """A calendar quarter, e.g. TaxPeriod(2025, 1) for Jan-Mar 2025."""

    year: int
    quarter: int

    def __post_init__(self) -> None:
        if not 1 <= self.quarter <= 4:
            raise InvalidPeriod(f"Quarter must be 1-4, got {self.quarter}")
        if self.year < 1:
            raise InvalidPeriod(f"Invalid year: {self.year}")

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def containing(cls, d: date) -> "TaxPeriod":
        """Return the quarter that contains a calendar date."""
        return cls(d.year, (d.month - 1) // 3 + 1)

    @classmethod
    def current(cls, today: Optional[date] = None) -> "TaxPeriod":
        return cls.containing(today or date.today())

    @classmethod
    def parse(cls, text: str) -> "TaxPeriod":
        """Parse a period label such as '2025Q1' or 'Q1 2025'."""
        cleaned = text.strip()
        for pattern in _PERIOD_PATTERNS:
            match = pattern.match(cleaned)
            if match:
                return cls(int(match.group("year")), int(match.group("quarter")))
        raise InvalidPeriod(f"Unrecognized period: {text!r}")

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next(self) -> "TaxPeriod":
        if self.quarter == 4:
            return TaxPeriod(self.year + 1, 1)
        return TaxPeriod(self.year, self.quarter + 1)

    def previous(self) -> "TaxPeriod":
        if self.quarter == 1:
            return TaxPeriod(self.year - 1, 4)
        return TaxPeriod(self.year, self.quarter - 1)

    # ------------------------------------------------------------------
    # Date boundaries
    # ------------------------------------------------------------------

    @property
    def start(self) -> date:
        return date(self.year, (self.quarter - 1) * 3 + 1, 1)

    @property
    def end(self) -> date:
        """Exclusive end: first day of the month after the quarter."""
        if self.quarter == 4:
            return date(self.year + 1, 1, 1)
        return date(self.year, self.quarter * 3 + 1, 1)

    def date_range(self) -> tuple[date, date]:
        """Return the half-open range [start, end)."""
        return self.start, self.end

    @property
    def last_day(self) -> date:
        return self.end - timedelta(days=1)

    def contains(self, d: date) -> bool:
        return self.start <= d < self.end

    def filing_due_date(self) -> date:
        """IFTA returns are due the last day of the month after the quarter."""
        return _first_of_next_month(self.end) - timedelta(days=1)

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    @property
    def label(self) -> str:
        return f"Q{self.quarter} {self.year}"

    @property
    def months_label(self) -> str:
        return _MONTH_LABELS[self.quarter - 1]

    def __str__(self) -> str:
        return self.label


def next_period(period: TaxPeriod) -> TaxPeriod:
    return period.next()


def previous_period(period: TaxPeriod) -> TaxPeriod:
    return period.previous()


def date_range(period: TaxPeriod) -> tuple[date, date]:
    return period.date_range()
