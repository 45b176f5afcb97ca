"""Tests for TaxPeriod navigation and date ranges."""

from datetime import date

import pytest

from ifta_engine.exceptions import InvalidPeriod
from ifta_engine.periods import TaxPeriod, date_range, next_period, previous_period


# ── Date ranges ──────────────────────────────────────────────────────


def test_q1_date_range_is_half_open():
    assert TaxPeriod(2025, 1).date_range() == (date(2025, 1, 1), date(2025, 4, 1))


def test_q4_range_ends_on_new_year():
    assert TaxPeriod(2025, 4).date_range() == (date(2025, 10, 1), date(2026, 1, 1))


def test_module_level_date_range():
    assert date_range(TaxPeriod(2024, 3)) == (date(2024, 7, 1), date(2024, 10, 1))


def test_contains_uses_exclusive_end():
    q1 = TaxPeriod(2025, 1)
    assert q1.contains(date(2025, 1, 1))
    assert q1.contains(date(2025, 3, 31))
    assert not q1.contains(date(2025, 4, 1))
    assert not q1.contains(date(2024, 12, 31))


def test_december_31_is_inside_q4():
    assert TaxPeriod(2025, 4).contains(date(2025, 12, 31))


def test_last_day():
    assert TaxPeriod(2024, 1).last_day == date(2024, 3, 31)


# ── Navigation ───────────────────────────────────────────────────────


def test_next_wraps_to_next_year():
    assert TaxPeriod(2025, 4).next() == TaxPeriod(2026, 1)
    assert next_period(TaxPeriod(2025, 2)) == TaxPeriod(2025, 3)


def test_previous_wraps_to_prior_year():
    assert TaxPeriod(2025, 1).previous() == TaxPeriod(2024, 4)
    assert previous_period(TaxPeriod(2025, 3)) == TaxPeriod(2025, 2)


def test_next_then_previous_round_trips():
    period = TaxPeriod(2023, 4)
    assert period.next().previous() == period


def test_periods_are_ordered():
    assert TaxPeriod(2024, 4) < TaxPeriod(2025, 1) < TaxPeriod(2025, 2)


# ── Construction and parsing ─────────────────────────────────────────


@pytest.mark.parametrize("quarter", [0, 5, -1])
def test_invalid_quarter_rejected(quarter: int):
    with pytest.raises(InvalidPeriod):
        TaxPeriod(2025, quarter)


def test_invalid_period_is_a_value_error():
    with pytest.raises(ValueError):
        TaxPeriod(2025, 7)


def test_containing_date():
    assert TaxPeriod.containing(date(2025, 5, 15)) == TaxPeriod(2025, 2)
    assert TaxPeriod.containing(date(2025, 12, 1)) == TaxPeriod(2025, 4)


def test_current_uses_given_day():
    assert TaxPeriod.current(date(2026, 10, 19)) == TaxPeriod(2026, 4)


@pytest.mark.parametrize("text", ["2025Q3", "2025-Q3", "Q3 2025", "q3-2025", " Q3/2025 "])
def test_parse_accepts_common_labels(text: str):
    assert TaxPeriod.parse(text) == TaxPeriod(2025, 3)


def test_parse_rejects_garbage():
    with pytest.raises(InvalidPeriod):
        TaxPeriod.parse("third quarter")


def test_parse_rejects_bad_quarter():
    with pytest.raises(InvalidPeriod):
        TaxPeriod.parse("2025Q5")


# ── Labels and due dates ─────────────────────────────────────────────


def test_labels():
    period = TaxPeriod(2025, 1)
    assert period.label == "Q1 2025"
    assert str(period) == "Q1 2025"
    assert period.months_label == "Jan-Mar"
    assert TaxPeriod(2025, 4).months_label == "Oct-Dec"


@pytest.mark.parametrize(
    "quarter,due",
    [
        (1, date(2025, 4, 30)),
        (2, date(2025, 7, 31)),
        (3, date(2025, 10, 31)),
        (4, date(2026, 1, 31)),
    ],
)
def test_filing_due_date(quarter: int, due: date):
    assert TaxPeriod(2025, quarter).filing_due_date() == due
