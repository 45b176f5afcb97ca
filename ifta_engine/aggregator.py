"""
Quarterly IFTA tax aggregation.

Folds trip jurisdiction miles and fuel purchase gallons for a period into
one line per jurisdiction:

- Fleet MPG = total miles / total gallons across all jurisdictions
- Taxable gallons = jurisdiction miles / fleet MPG
- Tax owed = taxable gallons x rate; tax paid = pump gallons x rate
- Net tax = owed - paid (positive is a liability, negative a credit)

Nothing here raises. Missing fuel data and unknown rates degrade to zero
values and come back as data-quality warnings next to the numbers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Iterable, Optional

from ifta_engine.logging_config import get_logger
from ifta_engine.models import (
    DataQualityWarning,
    FuelPurchase,
    Trip,
    WarningCode,
)
from ifta_engine.periods import TaxPeriod
from ifta_engine.rates import FuelTaxRateTable, RateLookup

logger = get_logger(__name__)

_ZERO = Decimal("0")


@dataclass(frozen=True)
class JurisdictionTaxSummary:
    """Computed IFTA line for one jurisdiction."""

    jurisdiction_code: str
    jurisdiction_name: str
    total_miles: Decimal
    taxable_gallons: Decimal
    tax_paid_gallons: Decimal
    tax_rate: Decimal
    tax_owed: Decimal
    tax_paid: Decimal
    net_tax: Decimal
    rate_known: bool = True

    @property
    def is_liability(self) -> bool:
        return self.net_tax > 0

    @property
    def is_credit(self) -> bool:
        return self.net_tax < 0


@dataclass(frozen=True)
class SummaryTotals:
    """Unweighted column sums over all jurisdiction lines."""

    total_miles: Decimal = _ZERO
    taxable_gallons: Decimal = _ZERO
    tax_paid_gallons: Decimal = _ZERO
    tax_owed: Decimal = _ZERO
    tax_paid: Decimal = _ZERO
    net_tax: Decimal = _ZERO


@dataclass
class TaxSummary:
    """Per-jurisdiction summary and fleet totals for one period."""

    jurisdictions: list[JurisdictionTaxSummary]
    totals: SummaryTotals
    fleet_total_miles: Decimal
    fleet_total_gallons: Decimal
    fleet_mpg: Decimal
    period: Optional[TaxPeriod] = None
    vehicle_id: Optional[str] = None
    trip_count: int = 0
    fuel_purchase_count: int = 0
    warnings: list[DataQualityWarning] = field(default_factory=list)

    @property
    def has_fuel_data(self) -> bool:
        return self.fleet_total_gallons > 0

    @property
    def is_empty(self) -> bool:
        return not self.jurisdictions

    def by_code(self, code: str) -> Optional[JurisdictionTaxSummary]:
        code = code.strip().upper()
        for line in self.jurisdictions:
            if line.jurisdiction_code == code:
                return line
        return None

    def unknown_rate_jurisdictions(self) -> list[str]:
        return [j.jurisdiction_code for j in self.jurisdictions if not j.rate_known]


class TaxAggregator:
    """
    IFTA summary engine.

    The rate lookup is injected; it returns None for jurisdictions it
    does not know, which are then taxed at 0 and flagged.
    """

    def __init__(
        self,
        rate_lookup: Optional[RateLookup] = None,
        name_lookup: Optional[Callable[[str], str]] = None,
    ) -> None:
        if rate_lookup is None or name_lookup is None:
            table = FuelTaxRateTable()
            rate_lookup = rate_lookup or table.rate_for
            name_lookup = name_lookup or table.name_for
        self.rate_lookup = rate_lookup
        self.name_lookup = name_lookup

    def compute(
        self,
        trips: Iterable[Trip],
        fuel_purchases: Iterable[FuelPurchase],
        vehicle_id: Optional[str] = None,
        period: Optional[TaxPeriod] = None,
    ) -> TaxSummary:
        """Compute the summary; optionally restricted to one vehicle."""
        trips = [t for t in trips if vehicle_id is None or t.vehicle_id == vehicle_id]
        fuel = [
            f for f in fuel_purchases if vehicle_id is None or f.vehicle_id == vehicle_id
        ]

        total_miles: dict[str, Decimal] = {}
        for trip in trips:
            for jm in trip.jurisdiction_miles:
                total_miles[jm.jurisdiction_code] = (
                    total_miles.get(jm.jurisdiction_code, _ZERO) + jm.miles
                )

        total_gallons: dict[str, Decimal] = {}
        for purchase in fuel:
            total_gallons[purchase.jurisdiction_code] = (
                total_gallons.get(purchase.jurisdiction_code, _ZERO) + purchase.gallons
            )

        fleet_total_miles = sum(total_miles.values(), _ZERO)
        fleet_total_gallons = sum(total_gallons.values(), _ZERO)
        fleet_mpg = (
            fleet_total_miles / fleet_total_gallons if fleet_total_gallons > 0 else _ZERO
        )

        warnings: list[DataQualityWarning] = []
        if fleet_total_miles > 0 and fleet_total_gallons == 0:
            warnings.append(
                DataQualityWarning(
                    code=WarningCode.NO_FUEL_PURCHASES,
                    message=(
                        "No fuel purchases recorded; fleet MPG is 0 and "
                        "taxable gallons cannot be computed"
                    ),
                )
            )

        lines: list[JurisdictionTaxSummary] = []
        for code in sorted(set(total_miles) | set(total_gallons)):
            miles = total_miles.get(code, _ZERO)
            gallons = total_gallons.get(code, _ZERO)

            rate = self.rate_lookup(code)
            rate_known = rate is not None
            if rate is None:
                rate = _ZERO
                warnings.append(
                    DataQualityWarning(
                        code=WarningCode.UNKNOWN_RATE,
                        message=f"Tax rate unknown for jurisdiction {code}; used 0",
                        jurisdiction_code=code,
                    )
                )

            taxable_gallons = miles / fleet_mpg if fleet_mpg > 0 else _ZERO
            tax_owed = taxable_gallons * rate
            tax_paid = gallons * rate
            lines.append(
                JurisdictionTaxSummary(
                    jurisdiction_code=code,
                    jurisdiction_name=self.name_lookup(code),
                    total_miles=miles,
                    taxable_gallons=taxable_gallons,
                    tax_paid_gallons=gallons,
                    tax_rate=rate,
                    tax_owed=tax_owed,
                    tax_paid=tax_paid,
                    net_tax=tax_owed - tax_paid,
                    rate_known=rate_known,
                )
            )

        for w in warnings:
            logger.warning("%s", w.message)

        return TaxSummary(
            jurisdictions=lines,
            totals=_column_totals(lines),
            fleet_total_miles=fleet_total_miles,
            fleet_total_gallons=fleet_total_gallons,
            fleet_mpg=fleet_mpg,
            period=period,
            vehicle_id=vehicle_id,
            trip_count=len(trips),
            fuel_purchase_count=len(fuel),
            warnings=warnings,
        )


def _column_totals(lines: list[JurisdictionTaxSummary]) -> SummaryTotals:
    return SummaryTotals(
        total_miles=sum((j.total_miles for j in lines), _ZERO),
        taxable_gallons=sum((j.taxable_gallons for j in lines), _ZERO),
        tax_paid_gallons=sum((j.tax_paid_gallons for j in lines), _ZERO),
        tax_owed=sum((j.tax_owed for j in lines), _ZERO),
        tax_paid=sum((j.tax_paid for j in lines), _ZERO),
        net_tax=sum((j.net_tax for j in lines), _ZERO),
    )
