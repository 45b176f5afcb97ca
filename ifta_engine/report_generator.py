"""
IFTA report generator.

Produces:
- Quarterly summary reports as structured dicts
- Summary, trip and fuel CSV exports in the column order filed with the
  quarterly return
- JSON export
- Console-friendly text
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd

from ifta_engine.aggregator import TaxSummary
from ifta_engine.models import FuelPurchase, Trip
from ifta_engine.periods import TaxPeriod

SUMMARY_COLUMNS = [
    "Jurisdiction",
    "Name",
    "Total Miles",
    "Taxable Gallons",
    "Tax-Paid Gallons",
    "Tax Rate ($/gal)",
    "Tax Owed",
    "Tax Paid",
    "Net Tax",
]

TRIP_COLUMNS = [
    "Date",
    "Truck",
    "Origin",
    "Destination",
    "Total Miles",
    "State Miles Breakdown",
]

FUEL_COLUMNS = [
    "Date",
    "Truck",
    "State",
    "City",
    "Gallons",
    "$/Gallon",
    "Total Cost",
    "Vendor",
    "Receipt #",
]


class _DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and date objects."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, date):
            return o.isoformat()
        return super().default(o)


def _fmt(value: Decimal, places: int) -> str:
    """Fixed-point string, e.g. _fmt(Decimal('1.005'), 2) -> '1.01'."""
    return str(value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def _place(city: Optional[str], code: str) -> str:
    return f"{city or ''} {code}".strip()


def export_filename(
    kind: str, period: TaxPeriod, vehicle_id: Optional[str] = None
) -> str:
    """e.g. IFTA_Summary_Q1_2025_Truck101.csv"""
    suffix = f"_Truck{vehicle_id}" if vehicle_id else ""
    return f"IFTA_{kind}_Q{period.quarter}_{period.year}{suffix}.csv"


class ReportGenerator:
    """
    Builds IFTA reports and writes exports.

    Reports are plain dicts, so the same data can be rendered as text or
    exported to CSV/JSON under ``output_dir``.
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir) if output_dir else Path("reports")
        self.output_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Summary report
    # ------------------------------------------------------------------

    def summary_report(self, summary: TaxSummary) -> dict[str, Any]:
        """Structured quarterly summary suitable for display or export."""
        return {
            "report_type": "ifta_quarterly_summary",
            "period": summary.period.label if summary.period else "",
            "vehicle": summary.vehicle_id or "all",
            "generated_date": date.today().isoformat(),
            "summary": {
                "trips": summary.trip_count,
                "fuel_purchases": summary.fuel_purchase_count,
                "total_miles": summary.fleet_total_miles,
                "total_gallons": summary.fleet_total_gallons,
                "fleet_mpg": summary.fleet_mpg,
                "total_tax_owed": summary.totals.tax_owed,
                "total_tax_paid": summary.totals.tax_paid,
                "total_net_tax": summary.totals.net_tax,
            },
            "jurisdiction_breakdown": [
                {
                    "jurisdiction": j.jurisdiction_code,
                    "name": j.jurisdiction_name,
                    "total_miles": j.total_miles,
                    "taxable_gallons": j.taxable_gallons,
                    "tax_paid_gallons": j.tax_paid_gallons,
                    "tax_rate": j.tax_rate,
                    "tax_owed": j.tax_owed,
                    "tax_paid": j.tax_paid,
                    "net_tax": j.net_tax,
                    "rate_known": j.rate_known,
                }
                for j in summary.jurisdictions
            ],
            "warnings": [w.message for w in summary.warnings],
        }

    # ------------------------------------------------------------------
    # CSV exports
    # ------------------------------------------------------------------

    def summary_frame(self, summary: TaxSummary) -> pd.DataFrame:
        """Summary rows plus a TOTALS row, formatted for filing."""
        rows = [
            [
                j.jurisdiction_code,
                j.jurisdiction_name,
                _fmt(j.total_miles, 1),
                _fmt(j.taxable_gallons, 3),
                _fmt(j.tax_paid_gallons, 3),
                _fmt(j.tax_rate, 4),
                _fmt(j.tax_owed, 2),
                _fmt(j.tax_paid, 2),
                _fmt(j.net_tax, 2),
            ]
            for j in summary.jurisdictions
        ]
        totals = summary.totals
        rows.append(
            [
                "",
                "TOTALS",
                _fmt(totals.total_miles, 1),
                _fmt(totals.taxable_gallons, 3),
                _fmt(totals.tax_paid_gallons, 3),
                "",
                _fmt(totals.tax_owed, 2),
                _fmt(totals.tax_paid, 2),
                _fmt(totals.net_tax, 2),
            ]
        )
        return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)

    def trips_frame(self, trips: Iterable[Trip]) -> pd.DataFrame:
        rows = [
            [
                t.trip_date.isoformat(),
                t.vehicle_id,
                _place(t.origin_city, t.origin_jurisdiction),
                _place(t.destination_city, t.destination_jurisdiction),
                str(t.total_miles),
                t.breakdown(),
            ]
            for t in trips
        ]
        return pd.DataFrame(rows, columns=TRIP_COLUMNS)

    def fuel_frame(self, purchases: Iterable[FuelPurchase]) -> pd.DataFrame:
        rows = [
            [
                f.purchase_date.isoformat(),
                f.vehicle_id,
                f.jurisdiction_code,
                f.city or "",
                str(f.gallons),
                str(f.price_per_gallon) if f.price_per_gallon is not None else "",
                str(f.total_cost) if f.total_cost is not None else "",
                f.vendor or "",
                f.receipt_number or "",
            ]
            for f in purchases
        ]
        return pd.DataFrame(rows, columns=FUEL_COLUMNS)

    def _write_csv(self, frame: pd.DataFrame, filename: Optional[str]) -> str:
        csv_str = frame.to_csv(index=False, lineterminator="\n")
        if filename:
            path = self.output_dir / filename
            path.write_text(csv_str, encoding="utf-8")
        return csv_str

    def summary_csv(self, summary: TaxSummary, filename: Optional[str] = None) -> str:
        """Export the summary to CSV. Returns the CSV string."""
        return self._write_csv(self.summary_frame(summary), filename)

    def trips_csv(self, trips: Iterable[Trip], filename: Optional[str] = None) -> str:
        return self._write_csv(self.trips_frame(trips), filename)

    def fuel_csv(
        self, purchases: Iterable[FuelPurchase], filename: Optional[str] = None
    ) -> str:
        return self._write_csv(self.fuel_frame(purchases), filename)

    # ------------------------------------------------------------------
    # JSON export
    # ------------------------------------------------------------------

    def to_json(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
    ) -> str:
        """Export a report to JSON. Returns the JSON string."""
        json_str = json.dumps(report, indent=2, cls=_DecimalEncoder)

        if filename:
            path = self.output_dir / filename
            path.write_text(json_str, encoding="utf-8")

        return json_str

    # ------------------------------------------------------------------
    # Console-formatted text output
    # ------------------------------------------------------------------

    def format_text(self, report: dict[str, Any]) -> str:
        """Format a summary report as human-readable text."""
        lines: list[str] = []
        report_type = report.get("report_type", "report").replace("_", " ").title()
        lines.append(f"{'=' * 60}")
        lines.append(f"  {report_type}")
        lines.append(f"  Generated: {report.get('generated_date', '')}")
        if report.get("period"):
            lines.append(f"  Period: {report['period']}")
        lines.append(f"  Vehicle: {report.get('vehicle', 'all')}")
        lines.append(f"{'=' * 60}")
        lines.append("")

        summary = report.get("summary", {})
        if summary:
            lines.append("SUMMARY")
            lines.append("-" * 40)
            for key, value in summary.items():
                label = key.replace("_", " ").title()
                if "tax" in key:
                    lines.append(f"  {label}: ${float(value):,.2f}")
                elif isinstance(value, Decimal):
                    lines.append(f"  {label}: {float(value):,.2f}")
                else:
                    lines.append(f"  {label}: {value}")
            lines.append("")

        breakdown = report.get("jurisdiction_breakdown", [])
        if breakdown:
            lines.append("JURISDICTION BREAKDOWN")
            lines.append("-" * 40)
            for row in breakdown:
                lines.append(
                    f"  {row['jurisdiction']}: {float(row['total_miles']):>10,.1f} mi | "
                    f"{float(row['taxable_gallons']):>9,.3f} gal | "
                    f"net ${float(row['net_tax']):>9,.2f}"
                )
            lines.append("")

        warnings = report.get("warnings", [])
        if warnings:
            lines.append("WARNINGS")
            lines.append("-" * 40)
            for w in warnings:
                lines.append(f"  * {w}")
            lines.append("")

        return "\n".join(lines)
