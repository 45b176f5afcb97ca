#!/usr/bin/env python3
"""
Quick Start Example
===================

Imports two delivered loads (one GPS-tracked, one without GPS data),
records a fuel purchase, and prints the quarterly IFTA summary.

Usage:
    python examples/quick_start.py
"""

from datetime import date
from decimal import Decimal

from ifta_engine.models import (
    CompletionStatus,
    FuelPurchase,
    RawDistanceSample,
    Shipment,
)
from ifta_engine.periods import TaxPeriod
from ifta_engine.report_generator import ReportGenerator
from ifta_engine.service import IftaService
from ifta_engine.store import InMemoryStore


def main() -> None:
    store = InMemoryStore()
    service = IftaService(store)
    period = TaxPeriod(2025, 1)

    # A Los Angeles -> Las Vegas load with geofence mileage
    store.add_shipment(
        Shipment(
            id="L-1001",
            origin_jurisdiction="CA",
            destination_jurisdiction="NV",
            total_miles=Decimal("180"),
            delivery_date=date(2025, 2, 10),
            vehicle_id="101",
            completion_status=CompletionStatus.DELIVERED,
            load_number="1001",
        )
    )
    store.add_distance_samples(
        [
            RawDistanceSample("L-1001", "CA", Decimal("100")),
            RawDistanceSample("L-1001", "NV", Decimal("50")),
        ]
    )

    # A Dallas -> Oklahoma City load without GPS data
    store.add_shipment(
        Shipment(
            id="L-1002",
            origin_jurisdiction="TX",
            destination_jurisdiction="OK",
            total_miles=Decimal("206"),
            delivery_date=date(2025, 3, 3),
            vehicle_id="101",
            completion_status=CompletionStatus.INVOICED,
            load_number="1002",
        )
    )

    report = service.import_shipments(period)
    print(report.summary_message())

    service.upsert_fuel_purchase(
        FuelPurchase(
            vehicle_id="101",
            period=period,
            purchase_date=date(2025, 3, 3),
            jurisdiction_code="TX",
            gallons=Decimal("60"),
            price_per_gallon=Decimal("3.599"),
        )
    )

    summary = service.compute_summary(period)
    rg = ReportGenerator("reports")
    print(rg.format_text(rg.summary_report(summary)))
    print(rg.summary_csv(summary))


if __name__ == "__main__":
    main()
