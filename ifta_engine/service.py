"""
IFTA service facade.

The operations the dashboard calls: import loads for a quarter,
recompute the summary, and save or delete trips and fuel purchases.
Each call is a short synchronous unit of work against the store.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Optional

from ifta_engine.aggregator import TaxAggregator, TaxSummary
from ifta_engine.config import EngineConfig
from ifta_engine.exceptions import ValidationError
from ifta_engine.importer import ImportReport, TripImporter
from ifta_engine.logging_config import get_logger
from ifta_engine.models import FuelPurchase, JurisdictionMiles, Trip
from ifta_engine.periods import TaxPeriod
from ifta_engine.rates import FuelTaxRateTable
from ifta_engine.reconciler import MILES_TOLERANCE, DistanceReconciler
from ifta_engine.store import IftaStore

logger = get_logger(__name__)


class IftaService:
    """Entry point for the presentation layer."""

    def __init__(
        self,
        store: IftaStore,
        config: Optional[EngineConfig] = None,
        rate_table: Optional[FuelTaxRateTable] = None,
    ) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self.rate_table = rate_table or FuelTaxRateTable()
        self.importer = TripImporter(
            store, DistanceReconciler(self.config), self.config
        )
        self.aggregator = TaxAggregator(
            self.rate_table.rate_for, self.rate_table.name_for
        )

    # ------------------------------------------------------------------
    # Import and summary
    # ------------------------------------------------------------------

    def import_shipments(
        self, period: TaxPeriod, stop_event: Optional[threading.Event] = None
    ) -> ImportReport:
        """Import the period's completed shipments as trips."""
        start, end = period.date_range()
        shipments = self.store.shipments_between(
            start, end, self.config.importable_statuses
        )
        samples = self.store.distance_samples(s.id for s in shipments)
        existing = self.store.trips_for_period(period)
        return self.importer.import_shipments(
            period, shipments, samples, existing, stop_event=stop_event
        )

    def compute_summary(
        self, period: TaxPeriod, vehicle_filter: Optional[str] = None
    ) -> TaxSummary:
        """Recompute the period summary from current trips and fuel."""
        trips = self.store.trips_for_period(period, vehicle_filter)
        fuel = self.store.fuel_purchases_for_period(period, vehicle_filter)
        return self.aggregator.compute(
            trips, fuel, vehicle_id=vehicle_filter, period=period
        )

    def vehicle_numbers(self, period: TaxPeriod) -> list[str]:
        """Vehicles with any trip or fuel purchase in the period."""
        vehicles = {t.vehicle_id for t in self.store.trips_for_period(period)}
        vehicles |= {f.vehicle_id for f in self.store.fuel_purchases_for_period(period)}
        return sorted(vehicles)

    # ------------------------------------------------------------------
    # Trips
    # ------------------------------------------------------------------

    def upsert_trip(
        self, trip: Trip, jurisdiction_miles: Iterable[JurisdictionMiles]
    ) -> Trip:
        """
        Create or replace a trip together with its jurisdiction miles.

        Rows with no jurisdiction or non-positive miles are dropped. When
        the trip has no total, it is taken from the remaining rows; a stated
        total must agree with the rows to within 0.1 mile.
        """
        if not trip.vehicle_id or not trip.vehicle_id.strip():
            raise ValidationError("Vehicle number is required")
        if trip.trip_date is None:
            raise ValidationError("Trip date is required")
        if not trip.origin_jurisdiction or not trip.destination_jurisdiction:
            raise ValidationError("Origin and destination jurisdictions are required")
        if not trip.period.contains(trip.trip_date):
            raise ValidationError(
                f"Trip date {trip.trip_date.isoformat()} is outside {trip.period.label}"
            )

        rows = [
            JurisdictionMiles(jm.jurisdiction_code.strip().upper(), jm.miles)
            for jm in jurisdiction_miles
            if jm.jurisdiction_code and jm.jurisdiction_code.strip() and jm.miles > 0
        ]
        if not rows:
            raise ValidationError("At least one jurisdiction with miles is required")

        row_total = sum((jm.miles for jm in rows), Decimal("0"))
        total = trip.total_miles if trip.total_miles and trip.total_miles > 0 else row_total
        if abs(total - row_total) > MILES_TOLERANCE:
            raise ValidationError(
                f"Jurisdiction miles add up to {row_total}, "
                f"more than {MILES_TOLERANCE} mi away from total miles {total}"
            )

        to_save = replace(
            trip,
            vehicle_id=trip.vehicle_id.strip(),
            origin_jurisdiction=trip.origin_jurisdiction.strip().upper(),
            destination_jurisdiction=trip.destination_jurisdiction.strip().upper(),
            total_miles=total,
            jurisdiction_miles=rows,
        )
        with self.store.unit_of_work():
            saved = self.store.save_trip(to_save)
        logger.info(
            "Saved trip %s (%s, %d jurisdiction(s), %s mi)",
            saved.id,
            saved.vehicle_id,
            len(rows),
            total,
        )
        return saved

    def delete_trip(self, trip_id: str) -> None:
        """Delete a trip and, with it, its jurisdiction miles."""
        with self.store.unit_of_work():
            self.store.delete_trip(trip_id)
        logger.info("Deleted trip %s", trip_id)

    # ------------------------------------------------------------------
    # Fuel purchases
    # ------------------------------------------------------------------

    def upsert_fuel_purchase(self, purchase: FuelPurchase) -> FuelPurchase:
        if not purchase.vehicle_id or not purchase.vehicle_id.strip():
            raise ValidationError("Vehicle number is required")
        if purchase.purchase_date is None:
            raise ValidationError("Purchase date is required")
        if not purchase.jurisdiction_code or not purchase.jurisdiction_code.strip():
            raise ValidationError("Jurisdiction is required")
        if purchase.gallons is None or purchase.gallons <= 0:
            raise ValidationError("Gallons must be greater than zero")
        if not purchase.period.contains(purchase.purchase_date):
            raise ValidationError(
                f"Purchase date {purchase.purchase_date.isoformat()} is outside "
                f"{purchase.period.label}"
            )

        to_save = replace(
            purchase,
            vehicle_id=purchase.vehicle_id.strip(),
            jurisdiction_code=purchase.jurisdiction_code.strip().upper(),
            total_cost=purchase.effective_total_cost,
        )
        with self.store.unit_of_work():
            saved = self.store.save_fuel_purchase(to_save)
        logger.info(
            "Saved fuel purchase %s (%s gal in %s)",
            saved.id,
            saved.gallons,
            saved.jurisdiction_code,
        )
        return saved

    def delete_fuel_purchase(self, purchase_id: str) -> None:
        with self.store.unit_of_work():
            self.store.delete_fuel_purchase(purchase_id)
        logger.info("Deleted fuel purchase %s", purchase_id)
