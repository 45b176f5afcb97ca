"""
Shipment-to-trip import.

Converts shipments completed within a tax period into IFTA trips,
exactly once per shipment:

- Shipments already linked to a trip in the period are skipped, so a
  re-run (or a retry after a partial failure) only picks up the rest
- Each shipment is apportioned by the DistanceReconciler, then saved as
  one unit of work (trip row + jurisdiction miles)
- A shipment that cannot be apportioned or saved is recorded as a
  failure; the rest of the batch carries on
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Union

from ifta_engine.config import EngineConfig
from ifta_engine.exceptions import InsufficientRouteData, StoreError
from ifta_engine.logging_config import get_logger
from ifta_engine.models import (
    DataQualityWarning,
    Provenance,
    RawDistanceSample,
    Shipment,
    Trip,
)
from ifta_engine.periods import TaxPeriod
from ifta_engine.reconciler import Apportionment, DistanceReconciler
from ifta_engine.store import IftaStore

logger = get_logger(__name__)

DUPLICATE_IMPORT = "duplicate_import"


@dataclass(frozen=True)
class SkippedShipment:
    shipment_id: str
    reason: str = DUPLICATE_IMPORT


@dataclass(frozen=True)
class ImportFailure:
    """A shipment that could not be imported, and why."""

    shipment_id: str
    error_type: str
    message: str


@dataclass
class ImportReport:
    """Outcome of one import batch."""

    period: TaxPeriod
    candidate_count: int = 0
    imported_count: int = 0
    gps_tracked_count: int = 0
    estimated_count: int = 0
    skipped: list[SkippedShipment] = field(default_factory=list)
    failures: list[ImportFailure] = field(default_factory=list)
    warnings: list[DataQualityWarning] = field(default_factory=list)
    created_trip_ids: list[str] = field(default_factory=list)
    interrupted: bool = False

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def summary_message(self) -> str:
        if self.candidate_count == 0:
            return f"No delivered loads found for {self.period.label}."
        if self.imported_count == 0 and self.failed_count == 0:
            return f"All loads for {self.period.label} have already been imported."
        plural = "s" if self.imported_count != 1 else ""
        parts = [f"Imported {self.imported_count} load{plural} as IFTA trips."]
        if self.gps_tracked_count:
            parts.append(f"{self.gps_tracked_count} with GPS-tracked state miles.")
        if self.estimated_count:
            parts.append(
                f"{self.estimated_count} with estimated state splits (review recommended)."
            )
        if self.skipped_count:
            parts.append(f"{self.skipped_count} already imported.")
        if self.failed_count:
            parts.append(f"{self.failed_count} failed.")
        if self.interrupted:
            parts.append("Import was interrupted before all loads were processed.")
        return " ".join(parts)


# Either an apportionment or the per-shipment error that prevented one
_Outcome = Union[Apportionment, InsufficientRouteData]


class TripImporter:
    """Imports completed shipments as IFTA trips."""

    def __init__(
        self,
        store: IftaStore,
        reconciler: Optional[DistanceReconciler] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self.reconciler = reconciler or DistanceReconciler(self.config)

    def select_candidates(
        self, period: TaxPeriod, shipments: Iterable[Shipment]
    ) -> list[Shipment]:
        """Completed shipments whose delivery date falls inside the period."""
        return [
            s
            for s in shipments
            if s.completion_status in self.config.importable_statuses
            and s.effective_date is not None
            and period.contains(s.effective_date)
        ]

    def import_shipments(
        self,
        period: TaxPeriod,
        shipments: Iterable[Shipment],
        samples_by_shipment: Mapping[str, list[RawDistanceSample]],
        existing_trips: Iterable[Trip],
        stop_event: Optional[threading.Event] = None,
    ) -> ImportReport:
        """
        Import every not-yet-imported candidate shipment.

        Never raises for per-shipment problems; check ``report.failures``.
        Setting ``stop_event`` stops the batch before the next shipment.
        """
        candidates = self.select_candidates(period, shipments)
        report = ImportReport(period=period, candidate_count=len(candidates))

        imported_ids = {
            t.source_shipment_id for t in existing_trips if t.source_shipment_id
        }
        pending: list[Shipment] = []
        for shipment in candidates:
            if shipment.id in imported_ids:
                report.skipped.append(SkippedShipment(shipment.id))
                logger.debug("Shipment %s already imported, skipping", shipment.id)
                continue
            imported_ids.add(shipment.id)
            pending.append(shipment)

        outcomes = self._reconcile_all(pending, samples_by_shipment)

        for index, (shipment, outcome) in enumerate(zip(pending, outcomes)):
            if stop_event is not None and stop_event.is_set():
                report.interrupted = True
                logger.info(
                    "Import for %s interrupted with %d shipment(s) remaining",
                    period,
                    len(pending) - index,
                )
                break

            if isinstance(outcome, InsufficientRouteData):
                self._record_failure(report, shipment, outcome)
                continue

            trip = self._build_trip(period, shipment, outcome)
            try:
                with self.store.unit_of_work():
                    self.store.save_trip(trip)
            except StoreError as e:
                self._record_failure(report, shipment, e)
                continue

            report.imported_count += 1
            report.created_trip_ids.append(trip.id)
            report.warnings.extend(outcome.warnings)
            if outcome.provenance == Provenance.GPS_TRACKED:
                report.gps_tracked_count += 1
            else:
                report.estimated_count += 1
            logger.debug(
                "Load %s: %s, %d jurisdiction(s), %s mi",
                shipment.display_number,
                outcome.provenance.value,
                len(outcome.entries),
                shipment.total_miles,
            )

        logger.info(
            "Import %s: %d imported (%d GPS, %d estimated), %d skipped, %d failed",
            period,
            report.imported_count,
            report.gps_tracked_count,
            report.estimated_count,
            report.skipped_count,
            report.failed_count,
        )
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reconcile_one(
        self, shipment: Shipment, samples: list[RawDistanceSample]
    ) -> _Outcome:
        try:
            return self.reconciler.reconcile_shipment(shipment, samples)
        except InsufficientRouteData as e:
            return e

    def _reconcile_all(
        self,
        shipments: list[Shipment],
        samples_by_shipment: Mapping[str, list[RawDistanceSample]],
    ) -> list[_Outcome]:
        sample_lists = [samples_by_shipment.get(s.id, []) for s in shipments]
        if self.config.max_workers <= 1 or len(shipments) <= 1:
            return [self._reconcile_one(s, x) for s, x in zip(shipments, sample_lists)]
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            return list(pool.map(self._reconcile_one, shipments, sample_lists))

    def _build_trip(
        self, period: TaxPeriod, shipment: Shipment, apportionment: Apportionment
    ) -> Trip:
        how = (
            "GPS-tracked state miles"
            if apportionment.provenance == Provenance.GPS_TRACKED
            else "estimated split"
        )
        return Trip(
            vehicle_id=shipment.vehicle_id,
            period=period,
            trip_date=shipment.effective_date,
            origin_jurisdiction=shipment.origin_jurisdiction,
            destination_jurisdiction=shipment.destination_jurisdiction,
            total_miles=shipment.total_miles,
            jurisdiction_miles=list(apportionment.entries),
            provenance=apportionment.provenance,
            source_shipment_id=shipment.id,
            driver_id=shipment.driver_id,
            origin_city=shipment.origin_city,
            destination_city=shipment.destination_city,
            notes=f"Auto-imported from Load #{shipment.display_number} ({how})",
        )

    def _record_failure(
        self, report: ImportReport, shipment: Shipment, error: Exception
    ) -> None:
        report.failures.append(
            ImportFailure(
                shipment_id=shipment.id,
                error_type=type(error).__name__,
                message=str(error),
            )
        )
        logger.warning(
            "Load %s not imported: %s: %s",
            shipment.display_number,
            type(error).__name__,
            error,
        )
