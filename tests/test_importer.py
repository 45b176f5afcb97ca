"""Tests for shipment-to-trip import."""

import threading
from datetime import date
from decimal import Decimal

import pytest

from ifta_engine.config import EngineConfig
from ifta_engine.exceptions import StoreError
from ifta_engine.importer import DUPLICATE_IMPORT, ImportReport, TripImporter
from ifta_engine.models import (
    CompletionStatus,
    JurisdictionMiles,
    Provenance,
    RawDistanceSample,
    Shipment,
    WarningCode,
)
from ifta_engine.periods import TaxPeriod
from ifta_engine.service import IftaService
from ifta_engine.store import InMemoryStore

Q1 = TaxPeriod(2025, 1)


def _shipment(
    shipment_id: str,
    origin: str = "TX",
    destination: str = "OK",
    miles: str = "600",
    delivered: date | None = date(2025, 2, 10),
    status: CompletionStatus = CompletionStatus.DELIVERED,
    vehicle: str = "101",
    pickup: date | None = None,
) -> Shipment:
    return Shipment(
        id=shipment_id,
        origin_jurisdiction=origin,
        destination_jurisdiction=destination,
        total_miles=Decimal(miles),
        delivery_date=delivered,
        vehicle_id=vehicle,
        completion_status=status,
        load_number=f"L-{shipment_id}",
        pickup_date=pickup,
    )


def _sample(shipment_id: str, code: str, miles: str) -> RawDistanceSample:
    return RawDistanceSample(shipment_id, code, Decimal(miles))


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def service(store: InMemoryStore) -> IftaService:
    return IftaService(store)


# ── Import through the service ───────────────────────────────────────


def test_imports_gps_and_estimated_loads(store: InMemoryStore, service: IftaService):
    store.add_shipment(_shipment("S1", "CA", "NV", "180"))
    store.add_distance_samples([_sample("S1", "CA", "100"), _sample("S1", "NV", "50")])
    store.add_shipment(_shipment("S2", "TX", "OK", "100"))

    report = service.import_shipments(Q1)

    assert report.candidate_count == 2
    assert report.imported_count == 2
    assert report.gps_tracked_count == 1
    assert report.estimated_count == 1
    assert report.failed_count == 0
    assert [w.code for w in report.warnings] == [WarningCode.ESTIMATED_SPLIT]

    trips = {t.source_shipment_id: t for t in store.trips_for_period(Q1)}
    assert trips["S1"].provenance == Provenance.GPS_TRACKED
    assert trips["S1"].jurisdiction_miles == [
        JurisdictionMiles("CA", Decimal("120.0")),
        JurisdictionMiles("NV", Decimal("60.0")),
    ]
    assert trips["S2"].provenance == Provenance.IMPORTED_ESTIMATE
    assert trips["S2"].breakdown() == "TX:50.0; OK:50.0"
    assert trips["S2"].notes == "Auto-imported from Load #L-S2 (estimated split)"
    assert trips["S2"].trip_date == date(2025, 2, 10)
    assert trips["S2"].period == Q1


def test_second_run_creates_nothing(store: InMemoryStore, service: IftaService):
    store.add_shipment(_shipment("S1"))
    store.add_shipment(_shipment("S2", "TX", "TX", "50"))

    first = service.import_shipments(Q1)
    second = service.import_shipments(Q1)

    assert first.imported_count == 2
    assert second.imported_count == 0
    assert second.skipped_count == 2
    assert all(s.reason == DUPLICATE_IMPORT for s in second.skipped)
    assert len(store.trips_for_period(Q1)) == 2
    assert second.summary_message() == "All loads for Q1 2025 have already been imported."


def test_new_shipment_picked_up_on_rerun(store: InMemoryStore, service: IftaService):
    store.add_shipment(_shipment("S1"))
    service.import_shipments(Q1)
    store.add_shipment(_shipment("S2", delivered=date(2025, 3, 31)))

    report = service.import_shipments(Q1)

    assert report.imported_count == 1
    assert report.skipped_count == 1
    assert len(store.trips_for_period(Q1)) == 2


def test_only_completed_shipments_in_period(store: InMemoryStore, service: IftaService):
    store.add_shipment(_shipment("S1", status=CompletionStatus.INVOICED))
    store.add_shipment(_shipment("S2", status=CompletionStatus.PAID))
    store.add_shipment(_shipment("S3", status=CompletionStatus.IN_TRANSIT))
    store.add_shipment(_shipment("S4", delivered=date(2025, 4, 1)))
    store.add_shipment(_shipment("S5", delivered=date(2024, 12, 31)))

    report = service.import_shipments(Q1)

    assert report.candidate_count == 2
    imported = {t.source_shipment_id for t in store.trips_for_period(Q1)}
    assert imported == {"S1", "S2"}


def test_pickup_date_used_when_not_delivered(store: InMemoryStore, service: IftaService):
    store.add_shipment(_shipment("S1", "TX", "TX", delivered=None, pickup=date(2025, 1, 5)))

    service.import_shipments(Q1)

    (trip,) = store.trips_for_period(Q1)
    assert trip.trip_date == date(2025, 1, 5)


def test_empty_period_message(service: IftaService):
    report = service.import_shipments(Q1)
    assert report.candidate_count == 0
    assert report.summary_message() == "No delivered loads found for Q1 2025."


def test_zero_mile_load_imported_without_miles(store: InMemoryStore, service: IftaService):
    store.add_shipment(_shipment("S1", "TX", "TX", "0"))

    report = service.import_shipments(Q1)

    assert report.imported_count == 1
    (trip,) = store.trips_for_period(Q1)
    assert trip.jurisdiction_miles == []


def test_sub_tenth_interstate_load_imported(store: InMemoryStore, service: IftaService):
    store.add_shipment(_shipment("S1", "TX", "OK", "0.09"))

    report = service.import_shipments(Q1)

    assert report.imported_count == 1
    assert report.failed_count == 0
    (trip,) = store.trips_for_period(Q1)
    assert trip.jurisdiction_miles == [JurisdictionMiles("TX", Decimal("0.09"))]


# ── Failures ─────────────────────────────────────────────────────────


def test_unroutable_shipment_fails_alone(store: InMemoryStore, service: IftaService):
    store.add_shipment(_shipment("S1", "", ""))
    store.add_shipment(_shipment("S2"))

    report = service.import_shipments(Q1)

    assert report.imported_count == 1
    assert report.failed_count == 1
    failure = report.failures[0]
    assert failure.shipment_id == "S1"
    assert failure.error_type == "InsufficientRouteData"
    assert "1 failed." in report.summary_message()


class _FailingMilesStore(InMemoryStore):
    """Rejects jurisdiction miles for one jurisdiction."""

    def __init__(self, bad_code: str) -> None:
        super().__init__()
        self.bad_code = bad_code

    def _write_trip_miles(self, trip_id, entries):
        if any(e.jurisdiction_code == self.bad_code for e in entries):
            raise StoreError(f"write failed for {self.bad_code}")
        super()._write_trip_miles(trip_id, entries)


def test_failed_miles_write_leaves_no_trip():
    store = _FailingMilesStore("NM")
    store.add_shipment(_shipment("S1", "TX", "NM", "200"))
    store.add_shipment(_shipment("S2", "TX", "OK", "200"))

    report = IftaService(store).import_shipments(Q1)

    assert report.imported_count == 1
    assert [f.shipment_id for f in report.failures] == ["S1"]
    assert report.failures[0].error_type == "StoreError"
    trips = store.trips_for_period(Q1)
    assert [t.source_shipment_id for t in trips] == ["S2"]


def test_retry_after_failure_imports_the_rest():
    store = _FailingMilesStore("NM")
    store.add_shipment(_shipment("S1", "TX", "NM", "200"))
    store.add_shipment(_shipment("S2", "TX", "OK", "200"))
    service = IftaService(store)
    service.import_shipments(Q1)

    store.bad_code = ""
    report = service.import_shipments(Q1)

    assert report.imported_count == 1
    assert report.skipped_count == 1
    assert len(store.trips_for_period(Q1)) == 2


# ── Batch behaviour ──────────────────────────────────────────────────


def test_duplicate_shipment_in_batch_imported_once(store: InMemoryStore):
    importer = TripImporter(store)
    shipment = _shipment("S1")

    report = importer.import_shipments(Q1, [shipment, shipment], {}, [])

    assert report.imported_count == 1
    assert report.skipped_count == 1
    assert len(store.trips_for_period(Q1)) == 1


def test_stop_event_interrupts_before_next_shipment(store: InMemoryStore):
    stop = threading.Event()

    class _StoppingStore(InMemoryStore):
        def save_trip(self, trip):
            saved = super().save_trip(trip)
            stop.set()
            return saved

    stopping = _StoppingStore()
    importer = TripImporter(stopping)
    shipments = [_shipment(f"S{i}") for i in range(3)]

    report = importer.import_shipments(Q1, shipments, {}, [], stop_event=stop)

    assert report.interrupted
    assert report.imported_count == 1
    assert len(stopping.trips_for_period(Q1)) == 1
    assert "interrupted" in report.summary_message()


def test_thread_pool_reconciliation_matches_inline(store: InMemoryStore):
    shipments = [_shipment(f"S{i}", "TX", "OK", str(100 + i)) for i in range(8)]
    samples = {"S3": [_sample("S3", "TX", "60"), _sample("S3", "OK", "43")]}

    pooled = TripImporter(store, config=EngineConfig(max_workers=4))
    report = pooled.import_shipments(Q1, shipments, samples, [])

    assert report.imported_count == 8
    assert report.gps_tracked_count == 1
    assert report.estimated_count == 7
    by_source = {t.source_shipment_id: t for t in store.trips_for_period(Q1)}
    assert by_source["S3"].jurisdiction_total == Decimal("103.0")
    assert by_source["S5"].jurisdiction_total == Decimal("105.0")


def test_summary_message_counts():
    report = ImportReport(
        period=Q1,
        candidate_count=3,
        imported_count=3,
        gps_tracked_count=2,
        estimated_count=1,
    )
    assert report.summary_message() == (
        "Imported 3 loads as IFTA trips. 2 with GPS-tracked state miles. "
        "1 with estimated state splits (review recommended)."
    )
