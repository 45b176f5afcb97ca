"""Tests for the in-memory and JSON file stores."""

import json
from datetime import date
from decimal import Decimal

import pytest

from ifta_engine.exceptions import RecordNotFound, StoreError
from ifta_engine.models import (
    CompletionStatus,
    FuelPurchase,
    JurisdictionMiles,
    Provenance,
    RawDistanceSample,
    Shipment,
    Trip,
)
from ifta_engine.periods import TaxPeriod
from ifta_engine.store import InMemoryStore, JsonFileStore

Q1 = TaxPeriod(2025, 1)


def _trip(
    trip_id: str = "T1",
    vehicle: str = "101",
    day: date = date(2025, 1, 15),
    miles: tuple[tuple[str, str], ...] = (("TX", "400"), ("OK", "200")),
) -> Trip:
    entries = [JurisdictionMiles(code, Decimal(m)) for code, m in miles]
    return Trip(
        id=trip_id,
        vehicle_id=vehicle,
        period=Q1,
        trip_date=day,
        origin_jurisdiction=entries[0].jurisdiction_code if entries else "TX",
        destination_jurisdiction=entries[-1].jurisdiction_code if entries else "TX",
        total_miles=sum((e.miles for e in entries), Decimal("0")),
        jurisdiction_miles=entries,
    )


def _fuel(purchase_id: str = "F1", gallons: str = "60", vehicle: str = "101") -> FuelPurchase:
    return FuelPurchase(
        id=purchase_id,
        vehicle_id=vehicle,
        period=Q1,
        purchase_date=date(2025, 1, 20),
        jurisdiction_code="TX",
        gallons=Decimal(gallons),
        price_per_gallon=Decimal("3.499"),
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


# ── Trips ────────────────────────────────────────────────────────────


def test_save_and_get_trip(store: InMemoryStore):
    store.save_trip(_trip())
    trip = store.get_trip("T1")
    assert trip is not None
    assert trip.breakdown() == "TX:400; OK:200"


def test_save_replaces_jurisdiction_miles(store: InMemoryStore):
    store.save_trip(_trip())
    store.save_trip(_trip(miles=(("AR", "150"),)))
    assert store.get_trip("T1").jurisdiction_miles == [JurisdictionMiles("AR", Decimal("150"))]


def test_trips_newest_first_and_filtered(store: InMemoryStore):
    store.save_trip(_trip("T1", day=date(2025, 1, 2)))
    store.save_trip(_trip("T2", day=date(2025, 3, 2)))
    store.save_trip(_trip("T3", vehicle="202", day=date(2025, 2, 2)))

    assert [t.id for t in store.trips_for_period(Q1)] == ["T2", "T3", "T1"]
    assert [t.id for t in store.trips_for_period(Q1, "202")] == ["T3"]
    assert store.trips_for_period(TaxPeriod(2025, 2)) == []


def test_delete_trip_removes_miles(store: InMemoryStore):
    store.save_trip(_trip())
    store.delete_trip("T1")
    assert store.get_trip("T1") is None
    assert store.to_dict()["trips"] == []


def test_delete_unknown_trip(store: InMemoryStore):
    with pytest.raises(RecordNotFound, match="Trip not found: nope"):
        store.delete_trip("nope")


def test_invalid_miles_rolls_back_whole_trip(store: InMemoryStore):
    with pytest.raises(StoreError):
        store.save_trip(_trip(miles=(("TX", "100"), ("OK", "0"))))
    assert store.get_trip("T1") is None


def test_failed_replace_keeps_previous_version(store: InMemoryStore):
    store.save_trip(_trip())
    with pytest.raises(StoreError):
        store.save_trip(_trip(miles=(("", "100"),)))
    assert store.get_trip("T1").breakdown() == "TX:400; OK:200"


def test_unit_of_work_rolls_back_all_writes(store: InMemoryStore):
    with pytest.raises(RuntimeError):
        with store.unit_of_work():
            store.save_trip(_trip("T1"))
            store.save_fuel_purchase(_fuel("F1"))
            raise RuntimeError("boom")
    assert store.trips_for_period(Q1) == []
    assert store.fuel_purchases_for_period(Q1) == []


def test_returned_trip_is_a_copy(store: InMemoryStore):
    saved = store.save_trip(_trip())
    saved.jurisdiction_miles.append(JurisdictionMiles("KS", Decimal("5")))
    assert len(store.get_trip("T1").jurisdiction_miles) == 2


# ── Fuel purchases ───────────────────────────────────────────────────


def test_fuel_purchase_crud(store: InMemoryStore):
    store.save_fuel_purchase(_fuel("F1"))
    store.save_fuel_purchase(_fuel("F2", vehicle="202"))
    assert len(store.fuel_purchases_for_period(Q1)) == 2
    assert [f.id for f in store.fuel_purchases_for_period(Q1, "202")] == ["F2"]

    store.delete_fuel_purchase("F1")
    assert store.get_fuel_purchase("F1") is None


def test_non_positive_gallons_rejected(store: InMemoryStore):
    with pytest.raises(StoreError):
        store.save_fuel_purchase(_fuel(gallons="0"))


def test_delete_unknown_fuel_purchase(store: InMemoryStore):
    with pytest.raises(RecordNotFound):
        store.delete_fuel_purchase("missing")


# ── Dispatch inputs ──────────────────────────────────────────────────


def test_shipments_between_is_half_open(store: InMemoryStore):
    for sid, day in [("A", date(2025, 1, 1)), ("B", date(2025, 3, 31)), ("C", date(2025, 4, 1))]:
        store.add_shipment(
            Shipment(sid, "TX", "TX", Decimal("10"), day, "101", CompletionStatus.DELIVERED)
        )
    found = store.shipments_between(
        date(2025, 1, 1), date(2025, 4, 1), {CompletionStatus.DELIVERED}
    )
    assert [s.id for s in found] == ["A", "B"]


def test_distance_samples_by_shipment(store: InMemoryStore):
    store.add_distance_samples(
        [
            RawDistanceSample("A", "TX", Decimal("5")),
            RawDistanceSample("A", "OK", Decimal("3")),
            RawDistanceSample("B", "KS", Decimal("2")),
        ]
    )
    found = store.distance_samples(["A", "Z"])
    assert list(found) == ["A"]
    assert len(found["A"]) == 2


# ── JSON file store ──────────────────────────────────────────────────


def test_json_store_persists_across_instances(tmp_path):
    path = tmp_path / "ifta.json"
    first = JsonFileStore(str(path))
    first.save_trip(_trip())
    first.save_fuel_purchase(_fuel())

    second = JsonFileStore(str(path))
    trip = second.get_trip("T1")
    assert trip.breakdown() == "TX:400; OK:200"
    assert trip.provenance == Provenance.MANUAL
    assert second.get_fuel_purchase("F1").gallons == Decimal("60")


def test_json_store_file_untouched_on_rollback(tmp_path):
    path = tmp_path / "ifta.json"
    store = JsonFileStore(str(path))
    store.save_trip(_trip())
    before = path.read_text(encoding="utf-8")

    with pytest.raises(StoreError):
        store.save_trip(_trip("T2", miles=(("TX", "-5"),)))

    assert path.read_text(encoding="utf-8") == before
    assert len(json.loads(before)["trips"]) == 1


def test_json_store_failed_write_leaves_no_temp_file(tmp_path, monkeypatch):
    path = tmp_path / "ifta.json"
    store = JsonFileStore(str(path))

    def _fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("ifta_engine.store.os.replace", _fail_replace)
    with pytest.raises(StoreError, match="disk full"):
        store.save_trip(_trip())

    assert [p.name for p in tmp_path.iterdir()] == []
    assert store.get_trip("T1") is None


def test_json_store_rejects_corrupt_file(tmp_path):
    path = tmp_path / "ifta.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        JsonFileStore(str(path))
