"""
Persistence boundary for IFTA records.

The engine talks to storage only through the IftaStore protocol. Trips
and their jurisdiction miles are kept as separate tables, as in the
hosted database, so a trip write is two writes that must commit or roll
back together inside ``unit_of_work()``.

Implementations:
- InMemoryStore  - snapshot/rollback transactions, used by tests
- JsonFileStore  - InMemoryStore persisted to a JSON file, used by the CLI
"""

from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Protocol

from ifta_engine.exceptions import RecordNotFound, StoreError
from ifta_engine.logging_config import get_logger
from ifta_engine.models import (
    CompletionStatus,
    FuelPurchase,
    JurisdictionMiles,
    RawDistanceSample,
    Shipment,
    Trip,
)
from ifta_engine.periods import TaxPeriod

logger = get_logger(__name__)


class IftaStore(Protocol):
    """Protocol for the persistence collaborator."""

    def unit_of_work(self) -> Any:
        """Context manager; all writes inside commit or roll back together."""
        ...

    def shipments_between(
        self, start: date, end: date, statuses: Iterable[CompletionStatus]
    ) -> list[Shipment]:
        """Shipments whose delivery (or pickup) date is in [start, end)."""
        ...

    def distance_samples(
        self, shipment_ids: Iterable[str]
    ) -> dict[str, list[RawDistanceSample]]:
        ...

    def trips_for_period(
        self, period: TaxPeriod, vehicle_id: Optional[str] = None
    ) -> list[Trip]:
        ...

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        ...

    def save_trip(self, trip: Trip) -> Trip:
        ...

    def delete_trip(self, trip_id: str) -> None:
        ...

    def fuel_purchases_for_period(
        self, period: TaxPeriod, vehicle_id: Optional[str] = None
    ) -> list[FuelPurchase]:
        ...

    def get_fuel_purchase(self, purchase_id: str) -> Optional[FuelPurchase]:
        ...

    def save_fuel_purchase(self, purchase: FuelPurchase) -> FuelPurchase:
        ...

    def delete_fuel_purchase(self, purchase_id: str) -> None:
        ...


class InMemoryStore:
    """
    Thread-safe in-memory implementation of IftaStore.

    Writes outside an explicit unit of work run in an implicit one.
    Nested units join the outermost one.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._shipments: dict[str, Shipment] = {}
        self._samples: dict[str, list[RawDistanceSample]] = {}
        self._trips: dict[str, Trip] = {}
        self._trip_miles: dict[str, list[JurisdictionMiles]] = {}
        self._fuel: dict[str, FuelPurchase] = {}

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _snapshot(self) -> tuple:
        return (
            dict(self._trips),
            {k: list(v) for k, v in self._trip_miles.items()},
            dict(self._fuel),
        )

    def _restore(self, snapshot: tuple) -> None:
        self._trips, self._trip_miles, self._fuel = snapshot

    def _commit(self) -> None:
        """Hook for subclasses that persist committed state."""

    @contextmanager
    def unit_of_work(self) -> Iterator["InMemoryStore"]:
        with self._lock:
            outermost = self._depth == 0
            snapshot = self._snapshot() if outermost else None
            self._depth += 1
            try:
                yield self
                if outermost:
                    self._commit()
            except BaseException:
                if outermost:
                    self._restore(snapshot)
                    logger.debug("Unit of work rolled back")
                raise
            finally:
                self._depth -= 1

    # ------------------------------------------------------------------
    # Dispatch inputs (seeded by the dispatch side, read-only to the engine)
    # ------------------------------------------------------------------

    def add_shipment(self, shipment: Shipment) -> None:
        with self._lock:
            self._shipments[shipment.id] = shipment

    def add_distance_samples(self, samples: Iterable[RawDistanceSample]) -> None:
        with self._lock:
            for sample in samples:
                self._samples.setdefault(sample.shipment_id, []).append(sample)

    def shipments_between(
        self, start: date, end: date, statuses: Iterable[CompletionStatus]
    ) -> list[Shipment]:
        wanted = set(statuses)
        with self._lock:
            found = [
                s
                for s in self._shipments.values()
                if s.completion_status in wanted
                and s.effective_date is not None
                and start <= s.effective_date < end
            ]
        return sorted(found, key=lambda s: (s.effective_date, s.id))

    def distance_samples(
        self, shipment_ids: Iterable[str]
    ) -> dict[str, list[RawDistanceSample]]:
        with self._lock:
            return {
                sid: list(self._samples[sid])
                for sid in shipment_ids
                if sid in self._samples
            }

    # ------------------------------------------------------------------
    # Trips
    # ------------------------------------------------------------------

    def _assemble(self, trip_id: str) -> Trip:
        row = self._trips[trip_id]
        return replace(row, jurisdiction_miles=list(self._trip_miles.get(trip_id, [])))

    def trips_for_period(
        self, period: TaxPeriod, vehicle_id: Optional[str] = None
    ) -> list[Trip]:
        with self._lock:
            trips = [
                self._assemble(tid)
                for tid, row in self._trips.items()
                if row.period == period
                and (vehicle_id is None or row.vehicle_id == vehicle_id)
            ]
        return sorted(trips, key=lambda t: (t.trip_date, t.id), reverse=True)

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        with self._lock:
            if trip_id not in self._trips:
                return None
            return self._assemble(trip_id)

    def _write_trip_row(self, trip: Trip) -> None:
        self._trips[trip.id] = replace(trip, jurisdiction_miles=[])

    def _write_trip_miles(self, trip_id: str, entries: list[JurisdictionMiles]) -> None:
        for entry in entries:
            if not entry.jurisdiction_code:
                raise StoreError(f"Trip {trip_id}: jurisdiction code is required")
            if entry.miles <= 0:
                raise StoreError(
                    f"Trip {trip_id}: miles must be positive for "
                    f"{entry.jurisdiction_code}, got {entry.miles}"
                )
        self._trip_miles[trip_id] = list(entries)

    def save_trip(self, trip: Trip) -> Trip:
        """Insert or replace a trip and its jurisdiction miles atomically."""
        with self.unit_of_work():
            self._write_trip_row(trip)
            self._write_trip_miles(trip.id, trip.jurisdiction_miles)
            return self._assemble(trip.id)

    def delete_trip(self, trip_id: str) -> None:
        """Delete a trip; its jurisdiction miles go with it."""
        with self.unit_of_work():
            if trip_id not in self._trips:
                raise RecordNotFound("Trip", trip_id)
            self._trip_miles.pop(trip_id, None)
            del self._trips[trip_id]

    # ------------------------------------------------------------------
    # Fuel purchases
    # ------------------------------------------------------------------

    def fuel_purchases_for_period(
        self, period: TaxPeriod, vehicle_id: Optional[str] = None
    ) -> list[FuelPurchase]:
        with self._lock:
            found = [
                copy.copy(fp)
                for fp in self._fuel.values()
                if fp.period == period
                and (vehicle_id is None or fp.vehicle_id == vehicle_id)
            ]
        return sorted(found, key=lambda f: (f.purchase_date, f.id), reverse=True)

    def get_fuel_purchase(self, purchase_id: str) -> Optional[FuelPurchase]:
        with self._lock:
            fp = self._fuel.get(purchase_id)
            return copy.copy(fp) if fp else None

    def save_fuel_purchase(self, purchase: FuelPurchase) -> FuelPurchase:
        with self.unit_of_work():
            if purchase.gallons <= 0:
                raise StoreError(
                    f"Fuel purchase {purchase.id}: gallons must be positive"
                )
            self._fuel[purchase.id] = copy.copy(purchase)
            return copy.copy(purchase)

    def delete_fuel_purchase(self, purchase_id: str) -> None:
        with self.unit_of_work():
            if purchase_id not in self._fuel:
                raise RecordNotFound("FuelPurchase", purchase_id)
            del self._fuel[purchase_id]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "shipments": [s.to_dict() for s in self._shipments.values()],
                "distance_samples": [
                    sample.to_dict()
                    for samples in self._samples.values()
                    for sample in samples
                ],
                "trips": [self._assemble(tid).to_dict() for tid in self._trips],
                "fuel_purchases": [fp.to_dict() for fp in self._fuel.values()],
            }

    def load_dict(self, data: dict[str, Any]) -> None:
        with self._lock:
            for row in data.get("shipments", []):
                self.add_shipment(Shipment.from_dict(row))
            self.add_distance_samples(
                RawDistanceSample.from_dict(row)
                for row in data.get("distance_samples", [])
            )
            for row in data.get("trips", []):
                trip = Trip.from_dict(row)
                self._write_trip_row(trip)
                self._trip_miles[trip.id] = list(trip.jurisdiction_miles)
            for row in data.get("fuel_purchases", []):
                fp = FuelPurchase.from_dict(row)
                self._fuel[fp.id] = fp


class JsonFileStore(InMemoryStore):
    """InMemoryStore that rewrites a JSON file after every commit."""

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise StoreError(f"Cannot read data file {self.path}: {e}") from e
            self.load_dict(data)
            logger.debug("Loaded IFTA data from %s", self.path)

    def _commit(self) -> None:
        payload = json.dumps(self.to_dict(), indent=2)
        directory = self.path.parent if str(self.path.parent) else Path(".")
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=directory, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Cannot write data file {self.path}: {e}") from e
