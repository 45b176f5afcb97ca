"""
Record types consumed and produced by the IFTA engine.

Shipments and distance samples are read-only inputs owned by the
dispatch store. Trips (with their jurisdiction miles) and fuel purchases
are the IFTA records this engine writes. All quantities are Decimal;
dates are calendar dates.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional

from ifta_engine.periods import TaxPeriod

UNKNOWN_VEHICLE = "UNKNOWN"


class CompletionStatus(Enum):
    UNASSIGNED = "UNASSIGNED"
    DISPATCHED = "DISPATCHED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    INVOICED = "INVOICED"
    PAID = "PAID"


COMPLETED_STATUSES: frozenset[CompletionStatus] = frozenset(
    {CompletionStatus.DELIVERED, CompletionStatus.INVOICED, CompletionStatus.PAID}
)


class Provenance(Enum):
    GPS_TRACKED = "gps_tracked"  # apportioned from geofence samples
    IMPORTED_ESTIMATE = "imported_estimate"  # same-state or even split
    MANUAL = "manual"  # entered by a dispatcher


def new_id() -> str:
    return str(uuid.uuid4())


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert int/float/str to Decimal via str(); None and '' stay None."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _period_from(data: dict) -> TaxPeriod:
    if "period" in data and isinstance(data["period"], TaxPeriod):
        return data["period"]
    return TaxPeriod(int(data["year"]), int(data["quarter"]))


def _code(value: Any) -> str:
    return str(value or "").strip().upper()


# ---------------------------------------------------------------------------
# Inputs from the dispatch store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Shipment:
    """A load as recorded by dispatch."""

    id: str
    origin_jurisdiction: str
    destination_jurisdiction: str
    total_miles: Decimal
    delivery_date: Optional[date]
    vehicle_id: str
    completion_status: CompletionStatus
    load_number: Optional[str] = None
    driver_id: Optional[str] = None
    origin_city: Optional[str] = None
    destination_city: Optional[str] = None
    pickup_date: Optional[date] = None

    @property
    def is_completed(self) -> bool:
        return self.completion_status in COMPLETED_STATUSES

    @property
    def effective_date(self) -> Optional[date]:
        return self.delivery_date or self.pickup_date

    @property
    def display_number(self) -> str:
        return self.load_number or self.id

    @classmethod
    def from_dict(cls, data: dict) -> "Shipment":
        return cls(
            id=str(data["id"]),
            origin_jurisdiction=_code(data.get("origin_jurisdiction")),
            destination_jurisdiction=_code(data.get("destination_jurisdiction")),
            total_miles=to_decimal(data.get("total_miles")) or Decimal("0"),
            delivery_date=_to_date(data.get("delivery_date")),
            vehicle_id=str(data.get("vehicle_id") or UNKNOWN_VEHICLE),
            completion_status=CompletionStatus(
                str(data.get("completion_status", "UNASSIGNED")).upper()
            ),
            load_number=data.get("load_number"),
            driver_id=data.get("driver_id"),
            origin_city=data.get("origin_city"),
            destination_city=data.get("destination_city"),
            pickup_date=_to_date(data.get("pickup_date")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "origin_jurisdiction": self.origin_jurisdiction,
            "destination_jurisdiction": self.destination_jurisdiction,
            "total_miles": str(self.total_miles),
            "delivery_date": self.delivery_date.isoformat() if self.delivery_date else None,
            "vehicle_id": self.vehicle_id,
            "completion_status": self.completion_status.value,
            "load_number": self.load_number,
            "driver_id": self.driver_id,
            "origin_city": self.origin_city,
            "destination_city": self.destination_city,
            "pickup_date": self.pickup_date.isoformat() if self.pickup_date else None,
        }


@dataclass(frozen=True)
class RawDistanceSample:
    """GPS-derived distance travelled inside one jurisdiction."""

    shipment_id: str
    jurisdiction_code: str
    miles: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "RawDistanceSample":
        return cls(
            shipment_id=str(data["shipment_id"]),
            jurisdiction_code=_code(data["jurisdiction_code"]),
            miles=to_decimal(data.get("miles")) or Decimal("0"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "shipment_id": self.shipment_id,
            "jurisdiction_code": self.jurisdiction_code,
            "miles": str(self.miles),
        }


# ---------------------------------------------------------------------------
# IFTA records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JurisdictionMiles:
    """Miles driven in one jurisdiction on one trip."""

    jurisdiction_code: str
    miles: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "JurisdictionMiles":
        return cls(
            jurisdiction_code=_code(data.get("jurisdiction_code")),
            miles=to_decimal(data.get("miles")) or Decimal("0"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"jurisdiction_code": self.jurisdiction_code, "miles": str(self.miles)}


@dataclass
class Trip:
    """
    An IFTA trip and the jurisdiction miles it owns.

    The jurisdiction miles live on the trip itself; they are saved,
    replaced and deleted together with it.
    """

    vehicle_id: str
    period: TaxPeriod
    trip_date: date
    origin_jurisdiction: str
    destination_jurisdiction: str
    total_miles: Decimal
    jurisdiction_miles: list[JurisdictionMiles] = field(default_factory=list)
    provenance: Provenance = Provenance.MANUAL
    source_shipment_id: Optional[str] = None
    driver_id: Optional[str] = None
    origin_city: Optional[str] = None
    destination_city: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def jurisdiction_total(self) -> Decimal:
        return sum((jm.miles for jm in self.jurisdiction_miles), Decimal("0"))

    @property
    def is_imported(self) -> bool:
        return self.source_shipment_id is not None

    def breakdown(self) -> str:
        """Render the jurisdiction miles as 'TX:400; OK:200'."""
        return "; ".join(
            f"{jm.jurisdiction_code}:{jm.miles}" for jm in self.jurisdiction_miles
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Trip":
        return cls(
            id=str(data.get("id") or new_id()),
            vehicle_id=str(data.get("vehicle_id") or UNKNOWN_VEHICLE),
            period=_period_from(data),
            trip_date=_to_date(data["trip_date"]),
            origin_jurisdiction=_code(data.get("origin_jurisdiction")),
            destination_jurisdiction=_code(data.get("destination_jurisdiction")),
            total_miles=to_decimal(data.get("total_miles")) or Decimal("0"),
            jurisdiction_miles=[
                JurisdictionMiles.from_dict(jm)
                for jm in data.get("jurisdiction_miles", [])
            ],
            provenance=Provenance(data.get("provenance", Provenance.MANUAL.value)),
            source_shipment_id=data.get("source_shipment_id"),
            driver_id=data.get("driver_id"),
            origin_city=data.get("origin_city"),
            destination_city=data.get("destination_city"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "vehicle_id": self.vehicle_id,
            "year": self.period.year,
            "quarter": self.period.quarter,
            "trip_date": self.trip_date.isoformat(),
            "origin_jurisdiction": self.origin_jurisdiction,
            "destination_jurisdiction": self.destination_jurisdiction,
            "total_miles": str(self.total_miles),
            "jurisdiction_miles": [jm.to_dict() for jm in self.jurisdiction_miles],
            "provenance": self.provenance.value,
            "source_shipment_id": self.source_shipment_id,
            "driver_id": self.driver_id,
            "origin_city": self.origin_city,
            "destination_city": self.destination_city,
            "notes": self.notes,
        }


@dataclass
class FuelPurchase:
    """Fuel bought at the pump, with tax already paid to that jurisdiction."""

    vehicle_id: str
    period: TaxPeriod
    purchase_date: date
    jurisdiction_code: str
    gallons: Decimal
    price_per_gallon: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None
    vendor: Optional[str] = None
    city: Optional[str] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def effective_total_cost(self) -> Optional[Decimal]:
        """Recorded cost, else gallons x price when both are known."""
        if self.total_cost is not None:
            return self.total_cost
        if self.price_per_gallon is not None:
            return (self.gallons * self.price_per_gallon).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "FuelPurchase":
        return cls(
            id=str(data.get("id") or new_id()),
            vehicle_id=str(data.get("vehicle_id") or UNKNOWN_VEHICLE),
            period=_period_from(data),
            purchase_date=_to_date(data["purchase_date"]),
            jurisdiction_code=_code(data.get("jurisdiction_code")),
            gallons=to_decimal(data.get("gallons")) or Decimal("0"),
            price_per_gallon=to_decimal(data.get("price_per_gallon")),
            total_cost=to_decimal(data.get("total_cost")),
            vendor=data.get("vendor"),
            city=data.get("city"),
            receipt_number=data.get("receipt_number"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "vehicle_id": self.vehicle_id,
            "year": self.period.year,
            "quarter": self.period.quarter,
            "purchase_date": self.purchase_date.isoformat(),
            "jurisdiction_code": self.jurisdiction_code,
            "gallons": str(self.gallons),
            "price_per_gallon": (
                str(self.price_per_gallon) if self.price_per_gallon is not None else None
            ),
            "total_cost": str(self.total_cost) if self.total_cost is not None else None,
            "vendor": self.vendor,
            "city": self.city,
            "receipt_number": self.receipt_number,
            "notes": self.notes,
        }


# ---------------------------------------------------------------------------
# Data-quality signals
# ---------------------------------------------------------------------------


class WarningCode(Enum):
    UNKNOWN_RATE = "unknown_rate"
    NO_FUEL_PURCHASES = "no_fuel_purchases"
    GPS_DEVIATION = "gps_deviation"
    ESTIMATED_SPLIT = "estimated_split"


@dataclass(frozen=True)
class DataQualityWarning:
    """A condition worth reviewing that does not stop the computation."""

    code: WarningCode
    message: str
    jurisdiction_code: Optional[str] = None
    reference_id: Optional[str] = None

    def __str__(self) -> str:
        return self.message
