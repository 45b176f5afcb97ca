"""
State-mileage apportionment for a single shipment.

Turns GPS geofence samples (noisy, possibly incomplete) into
jurisdiction miles that add up to the shipment's authoritative route
mileage:

- Samples at or below the noise floor are discarded
- Remaining samples keep their relative share and are rescaled so the
  total matches the route miles, then rounded to 0.1 mile
- Without usable GPS data the trip is assigned to its single state, or
  split evenly between origin and destination
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from ifta_engine.config import EngineConfig
from ifta_engine.exceptions import InsufficientRouteData
from ifta_engine.logging_config import get_logger
from ifta_engine.models import (
    DataQualityWarning,
    JurisdictionMiles,
    Provenance,
    RawDistanceSample,
    Shipment,
    WarningCode,
)

logger = get_logger(__name__)

MILES_TOLERANCE = Decimal("0.1")
_ZERO = Decimal("0")


def round_miles(miles: Decimal) -> Decimal:
    """Round to one decimal place, halves away from zero."""
    return miles.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


@dataclass
class Apportionment:
    """Jurisdiction miles for one shipment and how they were derived."""

    entries: list[JurisdictionMiles]
    provenance: Provenance
    total_miles: Decimal
    gps_total: Optional[Decimal] = None
    warnings: list[DataQualityWarning] = field(default_factory=list)

    @property
    def apportioned_total(self) -> Decimal:
        return sum((e.miles for e in self.entries), _ZERO)

    @property
    def drift(self) -> Decimal:
        return self.total_miles - self.apportioned_total


def _largest_remainder(
    gps_miles: dict[str, Decimal], gps_total: Decimal, total_miles: Decimal
) -> list[JurisdictionMiles]:
    """
    Apportion total_miles in tenths of a mile by largest remainder.

    The tenths always add up to total_miles rounded to 0.1; jurisdictions
    left with no tenths are dropped.
    """
    target = int(round_miles(total_miles).scaleb(1))
    shares = [(code, miles / gps_total * target) for code, miles in gps_miles.items()]
    units = [int(share) for _, share in shares]
    remaining = target - sum(units)
    by_remainder = sorted(
        range(len(shares)), key=lambda i: (-(shares[i][1] - units[i]), i)
    )
    for i in by_remainder[:remaining]:
        units[i] += 1
    return [
        JurisdictionMiles(code, Decimal(u).scaleb(-1))
        for (code, _), u in zip(shares, units)
        if u > 0
    ]


class DistanceReconciler:
    """
    Apportions a shipment's miles across jurisdictions.

    Stateless apart from configuration, so one instance can be shared
    across threads.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def reconcile(
        self,
        total_miles: Decimal,
        samples: Iterable[RawDistanceSample],
        origin: Optional[str],
        destination: Optional[str],
        shipment_id: Optional[str] = None,
    ) -> Apportionment:
        """
        Apportion ``total_miles`` across jurisdictions.

        Raises InsufficientRouteData when there is no usable GPS data and
        neither origin nor destination is known.
        """
        if total_miles < 0:
            raise ValueError(f"total_miles must be >= 0, got {total_miles}")

        # Merge per jurisdiction, first-seen order
        gps_miles: dict[str, Decimal] = {}
        for sample in samples:
            if sample.miles <= self.config.noise_floor_miles:
                continue
            code = sample.jurisdiction_code.strip().upper()
            gps_miles[code] = gps_miles.get(code, _ZERO) + sample.miles

        gps_total = sum(gps_miles.values(), _ZERO)
        if gps_miles and gps_total > 0:
            return self._from_gps(total_miles, gps_miles, gps_total, shipment_id)

        return self._estimate(total_miles, origin, destination, shipment_id)

    def reconcile_shipment(
        self, shipment: Shipment, samples: Iterable[RawDistanceSample]
    ) -> Apportionment:
        return self.reconcile(
            shipment.total_miles,
            samples,
            shipment.origin_jurisdiction,
            shipment.destination_jurisdiction,
            shipment_id=shipment.id,
        )

    # ------------------------------------------------------------------
    # GPS path
    # ------------------------------------------------------------------

    def _from_gps(
        self,
        total_miles: Decimal,
        gps_miles: dict[str, Decimal],
        gps_total: Decimal,
        shipment_id: Optional[str],
    ) -> Apportionment:
        entries: list[JurisdictionMiles] = []
        for code, miles in gps_miles.items():
            scaled = round_miles(miles / gps_total * total_miles)
            if scaled > 0:
                entries.append(JurisdictionMiles(code, scaled))
        drift = total_miles - sum((e.miles for e in entries), _ZERO)
        if abs(drift) > MILES_TOLERANCE:
            entries = _largest_remainder(gps_miles, gps_total, total_miles)
        if not entries and total_miles > 0:
            # Every share rounded to zero; the largest takes the whole distance
            largest = max(gps_miles, key=lambda code: gps_miles[code])
            entries = [JurisdictionMiles(largest, total_miles)]

        warnings: list[DataQualityWarning] = []
        if total_miles > 0:
            deviation = abs(gps_total - total_miles) / total_miles
            if deviation > self.config.gps_deviation_threshold:
                warnings.append(
                    DataQualityWarning(
                        code=WarningCode.GPS_DEVIATION,
                        message=(
                            f"GPS total {gps_total:.1f} mi deviates {deviation:.0%} "
                            f"from route miles {total_miles:.1f}; rescaled anyway"
                        ),
                        reference_id=shipment_id,
                    )
                )
                logger.warning(
                    "Shipment %s: GPS total %s vs route %s (%.0f%% off)",
                    shipment_id,
                    gps_total,
                    total_miles,
                    float(deviation) * 100,
                )

        return Apportionment(
            entries=entries,
            provenance=Provenance.GPS_TRACKED,
            total_miles=total_miles,
            gps_total=gps_total,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Estimate path
    # ------------------------------------------------------------------

    def _estimate(
        self,
        total_miles: Decimal,
        origin: Optional[str],
        destination: Optional[str],
        shipment_id: Optional[str],
    ) -> Apportionment:
        origin_code = (origin or "").strip().upper()
        dest_code = (destination or "").strip().upper()
        if not origin_code and not dest_code:
            raise InsufficientRouteData(shipment_id)

        entries: list[JurisdictionMiles] = []
        if total_miles > 0:
            if not origin_code or not dest_code or origin_code == dest_code:
                entries = [JurisdictionMiles(origin_code or dest_code, total_miles)]
            else:
                half = round_miles(total_miles / 2)
                if half > 0:
                    entries = [
                        JurisdictionMiles(origin_code, half),
                        JurisdictionMiles(dest_code, half),
                    ]
                else:
                    entries = [JurisdictionMiles(origin_code, total_miles)]

        warnings: list[DataQualityWarning] = []
        if origin_code and dest_code and origin_code != dest_code:
            warnings.append(
                DataQualityWarning(
                    code=WarningCode.ESTIMATED_SPLIT,
                    message=(
                        f"No GPS data; miles split evenly between "
                        f"{origin_code} and {dest_code} (review recommended)"
                    ),
                    reference_id=shipment_id,
                )
            )

        return Apportionment(
            entries=entries,
            provenance=Provenance.IMPORTED_ESTIMATE,
            total_miles=total_miles,
            warnings=warnings,
        )
