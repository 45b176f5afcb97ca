"""
Exception hierarchy for the IFTA engine.

Only conditions that abort a unit of work are exceptions. Duplicate
imports and unknown tax rates are reported, not raised.
"""

from __future__ import annotations

from typing import Optional


class IftaError(Exception):
    """Base class for all engine errors."""


class InvalidPeriod(IftaError, ValueError):
    """A tax period could not be constructed or parsed."""


class ValidationError(IftaError, ValueError):
    """Trip or fuel purchase input failed validation."""


class InsufficientRouteData(IftaError):
    """
    A shipment cannot be apportioned to any jurisdiction.

    Raised when there are no usable GPS samples and neither the origin
    nor the destination jurisdiction is known.
    """

    def __init__(self, shipment_id: Optional[str] = None, message: str = "") -> None:
        self.shipment_id = shipment_id
        if not message:
            message = (
                "No GPS samples and no origin/destination jurisdiction"
                + (f" for shipment {shipment_id}" if shipment_id else "")
            )
        super().__init__(message)


class StoreError(IftaError):
    """The persistence collaborator failed to read or write."""


class RecordNotFound(StoreError):
    """An update or delete referenced a record that does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")
