"""Configuration for the IFTA engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal

from dotenv import load_dotenv

from ifta_engine.models import COMPLETED_STATUSES, CompletionStatus


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine settings.

    Attributes:
        noise_floor_miles: GPS samples at or below this distance are
            discarded as sensor noise.
        gps_deviation_threshold: Relative gap between the GPS total and
            the shipment's route miles above which the apportionment is
            flagged for review (0.25 = 25%).
        max_workers: Thread pool size for reconciling shipments. 1 runs
            reconciliation inline.
        importable_statuses: Shipment statuses eligible for import.
        data_path: JSON data file used by the CLI store.
        log_level: Logging level name.
    """

    noise_floor_miles: Decimal = Decimal("0.1")
    gps_deviation_threshold: Decimal = Decimal("0.25")
    max_workers: int = 1
    importable_statuses: frozenset[CompletionStatus] = field(
        default_factory=lambda: COMPLETED_STATUSES
    )
    data_path: str = "ifta_data.json"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load settings from IFTA_* environment variables (and .env)."""
        load_dotenv()
        defaults = cls()
        return cls(
            noise_floor_miles=Decimal(
                os.getenv("IFTA_NOISE_FLOOR_MILES", str(defaults.noise_floor_miles))
            ),
            gps_deviation_threshold=Decimal(
                os.getenv(
                    "IFTA_GPS_DEVIATION_THRESHOLD",
                    str(defaults.gps_deviation_threshold),
                )
            ),
            max_workers=int(os.getenv("IFTA_MAX_WORKERS", str(defaults.max_workers))),
            data_path=os.getenv("IFTA_DATA_PATH", defaults.data_path),
            log_level=os.getenv("IFTA_LOG_LEVEL", defaults.log_level).upper(),
        )
