"""Tests for engine configuration and logging setup."""

import logging
from decimal import Decimal

from ifta_engine.config import EngineConfig
from ifta_engine.logging_config import get_logger, setup_logging
from ifta_engine.models import COMPLETED_STATUSES


def test_defaults():
    config = EngineConfig()
    assert config.noise_floor_miles == Decimal("0.1")
    assert config.gps_deviation_threshold == Decimal("0.25")
    assert config.max_workers == 1
    assert config.importable_statuses == COMPLETED_STATUSES


def test_from_env(monkeypatch):
    monkeypatch.setenv("IFTA_NOISE_FLOOR_MILES", "0.5")
    monkeypatch.setenv("IFTA_GPS_DEVIATION_THRESHOLD", "0.4")
    monkeypatch.setenv("IFTA_MAX_WORKERS", "4")
    monkeypatch.setenv("IFTA_DATA_PATH", "/tmp/fleet.json")
    monkeypatch.setenv("IFTA_LOG_LEVEL", "debug")

    config = EngineConfig.from_env()

    assert config.noise_floor_miles == Decimal("0.5")
    assert config.gps_deviation_threshold == Decimal("0.4")
    assert config.max_workers == 4
    assert config.data_path == "/tmp/fleet.json"
    assert config.log_level == "DEBUG"


def test_setup_logging_accepts_level_names():
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, list(root.handlers)
    try:
        setup_logging("warning", rich_output=False)
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

        setup_logging("nonsense")
        assert root.level == logging.INFO
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_get_logger_is_named():
    assert get_logger("ifta_engine.importer").name == "ifta_engine.importer"
