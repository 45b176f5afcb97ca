"""
IFTA Engine
===========

State-mileage apportionment and quarterly fuel tax (IFTA) aggregation
for a trucking fleet.

Modules:
    periods         - Quarterly tax periods and their date ranges
    models          - Shipments, trips, fuel purchases, warnings
    rates           - Per-gallon fuel tax rate table
    reconciler      - GPS sample -> jurisdiction miles apportionment
    importer        - Shipment -> trip import with duplicate protection
    aggregator      - Per-jurisdiction tax summary
    store           - Persistence protocol and in-memory/JSON stores
    service         - Facade used by the presentation layer
    report_generator- Summary/trip/fuel CSV and JSON export
    cli             - Command-line interface
"""

__version__ = "1.0.0"

from ifta_engine.aggregator import TaxAggregator, TaxSummary
from ifta_engine.importer import ImportReport, TripImporter
from ifta_engine.periods import TaxPeriod
from ifta_engine.rates import FuelTaxRateTable
from ifta_engine.reconciler import DistanceReconciler
from ifta_engine.report_generator import ReportGenerator
from ifta_engine.service import IftaService
from ifta_engine.store import InMemoryStore, JsonFileStore

__all__ = [
    "TaxPeriod",
    "FuelTaxRateTable",
    "DistanceReconciler",
    "TripImporter",
    "ImportReport",
    "TaxAggregator",
    "TaxSummary",
    "InMemoryStore",
    "JsonFileStore",
    "IftaService",
    "ReportGenerator",
]
