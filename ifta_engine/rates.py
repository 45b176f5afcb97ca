"""
IFTA motor fuel tax rate table.

Per-gallon diesel rates for the US member jurisdictions, approximate
2025 figures. The table is reference data: the aggregator only ever sees
it through a ``rate_for(code) -> Optional[Decimal]`` callable, so tests
and callers can swap in any lookup they like.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Mapping, Optional

RateLookup = Callable[[str], Optional[Decimal]]


@dataclass(frozen=True)
class FuelTaxRate:
    """Tax profile for a single jurisdiction."""

    code: str
    name: str
    rate_per_gallon: Decimal


# ---------------------------------------------------------------------------
# Jurisdiction names and $/gallon rates
# ---------------------------------------------------------------------------

_JURISDICTION_DATA: dict[str, tuple[str, str]] = {
    "AL": ("Alabama", "0.29"),
    "AK": ("Alaska", "0.0895"),
    "AZ": ("Arizona", "0.18"),
    "AR": ("Arkansas", "0.245"),
    "CA": ("California", "0.5387"),
    "CO": ("Colorado", "0.22"),
    "CT": ("Connecticut", "0.25"),
    "DE": ("Delaware", "0.22"),
    "FL": ("Florida", "0.35"),
    "GA": ("Georgia", "0.312"),
    "HI": ("Hawaii", "0.16"),
    "ID": ("Idaho", "0.33"),
    "IL": ("Illinois", "0.392"),
    "IN": ("Indiana", "0.34"),
    "IA": ("Iowa", "0.30"),
    "KS": ("Kansas", "0.24"),
    "KY": ("Kentucky", "0.246"),
    "LA": ("Louisiana", "0.20"),
    "ME": ("Maine", "0.312"),
    "MD": ("Maryland", "0.361"),
    "MA": ("Massachusetts", "0.24"),
    "MI": ("Michigan", "0.267"),
    "MN": ("Minnesota", "0.285"),
    "MS": ("Mississippi", "0.18"),
    "MO": ("Missouri", "0.195"),
    "MT": ("Montana", "0.3275"),
    "NE": ("Nebraska", "0.246"),
    "NV": ("Nevada", "0.23"),
    "NH": ("New Hampshire", "0.222"),
    "NJ": ("New Jersey", "0.105"),
    "NM": ("New Mexico", "0.18"),
    "NY": ("New York", "0.0804"),
    "NC": ("North Carolina", "0.382"),
    "ND": ("North Dakota", "0.23"),
    "OH": ("Ohio", "0.385"),
    "OK": ("Oklahoma", "0.19"),
    "OR": ("Oregon", "0.38"),
    "PA": ("Pennsylvania", "0.576"),
    "RI": ("Rhode Island", "0.35"),
    "SC": ("South Carolina", "0.28"),
    "SD": ("South Dakota", "0.28"),
    "TN": ("Tennessee", "0.27"),
    "TX": ("Texas", "0.20"),
    "UT": ("Utah", "0.315"),
    "VT": ("Vermont", "0.321"),
    "VA": ("Virginia", "0.262"),
    "WA": ("Washington", "0.494"),
    "WV": ("West Virginia", "0.357"),
    "WI": ("Wisconsin", "0.309"),
    "WY": ("Wyoming", "0.24"),
}


class FuelTaxRateTable:
    """
    In-memory fuel tax rate table.

    Provides lookup by jurisdiction code (case-insensitive) and a few
    ranking helpers for the CLI.
    """

    def __init__(self, rates: Optional[Mapping[str, FuelTaxRate]] = None) -> None:
        if rates is None:
            rates = {
                code: FuelTaxRate(code, name, Decimal(rate))
                for code, (name, rate) in _JURISDICTION_DATA.items()
            }
        self._rates: dict[str, FuelTaxRate] = {
            code.upper(): rate for code, rate in rates.items()
        }

    @property
    def jurisdiction_count(self) -> int:
        return len(self._rates)

    def get(self, code: str) -> Optional[FuelTaxRate]:
        return self._rates.get(code.strip().upper())

    def rate_for(self, code: str) -> Optional[Decimal]:
        """Return the $/gallon rate, or None if the jurisdiction is unknown."""
        entry = self.get(code)
        return entry.rate_per_gallon if entry else None

    def name_for(self, code: str) -> str:
        """Return the jurisdiction name, falling back to the code itself."""
        entry = self.get(code)
        return entry.name if entry else code

    def with_overrides(self, overrides: Mapping[str, Decimal]) -> "FuelTaxRateTable":
        """Return a copy with some rates replaced or added."""
        merged = dict(self._rates)
        for code, rate in overrides.items():
            key = code.strip().upper()
            name = merged[key].name if key in merged else key
            merged[key] = FuelTaxRate(key, name, Decimal(str(rate)))
        return FuelTaxRateTable(merged)

    def all_jurisdictions(self) -> list[FuelTaxRate]:
        """Return all entries sorted by code."""
        return [self._rates[k] for k in sorted(self._rates)]

    def highest_rate_jurisdictions(self, n: int = 10) -> list[FuelTaxRate]:
        return sorted(
            self._rates.values(), key=lambda r: r.rate_per_gallon, reverse=True
        )[:n]
