#!/usr/bin/env python3
"""
IFTA Engine - Entry Point

State mileage apportionment and quarterly fuel tax reporting for a
trucking fleet. Imports delivered loads as IFTA trips, then computes
per-state taxable gallons, tax owed, tax paid and net tax.

Usage:
    python main.py periods --period 2025Q1
    python main.py rates --jurisdiction TX
    python main.py --data ifta_data.json import --period 2025Q1
    python main.py --data ifta_data.json summary --period 2025Q1 --export-csv auto
    python main.py --data ifta_data.json trips --period 2025Q1 --vehicle 101
"""

from ifta_engine.cli import main

if __name__ == "__main__":
    main()
