"""
Command-line interface for the IFTA engine.

Provides subcommands for period navigation, the rate table, load import,
the quarterly summary, and trip/fuel listings. Data lives in a JSON file
(``--data``, default from IFTA_DATA_PATH).
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from ifta_engine.config import EngineConfig
from ifta_engine.exceptions import IftaError
from ifta_engine.logging_config import setup_logging
from ifta_engine.periods import TaxPeriod
from ifta_engine.rates import FuelTaxRateTable
from ifta_engine.report_generator import ReportGenerator, export_filename
from ifta_engine.service import IftaService
from ifta_engine.store import JsonFileStore

console = Console()


def _period(args: argparse.Namespace) -> TaxPeriod:
    return TaxPeriod.parse(args.period) if args.period else TaxPeriod.current()


def _service(args: argparse.Namespace, config: EngineConfig) -> IftaService:
    store = JsonFileStore(args.data or config.data_path)
    return IftaService(store, config)


# -----------------------------------------------------------------------
# Subcommand: periods
# -----------------------------------------------------------------------


def cmd_periods(args: argparse.Namespace, config: EngineConfig) -> None:
    """Show a period, its neighbours and its date range."""
    period = _period(args)
    start, end = period.date_range()
    console.print(
        Panel(
            f"[bold]Period:[/bold] {period.label} ({period.months_label})\n"
            f"[bold]Date range:[/bold] {start.isoformat()} to {end.isoformat()} (exclusive)\n"
            f"[bold]Return due:[/bold] {period.filing_due_date().isoformat()}\n"
            f"[bold]Previous:[/bold] {period.previous().label}\n"
            f"[bold]Next:[/bold] {period.next().label}",
            title="IFTA Period",
            border_style="cyan",
        )
    )


# -----------------------------------------------------------------------
# Subcommand: rates
# -----------------------------------------------------------------------


def cmd_rates(args: argparse.Namespace, config: EngineConfig) -> None:
    """Display fuel tax rates for one jurisdiction or all of them."""
    table_data = FuelTaxRateTable()

    if args.jurisdiction:
        entry = table_data.get(args.jurisdiction)
        if not entry:
            console.print(f"[red]Unknown jurisdiction: {args.jurisdiction}[/red]")
            sys.exit(1)
        console.print(
            Panel(
                f"[bold]Jurisdiction:[/bold] {entry.name} ({entry.code})\n"
                f"[bold]Rate:[/bold] ${entry.rate_per_gallon:.4f} per gallon",
                title=f"{entry.name} Fuel Tax",
                border_style="cyan",
            )
        )
        return

    table = Table(title="IFTA Fuel Tax Rates", box=box.ROUNDED)
    table.add_column("Code", style="bold")
    table.add_column("Name")
    table.add_column("$/Gallon", justify="right")
    for entry in table_data.all_jurisdictions():
        table.add_row(entry.code, entry.name, f"{entry.rate_per_gallon:.4f}")
    console.print(table)


# -----------------------------------------------------------------------
# Subcommand: import
# -----------------------------------------------------------------------


def cmd_import(args: argparse.Namespace, config: EngineConfig) -> None:
    """Import delivered loads for a period as IFTA trips."""
    service = _service(args, config)
    period = _period(args)
    report = service.import_shipments(period)

    color = "green" if report.failed_count == 0 else "yellow"
    console.print(
        Panel(
            f"{report.summary_message()}\n\n"
            f"[bold]Imported:[/bold] {report.imported_count}\n"
            f"[bold]GPS-tracked:[/bold] {report.gps_tracked_count}\n"
            f"[bold]Estimated:[/bold] {report.estimated_count}\n"
            f"[bold]Skipped (already imported):[/bold] {report.skipped_count}\n"
            f"[bold]Failed:[/bold] {report.failed_count}",
            title=f"Load Import - {period.label}",
            border_style=color,
        )
    )

    if report.failures:
        table = Table(title="Failed Loads", box=box.ROUNDED, border_style="red")
        table.add_column("Shipment", style="dim")
        table.add_column("Error")
        table.add_column("Message")
        for f in report.failures:
            table.add_row(f.shipment_id, f.error_type, f.message)
        console.print(table)

    for w in report.warnings:
        console.print(f"[yellow]Warning: {w.message}[/yellow]")


# -----------------------------------------------------------------------
# Subcommand: summary
# -----------------------------------------------------------------------


def cmd_summary(args: argparse.Namespace, config: EngineConfig) -> None:
    """Compute and display the quarterly tax summary."""
    service = _service(args, config)
    period = _period(args)
    summary = service.compute_summary(period, args.vehicle)

    if summary.is_empty:
        console.print(f"[yellow]No trips or fuel purchases for {period.label}.[/yellow]")
        return

    table = Table(
        title=f"IFTA Summary - {period.label}"
        + (f" - Truck {args.vehicle}" if args.vehicle else ""),
        box=box.ROUNDED,
        show_lines=False,
    )
    table.add_column("State", style="bold")
    table.add_column("Name")
    table.add_column("Miles", justify="right")
    table.add_column("Taxable Gal", justify="right")
    table.add_column("Tax-Paid Gal", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Owed", justify="right")
    table.add_column("Paid", justify="right")
    table.add_column("Net", justify="right", style="bold")

    for j in summary.jurisdictions:
        net_style = "red" if j.is_liability else "green"
        table.add_row(
            j.jurisdiction_code,
            j.jurisdiction_name,
            f"{j.total_miles:,.1f}",
            f"{j.taxable_gallons:,.3f}",
            f"{j.tax_paid_gallons:,.3f}",
            f"{j.tax_rate:.4f}" if j.rate_known else "[yellow]?[/yellow]",
            f"${j.tax_owed:,.2f}",
            f"${j.tax_paid:,.2f}",
            f"[{net_style}]${j.net_tax:,.2f}[/{net_style}]",
        )
    console.print(table)

    totals = summary.totals
    mpg = f"{summary.fleet_mpg:.2f}" if summary.fleet_mpg > 0 else "-"
    console.print(
        Panel(
            f"[bold]Total Miles:[/bold] {summary.fleet_total_miles:,.1f}\n"
            f"[bold]Total Gallons:[/bold] {summary.fleet_total_gallons:,.3f}\n"
            f"[bold]Fleet MPG:[/bold] {mpg}\n"
            f"[bold]Tax Owed:[/bold] ${totals.tax_owed:,.2f}\n"
            f"[bold]Tax Paid:[/bold] ${totals.tax_paid:,.2f}\n"
            f"[bold]Net Tax:[/bold] ${totals.net_tax:,.2f} "
            + ("(amount due)" if totals.net_tax >= 0 else "(credit)"),
            title="Quarter Totals",
            border_style="red" if totals.net_tax > 0 else "green",
        )
    )

    for w in summary.warnings:
        console.print(f"[yellow]Warning: {w.message}[/yellow]")

    if args.export_csv or args.export_json:
        rg = ReportGenerator(args.output_dir or "reports")
        if args.export_csv:
            name = (
                args.export_csv
                if args.export_csv != "auto"
                else export_filename("Summary", period, args.vehicle)
            )
            rg.summary_csv(summary, name)
            console.print(f"[green]CSV exported to {rg.output_dir / name}[/green]")
        if args.export_json:
            rg.to_json(rg.summary_report(summary), args.export_json)
            console.print(
                f"[green]JSON exported to {rg.output_dir / args.export_json}[/green]"
            )


# -----------------------------------------------------------------------
# Subcommands: trips, fuel
# -----------------------------------------------------------------------


def cmd_trips(args: argparse.Namespace, config: EngineConfig) -> None:
    """List trips for a period."""
    service = _service(args, config)
    period = _period(args)
    trips = service.store.trips_for_period(period, args.vehicle)

    table = Table(title=f"IFTA Trips - {period.label}", box=box.ROUNDED)
    table.add_column("Date")
    table.add_column("Truck", style="bold")
    table.add_column("Route")
    table.add_column("Miles", justify="right")
    table.add_column("Breakdown")
    table.add_column("Source", style="dim")
    for t in trips:
        table.add_row(
            t.trip_date.isoformat(),
            t.vehicle_id,
            f"{t.origin_jurisdiction} -> {t.destination_jurisdiction}",
            f"{t.total_miles:,.1f}",
            t.breakdown(),
            t.provenance.value,
        )
    console.print(table)

    if args.export_csv:
        rg = ReportGenerator(args.output_dir or "reports")
        name = (
            args.export_csv
            if args.export_csv != "auto"
            else export_filename("Trips", period, args.vehicle)
        )
        rg.trips_csv(trips, name)
        console.print(f"[green]CSV exported to {rg.output_dir / name}[/green]")


def cmd_fuel(args: argparse.Namespace, config: EngineConfig) -> None:
    """List fuel purchases for a period."""
    service = _service(args, config)
    period = _period(args)
    purchases = service.store.fuel_purchases_for_period(period, args.vehicle)

    table = Table(title=f"IFTA Fuel Purchases - {period.label}", box=box.ROUNDED)
    table.add_column("Date")
    table.add_column("Truck", style="bold")
    table.add_column("State")
    table.add_column("Gallons", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Vendor")
    for f in purchases:
        cost = f.effective_total_cost
        table.add_row(
            f.purchase_date.isoformat(),
            f.vehicle_id,
            f.jurisdiction_code,
            f"{f.gallons:,.3f}",
            f"${cost:,.2f}" if cost is not None else "-",
            f.vendor or "",
        )
    console.print(table)

    if args.export_csv:
        rg = ReportGenerator(args.output_dir or "reports")
        name = (
            args.export_csv
            if args.export_csv != "auto"
            else export_filename("Fuel", period, args.vehicle)
        )
        rg.fuel_csv(purchases, name)
        console.print(f"[green]CSV exported to {rg.output_dir / name}[/green]")


# -----------------------------------------------------------------------
# Argument parser
# -----------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ifta-engine",
        description="IFTA Engine - State mileage apportionment and quarterly fuel tax reporting",
    )
    parser.add_argument("--data", "-d", help="JSON data file (default: IFTA_DATA_PATH)")
    parser.add_argument("--log-level", help="Logging level (default: IFTA_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def _period_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument("--period", "-p", help="Tax period, e.g. 2025Q1 (default: current)")

    periods_p = subparsers.add_parser("periods", help="Show period dates and neighbours")
    _period_arg(periods_p)
    periods_p.set_defaults(func=cmd_periods)

    rates_p = subparsers.add_parser("rates", help="View the fuel tax rate table")
    rates_p.add_argument("--jurisdiction", "-j", help="Jurisdiction code to look up")
    rates_p.set_defaults(func=cmd_rates)

    import_p = subparsers.add_parser("import", help="Import delivered loads as trips")
    _period_arg(import_p)
    import_p.set_defaults(func=cmd_import)

    summary_p = subparsers.add_parser("summary", help="Quarterly tax summary")
    _period_arg(summary_p)
    summary_p.add_argument("--vehicle", "-v", help="Restrict to one truck")
    summary_p.add_argument(
        "--export-csv", help="Export summary CSV (filename, or 'auto')"
    )
    summary_p.add_argument("--export-json", help="Export summary JSON filename")
    summary_p.add_argument("--output-dir", help="Output directory for exports")
    summary_p.set_defaults(func=cmd_summary)

    for name, func, help_text in (
        ("trips", cmd_trips, "List trips"),
        ("fuel", cmd_fuel, "List fuel purchases"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        _period_arg(p)
        p.add_argument("--vehicle", "-v", help="Restrict to one truck")
        p.add_argument("--export-csv", help="Export CSV (filename, or 'auto')")
        p.add_argument("--output-dir", help="Output directory for exports")
        p.set_defaults(func=func)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    config = EngineConfig.from_env()
    setup_logging(args.log_level or config.log_level)

    try:
        args.func(args, config)
    except IftaError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        sys.exit(1)
