"""
Command line interface for manual gateway lookups.

Usage:
    python main.py lookup --bin 1034304 --address "142 W 17th St"
    python main.py batch violations 1034304 1015697 --months 12
    python main.py normalize "1-00234-0056"
    python main.py endpoints
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from opendata_gateway.config import GatewaySettings
from opendata_gateway.errors import GatewayError
from opendata_gateway.fetchers.batch import GROUPED_FAMILIES
from opendata_gateway.fetchers.endpoints import describe_endpoints
from opendata_gateway.gateway import ComplianceGateway
from opendata_gateway.models.compliance import BuildingCompliance
from opendata_gateway.utils.logging import get_logger, setup_logging
from opendata_gateway.utils.normalize import (
    is_non_building_location,
    is_valid_property_key,
    normalize_address,
    normalize_property_key,
    split_property_key,
    borough_name,
)

console = Console()
logger = get_logger(__name__)

CATEGORIES = (
    "housing_violations",
    "permits",
    "fire_inspections",
    "emissions",
    "complaints",
    "sanitation_violations",
)


def print_compliance(bundle: BuildingCompliance) -> None:
    """Print a per-category summary of a compliance bundle."""
    table = Table(title=f"Compliance for BIN {bundle.bin or '-'} / BBL {bundle.bbl or '-'}")
    table.add_column("Category", style="cyan")
    table.add_column("Records", justify="right", style="green")
    table.add_column("Latest", style="magenta")
    table.add_column("Status", style="white")

    for category in CATEGORIES:
        records = getattr(bundle, category)
        dates = sorted(r.record_date for r in records if r.record_date)
        if category in bundle.errors:
            status = f"[red]{bundle.errors[category]}[/red]"
        else:
            status = "[green]ok[/green]"
        table.add_row(category, str(len(records)), dates[-1] if dates else "", status)

    console.print(table)


async def run_lookup(args: argparse.Namespace, settings: GatewaySettings) -> int:
    async with ComplianceGateway(settings) as gateway:
        if args.cache:
            gateway.load_cache(Path(args.cache))

        bin_number, bbl = args.bin or "", args.bbl or ""
        if not bin_number and args.lat is not None and args.lon is not None:
            resolved = await gateway.resolve_identifiers(args.lat, args.lon, args.radius)
            if resolved is None:
                console.print("[yellow]No building found at that location[/yellow]")
                return 1
            bin_number, bbl = resolved["bin"], bbl or resolved["bbl"]
            console.print(f"Resolved BIN [cyan]{bin_number}[/cyan], BBL [cyan]{bbl}[/cyan]")

        if not bin_number and not args.address:
            console.print("[red]Error: provide --bin, --address or --lat/--lon[/red]")
            return 2

        with console.status("Fetching compliance data..."):
            bundle = await gateway.fetch_building_compliance(
                bin_number, bbl=bbl, address=args.address or "", name=args.name or ""
            )
        print_compliance(bundle)

        if args.output:
            output = Path(args.output)
            output.parent.mkdir(parents=True, exist_ok=True)
            with open(output, 'w', encoding='utf-8') as f:
                json.dump(bundle.to_dict(), f, ensure_ascii=False, indent=2)
            console.print(f"Saved to {output}")

        if args.cache:
            gateway.save_cache(Path(args.cache))

    return 0 if bundle.complete else 1


async def run_batch(args: argparse.Namespace, settings: GatewaySettings) -> int:
    async with ComplianceGateway(settings) as gateway:
        grouped = await gateway.fetch_grouped(args.family, args.ids, months=args.months)

    table = Table(title=f"{args.family} for {len(grouped)} buildings")
    table.add_column("BIN", style="cyan")
    table.add_column("Records", justify="right", style="green")
    for bin_number, records in grouped.items():
        table.add_row(bin_number, str(len(records)))
    console.print(table)
    return 0


def run_normalize(args: argparse.Namespace) -> int:
    raw = " ".join(args.value)
    key = normalize_property_key(raw)
    table = Table(title="Normalization")
    table.add_column("Form", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("input", raw)
    table.add_row("property key", key)
    if is_valid_property_key(key):
        borough, block, lot = split_property_key(key)
        table.add_row("borough", borough_name(borough))
        table.add_row("block / lot", f"{block} / {lot}")
    table.add_row("address", normalize_address(raw))
    table.add_row("non-building", str(is_non_building_location(address=raw)))
    console.print(table)
    return 0


def run_endpoints() -> int:
    table = Table(title="Endpoints")
    table.add_column("Kind", style="cyan")
    table.add_column("Dataset", style="magenta")
    table.add_column("Record", style="green")
    table.add_column("Tier", style="white")
    for row in describe_endpoints():
        table.add_row(row["kind"], row["dataset"], row["record_type"], row["tier"])
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query municipal open-data compliance datasets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py lookup --bin 1034304 --address "142 W 17th St"
  python main.py lookup --lat 40.7401 --lon -73.9975
  python main.py batch violations 1034304 1015697 --months 12
  python main.py normalize 1-00234-0056
  python main.py endpoints

The application token is read from OPENDATA_APP_TOKEN.
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging (debug level)")
    parser.add_argument("--log-dir", help="Directory for gateway.log (default: console only)")
    sub = parser.add_subparsers(dest="command")

    lookup = sub.add_parser("lookup", help="Fetch every compliance category for one building")
    lookup.add_argument("--bin", help="Building identification number")
    lookup.add_argument("--bbl", help="Property key (borough-block-lot)")
    lookup.add_argument("--address", help="Street address")
    lookup.add_argument("--name", help="Building name, tried with the address")
    lookup.add_argument("--lat", type=float, help="Latitude, used to resolve the BIN")
    lookup.add_argument("--lon", type=float, help="Longitude, used to resolve the BIN")
    lookup.add_argument("--radius", type=int, default=25, help="Search radius in meters (default: 25)")
    lookup.add_argument("--output", help="Write the bundle as JSON to this file")
    lookup.add_argument("--cache", help="Cache snapshot file to load before and save after")

    batch = sub.add_parser("batch", help="Fetch one record family for many buildings")
    batch.add_argument("family", choices=sorted(GROUPED_FAMILIES), help="Record family")
    batch.add_argument("ids", nargs="+", help="Building identification numbers")
    batch.add_argument("--months", type=int, help="Only records from the last N months")

    norm = sub.add_parser("normalize", help="Show normalized forms of a property key or address")
    norm.add_argument("value", nargs="+", help="Raw property key or address")

    sub.add_parser("endpoints", help="List supported endpoints")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(Path(args.log_dir) if args.log_dir else None, verbose=args.verbose)

    if args.command == "endpoints":
        return run_endpoints()
    if args.command == "normalize":
        return run_normalize(args)

    settings = GatewaySettings.from_env()
    try:
        if args.command == "lookup":
            return asyncio.run(run_lookup(args, settings))
        return asyncio.run(run_batch(args, settings))
    except GatewayError as e:
        logger.error(f"Request failed: {e}")
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
