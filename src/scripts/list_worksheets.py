#!/usr/bin/env python3
"""
List all worksheets of the configured spreadsheet and which are month sheets.

Usage:
    uv run python src/scripts/list_worksheets.py
    uv run python src/scripts/list_worksheets.py --backend apps_script
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import SHEET_BACKEND
from services.aggregator import booked_counts
from services.backends import create_backend
from services.selector import is_excluded, parse_month_sheet, select_month_sheets


async def main(backend_kind: str, with_counts: bool):
    """List worksheets and month sheet ordering."""
    backend = create_backend(backend_kind)

    print(f"Fetching worksheets ({backend.name})...\n")
    names = await backend.list_worksheet_names()

    print(f"Found {len(names)} worksheets\n")
    print("=" * 80)

    for name in names:
        sheet = parse_month_sheet(name)
        if is_excluded(name):
            status = "excluded"
        elif sheet is None:
            status = "not a month"
        else:
            year = sheet.year if sheet.year is not None else "no year"
            status = f"month {sheet.month_index + 1} ({year})"
        print(f"  {name:<24} {status}")

    months = select_month_sheets(names)
    print("-" * 80)
    print(f"\nMonth sheets in order: {', '.join(months) if months else 'None'}")

    if with_counts and months:
        print("\nBooked counts:")
        for item in await booked_counts(backend, months):
            print(f"  {item['name']:<24} {item['count']}")

    print("\nDone!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="List spreadsheet worksheets")
    parser.add_argument(
        "--backend",
        default=SHEET_BACKEND,
        choices=["graph", "apps_script"],
        help="Sheet backend to use. Defaults to SHEET_BACKEND.",
    )
    parser.add_argument(
        "--counts",
        action="store_true",
        help="Also fetch every month sheet and print its BOOKED count.",
    )
    args = parser.parse_args()

    asyncio.run(main(args.backend, args.counts))
