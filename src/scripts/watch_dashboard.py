#!/usr/bin/env python3
"""
Terminal booking dashboard.

Polls the spreadsheet, prints the scorecards whenever the counts change and
the current page of the bookings table after every refresh.

Usage:
    uv run python src/scripts/watch_dashboard.py
    uv run python src/scripts/watch_dashboard.py --month "Feb" --sort StartTime --once
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DEFAULT_PAGE_SIZE, DEFAULT_VIEW_POLICY, POLL_INTERVAL_SECONDS, SHEET_BACKEND
from services.backends import create_backend
from services.view import DashboardController


def print_scorecards(controller: DashboardController):
    """Print month scorecards (or the failure notice)."""
    if controller.scorecards.error:
        print(f"!! {controller.scorecards.error}")
        return
    cards = controller.scorecards.items
    if not cards:
        print("No months found")
        return
    print("  ".join(f"[{c['name']}: {c['count']} BOOKED]" for c in cards))


def print_table(controller: DashboardController):
    """Print the current table page."""
    view = controller.render()
    print(f"\n{view['summary']}   (Local time: {view['timezone']})")
    if view["notice"]:
        print(f"!! {view['notice']}")

    labels = view["column_labels"]
    rows = view["rows"]
    widths = [
        max([len(label)] + [len(row[i]) for row in rows])
        for i, label in enumerate(labels)
    ]
    print(" | ".join(label.ljust(w) for label, w in zip(labels, widths)))
    print("-+-".join("-" * w for w in widths))
    if not rows:
        print("(no bookings)")
    for row in rows:
        print(" | ".join(cell.ljust(w) for cell, w in zip(row, widths)))

    pagination = view["pagination"]
    print(
        f"\nPage {pagination['page']} of {pagination['total_pages']} "
        f"({pagination['total_rows']} rows)  pages: {pagination['page_numbers']}"
    )


async def main(args):
    """Main polling loop."""
    controller = DashboardController(
        create_backend(args.backend),
        policy=args.policy,
        page_size=args.page_size,
    )

    await controller.load_sheet_names()
    if args.month:
        controller.enter_month(args.month)
    await controller.refresh_cards()
    await controller.load_rows()
    if args.sort:
        controller.set_sort(args.sort)
    controller.go_to_page(args.page)

    print_scorecards(controller)
    print_table(controller)

    while not args.once:
        await asyncio.sleep(args.interval)
        renders = controller.scorecards.renders
        controller.request_reload()
        await controller.queue.join()
        if args.sort:
            controller.set_sort(args.sort)
        controller.go_to_page(args.page)

        # Counts are only reprinted when they changed
        if controller.scorecards.error or controller.scorecards.renders != renders:
            print_scorecards(controller)
        print_table(controller)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Poll and print the booking dashboard")
    parser.add_argument("--backend", default=SHEET_BACKEND, choices=["graph", "apps_script"])
    parser.add_argument("--month", help="Show a single month sheet instead of the upcoming view.")
    parser.add_argument("--policy", default=DEFAULT_VIEW_POLICY, choices=["year", "month"])
    parser.add_argument("--sort", help="Column to sort by (e.g. Date, StartTime, Name).")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--page-size", type=int, default=DEFAULT_PAGE_SIZE)
    parser.add_argument("--interval", type=float, default=POLL_INTERVAL_SECONDS)
    parser.add_argument("--once", action="store_true", help="Print once and exit.")
    args = parser.parse_args()

    asyncio.run(main(args))
