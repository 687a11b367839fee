#!/usr/bin/env python3
"""
Generate fake month worksheets of booking rows for tests and local demos.
"""

import random
from datetime import date, timedelta

from faker import Faker

HEADERS = [
    "Date", "Email", "Name", "Site", "Account",
    "Start Time", "End Time", "Booked", "Ticket", "MID",
]

STATUSES = ["BOOKED", "BOOKED", "booked", "Pending", "Cancelled", ""]

START_TIMES = ["8:00 AM", "9:30 AM", "11:00 AM", "1:00 PM", "14:30", 0.625]


def serial(d: date) -> int:
    """Spreadsheet serial day for a date."""
    return (d - date(1899, 12, 30)).days


def generate_month_sheet(year: int, month: int, rows: int, seed: int = 0) -> tuple[list[list], int]:
    """
    Build a month worksheet (header row + booking rows).

    Returns:
        Tuple of (values, number of rows whose status counts as booked)
    """
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)

    first = date(year, month, 1)
    values: list[list] = [list(HEADERS)]
    booked = 0

    for _ in range(rows):
        day = first + timedelta(days=rng.randrange(28))
        status = rng.choice(STATUSES)
        if status.strip().upper() == "BOOKED":
            booked += 1

        # Mix serial numbers and text dates, as spreadsheets do
        date_cell = serial(day) if rng.random() < 0.7 else f"{day.month}/{day.day}/{day.year}"

        values.append([
            date_cell,
            fake.email(),
            fake.name(),
            fake.city(),
            fake.company(),
            rng.choice(START_TIMES),
            "5:00 PM",
            status,
            f"T-{rng.randrange(1000, 9999)}",
            rng.randrange(100000, 999999),
        ])

    return values, booked


if __name__ == "__main__":
    sheet, booked_count = generate_month_sheet(2026, 1, 10)
    for row in sheet:
        print(row)
    print(f"\n{booked_count} booked")
