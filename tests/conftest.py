"""
Pytest configuration and shared fixtures.
"""

import asyncio
import sys
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.errors import UpstreamError  # noqa: E402
from services.backends import split_used_range  # noqa: E402

NEW_YORK = ZoneInfo("America/New_York")

HEADERS = [
    "Date", "Email", "Name", "Site", "Account",
    "Start Time", "End Time", "Booked", "Ticket", "MID",
]


def serial(d: date) -> int:
    """Spreadsheet serial day for a date."""
    return (d - date(1899, 12, 30)).days


def booking(d: date, name: str, status: str = "BOOKED", start="9:00 AM", end="10:00 AM") -> list:
    email = f"{name.lower()}@example.com"
    return [serial(d), email, name, "Main St", "ACME", start, end, status, "T-100", 12345]


class FakeBackend:
    """In-memory sheet backend recording the calls it receives."""

    name = "fake"

    def __init__(self, sheets: dict[str, list[list]], delays: dict[str, float] | None = None,
                 errors: dict[str, Exception] | None = None, version: str | None = None):
        self.sheets = sheets
        self.delays = delays or {}
        self.errors = errors or {}
        self.version = version
        self.calls: list[str] = []

    async def list_worksheet_names(self) -> list[str]:
        self.calls.append("names")
        if "names" in self.errors:
            raise self.errors["names"]
        return list(self.sheets)

    async def fetch_used_range(self, worksheet_name: str):
        self.calls.append(worksheet_name)
        await asyncio.sleep(self.delays.get(worksheet_name, 0))
        if worksheet_name in self.errors:
            raise self.errors[worksheet_name]
        if worksheet_name not in self.sheets:
            raise UpstreamError(404, "ItemNotFound", message=f"Worksheet '{worksheet_name}' not found")
        return split_used_range(worksheet_name, self.sheets[worksheet_name])

    async def get_version(self):
        return self.version


@pytest.fixture
def workbook() -> dict[str, list[list]]:
    """Small workbook: two non-month tabs and Jan/Feb/Mar 2026 month tabs."""
    return {
        "Logs": [["When", "What"], ["yesterday", "import"]],
        "Jan": [
            HEADERS,
            booking(date(2026, 1, 15), "Ann"),
            booking(date(2026, 1, 16), "Bob", status="Pending"),
            booking(date(2026, 1, 20), "Cid"),
        ],
        "Feb": [
            HEADERS,
            booking(date(2026, 2, 5), "Dee"),
            booking(date(2026, 2, 12), "Eve"),
            booking(date(2026, 2, 20), "Fay", status="Pending"),
            booking(date(2026, 2, 25), "Gus", status=" booked "),
            [None, "", None, "", "", "", "", "", "", ""],
        ],
        "Tech": [["Key", "Value"], ["version", "3"]],
        "Mar": [
            HEADERS,
            booking(date(2026, 3, 3), "Hal", start="1:30 PM", end="2:00 PM"),
            booking(date(2026, 3, 4), "Ida", start=0.375, end=0.4375),
        ],
    }


@pytest.fixture
def fake_backend(workbook):
    return FakeBackend(workbook)


@pytest.fixture
def fixed_now():
    """Clock for controller tests: 10 Feb 2026, noon in New York."""
    return lambda: datetime(2026, 2, 10, 12, 0, tzinfo=NEW_YORK)
