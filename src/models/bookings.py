"""
Data models for worksheets, rows and booking counts.

TypedDicts for the JSON-shaped payloads, dataclasses for the values the
pipeline builds itself.
"""

from dataclasses import dataclass, field
from typing import TypedDict

Cell = str | int | float | bool | None


class UsedRange(TypedDict):
    """Raw worksheet contents as returned by a backend."""
    sheet: str
    headers: list[str]
    rows: list[list[Cell]]


class MonthCount(TypedDict):
    """Booked row count for one month worksheet."""
    name: str
    count: int


@dataclass(frozen=True)
class MonthSheet:
    """A worksheet name recognised as a calendar month."""

    name: str
    month_index: int  # 0 = January
    year: int | None = None


@dataclass(frozen=True)
class Timestamps:
    """Absolute epoch-millisecond values used for filtering and sorting only."""

    date_ms: int | None = None
    start_ms: int | None = None
    end_ms: int | None = None


@dataclass(frozen=True)
class NormalizedRow:
    """One booking row in the fixed output column order."""

    email: str = ""
    name: str = ""
    date: str = ""
    start_time: str = ""
    end_time: str = ""
    booked_flag: str = ""
    site: str = ""
    account: str = ""
    ticket: str = ""
    mid: str = ""
    ms: Timestamps = field(default_factory=Timestamps)
    sheet: str = ""

    def values(self) -> list[str]:
        """Display values in output column order."""
        return [
            self.email,
            self.name,
            self.date,
            self.start_time,
            self.end_time,
            self.booked_flag,
            self.site,
            self.account,
            self.ticket,
            self.mid,
        ]
