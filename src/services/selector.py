"""
Month worksheet discovery and chronological ordering.
"""

import re

from core.config import EXCLUDED_SHEETS
from models.bookings import MonthSheet

# Undated month sheets sort after every dated one
NO_YEAR_SENTINEL = 10_000

MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

# Full names and 3-letter abbreviations -> month index
_MONTH_LOOKUP = {name: index for index, name in enumerate(MONTH_NAMES)}
_MONTH_LOOKUP.update({name[:3]: index for index, name in enumerate(MONTH_NAMES)})

MONTH_SHEET_PATTERN = re.compile(r"^([A-Za-z]+)(?:\s+(\d{4}))?$")


def parse_month_sheet(name: str) -> MonthSheet | None:
    """
    Parse a worksheet name like 'Jan', 'january' or 'Feb 2026'.

    Returns None when the name is not a month sheet.
    """
    match = MONTH_SHEET_PATTERN.match(str(name or "").strip())
    if not match:
        return None

    month_index = _MONTH_LOOKUP.get(match.group(1).lower())
    if month_index is None:
        return None

    year = int(match.group(2)) if match.group(2) else None
    return MonthSheet(name=name, month_index=month_index, year=year)


def is_excluded(name: str, excluded: set[str] | None = None) -> bool:
    """Check if a worksheet name is on the exclusion set."""
    excluded = EXCLUDED_SHEETS if excluded is None else excluded
    return str(name or "").strip().lower() in excluded


def sort_key(sheet: MonthSheet) -> tuple[int, int]:
    """(year or sentinel, month index)."""
    year = sheet.year if sheet.year is not None else NO_YEAR_SENTINEL
    return (year, sheet.month_index)


def parse_month_sheets(names: list[str], excluded: set[str] | None = None) -> list[MonthSheet]:
    """Month sheets from a list of worksheet names, in chronological order."""
    sheets = []
    for name in names:
        if is_excluded(name, excluded):
            continue
        sheet = parse_month_sheet(name)
        if sheet is not None:
            sheets.append(sheet)
    return sorted(sheets, key=sort_key)


def select_month_sheets(names: list[str], excluded: set[str] | None = None) -> list[str]:
    """
    Filter worksheet names down to month sheets and order them.

    Example:
        ["Logs", "Feb", "Jan 2026", "Tech", "Dec"] -> ["Jan 2026", "Feb", "Dec"]
    """
    return [sheet.name for sheet in parse_month_sheets(names, excluded)]
