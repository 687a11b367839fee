"""
Row normalization: column resolution, date/time decoding and display formatting.

Spreadsheet cells arrive in several shapes:
- numbers: day serials for dates (1899-12-30 epoch), fractions of a day for times
- strings: "1/10/2026", "2026-01-10", "8:00 AM", "17:30", "17:30:15"
- None / "" for empty cells

Dates are calendar dates: date_ms is the UTC midnight of the calendar day, so a
serial decodes to the same day for every viewer. Times are wall-clock times in
the viewer's timezone, combined with the row's calendar date.
"""

import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser
from dateutil import tz

from core.config import (
    COLUMN_ALIASES,
    COLUMN_KEYWORDS,
    COLUMN_MODE,
    LEGACY_COLUMN_POSITIONS,
    OUTPUT_COLUMNS,
    VIEWER_TIMEZONE,
)
from models.bookings import Cell, NormalizedRow, Timestamps

MS_PER_DAY = 86_400_000
MINUTES_PER_DAY = 24 * 60

# Spreadsheet serial day 0. Keeps the 1900 leap-year quirk of the serial convention.
SERIAL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
SERIAL_EPOCH_MS = int(SERIAL_EPOCH.timestamp() * 1000)

# Serial days 1900-01-01 through 9999-12-31
MIN_SERIAL = 1
MAX_SERIAL = 2_958_465

TIME_PATTERN = re.compile(
    r"^(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([ap]\.?m\.?)?$",
    re.IGNORECASE,
)

# Trailing "(EST)" / "(America/New_York)" style suffix on a header
HEADER_SUFFIX_PATTERN = re.compile(r"\s*\([^()]*\)\s*$")

# Output column -> NormalizedRow attribute
FIELD_ATTRIBUTES = {
    "Email": "email",
    "Name": "name",
    "Date": "date",
    "StartTime": "start_time",
    "EndTime": "end_time",
    "BookedFlag": "booked_flag",
    "Site": "site",
    "Account": "account",
    "Ticket": "ticket",
    "MID": "mid",
}


def get_viewer_timezone(name: str = VIEWER_TIMEZONE) -> tzinfo:
    """Viewer timezone from an IANA name, or the runtime's local zone."""
    if name:
        return ZoneInfo(name)
    return tz.tzlocal()


VIEWER_TZ = get_viewer_timezone()


# =============================================================================
# CELL HELPERS
# =============================================================================


def is_number(value: Cell) -> bool:
    """Numeric cell (bools are not numbers here)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_blank(value: Cell) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_blank_row(row: list[Cell]) -> bool:
    """True if every cell is empty or None."""
    return all(is_blank(cell) for cell in (row or []))


def drop_blank_rows(rows: list[list[Cell]]) -> list[list[Cell]]:
    return [row for row in rows if not is_blank_row(row)]


def get_cell(row: list[Cell], index: int | None) -> Cell:
    """Cell at index, None for unresolved columns and short rows."""
    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]


def display_text(value: Cell) -> str:
    """Display string for a plain (non date/time) cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


# =============================================================================
# COLUMN RESOLUTION
# =============================================================================


def collapse_header(header: Cell) -> str:
    """
    Lowercase a header, drop a trailing parenthesised suffix and collapse whitespace.

    ' Start   Time (EST) ' -> 'start time'
    """
    text = str(header if header is not None else "")
    text = HEADER_SUFFIX_PATTERN.sub("", text)
    return " ".join(text.split()).lower()


def find_keyword(collapsed: list[str], keyword: str, taken: set[int]) -> int | None:
    """Index of the first unclaimed header containing keyword as a word."""
    pattern = re.compile(rf"\b{re.escape(keyword)}\b")
    for index, header in enumerate(collapsed):
        if index not in taken and pattern.search(header):
            return index
    return None


def resolve_columns(headers: list[str], mode: str | None = None) -> dict[str, int | None]:
    """
    Map each output column to a source column index.

    'header' mode matches aliases against collapsed header names, then falls
    back to a keyword search for the time columns ('Shift Start' -> StartTime);
    'positional' mode uses the legacy fixed layout. Unresolved columns map to None.
    """
    mode = mode or COLUMN_MODE
    if mode == "positional":
        return {column: LEGACY_COLUMN_POSITIONS.get(column) for column in OUTPUT_COLUMNS}

    collapsed = [collapse_header(h) for h in headers]
    columns: dict[str, int | None] = {}
    for column in OUTPUT_COLUMNS:
        columns[column] = None
        for alias in COLUMN_ALIASES.get(column, []):
            if alias in collapsed:
                columns[column] = collapsed.index(alias)
                break

    taken = {index for index in columns.values() if index is not None}
    for column, keyword in COLUMN_KEYWORDS.items():
        if columns.get(column) is None:
            columns[column] = find_keyword(collapsed, keyword, taken)
            if columns[column] is not None:
                taken.add(columns[column])
    return columns


# =============================================================================
# DATE / TIME DECODING
# =============================================================================


def date_to_ms(d: date) -> int:
    """UTC midnight of a calendar date, in epoch milliseconds."""
    return int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp() * 1000)


def ms_to_date(ms: int) -> date:
    """Calendar date of a date_ms value."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).date()


def decode_date(value: Cell) -> int | None:
    """
    Decode a date cell into date_ms.

    Numbers are serial days since 1899-12-30, strings go through dateutil.
    Returns None for empty or unparseable cells and for numbers outside the
    serial date range, so they display as their raw text.
    """
    if is_blank(value) or isinstance(value, bool):
        return None

    if is_number(value):
        if not MIN_SERIAL <= value <= MAX_SERIAL:
            return None
        return int(round(value * MS_PER_DAY)) + SERIAL_EPOCH_MS

    try:
        parsed = date_parser.parse(str(value).strip())
    except (ValueError, OverflowError):
        return None
    return date_to_ms(parsed.date())


def parse_time_of_day(value: Cell) -> tuple[int, int, int] | None:
    """
    Decode a time cell into (hour, minute, second).

    Numbers are fractions of a day (whole days are ignored); strings may be
    'H:MM', 'H:MM:SS' or 'H:MM AM/PM'.
    """
    if is_blank(value) or isinstance(value, bool):
        return None

    if is_number(value):
        minutes = int(round((value % 1) * MINUTES_PER_DAY)) % MINUTES_PER_DAY
        return minutes // 60, minutes % 60, 0

    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2))
    second = int(match.group(3) or 0)
    meridiem = (match.group(4) or "").replace(".", "").lower()

    if minute > 59 or second > 59:
        return None
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if meridiem == "pm" else 0)
    elif hour > 23:
        return None

    return hour, minute, second


def decode_time(
    value: Cell,
    date_ms: int | None,
    tzinfo: tzinfo | None = None,
    today: date | None = None,
) -> int | None:
    """
    Decode a time cell into an absolute timestamp.

    The time is a wall-clock time in the viewer timezone on the row's calendar
    date, or on today's date when the row has none.
    """
    time_of_day = parse_time_of_day(value)
    if time_of_day is None:
        return None

    zone = tzinfo or VIEWER_TZ
    if date_ms is not None:
        day = ms_to_date(date_ms)
    else:
        day = today or datetime.now(zone).date()

    hour, minute, second = time_of_day
    local = datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=zone)
    return int(local.timestamp() * 1000)


# =============================================================================
# DISPLAY FORMATTING
# =============================================================================


def format_date_display(date_ms: int | None, raw: Cell = None) -> str:
    """Format date as M/D/YYYY, falling back to the raw cell text."""
    if date_ms is None:
        return display_text(raw)
    d = ms_to_date(date_ms)
    return f"{d.month}/{d.day}/{d.year}"


def format_time_display(ms: int | None, raw: Cell = None, tzinfo: tzinfo | None = None) -> str:
    """Format a timestamp as H:MM AM/PM in the viewer timezone."""
    if ms is None:
        return "" if is_number(raw) else display_text(raw)
    local = datetime.fromtimestamp(ms / 1000, tz=tzinfo or VIEWER_TZ)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {meridiem}"


# =============================================================================
# NORMALIZATION
# =============================================================================


def normalize_row(
    row: list[Cell],
    columns: dict[str, int | None],
    sheet: str = "",
    tzinfo: tzinfo | None = None,
    today: date | None = None,
) -> NormalizedRow:
    """Normalize a single raw row using resolved column indexes."""
    zone = tzinfo or VIEWER_TZ

    date_raw = get_cell(row, columns.get("Date"))
    start_raw = get_cell(row, columns.get("StartTime"))
    end_raw = get_cell(row, columns.get("EndTime"))

    date_ms = decode_date(date_raw)
    start_ms = decode_time(start_raw, date_ms, zone, today)
    end_ms = decode_time(end_raw, date_ms, zone, today)

    values = {
        attribute: display_text(get_cell(row, columns.get(column)))
        for column, attribute in FIELD_ATTRIBUTES.items()
    }
    values["date"] = format_date_display(date_ms, date_raw)
    values["start_time"] = format_time_display(start_ms, start_raw, zone)
    values["end_time"] = format_time_display(end_ms, end_raw, zone)

    return NormalizedRow(
        **values,
        ms=Timestamps(date_ms=date_ms, start_ms=start_ms, end_ms=end_ms),
        sheet=sheet,
    )


def normalize(
    headers: list[str],
    rows: list[list[Cell]],
    sheet: str = "",
    mode: str | None = None,
    tzinfo: tzinfo | None = None,
    today: date | None = None,
) -> list[NormalizedRow]:
    """
    Normalize raw worksheet rows into the fixed output column order.

    Fully blank rows are dropped. Inputs are not modified.
    """
    columns = resolve_columns(headers, mode)
    return [
        normalize_row(row, columns, sheet=sheet, tzinfo=tzinfo, today=today)
        for row in rows
        if not is_blank_row(row)
    ]
