"""
Table/view controller for the booking dashboard.

Holds everything the dashboard screen needs between refreshes:
- view mode (default upcoming-bookings view or a single month sheet)
- sort state, page size and current page
- scorecards with a fingerprint so unchanged counts are not re-rendered
- a single-flight refresh queue with debounce and a reference-counted loader
"""

import asyncio
import calendar
import json
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import Enum
from functools import cmp_to_key
from typing import Awaitable, Callable

from core.config import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_VIEW_POLICY,
    OUTPUT_COLUMNS,
    PAGE_WINDOW,
    REFRESH_DEBOUNCE_SECONDS,
    SINGLE_MONTH_BOOKED_ONLY,
)
from core.errors import DashboardError, ValidationError
from models.bookings import MonthCount, MonthSheet, NormalizedRow
from services.aggregator import booked_counts, fetch_normalized, fetch_sheets, is_booked
from services.backends import SheetBackend
from services.normalizer import VIEWER_TZ, FIELD_ATTRIBUTES, date_to_ms
from services.selector import parse_month_sheets

logger = logging.getLogger(__name__)

# Columns sorted on their timestamps rather than their display text
TIMESTAMP_COLUMNS = {"Date": "date_ms", "StartTime": "start_ms", "EndTime": "end_ms"}


class ViewMode(str, Enum):
    DEFAULT = "default"
    SINGLE_MONTH = "single_month"


# =============================================================================
# TIME WINDOW
# =============================================================================


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive bound on date_ms."""

    start_ms: float = -math.inf
    end_ms: float = math.inf

    def contains(self, ms: int | None) -> bool:
        return ms is not None and self.start_ms <= ms <= self.end_ms


def default_window(today: date, policy: str = DEFAULT_VIEW_POLICY) -> TimeWindow:
    """
    Window for the default view.

    'year':  today through Dec 31 of the current year
    'month': today through the last day of the current month
    """
    if policy == "month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        end = date(today.year, today.month, last_day)
    elif policy == "year":
        end = date(today.year, 12, 31)
    else:
        raise ValueError(f"Unknown default view policy '{policy}'")
    return TimeWindow(start_ms=date_to_ms(today), end_ms=date_to_ms(end))


def sheets_from_current_month(sheets: list[MonthSheet], today: date) -> list[str]:
    """Month sheets at or after the current month; undated sheets count as this year."""
    current = (today.year, today.month - 1)
    return [
        sheet.name
        for sheet in sheets
        if (sheet.year if sheet.year is not None else today.year, sheet.month_index) >= current
    ]


# =============================================================================
# SORTING
# =============================================================================


@dataclass
class SortState:
    column: str = "Date"
    direction: str = "asc"

    def toggle(self, column: str) -> None:
        """Same column flips direction, a new column starts ascending."""
        if column not in OUTPUT_COLUMNS:
            raise ValidationError(f"Unknown sort column '{column}'", details=OUTPUT_COLUMNS)
        if column == self.column:
            self.direction = "desc" if self.direction == "asc" else "asc"
        else:
            self.column = column
            self.direction = "asc"


def parse_number(value: str) -> float | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def compare_text(a: str, b: str) -> int:
    """Numeric comparison when both sides are numbers, else case-insensitive text."""
    na, nb = parse_number(a), parse_number(b)
    if na is not None and nb is not None:
        return (na > nb) - (na < nb)
    la, lb = str(a or "").lower(), str(b or "").lower()
    return (la > lb) - (la < lb)


def sort_rows(rows: list[NormalizedRow], state: SortState) -> list[NormalizedRow]:
    """Sorted copy of rows. Rows without a timestamp stay last in either direction."""
    descending = state.direction == "desc"

    if state.column in TIMESTAMP_COLUMNS:
        attribute = TIMESTAMP_COLUMNS[state.column]
        dated = [row for row in rows if getattr(row.ms, attribute) is not None]
        undated = [row for row in rows if getattr(row.ms, attribute) is None]
        dated.sort(key=lambda row: getattr(row.ms, attribute), reverse=descending)
        return dated + undated

    attribute = FIELD_ATTRIBUTES[state.column]
    return sorted(
        rows,
        key=cmp_to_key(lambda a, b: compare_text(getattr(a, attribute), getattr(b, attribute))),
        reverse=descending,
    )


# =============================================================================
# PAGINATION
# =============================================================================


@dataclass
class Page:
    rows: list[NormalizedRow]
    page: int
    total_pages: int
    total_rows: int
    page_numbers: list[int]

    @property
    def first_disabled(self) -> bool:
        return self.page == 1

    @property
    def last_disabled(self) -> bool:
        return self.page == self.total_pages

    def controls(self) -> dict:
        return {
            "page": self.page,
            "total_pages": self.total_pages,
            "total_rows": self.total_rows,
            "page_numbers": self.page_numbers,
            "first": {"page": 1, "disabled": self.first_disabled},
            "prev": {"page": max(1, self.page - 1), "disabled": self.first_disabled},
            "next": {"page": min(self.total_pages, self.page + 1), "disabled": self.last_disabled},
            "last": {"page": self.total_pages, "disabled": self.last_disabled},
        }


def page_window(current: int, total_pages: int, size: int = PAGE_WINDOW) -> list[int]:
    """Page numbers shown around the current page, shifted to stay within bounds."""
    start = max(1, current - size // 2)
    end = min(total_pages, start + size - 1)
    start = max(1, end - size + 1)
    return list(range(start, end + 1))


def paginate(rows: list[NormalizedRow], page: int, page_size: int) -> Page:
    """Slice one page out of rows. The page number is clamped to the valid range."""
    if page_size < 1:
        raise ValidationError(f"Page size must be positive, got {page_size}")
    total = len(rows)
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size
    return Page(
        rows=rows[start:start + page_size],
        page=page,
        total_pages=total_pages,
        total_rows=total,
        page_numbers=page_window(page, total_pages),
    )


# =============================================================================
# LOADER + REFRESH QUEUE
# =============================================================================


class LoaderCounter:
    """Busy overlay shown while any request is outstanding."""

    def __init__(self):
        self.pending = 0

    def show(self) -> None:
        self.pending += 1

    def hide(self) -> None:
        self.pending = max(0, self.pending - 1)

    @property
    def visible(self) -> bool:
        return self.pending > 0


class RefreshQueue:
    """
    Single-flight task queue.

    Triggers within the debounce interval collapse into one run (the latest
    job wins). At most one job runs at a time; a job triggered while another
    is running runs once the current one finishes.
    """

    def __init__(
        self,
        debounce_seconds: float = REFRESH_DEBOUNCE_SECONDS,
        loader: LoaderCounter | None = None,
    ):
        self.debounce_seconds = debounce_seconds
        self.loader = loader or LoaderCounter()
        self.runs = 0
        self._pending: Callable[[], Awaitable[None]] | None = None
        self._ready: Callable[[], Awaitable[None]] | None = None
        self._timer: asyncio.Task | None = None
        self._runner: asyncio.Task | None = None

    @property
    def busy(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def trigger(self, job: Callable[[], Awaitable[None]]) -> None:
        """Schedule a job after the debounce interval, replacing any pending one."""
        self._pending = job
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._after_debounce())

    async def _after_debounce(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._ready, self._pending = self._pending, None
        if not self.busy:
            self._runner = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._ready is not None:
            job, self._ready = self._ready, None
            self.loader.show()
            try:
                await job()
            except Exception:
                logger.exception("Dashboard refresh failed")
            finally:
                self.runs += 1
                self.loader.hide()

    async def join(self) -> None:
        """Wait until no job is pending or running."""
        while True:
            tasks = {
                task for task in (self._timer, self._runner)
                if task is not None and not task.done()
            }
            if not tasks:
                return
            await asyncio.wait(tasks)


# =============================================================================
# SCORECARDS
# =============================================================================


@dataclass
class Scorecards:
    """Last rendered month counts; re-rendered only when the counts change."""

    items: list[MonthCount] = field(default_factory=list)
    fingerprint: str = ""
    error: str | None = None
    renders: int = 0

    def update(self, items: list[MonthCount]) -> bool:
        """Store new counts. Returns True if they differ from the last render."""
        fingerprint = json.dumps(items, sort_keys=True)
        self.error = None
        if fingerprint == self.fingerprint:
            return False
        self.items = list(items)
        self.fingerprint = fingerprint
        self.renders += 1
        return True

    def fail(self, message: str) -> None:
        self.error = message


# =============================================================================
# CONTROLLER
# =============================================================================


def timezone_label(zone: tzinfo, now: datetime | None = None) -> str:
    """'EST (America/New_York)' style label for the displayed timezone."""
    now = now or datetime.now(zone)
    abbr = now.astimezone(zone).tzname() or ""
    iana = getattr(zone, "key", "")
    if abbr and iana and abbr != iana:
        return f"{abbr} ({iana})"
    return abbr or iana


class DashboardController:
    """
    Dashboard state machine.

    DEFAULT mode shows booked rows from today through the end of the window
    across current and future month sheets. SINGLE_MONTH mode shows one month
    sheet in full. Closing the monthly panel or opening the yearly panel goes
    back to DEFAULT and reloads.
    """

    def __init__(
        self,
        backend: SheetBackend,
        policy: str = DEFAULT_VIEW_POLICY,
        page_size: int = DEFAULT_PAGE_SIZE,
        single_month_booked_only: bool = SINGLE_MONTH_BOOKED_ONLY,
        tzinfo: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
        debounce_seconds: float = REFRESH_DEBOUNCE_SECONDS,
    ):
        self.backend = backend
        self.policy = policy
        self.page_size = page_size
        self.single_month_booked_only = single_month_booked_only
        self.tzinfo = tzinfo or VIEWER_TZ
        self._clock = clock

        self.mode = ViewMode.DEFAULT
        self.month_sheets: list[MonthSheet] = []
        self.active_month: str | None = None
        self.rows: list[NormalizedRow] = []
        self.sort = SortState()
        self.page = 1
        self.notice: str | None = None
        self.monthly_open = False
        self.yearly_open = True

        self.scorecards = Scorecards()
        self.loader = LoaderCounter()
        self.queue = RefreshQueue(debounce_seconds, self.loader)

    def today(self) -> date:
        now = self._clock() if self._clock else datetime.now(self.tzinfo)
        return now.date()

    @property
    def month_names(self) -> list[str]:
        return [sheet.name for sheet in self.month_sheets]

    # -------------------------------------------------------------------------
    # Data loading (failures degrade to "no data" with a notice)
    # -------------------------------------------------------------------------

    async def load_sheet_names(self) -> None:
        try:
            names = await self.backend.list_worksheet_names()
        except DashboardError as e:
            logger.warning("Loading worksheet names failed: %s", e)
            names = []
            self.notice = "Failed to load months"
        self.month_sheets = parse_month_sheets(names)

    async def refresh_cards(self) -> bool:
        """Reload scorecards. Returns True if they were re-rendered."""
        try:
            counts = await booked_counts(
                self.backend, self.month_names, self.tzinfo, self.today()
            )
        except DashboardError as e:
            logger.warning("Loading booked counts failed: %s", e)
            self.scorecards.fail("Failed to load scorecards")
            return False
        return self.scorecards.update(counts)

    async def load_rows(self) -> None:
        """Reload the table rows for the current mode and reset sort/paging."""
        self.reset_view_state()
        today = self.today()
        try:
            if self.mode == ViewMode.SINGLE_MONTH and self.active_month:
                rows = await fetch_normalized(self.backend, self.active_month, self.tzinfo, today)
                if self.single_month_booked_only:
                    rows = [row for row in rows if is_booked(row.booked_flag)]
            else:
                window = default_window(today, self.policy)
                sheets = sheets_from_current_month(self.month_sheets, today)
                per_sheet = await fetch_sheets(self.backend, sheets, self.tzinfo, today)
                rows = [
                    row
                    for sheet_rows in per_sheet
                    for row in sheet_rows
                    if is_booked(row.booked_flag) and window.contains(row.ms.date_ms)
                ]
        except DashboardError as e:
            logger.warning("Loading rows failed: %s", e)
            rows = []
            self.notice = "Failed to load bookings"
        self.rows = rows

    async def first_paint(self) -> None:
        await self.load_sheet_names()
        if not self.month_sheets:
            self.rows = []
            return
        await self.refresh_cards()
        await self.load_rows()

    async def reload_all(self) -> None:
        await self.refresh_cards()
        await self.load_rows()

    # -------------------------------------------------------------------------
    # User actions
    # -------------------------------------------------------------------------

    def reset_view_state(self) -> None:
        self.rows = []
        self.page = 1
        self.notice = None
        self.sort = SortState()

    def force_default_mode(self) -> None:
        self.mode = ViewMode.DEFAULT
        self.active_month = None

    def enter_month(self, name: str) -> None:
        """Switch to single-month mode without scheduling a reload."""
        if name not in self.month_names:
            raise ValidationError(f"Unknown month sheet '{name}'", details=self.month_names)
        self.mode = ViewMode.SINGLE_MONTH
        self.active_month = name

    def select_month(self, name: str) -> None:
        """Scorecard click: show one month sheet."""
        self.enter_month(name)
        self.queue.trigger(self.load_rows)

    def set_monthly_panel(self, open_: bool) -> None:
        self.monthly_open = open_
        if not open_:
            self.force_default_mode()
            self.queue.trigger(self.load_rows)

    def set_yearly_panel(self, open_: bool) -> None:
        self.yearly_open = open_
        if open_:
            self.force_default_mode()
            self.queue.trigger(self.load_rows)

    def request_reload(self) -> None:
        """Reload button: scorecards and rows."""
        self.queue.trigger(self.reload_all)

    def click_header(self, column: str) -> None:
        self.sort.toggle(column)
        self.page = 1

    def set_sort(self, column: str, direction: str = "asc") -> None:
        """Sort by column in the given direction, regardless of the current state."""
        if column != self.sort.column:
            self.click_header(column)
        if direction != self.sort.direction:
            self.click_header(column)
        self.page = 1

    def set_page_size(self, page_size: int) -> None:
        if page_size < 1:
            raise ValidationError(f"Page size must be positive, got {page_size}")
        self.page_size = page_size
        self.page = 1

    def go_to_page(self, page: int) -> None:
        self.page = page

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def label(self) -> str:
        if self.mode == ViewMode.SINGLE_MONTH and self.active_month:
            return self.active_month
        return "Upcoming (this month)" if self.policy == "month" else "Upcoming (this year)"

    def column_labels(self) -> list[str]:
        """Column headers, with the timezone appended to the time columns."""
        now = self._clock() if self._clock else None
        abbr = (now or datetime.now(self.tzinfo)).astimezone(self.tzinfo).tzname() or ""
        return [
            f"{column} ({abbr})" if column in ("StartTime", "EndTime") and abbr else column
            for column in OUTPUT_COLUMNS
        ]

    def summary(self) -> str:
        """Label plus the number of rows in the table: 'Feb: 4 rows, 3 BOOKED'."""
        booked = sum(1 for row in self.rows if is_booked(row.booked_flag))
        if booked == len(self.rows):
            return f"{self.label()}: {booked} BOOKED"
        return f"{self.label()}: {len(self.rows)} rows, {booked} BOOKED"

    def current_page(self) -> Page:
        page = paginate(sort_rows(self.rows, self.sort), self.page, self.page_size)
        self.page = page.page
        return page

    def render(self) -> dict:
        page = self.current_page()
        return {
            "mode": self.mode.value,
            "sheet": self.active_month,
            "label": self.label(),
            "summary": self.summary(),
            "timezone": timezone_label(self.tzinfo, self._clock() if self._clock else None),
            "columns": OUTPUT_COLUMNS,
            "column_labels": self.column_labels(),
            "sort": {"column": self.sort.column, "direction": self.sort.direction},
            "page_size": self.page_size,
            "rows": [row.values() for row in page.rows],
            "pagination": page.controls(),
            "notice": self.notice,
            "loading": self.loader.visible,
        }
