"""Tests for the table/view controller."""

import asyncio
import math
from datetime import date

import pytest

from conftest import NEW_YORK, FakeBackend
from core.errors import UpstreamError, ValidationError
from models.bookings import MonthSheet, NormalizedRow, Timestamps
from services.normalizer import date_to_ms
from services.view import (
    DashboardController,
    LoaderCounter,
    RefreshQueue,
    Scorecards,
    SortState,
    TimeWindow,
    ViewMode,
    default_window,
    page_window,
    paginate,
    sheets_from_current_month,
    sort_rows,
)

TODAY = date(2026, 2, 10)


# =============================================================================
# TIME WINDOW
# =============================================================================


def test_default_window_year_policy():
    window = default_window(TODAY, "year")
    assert window.start_ms == date_to_ms(TODAY)
    assert window.end_ms == date_to_ms(date(2026, 12, 31))
    assert window.contains(date_to_ms(date(2026, 12, 31)))
    assert not window.contains(date_to_ms(date(2026, 2, 9)))


def test_default_window_month_policy():
    window = default_window(TODAY, "month")
    assert window.end_ms == date_to_ms(date(2026, 2, 28))
    assert not window.contains(date_to_ms(date(2026, 3, 1)))


def test_unbounded_window_excludes_missing_dates():
    window = TimeWindow()
    assert window.start_ms == -math.inf
    assert window.contains(0)
    assert not window.contains(None)


def test_sheets_from_current_month():
    sheets = [
        MonthSheet("Dec 2025", 11, 2025),
        MonthSheet("Jan 2026", 0, 2026),
        MonthSheet("Feb 2026", 1, 2026),
        MonthSheet("Jan", 0),
        MonthSheet("Feb", 1),
        MonthSheet("Nov", 10),
    ]
    assert sheets_from_current_month(sheets, TODAY) == ["Feb 2026", "Feb", "Nov"]


# =============================================================================
# SORTING
# =============================================================================


def row(name="", date_ms=None, start_ms=None, ticket=""):
    return NormalizedRow(name=name, ticket=ticket, ms=Timestamps(date_ms=date_ms, start_ms=start_ms))


def test_sort_toggle():
    state = SortState()
    state.toggle("Date")
    assert (state.column, state.direction) == ("Date", "desc")
    state.toggle("Date")
    assert (state.column, state.direction) == ("Date", "asc")
    state.toggle("Name")
    assert (state.column, state.direction) == ("Name", "asc")


def test_sort_toggle_rejects_unknown_column():
    with pytest.raises(ValidationError):
        SortState().toggle("Color")


def test_date_columns_sort_by_timestamp_with_missing_last():
    rows = [row("b", date_ms=200), row("none"), row("a", date_ms=100), row("c", date_ms=300)]

    ascending = sort_rows(rows, SortState("Date", "asc"))
    descending = sort_rows(rows, SortState("Date", "desc"))

    assert [r.name for r in ascending] == ["a", "b", "c", "none"]
    assert [r.name for r in descending] == ["c", "b", "a", "none"]


def test_text_columns_sort_case_insensitively():
    rows = [row("bob"), row("Alice"), row("carl"), row("alex")]
    assert [r.name for r in sort_rows(rows, SortState("Name", "asc"))] == ["alex", "Alice", "bob", "carl"]


def test_numeric_text_sorts_numerically():
    rows = [row(ticket="10"), row(ticket="9"), row(ticket="100")]
    assert [r.ticket for r in sort_rows(rows, SortState("Ticket", "asc"))] == ["9", "10", "100"]
    assert [r.ticket for r in sort_rows(rows, SortState("Ticket", "desc"))] == ["100", "10", "9"]


def test_sort_does_not_mutate_input():
    rows = [row("b"), row("a")]
    sort_rows(rows, SortState("Name", "asc"))
    assert [r.name for r in rows] == ["b", "a"]


# =============================================================================
# PAGINATION
# =============================================================================


@pytest.mark.parametrize(
    "current, total, expected",
    [
        (1, 1, [1]),
        (1, 10, [1, 2, 3, 4, 5]),
        (5, 10, [3, 4, 5, 6, 7]),
        (10, 10, [6, 7, 8, 9, 10]),
        (2, 3, [1, 2, 3]),
    ],
)
def test_page_window(current, total, expected):
    assert page_window(current, total) == expected


def test_paginate_clamps_and_disables_bounds():
    rows = [row(str(i)) for i in range(23)]

    first = paginate(rows, 0, 10)
    assert first.page == 1
    assert [r.name for r in first.rows] == [str(i) for i in range(10)]
    assert first.controls()["first"]["disabled"] and first.controls()["prev"]["disabled"]
    assert not first.controls()["next"]["disabled"]

    last = paginate(rows, 99, 10)
    assert last.page == 3
    assert len(last.rows) == 3
    assert last.controls()["last"]["disabled"]


def test_paginate_empty_has_one_page():
    page = paginate([], 1, 15)
    assert page.total_pages == 1
    assert page.rows == []


# =============================================================================
# LOADER / QUEUE / SCORECARDS
# =============================================================================


def test_loader_counter_never_negative():
    loader = LoaderCounter()
    loader.show()
    loader.show()
    loader.hide()
    assert loader.visible
    loader.hide()
    loader.hide()
    assert loader.pending == 0
    assert not loader.visible


def test_refresh_queue_coalesces_rapid_triggers():
    ran = []

    async def run():
        queue = RefreshQueue(debounce_seconds=0.02)
        for i in range(5):
            queue.trigger(lambda i=i: record(i))
        await queue.join()
        return queue

    async def record(i):
        ran.append(i)

    queue = asyncio.run(run())
    assert ran == [4]
    assert queue.runs == 1
    assert not queue.loader.visible


def test_refresh_queue_runs_one_job_at_a_time():
    events = []
    active = []

    async def job(name):
        active.append(name)
        assert len(active) == 1
        events.append(f"start {name}")
        await asyncio.sleep(0.05)
        events.append(f"end {name}")
        active.remove(name)

    async def run():
        queue = RefreshQueue(debounce_seconds=0.01)
        queue.trigger(lambda: job("a"))
        await asyncio.sleep(0.02)
        assert queue.busy
        assert queue.loader.visible
        queue.trigger(lambda: job("b"))
        queue.trigger(lambda: job("c"))
        await queue.join()
        return queue

    queue = asyncio.run(run())
    assert events == ["start a", "end a", "start c", "end c"]
    assert queue.runs == 2


def test_refresh_queue_survives_failing_job():
    async def boom():
        raise RuntimeError("boom")

    async def run():
        queue = RefreshQueue(debounce_seconds=0)
        queue.trigger(boom)
        await queue.join()
        return queue

    queue = asyncio.run(run())
    assert queue.runs == 1
    assert not queue.busy


def test_scorecards_skip_identical_counts():
    cards = Scorecards()
    assert cards.update([{"name": "Jan", "count": 2}])
    assert not cards.update([{"name": "Jan", "count": 2}])
    assert cards.update([{"name": "Jan", "count": 3}])
    assert cards.renders == 2


# =============================================================================
# CONTROLLER
# =============================================================================


def make_controller(backend, fixed_now, **kwargs):
    return DashboardController(backend, tzinfo=NEW_YORK, clock=fixed_now, debounce_seconds=0, **kwargs)


def test_first_paint_loads_cards_and_default_rows(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now)
    asyncio.run(controller.first_paint())

    assert controller.month_names == ["Jan", "Feb", "Mar"]
    assert controller.scorecards.items == [
        {"name": "Jan", "count": 2},
        {"name": "Feb", "count": 3},
        {"name": "Mar", "count": 2},
    ]
    view = controller.render()
    assert view["mode"] == "default"
    # Booked rows from Feb 10 onward, in Feb and later sheets
    assert [r[1] for r in view["rows"]] == ["Eve", "Gus", "Hal", "Ida"]
    assert view["summary"] == "Upcoming (this year): 4 BOOKED"
    assert view["column_labels"][3] == "StartTime (EST)"


def test_month_policy_limits_default_view(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now, policy="month")
    asyncio.run(controller.first_paint())
    assert [r.name for r in controller.rows] == ["Eve", "Gus"]


def test_select_month_shows_full_sheet(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now)

    async def run():
        await controller.first_paint()
        controller.select_month("Feb")
        await controller.queue.join()

    asyncio.run(run())
    assert controller.mode == ViewMode.SINGLE_MONTH
    assert [r.name for r in controller.rows] == ["Dee", "Eve", "Fay", "Gus"]
    assert controller.render()["label"] == "Feb"
    assert controller.render()["summary"] == "Feb: 4 rows, 3 BOOKED"


def test_single_month_booked_only(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now, single_month_booked_only=True)

    async def run():
        await controller.load_sheet_names()
        controller.enter_month("Jan")
        await controller.load_rows()

    asyncio.run(run())
    assert [r.name for r in controller.rows] == ["Ann", "Cid"]
    assert controller.summary() == "Jan: 2 BOOKED"


def test_select_unknown_month_rejected(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now)
    asyncio.run(controller.load_sheet_names())
    with pytest.raises(ValidationError):
        controller.select_month("Logs")


def test_closing_monthly_panel_returns_to_default(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now)

    async def run():
        await controller.first_paint()
        controller.set_monthly_panel(True)
        controller.select_month("Jan")
        await controller.queue.join()
        assert controller.mode == ViewMode.SINGLE_MONTH
        controller.set_monthly_panel(False)
        await controller.queue.join()

    asyncio.run(run())
    assert controller.mode == ViewMode.DEFAULT
    assert controller.active_month is None
    assert [r.name for r in controller.rows] == ["Eve", "Gus", "Hal", "Ida"]


def test_opening_yearly_panel_returns_to_default(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now)

    async def run():
        await controller.load_sheet_names()
        controller.enter_month("Mar")
        controller.set_yearly_panel(True)
        await controller.queue.join()

    asyncio.run(run())
    assert controller.mode == ViewMode.DEFAULT


def test_reload_resets_sort_and_page(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now, page_size=10)

    async def run():
        await controller.first_paint()
        controller.click_header("Name")
        controller.click_header("Name")
        controller.go_to_page(3)
        controller.request_reload()
        await controller.queue.join()

    asyncio.run(run())
    assert (controller.sort.column, controller.sort.direction) == ("Date", "asc")
    assert controller.page == 1


def test_set_sort_is_absolute(fake_backend, fixed_now):
    controller = make_controller(fake_backend, fixed_now)
    asyncio.run(controller.first_paint())

    controller.set_sort("Date", "desc")
    assert [r[1] for r in controller.render()["rows"]] == ["Ida", "Hal", "Gus", "Eve"]
    controller.set_sort("Date", "desc")
    assert controller.sort.direction == "desc"
    controller.set_sort("StartTime", "asc")
    assert controller.render()["rows"][0][1] == "Eve"


def test_failed_counts_render_notice_instead_of_crashing(workbook, fixed_now):
    backend = FakeBackend(workbook, errors={"Mar": UpstreamError(500, "boom")})
    controller = make_controller(backend, fixed_now)

    asyncio.run(controller.first_paint())

    assert controller.scorecards.error == "Failed to load scorecards"
    assert controller.rows == []
    assert controller.render()["notice"] == "Failed to load bookings"


def test_failed_sheet_names_means_no_months(workbook, fixed_now):
    backend = FakeBackend(workbook, errors={"names": UpstreamError(503, "down")})
    controller = make_controller(backend, fixed_now)

    asyncio.run(controller.first_paint())

    assert controller.month_sheets == []
    assert controller.rows == []
    assert controller.notice == "Failed to load months"
