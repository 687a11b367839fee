"""Rendered bookings table endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_backend
from api.models.responses import ViewResponse
from core.config import DEFAULT_PAGE_SIZE, DEFAULT_VIEW_POLICY
from core.validation import parse_page_size, parse_sort_direction, parse_view_policy
from services.backends import SheetBackend
from services.selector import parse_month_sheets
from services.view import DashboardController

router = APIRouter()


@router.get("/view", response_model=ViewResponse)
async def view(
    backend: SheetBackend = Depends(get_backend),
    sheet: Annotated[
        str | None, Query(description="Month sheet; omit for the default upcoming view")
    ] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query()] = DEFAULT_PAGE_SIZE,
    sort: Annotated[str, Query(description="Column to sort by")] = "Date",
    direction: Annotated[str, Query()] = "asc",
    policy: Annotated[str, Query(description="'year' or 'month' default window")] = DEFAULT_VIEW_POLICY,
):
    """
    One page of the bookings table.

    Without `sheet`, shows booked rows from today through the end of the
    year (or month) across current and future month sheets.
    """
    controller = DashboardController(
        backend,
        policy=parse_view_policy(policy),
        page_size=parse_page_size(page_size),
    )
    controller.month_sheets = parse_month_sheets(await backend.list_worksheet_names())
    if sheet:
        controller.enter_month(sheet.strip())
    await controller.load_rows()

    controller.set_sort(sort, parse_sort_direction(direction))
    controller.go_to_page(page)
    return controller.render()
