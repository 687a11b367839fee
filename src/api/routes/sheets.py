"""Worksheet and booked-count endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_backend
from api.models.responses import MonthCountResponse, SheetDataResponse
from core.validation import require_query_value
from services.aggregator import booked_counts
from services.backends import SheetBackend
from services.normalizer import drop_blank_rows, normalize
from services.selector import select_month_sheets

router = APIRouter()


@router.get("/sheetNames", response_model=list[str])
async def sheet_names(
    backend: SheetBackend = Depends(get_backend),
    months: Annotated[
        bool, Query(description="Only month sheets, in chronological order")
    ] = False,
):
    """Worksheet (tab) names of the spreadsheet."""
    names = await backend.list_worksheet_names()
    return select_month_sheets(names) if months else names


@router.get("/sheetData", response_model=SheetDataResponse)
async def sheet_data(
    backend: SheetBackend = Depends(get_backend),
    sheet: Annotated[str | None, Query(description="Worksheet name")] = None,
):
    """
    Raw used range of one worksheet.

    Blank rows are dropped; `ms` holds the decoded date/start/end timestamps
    for each remaining row, in the same order.
    """
    sheet_name = require_query_value("sheet", sheet)
    used_range = await backend.fetch_used_range(sheet_name)

    rows = drop_blank_rows(used_range["rows"])
    normalized = normalize(used_range["headers"], rows, sheet=sheet_name)
    return SheetDataResponse(
        sheet=sheet_name,
        headers=used_range["headers"],
        rows=rows,
        ms=[
            {"dateMs": row.ms.date_ms, "startMs": row.ms.start_ms, "endMs": row.ms.end_ms}
            for row in normalized
        ],
    )


@router.get("/bookedCounts", response_model=list[MonthCountResponse])
async def get_booked_counts(backend: SheetBackend = Depends(get_backend)):
    """BOOKED row count per month sheet, in chronological order."""
    names = await backend.list_worksheet_names()
    return await booked_counts(backend, select_month_sheets(names))
