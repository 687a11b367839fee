"""
Booked row counting, per row set and per month worksheet.
"""

import asyncio
import logging
from datetime import date, tzinfo

from core.config import BOOKED_STATUS
from models.bookings import MonthCount, NormalizedRow
from services.backends import SheetBackend
from services.normalizer import normalize

logger = logging.getLogger(__name__)


def is_booked(flag: str | None) -> bool:
    """Booked flag check: ' booked ' counts, 'Pending' and '' do not."""
    return str(flag or "").strip().upper() == BOOKED_STATUS


def count_booked(rows: list[NormalizedRow]) -> int:
    return sum(1 for row in rows if is_booked(row.booked_flag))


async def fetch_normalized(
    backend: SheetBackend,
    sheet: str,
    tzinfo: tzinfo | None = None,
    today: date | None = None,
) -> list[NormalizedRow]:
    """Fetch one worksheet and normalize its rows."""
    used_range = await backend.fetch_used_range(sheet)
    return normalize(
        used_range["headers"], used_range["rows"], sheet=sheet, tzinfo=tzinfo, today=today
    )


async def fetch_sheets(
    backend: SheetBackend,
    sheets: list[str],
    tzinfo: tzinfo | None = None,
    today: date | None = None,
) -> list[list[NormalizedRow]]:
    """
    Fetch and normalize several worksheets concurrently.

    Results line up with `sheets`, whatever order the fetches complete in.
    """
    return list(
        await asyncio.gather(
            *(fetch_normalized(backend, sheet, tzinfo, today) for sheet in sheets)
        )
    )


async def booked_counts(
    backend: SheetBackend,
    sheets: list[str],
    tzinfo: tzinfo | None = None,
    today: date | None = None,
) -> list[MonthCount]:
    """Booked count for each month sheet, in the given (chronological) order."""
    per_sheet = await fetch_sheets(backend, sheets, tzinfo, today)
    counts: list[MonthCount] = [
        {"name": sheet, "count": count_booked(rows)}
        for sheet, rows in zip(sheets, per_sheet)
    ]
    logger.info(
        "Counted booked rows in %d sheet(s): %s",
        len(counts),
        ", ".join(f"{c['name']}={c['count']}" for c in counts),
    )
    return counts
