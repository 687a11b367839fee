"""Pydantic response models for API endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    backend: str
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class VersionResponse(BaseModel):
    """API and backing-store versions."""

    version: str
    backend_version: str | None = None


class MonthCountResponse(BaseModel):
    name: str
    count: int


class RowTimestamps(BaseModel):
    dateMs: int | None = None
    startMs: int | None = None
    endMs: int | None = None


class SheetDataResponse(BaseModel):
    """Raw worksheet contents plus per-row timestamps."""

    sheet: str
    headers: list[str]
    rows: list[list[str | int | float | bool | None]]
    ms: list[RowTimestamps] = []


class PageLink(BaseModel):
    page: int
    disabled: bool


class PaginationResponse(BaseModel):
    page: int
    total_pages: int
    total_rows: int
    page_numbers: list[int]
    first: PageLink
    prev: PageLink
    next: PageLink
    last: PageLink


class SortResponse(BaseModel):
    column: str
    direction: str


class ViewResponse(BaseModel):
    """One rendered page of the bookings table."""

    mode: str
    sheet: str | None = None
    label: str
    summary: str
    timezone: str
    columns: list[str]
    column_labels: list[str]
    sort: SortResponse
    page_size: int
    rows: list[list[str]]
    pagination: PaginationResponse
    notice: str | None = None
    loading: bool = False


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    ok: bool = False
    error: str
    code: str
    details: list[str] = []
