"""API Pydantic models."""

from .responses import (
    ErrorResponse,
    HealthResponse,
    MonthCountResponse,
    SheetDataResponse,
    VersionResponse,
    ViewResponse,
)

__all__ = [
    "HealthResponse",
    "VersionResponse",
    "MonthCountResponse",
    "SheetDataResponse",
    "ViewResponse",
    "ErrorResponse",
]
