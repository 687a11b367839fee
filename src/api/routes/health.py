"""Health check and version endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_backend
from api.models.responses import HealthResponse, VersionResponse
from core.config import API_VERSION, SHEET_BACKEND
from services.backends import SheetBackend

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint for monitoring.

    Returns 200 if a backend is configured, 503 otherwise. Does not call the
    backing store.
    """
    backend = getattr(request.app.state, "backend", None)
    timestamp = datetime.now(timezone.utc).isoformat()

    if backend is not None:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            backend=backend.name,
            timestamp=timestamp,
        )

    error = getattr(request.app.state, "backend_error", None)
    return JSONResponse(
        status_code=503,
        content=HealthResponse(
            status="unhealthy",
            version=API_VERSION,
            backend=SHEET_BACKEND,
            timestamp=timestamp,
            error=str(error) if error else "Sheet backend is not configured",
        ).model_dump(),
    )


@router.get("/version", response_model=VersionResponse)
async def version(backend: SheetBackend = Depends(get_backend)):
    """API version plus the backing store's own version, when it reports one."""
    return VersionResponse(version=API_VERSION, backend_version=await backend.get_version())
