"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.logging import request_logging_middleware, setup_logging
from api.models.responses import ErrorResponse
from api.routes import health_router, sheets_router, view_router
from core.config import API_DEBUG, API_VERSION, SHEET_BACKEND
from core.errors import DashboardError, ErrorCodes
from services.backends import create_backend

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    setup_logging()

    # Startup: build the backend unless one was injected (tests)
    if getattr(app.state, "backend", None) is None:
        try:
            app.state.backend = create_backend(SHEET_BACKEND)
            logger.info("Using '%s' sheet backend", app.state.backend.name)
        except DashboardError as e:
            # Requests fail with this error until configuration is fixed
            logger.error("Sheet backend unavailable: %s", e)
            app.state.backend = None
            app.state.backend_error = e

    yield


app = FastAPI(
    title="Booked Dashboard API",
    description="Booking-status dashboard endpoints backed by a hosted spreadsheet",
    version=API_VERSION,
    debug=API_DEBUG,
    lifespan=lifespan,
)

# CORS middleware (for development)
if API_DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.middleware("http")(request_logging_middleware)


@app.exception_handler(DashboardError)
async def dashboard_exception_handler(request: Request, exc: DashboardError):
    """Render dashboard errors in the standard envelope."""
    request.state.error_code = exc.code
    request.state.error_message = exc.message
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            code=exc.code,
            details=exc.details,
        ).model_dump(),
    )


def format_validation_error(error: dict) -> str:
    """'query.page: Input should be greater than or equal to 1'"""
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid value')}"


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render FastAPI's own parameter validation failures as 400 in the standard envelope."""
    details = [format_validation_error(error) for error in exc.errors()]
    request.state.error_code = ErrorCodes.INVALID_REQUEST
    request.state.error_message = "; ".join(details)
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error="Invalid request parameters",
            code=ErrorCodes.INVALID_REQUEST,
            details=details,
        ).model_dump(),
    )


# Global exception handler for unexpected errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with standard error format."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code=ErrorCodes.INTERNAL_ERROR,
            details=[],
        ).model_dump(),
    )


# Include routers
app.include_router(health_router)
app.include_router(sheets_router)
app.include_router(view_router)


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_DEBUG,
    )
