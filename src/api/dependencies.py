"""FastAPI dependencies for shared resources."""

from fastapi import Request

from core.errors import DashboardError
from services.backends import SheetBackend


def get_backend(request: Request) -> SheetBackend:
    """
    Backend created at startup.

    Raises:
        DashboardError: the error raised while creating the backend, e.g.
            AuthError when credentials are not configured
    """
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        error = getattr(request.app.state, "backend_error", None)
        raise error or DashboardError("Sheet backend is not configured")
    return backend
