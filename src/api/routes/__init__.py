"""API route modules."""

from .health import router as health_router
from .sheets import router as sheets_router
from .view import router as view_router

__all__ = ["health_router", "sheets_router", "view_router"]
