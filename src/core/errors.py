"""
Error taxonomy shared by the backends, services and API layer.
"""

from core.config import ERROR_BODY_PREVIEW_CHARS


class ErrorCodes:
    """Error code constants used in the error envelope."""

    INVALID_REQUEST = "INVALID_REQUEST"
    AUTH_ERROR = "AUTH_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DashboardError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class AuthError(DashboardError):
    """Credentials are missing (500) or were rejected by the identity provider (401)."""

    code = ErrorCodes.AUTH_ERROR

    def __init__(self, message: str, rejected: bool = False):
        super().__init__(message)
        self.rejected = rejected
        self.status_code = 401 if rejected else 500


class UpstreamError(DashboardError):
    """The backing store answered with a non-success HTTP status."""

    status_code = 502
    code = ErrorCodes.UPSTREAM_ERROR

    def __init__(self, status: int | None, body: str = "", message: str | None = None):
        self.status = status
        self.body = truncate_body(body)
        super().__init__(
            message or f"Upstream request failed with status {status}",
            details=[self.body] if self.body else [],
        )

    @property
    def transient(self) -> bool:
        """5xx responses are worth retrying, everything else is not."""
        return self.status is not None and 500 <= self.status < 600


class MalformedResponseError(DashboardError):
    """The backing store answered, but not with the expected structure."""

    status_code = 502
    code = ErrorCodes.MALFORMED_RESPONSE


class ValidationError(DashboardError):
    """A request parameter is missing or invalid."""

    status_code = 400
    code = ErrorCodes.INVALID_REQUEST


def truncate_body(body) -> str:
    """Stringify and shorten an upstream body for diagnostics."""
    if body is None:
        return ""
    text = body if isinstance(body, str) else str(body)
    return text[:ERROR_BODY_PREVIEW_CHARS]
