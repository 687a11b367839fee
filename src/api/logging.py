"""Logging setup and per-request log records for the API."""

import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from fastapi import Request

from core.config import LOG_LEVEL
from core.errors import ErrorCodes

logger = logging.getLogger("api.requests")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging with a console handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)

    # Azure SDK logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)


@dataclass
class RequestLog:
    """Captured request/response data for logging."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    endpoint: str = ""
    method: str = ""
    query: str = ""
    client_ip: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def log_request(log: RequestLog) -> None:
    """Emit one record per request; warnings for 4xx, errors for 5xx."""
    if log.status_code >= 500:
        level = logging.ERROR
    elif log.status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(
        level,
        "%s %s -> %d (%d ms)%s",
        log.method,
        log.endpoint,
        log.status_code,
        log.processing_time_ms,
        f" [{log.error_code}] {log.error_message}" if log.error_code else "",
        extra={"request": asdict(log)},
    )


async def request_logging_middleware(request: Request, call_next):
    """Time each request and log its outcome."""
    start_time = time.time()
    request_log = RequestLog(
        endpoint=request.url.path,
        method=request.method,
        query=request.url.query,
        client_ip=get_client_ip(request),
    )
    try:
        response = await call_next(request)
    except Exception as e:
        request_log.status_code = 500
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)
        raise
    else:
        request_log.status_code = response.status_code
        request_log.error_code = getattr(request.state, "error_code", None)
        request_log.error_message = getattr(request.state, "error_message", None)
        return response
    finally:
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        log_request(request_log)
