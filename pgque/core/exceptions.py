import time
import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from pgque.config.logging import add_request_context, get_logger

logger = get_logger(__name__)

# Seconds a client should wait before retrying after the job store was unavailable
STORE_RETRY_AFTER_S = 5


class PgqueException(Exception):
    """Base exception for the job queue."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class StoreError(PgqueException):
    """Raised when the job store rejects an operation."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE, details)


class EnqueueError(StoreError):
    """Raised when a job cannot be inserted; never retried by the queue."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        PgqueException.__init__(
            self, message, status.HTTP_422_UNPROCESSABLE_ENTITY, details
        )


class UnknownJobType(PgqueException):
    """Raised when a stored job names a type with no registered class."""

    def __init__(self, job_type: str):
        self.job_type = job_type
        super().__init__(
            f"No job class registered for type: {job_type}",
            details={"type": job_type},
        )


class NotFoundError(PgqueException):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


def create_error_response(
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response envelope."""
    return {
        "ok": False,
        "error": {
            "message": message,
            "code": status_code,
            "details": details or {},
        },
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def create_success_response(
    data: Any, message: str | None = None, request_id: str | None = None
) -> dict[str, Any]:
    """Create standardized success response envelope."""
    return {
        "ok": True,
        "data": data,
        "message": message,
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _json_error(
    request: Request,
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(
            status_code=status_code,
            message=message,
            details=details,
            request_id=_request_id(request),
        ),
        headers=headers,
    )


async def pgque_exception_handler(request: Request, exc: PgqueException) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Application exception",
        exception=exc.__class__.__name__,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )

    headers = None
    if exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers = {"Retry-After": str(STORE_RETRY_AFTER_S)}

    return _json_error(request, exc.status_code, exc.message, exc.details, headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning("HTTP exception", status_code=exc.status_code, detail=exc.detail)
    return _json_error(request, exc.status_code, str(exc.detail), headers=exc.headers)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exception=exc.__class__.__name__,
        message=str(exc),
        exc_info=exc,
    )
    return _json_error(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with a correlation ID and logs its duration."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        add_request_context(
            request_id=request_id, method=request.method, path=request.url.path
        )

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.debug(
            "Request finished",
            status_code=response.status_code,
            elapsed_ms=round(elapsed_ms, 1),
        )
        return response
