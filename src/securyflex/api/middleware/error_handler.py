"""
Error Handler Middleware

Provides consistent error handling and response formatting.
Logs errors with correlation IDs for debugging.

PRIVACY: Error responses never echo request bodies, so reported
device positions cannot leak through error messages.
"""

import traceback
from uuid import uuid4

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from securyflex.config.logging_config import bind_correlation_id, clear_context, get_logger
from securyflex.services.location.errors import (
    ConsentStoreUnavailableError,
    LocationTrackingError,
    PersistenceFailedError,
)

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Provides:
    - Correlation ID tracking for all requests
    - Consistent error response format
    - Error logging with context
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request with error handling."""

        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as e:
            logger.error(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error_type=type(e).__name__,
                error_message=str(e),
                traceback=traceback.format_exc(),
            )

            # Return sanitized error response
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "correlation_id": correlation_id,
                    "message": "An unexpected error occurred. Please try again.",
                },
                headers={CORRELATION_HEADER: correlation_id},
            )

        finally:
            clear_context()


async def _storage_unavailable_handler(request: Request, exc: LocationTrackingError) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", None) or str(uuid4())
    logger.error(
        "Storage unavailable",
        path=request.url.path,
        error_type=type(exc).__name__,
        subject_id=exc.subject_id,
        original_error=str(exc.original_error) if exc.original_error else None,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": "Service unavailable",
            "correlation_id": correlation_id,
            "message": "Location data is temporarily unavailable. Please try again.",
        },
        headers={CORRELATION_HEADER: correlation_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map retryable storage failures to 503 responses."""
    app.add_exception_handler(PersistenceFailedError, _storage_unavailable_handler)
    app.add_exception_handler(ConsentStoreUnavailableError, _storage_unavailable_handler)
