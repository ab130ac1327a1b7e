"""
Error Taxonomy and Error Handling Middleware

Every failure the generation pipeline can surface is a ServiceError subclass,
so the same exception type drives retry decisions inside the pipeline and the
HTTP status when it reaches the API.

Taxonomy:
    NoCredentialsError        fatal misconfiguration, never retried
    RateLimitedError          retryable: rotate credential, then back off
    ServiceUnavailableError   retryable: back off (5xx, overloaded, timeouts)
    UpstreamModelError        non-retryable model service failure
    GenerationFailedError     terminal for a stage (retries exhausted)
    InsufficientContentError  caller input too small, never retried
    ExtractionError           document could not be turned into text
    InvalidTransitionError    processing state machine rejected a move

Usage:
    from studyforge.middleware.error_handling import setup_error_handling

    setup_error_handling(app, debug=settings.DEBUG)

    raise InsufficientContentError("Document has too little text")
"""

import logging
import traceback
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Database connection failed", status_code=503)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        details: dict = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class GenerationFailedError(ServiceError):
    """
    A generation stage could not produce a result.

    Raised when retries are exhausted or the model service returned a
    non-retryable error. Terminal for the stage that raised it.
    """

    status_code = 502
    error_code = "generation_failed"


class NoCredentialsError(GenerationFailedError):
    """
    No API credentials configured for the model service.

    A generation failure that happens before any call is attempted; never
    retried.
    """

    status_code = 503
    error_code = "no_credentials"


class UpstreamModelError(ServiceError):
    """Non-retryable error returned by the model service."""

    status_code = 502
    error_code = "upstream_error"


class RateLimitedError(UpstreamModelError):
    """
    Model service rejected the call for quota or rate reasons.

    Retryable: the pool rotates to the next credential first.
    """

    status_code = 429
    error_code = "rate_limited"


class ServiceUnavailableError(UpstreamModelError):
    """
    Model service is overloaded, erroring, or unreachable.

    Retryable with backoff.
    """

    status_code = 503
    error_code = "service_unavailable"


class InsufficientContentError(ServiceError):
    """Input document has too little content for the requested operation."""

    status_code = 422
    error_code = "insufficient_content"


class ExtractionError(ServiceError):
    """Text could not be extracted from a stored document."""

    status_code = 422
    error_code = "extraction_failed"


class InvalidTransitionError(ServiceError):
    """A processing record was asked to move to a state it cannot reach."""

    status_code = 409
    error_code = "invalid_transition"


class ValidationError(ServiceError):
    """
    Data validation error.

    Raised when input data fails validation.
    """

    status_code = 422
    error_code = "validation_error"


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a requested resource doesn't exist.
    """

    status_code = 404
    error_code = "not_found"


RETRYABLE_ERRORS = (RateLimitedError, ServiceUnavailableError)


def is_retryable_error(error: BaseException) -> bool:
    """Whether a failed call may be attempted again after backoff."""
    return isinstance(error, RETRYABLE_ERRORS)


# =============================================================================
# Error Handling Middleware
# =============================================================================


def _service_error_content(error: ServiceError, error_id: str, debug: bool) -> dict:
    return {
        "error": error.error_code,
        "message": error.message,
        "error_id": error_id,
        "details": error.details if debug else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    - Catches unhandled exceptions
    - Logs with correlation ID
    - Returns consistent error format
    - Hides internal details in production
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors."""
        error_id = str(uuid4())[:8]

        try:
            return await call_next(request)

        except HTTPException:
            # Let FastAPI handle HTTP exceptions
            raise

        except Exception as e:
            logger.error(
                f"[{error_id}] Unhandled error: {type(e).__name__}: {e}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "traceback": traceback.format_exc(),
                },
            )

            content = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "error_id": error_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            if self.debug:
                content["details"] = {
                    "exception": type(e).__name__,
                    "message": str(e),
                    "traceback": traceback.format_exc(),
                }

            return JSONResponse(status_code=500, content=content)


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    ServiceErrors raised by route handlers are answered by an exception
    handler; anything else falls through to the middleware.

    Args:
        app: FastAPI application instance
        debug: Whether to include details in responses
    """

    async def _handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        error_id = str(uuid4())[:8]
        logger.warning(f"[{error_id}] {exc.error_code} on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_service_error_content(exc, error_id, debug),
        )

    app.add_exception_handler(ServiceError, _handle_service_error)
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")
