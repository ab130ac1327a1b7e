"""Middleware package."""

from studyforge.middleware.error_handling import (
    ErrorHandlingMiddleware,
    ServiceError,
    setup_error_handling,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "ServiceError",
    "setup_error_handling",
]
