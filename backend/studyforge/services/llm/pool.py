"""
Model Client Pool

Holds the configured API credentials for the model service and selects one
per call in round-robin order. The cursor is shared by every flow in the
process and advances on every call, successful or not, so load spreads
across all keys.

Failover:
    RateLimited  -> immediately retried on the next credential, at most once
                    per credential, no backoff (backoff is the RetryController's job)
    Unavailable  -> surfaced to the caller (retryable upstream)
    Other        -> surfaced to the caller (fail fast)
    no keys      -> NoCredentialsError before anything is attempted

Usage:
    from studyforge.services.llm.pool import get_model_pool

    pool = get_model_pool()
    response = await pool.acquire_and_call(lambda credential: call_model(credential))
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from studyforge.config import settings
from studyforge.middleware.error_handling import (
    NoCredentialsError,
    RateLimitedError,
    ServiceError,
    ServiceUnavailableError,
    UpstreamModelError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS_CODES = {429}
UNAVAILABLE_STATUS_CODES = {408, 500, 502, 503, 504}

RATE_LIMIT_PATTERN = re.compile(
    r"\b429\b|too many requests|rate[ _-]?limit|quota|resource_exhausted", re.IGNORECASE
)
UNAVAILABLE_PATTERN = re.compile(
    r"\b50[0234]\b|overloaded|service unavailable|internal server error|bad gateway"
    r"|gateway timeout|timed out|timeout|connection error",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ModelCredential:
    """One API key and the model it is used with."""

    index: int
    api_key: str
    model: str

    @property
    def label(self) -> str:
        """Log-safe identifier (never includes the key itself)."""
        return f"key#{self.index}"

    def __repr__(self) -> str:
        return f"ModelCredential(index={self.index}, model={self.model!r})"


def _status_code(error: BaseException) -> Optional[int]:
    for candidate in (error, getattr(error, "response", None)):
        code = getattr(candidate, "status_code", None)
        if isinstance(code, int):
            return code
    return None


def classify_error(error: BaseException) -> ServiceError:
    """
    Map a provider exception onto the error taxonomy.

    Structured status codes win; message patterns are the fallback for
    providers that only put the reason in the text. Errors that are already
    classified pass through unchanged.

    Args:
        error: Exception raised by a model call

    Returns:
        RateLimitedError, ServiceUnavailableError, or UpstreamModelError
    """
    if isinstance(error, ServiceError):
        return error

    message = str(error) or type(error).__name__
    status = _status_code(error)

    if status in RATE_LIMIT_STATUS_CODES:
        return RateLimitedError(message, details={"status_code": status})
    if status in UNAVAILABLE_STATUS_CODES:
        return ServiceUnavailableError(message, details={"status_code": status})

    if RATE_LIMIT_PATTERN.search(message):
        return RateLimitedError(message)
    if isinstance(error, (TimeoutError, ConnectionError)) or UNAVAILABLE_PATTERN.search(message):
        return ServiceUnavailableError(message)

    return UpstreamModelError(message, details={"status_code": status} if status else None)


def build_credentials(api_keys: Sequence[str], model: str) -> list[ModelCredential]:
    """Build pool credentials from raw keys, dropping blanks."""
    keys = [key.strip() for key in api_keys if key and key.strip()]
    return [ModelCredential(index=i, api_key=key, model=model) for i, key in enumerate(keys)]


class ModelClientPool:
    """
    Round-robin pool of model service credentials.

    The cursor is guarded by a lock only while it is read and advanced;
    the lock is never held across a network call.
    """

    def __init__(self, credentials: Sequence[ModelCredential]):
        self._credentials = list(credentials)
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_keys(cls, api_keys: Sequence[str], model: str) -> "ModelClientPool":
        return cls(build_credentials(api_keys, model))

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def credentials(self) -> list[ModelCredential]:
        return list(self._credentials)

    def next_credential(self) -> ModelCredential:
        """
        Return the credential under the cursor and advance it.

        Raises:
            NoCredentialsError: If the pool is empty
        """
        if not self._credentials:
            raise NoCredentialsError(
                "No model service API keys configured (set GEMINI_API_KEYS)"
            )
        with self._lock:
            credential = self._credentials[self._cursor % len(self._credentials)]
            self._cursor = (self._cursor + 1) % len(self._credentials)
        return credential

    async def acquire_and_call(
        self,
        operation: Callable[[ModelCredential], Awaitable[T]],
    ) -> T:
        """
        Run `operation` against the next credential in rotation.

        On a rate-limit response with more than one credential configured,
        the same operation is re-run on the following credential right
        away, at most once per credential.

        Args:
            operation: Async callable taking the credential to use

        Returns:
            Whatever `operation` returns

        Raises:
            NoCredentialsError: If the pool is empty
            RateLimitedError: If every credential was rate limited
            ServiceUnavailableError: On overload/5xx/timeouts
            UpstreamModelError: On any other model service error
        """
        attempts = max(len(self._credentials), 1)
        last_error: Optional[ServiceError] = None

        for _ in range(attempts):
            credential = self.next_credential()
            try:
                return await operation(credential)
            except NoCredentialsError:
                raise
            except Exception as e:
                error = classify_error(e)
                if isinstance(error, RateLimitedError) and len(self._credentials) > 1:
                    logger.warning(
                        f"Rate limited on {credential.label}, rotating to next credential"
                    )
                    last_error = error
                    continue
                if error is e:
                    raise
                raise error from e

        raise last_error


# =============================================================================
# Singleton Access
# =============================================================================

_pool: Optional[ModelClientPool] = None
_pool_lock = threading.Lock()


def get_model_pool() -> ModelClientPool:
    """
    Get or create the process-wide credential pool from settings.

    An empty key list still yields a pool; it raises NoCredentialsError on
    first use rather than at import time.
    """
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = ModelClientPool.from_keys(settings.api_keys, settings.GENERATION_MODEL)
                logger.info(f"Model client pool initialized with {len(_pool)} credential(s)")
    return _pool


def reset_model_pool() -> None:
    """Drop the cached pool (tests, key rotation)."""
    global _pool
    _pool = None
