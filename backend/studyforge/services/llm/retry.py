"""
Retry Controller

Wraps credential-pool calls with bounded retries and exponential backoff for
transient model service failures (rate limits, overload, 5xx, timeouts).

Backoff:
    Wait before retry n (zero-based) is `base * 2**n`; with the default 2s
    base and 3 attempts that is 2s, then 4s. Each attempt goes through the
    pool, so retries also move on to the next credential.

Outcomes:
    success                   -> result returned, nothing surfaced
    retryable, budget left    -> sleep, try again
    retryable, budget spent   -> GenerationFailedError from the last error
    non-retryable upstream    -> GenerationFailedError immediately
    NoCredentialsError        -> propagates as-is (already a GenerationFailedError)

Usage:
    controller = RetryController(pool)
    response = await controller.with_retries(call_model)
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from studyforge.config import generation_settings
from studyforge.middleware.error_handling import (
    GenerationFailedError,
    UpstreamModelError,
    is_retryable_error,
)
from studyforge.services.llm.pool import ModelClientPool, ModelCredential

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryController:
    """
    Bounded exponential-backoff retries around a ModelClientPool.

    Args:
        pool: Credential pool every attempt goes through
        max_attempts: Default attempt budget (first try included)
        backoff_base_seconds: Wait before the first retry; doubles after
        sleep: Async sleep used between attempts (injectable for tests)
    """

    def __init__(
        self,
        pool: ModelClientPool,
        max_attempts: Optional[int] = None,
        backoff_base_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.pool = pool
        self.max_attempts = max_attempts or generation_settings.RETRY_MAX_ATTEMPTS
        self.backoff_base_seconds = (
            backoff_base_seconds
            if backoff_base_seconds is not None
            else generation_settings.RETRY_BACKOFF_BASE_SECONDS
        )
        self._sleep = sleep

    def _retrying(self, max_attempts: int) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base_seconds, exp_base=2),
            retry=retry_if_exception(is_retryable_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
        )

    async def with_retries(
        self,
        operation: Callable[[ModelCredential], Awaitable[T]],
        max_attempts: Optional[int] = None,
    ) -> T:
        """
        Run `operation` through the pool, retrying transient failures.

        Args:
            operation: Async callable taking the credential to use
            max_attempts: Override of the attempt budget for this call

        Returns:
            Whatever `operation` returns

        Raises:
            GenerationFailedError: Retries exhausted or non-retryable error
            NoCredentialsError: No credentials configured
        """
        attempts = max_attempts or self.max_attempts

        try:
            async for attempt in self._retrying(attempts):
                with attempt:
                    return await self.pool.acquire_and_call(operation)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(f"Model call failed after {attempts} attempts: {last_error}")
            raise GenerationFailedError(
                f"Model service call failed after {attempts} attempts: {last_error}",
                details={"attempts": attempts, "last_error": type(last_error).__name__},
            ) from last_error
        except GenerationFailedError:
            raise
        except UpstreamModelError as e:
            logger.error(f"Model call failed with non-retryable error: {e}")
            raise GenerationFailedError(
                f"Model service call failed: {e.message}",
                details={"last_error": type(e).__name__},
            ) from e
