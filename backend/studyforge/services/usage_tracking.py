"""
Usage Telemetry Sink

Append-only recorder for model service calls. Every generation call, success
or failure, produces one LLMUsage that lands here as an `api_usage_logs` row.

Writing telemetry must never affect generation: database errors are logged
and swallowed, and `log_usage` returns None in that case.

Usage:
    from studyforge.services.usage_tracking import UsageTracker

    tracker = UsageTracker()
    await tracker.log_usage(usage)
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studyforge.db.models import ApiUsageLog
from studyforge.models.usage import LLMUsage

logger = logging.getLogger(__name__)


class UsageTracker:
    """
    Persists LLMUsage records.

    Args:
        session_maker: Session factory for writes outside a caller's
            transaction (defaults to the application's)
    """

    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        self._session_maker = session_maker

    def _sessions(self) -> async_sessionmaker:
        if self._session_maker is None:
            from studyforge.db.base import async_session_maker

            self._session_maker = async_session_maker
        return self._session_maker

    async def log_usage(
        self, usage: LLMUsage, session: Optional[AsyncSession] = None
    ) -> Optional[ApiUsageLog]:
        """
        Append a usage record.

        Args:
            usage: LLMUsage from a generation call
            session: Optional existing database session (flushed, not committed)

        Returns:
            Created ApiUsageLog row, or None if the write failed
        """

        async def _log(session: AsyncSession) -> ApiUsageLog:
            log_entry = ApiUsageLog(
                request_id=usage.request_id,
                operation_type=usage.operation,
                model=usage.model,
                provider=usage.provider,
                credential_index=usage.credential_index,
                document_id=usage.document_id,
                prompt_tokens=usage.prompt_tokens or 0,
                completion_tokens=usage.completion_tokens or 0,
                total_tokens=usage.total_tokens or 0,
                cost_usd=usage.cost_usd,
                latency_ms=usage.latency_ms,
                success=usage.success,
                error_message=usage.error_message,
            )
            session.add(log_entry)
            await session.flush()

            logger.debug(f"Logged usage: {usage}")
            return log_entry

        try:
            if session:
                return await _log(session)
            async with self._sessions()() as session:
                result = await _log(session)
                await session.commit()
                return result
        except Exception as e:
            logger.error(f"Failed to record usage for {usage.operation} ({usage.request_id}): {e}")
            return None
