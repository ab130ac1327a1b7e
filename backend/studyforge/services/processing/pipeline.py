"""
Processing Pipelines

Background pipelines that drive the processing state machine. They run on a
worker (see services/tasks.py), detached from the request that accepted the
document; callers observe progress only by polling status.

Document pipeline stages, strictly sequential:
1. Enter processing
2. Extract text (or fall back to sending the file)
3. Summarize -> persist, has_summary
4. Generate questions -> persist, has_questions
5. Complete

Any exception at any stage moves the record to failed with the error's
message; the pipeline never retries itself.

Usage:
    from studyforge.services.processing import run_document_pipeline, PipelineConfig

    result = await run_document_pipeline(document_id, PipelineConfig(total_questions=10))
"""

import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from studyforge.db.base import task_session_maker
from studyforge.db.models import OriginalityCheck
from studyforge.enums import OriginalityCheckStatus, ProcessingStatus
from studyforge.middleware.error_handling import NotFoundError
from studyforge.services.generation.originality import run_originality_check
from studyforge.services.generation.questions import generate_questions_from_source
from studyforge.services.generation.source import resolve_source
from studyforge.services.generation.summarizer import summarize_source
from studyforge.services.llm.client import GenerationClient
from studyforge.services.processing import state
from studyforge.services.storage import DocumentStore
from studyforge.services.usage_tracking import UsageTracker

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """
    Configuration for a document pipeline run.

    Attributes:
        generate_summary: Run the summary stage
        generate_questions: Run the question stage
        total_questions: Question target (None uses the configured default)
        retrigger: Explicit re-run of a failed document
    """

    generate_summary: bool = True
    generate_questions: bool = True
    total_questions: Optional[int] = None
    retrigger: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def task_generation_client(session_maker: async_sessionmaker) -> GenerationClient:
    """
    Generation client whose usage records are written through `session_maker`.

    Worker tasks each run on a fresh event loop, so telemetry must go through
    the task's own session factory rather than the pooled application one.
    """
    return GenerationClient(usage_tracker=UsageTracker(session_maker))


async def run_document_pipeline(
    document_id: str,
    config: Optional[PipelineConfig] = None,
    *,
    session_maker: Optional[async_sessionmaker] = None,
    store: Optional[DocumentStore] = None,
    client: Optional[GenerationClient] = None,
) -> dict[str, Any]:
    """
    Run summary and question generation for a document to a terminal state.

    Args:
        document_id: Document to process
        config: Stage selection and parameters
        session_maker: Session factory (defaults to the task session factory)
        store: Document store (defaults to the upload store)
        client: Generation client (defaults to one logging usage via session_maker)

    Returns:
        Status dict: status, document_id, and either stage results or error
    """
    config = config or PipelineConfig()
    session_maker = session_maker or task_session_maker
    store = store or DocumentStore()
    start_time = time.perf_counter()

    async with session_maker() as session:
        document = await state.begin_processing(session, document_id, retrigger=config.retrigger)
        storage_ref = document.storage_ref
        await session.commit()

    logger.info(f"Starting processing for document {document_id}")
    result: dict[str, Any] = {"document_id": document_id}

    try:
        client = client or task_generation_client(session_maker)
        source = await resolve_source(storage_ref, store)

        # =====================================================================
        # Stage 1: Summary
        # =====================================================================
        if config.generate_summary:
            summary = await summarize_source(source, client, document_id)
            async with session_maker() as session:
                await state.record_summary(session, document_id, summary)
                await session.commit()
            result["summary_chars"] = len(summary)

        # =====================================================================
        # Stage 2: Questions
        # =====================================================================
        if config.generate_questions:
            generated = await generate_questions_from_source(
                source, client, total=config.total_questions, document_id=document_id
            )
            async with session_maker() as session:
                await state.record_questions(session, document_id, generated)
                await session.commit()
            result["questions"] = len(generated.questions)
            result["question_quality"] = generated.quality.value
            if generated.is_degraded:
                logger.warning(
                    f"Document {document_id} questions are degraded ({generated.quality.value})"
                )

        async with session_maker() as session:
            await state.complete_processing(session, document_id)
            await session.commit()

    except Exception as e:
        logger.error(f"Processing failed for document {document_id}: {e}")
        async with session_maker() as session:
            await state.fail_processing(session, document_id, str(e))
            await session.commit()
        result.update(status=ProcessingStatus.FAILED.value, error=str(e))
        return result

    processing_time = time.perf_counter() - start_time
    logger.info(f"Processing completed for document {document_id} in {processing_time:.2f}s")
    result.update(
        status=ProcessingStatus.COMPLETED.value,
        processing_time_seconds=round(processing_time, 2),
    )
    return result


async def run_originality_pipeline(
    check_id: str,
    *,
    session_maker: Optional[async_sessionmaker] = None,
    store: Optional[DocumentStore] = None,
    client: Optional[GenerationClient] = None,
) -> dict[str, Any]:
    """
    Run an originality check and record its report or failure.

    Args:
        check_id: OriginalityCheck to run
        session_maker: Session factory (defaults to the task session factory)
        store: Document store (defaults to the upload store)
        client: Generation client (defaults to one logging usage via session_maker)

    Returns:
        Status dict: status, check_id, and overall_score or error
    """
    session_maker = session_maker or task_session_maker
    client = client or task_generation_client(session_maker)

    async with session_maker() as session:
        check = (
            await session.execute(select(OriginalityCheck).where(OriginalityCheck.id == check_id))
        ).scalar_one_or_none()
        if check is None:
            raise NotFoundError(f"Originality check {check_id} not found")
        storage_ref = check.storage_ref

    logger.info(f"Starting originality check {check_id}")

    try:
        report = await run_originality_check(
            storage_ref, store=store, client=client, document_id=check_id
        )
    except Exception as e:
        logger.error(f"Originality check {check_id} failed: {e}")
        async with session_maker() as session:
            check = await session.get(OriginalityCheck, check_id)
            check.status = OriginalityCheckStatus.FAILED.value
            check.error_message = str(e)
            check.completed_at = datetime.now(timezone.utc)
            await session.commit()
        return {"check_id": check_id, "status": OriginalityCheckStatus.FAILED.value, "error": str(e)}

    async with session_maker() as session:
        check = await session.get(OriginalityCheck, check_id)
        check.status = OriginalityCheckStatus.COMPLETED.value
        check.word_count = report.word_count
        check.overall_score = report.overall_score
        check.report = report.model_dump(mode="json")
        check.completed_at = datetime.now(timezone.utc)
        await session.commit()

    return {
        "check_id": check_id,
        "status": OriginalityCheckStatus.COMPLETED.value,
        "overall_score": report.overall_score,
    }
