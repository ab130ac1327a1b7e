"""
Processing State Machine

Lifecycle of a document's processing record:

    pending ──> processing ──> completed
       │            │
       └──────> failed <┘
                  │
                  └──> processing   (explicit re-trigger only)

Within `processing` the record is updated in place as stages finish
(has_summary, then has_questions). Stages are persisted one at a time, so a
crash between them leaves "has summary, no questions" behind, reported as
`processing` if the failure handler never ran and `failed` if it did. That
window is known and kept; nothing here compensates for it.

Only the pipeline writes these records. Readers use get_processing_status,
which has no side effects.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studyforge.config import generation_settings
from studyforge.db.models import Document, Question
from studyforge.enums import ProcessingStatus
from studyforge.middleware.error_handling import InvalidTransitionError, NotFoundError
from studyforge.models.processing import ProcessingStatusSnapshot
from studyforge.models.questions import GeneratedQuestions

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[ProcessingStatus, set[ProcessingStatus]] = {
    ProcessingStatus.PENDING: {ProcessingStatus.PROCESSING, ProcessingStatus.FAILED},
    ProcessingStatus.PROCESSING: {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED},
    ProcessingStatus.FAILED: {ProcessingStatus.PROCESSING},
    ProcessingStatus.COMPLETED: set(),
}

# Transitions that need an explicit caller request
RETRIGGER_ONLY = {(ProcessingStatus.FAILED, ProcessingStatus.PROCESSING)}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(
    current: ProcessingStatus,
    target: ProcessingStatus,
    retrigger: bool = False,
) -> bool:
    """Whether a record in `current` may move to `target`."""
    if target not in ALLOWED_TRANSITIONS[current]:
        return False
    if (current, target) in RETRIGGER_ONLY and not retrigger:
        return False
    return True


def apply_transition(
    document: Document,
    target: ProcessingStatus,
    *,
    error: Optional[str] = None,
    retrigger: bool = False,
) -> None:
    """
    Move a document's processing record to `target`.

    Raises:
        InvalidTransitionError: If the move is not allowed from the current state
    """
    current = ProcessingStatus(document.processing_status)
    if not can_transition(current, target, retrigger):
        raise InvalidTransitionError(
            f"Document {document.id} cannot move from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )

    document.processing_status = target.value
    if target is ProcessingStatus.PROCESSING:
        document.processing_error = None
        document.has_summary = False
        document.has_questions = False
        document.processing_started_at = _utc_now()
        document.processing_completed_at = None
    elif target is ProcessingStatus.COMPLETED:
        document.processing_error = None
        document.processing_completed_at = _utc_now()
    elif target is ProcessingStatus.FAILED:
        document.processing_error = error or "Processing failed"
        document.processing_completed_at = _utc_now()

    logger.info(f"Document {document.id}: {current.value} -> {target.value}")


async def load_document(session: AsyncSession, document_id: str) -> Document:
    """
    Load a document by ID.

    Raises:
        NotFoundError: If no such document exists
    """
    result = await session.execute(select(Document).where(Document.id == document_id))
    document = result.scalar_one_or_none()
    if document is None:
        raise NotFoundError(f"Document {document_id} not found")
    return document


async def begin_processing(
    session: AsyncSession,
    document_id: str,
    retrigger: bool = False,
) -> Document:
    """Enter `processing` (from pending, or from failed when re-triggered)."""
    document = await load_document(session, document_id)
    apply_transition(document, ProcessingStatus.PROCESSING, retrigger=retrigger)
    await session.flush()
    return document


async def record_summary(session: AsyncSession, document_id: str, summary: str) -> Document:
    """Persist the summary stage."""
    document = await load_document(session, document_id)
    document.summary = summary
    document.has_summary = True
    await session.flush()
    return document


async def record_questions(
    session: AsyncSession,
    document_id: str,
    generated: GeneratedQuestions,
) -> Document:
    """Persist the question stage, replacing any earlier questions."""
    document = await load_document(session, document_id)

    await session.execute(delete(Question).where(Question.document_id == document_id))
    for position, question in enumerate(generated.questions, 1):
        session.add(
            Question(
                document_id=document_id,
                position=position,
                question_text=question.question_text,
                question_type=question.question_type.value,
                options=list(question.options),
                correct_answers=question.correct_indices,
                explanation=question.explanation,
                difficulty=question.difficulty.value,
            )
        )

    document.question_count = len(generated.questions)
    document.question_quality = generated.quality.value
    document.has_questions = bool(generated.questions)
    await session.flush()
    return document


async def complete_processing(session: AsyncSession, document_id: str) -> Document:
    document = await load_document(session, document_id)
    apply_transition(document, ProcessingStatus.COMPLETED)
    await session.flush()
    return document


async def fail_processing(session: AsyncSession, document_id: str, error: str) -> Document:
    document = await load_document(session, document_id)
    apply_transition(document, ProcessingStatus.FAILED, error=error)
    await session.flush()
    return document


def snapshot(document: Document, expected_questions: Optional[int] = None) -> ProcessingStatusSnapshot:
    """Status view of a loaded document."""
    return ProcessingStatusSnapshot(
        document_id=document.id,
        status=ProcessingStatus(document.processing_status),
        has_summary=document.has_summary,
        has_questions=document.has_questions,
        question_count=document.question_count or 0,
        expected_questions=expected_questions or generation_settings.QUESTIONS_TOTAL,
        question_quality=document.question_quality,
        error=document.processing_error
        if document.processing_status == ProcessingStatus.FAILED.value
        else None,
    )


async def get_processing_status(session: AsyncSession, document_id: str) -> ProcessingStatusSnapshot:
    """
    Read a document's processing status. Pure read: no writes, no side effects.

    Raises:
        NotFoundError: If no such document exists
    """
    return snapshot(await load_document(session, document_id))
