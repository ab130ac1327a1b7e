"""
Processing API Router

Status polling, results, and explicit re-trigger for the document pipeline.
Pipeline failures surface here, in the status `error` field, never as a
failure of the request that queued the work.

Endpoints:
- POST /api/processing/{document_id}/trigger - Re-queue a pending or failed document
- GET /api/processing/{document_id}/status - Processing status (pure read)
- GET /api/processing/{document_id}/result - Summary and questions
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyforge.db.base import get_db
from studyforge.db.models import Question
from studyforge.enums import ProcessingStatus, QuestionType
from studyforge.middleware.error_handling import InvalidTransitionError
from studyforge.models.processing import (
    DocumentAcceptedResponse,
    DocumentResultResponse,
    ProcessingStatusSnapshot,
    QuestionResponse,
    TriggerProcessingRequest,
)
from studyforge.services.processing.pipeline import PipelineConfig
from studyforge.services.processing.state import get_processing_status, load_document
from studyforge.services.tasks import enqueue_document_processing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/processing", tags=["processing"])


@router.post(
    "/{document_id}/trigger",
    response_model=DocumentAcceptedResponse,
    status_code=202,
)
async def trigger_processing(
    document_id: str,
    request: Optional[TriggerProcessingRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
) -> DocumentAcceptedResponse:
    """
    Queue the pipeline for a document that is pending or failed.

    Processing and completed documents are rejected with 409.
    """
    document = await load_document(db, document_id)
    current = ProcessingStatus(document.processing_status)
    if current not in (ProcessingStatus.PENDING, ProcessingStatus.FAILED):
        raise InvalidTransitionError(
            f"Document {document_id} is {current.value}; only pending or failed documents can be triggered",
            details={"status": current.value},
        )

    request = request or TriggerProcessingRequest()
    config = PipelineConfig(
        generate_summary=request.generate_summary,
        generate_questions=request.generate_questions,
        total_questions=request.total_questions,
        retrigger=current is ProcessingStatus.FAILED,
    )
    enqueue_document_processing(document_id, config)

    return DocumentAcceptedResponse(
        document_id=document_id,
        status=current,
        message="Processing queued; poll for status.",
    )


@router.get("/{document_id}/status", response_model=ProcessingStatusSnapshot)
async def processing_status(
    document_id: str,
    db: AsyncSession = Depends(get_db),
) -> ProcessingStatusSnapshot:
    """Current processing status of a document."""
    return await get_processing_status(db, document_id)


@router.get("/{document_id}/result", response_model=DocumentResultResponse)
async def processing_result(
    document_id: str,
    db: AsyncSession = Depends(get_db),
) -> DocumentResultResponse:
    """Summary and questions generated so far."""
    document = await load_document(db, document_id)
    rows = (
        await db.execute(
            select(Question).where(Question.document_id == document_id).order_by(Question.position)
        )
    ).scalars()

    questions = [
        QuestionResponse(
            position=row.position,
            question_text=row.question_text,
            question_type=row.question_type,
            options=row.options,
            correct_answer=row.correct_answers
            if row.question_type == QuestionType.MULTI_SELECT.value
            else row.correct_answers[0],
            explanation=row.explanation,
            difficulty=row.difficulty,
        )
        for row in rows
    ]

    return DocumentResultResponse(
        document_id=document.id,
        title=document.title,
        status=document.processing_status,
        summary=document.summary,
        question_quality=document.question_quality,
        questions=questions,
    )
