"""
Processing API Models

Request/response schemas for document upload, processing status polling,
and originality checks.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import Field

from studyforge.enums import (
    OriginalityCheckStatus,
    ParseQuality,
    ProcessingStatus,
    QuestionDifficulty,
    QuestionType,
)
from studyforge.models.base import StrictRequest, StrictResponse
from studyforge.models.originality import PlagiarismReport


class ProcessingStatusSnapshot(StrictResponse):
    """Point-in-time view of a document's processing record."""

    document_id: str
    status: ProcessingStatus
    has_summary: bool = False
    has_questions: bool = False
    question_count: int = 0
    expected_questions: int = 0
    question_quality: Optional[ParseQuality] = None
    error: Optional[str] = Field(None, description="Set only when status is failed")


class DocumentAcceptedResponse(StrictResponse):
    """Upload or re-trigger acknowledged; poll the status endpoint."""

    document_id: str
    status: ProcessingStatus
    message: str


class TriggerProcessingRequest(StrictRequest):
    """Options for an explicit processing re-trigger."""

    total_questions: Optional[int] = Field(None, ge=1, le=200)
    generate_summary: bool = True
    generate_questions: bool = True


class QuestionResponse(StrictResponse):
    position: int
    question_text: str
    question_type: QuestionType
    options: list[str]
    correct_answer: Union[int, list[int]]
    explanation: str = ""
    difficulty: QuestionDifficulty


class DocumentResultResponse(StrictResponse):
    """Generated artifacts of a document."""

    document_id: str
    title: str
    status: ProcessingStatus
    summary: Optional[str] = None
    question_quality: Optional[ParseQuality] = None
    questions: list[QuestionResponse] = Field(default_factory=list)


class OriginalityCheckAcceptedResponse(StrictResponse):
    check_id: str
    status: OriginalityCheckStatus
    message: str


class OriginalityCheckResponse(StrictResponse):
    """Originality check status and, once completed, its report."""

    check_id: str
    title: str
    status: OriginalityCheckStatus
    word_count: Optional[int] = None
    report: Optional[PlagiarismReport] = None
    error: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
