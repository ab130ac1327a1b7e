"""
SQLAlchemy Database Models

Tables:
- documents: Uploaded study documents and their processing record
- questions: Quiz questions generated for a document
- originality_checks: Originality check runs and their reports
- api_usage_logs: Append-only telemetry for model service calls

Column types are dialect-neutral (String ids, generic JSON) so the schema
runs unchanged on PostgreSQL and SQLite.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from studyforge.db.base import Base
from studyforge.enums import OriginalityCheckStatus, ProcessingStatus


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Document(Base):
    """
    An uploaded document and its processing record.

    The processing columns (status, flags, error) are written only by the
    generation pipeline through the state machine functions.
    """

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(500))
    storage_ref: Mapped[str] = mapped_column(String(1000))
    file_type: Mapped[str] = mapped_column(String(10))
    file_hash: Mapped[Optional[str]] = mapped_column(String(64), index=True)

    # Processing record
    processing_status: Mapped[str] = mapped_column(
        String(20), default=ProcessingStatus.PENDING.value, index=True
    )
    has_summary: Mapped[bool] = mapped_column(Boolean, default=False)
    has_questions: Mapped[bool] = mapped_column(Boolean, default=False)
    processing_error: Mapped[Optional[str]] = mapped_column(Text)

    # Artifacts
    summary: Mapped[Optional[str]] = mapped_column(Text)
    question_count: Mapped[int] = mapped_column(Integer, default=0)
    question_quality: Mapped[Optional[str]] = mapped_column(String(20))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )
    processing_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    processing_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Question(Base):
    """A generated quiz question, owned by its document."""

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    document_id: Mapped[str] = mapped_column(
        ForeignKey("documents.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer)
    question_text: Mapped[str] = mapped_column(Text)
    question_type: Mapped[str] = mapped_column(String(20))
    options: Mapped[list] = mapped_column(JSON)
    # Always a list of indices; single-answer types hold one entry
    correct_answers: Mapped[list] = mapped_column(JSON)
    explanation: Mapped[str] = mapped_column(Text, default="")
    difficulty: Mapped[str] = mapped_column(String(10))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)


class OriginalityCheck(Base):
    """An originality check run and, once completed, its report."""

    __tablename__ = "originality_checks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(500))
    storage_ref: Mapped[str] = mapped_column(String(1000))
    file_type: Mapped[str] = mapped_column(String(10))
    status: Mapped[str] = mapped_column(
        String(20), default=OriginalityCheckStatus.CHECKING.value, index=True
    )
    word_count: Mapped[Optional[int]] = mapped_column(Integer)
    overall_score: Mapped[Optional[int]] = mapped_column(Integer)
    report: Mapped[Optional[dict]] = mapped_column(JSON)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class ApiUsageLog(Base):
    """One model service call. Rows are inserted, never updated."""

    __tablename__ = "api_usage_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[str] = mapped_column(String(36), index=True)
    operation_type: Mapped[str] = mapped_column(String(50), index=True)
    model: Mapped[str] = mapped_column(String(100))
    provider: Mapped[str] = mapped_column(String(50))
    credential_index: Mapped[Optional[int]] = mapped_column(Integer)
    document_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    prompt_tokens: Mapped[int] = mapped_column(Integer, default=0)
    completion_tokens: Mapped[int] = mapped_column(Integer, default=0)
    total_tokens: Mapped[int] = mapped_column(Integer, default=0)
    cost_usd: Mapped[Optional[float]] = mapped_column(Float)
    latency_ms: Mapped[Optional[int]] = mapped_column(Integer)
    success: Mapped[bool] = mapped_column(Boolean, default=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, index=True
    )
