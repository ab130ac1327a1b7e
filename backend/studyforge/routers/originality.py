"""
Originality API Router

Endpoints:
- POST /api/originality/checks - Upload a document and queue an originality check
- GET /api/originality/checks/{check_id} - Check status and report
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from studyforge.db.base import get_db
from studyforge.db.models import OriginalityCheck
from studyforge.enums import OriginalityCheckStatus
from studyforge.middleware.error_handling import NotFoundError
from studyforge.models.processing import (
    OriginalityCheckAcceptedResponse,
    OriginalityCheckResponse,
)
from studyforge.services.storage import DocumentStore, get_document_store, save_upload
from studyforge.services.tasks import enqueue_originality_check

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/originality", tags=["originality"])


@router.post("/checks", response_model=OriginalityCheckAcceptedResponse, status_code=202)
async def create_check(
    file: UploadFile = File(..., description="PDF or Word document"),
    title: Optional[str] = Form(None, description="Display title (defaults to filename)"),
    db: AsyncSession = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
) -> OriginalityCheckAcceptedResponse:
    """Upload a document for an originality check. Poll the check for its report."""
    ref, file_type = await save_upload(file, store)

    check = OriginalityCheck(
        title=title or Path(file.filename).stem,
        storage_ref=ref,
        file_type=file_type.value,
        status=OriginalityCheckStatus.CHECKING.value,
    )
    db.add(check)
    await db.commit()

    enqueue_originality_check(check.id)

    return OriginalityCheckAcceptedResponse(
        check_id=check.id,
        status=OriginalityCheckStatus.CHECKING,
        message="Originality check started. Poll for status.",
    )


@router.get("/checks/{check_id}", response_model=OriginalityCheckResponse)
async def get_check(
    check_id: str,
    db: AsyncSession = Depends(get_db),
) -> OriginalityCheckResponse:
    """Status of an originality check, with the report once completed."""
    check = await db.get(OriginalityCheck, check_id)
    if check is None:
        raise NotFoundError(f"Originality check {check_id} not found")

    return OriginalityCheckResponse(
        check_id=check.id,
        title=check.title,
        status=check.status,
        word_count=check.word_count,
        report=check.report,
        error=check.error_message,
        created_at=check.created_at,
        completed_at=check.completed_at,
    )
