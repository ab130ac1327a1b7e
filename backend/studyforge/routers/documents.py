"""
Documents API Router

Accepts study documents for processing. Uploading acknowledges immediately
(202) and queues the summary + question pipeline; progress is polled via
the processing router.

Endpoints:
- POST /api/documents - Upload a document and queue processing
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from studyforge.db.base import get_db
from studyforge.db.models import Document
from studyforge.enums import ProcessingStatus
from studyforge.models.processing import DocumentAcceptedResponse
from studyforge.services.storage import DocumentStore, get_document_store, save_upload
from studyforge.services.tasks import enqueue_document_processing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.post("", response_model=DocumentAcceptedResponse, status_code=202)
async def upload_document(
    file: UploadFile = File(..., description="PDF or Word document"),
    title: Optional[str] = Form(None, description="Display title (defaults to filename)"),
    db: AsyncSession = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentAcceptedResponse:
    """
    Upload a document and queue summary and question generation.

    Returns immediately; poll GET /api/processing/{document_id}/status.
    """
    ref, file_type = await save_upload(file, store)

    document = Document(
        title=title or Path(file.filename).stem,
        storage_ref=ref,
        file_type=file_type.value,
        file_hash=ref.split(".", 1)[0],
        processing_status=ProcessingStatus.PENDING.value,
    )
    db.add(document)
    await db.commit()

    enqueue_document_processing(document.id)
    logger.info(f"Accepted document {document.id} ({file.filename})")

    return DocumentAcceptedResponse(
        document_id=document.id,
        status=ProcessingStatus.PENDING,
        message="Document accepted. Processing started; poll for status.",
    )
