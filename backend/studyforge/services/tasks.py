"""
Celery Tasks

Thin synchronous wrappers that bridge Celery workers into the async
pipelines. Each task runs its pipeline in a fresh event loop with
asyncio.run(); pipelines use the unpooled task session factory.

Jobs are keyed by the record they process: task IDs are
"process-<document_id>-<run suffix>" and "originality-<check_id>". Tasks
do not retry: the model calls inside are already retried, and a failed
document is re-run only by explicit re-trigger.

Usage:
    from studyforge.services.tasks import enqueue_document_processing

    enqueue_document_processing(document_id)
"""

import asyncio
import logging
import uuid
from typing import Any, Optional

from studyforge.services.processing.pipeline import (
    PipelineConfig,
    run_document_pipeline,
    run_originality_pipeline,
)
from studyforge.services.queue import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="studyforge.services.tasks.process_document")
def process_document(
    document_id: str,
    config_dict: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Run the document pipeline (summary, then questions) for one document.

    Args:
        document_id: Document to process
        config_dict: Optional PipelineConfig fields (Celery requires serializable args)

    Returns:
        Pipeline status dict
    """
    config = PipelineConfig(**(config_dict or {}))
    logger.info(f"Processing task started for document {document_id}")
    return asyncio.run(run_document_pipeline(document_id, config))


@celery_app.task(name="studyforge.services.tasks.check_originality")
def check_originality(check_id: str) -> dict[str, Any]:
    """
    Run an originality check.

    Args:
        check_id: OriginalityCheck to run

    Returns:
        Pipeline status dict
    """
    logger.info(f"Originality task started for check {check_id}")
    return asyncio.run(run_originality_pipeline(check_id))


def enqueue_document_processing(document_id: str, config: Optional[PipelineConfig] = None) -> str:
    """Queue the document pipeline; returns the Celery task ID."""
    config = config or PipelineConfig()
    result = process_document.apply_async(
        args=[document_id, config.to_dict()],
        task_id=f"process-{document_id}-{uuid.uuid4().hex[:8]}",
    )
    logger.info(f"Queued processing for document {document_id} (task {result.id})")
    return result.id


def enqueue_originality_check(check_id: str) -> str:
    """Queue an originality check; returns the Celery task ID."""
    result = check_originality.apply_async(args=[check_id], task_id=f"originality-{check_id}")
    logger.info(f"Queued originality check {check_id} (task {result.id})")
    return result.id
