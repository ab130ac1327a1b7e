"""
Celery Queue Configuration

Runs generation pipelines in the background. The API acknowledges an upload
or check immediately (202) and enqueues a job; a worker drives it to a
terminal state while the caller polls.

Queues:
- processing: document summary + question pipelines (long, model heavy)
- originality: originality checks (two model calls)

Usage:
    from studyforge.services.tasks import process_document

    process_document.apply_async(args=[document_id], task_id=f"process-{document_id}")

    # Run worker: celery -A studyforge.services.queue worker -Q processing,originality -l info
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from studyforge.config import settings, yaml_config
from studyforge.config.logging_config import setup_logging

celery_config = yaml_config.get("celery", {})

celery_app = Celery(
    "studyforge",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["studyforge.services.tasks"],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task routing
    task_routes={
        "studyforge.services.tasks.process_document": {"queue": "processing"},
        "studyforge.services.tasks.check_originality": {"queue": "originality"},
    },
    # Result expiration (24 hours)
    result_expires=86400,
    # A 70-question generation with retries can take several minutes
    task_soft_time_limit=celery_config.get("task_soft_time_limit", 1500),
    task_time_limit=celery_config.get("task_time_limit", 1800),
    # Concurrency
    worker_prefetch_multiplier=1,
    # Task acknowledgment
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    setup_logging(debug=settings.DEBUG)
