"""
Document processing: lifecycle state machine and the pipelines that drive it.

Usage:
    from studyforge.services.processing import run_document_pipeline, get_processing_status
"""

from studyforge.services.processing.pipeline import (
    PipelineConfig,
    run_document_pipeline,
    run_originality_pipeline,
)
from studyforge.services.processing.state import get_processing_status

__all__ = [
    "PipelineConfig",
    "get_processing_status",
    "run_document_pipeline",
    "run_originality_pipeline",
]
