"""
Centralized enum definitions for the application.

All enums are organized by domain:
- generation.py: Model operations, question types, parse quality, match types
- processing.py: Document processing and originality check statuses, file types

Usage:
    from studyforge.enums import ProcessingStatus, QuestionType
"""

from studyforge.enums.generation import (
    GenerationOperation,
    MatchType,
    ParseQuality,
    QuestionDifficulty,
    QuestionType,
)
from studyforge.enums.processing import (
    DocumentFileType,
    OriginalityCheckStatus,
    ProcessingStatus,
)

__all__ = [
    # Generation
    "GenerationOperation",
    "MatchType",
    "ParseQuality",
    "QuestionDifficulty",
    "QuestionType",
    # Processing
    "DocumentFileType",
    "OriginalityCheckStatus",
    "ProcessingStatus",
]
