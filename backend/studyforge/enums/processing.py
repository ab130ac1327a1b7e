"""
Processing-related enums.

Defines enums for the document lifecycle, originality check lifecycle, and
accepted upload formats.
"""

from enum import Enum


class ProcessingStatus(str, Enum):
    """Lifecycle of a document's generation pipeline."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class OriginalityCheckStatus(str, Enum):
    """Lifecycle of an originality check."""

    CHECKING = "checking"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentFileType(str, Enum):
    """Accepted upload formats."""

    PDF = "pdf"
    DOC = "doc"
    DOCX = "docx"

    @property
    def mime_type(self) -> str:
        return {
            DocumentFileType.PDF: "application/pdf",
            DocumentFileType.DOC: "application/msword",
            DocumentFileType.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        }[self]
