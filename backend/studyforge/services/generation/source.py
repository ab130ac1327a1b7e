"""
Document source resolution shared by the generation flows.

Flows prefer local text extraction (cheaper, faster, and the text can be
trimmed); only when extraction fails do they hand the file itself to the
model service.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from studyforge.middleware.error_handling import ExtractionError
from studyforge.services.extraction import extract_document_text, load_attachment
from studyforge.services.llm.client import DocumentAttachment
from studyforge.services.storage import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class DocumentSource:
    """Either extracted text or, when extraction failed, the raw file."""

    text: Optional[str] = None
    attachment: Optional[DocumentAttachment] = None

    @property
    def is_extracted(self) -> bool:
        return self.text is not None


async def resolve_source(
    document_ref: str,
    store: Optional[DocumentStore] = None,
    text: Optional[str] = None,
) -> DocumentSource:
    """
    Resolve a document reference to text, falling back to the raw file.

    Args:
        document_ref: Stored document reference
        store: Document store (defaults to the local upload store)
        text: Already-extracted text; skips extraction when given

    Returns:
        DocumentSource with text, or with an attachment if extraction failed
    """
    if text is not None:
        return DocumentSource(text=text)

    store = store or DocumentStore()
    try:
        return DocumentSource(text=await extract_document_text(store, document_ref))
    except ExtractionError as e:
        logger.warning(f"Text extraction failed for {document_ref}, sending file instead: {e}")
        return DocumentSource(attachment=await load_attachment(store, document_ref))
