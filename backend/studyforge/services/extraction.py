"""
Document Text Extractor

Turns stored PDF and Word documents into plain text. PDFs are read with
PyMuPDF, Word documents with python-docx. Parsing runs in a worker thread so
large documents do not block the event loop.

A document that cannot be opened, or that holds no text at all (scanned
pages, images), raises ExtractionError; generators treat that as the signal
to send the file to the model service instead.

Usage:
    from studyforge.services.extraction import extract_document_text

    text = await extract_document_text(store, ref)
"""

import asyncio
import io
import logging
import re

import fitz  # PyMuPDF
from docx import Document as WordDocument

from studyforge.enums import DocumentFileType
from studyforge.middleware.error_handling import ExtractionError
from studyforge.services.llm.client import DocumentAttachment
from studyforge.services.storage import DocumentStore, detect_file_type

logger = logging.getLogger(__name__)

_MULTI_NEWLINE = re.compile(r"\n\s*\n+")
_MULTI_SPACE = re.compile(r"[ \t\f\v]+")
_STANDALONE_NUMBER = re.compile(r"\s+\d+\s+")


def clean_extracted_text(text: str) -> str:
    """
    Normalize extracted text.

    Collapses blank-line runs and horizontal whitespace, and drops numbers
    standing alone between whitespace (page numbers, running footers).
    """
    text = _MULTI_NEWLINE.sub("\n", text)
    text = _MULTI_SPACE.sub(" ", text)
    text = _STANDALONE_NUMBER.sub(" ", text)
    return text.strip()


def extract_pdf_text(data: bytes) -> str:
    """Extract text from PDF bytes, page by page."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise ExtractionError(f"Could not open PDF: {e}") from e

    try:
        pages = [page.get_text("text") for page in doc]
    finally:
        doc.close()
    return "\n\n".join(pages)


def extract_word_text(data: bytes) -> str:
    """Extract paragraph and table text from a Word document."""
    try:
        doc = WordDocument(io.BytesIO(data))
    except Exception as e:
        raise ExtractionError(f"Could not open Word document: {e}") from e

    parts = [paragraph.text for paragraph in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            parts.append(" ".join(cell.text for cell in row.cells))
    return "\n".join(parts)


def extract_text(data: bytes, file_type: DocumentFileType) -> str:
    """
    Extract and clean text from document bytes.

    Raises:
        ExtractionError: If the document cannot be parsed or holds no text
    """
    if file_type is DocumentFileType.PDF:
        raw = extract_pdf_text(data)
    else:
        raw = extract_word_text(data)

    text = clean_extracted_text(raw)
    if not text:
        raise ExtractionError(f"No extractable text in {file_type.value} document")
    return text


async def extract_document_text(store: DocumentStore, ref: str) -> str:
    """
    Load a stored document and return its cleaned text.

    Args:
        store: Document store holding `ref`
        ref: Document reference

    Returns:
        Cleaned plain text

    Raises:
        ExtractionError: If the document is missing, unreadable, or empty
    """
    file_type = detect_file_type(ref)
    data = await store.get_bytes(ref)
    text = await asyncio.to_thread(extract_text, data, file_type)
    logger.info(f"Extracted {len(text)} characters from {ref}")
    return text


async def load_attachment(store: DocumentStore, ref: str) -> DocumentAttachment:
    """Load a stored document as a model attachment for the upload fallback."""
    file_type = detect_file_type(ref)
    data = await store.get_bytes(ref)
    filename = ref.rsplit("/", 1)[-1].split("?", 1)[0]
    return DocumentAttachment(data=data, mime_type=file_type.mime_type, filename=filename)
