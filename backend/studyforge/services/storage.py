"""
Document Store

Content-addressed blob store for uploaded documents. A stored document is
addressed by an opaque reference: `<sha256>.<ext>` for local blobs under
UPLOAD_DIR, or an `http(s)://` URL for documents hosted elsewhere.

Storing the same bytes twice yields the same reference and writes once.

Usage:
    from studyforge.services.storage import DocumentStore

    store = DocumentStore()
    ref = await store.put(data, filename="lecture-3.pdf")
    data = await store.get_bytes(ref)
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os
import httpx
from fastapi import UploadFile

from studyforge.config import generation_settings, settings
from studyforge.enums import DocumentFileType
from studyforge.middleware.error_handling import ExtractionError, ValidationError

logger = logging.getLogger(__name__)


def calculate_content_hash(data: bytes) -> str:
    """SHA-256 hex digest of raw document bytes."""
    return hashlib.sha256(data).hexdigest()


def is_remote_ref(ref: str) -> bool:
    return ref.startswith(("http://", "https://"))


def detect_file_type(name: str) -> DocumentFileType:
    """
    Map a filename, path, URL, or reference to its document type.

    Raises:
        ValidationError: If the extension is not an accepted document type
    """
    suffix = Path(name.split("?", 1)[0]).suffix.lower().lstrip(".")
    try:
        return DocumentFileType(suffix)
    except ValueError:
        raise ValidationError(
            f"Unsupported document type: {suffix or 'none'} (expected pdf, doc or docx)",
            details={"filename": name},
        )


class DocumentStore:
    """
    Local content-addressed store with read-through for remote references.

    Args:
        root: Directory holding stored blobs (defaults to UPLOAD_DIR)
        fetch_timeout: Timeout in seconds for fetching remote references
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        fetch_timeout: Optional[float] = None,
    ):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.fetch_timeout = fetch_timeout or generation_settings.DOCUMENT_FETCH_TIMEOUT_SECONDS

    def path_for(self, ref: str) -> Path:
        """Filesystem path of a local reference."""
        path = (self.root / ref).resolve()
        if path.parent != self.root.resolve():
            raise ValidationError(f"Invalid document reference: {ref}")
        return path

    async def put(self, data: bytes, filename: str) -> str:
        """
        Store document bytes and return their reference.

        Args:
            data: Raw document bytes
            filename: Original filename (only the extension is kept)

        Returns:
            Reference of the form `<sha256>.<ext>`
        """
        file_type = detect_file_type(filename)
        ref = f"{calculate_content_hash(data)}.{file_type.value}"
        path = self.path_for(ref)

        await aiofiles.os.makedirs(self.root, exist_ok=True)
        if await aiofiles.os.path.exists(path):
            logger.debug(f"Document already stored: {ref}")
            return ref

        async with aiofiles.open(path, "wb") as out_file:
            await out_file.write(data)

        logger.info(f"Stored document {ref} ({len(data)} bytes)")
        return ref

    async def get_bytes(self, ref: str) -> bytes:
        """
        Read a document by reference.

        Raises:
            ExtractionError: If the document is missing or cannot be fetched
        """
        if is_remote_ref(ref):
            return await self._fetch(ref)

        path = self.path_for(ref)
        if not await aiofiles.os.path.exists(path):
            raise ExtractionError(f"Document not found: {ref}")
        async with aiofiles.open(path, "rb") as in_file:
            return await in_file.read()

    async def _fetch(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self.fetch_timeout, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise ExtractionError(f"Could not fetch document {url}: {e}") from e


def get_document_store() -> DocumentStore:
    """FastAPI dependency for the upload store."""
    return DocumentStore()


async def save_upload(file: UploadFile, store: DocumentStore) -> tuple[str, DocumentFileType]:
    """
    Validate and store an uploaded document.

    Args:
        file: FastAPI UploadFile
        store: Target document store

    Returns:
        Tuple of (reference, file type)

    Raises:
        ValidationError: Unsupported type, empty file, or over the size limit
    """
    filename = file.filename or ""
    file_type = detect_file_type(filename)

    data = await file.read()
    if not data:
        raise ValidationError("Uploaded file is empty", details={"filename": filename})

    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(data) > max_bytes:
        raise ValidationError(
            f"File too large: {len(data) / (1024 * 1024):.1f}MB exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit",
            details={"filename": filename, "size_bytes": len(data)},
        )

    ref = await store.put(data, filename)
    return ref, file_type
