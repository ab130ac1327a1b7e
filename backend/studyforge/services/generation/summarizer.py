"""
Summarizer

Produces a student-facing study summary of a document. The summary is
formatted text (bold module/unit headers, bullets, explanatory paragraphs)
and is stored as-is; nothing downstream parses it.

Input handling:
    - whitespace is normalized first
    - fewer than 200 characters -> InsufficientContentError
    - the rest is cut to the first 80% of its length, a fixed lossy
      trade-off that bounds latency on long documents

Usage:
    from studyforge.services.generation.summarizer import generate_summary

    summary = await generate_summary(document_ref, document_id=document_id)
"""

import logging
from typing import Optional

from studyforge.config import generation_settings
from studyforge.enums import GenerationOperation
from studyforge.middleware.error_handling import InsufficientContentError
from studyforge.services.generation.source import DocumentSource, resolve_source
from studyforge.services.llm.client import GenerationClient, get_generation_client
from studyforge.services.storage import DocumentStore

logger = logging.getLogger(__name__)


SUMMARY_FORMAT_RULES = """Formatting rules:
- Module headers as **Module N: Title** and unit headers as **Unit N: Title**, each on its own line
- ### for sections inside a unit
- Bold every key term where it is introduced, e.g. **Coaxial Cable:** followed by its description
- Explanations go in paragraphs; bullets (•) only for lists of types, components, or characteristics
- Numbered lists for steps and sequences; indent sub-bullets under their parent
- After a difficult concept add one plain-language sentence starting "In simple terms,"

Content rules:
- Cover every key concept in the material, in the material's order (Module → Unit → Section)
- Break technical vocabulary down into simpler language
- Prefer clarity over brevity; explain the important ideas fully
"""

SUMMARY_PROMPT = """You are an expert educational content summarizer. Write a comprehensive, \
well-structured study summary of the course material below. It should be longer and more \
explanatory than the source, turning complex ideas into simpler meaning.

{format_rules}
Course Material:
{text}

Write the summary now, starting with the first header:"""

DOCUMENT_SUMMARY_PROMPT = """You are an expert educational content summarizer. The attached \
document is course material. Write a comprehensive, well-structured study summary of it that \
explains complex ideas in simpler terms.

{format_rules}
Write the summary now, starting with the first header:"""


def normalize_whitespace(text: str) -> str:
    """Collapse all whitespace runs to single spaces."""
    return " ".join(text.split())


def prepare_summary_input(text: str) -> str:
    """
    Normalize and trim text for summarization.

    Args:
        text: Extracted document text

    Returns:
        The first 80% (configurable) of the normalized text

    Raises:
        InsufficientContentError: If the normalized text is under 200 characters
    """
    cleaned = normalize_whitespace(text)
    min_chars = generation_settings.SUMMARY_MIN_CHARS
    if len(cleaned) < min_chars:
        raise InsufficientContentError(
            f"Document has too little text to summarize ({len(cleaned)} characters, need at least {min_chars})",
            details={"characters": len(cleaned), "minimum": min_chars},
        )

    keep = int(len(cleaned) * generation_settings.SUMMARY_TRUNCATE_RATIO)
    return cleaned[:keep]


async def summarize_source(
    source: DocumentSource,
    client: Optional[GenerationClient] = None,
    document_id: Optional[str] = None,
) -> str:
    """
    Summarize extracted text, or the attached file when extraction failed.

    Raises:
        InsufficientContentError: Extracted text too short
        GenerationFailedError: Model call failed after retries
    """
    client = client or get_generation_client()

    if source.is_extracted:
        text = prepare_summary_input(source.text)
        prompt = SUMMARY_PROMPT.format(format_rules=SUMMARY_FORMAT_RULES, text=text)
    else:
        prompt = DOCUMENT_SUMMARY_PROMPT.format(format_rules=SUMMARY_FORMAT_RULES)

    summary, usage = await client.complete(
        GenerationOperation.SUMMARIZE,
        prompt,
        attachment=source.attachment,
        temperature=generation_settings.SUMMARY_TEMPERATURE,
        max_tokens=generation_settings.SUMMARY_MAX_TOKENS,
        document_id=document_id,
    )

    summary = summary.strip()
    logger.info(f"Generated summary ({len(summary)} chars, {usage.total_tokens} tokens)")
    return summary


async def generate_summary(
    document_ref: str,
    *,
    store: Optional[DocumentStore] = None,
    client: Optional[GenerationClient] = None,
    document_id: Optional[str] = None,
) -> str:
    """
    Generate a study summary for a stored document.

    Text is extracted locally when possible; otherwise the file is sent to
    the model service.

    Args:
        document_ref: Stored document reference
        store: Document store (defaults to the upload store)
        client: Generation client (defaults to the shared client)
        document_id: Document ID for telemetry

    Returns:
        Summary text

    Raises:
        InsufficientContentError: Extracted text too short
        GenerationFailedError: Model call failed after retries or no credentials
    """
    source = await resolve_source(document_ref, store)
    return await summarize_source(source, client, document_id)
