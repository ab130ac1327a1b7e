"""
Unit tests for the summarizer and document source resolution.
"""

import pytest

from studyforge.enums import GenerationOperation
from studyforge.middleware.error_handling import GenerationFailedError, InsufficientContentError
from studyforge.services.generation.source import DocumentSource, resolve_source
from studyforge.services.generation.summarizer import (
    generate_summary,
    normalize_whitespace,
    prepare_summary_input,
    summarize_source,
)


class TestPrepareSummaryInput:
    """Tests for input normalization and truncation."""

    def test_whitespace_normalized(self):
        assert normalize_whitespace("  a\n\n b\t c ") == "a b c"

    def test_too_short_raises(self):
        with pytest.raises(InsufficientContentError):
            prepare_summary_input("x" * 150)

    def test_short_after_normalization_raises(self):
        with pytest.raises(InsufficientContentError):
            prepare_summary_input("word " + " " * 300 + "word")

    def test_truncated_to_eighty_percent(self):
        text = "abcde" * 100

        result = prepare_summary_input(text)

        assert len(result) == 400
        assert result == text[:400]


class TestSummarizeSource:
    """Tests for the summary flow."""

    @pytest.mark.asyncio
    async def test_text_summary(self, generation_client_factory, sample_text):
        client = generation_client_factory({GenerationOperation.SUMMARIZE: "  **Module 1: Media**\n...  "})

        summary = await summarize_source(DocumentSource(text=sample_text), client, document_id="doc-1")

        assert summary == "**Module 1: Media**\n..."
        call = client.complete.await_args
        assert call.args[0] is GenerationOperation.SUMMARIZE
        assert "Course Material:" in call.args[1]
        assert call.kwargs["attachment"] is None

    @pytest.mark.asyncio
    async def test_insufficient_text_never_calls_model(self, generation_client_factory):
        client = generation_client_factory({GenerationOperation.SUMMARIZE: "summary"})

        with pytest.raises(InsufficientContentError):
            await summarize_source(DocumentSource(text="x" * 150), client)

        client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generation_failure_propagates(self, generation_client_factory, sample_text):
        client = generation_client_factory({GenerationOperation.SUMMARIZE: GenerationFailedError("down")})

        with pytest.raises(GenerationFailedError):
            await summarize_source(DocumentSource(text=sample_text), client)

    @pytest.mark.asyncio
    async def test_unextractable_document_is_attached(
        self, generation_client_factory, document_store, make_docx
    ):
        # A docx with no text extracts to nothing, so the file itself is sent
        ref = await document_store.put(make_docx(), "empty.docx")
        client = generation_client_factory({GenerationOperation.SUMMARIZE: "Summary of attachment"})

        summary = await generate_summary(ref, store=document_store, client=client)

        assert summary == "Summary of attachment"
        attachment = client.complete.await_args.kwargs["attachment"]
        assert attachment is not None
        assert attachment.mime_type.endswith("wordprocessingml.document")
        assert "attached document" in client.complete.await_args.args[1]


class TestResolveSource:
    """Tests for text-or-attachment resolution."""

    @pytest.mark.asyncio
    async def test_given_text_skips_extraction(self):
        source = await resolve_source("missing.pdf", text="already extracted")

        assert source.is_extracted
        assert source.text == "already extracted"

    @pytest.mark.asyncio
    async def test_extracts_text(self, document_store, make_docx, sample_text):
        ref = await document_store.put(make_docx(sample_text), "notes.docx")

        source = await resolve_source(ref, document_store)

        assert source.is_extracted
        assert "Coaxial cable" in source.text
        assert source.attachment is None
