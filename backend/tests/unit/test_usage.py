"""
Unit tests for usage records and the usage telemetry sink.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import select

from studyforge.db.models import ApiUsageLog
from studyforge.enums import GenerationOperation
from studyforge.models.usage import (
    LLMUsage,
    create_error_usage,
    extract_provider,
    extract_usage_from_response,
)
from studyforge.services.usage_tracking import UsageTracker


class TestLLMUsage:
    """Tests for the LLMUsage dataclass."""

    def test_request_id_auto_generated(self):
        assert LLMUsage().request_id != LLMUsage().request_id

    def test_token_counts_default_to_zero(self):
        usage = LLMUsage()

        assert (usage.prompt_tokens, usage.completion_tokens, usage.total_tokens) == (0, 0, 0)

    def test_str_representation(self):
        usage = LLMUsage(model="gemini/gemini-2.5-flash", operation="summarize", cost_usd=0.0123, total_tokens=500)

        result = str(usage)

        assert "gemini/gemini-2.5-flash" in result
        assert "$0.0123" in result
        assert "500" in result


class TestExtractProvider:
    @pytest.mark.parametrize(
        "model,expected",
        [("gemini/gemini-2.5-flash", "gemini"), ("openai/gpt-4o", "openai"), ("gpt-4", "unknown")],
    )
    def test_extract_provider(self, model, expected):
        assert extract_provider(model) == expected


class TestExtractUsage:
    """Tests for extract_usage_from_response."""

    def test_tokens_and_hidden_cost(self):
        response = SimpleNamespace(
            usage=SimpleNamespace(prompt_tokens=100, completion_tokens=50, total_tokens=150),
            _hidden_params={"response_cost": 0.002},
        )

        usage = extract_usage_from_response(
            response,
            model="gemini/gemini-2.5-flash",
            operation=GenerationOperation.SUMMARIZE,
            latency_ms=1200,
            document_id="doc-1",
            credential_index=1,
        )

        assert usage.operation == "summarize"
        assert usage.provider == "gemini"
        assert usage.total_tokens == 150
        assert usage.cost_usd == 0.002
        assert usage.credential_index == 1
        assert usage.latency_ms == 1200

    def test_missing_usage_defaults_to_zero(self):
        response = SimpleNamespace(usage=None)

        usage = extract_usage_from_response(
            response, model="gemini/x", operation=GenerationOperation.SUMMARIZE, latency_ms=5
        )

        assert usage.total_tokens == 0
        assert usage.cost_usd is None

    def test_cost_calculation_failure_is_ignored(self):
        response = SimpleNamespace(
            usage=SimpleNamespace(prompt_tokens=1, completion_tokens=1, total_tokens=2)
        )

        with patch(
            "studyforge.models.usage.litellm.completion_cost",
            side_effect=Exception("unknown model"),
        ):
            usage = extract_usage_from_response(
                response, model="gemini/x", operation=GenerationOperation.SUMMARIZE, latency_ms=5
            )

        assert usage.cost_usd is None
        assert usage.total_tokens == 2

    def test_create_error_usage(self):
        usage = create_error_usage(
            model="gemini/x",
            operation=GenerationOperation.GENERATE_QUESTIONS,
            latency_ms=300,
            error_message="quota exceeded",
        )

        assert usage.success is False
        assert usage.error_message == "quota exceeded"
        assert usage.operation == "generate_questions"
        assert usage.total_tokens == 0


class TestUsageTracker:
    """Tests for the usage telemetry sink."""

    @pytest.mark.asyncio
    async def test_log_usage_persists_record(self, session_maker):
        tracker = UsageTracker(session_maker)
        usage = LLMUsage(
            operation="summarize",
            model="gemini/x",
            provider="gemini",
            credential_index=0,
            total_tokens=42,
            document_id="doc-1",
        )

        entry = await tracker.log_usage(usage)

        assert entry is not None
        async with session_maker() as session:
            rows = (await session.execute(select(ApiUsageLog))).scalars().all()
        assert len(rows) == 1
        assert rows[0].request_id == usage.request_id
        assert rows[0].operation_type == "summarize"
        assert rows[0].total_tokens == 42
        assert rows[0].success is True

    @pytest.mark.asyncio
    async def test_records_are_append_only(self, session_maker):
        tracker = UsageTracker(session_maker)

        await tracker.log_usage(LLMUsage(operation="summarize", model="gemini/x"))
        await tracker.log_usage(LLMUsage(operation="summarize", model="gemini/x", success=False))

        async with session_maker() as session:
            rows = (await session.execute(select(ApiUsageLog))).scalars().all()
        assert [row.success for row in rows] == [True, False]

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self):
        broken = MagicMock(side_effect=RuntimeError("database is down"))
        tracker = UsageTracker(broken)

        result = await tracker.log_usage(LLMUsage(operation="summarize", model="gemini/x"))

        assert result is None
