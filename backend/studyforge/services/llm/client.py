"""
Generation Client

Single entry point for calls to the model service. A call goes
GenerationClient.complete -> RetryController -> ModelClientPool -> LiteLLM,
and exactly one LLMUsage is reported to the usage sink per call, whether it
succeeded or failed.

Documents that could not be turned into text locally can be attached as a
file part; LiteLLM forwards it to providers that accept inline files.

Usage:
    from studyforge.services.llm import get_generation_client

    client = get_generation_client()
    text, usage = await client.complete(
        GenerationOperation.SUMMARIZE,
        prompt,
        document_id=document_id,
    )
"""

import base64
import logging
import os
import time
from dataclasses import dataclass
from typing import Optional

import litellm
from litellm import acompletion

from studyforge.config import generation_settings, settings
from studyforge.enums import GenerationOperation
from studyforge.middleware.error_handling import ServiceError
from studyforge.models.usage import LLMUsage, create_error_usage, extract_usage_from_response
from studyforge.services.llm.pool import ModelClientPool, ModelCredential, get_model_pool
from studyforge.services.llm.retry import RetryController
from studyforge.services.usage_tracking import UsageTracker

logger = logging.getLogger(__name__)

# Configure LiteLLM
litellm.drop_params = True  # Drop unsupported params instead of erroring
if settings.DEBUG:
    os.environ["LITELLM_LOG"] = "DEBUG"


@dataclass
class DocumentAttachment:
    """Raw document bytes sent to the model alongside a prompt."""

    data: bytes
    mime_type: str
    filename: str = "document"

    def to_content_part(self) -> dict:
        encoded = base64.b64encode(self.data).decode("ascii")
        return {
            "type": "file",
            "file": {
                "file_data": f"data:{self.mime_type};base64,{encoded}",
                "filename": self.filename,
            },
        }


def build_messages(
    prompt: str,
    attachment: Optional[DocumentAttachment] = None,
) -> list[dict]:
    """
    Build the messages list for a generation call.

    Args:
        prompt: User prompt text
        attachment: Optional document sent ahead of the prompt

    Returns:
        List of message dicts for LiteLLM
    """
    if attachment is None:
        return [{"role": "user", "content": prompt}]
    return [
        {
            "role": "user",
            "content": [attachment.to_content_part(), {"type": "text", "text": prompt}],
        }
    ]


class GenerationClient:
    """
    Model service client with credential rotation, retries, and telemetry.

    Args:
        pool: Credential pool (defaults to the process-wide pool)
        retry_controller: Retry policy (defaults to one built on `pool`)
        usage_tracker: Telemetry sink (defaults to database-backed tracker)
    """

    def __init__(
        self,
        pool: Optional[ModelClientPool] = None,
        retry_controller: Optional[RetryController] = None,
        usage_tracker: Optional[UsageTracker] = None,
    ):
        self.pool = pool or get_model_pool()
        self.retry_controller = retry_controller or RetryController(self.pool)
        self.usage_tracker = usage_tracker or UsageTracker()

    async def complete(
        self,
        operation: GenerationOperation,
        prompt: str,
        *,
        attachment: Optional[DocumentAttachment] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        document_id: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ) -> tuple[str, LLMUsage]:
        """
        Run one generation call.

        Args:
            operation: Operation kind (used for telemetry)
            prompt: Prompt text
            attachment: Optional document to send with the prompt
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            document_id: Document the call is made for (telemetry)
            max_attempts: Override of the retry budget

        Returns:
            Tuple of (response text, LLMUsage)

        Raises:
            GenerationFailedError: Retries exhausted or non-retryable error
                (NoCredentialsError when no keys are configured)
        """
        messages = build_messages(prompt, attachment)
        served_by: list[ModelCredential] = []

        async def _call(credential: ModelCredential):
            served_by.append(credential)
            return await acompletion(
                model=credential.model,
                messages=messages,
                api_key=credential.api_key,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=generation_settings.REQUEST_TIMEOUT_SECONDS,
                num_retries=0,
            )

        start = time.perf_counter()
        try:
            response = await self.retry_controller.with_retries(_call, max_attempts)
        except ServiceError as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            model = served_by[-1].model if served_by else settings.GENERATION_MODEL
            usage = create_error_usage(
                model=model,
                operation=operation,
                latency_ms=latency_ms,
                error_message=e.message,
                document_id=document_id,
            )
            if served_by:
                usage.credential_index = served_by[-1].index
            await self.usage_tracker.log_usage(usage)
            raise

        latency_ms = int((time.perf_counter() - start) * 1000)
        credential = served_by[-1]
        usage = extract_usage_from_response(
            response,
            model=credential.model,
            operation=operation,
            latency_ms=latency_ms,
            document_id=document_id,
            credential_index=credential.index,
        )
        await self.usage_tracker.log_usage(usage)

        content = response.choices[0].message.content or ""
        logger.debug(f"{operation.value} completed via {credential.label}: {usage}")
        return content, usage


# Singleton instance
_client: Optional[GenerationClient] = None


def get_generation_client() -> GenerationClient:
    """Get or create the singleton generation client."""
    global _client
    if _client is None:
        _client = GenerationClient()
    return _client


def reset_generation_client() -> None:
    """Drop the cached client (tests, key rotation)."""
    global _client
    _client = None
