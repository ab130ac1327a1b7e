"""
Model Usage Telemetry Types

Defines the LLMUsage dataclass and helper functions for extracting
token/cost information from LiteLLM responses. One record is produced per
generation call, successful or not, and handed to the UsageTracker.

Usage:
    from studyforge.models.usage import extract_usage_from_response

    usage = extract_usage_from_response(
        response=litellm_response,
        model="gemini/gemini-2.5-flash",
        operation=GenerationOperation.SUMMARIZE,
        latency_ms=1234,
        document_id=document_id,
    )
"""

import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Optional

import litellm

from studyforge.enums import GenerationOperation

logger = logging.getLogger(__name__)


@dataclass
class LLMUsage:
    """
    Usage data for one generation call.

    Token counts default to zero when the model service reports none, so
    aggregations never have to special-case missing values.

    Attributes:
        request_id: Unique identifier for this request (auto-generated UUID)
        operation: Generation operation kind
        model: Full model identifier (e.g., "gemini/gemini-2.5-flash")
        provider: Extracted provider name (e.g., "gemini")
        credential_index: Pool position of the credential that served the call
        prompt_tokens: Number of input tokens
        completion_tokens: Number of output tokens
        total_tokens: Total tokens used
        cost_usd: Total cost in USD, when LiteLLM can price the model
        document_id: Document the call was made for
        latency_ms: Request latency in milliseconds, retries included
        success: Whether the request succeeded
        error_message: Error message if request failed
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    model: str = ""
    provider: str = ""
    credential_index: Optional[int] = None

    # Token usage
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    cost_usd: Optional[float] = None

    document_id: Optional[str] = None

    latency_ms: Optional[int] = None
    success: bool = True
    error_message: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for database storage or serialization."""
        return asdict(self)

    def __str__(self) -> str:
        """Human-readable string representation."""
        cost_str = f"${self.cost_usd:.4f}" if self.cost_usd else "N/A"
        status = "ok" if self.success else "failed"
        return (
            f"LLMUsage({self.model}, {self.operation}, {status}, "
            f"cost={cost_str}, tokens={self.total_tokens})"
        )


def extract_provider(model: str) -> str:
    """
    Extract provider name from model identifier.

    Args:
        model: Full model identifier (e.g., "gemini/gemini-2.5-flash")

    Returns:
        Provider name (e.g., "gemini") or "unknown" if not parseable
    """
    if "/" in model:
        return model.split("/")[0]
    return "unknown"


def _operation_value(operation) -> str:
    return operation.value if isinstance(operation, GenerationOperation) else str(operation)


def extract_usage_from_response(
    response,
    model: str,
    operation: GenerationOperation,
    latency_ms: int,
    document_id: Optional[str] = None,
    credential_index: Optional[int] = None,
) -> LLMUsage:
    """
    Extract usage and cost information from a LiteLLM response.

    Args:
        response: LiteLLM response object
        model: Model identifier used for the request
        operation: Generation operation kind
        latency_ms: Measured latency in milliseconds
        document_id: Optional document ID for attribution
        credential_index: Optional pool position of the serving credential

    Returns:
        LLMUsage dataclass populated with extracted information
    """
    usage = LLMUsage(
        operation=_operation_value(operation),
        model=model,
        provider=extract_provider(model),
        credential_index=credential_index,
        latency_ms=latency_ms,
        document_id=document_id,
    )

    reported = getattr(response, "usage", None)
    if reported:
        usage.prompt_tokens = getattr(reported, "prompt_tokens", None) or 0
        usage.completion_tokens = getattr(reported, "completion_tokens", None) or 0
        usage.total_tokens = getattr(reported, "total_tokens", None) or (
            usage.prompt_tokens + usage.completion_tokens
        )

    # Cost from LiteLLM's hidden params
    hidden = getattr(response, "_hidden_params", None)
    if isinstance(hidden, dict):
        usage.cost_usd = hidden.get("response_cost")

    if usage.cost_usd is None and usage.total_tokens:
        try:
            usage.cost_usd = litellm.completion_cost(completion_response=response, model=model)
        except Exception as e:
            logger.debug(f"Cost calculation not available for {model}: {e}")

    return usage


def create_error_usage(
    model: str,
    operation: GenerationOperation,
    latency_ms: int,
    error_message: str,
    document_id: Optional[str] = None,
) -> LLMUsage:
    """
    Create an LLMUsage record for a failed request.

    Args:
        model: Model identifier
        operation: Generation operation kind
        latency_ms: Time spent before failure
        error_message: Error description
        document_id: Optional document ID

    Returns:
        LLMUsage with success=False, zero tokens, and error details
    """
    return LLMUsage(
        operation=_operation_value(operation),
        model=model,
        provider=extract_provider(model),
        latency_ms=latency_ms,
        document_id=document_id,
        success=False,
        error_message=error_message,
    )
