"""
Generation Configuration

Settings for the content generation flows: retry policy against the model
service, input limits for each flow, and output sizing.

All settings can be overridden via environment variables with GENERATION_ prefix.

Usage:
    from studyforge.config.generation import generation_settings

    attempts = generation_settings.RETRY_MAX_ATTEMPTS
    target = generation_settings.QUESTIONS_TOTAL
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class GenerationSettings(BaseSettings):
    """
    Generation flow configuration.

    Attributes are grouped by category:
    - Retry policy
    - Network timeouts
    - Summarizer limits
    - Question generator limits
    - Originality analyzer limits
    - Model sampling parameters
    """

    # =========================================================================
    # RETRY POLICY
    # =========================================================================

    # Attempts per generation call (first try included)
    RETRY_MAX_ATTEMPTS: int = 3

    # Wait before retry n (zero-based) is BASE * 2**n: 2s, 4s, 8s, ...
    RETRY_BACKOFF_BASE_SECONDS: float = 2.0

    # =========================================================================
    # TIMEOUTS
    # =========================================================================

    # Single call to the model service (seconds)
    REQUEST_TIMEOUT_SECONDS: int = 120

    # Fetching a remote document reference (seconds)
    DOCUMENT_FETCH_TIMEOUT_SECONDS: int = 30

    # =========================================================================
    # SUMMARIZER
    # =========================================================================

    SUMMARY_MIN_CHARS: int = 200

    # Fraction of the normalized text sent to the model
    SUMMARY_TRUNCATE_RATIO: float = 0.8

    # =========================================================================
    # QUESTION GENERATOR
    # =========================================================================

    QUESTIONS_TOTAL: int = 70
    QUESTIONS_MAX_INPUT_CHARS: int = 50000

    # Top-up when the first response comes back short of the target
    QUESTIONS_BATCH_SIZE: int = 20
    QUESTIONS_MAX_BATCHES: int = 10
    QUESTIONS_MAX_CONSECUTIVE_FAILURES: int = 3

    # Most recent question texts listed as "do not repeat" per batch
    QUESTIONS_EXCLUDE_LIMIT: int = 20

    # Sentence fallback when generation fails outright
    FALLBACK_QUESTIONS_LIMIT: int = 10
    FALLBACK_MIN_SENTENCE_CHARS: int = 20

    # Placeholder fallback when nothing in the model output parses
    PLACEHOLDER_QUESTIONS_LIMIT: int = 5

    # =========================================================================
    # ORIGINALITY ANALYZER
    # =========================================================================

    ORIGINALITY_MIN_WORDS: int = 50
    AI_CHECK_MAX_CHARS: int = 30000
    WEB_MATCH_MAX_CHARS: int = 20000

    # =========================================================================
    # MODEL SAMPLING
    # =========================================================================

    SUMMARY_TEMPERATURE: float = 0.3
    SUMMARY_MAX_TOKENS: int = 8192

    QUESTIONS_TEMPERATURE: float = 0.7
    QUESTIONS_MAX_TOKENS: int = 32768

    ANALYSIS_TEMPERATURE: float = 0.1
    ANALYSIS_MAX_TOKENS: int = 4096

    class Config:
        env_prefix = "GENERATION_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_generation_settings() -> GenerationSettings:
    """Get cached generation settings instance."""
    return GenerationSettings()


# Convenience instance
generation_settings = get_generation_settings()
