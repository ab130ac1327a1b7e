"""
Generation-related enums.

Defines enums for model operations, question shapes, and the quality tier of
parsed model output.
"""

from enum import Enum


class GenerationOperation(str, Enum):
    """Operation kinds sent to the model service (also the telemetry key)."""

    SUMMARIZE = "summarize"
    GENERATE_QUESTIONS = "generate_questions"
    CHECK_AI_CONTENT = "check_ai_content"
    SEARCH_WEB_MATCHES = "search_web_matches"


class QuestionType(str, Enum):
    """Quiz question shapes."""

    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    MULTI_SELECT = "multi-select"

    @property
    def option_count(self) -> int:
        """Number of options a question of this type carries."""
        return 2 if self is QuestionType.TRUE_FALSE else 4


class QuestionDifficulty(str, Enum):
    """Declared question difficulty."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MatchType(str, Enum):
    """How closely a passage matches an online source."""

    EXACT = "exact"
    PARAPHRASE = "paraphrase"
    SIMILAR = "similar"


class ParseQuality(str, Enum):
    """Fidelity tier of a generated question set."""

    STRICT = "strict"  # Model followed the requested format
    LENIENT = "lenient"  # Recovered from format drift (markdown, casing)
    PLACEHOLDER = "placeholder"  # Nothing parsed, random content-word questions
    SENTENCE_FALLBACK = "sentence_fallback"  # Generation failed, sentence-based questions

    @property
    def is_degraded(self) -> bool:
        return self in (ParseQuality.PLACEHOLDER, ParseQuality.SENTENCE_FALLBACK)
