"""
Originality Report Models

Structured results of the two originality sub-checks (AI-likelihood and
web-match) and the combined PlagiarismReport. The `from_llm` constructors
accept the camelCase JSON the model is prompted to return and coerce
whatever actually comes back into range.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from studyforge.enums import MatchType


def clamp_score(value: Any) -> float:
    """Coerce a model-reported score into [0, 100]; junk becomes 0."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return max(0.0, min(100.0, score))


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return [str(value)]


def _as_bool(value: Any) -> bool:
    """Read a model-reported flag; "false", "no" and "0" strings are False."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


class AIDetectionResult(BaseModel):
    """Result of the AI-likelihood sub-check."""

    is_ai_generated: bool = False
    confidence: float = Field(default=0.0, ge=0, le=100)
    ai_score: float = Field(default=0.0, ge=0, le=100)
    indicators: list[str] = Field(default_factory=list)
    details: str = ""

    @field_validator("confidence", "ai_score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_score(value)

    @classmethod
    def from_llm(cls, data: dict) -> "AIDetectionResult":
        return cls(
            is_ai_generated=_as_bool(data.get("isAiGenerated", False)),
            confidence=data.get("confidence", 0),
            ai_score=data.get("aiScore", 0),
            indicators=_as_str_list(data.get("indicators")),
            details=str(data.get("details") or ""),
        )

    @classmethod
    def inconclusive(cls) -> "AIDetectionResult":
        """Model answered but without a parseable verdict."""
        return cls(
            confidence=50,
            ai_score=50,
            indicators=["Analysis inconclusive"],
            details="Could not parse AI detection results",
        )

    @classmethod
    def unavailable(cls, error: Exception) -> "AIDetectionResult":
        """Zero-scored stub used when the sub-check could not run."""
        return cls(
            indicators=["Error during analysis"],
            details=f"Could not complete AI detection: {error}",
        )


class WebMatch(BaseModel):
    """One passage that resembles an online source."""

    matched_text: str = ""
    source_url: str = ""
    source_title: str = "Unknown Source"
    match_percentage: float = Field(default=0.0, ge=0, le=100)
    match_type: MatchType = MatchType.SIMILAR

    @field_validator("match_percentage", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_score(value)

    @field_validator("match_type", mode="before")
    @classmethod
    def _coerce_match_type(cls, value: Any) -> MatchType:
        try:
            return MatchType(str(value).strip().lower())
        except ValueError:
            return MatchType.SIMILAR

    @classmethod
    def from_llm(cls, data: dict) -> "WebMatch":
        return cls(
            matched_text=str(data.get("matchedText") or ""),
            source_url=str(data.get("sourceUrl") or ""),
            source_title=str(data.get("sourceTitle") or "Unknown Source"),
            match_percentage=data.get("matchPercentage", 0),
            match_type=data.get("matchType") or MatchType.SIMILAR,
        )


class WebMatchResult(BaseModel):
    """Result of the web-match sub-check."""

    web_match_score: float = Field(default=0.0, ge=0, le=100)
    matches: list[WebMatch] = Field(default_factory=list)
    analysis: str = ""

    @field_validator("web_match_score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_score(value)

    @classmethod
    def from_llm(cls, data: dict) -> "WebMatchResult":
        raw_matches = data.get("matches")
        matches = [
            WebMatch.from_llm(item)
            for item in (raw_matches if isinstance(raw_matches, list) else [])
            if isinstance(item, dict)
        ]
        return cls(
            web_match_score=data.get("webMatchScore", 0),
            matches=matches,
            analysis=str(data.get("analysis") or ""),
        )

    @classmethod
    def inconclusive(cls) -> "WebMatchResult":
        return cls(analysis="Could not parse web search results")

    @classmethod
    def unavailable(cls, error: Exception) -> "WebMatchResult":
        return cls(analysis=f"Could not complete web search: {error}")


class AIAnalysis(BaseModel):
    """AI-likelihood portion of a report, without the score."""

    is_ai_generated: bool = False
    confidence: float = 0.0
    indicators: list[str] = Field(default_factory=list)
    details: str = ""


class PlagiarismReport(BaseModel):
    """Combined originality report for one document."""

    overall_score: int = Field(..., ge=0, le=100)
    ai_score: float = Field(..., ge=0, le=100)
    web_match_score: float = Field(..., ge=0, le=100)
    ai_analysis: AIAnalysis
    web_matches: list[WebMatch] = Field(default_factory=list)
    web_analysis: str = ""
    suggestions: list[str] = Field(default_factory=list)
    word_count: Optional[int] = None
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
