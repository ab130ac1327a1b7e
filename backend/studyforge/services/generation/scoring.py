"""
Originality Scoring

Combines the AI-likelihood and web-match sub-scores into one originality
score and turns the results into remediation hints. The weights, penalty,
and thresholds here are product policy; change them only deliberately.

    plagiarism = ai * 0.42 + web * 0.58 (+2 if either sub-score > 40)
    overall    = round(100 - plagiarism), clamped to [0, 100]
"""

import math

from studyforge.models.originality import AIDetectionResult, WebMatchResult

AI_WEIGHT = 0.42
WEB_WEIGHT = 0.58

# Flat penalty for moderately suspicious content
STRICTNESS_THRESHOLD = 40
STRICTNESS_PENALTY = 2


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def plagiarism_percentage(ai_score: float, web_score: float) -> float:
    """Weighted plagiarism percentage, capped at 100."""
    percentage = ai_score * AI_WEIGHT + web_score * WEB_WEIGHT
    if ai_score > STRICTNESS_THRESHOLD or web_score > STRICTNESS_THRESHOLD:
        percentage += STRICTNESS_PENALTY
    return min(100.0, percentage)


def score(ai_result: AIDetectionResult, web_result: WebMatchResult) -> int:
    """
    Overall originality score in [0, 100]; higher is more original.

    >>> score(AIDetectionResult(ai_score=80), WebMatchResult(web_match_score=80))
    18
    """
    percentage = plagiarism_percentage(ai_result.ai_score, web_result.web_match_score)
    return max(0, min(100, _round_half_up(100 - percentage)))


def generate_suggestions(
    ai_result: AIDetectionResult,
    web_result: WebMatchResult,
    overall_score: int,
) -> list[str]:
    """
    Ordered remediation hints for a report.

    AI hints first (strong above 70, moderate above 40), then web-match
    hints (above 50, above 20), then a match-count hint, then one closing
    remark by overall score band (>=80, >=60, below).
    """
    suggestions: list[str] = []
    ai_score = ai_result.ai_score
    web_score = web_result.web_match_score

    if ai_score > 70:
        suggestions.append(
            "Your writing shows strong indicators of AI generation. "
            "Consider rewriting in your own words and adding personal insights."
        )
        suggestions.append(
            "Include specific examples from your own experience or research "
            "to make the content more authentic."
        )
        suggestions.append(
            "Vary your sentence structure and length to create a more natural writing flow."
        )
    elif ai_score > 40:
        suggestions.append(
            "Some sections of your work may appear AI-generated. "
            "Review and personalize these areas."
        )
        suggestions.append(
            "Add more personal voice and unique perspectives to strengthen originality."
        )

    if web_score > 50:
        suggestions.append(
            "Significant portions of your text match existing online sources. "
            "Paraphrase these sections and add proper citations."
        )
        suggestions.append(
            "Use quotation marks for direct quotes and include proper references."
        )
    elif web_score > 20:
        suggestions.append(
            "Some content matches online sources. Ensure all borrowed ideas are properly cited."
        )

    if web_result.matches:
        suggestions.append(
            f"Found {len(web_result.matches)} potential source match(es). "
            "Review these sections and add citations or rewrite."
        )

    if overall_score >= 80:
        suggestions.append(
            "Great job! Your work appears to be mostly original. Continue to cite any sources used."
        )
    elif overall_score >= 60:
        suggestions.append(
            "Your work has moderate originality. Focus on the highlighted areas to improve."
        )
    else:
        suggestions.append(
            "Your work needs significant revision. Consider rewriting major portions in your own words."
        )
        suggestions.append(
            "Review academic integrity guidelines and ensure proper citation practices."
        )

    return suggestions
