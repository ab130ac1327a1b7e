"""
Originality Analyzer

Runs two independent checks on a document's text and combines them into a
PlagiarismReport:

    check_ai_content     likelihood the text was written by a language model
    search_web_matches   passages that look lifted from online sources

Each check is a retried model call. A check that still fails degrades to a
zero-scored stub that names the error, so a report is always produced; only
document-level problems (unreadable file, too few words) raise.

Usage:
    from studyforge.services.generation.originality import run_originality_check

    report = await run_originality_check(document_ref)
    print(report.overall_score, report.suggestions)
"""

import json
import logging
import re
from typing import Any, Optional

from studyforge.config import generation_settings
from studyforge.enums import GenerationOperation
from studyforge.middleware.error_handling import InsufficientContentError, ServiceError
from studyforge.models.originality import (
    AIAnalysis,
    AIDetectionResult,
    PlagiarismReport,
    WebMatchResult,
)
from studyforge.services.extraction import extract_document_text
from studyforge.services.generation.scoring import generate_suggestions, score
from studyforge.services.llm.client import GenerationClient, get_generation_client
from studyforge.services.storage import DocumentStore

logger = logging.getLogger(__name__)


AI_DETECTION_PROMPT = """You are an expert AI content detector. Analyze the text below for \
signs that it was generated by a language model.

Indicators to weigh:
1. Uniform sentence length and structure
2. Overused transitions and stock academic phrasing
3. No personal voice: no anecdotes, opinions, or unique perspective
4. Unnaturally polished prose with no colloquialisms or slips
5. Broad, safe statements without specific detail
6. Repeated sentence openers and transitional phrases
7. Arguments that are perfectly structured with no natural tangents

Text to analyze:
{text}

Return ONLY a JSON object in this format:
{{
  "isAiGenerated": true or false,
  "confidence": number 0-100 (confidence in your assessment),
  "aiScore": number 0-100 (likelihood the text is AI-generated),
  "indicators": ["specific indicator found in the text"],
  "details": "explanation citing examples from the text"
}}

Be fair: well-written text is not automatically AI-generated. Look for several indicators together."""

WEB_MATCH_PROMPT = """You are a plagiarism detection expert. Identify passages in the text below \
that appear copied or closely borrowed from existing sources (Wikipedia, textbooks, academic \
papers, websites, common educational material).

Text to analyze:
{text}

Return ONLY a JSON object in this format, with at most 5 matches:
{{
  "webMatchScore": number 0-100 (share of the text that appears to come from external sources),
  "matches": [
    {{
      "matchedText": "the suspect passage (first 200 characters)",
      "sourceUrl": "likely source URL, or a description such as 'Wikipedia-style content'",
      "sourceTitle": "name of the likely source",
      "matchPercentage": number 0-100,
      "matchType": "exact" or "paraphrase" or "similar"
    }}
  ],
  "analysis": "brief explanation of findings"
}}

Do not penalize common knowledge. If the text looks original, return a low webMatchScore and an \
empty matches array."""


def extract_json_object(response_text: str) -> Optional[dict[str, Any]]:
    """
    Extract a JSON object from a model response.

    Handles raw JSON, JSON inside ``` fences, and JSON embedded in prose
    (outermost braces).

    Returns:
        Parsed object, or None if no JSON object could be decoded
    """
    if not response_text:
        return None

    text = response_text.strip()
    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
    if fenced:
        text = fenced.group(1).strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", text)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None

    return data if isinstance(data, dict) else None


def count_words(text: str) -> int:
    return len(text.split())


async def check_ai_content(
    text: str,
    client: Optional[GenerationClient] = None,
    document_id: Optional[str] = None,
) -> AIDetectionResult:
    """
    Estimate how likely the text is AI-generated. Never raises.

    Returns:
        Parsed result; "inconclusive" (50/50) if the model's answer has no
        JSON; a zero-scored stub if the call failed
    """
    client = client or get_generation_client()
    prompt = AI_DETECTION_PROMPT.format(text=text[: generation_settings.AI_CHECK_MAX_CHARS])

    try:
        response_text, _ = await client.complete(
            GenerationOperation.CHECK_AI_CONTENT,
            prompt,
            temperature=generation_settings.ANALYSIS_TEMPERATURE,
            max_tokens=generation_settings.ANALYSIS_MAX_TOKENS,
            document_id=document_id,
        )
    except ServiceError as e:
        logger.error(f"AI content check failed: {e}")
        return AIDetectionResult.unavailable(e)

    data = extract_json_object(response_text)
    if data is None:
        logger.warning("AI content check returned no parseable JSON")
        return AIDetectionResult.inconclusive()

    result = AIDetectionResult.from_llm(data)
    logger.info(f"AI content check complete (aiScore={result.ai_score:.0f})")
    return result


async def search_web_matches(
    text: str,
    client: Optional[GenerationClient] = None,
    document_id: Optional[str] = None,
) -> WebMatchResult:
    """
    Look for passages that match online sources. Never raises.

    Returns:
        Parsed result; zero-scored if the answer has no JSON or the call failed
    """
    client = client or get_generation_client()
    prompt = WEB_MATCH_PROMPT.format(text=text[: generation_settings.WEB_MATCH_MAX_CHARS])

    try:
        response_text, _ = await client.complete(
            GenerationOperation.SEARCH_WEB_MATCHES,
            prompt,
            temperature=generation_settings.ANALYSIS_TEMPERATURE,
            max_tokens=generation_settings.ANALYSIS_MAX_TOKENS,
            document_id=document_id,
        )
    except ServiceError as e:
        logger.error(f"Web match search failed: {e}")
        return WebMatchResult.unavailable(e)

    data = extract_json_object(response_text)
    if data is None:
        logger.warning("Web match search returned no parseable JSON")
        return WebMatchResult.inconclusive()

    result = WebMatchResult.from_llm(data)
    logger.info(
        f"Web match search complete (webMatchScore={result.web_match_score:.0f}, "
        f"{len(result.matches)} match(es))"
    )
    return result


def build_report(
    ai_result: AIDetectionResult,
    web_result: WebMatchResult,
    word_count: Optional[int] = None,
) -> PlagiarismReport:
    """Combine both sub-check results into a scored report."""
    overall_score = score(ai_result, web_result)
    return PlagiarismReport(
        overall_score=overall_score,
        ai_score=ai_result.ai_score,
        web_match_score=web_result.web_match_score,
        ai_analysis=AIAnalysis(
            is_ai_generated=ai_result.is_ai_generated,
            confidence=ai_result.confidence,
            indicators=ai_result.indicators,
            details=ai_result.details,
        ),
        web_matches=web_result.matches,
        web_analysis=web_result.analysis,
        suggestions=generate_suggestions(ai_result, web_result, overall_score),
        word_count=word_count,
    )


async def check_text_originality(
    text: str,
    client: Optional[GenerationClient] = None,
    document_id: Optional[str] = None,
) -> PlagiarismReport:
    """
    Run both checks on already-extracted text.

    Raises:
        InsufficientContentError: If the text has fewer than 50 words
    """
    word_count = count_words(text)
    min_words = generation_settings.ORIGINALITY_MIN_WORDS
    if word_count < min_words:
        raise InsufficientContentError(
            f"Document has too little text for an originality check ({word_count} words, need at least {min_words})",
            details={"words": word_count, "minimum": min_words},
        )

    client = client or get_generation_client()
    ai_result = await check_ai_content(text, client, document_id)
    web_result = await search_web_matches(text, client, document_id)

    report = build_report(ai_result, web_result, word_count)
    logger.info(f"Originality check complete: overall score {report.overall_score}")
    return report


async def run_originality_check(
    document_ref: str,
    *,
    store: Optional[DocumentStore] = None,
    client: Optional[GenerationClient] = None,
    document_id: Optional[str] = None,
) -> PlagiarismReport:
    """
    Produce an originality report for a stored document.

    Model-side failures never raise; they show up as zero-scored sections
    of the report.

    Raises:
        ExtractionError: If the document cannot be read as text
        InsufficientContentError: If the text has fewer than 50 words
    """
    text = await extract_document_text(store or DocumentStore(), document_ref)
    return await check_text_originality(text, client, document_id)
