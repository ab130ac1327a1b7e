"""
Question Generator

Builds a practice-question bank for a document: by default 70 questions,
45 multiple-choice, 15 true/false, and 10 multi-select. The prompt asks the
model to spread correct answers evenly over A-D (and 50/50 over True/False)
to counter its habit of favoring one position; the model is not trusted to
comply, only asked.

A response that parses but comes back short of the target is topped up in
batches of 20, each listing the questions already generated so the model
does not repeat them.

Degradation, in order:
    model output parses              -> STRICT or LENIENT
    model output has no usable block -> PLACEHOLDER (random content words)
    model call fails outright        -> SENTENCE_FALLBACK (true/false from sentences)

Only a missing-credentials error, or a failure with no extracted text to
fall back on, escapes as GenerationFailedError.

Usage:
    from studyforge.services.generation.questions import generate_questions

    result = await generate_questions(document_ref, document_id=document_id)
    if result.is_degraded:
        logger.warning(...)
"""

import logging
import random
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from studyforge.config import generation_settings
from studyforge.enums import GenerationOperation, ParseQuality, QuestionDifficulty, QuestionType
from studyforge.middleware.error_handling import GenerationFailedError, NoCredentialsError
from studyforge.models.questions import GeneratedQuestions, QuestionRecord
from studyforge.models.usage import LLMUsage
from studyforge.services.generation.question_parser import decode_questions, parse_questions
from studyforge.services.generation.source import DocumentSource, resolve_source
from studyforge.services.llm.client import DocumentAttachment, GenerationClient, get_generation_client
from studyforge.services.storage import DocumentStore

logger = logging.getLogger(__name__)


# =============================================================================
# Question Mix
# =============================================================================


@dataclass(frozen=True)
class QuestionMix:
    """How many questions of each type to request."""

    multiple_choice: int
    true_false: int
    multi_select: int

    @property
    def total(self) -> int:
        return self.multiple_choice + self.true_false + self.multi_select


FIXED_MIXES = {
    70: QuestionMix(multiple_choice=45, true_false=15, multi_select=10),
    10: QuestionMix(multiple_choice=6, true_false=2, multi_select=2),
}


def question_mix(total: int) -> QuestionMix:
    """
    Split a question target across types.

    70 and 10 use fixed splits; other totals take 64% multiple-choice and
    21% true/false (rounded), the rest multi-select (at least one), with
    rounding drift absorbed by multiple-choice.
    """
    if total in FIXED_MIXES:
        return FIXED_MIXES[total]

    multiple_choice = int(total * 0.64 + 0.5)
    true_false = int(total * 0.21 + 0.5)
    multi_select = max(1, total - multiple_choice - true_false)
    multiple_choice += total - (multiple_choice + true_false + multi_select)
    return QuestionMix(
        multiple_choice=max(0, multiple_choice),
        true_false=true_false,
        multi_select=multi_select,
    )


# =============================================================================
# Prompts
# =============================================================================

QUESTIONS_INSTRUCTIONS = """Generate {total} high-quality practice questions: \
{multiple_choice} multiple-choice, {true_false} true/false, and {multi_select} multi-select.

Answer balance (important):
- Multiple-choice: spread the correct answers evenly, about 25% each on A, B, C and D. \
Do not favor any single letter.
- True/false: about half True and half False. Do not make most answers True.
- Multi-select: 4 options with exactly 2 correct.

Content:
- Test understanding of key concepts from all parts of the material
- Mix easy, medium and hard questions throughout
- Give a brief explanation for every correct answer

Return ONLY the questions, starting directly with "Q1:". Use exactly these formats:

Q[number]: [Question text]
Type: multiple-choice
A) [Option]
B) [Option]
C) [Option]
D) [Option]
Correct Answer: [Letter]
Explanation: [Brief explanation]
Difficulty: [easy/medium/hard]

Q[number]: [Question text]
Type: true-false
A) True
B) False
Correct Answer: [A or B]
Explanation: [Brief explanation]
Difficulty: [easy/medium/hard]

Q[number]: [Question text]
Type: multi-select
A) [Option]
B) [Option]
C) [Option]
D) [Option]
Correct Answers: [Letters separated by commas, e.g. A, C]
Explanation: [Brief explanation]
Difficulty: [easy/medium/hard]
"""

QUESTIONS_PROMPT = """You are writing a practice-question bank for the educational content below.

{instructions}{exclusions}
---
Educational Content:
{text}
"""

DOCUMENT_QUESTIONS_PROMPT = """You are writing a practice-question bank for the attached \
educational document.

{instructions}{exclusions}"""


def _exclusion_block(exclude: Sequence[str]) -> str:
    if not exclude:
        return ""
    listed = "\n".join(f"- {question}" for question in exclude)
    return f"\nDo NOT repeat any of these questions:\n{listed}\n"


def build_questions_prompt(
    mix: QuestionMix,
    text: Optional[str] = None,
    exclude: Sequence[str] = (),
) -> str:
    """
    Build the generation prompt.

    Args:
        mix: Question counts per type
        text: Extracted document text; None when the file is attached instead
        exclude: Question texts the model must not repeat

    Returns:
        Prompt string
    """
    instructions = QUESTIONS_INSTRUCTIONS.format(
        total=mix.total,
        multiple_choice=mix.multiple_choice,
        true_false=mix.true_false,
        multi_select=mix.multi_select,
    )
    exclusions = _exclusion_block(exclude)
    if text is None:
        return DOCUMENT_QUESTIONS_PROMPT.format(instructions=instructions, exclusions=exclusions)
    return QUESTIONS_PROMPT.format(instructions=instructions, exclusions=exclusions, text=text)


# =============================================================================
# Sentence Fallback
# =============================================================================

_SENTENCE_END = re.compile(r"[.!?]+")


def sentence_fallback_questions(
    text: str,
    limit: Optional[int] = None,
) -> list[QuestionRecord]:
    """
    Build true/false questions from the document's leading sentences.

    Used when the model call itself fails. Each question asks whether a
    sentence from the material is true; the answer is True.
    """
    limit = limit if limit is not None else generation_settings.FALLBACK_QUESTIONS_LIMIT
    min_chars = generation_settings.FALLBACK_MIN_SENTENCE_CHARS

    sentences = [
        sentence.strip()
        for sentence in _SENTENCE_END.split(text)
        if len(sentence.strip()) > min_chars
    ]
    return [
        QuestionRecord(
            question_text=f'True or False: "{sentence}."',
            question_type=QuestionType.TRUE_FALSE,
            options=["True", "False"],
            correct_answer=0,
            explanation="This statement is taken directly from the material.",
            difficulty=QuestionDifficulty.EASY,
        )
        for sentence in sentences[:limit]
    ]


# =============================================================================
# Generation
# =============================================================================


async def _request_questions(
    client: GenerationClient,
    mix: QuestionMix,
    text: Optional[str],
    attachment: Optional[DocumentAttachment],
    exclude: Sequence[str],
    document_id: Optional[str],
) -> tuple[str, LLMUsage]:
    return await client.complete(
        GenerationOperation.GENERATE_QUESTIONS,
        build_questions_prompt(mix, text, exclude),
        attachment=attachment,
        temperature=generation_settings.QUESTIONS_TEMPERATURE,
        max_tokens=generation_settings.QUESTIONS_MAX_TOKENS,
        document_id=document_id,
    )


def _question_key(question: QuestionRecord) -> str:
    return " ".join(question.question_text.lower().split())


async def top_up_questions(
    result: GeneratedQuestions,
    target: int,
    client: GenerationClient,
    *,
    text: Optional[str] = None,
    attachment: Optional[DocumentAttachment] = None,
    exclude: Sequence[str] = (),
    document_id: Optional[str] = None,
) -> GeneratedQuestions:
    """
    Request the questions a parsed result is still missing, in batches.

    Each batch asks for at most QUESTIONS_BATCH_SIZE questions and lists the
    most recent question texts as "do not repeat". A batch whose call fails,
    or that adds no new question, counts as a failure. The loop stops at the
    target, after QUESTIONS_MAX_BATCHES batches, or after
    QUESTIONS_MAX_CONSECUTIVE_FAILURES failures in a row. Batch output is
    decoded without the placeholder tier, so only real questions are added.

    Raises:
        NoCredentialsError: No credentials configured
    """
    questions = list(result.questions)
    quality = result.quality
    seen = {_question_key(question) for question in questions}
    batches = 0
    failures = 0

    while (
        len(questions) < target
        and batches < generation_settings.QUESTIONS_MAX_BATCHES
        and failures < generation_settings.QUESTIONS_MAX_CONSECUTIVE_FAILURES
    ):
        batches += 1
        size = min(generation_settings.QUESTIONS_BATCH_SIZE, target - len(questions))
        recent = [*exclude, *(question.question_text for question in questions)]
        recent = recent[-generation_settings.QUESTIONS_EXCLUDE_LIMIT :]

        try:
            raw_text, _ = await _request_questions(
                client, question_mix(size), text, attachment, recent, document_id
            )
        except NoCredentialsError:
            raise
        except GenerationFailedError as e:
            failures += 1
            logger.warning(f"Question batch {batches} failed: {e}")
            continue

        decoded = decode_questions(raw_text)
        added = 0
        for question in decoded.questions if decoded else []:
            key = _question_key(question)
            if key in seen or len(questions) >= target:
                continue
            seen.add(key)
            questions.append(question)
            added += 1

        if not added:
            failures += 1
            logger.warning(f"Question batch {batches} added no new questions")
            continue
        failures = 0
        if decoded.quality is ParseQuality.LENIENT:
            quality = ParseQuality.LENIENT
        logger.info(f"Question batch {batches} added {added} ({len(questions)}/{target})")

    return GeneratedQuestions(questions=questions, quality=quality)


async def generate_questions_from_source(
    source: DocumentSource,
    client: Optional[GenerationClient] = None,
    total: Optional[int] = None,
    exclude: Sequence[str] = (),
    document_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> GeneratedQuestions:
    """
    Generate questions from extracted text or an attached file.

    The first response is parsed tier by tier; if it parses but falls short
    of the target, the remainder is requested with top_up_questions.

    Raises:
        GenerationFailedError: No credentials configured, or the call failed
            and there is no extracted text to fall back on
    """
    client = client or get_generation_client()
    target = total or generation_settings.QUESTIONS_TOTAL
    mix = question_mix(target)

    text = None
    if source.is_extracted:
        text = source.text[: generation_settings.QUESTIONS_MAX_INPUT_CHARS]

    try:
        raw_text, usage = await _request_questions(
            client, mix, text, source.attachment, exclude, document_id
        )
    except NoCredentialsError:
        raise
    except GenerationFailedError as e:
        if text is None:
            raise
        questions = sentence_fallback_questions(text)
        logger.error(
            f"Question generation failed, using {len(questions)} sentence-based question(s): {e}"
        )
        return GeneratedQuestions(questions=questions, quality=ParseQuality.SENTENCE_FALLBACK)

    result = parse_questions(raw_text, source_text=text or "", rng=rng)
    logger.info(
        f"Generated {len(result.questions)}/{mix.total} questions "
        f"(quality={result.quality.value}, {usage.total_tokens} tokens)"
    )

    if result.is_degraded or len(result.questions) >= target:
        return result
    return await top_up_questions(
        result,
        target,
        client,
        text=text,
        attachment=source.attachment,
        exclude=exclude,
        document_id=document_id,
    )


async def generate_questions(
    document_ref: str,
    *,
    store: Optional[DocumentStore] = None,
    client: Optional[GenerationClient] = None,
    total: Optional[int] = None,
    exclude: Sequence[str] = (),
    document_id: Optional[str] = None,
) -> GeneratedQuestions:
    """
    Generate a question bank for a stored document.

    Args:
        document_ref: Stored document reference
        store: Document store (defaults to the upload store)
        client: Generation client (defaults to the shared client)
        total: Question target (defaults to 70)
        exclude: Previously generated question texts not to repeat
        document_id: Document ID for telemetry

    Returns:
        GeneratedQuestions; degraded sets are flagged, not raised

    Raises:
        GenerationFailedError: The call could not be made at all
    """
    source = await resolve_source(document_ref, store)
    return await generate_questions_from_source(
        source, client, total=total, exclude=exclude, document_id=document_id
    )
