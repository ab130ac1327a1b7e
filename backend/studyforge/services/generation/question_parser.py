"""
Question Output Parser

Decodes the question generator's free text into QuestionRecords. The model
is asked for blocks like:

    Q1: What does TCP guarantee?
    Type: multiple-choice
    A) Ordered delivery
    B) Fixed latency
    C) Encryption
    D) Multicast
    Correct Answer: A
    Explanation: TCP sequences segments.
    Difficulty: easy

Decoding is tiered, and each tier is usable on its own:

    parse_strict          exact format above
    parse_lenient         tolerates markdown emphasis, headings, "Question 1." markers,
                          "a." / "(A)" options, and label casing
    placeholder_questions low-fidelity questions from random content words; never empty

`parse_questions` runs the tiers in order and reports which one produced
the result as a ParseQuality. A block is kept only if it carries at least
as many options as its type needs (2 for true-false, 4 otherwise) and its
answer points at one of them; everything else is dropped silently.
"""

import logging
import random
import re
import string
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import ValidationError

from studyforge.config import generation_settings
from studyforge.enums import ParseQuality, QuestionDifficulty, QuestionType
from studyforge.models.questions import GeneratedQuestions, QuestionRecord

logger = logging.getLogger(__name__)

LETTERS = "ABCD"

PLACEHOLDER_QUESTION = "Which of the following concepts is discussed in this material?"
PLACEHOLDER_EXPLANATION = "This is a generated question based on the material content."
GENERIC_OPTIONS = ("Key concepts", "Definitions", "Worked examples", "Applications")


@dataclass(frozen=True)
class ParseDialect:
    """Line patterns one parsing tier recognizes."""

    name: str
    question_marker: re.Pattern
    option_line: re.Pattern
    type_label: re.Pattern
    answer_label: re.Pattern
    explanation_label: re.Pattern
    difficulty_label: re.Pattern
    ignore_letter_case: bool = False


STRICT = ParseDialect(
    name="strict",
    question_marker=re.compile(r"Q\d+:"),
    option_line=re.compile(r"^([A-D])\)\s*"),
    type_label=re.compile(r"^Type:"),
    answer_label=re.compile(r"^Correct Answers?:"),
    explanation_label=re.compile(r"^Explanation:"),
    difficulty_label=re.compile(r"^Difficulty:"),
)

LENIENT = ParseDialect(
    name="lenient",
    question_marker=re.compile(r"(?im)^\s*(?:Q(?:uestion)?\s*)?\d+\s*[:.)]"),
    option_line=re.compile(r"^\(?([A-Da-d])\s*[).:\]]\s*"),
    type_label=re.compile(r"(?i)^(?:question\s+)?type\s*:"),
    answer_label=re.compile(r"(?i)^(?:correct\s+)?answers?\s*(?:\([^)]*\)\s*)?[:\-]"),
    explanation_label=re.compile(r"(?i)^(?:explanation|rationale)\s*:"),
    difficulty_label=re.compile(r"(?i)^difficulty(?:\s+level)?\s*:"),
    ignore_letter_case=True,
)


# =============================================================================
# Field Decoding
# =============================================================================


def _parse_type(value: str) -> QuestionType:
    lowered = value.lower()
    if "true-false" in lowered or "true/false" in lowered or "true false" in lowered:
        return QuestionType.TRUE_FALSE
    if "multi-select" in lowered or "multi select" in lowered or "multiple select" in lowered:
        return QuestionType.MULTI_SELECT
    return QuestionType.MULTIPLE_CHOICE


def _parse_difficulty(value: str) -> QuestionDifficulty:
    lowered = value.lower()
    if "easy" in lowered:
        return QuestionDifficulty.EASY
    if "hard" in lowered:
        return QuestionDifficulty.HARD
    return QuestionDifficulty.MEDIUM


def parse_answer(
    answer_text: Optional[str],
    question_type: QuestionType,
    ignore_letter_case: bool = False,
) -> Union[int, list[int]]:
    """
    Decode the text after an answer label into option indices.

    Multi-select answers collect every standalone letter A-D ("A, C" ->
    [0, 2]); single answers take the leading letter ("B" -> 1). True/false
    answers may also be the words True/False. Anything undecodable, or a
    missing answer line, resolves to the first option.
    """
    multi = question_type is QuestionType.MULTI_SELECT
    if answer_text is None:
        return [0] if multi else 0

    text = answer_text.upper() if ignore_letter_case else answer_text

    if multi:
        indices: list[int] = []
        for letter in re.findall(r"\b([A-D])\b", text):
            index = LETTERS.index(letter)
            if index not in indices:
                indices.append(index)
        return indices or [0]

    match = re.match(r"\s*\(?([A-D])\b", text)
    if match:
        return LETTERS.index(match.group(1))

    if question_type is QuestionType.TRUE_FALSE:
        lowered = answer_text.lower()
        if "true" in lowered and "false" not in lowered:
            return 0
        if "false" in lowered:
            return 1
    return 0


# =============================================================================
# Block Parsing
# =============================================================================


def split_blocks(text: str, dialect: ParseDialect = STRICT) -> list[str]:
    """Split raw model output into one chunk per question marker."""
    return [block for block in dialect.question_marker.split(text) if block.strip()]


def parse_block(block: str, dialect: ParseDialect = STRICT) -> Optional[QuestionRecord]:
    """
    Parse one question block.

    Returns:
        QuestionRecord, or None if the block does not make a valid question
    """
    lines = [line.strip() for line in block.splitlines() if line.strip()]
    if not lines:
        return None

    question_text = lines[0]
    options: list[str] = []
    # First occurrence of each label wins
    fields: dict[str, str] = {}
    labels = (
        ("type", dialect.type_label),
        ("answer", dialect.answer_label),
        ("explanation", dialect.explanation_label),
        ("difficulty", dialect.difficulty_label),
    )

    for line in lines[1:]:
        option = dialect.option_line.match(line)
        if option:
            options.append(line[option.end():].strip())
            continue
        for name, pattern in labels:
            label = pattern.search(line)
            if label:
                fields.setdefault(name, line[label.end():])
                break

    question_type = _parse_type(fields.get("type", ""))
    answer_text = fields.get("answer")
    explanation = fields.get("explanation", "").strip()
    difficulty = _parse_difficulty(fields.get("difficulty", ""))

    required = question_type.option_count
    if len(options) < required:
        return None

    try:
        return QuestionRecord(
            question_text=question_text,
            question_type=question_type,
            options=options[:required],
            correct_answer=parse_answer(answer_text, question_type, dialect.ignore_letter_case),
            explanation=explanation,
            difficulty=difficulty,
        )
    except ValidationError as e:
        logger.debug(f"Dropping question block ({dialect.name}): {e.errors()[0]['msg']}")
        return None


def _parse_with(text: str, dialect: ParseDialect) -> list[QuestionRecord]:
    questions = []
    for block in split_blocks(text, dialect):
        question = parse_block(block, dialect)
        if question is not None:
            questions.append(question)
    return questions


def parse_strict(text: str) -> list[QuestionRecord]:
    """Parse output that follows the requested question format exactly."""
    return _parse_with(text, STRICT)


_EMPHASIS = re.compile(r"\*+|__")
_HEADING = re.compile(r"(?m)^[ \t]*#{1,6}[ \t]*")
_BULLETED_OPTION = re.compile(r"(?m)^[ \t]*[-•][ \t]+(?=\(?[A-Da-d]\s*[).:\]])")


def normalize_markdown(text: str) -> str:
    """Strip markdown decoration the model tends to add around the format."""
    text = _EMPHASIS.sub("", text)
    text = _HEADING.sub("", text)
    return _BULLETED_OPTION.sub("", text)


def parse_lenient(text: str) -> list[QuestionRecord]:
    """Parse output that drifted from the requested format."""
    return _parse_with(normalize_markdown(text), LENIENT)


# =============================================================================
# Placeholder Fallback
# =============================================================================


def _content_words(text: str) -> list[str]:
    words = []
    seen = set()
    for raw in text.split():
        word = raw.strip(string.punctuation)
        if len(word) > 3 and word.lower() not in seen:
            seen.add(word.lower())
            words.append(word)
    return words


def placeholder_questions(
    source_text: str,
    rng: Optional[random.Random] = None,
    limit: Optional[int] = None,
    fallback_text: str = "",
) -> list[QuestionRecord]:
    """
    Build low-fidelity questions from random content words.

    One question per ten content words (words longer than three letters),
    capped at `limit`. Each offers four distinct random words as options.
    Words come from `source_text`; when it has fewer than four, from
    `source_text` and `fallback_text` together, and failing that from
    GENERIC_OPTIONS. At least one question is always returned.
    """
    rng = rng or random.Random()
    limit = limit if limit is not None else generation_settings.PLACEHOLDER_QUESTIONS_LIMIT

    words = _content_words(source_text)
    if len(words) < 4:
        words = _content_words(f"{source_text} {fallback_text}")
    if len(words) < 4:
        words = list(GENERIC_OPTIONS)

    count = max(1, min(limit, -(-len(words) // 10)))
    return [
        QuestionRecord(
            question_text=PLACEHOLDER_QUESTION,
            question_type=QuestionType.MULTIPLE_CHOICE,
            options=rng.sample(words, 4),
            correct_answer=0,
            explanation=PLACEHOLDER_EXPLANATION,
            difficulty=QuestionDifficulty.MEDIUM,
        )
        for _ in range(count)
    ]


def decode_questions(raw_text: str) -> Optional[GeneratedQuestions]:
    """Run the strict and lenient tiers; None when neither recovers a question."""
    questions = parse_strict(raw_text)
    if questions:
        return GeneratedQuestions(questions=questions, quality=ParseQuality.STRICT)

    questions = parse_lenient(raw_text)
    if questions:
        logger.warning(f"Question output needed lenient parsing ({len(questions)} recovered)")
        return GeneratedQuestions(questions=questions, quality=ParseQuality.LENIENT)
    return None


def parse_questions(
    raw_text: str,
    source_text: str = "",
    rng: Optional[random.Random] = None,
) -> GeneratedQuestions:
    """
    Decode model output, falling back tier by tier.

    Args:
        raw_text: Question generator output
        source_text: Document text used for placeholder questions
        rng: Random source for placeholders (seed it for reproducible output)

    Returns:
        GeneratedQuestions tagged with the tier that produced them; never empty
    """
    decoded = decode_questions(raw_text)
    if decoded is not None:
        return decoded

    questions = placeholder_questions(source_text, rng, fallback_text=raw_text)
    logger.warning(
        f"No parseable questions in model output, using {len(questions)} placeholder question(s)"
    )
    return GeneratedQuestions(questions=questions, quality=ParseQuality.PLACEHOLDER)
