"""
Unit tests for the question output parser tiers.
"""

import random

import pytest

from studyforge.enums import ParseQuality, QuestionDifficulty, QuestionType
from studyforge.services.generation.question_parser import (
    GENERIC_OPTIONS,
    PLACEHOLDER_QUESTION,
    decode_questions,
    parse_answer,
    parse_block,
    parse_lenient,
    parse_questions,
    parse_strict,
    placeholder_questions,
)


class TestParseAnswer:
    """Tests for answer letter decoding."""

    def test_single_letter(self):
        assert parse_answer("B", QuestionType.MULTIPLE_CHOICE) == 1

    def test_letter_with_trailing_text(self):
        assert parse_answer(" D) Multicast", QuestionType.MULTIPLE_CHOICE) == 3

    def test_multi_select_letters(self):
        assert parse_answer("A, C", QuestionType.MULTI_SELECT) == [0, 2]

    def test_multi_select_deduplicates(self):
        assert parse_answer("B, B and D", QuestionType.MULTI_SELECT) == [1, 3]

    def test_true_false_word(self):
        assert parse_answer("False", QuestionType.TRUE_FALSE) == 1
        assert parse_answer("True", QuestionType.TRUE_FALSE) == 0

    def test_missing_answer_defaults_to_first_option(self):
        assert parse_answer(None, QuestionType.MULTIPLE_CHOICE) == 0
        assert parse_answer(None, QuestionType.MULTI_SELECT) == [0]

    def test_undecodable_defaults_to_first_option(self):
        assert parse_answer("see explanation", QuestionType.MULTIPLE_CHOICE) == 0

    def test_lowercase_needs_lenient(self):
        assert parse_answer("c", QuestionType.MULTIPLE_CHOICE) == 0
        assert parse_answer("c", QuestionType.MULTIPLE_CHOICE, ignore_letter_case=True) == 2


class TestParseStrict:
    """Tests for the strict tier."""

    def test_parses_all_types(self, strict_questions_output):
        questions = parse_strict(strict_questions_output)

        assert len(questions) == 3
        mc, tf, ms = questions

        assert mc.question_text == "Which cable carries light pulses?"
        assert mc.question_type is QuestionType.MULTIPLE_CHOICE
        assert mc.options[1] == "Fiber optic cable"
        assert mc.correct_answer == 1
        assert mc.difficulty is QuestionDifficulty.EASY

        assert tf.question_type is QuestionType.TRUE_FALSE
        assert tf.options == ["True", "False"]
        assert tf.correct_answer == 0

        assert ms.question_type is QuestionType.MULTI_SELECT
        assert ms.correct_answer == [0, 2]
        assert ms.difficulty is QuestionDifficulty.HARD

    def test_block_with_too_few_options_is_dropped(self):
        text = """Q1: Incomplete question?
Type: multiple-choice
A) One
B) Two
C) Three
Correct Answer: A

Q2: Complete question?
Type: multiple-choice
A) One
B) Two
C) Three
D) Four
Correct Answer: D
"""
        questions = parse_strict(text)

        assert [q.question_text for q in questions] == ["Complete question?"]
        assert questions[0].correct_answer == 3

    def test_extra_options_are_trimmed(self):
        block = """Which is true?
Type: true-false
A) True
B) False
C) Maybe
Correct Answer: B
"""
        question = parse_block(block)

        assert question.options == ["True", "False"]
        assert question.correct_answer == 1

    def test_answer_out_of_range_is_dropped(self):
        block = """Pick one?
Type: true-false
A) True
B) False
Correct Answer: D
"""
        assert parse_block(block) is None

    def test_first_label_occurrence_wins(self):
        block = """What is bandwidth?
A) Data rate
B) Cable length
C) Signal color
D) Voltage
Correct Answer: A
Explanation: Bandwidth is capacity.
Explanation: A second explanation.
"""
        question = parse_block(block)

        assert question.explanation == "Bandwidth is capacity."

    def test_labels_quoted_inside_explanation(self):
        block = """Which layer routes packets?
Type: multiple-choice
A) Network
B) Physical
C) Session
D) Transport
Correct Answer: A
Explanation: The "Correct Answer: D" distractor confuses Type: transport with routing.
Difficulty: hard
"""
        question = parse_block(block)

        assert question.correct_answer == 0
        assert question.question_type is QuestionType.MULTIPLE_CHOICE
        assert question.explanation == 'The "Correct Answer: D" distractor confuses Type: transport with routing.'
        assert question.difficulty is QuestionDifficulty.HARD

    def test_missing_type_defaults_to_multiple_choice(self):
        block = """What is bandwidth?
A) Data rate
B) Cable length
C) Signal color
D) Voltage
Correct Answer: A
"""
        question = parse_block(block)

        assert question.question_type is QuestionType.MULTIPLE_CHOICE
        assert question.difficulty is QuestionDifficulty.MEDIUM

    def test_preamble_is_ignored(self, strict_questions_output):
        questions = parse_strict("Here are your questions:\n\n" + strict_questions_output)

        assert len(questions) == 3


class TestParseLenient:
    """Tests for the lenient tier."""

    def test_markdown_decorated_output(self):
        text = """## Question 1. What does TCP guarantee?
**Type:** multiple-choice
- a) Ordered delivery
- b) Fixed latency
- c) Encryption
- d) Multicast
**Correct answer:** a
**Explanation:** TCP sequences segments.
"""
        assert parse_strict(text) == []

        questions = parse_lenient(text)

        assert len(questions) == 1
        assert questions[0].question_text == "What does TCP guarantee?"
        assert questions[0].options[0] == "Ordered delivery"
        assert questions[0].correct_answer == 0
        assert questions[0].explanation == "TCP sequences segments."


class TestPlaceholderQuestions:
    """Tests for the placeholder tier."""

    def test_options_are_distinct_content_words(self, sample_text):
        questions = placeholder_questions(sample_text, rng=random.Random(7))

        assert questions
        for question in questions:
            assert question.question_text == PLACEHOLDER_QUESTION
            assert len(set(question.options)) == 4
            assert all(len(option) > 3 for option in question.options)
            assert question.correct_answer == 0

    def test_seeded_rng_is_reproducible(self, sample_text):
        first = placeholder_questions(sample_text, rng=random.Random(3))
        second = placeholder_questions(sample_text, rng=random.Random(3))

        assert [q.options for q in first] == [q.options for q in second]

    def test_count_capped_by_limit(self, sample_text):
        assert len(placeholder_questions(sample_text, rng=random.Random(1), limit=2)) == 2

    def test_one_question_per_ten_words(self):
        text = " ".join(f"word{i:02d}" for i in range(11))

        assert len(placeholder_questions(text, rng=random.Random(1))) == 2

    def test_too_few_words_borrows_from_model_output(self):
        questions = placeholder_questions(
            "the cat sat", rng=random.Random(1), fallback_text="Routers forward packets between networks"
        )

        assert len(questions) == 1
        assert len(set(questions[0].options)) == 4
        assert set(questions[0].options) <= {"Routers", "forward", "packets", "between", "networks"}

    def test_no_words_anywhere_uses_generic_options(self):
        questions = placeholder_questions("", rng=random.Random(1), fallback_text="ok.")

        assert len(questions) == 1
        assert sorted(questions[0].options) == sorted(GENERIC_OPTIONS)

    def test_zero_limit_still_yields_a_question(self, sample_text):
        assert len(placeholder_questions(sample_text, rng=random.Random(1), limit=0)) == 1


class TestParseQuestions:
    """Tests for the tiered entry point."""

    def test_strict_quality(self, strict_questions_output):
        result = parse_questions(strict_questions_output)

        assert result.quality is ParseQuality.STRICT
        assert not result.is_degraded

    def test_lenient_quality(self):
        text = """1. What is latency?
a) Delay
b) Bandwidth
c) Jitter
d) Loss
Answer: a
"""
        result = parse_questions(text)

        assert result.quality is ParseQuality.LENIENT
        assert not result.is_degraded
        assert len(result.questions) == 1

    @pytest.mark.parametrize("raw", ["", "I cannot help with that."])
    def test_placeholder_quality(self, raw, sample_text):
        result = parse_questions(raw, source_text=sample_text, rng=random.Random(0))

        assert result.quality is ParseQuality.PLACEHOLDER
        assert result.is_degraded
        assert len(result.questions) > 0

    def test_placeholder_without_source_text(self):
        result = parse_questions("Unfortunately the attached file could not be read.", rng=random.Random(0))

        assert result.quality is ParseQuality.PLACEHOLDER
        assert len(result.questions) == 1

    def test_decode_questions_skips_placeholders(self, strict_questions_output):
        assert decode_questions("I cannot help with that.") is None
        assert decode_questions(strict_questions_output).quality is ParseQuality.STRICT
