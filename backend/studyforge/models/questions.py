"""
Question Record Models

QuestionRecord is the validated shape of one quiz question. Construction
fails unless the option count matches the question type and every correct
answer index points at an existing option, so anything downstream of the
parser can rely on those invariants.
"""

from typing import Union

from pydantic import BaseModel, Field, model_validator

from studyforge.enums import ParseQuality, QuestionDifficulty, QuestionType


class QuestionRecord(BaseModel):
    """One generated quiz question."""

    question_text: str = Field(..., min_length=1, description="The question prompt")
    question_type: QuestionType = Field(default=QuestionType.MULTIPLE_CHOICE)
    options: list[str] = Field(..., description="Answer options in display order")
    correct_answer: Union[int, list[int]] = Field(
        ...,
        description="Zero-based option index, or ordered list of indices for multi-select",
    )
    explanation: str = Field(default="")
    difficulty: QuestionDifficulty = Field(default=QuestionDifficulty.MEDIUM)

    @model_validator(mode="after")
    def validate_shape(self) -> "QuestionRecord":
        expected = self.question_type.option_count
        if len(self.options) != expected:
            raise ValueError(
                f"{self.question_type.value} question needs {expected} options, got {len(self.options)}"
            )

        if self.question_type is QuestionType.MULTI_SELECT:
            if not isinstance(self.correct_answer, list) or not self.correct_answer:
                raise ValueError("multi-select question needs a non-empty list of correct answers")
            indices = self.correct_answer
        else:
            if isinstance(self.correct_answer, list):
                raise ValueError(f"{self.question_type.value} question takes a single correct answer")
            indices = [self.correct_answer]

        for index in indices:
            if not 0 <= index < expected:
                raise ValueError(f"correct answer index {index} out of bounds")
        return self

    @property
    def correct_indices(self) -> list[int]:
        if isinstance(self.correct_answer, list):
            return list(self.correct_answer)
        return [self.correct_answer]


class GeneratedQuestions(BaseModel):
    """
    Output of the question generator.

    `quality` tells callers whether the set came from the model's output or
    from one of the degraded fallbacks; degraded sets are still returned.
    """

    questions: list[QuestionRecord] = Field(default_factory=list)
    quality: ParseQuality = ParseQuality.STRICT

    @property
    def is_degraded(self) -> bool:
        return self.quality.is_degraded
