"""
Content generation flows.

- summarizer.py: study summary of a document
- questions.py: 70-question quiz bank (mixed types)
- question_parser.py: model text -> QuestionRecords (strict, lenient, placeholder tiers)
- originality.py: AI-likelihood and web-match checks
- scoring.py: originality score and improvement suggestions

Usage:
    from studyforge.services.generation import generate_summary, generate_questions
"""

from studyforge.services.generation.originality import run_originality_check
from studyforge.services.generation.questions import generate_questions
from studyforge.services.generation.scoring import generate_suggestions, score
from studyforge.services.generation.summarizer import generate_summary

__all__ = [
    "generate_questions",
    "generate_suggestions",
    "generate_summary",
    "run_originality_check",
    "score",
]
