"""
Reasoning service boundary: content generation and answer grading.

The scheduler core depends only on the ReasoningService protocol; the
Gemini implementation lives in `wortschatz.reasoning.gemini`.
"""

from wortschatz.reasoning.schemas import (
    BLANK_MARKER,
    ClozeContent,
    ExampleSentence,
    Judgment,
    QuizQuestion,
    WordDetails,
)
from wortschatz.reasoning.service import ReasoningService

__all__ = [
    "BLANK_MARKER",
    "ClozeContent",
    "ExampleSentence",
    "Judgment",
    "QuizQuestion",
    "ReasoningService",
    "WordDetails",
]
