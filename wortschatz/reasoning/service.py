"""
Reasoning service port.

Content generation and answer grading are delegated to a remote language
model. The core only sees this protocol: one method per exercise need, each
returning a validated model or raising ContentGenerationFailure /
GradingFailure. Implementations must never return raw text.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from wortschatz.core.models import WordCategory
from wortschatz.reasoning.schemas import (
    ClozeContent,
    ExampleSentence,
    Judgment,
    QuizQuestion,
    WordDetails,
)


@runtime_checkable
class ReasoningService(Protocol):
    """Protocol for the external content and grading service."""

    async def get_word_details(
        self, word: str, category: WordCategory | None = None
    ) -> WordDetails:
        """Translation, part of speech, grammar details and example sentences."""
        ...

    async def generate_quiz_question(self, word: str, details: WordDetails) -> QuizQuestion:
        """Multiple-choice question with one correct option and distractors."""
        ...

    async def generate_cloze(
        self, word: str, details: WordDetails, example: ExampleSentence
    ) -> ClozeContent:
        """Blank out the (possibly inflected) word in an example sentence."""
        ...

    async def grade_article_answer(
        self, word: str, answer: str, expected_article: str
    ) -> Judgment:
        """Judge a der/die/das choice; incorrect verdicts carry a mnemonic hint."""
        ...

    async def grade_verb_form_answer(
        self, word: str, answer: str, expected_form: str
    ) -> Judgment:
        """Judge a perfect-tense form."""
        ...

    async def grade_cloze_answer(
        self, word: str, answer: str, sentence: str, expected: str
    ) -> Judgment:
        """Judge a fill-in-the-blank answer that is not an exact match."""
        ...

    async def check_recall_answer(
        self,
        prompt_translation: str,
        word: str,
        category: WordCategory,
        article: str | None,
        answer: str,
    ) -> Judgment:
        """Judge free recall from the translation; synonyms count as correct."""
        ...
