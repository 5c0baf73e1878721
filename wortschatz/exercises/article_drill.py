"""
Article drill handler.

Nouns only: the learner picks der, die or das. The reasoning service judges
the choice and, for wrong answers, adds a mnemonic hint for the gender.
"""

from typing import Any

from wortschatz.core.errors import ContentGenerationFailure, InvalidAnswer
from wortschatz.core.models import WordEntry
from wortschatz.reasoning.service import ReasoningService

from . import Archetype, register
from .base import (
    ExercisePresentation,
    GradeResult,
    normalize_answer,
    outcome_from_judgment,
    require_details,
)

ARTICLES = ["der", "die", "das"]


@register(Archetype.ARTICLE_DRILL)
class ArticleDrillHandler:
    """Handler for der/die/das drills."""

    async def prepare(
        self, entry: WordEntry, service: ReasoningService
    ) -> ExercisePresentation:
        details = require_details(entry, Archetype.ARTICLE_DRILL)
        if details.noun_details is None:
            raise ContentGenerationFailure(
                f"'{entry.text}' has no article on record",
                archetype=Archetype.ARTICLE_DRILL.value,
            )

        return ExercisePresentation(
            archetype=Archetype.ARTICLE_DRILL,
            word_key=entry.word_key,
            word=entry.text,
            prompt=entry.text,
            options=list(ARTICLES),
            expected_answer=details.noun_details.article,
            context={"translation": details.translation},
        )

    async def grade(
        self,
        entry: WordEntry,
        presentation: ExercisePresentation,
        answer: Any,
        service: ReasoningService,
    ) -> GradeResult:
        text = normalize_answer(answer)
        if text.isdigit() and 1 <= int(text) <= len(ARTICLES):
            text = ARTICLES[int(text) - 1]
        if text not in ARTICLES:
            raise InvalidAnswer(f"'{answer}' is not der, die or das")

        judgment = await service.grade_article_answer(
            entry.text, text, presentation.expected_answer or ""
        )

        return GradeResult(
            archetype=Archetype.ARTICLE_DRILL,
            user_answer=text,
            is_correct=judgment.is_correct,
            outcome=outcome_from_judgment(judgment.is_correct),
            explanation=judgment.explanation,
            hint=judgment.hint,
            correct_answer=f"{presentation.expected_answer} {entry.text}",
        )
