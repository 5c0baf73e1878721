"""
Free recall handler.

The learner sees the translation and types the German word. Nouns must
come with their article; a bare noun is rejected locally without asking
the reasoning service. Valid synonyms are accepted by the service and
graded as correct-as-synonym.
"""

import re
from typing import Any

from wortschatz.core.models import Outcome, WordCategory, WordEntry
from wortschatz.reasoning.service import ReasoningService

from . import Archetype, register
from .base import (
    ExercisePresentation,
    GradeResult,
    dont_know_result,
    is_dont_know,
    normalize_answer,
    outcome_from_judgment,
    require_details,
)

_ARTICLE_PREFIX = re.compile(r"^(der|die|das)\s", re.IGNORECASE)


@register(Archetype.FREE_RECALL)
class FreeRecallHandler:
    """Handler for translation-to-German recall."""

    async def prepare(
        self, entry: WordEntry, service: ReasoningService
    ) -> ExercisePresentation:
        details = require_details(entry, Archetype.FREE_RECALL)
        article = details.article if entry.category == WordCategory.NOUN else None
        expected = f"{article} {entry.text}" if article else entry.text

        return ExercisePresentation(
            archetype=Archetype.FREE_RECALL,
            word_key=entry.word_key,
            word=entry.text,
            prompt=details.translation,
            expected_answer=expected,
            context={"article": article, "category": entry.category.value},
        )

    async def grade(
        self,
        entry: WordEntry,
        presentation: ExercisePresentation,
        answer: Any,
        service: ReasoningService,
    ) -> GradeResult:
        user_answer = " ".join(str(answer).split())
        expected = presentation.expected_answer or entry.text
        article = presentation.context.get("article")

        if is_dont_know(user_answer):
            return dont_know_result(Archetype.FREE_RECALL, expected)

        if article and not _ARTICLE_PREFIX.match(user_answer):
            return GradeResult(
                archetype=Archetype.FREE_RECALL,
                user_answer=user_answer,
                is_correct=False,
                outcome=Outcome.INCORRECT,
                explanation=f'Nouns need their article. Correct answer: "{expected}".',
                correct_answer=expected,
            )

        if normalize_answer(user_answer) == normalize_answer(expected):
            return GradeResult(
                archetype=Archetype.FREE_RECALL,
                user_answer=user_answer,
                is_correct=True,
                outcome=Outcome.CORRECT,
                explanation="Correct!",
                correct_answer=expected,
            )

        judgment = await service.check_recall_answer(
            presentation.prompt, entry.text, entry.category, article, user_answer
        )
        return GradeResult(
            archetype=Archetype.FREE_RECALL,
            user_answer=user_answer,
            is_correct=judgment.is_correct,
            outcome=outcome_from_judgment(judgment.is_correct, judgment.is_synonym),
            explanation=judgment.explanation,
            hint=judgment.hint,
            correct_answer=expected,
        )
