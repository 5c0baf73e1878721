"""
Verb-form drill handler.

Verbs only: the learner types the perfect tense (e.g. "ist gegangen").
An exact match is accepted locally; anything else goes to the reasoning
service, which may accept an equally valid variant.
"""

from typing import Any

from wortschatz.core.errors import ContentGenerationFailure
from wortschatz.core.models import Outcome, WordEntry
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


@register(Archetype.VERB_FORM_DRILL)
class VerbFormDrillHandler:
    """Handler for perfect-tense drills."""

    async def prepare(
        self, entry: WordEntry, service: ReasoningService
    ) -> ExercisePresentation:
        details = require_details(entry, Archetype.VERB_FORM_DRILL)
        verb = details.verb_details
        if verb is None or not verb.perfect.strip():
            raise ContentGenerationFailure(
                f"'{entry.text}' has no perfect form on record",
                archetype=Archetype.VERB_FORM_DRILL.value,
            )

        return ExercisePresentation(
            archetype=Archetype.VERB_FORM_DRILL,
            word_key=entry.word_key,
            word=entry.text,
            prompt=f"Perfekt: {entry.text}",
            expected_answer=verb.perfect.strip(),
            context={
                "translation": details.translation,
                "verb_government": verb.verb_government,
            },
        )

    async def grade(
        self,
        entry: WordEntry,
        presentation: ExercisePresentation,
        answer: Any,
        service: ReasoningService,
    ) -> GradeResult:
        user_answer = " ".join(str(answer).split())
        expected = presentation.expected_answer or ""

        if is_dont_know(user_answer):
            return dont_know_result(Archetype.VERB_FORM_DRILL, expected)

        if normalize_answer(user_answer) == normalize_answer(expected):
            return GradeResult(
                archetype=Archetype.VERB_FORM_DRILL,
                user_answer=user_answer,
                is_correct=True,
                outcome=Outcome.CORRECT,
                explanation="Correct!",
                correct_answer=expected,
            )

        judgment = await service.grade_verb_form_answer(entry.text, user_answer, expected)
        return GradeResult(
            archetype=Archetype.VERB_FORM_DRILL,
            user_answer=user_answer,
            is_correct=judgment.is_correct,
            outcome=outcome_from_judgment(judgment.is_correct, judgment.is_synonym),
            explanation=judgment.explanation,
            hint=judgment.hint,
            correct_answer=expected,
        )
