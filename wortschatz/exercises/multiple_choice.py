"""
Multiple-choice exercise handler.

The reasoning service writes the question and three distractors; the
answer is checked locally against the known correct option. The learner
may answer with the option text or its 1-based number.
"""

from typing import Any

from wortschatz.core.errors import ContentGenerationFailure, InvalidAnswer
from wortschatz.core.models import Outcome, WordEntry
from wortschatz.reasoning.service import ReasoningService

from . import Archetype, register
from .base import ExercisePresentation, GradeResult, normalize_answer, require_details


def resolve_choice(options: list[str], answer: Any) -> str:
    """Map a number or option text to the chosen option."""
    text = str(answer).strip()
    if text.isdigit():
        index = int(text) - 1
        if 0 <= index < len(options):
            return options[index]
        raise InvalidAnswer(f"Choice {text} is out of range 1-{len(options)}")

    for option in options:
        if normalize_answer(option) == normalize_answer(text):
            return option
    raise InvalidAnswer(f"'{text}' is not one of the options")


@register(Archetype.MULTIPLE_CHOICE)
class MultipleChoiceHandler:
    """Handler for multiple-choice questions."""

    async def prepare(
        self, entry: WordEntry, service: ReasoningService
    ) -> ExercisePresentation:
        details = require_details(entry, Archetype.MULTIPLE_CHOICE)
        question = await service.generate_quiz_question(entry.text, details)

        if not question.question.strip():
            raise ContentGenerationFailure(
                "Empty quiz question", archetype=Archetype.MULTIPLE_CHOICE.value
            )

        return ExercisePresentation(
            archetype=Archetype.MULTIPLE_CHOICE,
            word_key=entry.word_key,
            word=entry.text,
            prompt=question.question,
            options=list(question.options),
            expected_answer=question.correct_answer,
            context={"question_type": question.question_type},
        )

    async def grade(
        self,
        entry: WordEntry,
        presentation: ExercisePresentation,
        answer: Any,
        service: ReasoningService,
    ) -> GradeResult:
        choice = resolve_choice(presentation.options, answer)
        is_correct = choice == presentation.expected_answer

        return GradeResult(
            archetype=Archetype.MULTIPLE_CHOICE,
            user_answer=choice,
            is_correct=is_correct,
            outcome=Outcome.CORRECT if is_correct else Outcome.INCORRECT,
            explanation="Correct!" if is_correct else f"Expected: {presentation.expected_answer}",
            correct_answer=presentation.expected_answer,
        )
