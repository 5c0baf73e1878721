"""
Flashcard exercise handler.

Introductory card: the learner sees the word with its translation and
grammar details, then self-evaluates. Built locally, so it is also the
fallback whenever another archetype cannot produce content.
"""

from typing import Any

from wortschatz.core.errors import InvalidAnswer
from wortschatz.core.models import SelfReport, WordEntry
from wortschatz.reasoning.service import ReasoningService

from . import Archetype, register
from .base import ExercisePresentation, GradeResult, normalize_answer

# Accepted spellings for each self-report
SELF_REPORT_INPUTS = {
    SelfReport.FORGOT: {"forgot", "1", "n", "no", "?", "idk"},
    SelfReport.REMEMBERED: {"remembered", "2", "y", "yes"},
    SelfReport.EASY: {"easy", "3", "e"},
}


def parse_self_report(answer: Any) -> SelfReport:
    if isinstance(answer, SelfReport):
        return answer
    text = normalize_answer(answer)
    for report, inputs in SELF_REPORT_INPUTS.items():
        if text in inputs:
            return report
    raise InvalidAnswer(f"Unknown flashcard self-report: {answer!r}")


def build_flashcard(
    entry: WordEntry,
    fallback_reason: str | None = None,
) -> ExercisePresentation:
    """Flashcard presentation from whatever details are stored."""
    details = entry.details
    context: dict[str, Any] = {}
    back = entry.text

    if details is not None:
        back = details.translation
        context["translation"] = details.translation
        context["alternative_translations"] = list(details.alternative_translations)
        context["examples"] = [e.model_dump() for e in details.examples]
        if details.noun_details:
            context["article"] = details.noun_details.article
            context["plural"] = details.noun_details.plural
        if details.verb_details:
            context["perfect"] = details.verb_details.perfect
            context["present_tense"] = details.verb_details.present_tense
            if details.verb_details.verb_government:
                context["verb_government"] = details.verb_details.verb_government
        if details.adjective_details:
            context["comparative"] = details.adjective_details.comparative
            context["superlative"] = details.adjective_details.superlative
        if details.preposition_details:
            context["case"] = details.preposition_details.case
        if details.conjunction_details:
            context["verb_position"] = details.conjunction_details.verb_position

    return ExercisePresentation(
        archetype=Archetype.FLASHCARD,
        word_key=entry.word_key,
        word=entry.text,
        prompt=entry.text,
        options=[r.value for r in SelfReport],
        expected_answer=back,
        context=context,
        is_fallback=fallback_reason is not None,
        fallback_reason=fallback_reason,
    )


@register(Archetype.FLASHCARD)
class FlashcardHandler:
    """Handler for flashcards."""

    async def prepare(
        self, entry: WordEntry, service: ReasoningService
    ) -> ExercisePresentation:
        return build_flashcard(entry)

    async def grade(
        self,
        entry: WordEntry,
        presentation: ExercisePresentation,
        answer: Any,
        service: ReasoningService,
    ) -> GradeResult:
        """Self-reported recall; never calls the service."""
        report = parse_self_report(answer)
        return GradeResult(
            archetype=Archetype.FLASHCARD,
            user_answer=report.value,
            is_correct=report != SelfReport.FORGOT,
            self_report=report,
            explanation="Keep practicing" if report == SelfReport.FORGOT else "Good recall!",
            correct_answer=presentation.expected_answer,
        )
