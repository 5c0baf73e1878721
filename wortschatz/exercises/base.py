"""
Base protocol and types for exercise handlers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from wortschatz.core.errors import ContentGenerationFailure
from wortschatz.core.models import Outcome, SelfReport, WordEntry
from wortschatz.reasoning.schemas import WordDetails
from wortschatz.reasoning.service import ReasoningService

from . import Archetype


@dataclass
class ExercisePresentation:
    """Everything a front-end needs to show one exercise."""
    archetype: Archetype
    word_key: str
    word: str
    prompt: str
    options: list[str] = field(default_factory=list)
    expected_answer: str | None = None  # Not shown before grading
    context: dict[str, Any] = field(default_factory=dict)
    is_fallback: bool = False  # Flashcard shown because content generation failed
    fallback_reason: str | None = None
    read_only: bool = False  # Already graded in this session (navigated back)


@dataclass
class GradeResult:
    """Result of grading an answer."""
    archetype: Archetype
    user_answer: str
    is_correct: bool
    outcome: Outcome | None = None  # Quiz-style archetypes
    self_report: SelfReport | None = None  # Flashcards
    explanation: str = ""
    hint: str | None = None
    correct_answer: str | None = None
    quality: int | None = None  # Filled in by the session controller


class ExerciseHandler(Protocol):
    """Protocol for exercise archetype handlers."""

    async def prepare(
        self, entry: WordEntry, service: ReasoningService
    ) -> ExercisePresentation:
        """Build the exercise. Raises ContentGenerationFailure if it cannot."""
        ...

    async def grade(
        self,
        entry: WordEntry,
        presentation: ExercisePresentation,
        answer: Any,
        service: ReasoningService,
    ) -> GradeResult:
        """Judge the answer. Raises GradingFailure if the service cannot."""
        ...


def require_details(entry: WordEntry, archetype: Archetype) -> WordDetails:
    """Details payload or ContentGenerationFailure."""
    if entry.details is None:
        raise ContentGenerationFailure(
            f"No word details stored for '{entry.text}'", archetype=archetype.value
        )
    return entry.details


def normalize_answer(answer: Any) -> str:
    """Trim, collapse whitespace and casefold for exact comparisons."""
    return " ".join(str(answer).split()).casefold()


def outcome_from_judgment(is_correct: bool, is_synonym: bool = False) -> Outcome:
    if not is_correct:
        return Outcome.INCORRECT
    return Outcome.CORRECT_AS_SYNONYM if is_synonym else Outcome.CORRECT


# Inputs that mean "I don't know"; graded as incorrect without a service call
DONT_KNOW_INPUTS = {"", "?", "idk", "dk", "don't know", "dont know"}


def is_dont_know(answer: Any) -> bool:
    """Check if input indicates 'I don't know'."""
    return normalize_answer(answer) in DONT_KNOW_INPUTS


def dont_know_result(archetype: Archetype, expected: str | None) -> GradeResult:
    return GradeResult(
        archetype=archetype,
        user_answer="I don't know",
        is_correct=False,
        outcome=Outcome.INCORRECT,
        explanation="Let's learn this one!",
        correct_answer=expected,
    )
