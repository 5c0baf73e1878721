"""
Cloze sentence handler.

Fill-in-the-blank over one of the word's example sentences. When the word
appears verbatim in an example, the blank is cut locally; inflected forms
(conjugated verbs, declined adjectives) are left to the reasoning service.
"""

import re
from typing import Any

from wortschatz.core.errors import ContentGenerationFailure
from wortschatz.core.models import Outcome, WordEntry
from wortschatz.reasoning.schemas import BLANK_MARKER, ClozeContent, WordDetails
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

_TRAILING_PUNCT = re.compile(r"[\W_]+$")


def local_cloze(word: str, details: WordDetails) -> ClozeContent | None:
    """
    Blank out the word in the first example that contains it as a whole word.

    Returns None if no example contains the citation form.
    """
    base = _TRAILING_PUNCT.sub("", word.strip())
    if not base:
        return None
    pattern = re.compile(rf"\b{re.escape(base)}\b", re.IGNORECASE)

    for example in details.examples:
        match = pattern.search(example.german)
        if match:
            return ClozeContent(
                sentence_with_blank=pattern.sub(BLANK_MARKER, example.german, count=1),
                correct_answer=match.group(0),
                translation=example.russian,
            )
    return None


@register(Archetype.CLOZE_SENTENCE)
class ClozeHandler:
    """Handler for cloze sentences."""

    async def prepare(
        self, entry: WordEntry, service: ReasoningService
    ) -> ExercisePresentation:
        details = require_details(entry, Archetype.CLOZE_SENTENCE)
        if not details.examples:
            raise ContentGenerationFailure(
                f"No example sentences for '{entry.text}'",
                archetype=Archetype.CLOZE_SENTENCE.value,
            )

        content = local_cloze(entry.text, details)
        if content is None:
            content = await service.generate_cloze(entry.text, details, details.examples[0])

        return ExercisePresentation(
            archetype=Archetype.CLOZE_SENTENCE,
            word_key=entry.word_key,
            word=entry.text,
            prompt=content.sentence_with_blank,
            expected_answer=content.correct_answer,
            context={"translation": content.translation},
        )

    async def grade(
        self,
        entry: WordEntry,
        presentation: ExercisePresentation,
        answer: Any,
        service: ReasoningService,
    ) -> GradeResult:
        user_answer = str(answer).strip()
        expected = presentation.expected_answer or ""

        if is_dont_know(user_answer):
            return dont_know_result(Archetype.CLOZE_SENTENCE, expected)

        if normalize_answer(user_answer) == normalize_answer(expected):
            return GradeResult(
                archetype=Archetype.CLOZE_SENTENCE,
                user_answer=user_answer,
                is_correct=True,
                outcome=Outcome.CORRECT,
                explanation="Correct!",
                correct_answer=expected,
            )

        judgment = await service.grade_cloze_answer(
            entry.text, user_answer, presentation.prompt, expected
        )
        return GradeResult(
            archetype=Archetype.CLOZE_SENTENCE,
            user_answer=user_answer,
            is_correct=judgment.is_correct,
            outcome=outcome_from_judgment(judgment.is_correct, judgment.is_synonym),
            explanation=judgment.explanation,
            hint=judgment.hint,
            correct_answer=expected,
        )
