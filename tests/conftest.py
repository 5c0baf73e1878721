"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
a controllable clock, a scripted reasoning service, sample word details
and an in-memory word store.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from wortschatz.core.errors import ContentGenerationFailure, GradingFailure
from wortschatz.core.models import WordCategory, WordEntry, new_review_record, normalize_key
from wortschatz.delivery.state_store import InMemoryWordStore
from wortschatz.reasoning.schemas import (
    AdjectiveDetails,
    ClozeContent,
    ExampleSentence,
    Judgment,
    NounDetails,
    QuizQuestion,
    VerbDetails,
    WordDetails,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Clock
# =============================================================================


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, hours: float = 0) -> None:
        self.now += timedelta(days=days, hours=hours)


@pytest.fixture
def clock():
    return FixedClock()


# =============================================================================
# Reasoning service
# =============================================================================


class FakeReasoningService:
    """
    Scripted ReasoningService.

    Content calls raise ContentGenerationFailure while `fail_content` is set;
    the next `fail_grading` grading calls raise GradingFailure. `delay` makes
    every call sleep first, for timeout tests.
    """

    def __init__(self):
        self.calls: list[tuple[str, tuple]] = []
        self.details: dict[str, WordDetails] = {}
        self.quiz: QuizQuestion | None = None
        self.cloze: ClozeContent | None = None
        self.judgment = Judgment(is_correct=True, explanation="Richtig!")
        self.fail_content = False
        self.fail_grading = 0
        self.delay = 0.0

    async def _enter(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self.delay:
            await asyncio.sleep(self.delay)

    def called(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def get_word_details(self, word, category=None):
        await self._enter("get_word_details", word, category)
        details = self.details.get(normalize_key(word))
        if self.fail_content or details is None:
            raise ContentGenerationFailure(f"No details for {word}")
        return details

    async def generate_quiz_question(self, word, details):
        await self._enter("generate_quiz_question", word)
        if self.fail_content:
            raise ContentGenerationFailure("quiz generation failed", archetype="multiple_choice")
        return self.quiz or QuizQuestion(
            question=f"Was bedeutet '{word}'?",
            question_type="translation",
            options=[details.translation, "кошка", "дерево", "вода"],
            correct_answer=details.translation,
        )

    async def generate_cloze(self, word, details, example):
        await self._enter("generate_cloze", word)
        if self.fail_content:
            raise ContentGenerationFailure("cloze generation failed", archetype="cloze_sentence")
        return self.cloze or ClozeContent(
            sentence_with_blank="Ich ______ jeden Tag zur Arbeit.",
            correct_answer="gehe",
            translation="Я каждый день хожу на работу.",
        )

    async def _judge(self, name, *args):
        await self._enter(name, *args)
        if self.fail_grading > 0:
            self.fail_grading -= 1
            raise GradingFailure(f"{name} failed")
        return self.judgment

    async def grade_article_answer(self, word, answer, expected_article):
        return await self._judge("grade_article_answer", word, answer, expected_article)

    async def grade_verb_form_answer(self, word, answer, expected_form):
        return await self._judge("grade_verb_form_answer", word, answer, expected_form)

    async def grade_cloze_answer(self, word, answer, sentence, expected):
        return await self._judge("grade_cloze_answer", word, answer, sentence, expected)

    async def check_recall_answer(self, prompt_translation, word, category, article, answer):
        return await self._judge(
            "check_recall_answer", prompt_translation, word, category, article, answer
        )


@pytest.fixture
def service():
    return FakeReasoningService()


# =============================================================================
# Sample words
# =============================================================================


@pytest.fixture
def haus_details():
    return WordDetails(
        translation="дом",
        alternative_translations=["здание"],
        part_of_speech=WordCategory.NOUN,
        noun_details=NounDetails(article="das", plural="die Häuser"),
        examples=[
            ExampleSentence(german="Das Haus ist sehr alt.", russian="Этот дом очень старый."),
        ],
    )


@pytest.fixture
def gehen_details():
    return WordDetails(
        translation="идти",
        part_of_speech=WordCategory.VERB,
        verb_details=VerbDetails(
            present_tense="ich gehe, du gehst, er geht",
            perfect="ist gegangen",
        ),
        examples=[
            ExampleSentence(german="Ich gehe jeden Tag zur Arbeit.", russian="Я каждый день хожу на работу."),
        ],
    )


@pytest.fixture
def schnell_details():
    return WordDetails(
        translation="быстрый",
        part_of_speech=WordCategory.ADJECTIVE,
        adjective_details=AdjectiveDetails(comparative="schneller", superlative="am schnellsten"),
        examples=[
            ExampleSentence(german="Das Auto ist schnell.", russian="Машина быстрая."),
        ],
    )


def make_entry(text, category, details=None, now=NOW, **record_changes) -> WordEntry:
    """Entry for `text`; record_changes are applied on top of a fresh record."""
    record = new_review_record(text, category, now)
    if record_changes:
        record = record.evolve(**record_changes)
    return WordEntry(text=text, record=record, details=details)


@pytest.fixture
def seen_noun(haus_details):
    """'Haus' reviewed twice before, due now."""
    return make_entry(
        "Haus", WordCategory.NOUN, haus_details,
        ease_factor=2.5, interval=6, repetitions=2,
        next_review_at=NOW - timedelta(days=1),
        last_reviewed_at=NOW - timedelta(days=7),
    )


@pytest.fixture
def seen_verb(gehen_details):
    """'gehen' reviewed twice before, due now."""
    return make_entry(
        "gehen", WordCategory.VERB, gehen_details,
        ease_factor=2.5, interval=6, repetitions=2,
        next_review_at=NOW - timedelta(hours=2),
        last_reviewed_at=NOW - timedelta(days=6, hours=2),
    )


@pytest.fixture
def store():
    return InMemoryWordStore()


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def now():
    return NOW
