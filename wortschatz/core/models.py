"""
Core data model for the review scheduler.

A ReviewRecord holds the SM-2 scheduling state for one learned word.
WordEntry pairs it with the learner-visible text and the linguistic
details produced by the reasoning service.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wortschatz.reasoning.schemas import WordDetails


INITIAL_EASE_FACTOR = 2.5
MINIMUM_EASE_FACTOR = 1.3

# A word counts as learned once it survived this many reviews in a row
# and its interval reached three weeks.
LEARNED_MIN_REPETITIONS = 3
LEARNED_MIN_INTERVAL = 21


class WordCategory(str, Enum):
    """Part of speech; drives which exercise archetypes are eligible."""
    NOUN = "noun"
    VERB = "verb"
    ADJECTIVE = "adjective"
    ADVERB = "adverb"
    PREPOSITION = "preposition"
    CONJUNCTION = "conjunction"
    OTHER = "other"


class MasteryHint(str, Enum):
    """Cached mastery signal. Biases exercise choice, never scheduling math."""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    LEARNED = "learned"


class Outcome(str, Enum):
    """Grading outcome of a quiz-style exercise."""
    CORRECT = "correct"
    CORRECT_AS_SYNONYM = "correct_as_synonym"
    INCORRECT = "incorrect"


class SelfReport(str, Enum):
    """Learner's own judgment after flipping a flashcard."""
    FORGOT = "forgot"
    REMEMBERED = "remembered"
    EASY = "easy"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_key(word: str) -> str:
    """Case-insensitive word key (citation form)."""
    return word.strip().casefold()


def derive_mastery_hint(repetitions: int, interval: int) -> MasteryHint:
    if repetitions == 0 and interval == 0:
        return MasteryHint.NEW
    if repetitions >= LEARNED_MIN_REPETITIONS and interval >= LEARNED_MIN_INTERVAL:
        return MasteryHint.LEARNED
    return MasteryHint.IN_PROGRESS


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ReviewRecord:
    """SM-2 scheduling state for a single word."""

    word_key: str
    category: WordCategory = WordCategory.OTHER
    ease_factor: float = INITIAL_EASE_FACTOR
    interval: int = 0  # Days until next review
    repetitions: int = 0  # Consecutive successful reviews since last lapse
    next_review_at: datetime = field(default_factory=utcnow)
    last_reviewed_at: datetime | None = None
    mastery_hint: MasteryHint = MasteryHint.NEW

    @property
    def is_unseen(self) -> bool:
        """Never graded successfully: always introduced with a flashcard."""
        return self.repetitions == 0 and self.interval == 0

    def is_due(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.next_review_at

    def evolve(self, **changes: Any) -> ReviewRecord:
        """Copy with changes applied and the mastery hint recomputed."""
        updated = replace(self, **changes)
        return replace(
            updated,
            mastery_hint=derive_mastery_hint(updated.repetitions, updated.interval),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return {
            "word_key": self.word_key,
            "category": self.category.value,
            "ease_factor": self.ease_factor,
            "interval": self.interval,
            "repetitions": self.repetitions,
            "next_review_at": self.next_review_at.isoformat(),
            "last_reviewed_at": (
                self.last_reviewed_at.isoformat() if self.last_reviewed_at else None
            ),
            "mastery_hint": self.mastery_hint.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewRecord:
        """Create from dictionary."""
        return cls(
            word_key=data["word_key"],
            category=WordCategory(data.get("category", WordCategory.OTHER.value)),
            ease_factor=float(data.get("ease_factor", INITIAL_EASE_FACTOR)),
            interval=int(data.get("interval", 0)),
            repetitions=int(data.get("repetitions", 0)),
            next_review_at=_parse_timestamp(data.get("next_review_at")) or utcnow(),
            last_reviewed_at=_parse_timestamp(data.get("last_reviewed_at")),
            mastery_hint=MasteryHint(data.get("mastery_hint", MasteryHint.NEW.value)),
        )


def new_review_record(
    word: str,
    category: WordCategory | str = WordCategory.OTHER,
    now: datetime | None = None,
) -> ReviewRecord:
    """Record for a freshly added word: due immediately, never reviewed."""
    return ReviewRecord(
        word_key=normalize_key(word),
        category=WordCategory(category),
        ease_factor=INITIAL_EASE_FACTOR,
        interval=0,
        repetitions=0,
        next_review_at=now or utcnow(),
        last_reviewed_at=None,
        mastery_hint=MasteryHint.NEW,
    )


@dataclass
class WordEntry:
    """A stored word: display text, scheduling record and linguistic details."""

    text: str
    record: ReviewRecord
    details: WordDetails | None = None

    @property
    def word_key(self) -> str:
        return self.record.word_key

    @property
    def category(self) -> WordCategory:
        return self.record.category

    def with_record(self, record: ReviewRecord) -> WordEntry:
        return WordEntry(text=self.text, record=record, details=self.details)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "record": self.record.to_dict(),
            "details": self.details.model_dump(mode="json") if self.details else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WordEntry:
        from wortschatz.reasoning.schemas import WordDetails

        details = data.get("details")
        return cls(
            text=data["text"],
            record=ReviewRecord.from_dict(data["record"]),
            details=WordDetails.model_validate(details) if details else None,
        )
