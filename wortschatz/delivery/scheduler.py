"""
SM-2 Spaced Repetition Scheduler.

Implements:
- SM-2 update of ease factor, interval and repetitions
- On-demand due filtering (no background scheduling)
- Mapping of grading outcomes to SM-2 quality scores

SM-2 Quality Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall

Unlike textbook SM-2, the ease factor is frozen on a failed review; only
successful reviews move it.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger

from wortschatz.core.errors import InvalidQuality
from wortschatz.core.models import (
    INITIAL_EASE_FACTOR,
    MINIMUM_EASE_FACTOR,
    Outcome,
    ReviewRecord,
    SelfReport,
    utcnow,
)

PASSING_QUALITY = 3


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = INITIAL_EASE_FACTOR
    minimum_easiness: float = MINIMUM_EASE_FACTOR
    first_interval: int = 1  # Days for first review
    second_interval: int = 6  # Days for second review
    failed_interval: int = 1  # Days after a lapse

    # Outcome -> quality
    quality_correct: int = 5
    quality_synonym: int = 4
    quality_incorrect: int = 2

    # Flashcard self-report -> quality
    quality_forgot: int = 1
    quality_remembered: int = 3
    quality_easy: int = 5


def _round_half_up(value: float) -> int:
    """Round x.5 away from zero for positive intervals."""
    return int(math.floor(value + 0.5))


def validate_quality(quality: object) -> int:
    """Return quality unchanged or raise InvalidQuality. Never clamps."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQuality(quality)
    if not 0 <= quality <= 5:
        raise InvalidQuality(quality)
    return quality


# =============================================================================
# Scheduling Engine
# =============================================================================


class SchedulingEngine:
    """
    Implements the SM-2 spaced repetition algorithm.

    The SuperMemo 2 algorithm calculates review intervals from performance
    history. Each word has:
    - Ease Factor (EF): long-run difficulty (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetitions: Consecutive correct recalls since the last lapse

    The engine holds no state of its own; `update` returns a new record.
    """

    def __init__(
        self,
        config: SM2Config | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
            clock: Source of "now" (defaults to current UTC time)
        """
        self.config = config or SM2Config()
        self.clock = clock or utcnow

    def update(
        self,
        record: ReviewRecord,
        quality: int,
        now: datetime | None = None,
    ) -> ReviewRecord:
        """
        Calculate the next scheduling state from a quality score.

        Args:
            record: Current state for the word
            quality: Recall quality (0-5)
            now: Review time (defaults to the engine clock)

        Returns:
            Updated ReviewRecord; the input is not modified

        Raises:
            InvalidQuality: If quality is not an integer in [0, 5]
        """
        quality = validate_quality(quality)
        now = now or self.clock()

        if quality < PASSING_QUALITY:
            # Failed - back to the start, ease untouched
            new_ef = record.ease_factor
            new_repetitions = 0
            new_interval = self.config.failed_interval
        else:
            # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
            ef_delta = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
            new_ef = max(self.config.minimum_easiness, record.ease_factor + ef_delta)
            new_repetitions = record.repetitions + 1

            if new_repetitions == 1:
                new_interval = self.config.first_interval
            elif new_repetitions == 2:
                new_interval = self.config.second_interval
            else:
                new_interval = _round_half_up(record.interval * new_ef)

        updated = record.evolve(
            ease_factor=new_ef,
            interval=new_interval,
            repetitions=new_repetitions,
            next_review_at=now + timedelta(days=new_interval),
            last_reviewed_at=now,
        )

        logger.debug(
            f"SM-2 update for '{record.word_key}': q={quality}, "
            f"ef={record.ease_factor:.2f}->{new_ef:.2f}, "
            f"interval={record.interval}->{new_interval}d, reps={new_repetitions}"
        )

        return updated

    # -------------------------------------------------------------------------
    # Due status
    # -------------------------------------------------------------------------

    def is_due(self, record: ReviewRecord, now: datetime | None = None) -> bool:
        """Check if a word is due for review."""
        return record.is_due(now or self.clock())

    def days_overdue(self, record: ReviewRecord, now: datetime | None = None) -> int:
        """Whole days past the scheduled review time."""
        delta = (now or self.clock()) - record.next_review_at
        return max(0, delta.days)

    def due_records(
        self,
        records: Iterable[ReviewRecord],
        now: datetime | None = None,
    ) -> list[ReviewRecord]:
        """
        Filter records that are due, most overdue first.

        Ties are broken by word key so the order is deterministic.
        """
        now = now or self.clock()
        due = [r for r in records if r.is_due(now)]
        due.sort(key=lambda r: (r.next_review_at, r.word_key))
        return due

    # -------------------------------------------------------------------------
    # Quality mapping
    # -------------------------------------------------------------------------

    def quality_for_outcome(self, outcome: Outcome) -> int:
        """Convert a grading outcome to an SM-2 quality."""
        mapping = {
            Outcome.CORRECT: self.config.quality_correct,
            Outcome.CORRECT_AS_SYNONYM: self.config.quality_synonym,
            Outcome.INCORRECT: self.config.quality_incorrect,
        }
        return mapping[Outcome(outcome)]

    def quality_for_self_report(self, report: SelfReport) -> int:
        """Convert a flashcard self-report to an SM-2 quality."""
        mapping = {
            SelfReport.FORGOT: self.config.quality_forgot,
            SelfReport.REMEMBERED: self.config.quality_remembered,
            SelfReport.EASY: self.config.quality_easy,
        }
        return mapping[SelfReport(report)]
