"""
Exercise Selection for Adaptive Review.

Picks the exercise archetype for a due word based on:
- Exposure (unseen words are always introduced with a flashcard)
- Part of speech (article drills for nouns, verb-form drills for verbs)
- Ease factor (grammar drills only while the word is still shaky)

Each selection is independent of the previous ones. The random source is
injected so a seeded `random.Random` makes draws reproducible.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from loguru import logger

from wortschatz.core.models import ReviewRecord, WordCategory
from wortschatz.exercises import Archetype

# Archetypes every seen word may get, in draw order
BASE_ARCHETYPES = (
    Archetype.MULTIPLE_CHOICE,
    Archetype.CLOZE_SENTENCE,
    Archetype.FREE_RECALL,
)

# Grammar drills tied to one part of speech
CATEGORY_DRILLS = {
    WordCategory.NOUN: Archetype.ARTICLE_DRILL,
    WordCategory.VERB: Archetype.VERB_FORM_DRILL,
}


@dataclass
class SelectionWeights:
    """Relative draw weights and the ease thresholds gating grammar drills."""

    multiple_choice: float = 0.25
    cloze_sentence: float = 0.4
    free_recall: float = 0.35
    article_drill: float = 0.3
    verb_form_drill: float = 0.35
    article_drill_ease_threshold: float = 2.8
    verb_drill_ease_threshold: float = 3.0

    def __post_init__(self) -> None:
        for name in (
            "multiple_choice",
            "cloze_sentence",
            "free_recall",
            "article_drill",
            "verb_form_drill",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"Selection weight '{name}' must be >= 0")

    def base_weight(self, archetype: Archetype) -> float:
        return {
            Archetype.MULTIPLE_CHOICE: self.multiple_choice,
            Archetype.CLOZE_SENTENCE: self.cloze_sentence,
            Archetype.FREE_RECALL: self.free_recall,
            Archetype.ARTICLE_DRILL: self.article_drill,
            Archetype.VERB_FORM_DRILL: self.verb_form_drill,
        }.get(archetype, 0.0)


class ExerciseSelector:
    """
    Select the exercise archetype for a word.

    Rules, in priority order:
    1. Unseen gate: repetitions == 0 and interval == 0 -> Flashcard
    2. Category eligibility: base archetypes plus the category's drill
    3. Weighted draw; the drill only joins while ease is below its threshold
    """

    def __init__(
        self,
        weights: SelectionWeights | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize exercise selector.

        Args:
            weights: Draw weights and drill thresholds (defaults if None)
            rng: Random source (a fresh unseeded Random if None)
        """
        self.weights = weights or SelectionWeights()
        self.rng = rng or random.Random()

    def eligible_archetypes(self, category: WordCategory) -> list[Archetype]:
        """Archetypes valid for a part of speech, ignoring ease."""
        drill = CATEGORY_DRILLS.get(WordCategory(category))
        if drill is None:
            return list(BASE_ARCHETYPES)
        # Keep the drill next to multiple choice so draw order is stable
        return [BASE_ARCHETYPES[0], drill, *BASE_ARCHETYPES[1:]]

    def _drill_active(self, archetype: Archetype, ease_factor: float) -> bool:
        if archetype == Archetype.ARTICLE_DRILL:
            return ease_factor < self.weights.article_drill_ease_threshold
        if archetype == Archetype.VERB_FORM_DRILL:
            return ease_factor < self.weights.verb_drill_ease_threshold
        return True

    def candidate_weights(self, record: ReviewRecord) -> list[tuple[Archetype, float]]:
        """
        Weighted candidates for a seen word, in draw order.

        Zero-weight candidates are dropped.
        """
        candidates = []
        for archetype in self.eligible_archetypes(record.category):
            if not self._drill_active(archetype, record.ease_factor):
                continue
            weight = self.weights.base_weight(archetype)
            if weight > 0:
                candidates.append((archetype, weight))
        return candidates

    def select_archetype(self, record: ReviewRecord) -> Archetype:
        """
        Pick the archetype for the next exercise on this word.

        Returns:
            Flashcard for unseen words, otherwise a weighted draw
        """
        if record.is_unseen:
            return Archetype.FLASHCARD

        candidates = self.candidate_weights(record)
        total_weight = sum(weight for _, weight in candidates)
        if total_weight <= 0:
            logger.warning(
                f"All exercise weights are zero for '{record.word_key}' - using flashcard"
            )
            return Archetype.FLASHCARD

        draw = self.rng.random() * total_weight
        cumulative = 0.0
        for archetype, weight in candidates:
            cumulative += weight
            if cumulative > draw:
                return archetype

        # Float rounding can leave draw == cumulative on the last step
        return candidates[-1][0]
