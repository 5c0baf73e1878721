"""
Exercise archetype handlers for review sessions.

Each archetype (flashcard, multiple choice, article drill, ...) has its own
module with:
- prepare(): Build the exercise content, locally or via the reasoning service
- grade(): Judge the learner's answer and return a GradeResult
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import ExerciseHandler


class Archetype(str, Enum):
    """Exercise archetypes, in draw order."""
    FLASHCARD = "flashcard"
    MULTIPLE_CHOICE = "multiple_choice"
    ARTICLE_DRILL = "article_drill"
    VERB_FORM_DRILL = "verb_form_drill"
    CLOZE_SENTENCE = "cloze_sentence"
    FREE_RECALL = "free_recall"


# Handler registry - populated by @register decorator
HANDLERS: dict[Archetype, "ExerciseHandler"] = {}


def register(archetype: Archetype):
    """Decorator to register an exercise handler."""
    def decorator(cls):
        HANDLERS[archetype] = cls()
        return cls
    return decorator


def get_handler(archetype: str | Archetype) -> "ExerciseHandler | None":
    """Get the handler for an archetype."""
    if isinstance(archetype, str):
        try:
            archetype = Archetype(archetype.lower())
        except ValueError:
            return None
    return HANDLERS.get(archetype)


# Import handlers to trigger registration
from . import flashcard
from . import multiple_choice
from . import article_drill
from . import verb_form_drill
from . import cloze
from . import free_recall

__all__ = [
    "Archetype",
    "HANDLERS",
    "get_handler",
    "register",
]
