"""Core data model and error taxonomy."""

from wortschatz.core.errors import (
    ContentGenerationFailure,
    GradingFailure,
    InvalidAnswer,
    InvalidQuality,
    InvalidTransition,
    NothingDue,
    PersistenceFailure,
    SessionClosed,
    SessionNotFound,
    WortschatzError,
)
from wortschatz.core.models import (
    MasteryHint,
    Outcome,
    ReviewRecord,
    SelfReport,
    WordCategory,
    WordEntry,
    new_review_record,
    normalize_key,
)

__all__ = [
    # Models
    "MasteryHint",
    "Outcome",
    "ReviewRecord",
    "SelfReport",
    "WordCategory",
    "WordEntry",
    "new_review_record",
    "normalize_key",
    # Errors
    "ContentGenerationFailure",
    "GradingFailure",
    "InvalidAnswer",
    "InvalidQuality",
    "InvalidTransition",
    "NothingDue",
    "PersistenceFailure",
    "SessionClosed",
    "SessionNotFound",
    "WortschatzError",
]
