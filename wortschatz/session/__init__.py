"""Review sessions."""

from wortschatz.session.controller import (
    SessionAdvance,
    SessionController,
    SessionEvent,
    SessionState,
    SessionSummary,
    WordFilter,
)

__all__ = [
    "SessionAdvance",
    "SessionController",
    "SessionEvent",
    "SessionState",
    "SessionSummary",
    "WordFilter",
]
