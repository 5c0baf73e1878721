"""
Error taxonomy.

InvalidQuality and InvalidTransition are programming errors and fail fast.
The remaining errors are operational: callers degrade gracefully and never
touch scheduling state because of them.
"""

from __future__ import annotations


class WortschatzError(Exception):
    """Base class for all errors raised by this package."""
    pass


class InvalidQuality(WortschatzError, ValueError):
    """Quality score outside [0, 5] passed to the scheduling engine."""

    def __init__(self, quality: object):
        self.quality = quality
        super().__init__(f"Quality must be an integer in [0, 5], got {quality!r}")


class ContentGenerationFailure(WortschatzError):
    """The reasoning service could not produce exercise content."""

    def __init__(self, message: str, archetype: str | None = None):
        self.archetype = archetype
        super().__init__(message)


class GradingFailure(WortschatzError):
    """The reasoning service could not grade an answer (timeout, bad payload)."""
    pass


class PersistenceFailure(WortschatzError):
    """A store read or write failed."""
    pass


class SessionNotFound(WortschatzError, KeyError):
    """No active session with the given id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(session_id)

    def __str__(self) -> str:
        return f"Unknown session: {self.session_id}"


class InvalidTransition(WortschatzError):
    """A session operation was called in a state that does not allow it."""
    pass


class NothingDue(WortschatzError):
    """No word is due; `available` words could still be reviewed anyway."""

    def __init__(self, available: int):
        self.available = available
        super().__init__(
            f"No words are due for review ({available} available for a review-anyway session)"
        )


class InvalidAnswer(WortschatzError, ValueError):
    """The submitted answer does not fit the exercise (e.g. unknown option)."""
    pass


class SessionClosed(WortschatzError):
    """The session was closed while a service call for it was in flight."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} was closed")
