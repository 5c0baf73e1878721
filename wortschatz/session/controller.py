"""
Review session controller.

Drives one learner through a queue of words:

    LOADING -> PRESENTING -> CHECKING -> FEEDBACK -> (PRESENTING | COMPLETE)

Only one word is in flight per session. Scheduling updates are applied
when the learner advances past a graded word, in completion order, and are
written back to the store one record at a time. Reasoning-service failures
never touch a record: content failures fall back to a flashcard, grading
failures leave the exercise open for a retry.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from loguru import logger

from wortschatz.core.errors import (
    ContentGenerationFailure,
    GradingFailure,
    InvalidAnswer,
    InvalidTransition,
    NothingDue,
    PersistenceFailure,
    SessionClosed,
    SessionNotFound,
)
from wortschatz.core.models import (
    MasteryHint,
    ReviewRecord,
    WordCategory,
    WordEntry,
    normalize_key,
    utcnow,
)
from wortschatz.delivery.scheduler import SchedulingEngine
from wortschatz.delivery.state_store import ReviewLogEntry, WordStore
from wortschatz.exercises import Archetype, get_handler
from wortschatz.exercises.base import ExercisePresentation, GradeResult
from wortschatz.exercises.flashcard import build_flashcard
from wortschatz.learning.exercise_selector import ExerciseSelector
from wortschatz.reasoning.service import ReasoningService

if TYPE_CHECKING:
    from wortschatz.config import Settings


class SessionState(str, Enum):
    LOADING = "loading"
    PRESENTING = "presenting"
    CHECKING = "checking"
    FEEDBACK = "feedback"
    COMPLETE = "complete"
    CLOSED = "closed"


# Allowed state changes; anything else raises InvalidTransition
TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.LOADING: {SessionState.PRESENTING, SessionState.CLOSED},
    SessionState.PRESENTING: {
        SessionState.PRESENTING,
        SessionState.CHECKING,
        SessionState.COMPLETE,
        SessionState.CLOSED,
    },
    SessionState.CHECKING: {
        SessionState.PRESENTING,
        SessionState.FEEDBACK,
        SessionState.COMPLETE,
        SessionState.CLOSED,
    },
    SessionState.FEEDBACK: {
        SessionState.PRESENTING,
        SessionState.COMPLETE,
        SessionState.CLOSED,
    },
    SessionState.COMPLETE: {SessionState.CLOSED},
    SessionState.CLOSED: set(),
}

PROGRESS_NOT_SAVED = "Your progress may not be saved"


# =============================================================================
# Session data
# =============================================================================


@dataclass
class WordFilter:
    """Restricts which stored words a session may include. Empty means all."""

    categories: set[WordCategory] = field(default_factory=set)
    mastery_hints: set[MasteryHint] = field(default_factory=set)
    word_keys: set[str] = field(default_factory=set)
    predicate: Callable[[WordEntry], bool] | None = None

    def matches(self, entry: WordEntry) -> bool:
        if self.categories and entry.category not in self.categories:
            return False
        if self.mastery_hints and entry.record.mastery_hint not in self.mastery_hints:
            return False
        if self.word_keys and entry.word_key not in {normalize_key(k) for k in self.word_keys}:
            return False
        if self.predicate is not None and not self.predicate(entry):
            return False
        return True


@dataclass
class QueueItem:
    """One word in the session queue and what happened to it."""

    entry: WordEntry
    presentation: ExercisePresentation | None = None
    result: GradeResult | None = None
    updated_record: ReviewRecord | None = None
    pending_answer: Any = None  # Kept after a grading failure for retry
    skipped: bool = False

    @property
    def is_done(self) -> bool:
        return self.updated_record is not None or self.skipped


@dataclass
class ReviewSession:
    """In-memory state of one review session."""

    session_id: str
    items: list[QueueItem]
    started_at: datetime
    review_anyway: bool = False
    state: SessionState = SessionState.LOADING
    index: int = 0
    warnings: list[str] = field(default_factory=list)
    fallbacks: int = 0
    completed_at: datetime | None = None

    @property
    def current(self) -> QueueItem | None:
        if 0 <= self.index < len(self.items):
            return self.items[self.index]
        return None

    @property
    def remaining(self) -> int:
        return sum(1 for item in self.items if not item.is_done)


@dataclass
class SessionEvent:
    """Published to subscribers on every state change."""

    session_id: str
    previous: SessionState
    current: SessionState
    session: ReviewSession


@dataclass
class SessionAdvance:
    """Result of moving past the current word."""

    session_id: str
    state: SessionState
    progress_saved: bool = True
    record: ReviewRecord | None = None
    warning: str | None = None

    @property
    def completed(self) -> bool:
        return self.state == SessionState.COMPLETE


@dataclass
class SessionSummary:
    session_id: str
    state: SessionState
    total: int
    graded: int
    correct: int
    skipped: int
    fallbacks: int
    warnings: list[str]

    @property
    def accuracy(self) -> float:
        return (self.correct / self.graded * 100) if self.graded else 0.0


# =============================================================================
# Controller
# =============================================================================


class SessionController:
    """
    Orchestrates review sessions over a word store.

    All collaborators are injected: the store (persistence port), the
    reasoning service, the scheduling engine and the exercise selector.
    """

    def __init__(
        self,
        store: WordStore,
        service: ReasoningService,
        engine: SchedulingEngine | None = None,
        selector: ExerciseSelector | None = None,
        timeout: float = 20.0,
        session_limit: int = 20,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.service = service
        self.clock = clock or utcnow
        self.engine = engine or SchedulingEngine(clock=self.clock)
        self.selector = selector or ExerciseSelector()
        self.timeout = timeout
        self.session_limit = session_limit
        self._sessions: dict[str, ReviewSession] = {}
        self._subscribers: list[Callable[[SessionEvent], None]] = []

    @classmethod
    def from_settings(
        cls,
        store: WordStore,
        service: ReasoningService,
        settings: Settings,
        **kwargs: Any,
    ) -> SessionController:
        kwargs.setdefault("selector", ExerciseSelector(settings.selection_weights()))
        return cls(
            store,
            service,
            timeout=settings.service_timeout_seconds,
            session_limit=settings.session_limit,
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Callable[[SessionEvent], None]) -> Callable[[], None]:
        """Register a state-change callback. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _transition(self, session: ReviewSession, target: SessionState) -> None:
        previous = session.state
        if target not in TRANSITIONS[previous]:
            raise InvalidTransition(
                f"Session {session.session_id}: cannot go from {previous.value} to {target.value}"
            )
        session.state = target
        if target == SessionState.COMPLETE:
            session.completed_at = self.clock()

        event = SessionEvent(session.session_id, previous, target, session)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Session subscriber failed: {e}")

    def _require(self, session: ReviewSession, *states: SessionState) -> None:
        if session.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransition(
                f"Session {session.session_id} is {session.state.value}; expected {allowed}"
            )

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    async def start_session(
        self,
        word_filter: WordFilter | None = None,
        review_anyway: bool = False,
        limit: int | None = None,
    ) -> str:
        """
        Build a session from a snapshot of the store.

        Args:
            word_filter: Restrict the candidate words (all words if None)
            review_anyway: Queue filtered words even when none are due
            limit: Maximum queued words (defaults to session_limit)

        Returns:
            The new session id

        Raises:
            NothingDue: No word is due and review_anyway is False
            PersistenceFailure: The snapshot could not be read
        """
        word_filter = word_filter or WordFilter()
        limit = limit or self.session_limit
        now = self.clock()

        entries = [e for e in self.store.get_all() if word_filter.matches(e)]
        by_key = {e.word_key: e for e in entries}
        due = self.engine.due_records((e.record for e in entries), now)

        if due:
            records = due
        elif review_anyway and entries:
            records = sorted(
                (e.record for e in entries), key=lambda r: (r.next_review_at, r.word_key)
            )
        else:
            raise NothingDue(len(entries))

        session = ReviewSession(
            session_id=uuid.uuid4().hex[:8],
            items=[QueueItem(entry=by_key[r.word_key]) for r in records[:limit]],
            started_at=now,
            review_anyway=not due,
        )
        self._sessions[session.session_id] = session
        self._transition(session, SessionState.PRESENTING)

        logger.info(
            f"Session {session.session_id} started: {len(session.items)} words "
            f"({len(due)} due, review_anyway={session.review_anyway})"
        )
        return session.session_id

    def get_session(self, session_id: str) -> ReviewSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    def close_session(self, session_id: str) -> SessionSummary:
        """
        End the session. A graded word that was not advanced is discarded.
        """
        session = self.get_session(session_id)
        if session.state == SessionState.CLOSED:
            return self.summary(session_id)

        item = session.current
        if item is not None and item.result is not None and item.updated_record is None:
            logger.info(
                f"Session {session_id} closed with an unapplied result for "
                f"'{item.entry.word_key}' - discarded"
            )
            item.result = None

        self._transition(session, SessionState.CLOSED)
        return self.summary(session_id)

    def summary(self, session_id: str) -> SessionSummary:
        session = self.get_session(session_id)
        applied = [i for i in session.items if i.updated_record is not None and i.result]
        return SessionSummary(
            session_id=session.session_id,
            state=session.state,
            total=len(session.items),
            graded=len(applied),
            correct=sum(1 for i in applied if i.result.is_correct),
            skipped=sum(1 for i in session.items if i.skipped),
            fallbacks=session.fallbacks,
            warnings=list(session.warnings),
        )

    # -------------------------------------------------------------------------
    # Presenting
    # -------------------------------------------------------------------------

    async def get_current_exercise(self, session_id: str) -> ExercisePresentation:
        """
        The exercise for the current word.

        Built once per visit; later calls return the same presentation.
        Words already graded in this session come back read-only.
        """
        session = self.get_session(session_id)
        self._require(
            session, SessionState.PRESENTING, SessionState.CHECKING, SessionState.FEEDBACK
        )
        item = session.current

        if item.presentation is None:
            item.presentation = await self._prepare(session, item.entry)

        if item.is_done:
            item.presentation.read_only = True
        return item.presentation

    async def _prepare(self, session: ReviewSession, entry: WordEntry) -> ExercisePresentation:
        archetype = self.selector.select_archetype(entry.record)
        logger.debug(f"Session {session.session_id}: '{entry.word_key}' -> {archetype.value}")

        handler = get_handler(archetype)
        if handler is None:
            return self._fallback(session, entry, f"No handler for {archetype.value}")

        try:
            presentation = await asyncio.wait_for(
                handler.prepare(entry, self.service), timeout=self.timeout
            )
        except ContentGenerationFailure as e:
            return self._fallback(session, entry, str(e))
        except asyncio.TimeoutError:
            return self._fallback(
                session, entry, f"{archetype.value} content timed out after {self.timeout}s"
            )

        if not presentation.prompt.strip():
            return self._fallback(session, entry, f"Empty {archetype.value} content")
        return presentation

    def _fallback(self, session: ReviewSession, entry: WordEntry, reason: str) -> ExercisePresentation:
        logger.warning(f"Falling back to flashcard for '{entry.word_key}': {reason}")
        session.fallbacks += 1
        return build_flashcard(entry, fallback_reason=reason)

    # -------------------------------------------------------------------------
    # Checking
    # -------------------------------------------------------------------------

    async def submit_answer(self, session_id: str, answer: Any = None) -> GradeResult:
        """
        Grade the learner's answer for the current exercise.

        After a GradingFailure the session stays in CHECKING; calling again
        retries, with `answer=None` reusing the previous answer.

        Raises:
            InvalidAnswer: Answer does not fit the exercise (back to PRESENTING)
            GradingFailure: The service could not grade (stays in CHECKING)
            InvalidTransition: Word already graded or no exercise presented
            SessionClosed: The session was closed while grading was pending
        """
        session = self.get_session(session_id)
        self._require(session, SessionState.PRESENTING, SessionState.CHECKING)
        item = session.current

        if item.is_done or item.result is not None:
            raise InvalidTransition(f"'{item.entry.word_key}' was already graded in this session")
        if item.presentation is None:
            raise InvalidTransition("No exercise presented yet - call get_current_exercise first")

        if answer is None:
            if item.pending_answer is None:
                raise InvalidAnswer("No answer given")
            answer = item.pending_answer

        if session.state == SessionState.PRESENTING:
            self._transition(session, SessionState.CHECKING)

        handler = get_handler(item.presentation.archetype)
        try:
            result = await asyncio.wait_for(
                handler.grade(item.entry, item.presentation, answer, self.service),
                timeout=self.timeout,
            )
        except InvalidAnswer:
            self._ensure_open(session)
            item.pending_answer = None
            self._transition(session, SessionState.PRESENTING)
            raise
        except GradingFailure as e:
            self._ensure_open(session)
            item.pending_answer = answer
            logger.warning(f"Grading failed for '{item.entry.word_key}': {e}")
            raise
        except asyncio.TimeoutError:
            self._ensure_open(session)
            item.pending_answer = answer
            logger.warning(f"Grading timed out for '{item.entry.word_key}'")
            raise GradingFailure(f"Grading timed out after {self.timeout}s") from None

        self._ensure_open(session)
        result.quality = self._quality(result)
        item.result = result
        item.pending_answer = None
        self._transition(session, SessionState.FEEDBACK)

        logger.info(
            f"Graded '{item.entry.word_key}' ({result.archetype.value}): "
            f"correct={result.is_correct}, q={result.quality}"
        )
        return result

    @staticmethod
    def _ensure_open(session: ReviewSession) -> None:
        # close_session may run while the grader is awaited; drop the result
        if session.state == SessionState.CLOSED:
            logger.info(f"Session {session.session_id} closed during grading, result discarded")
            raise SessionClosed(session.session_id)

    def _quality(self, result: GradeResult) -> int:
        if result.self_report is not None:
            return self.engine.quality_for_self_report(result.self_report)
        return self.engine.quality_for_outcome(result.outcome)

    # -------------------------------------------------------------------------
    # Feedback / navigation
    # -------------------------------------------------------------------------

    def advance(self, session_id: str) -> SessionAdvance:
        """
        Apply the graded result and move to the next word.

        From PRESENTING this is only allowed on a word that is already done
        (revisited after go_back); it then just moves forward.
        """
        session = self.get_session(session_id)
        self._require(session, SessionState.FEEDBACK, SessionState.PRESENTING)
        item = session.current

        outcome = SessionAdvance(session_id=session_id, state=session.state)
        if session.state == SessionState.FEEDBACK:
            outcome = self._apply(session, item)
        elif not item.is_done:
            raise InvalidTransition(
                f"'{item.entry.word_key}' has not been graded - submit an answer or skip it"
            )

        self._move_forward(session)
        outcome.state = session.state
        return outcome

    def skip(self, session_id: str) -> SessionAdvance:
        """Abandon the current exercise. The record is left unchanged."""
        session = self.get_session(session_id)
        self._require(session, SessionState.PRESENTING, SessionState.CHECKING)
        item = session.current
        if item.is_done:
            raise InvalidTransition(f"'{item.entry.word_key}' is already done")

        item.skipped = True
        item.pending_answer = None
        logger.info(f"Session {session_id}: skipped '{item.entry.word_key}'")

        self._move_forward(session)
        return SessionAdvance(session_id=session_id, state=session.state)

    def go_back(self, session_id: str) -> ExercisePresentation:
        """
        Revisit the previous word read-only. Never undoes a grading.

        Only allowed while the current word is not in checking or feedback.
        A word skipped before its exercise was built comes back as a plain
        flashcard, without asking the reasoning service for content.
        """
        session = self.get_session(session_id)
        self._require(session, SessionState.PRESENTING)
        if session.index == 0:
            raise InvalidTransition("Already at the first word")

        session.index -= 1
        self._transition(session, SessionState.PRESENTING)
        item = session.current
        if item.presentation is None:
            item.presentation = build_flashcard(item.entry)
        item.presentation.read_only = True
        return item.presentation

    def _apply(self, session: ReviewSession, item: QueueItem) -> SessionAdvance:
        result = item.result
        now = self.clock()
        updated = self.engine.update(item.entry.record, result.quality, now)
        item.updated_record = updated

        advance = SessionAdvance(session_id=session.session_id, state=session.state, record=updated)
        try:
            self.store.upsert(item.entry.with_record(updated))
            self.store.log_review(
                ReviewLogEntry(
                    word_key=updated.word_key,
                    reviewed_at=now,
                    quality=result.quality,
                    archetype=result.archetype.value,
                    outcome=(result.outcome or result.self_report).value,
                )
            )
        except PersistenceFailure as e:
            logger.error(f"Could not save review of '{updated.word_key}': {e}")
            session.warnings.append(f"{PROGRESS_NOT_SAVED} ('{item.entry.text}')")
            advance.progress_saved = False
            advance.warning = PROGRESS_NOT_SAVED
        return advance

    def _move_forward(self, session: ReviewSession) -> None:
        session.index += 1
        if session.index >= len(session.items):
            session.index = len(session.items) - 1
            self._transition(session, SessionState.COMPLETE)
            logger.info(f"Session {session.session_id} complete")
        else:
            self._transition(session, SessionState.PRESENTING)
