"""
State Store for wortschatz.

Provides persistence for:
- Word entries (review record + linguistic details) keyed by word key
- Review history log
- Cached word-details payloads from the reasoning service

The session controller only depends on the WordStore protocol. Two
implementations ship here: SqlWordStore (SQLAlchemy, SQLite by default) and
InMemoryWordStore.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger
from sqlalchemy import DateTime, Float, Integer, String, Text, create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from wortschatz.core.errors import PersistenceFailure
from wortschatz.core.models import (
    MasteryHint,
    ReviewRecord,
    WordCategory,
    WordEntry,
    normalize_key,
    utcnow,
)
from wortschatz.reasoning.schemas import WordDetails

# Bump to invalidate every cached details payload after a schema change
DETAILS_CACHE_VERSION = "1"


# =============================================================================
# Port
# =============================================================================


@dataclass
class ReviewLogEntry:
    """A single graded review."""

    word_key: str
    reviewed_at: datetime
    quality: int
    archetype: str
    outcome: str | None = None
    id: int | None = None


@runtime_checkable
class WordStore(Protocol):
    """Keyed store of word entries. Reads return the last written state."""

    def get_all(self) -> list[WordEntry]:
        ...

    def get(self, word_key: str) -> WordEntry | None:
        ...

    def upsert(self, entry: WordEntry) -> None:
        ...

    def delete(self, word_key: str) -> bool:
        ...

    def log_review(self, review: ReviewLogEntry) -> None:
        ...


# =============================================================================
# ORM Models
# =============================================================================


class Base(DeclarativeBase):
    pass


class WordRow(Base):
    """One learned word with its SM-2 state."""

    __tablename__ = "words"

    word_key: Mapped[str] = mapped_column(String(200), primary_key=True)
    text: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(20), default=WordCategory.OTHER.value)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval: Mapped[int] = mapped_column(Integer, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    next_review_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    mastery_hint: Mapped[str] = mapped_column(String(20), default=MasteryHint.NEW.value)
    details_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<WordRow {self.word_key} interval={self.interval} reps={self.repetitions}>"


class ReviewLogRow(Base):
    """Review history log."""

    __tablename__ = "review_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    word_key: Mapped[str] = mapped_column(String(200), index=True)
    reviewed_at: Mapped[datetime] = mapped_column(DateTime)
    quality: Mapped[int] = mapped_column(Integer)
    archetype: Mapped[str] = mapped_column(String(30))
    outcome: Mapped[str | None] = mapped_column(String(30), nullable=True)


class DetailsCacheRow(Base):
    """Cached reasoning-service word details."""

    __tablename__ = "word_details_cache"

    cache_key: Mapped[str] = mapped_column(String(200), primary_key=True)
    version: Mapped[str] = mapped_column(String(10))
    cached_at: Mapped[datetime] = mapped_column(DateTime)
    payload: Mapped[str] = mapped_column(Text)


# SQLite drops tzinfo; store naive UTC and re-attach it on read
def _to_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_entry(row: WordRow) -> WordEntry:
    record = ReviewRecord(
        word_key=row.word_key,
        category=WordCategory(row.category),
        ease_factor=row.ease_factor,
        interval=row.interval,
        repetitions=row.repetitions,
        next_review_at=_from_db(row.next_review_at),
        last_reviewed_at=_from_db(row.last_reviewed_at),
        mastery_hint=MasteryHint(row.mastery_hint),
    )
    details = WordDetails.model_validate_json(row.details_json) if row.details_json else None
    return WordEntry(text=row.text, record=record, details=details)


def _apply_entry(row: WordRow, entry: WordEntry) -> None:
    record = entry.record
    row.text = entry.text
    row.category = record.category.value
    row.ease_factor = record.ease_factor
    row.interval = record.interval
    row.repetitions = record.repetitions
    row.next_review_at = _to_db(record.next_review_at)
    row.last_reviewed_at = _to_db(record.last_reviewed_at)
    row.mastery_hint = record.mastery_hint.value
    row.details_json = entry.details.model_dump_json() if entry.details else None


# =============================================================================
# SQL Store
# =============================================================================


class SqlWordStore:
    """
    SQLAlchemy-backed word store.

    Database location defaults to ~/.wortschatz/words.db (see Settings).
    Every SQLAlchemy error is re-raised as PersistenceFailure.
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize the store and create missing tables.

        Args:
            database_url: SQLAlchemy URL, e.g. sqlite:///path/to/words.db
            echo: Log emitted SQL
        """
        self.database_url = database_url
        self._ensure_sqlite_dir(database_url)
        self.engine = create_engine(database_url, echo=echo)
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not initialise word store: {e}") from e

        logger.info(f"SqlWordStore initialized at {database_url}")

    @staticmethod
    def _ensure_sqlite_dir(database_url: str) -> None:
        prefix = "sqlite:///"
        if database_url.startswith(prefix) and database_url != prefix + ":memory:":
            Path(database_url[len(prefix):]).expanduser().parent.mkdir(
                parents=True, exist_ok=True
            )

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Word store operation failed: {e}")
            raise PersistenceFailure(str(e)) from e
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()

    # -------------------------------------------------------------------------
    # Word entries
    # -------------------------------------------------------------------------

    def get_all(self) -> list[WordEntry]:
        with self.session_scope() as session:
            rows = session.scalars(select(WordRow).order_by(WordRow.word_key)).all()
            return [_row_to_entry(row) for row in rows]

    def get(self, word_key: str) -> WordEntry | None:
        with self.session_scope() as session:
            row = session.get(WordRow, normalize_key(word_key))
            return _row_to_entry(row) if row else None

    def upsert(self, entry: WordEntry) -> None:
        with self.session_scope() as session:
            row = session.get(WordRow, entry.word_key)
            if row is None:
                row = WordRow(word_key=entry.word_key)
                session.add(row)
            _apply_entry(row, entry)

    def delete(self, word_key: str) -> bool:
        with self.session_scope() as session:
            result = session.execute(
                delete(WordRow).where(WordRow.word_key == normalize_key(word_key))
            )
            return result.rowcount > 0

    def count_due(self, now: datetime | None = None) -> int:
        """Count words due at `now`."""
        cutoff = _to_db(now or utcnow())
        with self.session_scope() as session:
            rows = session.scalars(
                select(WordRow.word_key).where(WordRow.next_review_at <= cutoff)
            ).all()
            return len(rows)

    # -------------------------------------------------------------------------
    # Review log
    # -------------------------------------------------------------------------

    def log_review(self, review: ReviewLogEntry) -> None:
        with self.session_scope() as session:
            session.add(
                ReviewLogRow(
                    word_key=review.word_key,
                    reviewed_at=_to_db(review.reviewed_at),
                    quality=review.quality,
                    archetype=review.archetype,
                    outcome=review.outcome,
                )
            )

    def review_history(self, word_key: str, limit: int = 10) -> list[ReviewLogEntry]:
        """Most recent reviews of a word, newest first."""
        with self.session_scope() as session:
            rows = session.scalars(
                select(ReviewLogRow)
                .where(ReviewLogRow.word_key == normalize_key(word_key))
                .order_by(ReviewLogRow.reviewed_at.desc(), ReviewLogRow.id.desc())
                .limit(limit)
            ).all()
            return [
                ReviewLogEntry(
                    id=row.id,
                    word_key=row.word_key,
                    reviewed_at=_from_db(row.reviewed_at),
                    quality=row.quality,
                    archetype=row.archetype,
                    outcome=row.outcome,
                )
                for row in rows
            ]


# =============================================================================
# In-Memory Store
# =============================================================================


class InMemoryWordStore:
    """
    Dict-backed word store.

    Entries are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self, entries: list[WordEntry] | None = None):
        self._entries: dict[str, dict] = {}
        self.reviews: list[ReviewLogEntry] = []
        for entry in entries or []:
            self.upsert(entry)

    def get_all(self) -> list[WordEntry]:
        return [WordEntry.from_dict(self._entries[key]) for key in sorted(self._entries)]

    def get(self, word_key: str) -> WordEntry | None:
        data = self._entries.get(normalize_key(word_key))
        return WordEntry.from_dict(data) if data else None

    def upsert(self, entry: WordEntry) -> None:
        self._entries[entry.word_key] = json.loads(json.dumps(entry.to_dict()))

    def delete(self, word_key: str) -> bool:
        return self._entries.pop(normalize_key(word_key), None) is not None

    def log_review(self, review: ReviewLogEntry) -> None:
        self.reviews.append(review)


# =============================================================================
# Details Cache
# =============================================================================


class DetailsCache:
    """
    Cache for reasoning-service word details.

    Entries are keyed case-insensitively and expire after `ttl_days`; stale
    or version-mismatched entries are deleted when read.
    """

    def __init__(
        self,
        store: SqlWordStore,
        ttl_days: int = 7,
        clock: Callable[[], datetime] | None = None,
        version: str = DETAILS_CACHE_VERSION,
    ):
        self.store = store
        self.ttl = timedelta(days=ttl_days)
        self.clock = clock or utcnow
        self.version = version

    def get(self, word: str) -> WordDetails | None:
        key = normalize_key(word)
        with self.store.session_scope() as session:
            row = session.get(DetailsCacheRow, key)
            if row is None:
                return None

            is_expired = self.clock() - _from_db(row.cached_at) > self.ttl
            if row.version != self.version or is_expired:
                session.delete(row)
                logger.debug(f"Dropped stale details cache entry for '{key}'")
                return None

            return WordDetails.model_validate_json(row.payload)

    def set(self, word: str, details: WordDetails) -> None:
        key = normalize_key(word)
        with self.store.session_scope() as session:
            row = session.get(DetailsCacheRow, key)
            if row is None:
                row = DetailsCacheRow(cache_key=key)
                session.add(row)
            row.version = self.version
            row.cached_at = _to_db(self.clock())
            row.payload = details.model_dump_json()
