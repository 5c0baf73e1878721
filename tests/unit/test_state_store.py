"""
Unit tests for word stores and the details cache.
"""

from datetime import timedelta

import pytest
from sqlalchemy import create_engine

from wortschatz.core.errors import PersistenceFailure
from wortschatz.core.models import WordCategory
from wortschatz.delivery.state_store import (
    DetailsCache,
    InMemoryWordStore,
    ReviewLogEntry,
    SqlWordStore,
    WordStore,
)


@pytest.fixture
def sql_store(tmp_path):
    store = SqlWordStore(f"sqlite:///{tmp_path / 'data' / 'words.db'}")
    yield store
    store.close()


@pytest.fixture(params=["memory", "sql"])
def any_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryWordStore()
    else:
        store = SqlWordStore(f"sqlite:///{tmp_path / 'words.db'}")
        yield store
        store.close()


class TestWordStoreContract:
    """Behaviour shared by every WordStore."""

    def test_implements_protocol(self, any_store):
        assert isinstance(any_store, WordStore)

    def test_upsert_and_get(self, any_store, seen_noun):
        any_store.upsert(seen_noun)
        loaded = any_store.get("Haus")

        assert loaded.text == "Haus"
        assert loaded.record == seen_noun.record
        assert loaded.details == seen_noun.details

    def test_get_is_case_insensitive(self, any_store, seen_noun):
        any_store.upsert(seen_noun)
        assert any_store.get("  HAUS ") is not None

    def test_get_missing(self, any_store):
        assert any_store.get("nichts") is None

    def test_upsert_overwrites(self, any_store, seen_noun):
        any_store.upsert(seen_noun)
        updated = seen_noun.with_record(seen_noun.record.evolve(interval=16, repetitions=3))
        any_store.upsert(updated)

        assert any_store.get("haus").record.interval == 16
        assert len(any_store.get_all()) == 1

    def test_get_all_sorted_by_key(self, any_store, seen_noun, seen_verb):
        any_store.upsert(seen_verb)
        any_store.upsert(seen_noun)
        assert [e.word_key for e in any_store.get_all()] == ["gehen", "haus"]

    def test_delete(self, any_store, seen_noun):
        any_store.upsert(seen_noun)
        assert any_store.delete("Haus") is True
        assert any_store.get("haus") is None
        assert any_store.delete("Haus") is False

    def test_entry_without_details(self, any_store, entry_factory):
        any_store.upsert(entry_factory("oft", WordCategory.ADVERB))
        loaded = any_store.get("oft")
        assert loaded.details is None
        assert loaded.record.is_unseen


class TestInMemoryWordStore:
    def test_returned_entries_are_copies(self, seen_noun):
        store = InMemoryWordStore([seen_noun])
        loaded = store.get("haus")
        loaded.details.translation = "изменено"
        loaded.text = "changed"

        assert store.get("haus").details.translation == "дом"
        assert store.get("haus").text == "Haus"

    def test_stored_entries_are_copies(self, seen_noun):
        store = InMemoryWordStore()
        store.upsert(seen_noun)
        seen_noun.details.translation = "изменено"
        assert store.get("haus").details.translation == "дом"

    def test_log_review(self, now):
        store = InMemoryWordStore()
        store.log_review(ReviewLogEntry(word_key="haus", reviewed_at=now, quality=5, archetype="flashcard"))
        assert store.reviews[0].quality == 5


class TestSqlWordStore:
    def test_creates_database_directory(self, tmp_path):
        store = SqlWordStore(f"sqlite:///{tmp_path / 'nested' / 'deeper' / 'words.db'}")
        assert (tmp_path / "nested" / "deeper").is_dir()
        store.close()

    def test_timestamps_keep_utc(self, sql_store, seen_noun):
        sql_store.upsert(seen_noun)
        record = sql_store.get("haus").record
        assert record.next_review_at.tzinfo is not None
        assert record.next_review_at == seen_noun.record.next_review_at

    def test_persists_across_instances(self, tmp_path, seen_verb):
        url = f"sqlite:///{tmp_path / 'words.db'}"
        first = SqlWordStore(url)
        first.upsert(seen_verb)
        first.close()

        second = SqlWordStore(url)
        assert second.get("gehen").details.verb_details.perfect == "ist gegangen"
        second.close()

    def test_count_due(self, sql_store, seen_noun, entry_factory, now):
        sql_store.upsert(seen_noun)
        sql_store.upsert(
            entry_factory("Baum", WordCategory.NOUN, interval=6, repetitions=2,
                          next_review_at=now + timedelta(days=2))
        )
        assert sql_store.count_due(now) == 1

    def test_review_history_newest_first(self, sql_store, now):
        for days, quality in [(0, 3), (1, 5), (2, 2)]:
            sql_store.log_review(
                ReviewLogEntry(
                    word_key="haus",
                    reviewed_at=now + timedelta(days=days),
                    quality=quality,
                    archetype="multiple_choice",
                    outcome="correct",
                )
            )
        history = sql_store.review_history("Haus")

        assert [r.quality for r in history] == [2, 5, 3]
        assert history[0].reviewed_at == now + timedelta(days=2)
        assert sql_store.review_history("Haus", limit=1)[0].quality == 2

    def test_sql_errors_become_persistence_failure(self, sql_store, seen_noun):
        sql_store.upsert(seen_noun)
        sql_store.engine.dispose()
        # Point the session factory at a database that cannot be opened
        sql_store._session_factory.configure(
            bind=create_engine("sqlite:////nonexistent-dir/forbidden/words.db")
        )
        with pytest.raises(PersistenceFailure):
            sql_store.get_all()


class TestDetailsCache:
    """Cached reasoning-service details with expiry and version."""

    @pytest.fixture
    def cache(self, sql_store, clock):
        return DetailsCache(sql_store, ttl_days=7, clock=clock)

    def test_roundtrip_case_insensitive(self, cache, haus_details):
        cache.set("Haus", haus_details)
        assert cache.get("HAUS") == haus_details

    def test_miss(self, cache):
        assert cache.get("Baum") is None

    def test_fresh_within_ttl(self, cache, clock, haus_details):
        cache.set("Haus", haus_details)
        clock.advance(days=6, hours=23)
        assert cache.get("Haus") is not None

    def test_expired_entry_is_dropped(self, cache, clock, sql_store, haus_details):
        cache.set("Haus", haus_details)
        clock.advance(days=7, hours=1)
        assert cache.get("Haus") is None

        # Gone for good, even if the clock went back
        clock.advance(days=-7, hours=-1)
        assert cache.get("Haus") is None

    def test_version_mismatch_is_dropped(self, sql_store, clock, haus_details):
        DetailsCache(sql_store, clock=clock, version="0").set("Haus", haus_details)
        assert DetailsCache(sql_store, clock=clock).get("Haus") is None

    def test_set_refreshes_timestamp(self, cache, clock, haus_details):
        cache.set("Haus", haus_details)
        clock.advance(days=5)
        cache.set("Haus", haus_details)
        clock.advance(days=5)
        assert cache.get("Haus") == haus_details
