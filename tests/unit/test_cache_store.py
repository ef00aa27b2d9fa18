# =============================================================================
# tests/unit/test_cache_store.py
# Unit Tests for LocalCacheStore / OfflinePersistenceStore
# =============================================================================

import json
import sqlite3
from datetime import timedelta

import pytest

from synka_core.config import SyncSettings
from synka_core.offline import LocalCacheStore, OfflinePersistenceStore
from synka_core.utils import to_epoch_ms


@pytest.fixture
def cache(database, clock):
    return LocalCacheStore(database, SyncSettings().cache_ttl, clock)


@pytest.fixture
def offline(database, clock):
    return OfflinePersistenceStore(database, timedelta(days=7), clock)


TAGS = [{"id": "t1", "name": "Hot", "color": "#ef4444"}]


class TestLocalCacheStoreKeys:
    """Entry layout in the key/value store"""

    def test_key_format(self, cache, database, clock):
        """Entries live under {domain}_cache_{user_id} as {data, timestamp}"""
        cache.set("tags", "user-1", TAGS)

        raw = database.get_item("tags_cache_user-1")
        stored = json.loads(raw)
        assert stored["data"] == TAGS
        assert stored["timestamp"] == to_epoch_ms(clock())

    def test_users_do_not_share_entries(self, cache):
        """A second user never sees the first user's data"""
        cache.set("tags", "user-1", TAGS)

        assert cache.get("tags", "user-2") is None


class TestLocalCacheStoreFreshness:
    """Per-domain TTL handling"""

    def test_fresh_entry_is_returned(self, cache, clock):
        """An entry younger than the TTL is served"""
        cache.set("tags", "user-1", TAGS)
        clock.advance(minutes=29)

        assert cache.get("tags", "user-1") == TAGS

    def test_expired_entry_reads_as_absent_but_stays(self, cache, database, clock):
        """Past the TTL get() returns None and the row is left in place"""
        cache.set("tags", "user-1", TAGS)
        clock.advance(minutes=31)

        assert cache.get("tags", "user-1") is None
        assert database.get_item("tags_cache_user-1") is not None

    def test_contacts_live_longer_than_tags(self, cache, clock):
        """Contacts and profile get 60 minutes, other domains 30"""
        cache.set("contacts", "user-1", [{"id": "c1"}])
        cache.set("tags", "user-1", TAGS)
        clock.advance(minutes=45)

        assert cache.get("contacts", "user-1") == [{"id": "c1"}]
        assert cache.get("tags", "user-1") is None

    def test_allow_expired_serves_stale_entry(self, cache, clock):
        """allow_expired bypasses the TTL"""
        cache.set("tags", "user-1", TAGS)
        clock.advance(hours=5)

        assert cache.get("tags", "user-1", allow_expired=True) == TAGS


class TestLocalCacheStoreFailures:
    """Storage failures never escape"""

    def test_corrupt_entry_reads_as_miss(self, cache, database):
        """Unparseable JSON behaves like a missing entry"""
        database.set_item("tags_cache_user-1", "{not json")

        assert cache.get("tags", "user-1") is None

    def test_unserializable_data_is_dropped(self, cache, database):
        """A payload json cannot encode returns False instead of raising"""
        assert cache.set("tags", "user-1", [object()]) is False
        assert database.get_item("tags_cache_user-1") is None

    def test_write_failure_triggers_cleanup(self, cache, database, clock, monkeypatch):
        """A failing write removes expired entries and reports False"""
        cache.set("events", "user-1", [{"id": "e1"}])
        clock.advance(hours=2)

        def refuse(key, value):
            raise sqlite3.OperationalError("database or disk is full")

        monkeypatch.setattr(database, "set_item", refuse)

        assert cache.set("tags", "user-1", TAGS) is False
        assert database.get_item("events_cache_user-1") is None


class TestOfflinePersistenceStore:
    """Seven-day fallback store"""

    def test_key_and_expiry(self, offline, database, clock):
        """offline_{domain}_{user_id} carries an expiry seven days out"""
        offline.set("contacts", "user-1", [{"id": "c1"}])

        stored = json.loads(database.get_item("offline_contacts_user-1"))
        assert stored["expiry"] == to_epoch_ms(clock()) + 7 * 24 * 3600 * 1000

    def test_valid_for_seven_days(self, offline, clock):
        offline.set("contacts", "user-1", [{"id": "c1"}])
        clock.advance(days=6, hours=23)

        assert offline.get("contacts", "user-1") == [{"id": "c1"}]

        clock.advance(hours=2)
        assert offline.get("contacts", "user-1") is None
        assert offline.get("contacts", "user-1", allow_expired=True) == [{"id": "c1"}]

    def test_cleanup_removes_only_expired_offline_entries(self, offline, cache, database, clock):
        """cleanup() leaves primary cache rows and fresh offline rows alone"""
        offline.set("tags", "user-1", TAGS)
        clock.advance(days=8)
        offline.set("events", "user-1", [{"id": "e1"}])
        cache.set("tags", "user-1", TAGS)

        assert offline.cleanup() == 1
        assert database.get_item("offline_tags_user-1") is None
        assert database.get_item("offline_events_user-1") is not None
        assert database.get_item("tags_cache_user-1") is not None

    def test_domains_for_user(self, offline):
        offline.set("tags", "user-1", TAGS)
        offline.set("events", "user-1", [])
        offline.set("tags", "user-2", TAGS)

        assert sorted(offline.domains_for("user-1")) == ["events", "tags"]
