# =============================================================================
# synka_core/offline/cache_store.py
# TTL-stamped per-user, per-domain cache entries
# =============================================================================
"""
Two stores share one implementation and differ only in key namespace and TTL:

- LocalCacheStore:         "{domain}_cache_{user_id}", per-domain TTL (30-60 min)
- OfflinePersistenceStore: "offline_{domain}_{user_id}", fixed 7-day TTL

Both are best-effort. A failing read behaves like a miss and a failing write is
dropped; neither ever raises into the fetch/mutation path that uses them.
"""

from __future__ import annotations
import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
import logging

from synka_core.offline.local_database import LocalDatabase
from synka_core.utils import Clock, utc_now, to_epoch_ms, from_epoch_ms

logger = logging.getLogger(__name__)

# Failures that must never escape a cache operation
STORAGE_ERRORS = (sqlite3.Error, OSError, TypeError, ValueError, KeyError)


@dataclass
class CacheEntry:
    """One stored payload with the moment it was written."""
    data: Any
    timestamp: int  # epoch milliseconds

    @property
    def written_at(self) -> datetime:
        return from_epoch_ms(self.timestamp)

    def age(self, now: datetime) -> timedelta:
        return now - self.written_at

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return self.age(now) < ttl

    def to_json(self, ttl: Optional[timedelta] = None) -> str:
        payload: Dict[str, Any] = {"data": self.data, "timestamp": self.timestamp}
        if ttl is not None:
            payload["expiry"] = self.timestamp + int(ttl.total_seconds() * 1000)
        return json.dumps(payload)

    @classmethod
    def from_json(cls, raw: str) -> CacheEntry:
        parsed = json.loads(raw)
        return cls(data=parsed["data"], timestamp=int(parsed["timestamp"]))


class TimestampedStore:
    """
    Keyed get/set of CacheEntry objects on top of LocalDatabase.

    Subclasses define ``key_for`` and the TTL policy.
    """

    name = "cache"

    def __init__(self, database: LocalDatabase, clock: Clock = utc_now):
        self.database = database
        self.clock = clock

    # -------------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------------

    def key_for(self, domain: str, user_id: str) -> str:
        raise NotImplementedError

    def ttl_for(self, domain: str) -> timedelta:
        raise NotImplementedError

    @property
    def key_prefix(self) -> str:
        return ""

    # -------------------------------------------------------------------------
    # Public contract
    # -------------------------------------------------------------------------

    def get_entry(self, domain: str, user_id: str) -> Optional[CacheEntry]:
        """Raw entry regardless of age, or None if missing/unreadable."""
        key = self.key_for(domain, user_id)
        try:
            raw = self.database.get_item(key)
            if raw is None:
                return None
            return CacheEntry.from_json(raw)
        except STORAGE_ERRORS as e:
            logger.debug(f"{self.name}: unreadable entry {key}: {e}")
            return None

    def get(self, domain: str, user_id: str, allow_expired: bool = False) -> Optional[Any]:
        """
        Cached data for (domain, user_id) if younger than the TTL.

        Expired entries are reported as absent but left in place.

        Args:
            allow_expired: Serve an expired entry anyway (used while offline)
        """
        entry = self.get_entry(domain, user_id)
        if entry is None:
            return None

        if entry.is_fresh(self.clock(), self.ttl_for(domain)) or allow_expired:
            return entry.data
        return None

    def set(self, domain: str, user_id: str, data: Any) -> bool:
        """
        Overwrite the entry with ``data`` stamped now.

        Returns:
            True if the write landed, False if it was dropped
        """
        key = self.key_for(domain, user_id)
        entry = CacheEntry(data=data, timestamp=to_epoch_ms(self.clock()))
        try:
            self.database.set_item(key, entry.to_json(self.ttl_for(domain)))
            return True
        except STORAGE_ERRORS as e:
            logger.warning(f"{self.name}: failed to write {key}: {e}")
            self.cleanup()
            return False

    def cleanup(self) -> int:
        """
        Drop expired and unreadable entries of this store's namespace.

        Returns:
            Number of entries removed
        """
        removed = 0
        try:
            now_ms = to_epoch_ms(self.clock())
            for key, raw in self.database.items(self.key_prefix).items():
                if not self._owns_key(key):
                    continue
                try:
                    expiry = json.loads(raw).get("expiry")
                except (TypeError, ValueError, AttributeError):
                    expiry = None
                if expiry is None or now_ms > int(expiry):
                    self.database.remove_item(key)
                    removed += 1
        except STORAGE_ERRORS as e:
            logger.debug(f"{self.name}: cleanup failed: {e}")
        if removed:
            logger.info(f"{self.name}: removed {removed} expired entries")
        return removed

    def _owns_key(self, key: str) -> bool:
        return key.startswith(self.key_prefix)


class LocalCacheStore(TimestampedStore):
    """Primary cache. Key: ``{domain}_cache_{user_id}``."""

    name = "cache"

    def __init__(
        self,
        database: LocalDatabase,
        ttl_lookup: Callable[[str], timedelta],
        clock: Clock = utc_now,
    ):
        super().__init__(database, clock)
        self._ttl_lookup = ttl_lookup

    def key_for(self, domain: str, user_id: str) -> str:
        return f"{domain}_cache_{user_id}"

    def ttl_for(self, domain: str) -> timedelta:
        return self._ttl_lookup(domain)

    def _owns_key(self, key: str) -> bool:
        return "_cache_" in key and not key.startswith(OfflinePersistenceStore.PREFIX)


class OfflinePersistenceStore(TimestampedStore):
    """Long-lived fallback. Key: ``offline_{domain}_{user_id}``, 7-day TTL."""

    name = "offline"
    PREFIX = "offline_"

    def __init__(
        self,
        database: LocalDatabase,
        ttl: timedelta = timedelta(days=7),
        clock: Clock = utc_now,
    ):
        super().__init__(database, clock)
        self.ttl = ttl

    @property
    def key_prefix(self) -> str:
        return self.PREFIX

    def key_for(self, domain: str, user_id: str) -> str:
        return f"{self.PREFIX}{domain}_{user_id}"

    def ttl_for(self, domain: str) -> timedelta:
        return self.ttl

    def domains_for(self, user_id: str) -> List[str]:
        """Domains with an offline entry for ``user_id`` (status display)."""
        suffix = f"_{user_id}"
        try:
            keys = self.database.keys(self.PREFIX)
        except STORAGE_ERRORS:
            return []
        return [
            key[len(self.PREFIX):-len(suffix)]
            for key in keys
            if key.endswith(suffix)
        ]
