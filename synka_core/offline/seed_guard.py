# =============================================================================
# synka_core/offline/seed_guard.py
# Mutual exclusion for first-run default-record insertion
# =============================================================================
"""
SeedGuard - at most one default-record insertion per domain at a time.

A new user's first load of tags/events/templates comes back empty and every
mounted consumer would try to insert the defaults. The guard turns that into
exactly one insertion: the first caller acquires, every concurrent caller gets
``False`` immediately and skips seeding. Contention never waits.

State is process-wide for the lifetime of the owning SyncContext and is never
persisted.
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Set
import logging

logger = logging.getLogger(__name__)


class SeedGuard:
    """
    Usage:
        async with guard.hold("tags") as acquired:
            if acquired:
                await insert_defaults()
    """

    def __init__(self):
        self._held: Set[str] = set()
        self._stats: Dict[str, Dict[str, int]] = {}

    def _stat(self, domain: str) -> Dict[str, int]:
        return self._stats.setdefault(domain, {"acquired": 0, "contended": 0})

    def is_held(self, domain: str) -> bool:
        return domain in self._held

    def try_acquire(self, domain: str) -> bool:
        """
        Take the guard for ``domain`` if it is free.

        Returns:
            True if the caller now owns seeding for ``domain``,
            False if another sequence is already in flight
        """
        if domain in self._held:
            self._stat(domain)["contended"] += 1
            logger.info(f"Seeding for '{domain}' already in progress, skipping")
            return False

        self._held.add(domain)
        self._stat(domain)["acquired"] += 1
        logger.debug(f"Seed guard acquired: {domain}")
        return True

    def release(self, domain: str) -> None:
        """Free the guard. Releasing a free guard is a no-op."""
        if domain in self._held:
            self._held.discard(domain)
            logger.debug(f"Seed guard released: {domain}")

    @asynccontextmanager
    async def hold(self, domain: str) -> AsyncIterator[bool]:
        """
        Async context manager around try_acquire/release.

        Yields whether the guard was obtained; releases on exit only if it was,
        including when the body raises.
        """
        acquired = self.try_acquire(domain)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(domain)

    def get_status_display(self) -> Dict[str, Dict[str, int]]:
        return {
            domain: {**counts, "held": int(domain in self._held)}
            for domain, counts in self._stats.items()
        }
