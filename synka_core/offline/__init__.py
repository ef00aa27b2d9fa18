# =============================================================================
# synka_core/offline/__init__.py
# Local persistence, connectivity and sync signalling
# =============================================================================

from .local_database import LocalDatabase
from .cache_store import (
    CacheEntry,
    TimestampedStore,
    LocalCacheStore,
    OfflinePersistenceStore,
)
from .seed_guard import SeedGuard
from .event_bus import DataSyncEventBus, SyncTopic, Subscription
from .connection_manager import ConnectionMonitor, ConnectionStatus, ConnectionState

__all__ = [
    "LocalDatabase",
    "CacheEntry",
    "TimestampedStore",
    "LocalCacheStore",
    "OfflinePersistenceStore",
    "SeedGuard",
    "DataSyncEventBus",
    "SyncTopic",
    "Subscription",
    "ConnectionMonitor",
    "ConnectionStatus",
    "ConnectionState",
]
