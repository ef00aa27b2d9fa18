# =============================================================================
# synka_core/context.py
# The one long-lived object owning all shared sync state
# =============================================================================
"""
SyncContext is constructed once at application start and handed to every
hook and tracker. It owns:

- settings, clock, notifier
- the local database and both cache stores
- the SeedGuard and the DataSyncEventBus
- the ConnectionMonitor
- the remote data service and its retry policy
- the pending interaction slot and the returning flag

Usage:
    context = await SyncContext.create(load_settings())
    contacts = context.contacts(session)
    contacts.mount()
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import asyncio
import logging

from synka_core.config import SyncSettings
from synka_core.crm.launcher import ExternalAppLauncher, WebBrowserLauncher
from synka_core.crm.pending_interaction import PendingInteractionTracker
from synka_core.crm.slot_store import PendingInteractionStore, RefreshSuppressor
from synka_core.data.remote import NoRetry, RemoteDataService, RetryPolicy
from synka_core.errors import ConfigurationError, Notifier, StreamlitNotifier
from synka_core.offline import (
    ConnectionMonitor,
    DataSyncEventBus,
    LocalCacheStore,
    LocalDatabase,
    OfflinePersistenceStore,
    SeedGuard,
    SyncTopic,
)
from synka_core.state import UserSession
from synka_core.sync import (
    ContactsSync,
    EventsSync,
    ProfileSync,
    SignaturesSync,
    TagsSync,
    TemplatesSync,
)
from synka_core.utils import Clock, utc_now

logger = logging.getLogger(__name__)


class SyncContext:
    """Shared services for every DomainSyncHook and PendingInteractionTracker."""

    def __init__(
        self,
        settings: Optional[SyncSettings] = None,
        remote: Optional[RemoteDataService] = None,
        notifier: Optional[Notifier] = None,
        clock: Clock = utc_now,
        retry: Optional[RetryPolicy] = None,
        database: Optional[LocalDatabase] = None,
    ):
        self.settings = settings or SyncSettings()
        self.clock = clock
        self.notifier = notifier or StreamlitNotifier()
        self.retry = retry or NoRetry()
        self._remote = remote

        self.database = database or LocalDatabase(self.settings.database_path)
        self.database.initialize()
        self.cache = LocalCacheStore(self.database, self.settings.cache_ttl, clock)
        self.offline = OfflinePersistenceStore(self.database, self.settings.offline_ttl, clock)

        self.seed_guard = SeedGuard()
        self.bus = DataSyncEventBus()
        self.monitor = ConnectionMonitor(
            self.bus,
            supabase_url=self.settings.supabase_url,
            check_interval_online=self.settings.check_interval_online,
            check_interval_offline=self.settings.check_interval_offline,
            connection_timeout=self.settings.connection_timeout,
            clock=clock,
        )

        self.interaction_store = PendingInteractionStore(self.database)
        self.refresh_suppressor = RefreshSuppressor(self.database)

    @classmethod
    async def create(cls, settings: SyncSettings, **kwargs) -> SyncContext:
        """
        Build a context backed by Supabase (unless ``remote`` is given).
        """
        if kwargs.get("remote") is None:
            from synka_core.data.supabase_client import SupabaseDataService, create_supabase_client

            client = await create_supabase_client(settings)
            kwargs["remote"] = SupabaseDataService(client)
        return cls(settings, **kwargs)

    # =========================================================================
    # SHARED STATE
    # =========================================================================

    @property
    def remote(self) -> RemoteDataService:
        if self._remote is None:
            raise ConfigurationError("No remote data service configured", config_key="remote")
        return self._remote

    @property
    def is_offline(self) -> bool:
        return self.monitor.is_offline

    # =========================================================================
    # FACTORIES
    # =========================================================================

    def contacts(self, session: Optional[UserSession]) -> ContactsSync:
        return ContactsSync(self, session)

    def profile(self, session: Optional[UserSession]) -> ProfileSync:
        return ProfileSync(self, session)

    def events(self, session: Optional[UserSession]) -> EventsSync:
        return EventsSync(self, session)

    def tags(self, session: Optional[UserSession]) -> TagsSync:
        return TagsSync(self, session)

    def templates(self, session: Optional[UserSession]) -> TemplatesSync:
        return TemplatesSync(self, session)

    def signatures(self, session: Optional[UserSession]) -> SignaturesSync:
        return SignaturesSync(self, session)

    def interaction_tracker(
        self,
        contacts: ContactsSync,
        launcher: Optional[ExternalAppLauncher] = None,
    ) -> PendingInteractionTracker:
        return PendingInteractionTracker(self, contacts, launcher or WebBrowserLauncher())

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def request_sync(self) -> List[asyncio.Task]:
        """Ask every mounted hook to refetch."""
        return self.bus.emit(SyncTopic.DATA_SYNC)

    def clear_local_data(self) -> None:
        """Wipe caches, offline entries and the interaction slot (sign-out)."""
        self.database.clear()

    async def shutdown(self) -> None:
        await self.monitor.stop_monitoring()
        await self.bus.drain()
        self.database.close()
        logger.info("Sync context shut down")

    def get_status_display(self) -> Dict[str, Any]:
        return {
            "connection": self.monitor.get_status_display(),
            "seed_guard": self.seed_guard.get_status_display(),
            "storage": self.database.get_stats(),
            "hardening": {
                "discard_stale_responses": self.settings.discard_stale_responses,
                "remote_timeout_seconds": self.settings.remote_timeout_seconds,
                "retry": type(self.retry).__name__,
            },
        }
