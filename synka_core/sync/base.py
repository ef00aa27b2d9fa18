# =============================================================================
# synka_core/sync/base.py
# Generic stale-while-revalidate hook shared by every data domain
# =============================================================================
"""
DomainSyncHook - one instance per (consumer, domain).

Lifecycle:
    hook = context.tags(session)
    hook.mount()          # synchronous: hydrate from cache, schedule fetch
    await hook.settle()   # wait for the scheduled fetch (tests, shutdown)
    hook.unmount()        # stop listening; late results only reach the stores

Read order on mount:
    1. LocalCacheStore (fresh entry)         -> warm, background revalidation
    2. OfflinePersistenceStore (fresh entry,
       or any entry while offline)           -> warm, background revalidation
    3. nothing                               -> cold, loading=True, foreground fetch

Mutations come in two flavours:
    - authoritative (create/delete): remote first, local state on success only
    - optimistic (field edits, relation toggles, selection): local state first,
      the touched items are reverted if the remote call fails

Subclasses provide ``fetch_remote`` and, for domains with first-run defaults,
``default_records``.
"""

from __future__ import annotations
import asyncio
from typing import (
    TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set,
)

from synka_core.data.remote import Row, call_remote
from synka_core.errors import MutationError, SeedingError, handle_error
from synka_core.offline.event_bus import Subscription, SyncTopic
from synka_core.services.base_service import BaseService, ServiceResult
from synka_core.state import DomainState, UserSession

if TYPE_CHECKING:
    from synka_core.context import SyncContext

StateListener = Callable[[DomainState], None]


class DomainSyncHook(BaseService):
    """Cache-first view of one domain for one signed-in user."""

    domain: str = ""
    table: str = ""
    has_defaults: bool = False

    def __init__(self, context: SyncContext, session: Optional[UserSession]):
        super().__init__()
        self.context = context
        self.session = session
        self._state = DomainState(items=self.empty())
        self._listeners: List[StateListener] = []
        self._subscription: Optional[Subscription] = None
        self._tasks: Set[asyncio.Task] = set()
        self._mounted = False
        # Sequence numbers, only consulted with discard_stale_responses
        self._seq = 0
        self._applied_seq = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> DomainState:
        return self._state

    @property
    def items(self) -> Any:
        return self._state.items

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id if self.session else None

    @property
    def remote(self):
        return self.context.remote

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    # =========================================================================
    # DOMAIN HOOKS (override in subclasses)
    # =========================================================================

    def empty(self) -> Any:
        return []

    async def fetch_remote(self) -> Any:
        """Load the authoritative data for ``self.user_id``."""
        raise NotImplementedError

    def default_records(self, user_id: str) -> List[Row]:
        """Rows inserted for a new user whose domain comes back empty."""
        return []

    def order_items(self, items: List[Row]) -> List[Row]:
        """Order applied to freshly seeded rows."""
        return items

    def accept_remote(self, items: Any) -> bool:
        """Last chance to drop an incoming remote result."""
        return True

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def mount(self) -> DomainState:
        """
        Hydrate synchronously and schedule the first fetch.

        Must be called from code running on the event loop. No remote call is
        made before this returns.
        """
        if self._mounted:
            return self._state
        self._mounted = True
        self._subscription = self.context.bus.subscribe(SyncTopic.DATA_SYNC, self._on_data_sync)

        user_id = self.user_id
        if user_id is None:
            self._update(items=self.empty(), loading=False, source="none")
            return self._state

        cached, source = self._read_stores(user_id)
        if cached is not None:
            self.logger.debug(f"{self.domain}: hydrated from {source}")
            self._update(items=cached, loading=False, source=source)
            self._schedule(self._fetch(background=True))
        else:
            self._update(items=self.empty(), loading=True, source="none")
            self._schedule(self._fetch(background=False))
        return self._state

    def unmount(self) -> None:
        """Stop listening. Outstanding fetches still write the stores."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._mounted = False
        self._listeners.clear()

    async def refetch(self) -> DomainState:
        """Foreground fetch regardless of cache freshness."""
        await self._fetch(background=False)
        return self._state

    async def settle(self) -> None:
        """Wait for every fetch this hook has scheduled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Call ``listener`` with every new state.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _on_data_sync(self, _payload: Any = None) -> None:
        self.logger.info(f"{self.domain}: data sync triggered, refetching")
        self._schedule(self._fetch(background=False))

    def _schedule(self, coro: Awaitable[None]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning(f"{self.domain}: no running event loop, fetch not scheduled")
            coro.close()
            return None
        task = loop.create_task(coro, name=f"{self.domain}-sync")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # =========================================================================
    # STATE
    # =========================================================================

    def _update(self, **changes) -> None:
        if not self._mounted:
            return
        self._state = self._state.evolve(**changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                self.logger.error(f"{self.domain}: state listener failed: {e}")

    def _populated(self, data: Any) -> bool:
        if data is None:
            return False
        if isinstance(data, (list, dict)):
            return len(data) > 0
        return True

    def _read_stores(self, user_id: str):
        cached = self.context.cache.get(self.domain, user_id)
        if self._populated(cached):
            return cached, "cache"
        offline = self.context.offline.get(
            self.domain, user_id, allow_expired=self.context.is_offline
        )
        if self._populated(offline):
            return offline, "offline"
        return None, "none"

    def _write_stores(self, user_id: str, items: Any) -> None:
        self.context.cache.set(self.domain, user_id, items)
        self.context.offline.set(self.domain, user_id, items)

    # =========================================================================
    # SEQUENCING
    # =========================================================================

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def _is_current(self, seq: int) -> bool:
        if not self.context.settings.discard_stale_responses:
            return True
        return seq > self._applied_seq

    def _mark_local_write(self) -> None:
        self._applied_seq = self._next_seq()

    # =========================================================================
    # FETCH
    # =========================================================================

    async def _call(self, factory: Callable[[], Awaitable[Any]], label: str) -> Any:
        return await call_remote(
            factory,
            label,
            timeout=self.context.settings.remote_timeout_seconds,
            retry=self.context.retry,
        )

    async def _fetch(self, background: bool) -> None:
        user_id = self.user_id
        if user_id is None:
            return

        seq = self._next_seq()
        if background:
            self._update(is_revalidating=True)
        else:
            self._update(loading=True)

        try:
            items = await self._call(self.fetch_remote, f"Fetching {self.domain}")
        except Exception as e:
            self.logger.error(f"Error fetching {self.domain}: {e}")
            self._fetch_failed(seq, e)
            return

        if self.has_defaults and not items:
            seeded = await self._seed(user_id)
            if seeded is None:
                # Another consumer is seeding; stay empty until the next revalidation
                if self._is_current(seq):
                    self._update(items=self.empty(), loading=False, is_revalidating=False,
                                 last_error=None, source="remote")
                return
            items = seeded

        if not self._is_current(seq):
            self.logger.debug(f"{self.domain}: discarding stale response #{seq}")
            self._update(loading=False, is_revalidating=False)
            return

        if not self.accept_remote(items):
            self._update(loading=False, is_revalidating=False)
            return

        self._applied_seq = max(self._applied_seq, seq)
        self._write_stores(user_id, items)
        self._update(
            items=items,
            loading=False,
            is_revalidating=False,
            last_error=None,
            updated_at=self.context.clock(),
            source="remote",
        )

    def _fetch_failed(self, seq: int, error: Exception) -> None:
        if not self._is_current(seq):
            self._update(loading=False, is_revalidating=False)
            return
        if self.context.is_offline and self._state.has_data:
            # Keep what was hydrated; there is nothing better to show offline
            self._update(loading=False, is_revalidating=False, last_error=str(error))
            return
        self._update(items=self.empty(), loading=False, is_revalidating=False,
                     last_error=str(error))

    async def _seed(self, user_id: str) -> Optional[List[Row]]:
        """
        Insert default records once.

        Returns:
            The inserted rows, an empty list if insertion failed, or None if
            another consumer holds the seed guard
        """
        async with self.context.seed_guard.hold(self.domain) as acquired:
            if not acquired:
                return None

            rows = self.default_records(user_id)
            try:
                async with self.log_operation(f"Seeding default {self.domain}"):
                    inserted = await self._call(
                        lambda: self.remote.insert(self.table, rows),
                        f"Seeding {self.domain}",
                    )
            except Exception as e:
                handle_error(
                    SeedingError(f"Could not seed default {self.domain}: {e}", domain=self.domain),
                    show_user_message=False,
                )
                return self.empty()
            return self.order_items(inserted)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def _not_authenticated(self, operation: str) -> ServiceResult:
        return ServiceResult.unauthenticated(operation)

    def _mutation_failed(
        self,
        operation: str,
        user_message: str,
        cause: Exception,
        item_id: Optional[str] = None,
    ) -> ServiceResult:
        error = MutationError(
            user_message,
            domain=self.domain,
            item_id=item_id,
            operation=operation,
            details={"cause": str(cause)},
        )
        handle_error(error, notifier=self.context.notifier)
        return ServiceResult.from_exception(error)

    def _commit_local(self, items: Any) -> None:
        """Apply a confirmed local change to state and both stores."""
        self._mark_local_write()
        if self.user_id is not None:
            self._write_stores(self.user_id, items)
        self._update(items=items, updated_at=self.context.clock(), source="local")

    async def _authoritative(
        self,
        operation: str,
        action: Callable[[], Awaitable[Any]],
        apply: Callable[[Any], Any],
        user_message: str,
        item_id: Optional[str] = None,
    ) -> ServiceResult:
        """
        Remote first; ``apply`` runs only after the remote call succeeded.

        Args:
            action: Zero-argument coroutine factory doing the remote write
            apply: Receives the remote result, updates local state, returns
                the value handed back in ServiceResult.data
        """
        if self.user_id is None:
            return self._not_authenticated(operation)
        try:
            result = await self._call(action, operation)
        except Exception as e:
            return self._mutation_failed(operation, user_message, e, item_id)
        return ServiceResult.ok(apply(result))

    async def _optimistic(
        self,
        operation: str,
        item_ids: Sequence[str],
        change: Callable[[Row], Row],
        action: Callable[[], Awaitable[Any]],
        user_message: str,
    ) -> ServiceResult:
        """
        Local first; the touched items are restored if the remote call fails.

        Args:
            item_ids: Items ``change`` is applied to
            change: Receives a shallow copy of an item, returns its new version
            action: Zero-argument coroutine factory doing the remote write
        """
        if self.user_id is None:
            return self._not_authenticated(operation)

        ids = set(item_ids)
        current: List[Row] = list(self._state.items or [])
        before: Dict[str, Row] = {item["id"]: item for item in current if item.get("id") in ids}
        if not before:
            return ServiceResult.not_found(f"{self.domain} item")

        updated = [change(dict(item)) if item.get("id") in ids else item for item in current]
        self._mark_local_write()
        self._update(items=updated, source="local")

        try:
            await self._call(action, operation)
        except Exception as e:
            self._revert(before)
            return self._mutation_failed(operation, user_message, e, item_id=",".join(sorted(ids)))

        items = self._state.items if self._mounted else updated
        self._write_stores(self.user_id, items)
        return ServiceResult.ok([item for item in items if item.get("id") in ids])

    def _revert(self, before: Dict[str, Row]) -> None:
        restored = [before.get(item.get("id"), item) for item in (self._state.items or [])]
        self._update(items=restored, source="local")
        self.logger.info(f"{self.domain}: rolled back {len(before)} item(s)")

    def _find(self, item_id: str) -> Optional[Row]:
        for item in self._state.items or []:
            if item.get("id") == item_id:
                return item
        return None

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status_display(self) -> Dict[str, Any]:
        items = self._state.items
        return {
            "domain": self.domain,
            "mounted": self._mounted,
            "loading": self._state.loading,
            "revalidating": self._state.is_revalidating,
            "count": len(items) if isinstance(items, list) else int(items is not None),
            "source": self._state.source,
            "last_error": self._state.last_error,
        }
