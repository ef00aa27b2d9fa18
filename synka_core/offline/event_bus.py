# =============================================================================
# synka_core/offline/event_bus.py
# Process-wide publish/subscribe for sync signals
# =============================================================================
"""
DataSyncEventBus - broadcast channel between connectivity logic and every
mounted DomainSyncHook.

Topics are an Enum rather than free-form strings, and every subscription
returns a Subscription handle whose ``cancel()`` ends it. A hook cancels its
handle on unmount, so no listener outlives its consumer.

Callbacks may be plain functions or coroutine functions. Coroutines are
scheduled as tasks on the running loop; ``emit`` returns those tasks so a
caller that cares (tests, shutdown) can await them.
"""

from __future__ import annotations
import asyncio
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set
import logging

logger = logging.getLogger(__name__)


class SyncTopic(Enum):
    """Broadcast topics."""
    DATA_SYNC = "synka:data-sync"                     # force revalidation, no payload
    CONNECTION_CHANGED = "synka:connection-changed"   # payload: bool is_online


SyncCallback = Callable[[Optional[Any]], Any]


@dataclass(eq=False)
class Subscription:
    """Handle for one registered callback."""
    bus: DataSyncEventBus
    topic: SyncTopic
    callback: SyncCallback
    active: bool = field(default=True)

    def cancel(self) -> None:
        if self.active:
            self.bus._remove(self)
            self.active = False


class DataSyncEventBus:
    """
    Usage:
        bus = DataSyncEventBus()
        sub = bus.subscribe(SyncTopic.DATA_SYNC, lambda _: hook.refetch())
        bus.emit(SyncTopic.DATA_SYNC)
        sub.cancel()
    """

    def __init__(self):
        self._subscriptions: Dict[SyncTopic, List[Subscription]] = {
            topic: [] for topic in SyncTopic
        }
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(self, topic: SyncTopic, callback: SyncCallback) -> Subscription:
        """Register ``callback`` for ``topic``."""
        subscription = Subscription(bus=self, topic=topic, callback=callback)
        self._subscriptions[topic].append(subscription)
        logger.debug(f"Subscribed to {topic.value} ({self.subscriber_count(topic)} total)")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions[subscription.topic]
        if subscription in subscribers:
            subscribers.remove(subscription)

    def subscriber_count(self, topic: SyncTopic) -> int:
        return len(self._subscriptions[topic])

    def emit(self, topic: SyncTopic, payload: Optional[Any] = None) -> List[asyncio.Task]:
        """
        Deliver ``payload`` to every subscriber of ``topic``.

        A failing callback is logged and does not stop delivery to the rest.

        Returns:
            Tasks created for coroutine callbacks
        """
        logger.info(f"Emitting {topic.value} to {self.subscriber_count(topic)} subscribers")
        scheduled: List[asyncio.Task] = []

        # Copy: callbacks may cancel their own subscription while we iterate
        for subscription in list(self._subscriptions[topic]):
            try:
                result = subscription.callback(payload)
            except Exception as e:
                logger.error(f"Error in {topic.value} callback: {e}")
                continue

            if inspect.isawaitable(result):
                task = self._schedule(topic, result)
                if task is not None:
                    scheduled.append(task)

        return scheduled

    def _schedule(self, topic: SyncTopic, awaitable) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, dropping async {topic.value} callback")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return None

        task = loop.create_task(self._run_guarded(topic, awaitable))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    async def _run_guarded(topic: SyncTopic, awaitable) -> None:
        try:
            await awaitable
        except Exception as e:
            logger.error(f"Error in async {topic.value} callback: {e}")

    async def drain(self) -> None:
        """Wait for every callback task scheduled so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
