# =============================================================================
# tests/unit/test_event_bus.py
# Unit Tests for DataSyncEventBus
# =============================================================================

import pytest

from synka_core.offline import DataSyncEventBus, SyncTopic


class TestDataSyncEventBus:
    """Publish/subscribe semantics"""

    def test_topic_name(self):
        assert SyncTopic.DATA_SYNC.value == "synka:data-sync"

    def test_every_subscriber_is_called(self):
        bus = DataSyncEventBus()
        received = []
        bus.subscribe(SyncTopic.DATA_SYNC, lambda payload: received.append("a"))
        bus.subscribe(SyncTopic.DATA_SYNC, lambda payload: received.append("b"))

        bus.emit(SyncTopic.DATA_SYNC)

        assert received == ["a", "b"]

    def test_topics_are_isolated(self):
        bus = DataSyncEventBus()
        received = []
        bus.subscribe(SyncTopic.CONNECTION_CHANGED, received.append)

        bus.emit(SyncTopic.DATA_SYNC)

        assert received == []

    def test_cancelled_subscription_is_not_called(self):
        bus = DataSyncEventBus()
        received = []
        subscription = bus.subscribe(SyncTopic.DATA_SYNC, received.append)

        subscription.cancel()
        subscription.cancel()
        bus.emit(SyncTopic.DATA_SYNC)

        assert received == []
        assert bus.subscriber_count(SyncTopic.DATA_SYNC) == 0

    def test_failing_callback_does_not_stop_delivery(self):
        bus = DataSyncEventBus()
        received = []

        def broken(payload):
            raise ValueError("boom")

        bus.subscribe(SyncTopic.DATA_SYNC, broken)
        bus.subscribe(SyncTopic.DATA_SYNC, lambda payload: received.append(payload))

        bus.emit(SyncTopic.DATA_SYNC, "x")

        assert received == ["x"]

    def test_callback_may_cancel_itself(self):
        bus = DataSyncEventBus()
        calls = []
        holder = {}

        def once(payload):
            calls.append(payload)
            holder["sub"].cancel()

        holder["sub"] = bus.subscribe(SyncTopic.DATA_SYNC, once)
        bus.emit(SyncTopic.DATA_SYNC)
        bus.emit(SyncTopic.DATA_SYNC)

        assert calls == [None]


class TestDataSyncEventBusAsync:
    """Coroutine callbacks"""

    @pytest.mark.asyncio
    async def test_coroutine_callbacks_become_tasks(self):
        bus = DataSyncEventBus()
        received = []

        async def on_sync(payload):
            received.append(payload)

        bus.subscribe(SyncTopic.CONNECTION_CHANGED, on_sync)
        tasks = bus.emit(SyncTopic.CONNECTION_CHANGED, True)
        await bus.drain()

        assert len(tasks) == 1
        assert received == [True]

    @pytest.mark.asyncio
    async def test_failing_coroutine_is_contained(self):
        bus = DataSyncEventBus()

        async def broken(payload):
            raise RuntimeError("boom")

        bus.subscribe(SyncTopic.DATA_SYNC, broken)
        bus.emit(SyncTopic.DATA_SYNC)

        await bus.drain()
