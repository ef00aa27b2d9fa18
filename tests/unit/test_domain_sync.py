# =============================================================================
# tests/unit/test_domain_sync.py
# Unit Tests for the shared DomainSyncHook lifecycle
# =============================================================================

import asyncio
import logging

import pytest

from synka_core.offline import SyncTopic

CACHED_TAGS = [{"id": "t1", "user_id": "user-1", "name": "Hot", "color": "#ef4444"}]


class TestHydration:
    """Synchronous mount from the local stores"""

    @pytest.mark.asyncio
    async def test_warm_mount_makes_no_remote_call(self, context, remote, session):
        """Cached data is visible before any remote call is issued"""
        context.cache.set("tags", "user-1", CACHED_TAGS)
        remote.seed("tags", *CACHED_TAGS)
        tags = context.tags(session)

        state = tags.mount()

        assert state.items == CACHED_TAGS
        assert state.loading is False
        assert state.source == "cache"
        assert remote.calls == []

        await tags.settle()
        assert remote.count("list", "tags") == 1
        assert tags.state.is_revalidating is False
        assert tags.state.source == "remote"

    @pytest.mark.asyncio
    async def test_cold_mount_is_loading(self, context, remote, session):
        """No cache: loading=True until the first fetch lands"""
        remote.seed("email_signatures", {"user_id": "user-1", "name": "Work", "html": "<b>A</b>", "is_selected": True})
        remote.gates[("list", "email_signatures")] = asyncio.Event()
        signatures = context.signatures(session)

        assert signatures.mount().loading is True
        await asyncio.sleep(0)
        assert signatures.loading is True

        remote.gates[("list", "email_signatures")].set()
        await signatures.settle()

        assert signatures.loading is False
        assert [s["name"] for s in signatures.items] == ["Work"]

    @pytest.mark.asyncio
    async def test_fetch_result_is_written_to_both_stores(self, context, remote, session):
        remote.seed("email_signatures", {"user_id": "user-1", "name": "Work", "html": ""})
        signatures = context.signatures(session)
        signatures.mount()
        await signatures.settle()

        assert context.cache.get("signatures", "user-1")[0]["name"] == "Work"
        assert context.offline.get("signatures", "user-1")[0]["name"] == "Work"

    @pytest.mark.asyncio
    async def test_empty_cached_list_counts_as_cold(self, context, session):
        context.cache.set("signatures", "user-1", [])
        signatures = context.signatures(session)

        assert signatures.mount().loading is True
        await signatures.settle()

    @pytest.mark.asyncio
    async def test_no_user_yields_empty_state(self, context, remote):
        tags = context.tags(None)

        state = tags.mount()
        await tags.settle()

        assert state.items == []
        assert state.loading is False
        assert remote.calls == []

    def test_mount_outside_event_loop_schedules_nothing(self, context, session):
        tags = context.tags(session)

        state = tags.mount()

        assert state.loading is True
        assert tags._tasks == set()

    @pytest.mark.asyncio
    async def test_mount_twice_is_idempotent(self, context, session):
        tags = context.tags(session)
        tags.mount()
        tags.mount()
        await tags.settle()

        assert context.bus.subscriber_count(SyncTopic.DATA_SYNC) == 1


class TestOfflineFallback:
    """OfflinePersistenceStore as second source"""

    @pytest.mark.asyncio
    async def test_expired_offline_entry_served_while_offline(self, context, remote, clock, session):
        context.offline.set("tags", "user-1", CACHED_TAGS)
        clock.advance(days=8)
        context.monitor.set_online(False)
        remote.fail.add(("list", "tags"))
        tags = context.tags(session)

        state = tags.mount()
        assert state.source == "offline"
        assert state.items == CACHED_TAGS

        await tags.settle()
        assert tags.items == CACHED_TAGS
        assert tags.state.last_error is not None

    @pytest.mark.asyncio
    async def test_expired_offline_entry_ignored_while_online(self, context, clock, session):
        context.offline.set("tags", "user-1", CACHED_TAGS)
        clock.advance(days=8)
        tags = context.tags(session)

        assert tags.mount().loading is True
        await tags.settle()

    @pytest.mark.asyncio
    async def test_fetch_error_online_degrades_to_empty(self, context, remote, session):
        remote.fail.add(("list", "email_signatures"))
        signatures = context.signatures(session)
        signatures.mount()
        await signatures.settle()

        assert signatures.items == []
        assert signatures.loading is False
        assert "failed" in signatures.state.last_error


class TestSeeding:
    """First-run defaults inserted exactly once"""

    @pytest.mark.asyncio
    async def test_concurrent_consumers_seed_once(self, context, remote, session):
        first = context.tags(session)
        second = context.tags(session)

        first.mount()
        second.mount()
        await first.settle()
        await second.settle()

        assert remote.count("insert", "tags") == 1
        assert len(remote.tables["tags"]) == 5
        seeded = [t for t in (first.items, second.items) if t]
        assert [t["name"] for t in seeded[0]] == ["Hot", "Warm", "Cold", "Client", "Follow-up"]
        assert not context.seed_guard.is_held("tags")

    @pytest.mark.asyncio
    async def test_loser_picks_up_defaults_on_next_fetch(self, context, remote, session):
        first = context.tags(session)
        second = context.tags(session)
        first.mount()
        second.mount()
        await first.settle()
        await second.settle()

        await second.refetch()
        await first.refetch()

        assert len(first.items) == 5
        assert len(second.items) == 5
        assert remote.count("insert", "tags") == 1

    @pytest.mark.asyncio
    async def test_seeding_failure_leaves_empty_state(self, context, remote, notifier, session, caplog):
        remote.fail.add(("insert", "tags"))
        tags = context.tags(session)
        with caplog.at_level(logging.ERROR):
            tags.mount()
            await tags.settle()

        assert tags.items == []
        assert tags.loading is False
        assert not context.seed_guard.is_held("tags")
        assert "[SEED_001] Could not seed default tags" in caplog.text
        assert notifier.messages == []

    @pytest.mark.asyncio
    async def test_domain_without_defaults_is_not_seeded(self, context, remote, session):
        signatures = context.signatures(session)
        signatures.mount()
        await signatures.settle()

        assert remote.count("insert") == 0


class TestRevalidation:
    """DATA_SYNC broadcasts and unmount"""

    @pytest.mark.asyncio
    async def test_data_sync_refetches_mounted_hooks(self, context, remote, session):
        remote.seed("email_signatures", {"user_id": "user-1", "name": "Work", "html": ""})
        signatures = context.signatures(session)
        signatures.mount()
        await signatures.settle()

        remote.seed("email_signatures", {"user_id": "user-1", "name": "Personal", "html": ""})
        context.request_sync()
        await signatures.settle()

        assert len(signatures.items) == 2
        assert remote.count("list", "email_signatures") == 2

    @pytest.mark.asyncio
    async def test_unmounted_hook_ignores_data_sync(self, context, remote, session):
        signatures = context.signatures(session)
        signatures.mount()
        await signatures.settle()
        signatures.unmount()

        context.request_sync()
        await signatures.settle()

        assert remote.count("list", "email_signatures") == 1

    @pytest.mark.asyncio
    async def test_late_result_after_unmount_only_reaches_stores(self, context, remote, session):
        remote.seed("email_signatures", {"user_id": "user-1", "name": "Work", "html": ""})
        gate = remote.gates[("list", "email_signatures")] = asyncio.Event()
        signatures = context.signatures(session)
        signatures.mount()
        await asyncio.sleep(0)

        signatures.unmount()
        gate.set()
        await signatures.settle()

        assert signatures.items == []
        assert signatures.loading is True
        assert context.cache.get("signatures", "user-1")[0]["name"] == "Work"

    @pytest.mark.asyncio
    async def test_listeners_see_every_state(self, context, remote, session):
        seen = []
        signatures = context.signatures(session)
        unsubscribe = signatures.subscribe(lambda state: seen.append(state.loading))

        signatures.mount()
        await signatures.settle()
        unsubscribe()
        await signatures.refetch()

        assert seen == [True, True, False]


class TestStaleResponses:
    """Ordering of a slow revalidation against a local edit"""

    async def _race(self, context, remote, session):
        context.cache.set("tags", "user-1", CACHED_TAGS)
        remote.seed("tags", *CACHED_TAGS)
        remote.seed("tags", {"id": "t2", "user_id": "user-1", "name": "Warm", "color": "#f97316"})
        gate = remote.gates[("list", "tags")] = asyncio.Event()
        tags = context.tags(session)
        tags.mount()
        await asyncio.sleep(0)

        await tags.update_tag("t1", {"name": "Blazing"})
        gate.set()
        await tags.settle()
        return tags

    @pytest.mark.asyncio
    async def test_last_response_wins_by_default(self, context, remote, session):
        tags = await self._race(context, remote, session)

        assert [t["id"] for t in tags.items] == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_older_response_is_discarded_when_enabled(self, context, remote, session):
        context.settings.discard_stale_responses = True

        tags = await self._race(context, remote, session)

        assert [t["id"] for t in tags.items] == ["t1"]
        assert tags.items[0]["name"] == "Blazing"
        assert tags.state.is_revalidating is False


class TestStatusDisplay:

    @pytest.mark.asyncio
    async def test_status_fields(self, context, session):
        context.cache.set("tags", "user-1", CACHED_TAGS)
        tags = context.tags(session)
        tags.mount()

        status = tags.get_status_display()
        await tags.settle()

        assert status["domain"] == "tags"
        assert status["count"] == 1
        assert status["source"] == "cache"
