# =============================================================================
# tests/unit/test_profile.py
# Unit Tests for ProfileSync and profile helpers
# =============================================================================

import re

import pytest

from synka_core.sync.profile import get_profile_by_slug, map_profile, slug_from_email, to_db_updates


class TestProfileMapping:
    """DB row <-> card view"""

    def test_compat_aliases(self):
        profile = map_profile({"full_name": "Ravi", "title": "Founder", "slug": "ravi42"})

        assert profile["name"] == "Ravi"
        assert profile["designation"] == "Founder"
        assert profile["public_slug"] == "ravi42"
        assert profile["card_design"] == "minimal"
        assert profile["phone"] == ""

    def test_updates_translate_aliases(self):
        updates = to_db_updates({"name": "Ravi K", "public_slug": "ravik", "phone": "1", "unknown": 1})

        assert updates == {"full_name": "Ravi K", "slug": "ravik", "phone": "1"}

    def test_slug_from_email(self):
        slug = slug_from_email("Ravi.K+cards@example.com", 0)

        assert re.fullmatch(r"ravikcards\d{1,3}", slug)

    def test_slug_without_email(self):
        assert slug_from_email(None, 1700000000000).startswith("user1700000000000")


class TestProfileSync:

    @pytest.mark.asyncio
    async def test_existing_profile_is_mapped(self, context, remote, session):
        remote.seed("profiles", {"user_id": "user-1", "full_name": "Asha Owner", "slug": "asha1"})
        profile = context.profile(session)
        profile.mount()
        await profile.settle()

        assert profile.items["name"] == "Asha Owner"
        assert remote.count("insert", "profiles") == 0

    @pytest.mark.asyncio
    async def test_missing_profile_is_created(self, context, remote, session):
        profile = context.profile(session)
        profile.mount()
        await profile.settle()

        created = remote.tables["profiles"][0]
        assert created["user_id"] == "user-1"
        assert created["full_name"] == "Asha Owner"
        assert created["slug"].startswith("ashaowner")
        assert profile.items["public_slug"] == created["slug"]

    @pytest.mark.asyncio
    async def test_creation_conflict_rereads(self, context, remote, session):
        remote.fail.add(("insert", "profiles"))
        profile = context.profile(session)
        profile.mount()
        await profile.settle()

        assert remote.count("list", "profiles") == 2
        assert profile.items is None
        assert profile.loading is False

    @pytest.mark.asyncio
    async def test_cached_profile_hydrates(self, context, session):
        context.cache.set("profile", "user-1", map_profile({"full_name": "Cached"}))
        profile = context.profile(session)

        state = profile.mount()
        await profile.settle()

        assert state.items["name"] == "Cached"
        assert state.loading is False

    @pytest.mark.asyncio
    async def test_update_profile(self, context, remote, session):
        remote.seed("profiles", {"user_id": "user-1", "full_name": "Asha Owner", "slug": "asha1"})
        profile = context.profile(session)
        profile.mount()
        await profile.settle()

        result = await profile.update_profile({"name": "Asha K", "company": "Acme"})

        assert result.success
        assert profile.items["name"] == "Asha K"
        assert remote.tables["profiles"][0]["full_name"] == "Asha K"
        assert context.cache.get("profile", "user-1")["company"] == "Acme"

    @pytest.mark.asyncio
    async def test_failed_update_reverts(self, context, remote, notifier, session):
        remote.seed("profiles", {"user_id": "user-1", "full_name": "Asha Owner", "slug": "asha1"})
        profile = context.profile(session)
        profile.mount()
        await profile.settle()
        remote.fail.add(("update", "profiles"))

        result = await profile.update_profile({"name": "Asha K"})

        assert not result
        assert profile.items["name"] == "Asha Owner"
        assert notifier.titles == ["Failed to update profile"]

    @pytest.mark.asyncio
    async def test_update_before_load(self, context, session):
        profile = context.profile(session)

        result = await profile.update_profile({"name": "x"})

        assert result.error_code == "SYNC_404"


class TestPublicLookup:

    @pytest.mark.asyncio
    async def test_by_slug(self, remote):
        remote.seed("profiles", {"user_id": "user-1", "full_name": "Asha Owner", "slug": "asha1"})

        profile = await get_profile_by_slug(remote, "asha1")

        assert profile["name"] == "Asha Owner"
        assert await get_profile_by_slug(remote, "nobody") is None

    @pytest.mark.asyncio
    async def test_lookup_error_is_none(self, remote):
        remote.fail.add(("list", "profiles"))

        assert await get_profile_by_slug(remote, "asha1") is None
