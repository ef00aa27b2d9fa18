# =============================================================================
# synka_core/sync/tags.py
# Contact tags (Hot, Warm, Cold, ...)
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional

from synka_core.services.base_service import ServiceResult
from synka_core.sync.base import DomainSyncHook
from synka_core.sync.defaults import DEFAULT_TAG_COLOR, DEFAULT_TAGS, with_owner


class TagsSync(DomainSyncHook):
    """Tags of the signed-in user, oldest first."""

    domain = "tags"
    table = "tags"
    has_defaults = True

    async def fetch_remote(self) -> List[Dict[str, Any]]:
        return await self.remote.list(
            self.table,
            {"user_id": self.user_id},
            order_by="created_at",
            ascending=True,
        )

    def default_records(self, user_id: str) -> List[Dict[str, Any]]:
        return with_owner(DEFAULT_TAGS, user_id)

    async def create_tag(self, name: str, color: Optional[str] = None) -> ServiceResult:
        """Insert a tag and append it to the list."""
        row = {"user_id": self.user_id, "name": name, "color": color or DEFAULT_TAG_COLOR}

        def apply(inserted: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            tag = inserted[0] if inserted else None
            if tag is not None:
                self._commit_local(list(self.items or []) + [tag])
            return tag

        return await self._authoritative(
            "create_tag",
            lambda: self.remote.insert(self.table, row),
            apply,
            "Failed to create tag",
        )

    async def update_tag(self, tag_id: str, updates: Dict[str, Any]) -> ServiceResult:
        return await self._optimistic(
            "update_tag",
            [tag_id],
            lambda tag: {**tag, **updates},
            lambda: self.remote.update(self.table, {"id": tag_id}, updates),
            "Failed to update tag",
        )

    async def delete_tag(self, tag_id: str) -> ServiceResult:
        def apply(_result: Any) -> str:
            self._commit_local([tag for tag in self.items or [] if tag.get("id") != tag_id])
            return tag_id

        return await self._authoritative(
            "delete_tag",
            lambda: self.remote.delete(self.table, {"id": tag_id}),
            apply,
            "Failed to delete tag",
            item_id=tag_id,
        )
