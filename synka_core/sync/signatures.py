# =============================================================================
# synka_core/sync/signatures.py
# E-mail signatures (one of them selected)
# =============================================================================

from __future__ import annotations
import re
from typing import Any, Dict, List, Optional

from synka_core.services.base_service import ServiceResult
from synka_core.sync.base import DomainSyncHook


def signature_to_text(html: str) -> str:
    """Plain-text rendering of an HTML signature for mailto: bodies."""
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    text = re.sub(r"</?(div|p|td|tr|table)[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = text.replace("&nbsp;", " ")
    text = re.sub(r"\n\s*\n", "\n\n", text)
    return text.strip()


class SignaturesSync(DomainSyncHook):
    """Signatures of the signed-in user, newest first. No defaults."""

    domain = "signatures"
    table = "email_signatures"

    async def fetch_remote(self) -> List[Dict[str, Any]]:
        return await self.remote.list(
            self.table,
            {"user_id": self.user_id},
            order_by="created_at",
            ascending=False,
        )

    async def add_signature(self, name: str, html: str, is_selected: bool = False) -> ServiceResult:
        row = {"user_id": self.user_id, "name": name, "html": html, "is_selected": is_selected}

        def apply(inserted: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            created = inserted[0] if inserted else None
            if created is not None:
                self._commit_local([created] + list(self.items or []))
            return created

        return await self._authoritative(
            "add_signature",
            lambda: self.remote.insert(self.table, row),
            apply,
            "Failed to add signature",
        )

    async def update_signature(self, signature_id: str, updates: Dict[str, Any]) -> ServiceResult:
        return await self._optimistic(
            "update_signature",
            [signature_id],
            lambda signature: {**signature, **updates},
            lambda: self.remote.update(self.table, {"id": signature_id}, updates),
            "Failed to update signature",
        )

    async def delete_signature(self, signature_id: str) -> ServiceResult:
        def apply(_result: Any) -> str:
            self._commit_local([s for s in self.items or [] if s.get("id") != signature_id])
            return signature_id

        return await self._authoritative(
            "delete_signature",
            lambda: self.remote.delete(self.table, {"id": signature_id}),
            apply,
            "Failed to delete signature",
            item_id=signature_id,
        )

    async def select_signature(self, signature_id: str) -> ServiceResult:
        """Make ``signature_id`` the only selected signature."""
        if self._find(signature_id) is None:
            return ServiceResult.not_found("signatures item")

        async def deselect_then_select() -> None:
            await self.remote.update(self.table, {"user_id": self.user_id}, {"is_selected": False})
            await self.remote.update(self.table, {"id": signature_id}, {"is_selected": True})

        affected = [
            s["id"] for s in self.items or []
            if s.get("is_selected") or s.get("id") == signature_id
        ]
        return await self._optimistic(
            "select_signature",
            affected,
            lambda signature: {**signature, "is_selected": signature["id"] == signature_id},
            deselect_then_select,
            "Failed to select signature",
        )

    def selected_signature(self) -> Optional[Dict[str, Any]]:
        return next((s for s in self.items or [] if s.get("is_selected")), None)
