# =============================================================================
# synka_core/sync/profile.py
# The signed-in user's own card profile
# =============================================================================

from __future__ import annotations
import random
import re
from typing import Any, Dict, Optional
import logging

from synka_core.data.remote import RemoteDataService
from synka_core.errors import RemoteServiceError
from synka_core.services.base_service import ServiceResult
from synka_core.sync.base import DomainSyncHook
from synka_core.utils import to_epoch_ms

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"

# Compatibility field -> DB column
_COMPAT_COLUMNS = {
    "name": "full_name",
    "public_slug": "slug",
}

# Columns an update may touch directly
_DB_COLUMNS = (
    "full_name", "designation", "title", "company", "phone", "email", "website",
    "whatsapp", "linkedin", "about", "photo_url", "logo_url", "card_design",
    "card_name", "layout", "slug",
)


def map_profile(row: Dict[str, Any]) -> Dict[str, Any]:
    """DB row plus the compatibility aliases the card UI reads."""
    return {
        **row,
        "name": row.get("full_name") or "",
        "designation": row.get("designation") or row.get("title") or "",
        "company": row.get("company") or "",
        "phone": row.get("phone") or "",
        "email": row.get("email") or "",
        "website": row.get("website") or "",
        "whatsapp": row.get("whatsapp") or "",
        "linkedin": row.get("linkedin") or "",
        "about": row.get("about") or "",
        "photo_url": row.get("photo_url") or "",
        "logo_url": row.get("logo_url") or "",
        "card_design": row.get("card_design") or "minimal",
        "public_slug": row.get("slug") or "",
    }


def to_db_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a profile patch (aliases allowed) to DB columns."""
    db_updates: Dict[str, Any] = {}
    for key, value in updates.items():
        if key in _COMPAT_COLUMNS:
            db_updates[_COMPAT_COLUMNS[key]] = value
        elif key in _DB_COLUMNS:
            db_updates[key] = value
    return db_updates


def slug_from_email(email: Optional[str], now_ms: int) -> str:
    """Local part of the e-mail, [a-z0-9] only, plus a random 0-999 suffix."""
    base = ""
    if email:
        base = re.sub(r"[^a-z0-9]", "", email.split("@")[0].lower())
    if not base:
        base = f"user{now_ms}"
    return f"{base}{random.randint(0, 999)}"


async def get_profile_by_slug(remote: RemoteDataService, slug: str) -> Optional[Dict[str, Any]]:
    """Public lookup of a card profile. None when missing or on error."""
    try:
        rows = await remote.list(PROFILES_TABLE, {"slug": slug})
    except RemoteServiceError as e:
        logger.error(f"Error fetching profile by slug: {e}")
        return None
    return map_profile(rows[0]) if rows else None


class ProfileSync(DomainSyncHook):
    """Single-object domain; a missing profile is created on first fetch."""

    domain = "profile"
    table = PROFILES_TABLE

    def empty(self) -> Optional[Dict[str, Any]]:
        return None

    async def _read_own(self) -> Optional[Dict[str, Any]]:
        rows = await self.remote.list(self.table, {"user_id": self.user_id})
        return rows[0] if rows else None

    async def fetch_remote(self) -> Optional[Dict[str, Any]]:
        row = await self._read_own()
        if row is not None:
            return map_profile(row)

        metadata = self.session.metadata if self.session else {}
        new_row = {
            "user_id": self.user_id,
            "email": self.session.email if self.session else None,
            "full_name": metadata.get("name") or metadata.get("full_name") or "",
            "phone": metadata.get("phone") or "",
            "slug": slug_from_email(
                self.session.email if self.session else None,
                to_epoch_ms(self.context.clock()),
            ),
        }
        try:
            async with self.log_operation("Creating profile"):
                inserted = await self.remote.insert(self.table, new_row)
        except RemoteServiceError as e:
            # Most likely a concurrent creation; read once more
            self.logger.warning(f"Profile creation failed, re-reading: {e}")
            row = await self._read_own()
            return map_profile(row) if row is not None else None

        return map_profile(inserted[0]) if inserted else None

    async def update_profile(self, updates: Dict[str, Any]) -> ServiceResult:
        """Optimistic profile edit. Aliases such as ``name`` map to DB columns."""
        if self.user_id is None:
            return self._not_authenticated("update_profile")

        before = self._state.items
        if before is None:
            return ServiceResult.fail("Profile not loaded", error_code="SYNC_404")

        db_updates = to_db_updates(updates)
        after = map_profile({**before, **db_updates})
        self._mark_local_write()
        self._update(items=after, source="local")

        try:
            await self._call(
                lambda: self.remote.update(self.table, {"user_id": self.user_id}, db_updates),
                "update_profile",
            )
        except Exception as e:
            self._update(items=before, source="local")
            return self._mutation_failed("update_profile", "Failed to update profile", e)

        self._write_stores(self.user_id, self._state.items if self.is_mounted else after)
        return ServiceResult.ok(after)
