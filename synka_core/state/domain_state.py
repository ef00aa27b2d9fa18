# =============================================================================
# synka_core/state/domain_state.py
# State exposed by every DomainSyncHook
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class UserSession:
    """The signed-in user as handed over by the auth layer."""
    user_id: str
    email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DomainState:
    """
    Snapshot of one domain as the UI sees it.

    ``items`` is a list for collection domains and a dict (or None) for the
    profile.
    """
    items: Any = None
    loading: bool = False
    is_revalidating: bool = False
    last_error: Optional[str] = None
    updated_at: Optional[datetime] = None
    source: str = "none"  # none | cache | offline | remote | local

    @property
    def has_data(self) -> bool:
        """Empty collections count as no data."""
        if self.items is None:
            return False
        if isinstance(self.items, (list, dict)):
            return len(self.items) > 0
        return True

    def evolve(self, **changes) -> DomainState:
        return replace(self, **changes)
