# =============================================================================
# synka_core/sync/events.py
# Networking events contacts can be attached to
# =============================================================================

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from synka_core.services.base_service import ServiceResult
from synka_core.sync.base import DomainSyncHook
from synka_core.sync.defaults import DEFAULT_EVENTS, with_owner
from synka_core.utils import parse_iso, to_iso


def is_event_active(event: Dict[str, Any], moment: datetime) -> bool:
    """True while ``moment`` lies in [start_time, end_time]; no end means the start instant only."""
    start = parse_iso(event["start_time"])
    end = parse_iso(event["end_time"]) if event.get("end_time") else start
    return start <= moment <= end


def active_events(events: Iterable[Dict[str, Any]], moment: datetime) -> List[Dict[str, Any]]:
    return [event for event in events if event.get("start_time") and is_event_active(event, moment)]


class EventsSync(DomainSyncHook):
    """Events of the signed-in user, newest start first."""

    domain = "events"
    table = "events"
    has_defaults = True

    async def fetch_remote(self) -> List[Dict[str, Any]]:
        return await self.remote.list(
            self.table,
            {"user_id": self.user_id},
            order_by="start_time",
            ascending=False,
        )

    def default_records(self, user_id: str) -> List[Dict[str, Any]]:
        return with_owner(DEFAULT_EVENTS, user_id)

    def order_items(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return sorted(items, key=lambda event: event.get("start_time") or "", reverse=True)

    async def add_event(
        self,
        title: str,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ServiceResult:
        """
        Insert an event and put it at the top of the list.

        Args:
            start_time: ISO timestamp; falls back to now (the column is NOT NULL)
        """
        row = {
            "user_id": self.user_id,
            "title": title,
            "description": description,
            "start_time": start_time or to_iso(self.context.clock()),
            "end_time": end_time,
        }

        def apply(inserted: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            event = inserted[0] if inserted else None
            if event is not None:
                self._commit_local([event] + list(self.items or []))
            return event

        return await self._authoritative(
            "add_event",
            lambda: self.remote.insert(self.table, row),
            apply,
            "Failed to add event",
        )

    async def update_event(self, event_id: str, updates: Dict[str, Any]) -> ServiceResult:
        return await self._optimistic(
            "update_event",
            [event_id],
            lambda event: {**event, **updates},
            lambda: self.remote.update(self.table, {"id": event_id}, updates),
            "Failed to update event",
        )

    async def delete_event(self, event_id: str) -> ServiceResult:
        def apply(_result: Any) -> str:
            self._commit_local([e for e in self.items or [] if e.get("id") != event_id])
            return event_id

        return await self._authoritative(
            "delete_event",
            lambda: self.remote.delete(self.table, {"id": event_id}),
            apply,
            "Failed to delete event",
            item_id=event_id,
        )

    def active_events_for(self, moment: datetime) -> List[Dict[str, Any]]:
        """Events running at ``moment``."""
        return active_events(self.items or [], moment)
