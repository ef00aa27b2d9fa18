# =============================================================================
# synka_core/sync/contacts.py
# CRM contacts with denormalized tags, events and note history
# =============================================================================
"""
ContactsSync - the richest domain.

Each contact carries:
- ``tags``:   [{id, name, color}]                   from contact_tags + tags
- ``events``: [{id, title, start_time, end_time}]   from contact_events + events
- ``notes_history``: [{text, timestamp}], newest first

The returning-from-interaction flag is used up by the first contacts value the
hook sees: cached contacts at mount, otherwise the first remote result that
arrives while the hook already holds data. That remote result is dropped, so a
refresh racing a just-written interaction note does not overwrite it.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence
import logging

from synka_core.data.remote import RemoteDataService, Row
from synka_core.errors import RemoteServiceError
from synka_core.services.base_service import ServiceResult
from synka_core.state import DomainState
from synka_core.sync.base import DomainSyncHook
from synka_core.sync.events import active_events
from synka_core.utils import Clock, to_iso, utc_now

logger = logging.getLogger(__name__)

CONTACTS_TABLE = "contacts"
CONTACT_TAGS_TABLE = "contact_tags"
CONTACT_EVENTS_TABLE = "contact_events"

# Keys that live in relation tables or are UI-only, never in the contacts row
_NON_DB_FIELDS = ("notes", "tags", "events")

_CONTACT_FIELDS = (
    "company", "designation", "email", "phone", "whatsapp", "linkedin", "website",
)


def build_notes_history(notes: Optional[str], timestamp: str) -> List[Dict[str, str]]:
    return [{"text": notes, "timestamp": timestamp}] if notes else []


def contact_row(owner_id: str, data: Dict[str, Any], timestamp: str) -> Dict[str, Any]:
    """Insert payload for a new contact; blank optional fields become None."""
    row = {
        "owner_id": owner_id,
        "name": data.get("name") or "",
        "notes_history": build_notes_history(data.get("notes"), timestamp),
        "source": data.get("source") or "manual",
    }
    for field in _CONTACT_FIELDS:
        row[field] = data.get(field) or None
    return row


def _group(rows: Sequence[Row], key: str, lookup: Dict[str, Row], ref: str) -> Dict[str, List[Row]]:
    grouped: Dict[str, List[Row]] = {}
    for row in rows:
        target = lookup.get(row.get(ref))
        if target is not None:
            grouped.setdefault(row[key], []).append(target)
    return grouped


class ContactsSync(DomainSyncHook):
    """Contacts owned by the signed-in user, newest first."""

    domain = "contacts"
    table = CONTACTS_TABLE

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def mount(self) -> DomainState:
        """Hydrated contacts count as the first value seen, so they use up the returning flag."""
        was_mounted = self.is_mounted
        state = super().mount()
        if not was_mounted and state.has_data and self.context.refresh_suppressor.consume():
            self.logger.info("Returning flag cleared by cached contacts")
        return state

    # =========================================================================
    # FETCH
    # =========================================================================

    async def fetch_remote(self) -> List[Dict[str, Any]]:
        contacts = await self.remote.list(
            self.table,
            {"owner_id": self.user_id},
            order_by="created_at",
            ascending=False,
        )
        if not contacts:
            return []

        tags_by_contact, events_by_contact = await self._fetch_relations(
            [contact["id"] for contact in contacts]
        )
        return [
            {
                **contact,
                "tags": tags_by_contact.get(contact["id"], []),
                "events": events_by_contact.get(contact["id"], []),
            }
            for contact in contacts
        ]

    async def _fetch_relations(self, contact_ids: List[str]):
        """Tags and events per contact. Missing relations degrade to empty lists."""
        try:
            links = await self.remote.list_in(
                CONTACT_TAGS_TABLE, "contact_id", contact_ids, columns="contact_id, tag_id"
            )
            tag_ids = sorted({link["tag_id"] for link in links})
            tags = await self.remote.list_in("tags", "id", tag_ids, columns="id, name, color")
            tags_by_contact = _group(links, "contact_id", {t["id"]: t for t in tags}, "tag_id")
        except RemoteServiceError as e:
            self.logger.warning(f"Could not load contact tags: {e}")
            tags_by_contact = {}

        try:
            links = await self.remote.list_in(
                CONTACT_EVENTS_TABLE, "contact_id", contact_ids, columns="contact_id, event_id"
            )
            event_ids = sorted({link["event_id"] for link in links})
            events = await self.remote.list_in(
                "events", "id", event_ids, columns="id, title, start_time, end_time"
            )
            events_by_contact = _group(links, "contact_id", {e["id"]: e for e in events}, "event_id")
        except RemoteServiceError as e:
            self.logger.warning(f"Could not load contact events: {e}")
            events_by_contact = {}

        return tags_by_contact, events_by_contact

    def accept_remote(self, items: Any) -> bool:
        if not self._state.has_data:
            return True
        if self.context.refresh_suppressor.consume():
            self.logger.info("Skipping contacts refresh after returning from an interaction")
            return False
        return True

    def find_contact(self, contact_id: str) -> Optional[Dict[str, Any]]:
        return self._find(contact_id)

    # =========================================================================
    # CREATE / UPDATE / DELETE
    # =========================================================================

    async def create_contact(
        self,
        data: Dict[str, Any],
        event_ids: Optional[List[str]] = None,
    ) -> ServiceResult:
        """
        Insert a contact, attach events, then refetch for the denormalized view.

        ``data["notes"]`` becomes the first notes_history entry.
        """
        row = contact_row(self.user_id, data, to_iso(self.context.clock()))

        def apply(inserted: List[Row]) -> Optional[Row]:
            created = inserted[0] if inserted else None
            if created is not None:
                self._commit_local([{**created, "tags": [], "events": []}] + list(self.items or []))
            return created

        result = await self._authoritative(
            "create_contact",
            lambda: self.remote.insert(self.table, row),
            apply,
            "Failed to create contact",
        )
        if not result or result.data is None:
            return result

        if event_ids:
            links = [{"contact_id": result.data["id"], "event_id": e} for e in event_ids]
            try:
                await self._call(
                    lambda: self.remote.insert(CONTACT_EVENTS_TABLE, links),
                    "Attaching events to contact",
                )
            except Exception as e:
                self.logger.warning(f"Could not attach events to contact {result.data['id']}: {e}")

        await self.refetch()
        return result

    async def update_contact(self, contact_id: str, updates: Dict[str, Any]) -> ServiceResult:
        """Optimistic field edit; relation and UI-only keys are not sent."""
        db_updates = {k: v for k, v in updates.items() if k not in _NON_DB_FIELDS}
        return await self._optimistic(
            "update_contact",
            [contact_id],
            lambda contact: {**contact, **updates},
            lambda: self.remote.update(self.table, {"id": contact_id}, db_updates),
            "Failed to update contact",
        )

    async def delete_contact(self, contact_id: str) -> ServiceResult:
        def apply(_result: Any) -> str:
            self._commit_local([c for c in self.items or [] if c.get("id") != contact_id])
            return contact_id

        return await self._authoritative(
            "delete_contact",
            lambda: self.remote.delete(self.table, {"id": contact_id}),
            apply,
            "Failed to delete contact",
            item_id=contact_id,
        )

    # =========================================================================
    # RELATIONS
    # =========================================================================

    async def add_tag(self, contact_id: str, tag: Dict[str, Any]) -> ServiceResult:
        """Attach ``tag`` ({id, name, color}) to a contact."""
        summary = {"id": tag["id"], "name": tag.get("name"), "color": tag.get("color")}

        def change(contact: Row) -> Row:
            tags = list(contact.get("tags") or [])
            if all(t.get("id") != summary["id"] for t in tags):
                tags.append(summary)
            return {**contact, "tags": tags}

        return await self._optimistic(
            "add_tag",
            [contact_id],
            change,
            lambda: self.remote.insert(CONTACT_TAGS_TABLE, {"contact_id": contact_id, "tag_id": tag["id"]}),
            "Failed to add tag",
        )

    async def remove_tag(self, contact_id: str, tag_id: str) -> ServiceResult:
        return await self._optimistic(
            "remove_tag",
            [contact_id],
            lambda contact: {
                **contact,
                "tags": [t for t in contact.get("tags") or [] if t.get("id") != tag_id],
            },
            lambda: self.remote.delete(CONTACT_TAGS_TABLE, {"contact_id": contact_id, "tag_id": tag_id}),
            "Failed to remove tag",
        )

    async def add_event(self, contact_id: str, event: Dict[str, Any]) -> ServiceResult:
        """Attach ``event`` ({id, title, start_time, end_time}) to a contact."""
        summary = {
            "id": event["id"],
            "title": event.get("title"),
            "start_time": event.get("start_time"),
            "end_time": event.get("end_time"),
        }

        def change(contact: Row) -> Row:
            events = list(contact.get("events") or [])
            if all(e.get("id") != summary["id"] for e in events):
                events.append(summary)
            return {**contact, "events": events}

        return await self._optimistic(
            "add_event",
            [contact_id],
            change,
            lambda: self.remote.insert(CONTACT_EVENTS_TABLE, {"contact_id": contact_id, "event_id": event["id"]}),
            "Failed to add event",
        )

    async def remove_event(self, contact_id: str, event_id: str) -> ServiceResult:
        return await self._optimistic(
            "remove_event",
            [contact_id],
            lambda contact: {
                **contact,
                "events": [e for e in contact.get("events") or [] if e.get("id") != event_id],
            },
            lambda: self.remote.delete(CONTACT_EVENTS_TABLE, {"contact_id": contact_id, "event_id": event_id}),
            "Failed to remove event",
        )

    # =========================================================================
    # NOTES
    # =========================================================================

    async def update_notes(
        self,
        contact_id: str,
        notes_history: List[Dict[str, str]],
        user_message: str = "Failed to save note",
    ) -> ServiceResult:
        """Replace a contact's note history (newest first)."""
        touched_at = to_iso(self.context.clock())
        return await self._optimistic(
            "update_notes",
            [contact_id],
            lambda contact: {**contact, "notes_history": notes_history, "updated_at": touched_at},
            lambda: self.remote.update(self.table, {"id": contact_id}, {"notes_history": notes_history}),
            user_message,
        )

    async def add_note(self, contact_id: str, text: str) -> ServiceResult:
        """Prepend ``{text, timestamp=now}`` to the note history."""
        contact = self._find(contact_id)
        if contact is None:
            return ServiceResult.not_found("contacts item")
        entry = {"text": text, "timestamp": to_iso(self.context.clock())}
        return await self.update_notes(contact_id, [entry] + list(contact.get("notes_history") or []))

    async def rewrite_latest_note(self, contact_id: str, text: str) -> ServiceResult:
        """Replace the text of the newest note, keeping its timestamp."""
        contact = self._find(contact_id)
        history = list((contact or {}).get("notes_history") or [])
        if not history:
            return ServiceResult.fail("No note to update", error_code="SYNC_404")
        history[0] = {**history[0], "text": text}
        return await self.update_notes(contact_id, history)


# =============================================================================
# PUBLIC CARD FORM
# =============================================================================

async def submit_public_contact(
    remote: RemoteDataService,
    owner_id: str,
    data: Dict[str, Any],
    clock: Clock = utc_now,
) -> ServiceResult:
    """
    Save a contact left by a visitor on a public card.

    Phone and WhatsApp mirror each other when only one is given. The contact
    is attached to every event of the card owner that is running right now.
    """
    now = clock()
    phone = data.get("phone") or data.get("whatsapp") or None
    whatsapp = data.get("whatsapp") or data.get("phone") or None
    row = contact_row(owner_id, {**data, "phone": phone, "whatsapp": whatsapp, "source": "public_form"}, to_iso(now))
    row.pop("website", None)

    try:
        inserted = await remote.insert(CONTACTS_TABLE, row)
    except RemoteServiceError as e:
        logger.error(f"Error creating contact: {e}")
        return ServiceResult.from_exception(e)
    contact = inserted[0] if inserted else None
    if contact is None:
        return ServiceResult.fail("Contact was not created", error_code="REMOTE_001")

    try:
        owner_events = await remote.list("events", {"user_id": owner_id})
        running = active_events(owner_events, now)
        if running:
            await remote.insert(
                CONTACT_EVENTS_TABLE,
                [{"contact_id": contact["id"], "event_id": event["id"]} for event in running],
            )
    except RemoteServiceError as e:
        logger.warning(f"Could not auto-attach events to public contact: {e}")

    return ServiceResult.ok(contact)
