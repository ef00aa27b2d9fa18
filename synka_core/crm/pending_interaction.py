# =============================================================================
# synka_core/crm/pending_interaction.py
# Confirming calls / e-mails / WhatsApp messages after the user comes back
# =============================================================================
"""
PendingInteractionTracker - state machine across a trip to another app.

    IDLE --start_interaction--> PENDING --on_focus_lost--> AWAITING_RETURN
      ^                                                         |
      |                                         on_focus_gained / on_visibility_restored
      |                                                         v
      +--save_note / dismiss-- CONFIRMED_NOTE_EDIT <--confirm-- CONFIRMING
      +--save_note / dismiss-- DECLINED_NOTE_EDIT  <--decline--/

The pending interaction is persisted in a single slot, so it also survives
the application being killed while the user is in the dialer. The first
focus event after the tracker is created is ignored (it fires on load).

Every path back to IDLE clears the slot and the returning flag together with
the prompt, the editor and the note buffer.
"""

from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from synka_core.crm.compose import compose_email, compose_whatsapp
from synka_core.crm.launcher import ExternalAppLauncher, call_url, email_url, whatsapp_url
from synka_core.crm.notes import (
    SYSTEM_NOTES,
    InteractionType,
    compose_note,
    confirmation_prompt,
)
from synka_core.crm.slot_store import PendingInteraction
from synka_core.errors import InteractionError, handle_error
from synka_core.services.base_service import BaseService, ServiceResult
from synka_core.utils import to_iso

if TYPE_CHECKING:
    from synka_core.context import SyncContext
    from synka_core.sync.contacts import ContactsSync


class TrackerState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    AWAITING_RETURN = "awaiting_return"
    CONFIRMING = "confirming"
    CONFIRMED_NOTE_EDIT = "confirmed_note_edit"
    DECLINED_NOTE_EDIT = "declined_note_edit"


_MISSING_CHANNEL_MESSAGES = {
    InteractionType.CALL: "No phone number",
    InteractionType.EMAIL: "No email address",
    InteractionType.WHATSAPP: "No WhatsApp number",
}

_DIALOG_STATES = (
    TrackerState.CONFIRMING,
    TrackerState.CONFIRMED_NOTE_EDIT,
    TrackerState.DECLINED_NOTE_EDIT,
)


def channel_address(contact: Dict[str, Any], interaction_type: InteractionType) -> Optional[str]:
    """Phone for calls, e-mail for e-mails, WhatsApp (falling back to phone) for WhatsApp."""
    if interaction_type == InteractionType.CALL:
        return contact.get("phone") or None
    if interaction_type == InteractionType.EMAIL:
        return contact.get("email") or None
    return contact.get("whatsapp") or contact.get("phone") or None


class PendingInteractionTracker(BaseService):
    """
    Usage:
        tracker = context.interaction_tracker(contacts_hook)
        tracker.start_interaction(contact, InteractionType.CALL)
        tracker.on_focus_lost()
        ...
        prompt = tracker.on_focus_gained()   # "Call made to Asha?"
        await tracker.confirm()
        await tracker.save_note("asked for pricing")
    """

    def __init__(
        self,
        context: SyncContext,
        contacts: ContactsSync,
        launcher: ExternalAppLauncher,
    ):
        super().__init__()
        self.context = context
        self.contacts = contacts
        self.launcher = launcher
        self.store = context.interaction_store

        self.state = TrackerState.IDLE
        self.pending: Optional[PendingInteraction] = None
        self.prompt: Optional[str] = None
        self.editor_open = False
        self.confirmed = False
        self.system_text = ""
        self.note_buffer = ""
        self._has_focused_once = False

    # =========================================================================
    # IDLE -> PENDING
    # =========================================================================

    def start_interaction(
        self,
        contact: Dict[str, Any],
        interaction_type: InteractionType,
        subject: Optional[str] = None,
        body: Optional[str] = None,
    ) -> ServiceResult:
        """
        Record the interaction, arm the returning flag, open the external app.

        Starting a new interaction overwrites any unresolved one.

        Args:
            contact: Contact row (id, name and the channel fields)
            subject: E-mail subject (defaults to "Hello {name}")
            body: E-mail body or WhatsApp text
        """
        interaction_type = InteractionType(interaction_type)
        address = channel_address(contact, interaction_type)
        if not address:
            error = InteractionError(
                _MISSING_CHANNEL_MESSAGES[interaction_type],
                contact_id=contact.get("id"),
                interaction_type=interaction_type.value,
            )
            handle_error(error, notifier=self.context.notifier, log_error=False)
            return ServiceResult.from_exception(error)

        if interaction_type == InteractionType.CALL:
            url = call_url(address)
        elif interaction_type == InteractionType.EMAIL:
            url = email_url(address, subject or f"Hello {contact.get('name') or ''}", body or "")
        else:
            url = whatsapp_url(address, body)

        self._clear_transient()
        self.pending = PendingInteraction(
            contact_id=contact["id"],
            contact_name=contact.get("name") or "",
            interaction_type=interaction_type,
            timestamp=to_iso(self.context.clock()),
        )
        self.store.save(self.pending)
        self.context.refresh_suppressor.arm()

        try:
            self.launcher.open(url)
        except Exception as e:
            error = InteractionError(
                f"Could not open {interaction_type.value} app",
                contact_id=contact["id"],
                interaction_type=interaction_type.value,
                details={"cause": str(e)},
            )
            handle_error(error, notifier=self.context.notifier)
            self._reset()
            return ServiceResult.from_exception(error)

        self.state = TrackerState.PENDING
        self.logger.info(f"Pending {interaction_type.value} with contact {contact['id']}")
        return ServiceResult.ok(self.pending)

    def start_call(self, contact: Dict[str, Any]) -> ServiceResult:
        return self.start_interaction(contact, InteractionType.CALL)

    def start_email(
        self,
        contact: Dict[str, Any],
        subject: Optional[str] = None,
        body: Optional[str] = None,
        template: Optional[Dict[str, Any]] = None,
        profile: Optional[Dict[str, Any]] = None,
        signature: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Open the mail client.

        With a template or signature, subject and body are composed from them;
        an explicit subject or body still wins.
        """
        if template or signature:
            composed = compose_email(
                contact, template, profile, signature, self.context.settings.public_site_url
            )
            subject = subject or composed["subject"]
            body = body or composed["body"]
        return self.start_interaction(contact, InteractionType.EMAIL, subject=subject, body=body)

    def start_whatsapp(
        self,
        contact: Dict[str, Any],
        text: Optional[str] = None,
        template: Optional[Dict[str, Any]] = None,
        profile: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        if text is None and template:
            text = compose_whatsapp(
                contact, template, profile, self.context.settings.public_site_url
            ) or None
        return self.start_interaction(contact, InteractionType.WHATSAPP, body=text)

    # =========================================================================
    # PLATFORM EVENTS
    # =========================================================================

    def on_focus_lost(self) -> None:
        if self.state == TrackerState.PENDING:
            self.state = TrackerState.AWAITING_RETURN

    def on_focus_gained(self) -> Optional[str]:
        """
        Check the slot on return.

        Returns:
            The confirmation prompt if one is now showing, else None
        """
        if not self._has_focused_once:
            self._has_focused_once = True
            return None
        return self._check_pending()

    def on_visibility_restored(self) -> Optional[str]:
        return self.on_focus_gained()

    def _check_pending(self) -> Optional[str]:
        if self.state in _DIALOG_STATES:
            return None

        try:
            pending = self.store.load()
        except ValueError as e:
            self.logger.debug(f"Discarding pending interaction: {e}")
            self._reset()
            return None

        if pending is None:
            if self.state in (TrackerState.PENDING, TrackerState.AWAITING_RETURN):
                self._reset()
            return None

        if not pending.is_valid(self.context.clock(), self.context.settings.interaction_validity):
            self.logger.info(f"Discarding expired pending interaction from {pending.timestamp}")
            self._reset()
            return None

        self.pending = pending
        self.prompt = confirmation_prompt(pending.interaction_type, pending.contact_name)
        self.state = TrackerState.CONFIRMING
        return self.prompt

    # =========================================================================
    # CONFIRMATION
    # =========================================================================

    async def confirm(self) -> ServiceResult:
        """Answer "Yes": write the system note now, then open the editor pre-filled with it."""
        if self.state != TrackerState.CONFIRMING or self.pending is None:
            return ServiceResult.fail("No interaction to confirm", error_code="INTERACT_002")

        self.store.clear()
        pending = self.pending
        if self.contacts.find_contact(pending.contact_id) is None:
            self.logger.info(f"Contact {pending.contact_id} no longer present")
            self._reset()
            return ServiceResult.not_found("Contact")

        system_text = SYSTEM_NOTES[pending.interaction_type]
        result = await self.contacts.add_note(pending.contact_id, system_text)
        if not result:
            self._reset()
            return result

        self.prompt = None
        self.confirmed = True
        self.system_text = system_text
        self.note_buffer = ""
        self.editor_open = True
        self.state = TrackerState.CONFIRMED_NOTE_EDIT
        return result

    def decline(self) -> None:
        """Answer "No": open an empty editor; saving is optional."""
        if self.state != TrackerState.CONFIRMING:
            return
        self.store.clear()
        self.prompt = None
        self.confirmed = False
        self.system_text = ""
        self.note_buffer = ""
        self.editor_open = True
        self.state = TrackerState.DECLINED_NOTE_EDIT

    def set_note_text(self, text: str) -> None:
        self.note_buffer = text

    async def save_note(self, text: Optional[str] = None) -> ServiceResult:
        """
        Persist the editor and return to IDLE.

        Confirmed: the newest note becomes "{system} - {text}".
        Declined: a non-empty text becomes a new note; empty saves nothing.
        """
        if text is not None:
            self.note_buffer = text
        user_text = self.note_buffer.strip()
        pending = self.pending

        if self.state not in (TrackerState.CONFIRMED_NOTE_EDIT, TrackerState.DECLINED_NOTE_EDIT) or pending is None:
            self._reset()
            return ServiceResult.ok(None)

        if self.contacts.find_contact(pending.contact_id) is None:
            self._reset()
            return ServiceResult.not_found("Contact")

        result = ServiceResult.ok(None)
        if self.confirmed and self.system_text:
            if user_text:
                result = await self.contacts.rewrite_latest_note(
                    pending.contact_id, compose_note(self.system_text, user_text)
                )
                if result:
                    self.context.notifier.notify("Note updated")
        elif user_text:
            result = await self.contacts.add_note(pending.contact_id, user_text)
            if result:
                self.context.notifier.notify("Note added")

        self._reset()
        return result

    def dismiss(self) -> None:
        """Close the dialog or editor without saving."""
        self._reset()

    # =========================================================================
    # RESET
    # =========================================================================

    def _clear_transient(self) -> None:
        self.pending = None
        self.prompt = None
        self.editor_open = False
        self.confirmed = False
        self.system_text = ""
        self.note_buffer = ""

    def _reset(self) -> None:
        self.store.clear()
        self.context.refresh_suppressor.disarm()
        self._clear_transient()
        self.state = TrackerState.IDLE

    def get_status_display(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "pending": self.pending.contact_id if self.pending else None,
            "type": self.pending.interaction_type.value if self.pending else None,
            "prompt": self.prompt,
            "editor_open": self.editor_open,
        }
