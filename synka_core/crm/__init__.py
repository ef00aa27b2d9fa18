# =============================================================================
# synka_core/crm/__init__.py
# Outbound interaction tracking for the contacts surface
# =============================================================================

from .notes import (
    InteractionType,
    SYSTEM_NOTES,
    SYSTEM_PREFIXES,
    ParsedNote,
    compose_note,
    confirmation_prompt,
    last_interaction_time,
    parse_note_for_edit,
)
from .launcher import (
    ExternalAppLauncher,
    WebBrowserLauncher,
    call_url,
    email_url,
    whatsapp_url,
)
from .slot_store import (
    PENDING_INTERACTION_KEY,
    RETURNING_FROM_INTERACTION_KEY,
    PendingInteraction,
    PendingInteractionStore,
    RefreshSuppressor,
)
from .compose import compose_email, compose_whatsapp
from .pending_interaction import PendingInteractionTracker, TrackerState

__all__ = [
    "InteractionType",
    "SYSTEM_NOTES",
    "SYSTEM_PREFIXES",
    "ParsedNote",
    "compose_note",
    "confirmation_prompt",
    "last_interaction_time",
    "parse_note_for_edit",
    "ExternalAppLauncher",
    "WebBrowserLauncher",
    "call_url",
    "email_url",
    "whatsapp_url",
    "PENDING_INTERACTION_KEY",
    "RETURNING_FROM_INTERACTION_KEY",
    "PendingInteraction",
    "PendingInteractionStore",
    "RefreshSuppressor",
    "compose_email",
    "compose_whatsapp",
    "PendingInteractionTracker",
    "TrackerState",
]
