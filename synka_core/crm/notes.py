# =============================================================================
# synka_core/crm/notes.py
# Interaction types and note-history helpers
# =============================================================================

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from synka_core.utils import parse_iso


class InteractionType(str, Enum):
    """Outbound actions tracked across a trip to another app."""
    CALL = "call"
    EMAIL = "email"
    WHATSAPP = "whatsapp"


# Note written when the user confirms the action happened
SYSTEM_NOTES: Dict[InteractionType, str] = {
    InteractionType.CALL: "Call Made",
    InteractionType.EMAIL: "Email Sent",
    InteractionType.WHATSAPP: "WhatsApp Sent",
}

_PROMPT_VERBS: Dict[InteractionType, str] = {
    InteractionType.CALL: "Call made to",
    InteractionType.EMAIL: "Email sent to",
    InteractionType.WHATSAPP: "WhatsApp sent to",
}

SYSTEM_PREFIXES = ("WhatsApp Sent", "Email Sent", "Call Made")
SEPARATOR = " - "


class ParsedNote(NamedTuple):
    system_text: str
    user_text: str


def confirmation_prompt(interaction_type: InteractionType, contact_name: str) -> str:
    """E.g. "Call made to Asha?"."""
    return f"{_PROMPT_VERBS[InteractionType(interaction_type)]} {contact_name}?"


def compose_note(system_text: str, user_text: str) -> str:
    """System text, plus `` - user text`` when the user added something."""
    user_text = user_text.strip()
    return f"{system_text}{SEPARATOR}{user_text}" if user_text else system_text


def parse_note_for_edit(text: str) -> ParsedNote:
    """
    Split a note into its system prefix and the user's free text.

    >>> parse_note_for_edit("Call Made - asked for pricing")
    ParsedNote(system_text='Call Made', user_text='asked for pricing')
    >>> parse_note_for_edit("met at the expo")
    ParsedNote(system_text='', user_text='met at the expo')
    """
    for prefix in SYSTEM_PREFIXES:
        if text.startswith(prefix):
            rest = text[len(prefix):]
            if rest.startswith(SEPARATOR):
                return ParsedNote(prefix, rest[len(SEPARATOR):])
            return ParsedNote(prefix, "")
    return ParsedNote("", text)


def last_interaction_time(contact: Dict[str, Any]) -> Optional[datetime]:
    """The later of the newest note's timestamp and ``updated_at``."""
    history = contact.get("notes_history") or []
    last_note = parse_iso(history[0]["timestamp"]) if history and history[0].get("timestamp") else None
    updated_at = parse_iso(contact["updated_at"]) if contact.get("updated_at") else None

    if last_note is not None and (updated_at is None or last_note > updated_at):
        return last_note
    return updated_at
