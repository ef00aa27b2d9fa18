# =============================================================================
# synka_core/sync/defaults.py
# Records inserted for a new user on first load
# =============================================================================

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from synka_core.utils import to_iso

# 1 Jan 2026, 10:00-17:00 IST
_IST = timezone(timedelta(hours=5, minutes=30))

DEFAULT_EVENTS: List[Dict[str, Any]] = [
    {
        "title": "Networking Meetup",
        "description": "Local business networking event",
        "start_time": to_iso(datetime(2026, 1, 1, 10, 0, tzinfo=_IST)),
        "end_time": to_iso(datetime(2026, 1, 1, 17, 0, tzinfo=_IST)),
    },
]

DEFAULT_TAG_COLOR = "#6366f1"

DEFAULT_TAGS: List[Dict[str, Any]] = [
    {"name": "Hot", "color": "#ef4444"},
    {"name": "Warm", "color": "#f97316"},
    {"name": "Cold", "color": "#3b82f6"},
    {"name": "Client", "color": "#22c55e"},
    {"name": "Follow-up", "color": "#a855f7"},
]

# No template is auto-selected. "My Digital Card" is the visible text,
# {{myCardLink}} the link behind it.
DEFAULT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "name": "Introduction",
        "channel": "whatsapp",
        "subject": None,
        "body": (
            "Hi {{name}}, It was nice connecting with you.\n"
            "Sharing my details here: My Digital Card {{myCardLink}}\n"
            "Happy to stay in touch.\n"
            "\n"
            "{{myName}}\n"
            "{{myCompany}}"
        ),
        "is_selected_for_email": False,
        "is_selected_for_whatsapp": False,
    },
    {
        "name": "Follow-up",
        "channel": "whatsapp",
        "subject": None,
        "body": (
            "Hello {{name}}, I hope you are keeping well.\n"
            "Would be glad to connect at a time convenient for you.\n"
            "\n"
            "{{myName}}\n"
            "My Digital Card {{myCardLink}}"
        ),
        "is_selected_for_email": False,
        "is_selected_for_whatsapp": False,
    },
    {
        "name": "Introduction",
        "channel": "email",
        "subject": "Connecting after our introduction",
        "body": (
            "Hello {{name}},\n"
            "\n"
            "It was a pleasure connecting with you.\n"
            "\n"
            "Please find my contact details below.\n"
            "My Digital Card {{myCardLink}}\n"
            "\n"
            "I look forward to continuing the conversation.\n"
            "\n"
            "Warm regards,\n"
            "{{myName}}\n"
            "{{myCompany}}"
        ),
        "is_selected_for_email": False,
        "is_selected_for_whatsapp": False,
    },
    {
        "name": "Follow-up",
        "channel": "email",
        "subject": "Connecting further",
        "body": (
            "Hello {{name}},\n"
            "\n"
            "I hope you are keeping well.\n"
            "I thought this might be a good moment to reconnect.\n"
            "Would be glad to connect at a time convenient for you.\n"
            "\n"
            "My Digital Card {{myCardLink}}\n"
            "\n"
            "Kind regards,\n"
            "{{myName}}\n"
            "{{myCompany}}"
        ),
        "is_selected_for_email": False,
        "is_selected_for_whatsapp": False,
    },
]


def with_owner(records: List[Dict[str, Any]], user_id: str) -> List[Dict[str, Any]]:
    """Copies of ``records`` stamped with ``user_id``."""
    return [{**record, "user_id": user_id} for record in records]
