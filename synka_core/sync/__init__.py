# =============================================================================
# synka_core/sync/__init__.py
# Per-domain stale-while-revalidate hooks
# =============================================================================

from .base import DomainSyncHook
from .contacts import ContactsSync, submit_public_contact
from .profile import ProfileSync, get_profile_by_slug, map_profile
from .events import EventsSync, active_events
from .tags import TagsSync
from .templates import TemplatesSync, apply_template, convert_to_placeholders
from .signatures import SignaturesSync, signature_to_text

__all__ = [
    "DomainSyncHook",
    "ContactsSync",
    "submit_public_contact",
    "ProfileSync",
    "get_profile_by_slug",
    "map_profile",
    "EventsSync",
    "active_events",
    "TagsSync",
    "TemplatesSync",
    "apply_template",
    "convert_to_placeholders",
    "SignaturesSync",
    "signature_to_text",
]
