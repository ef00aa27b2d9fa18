# =============================================================================
# synka_core/crm/compose.py
# Message text handed to the mail client / WhatsApp
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, Optional

from synka_core.sync.signatures import signature_to_text
from synka_core.sync.templates import apply_template


def compose_email(
    contact: Dict[str, Any],
    template: Optional[Dict[str, Any]] = None,
    profile: Optional[Dict[str, Any]] = None,
    signature: Optional[Dict[str, Any]] = None,
    public_site_url: str = "https://synka.in",
) -> Dict[str, str]:
    """
    Subject and body for a mailto: link.

    Without a template the body is empty and the subject is "Hello {name}".
    A selected signature is appended below a ``---`` rule as plain text.
    """
    if template:
        applied = apply_template(template, contact, profile, public_site_url)
    else:
        applied = {"subject": f"Hello {contact.get('name') or ''}", "body": ""}

    body = applied["body"]
    if signature and signature.get("html"):
        body = f"{body}\n\n---\n{signature_to_text(signature['html'])}"
    return {"subject": applied["subject"], "body": body}


def compose_whatsapp(
    contact: Dict[str, Any],
    template: Optional[Dict[str, Any]] = None,
    profile: Optional[Dict[str, Any]] = None,
    public_site_url: str = "https://synka.in",
) -> str:
    if not template:
        return ""
    return apply_template(template, contact, profile, public_site_url)["body"]
