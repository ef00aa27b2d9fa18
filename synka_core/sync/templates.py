# =============================================================================
# synka_core/sync/templates.py
# Message templates for e-mail and WhatsApp outreach
# =============================================================================

from __future__ import annotations
import re
from typing import Any, Dict, List, Optional

from synka_core.services.base_service import ServiceResult
from synka_core.sync.base import DomainSyncHook
from synka_core.sync.defaults import DEFAULT_TEMPLATES, with_owner

# =============================================================================
# PLACEHOLDERS
# =============================================================================

_PLACEHOLDER_PATTERNS = [
    (re.compile(r"\b(their|the|recipient's?)\s*(name|first\s*name)\b", re.IGNORECASE), "{{name}}"),
    (re.compile(r"\b(their|the|recipient's?)\s*(company|organization|firm)\b", re.IGNORECASE), "{{company}}"),
    (re.compile(r"\b(their|the|recipient's?)\s*(title|designation|role|position)\b", re.IGNORECASE), "{{designation}}"),
    (re.compile(r"\b(my|your|sender's?)\s*(name|first\s*name)\b", re.IGNORECASE), "{{myName}}"),
    (re.compile(r"\b(my|your|sender's?)\s*(company|organization|firm)\b", re.IGNORECASE), "{{myCompany}}"),
]


def convert_to_placeholders(text: str) -> str:
    """
    Replace plain-language references with placeholders.

    "Hi their name, greetings from my company" ->
    "Hi {{name}}, greetings from {{myCompany}}"
    """
    result = text
    for pattern, placeholder in _PLACEHOLDER_PATTERNS:
        result = pattern.sub(placeholder, result)
    return result


def card_link(profile: Optional[Dict[str, Any]], public_site_url: str) -> str:
    slug = (profile or {}).get("public_slug") or (profile or {}).get("slug")
    return f"{public_site_url}/u/{slug}" if slug else ""


def apply_template(
    template: Dict[str, Any],
    contact: Dict[str, Any],
    profile: Optional[Dict[str, Any]] = None,
    public_site_url: str = "https://synka.in",
) -> Dict[str, str]:
    """
    Fill a template for one contact.

    Returns:
        {"subject": ..., "body": ...}; subject falls back to "Hello {name}"
    """
    profile = profile or {}
    values = {
        "{{name}}": contact.get("name") or "",
        "{{company}}": contact.get("company") or "",
        "{{designation}}": contact.get("designation") or "",
        "{{myName}}": profile.get("name") or profile.get("full_name") or "",
        "{{myCompany}}": profile.get("company") or "",
        "{{myCardLink}}": card_link(profile, public_site_url),
    }

    def fill(text: str) -> str:
        for placeholder, value in values.items():
            text = text.replace(placeholder, value)
        # Collapse runs of blank lines left by empty placeholders
        return re.sub(r"\n{3,}", "\n\n", text)

    subject = template.get("subject")
    return {
        "subject": fill(subject) if subject else f"Hello {contact.get('name') or ''}",
        "body": fill(template.get("body") or ""),
    }


# =============================================================================
# HOOK
# =============================================================================

class TemplatesSync(DomainSyncHook):
    """Templates of the signed-in user, oldest first."""

    domain = "templates"
    table = "contact_templates"
    has_defaults = True

    async def fetch_remote(self) -> List[Dict[str, Any]]:
        return await self.remote.list(
            self.table,
            {"user_id": self.user_id},
            order_by="created_at",
            ascending=True,
        )

    def default_records(self, user_id: str) -> List[Dict[str, Any]]:
        return with_owner(DEFAULT_TEMPLATES, user_id)

    async def add_template(self, template: Dict[str, Any]) -> ServiceResult:
        """Insert a template after converting plain-language references."""
        row = {
            **template,
            "body": convert_to_placeholders(template.get("body") or ""),
            "subject": convert_to_placeholders(template["subject"]) if template.get("subject") else None,
            "user_id": self.user_id,
        }

        def apply(inserted: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            created = inserted[0] if inserted else None
            if created is not None:
                self._commit_local(list(self.items or []) + [created])
            return created

        return await self._authoritative(
            "add_template",
            lambda: self.remote.insert(self.table, row),
            apply,
            "Failed to add template",
        )

    async def update_template(self, template_id: str, updates: Dict[str, Any]) -> ServiceResult:
        return await self._optimistic(
            "update_template",
            [template_id],
            lambda template: {**template, **updates},
            lambda: self.remote.update(self.table, {"id": template_id}, updates),
            "Failed to update template",
        )

    async def delete_template(self, template_id: str) -> ServiceResult:
        def apply(_result: Any) -> str:
            self._commit_local([t for t in self.items or [] if t.get("id") != template_id])
            return template_id

        return await self._authoritative(
            "delete_template",
            lambda: self.remote.delete(self.table, {"id": template_id}),
            apply,
            "Failed to delete template",
            item_id=template_id,
        )

    # --- getters ---

    def email_templates(self) -> List[Dict[str, Any]]:
        return [t for t in self.items or [] if t.get("channel") in ("email", "both")]

    def whatsapp_templates(self) -> List[Dict[str, Any]]:
        return [t for t in self.items or [] if t.get("channel") in ("whatsapp", "both")]

    def selected_email_template(self) -> Optional[Dict[str, Any]]:
        return next((t for t in self.items or [] if t.get("is_selected_for_email")), None)

    def selected_whatsapp_template(self) -> Optional[Dict[str, Any]]:
        return next((t for t in self.items or [] if t.get("is_selected_for_whatsapp")), None)
