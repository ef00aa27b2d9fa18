# =============================================================================
# synka_core/crm/launcher.py
# Handing an outbound action to the dialer / mail client / WhatsApp
# =============================================================================

from __future__ import annotations
import re
import webbrowser
from typing import Optional, Protocol
from urllib.parse import quote
import logging

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone
_URI_SAFE = "-_.!~*'()"

WHATSAPP_BASE_URL = "https://api.whatsapp.com/send"


class ExternalAppLauncher(Protocol):
    """Opens a tel:/mailto:/https: URL in whatever app handles it."""

    def open(self, url: str) -> None:
        ...


class WebBrowserLauncher:
    """Default launcher: the platform's URL handler via ``webbrowser``."""

    def open(self, url: str) -> None:
        logger.info(f"Opening external app: {url.split('?')[0]}")
        webbrowser.open(url)


def _encode(text: str) -> str:
    return quote(text, safe=_URI_SAFE)


def call_url(phone: str) -> str:
    return f"tel:{phone}"


def email_url(email: str, subject: str = "", body: str = "") -> str:
    return f"mailto:{email}?subject={_encode(subject)}&body={_encode(body)}"


def whatsapp_number(raw_number: str) -> str:
    """Digits only; a bare 10-digit number is taken as Indian (+91)."""
    digits = re.sub(r"\D", "", raw_number)
    return f"91{digits}" if len(digits) == 10 else digits


def whatsapp_url(raw_number: str, text: Optional[str] = None) -> str:
    url = f"{WHATSAPP_BASE_URL}?phone={whatsapp_number(raw_number)}"
    return f"{url}&text={_encode(text)}" if text else url
