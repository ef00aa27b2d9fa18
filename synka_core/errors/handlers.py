# =============================================================================
# synka_core/errors/handlers.py
# Error Handling Utilities for the Synka sync layer
# =============================================================================

from __future__ import annotations
import traceback
from typing import Optional, Protocol

import streamlit as st

from synka_core.logging import get_logger
from .exceptions import SynkaError

logger = get_logger(__name__)


# =============================================================================
# USER NOTIFICATIONS
# =============================================================================

class Notifier(Protocol):
    """Anything that can surface a short message to the user."""

    def notify(self, title: str, variant: str = "default") -> None:
        ...


class StreamlitNotifier:
    """Shows notifications as Streamlit toasts."""

    ICONS = {
        "default": "✅",
        "destructive": "⚠️",
    }

    def notify(self, title: str, variant: str = "default") -> None:
        st.toast(title, icon=self.ICONS.get(variant, self.ICONS["default"]))


class LoggingNotifier:
    """Headless notifier: writes notifications to the log only."""

    def notify(self, title: str, variant: str = "default") -> None:
        if variant == "destructive":
            logger.warning(f"[notify] {title}")
        else:
            logger.info(f"[notify] {title}")


# =============================================================================
# HANDLERS
# =============================================================================

def handle_error(
    error: Exception,
    notifier: Optional[Notifier] = None,
    show_user_message: bool = True,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Centralized error handling function.

    Args:
        error: The exception to handle
        notifier: Where to surface the user message (default: Streamlit toast)
        show_user_message: Whether to notify the user at all
        log_error: Whether to log the error
        user_message: Custom message to show user (uses error message if None)
    """
    if isinstance(error, SynkaError):
        message = user_message or error.message
        code = error.code
        details = error.details
        recoverable = error.recoverable
    else:
        message = user_message or str(error)
        code = "UNKNOWN"
        details = {"traceback": traceback.format_exc()}
        recoverable = True

    if log_error:
        logger.error(
            f"[{code}] {message}",
            extra={"details": details},
            exc_info=error,
        )

    if show_user_message:
        target = notifier or StreamlitNotifier()
        if recoverable:
            target.notify(message, variant="destructive")
        else:
            target.notify(f"{message}. Please contact support.", variant="destructive")

