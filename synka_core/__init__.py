# =============================================================================
# synka_core/__init__.py
# Synka client data-synchronization layer
# =============================================================================

from .config import SyncSettings, load_settings
from .context import SyncContext
from .state import DomainState, UserSession

__version__ = "1.0.0"

__all__ = [
    "SyncSettings",
    "load_settings",
    "SyncContext",
    "DomainState",
    "UserSession",
]
