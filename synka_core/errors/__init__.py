# =============================================================================
# synka_core/errors/__init__.py
# Centralized Error Handling for the Synka sync layer
# =============================================================================

from .exceptions import (
    SynkaError,
    RemoteServiceError,
    SeedingError,
    MutationError,
    InteractionError,
    ConfigurationError,
)

from .handlers import (
    Notifier,
    StreamlitNotifier,
    LoggingNotifier,
    handle_error,
)

__all__ = [
    # Exceptions
    "SynkaError",
    "RemoteServiceError",
    "SeedingError",
    "MutationError",
    "InteractionError",
    "ConfigurationError",
    # Handlers
    "Notifier",
    "StreamlitNotifier",
    "LoggingNotifier",
    "handle_error",
]
