# =============================================================================
# synka_core/errors/exceptions.py
# Custom Exception Hierarchy for the Synka sync layer
# =============================================================================

from typing import Optional, Dict, Any


class SynkaError(Exception):
    """
    Base exception for all sync-layer errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "REMOTE_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "SYNKA_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# REMOTE SERVICE EXCEPTIONS
# =============================================================================

class RemoteServiceError(SynkaError):
    """Raised when a call to the remote data service fails"""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if table:
            details["table"] = table
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            code="REMOTE_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# SYNC EXCEPTIONS
# =============================================================================

class SeedingError(SynkaError):
    """Raised when default records for a new user cannot be inserted"""

    def __init__(
        self,
        message: str,
        domain: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if domain:
            details["domain"] = domain

        super().__init__(
            message=message,
            code="SEED_001",
            details=details,
            **kwargs,
        )


class MutationError(SynkaError):
    """Raised when a create/update/delete against a domain fails"""

    def __init__(
        self,
        message: str,
        domain: Optional[str] = None,
        item_id: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if domain:
            details["domain"] = domain
        if item_id:
            details["item_id"] = item_id
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            code="SYNC_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# CRM INTERACTION EXCEPTIONS
# =============================================================================

class InteractionError(SynkaError):
    """Raised when an outbound call/email/chat cannot be started"""

    def __init__(
        self,
        message: str,
        contact_id: Optional[str] = None,
        interaction_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if contact_id:
            details["contact_id"] = contact_id
        if interaction_type:
            details["interaction_type"] = interaction_type

        super().__init__(
            message=message,
            code="INTERACT_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(SynkaError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
