# =============================================================================
# synka_core/services/base_service.py
# Mutation results and the base class of hooks and trackers
# =============================================================================

from __future__ import annotations
from abc import ABC
from typing import Optional, Dict, Any
from dataclasses import dataclass

from synka_core.logging import get_logger, LogContext
from synka_core.errors import SynkaError


@dataclass
class ServiceResult:
    """
    Outcome of a sync mutation or tracker action.

    Mutators never raise for remote failures; they notify the user and hand
    back a failed result carrying the error code (SYNC_001, SYNC_404, ...).

        result = await tags.delete_tag("t1")
        if not result:
            logger.info(result.error_code)
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None) -> ServiceResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str = "UNKNOWN",
        details: Dict[str, Any] = None
    ) -> ServiceResult:
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            details=details,
        )

    @classmethod
    def not_found(cls, what: str) -> ServiceResult:
        """The item a mutation targets is not in local state (SYNC_404)."""
        return cls.fail(f"{what} not found", error_code="SYNC_404")

    @classmethod
    def unauthenticated(cls, operation: str) -> ServiceResult:
        """No signed-in user for a user-scoped mutation (AUTH_001)."""
        return cls.fail(f"{operation}: not authenticated", error_code="AUTH_001")

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        """Failed result keeping the code and details of a SynkaError"""
        if isinstance(e, SynkaError):
            return cls(
                success=False,
                error=e.message,
                error_code=e.code,
                details=e.details,
            )
        return cls(
            success=False,
            error=str(e),
            error_code="EXCEPTION",
        )


class BaseService(ABC):
    """
    Base of DomainSyncHook and PendingInteractionTracker.

    Each subclass logs under its own class name, so hook output reads as
    ``TagsSync | INFO | ...`` in the shared log format.
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        """
        Timed context for a remote write.

        Usage:
            async with self.log_operation("Seeding default tags"):
                await remote.insert(...)
        """
        return LogContext(self.logger, operation)
