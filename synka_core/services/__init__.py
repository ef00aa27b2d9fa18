# =============================================================================
# synka_core/services/__init__.py
# Service base classes
# =============================================================================

from .base_service import BaseService, ServiceResult

__all__ = ["BaseService", "ServiceResult"]
