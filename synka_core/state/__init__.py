from .domain_state import DomainState, UserSession

__all__ = ["DomainState", "UserSession"]
