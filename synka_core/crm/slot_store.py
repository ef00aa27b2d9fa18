# =============================================================================
# synka_core/crm/slot_store.py
# Persisted single-slot pending interaction and the returning flag
# =============================================================================
"""
Two well-known keys in the local database:

- ``pending_crm_interaction``        JSON {contactId, contactName, interactionType, timestamp}
- ``crm_returning_from_interaction`` "1" while one contacts refresh should be skipped

Both survive a full suspension of the application.
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging

from synka_core.crm.notes import InteractionType
from synka_core.offline.cache_store import STORAGE_ERRORS
from synka_core.offline.local_database import LocalDatabase
from synka_core.utils import parse_iso

logger = logging.getLogger(__name__)

PENDING_INTERACTION_KEY = "pending_crm_interaction"
RETURNING_FROM_INTERACTION_KEY = "crm_returning_from_interaction"


@dataclass(frozen=True)
class PendingInteraction:
    """An outbound action awaiting confirmation."""
    contact_id: str
    contact_name: str
    interaction_type: InteractionType
    timestamp: str  # ISO-8601

    @property
    def started_at(self) -> datetime:
        return parse_iso(self.timestamp)

    def is_valid(self, now: datetime, validity: timedelta) -> bool:
        return now - self.started_at < validity

    def to_json(self) -> str:
        return json.dumps({
            "contactId": self.contact_id,
            "contactName": self.contact_name,
            "interactionType": self.interaction_type.value,
            "timestamp": self.timestamp,
        })

    @classmethod
    def from_json(cls, raw: str) -> PendingInteraction:
        """Raises ValueError/KeyError/TypeError on malformed input."""
        parsed = json.loads(raw)
        pending = cls(
            contact_id=parsed["contactId"],
            contact_name=parsed["contactName"],
            interaction_type=InteractionType(parsed["interactionType"]),
            timestamp=parsed["timestamp"],
        )
        parse_iso(pending.timestamp)
        return pending


class PendingInteractionStore:
    """Single slot: saving overwrites whatever was there."""

    def __init__(self, database: LocalDatabase):
        self.database = database

    def save(self, pending: PendingInteraction) -> bool:
        try:
            self.database.set_item(PENDING_INTERACTION_KEY, pending.to_json())
            return True
        except STORAGE_ERRORS as e:
            logger.warning(f"Could not persist pending interaction: {e}")
            return False

    def load(self) -> Optional[PendingInteraction]:
        """
        The stored interaction, or None if the slot is empty.

        Raises:
            ValueError: the slot holds something unreadable
        """
        try:
            raw = self.database.get_item(PENDING_INTERACTION_KEY)
        except STORAGE_ERRORS as e:
            logger.debug(f"Could not read pending interaction: {e}")
            return None
        if raw is None:
            return None
        try:
            return PendingInteraction.from_json(raw)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Unreadable pending interaction: {e}") from e

    def clear(self) -> None:
        try:
            self.database.remove_item(PENDING_INTERACTION_KEY)
        except STORAGE_ERRORS as e:
            logger.debug(f"Could not clear pending interaction: {e}")


class RefreshSuppressor:
    """One-shot "skip the next contacts refresh" flag."""

    def __init__(self, database: LocalDatabase):
        self.database = database

    def arm(self) -> None:
        try:
            self.database.set_item(RETURNING_FROM_INTERACTION_KEY, "1")
        except STORAGE_ERRORS as e:
            logger.debug(f"Could not set returning flag: {e}")

    def is_armed(self) -> bool:
        try:
            return self.database.get_item(RETURNING_FROM_INTERACTION_KEY) is not None
        except STORAGE_ERRORS:
            return False

    def disarm(self) -> None:
        try:
            self.database.remove_item(RETURNING_FROM_INTERACTION_KEY)
        except STORAGE_ERRORS as e:
            logger.debug(f"Could not clear returning flag: {e}")

    def consume(self) -> bool:
        """True (and clears the flag) if it was set."""
        if not self.is_armed():
            return False
        self.disarm()
        return True
