"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the local JSON document for Google Sheets (or a real database)
2. Use in-memory storage for testing
3. Keep the billing engine decoupled from persistence

The interface is intentionally coarse: each collection is loaded and saved
as a whole. There is exactly one logical writer, so whole-collection
replacement is both sufficient and easy to reason about.

DESIGN DECISION: Unlike the collaborator agents, storage is synchronous.
Every mutating command commits before it returns, so persistence is a
deterministic consequence of the command.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from uuid import UUID

from crediflow.models.audit import AuditEvent
from crediflow.models.billing import Card, Payment


class BillingStorageInterface(ABC):
    """
    Abstract interface for the three persisted collections:
    cards, payments and the readiness map.
    """

    @abstractmethod
    def load_cards(self) -> list[Card]:
        """Return every card in stored order (empty list when none)."""
        pass

    @abstractmethod
    def save_cards(self, cards: Sequence[Card]) -> None:
        """
        Replace the stored card collection.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def load_payments(self) -> list[Payment]:
        """Return every payment in stored order (empty list when none)."""
        pass

    @abstractmethod
    def save_payments(self, payments: Sequence[Payment]) -> None:
        """
        Replace the stored payment collection.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def load_readiness(self) -> dict[str, bool]:
        """Return the readiness map keyed by '{bankGroupId}_{yyyy-MM}'."""
        pass

    @abstractmethod
    def save_readiness(self, readiness: Mapping[str, bool]) -> None:
        """
        Replace the stored readiness map.

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
