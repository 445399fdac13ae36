"""
In-Memory Storage

Used by tests and by sessions that should not touch disk. Stored records are
copied on the way in and out, so callers can never mutate what is "on disk".
"""

from collections.abc import Mapping, Sequence
from typing import Optional
from uuid import UUID

from crediflow.models.audit import AuditEvent
from crediflow.models.billing import Card, Payment
from crediflow.services.storage.interface import (
    AuditStorageInterface,
    BillingStorageInterface,
)


class InMemoryBillingStorage(BillingStorageInterface):

    def __init__(
        self,
        cards: Sequence[Card] = (),
        payments: Sequence[Payment] = (),
        readiness: Optional[Mapping[str, bool]] = None,
    ):
        self._cards = [card.model_copy() for card in cards]
        self._payments = [payment.model_copy() for payment in payments]
        self._readiness = dict(readiness or {})
        self.save_count = 0

    def load_cards(self) -> list[Card]:
        return [card.model_copy() for card in self._cards]

    def save_cards(self, cards: Sequence[Card]) -> None:
        self._cards = [card.model_copy() for card in cards]
        self.save_count += 1

    def load_payments(self) -> list[Payment]:
        return [payment.model_copy() for payment in self._payments]

    def save_payments(self, payments: Sequence[Payment]) -> None:
        self._payments = [payment.model_copy() for payment in payments]
        self.save_count += 1

    def load_readiness(self) -> dict[str, bool]:
        return dict(self._readiness)

    def save_readiness(self, readiness: Mapping[str, bool]) -> None:
        self._readiness = dict(readiness)
        self.save_count += 1


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
