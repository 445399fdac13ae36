"""
Audit Models for CrediFlow

Every mutation of the household's billing data is logged for audit purposes.
This provides:
1. Traceability of who changed which card, payment or readiness flag
2. Debugging information when a collaborator misbehaves
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Store lifecycle
    STORE_LOADED = "store_loaded"
    STORE_FLUSHED = "store_flushed"

    # Cards
    CARD_CREATED = "card_created"
    CARD_UPDATED = "card_updated"
    CARD_DELETED = "card_deleted"

    # Payments
    PAYMENT_CREATED = "payment_created"
    PAYMENT_DELETED = "payment_deleted"
    PAYMENT_PAID_TOGGLED = "payment_paid_toggled"

    # Readiness
    READINESS_TOGGLED = "readiness_toggled"

    # Drafts
    DRAFT_REJECTED = "draft_rejected"

    # Collaborators
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    ADVICE_GENERATED = "advice_generated"
    STALE_RESULT_DISCARDED = "stale_result_discarded"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Entity ids are strings because cards and payments carry string ids.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'card', 'payment', 'readiness')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one extraction request)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.card_created(card_id, "Rakuten", "Rakuten Bank")
        event = AuditEventBuilder.payment_paid_toggled(payment_id, is_paid=True)
    """

    @staticmethod
    def store_loaded(card_count: int, payment_count: int, readiness_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_LOADED,
            description=f"Store loaded: {card_count} cards, {payment_count} payments",
            details={
                "card_count": card_count,
                "payment_count": payment_count,
                "readiness_count": readiness_count,
            },
        )

    @staticmethod
    def store_flushed(card_count: int, payment_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_FLUSHED,
            description="Store flushed to storage",
            details={
                "card_count": card_count,
                "payment_count": payment_count,
            },
        )

    @staticmethod
    def card_created(card_id: str, name: str, bank_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_CREATED,
            entity_type="card",
            entity_id=card_id,
            description=f"Card created: {name} ({bank_name})",
            details={"name": name, "bank_name": bank_name},
            is_user_action=True,
        )

    @staticmethod
    def card_updated(card_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_UPDATED,
            entity_type="card",
            entity_id=card_id,
            description=f"Card updated: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def card_deleted(card_id: str, cascaded_payments: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_DELETED,
            entity_type="card",
            entity_id=card_id,
            description=f"Card deleted with {cascaded_payments} payments",
            details={"cascaded_payments": cascaded_payments},
            is_user_action=True,
        )

    @staticmethod
    def payment_created(
        payment_id: str,
        card_id: str,
        amount: int,
        month_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_CREATED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Payment created: {amount:,} for {month_key}",
            details={"card_id": card_id, "amount": amount, "month": month_key},
            is_user_action=True,
        )

    @staticmethod
    def payment_deleted(payment_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_DELETED,
            entity_type="payment",
            entity_id=payment_id,
            description="Payment deleted",
            is_user_action=True,
        )

    @staticmethod
    def payment_paid_toggled(payment_id: str, is_paid: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_PAID_TOGGLED,
            entity_type="payment",
            entity_id=payment_id,
            description=f"Payment marked {'paid' if is_paid else 'unpaid'}",
            details={"is_paid": is_paid},
            is_user_action=True,
        )

    @staticmethod
    def readiness_toggled(bank_group_id: str, month_key: str, is_ready: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.READINESS_TOGGLED,
            entity_type="readiness",
            entity_id=f"{bank_group_id}_{month_key}",
            description=f"Funds for {bank_group_id} in {month_key} marked "
                        f"{'ready' if is_ready else 'not ready'}",
            details={
                "bank_group_id": bank_group_id,
                "month": month_key,
                "is_ready": is_ready,
            },
            is_user_action=True,
        )

    @staticmethod
    def draft_rejected(draft_kind: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DRAFT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=draft_kind,
            description=f"{draft_kind.capitalize()} draft rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def extraction_completed(
        amount: float,
        card_id: Optional[str],
        month_key: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Extraction proposed {amount:,.0f} for {month_key}",
            details={"amount": amount, "card_id": card_id, "month": month_key},
        )

    @staticmethod
    def extraction_failed(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description="Extraction returned no usable data",
        )

    @staticmethod
    def advice_generated(summary_count: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_GENERATED,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"Advice generated for {summary_count} accounts",
            details={"summary_count": summary_count},
        )

    @staticmethod
    def stale_result_discarded(kind: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESULT_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            correlation_id=correlation_id,
            description=f"Discarded stale {kind} result",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
