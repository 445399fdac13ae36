"""
Audit Logger

DESIGN DECISION: Every mutation of cards, payments and readiness is logged.
This provides:
1. Complete traceability
2. Debugging capability when a collaborator returns something odd
3. The household can see who marked what as paid or ready

The audit logger:
- Is synchronous, like the store commands it records
- Gracefully handles failures (never breaks a command if logging fails)
- Supports correlation IDs to trace one extraction/advice request
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from crediflow.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from crediflow.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("crediflow.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_store_loaded(self, card_count: int, payment_count: int, readiness_count: int) -> None:
        self.log(AuditEventBuilder.store_loaded(card_count, payment_count, readiness_count))

    def log_store_flushed(self, card_count: int, payment_count: int) -> None:
        self.log(AuditEventBuilder.store_flushed(card_count, payment_count))

    def log_card_created(self, card_id: str, name: str, bank_name: str) -> None:
        self.log(AuditEventBuilder.card_created(card_id, name, bank_name))

    def log_card_updated(self, card_id: str, name: str) -> None:
        self.log(AuditEventBuilder.card_updated(card_id, name))

    def log_card_deleted(self, card_id: str, cascaded_payments: int) -> None:
        self.log(AuditEventBuilder.card_deleted(card_id, cascaded_payments))

    def log_payment_created(
        self,
        payment_id: str,
        card_id: str,
        amount: int,
        month_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.payment_created(
            payment_id=payment_id,
            card_id=card_id,
            amount=amount,
            month_key=month_key,
            correlation_id=correlation_id,
        ))

    def log_payment_deleted(self, payment_id: str) -> None:
        self.log(AuditEventBuilder.payment_deleted(payment_id))

    def log_payment_paid_toggled(self, payment_id: str, is_paid: bool) -> None:
        self.log(AuditEventBuilder.payment_paid_toggled(payment_id, is_paid))

    def log_readiness_toggled(self, bank_group_id: str, month_key: str, is_ready: bool) -> None:
        self.log(AuditEventBuilder.readiness_toggled(bank_group_id, month_key, is_ready))

    def log_draft_rejected(self, draft_kind: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.draft_rejected(draft_kind, issues))

    def log_extraction_completed(
        self,
        amount: float,
        card_id: Optional[str],
        month_key: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.extraction_completed(
            amount=amount,
            card_id=card_id,
            month_key=month_key,
            correlation_id=correlation_id,
        ))

    def log_extraction_failed(self, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.extraction_failed(correlation_id))

    def log_advice_generated(self, summary_count: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.advice_generated(summary_count, correlation_id))

    def log_stale_result_discarded(self, kind: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.stale_result_discarded(kind, correlation_id))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a collaborator request and pass it through
    every event that request produces.
    """
    return uuid4()
