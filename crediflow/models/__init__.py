"""
Data Models Package

This package contains all Pydantic models used in CrediFlow.
All data flowing through the system must conform to these schemas.
"""

from crediflow.models.billing import (
    CARD_COLORS,
    END_OF_MONTH,
    BankSummary,
    BillingMonth,
    Card,
    CardDraft,
    ExtractedPaymentData,
    Payment,
    PaymentDraft,
    ValidationIssue,
    ValidationResult,
    format_day_setting,
)
from crediflow.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Billing models
    "CARD_COLORS",
    "END_OF_MONTH",
    "BankSummary",
    "BillingMonth",
    "Card",
    "CardDraft",
    "ExtractedPaymentData",
    "Payment",
    "PaymentDraft",
    "ValidationIssue",
    "ValidationResult",
    "format_day_setting",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
