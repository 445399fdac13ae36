"""Billing-cycle resolution and cross-account aggregation engine."""

from crediflow.engine.aggregation import (
    aggregate_bank_summaries,
    aggregation_window,
    grand_total,
    owner_totals,
    payments_due_on,
    payments_in_month,
)
from crediflow.engine.dates import last_day_of_month, resolve_date, resolve_day
from crediflow.engine.inference import find_card, infer_target_month
from crediflow.engine.payments import remove_card_payments, remove_payment, toggle_paid
from crediflow.engine.readiness import ReadinessTracker, readiness_key

__all__ = [
    "ReadinessTracker",
    "aggregate_bank_summaries",
    "aggregation_window",
    "find_card",
    "grand_total",
    "infer_target_month",
    "last_day_of_month",
    "owner_totals",
    "payments_due_on",
    "payments_in_month",
    "readiness_key",
    "remove_card_payments",
    "remove_payment",
    "resolve_date",
    "resolve_day",
    "toggle_paid",
]
