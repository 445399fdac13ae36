"""
Funding Aggregation Engine

Turns the raw Card and Payment collections into per-account funding rows:
which bank account (bank name + account holder) needs how much money, and
the earliest date it will be debited.

DESIGN DECISION: Aggregation is a pure, total recomputation.
Nothing is cached between calls and no row is ever patched in place.
The working set (cards x months) is small enough that correctness
beats incremental cleverness.
"""

from collections.abc import Iterable
from datetime import date

import structlog

from crediflow.engine.dates import resolve_date, resolve_day
from crediflow.models.billing import BankSummary, BillingMonth, Card, Payment


logger = structlog.get_logger(__name__)

SUPPORTED_WINDOWS = (1, 2)

UNASSIGNED_OWNER = "unassigned"


def aggregation_window(reference: date, window_months: int = 2) -> list[BillingMonth]:
    """
    Consecutive months anchored at the reference date's month.

    window_months=2 is the production behaviour (reference month and the
    one after it); window_months=1 covers the reference month only.
    Months past December 9999 are dropped, so the window can come out shorter.
    """
    if window_months not in SUPPORTED_WINDOWS:
        raise ValueError(
            f"Aggregation window must be one of {SUPPORTED_WINDOWS} months, got {window_months}"
        )
    start = BillingMonth.from_date(reference)
    return [start.shift(offset) for offset in range(window_months) if start.can_shift(offset)]


def aggregate_bank_summaries(
    cards: Iterable[Card],
    payments: Iterable[Payment],
    reference: date,
    window_months: int = 2,
) -> list[BankSummary]:
    """
    Group the window's payments by the account that will be debited.

    - Payments whose card no longer exists are dropped silently.
    - Paid and unpaid payments both count towards total_amount.
    - The earliest debit date is only replaced by a strictly earlier date,
      so on ties the first payment seen keeps its place.
    - Rows come out in first-seen order; payments inside a row keep
      input order.
    """
    window = aggregation_window(reference, window_months)
    cards_by_id = {card.id: card for card in cards}
    summaries: dict[str, BankSummary] = {}

    for payment in payments:
        if not any(month.contains(payment) for month in window):
            continue

        card = cards_by_id.get(payment.card_id)
        if card is None:
            logger.debug(
                "payment_without_card_skipped",
                payment_id=payment.id,
                card_id=payment.card_id,
            )
            continue

        group_id = card.bank_group_id
        debit_date = resolve_date(payment.year, payment.month, card.payment_day)

        summary = summaries.get(group_id)
        if summary is None:
            summary = BankSummary(
                id=group_id,
                bank_name=card.bank_name,
                account_holder=card.account_holder,
                earliest_payment_date=debit_date,
            )
            summaries[group_id] = summary

        summary.total_amount += payment.amount
        summary.payments.append(payment)

        if debit_date < summary.earliest_payment_date:
            summary.earliest_payment_date = debit_date

    return list(summaries.values())


def grand_total(summaries: Iterable[BankSummary]) -> int:
    """Total outflow across every account in the window."""
    return sum(summary.total_amount for summary in summaries)


def owner_totals(
    summaries: Iterable[BankSummary],
    cards: Iterable[Card],
) -> dict[str, int]:
    """
    Break the window's outflow down by card user (not account holder).

    A payment whose card cannot be found is reported under "unassigned".
    """
    cards_by_id = {card.id: card for card in cards}
    totals: dict[str, int] = {}

    for summary in summaries:
        for payment in summary.payments:
            card = cards_by_id.get(payment.card_id)
            owner = card.owner if card else UNASSIGNED_OWNER
            totals[owner] = totals.get(owner, 0) + payment.amount

    return totals


def payments_in_month(
    payments: Iterable[Payment],
    month: BillingMonth,
) -> list[Payment]:
    return [payment for payment in payments if month.contains(payment)]


def payments_due_on(
    cards: Iterable[Card],
    payments: Iterable[Payment],
    day: date,
) -> list[Payment]:
    """
    Payments debited on a given calendar day.

    A payment is due on `day` when it belongs to that day's month and its
    card's payment day resolves to that day. Orphaned payments are skipped.
    """
    month = BillingMonth.from_date(day)
    cards_by_id = {card.id: card for card in cards}
    due = []

    for payment in payments_in_month(payments, month):
        card = cards_by_id.get(payment.card_id)
        if card is None:
            continue
        if resolve_day(month.year, month.month, card.payment_day) == day.day:
            due.append(payment)

    return due
