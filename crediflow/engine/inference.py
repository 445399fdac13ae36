"""
Target-Month Inference

Decides which billing month a freshly extracted payment belongs to when the
extraction collaborator did not say so explicitly.

CRITICAL: `today` is the true current date. It is NEVER the month the user
happens to be browsing in a calendar view; browsing must not move newly
parsed payments to another month.
"""

from collections.abc import Iterable
from datetime import date
from typing import Optional

from crediflow.models.billing import (
    END_OF_MONTH,
    BillingMonth,
    Card,
    ExtractedPaymentData,
)


def _comparable_payment_day(card: Card) -> int:
    # End of month compares as 31 here; the resolver is not involved.
    return 31 if card.payment_day == END_OF_MONTH else card.payment_day


def find_card(cards: Iterable[Card], card_id: Optional[str]) -> Optional[Card]:
    if not card_id:
        return None
    return next((card for card in cards if card.id == card_id), None)


def infer_target_month(
    extracted: ExtractedPaymentData,
    cards: Iterable[Card],
    today: date,
) -> BillingMonth:
    """
    Resolution order:
    1. Explicit month AND year from the extraction (1-based month converted).
    2. A known card: if today is past its payment day, the payment is for
       next month; otherwise for the current month.
    3. No card: the current month.

    December 9999 has no next month, so it stays in the current month.
    """
    if extracted.payment_month is not None and extracted.payment_year is not None:
        return BillingMonth(year=extracted.payment_year, month=extracted.payment_month - 1)

    current = BillingMonth.from_date(today)

    card = find_card(cards, extracted.card_id)
    if card is not None and today.day > _comparable_payment_day(card) and current.can_shift(1):
        return current.shift(1)

    return current
