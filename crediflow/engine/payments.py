"""
Payment collection operations.

Every function returns a NEW list; callers write the whole collection back.
Paid status is display state only and never changes aggregation totals.
"""

from collections.abc import Iterable

from crediflow.models.billing import Payment


def toggle_paid(payments: Iterable[Payment], payment_id: str) -> list[Payment]:
    """
    Flip is_paid on the payment with this id, and on nothing else.

    Toggling twice restores the original state. An unknown id yields an
    unchanged copy of the collection.
    """
    return [
        payment.model_copy(update={"is_paid": not payment.is_paid})
        if payment.id == payment_id
        else payment
        for payment in payments
    ]


def remove_payment(payments: Iterable[Payment], payment_id: str) -> list[Payment]:
    return [payment for payment in payments if payment.id != payment_id]


def remove_card_payments(payments: Iterable[Payment], card_id: str) -> list[Payment]:
    """Cascade for card deletion: drop every payment referencing the card."""
    return [payment for payment in payments if payment.card_id != card_id]
