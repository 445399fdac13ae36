"""
Billing Store

The session object that owns the household's cards, payments and readiness
flags for the lifetime of one application run.

LIFECYCLE:
1. open()  -> load all three collections from storage
2. commands (add/remove/update/toggle) -> each one commits synchronously
3. close() -> flush everything back

DESIGN DECISION: Every command builds the new collection first, writes it
to storage, and only then swaps it in. If the write fails the store keeps
its previous state, so memory and storage never disagree.

DESIGN DECISION: The store is passed explicitly to whoever needs it.
There is no module-level state; tests create as many isolated stores as
they like.
"""

from collections.abc import Sequence
from datetime import date
from typing import Optional
from uuid import UUID

from crediflow.audit import AuditLogger
from crediflow.config import AppSettings, get_settings
from crediflow.engine import (
    ReadinessTracker,
    aggregate_bank_summaries,
    owner_totals,
    payments_due_on,
    payments_in_month,
    remove_card_payments,
    remove_payment,
    toggle_paid,
)
from crediflow.models.billing import (
    BankSummary,
    BillingMonth,
    Card,
    CardDraft,
    Payment,
    PaymentDraft,
    ValidationResult,
)
from crediflow.services.storage import BillingStorageInterface, NotFoundError, StorageError
from crediflow.validation import BillingValidator


class StoreNotOpenError(RuntimeError):
    """A command was issued before open() or after close()."""
    pass


class BillingStore:
    """
    Cards, payments and readiness for one household.

    Usage:
        with BillingStore(JsonFileBillingStorage("data.json")) as store:
            store.add_card(card)
            summaries = store.summaries(date.today())
    """

    def __init__(
        self,
        storage: BillingStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[BillingValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app
        self._validator = validator or BillingValidator(self._settings)

        self._cards: list[Card] = []
        self._payments: list[Payment] = []
        self._readiness = ReadinessTracker()
        self._is_open = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> "BillingStore":
        """Load every collection from storage."""
        self._cards = self._storage.load_cards()
        self._payments = self._storage.load_payments()
        self._readiness = ReadinessTracker(self._storage.load_readiness())
        self._is_open = True

        self._audit_logger.log_store_loaded(
            card_count=len(self._cards),
            payment_count=len(self._payments),
            readiness_count=len(self._readiness.entries),
        )
        return self

    def close(self) -> None:
        """Flush every collection and end the session."""
        if not self._is_open:
            return
        self.flush()
        self._is_open = False

    def flush(self) -> None:
        self._require_open()
        self._storage.save_cards(self._cards)
        self._storage.save_payments(self._payments)
        self._storage.save_readiness(self._readiness.entries)
        self._audit_logger.log_store_flushed(
            card_count=len(self._cards),
            payment_count=len(self._payments),
        )

    def __enter__(self) -> "BillingStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._is_open

    def _require_open(self) -> None:
        if not self._is_open:
            raise StoreNotOpenError("Billing store is not open")

    # -------------------------------------------------------------------------
    # Commit helpers (write first, then swap)
    # -------------------------------------------------------------------------

    def _commit_cards(self, cards: list[Card]) -> None:
        try:
            self._storage.save_cards(cards)
        except StorageError as e:
            self._audit_logger.log_error("card_write_failed", str(e), {"card_count": len(cards)})
            raise
        self._cards = cards

    def _commit_payments(self, payments: list[Payment]) -> None:
        try:
            self._storage.save_payments(payments)
        except StorageError as e:
            self._audit_logger.log_error(
                "payment_write_failed", str(e), {"payment_count": len(payments)}
            )
            raise
        self._payments = payments

    def _commit_readiness(self, tracker: ReadinessTracker) -> None:
        try:
            self._storage.save_readiness(tracker.entries)
        except StorageError as e:
            self._audit_logger.log_error(
                "readiness_write_failed", str(e), {"entry_count": len(tracker.entries)}
            )
            raise
        self._readiness = tracker

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def cards(self) -> Sequence[Card]:
        return tuple(self._cards)

    @property
    def payments(self) -> Sequence[Payment]:
        return tuple(self._payments)

    @property
    def readiness(self) -> dict[str, bool]:
        return self._readiness.entries

    def get_card(self, card_id: str) -> Optional[Card]:
        return next((c for c in self._cards if c.id == card_id), None)

    def get_payment(self, payment_id: str) -> Optional[Payment]:
        return next((p for p in self._payments if p.id == payment_id), None)

    # -------------------------------------------------------------------------
    # Cards
    # -------------------------------------------------------------------------

    def add_card(self, card: Card) -> Card:
        self._require_open()
        self._commit_cards(self._cards + [card])
        self._audit_logger.log_card_created(card.id, card.name, card.bank_name)
        return card

    def commit_card_draft(self, draft: CardDraft) -> tuple[Optional[Card], ValidationResult]:
        """
        Turn a draft into a Card if, and only if, it passes validation.

        Returns:
            (card or None, validation_result)
        """
        self._require_open()
        result = self._validator.validate_card_draft(draft, self._cards)
        if not result.can_commit:
            self._audit_logger.log_draft_rejected("card", _issue_dicts(result))
            return None, result

        card = self.add_card(draft.to_card(self._settings.default_owner))
        return card, result

    def update_card(self, card: Card) -> Card:
        """Replace the card with the same id. Payments are untouched."""
        self._require_open()
        if self.get_card(card.id) is None:
            raise NotFoundError(f"Card not found: {card.id}")

        self._commit_cards([card if c.id == card.id else c for c in self._cards])
        self._audit_logger.log_card_updated(card.id, card.name)
        return card

    def remove_card(self, card_id: str) -> int:
        """
        Delete a card and every payment referencing it.

        Returns the number of payments removed by the cascade.

        Payments are written first. If the card write then fails, the card
        survives with no payments, which never leaves orphans behind.
        """
        self._require_open()
        if self.get_card(card_id) is None:
            raise NotFoundError(f"Card not found: {card_id}")

        remaining = remove_card_payments(self._payments, card_id)
        cascaded = len(self._payments) - len(remaining)

        self._commit_payments(remaining)
        self._commit_cards([c for c in self._cards if c.id != card_id])

        self._audit_logger.log_card_deleted(card_id, cascaded)
        return cascaded

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def add_payment(
        self,
        payment: Payment,
        correlation_id: Optional[UUID] = None,
    ) -> Payment:
        self._require_open()
        self._commit_payments(self._payments + [payment])
        self._audit_logger.log_payment_created(
            payment_id=payment.id,
            card_id=payment.card_id,
            amount=payment.amount,
            month_key=payment.billing_month.key,
            correlation_id=correlation_id,
        )
        return payment

    def commit_payment_draft(
        self,
        draft: PaymentDraft,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Payment], ValidationResult]:
        """
        Turn a draft into a Payment if, and only if, it passes validation.

        Returns:
            (payment or None, validation_result)
        """
        self._require_open()
        result = self._validator.validate_payment_draft(draft, self._cards, self._payments)
        if not result.can_commit:
            self._audit_logger.log_draft_rejected("payment", _issue_dicts(result))
            return None, result

        payment = self.add_payment(draft.to_payment(), correlation_id=correlation_id)
        return payment, result

    def remove_payment(self, payment_id: str) -> None:
        self._require_open()
        if self.get_payment(payment_id) is None:
            raise NotFoundError(f"Payment not found: {payment_id}")

        self._commit_payments(remove_payment(self._payments, payment_id))
        self._audit_logger.log_payment_deleted(payment_id)

    def toggle_paid(self, payment_id: str) -> Payment:
        """Flip the paid flag of one payment and return the updated payment."""
        self._require_open()
        if self.get_payment(payment_id) is None:
            raise NotFoundError(f"Payment not found: {payment_id}")

        self._commit_payments(toggle_paid(self._payments, payment_id))

        payment = self.get_payment(payment_id)
        self._audit_logger.log_payment_paid_toggled(payment_id, payment.is_paid)
        return payment

    # -------------------------------------------------------------------------
    # Readiness
    # -------------------------------------------------------------------------

    def toggle_readiness(self, bank_group_id: str, month_key: str) -> bool:
        """Flip the readiness flag of one account/month and return the new value."""
        self._require_open()
        tracker = ReadinessTracker(self._readiness.entries)
        is_ready = tracker.toggle(bank_group_id, month_key)

        self._commit_readiness(tracker)

        self._audit_logger.log_readiness_toggled(bank_group_id, month_key, is_ready)
        return is_ready

    def is_ready(self, bank_group_id: str, month_key: str) -> bool:
        return self._readiness.is_ready(bank_group_id, month_key)

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def summaries(
        self,
        reference: date,
        window_months: Optional[int] = None,
    ) -> list[BankSummary]:
        """Funding rows for the window anchored at `reference`."""
        return aggregate_bank_summaries(
            self._cards,
            self._payments,
            reference,
            window_months or self._settings.aggregation_window_months,
        )

    def owner_totals(
        self,
        reference: date,
        window_months: Optional[int] = None,
    ) -> dict[str, int]:
        return owner_totals(self.summaries(reference, window_months), self._cards)

    def payments_in_month(self, month: BillingMonth) -> list[Payment]:
        return payments_in_month(self._payments, month)

    def payments_due_on(self, day: date) -> list[Payment]:
        return payments_due_on(self._cards, self._payments, day)


def _issue_dicts(result: ValidationResult) -> list[dict]:
    return [
        {"field": i.field, "type": i.issue_type, "message": i.message}
        for i in result.issues
        if i.severity == "error"
    ]
