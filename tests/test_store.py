"""
Tests for BillingStore

Every command must be persisted before it returns, so most assertions
look at the backing storage rather than the store itself.
"""

import pytest
from datetime import date

from crediflow.models.audit import AuditEventType
from crediflow.models.billing import BillingMonth, Card, CardDraft, Payment, PaymentDraft
from crediflow.services.storage import InMemoryBillingStorage, NotFoundError, StorageError
from crediflow.store import BillingStore, StoreNotOpenError


class FailingPaymentStorage(InMemoryBillingStorage):
    """Accepts cards and readiness but refuses payment writes."""

    def save_payments(self, payments):
        raise StorageError("disk full")


class FailingCardStorage(InMemoryBillingStorage):
    """Accepts payments and readiness but refuses card writes."""

    def save_cards(self, cards):
        raise StorageError("disk full")


class FailingReadinessStorage(InMemoryBillingStorage):
    """Refuses readiness writes."""

    def save_readiness(self, entries):
        raise StorageError("disk full")


def _event_types(audit_storage):
    return [e.event_type for e in audit_storage.events]


class TestLifecycle:

    def test_open_loads_collections(self, store, billing_storage):
        assert store.is_open is True
        assert [c.id for c in store.cards] == ["sumitomo", "rakuten"]
        assert store.payments == ()

    def test_open_is_audited(self, store, audit_storage):
        assert _event_types(audit_storage)[0] == AuditEventType.STORE_LOADED

    def test_commands_require_open_store(self, billing_storage, app_settings, january_payment):
        store = BillingStore(billing_storage, settings=app_settings)
        with pytest.raises(StoreNotOpenError):
            store.add_payment(january_payment)

    def test_close_flushes(self, billing_storage, app_settings):
        store = BillingStore(billing_storage, settings=app_settings).open()
        saves_before = billing_storage.save_count
        store.close()

        assert store.is_open is False
        assert billing_storage.save_count == saves_before + 3

    def test_close_twice_is_harmless(self, billing_storage, app_settings):
        store = BillingStore(billing_storage, settings=app_settings).open()
        store.close()
        store.close()
        assert store.is_open is False

    def test_context_manager(self, billing_storage, app_settings, january_payment):
        with BillingStore(billing_storage, settings=app_settings) as store:
            store.add_payment(january_payment)
        assert store.is_open is False
        assert [p.id for p in billing_storage.load_payments()] == ["jan-1"]

    def test_reopen_sees_committed_state(self, billing_storage, app_settings, january_payment):
        with BillingStore(billing_storage, settings=app_settings) as store:
            store.add_payment(january_payment)
            store.toggle_readiness("Sumitomo-self", "2024-01")

        with BillingStore(billing_storage, settings=app_settings) as reopened:
            assert [p.amount for p in reopened.payments] == [50000]
            assert reopened.is_ready("Sumitomo-self", "2024-01") is True


class TestCardCommands:

    def test_add_card_persists_immediately(self, store, billing_storage):
        card = Card(name="New", bank_name="Mizuho", owner="self")
        store.add_card(card)
        assert card.id in [c.id for c in billing_storage.load_cards()]

    def test_commit_card_draft(self, store, audit_storage):
        card, result = store.commit_card_draft(CardDraft(name="Mizuho Card", bank_name="Mizuho"))

        assert result.can_commit is True
        assert card.owner == "self"
        assert card.payment_source_owner == "self"
        assert store.get_card(card.id) == card
        assert AuditEventType.CARD_CREATED in _event_types(audit_storage)

    def test_incomplete_card_draft_not_committed(self, store, billing_storage, audit_storage):
        card, result = store.commit_card_draft(CardDraft(name="No bank"))

        assert card is None
        assert result.can_commit is False
        assert len(billing_storage.load_cards()) == 2
        assert AuditEventType.DRAFT_REJECTED in _event_types(audit_storage)

    def test_update_card_changes_grouping(self, store, sumitomo_card, january_payment, reference_date):
        store.add_payment(january_payment)
        store.update_card(sumitomo_card.model_copy(update={"bank_name": "SMBC"}))

        assert [s.id for s in store.summaries(reference_date)] == ["SMBC-self"]

    def test_update_unknown_card(self, store):
        with pytest.raises(NotFoundError):
            store.update_card(Card(id="ghost", name="Ghost", bank_name="X", owner="self"))

    def test_remove_card_cascades_to_payments(self, store, billing_storage, reference_date):
        store.add_payment(Payment(card_id="sumitomo", amount=100, month=0, year=2024))
        store.add_payment(Payment(card_id="sumitomo", amount=200, month=1, year=2024))
        store.add_payment(Payment(card_id="rakuten", amount=300, month=0, year=2024))

        cascaded = store.remove_card("sumitomo")

        assert cascaded == 2
        assert [p.card_id for p in billing_storage.load_payments()] == ["rakuten"]
        assert [c.id for c in billing_storage.load_cards()] == ["rakuten"]
        assert [s.bank_name for s in store.summaries(reference_date)] == ["Rakuten Bank"]

    def test_overlong_card_draft_rejected_without_raising(self, store, billing_storage):
        card, result = store.commit_card_draft(CardDraft(name="x" * 101, bank_name="Mizuho"))

        assert card is None
        assert result.can_commit is False
        assert len(billing_storage.load_cards()) == 2

    def test_failed_payment_write_keeps_card_and_payments(
        self, sumitomo_card, app_settings, january_payment, audit_logger, audit_storage
    ):
        storage = FailingPaymentStorage(cards=[sumitomo_card], payments=[january_payment])
        store = BillingStore(storage, audit_logger=audit_logger, settings=app_settings).open()

        with pytest.raises(StorageError):
            store.remove_card("sumitomo")

        assert [c.id for c in store.cards] == ["sumitomo"]
        assert [p.id for p in store.payments] == ["jan-1"]
        assert [c.id for c in storage.load_cards()] == ["sumitomo"]
        assert AuditEventType.CARD_DELETED not in _event_types(audit_storage)

    def test_failed_card_write_leaves_no_orphans(
        self, sumitomo_card, app_settings, january_payment, audit_logger, audit_storage
    ):
        storage = FailingCardStorage(cards=[sumitomo_card], payments=[january_payment])
        store = BillingStore(storage, audit_logger=audit_logger, settings=app_settings).open()

        with pytest.raises(StorageError):
            store.remove_card("sumitomo")

        assert [c.id for c in store.cards] == ["sumitomo"]
        assert store.payments == ()
        assert storage.load_payments() == []
        assert AuditEventType.SYSTEM_ERROR in _event_types(audit_storage)

    def test_remove_unknown_card(self, store):
        with pytest.raises(NotFoundError):
            store.remove_card("ghost")


class TestPaymentCommands:

    def test_commit_payment_draft(self, store, billing_storage):
        draft = PaymentDraft(card_id="sumitomo", amount=50000, month=0, year=2024)
        payment, result = store.commit_payment_draft(draft)

        assert result.can_commit is True
        assert payment.is_confirmed is True
        assert payment.is_paid is False
        assert [p.id for p in billing_storage.load_payments()] == [payment.id]

    def test_incomplete_payment_draft_not_committed(self, store, billing_storage):
        payment, result = store.commit_payment_draft(PaymentDraft(card_id="sumitomo"))

        assert payment is None
        assert result.can_commit is False
        assert billing_storage.load_payments() == []

    def test_out_of_range_year_rejected_without_raising(self, store, billing_storage, audit_storage):
        draft = PaymentDraft(card_id="sumitomo", amount=1000, month=0, year=10000)
        payment, result = store.commit_payment_draft(draft)

        assert payment is None
        assert result.can_commit is False
        assert billing_storage.load_payments() == []
        assert AuditEventType.DRAFT_REJECTED in _event_types(audit_storage)

    def test_draft_for_missing_card_not_committed(self, store):
        draft = PaymentDraft(card_id="ghost", amount=10, month=0, year=2024)
        payment, _ = store.commit_payment_draft(draft)
        assert payment is None
        assert store.payments == ()

    def test_remove_payment(self, store, billing_storage, january_payment):
        store.add_payment(january_payment)
        store.remove_payment("jan-1")
        assert billing_storage.load_payments() == []

    def test_remove_unknown_payment(self, store):
        with pytest.raises(NotFoundError):
            store.remove_payment("ghost")

    def test_toggle_paid_persists_and_keeps_totals(self, store, billing_storage, january_payment, reference_date):
        store.add_payment(january_payment)

        updated = store.toggle_paid("jan-1")

        assert updated.is_paid is True
        assert billing_storage.load_payments()[0].is_paid is True
        assert store.summaries(reference_date)[0].total_amount == 50000

    def test_toggle_paid_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.toggle_paid("ghost")

    def test_failed_write_leaves_state_unchanged(
        self, sumitomo_card, app_settings, january_payment, audit_logger, audit_storage
    ):
        storage = FailingPaymentStorage(cards=[sumitomo_card])
        store = BillingStore(storage, audit_logger=audit_logger, settings=app_settings).open()

        with pytest.raises(StorageError):
            store.add_payment(january_payment)

        assert store.payments == ()
        assert AuditEventType.SYSTEM_ERROR in _event_types(audit_storage)
        assert AuditEventType.PAYMENT_CREATED not in _event_types(audit_storage)


class TestReadinessCommands:

    def test_toggle_readiness_persists(self, store, billing_storage):
        assert store.toggle_readiness("Sumitomo-self", "2024-01") is True
        assert billing_storage.load_readiness() == {"Sumitomo-self_2024-01": True}

        assert store.toggle_readiness("Sumitomo-self", "2024-01") is False
        assert billing_storage.load_readiness() == {"Sumitomo-self_2024-01": False}

    def test_failed_readiness_write_is_audited_and_state_kept(
        self, sumitomo_card, app_settings, audit_logger, audit_storage
    ):
        storage = FailingReadinessStorage(cards=[sumitomo_card])
        store = BillingStore(storage, audit_logger=audit_logger, settings=app_settings).open()

        with pytest.raises(StorageError):
            store.toggle_readiness("Sumitomo-self", "2024-01")

        assert store.is_ready("Sumitomo-self", "2024-01") is False
        assert store.readiness == {}
        assert AuditEventType.SYSTEM_ERROR in _event_types(audit_storage)
        assert AuditEventType.READINESS_TOGGLED not in _event_types(audit_storage)

    def test_readiness_survives_new_payments(self, store, january_payment):
        store.toggle_readiness("Sumitomo-self", "2024-01")
        store.add_payment(january_payment)
        assert store.is_ready("Sumitomo-self", "2024-01") is True

    def test_readiness_does_not_touch_paid_flags(self, store, january_payment):
        store.add_payment(january_payment)
        store.toggle_readiness("Sumitomo-self", "2024-01")
        assert store.get_payment("jan-1").is_paid is False


class TestDerivedViews:

    def test_end_to_end_funding_scenario(self, store, reference_date):
        """Sumitomo card (27th) + a second card on the same account."""
        store.add_payment(Payment(card_id="sumitomo", amount=50000, month=0, year=2024))

        summary = store.summaries(reference_date)[0]
        assert (summary.total_amount, summary.earliest_payment_date) == (50000, date(2024, 1, 27))

        store.add_card(Card(
            id="sumitomo-2", name="Sub", bank_name="Sumitomo",
            payment_day=27, owner="self", payment_source_owner="self",
        ))
        store.add_payment(Payment(card_id="sumitomo-2", amount=20000, month=0, year=2024))

        summaries = store.summaries(reference_date)
        assert len(summaries) == 1
        assert summaries[0].total_amount == 70000
        assert summaries[0].earliest_payment_date == date(2024, 1, 27)

    def test_window_defaults_to_settings(self, store, reference_date):
        store.add_payment(Payment(card_id="sumitomo", amount=1, month=1, year=2024))
        assert len(store.summaries(reference_date)) == 1
        assert store.summaries(reference_date, window_months=1) == []

    def test_owner_totals(self, store, reference_date):
        store.add_payment(Payment(card_id="sumitomo", amount=100, month=0, year=2024))
        store.add_payment(Payment(card_id="rakuten", amount=50, month=0, year=2024))
        assert store.owner_totals(reference_date) == {"self": 100, "spouse": 50}

    def test_calendar_views(self, store, january_payment):
        store.add_payment(january_payment)
        assert store.payments_in_month(BillingMonth(year=2024, month=0)) == [january_payment]
        assert store.payments_due_on(date(2024, 1, 27)) == [january_payment]
