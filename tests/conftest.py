"""Shared fixtures: cards, payments and isolated in-memory stores."""

from datetime import date
from typing import Generator

import pytest

from crediflow.audit import AuditLogger
from crediflow.config import AppSettings
from crediflow.models.billing import END_OF_MONTH, Card, Payment
from crediflow.services.storage import InMemoryAuditStorage, InMemoryBillingStorage
from crediflow.store import BillingStore


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(aggregation_window_months=2, default_owner="self")


@pytest.fixture
def sumitomo_card() -> Card:
    """Debits the 27th from 'self''s Sumitomo account."""
    return Card(
        id="sumitomo",
        name="Main Card",
        bank_name="Sumitomo",
        closing_day=15,
        payment_day=27,
        owner="self",
        payment_source_owner="self",
    )


@pytest.fixture
def rakuten_card() -> Card:
    """Debits at month end; used by 'spouse' but paid from 'self''s account."""
    return Card(
        id="rakuten",
        name="Rakuten Card",
        bank_name="Rakuten Bank",
        closing_day=END_OF_MONTH,
        payment_day=END_OF_MONTH,
        owner="spouse",
        payment_source_owner="self",
    )


@pytest.fixture
def january_payment(sumitomo_card: Card) -> Payment:
    return Payment(
        id="jan-1",
        card_id=sumitomo_card.id,
        amount=50000,
        month=0,
        year=2024,
    )


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage: InMemoryAuditStorage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def billing_storage(sumitomo_card: Card, rakuten_card: Card) -> InMemoryBillingStorage:
    return InMemoryBillingStorage(cards=[sumitomo_card, rakuten_card])


@pytest.fixture
def store(
    billing_storage: InMemoryBillingStorage,
    audit_logger: AuditLogger,
    app_settings: AppSettings,
) -> Generator[BillingStore, None, None]:
    store = BillingStore(billing_storage, audit_logger=audit_logger, settings=app_settings)
    store.open()
    yield store
    store.close()


@pytest.fixture
def reference_date() -> date:
    return date(2024, 1, 15)
