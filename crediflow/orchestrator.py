"""
Main Orchestrator for CrediFlow

This module ties the components together and defines the end-to-end flows:
1. Payment entry (pasted text -> extraction -> target month -> draft -> commit)
2. Funding advice (summaries -> advice text)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the payment collection without passing the draft gate
- The AI never computes totals or dates; the engine does
- A collaborator failure leaves state untouched and points to manual entry

DESIGN DECISION: Collaborator calls carry a request token. When a newer
request of the same kind has been issued, the older request's result is
discarded on arrival instead of overwriting the newer one.
"""

from collections.abc import Callable
from datetime import date
from typing import NamedTuple, Optional
from uuid import UUID

import structlog

from crediflow.agents import (
    ADVICE_UNAVAILABLE_MESSAGE,
    AdviceItem,
    FundingAdviceAgent,
    PaymentExtractionAgent,
)
from crediflow.audit import AuditLogger, create_correlation_id
from crediflow.config import get_settings
from crediflow.engine import infer_target_month
from crediflow.models.billing import (
    BillingMonth,
    Payment,
    PaymentDraft,
    ValidationResult,
)
from crediflow.services.storage import (
    AuditStorageInterface,
    BillingStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillingStorage,
    GoogleSheetsClient,
    InMemoryBillingStorage,
    JsonFileBillingStorage,
)
from crediflow.store import BillingStore


logger = structlog.get_logger(__name__)

MANUAL_ENTRY_MESSAGE = "Could not read the text. Please enter the payment manually."
AI_UNAVAILABLE_MESSAGE = "Automatic reading is not configured. Please enter the payment manually."
STALE_RESULT_MESSAGE = "A newer request replaced this one."
EXTRACTION_OK_MESSAGE = "Please check the proposed payment before saving."


class RequestGate:
    """
    Tracks in-flight collaborator requests of one kind.

    Only the most recently issued token may apply its result. Older tokens
    still settle (so nothing leaks) but are reported as stale.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._latest: Optional[UUID] = None
        self._outstanding: set[UUID] = set()

    def issue(self) -> UUID:
        token = create_correlation_id()
        self._latest = token
        self._outstanding.add(token)
        return token

    def settle(self, token: UUID) -> bool:
        """Mark a request finished. True when its result may be applied."""
        self._outstanding.discard(token)
        return token == self._latest

    @property
    def pending(self) -> bool:
        """True while the latest request has not come back."""
        return self._latest is not None and self._latest in self._outstanding


class PaymentEntryFlow:
    """
    Orchestrates payment entry.

    Flow:
    1. Extract  -> Gemini proposes amount / card / month from pasted text
    2. Infer    -> target month from the TRUE current date (never a browsed month)
    3. Draft    -> PaymentDraft prefilled, user reviews and may override
    4. Commit   -> validation gate, then the store commits and persists

    The system NEVER auto-saves an extraction.
    """

    def __init__(
        self,
        store: BillingStore,
        extraction_agent: Optional[PaymentExtractionAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._store = store
        self._agent = extraction_agent
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock
        self._gate = RequestGate("extraction")
        self._draft: Optional[PaymentDraft] = None
        self._draft_correlation_id: Optional[UUID] = None

    @property
    def pending(self) -> bool:
        return self._gate.pending

    @property
    def current_draft(self) -> Optional[PaymentDraft]:
        """The last extraction applied, if any."""
        return self._draft

    def new_draft(self, card_id: Optional[str] = None) -> PaymentDraft:
        """Empty manual-entry draft targeting the current month."""
        month = BillingMonth.from_date(self._clock())
        return PaymentDraft(card_id=card_id, month=month.month, year=month.year)

    async def extract(self, text: str) -> tuple[Optional[PaymentDraft], str]:
        """
        Propose a payment draft from pasted text.

        Returns:
            (draft or None, user_message)

        None means: keep whatever the user had, and enter manually.
        """
        if self._agent is None:
            return None, AI_UNAVAILABLE_MESSAGE

        token = self._gate.issue()
        cards = list(self._store.cards)
        today = self._clock()

        try:
            extracted = await self._agent.parse_payment_text(text, cards, today)
        except Exception as e:
            self._audit_logger.log_external_service_error(
                service="gemini_extraction",
                error_message=str(e),
                correlation_id=token,
            )
            extracted = None

        if not self._gate.settle(token):
            self._audit_logger.log_stale_result_discarded("extraction", token)
            return None, STALE_RESULT_MESSAGE

        if extracted is None:
            self._audit_logger.log_extraction_failed(token)
            return None, MANUAL_ENTRY_MESSAGE

        target = infer_target_month(extracted, cards, today)
        default_card_id = cards[0].id if cards else None

        draft = PaymentDraft(
            card_id=extracted.card_id or default_card_id,
            amount=round(extracted.amount),
            month=target.month,
            year=target.year,
        )

        self._draft = draft
        self._draft_correlation_id = token

        self._audit_logger.log_extraction_completed(
            amount=extracted.amount,
            card_id=extracted.card_id,
            month_key=target.key,
            correlation_id=token,
        )
        return draft, EXTRACTION_OK_MESSAGE

    def commit(self, draft: PaymentDraft) -> tuple[Optional[Payment], ValidationResult]:
        """
        Commit a (possibly user-edited) draft.

        CRITICAL: Called ONLY after the user presses save.
        """
        correlation_id = self._draft_correlation_id if draft is self._draft else None
        payment, result = self._store.commit_payment_draft(draft, correlation_id=correlation_id)

        if payment is not None and draft is self._draft:
            self._draft = None
            self._draft_correlation_id = None

        return payment, result


class AdviceFlow:
    """
    Orchestrates the funding advice request.

    The engine computes the summaries; the agent only phrases them.
    """

    def __init__(
        self,
        store: BillingStore,
        advice_agent: Optional[FundingAdviceAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._agent = advice_agent
        self._audit_logger = audit_logger or AuditLogger()
        self._gate = RequestGate("advice")
        self._advice: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self._gate.pending

    @property
    def advice(self) -> Optional[str]:
        return self._advice

    async def request_advice(
        self,
        reference: date,
        window_months: Optional[int] = None,
    ) -> Optional[str]:
        """
        Ask for advice about the window anchored at `reference`.

        Returns the advice text, or None when a newer request superseded
        this one.
        """
        if self._agent is None:
            self._advice = ADVICE_UNAVAILABLE_MESSAGE
            return self._advice

        token = self._gate.issue()
        items = [
            AdviceItem.from_summary(summary)
            for summary in self._store.summaries(reference, window_months)
        ]

        try:
            text = await self._agent.generate_advice(items)
        except Exception as e:
            self._audit_logger.log_external_service_error(
                service="gemini_advice",
                error_message=str(e),
                correlation_id=token,
            )
            text = ADVICE_UNAVAILABLE_MESSAGE

        if not self._gate.settle(token):
            self._audit_logger.log_stale_result_discarded("advice", token)
            return None

        self._advice = text
        self._audit_logger.log_advice_generated(len(items), token)
        return text


class AppComponents(NamedTuple):
    store: BillingStore
    payment_entry: PaymentEntryFlow
    advice: AdviceFlow
    audit_logger: AuditLogger


def _create_storage(
    backend: str,
) -> tuple[BillingStorageInterface, Optional[AuditStorageInterface]]:
    settings = get_settings()

    if backend == "memory":
        return InMemoryBillingStorage(), None

    if backend == "google_sheets":
        try:
            client = GoogleSheetsClient()
            return GoogleSheetsBillingStorage(client), GoogleSheetsAuditStorage(client)
        except Exception as e:
            # Sheets not configured - continue with the local document
            logger.warning("google_sheets_unavailable", error=str(e))

    return JsonFileBillingStorage(settings.storage.json_path), None


def create_app_components(
    backend: Optional[str] = None,
    use_ai: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: Storage backend name; defaults to STORAGE_BACKEND.
        use_ai: Whether to build the Gemini agents. Without them both
                flows fall back to manual entry messages.

    The returned store is NOT opened yet; call store.open() (or use it as
    a context manager).
    """
    settings = get_settings()
    billing_storage, audit_storage = _create_storage(backend or settings.storage.backend)
    audit_logger = AuditLogger(audit_storage)

    extraction_agent = None
    advice_agent = None
    if use_ai:
        try:
            extraction_agent = PaymentExtractionAgent()
            advice_agent = FundingAdviceAgent()
        except Exception as e:
            logger.warning("gemini_unavailable", error=str(e))
            extraction_agent = None
            advice_agent = None

    store = BillingStore(billing_storage, audit_logger=audit_logger, settings=settings.app)

    return AppComponents(
        store=store,
        payment_entry=PaymentEntryFlow(store, extraction_agent, audit_logger),
        advice=AdviceFlow(store, advice_agent, audit_logger),
        audit_logger=audit_logger,
    )
