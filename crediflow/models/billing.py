"""
Core Data Models for CrediFlow

These models define the schemas for everything the billing engine touches:
1. Cards and Payments (persisted collections)
2. BankSummary rows (derived, never persisted)
3. Drafts (partially filled forms waiting for the validation gate)
4. Extraction results coming back from the AI collaborator

DESIGN DECISION: Persisted records use camelCase aliases so the JSON
document stays compatible with data written by the browser version of CrediFlow
(`bankName`, `paymentSourceOwner`, `isPaid`...). Python code always uses
the snake_case attribute names.

DESIGN DECISION: Months are 0-based (January == 0) everywhere inside the
engine. Only the extraction collaborator speaks 1-based months, and the
conversion happens in exactly one place (target-month inference).
"""

from datetime import date, datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# Reserved day setting meaning "whatever the last day of the month is".
END_OF_MONTH = 99

MIN_YEAR = 1900
MAX_YEAR = 9999
NAME_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 500

CARD_COLORS = [
    "bg-blue-500",
    "bg-emerald-500",
    "bg-indigo-500",
    "bg-rose-500",
    "bg-amber-500",
    "bg-purple-500",
    "bg-cyan-500",
    "bg-slate-600",
]


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_day_setting(value: int) -> int:
    """Accept 1-31 or the END_OF_MONTH sentinel. Month length is not checked."""
    if value == END_OF_MONTH or 1 <= value <= 31:
        return value
    raise ValueError(
        f"Day setting must be between 1 and 31 or {END_OF_MONTH} (end of month), got {value}"
    )


def format_day_setting(value: int) -> str:
    """Human-readable label for a day setting."""
    return "end of month" if value == END_OF_MONTH else f"day {value}"


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class Card(BaseModel):
    """
    A billing instrument.

    `bank_name` is the grouping key for funding summaries. It is free text
    and is NOT normalized, not even stripped: "Sumitomo", "Sumitomo " and
    "SMBC" are three different accounts. Only CardDraft trims new input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    bank_name: str = Field(
        ...,
        min_length=1,
        max_length=NAME_MAX_LENGTH,
        description="Bank whose account is debited"
    )
    closing_day: int = Field(
        default=1,
        description="Billing cycle closing day (1-31 or END_OF_MONTH)"
    )
    payment_day: int = Field(
        default=27,
        description="Debit day (1-31 or END_OF_MONTH)"
    )
    color: str = Field(default=CARD_COLORS[0])
    owner: str = Field(
        ...,
        min_length=1,
        description="Who uses the card"
    )
    payment_source_owner: Optional[str] = Field(
        default=None,
        description="Legal holder of the debited account; defaults to owner"
    )

    @field_validator("closing_day", "payment_day")
    @classmethod
    def validate_day_setting(cls, v: int) -> int:
        return _check_day_setting(v)

    @property
    def account_holder(self) -> str:
        """Holder of the account actually debited."""
        return self.payment_source_owner or self.owner

    @property
    def bank_group_id(self) -> str:
        """Grouping identifier shared by every card debiting the same account."""
        return f"{self.bank_name}-{self.account_holder}"


class Payment(BaseModel):
    """
    One billing obligation for one card in one calendar month.

    (card_id, month, year) is intentionally NOT unique: partial re-entries
    are separate payments and are aggregated independently.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=_new_id)
    card_id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, description="Amount in whole currency units")
    month: int = Field(..., ge=0, le=11, description="0-based month index")
    year: int = Field(..., ge=MIN_YEAR, le=MAX_YEAR)
    is_confirmed: bool = Field(
        default=False,
        description="User verified the amount (informational only)"
    )
    is_paid: bool = Field(
        default=False,
        description="Money has left the account (display state only)"
    )
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @property
    def billing_month(self) -> "BillingMonth":
        return BillingMonth(year=self.year, month=self.month)


# =============================================================================
# VALUE TYPES
# =============================================================================

class BillingMonth(BaseModel):
    """A (year, 0-based month) pair."""
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=MIN_YEAR, le=MAX_YEAR)
    month: int = Field(..., ge=0, le=11)

    @classmethod
    def from_date(cls, d: date) -> "BillingMonth":
        return cls(year=d.year, month=d.month - 1)

    @property
    def key(self) -> str:
        """'YYYY-MM' (1-based month), the readiness month key."""
        return f"{self.year:04d}-{self.month + 1:02d}"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month + 1, 1)

    def can_shift(self, months: int) -> bool:
        """False when the shifted month falls outside MIN_YEAR..MAX_YEAR."""
        index = self.year * 12 + self.month + months
        return MIN_YEAR * 12 <= index <= MAX_YEAR * 12 + 11

    def shift(self, months: int) -> "BillingMonth":
        """
        Move forward (or backward) by whole calendar months.

        Raises ValueError past the supported year range; check can_shift()
        first where that boundary is reachable.
        """
        if not self.can_shift(months):
            raise ValueError(f"{self.key} shifted by {months} months is outside {MIN_YEAR}-{MAX_YEAR}")
        index = self.year * 12 + self.month + months
        return BillingMonth(year=index // 12, month=index % 12)

    def contains(self, payment: Payment) -> bool:
        return payment.year == self.year and payment.month == self.month


# =============================================================================
# DERIVED ROWS
# =============================================================================

class BankSummary(BaseModel):
    """
    Funding requirement for one (bank, account holder) pair.

    Derived on every request. NEVER persisted and NEVER patched in place.
    """

    id: str = Field(..., description="bank_name + '-' + account_holder")
    bank_name: str
    account_holder: str
    total_amount: int = Field(default=0, ge=0)
    payments: list[Payment] = Field(default_factory=list)
    earliest_payment_date: date

    @property
    def label(self) -> str:
        """Holder-qualified label, e.g. 'Sumitomo (self)'."""
        return f"{self.bank_name} ({self.account_holder})"

    @property
    def unpaid_amount(self) -> int:
        return sum(p.amount for p in self.payments if not p.is_paid)


# =============================================================================
# DRAFTS (form state before the validation gate)
# =============================================================================

class CardDraft(BaseModel):
    """
    A card being composed by the user.

    Every field is optional. A draft only becomes a Card after
    BillingValidator.validate_card_draft() reports can_commit=True.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    bank_name: Optional[str] = None
    closing_day: Optional[int] = 1
    payment_day: Optional[int] = 27
    color: Optional[str] = None
    owner: Optional[str] = None
    payment_source_owner: Optional[str] = None

    def to_card(self, default_owner: str) -> Card:
        owner = self.owner or default_owner
        return Card(
            name=self.name,
            bank_name=self.bank_name,
            closing_day=self.closing_day,
            payment_day=self.payment_day,
            color=self.color or CARD_COLORS[0],
            owner=owner,
            payment_source_owner=self.payment_source_owner or owner,
        )


class PaymentDraft(BaseModel):
    """A payment being entered manually or prefilled from an extraction."""

    card_id: Optional[str] = None
    amount: Optional[int] = None
    month: Optional[int] = None
    year: Optional[int] = None
    notes: Optional[str] = None

    def to_payment(self) -> Payment:
        return Payment(
            card_id=self.card_id,
            amount=self.amount,
            month=self.month,
            year=self.year,
            is_confirmed=True,
            is_paid=False,
            notes=self.notes,
        )


# =============================================================================
# EXTRACTION (AI collaborator output)
# =============================================================================

class ExtractedPaymentData(BaseModel):
    """
    Best-effort guess from the extraction collaborator.

    CRITICAL: This is PROPOSED data. It only prefills a PaymentDraft; the
    user confirms (or overrides) before anything is committed.

    `payment_month` is 1-based here, as returned by the model.
    """

    amount: float = Field(..., ge=0, allow_inf_nan=False)
    card_id: Optional[str] = None
    payment_day: Optional[int] = Field(default=None, ge=1, le=31)
    payment_month: Optional[int] = Field(default=None, ge=1, le=12)
    payment_year: Optional[int] = Field(default=None, ge=MIN_YEAR, le=MAX_YEAR)
    extracted_at: datetime = Field(default_factory=_utcnow)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found on a draft."""

    field: str
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_card')"
    )
    message: str
    severity: str = Field(..., pattern="^(error|warning|info)$")
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage draft validation.

    Stage 1: Schema validation (required fields, ranges)
    Stage 2: Semantic validation (references, suspicious values)
    """

    draft_kind: str = Field(..., pattern="^(card|payment)$")
    validated_at: datetime = Field(default_factory=_utcnow)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    can_commit: bool = Field(
        ...,
        description="Whether the commit action should be enabled"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")
