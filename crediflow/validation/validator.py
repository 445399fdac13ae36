"""
Two-Stage Draft Validation

Drafts (a card or payment being composed) are loosely typed: any field may
be missing. This module is the SINGLE gate a draft must pass before it can
become a real Card or Payment.

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Range checks (day settings, month index, year, amount)
- Length limits on names and notes, matching the Card / Payment models

STAGE 2 - SEMANTIC VALIDATION:
- Referenced card exists
- Suspiciously large amounts
- Same card/month already has a payment (allowed, but worth a note)
- Day settings that will clamp in shorter months

IMPORTANT: Validation NEVER raises and NEVER silently fixes a draft.
Incomplete input simply yields can_commit=False, which is what disables the
commit action.
"""

from collections.abc import Iterable
from typing import Optional

from crediflow.config import AppSettings, get_settings
from crediflow.models.billing import (
    END_OF_MONTH,
    MAX_YEAR,
    MIN_YEAR,
    NAME_MAX_LENGTH,
    NOTES_MAX_LENGTH,
    Card,
    CardDraft,
    Payment,
    PaymentDraft,
    ValidationIssue,
    ValidationResult,
)


def _day_setting_in_range(value: int) -> bool:
    return value == END_OF_MONTH or 1 <= value <= 31


class BillingValidator:
    """
    Validates card and payment drafts through a two-stage pipeline.

    Stage 2 is skipped when stage 1 already found errors.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # -------------------------------------------------------------------------
    # Cards
    # -------------------------------------------------------------------------

    def _validate_card_schema(self, draft: CardDraft) -> list[ValidationIssue]:
        issues = []

        if not draft.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Card name is required",
                severity="error",
            ))

        if not draft.bank_name:
            issues.append(ValidationIssue(
                field="bank_name",
                issue_type="missing",
                message="Bank name is required",
                severity="error",
                suggested_fix="Enter the bank whose account this card debits",
            ))

        for field in ("name", "bank_name", "owner", "payment_source_owner"):
            value = getattr(draft, field)
            if value and len(value) > NAME_MAX_LENGTH:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_value",
                    message=(
                        f"{field.replace('_', ' ').capitalize()} must be at most "
                        f"{NAME_MAX_LENGTH} characters"
                    ),
                    severity="error",
                ))

        for field in ("closing_day", "payment_day"):
            value = getattr(draft, field)
            if value is None:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{field.replace('_', ' ').capitalize()} is required",
                    severity="error",
                ))
            elif not _day_setting_in_range(value):
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_value",
                    message=f"{field.replace('_', ' ').capitalize()} must be 1-31 or end of month",
                    severity="error",
                ))

        return issues

    def _validate_card_semantics(
        self,
        draft: CardDraft,
        existing_cards: Iterable[Card],
    ) -> list[ValidationIssue]:
        issues = []

        if draft.payment_day is not None and 29 <= draft.payment_day <= 31:
            issues.append(ValidationIssue(
                field="payment_day",
                issue_type="clamped_in_short_months",
                message=(
                    f"Day {draft.payment_day} does not exist in every month; "
                    "shorter months use their last day"
                ),
                severity="info",
                suggested_fix="Use 'end of month' if the bank debits on the last day",
            ))

        if any(card.name == draft.name for card in existing_cards):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate_name",
                message=f"A card named '{draft.name}' already exists",
                severity="warning",
            ))

        return issues

    def validate_card_draft(
        self,
        draft: CardDraft,
        existing_cards: Iterable[Card] = (),
    ) -> ValidationResult:
        return self._build_result(
            "card",
            self._validate_card_schema(draft),
            lambda: self._validate_card_semantics(draft, existing_cards),
        )

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def _validate_payment_schema(self, draft: PaymentDraft) -> list[ValidationIssue]:
        issues = []

        if not draft.card_id:
            issues.append(ValidationIssue(
                field="card_id",
                issue_type="missing",
                message="Select the card this payment belongs to",
                severity="error",
            ))

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        if draft.month is None or draft.year is None:
            issues.append(ValidationIssue(
                field="month",
                issue_type="missing",
                message="Target month and year are required",
                severity="error",
            ))
        else:
            if not 0 <= draft.month <= 11:
                issues.append(ValidationIssue(
                    field="month",
                    issue_type="invalid_value",
                    message=f"Month index must be 0-11, got {draft.month}",
                    severity="error",
                ))
            if not MIN_YEAR <= draft.year <= MAX_YEAR:
                issues.append(ValidationIssue(
                    field="year",
                    issue_type="invalid_value",
                    message=f"Year must be {MIN_YEAR}-{MAX_YEAR}, got {draft.year}",
                    severity="error",
                ))

        if draft.notes and len(draft.notes) > NOTES_MAX_LENGTH:
            issues.append(ValidationIssue(
                field="notes",
                issue_type="invalid_value",
                message=f"Notes must be at most {NOTES_MAX_LENGTH} characters",
                severity="error",
            ))

        return issues

    def _validate_payment_semantics(
        self,
        draft: PaymentDraft,
        cards: Iterable[Card],
        payments: Iterable[Payment],
    ) -> list[ValidationIssue]:
        issues = []

        if not any(card.id == draft.card_id for card in cards):
            issues.append(ValidationIssue(
                field="card_id",
                issue_type="unknown_card",
                message="The selected card no longer exists",
                severity="error",
                suggested_fix="Pick another card",
            ))

        if draft.amount > self._settings.max_payment_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount {draft.amount:,} is unusually large",
                severity="warning",
                suggested_fix="Double-check the number of digits",
            ))

        duplicates = [
            p for p in payments
            if p.card_id == draft.card_id and p.month == draft.month and p.year == draft.year
        ]
        if duplicates:
            issues.append(ValidationIssue(
                field="card_id",
                issue_type="existing_payment",
                message=(
                    f"This card already has {len(duplicates)} payment(s) for that month; "
                    "the new one is added on top"
                ),
                severity="info",
            ))

        return issues

    def validate_payment_draft(
        self,
        draft: PaymentDraft,
        cards: Iterable[Card],
        payments: Iterable[Payment] = (),
    ) -> ValidationResult:
        return self._build_result(
            "payment",
            self._validate_payment_schema(draft),
            lambda: self._validate_payment_semantics(draft, cards, payments),
        )

    # -------------------------------------------------------------------------

    def _build_result(self, draft_kind, schema_issues, semantic_check) -> ValidationResult:
        schema_valid = not any(i.severity == "error" for i in schema_issues)

        semantic_issues = semantic_check() if schema_valid else []
        semantic_valid = schema_valid and not any(
            i.severity == "error" for i in semantic_issues
        )

        issues = schema_issues + semantic_issues
        is_valid = schema_valid and semantic_valid

        return ValidationResult(
            draft_kind=draft_kind,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=is_valid,
            can_commit=is_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """Short message explaining why the commit action is (not) available."""
        if result.can_commit and not result.warnings:
            return "Ready to save."

        lines = []
        if not result.can_commit:
            lines.append(f"Cannot save yet ({result.error_count} problem(s)):")
        for issue in result.issues:
            if issue.severity == "info":
                continue
            marker = "-" if issue.severity == "error" else "!"
            line = f"{marker} {issue.message}"
            if issue.suggested_fix:
                line += f" ({issue.suggested_fix})"
            lines.append(line)
        return "\n".join(lines)
