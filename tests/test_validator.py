"""Tests for the two-stage draft validator."""

import pytest

from crediflow.config import AppSettings
from crediflow.models.billing import (
    END_OF_MONTH,
    MAX_YEAR,
    MIN_YEAR,
    NAME_MAX_LENGTH,
    NOTES_MAX_LENGTH,
    CardDraft,
    Payment,
    PaymentDraft,
)
from crediflow.validation import BillingValidator


@pytest.fixture
def validator(app_settings):
    return BillingValidator(app_settings)


def _issue_types(result):
    return {(i.field, i.issue_type) for i in result.issues}


class TestCardDraftValidation:
    """Tests for validate_card_draft()."""

    def test_complete_draft_can_commit(self, validator):
        draft = CardDraft(name="Main", bank_name="Sumitomo", closing_day=15, payment_day=10)
        result = validator.validate_card_draft(draft)

        assert result.can_commit is True
        assert result.issues == []
        assert BillingValidator.get_user_friendly_summary(result) == "Ready to save."

    def test_missing_name_and_bank_block_commit(self, validator):
        result = validator.validate_card_draft(CardDraft())

        assert result.can_commit is False
        assert result.schema_valid is False
        assert ("name", "missing") in _issue_types(result)
        assert ("bank_name", "missing") in _issue_types(result)

    def test_blank_bank_name_treated_as_missing(self, validator):
        result = validator.validate_card_draft(CardDraft(name="Main", bank_name="   "))
        assert ("bank_name", "missing") in _issue_types(result)

    def test_out_of_range_day_rejected(self, validator):
        draft = CardDraft(name="Main", bank_name="Sumitomo", payment_day=45)
        result = validator.validate_card_draft(draft)

        assert result.can_commit is False
        assert ("payment_day", "invalid_value") in _issue_types(result)

    @pytest.mark.parametrize("field", ["name", "bank_name", "owner", "payment_source_owner"])
    def test_overlong_names_blocked(self, validator, field):
        values = {"name": "Main", "bank_name": "Sumitomo", field: "x" * (NAME_MAX_LENGTH + 1)}
        result = validator.validate_card_draft(CardDraft(**values))

        assert result.can_commit is False
        assert (field, "invalid_value") in _issue_types(result)

    def test_name_at_length_limit_commits(self, validator):
        draft = CardDraft(name="x" * NAME_MAX_LENGTH, bank_name="y" * NAME_MAX_LENGTH)
        result = validator.validate_card_draft(draft)

        assert result.can_commit is True
        assert draft.to_card(default_owner="self").name == "x" * NAME_MAX_LENGTH

    def test_end_of_month_accepted(self, validator):
        draft = CardDraft(
            name="Main", bank_name="Sumitomo",
            closing_day=END_OF_MONTH, payment_day=END_OF_MONTH,
        )
        assert validator.validate_card_draft(draft).can_commit is True

    def test_day_31_gets_clamp_note(self, validator):
        draft = CardDraft(name="Main", bank_name="Sumitomo", payment_day=31)
        result = validator.validate_card_draft(draft)

        assert result.can_commit is True
        assert ("payment_day", "clamped_in_short_months") in _issue_types(result)

    def test_duplicate_name_is_only_a_warning(self, validator, sumitomo_card):
        draft = CardDraft(name=sumitomo_card.name, bank_name="Mizuho")
        result = validator.validate_card_draft(draft, [sumitomo_card])

        assert result.can_commit is True
        assert len(result.warnings) == 1
        assert "already exists" in BillingValidator.get_user_friendly_summary(result)

    def test_semantic_stage_skipped_on_schema_errors(self, validator, sumitomo_card):
        draft = CardDraft(name=sumitomo_card.name)
        result = validator.validate_card_draft(draft, [sumitomo_card])

        assert result.semantic_valid is False
        assert all(i.issue_type != "duplicate_name" for i in result.issues)


class TestPaymentDraftValidation:
    """Tests for validate_payment_draft()."""

    def test_complete_draft_can_commit(self, validator, sumitomo_card):
        draft = PaymentDraft(card_id="sumitomo", amount=50000, month=0, year=2024)
        result = validator.validate_payment_draft(draft, [sumitomo_card])
        assert result.can_commit is True

    def test_empty_draft_blocked(self, validator, sumitomo_card):
        result = validator.validate_payment_draft(PaymentDraft(), [sumitomo_card])

        assert result.can_commit is False
        assert result.error_count == 3
        assert "Cannot save yet (3 problem(s))" in BillingValidator.get_user_friendly_summary(result)

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_blocked(self, validator, sumitomo_card, amount):
        draft = PaymentDraft(card_id="sumitomo", amount=amount, month=0, year=2024)
        result = validator.validate_payment_draft(draft, [sumitomo_card])

        assert result.can_commit is False
        assert ("amount", "invalid_value") in _issue_types(result)

    def test_month_index_out_of_range(self, validator, sumitomo_card):
        draft = PaymentDraft(card_id="sumitomo", amount=10, month=12, year=2024)
        result = validator.validate_payment_draft(draft, [sumitomo_card])
        assert ("month", "invalid_value") in _issue_types(result)

    @pytest.mark.parametrize("year", [MIN_YEAR - 1, MAX_YEAR + 1])
    def test_year_out_of_range(self, validator, sumitomo_card, year):
        draft = PaymentDraft(card_id="sumitomo", amount=1000, month=0, year=year)
        result = validator.validate_payment_draft(draft, [sumitomo_card])

        assert result.can_commit is False
        assert ("year", "invalid_value") in _issue_types(result)

    def test_overlong_notes_blocked(self, validator, sumitomo_card):
        draft = PaymentDraft(
            card_id="sumitomo", amount=1000, month=0, year=2024,
            notes="n" * (NOTES_MAX_LENGTH + 1),
        )
        result = validator.validate_payment_draft(draft, [sumitomo_card])

        assert result.can_commit is False
        assert ("notes", "invalid_value") in _issue_types(result)

    def test_committable_draft_always_builds_a_payment(self, validator, sumitomo_card):
        draft = PaymentDraft(
            card_id="sumitomo", amount=1000, month=11, year=MAX_YEAR,
            notes="n" * NOTES_MAX_LENGTH,
        )
        assert validator.validate_payment_draft(draft, [sumitomo_card]).can_commit is True
        assert draft.to_payment().year == MAX_YEAR

    def test_unknown_card_blocked(self, validator, sumitomo_card):
        draft = PaymentDraft(card_id="deleted", amount=10, month=0, year=2024)
        result = validator.validate_payment_draft(draft, [sumitomo_card])

        assert result.schema_valid is True
        assert result.semantic_valid is False
        assert ("card_id", "unknown_card") in _issue_types(result)

    def test_large_amount_warns_but_commits(self, sumitomo_card):
        validator = BillingValidator(AppSettings(max_payment_amount=100_000))
        draft = PaymentDraft(card_id="sumitomo", amount=500_000, month=0, year=2024)
        result = validator.validate_payment_draft(draft, [sumitomo_card])

        assert result.can_commit is True
        assert ("amount", "suspicious_value") in _issue_types(result)

    def test_existing_payment_in_month_is_informational(self, validator, sumitomo_card, january_payment):
        draft = PaymentDraft(card_id="sumitomo", amount=10, month=0, year=2024)
        result = validator.validate_payment_draft(draft, [sumitomo_card], [january_payment])

        assert result.can_commit is True
        assert result.warnings == []
        assert ("card_id", "existing_payment") in _issue_types(result)

    def test_existing_payment_other_year_not_flagged(self, validator, sumitomo_card):
        old = Payment(card_id="sumitomo", amount=1, month=0, year=2023)
        draft = PaymentDraft(card_id="sumitomo", amount=10, month=0, year=2024)
        result = validator.validate_payment_draft(draft, [sumitomo_card], [old])
        assert result.issues == []
