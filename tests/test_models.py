"""
Tests for ZenLedger models

Test strategy:
1. Unit tests for individual components (models, validators, derivations)
2. Integration tests through the entity store with in-memory storage
3. No real API calls in tests (the assistant is faked)
"""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import ValidationError

from zenledger.models import (
    Account,
    AccountKind,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
    LedgerSnapshot,
    Tag,
    TagPolarity,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    dump_record,
)
from zenledger.models.ledger import from_epoch_millis, to_epoch_millis


MAY_10_NOON_MS = 1715342400000
MAY_10_NOON = datetime(2024, 5, 10, 12, tzinfo=timezone.utc)


class TestAccountModel:
    """Tests for the Account model."""

    def test_account_dumps_camel_case(self):
        """Test that the portable form uses the backup document's key names."""
        account = Account(id="a1", name="Cash", initial_balance=100)
        assert dump_record(account) == {
            "id": "a1",
            "name": "Cash",
            "type": "cash",
            "initialBalance": 100.0,
            "includeInNetWorth": True,
        }

    def test_account_accepts_aliases(self):
        """Test loading an account from the document's camelCase keys."""
        account = Account.model_validate({
            "id": "a2",
            "name": "Card",
            "type": "bank",
            "initialBalance": -50,
            "includeInNetWorth": False,
        })
        assert account.type == AccountKind.BANK
        assert account.initial_balance == -50
        assert account.include_in_net_worth is False

    def test_legacy_balance_field_is_ignored(self):
        """Test that a cached balance from an old backup is dropped."""
        account = Account.model_validate({"id": "a1", "name": "Cash", "balance": 999})
        assert not hasattr(account, "balance")
        assert "balance" not in dump_record(account)

    def test_account_name_stripped_and_required(self):
        """Test whitespace stripping and empty-name rejection."""
        assert Account(name="  Wallet  ").name == "Wallet"
        with pytest.raises(ValidationError):
            Account(name="   ")

    def test_account_is_frozen(self):
        """Test that accounts cannot be mutated in place."""
        account = Account(name="Cash")
        with pytest.raises(ValidationError):
            account.name = "Other"


class TestTagModel:
    """Tests for the Tag model."""

    def test_sub_tags_deduplicated(self):
        """Test that duplicate and blank sub-tags are dropped, order kept."""
        tag = Tag(name="Food", sub_tags=["Coffee", " Coffee ", "", "Snacks"])
        assert tag.sub_tags == ["Coffee", "Snacks"]

    def test_negative_budget_rejected(self):
        """Test that a budget limit cannot be negative."""
        with pytest.raises(ValidationError):
            Tag(name="Food", budget_limit=-1)

    def test_budget_limit_omitted_when_absent(self):
        """Test that an unlimited tag has no budgetLimit key."""
        assert "budgetLimit" not in dump_record(Tag(id="9", name="Gifts"))

    def test_polarity(self):
        """Test which transaction types a tag accepts."""
        both = Tag(name="Misc", type=TagPolarity.BOTH)
        income = Tag(name="Salary", type=TagPolarity.INCOME)
        assert both.allows(TransactionType.EXPENSE)
        assert both.allows(TransactionType.INCOME)
        assert not both.allows(TransactionType.TRANSFER)
        assert income.allows(TransactionType.INCOME)
        assert not income.allows(TransactionType.EXPENSE)
        assert not income.tracks_budget
        assert both.tracks_budget


class TestTransactionModel:
    """Tests for Transaction and TransactionDraft."""

    def test_date_parsed_from_epoch_millis(self):
        """Test that integer epoch milliseconds load as an aware timestamp."""
        tx = Transaction.model_validate({
            "id": "t1",
            "amount": 5,
            "type": "expense",
            "accountId": "a1",
            "date": MAY_10_NOON_MS,
        })
        assert tx.date == MAY_10_NOON

    def test_date_dumped_as_epoch_millis(self):
        """Test that the portable form stores the date as an integer."""
        tx = Transaction(id="t1", amount=5, account_id="a1", date=MAY_10_NOON)
        record = dump_record(tx)
        assert record["date"] == MAY_10_NOON_MS
        assert record["accountId"] == "a1"
        assert "toAccountId" not in record
        assert "note" not in record

    def test_epoch_conversion_is_exact(self):
        """Test millisecond precision survives both directions."""
        assert to_epoch_millis(from_epoch_millis(MAY_10_NOON_MS + 7)) == MAY_10_NOON_MS + 7

    @pytest.mark.parametrize("value", [1e20, float("inf"), float("nan")])
    def test_out_of_range_date_rejected(self, value):
        """Test that unrepresentable dates fail validation instead of crashing."""
        with pytest.raises(ValueError):
            from_epoch_millis(value)
        with pytest.raises(ValidationError):
            Transaction(amount=5, account_id="a1", date=value)

    def test_negative_amount_rejected(self):
        """Test that amounts are nonnegative magnitudes."""
        with pytest.raises(ValidationError):
            Transaction(amount=-5, account_id="a1", date=MAY_10_NOON)

    def test_tags_deduplicated_first_wins(self):
        """Test that a tag id appears once and keeps its first position."""
        tx = Transaction(amount=5, account_id="a1", date=MAY_10_NOON, tags=["2", "1", "2"])
        assert tx.tags == ["2", "1"]
        assert tx.primary_tag == "2"

    def test_sub_tags_only_for_carried_tags(self):
        """Test that sub-tag entries for tags not on the record are dropped."""
        tx = Transaction(
            amount=5,
            account_id="a1",
            date=MAY_10_NOON,
            tags=["1"],
            sub_tags={"1": "Coffee", "9": "Stray"},
        )
        assert tx.sub_tags == {"1": "Coffee"}

    def test_at_most_four_images(self):
        """Test the image attachment cap."""
        with pytest.raises(ValidationError):
            Transaction(amount=5, account_id="a1", date=MAY_10_NOON, images=["x"] * 5)

    def test_untagged_has_no_primary(self):
        """Test primary_tag for an untagged transaction."""
        tx = Transaction(amount=5, account_id="a1", date=MAY_10_NOON)
        assert tx.primary_tag is None

    def test_transfer_touches_both_accounts(self):
        """Test that a transfer involves source and destination."""
        tx = Transaction(
            amount=30,
            type=TransactionType.TRANSFER,
            account_id="a1",
            to_account_id="a2",
            date=MAY_10_NOON,
        )
        assert tx.touches("a1")
        assert tx.touches("a2")
        assert not tx.touches("a3")

    def test_to_account_ignored_for_non_transfer_touch(self):
        """Test that a stray destination on an expense does not count."""
        tx = Transaction(amount=5, account_id="a1", to_account_id="a2", date=MAY_10_NOON)
        assert not tx.touches("a2")

    def test_draft_allows_missing_fields(self):
        """Test that a draft can be incomplete until validation."""
        draft = TransactionDraft(note="lunch")
        assert draft.amount is None
        assert draft.account_id is None
        assert draft.date is None


class TestLedgerSnapshot:
    """Tests for the snapshot lookups."""

    def test_find_account_and_tag(self):
        """Test lookups by id, including misses."""
        snapshot = LedgerSnapshot(
            accounts=(Account(id="a1", name="Cash"),),
            tags=(Tag(id="1", name="Food"),),
        )
        assert snapshot.find_account("a1").name == "Cash"
        assert snapshot.find_account("zz") is None
        assert snapshot.find_tag("1").name == "Food"
        assert snapshot.find_tag(None) is None


class TestValidationModels:
    """Tests for validation result models."""

    def test_validation_result_with_errors(self):
        """Test ValidationResult with errors."""
        result = ValidationResult(
            subject="transaction",
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
                ValidationIssue(
                    field="tags",
                    issue_type="unknown_reference",
                    message="Tag '9' does not exist",
                    severity="warning",
                ),
            ],
        )
        assert not result.is_valid
        assert result.has_errors
        assert result.error_count == 1
        assert result.warnings == ["Tag '9' does not exist"]

    def test_severity_pattern(self):
        """Test that unknown severities are rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestActivityModels:
    """Tests for activity event models."""

    def test_snapshot_rejected_is_warning(self):
        """Test the severity and payload of a rejected restore."""
        correlation_id = uuid4()
        event = ActivityEventBuilder.snapshot_rejected("not JSON", correlation_id)
        assert event.event_type == ActivityEventType.SNAPSHOT_REJECTED
        assert event.severity == ActivitySeverity.WARNING
        assert event.error_message == "not JSON"
        assert event.correlation_id == correlation_id

    def test_entity_changed_description(self):
        """Test the generated description for entity events."""
        event = ActivityEventBuilder.entity_changed(
            ActivityEventType.ACCOUNT_CREATED, "account", "a1", "Cash",
        )
        assert event.description == "Account 'Cash' created"

    def test_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = ActivityEventBuilder.transaction_deleted("t1")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transaction_deleted"
        assert log_dict["entity_id"] == "t1"
        assert log_dict["correlation_id"] is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
