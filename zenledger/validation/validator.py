"""
Constraint Validation

DESIGN DECISION: Validation runs BEFORE anything reaches the Entity Store.

ERRORS (block the save):
- Missing or non-positive amount
- Missing source account
- Transfer without a destination account
- Tags whose polarity does not allow the transaction type
- Empty account or tag names
- Sub-tag names that already exist on the tag

WARNINGS (shown, never block):
- References to accounts or tags that do not exist (orphans are allowed)
- Sub-tags that are not in the parent tag's list
- Self-transfers (a net no-op)

IMPORTANT: Validation NEVER silently fixes drafts.
It reports issues for the user to act on.
"""

import math
from typing import Any, Iterable, Optional

from zenledger.models.ledger import (
    Account,
    Tag,
    TransactionDraft,
    TransactionType,
)
from zenledger.models.validation import ValidationIssue, ValidationResult


class InvalidBudgetError(ValueError):
    """A budget value that is not a nonnegative number."""
    pass


def parse_budget_limit(raw: Any) -> Optional[float]:
    """
    Parse a budget value typed by the user.

    Empty input means "no limit". Anything that is not a finite,
    nonnegative number is rejected so the existing budget stays as it is.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise InvalidBudgetError(f"Budget must be a number, got {raw!r}")
    if isinstance(raw, str):
        text = raw.strip().replace(",", "")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            raise InvalidBudgetError(f"Budget must be a number, got {raw!r}")
    elif isinstance(raw, (int, float)):
        value = float(raw)
    else:
        raise InvalidBudgetError(f"Budget must be a number, got {raw!r}")

    if not math.isfinite(value):
        raise InvalidBudgetError("Budget must be a finite number")
    if value < 0:
        raise InvalidBudgetError("Budget cannot be negative")
    return value


class LedgerValidator:
    """
    Checks drafts and entities against the ledger's constraints.

    Reference checks need the current accounts and tags, so callers pass
    them in. The validator itself holds no state.
    """

    def validate_draft(
        self,
        draft: TransactionDraft,
        accounts: Iterable[Account],
        tags: Iterable[Tag],
    ) -> ValidationResult:
        """
        Validate a transaction draft before it is saved.

        Args:
            draft: The draft from the entry form or the assistant
            accounts: Current accounts, for reference checks
            tags: Current tags, for reference and polarity checks

        Returns:
            ValidationResult with all issues found
        """
        issues: list[ValidationIssue] = []
        account_ids = {a.id for a in accounts}
        tags_by_id = {t.id: t for t in tags}

        # Amount
        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
                suggested_fix="Enter how much money moved",
            ))
        elif draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))
        elif not math.isfinite(draft.amount):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a finite number",
                severity="error",
            ))

        # Source account
        if not draft.account_id:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="An account is required",
                severity="error",
                suggested_fix="Pick the account the money came from or went to",
            ))
        elif draft.account_id not in account_ids:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_reference",
                message=f"Account '{draft.account_id}' does not exist",
                severity="warning",
                suggested_fix="The transaction will not affect any balance",
            ))

        # Transfer destination
        if draft.type == TransactionType.TRANSFER:
            if not draft.to_account_id:
                issues.append(ValidationIssue(
                    field="to_account_id",
                    issue_type="missing",
                    message="A transfer needs a destination account",
                    severity="error",
                ))
            else:
                if draft.to_account_id not in account_ids:
                    issues.append(ValidationIssue(
                        field="to_account_id",
                        issue_type="unknown_reference",
                        message=f"Account '{draft.to_account_id}' does not exist",
                        severity="warning",
                    ))
                if draft.to_account_id == draft.account_id:
                    issues.append(ValidationIssue(
                        field="to_account_id",
                        issue_type="self_transfer",
                        message="Source and destination are the same account",
                        severity="warning",
                        suggested_fix="A self-transfer does not change any balance",
                    ))
            if draft.tags:
                issues.append(ValidationIssue(
                    field="tags",
                    issue_type="unexpected",
                    message="Transfers usually carry no tags",
                    severity="info",
                ))

        # Tags and sub-tags
        for tag_id in draft.tags:
            tag = tags_by_id.get(tag_id)
            if tag is None:
                issues.append(ValidationIssue(
                    field="tags",
                    issue_type="unknown_reference",
                    message=f"Tag '{tag_id}' does not exist",
                    severity="warning",
                    suggested_fix="It will be reported as unsorted",
                ))
                continue
            if draft.type != TransactionType.TRANSFER and not tag.allows(draft.type):
                issues.append(ValidationIssue(
                    field="tags",
                    issue_type="polarity_mismatch",
                    message=f"Tag '{tag.name}' is for {tag.type.value} records",
                    severity="error",
                    suggested_fix="Pick a tag that matches the transaction type",
                ))
            sub = draft.sub_tags.get(tag_id)
            if sub is not None and sub not in tag.sub_tags:
                issues.append(ValidationIssue(
                    field="sub_tags",
                    issue_type="unknown_reference",
                    message=f"'{sub}' is not a sub-tag of '{tag.name}'",
                    severity="warning",
                ))

        return ValidationResult(subject="transaction", issues=issues)

    def validate_account_name(self, name: Optional[str]) -> ValidationResult:
        """An account needs a non-blank name."""
        issues = []
        if name is None or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Account name cannot be empty",
                severity="error",
            ))
        return ValidationResult(subject="account", issues=issues)

    def validate_tag_name(self, name: Optional[str]) -> ValidationResult:
        """A tag needs a non-blank name."""
        issues = []
        if name is None or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Tag name cannot be empty",
                severity="error",
            ))
        return ValidationResult(subject="tag", issues=issues)

    def validate_sub_tag(self, tag: Tag, name: Optional[str]) -> ValidationResult:
        """A new sub-tag must be non-blank and unique within its tag."""
        issues = []
        cleaned = (name or "").strip()
        if not cleaned:
            issues.append(ValidationIssue(
                field="sub_tags",
                issue_type="missing",
                message="Sub-tag name cannot be empty",
                severity="error",
            ))
        elif cleaned in tag.sub_tags:
            issues.append(ValidationIssue(
                field="sub_tags",
                issue_type="duplicate",
                message=f"'{cleaned}' already exists under '{tag.name}'",
                severity="error",
            ))
        return ValidationResult(subject="tag", issues=issues)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the entry form.
        """
        if result.is_valid and not result.warnings:
            return "✅ Ready to save."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following before saving:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("You can still save this record.")

        return "\n".join(lines)
