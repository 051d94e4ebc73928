"""Validation package."""

from zenledger.validation.validator import (
    InvalidBudgetError,
    LedgerValidator,
    parse_budget_limit,
)

__all__ = ["InvalidBudgetError", "LedgerValidator", "parse_budget_limit"]
