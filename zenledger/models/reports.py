"""
Derived Result Models

Everything in this module is computed from a ledger snapshot and thrown
away after display. None of these objects are ever persisted.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from zenledger.models.ledger import AccountKind, Transaction


UNSORTED = "unsorted"
UNKNOWN_ACCOUNT_LABEL = "Unknown"
UNSORTED_LABEL = "Unsorted"


class SortOption(str, Enum):
    """Supported orderings for the transaction list."""
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    AMOUNT_DESC = "amount-desc"
    AMOUNT_ASC = "amount-asc"


class BudgetState(str, Enum):
    """Budget consumption state for one tag."""
    NORMAL = "normal"
    NEAR_LIMIT = "near_limit"
    OVER_BUDGET = "over_budget"
    UNBOUNDED = "unbounded"  # No limit configured


# =============================================================================
# BALANCES
# =============================================================================

class AccountBalance(BaseModel):
    """An account together with its derived balance."""

    account_id: str
    name: str
    kind: AccountKind
    initial_balance: float
    balance: float
    include_in_net_worth: bool


class AssetSummary(BaseModel):
    """The asset status card: what is owned, what is owed, and the net."""

    total_assets: float = Field(
        ...,
        description="Sum of positive balances"
    )
    liabilities: float = Field(
        ...,
        ge=0,
        description="Absolute sum of negative balances"
    )
    net_worth: float = Field(
        ...,
        description="Sum over accounts included in net worth"
    )


# =============================================================================
# CATEGORIES AND BUDGETS
# =============================================================================

class WindowSummary(BaseModel):
    """Income and expense totals inside one window."""

    total_income: float = 0.0
    total_expense: float = 0.0
    transaction_count: int = Field(default=0, ge=0)

    @property
    def net(self) -> float:
        return self.total_income - self.total_expense


class BudgetStatus(BaseModel):
    """Spend against the configured limit for one tag."""

    tag_id: str
    name: str
    spent: float = Field(ge=0)
    limit: Optional[float] = None
    percent: Optional[float] = Field(
        default=None,
        description="spent / limit * 100, None when unbounded"
    )
    state: BudgetState

    @property
    def is_over(self) -> bool:
        return self.state == BudgetState.OVER_BUDGET

    @property
    def is_warning(self) -> bool:
        return self.state == BudgetState.NEAR_LIMIT

    @property
    def remaining(self) -> Optional[float]:
        if self.limit is None or self.limit <= 0:
            return None
        return self.limit - self.spent


class CategoryShare(BaseModel):
    """One bucket of an expense breakdown."""

    key: str = Field(
        ...,
        description="Tag id, sub-tag name, or the 'unsorted' sentinel"
    )
    name: str
    amount: float = Field(ge=0)
    percent: float = Field(
        ge=0,
        description="Share of the breakdown total (0-100)"
    )


class CategoryReport(BaseModel):
    """Everything the stats screen shows for one window."""

    window_label: str
    tag_filter: Optional[str] = None
    summary: WindowSummary
    budgets: list[BudgetStatus] = Field(default_factory=list)
    breakdown: list[CategoryShare] = Field(default_factory=list)


# =============================================================================
# VIEWS AND TRENDS
# =============================================================================

class DayGroup(BaseModel):
    """Transactions that share one local calendar day."""

    day: date
    items: list[Transaction] = Field(default_factory=list)
    total: float = Field(
        default=0.0,
        description="Income minus expense for the day; transfers excluded"
    )


class TransactionView(BaseModel):
    """Filtered, sorted and day-grouped transactions ready for display."""

    account_filter: Optional[str] = None
    tag_filter: Optional[str] = None
    sort: SortOption = SortOption.DATE_DESC
    groups: list[DayGroup] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return sum(len(group.items) for group in self.groups)

    @property
    def is_empty(self) -> bool:
        return not self.groups


class TrendBucket(BaseModel):
    """One point on the cash-flow chart."""

    key: int = Field(
        ...,
        description="Day of month or month of year"
    )
    label: str
    income: float = 0.0
    expense: float = 0.0
