"""
Derivation Engine

Pure functions over a ledger snapshot: balances, category totals and
budgets, and display projections. Nothing here mutates or persists.
"""

from zenledger.engine.windows import Window, WindowKind, local_date
from zenledger.engine.balances import (
    asset_summary,
    balance_delta,
    balance_of,
    derive_balances,
    net_worth,
    wallet_headline,
)
from zenledger.engine.categories import (
    DEFAULT_WARNING_PERCENT,
    budget_statuses,
    category_report,
    evaluate_budget,
    in_window,
    primary_breakdown,
    spend_by_tag,
    sub_tag_breakdown,
    summarize_window,
)
from zenledger.engine.views import (
    account_label,
    day_total,
    filter_transactions,
    group_by_day,
    project,
    recent_months_series,
    recent_transactions,
    sort_transactions,
    tag_label,
    trend_series,
    validate_selection,
)

__all__ = [
    # Windows
    "Window",
    "WindowKind",
    "local_date",
    # Balances
    "asset_summary",
    "balance_delta",
    "balance_of",
    "derive_balances",
    "net_worth",
    "wallet_headline",
    # Categories
    "DEFAULT_WARNING_PERCENT",
    "budget_statuses",
    "category_report",
    "evaluate_budget",
    "in_window",
    "primary_breakdown",
    "spend_by_tag",
    "sub_tag_breakdown",
    "summarize_window",
    # Views
    "account_label",
    "day_total",
    "filter_transactions",
    "group_by_day",
    "project",
    "recent_months_series",
    "recent_transactions",
    "sort_transactions",
    "tag_label",
    "trend_series",
    "validate_selection",
]
