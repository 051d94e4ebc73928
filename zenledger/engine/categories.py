"""
Category Aggregator

Totals, budget consumption and expense breakdowns for one window.

DESIGN DECISION: Two different attributions of a transaction to tags
are used on purpose:
- Budgets count a transaction against EVERY tag it carries, so a
  "Food + Travel" dinner consumes both budgets.
- The breakdown puts each transaction in exactly ONE bucket (its primary,
  i.e. first, tag) so the shares add up to 100%.

Tag ids that no longer resolve are reported under the "unsorted" bucket.
"""

from datetime import tzinfo
from typing import Iterable, Optional, Sequence

from zenledger.engine.windows import Window
from zenledger.models.ledger import LedgerSnapshot, Tag, Transaction, TransactionType
from zenledger.models.reports import (
    UNSORTED,
    UNSORTED_LABEL,
    BudgetState,
    BudgetStatus,
    CategoryReport,
    CategoryShare,
    WindowSummary,
)


DEFAULT_WARNING_PERCENT = 80.0


def in_window(
    transactions: Iterable[Transaction],
    window: Window,
    tz: Optional[tzinfo] = None,
    tag_filter: Optional[str] = None,
) -> list[Transaction]:
    """Transactions inside the window, optionally carrying one tag."""
    return [
        tx for tx in transactions
        if window.contains(tx.date, tz)
        and (tag_filter is None or tag_filter in tx.tags)
    ]


def summarize_window(
    transactions: Iterable[Transaction],
    window: Window,
    tag_filter: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> WindowSummary:
    """Total income and expense inside the window. Transfers are neutral."""
    selected = in_window(transactions, window, tz, tag_filter)
    return WindowSummary(
        total_income=sum(tx.amount for tx in selected if tx.type == TransactionType.INCOME),
        total_expense=sum(tx.amount for tx in selected if tx.type == TransactionType.EXPENSE),
        transaction_count=len(selected),
    )


def spend_by_tag(
    transactions: Iterable[Transaction],
    window: Window,
    tz: Optional[tzinfo] = None,
) -> dict[str, float]:
    """
    Expense per tag id inside the window.

    A transaction with several tags counts in full toward each of them.
    """
    spent: dict[str, float] = {}
    for tx in in_window(transactions, window, tz):
        if tx.type != TransactionType.EXPENSE:
            continue
        for tag_id in tx.tags:
            spent[tag_id] = spent.get(tag_id, 0.0) + tx.amount
    return spent


def evaluate_budget(
    spent: float,
    limit: Optional[float],
    warning_percent: float = DEFAULT_WARNING_PERCENT,
) -> tuple[Optional[float], BudgetState]:
    """
    Percent used and state for one budget.

    A missing or zero limit is unbounded: there is no overage state.
    """
    if limit is None or limit <= 0:
        return None, BudgetState.UNBOUNDED
    percent = spent * 100 / limit
    if percent >= 100:
        return percent, BudgetState.OVER_BUDGET
    if percent >= warning_percent:
        return percent, BudgetState.NEAR_LIMIT
    return percent, BudgetState.NORMAL


def budget_statuses(
    tags: Sequence[Tag],
    transactions: Iterable[Transaction],
    window: Window,
    tz: Optional[tzinfo] = None,
    warning_percent: float = DEFAULT_WARNING_PERCENT,
) -> list[BudgetStatus]:
    """
    Budget consumption for every expense-capable tag.

    Tags with no spend and no limit are omitted (nothing to report).
    Sorted by amount spent, largest first.
    """
    spent_by_tag = spend_by_tag(transactions, window, tz)
    statuses = []
    for tag in tags:
        if not tag.tracks_budget:
            continue
        spent = spent_by_tag.get(tag.id, 0.0)
        has_limit = tag.budget_limit is not None and tag.budget_limit > 0
        if spent == 0 and not has_limit:
            continue
        percent, state = evaluate_budget(spent, tag.budget_limit, warning_percent)
        statuses.append(BudgetStatus(
            tag_id=tag.id,
            name=tag.name,
            spent=spent,
            limit=tag.budget_limit,
            percent=percent,
            state=state,
        ))
    statuses.sort(key=lambda s: s.spent, reverse=True)
    return statuses


def _shares(totals: dict[str, float], names: dict[str, str]) -> list[CategoryShare]:
    grand_total = sum(totals.values())
    shares = [
        CategoryShare(
            key=key,
            name=names[key],
            amount=amount,
            percent=(amount * 100 / grand_total) if grand_total > 0 else 0.0,
        )
        for key, amount in totals.items()
    ]
    shares.sort(key=lambda s: s.amount, reverse=True)
    return shares


def primary_breakdown(
    tags: Sequence[Tag],
    transactions: Iterable[Transaction],
    window: Window,
    tz: Optional[tzinfo] = None,
    tag_filter: Optional[str] = None,
) -> list[CategoryShare]:
    """
    Expense split by primary tag, each bucket with its share of the total.

    Untagged expenses and expenses whose primary tag was deleted land in
    the "unsorted" bucket.
    """
    tags_by_id = {tag.id: tag for tag in tags}
    totals: dict[str, float] = {}
    names: dict[str, str] = {}
    for tx in in_window(transactions, window, tz, tag_filter):
        if tx.type != TransactionType.EXPENSE:
            continue
        tag = tags_by_id.get(tx.primary_tag) if tx.primary_tag else None
        key = tag.id if tag else UNSORTED
        names[key] = tag.name if tag else UNSORTED_LABEL
        totals[key] = totals.get(key, 0.0) + tx.amount
    return _shares(totals, names)


def sub_tag_breakdown(
    tag_id: str,
    transactions: Iterable[Transaction],
    window: Window,
    tz: Optional[tzinfo] = None,
) -> list[CategoryShare]:
    """
    Expense carrying one tag, split by the sub-tag chosen for it.

    Expenses with the tag but no sub-tag go to the "unsorted" bucket.
    """
    totals: dict[str, float] = {}
    names: dict[str, str] = {}
    for tx in in_window(transactions, window, tz, tag_filter=tag_id):
        if tx.type != TransactionType.EXPENSE:
            continue
        sub = tx.sub_tags.get(tag_id)
        key = sub or UNSORTED
        names[key] = sub or UNSORTED_LABEL
        totals[key] = totals.get(key, 0.0) + tx.amount
    return _shares(totals, names)


def category_report(
    snapshot: LedgerSnapshot,
    window: Window,
    tag_filter: Optional[str] = None,
    tz: Optional[tzinfo] = None,
    warning_percent: float = DEFAULT_WARNING_PERCENT,
) -> CategoryReport:
    """Summary, budgets and breakdown for one window in a single call."""
    transactions = snapshot.transactions
    if tag_filter is not None:
        transactions = tuple(tx for tx in transactions if tag_filter in tx.tags)
    return CategoryReport(
        window_label=window.label,
        tag_filter=tag_filter,
        summary=summarize_window(transactions, window, tz=tz),
        budgets=budget_statuses(
            snapshot.tags, transactions, window, tz, warning_percent
        ),
        breakdown=primary_breakdown(snapshot.tags, transactions, window, tz),
    )
