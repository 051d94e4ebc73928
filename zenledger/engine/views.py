"""
View Projector

Turns the ledger into what the screens show:
1. The transaction list (filter → sort → group by local day)
2. Cash-flow series for trend charts (continuous axis, no gaps)

Selected filters are validated against the current snapshot on every
projection. A filter pointing at a deleted account or tag behaves as
"no filter"; there is no separate flag that could drift out of sync.
"""

import calendar
from datetime import date, datetime, tzinfo
from typing import Iterable, Optional, Sequence

from zenledger.engine.windows import Window, local_date
from zenledger.models.ledger import (
    Account,
    LedgerSnapshot,
    Tag,
    Transaction,
    TransactionType,
)
from zenledger.models.reports import (
    UNKNOWN_ACCOUNT_LABEL,
    UNSORTED_LABEL,
    DayGroup,
    SortOption,
    TransactionView,
    TrendBucket,
)


# =============================================================================
# LABELS
# =============================================================================

def account_label(accounts: Iterable[Account], account_id: Optional[str]) -> str:
    """Account name, or "Unknown" for a deleted/missing account."""
    account = next((a for a in accounts if a.id == account_id), None)
    return account.name if account else UNKNOWN_ACCOUNT_LABEL


def tag_label(tags: Iterable[Tag], tag_id: Optional[str]) -> str:
    """Tag name, or "Unsorted" for a deleted/missing tag."""
    tag = next((t for t in tags if t.id == tag_id), None)
    return tag.name if tag else UNSORTED_LABEL


# =============================================================================
# TRANSACTION LIST
# =============================================================================

def validate_selection(
    snapshot: LedgerSnapshot,
    account_id: Optional[str],
    tag_id: Optional[str],
) -> tuple[Optional[str], Optional[str]]:
    """Drop selected filters whose referent no longer exists."""
    if account_id is not None and snapshot.find_account(account_id) is None:
        account_id = None
    if tag_id is not None and snapshot.find_tag(tag_id) is None:
        tag_id = None
    return account_id, tag_id


def filter_transactions(
    transactions: Iterable[Transaction],
    account_id: Optional[str] = None,
    tag_id: Optional[str] = None,
) -> list[Transaction]:
    """
    Apply the account and tag filters (AND when both are set).

    The account filter matches the source account, or the destination
    of a transfer.
    """
    result = []
    for tx in transactions:
        if account_id is not None and not tx.touches(account_id):
            continue
        if tag_id is not None and tag_id not in tx.tags:
            continue
        result.append(tx)
    return result


def sort_transactions(
    transactions: Iterable[Transaction],
    sort: SortOption = SortOption.DATE_DESC,
) -> list[Transaction]:
    """Sort by date or amount. Ties keep their original order."""
    if sort in (SortOption.AMOUNT_DESC, SortOption.AMOUNT_ASC):
        return sorted(
            transactions,
            key=lambda tx: tx.amount,
            reverse=sort == SortOption.AMOUNT_DESC,
        )
    return sorted(
        transactions,
        key=lambda tx: tx.date.timestamp(),
        reverse=sort == SortOption.DATE_DESC,
    )


def day_total(transactions: Iterable[Transaction]) -> float:
    """Income minus expense; transfers do not count."""
    total = 0.0
    for tx in transactions:
        if tx.type == TransactionType.INCOME:
            total += tx.amount
        elif tx.type == TransactionType.EXPENSE:
            total -= tx.amount
    return total


def group_by_day(
    transactions: Iterable[Transaction],
    sort: SortOption = SortOption.DATE_DESC,
    tz: Optional[tzinfo] = None,
) -> list[DayGroup]:
    """
    Group (already sorted) transactions by local calendar day.

    Items keep their incoming order within a day. Days are ordered
    oldest-first only for the date-ascending sort and newest-first
    otherwise, regardless of the order items arrived in.
    """
    buckets: dict[date, list[Transaction]] = {}
    for tx in transactions:
        buckets.setdefault(local_date(tx.date, tz), []).append(tx)

    days = sorted(buckets, reverse=sort != SortOption.DATE_ASC)
    return [
        DayGroup(day=day, items=buckets[day], total=day_total(buckets[day]))
        for day in days
    ]


def project(
    snapshot: LedgerSnapshot,
    account_id: Optional[str] = None,
    tag_id: Optional[str] = None,
    sort: SortOption = SortOption.DATE_DESC,
    tz: Optional[tzinfo] = None,
) -> TransactionView:
    """Filtered, sorted and day-grouped transaction list."""
    account_id, tag_id = validate_selection(snapshot, account_id, tag_id)
    filtered = filter_transactions(snapshot.transactions, account_id, tag_id)
    ordered = sort_transactions(filtered, sort)
    return TransactionView(
        account_filter=account_id,
        tag_filter=tag_id,
        sort=sort,
        groups=group_by_day(ordered, sort, tz),
    )


# =============================================================================
# TREND SERIES
# =============================================================================

def trend_series(
    transactions: Iterable[Transaction],
    window: Window,
    tz: Optional[tzinfo] = None,
) -> list[TrendBucket]:
    """
    Income and expense per bucket across the whole window.

    Month window: one bucket per day of the month.
    Year window: one bucket per month of the year.
    Empty buckets are kept (with zeros) so the chart axis is continuous.
    """
    if window.is_month:
        buckets = [
            TrendBucket(key=day, label=str(day))
            for day in range(1, window.days_in_month + 1)
        ]
    else:
        buckets = [
            TrendBucket(key=month, label=calendar.month_abbr[month])
            for month in range(1, 13)
        ]

    for tx in transactions:
        day = local_date(tx.date, tz)
        if not window.contains_date(day):
            continue
        bucket = buckets[(day.day if window.is_month else day.month) - 1]
        if tx.type == TransactionType.INCOME:
            bucket.income += tx.amount
        elif tx.type == TransactionType.EXPENSE:
            bucket.expense += tx.amount
    return buckets


def recent_months_series(
    transactions: Iterable[Transaction],
    now: datetime,
    months: int = 6,
    tz: Optional[tzinfo] = None,
) -> list[TrendBucket]:
    """
    Income and expense for the last `months` calendar months, oldest first.

    The current month is the last bucket.
    """
    if not 1 <= months <= 12:
        raise ValueError("months must be between 1 and 12")

    windows: list[Window] = [Window.current_month(now, tz)]
    while len(windows) < months:
        windows.append(windows[-1].previous())
    windows.reverse()

    buckets = [
        TrendBucket(key=w.month, label=calendar.month_abbr[w.month])
        for w in windows
    ]
    index = {(w.year, w.month): i for i, w in enumerate(windows)}

    for tx in transactions:
        day = local_date(tx.date, tz)
        i = index.get((day.year, day.month))
        if i is None:
            continue
        if tx.type == TransactionType.INCOME:
            buckets[i].income += tx.amount
        elif tx.type == TransactionType.EXPENSE:
            buckets[i].expense += tx.amount
    return buckets


def recent_transactions(
    transactions: Sequence[Transaction],
    limit: int,
) -> list[Transaction]:
    """The newest `limit` transactions, newest first."""
    return sort_transactions(transactions, SortOption.DATE_DESC)[:limit]
