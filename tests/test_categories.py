"""Tests for window totals, budgets and category breakdowns."""

import pytest
from datetime import datetime, timedelta, timezone

from zenledger.engine import (
    Window,
    budget_statuses,
    category_report,
    evaluate_budget,
    primary_breakdown,
    spend_by_tag,
    sub_tag_breakdown,
    summarize_window,
)
from zenledger.models import (
    UNSORTED,
    Account,
    BudgetState,
    LedgerSnapshot,
    Tag,
    TagPolarity,
    Transaction,
    TransactionType,
)


UTC = timezone.utc
MAY = Window.for_month(2024, 5)


def make_tx(amount, tx_type="expense", tags=(), sub_tags=None, when=None, to=None):
    return Transaction(
        amount=amount,
        type=TransactionType(tx_type),
        account_id="a1",
        to_account_id=to,
        tags=list(tags),
        sub_tags=sub_tags or {},
        date=when or datetime(2024, 5, 10, 12, tzinfo=UTC),
    )


TAGS = [
    Tag(id="1", name="Food", budget_limit=500, sub_tags=["Groceries", "Coffee"]),
    Tag(id="2", name="Transport", budget_limit=200),
    Tag(id="4", name="Travel"),
    Tag(id="5", name="Salary", type=TagPolarity.INCOME),
]


class TestWindowSummary:
    """Tests for income/expense totals."""

    def test_totals_exclude_transfers(self):
        """Test that transfers are neutral in the window summary."""
        summary = summarize_window([
            make_tx(100, "income", tags=["5"]),
            make_tx(40, "expense", tags=["1"]),
            make_tx(30, "transfer", to="a2"),
        ], MAY, tz=UTC)
        assert summary.total_income == 100
        assert summary.total_expense == 40
        assert summary.net == 60
        assert summary.transaction_count == 3

    def test_month_boundaries_are_calendar_days(self):
        """Test that the last instant of April and first of June are excluded."""
        last_of_april = datetime(2024, 5, 1, tzinfo=UTC) - timedelta(milliseconds=1)
        first_of_june = datetime(2024, 6, 1, tzinfo=UTC)
        summary = summarize_window([
            make_tx(10, when=last_of_april),
            make_tx(20, when=datetime(2024, 5, 1, tzinfo=UTC)),
            make_tx(40, when=datetime(2024, 5, 31, 23, 59, tzinfo=UTC)),
            make_tx(80, when=first_of_june),
        ], MAY, tz=UTC)
        assert summary.total_expense == 60

    def test_year_window(self):
        """Test that a year window spans every month."""
        summary = summarize_window([
            make_tx(10, when=datetime(2024, 1, 1, tzinfo=UTC)),
            make_tx(20, when=datetime(2024, 12, 31, 23, tzinfo=UTC)),
            make_tx(40, when=datetime(2023, 12, 31, 23, tzinfo=UTC)),
        ], Window.for_year(2024), tz=UTC)
        assert summary.total_expense == 30

    def test_local_timezone_decides_the_day(self):
        """Test that bucketing follows the configured zone, not UTC."""
        tz = timezone(timedelta(hours=8))
        # 2024-04-30 20:00 UTC is already May 1st at UTC+8
        tx = make_tx(10, when=datetime(2024, 4, 30, 20, tzinfo=UTC))
        assert summarize_window([tx], MAY, tz=tz).total_expense == 10
        assert summarize_window([tx], MAY, tz=UTC).total_expense == 0


class TestBudgets:
    """Tests for budget consumption."""

    def test_over_budget_example(self):
        """Test Food at 520 of 500 is 104% and over budget."""
        statuses = budget_statuses(TAGS, [
            make_tx(300, tags=["1"]),
            make_tx(150, tags=["1"]),
            make_tx(70, tags=["1"]),
        ], MAY, tz=UTC)
        food = next(s for s in statuses if s.tag_id == "1")
        assert food.percent == pytest.approx(104)
        assert food.state == BudgetState.OVER_BUDGET
        assert food.is_over
        assert food.remaining == -20

    def test_near_limit_threshold(self):
        """Test the 80% warning and the custom threshold."""
        assert evaluate_budget(400, 500)[1] == BudgetState.NEAR_LIMIT
        assert evaluate_budget(399, 500)[1] == BudgetState.NORMAL
        assert evaluate_budget(500, 500)[1] == BudgetState.OVER_BUDGET
        assert evaluate_budget(300, 500, warning_percent=50)[1] == BudgetState.NEAR_LIMIT

    def test_zero_or_missing_limit_is_unbounded(self):
        """Test that no limit means no overage state."""
        assert evaluate_budget(1000, None) == (None, BudgetState.UNBOUNDED)
        assert evaluate_budget(1000, 0) == (None, BudgetState.UNBOUNDED)

    def test_multi_tag_counts_toward_each(self):
        """Test that a transaction with two tags consumes both budgets."""
        spent = spend_by_tag([make_tx(60, tags=["1", "2"])], MAY, tz=UTC)
        assert spent == {"1": 60, "2": 60}

    def test_income_and_transfers_do_not_consume(self):
        """Test that only expenses count against budgets."""
        spent = spend_by_tag([
            make_tx(60, "income", tags=["1"]),
            make_tx(60, "transfer", tags=["1"], to="a2"),
        ], MAY, tz=UTC)
        assert spent == {}

    def test_statuses_omit_idle_unbounded_and_income_tags(self):
        """Test which tags appear and in what order."""
        statuses = budget_statuses(TAGS, [
            make_tx(50, tags=["2"]),
            make_tx(10, tags=["4"]),
        ], MAY, tz=UTC)
        assert [s.tag_id for s in statuses] == ["2", "4", "1"]
        travel = statuses[1]
        assert travel.state == BudgetState.UNBOUNDED
        assert travel.percent is None

    def test_other_months_ignored(self):
        """Test that budgets only consider the window."""
        statuses = budget_statuses(TAGS, [
            make_tx(900, tags=["1"], when=datetime(2024, 4, 10, tzinfo=UTC)),
        ], MAY, tz=UTC)
        food = next(s for s in statuses if s.tag_id == "1")
        assert food.spent == 0
        assert food.state == BudgetState.NORMAL


class TestBreakdown:
    """Tests for the expense breakdowns."""

    def test_primary_tag_attribution(self):
        """Test that a multi-tag expense lands in its first tag only."""
        shares = primary_breakdown(TAGS, [
            make_tx(75, tags=["1", "2"]),
            make_tx(25, tags=["2"]),
        ], MAY, tz=UTC)
        assert [(s.key, s.amount, s.percent) for s in shares] == [
            ("1", 75, 75.0),
            ("2", 25, 25.0),
        ]

    def test_shares_sum_to_total(self):
        """Test that breakdown amounts add up to the window's expense."""
        transactions = [
            make_tx(10, tags=["1"]),
            make_tx(20, tags=["2", "1"]),
            make_tx(30),
            make_tx(40, tags=["gone"]),
        ]
        shares = primary_breakdown(TAGS, transactions, MAY, tz=UTC)
        total = summarize_window(transactions, MAY, tz=UTC).total_expense
        assert sum(s.amount for s in shares) == pytest.approx(total)
        assert sum(s.percent for s in shares) == pytest.approx(100)

    def test_untagged_and_deleted_tags_are_unsorted(self):
        """Test that orphans and untagged expenses share one bucket."""
        shares = primary_breakdown(TAGS, [
            make_tx(30),
            make_tx(40, tags=["gone"]),
        ], MAY, tz=UTC)
        assert len(shares) == 1
        assert shares[0].key == UNSORTED
        assert shares[0].name == "Unsorted"
        assert shares[0].amount == 70

    def test_empty_window(self):
        """Test that no expenses gives an empty breakdown."""
        assert primary_breakdown(TAGS, [], MAY, tz=UTC) == []

    def test_sub_tag_breakdown(self):
        """Test the per-sub-tag split inside one tag."""
        shares = sub_tag_breakdown("1", [
            make_tx(30, tags=["1"], sub_tags={"1": "Coffee"}),
            make_tx(50, tags=["1"], sub_tags={"1": "Groceries"}),
            make_tx(20, tags=["1"]),
            make_tx(99, tags=["2"]),
        ], MAY, tz=UTC)
        assert [(s.key, s.amount) for s in shares] == [
            ("Groceries", 50),
            ("Coffee", 30),
            (UNSORTED, 20),
        ]


class TestCategoryReport:
    """Tests for the combined report."""

    def test_deleted_tag_moves_to_unsorted(self):
        """Test that removing a tag reclassifies its spend without losing it."""
        transactions = (make_tx(120, tags=["2"]),)
        accounts = (Account(id="a1", name="Cash"),)
        before = category_report(
            LedgerSnapshot(accounts=accounts, tags=tuple(TAGS), transactions=transactions),
            MAY, tz=UTC,
        )
        remaining = tuple(t for t in TAGS if t.id != "2")
        after = category_report(
            LedgerSnapshot(accounts=accounts, tags=remaining, transactions=transactions),
            MAY, tz=UTC,
        )
        assert before.breakdown[0].key == "2"
        assert after.breakdown[0].key == UNSORTED
        assert after.breakdown[0].amount == 120
        assert after.summary.total_expense == before.summary.total_expense

    def test_tag_filter(self):
        """Test that the report can be narrowed to one tag."""
        snapshot = LedgerSnapshot(
            tags=tuple(TAGS),
            transactions=(make_tx(10, tags=["1"]), make_tx(20, tags=["2"])),
        )
        report = category_report(snapshot, MAY, tag_filter="1", tz=UTC)
        assert report.window_label == "2024-05"
        assert report.tag_filter == "1"
        assert report.summary.total_expense == 10
        assert [s.key for s in report.breakdown] == ["1"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
