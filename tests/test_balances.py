"""
Tests for the balance deriver.

Balances are a pure function of accounts + transactions, so every test
builds its inputs directly. No storage involved.
"""

import random

import pytest
from datetime import datetime, timezone

from zenledger.engine import (
    asset_summary,
    balance_delta,
    balance_of,
    derive_balances,
    net_worth,
    wallet_headline,
)
from zenledger.models import Account, AccountKind, Transaction, TransactionType


def make_tx(amount, tx_type="expense", account="a1", to=None, day=10):
    return Transaction(
        amount=amount,
        type=TransactionType(tx_type),
        account_id=account,
        to_account_id=to,
        date=datetime(2024, 5, day, 12, tzinfo=timezone.utc),
    )


@pytest.fixture
def accounts():
    return [
        Account(id="a1", name="Cash", initial_balance=100),
        Account(id="a2", name="Card", type=AccountKind.BANK),
        Account(id="a3", name="Credit", type=AccountKind.CREDIT),
    ]


def balances_by_id(accounts, transactions):
    return {b.account_id: b.balance for b in derive_balances(accounts, transactions)}


class TestDeriveBalances:
    """Tests for deriving balances from the log."""

    def test_no_transactions_gives_initial_balances(self, accounts):
        """Test that balances start at the initial balance."""
        assert balances_by_id(accounts, []) == {"a1": 100, "a2": 0, "a3": 0}

    def test_expense_and_income(self, accounts):
        """Test that expenses subtract and income adds on the source account."""
        result = balances_by_id(accounts, [
            make_tx(20, "expense", "a1"),
            make_tx(50, "income", "a2"),
        ])
        assert result == {"a1": 80, "a2": 50, "a3": 0}

    def test_transfer_moves_money(self, accounts):
        """Test the worked example: 30 from a1 to a2."""
        transactions = [make_tx(30, "transfer", "a1", to="a2")]
        result = balances_by_id(accounts, transactions)
        assert result["a1"] == 70
        assert result["a2"] == 30
        assert net_worth(derive_balances(accounts, transactions)) == 100

    def test_transfer_conserves_total(self, accounts):
        """Test that transfers between known accounts never change the sum."""
        before = sum(balances_by_id(accounts, []).values())
        transactions = [
            make_tx(30, "transfer", "a1", to="a2"),
            make_tx(12.5, "transfer", "a2", to="a3"),
            make_tx(99, "transfer", "a3", to="a1"),
        ]
        after = sum(balances_by_id(accounts, transactions).values())
        assert after == pytest.approx(before)

    def test_self_transfer_is_a_no_op(self, accounts):
        """Test that moving money to the same account changes nothing."""
        result = balances_by_id(accounts, [make_tx(40, "transfer", "a1", to="a1")])
        assert result["a1"] == 100

    def test_order_independence(self, accounts):
        """Test that shuffling the log yields the same balances."""
        transactions = [
            make_tx(20, "expense", "a1", day=1),
            make_tx(75.25, "income", "a2", day=2),
            make_tx(30, "transfer", "a1", to="a3", day=3),
            make_tx(5, "expense", "a3", day=4),
            make_tx(10, "transfer", "a2", to="a1", day=5),
        ]
        expected = balances_by_id(accounts, transactions)
        shuffled = list(transactions)
        random.Random(7).shuffle(shuffled)
        result = balances_by_id(accounts, shuffled)
        for account_id, balance in expected.items():
            assert result[account_id] == pytest.approx(balance)

    def test_orphaned_references_contribute_nothing(self, accounts):
        """Test that transactions on deleted accounts are skipped."""
        result = balances_by_id(accounts, [
            make_tx(20, "expense", "gone"),
            make_tx(30, "transfer", "gone", to="a2"),
            make_tx(15, "transfer", "a1", to="gone"),
        ])
        assert result == {"a1": 85, "a2": 30, "a3": 0}

    def test_balances_keep_account_order(self, accounts):
        """Test that results follow the account list."""
        names = [b.name for b in derive_balances(accounts, [])]
        assert names == ["Cash", "Card", "Credit"]


class TestSingleAccount:
    """Tests for per-account helpers."""

    def test_balance_delta_for_transfer(self):
        """Test the delta on each leg of a transfer."""
        tx = make_tx(30, "transfer", "a1", to="a2")
        assert balance_delta(tx, "a1") == -30
        assert balance_delta(tx, "a2") == 30
        assert balance_delta(tx, "a3") == 0

    def test_balance_of_matches_derive(self, accounts):
        """Test that the single-account path agrees with the full pass."""
        transactions = [make_tx(20, "expense", "a1"), make_tx(30, "transfer", "a1", to="a2")]
        assert balance_of("a1", accounts, transactions) == 50
        assert balance_of("missing", accounts, transactions) is None


class TestAssetSummary:
    """Tests for net worth and the asset card."""

    def test_assets_and_liabilities(self, accounts):
        """Test splitting positive and negative balances."""
        transactions = [make_tx(250, "expense", "a3")]
        summary = asset_summary(derive_balances(accounts, transactions))
        assert summary.total_assets == 100
        assert summary.liabilities == 250
        assert summary.net_worth == -150

    def test_excluded_account_not_in_net_worth(self):
        """Test the include-in-net-worth flag."""
        accounts = [
            Account(id="a1", name="Cash", initial_balance=100),
            Account(id="a9", name="Savings", initial_balance=1000, include_in_net_worth=False),
        ]
        summary = asset_summary(derive_balances(accounts, []))
        assert summary.net_worth == 100
        assert summary.total_assets == 1100

    def test_headline_falls_back_to_total(self, accounts):
        """Test the header card with a valid, missing and deleted selection."""
        balances = derive_balances(accounts, [make_tx(30, "transfer", "a1", to="a2")])
        assert wallet_headline(balances, "a2") == ("Card", 30)
        assert wallet_headline(balances, None) == ("Total Wallet", 100)
        assert wallet_headline(balances, "deleted") == ("Total Wallet", 100)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
