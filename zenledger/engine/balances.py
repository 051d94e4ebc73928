"""
Balance Deriver

Every account balance is recomputed from the full transaction log plus
the account's initial balance. Balances are never cached or stored.

RULES:
- expense on the source account subtracts the amount
- income on the source account adds the amount
- a transfer subtracts on the source and adds on the destination;
  a self-transfer therefore nets to zero
- references to accounts that no longer exist contribute nothing

The accumulation is a plain sum, so iteration order never matters.
Sorting the log is a display concern only.
"""

from typing import Iterable, Optional, Sequence

from zenledger.models.ledger import Account, Transaction, TransactionType
from zenledger.models.reports import AccountBalance, AssetSummary


def balance_delta(tx: Transaction, account_id: str) -> float:
    """How much one transaction moves one account's balance."""
    delta = 0.0
    if tx.type == TransactionType.EXPENSE:
        if tx.account_id == account_id:
            delta -= tx.amount
    elif tx.type == TransactionType.INCOME:
        if tx.account_id == account_id:
            delta += tx.amount
    elif tx.type == TransactionType.TRANSFER:
        if tx.account_id == account_id:
            delta -= tx.amount
        if tx.to_account_id == account_id:
            delta += tx.amount
    return delta


def derive_balances(
    accounts: Sequence[Account],
    transactions: Iterable[Transaction],
) -> list[AccountBalance]:
    """
    Compute the current balance of every account.

    Single pass over the log: each transaction credits or debits only
    accounts that exist. Orphaned references are skipped silently.

    Returns:
        One AccountBalance per account, in account order
    """
    totals = {account.id: account.initial_balance for account in accounts}

    for tx in transactions:
        if tx.type == TransactionType.TRANSFER:
            if tx.account_id in totals:
                totals[tx.account_id] -= tx.amount
            if tx.to_account_id in totals:
                totals[tx.to_account_id] += tx.amount
        elif tx.account_id in totals:
            if tx.type == TransactionType.EXPENSE:
                totals[tx.account_id] -= tx.amount
            else:
                totals[tx.account_id] += tx.amount

    return [
        AccountBalance(
            account_id=account.id,
            name=account.name,
            kind=account.type,
            initial_balance=account.initial_balance,
            balance=totals[account.id],
            include_in_net_worth=account.include_in_net_worth,
        )
        for account in accounts
    ]


def balance_of(
    account_id: str,
    accounts: Sequence[Account],
    transactions: Iterable[Transaction],
) -> Optional[float]:
    """Balance of one account, or None if the account does not exist."""
    account = next((a for a in accounts if a.id == account_id), None)
    if account is None:
        return None
    return account.initial_balance + sum(
        balance_delta(tx, account_id) for tx in transactions
    )


def net_worth(balances: Iterable[AccountBalance]) -> float:
    """Sum of balances over accounts flagged for net worth."""
    return sum(b.balance for b in balances if b.include_in_net_worth)


def asset_summary(balances: Sequence[AccountBalance]) -> AssetSummary:
    """
    Split balances into what is owned and what is owed.

    Assets and liabilities look at every account; net worth honours
    the include-in-net-worth flag.
    """
    return AssetSummary(
        total_assets=sum(b.balance for b in balances if b.balance > 0),
        liabilities=abs(sum(b.balance for b in balances if b.balance < 0)),
        net_worth=net_worth(balances),
    )


def wallet_headline(
    balances: Sequence[AccountBalance],
    selected_account_id: Optional[str],
    total_label: str = "Total Wallet",
) -> tuple[str, float]:
    """
    Name and balance for the header card.

    Shows the selected account when it still exists, otherwise falls back
    to net worth.
    """
    selected = next(
        (b for b in balances if b.account_id == selected_account_id), None
    ) if selected_account_id else None
    if selected is None:
        return total_label, net_worth(balances)
    return selected.name, selected.balance
