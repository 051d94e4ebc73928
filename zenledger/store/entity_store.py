"""
Entity Store

The single owner of the three ledger collections (accounts, tags,
transactions) plus a small preferences blob.

GUARANTEES:
- Only this class mutates the collections
- Every mutation is validated first and persisted immediately after
- A mutation whose write fails leaves memory exactly as it was
- Nothing derived (balances, totals) is ever stored
- Deleting an account or tag never rewrites historical transactions
- Every collection is always a well-formed list of well-formed records,
  even when individual references dangle
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional, Sequence, TypeVar
from uuid import UUID

from pydantic import BaseModel, TypeAdapter, ValidationError

from zenledger.activity import ActivityLogger
from zenledger.models.activity import ActivityEventType
from zenledger.models.ledger import (
    STARTER_ACCOUNTS,
    STARTER_TAGS,
    Account,
    AccountKind,
    LedgerSnapshot,
    Tag,
    TagPolarity,
    Transaction,
    TransactionDraft,
    TransactionType,
    dump_record,
    new_id,
)
from zenledger.models.validation import ValidationIssue, ValidationResult
from zenledger.store.interface import (
    ACCOUNTS_KEY,
    CONFIG_KEY,
    TAGS_KEY,
    TRANSACTIONS_KEY,
    CorruptSlotError,
    KeyValueStorageInterface,
    StorageError,
)
from zenledger.validation import LedgerValidator, parse_budget_limit


ACCOUNT_FILTER_PREF = "selectedAccountFilter"
TAG_FILTER_PREF = "selectedTagFilter"
SORT_PREF = "sortOption"

M = TypeVar("M", bound=BaseModel)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class EntityNotFoundError(LedgerError):
    """No entity with the requested id."""
    pass


class ConstraintViolation(LedgerError):
    """A save was refused because the input broke a constraint."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid {result.subject}: {messages}")


def _violation_from(error: ValidationError, subject: str) -> ConstraintViolation:
    """Turn a pydantic error into the ledger's constraint error."""
    issues = [
        ValidationIssue(
            field=".".join(str(part) for part in err["loc"]) or subject,
            issue_type=err["type"],
            message=err["msg"],
            severity="error",
        )
        for err in error.errors()
    ]
    return ConstraintViolation(ValidationResult(subject=subject, issues=issues))


class EntityStore:
    """
    Exclusive owner of accounts, tags and transactions.

    Read access goes through tuples or `snapshot()`; callers never get a
    handle on the internal lists.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        accounts: Optional[Sequence[Account]] = None,
        tags: Optional[Sequence[Tag]] = None,
        transactions: Optional[Sequence[Transaction]] = None,
        preferences: Optional[dict[str, Any]] = None,
        validator: Optional[LedgerValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._storage = storage
        self._accounts: list[Account] = list(
            STARTER_ACCOUNTS if accounts is None else accounts
        )
        self._tags: list[Tag] = list(STARTER_TAGS if tags is None else tags)
        self._transactions: list[Transaction] = list(transactions or [])
        self._preferences: dict[str, Any] = dict(preferences or {})
        self._validator = validator or LedgerValidator()
        self._logger = activity_logger or ActivityLogger()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        storage: KeyValueStorageInterface,
        validator: Optional[LedgerValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ) -> "EntityStore":
        """
        Build a store from persisted slots.

        An absent slot means "use the starter set". A slot that cannot be
        parsed is logged and treated as absent, so a corrupt file never
        leaves the store structurally invalid.
        """
        logger = activity_logger or ActivityLogger()

        def read_slot(key: str) -> Optional[str]:
            try:
                return storage.get(key)
            except CorruptSlotError as e:
                logger.log_storage_slot_invalid(key, str(e))
                return None

        def read_list(key: str, model: type[M]) -> Optional[list[M]]:
            raw = read_slot(key)
            if raw is None:
                return None
            try:
                return TypeAdapter(list[model]).validate_json(raw)
            except ValidationError as e:
                logger.log_storage_slot_invalid(key, str(e))
                return None

        preferences: dict[str, Any] = {}
        raw_config = read_slot(CONFIG_KEY)
        if raw_config is not None:
            try:
                loaded = json.loads(raw_config)
            except ValueError as e:
                logger.log_storage_slot_invalid(CONFIG_KEY, str(e))
            else:
                if isinstance(loaded, dict):
                    preferences = loaded
                else:
                    logger.log_storage_slot_invalid(CONFIG_KEY, "not a JSON object")

        return cls(
            storage=storage,
            accounts=read_list(ACCOUNTS_KEY, Account),
            tags=read_list(TAGS_KEY, Tag),
            transactions=read_list(TRANSACTIONS_KEY, Transaction),
            preferences=preferences,
            validator=validator,
            activity_logger=logger,
        )

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def accounts(self) -> tuple[Account, ...]:
        return tuple(self._accounts)

    @property
    def tags(self) -> tuple[Tag, ...]:
        return tuple(self._tags)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions)

    @property
    def preferences(self) -> dict[str, Any]:
        return dict(self._preferences)

    @property
    def activity_logger(self) -> ActivityLogger:
        return self._logger

    def snapshot(self) -> LedgerSnapshot:
        """The current state of all three collections."""
        return LedgerSnapshot(
            accounts=tuple(self._accounts),
            tags=tuple(self._tags),
            transactions=tuple(self._transactions),
        )

    def find_account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self._accounts if a.id == account_id), None)

    def find_tag(self, tag_id: str) -> Optional[Tag]:
        return next((t for t in self._tags if t.id == tag_id), None)

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self._transactions if t.id == transaction_id), None)

    # -------------------------------------------------------------------------
    # Persistence
    #
    # CRITICAL: A new collection is written to storage BEFORE it replaces
    # the in-memory one. If the write raises StorageError, memory still
    # matches what is on disk.
    # -------------------------------------------------------------------------

    @staticmethod
    def _encode_list(records: Sequence[BaseModel]) -> str:
        payload = [dump_record(record) for record in records]
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))

    def _commit_transactions(self, transactions: list[Transaction]) -> None:
        self._storage.set(TRANSACTIONS_KEY, self._encode_list(transactions))
        self._transactions = transactions

    def _commit_accounts(self, accounts: list[Account]) -> None:
        self._storage.set(ACCOUNTS_KEY, self._encode_list(accounts))
        self._accounts = accounts

    def _commit_tags(self, tags: list[Tag]) -> None:
        self._storage.set(TAGS_KEY, self._encode_list(tags))
        self._tags = tags

    def _commit_preferences(self, preferences: dict[str, Any]) -> None:
        self._storage.set(CONFIG_KEY, json.dumps(preferences, ensure_ascii=False))
        self._preferences = preferences

    def _clear_preference_if(self, key: str, value: str) -> None:
        if self._preferences.get(key) == value:
            self._commit_preferences(
                {k: v for k, v in self._preferences.items() if k != key}
            )

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _index_of_transaction(self, transaction_id: str) -> int:
        for i, tx in enumerate(self._transactions):
            if tx.id == transaction_id:
                return i
        raise EntityNotFoundError(f"Transaction not found: {transaction_id}")

    def _build_transaction(
        self,
        draft: TransactionDraft,
        transaction_id: str,
        date: datetime,
    ) -> Transaction:
        result = self._validator.validate_draft(draft, self._accounts, self._tags)
        if result.has_errors:
            raise ConstraintViolation(result)
        is_transfer = draft.type == TransactionType.TRANSFER
        return Transaction(
            id=transaction_id,
            amount=draft.amount,
            type=draft.type,
            account_id=draft.account_id,
            to_account_id=draft.to_account_id if is_transfer else None,
            tags=list(draft.tags),
            sub_tags=dict(draft.sub_tags),
            date=date,
            note=draft.note,
            images=list(draft.images),
            is_confirmed=draft.is_confirmed,
        )

    def add_transaction(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a new transaction at the head of the log.

        Raises:
            ConstraintViolation: If the draft has errors (nothing is saved)
        """
        tx = self._build_transaction(
            draft,
            transaction_id=new_id(),
            date=draft.date or datetime.now(timezone.utc),
        )
        self._commit_transactions([tx, *self._transactions])
        self._logger.log_transaction_saved(tx, created=True, correlation_id=correlation_id)
        return tx

    def update_transaction(
        self,
        transaction_id: str,
        draft: TransactionDraft,
    ) -> Transaction:
        """
        Replace every field of an existing transaction except id and date.

        Raises:
            EntityNotFoundError: If the id is unknown
            ConstraintViolation: If the draft has errors (nothing changes)
        """
        index = self._index_of_transaction(transaction_id)
        current = self._transactions[index]
        tx = self._build_transaction(draft, transaction_id=current.id, date=current.date)
        transactions = list(self._transactions)
        transactions[index] = tx
        self._commit_transactions(transactions)
        self._logger.log_transaction_saved(tx, created=False)
        return tx

    def delete_transaction(self, transaction_id: str) -> Transaction:
        """Remove a transaction from the log."""
        index = self._index_of_transaction(transaction_id)
        removed = self._transactions[index]
        self._commit_transactions(
            self._transactions[:index] + self._transactions[index + 1:]
        )
        self._logger.log_transaction_deleted(removed.id)
        return removed

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def _index_of_account(self, account_id: str) -> int:
        for i, account in enumerate(self._accounts):
            if account.id == account_id:
                return i
        raise EntityNotFoundError(f"Account not found: {account_id}")

    def add_account(
        self,
        name: str,
        kind: AccountKind = AccountKind.CASH,
        initial_balance: float = 0.0,
        include_in_net_worth: bool = True,
    ) -> Account:
        """
        Create an account.

        Raises:
            ConstraintViolation: If the name is blank
        """
        result = self._validator.validate_account_name(name)
        if result.has_errors:
            raise ConstraintViolation(result)
        try:
            account = Account(
                id=new_id(),
                name=name,
                type=kind,
                initial_balance=initial_balance,
                include_in_net_worth=include_in_net_worth,
            )
        except ValidationError as e:
            raise _violation_from(e, "account")
        self._commit_accounts([*self._accounts, account])
        self._logger.log_entity_changed(
            ActivityEventType.ACCOUNT_CREATED, "account", account.id, account.name,
        )
        return account

    def update_account(self, account_id: str, **changes: Any) -> Account:
        """
        Edit an account in place (name, type, initial_balance,
        include_in_net_worth).
        """
        index = self._index_of_account(account_id)
        current = self._accounts[index]
        if "name" in changes:
            result = self._validator.validate_account_name(changes["name"])
            if result.has_errors:
                raise ConstraintViolation(result)
        changes.pop("id", None)
        try:
            account = Account.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise _violation_from(e, "account")
        accounts = list(self._accounts)
        accounts[index] = account
        self._commit_accounts(accounts)
        self._logger.log_entity_changed(
            ActivityEventType.ACCOUNT_UPDATED, "account", account.id, account.name,
            details={"changed": sorted(changes)},
        )
        return account

    def rename_account(self, account_id: str, name: str) -> Account:
        return self.update_account(account_id, name=name)

    def delete_account(self, account_id: str) -> Account:
        """
        Remove an account.

        Transactions that reference it are left exactly as they are;
        they simply stop contributing to any balance.
        """
        index = self._index_of_account(account_id)
        removed = self._accounts[index]
        self._commit_accounts(self._accounts[:index] + self._accounts[index + 1:])
        self._clear_preference_if(ACCOUNT_FILTER_PREF, account_id)
        self._logger.log_entity_changed(
            ActivityEventType.ACCOUNT_DELETED, "account", removed.id, removed.name,
        )
        return removed

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    def _index_of_tag(self, tag_id: str) -> int:
        for i, tag in enumerate(self._tags):
            if tag.id == tag_id:
                return i
        raise EntityNotFoundError(f"Tag not found: {tag_id}")

    def _replace_tag(self, index: int, tag: Tag) -> None:
        tags = list(self._tags)
        tags[index] = tag
        self._commit_tags(tags)

    def add_tag(
        self,
        name: str,
        color: str = "",
        polarity: TagPolarity = TagPolarity.EXPENSE,
        budget_limit: Optional[float] = None,
        sub_tags: Optional[list[str]] = None,
    ) -> Tag:
        """
        Create a tag.

        Raises:
            ConstraintViolation: If the name is blank or a field is invalid
        """
        result = self._validator.validate_tag_name(name)
        if result.has_errors:
            raise ConstraintViolation(result)
        try:
            tag = Tag(
                id=new_id(),
                name=name,
                color=color,
                type=polarity,
                budget_limit=budget_limit,
                sub_tags=sub_tags or [],
            )
        except ValidationError as e:
            raise _violation_from(e, "tag")
        self._commit_tags([*self._tags, tag])
        self._logger.log_entity_changed(
            ActivityEventType.TAG_CREATED, "tag", tag.id, tag.name,
        )
        return tag

    def update_tag(self, tag_id: str, **changes: Any) -> Tag:
        """Edit a tag in place (name, color, type, budget_limit, sub_tags)."""
        index = self._index_of_tag(tag_id)
        current = self._tags[index]
        if "name" in changes:
            result = self._validator.validate_tag_name(changes["name"])
            if result.has_errors:
                raise ConstraintViolation(result)
        changes.pop("id", None)
        try:
            tag = Tag.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise _violation_from(e, "tag")
        self._replace_tag(index, tag)
        self._logger.log_entity_changed(
            ActivityEventType.TAG_UPDATED, "tag", tag.id, tag.name,
            details={"changed": sorted(changes)},
        )
        return tag

    def set_budget(self, tag_id: str, raw_limit: Any) -> Tag:
        """
        Set a tag's monthly budget from user input.

        Raises:
            InvalidBudgetError: If the value is not a nonnegative number
                (the existing budget is left untouched)
        """
        index = self._index_of_tag(tag_id)
        limit = parse_budget_limit(raw_limit)
        tag = self._tags[index].model_copy(update={"budget_limit": limit})
        self._replace_tag(index, tag)
        self._logger.log_budget_updated(tag.id, tag.name, limit)
        return tag

    def add_sub_tag(self, tag_id: str, name: str) -> Tag:
        """Append a sub-tag name to a tag."""
        index = self._index_of_tag(tag_id)
        current = self._tags[index]
        result = self._validator.validate_sub_tag(current, name)
        if result.has_errors:
            raise ConstraintViolation(result)
        tag = current.model_copy(update={"sub_tags": [*current.sub_tags, name.strip()]})
        self._replace_tag(index, tag)
        self._logger.log_entity_changed(
            ActivityEventType.TAG_UPDATED, "tag", tag.id, tag.name,
            details={"sub_tag_added": name.strip()},
        )
        return tag

    def remove_sub_tag(self, tag_id: str, name: str) -> Tag:
        """
        Remove a sub-tag name from a tag.

        Historical transactions keep whatever sub-tag they recorded.
        """
        index = self._index_of_tag(tag_id)
        current = self._tags[index]
        tag = current.model_copy(
            update={"sub_tags": [s for s in current.sub_tags if s != name]}
        )
        self._replace_tag(index, tag)
        self._logger.log_entity_changed(
            ActivityEventType.TAG_UPDATED, "tag", tag.id, tag.name,
            details={"sub_tag_removed": name},
        )
        return tag

    def delete_tag(self, tag_id: str) -> Tag:
        """
        Remove a tag.

        Transactions keep the tag id; reports show them as unsorted.
        """
        index = self._index_of_tag(tag_id)
        removed = self._tags[index]
        self._commit_tags(self._tags[:index] + self._tags[index + 1:])
        self._clear_preference_if(TAG_FILTER_PREF, tag_id)
        self._logger.log_entity_changed(
            ActivityEventType.TAG_DELETED, "tag", removed.id, removed.name,
        )
        return removed

    # -------------------------------------------------------------------------
    # Preferences and wholesale replacement
    # -------------------------------------------------------------------------

    def set_preference(self, key: str, value: Any) -> None:
        """Store a UI preference; None removes it."""
        preferences = dict(self._preferences)
        if value is None:
            preferences.pop(key, None)
        else:
            preferences[key] = value
        self._commit_preferences(preferences)

    def replace_collections(
        self,
        accounts: Optional[Sequence[Account]] = None,
        tags: Optional[Sequence[Tag]] = None,
        transactions: Optional[Sequence[Transaction]] = None,
    ) -> list[str]:
        """
        Replace whole collections (used by restore).

        Present collections replace the existing ones wholesale; absent
        ones (None) are left untouched.

        All or nothing: if any slot write fails, slots already written are
        put back and memory is left as it was.

        Returns:
            Names of the collections that were replaced

        Raises:
            StorageError: If a slot could not be written
        """
        plan: list[tuple[str, str, list[Any], list[Any]]] = []
        if transactions is not None:
            plan.append(
                ("transactions", TRANSACTIONS_KEY, list(transactions), self._transactions)
            )
        if accounts is not None:
            plan.append(("accounts", ACCOUNTS_KEY, list(accounts), self._accounts))
        if tags is not None:
            plan.append(("tags", TAGS_KEY, list(tags), self._tags))

        written: list[tuple[str, list[Any]]] = []
        try:
            for _, key, records, previous in plan:
                self._storage.set(key, self._encode_list(records))
                written.append((key, previous))
        except StorageError:
            for key, previous in reversed(written):
                self._storage.set(key, self._encode_list(previous))
            raise

        for name, _, records, _ in plan:
            if name == "transactions":
                self._transactions = records
            elif name == "accounts":
                self._accounts = records
            else:
                self._tags = records
        return [name for name, _, _, _ in plan]
