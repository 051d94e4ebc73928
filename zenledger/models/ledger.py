"""
Core Ledger Models for ZenLedger

These models define the strict schemas for the three collections the
Entity Store owns: accounts, tags and transactions.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the portable backup document without loss
4. Stay free of derived data (balances are never stored)

DESIGN DECISION: Field names are snake_case in Python but the portable
document uses the camelCase names of the original backup format.
Aliases bridge the two so old backups restore unchanged.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_serializer,
    field_validator,
)


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

MAX_IMAGES = 4


def new_id() -> str:
    """Generate a fresh entity id."""
    return str(uuid4())


def to_epoch_millis(value: datetime) -> int:
    """Convert a timestamp to integer epoch milliseconds (naive = local time)."""
    if value.tzinfo is None:
        value = value.astimezone()
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(value: int | float) -> datetime:
    """
    Convert epoch milliseconds to an aware UTC timestamp.

    Raises:
        ValueError: If the value is not finite or lies outside the
            datetime range
    """
    try:
        return EPOCH + timedelta(milliseconds=value)
    except (OverflowError, ValueError):
        raise ValueError(f"date out of range: {value!r}")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountKind(str, Enum):
    """
    Kind of account.

    Informational only: the kind never changes balance arithmetic.
    """
    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"
    EWALLET = "ewallet"


class TagPolarity(str, Enum):
    """Which transaction types a tag may be attached to."""
    EXPENSE = "expense"
    INCOME = "income"
    BOTH = "both"


class TransactionType(str, Enum):
    """
    Direction of a transaction.

    CRITICAL: Amounts are always nonnegative magnitudes.
    The direction lives here, never in the sign of the amount.
    """
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


# =============================================================================
# ENTITIES
# =============================================================================

class Account(BaseModel):
    """
    A place money lives (wallet, bank card, credit line).

    The current balance is NOT a field. It is derived from the
    transaction log by the balance deriver on every read. Old backups
    that carry a cached "balance" value load fine; the value is ignored.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique account ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    type: AccountKind = Field(
        default=AccountKind.CASH,
        description="Account kind (informational)"
    )
    initial_balance: float = Field(
        default=0.0,
        alias="initialBalance",
        description="Signed opening balance"
    )
    include_in_net_worth: bool = Field(
        default=True,
        alias="includeInNetWorth",
        description="Whether the balance counts toward net worth"
    )


class Tag(BaseModel):
    """
    A category label with optional monthly budget and sub-tags.

    Deleting a tag never strips its id from historical transactions.
    Those references become "unsorted" in every report.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique tag ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Tag name"
    )
    color: str = Field(
        default="",
        description="Opaque style token (presentation only)"
    )
    type: TagPolarity = Field(
        default=TagPolarity.EXPENSE,
        description="Which transaction types may carry this tag"
    )
    budget_limit: Optional[float] = Field(
        default=None,
        ge=0,
        alias="budgetLimit",
        description="Monthly budget; absent means unlimited"
    )
    sub_tags: list[str] = Field(
        default_factory=list,
        alias="subTags",
        description="Ordered refinements of this tag (e.g. Food -> Coffee)"
    )

    @field_validator('sub_tags')
    @classmethod
    def unique_sub_tags(cls, v: list[str]) -> list[str]:
        """Keep first occurrence of each sub-tag name, drop blanks."""
        seen: list[str] = []
        for name in v:
            name = name.strip()
            if name and name not in seen:
                seen.append(name)
        return seen

    def allows(self, tx_type: TransactionType) -> bool:
        """Can a transaction of this type carry the tag?"""
        if self.type == TagPolarity.BOTH:
            return tx_type in (TransactionType.EXPENSE, TransactionType.INCOME)
        return tx_type.value == self.type.value

    @property
    def tracks_budget(self) -> bool:
        """Only expense-capable tags take part in budget evaluation."""
        return self.type in (TagPolarity.EXPENSE, TagPolarity.BOTH)


class _TransactionFields(BaseModel):
    """Fields shared by stored transactions and unsaved drafts."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        description="expense, income or transfer"
    )
    to_account_id: Optional[str] = Field(
        default=None,
        alias="toAccountId",
        description="Destination account (transfers only)"
    )
    tags: list[str] = Field(
        default_factory=list,
        description="Tag ids, order preserved; first one is the primary tag"
    )
    sub_tags: dict[str, str] = Field(
        default_factory=dict,
        alias="subTags",
        description="Chosen sub-tag per carried tag id"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free-text note"
    )
    images: list[str] = Field(
        default_factory=list,
        max_length=MAX_IMAGES,
        description="Opaque attached image payloads"
    )
    is_confirmed: bool = Field(
        default=True,
        alias="isConfirmed",
        description="Pending/confirmed flag (no effect on balances)"
    )

    @field_validator('date', mode='before', check_fields=False)
    @classmethod
    def parse_epoch_millis(cls, v: Any) -> Any:
        """The document stores dates as integer epoch milliseconds."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return from_epoch_millis(v)
        return v

    @field_serializer('date', check_fields=False)
    def serialize_date(self, value: Optional[datetime]) -> Optional[int]:
        return to_epoch_millis(value) if value is not None else None

    @field_validator('tags')
    @classmethod
    def unique_tags(cls, v: list[str]) -> list[str]:
        """A tag id appears at most once; first position wins."""
        unique: list[str] = []
        for tag_id in v:
            if tag_id not in unique:
                unique.append(tag_id)
        return unique

    @field_validator('sub_tags')
    @classmethod
    def carried_sub_tags_only(
        cls, v: dict[str, str], info: ValidationInfo
    ) -> dict[str, str]:
        """Sub-tag entries only exist for tags the transaction carries."""
        tags = info.data.get("tags")
        if tags is None:
            return v
        return {tag_id: name for tag_id, name in v.items() if tag_id in tags}


class TransactionDraft(_TransactionFields):
    """
    An unsaved transaction.

    Produced by the entry form or proposed by the assistant.
    CRITICAL: A draft only reaches the ledger through the normal create
    path, after the user explicitly accepts it.
    """

    amount: Optional[float] = Field(
        default=None,
        ge=0,
        description="Magnitude; None means the user has not entered one"
    )
    account_id: Optional[str] = Field(
        default=None,
        alias="accountId",
        description="Source account"
    )
    date: Optional[datetime] = Field(
        default=None,
        description="Timestamp; None means 'now' when created"
    )


class Transaction(_TransactionFields):
    """
    One entry in the ledger.

    The ledger is the only source of truth for balances.
    There is no other mutation path to an account balance.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique transaction ID"
    )
    amount: float = Field(
        ...,
        ge=0,
        description="Nonnegative magnitude"
    )
    account_id: str = Field(
        ...,
        alias="accountId",
        description="Source account"
    )
    date: datetime = Field(
        ...,
        description="Point in time used for ordering and bucketing"
    )

    @property
    def primary_tag(self) -> Optional[str]:
        """First tag id, or None when untagged."""
        return self.tags[0] if self.tags else None

    @property
    def is_transfer(self) -> bool:
        return self.type == TransactionType.TRANSFER

    def touches(self, account_id: str) -> bool:
        """Does this transaction involve the account on either leg?"""
        if self.account_id == account_id:
            return True
        return self.is_transfer and self.to_account_id == account_id


class LedgerSnapshot(BaseModel):
    """
    A read-only view of the three collections at one moment.

    Every derivation (balances, budgets, views, exports) is a pure
    function of one of these.
    """
    model_config = ConfigDict(frozen=True)

    accounts: tuple[Account, ...] = ()
    tags: tuple[Tag, ...] = ()
    transactions: tuple[Transaction, ...] = ()

    def find_account(self, account_id: Optional[str]) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def find_tag(self, tag_id: Optional[str]) -> Optional[Tag]:
        return next((t for t in self.tags if t.id == tag_id), None)


def dump_record(record: BaseModel) -> dict:
    """Portable form of one record: camelCase keys, no empty optionals."""
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# STARTER DATA - used when a persistence slot is absent
# =============================================================================

TAG_COLORS = [
    "bg-slate-100 text-slate-700 border-slate-200",
    "bg-red-50 text-red-600 border-red-100",
    "bg-orange-50 text-orange-600 border-orange-100",
    "bg-amber-50 text-amber-600 border-amber-100",
    "bg-emerald-50 text-emerald-600 border-emerald-100",
    "bg-cyan-50 text-cyan-600 border-cyan-100",
    "bg-blue-50 text-blue-600 border-blue-100",
    "bg-indigo-50 text-indigo-600 border-indigo-100",
    "bg-violet-50 text-violet-600 border-violet-100",
    "bg-rose-50 text-rose-600 border-rose-100",
]

STARTER_ACCOUNTS: tuple[Account, ...] = (
    Account(id="a1", name="Cash", type=AccountKind.CASH),
    Account(id="a2", name="Card", type=AccountKind.BANK),
    Account(id="a3", name="Credit", type=AccountKind.CREDIT),
)

STARTER_TAGS: tuple[Tag, ...] = (
    Tag(
        id="1",
        name="Food",
        color="bg-orange-50 text-orange-600 border-orange-100",
        type=TagPolarity.EXPENSE,
        budget_limit=500,
        sub_tags=["Groceries", "Dining Out", "Snacks", "Coffee"],
    ),
    Tag(
        id="2",
        name="Transport",
        color="bg-blue-50 text-blue-600 border-blue-100",
        type=TagPolarity.EXPENSE,
        budget_limit=200,
        sub_tags=["Taxi", "Bus", "Fuel"],
    ),
    Tag(
        id="3",
        name="Housing",
        color="bg-slate-50 text-slate-600 border-slate-100",
        type=TagPolarity.EXPENSE,
        budget_limit=1000,
        sub_tags=["Rent", "Utilities"],
    ),
    Tag(
        id="5",
        name="Salary",
        color="bg-emerald-50 text-emerald-600 border-emerald-100",
        type=TagPolarity.INCOME,
        sub_tags=["Bonus", "Full-time"],
    ),
)
