"""
Data Models Package

This package contains all Pydantic models used in ZenLedger.
All data flowing through the system must conform to these schemas.
"""

from zenledger.models.ledger import (
    MAX_IMAGES,
    STARTER_ACCOUNTS,
    STARTER_TAGS,
    TAG_COLORS,
    Account,
    AccountKind,
    LedgerSnapshot,
    Tag,
    TagPolarity,
    Transaction,
    TransactionDraft,
    TransactionType,
    dump_record,
    from_epoch_millis,
    new_id,
    to_epoch_millis,
)
from zenledger.models.reports import (
    UNKNOWN_ACCOUNT_LABEL,
    UNSORTED,
    UNSORTED_LABEL,
    AccountBalance,
    AssetSummary,
    BudgetState,
    BudgetStatus,
    CategoryReport,
    CategoryShare,
    DayGroup,
    SortOption,
    TransactionView,
    TrendBucket,
    WindowSummary,
)
from zenledger.models.validation import ValidationIssue, ValidationResult
from zenledger.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
)

__all__ = [
    # Ledger models
    "MAX_IMAGES",
    "STARTER_ACCOUNTS",
    "STARTER_TAGS",
    "TAG_COLORS",
    "Account",
    "AccountKind",
    "LedgerSnapshot",
    "Tag",
    "TagPolarity",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "dump_record",
    "from_epoch_millis",
    "new_id",
    "to_epoch_millis",
    # Derived results
    "UNKNOWN_ACCOUNT_LABEL",
    "UNSORTED",
    "UNSORTED_LABEL",
    "AccountBalance",
    "AssetSummary",
    "BudgetState",
    "BudgetStatus",
    "CategoryReport",
    "CategoryShare",
    "DayGroup",
    "SortOption",
    "TransactionView",
    "TrendBucket",
    "WindowSummary",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Activity models
    "ActivityEvent",
    "ActivityEventBuilder",
    "ActivityEventType",
    "ActivitySeverity",
]
