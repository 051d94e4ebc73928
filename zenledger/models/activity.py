"""
Activity Models for ZenLedger

Every mutation of the ledger is described by an ActivityEvent and written
to the structured log. This provides:
1. Traceability while debugging
2. A record of rejected restores and invalid storage slots
3. Correlation of an assistant exchange with the draft it produced

DESIGN DECISION: These events go to the log only. The ledger is not an
accounting system of record and keeps no persisted audit trail.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ActivityEventType(str, Enum):
    """Types of events we log."""
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Tags
    TAG_CREATED = "tag_created"
    TAG_UPDATED = "tag_updated"
    TAG_DELETED = "tag_deleted"
    BUDGET_UPDATED = "budget_updated"

    # Snapshots
    SNAPSHOT_RESTORED = "snapshot_restored"
    SNAPSHOT_REJECTED = "snapshot_rejected"

    # Persistence
    STORAGE_SLOT_INVALID = "storage_slot_invalid"

    # Assistant
    DRAFT_PROPOSED = "draft_proposed"
    DRAFT_ACCEPTED = "draft_accepted"
    ASSISTANT_ERROR = "assistant_error"


class ActivitySeverity(str, Enum):
    """Severity level for activity events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ActivityEvent(BaseModel):
    """A single logged ledger event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: ActivityEventType
    severity: ActivitySeverity = ActivitySeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="account, tag, transaction or snapshot"
    )
    entity_id: Optional[str] = None
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class ActivityEventBuilder:
    """
    Helper class to build activity events with common patterns.

    Usage:
        event = ActivityEventBuilder.transaction_deleted(tx_id)
        event = ActivityEventBuilder.snapshot_rejected("invalid JSON")
    """

    @staticmethod
    def transaction_changed(
        event_type: ActivityEventType,
        transaction_id: str,
        tx_type: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        verb = event_type.value.split("_", 1)[1]
        return ActivityEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {verb}: {tx_type} {amount:.2f}",
            details={"type": tx_type, "amount": amount},
        )

    @staticmethod
    def transaction_deleted(transaction_id: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
        )

    @staticmethod
    def entity_changed(
        event_type: ActivityEventType,
        entity_type: str,
        entity_id: str,
        name: str,
        details: Optional[dict] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} '{name}' {event_type.value.split('_', 1)[1]}",
            details=details or {},
        )

    @staticmethod
    def budget_updated(
        tag_id: str,
        name: str,
        limit: Optional[float],
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.BUDGET_UPDATED,
            entity_type="tag",
            entity_id=tag_id,
            description=f"Budget for '{name}' set to {limit if limit is not None else 'unlimited'}",
            details={"limit": limit},
        )

    @staticmethod
    def snapshot_restored(
        collections: list[str],
        version: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SNAPSHOT_RESTORED,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Snapshot restored: {', '.join(collections) or 'nothing'}",
            details={"collections": collections, "version": version},
        )

    @staticmethod
    def snapshot_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SNAPSHOT_REJECTED,
            severity=ActivitySeverity.WARNING,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description="Snapshot rejected; existing data left untouched",
            error_message=reason,
        )

    @staticmethod
    def storage_slot_invalid(key: str, reason: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.STORAGE_SLOT_INVALID,
            severity=ActivitySeverity.WARNING,
            description=f"Stored slot '{key}' could not be read; using defaults",
            details={"key": key},
            error_message=reason,
        )

    @staticmethod
    def draft_proposed(
        action: str,
        has_draft: bool,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DRAFT_PROPOSED,
            correlation_id=correlation_id,
            description=f"Assistant replied with action '{action}'",
            details={"action": action, "has_draft": has_draft},
        )

    @staticmethod
    def draft_accepted(
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DRAFT_ACCEPTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="User accepted an assistant draft",
        )

    @staticmethod
    def assistant_error(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.ASSISTANT_ERROR,
            severity=ActivitySeverity.ERROR,
            correlation_id=correlation_id,
            description="External assistant call failed",
            error_message=error_message,
        )
