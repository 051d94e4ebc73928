"""
Activity Logger

DESIGN DECISION: Every mutation of the ledger is logged.
This provides:
1. Traceability of edits, deletions and restores
2. Debugging capability when a backup is rejected
3. Correlation between an assistant reply and the saved transaction

The activity logger:
- Is synchronous, like the rest of the ledger core
- Never raises into the caller (a failed log line must not block a save)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from zenledger.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
)
from zenledger.models.ledger import Transaction


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class ActivityLogger:
    """
    Central activity logging service.

    Writes structured JSON lines through structlog. Events are also kept
    in a small in-memory ring so callers (and tests) can inspect what
    happened during the current session.
    """

    def __init__(self, keep_last: int = 200):
        self._logger = structlog.get_logger("zenledger")
        self._keep_last = keep_last
        self._recent: list[ActivityEvent] = []

    @property
    def recent_events(self) -> list[ActivityEvent]:
        """Events logged in this session, oldest first."""
        return list(self._recent)

    def log(self, event: ActivityEvent) -> None:
        """Log an activity event at the level matching its severity."""
        self._recent.append(event)
        if len(self._recent) > self._keep_last:
            del self._recent[0]

        log_dict = event.to_log_dict()
        try:
            if event.severity == ActivitySeverity.ERROR:
                self._logger.error("ledger_event", **log_dict)
            elif event.severity == ActivitySeverity.WARNING:
                self._logger.warning("ledger_event", **log_dict)
            elif event.severity == ActivitySeverity.DEBUG:
                self._logger.debug("ledger_event", **log_dict)
            else:
                self._logger.info("ledger_event", **log_dict)
        except Exception as e:
            # Logging must never break a ledger mutation
            self._logger.error(
                "ledger_event_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )

    def log_transaction_saved(
        self,
        tx: Transaction,
        created: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a created or updated transaction."""
        event_type = (
            ActivityEventType.TRANSACTION_CREATED
            if created
            else ActivityEventType.TRANSACTION_UPDATED
        )
        self.log(ActivityEventBuilder.transaction_changed(
            event_type=event_type,
            transaction_id=tx.id,
            tx_type=tx.type.value,
            amount=tx.amount,
            correlation_id=correlation_id,
        ))

    def log_transaction_deleted(self, transaction_id: str) -> None:
        self.log(ActivityEventBuilder.transaction_deleted(transaction_id))

    def log_entity_changed(
        self,
        event_type: ActivityEventType,
        entity_type: str,
        entity_id: str,
        name: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an account or tag create/update/delete."""
        self.log(ActivityEventBuilder.entity_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            name=name,
            details=details,
        ))

    def log_budget_updated(
        self,
        tag_id: str,
        name: str,
        limit: Optional[float],
    ) -> None:
        self.log(ActivityEventBuilder.budget_updated(tag_id, name, limit))

    def log_snapshot_restored(
        self,
        collections: list[str],
        version: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.snapshot_restored(
            collections=collections,
            version=version,
            correlation_id=correlation_id,
        ))

    def log_snapshot_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.snapshot_rejected(reason, correlation_id))

    def log_storage_slot_invalid(self, key: str, reason: str) -> None:
        self.log(ActivityEventBuilder.storage_slot_invalid(key, reason))

    def log_draft_proposed(
        self,
        action: str,
        has_draft: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.draft_proposed(action, has_draft, correlation_id))

    def log_draft_accepted(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.draft_accepted(transaction_id, correlation_id))

    def log_assistant_error(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.assistant_error(error_message, correlation_id))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action that spans several steps
    (e.g., an assistant exchange or a restore).
    """
    return uuid4()
