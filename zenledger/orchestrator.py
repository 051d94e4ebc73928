"""
Main Orchestrator for ZenLedger

Ties the entity store, the derivation engine, the snapshot codec and
the assistant together behind one facade the UI talks to.

DESIGN DECISION: The facade enforces the boundaries:
- Every read is recomputed from `store.snapshot()`; nothing derived is cached
- Every write goes through the entity store (validated, persisted, logged)
- An assistant draft is saved only through `accept_draft`
- Stored filter selections are re-validated on every read, so a deleted
  account or tag behaves as "All"
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from zenledger.activity import ActivityLogger, create_correlation_id
from zenledger.assistant import (
    AssistantAction,
    AssistantContext,
    AssistantInterface,
    AssistantReply,
    build_assistant_context,
)
from zenledger.assistant.gemini import GeminiAssistant
from zenledger.config import LedgerSettings, get_settings
from zenledger.engine import (
    Window,
    asset_summary,
    category_report,
    derive_balances,
    net_worth,
    project,
    recent_months_series,
    sub_tag_breakdown,
    trend_series,
    validate_selection,
    wallet_headline,
)
from zenledger.models.ledger import Transaction, TransactionDraft
from zenledger.models.reports import (
    AccountBalance,
    AssetSummary,
    CategoryReport,
    CategoryShare,
    SortOption,
    TransactionView,
    TrendBucket,
)
from zenledger.snapshot import (
    RestoreResult,
    encode_snapshot,
    export_csv,
    export_filename,
    restore_snapshot,
)
from zenledger.store import (
    ACCOUNT_FILTER_PREF,
    SORT_PREF,
    TAG_FILTER_PREF,
    EntityStore,
    JsonFileKeyValueStorage,
    KeyValueStorageInterface,
)


logger = structlog.get_logger("zenledger.orchestrator")

MISSING_ASSISTANT_REPLY = "API Key is missing."


class LedgerApp:
    """
    Facade over one ledger.

    Mutations of accounts, tags and transactions go through `store`
    directly; everything else is exposed here.
    """

    def __init__(
        self,
        store: EntityStore,
        settings: Optional[LedgerSettings] = None,
        assistant: Optional[AssistantInterface] = None,
    ):
        self.store = store
        self._settings = settings or get_settings().ledger
        self._assistant = assistant
        self._tz = self._settings.tzinfo

    @property
    def activity_logger(self) -> ActivityLogger:
        return self.store.activity_logger

    @property
    def has_assistant(self) -> bool:
        return self._assistant is not None

    def _now(self) -> datetime:
        return datetime.now(self._tz).astimezone(self._tz)

    # -------------------------------------------------------------------------
    # Selection state
    # -------------------------------------------------------------------------

    @property
    def selected_account(self) -> Optional[str]:
        """Stored account filter, or None if unset or pointing at nothing."""
        account_id, _ = validate_selection(
            self.store.snapshot(),
            self.store.preferences.get(ACCOUNT_FILTER_PREF),
            None,
        )
        return account_id

    @property
    def selected_tag(self) -> Optional[str]:
        """Stored tag filter, or None if unset or pointing at nothing."""
        _, tag_id = validate_selection(
            self.store.snapshot(),
            None,
            self.store.preferences.get(TAG_FILTER_PREF),
        )
        return tag_id

    @property
    def sort(self) -> SortOption:
        raw = self.store.preferences.get(SORT_PREF, self._settings.default_sort)
        try:
            return SortOption(raw)
        except ValueError:
            return SortOption(self._settings.default_sort)

    def select_account(self, account_id: Optional[str]) -> None:
        """Filter by account; None shows all."""
        self.store.set_preference(ACCOUNT_FILTER_PREF, account_id)

    def select_tag(self, tag_id: Optional[str]) -> None:
        """Filter by tag; None shows all."""
        self.store.set_preference(TAG_FILTER_PREF, tag_id)

    def set_sort(self, sort: SortOption) -> None:
        self.store.set_preference(SORT_PREF, SortOption(sort).value)

    # -------------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------------

    def balances(self) -> list[AccountBalance]:
        snapshot = self.store.snapshot()
        return derive_balances(snapshot.accounts, snapshot.transactions)

    def net_worth(self) -> float:
        return net_worth(self.balances())

    def asset_summary(self) -> AssetSummary:
        return asset_summary(self.balances())

    def headline(self) -> tuple[str, float]:
        """Header card: the selected account, or the whole wallet."""
        return wallet_headline(self.balances(), self.selected_account)

    # -------------------------------------------------------------------------
    # Categories and trends
    # -------------------------------------------------------------------------

    def category_report(
        self,
        window: Optional[Window] = None,
        tag_id: Optional[str] = None,
    ) -> CategoryReport:
        """
        Totals, budgets and breakdown for a window (current month by default).

        A tag id that no longer exists is ignored.
        """
        snapshot = self.store.snapshot()
        _, tag_id = validate_selection(snapshot, None, tag_id)
        return category_report(
            snapshot,
            window or Window.current_month(self._now(), self._tz),
            tag_filter=tag_id,
            tz=self._tz,
            warning_percent=self._settings.budget_warning_percent,
        )

    def sub_tag_breakdown(
        self,
        tag_id: str,
        window: Optional[Window] = None,
    ) -> list[CategoryShare]:
        return sub_tag_breakdown(
            tag_id,
            self.store.transactions,
            window or Window.current_month(self._now(), self._tz),
            self._tz,
        )

    def trend(self, window: Optional[Window] = None) -> list[TrendBucket]:
        return trend_series(
            self.store.transactions,
            window or Window.current_month(self._now(), self._tz),
            self._tz,
        )

    def recent_trend(self, months: int = 6) -> list[TrendBucket]:
        return recent_months_series(
            self.store.transactions, self._now(), months, self._tz,
        )

    # -------------------------------------------------------------------------
    # Transaction list
    # -------------------------------------------------------------------------

    def transaction_view(
        self,
        account_id: Optional[str] = None,
        tag_id: Optional[str] = None,
        sort: Optional[SortOption] = None,
    ) -> TransactionView:
        """
        The grouped transaction list.

        Arguments left as None fall back to the stored selection and sort.
        """
        return project(
            self.store.snapshot(),
            account_id=account_id if account_id is not None else self.selected_account,
            tag_id=tag_id if tag_id is not None else self.selected_tag,
            sort=sort or self.sort,
            tz=self._tz,
        )

    # -------------------------------------------------------------------------
    # Backup, restore, export
    # -------------------------------------------------------------------------

    def backup(self) -> str:
        return encode_snapshot(self.store.snapshot(), self._settings.snapshot_version)

    def backup_filename(self) -> str:
        return export_filename("backup", self._now())

    def restore(self, text: str) -> RestoreResult:
        """
        Restore from a backup document.

        Raises:
            SnapshotDecodeError: If the document is malformed (nothing changes)
        """
        return restore_snapshot(self.store, text, correlation_id=create_correlation_id())

    def export_csv(self) -> str:
        return export_csv(self.store.snapshot(), self._tz)

    def export_filename(self) -> str:
        return export_filename("export", self._now())

    # -------------------------------------------------------------------------
    # Assistant
    # -------------------------------------------------------------------------

    def assistant_context(self) -> AssistantContext:
        return build_assistant_context(
            self.store.snapshot(),
            self._settings.recent_transactions_window,
            now=self._now(),
            tz=self._tz,
        )

    async def ask_assistant(
        self,
        user_input: str,
        correlation_id: Optional[UUID] = None,
    ) -> AssistantReply:
        """
        Send one message to the assistant.

        The reply may carry a draft; nothing is saved until
        `accept_draft` is called with it.
        """
        if self._assistant is None:
            return AssistantReply(action=AssistantAction.CHAT, text=MISSING_ASSISTANT_REPLY)

        correlation_id = correlation_id or create_correlation_id()
        try:
            reply = await self._assistant.respond(user_input, self.assistant_context())
        except Exception as e:
            self.activity_logger.log_assistant_error(str(e), correlation_id)
            raise
        self.activity_logger.log_draft_proposed(
            reply.action.value, reply.draft is not None, correlation_id,
        )
        return reply

    def accept_draft(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Save a draft the user accepted.

        Raises:
            ConstraintViolation: If the draft is incomplete (nothing saved)
        """
        tx = self.store.add_transaction(draft, correlation_id=correlation_id)
        self.activity_logger.log_draft_accepted(tx.id, correlation_id)
        return tx


def create_app_components(
    storage: Optional[KeyValueStorageInterface] = None,
    settings: Optional[LedgerSettings] = None,
    use_assistant: bool = True,
) -> LedgerApp:
    """
    Factory function to create the application.

    Args:
        storage: Key-value backend; defaults to JSON files under data_dir
        settings: Ledger settings; defaults to the environment
        use_assistant: Whether to try to configure the Gemini assistant.
                       Without credentials the app runs without it.
    """
    settings = settings or get_settings().ledger
    if storage is None:
        storage = JsonFileKeyValueStorage(settings.data_dir)

    store = EntityStore.load(storage)

    assistant = None
    if use_assistant:
        try:
            assistant = GeminiAssistant()
        except ValidationError as e:
            logger.warning("assistant_not_configured", error=str(e))

    return LedgerApp(store, settings=settings, assistant=assistant)
