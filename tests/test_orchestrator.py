"""Integration tests for the LedgerApp facade (in-memory storage, fake assistant)."""

import asyncio
import json

import pytest
from datetime import datetime, timezone

from zenledger.assistant import AssistantAction, AssistantInterface, AssistantReply
from zenledger.config import LedgerSettings
from zenledger.engine import Window
from zenledger.models import (
    ActivityEventType,
    SortOption,
    TransactionDraft,
    TransactionType,
)
from zenledger.orchestrator import MISSING_ASSISTANT_REPLY, LedgerApp, create_app_components
from zenledger.snapshot import SnapshotDecodeError
from zenledger.store import (
    ACCOUNT_FILTER_PREF,
    ConstraintViolation,
    EntityStore,
    InMemoryKeyValueStorage,
)


UTC = timezone.utc
MAY = Window.for_month(2024, 5)


def on_may(day, hour=12):
    return datetime(2024, 5, day, hour, tzinfo=UTC)


class ScriptedAssistant(AssistantInterface):
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error

    async def respond(self, user_input, context):
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def settings():
    return LedgerSettings(timezone="UTC")


@pytest.fixture
def app(settings):
    store = EntityStore.load(InMemoryKeyValueStorage())
    store.update_account("a1", initial_balance=100)
    store.add_transaction(TransactionDraft(
        amount=30, type=TransactionType.TRANSFER,
        account_id="a1", to_account_id="a2", date=on_may(3),
    ))
    store.add_transaction(TransactionDraft(
        amount=520, account_id="a2", tags=["1"], date=on_may(10),
    ))
    return LedgerApp(store, settings=settings)


class TestReads:
    """Tests for the derived read paths."""

    def test_balances_and_net_worth(self, app):
        """Test balances recomputed from the log."""
        balances = {b.account_id: b.balance for b in app.balances()}
        assert balances == {"a1": 70, "a2": -490, "a3": 0}
        assert app.net_worth() == -420
        summary = app.asset_summary()
        assert summary.total_assets == 70
        assert summary.liabilities == 490

    def test_category_report(self, app):
        """Test the budget status for an over-spent tag."""
        report = app.category_report(MAY)
        food = next(b for b in report.budgets if b.tag_id == "1")
        assert food.is_over
        assert food.percent == pytest.approx(104)

    def test_category_report_ignores_deleted_tag_filter(self, app):
        """Test that a filter on a missing tag reports everything."""
        report = app.category_report(MAY, tag_id="gone")
        assert report.tag_filter is None
        assert report.summary.total_expense == 520

    def test_trend(self, app):
        """Test the monthly trend for an explicit window."""
        series = app.trend(MAY)
        assert len(series) == 31
        assert series[9].expense == 520


class TestSelection:
    """Tests for stored filter and sort preferences."""

    def test_stored_selection_drives_view(self, app):
        """Test that the selected account filters the list and headline."""
        app.select_account("a2")
        view = app.transaction_view()
        assert view.account_filter == "a2"
        assert view.count == 2
        assert app.headline() == ("Card", -490)

    def test_selection_survives_reload(self, app):
        """Test that the selection is a persisted preference."""
        app.select_account("a1")
        assert app.store.preferences[ACCOUNT_FILTER_PREF] == "a1"
        app.select_account(None)
        assert ACCOUNT_FILTER_PREF not in app.store.preferences

    def test_deleted_account_falls_back_to_all(self, app):
        """Test that deleting the selected account shows everything."""
        app.select_account("a2")
        app.store.delete_account("a2")
        assert app.selected_account is None
        assert app.transaction_view().count == 2
        assert app.headline()[0] == "Total Wallet"

    def test_sort_preference(self, app):
        """Test the stored sort order and its default."""
        assert app.sort == SortOption.DATE_DESC
        app.set_sort(SortOption.AMOUNT_ASC)
        assert app.sort == SortOption.AMOUNT_ASC
        app.store.set_preference("sortOption", "sideways")
        assert app.sort == SortOption.DATE_DESC


class TestBackupAndExport:
    """Tests for backup, restore and export through the facade."""

    def test_backup_restore_cycle(self, app, settings):
        """Test restoring a backup into a fresh app."""
        text = app.backup()
        other = LedgerApp(EntityStore.load(InMemoryKeyValueStorage()), settings=settings)
        result = other.restore(text)
        assert result.replaced == ["transactions", "accounts", "tags"]
        assert other.backup() == text
        assert other.net_worth() == app.net_worth()

    def test_version_from_settings(self, app):
        """Test that the document carries the configured version."""
        assert json.loads(app.backup())["version"] == "1.2"

    def test_bad_restore_raises(self, app):
        """Test that a malformed backup is refused."""
        with pytest.raises(SnapshotDecodeError):
            app.restore("{")

    def test_export_csv(self, app):
        """Test that every transaction becomes a row."""
        lines = app.export_csv().splitlines()
        assert len(lines) == 3
        assert lines[1].startswith("2024-05-10,expense,Card,-,520.00,Food")

    def test_filenames(self, app):
        """Test the suggested download names."""
        assert app.backup_filename().startswith("bookkeeping_backup_")
        assert app.export_filename().endswith(".csv")


class TestAssistantFlow:
    """Tests for asking the assistant and accepting drafts."""

    def test_no_assistant_configured(self, app):
        """Test the reply when there are no credentials."""
        reply = asyncio.run(app.ask_assistant("hi"))
        assert reply.action == AssistantAction.CHAT
        assert reply.text == MISSING_ASSISTANT_REPLY

    def test_draft_is_not_saved_until_accepted(self, app, settings):
        """Test that a proposal leaves the log untouched."""
        draft = TransactionDraft(amount=20, account_id="a1", tags=["1"], note="lunch")
        assistant = ScriptedAssistant(AssistantReply(
            action=AssistantAction.CREATE, text="Prepared.", draft=draft,
        ))
        app = LedgerApp(app.store, settings=settings, assistant=assistant)
        before = app.store.transactions

        reply = asyncio.run(app.ask_assistant("20 for lunch"))
        assert reply.proposes_transaction
        assert app.store.transactions == before

        tx = app.accept_draft(reply.draft)
        assert app.store.transactions[0] == tx
        assert tx.note == "lunch"
        event_types = [e.event_type for e in app.activity_logger.recent_events]
        assert event_types[-3:] == [
            ActivityEventType.DRAFT_PROPOSED,
            ActivityEventType.TRANSACTION_CREATED,
            ActivityEventType.DRAFT_ACCEPTED,
        ]

    def test_incomplete_draft_refused(self, app):
        """Test that accepting a draft goes through normal validation."""
        with pytest.raises(ConstraintViolation):
            app.accept_draft(TransactionDraft(note="no amount"))

    def test_assistant_error_logged(self, app, settings):
        """Test that a failing assistant is logged and re-raised."""
        app = LedgerApp(
            app.store, settings=settings,
            assistant=ScriptedAssistant(error=RuntimeError("boom")),
        )
        with pytest.raises(RuntimeError):
            asyncio.run(app.ask_assistant("hi"))
        last = app.activity_logger.recent_events[-1]
        assert last.event_type == ActivityEventType.ASSISTANT_ERROR

    def test_context_uses_settings_window(self, app):
        """Test the recent-transactions window."""
        context = app.assistant_context()
        assert len(context.recent_transactions) == 2
        assert [a.id for a in context.accounts] == ["a1", "a2", "a3"]


class TestFactory:
    """Tests for create_app_components."""

    def test_factory_without_assistant(self, settings):
        """Test building the app on explicit storage."""
        app = create_app_components(
            storage=InMemoryKeyValueStorage(), settings=settings, use_assistant=False,
        )
        assert not app.has_assistant
        assert [b.account_id for b in app.balances()] == ["a1", "a2", "a3"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
