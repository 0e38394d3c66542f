import pytest
from decimal import Decimal

from office_bu.config.settings import AppConfig
from office_bu.domain.enums import SyncAction, SyncStatus, ThemeType, TransactionType
from office_bu.domain.models import BackupData
from office_bu.domain.validation import ValidationError
from office_bu.repositories.base import TransactionRepository
from office_bu.services.settings import AppState, SettingsStore, SyncSettings
from office_bu.services.transaction_service import TransactionService
from office_bu.sync import FlushResult, SyncError, SyncOutbox

WEBHOOK = "https://script.example.com/exec"


@pytest.fixture
def repository(mocker):
    return mocker.Mock(spec=TransactionRepository)


@pytest.fixture
def settings(mocker):
    settings = mocker.Mock(spec=SettingsStore)
    settings.load.return_value = AppState(sync=SyncSettings(webhook_url=WEBHOOK))
    return settings


@pytest.fixture
def outbox(mocker):
    outbox = mocker.Mock(spec=SyncOutbox)
    outbox.flush.return_value = FlushResult(sent=[mocker.Mock()], remaining=0)
    outbox.count.return_value = 0
    return outbox


@pytest.fixture
def webhook_factory(mocker):
    return mocker.Mock()


@pytest.fixture
def service(repository, settings, outbox, webhook_factory, clock):
    return TransactionService(
        repository,
        settings,
        outbox=outbox,
        config=AppConfig(timeout_seconds=7),
        webhook_factory=webhook_factory,
        clock=clock,
    )


@pytest.mark.unit
class TestMutationsAreMirrored:

    def test_add_queues_one_bulk_add_and_flushes(self, service, repository, outbox, webhook_factory, tea_draft, sample_transactions):
        # Arrange
        created = sample_transactions[2:]
        repository.add_many.return_value = created

        # Act
        result = service.add_transactions([tea_draft])

        # Assert
        repository.add_many.assert_called_once_with([tea_draft])
        outbox.enqueue.assert_called_once_with(SyncAction.BULK_ADD, created)
        webhook_factory.assert_called_once_with(WEBHOOK, timeout=7)
        outbox.flush.assert_called_once_with(webhook_factory.return_value)
        assert result.transactions == created
        assert result.sync.success
        assert service.state.sync_status is SyncStatus.CONNECTED

    def test_update_is_mirrored_as_delete_then_add(self, service, repository, outbox, tea_draft, sample_transactions):
        existing = sample_transactions[2]
        updated = existing.with_changes(quantity=Decimal("3"))
        repository.get_by_id.return_value = existing
        repository.update.return_value = updated

        result = service.update_transaction(existing.id, tea_draft)

        assert [c.args for c in outbox.enqueue.call_args_list] == [
            (SyncAction.DELETE, existing),
            (SyncAction.ADD, updated),
        ]
        assert result.transactions == [updated]
        # draft without a date keeps the original date
        assert repository.update.call_args.kwargs["date"] == existing.date

    def test_update_of_missing_id_is_noop(self, service, repository, outbox, tea_draft):
        repository.get_by_id.return_value = None

        result = service.update_transaction(404, tea_draft)

        assert not result.changed
        repository.update.assert_not_called()
        outbox.enqueue.assert_not_called()

    def test_delete_missing_id_is_not_mirrored(self, service, repository, outbox):
        repository.delete.return_value = None

        result = service.delete_transaction(404)

        assert not result.changed
        outbox.enqueue.assert_not_called()

    def test_bulk_delete_sends_removed_ids(self, service, repository, outbox, sample_transactions):
        repository.delete_many.return_value = sample_transactions[:2]

        service.bulk_delete([1736937000300, 1736937000200, 999])

        outbox.enqueue.assert_called_once_with(SyncAction.BULK_DELETE, [1736937000300, 1736937000200])

    def test_bulk_categorize(self, service, repository, outbox, sample_transactions):
        repository.set_type_many.return_value = sample_transactions[1:]

        result = service.bulk_categorize([1736937000200, 1736937000100], TransactionType.COFFEE)

        repository.set_type_many.assert_called_once_with([1736937000200, 1736937000100], TransactionType.COFFEE)
        outbox.enqueue.assert_called_once_with(
            SyncAction.BULK_UPDATE,
            {"ids": [1736937000200, 1736937000100], "updates": {"type": "coffee"}},
        )
        assert result.count == 2

    def test_categorize_multi_item_purchase_as_payment_is_rejected(self, service, repository, outbox, sample_transactions):
        repository.get_all.return_value = sample_transactions

        with pytest.raises(ValidationError):
            service.bulk_categorize([1736937000100], TransactionType.PAYMENT)

        repository.set_type_many.assert_not_called()
        outbox.enqueue.assert_not_called()

    def test_clear_is_always_mirrored(self, service, repository, outbox):
        repository.get_all.return_value = []

        service.clear_all()

        repository.clear.assert_called_once()
        outbox.enqueue.assert_called_once_with(SyncAction.CLEAR, None)


@pytest.mark.unit
class TestSyncOutcomes:

    def test_no_webhook_skips_sync_but_keeps_local_write(self, service, repository, outbox, tea_draft, sample_transactions):
        service.state.sync = SyncSettings()
        repository.add_many.return_value = sample_transactions[2:]

        result = service.add_transactions([tea_draft])

        assert result.changed
        assert not result.sync.attempted
        assert result.sync.skipped_reason == "no webhook configured"
        outbox.enqueue.assert_not_called()

    def test_without_outbox_sync_is_disabled(self, repository, settings, tea_draft, sample_transactions):
        service = TransactionService(repository, settings)
        repository.add_many.return_value = sample_transactions[2:]

        result = service.add_transactions([tea_draft])

        assert result.sync.skipped_reason == "sync is disabled"

    def test_auto_flush_off_only_queues(self, repository, settings, outbox, webhook_factory, tea_draft, sample_transactions):
        service = TransactionService(
            repository, settings, outbox=outbox,
            config=AppConfig(auto_flush=False),
            webhook_factory=webhook_factory,
        )
        repository.add_many.return_value = sample_transactions[2:]
        outbox.count.return_value = 1

        result = service.add_transactions([tea_draft])

        outbox.enqueue.assert_called_once()
        outbox.flush.assert_not_called()
        assert result.sync.remaining == 1

    def test_failed_flush_is_reported_not_raised(self, service, repository, outbox, tea_draft, sample_transactions):
        repository.add_many.return_value = sample_transactions[2:]
        outbox.flush.return_value = FlushResult(remaining=1, error="Webhook failed with status: 500 Oops")

        result = service.add_transactions([tea_draft])

        assert result.changed
        assert not result.sync.success
        assert service.state.sync_status is SyncStatus.ERROR
        assert service.state.last_error == "Sync failed: Webhook failed with status: 500 Oops"
        assert "1 change(s) pending" in str(result.sync)

    def test_describe(self, service, outbox):
        outbox.count.return_value = 2

        assert service.describe() == "sync: offline, pending changes: 2"


@pytest.mark.unit
class TestFetch:

    def test_fetch_replaces_local_collection(self, repository, settings, mocker, sample_transactions):
        settings.load.return_value = AppState(sync=SyncSettings(spreadsheet_id="sheet-1", api_key="k"))
        reader_factory = mocker.Mock()
        reader_factory.return_value.fetch_all.return_value = sample_transactions
        service = TransactionService(repository, settings, reader_factory=reader_factory)

        fetched = service.fetch_from_sheet()

        assert fetched == sample_transactions
        reader_factory.assert_called_once_with(
            "sheet-1", api_key="k", access_token=None, sheet_name="Transactions", timeout=15,
        )
        repository.replace_all.assert_called_once_with(sample_transactions)
        assert service.state.sync_status is SyncStatus.CONNECTED

    def test_failed_fetch_leaves_local_state(self, repository, settings, mocker):
        settings.load.return_value = AppState(sync=SyncSettings(spreadsheet_id="sheet-1", api_key="k"))
        reader_factory = mocker.Mock()
        reader_factory.return_value.fetch_all.side_effect = SyncError("Could not reach Google Sheets: down")
        service = TransactionService(repository, settings, reader_factory=reader_factory)

        with pytest.raises(SyncError):
            service.fetch_from_sheet()

        repository.replace_all.assert_not_called()
        assert service.state.sync_status is SyncStatus.ERROR

    def test_fetch_needs_credentials(self, service):
        with pytest.raises(SyncError, match="spreadsheet id"):
            service.fetch_from_sheet()


@pytest.mark.unit
class TestSettingsAndQueries:

    def test_save_sync_settings_only_changes_given_fields(self, service, settings):
        service.save_sync_settings(spreadsheet_id=" sheet-9 ", webhook_url=None)

        assert service.state.sync.spreadsheet_id == "sheet-9"
        assert service.state.sync.webhook_url == WEBHOOK
        settings.save_sync_settings.assert_called_once_with(service.state.sync)

    def test_empty_value_clears_setting(self, service):
        service.save_sync_settings(webhook_url="")

        assert service.state.sync.webhook_url is None

    def test_unknown_sync_setting(self, service):
        with pytest.raises(ValueError):
            service.save_sync_settings(password="x")

    def test_set_theme_and_icon_are_saved(self, service, settings):
        service.set_theme(ThemeType.OCEAN)
        service.set_icon(TransactionType.TEA, "fa-leaf")

        settings.save_theme.assert_called_once_with(ThemeType.OCEAN)
        assert service.state.icon_mapping["tea"] == "fa-leaf"
        settings.save_icons.assert_called_once()

    def test_blank_icon_is_rejected(self, service):
        with pytest.raises(ValidationError):
            service.set_icon(TransactionType.TEA, "  ")

    def test_filters(self, service, repository, sample_transactions):
        repository.get_all.return_value = sample_transactions

        assert [t.user for t in service.get_transactions(user="alice")] == ["Alice"]
        assert [t.type for t in service.get_transactions(txn_type=TransactionType.PAYMENT)] == [TransactionType.PAYMENT]

    def test_restore_backup_is_local_only(self, service, repository, outbox, settings, sample_transactions):
        backup = BackupData(version=1, timestamp="2025-01-15T10:30:00.123Z", transactions=sample_transactions, theme="chai")

        count = service.restore_backup(backup)

        assert count == 3
        repository.replace_all.assert_called_once_with(sample_transactions)
        assert service.state.theme is ThemeType.CHAI
        outbox.enqueue.assert_not_called()
