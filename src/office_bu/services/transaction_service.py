from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from office_bu.config.settings import AppConfig
from office_bu.domain.enums import SyncAction, SyncStatus, ThemeType, TransactionType
from office_bu.domain.models import BackupData, Transaction, TransactionDraft
from office_bu.domain.validation import ValidationError
from office_bu.logging_setup import get_logger
from office_bu.repositories.base import TransactionRepository
from office_bu.services.backup import create_backup_data
from office_bu.services.export import export_to_csv
from office_bu.services.models import BalanceSummary, ChangeResult, SyncResult
from office_bu.services.settings import AppState, SettingsStore
from office_bu.sync.errors import SyncError
from office_bu.sync.outbox import SyncOutbox
from office_bu.sync.sheets_reader import SheetsReader
from office_bu.sync.webhook import WebhookClient, bulk_update_data

logger = get_logger(__name__)


class TransactionService:
    """
    The application controller.

    Owns the AppState and is the only thing that mutates the collection.
    Local writes always commit first; mirroring them to the sheet happens
    afterwards through the outbox and never rolls anything back.
    """

    def __init__(
        self,
        repository: TransactionRepository,
        settings: SettingsStore,
        outbox: Optional[SyncOutbox] = None,
        config: Optional[AppConfig] = None,
        webhook_factory: Callable[..., WebhookClient] = WebhookClient,
        reader_factory: Callable[..., SheetsReader] = SheetsReader,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.repository = repository
        self.settings = settings
        self.outbox = outbox
        self.config = config or AppConfig()
        self.webhook_factory = webhook_factory
        self.reader_factory = reader_factory
        self.clock = clock
        self.state: AppState = settings.load()

    # ═══════════════════════════════════════════════════════════
    # Remote mirroring
    # ═══════════════════════════════════════════════════════════

    def _mirror(self, *changes: tuple) -> SyncResult:
        """Queue changes for the sheet, then flush if auto-sync is on"""
        if self.outbox is None:
            return SyncResult.skipped("sync is disabled")
        if not self.state.sync.can_write:
            return SyncResult.skipped("no webhook configured")

        for action, data in changes:
            self.outbox.enqueue(action, data)

        if not self.config.auto_flush:
            return SyncResult.skipped("auto-sync is off", remaining=self.outbox.count())
        return self.flush_outbox()

    def flush_outbox(self) -> SyncResult:
        """
        Deliver queued changes to the webhook, oldest first.

        Failures are recorded on the state and returned, never raised.
        """
        if self.outbox is None:
            return SyncResult.skipped("sync is disabled")
        if not self.state.sync.can_write:
            return SyncResult.skipped("no webhook configured", remaining=self.outbox.count())

        self.state.sync_status = SyncStatus.SYNCING
        client = self.webhook_factory(self.state.sync.webhook_url, timeout=self.config.timeout_seconds)
        flushed = self.outbox.flush(client)
        result = SyncResult(sent=len(flushed.sent), remaining=flushed.remaining, error=flushed.error)

        if result.success:
            self.state.sync_status = SyncStatus.CONNECTED
            self.state.last_error = None
            self.state.last_message = str(result)
        else:
            self.state.sync_status = SyncStatus.ERROR
            self.state.last_error = f"Sync failed: {result.error}"
        return result

    def fetch_from_sheet(self) -> List[Transaction]:
        """
        Replace the local collection with the sheet's contents.

        Raises:
            SyncError: If the sheet can't be read; local state is untouched
        """
        sync = self.state.sync
        if not sync.can_read:
            raise SyncError("Reading the sheet needs a spreadsheet id and an API key or access token")

        self.state.sync_status = SyncStatus.SYNCING
        try:
            reader = self.reader_factory(
                sync.spreadsheet_id,
                api_key=sync.api_key,
                access_token=sync.access_token,
                sheet_name=self.config.sheet_name,
                timeout=self.config.timeout_seconds,
            )
            transactions = reader.fetch_all()
        except SyncError as e:
            self.state.sync_status = SyncStatus.ERROR
            self.state.last_error = f"Fetch failed: {e}"
            raise

        self.repository.replace_all(transactions)
        self.state.sync_status = SyncStatus.CONNECTED
        self.state.last_error = None
        self.state.last_message = "Data fetched from Google Sheet."
        return transactions

    # ═══════════════════════════════════════════════════════════
    # CRUD
    # ═══════════════════════════════════════════════════════════

    def add_transactions(self, drafts: List[TransactionDraft]) -> ChangeResult:
        """Add one or more validated drafts; mirrored as a single bulk_add"""
        created = self.repository.add_many(drafts)
        if not created:
            return ChangeResult()
        return ChangeResult(created, self._mirror((SyncAction.BULK_ADD, created)))

    def update_transaction(self, transaction_id: int, draft: TransactionDraft) -> ChangeResult:
        """
        Replace a transaction's fields, keeping its id.

        The sheet has no update-in-place action, so the edit is mirrored as a
        delete followed by an add of the same id. A missing id is a no-op.
        """
        existing = self.repository.get_by_id(transaction_id)
        if existing is None:
            return ChangeResult()

        updated = self.repository.update(
            transaction_id,
            type=draft.type,
            quantity=draft.quantity,
            price=draft.price,
            user=draft.user,
            note=draft.note,
            date=draft.date or existing.date,
        )
        sync = self._mirror((SyncAction.DELETE, existing), (SyncAction.ADD, updated))
        return ChangeResult([updated], sync)

    def delete_transaction(self, transaction_id: int) -> ChangeResult:
        removed = self.repository.delete(transaction_id)
        if removed is None:
            return ChangeResult()
        return ChangeResult([removed], self._mirror((SyncAction.DELETE, removed)))

    def bulk_delete(self, transaction_ids: Iterable[int]) -> ChangeResult:
        removed = self.repository.delete_many(transaction_ids)
        if not removed:
            return ChangeResult()
        ids = [t.id for t in removed]
        return ChangeResult(removed, self._mirror((SyncAction.BULK_DELETE, ids)))

    def bulk_categorize(self, transaction_ids: Iterable[int], new_type: TransactionType) -> ChangeResult:
        """
        Move transactions to another category. Amounts don't change.

        Raises:
            ValidationError: When moving purchases with several items to payment
        """
        ids = list(transaction_ids)
        if new_type is TransactionType.PAYMENT:
            targets = set(ids)
            multi = [t.id for t in self.repository.get_all() if t.id in targets and t.quantity != 1]
            if multi:
                raise ValidationError(f"Payments have a quantity of 1; cannot recategorize {multi}")

        updated = self.repository.set_type_many(ids, new_type)
        if not updated:
            return ChangeResult()
        data = bulk_update_data([t.id for t in updated], new_type)
        return ChangeResult(updated, self._mirror((SyncAction.BULK_UPDATE, data)))

    def clear_all(self) -> ChangeResult:
        """Drop every local transaction and clear the sheet"""
        removed = self.repository.get_all()
        self.repository.clear()
        return ChangeResult(removed, self._mirror((SyncAction.CLEAR, None)))

    # ═══════════════════════════════════════════════════════════
    # Queries
    # ═══════════════════════════════════════════════════════════

    def get_transactions(self, user: Optional[str] = None, txn_type: Optional[TransactionType] = None) -> List[Transaction]:
        """
        The collection, newest first, with optional filters.

        Args:
            user: Only entries recorded by this person (case-insensitive)
            txn_type: Only entries of this category
        """
        transactions = self.repository.get_all()
        if user:
            wanted = user.strip().lower()
            transactions = [t for t in transactions if t.user.lower() == wanted]
        if txn_type:
            transactions = [t for t in transactions if t.type is txn_type]
        return transactions

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return self.repository.get_by_id(transaction_id)

    def search(self, query: str) -> List[Transaction]:
        return self.repository.search(query)

    def get_summary(self, user: Optional[str] = None) -> BalanceSummary:
        return BalanceSummary.from_transactions(self.repository.get_all(), user=user)

    # ═══════════════════════════════════════════════════════════
    # Settings
    # ═══════════════════════════════════════════════════════════

    def save_sync_settings(self, **values: Optional[str]) -> None:
        """
        Update sync credentials. Only the given fields change; an empty
        string removes a value.
        """
        sync = self.state.sync
        for name, value in values.items():
            if value is None:
                continue
            if not hasattr(sync, name):
                raise ValueError(f"Unknown sync setting '{name}'")
            setattr(sync, name, value.strip() or None)

        self.settings.save_sync_settings(sync)
        self.state.sync_status = SyncStatus.OFFLINE
        self.state.last_error = None

    def set_theme(self, theme: ThemeType) -> None:
        self.state.theme = theme
        self.settings.save_theme(theme)

    def set_icon(self, txn_type: TransactionType, icon: str) -> None:
        if not icon or not icon.strip():
            raise ValidationError("icon name is required")
        self.state.icon_mapping[txn_type.value] = icon.strip()
        self.settings.save_icons(self.state.icon_mapping)

    # ═══════════════════════════════════════════════════════════
    # Backup & export
    # ═══════════════════════════════════════════════════════════

    def create_backup(self) -> BackupData:
        return create_backup_data(
            self.repository.get_all(),
            self.state.icon_mapping,
            self.state.theme,
            now=self.clock(),
        )

    def restore_backup(self, backup: BackupData) -> int:
        """
        Replace the collection and display settings with a backup's.
        Local only: the sheet is left as it is.

        Returns:
            Number of restored transactions
        """
        self.repository.replace_all(backup.transactions)

        self.state.icon_mapping = dict(backup.icon_mapping)
        self.settings.save_icons(self.state.icon_mapping)
        self.set_theme(ThemeType(backup.theme))

        logger.info("Restored %d transaction(s) from backup", len(backup.transactions))
        return len(backup.transactions)

    def export_csv(self, directory: Path, transactions: Optional[List[Transaction]] = None) -> Path:
        if transactions is None:
            transactions = self.repository.get_all()
        return export_to_csv(transactions, directory, now=self.clock())

    def describe(self) -> str:
        """One-line status for the CLI footer"""
        status = self.state.sync_status.value
        pending = self.outbox.count() if self.outbox is not None else 0
        return f"sync: {status}, pending changes: {pending}"
