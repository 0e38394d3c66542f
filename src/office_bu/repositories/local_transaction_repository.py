from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional

from office_bu.domain.enums import TransactionType
from office_bu.domain.models import Transaction, TransactionDraft, decimal_text, truncate_to_millis
from office_bu.logging_setup import get_logger
from office_bu.repositories.base import TransactionRepository
from office_bu.storage.local_store import LocalStore

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LocalTransactionRepository(TransactionRepository):
    """
    In-memory transaction list mirrored to the local store.

    The list is loaded once on construction. Every mutation re-serializes
    the complete list under a single key; there is no delta persistence.
    """

    def __init__(self, store: LocalStore, key: str, clock: Clock = utc_now):
        self.store = store
        self.key = key
        self.clock = clock
        self._transactions: List[Transaction] = self._load()

    def _load(self) -> List[Transaction]:
        """Read the persisted list. Anything unreadable counts as no data."""
        raw = self.store.get_json(self.key, default=[])
        if not isinstance(raw, list):
            logger.warning("Persisted transactions under %s are not a list, starting empty", self.key)
            return []

        try:
            return [Transaction.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Persisted transactions under %s are malformed (%s), starting empty", self.key, e)
            return []

    def _save(self) -> None:
        self.store.set_json(self.key, [t.to_dict() for t in self._transactions])

    def _next_ids(self, count: int) -> List[int]:
        """
        Millisecond timestamp ids with an index offset per batch item.

        If the clock hasn't moved past the largest existing id the base is
        bumped, so a second batch within the same millisecond never collides.
        """
        base = int(self.clock().timestamp() * 1000)
        if self._transactions:
            highest = max(t.id for t in self._transactions)
            if base <= highest:
                base = highest + 1
        return [base + index for index in range(count)]

    def add(self, draft: TransactionDraft) -> Transaction:
        return self.add_many([draft])[0]

    def add_many(self, drafts: List[TransactionDraft]) -> List[Transaction]:
        if not drafts:
            return []

        now = truncate_to_millis(self.clock())
        ids = self._next_ids(len(drafts))
        created = [
            Transaction.from_draft(draft, id=txn_id, date=now)
            for draft, txn_id in zip(drafts, ids)
        ]

        self._transactions = created + self._transactions
        self._save()
        logger.info("Added %d transaction(s)", len(created))
        return created

    def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        for txn in self._transactions:
            if txn.id == transaction_id:
                return txn
        return None

    def get_all(self) -> List[Transaction]:
        return list(self._transactions)

    def update(self, transaction_id: int, **fields: Any) -> Optional[Transaction]:
        for index, txn in enumerate(self._transactions):
            if txn.id == transaction_id:
                updated = txn.with_changes(**fields)
                self._transactions[index] = updated
                self._save()
                return updated

        logger.info("Update skipped, no transaction with id %s", transaction_id)
        return None

    def delete(self, transaction_id: int) -> Optional[Transaction]:
        removed = self.delete_many([transaction_id])
        return removed[0] if removed else None

    def delete_many(self, transaction_ids: Iterable[int]) -> List[Transaction]:
        targets = set(transaction_ids)
        removed = [t for t in self._transactions if t.id in targets]
        if not removed:
            return []

        self._transactions = [t for t in self._transactions if t.id not in targets]
        self._save()
        logger.info("Deleted %d transaction(s)", len(removed))
        return removed

    def set_type_many(
        self,
        transaction_ids: Iterable[int],
        new_type: TransactionType,
    ) -> List[Transaction]:
        targets = set(transaction_ids)
        updated = []
        for index, txn in enumerate(self._transactions):
            if txn.id in targets:
                self._transactions[index] = txn.with_changes(type=new_type)
                updated.append(self._transactions[index])

        if updated:
            self._save()
        return updated

    def clear(self) -> None:
        self._transactions = []
        self.store.remove_item(self.key)

    def replace_all(self, transactions: List[Transaction]) -> None:
        self._transactions = list(transactions)
        self._save()

    def search(self, query: str) -> List[Transaction]:
        needle = (query or "").strip().lower()
        if not needle:
            return list(self._transactions)

        return [
            t for t in self._transactions
            if needle in t.note.lower()
            or needle in t.user.lower()
            or needle in decimal_text(t.amount)
        ]
