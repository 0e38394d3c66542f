from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from office_bu.domain.enums import TransactionType
from office_bu.domain.models import Transaction, TransactionDraft

class TransactionRepository(ABC):
    """
    Abstract repository for the transaction collection.

    The collection is ordered newest first. Every mutation is persisted
    before the method returns.
    """

    @abstractmethod
    def add(self, draft: TransactionDraft) -> Transaction:
        """
        Create a transaction from a validated draft.

        Args:
            draft: Input without id

        Returns:
            The stored transaction with id and date assigned
        """
        pass

    @abstractmethod
    def add_many(self, drafts: List[TransactionDraft]) -> List[Transaction]:
        """
        Create several transactions in one write.

        Args:
            drafts: Inputs without ids

        Returns:
            The stored transactions, in input order, each with a distinct id
        """
        pass

    @abstractmethod
    def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        """
        Retrieve a transaction by ID.

        Returns:
            Transaction if found, None otherwise
        """
        pass

    @abstractmethod
    def get_all(self) -> List[Transaction]:
        """Return the whole collection, newest first"""
        pass

    @abstractmethod
    def update(self, transaction_id: int, **fields: Any) -> Optional[Transaction]:
        """
        Replace a transaction with a new version.

        Args:
            transaction_id: ID of the record to replace
            fields: Field values to change; amount is re-derived

        Returns:
            The new version, or None if no record has that id
        """
        pass

    @abstractmethod
    def delete(self, transaction_id: int) -> Optional[Transaction]:
        """
        Delete a transaction by ID.

        Returns:
            The removed transaction, or None if it wasn't there
        """
        pass

    @abstractmethod
    def delete_many(self, transaction_ids: Iterable[int]) -> List[Transaction]:
        """
        Delete every transaction whose id is listed. Unknown ids are ignored.

        Returns:
            The removed transactions
        """
        pass

    @abstractmethod
    def set_type_many(
        self,
        transaction_ids: Iterable[int],
        new_type: TransactionType,
    ) -> List[Transaction]:
        """
        Reassign the category of every listed transaction.

        Returns:
            The updated transactions
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop the whole collection, including its persisted copy"""
        pass

    @abstractmethod
    def replace_all(self, transactions: List[Transaction]) -> None:
        """Overwrite the collection with a snapshot (no merge)"""
        pass

    @abstractmethod
    def search(self, query: str) -> List[Transaction]:
        """
        Case-insensitive substring search over note, user and amount.

        Returns:
            A new list in collection order; the collection is not touched
        """
        pass
