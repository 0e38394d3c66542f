import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from office_bu.database.connection import DatabaseConfig, DatabaseManager
from office_bu.domain.enums import TransactionType
from office_bu.domain.models import Transaction, TransactionDraft
from office_bu.storage.local_store import LocalStore, StorageKeys


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc))


@pytest.fixture
def db_manager(tmp_path):
    """Real SQLite file in pytest's tmp_path, closed after each test"""
    manager = DatabaseManager(DatabaseConfig(tmp_path / "office_bu.db"))
    yield manager
    manager.close()


@pytest.fixture
def store(db_manager) -> LocalStore:
    return LocalStore(db_manager)


@pytest.fixture
def keys() -> StorageKeys:
    return StorageKeys()


@pytest.fixture
def tea_draft() -> TransactionDraft:
    return TransactionDraft(
        type=TransactionType.TEA,
        quantity=Decimal("2"),
        price=Decimal("10"),
        user="Alice",
        note="Morning chai",
    )


@pytest.fixture
def sample_transactions() -> List[Transaction]:
    """Newest first, like the collection"""
    return [
        Transaction(
            id=1736937000300,
            type=TransactionType.PAYMENT,
            quantity=Decimal("1"),
            price=Decimal("100"),
            amount=Decimal("100"),
            user="Bob",
            date=datetime(2025, 1, 15, 11, 0, tzinfo=timezone.utc),
            note="Settled",
        ),
        Transaction(
            id=1736937000200,
            type=TransactionType.SNACKS,
            quantity=Decimal("3"),
            price=Decimal("12.5"),
            amount=Decimal("37.5"),
            user="Carol",
            date=datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc),
            note="Samosa",
        ),
        Transaction(
            id=1736937000100,
            type=TransactionType.TEA,
            quantity=Decimal("2"),
            price=Decimal("10"),
            amount=Decimal("20"),
            user="Alice",
            date=datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc),
            note="Morning chai",
        ),
    ]
