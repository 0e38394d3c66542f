"""
Service layer models - DTOs for service operations.

These models represent the results of service operations, not domain entities.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from office_bu.domain.enums import TransactionType
from office_bu.domain.models import Transaction


@dataclass
class SyncResult:
    """
    What happened to the remote mirror after a change.

    A skipped sync (no webhook configured, auto-sync off) is not a failure.
    """
    sent: int = 0
    remaining: int = 0
    error: Optional[str] = None
    skipped_reason: Optional[str] = None

    @classmethod
    def skipped(cls, reason: str, remaining: int = 0) -> "SyncResult":
        return cls(remaining=remaining, skipped_reason=reason)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def attempted(self) -> bool:
        return self.skipped_reason is None

    def __str__(self) -> str:
        if self.error:
            return f"Sync failed: {self.error} ({self.remaining} change(s) pending)"
        if self.skipped_reason:
            return f"Sync skipped: {self.skipped_reason}"
        return f"Synced {self.sent} change(s)"


@dataclass
class ChangeResult:
    """Records touched by a local mutation plus the outcome of mirroring it"""
    transactions: List[Transaction] = field(default_factory=list)
    sync: SyncResult = field(default_factory=lambda: SyncResult.skipped("nothing changed"))

    @property
    def changed(self) -> bool:
        return bool(self.transactions)

    @property
    def count(self) -> int:
        return len(self.transactions)


@dataclass
class BalanceSummary:
    """
    Running balance of the office kitty.

    Purchases (tea, coffee, snacks) add to what is owed, payments settle it.
    """

    expenses: List[Transaction] = field(default_factory=list)
    payments: List[Transaction] = field(default_factory=list)
    user: Optional[str] = None

    @classmethod
    def from_transactions(cls, transactions: List[Transaction], user: Optional[str] = None) -> "BalanceSummary":
        if user:
            wanted = user.strip().lower()
            transactions = [t for t in transactions if t.user.lower() == wanted]
        return cls(
            expenses=[t for t in transactions if t.is_expense],
            payments=[t for t in transactions if not t.is_expense],
            user=user,
        )

    @property
    def total_spent(self) -> Decimal:
        """Total cost of purchases"""
        return sum((t.amount for t in self.expenses), Decimal(0))

    @property
    def total_paid(self) -> Decimal:
        """Total settled through payments"""
        return sum((t.amount for t in self.payments), Decimal(0))

    @property
    def balance(self) -> Decimal:
        """Outstanding amount (spent - paid)"""
        return self.total_spent - self.total_paid

    @property
    def total_transactions(self) -> int:
        return len(self.expenses) + len(self.payments)

    @property
    def total_quantity(self) -> Decimal:
        """Number of items purchased"""
        return sum((t.quantity for t in self.expenses), Decimal(0))

    @property
    def spent_by_category(self) -> Dict[TransactionType, Decimal]:
        """Purchase totals per category, categories with no spending omitted"""
        totals = defaultdict(Decimal)
        for txn in self.expenses:
            totals[txn.type] += txn.amount
        return {k: v for k, v in totals.items() if v > 0}

    @property
    def spent_by_user(self) -> Dict[str, Decimal]:
        totals = defaultdict(Decimal)
        for txn in self.expenses:
            totals[txn.user] += txn.amount
        return dict(totals)

    @property
    def paid_by_user(self) -> Dict[str, Decimal]:
        totals = defaultdict(Decimal)
        for txn in self.payments:
            totals[txn.user] += txn.amount
        return dict(totals)

    def __str__(self) -> str:
        """Human-readable summary"""
        lines = [
            f"Net balance: ₹{self.balance:,.2f}",
            f"  Spent: ₹{self.total_spent:,.2f} ({len(self.expenses)} purchases)",
            f"  Paid:  ₹{self.total_paid:,.2f} ({len(self.payments)} payments)",
        ]
        return "\n".join(lines)
