from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

from office_bu.domain.enums import TransactionType

Number = Union[int, float, str, Decimal]

DEFAULT_ICON_MAPPING: Dict[str, str] = {
    TransactionType.TEA.value: "fa-mug-hot",
    TransactionType.COFFEE.value: "fa-coffee",
    TransactionType.SNACKS.value: "fa-cookie-bite",
    TransactionType.PAYMENT.value: "fa-wallet",
}


def to_decimal(value: Number) -> Decimal:
    """
    Convert a JSON/cell number to Decimal without float noise.

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    try:
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def decimal_to_json(value: Decimal) -> Union[int, float, str]:
    """
    JSON form of a Decimal that reads back to the same value.

    Integral values become ints and values a float holds exactly become
    floats. Anything with more digits than a float keeps is written as a
    plain decimal string so nothing is lost.
    """
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return decimal_text(value)


def decimal_text(value: Decimal) -> str:
    """Plain decimal string: 20.00 -> '20', 12.50 -> '12.5'"""
    return format(value.normalize(), "f")


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO-8601 timestamp. Naive values are taken as UTC.

    Raises:
        ValueError: If the string is not ISO-8601
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision so values survive an ISO round trip"""
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """ISO string with millisecond precision and a Z suffix"""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


@dataclass
class TransactionDraft:
    """User input for a transaction that has not been assigned an id yet"""
    type: TransactionType
    quantity: Decimal
    price: Decimal
    user: str
    note: str = ""
    date: Optional[datetime] = None

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.price


@dataclass
class Transaction:
    """Core domain model representing a single purchase or payment"""
    id: int
    type: TransactionType
    quantity: Decimal
    price: Decimal
    amount: Decimal
    user: str
    date: datetime
    note: str = ""

    @classmethod
    def from_draft(cls, draft: TransactionDraft, id: int, date: datetime) -> "Transaction":
        """Build a record from validated input, deriving amount"""
        return cls(
            id=id,
            type=draft.type,
            quantity=draft.quantity,
            price=draft.price,
            amount=draft.quantity * draft.price,
            user=draft.user,
            note=draft.note or "",
            date=truncate_to_millis(draft.date or date),
        )

    def with_changes(self, **changes: Any) -> "Transaction":
        """
        Return a new version of this record.

        The id never changes and amount is re-derived from quantity and price.
        """
        changes.pop("id", None)
        changes.pop("amount", None)
        if changes.get("date") is not None:
            changes["date"] = truncate_to_millis(changes["date"])
        updated = replace(self, **changes)
        updated.amount = updated.quantity * updated.price
        return updated

    @property
    def is_expense(self) -> bool:
        return self.type.is_expense

    def to_dict(self) -> Dict[str, Any]:
        """Wire/JSON form shared by local storage, backups and the webhook"""
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": decimal_to_json(self.amount),
            "note": self.note,
            "date": format_timestamp(self.date),
            "user": self.user,
            "quantity": decimal_to_json(self.quantity),
            "price": decimal_to_json(self.price),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """
        Build a record from its JSON form. The stored amount is kept as is.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a field has the wrong shape
        """
        return cls(
            id=int(data["id"]),
            type=TransactionType(data["type"]),
            quantity=to_decimal(data["quantity"]),
            price=to_decimal(data["price"]),
            amount=to_decimal(data["amount"]),
            user=str(data["user"]),
            date=parse_timestamp(data["date"]),
            note=data.get("note") or "",
        )

    def __repr__(self):
        return f"Transaction({self.id}, {self.type.value}, {self.user}, ₹{self.amount})"


@dataclass
class BackupData:
    """Snapshot of the local collection and settings"""
    version: int
    timestamp: str
    transactions: list = field(default_factory=list)
    icon_mapping: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ICON_MAPPING))
    theme: str = "matcha"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "transactions": [t.to_dict() for t in self.transactions],
            "iconMapping": dict(self.icon_mapping),
            "theme": self.theme,
        }
