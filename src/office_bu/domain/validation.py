from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from office_bu.domain.enums import TransactionType
from office_bu.domain.models import Number, TransactionDraft, parse_timestamp, to_decimal, truncate_to_millis


class ValidationError(ValueError):
    """Raised when user input cannot become a transaction. Nothing is mutated."""
    pass


def parse_type(value: Union[str, TransactionType]) -> TransactionType:
    """Resolve a category tag, case-insensitively"""
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).strip().lower())
    except ValueError:
        available = ", ".join(t.value for t in TransactionType)
        raise ValidationError(f"Unknown type '{value}'. Available types: {available}")


def _positive(value: Optional[Number], field_name: str) -> Decimal:
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required")
    try:
        number = to_decimal(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be a number, got {value!r}")
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number


def build_draft(
    type: Union[str, TransactionType],
    price: Optional[Number],
    user: Optional[str],
    quantity: Optional[Number] = None,
    note: Optional[str] = None,
    date: Optional[Union[str, datetime]] = None,
) -> TransactionDraft:
    """
    Validate raw form input and build a draft.

    Payments always have a quantity of 1, whatever was entered.

    Args:
        type: Category tag (tea, coffee, snacks, payment)
        price: Per-unit price, or the paid total for a payment
        user: Who bought or paid; required
        quantity: Number of items; required for purchases
        note: Optional free text
        date: Optional ISO date/timestamp to backdate the entry

    Returns:
        A TransactionDraft ready for the repository

    Raises:
        ValidationError: On a missing user, non-positive numbers, an unknown
            type or an unparseable date
    """
    txn_type = parse_type(type)

    if user is None or not str(user).strip():
        raise ValidationError("user is required")

    if txn_type is TransactionType.PAYMENT:
        qty = Decimal(1)
    else:
        qty = _positive(quantity, "quantity")
    unit_price = _positive(price, "price")

    parsed_date = None
    if date is not None and date != "":
        try:
            parsed_date = truncate_to_millis(parse_timestamp(date))
        except ValueError:
            raise ValidationError(f"date must be ISO-8601, got {date!r}")

    return TransactionDraft(
        type=txn_type,
        quantity=qty,
        price=unit_price,
        user=str(user).strip(),
        note=(note or "").strip(),
        date=parsed_date,
    )
