"""Mapping between transactions and spreadsheet rows.

The sheet has one header row followed by data rows. Columns are located by
header name so a reordered sheet still reads correctly; a sheet whose header
carries none of the known names falls back to the fixed order below.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from office_bu.domain.enums import TransactionType
from office_bu.domain.models import Transaction, parse_timestamp, to_decimal, truncate_to_millis

COLUMNS = ("id", "type", "amount", "note", "date", "user", "quantity", "price")

POSITIONAL_INDEX: Dict[str, int] = {name: i for i, name in enumerate(COLUMNS)}

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def coerce_id(value: Any) -> Optional[int]:
    """
    Read an id cell. Sheets hand back ints, floats or strings.

    Returns:
        The integer id, or None for blank/non-numeric/fractional cells
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if number != number or not number.is_integer():
        return None
    return int(number)


def column_index(header_row: Optional[Sequence[Any]]) -> Dict[str, int]:
    """
    Locate each known column in a header row.

    Returns:
        Column name -> zero-based index
    """
    found: Dict[str, int] = {}
    for i, cell in enumerate(header_row or []):
        name = str(cell or "").strip().lower()
        if name in POSITIONAL_INDEX and name not in found:
            found[name] = i

    if not found:
        return dict(POSITIONAL_INDEX)

    # A partial header keeps positional slots for the columns it doesn't name
    for name, position in POSITIONAL_INDEX.items():
        found.setdefault(name, position)
    return found


def transaction_to_row(data: Dict[str, Any], index: Optional[Dict[str, int]] = None) -> List[Any]:
    """Lay out a transaction's JSON form as a row"""
    index = index or POSITIONAL_INDEX
    row: List[Any] = [""] * max(len(COLUMNS), max(index.values()) + 1)
    for name in COLUMNS:
        value = data.get(name, "")
        row[index[name]] = "" if value is None else value
    return row


def _cell(row: Sequence[Any], position: int) -> Any:
    return row[position] if position < len(row) else None


def _number(value: Any) -> Optional[Decimal]:
    """A numeric cell, or None when it is blank or unreadable"""
    if value is None or str(value).strip() == "":
        return None
    try:
        return to_decimal(value)
    except ValueError:
        return None


def _date(value: Any, txn_id: int) -> datetime:
    """
    A date cell. Blank or unreadable dates fall back to the time encoded in
    the id, which is a millisecond timestamp for every app-created record.
    """
    if value is not None and str(value).strip():
        try:
            return truncate_to_millis(parse_timestamp(value))
        except (TypeError, ValueError):
            pass
    try:
        return EPOCH + timedelta(milliseconds=txn_id)
    except OverflowError:
        return EPOCH


def row_to_transaction(row: Sequence[Any], index: Dict[str, int]) -> Transaction:
    """
    Parse one data row.

    Only the id and the type are required. Missing numbers are filled in
    (quantity 1, price = amount, amount = quantity * price) and a missing
    date comes from the id, so hand-edited rows still come through.

    Raises:
        ValueError: If the id isn't numeric or the type isn't a known category
    """
    txn_id = coerce_id(_cell(row, index["id"]))
    if txn_id is None:
        raise ValueError(f"Row has no numeric id: {list(row)!r}")

    txn_type = TransactionType(str(_cell(row, index["type"]) or "").strip().lower())

    quantity = _number(_cell(row, index["quantity"]))
    if quantity is None:
        quantity = Decimal(1)
    price = _number(_cell(row, index["price"]))
    amount = _number(_cell(row, index["amount"]))
    if price is None:
        price = amount / quantity if amount is not None and quantity else Decimal(0)
    if amount is None:
        amount = quantity * price

    return Transaction(
        id=txn_id,
        type=txn_type,
        quantity=quantity,
        price=price,
        amount=amount,
        user=str(_cell(row, index["user"]) or ""),
        date=_date(_cell(row, index["date"]), txn_id),
        note=str(_cell(row, index["note"]) or ""),
    )
