from datetime import datetime
from pathlib import Path
from typing import List

import pandas as pd

from office_bu.domain.models import Transaction

EXPORT_COLUMNS = ["ID", "Date", "User", "Type", "Note", "Quantity", "Price (₹)", "Amount (₹)"]


def export_filename(now: datetime) -> str:
    return f"office-bu-export-{now.date().isoformat()}.csv"


def transactions_to_frame(transactions: List[Transaction]) -> pd.DataFrame:
    """One row per transaction, formatted for people rather than machines"""
    rows = [
        [
            t.id,
            t.date.strftime("%d %b %Y, %I:%M %p"),
            t.user,
            t.type.value,
            t.note,
            t.quantity,
            f"{t.price:.2f}",
            f"{t.amount:.2f}",
        ]
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_to_csv(transactions: List[Transaction], directory: Path, now: datetime) -> Path:
    """
    Write transactions to a dated CSV file. Quotes are escaped by doubling.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(now)
    transactions_to_frame(transactions).to_csv(path, index=False, encoding="utf-8")
    return path
