"""
Spreadsheet side of the sync: the action handler that applies webhook
payloads to a row store, and the sheets it can apply them to.

Quick Start:
    >>> from office_bu.sheets import InMemorySheet, SpreadsheetActionHandler
    >>>
    >>> handler = SpreadsheetActionHandler(lambda: InMemorySheet())
    >>> handler.handle({"action": "clear"})
    {'status': 'success', 'message': 'Cleared'}
"""
from office_bu.sheets.backends import InMemorySheet, Sheet, SheetNotFoundError, WorkbookSheet
from office_bu.sheets.handler import SpreadsheetActionHandler

__all__ = [
    "InMemorySheet",
    "Sheet",
    "SheetNotFoundError",
    "SpreadsheetActionHandler",
    "WorkbookSheet",
]
