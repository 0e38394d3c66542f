"""
Mirroring of the local collection to a Google Sheet.

- WebhookClient: write path, one action-tagged POST per change
- SyncOutbox: ordered, persisted queue feeding the write path
- SheetsReader: read path, full snapshot of the sheet
"""
from office_bu.sync.errors import SyncError
from office_bu.sync.outbox import FlushResult, SyncIntent, SyncOutbox
from office_bu.sync.sheets_reader import SheetsReader, parse_rows
from office_bu.sync.webhook import WebhookClient, build_payload

__all__ = [
    "FlushResult",
    "SheetsReader",
    "SyncError",
    "SyncIntent",
    "SyncOutbox",
    "WebhookClient",
    "build_payload",
    "parse_rows",
]
