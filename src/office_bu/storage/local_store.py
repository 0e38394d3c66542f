import json
from typing import Any, Optional

from office_bu.database.connection import DatabaseManager
from office_bu.logging_setup import get_logger

logger = get_logger(__name__)


class StorageKeys:
    """
    Names of the persisted keys.

    Collection keys (transactions, outbox) can be namespaced per user so
    several people can keep separate books in one store; settings and
    credentials are shared.
    """

    def __init__(self, prefix: str = "officeBuApp", user: Optional[str] = None):
        self.prefix = prefix
        self.user = user

    def _namespaced(self, name: str) -> str:
        key = f"{self.prefix}{name}"
        if self.user:
            key += f"_{self.user}"
        return key

    @property
    def transactions(self) -> str:
        return self._namespaced("Transactions")

    @property
    def outbox(self) -> str:
        return self._namespaced("Outbox")

    @property
    def outbox_seq(self) -> str:
        return self._namespaced("OutboxSeq")

    @property
    def theme(self) -> str:
        return f"{self.prefix}Theme"

    @property
    def icons(self) -> str:
        return f"{self.prefix}Icons"

    @property
    def api_key(self) -> str:
        return f"{self.prefix}ApiKey"

    @property
    def client_id(self) -> str:
        return f"{self.prefix}ClientId"

    @property
    def webhook_url(self) -> str:
        return f"{self.prefix}WebhookUrl"

    @property
    def spreadsheet_id(self) -> str:
        return f"{self.prefix}SpreadsheetId"

    @property
    def access_token(self) -> str:
        return f"{self.prefix}AccessToken"


class LocalStore:
    """
    String key/value storage on top of SQLite, the local source of truth.

    Values are stored as plain strings; the JSON helpers serialize whole
    documents. There is no partial update: every write replaces the value.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.db.initialize()

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string, or None if the key is absent"""
        cursor = self.db.get_connection().execute(
            "SELECT value FROM local_storage WHERE key = ?",
            (key,)
        )
        row = cursor.fetchone()
        return None if row is None else row["value"]

    def set_item(self, key: str, value: str) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO local_storage (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value),
            )

    def remove_item(self, key: str) -> None:
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))

    def get_json(self, key: str, default: Any = None) -> Any:
        """
        Load a JSON document.

        Missing or unparseable values return `default`; corrupt data is
        logged and otherwise treated as absent.
        """
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring malformed value under %s: %s", key, e)
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))
