from dataclasses import dataclass, field
from typing import Dict, Optional

from office_bu.domain.enums import SyncStatus, ThemeType
from office_bu.domain.models import DEFAULT_ICON_MAPPING
from office_bu.logging_setup import get_logger
from office_bu.storage.local_store import LocalStore, StorageKeys

logger = get_logger(__name__)


@dataclass
class SyncSettings:
    """Remote sync credentials. Stored in plaintext in the local store."""
    api_key: Optional[str] = None
    client_id: Optional[str] = None
    webhook_url: Optional[str] = None
    spreadsheet_id: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def can_write(self) -> bool:
        return bool(self.webhook_url)

    @property
    def can_read(self) -> bool:
        return bool(self.spreadsheet_id) and bool(self.api_key or self.access_token)


@dataclass
class AppState:
    """Everything the controller owns besides the transaction collection"""
    theme: ThemeType = ThemeType.MATCHA
    icon_mapping: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ICON_MAPPING))
    sync: SyncSettings = field(default_factory=SyncSettings)
    sync_status: SyncStatus = SyncStatus.OFFLINE
    last_error: Optional[str] = None
    last_message: Optional[str] = None


class SettingsStore:
    """
    Load/save boundary between AppState and the local store.

    Nothing is written implicitly: callers save the part they changed.
    """

    def __init__(self, store: LocalStore, keys: StorageKeys):
        self.store = store
        self.keys = keys

    def load(self) -> AppState:
        return AppState(
            theme=self._load_theme(),
            icon_mapping=self._load_icons(),
            sync=SyncSettings(
                api_key=self.store.get_item(self.keys.api_key),
                client_id=self.store.get_item(self.keys.client_id),
                webhook_url=self.store.get_item(self.keys.webhook_url),
                spreadsheet_id=self.store.get_item(self.keys.spreadsheet_id),
                access_token=self.store.get_item(self.keys.access_token),
            ),
        )

    def _load_theme(self) -> ThemeType:
        raw = self.store.get_item(self.keys.theme)
        if raw is None:
            return ThemeType.MATCHA
        try:
            return ThemeType(raw)
        except ValueError:
            logger.warning("Unknown stored theme %r, using matcha", raw)
            return ThemeType.MATCHA

    def _load_icons(self) -> Dict[str, str]:
        icons = dict(DEFAULT_ICON_MAPPING)
        saved = self.store.get_json(self.keys.icons, default={})
        if not isinstance(saved, dict):
            logger.warning("Stored icon mapping is not an object, using defaults")
            return icons

        for key, icon in saved.items():
            if key in icons and isinstance(icon, str) and icon:
                icons[key] = icon
        return icons

    def save_theme(self, theme: ThemeType) -> None:
        self.store.set_item(self.keys.theme, theme.value)

    def save_icons(self, icon_mapping: Dict[str, str]) -> None:
        self.store.set_json(self.keys.icons, icon_mapping)

    def save_sync_settings(self, settings: SyncSettings) -> None:
        for key, value in (
            (self.keys.api_key, settings.api_key),
            (self.keys.client_id, settings.client_id),
            (self.keys.webhook_url, settings.webhook_url),
            (self.keys.spreadsheet_id, settings.spreadsheet_id),
            (self.keys.access_token, settings.access_token),
        ):
            if value:
                self.store.set_item(key, value)
            else:
                self.store.remove_item(key)
