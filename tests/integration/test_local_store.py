import pytest

from office_bu.domain.enums import ThemeType
from office_bu.services.settings import SettingsStore, SyncSettings
from office_bu.storage.local_store import LocalStore, StorageKeys


@pytest.mark.integration
class TestLocalStore:

    def test_set_get_remove(self, store):
        store.set_item("k", "v1")
        store.set_item("k", "v2")

        assert store.get_item("k") == "v2"
        store.remove_item("k")
        assert store.get_item("k") is None

    def test_json_round_trip_keeps_unicode(self, store):
        store.set_json("doc", {"note": "chai ☕", "n": [1, 2]})

        assert store.get_json("doc") == {"note": "chai ☕", "n": [1, 2]}

    def test_corrupt_json_returns_default(self, store):
        store.set_item("doc", "{")

        assert store.get_json("doc", default=[]) == []

    def test_values_survive_reopening(self, db_manager, store):
        store.set_item("k", "v")
        db_manager.close()

        assert LocalStore(db_manager).get_item("k") == "v"

    def test_storage_key_names(self):
        keys = StorageKeys(user="dan")

        assert keys.transactions == "officeBuAppTransactions_dan"
        assert keys.outbox == "officeBuAppOutbox_dan"
        assert keys.theme == "officeBuAppTheme"
        assert keys.webhook_url == "officeBuAppWebhookUrl"


@pytest.mark.integration
class TestSettingsStore:

    def test_defaults_when_nothing_saved(self, store, keys):
        state = SettingsStore(store, keys).load()

        assert state.theme is ThemeType.MATCHA
        assert state.icon_mapping["tea"] == "fa-mug-hot"
        assert not state.sync.can_write

    def test_saved_settings_load_back(self, store, keys):
        settings = SettingsStore(store, keys)
        settings.save_theme(ThemeType.HIBISCUS)
        settings.save_icons({"tea": "fa-leaf"})
        settings.save_sync_settings(SyncSettings(webhook_url="https://hook", spreadsheet_id="s1"))

        state = settings.load()

        assert state.theme is ThemeType.HIBISCUS
        assert state.icon_mapping["tea"] == "fa-leaf"
        assert state.icon_mapping["coffee"] == "fa-coffee"
        assert state.sync.webhook_url == "https://hook"
        assert state.sync.api_key is None

    def test_cleared_credentials_are_removed(self, store, keys):
        settings = SettingsStore(store, keys)
        settings.save_sync_settings(SyncSettings(api_key="k"))
        settings.save_sync_settings(SyncSettings())

        assert store.get_item(keys.api_key) is None

    def test_unknown_theme_falls_back(self, store, keys):
        store.set_item(keys.theme, "neon")

        assert SettingsStore(store, keys).load().theme is ThemeType.MATCHA
