from dataclasses import dataclass
from pathlib import Path
import json
from typing import Dict, Any, Optional

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (in project root, gitignored)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
USER_CONFIG_DIR = PROJECT_ROOT / "config"

class ConfigLoader:
    """Load configuration with user overrides"""

    @staticmethod
    def load_config(config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'app.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = USER_CONFIG_DIR / config_name
        if user_config_path.exists():
            with open(user_config_path) as f:
                return json.load(f)
            
        default_config_path = PACKAGE_CONFIG_DIR / config_name
        if default_config_path.exists():
            with open(default_config_path) as f:
                return json.load(f)
            
        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @staticmethod
    def load_app_config() -> "AppConfig":
        """Load the application configuration"""
        return AppConfig.from_dict(ConfigLoader.load_config('app.json'))


@dataclass
class AppConfig:
    """Runtime settings that are not user data (those live in the local store)"""
    db_path: Path = Path("data/office_bu.db")
    key_prefix: str = "officeBuApp"
    sheet_name: str = "Transactions"
    timeout_seconds: float = 15
    auto_flush: bool = True

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> "AppConfig":
        """Build from the nested JSON layout, missing keys keep their defaults"""
        config = config or {}
        storage = config.get("storage", {})
        sheets = config.get("sheets", {})
        sync = config.get("sync", {})
        defaults = cls()

        return cls(
            db_path=Path(storage.get("db_path", defaults.db_path)),
            key_prefix=storage.get("key_prefix", defaults.key_prefix),
            sheet_name=sheets.get("sheet_name", defaults.sheet_name),
            timeout_seconds=float(sheets.get("timeout_seconds", defaults.timeout_seconds)),
            auto_flush=bool(sync.get("auto_flush", defaults.auto_flush)),
        )
