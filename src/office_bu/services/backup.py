"""Backup files: a JSON snapshot of the collection and display settings.

Restoring replaces local state wholesale; nothing is merged.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List

from office_bu.domain.enums import ThemeType
from office_bu.domain.models import BackupData, Transaction, format_timestamp
from office_bu.logging_setup import get_logger

logger = get_logger(__name__)

BACKUP_VERSION = 1


class BackupError(ValueError):
    """Raised when a backup file can't be read or is missing required data."""
    pass


def create_backup_data(
    transactions: List[Transaction],
    icon_mapping: Dict[str, str],
    theme: ThemeType,
    now: datetime,
) -> BackupData:
    """Package the current application state"""
    return BackupData(
        version=BACKUP_VERSION,
        timestamp=format_timestamp(now),
        transactions=list(transactions),
        icon_mapping=dict(icon_mapping),
        theme=theme.value,
    )


def backup_filename(now: datetime) -> str:
    return f"office-bu-backup-{now.date().isoformat()}.json"


def write_backup_file(data: BackupData, directory: Path, now: datetime) -> Path:
    """
    Write a backup into a directory.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / backup_filename(now)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info("Wrote backup with %d transaction(s) to %s", len(data.transactions), path)
    return path


def parse_backup_file(path: Path) -> BackupData:
    """
    Read and validate a backup file.

    Raises:
        BackupError: If the file is unreadable, not JSON, or lacks the
            transactions or icon settings
    """
    try:
        with open(path, encoding="utf-8") as f:
            parsed = json.load(f)
    except OSError as e:
        raise BackupError(f"Failed to read file: {e}")
    except json.JSONDecodeError as e:
        raise BackupError(f"Invalid backup file: {e}")

    if not isinstance(parsed, dict):
        raise BackupError("Invalid backup file: Expected a JSON object.")
    if not isinstance(parsed.get("transactions"), list):
        raise BackupError("Invalid backup file: Missing transaction data.")
    if not isinstance(parsed.get("iconMapping"), dict):
        raise BackupError("Invalid backup file: Missing icon settings.")

    try:
        transactions = [Transaction.from_dict(item) for item in parsed["transactions"]]
    except (KeyError, TypeError, ValueError) as e:
        raise BackupError(f"Invalid backup file: Malformed transaction ({e}).")

    theme = parsed.get("theme") or ThemeType.MATCHA.value
    if theme not in {t.value for t in ThemeType}:
        logger.warning("Backup has unknown theme %r, using matcha", theme)
        theme = ThemeType.MATCHA.value

    return BackupData(
        version=int(parsed.get("version", BACKUP_VERSION)),
        timestamp=str(parsed.get("timestamp", "")),
        transactions=transactions,
        icon_mapping=dict(parsed["iconMapping"]),
        theme=theme,
    )
