"""
Backup export/import.

Export dumps every namespaced store entry into one JSON object. Import
writes each entry back verbatim; derived in-memory state must be reloaded
afterwards.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from credo.domain.exceptions import BackupError
from credo.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


def backup_filename(day: date | None = None) -> str:
    day = day or date.today()
    return f"credo-mastery-backup-{day.isoformat()}.json"


def export_data(store: KeyValueStore) -> dict[str, Any]:
    return store.export_all()


def export_to_file(store: KeyValueStore, target: Path) -> Path:
    """Write the backup to ``target`` (a file, or a directory to hold the dated file)."""
    if target.is_dir():
        target = target / backup_filename()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(export_data(store), indent=2), encoding="utf-8")
    except OSError as e:
        raise BackupError(f"Cannot write backup {target}: {e}") from e
    logger.info(f"Exported backup to {target}")
    return target


def parse_backup(raw: str | bytes) -> dict[str, Any]:
    """
    Parse backup text. Bytes must be valid UTF-8.

    Raises:
        BackupError: If the text is not UTF-8 JSON or not a JSON object.
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
    except UnicodeDecodeError as e:
        raise BackupError(f"Invalid backup file: not UTF-8 text ({e})") from e
    except json.JSONDecodeError as e:
        raise BackupError(f"Invalid backup file: {e}") from e
    if not isinstance(data, dict):
        raise BackupError("Invalid backup file: expected a JSON object")
    return data


def import_data(store: KeyValueStore, raw: str | bytes) -> int:
    """
    Parse ``raw`` and write every key back into the store.

    Nothing is written unless the whole document parses. Returns the number
    of keys imported.
    """
    data = parse_backup(raw)
    store.import_all(data)
    logger.info(f"Imported {len(data)} keys from backup")
    return len(data)


def import_from_file(store: KeyValueStore, source: Path) -> int:
    try:
        raw = source.read_bytes()
    except OSError as e:
        raise BackupError(f"Cannot read backup {source}: {e}") from e
    return import_data(store, raw)
