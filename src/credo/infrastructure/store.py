"""
Key-value store adapters.

Implements KeyValueStore with a single JSON document on disk (JsonFileStore)
or a plain dict (MemoryStore). Both scope keys under a namespace prefix so
exports contain only this application's entries.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from credo.domain.constants import DEFAULT_NAMESPACE
from credo.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


class MemoryStore(KeyValueStore):
    """Process-local store. Values are JSON round-tripped to mimic persistence."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE, data: dict[str, Any] | None = None):
        self.namespace = namespace
        self._data: dict[str, str] = {}
        for key, value in (data or {}).items():
            self._data[key] = json.dumps(value)

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(self.namespace + key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"[store] Unreadable value for {key}, using default")
            return default

    def set(self, key: str, value: Any) -> None:
        self._data[self.namespace + key] = json.dumps(value)

    def export_all(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for full_key, raw in self._data.items():
            if full_key.startswith(self.namespace):
                data[full_key] = json.loads(raw)
        return data

    def import_all(self, data: dict[str, Any]) -> None:
        for full_key, value in data.items():
            self._data[full_key] = json.dumps(value)


class JsonFileStore(KeyValueStore):
    """
    Durable store backed by one JSON file.

    The whole document is cached in memory and rewritten atomically on every
    set(). If the file is missing or corrupt the store starts empty; if a
    write fails the error is logged and the in-memory copy is kept.
    """

    def __init__(self, path: Path, namespace: str = DEFAULT_NAMESPACE):
        self.path = path
        self.namespace = namespace
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[store] Could not read {self.path}: {e}. Starting empty.")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"[store] {self.path} is not a JSON object. Starting empty.")
            return {}
        return data

    def _flush(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".credo-", suffix=".json"
            )
        except OSError as e:
            logger.error(f"[store] Failed to write {self.path}: {e}")
            return
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error(f"[store] Failed to write {self.path}: {e}")
            Path(tmp_name).unlink(missing_ok=True)

    def get(self, key: str, default: Any = None) -> Any:
        value = self._data.get(self.namespace + key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        self._data[self.namespace + key] = value
        self._flush()

    def export_all(self) -> dict[str, Any]:
        return {k: v for k, v in self._data.items() if k.startswith(self.namespace)}

    def import_all(self, data: dict[str, Any]) -> None:
        self._data.update(data)
        self._flush()
