"""
Ports (interfaces) for persistence.

The application layer depends on this abstraction, not on a concrete store.
"""

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """
    Durable map of JSON-serializable values, scoped under a namespace prefix.

    Implementations:
        - JsonFileStore: a single JSON document on disk.
        - MemoryStore: process-local dict, used in tests.

    Writes are last-write-wins and synchronous; no transactions.
    """

    namespace: str

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Return the value stored under ``namespace + key``.

        Missing or unreadable values fall back to ``default`` instead of raising.
        """

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Store ``value`` under ``namespace + key``.

        Write failures are logged, not raised; the caller's in-memory copy
        stays authoritative for the session.
        """

    @abstractmethod
    def export_all(self) -> dict[str, Any]:
        """Return every namespaced entry, keyed by its full (prefixed) key."""

    @abstractmethod
    def import_all(self, data: dict[str, Any]) -> None:
        """Write each entry of ``data`` back verbatim under its full key."""
