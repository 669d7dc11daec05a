# Infrastructure Store Adapters Package
from .store import JsonFileStore, MemoryStore

__all__ = ["JsonFileStore", "MemoryStore"]
