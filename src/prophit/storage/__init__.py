"""Persistence for markets, price history and movements."""

from prophit.storage.backends import DuckDBStorage, MemoryStorage, open_storage
from prophit.storage.base import Storage

__all__ = ["DuckDBStorage", "MemoryStorage", "Storage", "open_storage"]
