"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Auction records and the id counter
- Capability grants
- Mock engine ciphertexts
"""

from cipherbid.core.storage.sqlite_adapter import SQLiteAdapter
from cipherbid.core.storage.storage_manager import StorageManager

__all__ = ["SQLiteAdapter", "StorageManager"]
