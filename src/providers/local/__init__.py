"""Local Store provider implementations.

    SQLiteLocalStore — aiosqlite-backed mirror of the imported poets.
"""

from src.providers.local.sqlite_local_store import SQLiteLocalStore

__all__ = ["SQLiteLocalStore"]
