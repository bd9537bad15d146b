"""Public interface definitions for the two data sources.

Both tiers of the archive are accessed exclusively through the abstract
base classes defined in this package.  Concrete adapters implement these
interfaces and are injected at runtime, following the adapter pattern.

ADAPTER PATTERN EXPLAINED (for junior developers):
    The resolver never calls ``httpx`` or ``aiosqlite`` directly.  It calls
    ``remote.get_poet(...)`` / ``local.has_poet(...)`` on whatever object
    implements the interface.  This means:
        - Unit tests inject an ``AsyncMock`` or a fake provider instead of
          hitting the real Ganjoor API.
        - Swapping SQLite for another store touches one file plus the wiring
          in ``src/main.py``.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementation (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IRemoteArchiveProvider     →  GanjoorAPIProvider
    ILocalStoreProvider        →  SQLiteLocalStore
"""

from src.interfaces.local_store_provider import ILocalStoreProvider
from src.interfaces.remote_archive_provider import IRemoteArchiveProvider

__all__ = [
    "ILocalStoreProvider",
    "IRemoteArchiveProvider",
]
