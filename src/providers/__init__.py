"""Concrete adapters for the two data-source interfaces.

    remote/  — GanjoorAPIProvider (IRemoteArchiveProvider over httpx)
    local/   — SQLiteLocalStore (ILocalStoreProvider over aiosqlite)
"""
