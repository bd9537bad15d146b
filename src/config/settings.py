"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# This class uses pydantic-settings to automatically read configuration
# from TWO sources (in priority order):
#
#   1. **Environment variables** — e.g., LOCAL_STORE_PATH=data/ganjeh.db
#      (highest priority, always wins)
#   2. **.env file** — key=value lines in the project root .env file
#      (lower priority, used for local development)
#
# The mapping is automatic: field name `local_store_path` maps to env var
# `LOCAL_STORE_PATH` (pydantic-settings uppercases and matches).
#
# An empty `local_store_path` means "no Local Store configured": browsing
# still works (everything comes from the Remote Archive) but search answers
# 503 and the import CLI refuses to run.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Ganjeh application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Remote Archive (Ganjoor REST API) ===
    remote_archive_base_url: str = "https://api.ganjoor.net/api/ganjoor"
    remote_archive_timeout: float = 15.0  # seconds per HTTP request

    # === Local Store (SQLite mirror) ===
    local_store_path: str = "data/ganjeh.db"
    # The web process opens the store read-only; the import CLI ignores
    # this flag and always opens it privileged.
    local_store_read_only: bool = True
    local_store_timeout: float = 2.0  # bound on the has_poet probe

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def local_store_configured(self) -> bool:
        """``True`` when a Local Store path has been set."""
        return bool(self.local_store_path.strip())
