"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY (Junior Developer Guide) ──────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  — Policy defaults checked into the repo
#                            (search fallback limits, import tiers)
#   2. .env file           — Local developer overrides (not committed)
#   3. Environment vars    — Set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the
# environment-based Settings values on top, so connection details always
# come from the environment while policy lives in version control.
# ──────────────────────────────────────────────────────────────────────
"""

import copy
from pathlib import Path

import yaml

from src.config.settings import Settings

# Built-in policy used when config.yaml is missing or omits a key.
DEFAULT_POLICY: dict = {
    "search": {
        "fallback_max_categories": 20,
        "fallback_scan_concurrency": 1,
        "min_query_length": 2,
        "max_limit": 100,
    },
    "import": {
        "full_poet_ids": [2, 7, 5, 4, 9, 6, 3, 1, 11, 8, 26, 10, 25, 12, 13],
        "preview_poet_count": 10,
        "preview_max_categories": 3,
        "batch_size": 50,
        "delay_seconds": 0.1,
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Already-built Settings; a fresh one is created when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config: dict = {}
    _deep_merge(config, copy.deepcopy(DEFAULT_POLICY))

    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    if settings is None:
        settings = Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "remote_archive": {
            "base_url": settings.remote_archive_base_url,
            "timeout": settings.remote_archive_timeout,
        },
        "local_store": {
            "path": settings.local_store_path,
            "read_only": settings.local_store_read_only,
            "timeout": settings.local_store_timeout,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value

