"""Remote Archive provider implementations.

    GanjoorAPIProvider — the public Ganjoor REST API
    (https://api.ganjoor.net/api/ganjoor).  No authentication; the service
    is slow and rate-limited, so callers bound their fan-out.
"""

from src.providers.remote.ganjoor_api_provider import GanjoorAPIProvider

__all__ = ["GanjoorAPIProvider"]
