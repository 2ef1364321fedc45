"""On-disk cache for slow-changing provider reference data."""

import os
from datetime import datetime, timezone
from typing import Any

import diskcache


class ResponseCache:
    """
    Cache stores decoded JSON payloads keyed by canonical request URL.

    Only reference data that changes slowly (ticker maps, series metadata)
    goes through here; per-company research is always fetched live.
    """

    def __init__(self, cache_dir: str | None = None):
        if cache_dir is None:
            cache_dir = os.environ.get("CACHE_DIR", ".cache/vendor-risk")
        self.cache: diskcache.Cache = diskcache.Cache(cache_dir)
        self._default_ttl = int(os.environ.get("CACHE_TTL", "86400"))  # 1 day

    def set(self, key: str, payload: Any, ttl: int | None = None) -> None:
        """
        Store a payload with its fetch time.

        Args:
            key: Canonical request key
            payload: Decoded JSON payload
            ttl: Cache TTL in seconds (default: CACHE_TTL)
        """
        entry: dict[str, Any] = {
            "payload": payload,
            "stored_at": datetime.now(timezone.utc).isoformat(),
        }
        expire = ttl if ttl is not None else self._default_ttl
        self.cache.set(key, entry, expire=expire)

    def get(self, key: str) -> Any | None:
        """Get a cached payload, or None if absent or expired."""
        entry = self.cache.get(key)
        if not entry:
            return None
        return entry["payload"]

    def get_metadata(self, key: str) -> dict[str, Any] | None:
        """Get cache metadata without the payload."""
        entry = self.cache.get(key)
        if not entry:
            return None
        return {"stored_at": entry["stored_at"]}

    def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        return key in self.cache

    def clear(self) -> None:
        """Drop every cached entry."""
        self.cache.clear()


# Global cache instance
response_cache = ResponseCache()
