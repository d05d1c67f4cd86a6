"""Disk-based caching of spec documents fetched over HTTP.

Uses :mod:`diskcache` to persist the text of remote specs with a
configurable time-to-live (TTL).  Local files and stdin are never cached.

Cache keys are SHA-256 hashes of the source URL.

See Also:
    :class:`~specgate.models.CacheConfig` -- the Pydantic model that
    controls ``enabled`` and ``ttl_seconds``.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Optional

import diskcache

from specgate.models import CacheConfig


class SpecCache:
    """Disk-backed cache for remote spec text.

    Stores ``{"text": ..., "hint": ...}`` dicts in a :class:`diskcache.Cache`
    directory, where ``hint`` is the format hint
    derived from the response content type (``"json"``, ``"yaml"`` or ``""``).

    Args:
        cache_dir: Root directory for the cache.  A ``specs/``
            subdirectory is created inside it.
        config: Cache configuration (``enabled`` flag and ``ttl_seconds``).

    Example::

        from specgate.cache import SpecCache
        from specgate.models import CacheConfig

        cache = SpecCache("/tmp/specgate-cache", CacheConfig(ttl_seconds=60))
        cache.set("https://example.com/openapi.yaml", {"text": "...", "hint": "yaml"})
        hit = cache.get("https://example.com/openapi.yaml")
    """

    def __init__(self, cache_dir: str | Path, config: CacheConfig) -> None:
        self._config = config
        self._cache: Optional[diskcache.Cache] = None
        self._cache_dir = Path(cache_dir)
        if config.enabled:
            self._cache = diskcache.Cache(str(self._cache_dir / "specs"))

    def get(self, url: str) -> Optional[dict[str, str]]:
        """Look up cached spec text for *url*.

        Returns:
            The stored dict on a hit, or ``None`` on a miss or when caching
            is disabled.
        """
        if self._cache is None:
            return None
        return self._cache.get(self._make_key(url))

    def set(self, url: str, entry: dict[str, str]) -> None:
        """Store fetched spec text for *url*; a no-op when caching is disabled."""
        if self._cache is None:
            return
        self._cache.set(self._make_key(url), entry, expire=self._config.ttl_seconds)

    def invalidate(self, url: str) -> None:
        """Remove the entry for *url*, if any."""
        if self._cache is None:
            return
        self._cache.delete(self._make_key(url))

    def clear(self) -> None:
        """Remove all entries from the cache."""
        if self._cache is not None:
            self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``enabled`` (bool), and when enabled:
            ``size`` (number of entries), ``directory`` (str path), and
            ``ttl_seconds`` (int).
        """
        if self._cache is None:
            return {"enabled": False}
        return {
            "enabled": True,
            "size": len(self._cache),
            "directory": str(self._cache_dir / "specs"),
            "ttl_seconds": self._config.ttl_seconds,
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        if self._cache is not None:
            self._cache.close()

    @staticmethod
    def _make_key(url: str) -> str:
        return hashlib.sha256(url.encode()).hexdigest()
