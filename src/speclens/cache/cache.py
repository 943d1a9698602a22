"""Disk-based caching of analysis results.

Uses :mod:`diskcache` to persist :class:`~speclens.models.SpecMetrics` and
:class:`~speclens.models.OptimizationStrategy` pairs on the filesystem with
a configurable time-to-live (TTL), so re-analysing an unchanged document
skips parsing entirely.

Cache keys are SHA-256 hashes of ``format|document text`` so the same
bytes parsed under a different declared format never collide.

See Also:
    :class:`~speclens.models.CacheConfig` -- the Pydantic model that
    controls ``enabled`` and ``ttl_seconds``.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, Optional

import diskcache

from speclens.models import CacheConfig, OptimizationStrategy, SpecMetrics

logger = logging.getLogger(__name__)


class AnalysisCache:
    """Disk-backed cache for analysis results.

    Stores ``{"metrics": ..., "strategy": ...}`` dicts in a
    :class:`diskcache.Cache` directory. Entries expire after
    :attr:`~speclens.models.CacheConfig.ttl_seconds`. When the config
    disables caching every operation is a no-op.

    Args:
        cache_dir: Root directory for the cache. An ``analysis/``
            subdirectory is created inside it.
        config: Cache configuration (``enabled`` flag and ``ttl_seconds``).

    Example::

        from speclens.cache import AnalysisCache
        from speclens.models import CacheConfig

        cache = AnalysisCache("/tmp/speclens-cache", CacheConfig())
        hit = cache.get(text)
        if hit is None:
            cache.set(text, metrics, strategy)
    """

    def __init__(self, cache_dir: str | Path, config: CacheConfig) -> None:
        self._config = config
        self._cache: Optional[diskcache.Cache] = None
        self._cache_dir = Path(cache_dir)
        if config.enabled:
            self._cache = diskcache.Cache(str(self._cache_dir / "analysis"))

    def get(
        self, text: str, format: Optional[str] = None
    ) -> Optional[tuple[SpecMetrics, OptimizationStrategy]]:
        """Look up cached analysis for a document.

        Args:
            text: The raw document text.
            format: Declared format, if any, used to form the cache key.

        Returns:
            A ``(metrics, strategy)`` tuple on a cache hit, or ``None`` on a
            miss or when caching is disabled.
        """
        if self._cache is None:
            return None

        key = self._make_key(text, format)
        entry = self._cache.get(key)
        if entry is None:
            return None
        logger.debug("Analysis cache hit for %s", key[:12])
        return (
            SpecMetrics.model_validate(entry["metrics"]),
            OptimizationStrategy.model_validate(entry["strategy"]),
        )

    def set(
        self,
        text: str,
        metrics: SpecMetrics,
        strategy: OptimizationStrategy,
        format: Optional[str] = None,
    ) -> None:
        """Store the analysis of a document.

        Args:
            text: The raw document text.
            metrics: Metrics computed for the document.
            strategy: Strategy selected from *metrics*.
            format: Declared format, if any, used to form the cache key.
        """
        if self._cache is None:
            return

        key = self._make_key(text, format)
        self._cache.set(
            key,
            {
                "metrics": metrics.model_dump(mode="json"),
                "strategy": strategy.model_dump(mode="json"),
            },
            expire=self._config.ttl_seconds,
        )

    def invalidate(self, text: str, format: Optional[str] = None) -> None:
        """Remove the entry for a document, if present."""
        if self._cache is None:
            return
        self._cache.delete(self._make_key(text, format))

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
            "directory": str(self._cache_dir / "analysis"),
            "ttl_seconds": self._config.ttl_seconds,
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()

    def _make_key(self, text: str, format: Optional[str]) -> str:
        """Generate a cache key from the declared format and document text."""
        raw = f"{format or ''}|{text}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()
