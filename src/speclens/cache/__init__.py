"""Disk-based analysis caching for speclens.

This package provides :class:`AnalysisCache`, which stores the metrics and
strategy computed for a document to disk using :mod:`diskcache`. Entries
are keyed by a hash of the document text with a configurable TTL.

The cache is consumed by the ``speclens analyze`` command and is controlled
by the ``cache`` section of the global configuration
(:class:`~speclens.models.CacheConfig`).
"""

from speclens.cache.cache import AnalysisCache

__all__ = ["AnalysisCache"]
