"""Select an :class:`~speclens.models.OptimizationStrategy` from metrics.

:func:`select_strategy` is a pure function of
:class:`~speclens.models.SpecMetrics`: it reads nothing else and never
raises, so its threshold boundaries can be tested exhaustively from a
table.
"""

from __future__ import annotations

from speclens.models import ComplexityTier, OptimizationStrategy, SpecMetrics

LARGE_SPEC_ENDPOINTS = 500
CACHING_ENDPOINTS = 200


def select_strategy(metrics: SpecMetrics) -> OptimizationStrategy:
    """Choose processing switches for a spec of the given size.

    =================  ==========================================
    switch             enabled when
    =================  ==========================================
    chunking           more than 500 endpoints
    streaming          tier is ``xlarge``
    caching            more than 200 endpoints
    parallelization    more than 500 endpoints
    compression        tier is ``large`` or ``xlarge``
    indexing           more than 500 endpoints
    =================  ==========================================
    """
    large = metrics.endpoint_count > LARGE_SPEC_ENDPOINTS
    tier = metrics.complexity_tier
    return OptimizationStrategy(
        chunking=large,
        streaming=tier == ComplexityTier.XLARGE,
        caching=metrics.endpoint_count > CACHING_ENDPOINTS,
        parallelization=large,
        compression=tier in (ComplexityTier.LARGE, ComplexityTier.XLARGE),
        indexing=large,
    )
