"""Size and complexity measurement of a :class:`~speclens.models.UnifiedSpec`.

:func:`analyze` counts endpoints and models, measures the serialised size
of the spec, and classifies it into a :class:`~speclens.models.ComplexityTier`.
Tier thresholds are checked from the largest down; the first match wins,
which keeps the tier monotonically non-decreasing in both endpoint count
and byte size.
"""

from __future__ import annotations

from speclens.models import ComplexityTier, SpecMetrics, UnifiedSpec
from speclens.parser.resolver import compact_spec_json

MIB = 1024 * 1024

# (tier, endpoint threshold, byte threshold), largest first. A spec lands in
# the first tier where either value is strictly exceeded.
TIER_THRESHOLDS: tuple[tuple[ComplexityTier, int, int], ...] = (
    (ComplexityTier.XLARGE, 1000, 10 * MIB),
    (ComplexityTier.LARGE, 500, 5 * MIB),
    (ComplexityTier.MEDIUM, 100, 1 * MIB),
)

PER_ENDPOINT_COST_MS: dict[ComplexityTier, int] = {
    ComplexityTier.XLARGE: 50,
    ComplexityTier.LARGE: 30,
    ComplexityTier.MEDIUM: 20,
    ComplexityTier.SMALL: 20,
}
PER_MODEL_COST_MS = 10


def analyze(spec: UnifiedSpec) -> SpecMetrics:
    """Compute :class:`~speclens.models.SpecMetrics` for *spec*.

    ``total_size_bytes`` is the UTF-8 length of the spec's compact JSON
    serialisation (see :func:`~speclens.parser.resolver.compact_spec_json`),
    so the same API yields the same size whichever wire format it arrived
    in, and a schema reused many times is counted once.

    Args:
        spec: The parsed spec.

    Returns:
        Endpoint and model counts, byte size, tier and estimated time.
    """
    endpoint_count = len(spec.endpoints)
    model_count = len(spec.schemas)
    total_size = len(compact_spec_json(spec).encode("utf-8"))
    tier = classify_tier(endpoint_count, total_size)
    return SpecMetrics(
        endpoint_count=endpoint_count,
        model_count=model_count,
        total_size_bytes=total_size,
        complexity_tier=tier,
        estimated_processing_time_ms=estimate_processing_time(
            endpoint_count, model_count, tier
        ),
    )


def classify_tier(endpoint_count: int, total_size_bytes: int) -> ComplexityTier:
    """Return the tier for the given counts.

    Example::

        >>> classify_tier(501, 0)
        <ComplexityTier.LARGE: 'large'>
        >>> classify_tier(10, 2 * MIB)
        <ComplexityTier.MEDIUM: 'medium'>
    """
    for tier, max_endpoints, max_bytes in TIER_THRESHOLDS:
        if endpoint_count > max_endpoints or total_size_bytes > max_bytes:
            return tier
    return ComplexityTier.SMALL


def estimate_processing_time(
    endpoint_count: int, model_count: int, tier: ComplexityTier
) -> int:
    """Estimated processing time in milliseconds."""
    return endpoint_count * PER_ENDPOINT_COST_MS[tier] + model_count * PER_MODEL_COST_MS
