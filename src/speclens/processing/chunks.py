"""Chunk partitioning, ordering and batching.

Endpoints and models are cut into independent chunks of at most
``chunk_size`` items. Endpoint chunks carry priority 1 and model chunks
priority 2; lower priorities run first and, within a priority, larger
chunks run first. Each chunk keeps its creation ``index`` so results can
be stitched back together in document order whatever order they ran in.
"""

from __future__ import annotations

import math
from typing import Iterator, Sequence

from speclens.models import ChunkKind, Endpoint, NamedSchema, ProcessingChunk, UnifiedSpec

DEFAULT_CHUNK_SIZE = 100
DEFAULT_MAX_PARALLEL = 4

ENDPOINT_PRIORITY = 1
MODEL_PRIORITY = 2


def named_schemas(spec: UnifiedSpec) -> list[NamedSchema]:
    """Return the spec's models as :class:`NamedSchema` items in declaration order."""
    return [NamedSchema(name=name, schema_=node) for name, node in spec.schemas.items()]


def create_chunks(
    endpoints: Sequence[Endpoint],
    models: Sequence[NamedSchema],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[ProcessingChunk]:
    """Partition *endpoints* and *models* into chunks in creation order.

    The result is a complete, disjoint cover: concatenating the items of
    every chunk (in ``index`` order) yields the endpoints followed by the
    models, each exactly once.

    Raises:
        ValueError: If *chunk_size* is not positive.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    chunks: list[ProcessingChunk] = []
    for kind, items, priority in (
        (ChunkKind.ENDPOINTS, endpoints, ENDPOINT_PRIORITY),
        (ChunkKind.MODELS, models, MODEL_PRIORITY),
    ):
        for n, start in enumerate(range(0, len(items), chunk_size)):
            part = list(items[start:start + chunk_size])
            chunks.append(
                ProcessingChunk(
                    id=f"{kind.value}-{n}",
                    index=len(chunks),
                    kind=kind,
                    items=part,
                    size=len(part),
                    priority=priority,
                )
            )
    return chunks


def order_chunks(chunks: Sequence[ProcessingChunk]) -> list[ProcessingChunk]:
    """Sort by ascending priority, then descending size. The sort is stable."""
    return sorted(chunks, key=lambda c: (c.priority, -c.size))


def batch_width(chunk_count: int, max_parallel: int = DEFAULT_MAX_PARALLEL) -> int:
    """Number of chunks to run together: ``min(max_parallel, ceil(n / 4))``.

    Never less than 1 so that a non-empty chunk list always makes progress.
    """
    return max(1, min(max_parallel, math.ceil(chunk_count / 4)))


def iter_batches(
    chunks: Sequence[ProcessingChunk], width: int
) -> Iterator[list[ProcessingChunk]]:
    """Yield consecutive slices of *chunks* of at most *width* items."""
    for start in range(0, len(chunks), width):
        yield list(chunks[start:start + width])
