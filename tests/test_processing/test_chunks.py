"""Tests for speclens.processing.chunks."""

from __future__ import annotations

import pytest

from speclens.models import ChunkKind, NamedSchema, SchemaNode
from speclens.processing.chunks import (
    batch_width,
    create_chunks,
    iter_batches,
    named_schemas,
    order_chunks,
)


@pytest.fixture
def items(spec_factory):
    spec = spec_factory(250, 30)
    return spec.endpoints, named_schemas(spec)


class TestCreateChunks:
    def test_sizes_ids_and_priorities(self, items) -> None:
        endpoints, models = items
        chunks = create_chunks(endpoints, models, chunk_size=100)
        assert [(c.id, c.index, c.size, c.priority) for c in chunks] == [
            ("endpoints-0", 0, 100, 1),
            ("endpoints-1", 1, 100, 1),
            ("endpoints-2", 2, 50, 1),
            ("models-0", 3, 30, 2),
        ]
        assert [c.kind for c in chunks] == [ChunkKind.ENDPOINTS] * 3 + [ChunkKind.MODELS]

    @pytest.mark.parametrize("chunk_size", [1, 7, 100, 1000])
    def test_complete_disjoint_cover(self, items, chunk_size: int) -> None:
        endpoints, models = items
        chunks = create_chunks(endpoints, models, chunk_size=chunk_size)
        flattened = [item for chunk in chunks for item in chunk.items]
        assert flattened == list(endpoints) + list(models)
        assert all(0 < c.size <= chunk_size for c in chunks)

    def test_empty_input(self) -> None:
        assert create_chunks([], []) == []

    def test_models_only(self) -> None:
        models = [NamedSchema(name="A", schema_=SchemaNode(type="string"))]
        chunks = create_chunks([], models)
        assert [c.id for c in chunks] == ["models-0"]
        assert chunks[0].index == 0

    @pytest.mark.parametrize("chunk_size", [0, -5])
    def test_invalid_chunk_size(self, chunk_size: int) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            create_chunks([], [], chunk_size=chunk_size)


class TestOrderChunks:
    def test_priority_then_size(self, spec_factory) -> None:
        spec = spec_factory(130, 120)
        chunks = create_chunks(spec.endpoints, named_schemas(spec), chunk_size=100)
        ordered = order_chunks(chunks)
        # models-0 (100 items) is larger than endpoints-1 (30 items) but runs later.
        assert [c.id for c in ordered] == ["endpoints-0", "endpoints-1", "models-0", "models-1"]

    def test_larger_chunks_first_within_priority(self, spec_factory) -> None:
        chunks = create_chunks(spec_factory(5, 0).endpoints, [], chunk_size=3)
        ordered = order_chunks(list(reversed(chunks)))
        assert [c.size for c in ordered] == [3, 2]

    def test_stable_for_equal_keys(self, spec_factory) -> None:
        chunks = create_chunks(spec_factory(300, 0).endpoints, [], chunk_size=100)
        assert [c.id for c in order_chunks(chunks)] == ["endpoints-0", "endpoints-1", "endpoints-2"]


class TestBatching:
    @pytest.mark.parametrize(
        "count, max_parallel, expected",
        [
            (0, 4, 1),
            (1, 4, 1),
            (4, 4, 1),
            (5, 4, 2),
            (13, 4, 4),
            (100, 4, 4),
            (100, 8, 8),
            (40, 1, 1),
        ],
    )
    def test_batch_width(self, count: int, max_parallel: int, expected: int) -> None:
        assert batch_width(count, max_parallel) == expected

    def test_iter_batches(self, spec_factory) -> None:
        chunks = create_chunks(spec_factory(10, 0).endpoints, [], chunk_size=1)
        batches = list(iter_batches(chunks, 4))
        assert [len(b) for b in batches] == [4, 4, 2]
        assert [c for b in batches for c in b] == chunks
