"""End-to-end tests for speclens.pipeline."""

from __future__ import annotations

import asyncio

import pytest

from speclens.exceptions import CancelledError, FormatError
from speclens.models import ComplexityTier, ProcessingConfig, ProgressEvent
from speclens.pipeline import arun_pipeline, run_pipeline
from speclens.processing import CancellationToken


class TestSmallDocuments:
    def test_petstore(self, petstore_text: str) -> None:
        result = run_pipeline(petstore_text)
        assert result.metrics.complexity_tier == ComplexityTier.SMALL
        assert result.strategy.enabled() == []
        assert result.processing.mode == "standard"
        assert [p.type for p in result.auth_patterns] == ["oauth2", "api_key", "custom"]
        assert list(result.pagination) == ["GET /pets"]

    def test_result_spec_is_normalized(self, petstore_text: str) -> None:
        result = run_pipeline(petstore_text)
        post = next(e for e in result.spec.endpoints if e.method == "POST")
        assert post.operation_id == "post_pets"

    @pytest.mark.parametrize(
        "fixture", ["asyncapi_text", "postman_text", "graphql_text"]
    )
    def test_other_formats(self, request: pytest.FixtureRequest, fixture: str) -> None:
        result = run_pipeline(request.getfixturevalue(fixture))
        assert result.metrics.endpoint_count == len(result.spec.endpoints)
        assert result.processing.mode == "standard"

    def test_unknown_declared_format(self, petstore_text: str) -> None:
        with pytest.raises(FormatError):
            run_pipeline(petstore_text, format="raml")


class TestLargeDocument:
    """A 1,200-operation document goes through the chunked path."""

    def test_chunked_end_to_end(self, large_openapi_text: str) -> None:
        events: list[ProgressEvent] = []
        result = run_pipeline(large_openapi_text, progress=events.append)

        assert result.metrics.endpoint_count == 1200
        assert result.metrics.model_count == 50
        assert result.metrics.complexity_tier == ComplexityTier.XLARGE
        assert result.strategy.chunking and result.strategy.streaming
        assert result.processing.mode == "chunked"
        assert result.processing.chunk_count == 13
        assert len(result.processing.endpoints) == 1200
        assert len(result.processing.models) == 50
        assert result.processing.index is not None
        assert len(result.pagination) == 1200

        percents = [e.percent for e in events]
        assert percents[:3] == [10, 20, 30]
        assert percents[-2:] == [95, 100]
        assert percents == sorted(percents)

    def test_custom_chunk_size(self, large_openapi_text: str) -> None:
        config = ProcessingConfig(chunk_size=500, max_parallel_chunks=2)
        result = run_pipeline(large_openapi_text, config=config)
        assert result.processing.chunk_count == 4

    def test_cancellation(self, large_openapi_text: str) -> None:
        token = CancellationToken()
        events: list[ProgressEvent] = []

        def sink(event: ProgressEvent) -> None:
            events.append(event)
            if event.percent >= 30:
                token.cancel()

        with pytest.raises(CancelledError):
            asyncio.run(arun_pipeline(large_openapi_text, progress=sink, cancel=token))
        assert max(e.percent for e in events) < 100
