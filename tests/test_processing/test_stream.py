"""Tests for speclens.processing.stream.SpecStream."""

from __future__ import annotations

import pytest

from speclens.exceptions import StreamConsumedError
from speclens.models import EndpointItem, ModelItem
from speclens.processing.stream import SpecStream


class TestSpecStream:
    def test_endpoints_then_models(self, spec_factory) -> None:
        spec = spec_factory(3, 2)
        items = list(SpecStream(spec))
        assert [type(i) for i in items] == [EndpointItem] * 3 + [ModelItem] * 2
        assert [i.endpoint for i in items[:3]] == spec.endpoints
        assert [i.model.name for i in items[3:]] == ["Model0", "Model1"]

    def test_len(self, spec_factory) -> None:
        assert len(SpecStream(spec_factory(4, 6))) == 10

    def test_single_use(self, spec_factory) -> None:
        stream = SpecStream(spec_factory(2, 0))
        assert stream.consumed is False
        list(stream)
        assert stream.consumed is True
        with pytest.raises(StreamConsumedError):
            iter(stream)

    def test_partial_iteration_still_consumes(self, spec_factory) -> None:
        stream = SpecStream(spec_factory(5, 0))
        first = next(iter(stream))
        assert first.kind == "endpoint"
        with pytest.raises(StreamConsumedError):
            list(stream)

    def test_empty_spec(self, spec_factory) -> None:
        assert list(SpecStream(spec_factory(0, 0))) == []
