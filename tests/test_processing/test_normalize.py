"""Tests for speclens.processing.normalize."""

from __future__ import annotations

import threading

import pytest

from speclens.models import Endpoint, NamedSchema, SchemaNode, SchemaRef
from speclens.processing.normalize import ModelNormalizer, normalize_endpoint, operation_id_for


class TestOperationId:
    @pytest.mark.parametrize(
        "method, path, expected",
        [
            ("GET", "/pets/{petId}", "get_pets_petId"),
            ("post", "/v1/orders", "post_v1_orders"),
            ("DELETE", "/", "delete"),
            ("SUBSCRIBE", "user/{userId}/signedup", "subscribe_user_userId_signedup"),
        ],
    )
    def test_derivation(self, method: str, path: str, expected: str) -> None:
        assert operation_id_for(method, path) == expected


class TestNormalizeEndpoint:
    def test_fills_missing_fields(self) -> None:
        endpoint = Endpoint(path="/pets", method="post", tags=["pets", "admin", "pets"])
        result = normalize_endpoint(endpoint)
        assert result.method == "POST"
        assert result.tags == ["pets", "admin"]
        assert result.operation_id == "post_pets"

    def test_keeps_declared_operation_id(self) -> None:
        endpoint = Endpoint(path="/pets", method="GET", operation_id="listPets")
        assert normalize_endpoint(endpoint).operation_id == "listPets"

    def test_idempotent(self) -> None:
        endpoint = Endpoint(path="/a/{b}", method="get", tags=["x", "x"])
        once = normalize_endpoint(endpoint)
        assert normalize_endpoint(once) == once


class TestModelNormalizer:
    @pytest.fixture
    def schemas(self) -> dict:
        return {
            "Pet": SchemaNode(type="object", origin="Pet"),
            "Holder": SchemaNode(type="array", items=SchemaRef(name="Pet"), origin="Holder"),
        }

    def test_resolves_references(self, schemas: dict) -> None:
        normalizer = ModelNormalizer(schemas)
        result = normalizer(NamedSchema(name="Holder", schema_=schemas["Holder"]))
        assert result.name == "Holder"
        assert result.schema_.items.origin == "Pet"
        assert normalizer.memo_size == 0

    def test_memoizes(self, schemas: dict) -> None:
        normalizer = ModelNormalizer(schemas, memoize=True)
        model = NamedSchema(name="Holder", schema_=schemas["Holder"])
        first = normalizer(model)
        second = normalizer(model)
        assert first.schema_ is second.schema_
        assert normalizer.memo_size == 1

    def test_shared_between_threads(self, schemas: dict) -> None:
        normalizer = ModelNormalizer(schemas, memoize=True)
        models = [NamedSchema(name=n, schema_=s) for n, s in schemas.items()]
        threads = [
            threading.Thread(target=lambda: [normalizer(m) for m in models]) for _ in range(6)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert normalizer.memo_size == 2
