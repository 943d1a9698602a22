"""Tests for speclens.parser.dispatch.parse_spec."""

from __future__ import annotations

import threading

import pytest

from speclens.exceptions import FormatError, SpecError, ValidationError
from speclens.models import RawSpecDocument, SpecFormat
from speclens.parser import parse_spec


class TestParseSpec:
    """Format detection, declared formats, and error propagation."""

    @pytest.mark.parametrize(
        "fixture, expected",
        [
            ("petstore_text", SpecFormat.OPENAPI),
            ("asyncapi_text", SpecFormat.ASYNCAPI),
            ("postman_text", SpecFormat.POSTMAN),
            ("graphql_text", SpecFormat.GRAPHQL),
        ],
    )
    def test_detects_every_format(
        self, fixture: str, expected: SpecFormat, request: pytest.FixtureRequest
    ) -> None:
        text = request.getfixturevalue(fixture)
        assert parse_spec(text).source_format == expected

    def test_raw_document(self, petstore_text: str) -> None:
        doc = RawSpecDocument(text=petstore_text, format=SpecFormat.OPENAPI)
        assert parse_spec(doc).title == "Petstore"

    def test_declared_format_string(self, postman_text: str) -> None:
        assert parse_spec(postman_text, "postman").title == "Users API"

    def test_declared_format_overrides_detection(self, petstore_text: str) -> None:
        # An OpenAPI document forced through the Postman parser lacks Postman fields.
        with pytest.raises(ValidationError) as exc_info:
            parse_spec(petstore_text, SpecFormat.POSTMAN)
        assert exc_info.value.format == "postman"

    def test_unknown_declared_format(self, petstore_text: str) -> None:
        with pytest.raises(FormatError, match="unknown format 'raml'"):
            parse_spec(petstore_text, "raml")

    def test_yaml_input(self) -> None:
        text = "openapi: 3.0.0\ninfo:\n  title: Y\n  version: '1'\npaths: {}\n"
        assert parse_spec(text).title == "Y"

    def test_errors_share_base_class(self) -> None:
        with pytest.raises(SpecError):
            parse_spec("not: [valid")

    def test_concurrent_calls_are_independent(self, petstore_text: str, graphql_text: str) -> None:
        results: dict[int, str] = {}

        def work(i: int) -> None:
            text = petstore_text if i % 2 else graphql_text
            results[i] = parse_spec(text).title

        threads = [threading.Thread(target=work, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == {
            i: ("Petstore" if i % 2 else "GraphQL Schema") for i in range(8)
        }
