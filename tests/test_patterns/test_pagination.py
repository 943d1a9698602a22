"""Tests for speclens.patterns.pagination."""

from __future__ import annotations

import pytest

from speclens.models import (
    Endpoint,
    MediaType,
    Parameter,
    ParameterLocation,
    Response,
    SchemaNode,
    SchemaRef,
)
from speclens.patterns.pagination import (
    detect_pagination_pattern,
    detect_spec_pagination,
    response_property_names,
)


def _endpoint(*query: str, fields: tuple[str, ...] = (), status: str = "200") -> Endpoint:
    responses = []
    if fields:
        schema = SchemaNode(type="object", properties={f: SchemaNode(type="string") for f in fields})
        responses.append(
            Response(status_code=status, content={"application/json": MediaType(schema=schema)})
        )
    return Endpoint(
        path="/things",
        method="GET",
        parameters=[Parameter(name=q, location=ParameterLocation.QUERY) for q in query],
        responses=responses,
    )


def _types(endpoint: Endpoint) -> list[str]:
    return [p.type for p in detect_pagination_pattern(endpoint)]


class TestRules:
    @pytest.mark.parametrize(
        "query, expected",
        [
            (("page", "per_page"), ["offset"]),
            (("cursor",), ["cursor"]),
            (("starting_after",), ["cursor", "compound_cursor"]),
            (("sort_key",), ["compound_cursor"]),
            (("pageToken",), ["offset", "token"]),
            (("since",), ["timestamp"]),
            (("scroll_id",), ["hybrid"]),
            (("q", "sort"), []),
        ],
    )
    def test_query_parameters(self, query: tuple[str, ...], expected: list[str]) -> None:
        assert _types(_endpoint(*query)) == expected

    def test_sorted_by_confidence(self) -> None:
        patterns = detect_pagination_pattern(_endpoint("since", "cursor", "limit"))
        assert [p.type for p in patterns] == ["offset", "cursor", "timestamp"]
        assert [p.confidence for p in patterns] == [0.9, 0.85, 0.7]

    def test_matched_names_recorded(self) -> None:
        pattern = detect_pagination_pattern(_endpoint("limit", "offset", "q"))[0]
        assert pattern.matched == ["limit", "offset"]
        assert pattern.next_page_logic == "page + 1"


class TestWholeWordIndicators:
    @pytest.mark.parametrize("name", ["from", "to", "date_from", "valid-to"])
    def test_segments_match(self, name: str) -> None:
        assert _types(_endpoint(name)) == ["timestamp"]

    @pytest.mark.parametrize("name", ["total", "format", "photo", "tomorrow"])
    def test_substrings_do_not_match(self, name: str) -> None:
        assert "timestamp" not in _types(_endpoint(name))


class TestResponseFields:
    def test_cursor_in_response(self) -> None:
        patterns = detect_pagination_pattern(_endpoint(fields=("items", "nextCursor")))
        assert [p.type for p in patterns] == ["cursor"]
        assert patterns[0].matched == ["nextCursor"]

    def test_offset_ignores_response(self) -> None:
        assert _types(_endpoint(fields=("total", "page"))) == []

    def test_created_status(self) -> None:
        assert _types(_endpoint(fields=("nextPageToken",), status="201")) == ["token"]

    def test_other_status_ignored(self) -> None:
        assert _types(_endpoint(fields=("nextCursor",), status="206")) == []

    def test_reference_followed(self) -> None:
        endpoint = Endpoint(
            path="/things",
            method="GET",
            responses=[
                Response(
                    status_code="200",
                    content={"application/json": MediaType(schema=SchemaRef(name="Page"))},
                )
            ],
        )
        schemas = {
            "Page": SchemaNode(
                type="object", properties={"bookmark": SchemaNode(type="string")}, origin="Page"
            )
        }
        assert response_property_names(endpoint) == []
        assert response_property_names(endpoint, schemas) == ["bookmark"]
        assert [p.type for p in detect_pagination_pattern(endpoint, schemas)] == ["hybrid"]


class TestSpecPagination:
    def test_petstore(self, petstore_spec) -> None:
        found = detect_spec_pagination(petstore_spec)
        assert list(found) == ["GET /pets"]
        offset, cursor = found["GET /pets"]
        assert offset.type == "offset"
        assert offset.confidence == 0.9
        assert set(offset.matched) == {"limit", "page"}
        assert cursor.type == "cursor"
        assert cursor.confidence == 0.85
        assert cursor.matched == ["next_cursor"]
