"""Tests for speclens.parser.loader."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from speclens.exceptions import FormatError, SourceError
from speclens.models import SpecFormat
from speclens.parser.loader import (
    _load_from_file,
    decode_document,
    detect_format,
    load_source,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# load_source dispatch
# ---------------------------------------------------------------------------


class TestLoadSource:
    """Test load_source routes to the correct loader."""

    def test_loads_from_file(self) -> None:
        text = load_source(str(FIXTURES_DIR / "petstore_openapi.json"))
        assert json.loads(text)["info"]["title"] == "Petstore"

    def test_loads_from_stdin(self) -> None:
        body = json.dumps({"asyncapi": "2.6.0"})
        with patch("speclens.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(body)
            assert load_source("-") == body

    def test_empty_stdin_raises(self) -> None:
        with patch("speclens.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   \n")
            with pytest.raises(SourceError, match="stdin"):
                load_source("-")

    def test_loads_from_url(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            text='{"openapi": "3.0.3"}',
            request=httpx.Request("GET", "https://example.com/openapi.json"),
        )
        with patch("speclens.parser.loader.httpx.get", return_value=mock_response) as get:
            text = load_source("https://example.com/openapi.json", timeout=5.0)
        assert json.loads(text) == {"openapi": "3.0.3"}
        assert get.call_args.kwargs["timeout"] == 5.0

    def test_url_http_error_raises(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.json"),
        )
        with patch("speclens.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(SourceError, match="HTTP 404"):
                load_source("https://example.com/missing.json")

    def test_url_network_error_raises(self) -> None:
        with patch(
            "speclens.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("connection refused"),
        ):
            with pytest.raises(SourceError, match="Failed to fetch"):
                load_source("http://localhost:1/openapi.json")

    def test_source_error_exit_code(self) -> None:
        with pytest.raises(SourceError) as exc_info:
            load_source("/nonexistent/openapi.json")
        assert exc_info.value.exit_code == 6


# ---------------------------------------------------------------------------
# _load_from_file
# ---------------------------------------------------------------------------


class TestLoadFromFile:
    """Test loading documents from local files."""

    def test_file_not_found_raises(self) -> None:
        with pytest.raises(SourceError, match="not found"):
            _load_from_file("/nonexistent/path/to/spec.json")

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.json"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(SourceError, match="empty"):
            _load_from_file(str(empty))

    def test_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SourceError):
            _load_from_file(str(tmp_path))

    def test_returns_text_unchanged(self, tmp_path: Path) -> None:
        content = "openapi: '3.1.0'\n"
        spec_file = tmp_path / "spec.yaml"
        spec_file.write_text(content, encoding="utf-8")
        assert _load_from_file(str(spec_file)) == content


# ---------------------------------------------------------------------------
# decode_document
# ---------------------------------------------------------------------------


class TestDecodeDocument:
    """JSON first, YAML second, mappings only."""

    def test_json(self) -> None:
        assert decode_document('{"a": 1}') == {"a": 1}

    def test_yaml(self) -> None:
        content = textwrap.dedent("""\
            openapi: "3.0.3"
            info:
              title: YAML Test
              version: "1.0.0"
            paths: {}
        """)
        result = decode_document(content)
        assert result["info"]["title"] == "YAML Test"
        assert result["paths"] == {}

    def test_yaml_hint_skips_json(self) -> None:
        assert decode_document("a: 1", hint="yaml") == {"a": 1}

    def test_json_hint_does_not_fall_back(self) -> None:
        with pytest.raises(FormatError, match="invalid JSON"):
            decode_document("a: 1", hint="json")

    @pytest.mark.parametrize("content", ["[1, 2, 3]", '"just a string"', "42"])
    def test_non_mapping_raises(self, content: str) -> None:
        with pytest.raises(FormatError, match="object"):
            decode_document(content)

    def test_undecodable_raises(self) -> None:
        with pytest.raises(FormatError, match="failed to decode"):
            decode_document("{unclosed: [")

    def test_format_error_exit_code(self) -> None:
        with pytest.raises(FormatError) as exc_info:
            decode_document("{unclosed: [")
        assert exc_info.value.exit_code == 7


# ---------------------------------------------------------------------------
# detect_format
# ---------------------------------------------------------------------------


class TestDetectFormat:
    @pytest.mark.parametrize(
        "document, expected",
        [
            ({"openapi": "3.0.3"}, SpecFormat.OPENAPI),
            ({"swagger": "2.0"}, SpecFormat.OPENAPI),
            ({"asyncapi": "2.6.0"}, SpecFormat.ASYNCAPI),
            (
                {
                    "info": {
                        "schema": "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"
                    }
                },
                SpecFormat.POSTMAN,
            ),
            ({"kind": "Document", "definitions": []}, SpecFormat.GRAPHQL),
        ],
    )
    def test_markers(self, document: dict, expected: SpecFormat) -> None:
        assert detect_format(document) == expected

    def test_unknown_document_raises(self) -> None:
        with pytest.raises(FormatError, match="unrecognised"):
            detect_format({"info": {"title": "x"}})

    def test_fixture_documents(
        self,
        petstore_raw: dict,
        asyncapi_raw: dict,
        postman_raw: dict,
        graphql_raw: dict,
    ) -> None:
        assert detect_format(petstore_raw) == SpecFormat.OPENAPI
        assert detect_format(asyncapi_raw) == SpecFormat.ASYNCAPI
        assert detect_format(postman_raw) == SpecFormat.POSTMAN
        assert detect_format(graphql_raw) == SpecFormat.GRAPHQL
