"""Shared test fixtures for speclens.

Provides fixture documents in all four input formats, parsed specs,
synthetic specs of arbitrary size, isolated config environments, output
state management, and a CLI runner. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import pytest

from speclens.models import (
    Endpoint,
    MediaType,
    Parameter,
    ParameterLocation,
    Response,
    SchemaNode,
    SchemaRef,
    SpecFormat,
    UnifiedSpec,
)
from speclens.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_logging_between_tests() -> None:
    """Undo :func:`speclens.logging_setup.setup_logging` after CLI tests.

    The CLI detaches the ``speclens`` logger from the root logger, which
    would hide records from ``caplog`` in later tests.
    """
    yield
    logger = logging.getLogger("speclens")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Raw documents (text and decoded dicts)
# ---------------------------------------------------------------------------


def _read(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def petstore_text() -> str:
    """OpenAPI 3.0.3 petstore document as text."""
    return _read("petstore_openapi.json")


@pytest.fixture
def petstore_raw(petstore_text: str) -> dict[str, Any]:
    return json.loads(petstore_text)


@pytest.fixture
def asyncapi_text() -> str:
    """AsyncAPI 2.6.0 account events document as text."""
    return _read("events_asyncapi.json")


@pytest.fixture
def asyncapi_raw(asyncapi_text: str) -> dict[str, Any]:
    return json.loads(asyncapi_text)


@pytest.fixture
def postman_text() -> str:
    """Postman v2.1 users collection as text."""
    return _read("collection_postman.json")


@pytest.fixture
def postman_raw(postman_text: str) -> dict[str, Any]:
    return json.loads(postman_text)


@pytest.fixture
def graphql_text() -> str:
    """GraphQL Document AST as text."""
    return _read("schema_graphql.json")


@pytest.fixture
def graphql_raw(graphql_text: str) -> dict[str, Any]:
    return json.loads(graphql_text)


# ---------------------------------------------------------------------------
# Parsed spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_spec(petstore_text: str) -> UnifiedSpec:
    """Parsed petstore spec."""
    from speclens.parser import parse_spec

    return parse_spec(petstore_text)


# ---------------------------------------------------------------------------
# Synthetic specs
# ---------------------------------------------------------------------------


def make_endpoint(i: int, tag: str = "items") -> Endpoint:
    """A small GET endpoint returning a reference to ``Model{i % 50}``."""
    return Endpoint(
        path=f"/items{i}/{{id}}",
        method="get",
        parameters=[
            Parameter(
                name="id",
                location=ParameterLocation.PATH,
                required=True,
                schema=SchemaNode(type="string"),
            )
        ],
        responses=[
            Response(
                status_code="200",
                description="OK",
                content={"application/json": MediaType(schema=SchemaRef(name=f"Model{i % 50}"))},
            )
        ],
        tags=[tag, tag],
    )


def make_model(i: int) -> SchemaNode:
    """An object schema made unique by a per-model enum value."""
    return SchemaNode(
        type="object",
        properties={
            "id": SchemaNode(type="integer"),
            "kind": SchemaNode(type="string", enum=[f"kind-{i}"]),
        },
        required=["id"],
        origin=f"Model{i}",
    )


def build_spec(endpoints: int, models: int, title: str = "Synthetic") -> UnifiedSpec:
    """Build a :class:`UnifiedSpec` with the given number of endpoints and models."""
    return UnifiedSpec(
        title=title,
        version="1.0.0",
        source_format=SpecFormat.OPENAPI,
        source_version="3.0.3",
        endpoints=[make_endpoint(i, tag=f"group{i % 7}") for i in range(endpoints)],
        schemas={f"Model{i}": make_model(i) for i in range(models)},
    )


@pytest.fixture
def spec_factory() -> Callable[..., UnifiedSpec]:
    """Factory for synthetic specs: ``spec_factory(endpoints, models)``."""
    return build_spec


@pytest.fixture
def large_openapi_text() -> str:
    """An OpenAPI document with 1,200 operations and 50 schemas."""
    paths = {
        f"/resources{i}": {
            "get": {
                "operationId": f"getResource{i}",
                "parameters": [{"name": "page", "in": "query", "schema": {"type": "integer"}}],
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": f"#/components/schemas/Model{i % 50}"}
                            }
                        },
                    }
                },
            }
        }
        for i in range(1200)
    }
    schemas = {
        f"Model{i}": {
            "type": "object",
            "properties": {"id": {"type": "integer"}, "kind": {"type": "string", "enum": [f"k{i}"]}},
        }
        for i in range(50)
    }
    return json.dumps(
        {
            "openapi": "3.0.3",
            "info": {"title": "Large", "version": "1.0.0"},
            "paths": paths,
            "components": {"schemas": schemas},
        }
    )


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all SPECLENS_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("speclens.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["SPECLENS_FORMAT", "SPECLENS_NO_CACHE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
