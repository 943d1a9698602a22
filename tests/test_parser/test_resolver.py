"""Tests for speclens.parser.resolver -- references, canonical form, dedup."""

from __future__ import annotations

import json

import pytest

from speclens.models import (
    Endpoint,
    MediaType,
    Response,
    SchemaNode,
    SchemaRef,
    SpecFormat,
    UnifiedSpec,
)
from speclens.parser.resolver import (
    SchemaResolver,
    canonical_json,
    compact_spec_json,
    deduplicate_schemas,
    deref,
    ref_name,
    resolve,
    resolve_pointer,
)
from speclens.parser.schema import build_schema


def _spec(schemas: dict, endpoints: list | None = None) -> UnifiedSpec:
    return UnifiedSpec(
        title="t",
        version="1",
        source_format=SpecFormat.OPENAPI,
        schemas=schemas,
        endpoints=endpoints or [],
    )


# ---------------------------------------------------------------------------
# Pointers
# ---------------------------------------------------------------------------


class TestPointers:
    def test_ref_name(self) -> None:
        assert ref_name("#/components/schemas/Pet") == "Pet"

    def test_ref_name_unescapes(self) -> None:
        assert ref_name("#/definitions/a~1b~0c") == "a/b~c"

    def test_resolve_pointer(self) -> None:
        doc = {"components": {"parameters": {"limit": {"name": "limit"}}}}
        assert resolve_pointer("#/components/parameters/limit", doc) == {"name": "limit"}

    def test_resolve_pointer_list_index(self) -> None:
        doc = {"servers": [{"url": "a"}, {"url": "b"}]}
        assert resolve_pointer("#/servers/1", doc) == {"url": "b"}

    def test_dangling_pointer_is_none(self) -> None:
        assert resolve_pointer("#/components/parameters/missing", {"components": {}}) is None

    def test_external_ref_is_none(self) -> None:
        assert resolve_pointer("other.yaml#/Pet", {}) is None

    def test_deref_follows_chain(self) -> None:
        doc = {"a": {"$ref": "#/b"}, "b": {"value": 1}}
        assert deref({"$ref": "#/a"}, doc) == {"value": 1}

    def test_deref_self_loop_terminates(self) -> None:
        doc = {"a": {"$ref": "#/a"}}
        assert deref({"$ref": "#/a"}, doc) is None


# ---------------------------------------------------------------------------
# SchemaResolver
# ---------------------------------------------------------------------------


class TestSchemaResolver:
    """Per-call reference table: memoised, cycle-safe, dangling-aware."""

    def test_lookup_builds_once(self) -> None:
        calls: list[str] = []

        def build(raw, resolver):
            calls.append(raw["title"])
            return SchemaNode(type="object", title=raw["title"])

        resolver = SchemaResolver({"A": {"title": "A"}}, build)
        first = resolver.lookup("A")
        second = resolver.lookup("A")
        assert first is second
        assert calls == ["A"]

    def test_finished_node_carries_origin(self) -> None:
        resolver = SchemaResolver({"Pet": {"type": "object"}}, build_schema)
        node = resolver.lookup("Pet")
        assert isinstance(node, SchemaNode)
        assert node.origin == "Pet"

    def test_self_reference_becomes_placeholder(self) -> None:
        definitions = {
            "Node": {
                "type": "object",
                "properties": {"next": {"$ref": "#/components/schemas/Node"}},
            }
        }
        resolver = SchemaResolver(definitions, build_schema)
        node = resolver.lookup("Node")
        assert node.properties["next"] == SchemaRef(name="Node")

    def test_mutual_recursion_terminates(self) -> None:
        definitions = {
            "A": {"properties": {"b": {"$ref": "#/components/schemas/B"}}},
            "B": {"properties": {"a": {"$ref": "#/components/schemas/A"}}},
        }
        schemas = SchemaResolver(definitions, build_schema).resolve_all()
        # B is finished while A is still in progress, so B holds a placeholder for A.
        assert schemas["B"].properties["a"] == SchemaRef(name="A")
        assert schemas["A"].properties["b"].origin == "B"

    def test_dangling_reference_recorded(self) -> None:
        resolver = SchemaResolver({}, build_schema)
        assert resolver.lookup("Missing") == SchemaRef(name="Missing")
        resolver.lookup("Missing")
        assert resolver.dangling == ["Missing"]

    def test_resolve_all_keeps_declaration_order(self) -> None:
        definitions = {"Z": {"type": "string"}, "A": {"type": "integer"}}
        assert list(SchemaResolver(definitions, build_schema).resolve_all()) == ["Z", "A"]

    def test_contains(self) -> None:
        resolver = SchemaResolver({"Pet": {}}, build_schema)
        assert "Pet" in resolver
        assert "Owner" not in resolver


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


class TestResolve:
    def test_expands_non_cyclic_reference(self) -> None:
        schemas = {"Pet": SchemaNode(type="object", origin="Pet")}
        node = SchemaNode(type="array", items=SchemaRef(name="Pet"))
        resolved = resolve(node, schemas)
        assert isinstance(resolved.items, SchemaNode)
        assert resolved.items.type == "object"

    def test_keeps_cyclic_reference(self) -> None:
        node = SchemaNode(
            type="object",
            properties={"children": SchemaNode(type="array", items=SchemaRef(name="Category"))},
            origin="Category",
        )
        resolved = resolve(node, {"Category": node})
        assert resolved.properties["children"].items == SchemaRef(name="Category")

    def test_keeps_dangling_reference(self) -> None:
        assert resolve(SchemaRef(name="Missing"), {}) == SchemaRef(name="Missing")

    def test_idempotent(self) -> None:
        category = SchemaNode(
            type="object",
            properties={"parent": SchemaRef(name="Category")},
            origin="Category",
        )
        schemas = {"Category": category, "Holder": SchemaNode(items=SchemaRef(name="Category"))}
        once = resolve(schemas["Holder"], schemas)
        twice = resolve(once, schemas)
        assert canonical_json(once) == canonical_json(twice)


# ---------------------------------------------------------------------------
# Canonical form
# ---------------------------------------------------------------------------


class TestCanonicalJson:
    def test_ignores_origin(self) -> None:
        a = SchemaNode(type="string", origin="A")
        b = SchemaNode(type="string", origin="B")
        assert canonical_json(a) == canonical_json(b)

    def test_property_order_does_not_matter(self) -> None:
        a = SchemaNode(properties={"x": SchemaNode(type="string"), "y": SchemaNode(type="integer")})
        b = SchemaNode(properties={"y": SchemaNode(type="integer"), "x": SchemaNode(type="string")})
        assert canonical_json(a) == canonical_json(b)

    def test_different_schemas_differ(self) -> None:
        assert canonical_json(SchemaNode(type="string")) != canonical_json(
            SchemaNode(type="integer")
        )


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------


class TestDeduplicateSchemas:
    def test_keeps_first_declaration(self) -> None:
        spec = _spec(
            {
                "Error": SchemaNode(type="object", required=["code"], origin="Error"),
                "Problem": SchemaNode(type="object", required=["code"], origin="Problem"),
            }
        )
        result = deduplicate_schemas(spec)
        assert list(result.schemas) == ["Error"]

    def test_repoints_endpoint_references(self) -> None:
        endpoint = Endpoint(
            path="/x",
            method="GET",
            responses=[
                Response(
                    status_code="200",
                    content={"application/json": MediaType(schema=SchemaRef(name="Problem"))},
                )
            ],
        )
        spec = _spec(
            {
                "Error": SchemaNode(type="string", origin="Error"),
                "Problem": SchemaNode(type="string", origin="Problem"),
            },
            [endpoint],
        )
        result = deduplicate_schemas(spec)
        schema = result.endpoints[0].responses[0].content["application/json"].schema_
        assert schema == SchemaRef(name="Error")

    def test_repointing_reaches_fixed_point(self) -> None:
        # A and B reference different but identical leaves.
        spec = _spec(
            {
                "LeafA": SchemaNode(type="string", origin="LeafA"),
                "LeafB": SchemaNode(type="string", origin="LeafB"),
                "A": SchemaNode(properties={"v": SchemaRef(name="LeafA")}, origin="A"),
                "B": SchemaNode(properties={"v": SchemaRef(name="LeafB")}, origin="B"),
            }
        )
        result = deduplicate_schemas(spec)
        assert list(result.schemas) == ["LeafA", "A"]

    def test_second_call_is_noop(self) -> None:
        spec = _spec(
            {
                "A": SchemaNode(type="string", origin="A"),
                "B": SchemaNode(type="string", origin="B"),
            }
        )
        once = deduplicate_schemas(spec)
        assert deduplicate_schemas(once) is once

    def test_input_is_not_modified(self) -> None:
        spec = _spec(
            {
                "A": SchemaNode(type="string", origin="A"),
                "B": SchemaNode(type="string", origin="B"),
            }
        )
        deduplicate_schemas(spec)
        assert list(spec.schemas) == ["A", "B"]

    def test_petstore_error_and_problem(self, petstore_spec: UnifiedSpec) -> None:
        result = deduplicate_schemas(petstore_spec)
        assert "Error" in result.schemas
        assert "Problem" not in result.schemas
        assert "Pet" in result.schemas


# ---------------------------------------------------------------------------
# Canonical round trip
# ---------------------------------------------------------------------------


def _account() -> SchemaNode:
    return SchemaNode(
        type="object",
        required=["id"],
        properties={
            "id": SchemaNode(type="integer", read_only=True, nullable=True, minimum=1),
            "pw": SchemaNode(
                type="string", write_only=True, deprecated=True, min_length=8, max_length=64
            ),
            "tags": SchemaNode(
                type="array", items=SchemaNode(type="string"), min_items=1, max_items=5
            ),
            "score": SchemaNode(type="number", exclusive_maximum=100),
            "meta": SchemaNode(type="object", additional_properties=SchemaNode(type="string")),
            "owner": SchemaRef(name="User"),
        },
        origin="Account",
    )


class TestCanonicalRoundTrip:
    def test_uses_json_schema_keywords(self) -> None:
        form = json.loads(canonical_json(_account()))
        assert form["properties"]["id"] == {
            "minimum": 1.0,
            "nullable": True,
            "readOnly": True,
            "type": "integer",
        }
        assert form["properties"]["pw"]["writeOnly"] is True
        assert form["properties"]["tags"]["minItems"] == 1
        assert form["properties"]["meta"]["additionalProperties"] == {"type": "string"}
        assert form["properties"]["owner"] == {"$ref": "User"}

    def test_rebuild_keeps_flags(self) -> None:
        account = _account()
        rebuilt = build_schema(
            json.loads(canonical_json(account)), SchemaResolver({}, build_schema)
        )
        assert canonical_json(rebuilt) == canonical_json(account)
        assert rebuilt.type == "object"
        assert rebuilt.required == ["id"]
        assert rebuilt.properties["id"].read_only
        assert rebuilt.properties["id"].nullable
        assert rebuilt.properties["pw"].write_only
        assert rebuilt.properties["pw"].deprecated
        assert rebuilt.properties["owner"] == SchemaRef(name="User")

    def test_unified_spec_json_round_trip(self) -> None:
        spec = _spec({"Account": _account()})
        restored = UnifiedSpec.model_validate_json(spec.model_dump_json(by_alias=True))
        assert restored.schemas == spec.schemas
        node = restored.schemas["Account"]
        assert node.properties["id"].read_only and node.properties["id"].nullable
        assert node.properties["pw"].write_only and node.properties["pw"].deprecated


# ---------------------------------------------------------------------------
# Shared references
# ---------------------------------------------------------------------------


def _chain(depth: int) -> dict[str, SchemaNode]:
    """Named schemas S0..S<depth>, each Si holding S(i+1) under two properties."""
    child = SchemaNode(type="string", origin=f"S{depth}")
    schemas = {f"S{depth}": child}
    for i in reversed(range(depth)):
        child = SchemaNode(type="object", properties={"a": child, "b": child}, origin=f"S{i}")
        schemas[f"S{i}"] = child
    return dict(reversed(list(schemas.items())))


class TestSharedReferences:
    def test_canonical_form_names_nested_schemas(self) -> None:
        schemas = _chain(24)
        assert canonical_json(schemas["S0"]) == (
            '{"properties":{"a":{"$ref":"S1"},"b":{"$ref":"S1"}},"type":"object"}'
        )

    def test_resolve_shares_repeated_targets(self) -> None:
        schemas = _chain(24)
        resolved = resolve(schemas["S0"], schemas)
        assert resolved.properties["a"] is resolved.properties["b"]

    def test_deduplicate_deep_chain(self) -> None:
        spec = _spec(_chain(24))
        assert deduplicate_schemas(spec) is spec

    def test_compact_spec_json_writes_each_body_once(self) -> None:
        text = compact_spec_json(_spec(_chain(24)))
        assert text.count('"properties"') == 24
