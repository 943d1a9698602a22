"""Build :class:`~speclens.models.SchemaNode` trees from JSON Schema dialects.

OpenAPI 3.0, OpenAPI 3.1 and AsyncAPI 2.x all describe payloads with a
JSON Schema dialect, so they share :func:`build_schema`. Postman carries no
schemas at all; :func:`infer_schema` derives one from a JSON example
instead.

References are never followed here directly: a ``$ref`` is handed to the
per-call :class:`~speclens.parser.resolver.SchemaResolver`, which owns
cycle detection and memoisation.
"""

from __future__ import annotations

from typing import Any

from speclens.models import SchemaLike, SchemaNode
from speclens.parser.resolver import SchemaResolver

# JSON Schema keyword -> SchemaNode field, copied verbatim when present.
_SCALAR_KEYWORDS = {
    "format": "format",
    "title": "title",
    "description": "description",
    "default": "default",
    "example": "example",
    "pattern": "pattern",
    "minLength": "min_length",
    "maxLength": "max_length",
    "minItems": "min_items",
    "maxItems": "max_items",
}

_FLAG_KEYWORDS = {
    "nullable": "nullable",
    "readOnly": "read_only",
    "writeOnly": "write_only",
    "deprecated": "deprecated",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def build_schema(raw: Any, resolver: SchemaResolver) -> SchemaLike:
    """Convert one raw JSON Schema object into a schema node.

    Handles OpenAPI 3.1 type arrays (``["string", "null"]`` becomes
    ``type="string", nullable=True``), the 3.0 ``nullable`` keyword,
    numeric and boolean forms of ``exclusiveMinimum``/``exclusiveMaximum``,
    ``const`` (as a one-value enum) and the ``allOf``/``oneOf``/``anyOf``
    combinators.

    Args:
        raw: The raw schema. Non-dict values produce an empty node.
        resolver: Reference table of the current parse call.

    Returns:
        A :class:`~speclens.models.SchemaNode`, or a
        :class:`~speclens.models.SchemaRef` when *raw* is a cyclic or
        dangling reference.
    """
    if not isinstance(raw, dict):
        return SchemaNode()
    if "$ref" in raw:
        return resolver.lookup_ref(str(raw["$ref"]))

    fields: dict[str, Any] = {}

    type_value = raw.get("type")
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        fields["type"] = str(non_null[0]) if non_null else "null"
        if "null" in type_value:
            fields["nullable"] = True
    elif type_value is not None:
        fields["type"] = str(type_value)
    elif "properties" in raw:
        fields["type"] = "object"
    elif "items" in raw:
        fields["type"] = "array"

    for keyword, field in _SCALAR_KEYWORDS.items():
        if raw.get(keyword) is not None:
            fields[field] = raw[keyword]
    for keyword, field in _FLAG_KEYWORDS.items():
        if raw.get(keyword):
            fields[field] = True
    if raw.get("x-nullable"):
        fields["nullable"] = True

    if _is_number(raw.get("minimum")):
        fields["minimum"] = raw["minimum"]
    if _is_number(raw.get("maximum")):
        fields["maximum"] = raw["maximum"]
    # 3.1 uses numeric bounds, 3.0 uses a boolean that modifies minimum/maximum.
    for keyword, field, bound in (
        ("exclusiveMinimum", "exclusive_minimum", "minimum"),
        ("exclusiveMaximum", "exclusive_maximum", "maximum"),
    ):
        value = raw.get(keyword)
        if _is_number(value):
            fields[field] = value
        elif value is True and bound in fields:
            fields[field] = fields.pop(bound)

    if isinstance(raw.get("enum"), list):
        fields["enum"] = list(raw["enum"])
    elif "const" in raw:
        fields["enum"] = [raw["const"]]

    required = raw.get("required")
    if isinstance(required, list):
        fields["required"] = [str(name) for name in required]

    properties = raw.get("properties")
    if isinstance(properties, dict):
        fields["properties"] = {
            str(name): build_schema(prop, resolver) for name, prop in properties.items()
        }

    if "items" in raw:
        fields["items"] = build_schema(raw["items"], resolver)

    additional = raw.get("additionalProperties")
    if isinstance(additional, bool):
        fields["additional_properties"] = additional
    elif isinstance(additional, dict):
        fields["additional_properties"] = build_schema(additional, resolver)

    for keyword, field in (("allOf", "all_of"), ("oneOf", "one_of"), ("anyOf", "any_of")):
        members = raw.get(keyword)
        if isinstance(members, list):
            fields[field] = [build_schema(member, resolver) for member in members]

    return SchemaNode(**fields)


def infer_schema(value: Any) -> SchemaNode:
    """Infer a schema from a decoded JSON example.

    Objects become ``object`` schemas with one property per key, arrays take
    their item schema from the first element, and ``null`` becomes a
    nullable node without a type.

    Example::

        >>> infer_schema({"id": 1, "tags": ["a"]}).properties["tags"].items.type
        'string'
    """
    if isinstance(value, dict):
        return SchemaNode(
            type="object",
            properties={str(k): infer_schema(v) for k, v in value.items()},
        )
    if isinstance(value, list):
        return SchemaNode(
            type="array", items=infer_schema(value[0]) if value else SchemaNode()
        )
    if isinstance(value, bool):
        return SchemaNode(type="boolean")
    if isinstance(value, int):
        return SchemaNode(type="integer")
    if isinstance(value, float):
        return SchemaNode(type="number")
    if isinstance(value, str):
        return SchemaNode(type="string")
    return SchemaNode(nullable=True)
