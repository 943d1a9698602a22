"""Parse GraphQL SDL documents, given as their JSON AST, into a :class:`~speclens.models.UnifiedSpec`.

The input is the ``Document`` node produced by ``graphql-js``'s ``parse``
(or any tool emitting the same shape). Root operation types map to
endpoints and every other type definition maps to a named schema:

========================  =========================================
AST node                  Unified representation
========================  =========================================
``Query`` field           endpoint ``QUERY /query/<field>``
``Mutation`` field        endpoint ``MUTATION /mutation/<field>``
``Subscription`` field    endpoint ``SUBSCRIPTION /subscription/<field>``
field argument            query parameter (``NonNullType`` = required)
field return type         ``200`` response schema
object/input/interface    ``object`` schema, one property per field
enum                      ``string`` schema with ``enum`` values
union                     ``oneOf`` of member schemas
custom scalar             ``string`` schema with ``format`` = scalar name
========================  =========================================

A ``SchemaDefinition`` may rename the root types; those names are honoured.
ASTs carry no title or version, so ``"GraphQL Schema"`` and ``"1.0.0"``
apply; only ``definitions`` is required.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from speclens.exceptions import ValidationError
from speclens.models import (
    Endpoint,
    MediaType,
    Parameter,
    ParameterLocation,
    Response,
    SchemaLike,
    SchemaNode,
    SchemaRef,
    SpecFormat,
    UnifiedSpec,
)
from speclens.parser.resolver import SchemaResolver

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "GraphQL Schema"
DEFAULT_VERSION = "1.0.0"

_BUILTIN_SCALARS: dict[str, tuple[str, Optional[str]]] = {
    "String": ("string", None),
    "ID": ("string", "id"),
    "Int": ("integer", "int32"),
    "Float": ("number", "double"),
    "Boolean": ("boolean", None),
}

_TYPE_DEFINITIONS = frozenset(
    {
        "ObjectTypeDefinition",
        "InputObjectTypeDefinition",
        "InterfaceTypeDefinition",
        "EnumTypeDefinition",
        "UnionTypeDefinition",
        "ScalarTypeDefinition",
    }
)


def parse_graphql(doc: dict[str, Any]) -> UnifiedSpec:
    """Build a :class:`~speclens.models.UnifiedSpec` from a GraphQL ``Document`` AST.

    Args:
        doc: The decoded AST.

    Returns:
        The unified representation of the schema.

    Raises:
        ValidationError: If ``definitions`` is missing or empty.
    """
    definitions = doc.get("definitions")
    if not isinstance(definitions, list) or not definitions:
        raise ValidationError("graphql", ["definitions"])

    roots = _root_type_names(definitions)
    root_fields: dict[str, list[dict[str, Any]]] = {op: [] for op in roots}
    named: dict[str, dict[str, Any]] = {}

    for definition in definitions:
        if not isinstance(definition, dict):
            continue
        kind = definition.get("kind")
        name = _name(definition)
        if kind not in _TYPE_DEFINITIONS or name is None:
            continue
        operation = next((op for op, root in roots.items() if root == name), None)
        if operation is not None and kind == "ObjectTypeDefinition":
            root_fields[operation].extend(
                f for f in definition.get("fields") or [] if isinstance(f, dict)
            )
        else:
            named[name] = definition

    resolver = SchemaResolver(named, _build_definition)
    schemas = resolver.resolve_all()

    endpoints: list[Endpoint] = []
    for operation, fields in root_fields.items():
        for field in fields:
            endpoints.append(_field_endpoint(operation, field, resolver))

    if resolver.dangling:
        logger.warning(
            "Unresolved type references kept as placeholders: %s",
            ", ".join(resolver.dangling),
        )

    return UnifiedSpec(
        title=DEFAULT_TITLE,
        version=DEFAULT_VERSION,
        description=_description(_schema_definition(definitions)),
        source_format=SpecFormat.GRAPHQL,
        source_version=None,
        endpoints=endpoints,
        schemas=schemas,
        tags=[op for op, fields in root_fields.items() if fields],
    )


def _name(node: Any) -> Optional[str]:
    if isinstance(node, dict):
        name = node.get("name")
        if isinstance(name, dict) and name.get("value") is not None:
            return str(name["value"])
    return None


def _description(node: Any) -> Optional[str]:
    """Descriptions are ``StringValue`` nodes in the AST, or plain strings in some dumps."""
    if not isinstance(node, dict):
        return None
    description = node.get("description")
    if isinstance(description, dict):
        description = description.get("value")
    return str(description) if description is not None else None


def _schema_definition(definitions: list[Any]) -> Optional[dict[str, Any]]:
    for definition in definitions:
        if isinstance(definition, dict) and definition.get("kind") == "SchemaDefinition":
            return definition
    return None


def _root_type_names(definitions: list[Any]) -> dict[str, str]:
    """Map ``query``/``mutation``/``subscription`` to their root type names."""
    roots = {"query": "Query", "mutation": "Mutation", "subscription": "Subscription"}
    schema_def = _schema_definition(definitions)
    if schema_def is not None:
        for op_type in schema_def.get("operationTypes") or []:
            operation = op_type.get("operation") if isinstance(op_type, dict) else None
            type_name = _name(op_type.get("type")) if isinstance(op_type, dict) else None
            if operation in roots and type_name:
                roots[operation] = type_name
    return roots


def _unwrap(type_node: Any) -> tuple[Any, bool]:
    """Strip one ``NonNullType`` wrapper; return the inner node and whether it was required."""
    if isinstance(type_node, dict) and type_node.get("kind") == "NonNullType":
        return type_node.get("type") or type_node.get("ofType"), True
    return type_node, False


def _type_schema(type_node: Any, resolver: SchemaResolver) -> SchemaLike:
    """Convert a type reference (``NamedType``/``ListType``/``NonNullType``) to a schema."""
    inner, _ = _unwrap(type_node)
    if not isinstance(inner, dict):
        return SchemaNode()
    if inner.get("kind") == "ListType":
        return SchemaNode(
            type="array",
            items=_type_schema(inner.get("type") or inner.get("ofType"), resolver),
        )
    name = _name(inner)
    if name is None:
        return SchemaNode()
    if name in _BUILTIN_SCALARS:
        json_type, fmt = _BUILTIN_SCALARS[name]
        return SchemaNode(type=json_type, format=fmt)
    return resolver.lookup(name)


def _build_definition(definition: dict[str, Any], resolver: SchemaResolver) -> SchemaLike:
    """Build the schema for one named type definition."""
    kind = definition.get("kind")
    description = _description(definition)

    if kind == "EnumTypeDefinition":
        values = [_name(v) for v in definition.get("values") or []]
        return SchemaNode(
            type="string",
            description=description,
            enum=[v for v in values if v is not None],
        )

    if kind == "UnionTypeDefinition":
        members: list[SchemaLike] = []
        for member in definition.get("types") or []:
            member_name = _name(member)
            if member_name is not None:
                members.append(resolver.lookup(member_name))
        return SchemaNode(description=description, one_of=members)

    if kind == "ScalarTypeDefinition":
        return SchemaNode(type="string", format=_name(definition), description=description)

    # Object, input object and interface definitions all carry fields.
    properties: dict[str, SchemaLike] = {}
    required: list[str] = []
    for field in definition.get("fields") or []:
        field_name = _name(field)
        if field_name is None:
            continue
        _, is_required = _unwrap(field.get("type"))
        schema = _type_schema(field.get("type"), resolver)
        field_description = _description(field)
        if field_description and isinstance(schema, SchemaNode) and schema.origin is None:
            schema = schema.model_copy(update={"description": field_description})
        if _is_deprecated(field) and isinstance(schema, SchemaNode) and schema.origin is None:
            schema = schema.model_copy(update={"deprecated": True})
        properties[field_name] = schema
        if is_required:
            required.append(field_name)

    return SchemaNode(
        type="object",
        description=description,
        properties=properties,
        required=required,
    )


def _is_deprecated(node: dict[str, Any]) -> bool:
    return any(_name(d) == "deprecated" for d in node.get("directives") or [])


def _field_endpoint(operation: str, field: dict[str, Any], resolver: SchemaResolver) -> Endpoint:
    """Turn one root field into an endpoint."""
    field_name = _name(field) or ""
    parameters: list[Parameter] = []
    for arg in field.get("arguments") or []:
        arg_name = _name(arg)
        if arg_name is None:
            continue
        _, is_required = _unwrap(arg.get("type"))
        parameters.append(
            Parameter(
                name=arg_name,
                location=ParameterLocation.QUERY,
                required=is_required,
                description=_description(arg),
                schema=_type_schema(arg.get("type"), resolver),
            )
        )

    result = _type_schema(field.get("type"), resolver)
    if isinstance(result, SchemaRef):
        logger.debug("Root field %s returns unresolved type %s", field_name, result.name)

    return Endpoint(
        path=f"/{operation}/{field_name}",
        method=operation.upper(),
        operation_id=field_name,
        description=_description(field),
        parameters=parameters,
        responses=[
            Response(
                status_code="200",
                description="Successful response",
                content={"application/json": MediaType(schema=result)},
            )
        ],
        tags=[operation],
        deprecated=_is_deprecated(field),
    )
