"""Resolve named schema references, canonicalise schemas, and deduplicate them.

API descriptions use pointers (``{"$ref": "#/components/schemas/Pet"}``)
to avoid repetition. This module owns everything that has to do with
those names:

* :class:`SchemaResolver` -- the reference table of **one** parse call.
  It builds each named schema at most once, hands out a
  :class:`~speclens.models.SchemaRef` placeholder when a name is already
  being built (a cycle) or is not declared at all (a dangling reference),
  and memoises finished schemas for O(1) reuse.
* :func:`resolve` -- a final walk that expands placeholders whose target
  exists and is not an ancestor. Cyclic and dangling references stay as
  markers, so the walk always terminates.
* :func:`canonical_json` -- property-name-sorted serialisation used to
  decide whether two schemas are identical.
* :func:`deduplicate_schemas` -- keep-first removal of identical schemas,
  repointing every reference to the surviving declaration.
* :func:`resolve_pointer` -- JSON Pointer lookup for non-schema components
  (parameters, responses, request bodies, messages).

A resolver is never shared: each parser constructs a fresh one per call,
so concurrent parses cannot observe each other's tables.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping, Optional

from speclens.models import (
    Endpoint,
    MediaType,
    Parameter,
    RequestBody,
    Response,
    SchemaLike,
    SchemaNode,
    SchemaRef,
    UnifiedSpec,
)

logger = logging.getLogger(__name__)

SchemaBuilder = Callable[[Any, "SchemaResolver"], SchemaLike]

# Fields of SchemaNode that hold nested schemas and need a manual walk.
_NESTED_FIELDS = frozenset(
    {"properties", "items", "additional_properties", "all_of", "one_of", "any_of"}
)


def ref_name(ref: str) -> str:
    """Return the schema name a reference points at (its last path segment).

    Handles RFC 6901 escaping (``~1`` for ``/``, ``~0`` for ``~``).

    Example::

        >>> ref_name("#/components/schemas/Pet")
        'Pet'
    """
    segment = ref.rstrip("/").rsplit("/", 1)[-1]
    return segment.replace("~1", "/").replace("~0", "~")


def resolve_pointer(ref: str, root: Mapping[str, Any]) -> Optional[Any]:
    """Resolve an internal JSON Pointer against *root*.

    Parses references like ``#/components/parameters/limit`` and navigates
    the document to the referenced value. External references and
    pointers that do not exist yield ``None`` rather than an error, so a
    partially broken document stays usable.

    Args:
        ref: The ``$ref`` string.
        root: The decoded document to resolve against.

    Returns:
        The referenced value, or ``None`` when it cannot be found.
    """
    if not ref.startswith("#/"):
        logger.warning("External reference %s is not followed", ref)
        return None

    current: Any = root
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict):
            if segment not in current:
                logger.debug("Dangling pointer %s (missing %r)", ref, segment)
                return None
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                logger.debug("Dangling pointer %s (bad index %r)", ref, segment)
                return None
        else:
            return None
    return current


def deref(obj: Any, root: Mapping[str, Any], max_hops: int = 32) -> Any:
    """Follow ``$ref`` chains on a non-schema object until a concrete value.

    Returns ``None`` for dangling chains or chains longer than *max_hops*
    (which only happens with self-referencing pointers).
    """
    hops = 0
    while isinstance(obj, dict) and "$ref" in obj:
        if hops >= max_hops:
            logger.warning("Reference chain too long at %s", obj["$ref"])
            return None
        obj = resolve_pointer(str(obj["$ref"]), root)
        hops += 1
    return obj


class SchemaResolver:
    """Reference table scoped to a single parse call.

    The resolver knows the raw definitions of every named schema and a
    ``build`` callable that turns one raw definition into a
    :class:`~speclens.models.SchemaNode`. Builders call :meth:`lookup`
    whenever they meet a reference, which gives three outcomes:

    * the name is finished -- the stored node is returned;
    * the name is being built further up the stack -- a
      :class:`~speclens.models.SchemaRef` placeholder is returned;
    * the name is unknown -- a :class:`~speclens.models.SchemaRef` is
      returned and the name is recorded in :attr:`dangling`.

    Args:
        definitions: Raw named definitions, in declaration order.
        build: Format-specific builder for one raw definition.
    """

    def __init__(self, definitions: Mapping[str, Any], build: SchemaBuilder) -> None:
        self._definitions = dict(definitions)
        self._build = build
        self._resolved: dict[str, SchemaLike] = {}
        self._in_progress: set[str] = set()
        self.dangling: list[str] = []

    def __contains__(self, name: str) -> bool:
        return name in self._definitions

    def lookup(self, name: str) -> SchemaLike:
        """Return the schema registered under *name*, building it on first use."""
        if name in self._resolved:
            return self._resolved[name]
        if name in self._in_progress:
            return SchemaRef(name=name)
        if name not in self._definitions:
            if name not in self.dangling:
                logger.debug("Dangling schema reference: %s", name)
                self.dangling.append(name)
            return SchemaRef(name=name)

        self._in_progress.add(name)
        try:
            node = self._build(self._definitions[name], self)
        finally:
            self._in_progress.discard(name)

        if isinstance(node, SchemaNode) and node.origin is None:
            node = node.model_copy(update={"origin": name})
        self._resolved[name] = node
        return node

    def lookup_ref(self, ref: str) -> SchemaLike:
        """Shorthand for ``lookup(ref_name(ref))``."""
        return self.lookup(ref_name(ref))

    def resolve_all(self) -> dict[str, SchemaLike]:
        """Build every declared schema and return them in declaration order."""
        return {name: self.lookup(name) for name in self._definitions}


# ------------------------------------------------------------------ #
# Final walk
# ------------------------------------------------------------------ #


def map_children(node: SchemaNode, fn: Callable[[SchemaLike], SchemaLike]) -> SchemaNode:
    """Return a copy of *node* with *fn* applied to every direct child schema."""
    update: dict[str, Any] = {}
    if node.properties:
        update["properties"] = {k: fn(v) for k, v in node.properties.items()}
    if node.items is not None:
        update["items"] = fn(node.items)
    if node.additional_properties is not None and not isinstance(
        node.additional_properties, bool
    ):
        update["additional_properties"] = fn(node.additional_properties)
    for key in ("all_of", "one_of", "any_of"):
        children = getattr(node, key)
        if children:
            update[key] = [fn(child) for child in children]
    if not update:
        return node
    return node.model_copy(update=update)


def transform(node: SchemaLike, fn: Callable[[SchemaLike], SchemaLike]) -> SchemaLike:
    """Apply *fn* bottom-up to every node of a schema tree.

    A named schema reused at several places is one shared object; it is
    transformed once and the result is shared again.
    """
    memo: dict[int, tuple[SchemaLike, SchemaLike]] = {}

    def walk(current: SchemaLike) -> SchemaLike:
        hit = memo.get(id(current))
        if hit is not None:
            return hit[1]
        result = current
        if isinstance(result, SchemaNode):
            result = map_children(result, walk)
        result = fn(result)
        memo[id(current)] = (current, result)
        return result

    return walk(node)


def resolve(node: SchemaLike, schemas: Mapping[str, SchemaLike]) -> SchemaLike:
    """Expand every reference that can be expanded without looping.

    A :class:`~speclens.models.SchemaRef` is replaced by its target when
    the target exists in *schemas* and is not one of the reference's
    ancestors (tracked through ``origin``). Cyclic and dangling references
    are left in place. The function is idempotent: resolving an already
    resolved node yields a structurally equal node.

    Args:
        node: The schema (or placeholder) to resolve.
        schemas: Named schemas of the spec the node belongs to.

    Returns:
        The resolved schema.
    """
    return _resolve(node, schemas, (), {})


def _resolve(
    node: SchemaLike,
    schemas: Mapping[str, SchemaLike],
    ancestors: tuple[str, ...],
    memo: dict[tuple[int, tuple[str, ...]], tuple[SchemaLike, SchemaLike]],
) -> SchemaLike:
    key = (id(node), ancestors)
    hit = memo.get(key)
    if hit is not None:
        return hit[1]

    result = node
    if isinstance(result, SchemaRef):
        target = schemas.get(result.name)
        if result.name in ancestors or target is None or isinstance(target, SchemaRef):
            memo[key] = (node, result)
            return result
        result = target if target.origin is not None else target.model_copy(
            update={"origin": result.name}
        )
    inner = ancestors
    if result.origin is not None and result.origin not in inner:
        inner = inner + (result.origin,)
    result = map_children(result, lambda child: _resolve(child, schemas, inner, memo))
    memo[key] = (node, result)
    return result


# ------------------------------------------------------------------ #
# Compact and canonical forms
# ------------------------------------------------------------------ #

# SchemaNode field -> JSON Schema keyword, for fields whose names differ.
_KEYWORDS = {
    "read_only": "readOnly",
    "write_only": "writeOnly",
    "exclusive_minimum": "exclusiveMinimum",
    "exclusive_maximum": "exclusiveMaximum",
    "min_length": "minLength",
    "max_length": "maxLength",
    "min_items": "minItems",
    "max_items": "maxItems",
    "additional_properties": "additionalProperties",
    "all_of": "allOf",
    "one_of": "oneOf",
    "any_of": "anyOf",
}


def collapse(node: SchemaLike, keep_root: bool = True) -> SchemaLike:
    """Replace every nested named schema with a reference to its name.

    Nodes built from a named component carry an ``origin``; below the root
    (or at the root too when *keep_root* is false) such a node becomes
    ``SchemaRef(origin)``. The result holds each named body once, so its
    size is linear in the source document however often a name is reused.
    """
    if isinstance(node, SchemaRef):
        return node
    if node.origin is not None and not keep_root:
        return SchemaRef(name=node.origin)
    return map_children(node, lambda child: collapse(child, keep_root=False))


def canonical_dict(node: SchemaLike, _root: bool = True) -> dict[str, Any]:
    """Return the canonical, origin-free ``dict`` form of a schema.

    Keys are JSON Schema keywords, so the result can be fed back to
    :func:`~speclens.parser.schema.build_schema`. Nested named schemas are
    written as ``{"$ref": name}``.
    """
    if isinstance(node, SchemaRef):
        return {"$ref": node.name}
    if node.origin is not None and not _root:
        return {"$ref": node.origin}

    out = node.model_dump(
        mode="json", exclude_defaults=True, exclude=_NESTED_FIELDS | {"origin"}
    )
    if node.properties:
        out["properties"] = {
            k: canonical_dict(v, _root=False) for k, v in node.properties.items()
        }
    if node.items is not None:
        out["items"] = canonical_dict(node.items, _root=False)
    if isinstance(node.additional_properties, bool):
        out["additional_properties"] = node.additional_properties
    elif node.additional_properties is not None:
        out["additional_properties"] = canonical_dict(
            node.additional_properties, _root=False
        )
    for key in ("all_of", "one_of", "any_of"):
        children = getattr(node, key)
        if children:
            out[key] = [canonical_dict(child, _root=False) for child in children]
    return {_KEYWORDS.get(key, key): value for key, value in out.items()}


def canonical_json(node: SchemaLike) -> str:
    """Serialise a schema with sorted keys and no bookkeeping fields.

    Two schemas are identical iff their canonical strings are equal.
    """
    return json.dumps(
        canonical_dict(node), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def compact_spec_json(spec: UnifiedSpec) -> str:
    """JSON form of *spec* with defaults omitted and every named schema written once.

    Schema slots of endpoints, and nested schemas of named schemas, that
    point at a named schema are written as a reference to it.
    """
    compact = spec.model_copy(
        update={
            "schemas": {name: collapse(node) for name, node in spec.schemas.items()},
            "endpoints": [
                map_endpoint_schemas(ep, lambda n: collapse(n, keep_root=False))
                for ep in spec.endpoints
            ],
        }
    )
    return compact.model_dump_json(by_alias=True, exclude_defaults=True)


# ------------------------------------------------------------------ #
# Deduplication
# ------------------------------------------------------------------ #


def deduplicate_schemas(spec: UnifiedSpec) -> UnifiedSpec:
    """Drop later-declared schemas that are identical to an earlier one.

    Identity is judged on the canonical form of each schema, where nested
    named schemas appear by name. Every reference to a dropped name,
    anywhere in the spec, is repointed to the first declaration.
    Repointing can make two survivors identical, so passes repeat until
    nothing changes; a second call on the result is therefore a no-op.

    Args:
        spec: The spec to deduplicate. It is not modified.

    Returns:
        A new :class:`~speclens.models.UnifiedSpec` (or *spec* itself when
        there is nothing to drop).
    """
    current = spec
    while True:
        first_by_form: dict[str, str] = {}
        renames: dict[str, str] = {}
        for name, node in current.schemas.items():
            form = canonical_json(node)
            survivor = first_by_form.setdefault(form, name)
            if survivor != name:
                renames[name] = survivor
        if not renames:
            return current
        logger.debug("Deduplicated %d schema(s): %s", len(renames), renames)
        current = _apply_renames(current, renames)


def _apply_renames(spec: UnifiedSpec, renames: dict[str, str]) -> UnifiedSpec:
    """Remove renamed schemas and repoint references to their survivors."""

    def repoint(node: SchemaLike) -> SchemaLike:
        if isinstance(node, SchemaRef) and node.name in renames:
            return SchemaRef(name=renames[node.name])
        if isinstance(node, SchemaNode) and node.origin in renames:
            return node.model_copy(update={"origin": renames[node.origin]})
        return node

    schemas = {
        name: transform(node, repoint)
        for name, node in spec.schemas.items()
        if name not in renames
    }
    endpoints = [
        map_endpoint_schemas(ep, lambda n: transform(n, repoint))
        for ep in spec.endpoints
    ]
    return spec.model_copy(update={"schemas": schemas, "endpoints": endpoints})


def map_endpoint_schemas(
    endpoint: Endpoint, fn: Callable[[SchemaLike], SchemaLike]
) -> Endpoint:
    """Return a copy of *endpoint* with *fn* applied to every schema slot.

    Slots are parameter schemas, request body media types, response media
    types, and response headers.
    """

    def media(content: dict[str, MediaType]) -> dict[str, MediaType]:
        return {
            ct: (
                mt.model_copy(update={"schema_": fn(mt.schema_)})
                if mt.schema_ is not None
                else mt
            )
            for ct, mt in content.items()
        }

    parameters: list[Parameter] = [
        p.model_copy(update={"schema_": fn(p.schema_)}) if p.schema_ is not None else p
        for p in endpoint.parameters
    ]
    request_body: Optional[RequestBody] = None
    if endpoint.request_body is not None:
        request_body = endpoint.request_body.model_copy(
            update={"content": media(endpoint.request_body.content)}
        )
    responses: list[Response] = [
        r.model_copy(
            update={
                "content": media(r.content),
                "headers": {k: fn(v) for k, v in r.headers.items()},
            }
        )
        for r in endpoint.responses
    ]
    return endpoint.model_copy(
        update={
            "parameters": parameters,
            "request_body": request_body,
            "responses": responses,
        }
    )
