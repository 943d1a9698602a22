"""Memory-reduction pass applied to large specs before processing.

Three transformations, each returning new objects:

1. examples whose JSON encoding is longer than :data:`MAX_EXAMPLE_BYTES`
   are dropped (schema, parameter and media-type examples);
2. descriptions longer than :data:`MAX_DESCRIPTION_CHARS` are cut to
   ``MAX_DESCRIPTION_CHARS - 3`` characters plus ``...``;
3. identical schemas are collapsed with
   :func:`~speclens.parser.resolver.deduplicate_schemas`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from speclens.models import (
    Endpoint,
    MediaType,
    SchemaLike,
    SchemaNode,
    UnifiedSpec,
)
from speclens.parser.resolver import deduplicate_schemas, map_endpoint_schemas, transform

logger = logging.getLogger(__name__)

MAX_EXAMPLE_BYTES = 1024
MAX_DESCRIPTION_CHARS = 500
ELLIPSIS = "..."


def compress_spec(spec: UnifiedSpec) -> UnifiedSpec:
    """Apply every compression step to *spec* and return the result."""
    schemas = {name: _compress_schema(node) for name, node in spec.schemas.items()}
    endpoints = [_compress_endpoint(ep) for ep in spec.endpoints]
    compressed = spec.model_copy(
        update={
            "description": truncate_description(spec.description),
            "schemas": schemas,
            "endpoints": endpoints,
        }
    )
    result = deduplicate_schemas(compressed)
    logger.debug(
        "Compressed spec %r: %d -> %d schema(s)",
        spec.title,
        len(spec.schemas),
        len(result.schemas),
    )
    return result


def truncate_description(text: Optional[str]) -> Optional[str]:
    """Shorten *text* to at most :data:`MAX_DESCRIPTION_CHARS` characters.

    >>> len(truncate_description("x" * 600))
    500
    """
    if text is None or len(text) <= MAX_DESCRIPTION_CHARS:
        return text
    return text[: MAX_DESCRIPTION_CHARS - len(ELLIPSIS)] + ELLIPSIS


def is_excessive_example(value: Any) -> bool:
    """True if the JSON encoding of *value* is longer than 1 KiB."""
    if value is None:
        return False
    encoded = json.dumps(value, ensure_ascii=False, default=str)
    return len(encoded.encode("utf-8")) > MAX_EXAMPLE_BYTES


def _compress_node(node: SchemaLike) -> SchemaLike:
    if not isinstance(node, SchemaNode):
        return node
    update: dict[str, Any] = {}
    if is_excessive_example(node.example):
        update["example"] = None
    if node.description is not None and len(node.description) > MAX_DESCRIPTION_CHARS:
        update["description"] = truncate_description(node.description)
    return node.model_copy(update=update) if update else node


def _compress_schema(node: SchemaLike) -> SchemaLike:
    return transform(node, _compress_node)


def _compress_media(content: dict[str, MediaType]) -> dict[str, MediaType]:
    return {
        ct: mt.model_copy(update={"example": None}) if is_excessive_example(mt.example) else mt
        for ct, mt in content.items()
    }


def _compress_endpoint(endpoint: Endpoint) -> Endpoint:
    endpoint = map_endpoint_schemas(endpoint, _compress_schema)

    parameters = [
        p.model_copy(
            update={
                "description": truncate_description(p.description),
                "example": None if is_excessive_example(p.example) else p.example,
            }
        )
        for p in endpoint.parameters
    ]
    request_body = endpoint.request_body
    if request_body is not None:
        request_body = request_body.model_copy(
            update={
                "description": truncate_description(request_body.description),
                "content": _compress_media(request_body.content),
            }
        )
    responses = [
        r.model_copy(
            update={
                "description": truncate_description(r.description),
                "content": _compress_media(r.content),
            }
        )
        for r in endpoint.responses
    ]
    return endpoint.model_copy(
        update={
            "summary": truncate_description(endpoint.summary),
            "description": truncate_description(endpoint.description),
            "parameters": parameters,
            "request_body": request_body,
            "responses": responses,
        }
    )
