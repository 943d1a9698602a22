"""Format parsers -- decode API descriptions and build the unified model.

This sub-package is responsible for the first stage of the speclens
pipeline: turning OpenAPI 3.x, AsyncAPI 2.x, Postman v2.x or GraphQL AST
documents into a :class:`~speclens.models.UnifiedSpec`.

Typical usage::

    from speclens.parser import load_source, parse_spec

    text = load_source("https://petstore3.swagger.io/api/v3/openapi.json")
    spec = parse_spec(text)

Sub-modules:

* :mod:`~speclens.parser.loader` -- source I/O (URL, file, stdin), JSON/YAML
  decoding and format detection.
* :mod:`~speclens.parser.resolver` -- per-call schema reference table,
  final-walk resolution, canonical form and deduplication.
* :mod:`~speclens.parser.schema` -- JSON Schema builder and example-based
  inference.
* :mod:`~speclens.parser.openapi`, :mod:`~speclens.parser.asyncapi`,
  :mod:`~speclens.parser.postman`, :mod:`~speclens.parser.graphql` -- one
  parser per format.
* :mod:`~speclens.parser.dispatch` -- :func:`parse_spec`, the entry point.
"""

from speclens.parser.dispatch import parse_document, parse_spec
from speclens.parser.loader import decode_document, detect_format, load_source
from speclens.parser.resolver import (
    SchemaResolver,
    canonical_json,
    deduplicate_schemas,
    resolve,
)

__all__ = [
    "parse_spec",
    "parse_document",
    "load_source",
    "decode_document",
    "detect_format",
    "SchemaResolver",
    "resolve",
    "canonical_json",
    "deduplicate_schemas",
]
