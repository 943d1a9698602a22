"""Per-item normalization applied by every processing mode."""

from __future__ import annotations

import re
import threading
from typing import Mapping, Optional

from speclens.models import Endpoint, NamedSchema, SchemaLike
from speclens.parser.resolver import resolve

_NON_WORD = re.compile(r"[^0-9A-Za-z]+")


def operation_id_for(method: str, path: str) -> str:
    """Derive an operation id from a method and path.

    >>> operation_id_for("GET", "/pets/{petId}")
    'get_pets_petId'
    """
    words = [w for w in _NON_WORD.split(path) if w]
    return "_".join([method.lower(), *words]) if words else method.lower()


def normalize_endpoint(endpoint: Endpoint) -> Endpoint:
    """Upper-case the method, de-duplicate tags and fill in a missing operation id."""
    tags = list(dict.fromkeys(endpoint.tags))
    method = endpoint.method.upper()
    return endpoint.model_copy(
        update={
            "method": method,
            "tags": tags,
            "operation_id": endpoint.operation_id or operation_id_for(method, endpoint.path),
        }
    )


class ModelNormalizer:
    """Resolve named models against the spec's schema table.

    With *memoize*, each name is resolved once per normalizer; workers on
    several threads may share one instance.
    """

    def __init__(self, schemas: Mapping[str, SchemaLike], memoize: bool = False) -> None:
        self._schemas = schemas
        self._memo: Optional[dict[str, SchemaLike]] = {} if memoize else None
        self._lock = threading.Lock()

    def __call__(self, model: NamedSchema) -> NamedSchema:
        if self._memo is None:
            return NamedSchema(name=model.name, schema_=resolve(model.schema_, self._schemas))
        with self._lock:
            cached = self._memo.get(model.name)
        if cached is None:
            cached = resolve(model.schema_, self._schemas)
            with self._lock:
                self._memo.setdefault(model.name, cached)
        return NamedSchema(name=model.name, schema_=cached)

    @property
    def memo_size(self) -> int:
        return len(self._memo) if self._memo is not None else 0
