"""Lookup tables over a spec: endpoints by key, models by name, tags."""

from __future__ import annotations

from speclens.models import SpecIndex, UnifiedSpec


def build_index(spec: UnifiedSpec) -> SpecIndex:
    """Index *spec* for constant-time lookups.

    ``endpoints`` is keyed by ``"METHOD path"``, ``models`` by schema name,
    and ``tags`` maps each tag to the endpoint keys carrying it in document
    order.
    """
    index = SpecIndex()
    for endpoint in spec.endpoints:
        key = endpoint.key
        index.endpoints[key] = endpoint
        for tag in endpoint.tags:
            keys = index.tags.setdefault(tag, [])
            if key not in keys:
                keys.append(key)
    index.models.update(spec.schemas)
    return index
