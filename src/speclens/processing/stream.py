"""Single-pass lazy traversal of a spec's endpoints and models."""

from __future__ import annotations

from typing import Iterator, Union

from speclens.exceptions import StreamConsumedError
from speclens.models import EndpointItem, ModelItem, NamedSchema, UnifiedSpec


class SpecStream:
    """Yield every endpoint, then every model, of a spec one at a time.

    Items are built on demand, so only the item in hand is materialised.
    The stream can be iterated once; starting a second iteration raises
    :class:`~speclens.exceptions.StreamConsumedError`.

    Example::

        for item in SpecStream(spec):
            if item.kind == "endpoint":
                print(item.endpoint.key)
    """

    def __init__(self, spec: UnifiedSpec) -> None:
        self._spec = spec
        self._started = False

    def __len__(self) -> int:
        return len(self._spec.endpoints) + len(self._spec.schemas)

    @property
    def consumed(self) -> bool:
        return self._started

    def __iter__(self) -> Iterator[Union[EndpointItem, ModelItem]]:
        if self._started:
            raise StreamConsumedError("SpecStream can only be iterated once")
        self._started = True
        return self._generate()

    def _generate(self) -> Iterator[Union[EndpointItem, ModelItem]]:
        for endpoint in self._spec.endpoints:
            yield EndpointItem(endpoint=endpoint)
        for name, node in self._spec.schemas.items():
            yield ModelItem(model=NamedSchema(name=name, schema_=node))
