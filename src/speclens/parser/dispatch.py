"""Single entry point that turns raw text into a :class:`~speclens.models.UnifiedSpec`.

:func:`parse_spec` decodes the text, determines the format (declared or
sniffed), and hands the document to the matching format parser. Every
call builds its own reference table inside that parser, so it is safe to
call concurrently from several threads.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Union

from speclens.exceptions import FormatError
from speclens.models import RawSpecDocument, SpecFormat, UnifiedSpec
from speclens.parser.asyncapi import parse_asyncapi
from speclens.parser.graphql import parse_graphql
from speclens.parser.loader import decode_document, detect_format
from speclens.parser.openapi import parse_openapi
from speclens.parser.postman import parse_postman

logger = logging.getLogger(__name__)

_PARSERS: dict[SpecFormat, Callable[[dict[str, Any]], UnifiedSpec]] = {
    SpecFormat.OPENAPI: parse_openapi,
    SpecFormat.ASYNCAPI: parse_asyncapi,
    SpecFormat.POSTMAN: parse_postman,
    SpecFormat.GRAPHQL: parse_graphql,
}


def parse_spec(
    source: Union[str, RawSpecDocument],
    format: Optional[Union[SpecFormat, str]] = None,
) -> UnifiedSpec:
    """Parse an API description in any supported format.

    Args:
        source: The raw text, or a :class:`~speclens.models.RawSpecDocument`
            carrying the text and an optional declared format.
        format: Declared format. Overrides the one on *source*; when both
            are absent the format is detected from the document.

    Returns:
        The unified representation of the document.

    Raises:
        FormatError: If the text cannot be decoded or the format cannot be
            recognised.
        UnsupportedVersionError: If the declared version is outside the
            supported range for its format.
        ValidationError: If required top-level fields are missing.
    """
    if isinstance(source, RawSpecDocument):
        text = source.text
        format = format or source.format
    else:
        text = source

    document = decode_document(text)
    if format is None:
        spec_format = detect_format(document)
    else:
        try:
            spec_format = SpecFormat(format)
        except ValueError:
            supported = ", ".join(f.value for f in SpecFormat)
            raise FormatError(
                f"unknown format {format!r} (expected one of: {supported})"
            ) from None
    return parse_document(document, spec_format)


def parse_document(document: dict[str, Any], spec_format: SpecFormat) -> UnifiedSpec:
    """Parse an already-decoded document with the parser for *spec_format*."""
    spec = _PARSERS[spec_format](document)
    logger.debug(
        "Parsed %s document %r: %d endpoint(s), %d schema(s)",
        spec_format.value,
        spec.title,
        len(spec.endpoints),
        len(spec.schemas),
    )
    return spec
