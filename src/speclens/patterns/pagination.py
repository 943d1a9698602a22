"""Heuristic detection of pagination styles per endpoint.

Each rule in :data:`PAGINATION_RULES` looks independently at the
endpoint's query parameter names and, for some rules, at the top-level
property names of its success response (``200`` or ``201``,
``application/json``). Any subset of rules may match. Matches are sorted
by confidence, highest first; ties keep rule order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from speclens.models import (
    Endpoint,
    PaginationPattern,
    ParameterLocation,
    SchemaLike,
    SchemaNode,
    UnifiedSpec,
)
from speclens.parser.resolver import resolve

logger = logging.getLogger(__name__)

_SEGMENT = re.compile(r"[^0-9a-z]+")


@dataclass(frozen=True)
class PaginationRule:
    """One pagination style and the names that signal it.

    ``indicators`` match as case-insensitive substrings, except those in
    ``whole_words`` which must equal a whole ``_``/``-``/``.``-separated
    segment of the name.
    """

    type: str
    confidence: float
    indicators: tuple[str, ...]
    parameters: tuple[str, ...]
    response_fields: tuple[str, ...]
    next_page_logic: str
    check_response: bool = False
    whole_words: tuple[str, ...] = ()

    def matches(self, name: str) -> bool:
        lowered = name.lower()
        segments = set(_SEGMENT.split(lowered))
        for indicator in self.indicators:
            if indicator in self.whole_words:
                if indicator in segments:
                    return True
            elif indicator.lower() in lowered:
                return True
        return False


PAGINATION_RULES: tuple[PaginationRule, ...] = (
    PaginationRule(
        type="offset",
        confidence=0.9,
        indicators=("page", "offset", "skip", "limit", "size", "per_page"),
        parameters=("page", "limit", "offset", "size"),
        response_fields=("total", "totalPages", "currentPage"),
        next_page_logic="page + 1",
    ),
    PaginationRule(
        type="cursor",
        confidence=0.85,
        indicators=("cursor", "after", "before", "next_cursor"),
        parameters=("cursor", "after", "before"),
        response_fields=("nextCursor", "hasNext", "endCursor"),
        next_page_logic="response.nextCursor",
        check_response=True,
    ),
    PaginationRule(
        type="compound_cursor",
        confidence=0.8,
        indicators=(
            "starting_after",
            "ending_before",
            "created[gte]",
            "created[lte]",
            "sort_key",
            "range_key",
            "partition_key",
        ),
        parameters=("starting_after", "ending_before", "created[gte]", "created[lte]"),
        response_fields=("has_more", "data[].id", "data[].created"),
        next_page_logic="last_item.id + timestamp",
    ),
    PaginationRule(
        type="token",
        confidence=0.85,
        indicators=("token", "pageToken", "nextPageToken", "page_token"),
        parameters=("pageToken", "nextPageToken"),
        response_fields=("nextPageToken", "prevPageToken"),
        next_page_logic="response.nextPageToken",
        check_response=True,
    ),
    PaginationRule(
        type="timestamp",
        confidence=0.7,
        indicators=("since", "until", "from", "to", "timestamp", "date"),
        parameters=("since", "until", "from", "to"),
        response_fields=("oldest", "newest", "has_more"),
        next_page_logic="response.oldest - 1",
        whole_words=("from", "to"),
    ),
    PaginationRule(
        type="hybrid",
        confidence=0.75,
        indicators=("bookmark", "continuation", "scroll_id", "search_after"),
        parameters=("bookmark", "continuation", "scroll_id"),
        response_fields=("bookmark", "continuation", "scroll_id"),
        next_page_logic="response.bookmark || response.continuation",
        check_response=True,
    ),
)


def query_parameter_names(endpoint: Endpoint) -> list[str]:
    return [p.name for p in endpoint.parameters if p.location == ParameterLocation.QUERY]


def response_property_names(
    endpoint: Endpoint, schemas: Optional[Mapping[str, SchemaLike]] = None
) -> list[str]:
    """Top-level property names of the first success JSON response.

    A reference to a named schema is followed when *schemas* is given.
    """
    by_status = {r.status_code: r for r in endpoint.responses}
    response = by_status.get("200") or by_status.get("201")
    if response is None:
        return []
    media = response.content.get("application/json")
    if media is None or media.schema_ is None:
        return []
    node = media.schema_
    if schemas is not None:
        node = resolve(node, schemas)
    if not isinstance(node, SchemaNode):
        return []
    return list(node.properties)


def detect_pagination_pattern(
    endpoint: Endpoint, schemas: Optional[Mapping[str, SchemaLike]] = None
) -> list[PaginationPattern]:
    """Detect pagination styles for one endpoint.

    Args:
        endpoint: The endpoint to inspect.
        schemas: Named schemas used to follow references in the response.

    Returns:
        Matching patterns, highest confidence first. Empty when nothing
        matches.
    """
    params = query_parameter_names(endpoint)
    fields = response_property_names(endpoint, schemas)

    patterns: list[PaginationPattern] = []
    for rule in PAGINATION_RULES:
        matched = [name for name in params if rule.matches(name)]
        if rule.check_response:
            matched += [name for name in fields if rule.matches(name)]
        if not matched:
            continue
        patterns.append(
            PaginationPattern(
                type=rule.type,
                parameters=list(rule.parameters),
                response_fields=list(rule.response_fields),
                next_page_logic=rule.next_page_logic,
                matched=list(dict.fromkeys(matched)),
                confidence=rule.confidence,
            )
        )
    return sorted(patterns, key=lambda p: -p.confidence)


def detect_spec_pagination(spec: UnifiedSpec) -> dict[str, list[PaginationPattern]]:
    """Map each endpoint key to its pagination patterns, omitting empty results."""
    found: dict[str, list[PaginationPattern]] = {}
    for endpoint in spec.endpoints:
        patterns = detect_pagination_pattern(endpoint, spec.schemas)
        if patterns:
            found[endpoint.key] = patterns
    logger.debug("Pagination detected on %d of %d endpoint(s)", len(found), len(spec.endpoints))
    return found
