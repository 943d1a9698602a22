"""Heuristic detection of authentication styles.

:func:`detect_auth_patterns` runs three passes over a
:class:`~speclens.models.UnifiedSpec`:

1. every declared security scheme is matched against :data:`SCHEME_RULES`
   (first matching rule wins, unmatched schemes are skipped);
2. header parameters whose names contain one of :data:`CUSTOM_AUTH_HEADERS`
   are merged into a single ``custom`` pattern;
3. a ``hybrid`` pattern is added when a scheme classified as ``hmac`` and
   an ``oauth2`` scheme are both declared.

The result is sorted by confidence, highest first; ties keep detection
order. Detection never raises.
"""

from __future__ import annotations

import logging
from typing import Callable, NamedTuple, Optional

from speclens.models import (
    AuthHeader,
    AuthParameter,
    AuthPattern,
    ParameterLocation,
    SecurityScheme,
    UnifiedSpec,
)

logger = logging.getLogger(__name__)

HMAC_INDICATORS = ("hmac", "signature", "sign", "hash", "sha256", "sha1", "md5")

CUSTOM_AUTH_HEADERS = (
    "x-api-key",
    "x-auth-token",
    "x-signature",
    "x-timestamp",
    "x-client-id",
    "x-request-id",
    "x-nonce",
    "x-hmac",
)

CUSTOM_CONFIDENCE = 0.6
HYBRID_CONFIDENCE = 0.75


def is_hmac_like(scheme: SecurityScheme) -> bool:
    """True if the scheme's serialised form mentions a signing keyword."""
    text = scheme.model_dump_json(exclude_defaults=True).lower()
    return any(indicator in text for indicator in HMAC_INDICATORS)


def is_hmac_scheme(scheme: SecurityScheme) -> bool:
    """True if *scheme* is classified as ``hmac``: a non-standard type that is HMAC-like."""
    return scheme.type not in ("oauth2", "apiKey", "http") and is_hmac_like(scheme)


# ------------------------------------------------------------------ #
# Scheme rules
# ------------------------------------------------------------------ #


def _oauth2(scheme: SecurityScheme, confidence: float) -> AuthPattern:
    flow = next(iter(scheme.flows), None)
    return AuthPattern(
        type="oauth2",
        subtype=flow or "unknown",
        flow=flow,
        scheme_name=scheme.name,
        parameters=[
            AuthParameter(name="access_token", location="header", format="Bearer {token}")
        ],
        headers=[AuthHeader(name="Authorization", format="Bearer {token}")],
        confidence=confidence,
        complexity="moderate",
    )


def _api_key(scheme: SecurityScheme, confidence: float) -> AuthPattern:
    name = scheme.param_name or scheme.name
    location = scheme.location or "header"
    return AuthPattern(
        type="api_key",
        scheme_name=scheme.name,
        parameters=[
            AuthParameter(name=name, location=location, example="your-api-key-here")
        ],
        headers=[AuthHeader(name=name, format="{api_key}")] if location == "header" else [],
        confidence=confidence,
        complexity="simple",
    )


def _bearer(scheme: SecurityScheme, confidence: float) -> AuthPattern:
    return AuthPattern(
        type="jwt",
        subtype=scheme.bearer_format,
        scheme_name=scheme.name,
        parameters=[AuthParameter(name="token", location="header", format="Bearer {jwt}")],
        headers=[AuthHeader(name="Authorization", format="Bearer {jwt}")],
        confidence=confidence,
        complexity="moderate",
    )


def _basic(scheme: SecurityScheme, confidence: float) -> AuthPattern:
    return AuthPattern(
        type="basic",
        scheme_name=scheme.name,
        parameters=[
            AuthParameter(name="username", location="header"),
            AuthParameter(name="password", location="header"),
        ],
        headers=[
            AuthHeader(name="Authorization", format="Basic {base64(username:password)}")
        ],
        confidence=confidence,
        complexity="simple",
    )


def _hmac(scheme: SecurityScheme, confidence: float) -> AuthPattern:
    return AuthPattern(
        type="hmac",
        scheme_name=scheme.name,
        parameters=[
            AuthParameter(name="signature", location="header", format="HMAC-SHA256"),
            AuthParameter(name="timestamp", location="header"),
            AuthParameter(name="nonce", location="header", required=False),
        ],
        headers=[
            AuthHeader(name="X-Signature", format="HMAC-SHA256={signature}"),
            AuthHeader(name="X-Timestamp", format="{unix_timestamp}"),
        ],
        confidence=confidence,
        complexity="complex",
    )


def _http_scheme(scheme: SecurityScheme) -> str:
    return (scheme.scheme or "").lower()


class SchemeRule(NamedTuple):
    predicate: Callable[[SecurityScheme], bool]
    confidence: float
    build: Callable[[SecurityScheme, float], AuthPattern]


SCHEME_RULES: tuple[SchemeRule, ...] = (
    SchemeRule(lambda s: s.type == "oauth2", 0.9, _oauth2),
    SchemeRule(lambda s: s.type == "apiKey", 0.8, _api_key),
    SchemeRule(lambda s: s.type == "http" and _http_scheme(s) == "bearer", 0.85, _bearer),
    SchemeRule(lambda s: s.type == "http" and _http_scheme(s) == "basic", 0.9, _basic),
    SchemeRule(is_hmac_scheme, 0.7, _hmac),
)


def classify_scheme(scheme: SecurityScheme) -> Optional[AuthPattern]:
    """Return the pattern for *scheme*, or ``None`` when no rule matches."""
    for rule in SCHEME_RULES:
        if rule.predicate(scheme):
            return rule.build(scheme, rule.confidence)
    return None


# ------------------------------------------------------------------ #
# Detection passes
# ------------------------------------------------------------------ #


def custom_auth_headers(spec: UnifiedSpec) -> list[str]:
    """Header parameter names that look like hand-rolled auth, first-seen order.

    Names are merged case-insensitively; the first spelling seen is kept.
    """
    seen: dict[str, str] = {}
    for endpoint in spec.endpoints:
        for param in endpoint.parameters:
            if param.location != ParameterLocation.HEADER:
                continue
            lowered = param.name.lower()
            if any(marker in lowered for marker in CUSTOM_AUTH_HEADERS):
                seen.setdefault(lowered, param.name)
    return list(seen.values())


def _custom_pattern(headers: list[str]) -> AuthPattern:
    return AuthPattern(
        type="custom",
        parameters=[AuthParameter(name=h, location="header") for h in headers],
        headers=[AuthHeader(name=h, format="{custom_value}") for h in headers],
        confidence=CUSTOM_CONFIDENCE,
        complexity="moderate",
    )


def _hybrid_pattern(spec: UnifiedSpec) -> Optional[AuthPattern]:
    oauth = [s for s in spec.security_schemes if s.type == "oauth2"]
    if not oauth:
        return None
    partner = oauth[0]
    for candidate in spec.security_schemes:
        if not is_hmac_scheme(candidate):
            continue
        hmac = _hmac(candidate, 0.7)
        oauth2 = _oauth2(partner, 0.9)
        return AuthPattern(
            type="hybrid",
            subtype="hmac_oauth",
            scheme_name=f"{candidate.name}+{partner.name}",
            parameters=hmac.parameters + oauth2.parameters,
            headers=hmac.headers + oauth2.headers,
            confidence=HYBRID_CONFIDENCE,
            complexity="complex",
        )
    return None


def detect_auth_patterns(spec: UnifiedSpec) -> list[AuthPattern]:
    """Detect every authentication style declared or implied by *spec*.

    Args:
        spec: The spec to inspect.

    Returns:
        Patterns ordered by descending confidence. ``oauth2`` (0.9) always
        ranks ahead of ``api_key`` (0.8).
    """
    patterns: list[AuthPattern] = []
    for scheme in spec.security_schemes:
        pattern = classify_scheme(scheme)
        if pattern is None:
            logger.debug("No auth rule matched scheme %r (type %s)", scheme.name, scheme.type)
            continue
        patterns.append(pattern)

    headers = custom_auth_headers(spec)
    if headers:
        patterns.append(_custom_pattern(headers))

    hybrid = _hybrid_pattern(spec)
    if hybrid is not None:
        patterns.append(hybrid)

    return sorted(patterns, key=lambda p: -p.confidence)
