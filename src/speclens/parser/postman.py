"""Parse Postman collections (schema v2.0 / v2.1) into a :class:`~speclens.models.UnifiedSpec`.

Collections carry requests rather than an API contract, so this parser
reconstructs one:

* folders are walked recursively and their names become endpoint tags;
* URL ``path`` segments become the endpoint path, with ``:name`` segments
  and ``{{name}}`` variables rewritten as ``{name}`` path parameters;
* ``query`` entries become query parameters and ``header`` entries header
  parameters (disabled entries are skipped);
* raw JSON bodies and saved example responses get schemas inferred from
  their content with :func:`~speclens.parser.schema.infer_schema`;
* ``auth`` blocks (request, folder, or collection level, nearest wins)
  become security schemes.

Collections declare no named schemas, so ``schemas`` is always empty.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional
from urllib.parse import parse_qsl, urlsplit

from speclens.exceptions import UnsupportedVersionError, ValidationError
from speclens.models import (
    Endpoint,
    MediaType,
    OAuthFlow,
    Parameter,
    ParameterLocation,
    RequestBody,
    Response,
    SchemaNode,
    SecurityScheme,
    ServerInfo,
    SpecFormat,
    UnifiedSpec,
)
from speclens.parser.schema import infer_schema

logger = logging.getLogger(__name__)

_SUPPORTED = "2.x"
_SCHEMA_VERSION_RE = re.compile(r"/v(\d+(?:\.\d+)*)/")
_VARIABLE_RE = re.compile(r"^\{\{\s*([^}]+?)\s*\}\}$")
_LEADING_VARIABLE_RE = re.compile(r"^\{\{[^}]+\}\}")
_BASE_URL_VARIABLES = ("baseUrl", "base_url", "baseURL", "url", "host")

# Postman auth type -> (security scheme name, OpenAPI-style type, http scheme)
_AUTH_TYPES: dict[str, tuple[str, str, Optional[str]]] = {
    "bearer": ("bearerAuth", "http", "bearer"),
    "basic": ("basicAuth", "http", "basic"),
    "digest": ("digestAuth", "http", "digest"),
    "apikey": ("apiKeyAuth", "apiKey", None),
    "oauth2": ("oauth2Auth", "oauth2", None),
    "oauth1": ("oauth1Auth", "oauth1", None),
    "hawk": ("hawkAuth", "hawk", None),
    "awsv4": ("awsSigV4Auth", "awsv4", None),
    "ntlm": ("ntlmAuth", "ntlm", None),
    "edgegrid": ("edgegridAuth", "edgegrid", None),
}


def parse_postman(doc: dict[str, Any]) -> UnifiedSpec:
    """Build a :class:`~speclens.models.UnifiedSpec` from a decoded Postman collection.

    Args:
        doc: The decoded collection.

    Returns:
        The unified representation of the collection. ``version`` is
        ``info.version`` when present, otherwise the collection schema
        version.

    Raises:
        ValidationError: If ``info.name``, ``info.schema`` or ``item`` are
            missing (all absent fields are listed).
        UnsupportedVersionError: If the schema URL names a collection
            format other than v2.x.
    """
    info = doc.get("info") if isinstance(doc.get("info"), dict) else {}
    missing: list[str] = []
    if info.get("name") is None:
        missing.append("info.name")
    if info.get("schema") is None:
        missing.append("info.schema")
    if not isinstance(doc.get("item"), list):
        missing.append("item")
    if missing:
        raise ValidationError("postman", missing)

    match = _SCHEMA_VERSION_RE.search(str(info["schema"]))
    schema_version = match.group(1) if match else None
    if schema_version is None or not schema_version.startswith("2."):
        raise UnsupportedVersionError("postman", schema_version, _SUPPORTED)

    schemes: dict[str, SecurityScheme] = {}
    collection_auth = _register_auth(doc.get("auth"), schemes)
    endpoints = _walk_items(doc["item"], [], collection_auth, schemes)

    tags: list[str] = []
    for endpoint in endpoints:
        for tag in endpoint.tags:
            if tag not in tags:
                tags.append(tag)

    return UnifiedSpec(
        title=str(info["name"]),
        version=_collection_version(info.get("version")) or schema_version,
        description=_text(info.get("description")),
        source_format=SpecFormat.POSTMAN,
        source_version=schema_version,
        servers=_extract_servers(doc.get("variable") or []),
        endpoints=endpoints,
        schemas={},
        security_schemes=list(schemes.values()),
        global_security=collection_auth,
        tags=tags,
    )


def _collection_version(value: Any) -> Optional[str]:
    """Return ``info.version``, which v2.0 allows as a ``{major, minor, patch}`` dict."""
    if value is None:
        return None
    if isinstance(value, dict):
        parts = [str(value.get(k, 0)) for k in ("major", "minor", "patch")]
        return ".".join(parts)
    return str(value)


def _text(value: Any) -> Optional[str]:
    """Postman descriptions are either plain strings or ``{content, type}`` objects."""
    if isinstance(value, dict):
        value = value.get("content")
    return str(value) if value is not None else None


def _extract_servers(variables: list[Any]) -> list[ServerInfo]:
    for variable in variables:
        if (
            isinstance(variable, dict)
            and variable.get("key") in _BASE_URL_VARIABLES
            and variable.get("value")
        ):
            return [ServerInfo(url=str(variable["value"]), name=str(variable["key"]))]
    return []


def _walk_items(
    items: list[Any],
    folders: list[str],
    inherited_auth: list[str],
    schemes: dict[str, SecurityScheme],
) -> list[Endpoint]:
    """Recursively collect endpoints from items and folders, in document order."""
    endpoints: list[Endpoint] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("item"), list):
            folder_auth = inherited_auth
            if "auth" in item:
                folder_auth = _register_auth(item["auth"], schemes)
            endpoints.extend(
                _walk_items(
                    item["item"],
                    folders + [str(item.get("name", ""))],
                    folder_auth,
                    schemes,
                )
            )
        elif "request" in item:
            endpoint = _parse_request(item, folders, inherited_auth, schemes)
            if endpoint is not None:
                endpoints.append(endpoint)
    return endpoints


def _parse_request(
    item: dict[str, Any],
    folders: list[str],
    inherited_auth: list[str],
    schemes: dict[str, SecurityScheme],
) -> Optional[Endpoint]:
    """Convert one request item into an endpoint."""
    request = item["request"]
    if isinstance(request, str):
        request = {"method": "GET", "url": request}
    if not isinstance(request, dict):
        logger.warning("Skipping malformed request %r", item.get("name"))
        return None

    path, parameters = _parse_url(request.get("url"))

    for header in request.get("header") or []:
        if not isinstance(header, dict) or header.get("disabled") or not header.get("key"):
            continue
        parameters.append(
            Parameter(
                name=str(header["key"]),
                location=ParameterLocation.HEADER,
                required=False,
                description=_text(header.get("description")),
                schema=SchemaNode(type="string"),
                example=header.get("value"),
            )
        )

    security = inherited_auth
    if "auth" in request:
        security = _register_auth(request["auth"], schemes)

    return Endpoint(
        path=path,
        method=str(request.get("method") or "GET").upper(),
        summary=str(item.get("name")) if item.get("name") is not None else None,
        description=_text(request.get("description")),
        parameters=parameters,
        request_body=_parse_body(request.get("body")),
        responses=_parse_responses(item.get("response") or []),
        security=security,
        tags=list(folders),
    )


def _normalise_segment(segment: str) -> tuple[str, Optional[str]]:
    """Rewrite ``:id`` and ``{{id}}`` segments as ``{id}``; return the variable name."""
    if segment.startswith(":") and len(segment) > 1:
        name = segment[1:]
        return "{" + name + "}", name
    match = _VARIABLE_RE.match(segment)
    if match:
        name = match.group(1)
        return "{" + name + "}", name
    return segment, None


def _parse_url(url: Any) -> tuple[str, list[Parameter]]:
    """Return the endpoint path plus its path and query parameters."""
    segments: list[str] = []
    query: list[dict[str, Any]] = []
    variables: dict[str, dict[str, Any]] = {}

    if isinstance(url, str):
        raw = _LEADING_VARIABLE_RE.sub("", url.strip())
        if "://" not in raw:
            # urlsplit needs a scheme and host to tell the path apart
            raw = "http://host/" + raw.lstrip("/")
        parts = urlsplit(raw)
        segments = [s for s in parts.path.split("/") if s]
        query = [
            {"key": k, "value": v}
            for k, v in parse_qsl(parts.query, keep_blank_values=True)
        ]
    elif isinstance(url, dict):
        raw_path = url.get("path") or []
        if isinstance(raw_path, str):
            raw_path = raw_path.split("/")
        segments = [str(s) for s in raw_path if s]
        query = [q for q in url.get("query") or [] if isinstance(q, dict)]
        for variable in url.get("variable") or []:
            if isinstance(variable, dict) and variable.get("key"):
                variables[str(variable["key"])] = variable

    path_parts: list[str] = []
    parameters: list[Parameter] = []
    for segment in segments:
        normalised, name = _normalise_segment(segment)
        path_parts.append(normalised)
        if name is not None:
            variable = variables.get(name, {})
            parameters.append(
                Parameter(
                    name=name,
                    location=ParameterLocation.PATH,
                    required=True,
                    description=_text(variable.get("description")),
                    schema=SchemaNode(type="string"),
                    example=variable.get("value"),
                )
            )

    for entry in query:
        if entry.get("disabled") or not entry.get("key"):
            continue
        parameters.append(
            Parameter(
                name=str(entry["key"]),
                location=ParameterLocation.QUERY,
                required=False,
                description=_text(entry.get("description")),
                schema=SchemaNode(type="string"),
                example=entry.get("value"),
            )
        )

    return "/" + "/".join(path_parts), parameters


def _parse_body(body: Any) -> Optional[RequestBody]:
    """Infer a request body from the ``raw``, ``formdata``, ``urlencoded`` or ``file`` mode."""
    if not isinstance(body, dict) or body.get("disabled"):
        return None
    mode = body.get("mode", "raw")

    if mode == "raw":
        raw = body.get("raw")
        if raw is None or not str(raw).strip():
            return None
        language = (((body.get("options") or {}).get("raw") or {}).get("language") or "").lower()
        try:
            example = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            content_type = "application/xml" if language == "xml" else "text/plain"
            return RequestBody(
                content={content_type: MediaType(schema=SchemaNode(type="string"), example=raw)}
            )
        return RequestBody(
            content={"application/json": MediaType(schema=infer_schema(example), example=example)}
        )

    if mode in ("formdata", "urlencoded"):
        fields = [f for f in body.get(mode) or [] if isinstance(f, dict) and f.get("key")]
        schema = SchemaNode(
            type="object",
            properties={
                str(f["key"]): SchemaNode(
                    type="string",
                    format="binary" if f.get("type") == "file" else None,
                    description=_text(f.get("description")),
                )
                for f in fields
                if not f.get("disabled")
            },
        )
        content_type = (
            "multipart/form-data" if mode == "formdata" else "application/x-www-form-urlencoded"
        )
        return RequestBody(content={content_type: MediaType(schema=schema)})

    if mode == "file":
        return RequestBody(
            content={
                "application/octet-stream": MediaType(
                    schema=SchemaNode(type="string", format="binary")
                )
            }
        )

    if mode == "graphql":
        return RequestBody(
            content={"application/json": MediaType(example=body.get("graphql"))}
        )

    return None


def _parse_responses(responses: list[Any]) -> list[Response]:
    """Convert saved example responses, keyed by their status code."""
    result: list[Response] = []
    for saved in responses:
        if not isinstance(saved, dict):
            continue
        content_type = "application/json"
        for header in saved.get("header") or []:
            if isinstance(header, dict) and str(header.get("key", "")).lower() == "content-type":
                content_type = str(header.get("value", content_type)).split(";")[0].strip()
        content: dict[str, MediaType] = {}
        raw = saved.get("body")
        if raw:
            try:
                example = json.loads(raw)
                content[content_type] = MediaType(schema=infer_schema(example), example=example)
            except (json.JSONDecodeError, TypeError):
                content[content_type] = MediaType(schema=SchemaNode(type="string"), example=raw)
        result.append(
            Response(
                status_code=str(saved.get("code", "default")),
                description=saved.get("name") or saved.get("status"),
                content=content,
            )
        )
    return result


def _auth_entries(auth: dict[str, Any], auth_type: str) -> dict[str, Any]:
    """Return the key/value settings of an auth block (v2.1 list or v2.0 dict)."""
    entries = auth.get(auth_type)
    if isinstance(entries, list):
        return {
            str(e["key"]): e.get("value") for e in entries if isinstance(e, dict) and "key" in e
        }
    if isinstance(entries, dict):
        return dict(entries)
    return {}


def _register_auth(auth: Any, schemes: dict[str, SecurityScheme]) -> list[str]:
    """Record the scheme an auth block describes and return its name(s).

    ``noauth`` (or a missing block) returns an empty list, which clears any
    inherited auth for the items below it.
    """
    if not isinstance(auth, dict):
        return []
    auth_type = str(auth.get("type", "")).lower()
    if auth_type in ("", "noauth"):
        return []

    name, scheme_type, http_scheme = _AUTH_TYPES.get(
        auth_type, (f"{auth_type}Auth", auth_type, None)
    )
    if name in schemes:
        return [name]

    settings = _auth_entries(auth, auth_type)
    scheme = SecurityScheme(name=name, type=scheme_type, scheme=http_scheme)
    if auth_type == "apikey":
        scheme = scheme.model_copy(
            update={
                "param_name": str(settings.get("key") or "X-API-Key"),
                "location": str(settings.get("in") or "header"),
            }
        )
    elif auth_type == "oauth2":
        grant = str(settings.get("grant_type") or "authorization_code")
        flow_name = {
            "authorization_code": "authorizationCode",
            "authorization_code_with_pkce": "authorizationCode",
            "client_credentials": "clientCredentials",
            "password_credentials": "password",
            "implicit": "implicit",
        }.get(grant, grant)
        scopes = {s: "" for s in str(settings.get("scope") or "").split() if s}
        scheme = scheme.model_copy(
            update={
                "flows": {
                    flow_name: OAuthFlow(
                        authorization_url=settings.get("authUrl"),
                        token_url=settings.get("accessTokenUrl"),
                        scopes=scopes,
                    )
                }
            }
        )
    elif auth_type in ("hawk", "awsv4", "oauth1"):
        algorithm = settings.get("algorithm") or settings.get("signatureMethod")
        if algorithm:
            scheme = scheme.model_copy(update={"extensions": {"x-algorithm": algorithm}})

    schemes[name] = scheme
    return [name]
