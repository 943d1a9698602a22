"""Parse OpenAPI 3.x documents into a :class:`~speclens.models.UnifiedSpec`.

The single public entry point is :func:`parse_openapi`. Internally it
delegates to private helpers that each handle one section of the OpenAPI
structure:

* ``_check_version`` -- the ``openapi`` marker (3.x only; Swagger 2.0 and
  other majors are rejected).
* ``_extract_servers`` -- the ``servers`` array.
* ``_extract_endpoints`` -- the ``paths`` object, iterating over every
  path + HTTP method combination.
* ``_extract_security_schemes`` -- the ``components/securitySchemes`` map.

Named schemas under ``components/schemas`` are built first through a
fresh :class:`~speclens.parser.resolver.SchemaResolver`, so every
reference encountered later in the paths resolves against the same
per-call table.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name`` and ``in`` values.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from speclens.exceptions import UnsupportedVersionError, ValidationError
from speclens.models import (
    Endpoint,
    HTTPMethod,
    MediaType,
    OAuthFlow,
    Parameter,
    ParameterLocation,
    RequestBody,
    Response,
    SecurityScheme,
    ServerInfo,
    SpecFormat,
    UnifiedSpec,
)
from speclens.parser.resolver import SchemaResolver, deref
from speclens.parser.schema import build_schema

logger = logging.getLogger(__name__)

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)
_SUPPORTED = "3.x"


def parse_openapi(doc: dict[str, Any]) -> UnifiedSpec:
    """Build a :class:`~speclens.models.UnifiedSpec` from a decoded OpenAPI document.

    Args:
        doc: The decoded document, as returned by
            :func:`~speclens.parser.loader.decode_document`.

    Returns:
        The unified representation of the document.

    Raises:
        UnsupportedVersionError: If the document is Swagger 2.x or declares
            an OpenAPI major other than 3.
        ValidationError: If ``info.title``, ``info.version`` or ``paths``
            are missing (all absent fields are listed).

    Example::

        doc = decode_document(Path("petstore.yaml").read_text())
        spec = parse_openapi(doc)
        for ep in spec.endpoints:
            print(ep.key)
    """
    version = _check_version(doc)
    _validate_required(doc)

    components = doc.get("components") or {}
    resolver = SchemaResolver(components.get("schemas") or {}, build_schema)
    schemas = resolver.resolve_all()

    info = doc["info"]
    global_security = _security_names(doc.get("security") or [])
    endpoints = _extract_endpoints(doc, resolver, global_security)

    spec = UnifiedSpec(
        title=str(info["title"]),
        version=str(info["version"]),
        description=info.get("description"),
        source_format=SpecFormat.OPENAPI,
        source_version=version,
        servers=_extract_servers(doc),
        endpoints=endpoints,
        schemas=schemas,
        security_schemes=_extract_security_schemes(doc),
        global_security=global_security,
        tags=_collect_tags(doc, endpoints),
    )
    if resolver.dangling:
        logger.warning(
            "Unresolved schema references kept as placeholders: %s",
            ", ".join(resolver.dangling),
        )
    return spec


def _check_version(doc: dict[str, Any]) -> str:
    """Validate and return the OpenAPI version string.

    Raises:
        UnsupportedVersionError: For Swagger 2.x, a missing marker, or a
            major version other than 3.
    """
    if "swagger" in doc:
        raise UnsupportedVersionError("openapi", str(doc["swagger"]), _SUPPORTED)

    marker = doc.get("openapi")
    if marker is None:
        raise UnsupportedVersionError("openapi", None, _SUPPORTED)

    version_str = str(marker)
    if not version_str.startswith("3."):
        raise UnsupportedVersionError("openapi", version_str, _SUPPORTED)
    return version_str


def _validate_required(doc: dict[str, Any]) -> None:
    """Collect every missing top-level field and raise them together."""
    missing: list[str] = []
    info = doc.get("info")
    if not isinstance(info, dict):
        info = {}
    if info.get("title") is None:
        missing.append("info.title")
    if info.get("version") is None:
        missing.append("info.version")
    if not isinstance(doc.get("paths"), dict):
        missing.append("paths")
    if missing:
        raise ValidationError("openapi", missing)


def _extract_servers(doc: dict[str, Any]) -> list[ServerInfo]:
    """Extract server entries from the document's ``servers`` array.

    Returns an empty list when no servers are declared.
    """
    servers = doc.get("servers") or []
    return [
        ServerInfo(url=str(server.get("url", "/")), description=server.get("description"))
        for server in servers
        if isinstance(server, dict)
    ]


def _extract_endpoints(
    doc: dict[str, Any], resolver: SchemaResolver, global_security: list[str]
) -> list[Endpoint]:
    """Extract all operations from the document's ``paths`` object.

    Path items are walked in document order and their keys are matched
    against the recognised HTTP methods; other keys (``summary``,
    ``parameters``, ``x-*`` extensions) are skipped.

    Security requirements follow the OpenAPI override rule: an
    operation-level ``security`` array replaces the global one; an explicit
    empty array ``[]`` means "no auth required".

    Args:
        doc: The decoded document.
        resolver: Reference table of this parse call.
        global_security: Scheme names from the top-level ``security``.

    Returns:
        One :class:`~speclens.models.Endpoint` per path + method pair.
    """
    endpoints: list[Endpoint] = []

    for path, path_item in doc["paths"].items():
        path_item = deref(path_item, doc)
        if not isinstance(path_item, dict):
            logger.warning("Skipping malformed path item %s", path)
            continue

        path_params = path_item.get("parameters") or []

        for method_str, operation in path_item.items():
            if method_str.lower() not in _HTTP_METHODS or not isinstance(operation, dict):
                continue

            merged = _merge_parameters(
                [deref(p, doc) for p in path_params],
                [deref(p, doc) for p in operation.get("parameters") or []],
            )

            op_security = operation.get("security")
            security = (
                _security_names(op_security) if op_security is not None else global_security
            )

            endpoints.append(
                Endpoint(
                    path=str(path),
                    method=method_str.upper(),
                    operation_id=operation.get("operationId"),
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    parameters=_extract_parameters(merged, resolver),
                    request_body=_extract_request_body(
                        deref(operation.get("requestBody"), doc), resolver
                    ),
                    responses=_extract_responses(
                        operation.get("responses") or {}, doc, resolver
                    ),
                    security=security,
                    tags=[str(t) for t in operation.get("tags") or []],
                    deprecated=bool(operation.get("deprecated", False)),
                )
            )

    return endpoints


def _merge_parameters(
    path_params: list[Any],
    op_params: list[Any],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI specification.
    Dangling parameter references have already become ``None`` and are
    dropped here.
    """
    op_dicts = [p for p in op_params if isinstance(p, dict)]
    op_keys = {(p.get("name", ""), p.get("in", "")) for p in op_dicts}

    merged = [
        p
        for p in path_params
        if isinstance(p, dict) and (p.get("name", ""), p.get("in", "")) not in op_keys
    ]
    merged.extend(op_dicts)
    return merged


def _extract_parameters(
    params_list: list[dict[str, Any]], resolver: SchemaResolver
) -> list[Parameter]:
    """Convert raw OpenAPI parameter dicts into :class:`~speclens.models.Parameter` models.

    Path parameters are always required regardless of the ``required``
    field in the source. Parameters with unrecognised ``in`` locations are
    skipped. When a parameter uses ``content`` instead of ``schema`` the
    first media type's schema is taken.
    """
    parameters: list[Parameter] = []

    for param in params_list:
        try:
            location = ParameterLocation(param.get("in", "query"))
        except ValueError:
            logger.debug("Skipping parameter %r with location %r", param.get("name"), param.get("in"))
            continue

        raw_schema = param.get("schema")
        if raw_schema is None and isinstance(param.get("content"), dict):
            for media in param["content"].values():
                if isinstance(media, dict) and "schema" in media:
                    raw_schema = media["schema"]
                    break

        required = bool(param.get("required", False))
        if location == ParameterLocation.PATH:
            required = True

        parameters.append(
            Parameter(
                name=str(param.get("name", "")),
                location=location,
                required=required,
                description=param.get("description"),
                schema=build_schema(raw_schema, resolver) if raw_schema is not None else None,
                example=param.get("example"),
                deprecated=bool(param.get("deprecated", False)),
            )
        )

    return parameters


def _extract_content(
    content: Any, resolver: SchemaResolver
) -> dict[str, MediaType]:
    """Convert a ``content`` map into media types, keeping declaration order."""
    if not isinstance(content, dict):
        return {}
    result: dict[str, MediaType] = {}
    for content_type, media in content.items():
        if not isinstance(media, dict):
            continue
        example = media.get("example")
        if example is None and isinstance(media.get("examples"), dict):
            first = next(iter(media["examples"].values()), None)
            if isinstance(first, dict):
                example = first.get("value")
        result[str(content_type)] = MediaType(
            schema=build_schema(media["schema"], resolver) if "schema" in media else None,
            example=example,
        )
    return result


def _extract_request_body(
    body: Optional[dict[str, Any]], resolver: SchemaResolver
) -> Optional[RequestBody]:
    """Extract request body metadata from an operation's ``requestBody``.

    Returns ``None`` when the operation accepts no body.
    """
    if not isinstance(body, dict):
        return None
    return RequestBody(
        description=body.get("description"),
        required=bool(body.get("required", False)),
        content=_extract_content(body.get("content"), resolver),
    )


def _extract_responses(
    responses: dict[str, Any], doc: dict[str, Any], resolver: SchemaResolver
) -> list[Response]:
    """Extract response metadata for all declared status codes.

    Args:
        responses: The raw ``responses`` dict, keyed by HTTP status code
            string (e.g., ``"200"``, ``"404"``, ``"default"``).
        doc: The decoded document, for response and header references.
        resolver: Reference table of this parse call.

    Returns:
        One :class:`~speclens.models.Response` per status code entry.
    """
    result: list[Response] = []

    for status_code, response in responses.items():
        response = deref(response, doc)
        if not isinstance(response, dict):
            continue

        headers = {}
        for header_name, header in (response.get("headers") or {}).items():
            header = deref(header, doc)
            if isinstance(header, dict):
                headers[str(header_name)] = build_schema(header.get("schema"), resolver)

        result.append(
            Response(
                status_code=str(status_code),
                description=response.get("description"),
                content=_extract_content(response.get("content"), resolver),
                headers=headers,
            )
        )

    return result


def _security_names(requirements: list[Any]) -> list[str]:
    """Flatten a list of security requirement objects into unique scheme names."""
    names: list[str] = []
    for requirement in requirements:
        if isinstance(requirement, dict):
            for name in requirement:
                if name not in names:
                    names.append(str(name))
    return names


def _extract_security_schemes(doc: dict[str, Any]) -> list[SecurityScheme]:
    """Extract security scheme definitions from ``components/securitySchemes``.

    Supports all OpenAPI security scheme types: ``apiKey``, ``http``,
    ``oauth2``, and ``openIdConnect``. Vendor extensions are preserved.

    Returns:
        Schemes in declaration order; an empty list when none are declared.
    """
    components = doc.get("components") or {}
    schemes: list[SecurityScheme] = []

    for name, scheme_data in (components.get("securitySchemes") or {}).items():
        scheme_data = deref(scheme_data, doc)
        if not isinstance(scheme_data, dict):
            continue

        flows = {
            str(flow_name): OAuthFlow(
                authorization_url=flow.get("authorizationUrl"),
                token_url=flow.get("tokenUrl"),
                refresh_url=flow.get("refreshUrl"),
                scopes={str(k): str(v) for k, v in (flow.get("scopes") or {}).items()},
            )
            for flow_name, flow in (scheme_data.get("flows") or {}).items()
            if isinstance(flow, dict)
        }

        schemes.append(
            SecurityScheme(
                name=str(name),
                type=str(scheme_data.get("type", "")),
                description=scheme_data.get("description"),
                param_name=scheme_data.get("name"),
                location=scheme_data.get("in"),
                scheme=scheme_data.get("scheme"),
                bearer_format=scheme_data.get("bearerFormat"),
                flows=flows,
                openid_connect_url=scheme_data.get("openIdConnectUrl"),
                extensions={k: v for k, v in scheme_data.items() if str(k).startswith("x-")},
            )
        )

    return schemes


def _collect_tags(doc: dict[str, Any], endpoints: list[Endpoint]) -> list[str]:
    """Return declared tag names followed by any tags only used on operations."""
    tags: list[str] = []
    for tag in doc.get("tags") or []:
        name = tag.get("name") if isinstance(tag, dict) else tag
        if name is not None and str(name) not in tags:
            tags.append(str(name))
    for endpoint in endpoints:
        for tag in endpoint.tags:
            if tag not in tags:
                tags.append(tag)
    return tags
