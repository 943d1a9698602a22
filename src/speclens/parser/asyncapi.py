"""Parse AsyncAPI 2.x documents into a :class:`~speclens.models.UnifiedSpec`.

Channels play the role of paths. Each ``publish`` or ``subscribe``
operation on a channel becomes one :class:`~speclens.models.Endpoint`
whose method is ``PUBLISH`` or ``SUBSCRIBE``:

* channel parameters become required path parameters;
* the message ``payload`` becomes the request body of a ``PUBLISH``
  endpoint and the ``200`` response of a ``SUBSCRIBE`` endpoint;
* message ``headers`` properties become header parameters.

``components.schemas`` are the named schemas. Inline payloads of
``components.messages`` are added under the message name so generators can
refer to them, unless a schema with that name already exists.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from speclens.exceptions import UnsupportedVersionError, ValidationError
from speclens.models import (
    Endpoint,
    MediaType,
    OAuthFlow,
    Parameter,
    ParameterLocation,
    RequestBody,
    Response,
    SchemaLike,
    SchemaNode,
    SecurityScheme,
    ServerInfo,
    SpecFormat,
    UnifiedSpec,
)
from speclens.parser.resolver import SchemaResolver, deref
from speclens.parser.schema import build_schema

logger = logging.getLogger(__name__)

_SUPPORTED = "2.x"
_OPERATIONS = (("publish", "PUBLISH"), ("subscribe", "SUBSCRIBE"))
_DEFAULT_CONTENT_TYPE = "application/json"


def parse_asyncapi(doc: dict[str, Any]) -> UnifiedSpec:
    """Build a :class:`~speclens.models.UnifiedSpec` from a decoded AsyncAPI document.

    Args:
        doc: The decoded document.

    Returns:
        The unified representation of the document.

    Raises:
        UnsupportedVersionError: If the ``asyncapi`` marker is missing or
            is not a 2.x version.
        ValidationError: If ``info.title``, ``info.version`` or
            ``channels`` are missing (all absent fields are listed).
    """
    marker = doc.get("asyncapi")
    version = str(marker) if marker is not None else None
    if version is None or not version.startswith("2."):
        raise UnsupportedVersionError("asyncapi", version, _SUPPORTED)

    missing: list[str] = []
    info = doc.get("info") if isinstance(doc.get("info"), dict) else {}
    if info.get("title") is None:
        missing.append("info.title")
    if info.get("version") is None:
        missing.append("info.version")
    if not isinstance(doc.get("channels"), dict):
        missing.append("channels")
    if missing:
        raise ValidationError("asyncapi", missing)

    components = doc.get("components") or {}
    resolver = SchemaResolver(components.get("schemas") or {}, build_schema)
    schemas = resolver.resolve_all()
    schemas.update(_message_schemas(doc, resolver, schemas))

    default_content_type = str(doc.get("defaultContentType") or _DEFAULT_CONTENT_TYPE)
    endpoints = _extract_endpoints(doc, resolver, default_content_type)
    servers, global_security = _extract_servers(doc)

    tags: list[str] = []
    for endpoint in endpoints:
        for tag in endpoint.tags:
            if tag not in tags:
                tags.append(tag)

    if resolver.dangling:
        logger.warning(
            "Unresolved schema references kept as placeholders: %s",
            ", ".join(resolver.dangling),
        )

    return UnifiedSpec(
        title=str(info["title"]),
        version=str(info["version"]),
        description=info.get("description"),
        source_format=SpecFormat.ASYNCAPI,
        source_version=version,
        servers=servers,
        endpoints=endpoints,
        schemas=schemas,
        security_schemes=_extract_security_schemes(doc),
        global_security=global_security,
        tags=tags,
    )


def _extract_servers(doc: dict[str, Any]) -> tuple[list[ServerInfo], list[str]]:
    """Return the named servers and the union of their security requirement names."""
    servers: list[ServerInfo] = []
    security: list[str] = []
    for name, server in (doc.get("servers") or {}).items():
        if not isinstance(server, dict):
            continue
        servers.append(
            ServerInfo(
                url=str(server.get("url", "")),
                description=server.get("description"),
                name=str(name),
                protocol=server.get("protocol"),
            )
        )
        for requirement in server.get("security") or []:
            if isinstance(requirement, dict):
                for scheme_name in requirement:
                    if scheme_name not in security:
                        security.append(str(scheme_name))
    return servers, security


def _message_schemas(
    doc: dict[str, Any], resolver: SchemaResolver, schemas: dict[str, SchemaLike]
) -> dict[str, SchemaLike]:
    """Build inline payloads of ``components.messages`` as named schemas."""
    result: dict[str, SchemaLike] = {}
    messages = (doc.get("components") or {}).get("messages") or {}
    for name, message in messages.items():
        message = deref(message, doc)
        if not isinstance(message, dict):
            continue
        payload = message.get("payload")
        if not isinstance(payload, dict) or "$ref" in payload or name in schemas:
            continue
        node = build_schema(payload, resolver)
        if isinstance(node, SchemaNode):
            node = node.model_copy(update={"origin": str(name)})
        result[str(name)] = node
    return result


def _messages_of(operation: dict[str, Any], doc: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the concrete message objects of an operation (``oneOf`` expanded)."""
    message = deref(operation.get("message"), doc)
    if not isinstance(message, dict):
        return []
    if isinstance(message.get("oneOf"), list):
        expanded = [deref(m, doc) for m in message["oneOf"]]
        return [m for m in expanded if isinstance(m, dict)]
    return [message]


def _extract_endpoints(
    doc: dict[str, Any], resolver: SchemaResolver, default_content_type: str
) -> list[Endpoint]:
    """Turn every channel operation into an endpoint, in document order."""
    endpoints: list[Endpoint] = []

    for channel_name, channel in doc["channels"].items():
        channel = deref(channel, doc)
        if not isinstance(channel, dict):
            logger.warning("Skipping malformed channel %s", channel_name)
            continue

        channel_params = _channel_parameters(channel, doc, resolver)

        for key, method in _OPERATIONS:
            operation = channel.get(key)
            if not isinstance(operation, dict):
                continue

            messages = _messages_of(operation, doc)
            content = _message_content(messages, resolver, default_content_type)
            header_params = _header_parameters(messages, doc, resolver)

            request_body: Optional[RequestBody] = None
            responses: list[Response] = []
            if method == "PUBLISH":
                request_body = RequestBody(required=True, content=content)
            else:
                responses.append(
                    Response(
                        status_code="200",
                        description=operation.get("summary") or channel.get("description"),
                        content=content,
                    )
                )

            tags = [
                str(t.get("name") if isinstance(t, dict) else t)
                for t in operation.get("tags") or []
            ]

            endpoints.append(
                Endpoint(
                    path=str(channel_name),
                    method=method,
                    operation_id=operation.get("operationId"),
                    summary=operation.get("summary"),
                    description=operation.get("description") or channel.get("description"),
                    parameters=channel_params + header_params,
                    request_body=request_body,
                    responses=responses,
                    security=_operation_security(operation),
                    tags=tags,
                    deprecated=bool(operation.get("deprecated", False)),
                )
            )

    return endpoints


def _channel_parameters(
    channel: dict[str, Any], doc: dict[str, Any], resolver: SchemaResolver
) -> list[Parameter]:
    params: list[Parameter] = []
    for name, param in (channel.get("parameters") or {}).items():
        param = deref(param, doc)
        if not isinstance(param, dict):
            continue
        params.append(
            Parameter(
                name=str(name),
                location=ParameterLocation.PATH,
                required=True,
                description=param.get("description"),
                schema=build_schema(param["schema"], resolver) if "schema" in param else None,
            )
        )
    return params


def _message_content(
    messages: list[dict[str, Any]], resolver: SchemaResolver, default_content_type: str
) -> dict[str, MediaType]:
    """Map each message's content type to its payload schema.

    Several messages with the same content type are combined as ``oneOf``.
    """
    grouped: dict[str, list[SchemaLike]] = {}
    examples: dict[str, Any] = {}
    for message in messages:
        content_type = str(message.get("contentType") or default_content_type)
        if "payload" in message:
            grouped.setdefault(content_type, []).append(
                build_schema(message["payload"], resolver)
            )
        else:
            grouped.setdefault(content_type, [])
        for example in message.get("examples") or []:
            if isinstance(example, dict) and "payload" in example:
                examples.setdefault(content_type, example["payload"])

    content: dict[str, MediaType] = {}
    for content_type, payloads in grouped.items():
        if not payloads:
            schema: Optional[SchemaLike] = None
        elif len(payloads) == 1:
            schema = payloads[0]
        else:
            schema = SchemaNode(one_of=payloads)
        content[content_type] = MediaType(schema=schema, example=examples.get(content_type))
    return content


def _header_parameters(
    messages: list[dict[str, Any]], doc: dict[str, Any], resolver: SchemaResolver
) -> list[Parameter]:
    """Turn message header schema properties into header parameters."""
    params: list[Parameter] = []
    seen: set[str] = set()
    for message in messages:
        headers = deref(message.get("headers"), doc)
        if not isinstance(headers, dict):
            continue
        required = set(headers.get("required") or [])
        for name, prop in (headers.get("properties") or {}).items():
            if name in seen:
                continue
            seen.add(name)
            prop_schema = build_schema(prop, resolver)
            params.append(
                Parameter(
                    name=str(name),
                    location=ParameterLocation.HEADER,
                    required=name in required,
                    description=prop.get("description") if isinstance(prop, dict) else None,
                    schema=prop_schema,
                )
            )
    return params


def _operation_security(operation: dict[str, Any]) -> list[str]:
    names: list[str] = []
    for requirement in operation.get("security") or []:
        if isinstance(requirement, dict):
            for name in requirement:
                if name not in names:
                    names.append(str(name))
    return names


def _extract_security_schemes(doc: dict[str, Any]) -> list[SecurityScheme]:
    """Extract ``components.securitySchemes``.

    ``httpApiKey`` is normalised to ``apiKey`` because it has the same
    meaning as the OpenAPI type. Broker-specific types (``userPassword``,
    ``X509``, ``scramSha256`` ...) are kept as declared.
    """
    schemes: list[SecurityScheme] = []
    raw_schemes = (doc.get("components") or {}).get("securitySchemes") or {}
    for name, data in raw_schemes.items():
        data = deref(data, doc)
        if not isinstance(data, dict):
            continue
        scheme_type = str(data.get("type", ""))
        if scheme_type == "httpApiKey":
            scheme_type = "apiKey"
        flows = {
            str(flow_name): OAuthFlow(
                authorization_url=flow.get("authorizationUrl"),
                token_url=flow.get("tokenUrl"),
                refresh_url=flow.get("refreshUrl"),
                scopes={str(k): str(v) for k, v in (flow.get("scopes") or {}).items()},
            )
            for flow_name, flow in (data.get("flows") or {}).items()
            if isinstance(flow, dict)
        }
        schemes.append(
            SecurityScheme(
                name=str(name),
                type=scheme_type,
                description=data.get("description"),
                param_name=data.get("name"),
                location=data.get("in"),
                scheme=data.get("scheme"),
                bearer_format=data.get("bearerFormat"),
                flows=flows,
                openid_connect_url=data.get("openIdConnectUrl"),
                extensions={k: v for k, v in data.items() if str(k).startswith("x-")},
            )
        )
    return schemes
