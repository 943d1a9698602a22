"""Tests for speclens.parser.asyncapi."""

from __future__ import annotations

from typing import Any

import pytest

from speclens.exceptions import UnsupportedVersionError, ValidationError
from speclens.models import ParameterLocation, SchemaNode, SchemaRef, SpecFormat, UnifiedSpec
from speclens.parser.asyncapi import parse_asyncapi


@pytest.fixture
def events_spec(asyncapi_raw: dict[str, Any]) -> UnifiedSpec:
    return parse_asyncapi(asyncapi_raw)


class TestAsyncAPIDocument:
    def test_info(self, events_spec: UnifiedSpec) -> None:
        assert events_spec.title == "Account Events"
        assert events_spec.version == "0.4.0"
        assert events_spec.source_format == SpecFormat.ASYNCAPI
        assert events_spec.source_version == "2.6.0"

    def test_servers_and_security(self, events_spec: UnifiedSpec) -> None:
        server = events_spec.servers[0]
        assert server.name == "production"
        assert server.protocol == "kafka"
        assert events_spec.global_security == ["saslScram"]

    def test_broker_scheme_kept_as_declared(self, events_spec: UnifiedSpec) -> None:
        scheme = events_spec.security_schemes[0]
        assert scheme.name == "saslScram"
        assert scheme.type == "scramSha256"

    def test_tags_in_first_seen_order(self, events_spec: UnifiedSpec) -> None:
        assert events_spec.tags == ["users", "commands"]


class TestChannels:
    def test_operations_become_endpoints(self, events_spec: UnifiedSpec) -> None:
        assert [ep.key for ep in events_spec.endpoints] == [
            "SUBSCRIBE user/{userId}/signedup",
            "PUBLISH user/commands",
        ]
        assert [ep.operation_id for ep in events_spec.endpoints] == [
            "onUserSignedUp",
            "sendUserCommand",
        ]

    def test_subscribe_payload_is_response(self, events_spec: UnifiedSpec) -> None:
        ep = events_spec.endpoints[0]
        assert ep.request_body is None
        response = ep.responses[0]
        assert response.status_code == "200"
        payload = response.content["application/json"].schema_
        assert payload.properties["user"].origin == "User"

    def test_channel_and_header_parameters(self, events_spec: UnifiedSpec) -> None:
        params = events_spec.endpoints[0].parameters
        assert [(p.name, p.location, p.required) for p in params] == [
            ("userId", ParameterLocation.PATH, True),
            ("x-request-id", ParameterLocation.HEADER, True),
        ]

    def test_publish_one_of_messages(self, events_spec: UnifiedSpec) -> None:
        ep = events_spec.endpoints[1]
        assert ep.responses == []
        body = ep.request_body
        assert body is not None and body.required is True
        schema = body.content["application/json"].schema_
        assert isinstance(schema, SchemaNode)
        assert len(schema.one_of) == 2


class TestSchemas:
    def test_message_payloads_added_as_schemas(self, events_spec: UnifiedSpec) -> None:
        assert list(events_spec.schemas) == ["User", "UserSignedUp", "DeleteUser", "RenameUser"]
        assert events_spec.schemas["RenameUser"].origin == "RenameUser"

    def test_recursive_schema(self, events_spec: UnifiedSpec) -> None:
        assert events_spec.schemas["User"].properties["referrer"] == SchemaRef(name="User")


class TestAsyncAPIErrors:
    def test_version_3_rejected(self, asyncapi_raw: dict[str, Any]) -> None:
        asyncapi_raw["asyncapi"] = "3.0.0"
        with pytest.raises(UnsupportedVersionError, match="3.0.0"):
            parse_asyncapi(asyncapi_raw)

    def test_missing_marker_rejected(self) -> None:
        with pytest.raises(UnsupportedVersionError, match="<missing>"):
            parse_asyncapi({"info": {"title": "x", "version": "1"}, "channels": {}})

    def test_missing_fields_listed(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_asyncapi({"asyncapi": "2.0.0", "info": {"title": "x"}})
        assert exc_info.value.missing == ["info.version", "channels"]

    def test_http_api_key_normalised(self) -> None:
        doc = {
            "asyncapi": "2.6.0",
            "info": {"title": "x", "version": "1"},
            "channels": {},
            "components": {
                "securitySchemes": {
                    "key": {"type": "httpApiKey", "name": "X-Key", "in": "header"}
                }
            },
        }
        scheme = parse_asyncapi(doc).security_schemes[0]
        assert scheme.type == "apiKey"
        assert scheme.param_name == "X-Key"
