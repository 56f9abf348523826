from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest
import requests

from xhark.errors import LoadError
from xhark.parser.detect import detect_version, parse_document_text
from xhark.parser.swagger import (
    base_url_from_document,
    base_url_from_spec_url,
    extract_security_schemes,
    load_document,
    parse_openapi,
)

FIXTURES = Path(__file__).parent / "fixtures"


def _load(name: str) -> dict:
    return load_document("@" + str(FIXTURES / name))


class TestDetectVersion:
    def test_detect_openapi3_yaml(self):
        doc = parse_document_text((FIXTURES / "petstore.yaml").read_text())
        assert detect_version(doc) == "openapi3"

    def test_detect_swagger2_json(self):
        doc = parse_document_text((FIXTURES / "swagger2.json").read_text())
        assert detect_version(doc) == "swagger2"

    def test_missing_version_field(self):
        with pytest.raises(LoadError):
            detect_version({"info": {"title": "x"}})

    def test_not_a_mapping(self):
        with pytest.raises(LoadError):
            parse_document_text("- just\n- a list\n")

    def test_invalid_yaml(self):
        with pytest.raises(LoadError):
            parse_document_text("openapi: [3.0\n  broken")


class TestLoadDocument:
    def test_load_from_file(self):
        doc = _load("petstore.yaml")
        assert doc["info"]["title"] == "Petstore"

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError, match="read"):
            load_document("@" + str(tmp_path / "nope.yaml"))

    def test_unsupported_source(self):
        with pytest.raises(LoadError, match="unsupported spec source"):
            load_document("ftp://example.com/openapi.json")

    @patch("xhark.parser.swagger.requests.get")
    def test_load_from_url(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200, text='{"openapi": "3.0.0", "paths": {}}')
        doc = load_document("https://api.example.com/v1/openapi.json", timeout=2.0)
        assert doc["openapi"] == "3.0.0"
        mock_get.assert_called_once_with("https://api.example.com/v1/openapi.json", timeout=2.0)

    @patch("xhark.parser.swagger.requests.get")
    def test_non_2xx_status(self, mock_get):
        mock_get.return_value = MagicMock(status_code=404, reason="Not Found")
        with pytest.raises(LoadError, match="404 Not Found"):
            load_document("https://api.example.com/openapi.json")

    @patch("xhark.parser.swagger.requests.get")
    def test_network_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(LoadError, match="refused"):
            load_document("https://api.example.com/openapi.json")


class TestOpenApiParser:
    def test_endpoints_in_document_order(self):
        endpoints = parse_openapi(_load("petstore.yaml"))
        assert [(e.method, e.path) for e in endpoints] == [
            ("GET", "/pets"),
            ("POST", "/pets"),
            ("GET", "/pets/{petId}"),
            ("DELETE", "/pets/{petId}"),
            ("PUT", "/pets/{petId}/tags"),
        ]

    def test_query_params(self):
        get_pets = parse_openapi(_load("petstore.yaml"))[0]
        assert get_pets.summary == "List all pets"
        assert [p.name for p in get_pets.query_params] == ["limit", "status"]
        limit, status = get_pets.query_params
        assert limit.required is False
        assert limit.param_type == "integer"
        assert limit.default == "20"
        assert limit.description == "Max items"
        assert status.enum == ["available", "sold"]
        assert get_pets.body is None

    def test_path_level_param_ref(self):
        get_pet = parse_openapi(_load("petstore.yaml"))[2]
        assert len(get_pet.path_params) == 1
        pet_id = get_pet.path_params[0]
        assert pet_id.name == "petId"
        assert pet_id.location == "path"
        assert pet_id.required is True
        assert pet_id.param_type == "integer"
        assert pet_id.example == "42"

    def test_label_falls_back_to_operation_id(self):
        get_pet = parse_openapi(_load("petstore.yaml"))[2]
        assert get_pet.summary == ""
        assert get_pet.label == "showPetById"

    def test_request_body_ref(self):
        post_pets = parse_openapi(_load("petstore.yaml"))[1]
        assert post_pets.body is not None
        assert post_pets.body.supported is True
        fields = {f.name: f for f in post_pets.body.fields}
        assert list(fields) == ["name", "age", "vaccinated"]
        assert fields["name"].required is True
        assert fields["name"].example == "Rex"
        assert fields["age"].default == "1"
        assert fields["vaccinated"].param_type == "boolean"

    def test_non_object_body_unsupported(self):
        put_tags = parse_openapi(_load("petstore.yaml"))[4]
        assert put_tags.body is not None
        assert put_tags.body.supported is False

    def test_security_inheritance(self):
        endpoints = parse_openapi(_load("petstore.yaml"))
        assert endpoints[0].security == []
        assert endpoints[1].security == [{"bearerAuth": []}]
        assert endpoints[2].security == [{"oauth": ["read"]}, {"bearerAuth": []}]
        assert endpoints[3].security == [{"bearerAuth": []}]

    def test_operation_param_overrides_path_param(self):
        doc = {
            "openapi": "3.0.0",
            "paths": {
                "/items/{id}": {
                    "parameters": [{"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}],
                    "get": {
                        "parameters": [{"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}],
                    },
                }
            },
        }
        endpoint = parse_openapi(doc)[0]
        assert len(endpoint.path_params) == 1
        assert endpoint.path_params[0].param_type == "integer"

    def test_non_json_body_ignored(self):
        doc = {
            "openapi": "3.0.0",
            "paths": {
                "/upload": {
                    "post": {"requestBody": {"content": {"multipart/form-data": {"schema": {"type": "object"}}}}},
                }
            },
        }
        assert parse_openapi(doc)[0].body is None

    def test_nested_property_marks_body_unsupported(self):
        doc = {
            "openapi": "3.1.0",
            "paths": {
                "/users": {
                    "post": {
                        "requestBody": {
                            "content": {
                                "application/json": {
                                    "schema": {
                                        "properties": {
                                            "name": {"type": ["string", "null"]},
                                            "address": {"type": "object"},
                                        }
                                    }
                                }
                            }
                        }
                    }
                }
            },
        }
        body = parse_openapi(doc)[0].body
        assert body.supported is False
        assert body.fields[0].param_type == "string"


class TestSwagger2Parser:
    def test_body_parameter(self):
        create = parse_openapi(_load("swagger2.json"))[0]
        assert create.method == "POST"
        assert create.label == "createItem"
        assert [p.name for p in create.query_params] == ["dryRun"]
        assert create.query_params[0].param_type == "boolean"
        assert create.body.supported is True
        assert [(f.name, f.required) for f in create.body.fields] == [("title", True), ("price", False)]
        assert create.body.fields[1].example == "9.5"

    def test_security_definitions(self):
        schemes = extract_security_schemes(_load("swagger2.json"))
        assert schemes["basic"].scheme_type == "http"
        assert schemes["basic"].scheme == "basic"
        assert schemes["password"].is_password_flow
        assert schemes["password"].token_url == "https://auth.example.com/token"
        assert schemes["password"].scopes == {"admin": "Admin"}

    def test_base_url_from_host(self):
        assert base_url_from_document(_load("swagger2.json")) == "http://legacy.example.com/api"


class TestSecuritySchemes:
    def test_openapi3_schemes(self):
        schemes = extract_security_schemes(_load("petstore.yaml"))
        assert sorted(schemes) == ["apiKey", "bearerAuth", "oauth"]
        assert schemes["bearerAuth"].is_bearer
        assert schemes["bearerAuth"].bearer_format == "JWT"
        assert schemes["bearerAuth"].description == "Personal access token"
        assert schemes["oauth"].is_password_flow
        assert schemes["oauth"].token_url == "/oauth/token"
        assert schemes["apiKey"].scheme_type == "apiKey"
        assert not schemes["apiKey"].is_bearer

    def test_oauth2_without_password_flow(self):
        doc = {
            "openapi": "3.0.0",
            "paths": {},
            "components": {
                "securitySchemes": {
                    "cc": {"type": "oauth2", "flows": {"clientCredentials": {"tokenUrl": "/token"}}},
                }
            },
        }
        assert extract_security_schemes(doc)["cc"].is_password_flow is False


class TestBaseUrl:
    def test_from_spec_url_directory(self):
        assert base_url_from_spec_url("https://api.example.com/v1/openapi.json?x=1#top") == "https://api.example.com/v1"

    def test_from_spec_url_root(self):
        assert base_url_from_spec_url("http://localhost:8000/openapi.json") == "http://localhost:8000"

    def test_from_spec_url_empty(self):
        assert base_url_from_spec_url("") == ""

    def test_from_servers(self):
        assert base_url_from_document(_load("petstore.yaml")) == "https://petstore.example.com/v1"

    def test_templated_server_skipped(self):
        doc = {"openapi": "3.0.0", "servers": [{"url": "https://{region}.example.com"}]}
        assert base_url_from_document(doc) == ""

    def test_relative_server_joined_with_spec_url(self):
        doc = {"openapi": "3.0.0", "servers": [{"url": "/api/v2"}]}
        assert base_url_from_document(doc, "https://example.com/docs/openapi.json") == "https://example.com/api/v2"

    def test_relative_server_without_spec_url(self):
        doc = {"openapi": "3.0.0", "servers": [{"url": "/api/v2"}]}
        assert base_url_from_document(doc) == ""


class TestLooselyTypedDocument:
    def test_scalars_coerced_to_text(self):
        get_events, post_events = parse_openapi(_load("loose.yaml"))
        assert get_events.summary == "2024-01-01"
        assert get_events.operation_id == "true"
        assert post_events.body.fields[0].description == "false"

    def test_malformed_parameters_skipped(self):
        get_events = parse_openapi(_load("loose.yaml"))[0]
        assert [p.name for p in get_events.query_params] == ["since"]
        since = get_events.query_params[0]
        assert since.description == "7"
        assert since.example == '{"at": "2024-01-01"}'

    def test_non_list_security_ignored(self):
        get_events, post_events = parse_openapi(_load("loose.yaml"))
        assert get_events.security == []
        assert post_events.security == []

    def test_non_list_required_ignored(self):
        post_events = parse_openapi(_load("loose.yaml"))[1]
        assert post_events.body.supported is True
        assert post_events.body.fields[0].required is False

    def test_scheme_description_coerced(self):
        assert extract_security_schemes(_load("loose.yaml"))["bearerAuth"].description == "3"
