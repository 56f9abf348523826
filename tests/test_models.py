import pytest
from pydantic import ValidationError

from xhark.parser.base import BodyField, BodySchema, Endpoint, Param, SecurityScheme


class TestParam:
    def test_defaults(self):
        p = Param(name="limit", location="query")
        assert p.required is False
        assert p.param_type == "unknown"
        assert p.example == ""
        assert p.enum == []

    def test_invalid_location(self):
        with pytest.raises(ValidationError):
            Param(name="x", location="header")

    def test_frozen(self):
        p = Param(name="id", location="path", required=True)
        with pytest.raises(ValidationError):
            p.name = "other"


class TestEndpoint:
    def test_label_prefers_summary(self):
        ep = Endpoint(method="GET", path="/users", summary="List users", operation_id="listUsers")
        assert ep.label == "List users"

    def test_label_falls_back_to_operation_id(self):
        ep = Endpoint(method="GET", path="/users", summary="  ", operation_id="listUsers")
        assert ep.label == "listUsers"

    def test_sends_body(self):
        body = BodySchema(supported=True, fields=[BodyField(name="name", required=True)])
        assert Endpoint(method="POST", path="/users", body=body).sends_body is True
        assert Endpoint(method="DELETE", path="/users/{id}", body=body).sends_body is True
        assert Endpoint(method="GET", path="/users", body=body).sends_body is False
        assert Endpoint(method="POST", path="/users").sends_body is False

    def test_security_defaults_to_none_required(self):
        assert Endpoint(method="GET", path="/health").security == []


class TestSecurityScheme:
    def test_bearer(self):
        scheme = SecurityScheme(name="bearerAuth", scheme_type="http", scheme="Bearer")
        assert scheme.is_bearer
        assert not scheme.is_password_flow

    def test_basic_is_not_bearer(self):
        assert not SecurityScheme(name="basic", scheme_type="http", scheme="basic").is_bearer

    def test_password_flow_needs_token_url(self):
        assert SecurityScheme(name="oauth", scheme_type="oauth2", token_url="/token").is_password_flow
        assert not SecurityScheme(name="oauth", scheme_type="oauth2", token_url=" ").is_password_flow
