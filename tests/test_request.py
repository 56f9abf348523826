import json

import pytest

from xhark.client.request import RequestSpec, build_request, load_single_json, parse_scalar
from xhark.errors import ValidationError
from xhark.parser.base import BodyField, BodySchema, Endpoint, Param

BASE = "http://api.test"

GET_USER = Endpoint(
    method="GET",
    path="/users/{id}",
    path_params=[Param(name="id", location="path", required=True, param_type="integer")],
    query_params=[
        Param(name="verbose", location="query", param_type="boolean"),
        Param(name="fields", location="query", required=True, param_type="string"),
    ],
)

CREATE_USER = Endpoint(
    method="POST",
    path="/users",
    body=BodySchema(
        supported=True,
        fields=[
            BodyField(name="name", required=True, param_type="string"),
            BodyField(name="age", param_type="integer"),
            BodyField(name="score", param_type="number"),
            BodyField(name="admin", param_type="boolean"),
        ],
    ),
)


class TestPathAndQuery:
    def test_builds_url(self):
        spec = build_request(BASE + "/", GET_USER, {"id": "7"}, {"fields": "name", "verbose": "true"}, {})
        assert spec.method == "GET"
        assert spec.url == "http://api.test/users/7?verbose=true&fields=name"
        assert spec.body is None
        assert spec.headers == {}

    def test_path_value_escaped(self):
        ep = Endpoint(method="GET", path="/files/{name}", path_params=[Param(name="name", location="path")])
        spec = build_request(BASE, ep, {"name": "a b/c"}, {}, {})
        assert spec.url == "http://api.test/files/a%20b%2Fc"

    def test_missing_path_param(self):
        with pytest.raises(ValidationError, match="missing required path param: id"):
            build_request(BASE, GET_USER, {}, {"fields": "x"}, {})

    def test_empty_path_value_counts_as_missing(self):
        with pytest.raises(ValidationError, match="missing required path param: id"):
            build_request(BASE, GET_USER, {"id": "  "}, {"fields": "x"}, {})

    def test_missing_required_query(self):
        with pytest.raises(ValidationError, match="missing required query param: fields"):
            build_request(BASE, GET_USER, {"id": "1"}, {"fields": ""}, {})

    def test_optional_query_skipped(self):
        spec = build_request(BASE, GET_USER, {"id": "1"}, {"fields": "x", "verbose": ""}, {})
        assert spec.url == "http://api.test/users/1?fields=x"

    def test_invalid_query_type(self):
        with pytest.raises(ValidationError, match="invalid boolean for verbose"):
            build_request(BASE, GET_USER, {"id": "1"}, {"fields": "x", "verbose": "maybe"}, {})

    def test_query_values_encoded(self):
        spec = build_request(BASE, GET_USER, {"id": "1"}, {"fields": "a&b c"}, {})
        assert spec.url == "http://api.test/users/1?fields=a%26b+c"


class TestBody:
    def test_missing_required_field(self):
        with pytest.raises(ValidationError, match="missing required body field: name"):
            build_request(BASE, CREATE_USER, {}, {}, {"name": ""})

    def test_typed_json_body(self):
        spec = build_request(BASE, CREATE_USER, {}, {}, {"name": "Ann", "age": "31", "score": "1.5", "admin": "f"})
        assert json.loads(spec.body) == {"name": "Ann", "age": 31, "score": 1.5, "admin": False}
        assert spec.headers == {"Content-Type": "application/json"}

    def test_field_order_follows_schema(self):
        spec = build_request(BASE, CREATE_USER, {}, {}, {"age": "2", "name": "Ann"})
        assert list(json.loads(spec.body)) == ["name", "age"]

    def test_invalid_field_type(self):
        with pytest.raises(ValidationError, match="invalid integer for body field age"):
            build_request(BASE, CREATE_USER, {}, {}, {"name": "Ann", "age": "3.5"})

    def test_raw_body_overrides_fields(self):
        spec = build_request(BASE, CREATE_USER, {}, {}, {}, raw_body='{"nested": {"a": [1, 2]}}')
        assert json.loads(spec.body) == {"nested": {"a": [1, 2]}}
        assert spec.headers["Content-Type"] == "application/json"

    def test_malformed_raw_body(self):
        with pytest.raises(ValidationError, match="invalid json body"):
            build_request(BASE, CREATE_USER, {}, {}, {}, raw_body="{nope")

    def test_raw_body_with_trailing_value(self):
        with pytest.raises(ValidationError, match="invalid json body"):
            build_request(BASE, CREATE_USER, {}, {}, {}, raw_body="{} {}")

    def test_get_never_sends_body(self):
        ep = GET_USER.model_copy(update={"body": CREATE_USER.body})
        spec = build_request(BASE, ep, {"id": "1"}, {"fields": "x"}, {"name": "Ann"})
        assert spec.body is None

    def test_unsupported_schema_without_raw_body(self):
        ep = Endpoint(method="PUT", path="/tags", body=BodySchema(supported=False))
        spec = build_request(BASE, ep, {}, {}, {})
        assert spec.body is None
        assert "Content-Type" not in spec.headers

    def test_no_values_no_body(self):
        ep = Endpoint(method="PATCH", path="/me", body=BodySchema(supported=True, fields=[BodyField(name="bio")]))
        assert build_request(BASE, ep, {}, {}, {}).body is None


class TestHelpers:
    def test_with_headers_merges(self):
        spec = RequestSpec(method="GET", url="http://x", headers={"Content-Type": "application/json"})
        merged = spec.with_headers({"Authorization": "Bearer abc"})
        assert merged.headers == {"Content-Type": "application/json", "Authorization": "Bearer abc"}
        assert spec.headers == {"Content-Type": "application/json"}

    def test_with_no_headers_returns_same(self):
        spec = RequestSpec(method="GET", url="http://x")
        assert spec.with_headers(None) is spec

    def test_parse_scalar(self):
        assert parse_scalar("integer", "-12") == -12
        assert parse_scalar("integer", "1.0") is None
        assert parse_scalar("number", "2e3") == 2000.0
        assert parse_scalar("number", "1_000") is None
        assert parse_scalar("boolean", "T") is True
        assert parse_scalar("boolean", "0") is False
        assert parse_scalar("boolean", "yes") is None
        assert parse_scalar("string", "anything") == "anything"
        assert parse_scalar("unknown", "12") == "12"

    def test_load_single_json(self):
        assert load_single_json('  [1, 2]\n') == [1, 2]
        with pytest.raises(ValueError):
            load_single_json('{"a": 1} x')


class TestNonStandardNumbers:
    NUMBER_BODY = Endpoint(
        method="POST",
        path="/measurements",
        body=BodySchema(supported=True, fields=[BodyField(name="n", param_type="number")]),
    )

    def test_nan_body_field_rejected(self):
        with pytest.raises(ValidationError, match="invalid json body"):
            build_request(BASE, self.NUMBER_BODY, {}, {}, {"n": "nan"})

    def test_infinite_body_field_rejected(self):
        with pytest.raises(ValidationError, match="invalid json body"):
            build_request(BASE, self.NUMBER_BODY, {}, {}, {"n": "-inf"})

    def test_infinity_token_in_raw_body_rejected(self):
        with pytest.raises(ValidationError, match="invalid json body"):
            build_request(BASE, self.NUMBER_BODY, {}, {}, {}, raw_body='{"a": Infinity}')

    def test_overflowing_raw_number_rejected(self):
        with pytest.raises(ValidationError, match="invalid json body"):
            build_request(BASE, self.NUMBER_BODY, {}, {}, {}, raw_body='{"a": 1e999}')

    def test_load_single_json_rejects_nan(self):
        with pytest.raises(ValueError, match="NaN"):
            load_single_json("NaN")
