"""Request assembler.

Turns an endpoint plus the user's raw string values into a concrete
RequestSpec, validating required fields and scalar types on the way.
"""

import json
import re
from urllib.parse import quote, urlencode

from pydantic import BaseModel

from xhark.errors import ValidationError
from xhark.parser.base import BodySchema, Endpoint

INTEGER_RE = re.compile(r"^[+-]?\d+$")
TRUE_VALUES = ("1", "t", "true")
FALSE_VALUES = ("0", "f", "false")


class RequestSpec(BaseModel):
    """A fully built HTTP request, ready to dispatch."""

    method: str
    url: str
    headers: dict[str, str] = {}
    body: bytes | None = None

    def with_headers(self, extra: dict[str, str] | None) -> "RequestSpec":
        """Return a copy with ``extra`` merged over the existing headers."""
        if not extra:
            return self
        return self.model_copy(update={"headers": {**self.headers, **extra}})


def build_request(
    base_url: str,
    endpoint: Endpoint,
    path_values: dict[str, str],
    query_values: dict[str, str],
    body_values: dict[str, str],
    raw_body: str = "",
) -> RequestSpec:
    """Assemble a request or raise ValidationError.

    Empty strings count as missing values. A non-empty ``raw_body`` takes
    precedence over the structured ``body_values``.
    """
    path = substitute_path(endpoint, path_values)
    url = base_url.rstrip("/") + path

    query = []
    for p in endpoint.query_params:
        value = query_values.get(p.name, "").strip()
        if not value:
            if p.required:
                raise ValidationError(f"missing required query param: {p.name}")
            continue
        if parse_scalar(p.param_type, value) is None:
            raise ValidationError(f"invalid {p.param_type} for {p.name}")
        query.append((p.name, value))
    if query:
        url += "?" + urlencode(query)

    headers: dict[str, str] = {}
    body = None
    if endpoint.sends_body:
        if raw_body.strip():
            body = encode_raw_body(raw_body)
        else:
            body = build_json_body(endpoint.body, body_values)
        if body is not None:
            headers["Content-Type"] = "application/json"

    return RequestSpec(method=endpoint.method, url=url, headers=headers, body=body)


def substitute_path(endpoint: Endpoint, path_values: dict[str, str]) -> str:
    """Fill ``{name}`` placeholders; every path parameter is required."""
    out = endpoint.path
    for p in endpoint.path_params:
        value = path_values.get(p.name, "").strip()
        if not value:
            raise ValidationError(f"missing required path param: {p.name}")
        out = out.replace("{" + p.name + "}", quote(value, safe=""))
    return out


def build_json_body(schema: BodySchema | None, body_values: dict[str, str]) -> bytes | None:
    """Encode per-field values as a flat JSON object.

    Unsupported schemas and objects with no values produce no body.
    """
    if schema is None or not schema.supported:
        return None

    obj = {}
    for f in schema.fields:
        raw = body_values.get(f.name, "").strip()
        if not raw:
            if f.required:
                raise ValidationError(f"missing required body field: {f.name}")
            continue
        value = parse_scalar(f.param_type, raw)
        if value is None:
            raise ValidationError(f"invalid {f.param_type} for body field {f.name}")
        obj[f.name] = value

    if not obj:
        return None
    try:
        return json.dumps(obj, allow_nan=False).encode("utf-8")
    except ValueError as e:
        raise ValidationError(f"invalid json body: {e}") from e


def encode_raw_body(raw_body: str) -> bytes:
    """Validate a raw JSON override as exactly one JSON value."""
    try:
        return json.dumps(load_single_json(raw_body), allow_nan=False).encode("utf-8")
    except ValueError as e:
        raise ValidationError(f"invalid json body: {e}") from e


def load_single_json(text: str):
    """Decode exactly one JSON value.

    Trailing content and the non-standard NaN/Infinity tokens raise ValueError.
    """
    text = text.strip()
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    value, end = decoder.raw_decode(text)
    if text[end:].strip():
        raise ValueError("multiple json values")
    return value


def parse_scalar(param_type: str, raw: str):
    """Parse ``raw`` as ``param_type``; None when it does not parse.

    Strings and unknown types pass through unchanged.
    """
    if param_type == "integer":
        return int(raw) if INTEGER_RE.match(raw) else None
    if param_type == "number":
        if "_" in raw:
            return None
        try:
            return float(raw)
        except ValueError:
            return None
    if param_type == "boolean":
        lowered = raw.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        return None
    return raw


def _reject_constant(name: str):
    raise ValueError(f"invalid json token {name}")
