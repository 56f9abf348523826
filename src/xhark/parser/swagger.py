"""OpenAPI / Swagger description loader.

Fetches an OpenAPI 3.x or Swagger 2.0 document from an http(s) URL or a
local file and converts it into Endpoint and SecurityScheme models.
"""

import json
import logging
import posixpath
from pathlib import Path
from urllib.parse import urljoin, urlparse, urlunparse

import requests

from xhark.errors import LoadError

from .base import BodyField, BodySchema, Endpoint, Param, SecurityScheme
from .detect import detect_version, parse_document_text

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "patch", "delete")
SCALAR_TYPES = ("string", "integer", "number", "boolean")
FILE_MARKER = "@"


def is_http_source(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def load_document(source: str, timeout: float = 5.0) -> dict:
    """Load a description document.

    ``source`` is an http(s) URL or ``@<path>`` for a local file.
    Raises LoadError on network, HTTP status, or parse failures.
    """
    source = source.strip()
    if source.startswith(FILE_MARKER):
        path = Path(source[len(FILE_MARKER):])
        logger.debug("loading description from file %s", path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise LoadError(f"read {path}: {e}") from e
    elif is_http_source(source):
        logger.debug("fetching description from %s", source)
        try:
            resp = requests.get(source, timeout=timeout)
        except requests.RequestException as e:
            raise LoadError(f"GET {source}: {e}") from e
        if not 200 <= resp.status_code < 300:
            raise LoadError(f"GET {source}: {resp.status_code} {resp.reason or ''}".rstrip())
        text = resp.text
    else:
        raise LoadError(f"unsupported spec source: {source!r} (expected http(s) URL or local file)")

    doc = parse_document_text(text)
    detect_version(doc)
    return doc


def parse_openapi(doc: dict) -> list[Endpoint]:
    """Extract every GET/POST/PUT/PATCH/DELETE operation, in document order."""
    swagger2 = detect_version(doc) == "swagger2"
    global_security = _as_list(doc.get("security"))

    endpoints = []
    for path, path_item in _as_dict(doc.get("paths")).items():
        path_item = _resolve(doc, path_item)
        if not isinstance(path_item, dict):
            continue
        common_params = _as_list(path_item.get("parameters"))

        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue

            params = [_resolve(doc, p) for p in common_params + _as_list(operation.get("parameters"))]
            path_params = _parse_parameters(doc, params, "path")
            query_params = _parse_parameters(doc, params, "query")

            if swagger2:
                body = _parse_swagger2_body(doc, params)
            else:
                body = _parse_request_body(doc, operation.get("requestBody"))

            security = _as_list(operation["security"]) if "security" in operation else global_security

            endpoints.append(
                Endpoint(
                    method=method.upper(),
                    path=str(path),
                    summary=_scalar_text(operation.get("summary")),
                    operation_id=_scalar_text(operation.get("operationId")),
                    path_params=path_params,
                    query_params=query_params,
                    body=body,
                    security=[_requirement(req) for req in security if isinstance(req, dict)],
                )
            )

    logger.debug("extracted %d endpoints", len(endpoints))
    return endpoints


def extract_security_schemes(doc: dict) -> dict[str, SecurityScheme]:
    """Return the declared security schemes keyed by name."""
    if detect_version(doc) == "swagger2":
        raw = _as_dict(doc.get("securityDefinitions"))
    else:
        raw = _as_dict(_as_dict(doc.get("components")).get("securitySchemes"))

    schemes = {}
    for name, definition in raw.items():
        definition = _resolve(doc, definition)
        if not isinstance(definition, dict):
            continue
        schemes[str(name)] = _parse_security_scheme(str(name), definition)
    return schemes


def base_url_from_spec_url(spec_url: str) -> str:
    """Directory of an http(s) spec URL, without query or fragment."""
    spec_url = spec_url.strip()
    if not spec_url:
        return ""
    parsed = urlparse(spec_url)
    if not parsed.scheme or not parsed.netloc:
        return ""
    directory = posixpath.dirname(parsed.path)
    return urlunparse((parsed.scheme, parsed.netloc, directory, "", "", "")).rstrip("/")


def base_url_from_document(doc: dict, spec_url: str = "") -> str:
    """Base URL declared by the document itself, or "" if none is concrete."""
    if detect_version(doc) == "swagger2":
        host = _scalar_text(doc.get("host"))
        if not host:
            return ""
        schemes = _as_list(doc.get("schemes"))
        scheme = schemes[0] if schemes else (urlparse(spec_url).scheme or "https")
        return f"{scheme}://{host}{doc.get('basePath') or ''}".rstrip("/")

    servers = _as_list(doc.get("servers"))
    if not servers or not isinstance(servers[0], dict):
        return ""
    url = _scalar_text(servers[0].get("url"))
    # Templated servers ({vars}) are not supported.
    if not url or "{" in url:
        return ""
    if not urlparse(url).scheme:
        if not is_http_source(spec_url):
            return ""
        url = urljoin(spec_url, url)
    parsed = urlparse(url)
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", "")).rstrip("/")


def _resolve(doc: dict, node):
    """Follow local ``#/...`` references."""
    seen = set()
    while isinstance(node, dict) and "$ref" in node:
        ref = node["$ref"]
        if not isinstance(ref, str) or not ref.startswith("#/") or ref in seen:
            return {}
        seen.add(ref)
        target = doc
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(target, dict) or part not in target:
                logger.debug("unresolvable reference %s", ref)
                return {}
            target = target[part]
        node = target
    return node


def _parse_parameters(doc: dict, params: list, location: str) -> list[Param]:
    # Operation-level parameters override path-level ones with the same name.
    by_name: dict[str, Param] = {}
    for p in params:
        name = p.get("name") if isinstance(p, dict) else None
        if not isinstance(name, str) or not name or p.get("in") != location:
            continue
        schema = _resolve(doc, p.get("schema")) if "schema" in p else p
        example = p.get("example", schema.get("example") if isinstance(schema, dict) else None)
        by_name[name] = Param(
            name=name,
            location=location,
            required=bool(p.get("required", False)),
            param_type=_schema_type(schema),
            description=_scalar_text(p.get("description")),
            example=_scalar_text(example),
            default=_scalar_text(schema.get("default") if isinstance(schema, dict) else None),
            enum=_enum_values(schema),
        )
    return list(by_name.values())


def _parse_request_body(doc: dict, body) -> BodySchema | None:
    body = _resolve(doc, body)
    if not isinstance(body, dict):
        return None
    media = _as_dict(body.get("content")).get("application/json")
    if not isinstance(media, dict) or "schema" not in media:
        return None
    return _body_schema(doc, media["schema"])


def _parse_swagger2_body(doc: dict, params: list) -> BodySchema | None:
    for p in params:
        if isinstance(p, dict) and p.get("in") == "body" and "schema" in p:
            return _body_schema(doc, p["schema"])
    return None


def _body_schema(doc: dict, schema) -> BodySchema:
    schema = _resolve(doc, schema)
    if not isinstance(schema, dict):
        return BodySchema(supported=False)
    is_object = schema.get("type") == "object" or ("type" not in schema and "properties" in schema)
    if not is_object:
        return BodySchema(supported=False)

    required = {r for r in _as_list(schema.get("required")) if isinstance(r, str)}
    fields = []
    supported = True
    for name, prop in _as_dict(schema.get("properties")).items():
        prop = _resolve(doc, prop)
        field_type = _schema_type(prop)
        if field_type == "unknown":
            supported = False
        fields.append(
            BodyField(
                name=str(name),
                required=str(name) in required,
                param_type=field_type,
                description=_scalar_text(prop.get("description")) if isinstance(prop, dict) else "",
                example=_scalar_text(prop.get("example") if isinstance(prop, dict) else None),
                default=_scalar_text(prop.get("default") if isinstance(prop, dict) else None),
                enum=_enum_values(prop),
            )
        )
    return BodySchema(supported=supported, fields=fields)


def _parse_security_scheme(name: str, definition: dict) -> SecurityScheme:
    scheme_type = _scalar_text(definition.get("type"))
    scheme = _scalar_text(definition.get("scheme"))
    token_url = ""
    scopes: dict = {}

    if scheme_type == "basic":
        # Swagger 2.0 spelling of http basic.
        scheme_type, scheme = "http", "basic"
    elif scheme_type == "oauth2":
        if "flows" in definition:
            password = _as_dict(_as_dict(definition.get("flows")).get("password"))
            token_url = _scalar_text(password.get("tokenUrl"))
            scopes = _as_dict(password.get("scopes"))
        elif definition.get("flow") == "password":
            token_url = _scalar_text(definition.get("tokenUrl"))
            scopes = _as_dict(definition.get("scopes"))

    return SecurityScheme(
        name=str(name),
        scheme_type=scheme_type,
        description=_scalar_text(definition.get("description")),
        scheme=scheme,
        bearer_format=_scalar_text(definition.get("bearerFormat")),
        token_url=token_url,
        scopes={str(k): str(v) for k, v in scopes.items()},
    )


def _schema_type(schema) -> str:
    if not isinstance(schema, dict):
        return "unknown"
    schema_type = schema.get("type")
    # OpenAPI 3.1 allows ["string", "null"].
    if isinstance(schema_type, list):
        non_null = [t for t in schema_type if t != "null"]
        schema_type = non_null[0] if len(non_null) == 1 else None
    return schema_type if schema_type in SCALAR_TYPES else "unknown"


def _enum_values(schema) -> list[str]:
    if not isinstance(schema, dict):
        return []
    return [_scalar_text(v) for v in _as_list(schema.get("enum")) if v is not None]


def _scalar_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value).strip()


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _requirement(req: dict) -> dict[str, list[str]]:
    return {str(name): [str(s) for s in _as_list(scopes)] for name, scopes in req.items()}
