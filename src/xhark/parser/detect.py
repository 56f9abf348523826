"""Decode description documents and detect their flavour."""

import json

import yaml

from xhark.errors import LoadError


def parse_document_text(text: str) -> dict:
    """Decode a JSON or YAML description document into a dict.

    Raises LoadError if the text is neither, or is not a mapping.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise LoadError(f"failed to parse openapi: {e}") from e

    if not isinstance(data, dict):
        raise LoadError("failed to parse openapi: document is not an object")
    return data


def detect_version(doc: dict) -> str:
    """Detect the description flavour.

    Returns: 'openapi3' or 'swagger2'. Raises LoadError otherwise.
    """
    if str(doc.get("openapi", "")).startswith("3"):
        return "openapi3"
    if str(doc.get("swagger", "")).startswith("2"):
        return "swagger2"
    raise LoadError("failed to parse openapi: missing 'openapi' or 'swagger' version field")
