"""HTTP executor: dispatches a RequestSpec and formats the response."""

import json
import logging
import time

import requests
from pydantic import BaseModel

from xhark.errors import TransportError

from .request import RequestSpec

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0


class Result(BaseModel):
    """A received response with its body already formatted for display."""

    status_code: int
    status: str  # "200 OK"
    elapsed: float  # seconds
    headers: dict[str, str] = {}
    body: str = ""


def execute(spec: RequestSpec, timeout: float = DEFAULT_TIMEOUT) -> Result:
    """Send ``spec`` synchronously.

    Raises TransportError on network failure or a request http.client
    cannot encode.

    Non-2xx responses are results, not errors.
    """
    headers = {k: v for k, v in spec.headers.items() if v.strip()}
    logger.debug("%s %s headers=%s", spec.method, spec.url, sorted(headers))

    start = time.monotonic()
    try:
        resp = requests.request(
            spec.method,
            spec.url,
            headers=headers,
            data=spec.body or None,
            timeout=timeout,
        )
    # http.client raises UnicodeEncodeError for header values outside latin-1
    except (requests.RequestException, ValueError) as e:
        logger.debug("%s %s failed: %s", spec.method, spec.url, e)
        raise TransportError(f"{spec.method} {spec.url}: {e}") from e
    elapsed = time.monotonic() - start

    content_type = resp.headers.get("Content-Type", "")
    result_headers = {"content-type": content_type} if content_type else {}
    logger.debug("%s %s -> %s in %.3fs", spec.method, spec.url, resp.status_code, elapsed)

    return Result(
        status_code=resp.status_code,
        status=f"{resp.status_code} {resp.reason or ''}".rstrip(),
        elapsed=elapsed,
        headers=result_headers,
        body=format_body(content_type, resp.content),
    )


def format_body(content_type: str, body: bytes) -> str:
    """Pretty-print JSON bodies; anything else is decoded as text."""
    text = body.decode("utf-8", errors="replace")
    if "application/json" in content_type.lower():
        try:
            return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
        except ValueError:
            pass
    return text
