"""OAuth2 password-grant token exchange."""

import logging
from urllib.parse import urljoin

import requests

from xhark.errors import AuthError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def resolve_token_url(base_url: str, token_url: str) -> str:
    """Resolve a relative token URL against the API base URL."""
    token_url = token_url.strip()
    if token_url.startswith("http://") or token_url.startswith("https://"):
        return token_url
    if not base_url.strip():
        raise AuthError(f"cannot resolve relative token url {token_url!r}: base URL unknown")
    return urljoin(base_url.rstrip("/") + "/", token_url)


def fetch_password_token(
    base_url: str,
    token_url: str,
    username: str,
    password: str,
    scope: str = "",
    timeout: float = DEFAULT_TIMEOUT,
) -> tuple[str, str]:
    """Exchange username/password for an access token.

    Returns (access_token, token_type). token_type may be blank; callers
    normalize it. Raises AuthError on transport failure, non-2xx status, or
    a response without an access token.
    """
    url = resolve_token_url(base_url, token_url)
    form = {"grant_type": "password", "username": username, "password": password}
    if scope.strip():
        form["scope"] = scope.strip()

    logger.debug("requesting password-grant token from %s for %s", url, username)
    try:
        resp = requests.post(
            url,
            data=form,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise AuthError(f"token request failed: {e}") from e

    if not 200 <= resp.status_code < 300:
        detail = resp.text.strip()[:200]
        message = f"token request failed: {resp.status_code} {resp.reason or ''}".rstrip()
        if detail:
            message += f": {detail}"
        raise AuthError(message, status_code=resp.status_code)

    try:
        payload = resp.json()
    except ValueError as e:
        raise AuthError(f"invalid token response: {e}", status_code=resp.status_code) from e
    if not isinstance(payload, dict):
        raise AuthError("invalid token response: not a JSON object", status_code=resp.status_code)

    access_token = str(payload.get("access_token") or "").strip()
    if not access_token:
        raise AuthError("token response missing access_token", status_code=resp.status_code)
    return access_token, str(payload.get("token_type") or "").strip()
