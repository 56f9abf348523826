"""Credential store keyed by security-scheme name.

Entries live for the whole process and never expire; they are replaced on a
new manual entry or token fetch and dropped only on an explicit clear.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from xhark.client.oauth import fetch_password_token
from xhark.errors import AuthError
from xhark.parser.base import Endpoint, SecurityScheme

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TYPE = "Bearer"

TokenFetcher = Callable[..., tuple[str, str]]


class CredentialEntry(BaseModel):
    """A credential acquired for one security scheme."""

    model_config = ConfigDict(frozen=True)

    scheme_name: str
    token: str
    token_type: str = DEFAULT_TOKEN_TYPE
    acquired_at: datetime

    @property
    def header_value(self) -> str:
        return f"{self.token_type.strip()} {self.token.strip()}"


def normalize_token_type(token_type: str) -> str:
    token_type = token_type.strip()
    if not token_type or token_type.lower() == "bearer":
        return DEFAULT_TOKEN_TYPE
    return token_type


class CredentialStore:
    """Process-lifetime credential cache.

    ``base_url`` resolves relative token URLs; ``fetcher`` performs the
    password-grant exchange and is replaceable in tests.
    """

    def __init__(
        self,
        base_url: str = "",
        fetcher: TokenFetcher = fetch_password_token,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._fetcher = fetcher
        self._clock = clock
        self._entries: dict[str, CredentialEntry] = {}

    def __contains__(self, scheme_name: str) -> bool:
        return scheme_name in self._entries

    def get(self, scheme_name: str) -> CredentialEntry | None:
        return self._entries.get(scheme_name)

    def is_set(self, scheme_name: str) -> bool:
        entry = self._entries.get(scheme_name)
        return entry is not None and bool(entry.token.strip())

    def set_manual(self, scheme_name: str, token: str) -> CredentialEntry | None:
        """Store a token verbatim as Bearer; an empty token clears the entry."""
        token = token.strip()
        if not token:
            self.clear(scheme_name)
            return None
        entry = CredentialEntry(
            scheme_name=scheme_name,
            token=token,
            token_type=DEFAULT_TOKEN_TYPE,
            acquired_at=self._clock(),
        )
        self._entries[scheme_name] = entry
        logger.info("stored manual token for scheme %s", scheme_name)
        return entry

    def fetch_password_grant(
        self,
        scheme: SecurityScheme,
        username: str,
        password: str,
        scope: str = "",
    ) -> CredentialEntry:
        """Acquire and store a token via the scheme's password flow.

        Raises AuthError on failure; the existing entry is left untouched.
        """
        if not scheme.is_password_flow:
            raise AuthError(f"scheme {scheme.name} has no password-flow token url")

        access_token, token_type = self._fetcher(
            self.base_url,
            scheme.token_url,
            username,
            password,
            scope,
            timeout=self.timeout,
        )
        entry = CredentialEntry(
            scheme_name=scheme.name,
            token=access_token,
            token_type=normalize_token_type(token_type),
            acquired_at=self._clock(),
        )
        self._entries[scheme.name] = entry
        logger.info("fetched %s token for scheme %s", entry.token_type, scheme.name)
        return entry

    def clear(self, scheme_name: str) -> None:
        if self._entries.pop(scheme_name, None) is not None:
            logger.info("cleared credential for scheme %s", scheme_name)

    def headers_for(self, endpoint: Endpoint) -> dict[str, str] | None:
        """Auth headers for the first fully satisfied security alternative.

        None when the endpoint declares no security or no alternative is
        satisfied. Every scheme writes the single Authorization header, so
        with a multi-scheme alternative the last scheme wins.
        """
        if not endpoint.security:
            return None

        for requirement in endpoint.security:
            headers = {}
            for scheme_name in requirement:
                if not self.is_set(scheme_name):
                    break
                headers["Authorization"] = self._entries[scheme_name].header_value
            else:
                return headers
        return None
