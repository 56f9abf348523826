"""Endpoint catalog: the read-only result of loading a description once."""

import logging
from dataclasses import dataclass, field

from xhark.errors import LoadError
from xhark.parser.base import Endpoint, SecurityScheme
from xhark.parser.swagger import (
    base_url_from_document,
    base_url_from_spec_url,
    extract_security_schemes,
    is_http_source,
    load_document,
    parse_openapi,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Catalog:
    """Endpoints, security schemes and base URL of one API description."""

    source: str
    endpoints: tuple[Endpoint, ...] = ()
    schemes: dict[str, SecurityScheme] = field(default_factory=dict)
    base_url: str = ""

    @classmethod
    def load(cls, source: str, base_url: str = "", timeout: float = 5.0) -> "Catalog":
        """Load and normalize a description.

        ``base_url`` overrides anything derived from the spec URL or the
        document. Raises LoadError on failure.
        """
        doc = load_document(source, timeout=timeout)
        spec_url = source if is_http_source(source) else ""
        try:
            endpoints = tuple(parse_openapi(doc))
            schemes = extract_security_schemes(doc)
            resolved = (
                normalize_base_url(base_url)
                or base_url_from_spec_url(spec_url)
                or base_url_from_document(doc, spec_url)
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            # pydantic's ValidationError is a ValueError
            raise LoadError(f"failed to parse openapi: {e}") from e
        logger.info(
            "loaded %d endpoints, %d security schemes from %s (base url: %s)",
            len(endpoints), len(schemes), source, resolved or "<unknown>",
        )
        return cls(source=source, endpoints=endpoints, schemes=schemes, base_url=resolved)

    def __len__(self) -> int:
        return len(self.endpoints)

    def __getitem__(self, index: int) -> Endpoint:
        return self.endpoints[index]

    def scheme_names(self) -> list[str]:
        return sorted(self.schemes)


def normalize_base_url(url: str) -> str:
    """Strip whitespace and default the scheme to http://."""
    url = url.strip()
    if not url:
        return ""
    if not is_http_source(url):
        url = "http://" + url
    return url.rstrip("/")
