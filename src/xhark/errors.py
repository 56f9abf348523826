"""Error taxonomy shared by the collaborators and the session."""


class XharkError(Exception):
    """Base class for all errors raised by xhark."""


class LoadError(XharkError):
    """The API description could not be fetched or parsed."""


class ValidationError(XharkError):
    """A field value is missing or malformed; blocks one execute attempt."""


class TransportError(XharkError):
    """The HTTP call failed (network error or timeout)."""


class AuthError(XharkError):
    """A token exchange failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
