"""Normalized data models for a loaded API description.

The description loader converts OpenAPI 3.x / Swagger 2.0 documents into
these models. They are frozen once built: the catalog owns them for the
lifetime of the process and nothing downstream mutates them.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict

ParamLocation = Literal["path", "query"]
ParamType = Literal["string", "integer", "number", "boolean", "unknown"]

BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class Param(BaseModel):
    """A single path or query parameter."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: ParamLocation
    required: bool = False
    param_type: ParamType = "unknown"
    description: str = ""
    example: str = ""
    default: str = ""
    enum: list[str] = []


class BodyField(BaseModel):
    """A scalar property of a flat JSON request body."""

    model_config = ConfigDict(frozen=True)

    name: str
    required: bool = False
    param_type: ParamType = "unknown"
    description: str = ""
    example: str = ""
    default: str = ""
    enum: list[str] = []


class BodySchema(BaseModel):
    """JSON request body shape.

    ``supported`` is False when the body is not a flat object of scalar
    fields; such bodies can still be sent as a raw JSON override.
    """

    model_config = ConfigDict(frozen=True)

    supported: bool
    fields: list[BodyField] = []


class SecurityScheme(BaseModel):
    """A named security scheme declared by the description."""

    model_config = ConfigDict(frozen=True)

    name: str
    scheme_type: str  # http / oauth2 / apiKey / openIdConnect
    description: str = ""
    scheme: str = ""  # bearer / basic, for http schemes
    bearer_format: str = ""
    token_url: str = ""  # oauth2 password flow only
    scopes: dict[str, str] = {}

    @property
    def is_bearer(self) -> bool:
        return self.scheme_type == "http" and self.scheme.lower() == "bearer"

    @property
    def is_password_flow(self) -> bool:
        return self.scheme_type == "oauth2" and bool(self.token_url.strip())


# scheme name -> required scopes
SecurityRequirement = dict[str, list[str]]


class Endpoint(BaseModel):
    """A single (method, path) operation with its parameters and body."""

    model_config = ConfigDict(frozen=True)

    method: str  # GET / POST / PUT / PATCH / DELETE
    path: str  # /users/{id}
    summary: str = ""
    operation_id: str = ""
    path_params: list[Param] = []
    query_params: list[Param] = []
    body: BodySchema | None = None
    # Alternatives are OR'd, schemes inside one alternative are AND'd.
    security: list[SecurityRequirement] = []

    @property
    def label(self) -> str:
        """Summary, falling back to the operation id."""
        return self.summary if self.summary.strip() else self.operation_id

    @property
    def sends_body(self) -> bool:
        return self.method.upper() in BODY_METHODS and self.body is not None
