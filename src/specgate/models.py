"""Canonical Pydantic models shared across all specgate modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into four groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig`, :class:`CacheConfig`, :class:`ValidationConfig`,
    and :class:`GlobalConfig`.

**Schema nodes** -- the tagged variant produced by the schema parser:
    :class:`ObjectSchema`, :class:`ArraySchema`, :class:`PrimitiveSchema`,
    :class:`OneOfSchema`, :class:`AnySchema` and :class:`RefSchema`, joined
    into the discriminated union :data:`SchemaNode`.

**Document models** -- the loaded contract:
    :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`ParameterSpec`,
    :class:`HeaderSpec`, :class:`ResponseSpec`, :class:`PathSegment`,
    :class:`Operation`, :class:`APIInfo`, :class:`ServerInfo`, and
    :class:`SpecDocument`.

**Validation models** -- per-call results and recorded exchanges:
    :class:`ViolationKind`, :class:`Violation`, :class:`ValidationResult`,
    :class:`MatchResult`, :class:`RecordedRequest`, :class:`RecordedResponse`,
    :class:`Exchange`, and :class:`ExchangeResult`.

Schema, document and result models are frozen: a loaded
:class:`SpecDocument` is shared read-only between validating threads and a
returned :class:`ValidationResult` is never mutated.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, computed_field


# --- Config ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class CacheConfig(BaseModel):
    """Remote specification cache settings stored in :class:`GlobalConfig`."""

    enabled: bool = Field(default=True, description="Cache specs fetched over HTTP")
    ttl_seconds: int = Field(default=300, description="Cache TTL in seconds")


class ValidationConfig(BaseModel):
    """Knobs for :class:`~specgate.validation.ContractValidator`."""

    check_formats: bool = Field(
        default=True, description="Check string formats (email, date-time, uuid, ...)"
    )
    strip_server_prefix: bool = Field(
        default=True,
        description="Retry matching with the servers[].url base path removed",
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/specgate/config.json``.

    Loaded and saved by :func:`~specgate.config.load_global_config` and
    :func:`~specgate.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~specgate.config.resolve_config`
    for the full precedence chain.
    """

    default_spec: Optional[str] = Field(
        default=None, description="URL or file path of the spec used when none is given"
    )
    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)


# --- Schema nodes ---


class PrimitiveKind(str, enum.Enum):
    """JSON Schema scalar types understood by :class:`PrimitiveSchema`."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"


class _SchemaBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    nullable: bool = False
    description: Optional[str] = None


class ObjectSchema(_SchemaBase):
    """An object with named properties.

    ``required`` keeps declaration order so violations are reported
    deterministically. When ``additional_properties`` is set, undeclared
    properties are validated against it; otherwise they are accepted unless
    ``additional_properties_allowed`` is ``False``.
    """

    kind: Literal["object"] = "object"
    properties: dict[str, SchemaNode] = Field(default_factory=dict)
    required: tuple[str, ...] = ()
    additional_properties_allowed: bool = True
    additional_properties: Optional[SchemaNode] = None


class ArraySchema(_SchemaBase):
    """A homogeneous array whose elements all match ``items``."""

    kind: Literal["array"] = "array"
    items: SchemaNode
    min_items: Optional[int] = None
    max_items: Optional[int] = None


class PrimitiveSchema(_SchemaBase):
    """A scalar with optional format, enum, and range constraints.

    ``type`` is ``None`` for untyped schemas such as a bare
    ``{"enum": [...]}``; the runtime type is then not checked.
    """

    kind: Literal["primitive"] = "primitive"
    type: Optional[PrimitiveKind] = None
    format: Optional[str] = None
    enum: Optional[tuple[Any, ...]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None


class OneOfSchema(_SchemaBase):
    """Ordered alternatives; a value is valid if any alternative accepts it."""

    kind: Literal["oneOf"] = "oneOf"
    alternatives: tuple[SchemaNode, ...]


class AnySchema(_SchemaBase):
    """A schema without constraints (``{}``); accepts every value."""

    kind: Literal["any"] = "any"
    nullable: bool = True


class RefSchema(_SchemaBase):
    """An unresolved ``$ref``. Never present in a linked :class:`SpecDocument`."""

    kind: Literal["ref"] = "ref"
    target: str


SchemaNode = Annotated[
    Union[ObjectSchema, ArraySchema, PrimitiveSchema, OneOfSchema, AnySchema, RefSchema],
    Field(discriminator="kind"),
]
"""Discriminated union of every schema node variant."""


ObjectSchema.model_rebuild()
ArraySchema.model_rebuild()
OneOfSchema.model_rebuild()


# --- Document ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods that may carry a documented operation."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"


class ParameterLocation(str, enum.Enum):
    """Locations where a validated parameter can appear, per OpenAPI ``in`` field."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"


class ParameterSpec(BaseModel):
    """A single parameter declared on an operation (*Parameter Object*)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_: SchemaNode = Field(default_factory=AnySchema, alias="schema")


class HeaderSpec(BaseModel):
    """A response header declared on a *Response Object*."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    required: bool = True
    description: Optional[str] = None
    schema_: Optional[SchemaNode] = Field(default=None, alias="schema")


class ResponseSpec(BaseModel):
    """Documented response for one status code, ``NXX`` range, or ``default``."""

    model_config = ConfigDict(frozen=True)

    status_code: str
    description: Optional[str] = None
    headers: dict[str, HeaderSpec] = Field(default_factory=dict)
    content_types: tuple[str, ...] = ()
    body_schema: Optional[SchemaNode] = None


class PathSegment(BaseModel):
    """One ``/``-separated piece of a path template."""

    model_config = ConfigDict(frozen=True)

    value: str
    is_placeholder: bool = False


class Operation(BaseModel):
    """A single documented operation (one path template + HTTP method pair)."""

    model_config = ConfigDict(frozen=True)

    path: str
    method: HTTPMethod
    segments: tuple[PathSegment, ...] = ()
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    tags: tuple[str, ...] = ()
    parameters: tuple[ParameterSpec, ...] = ()
    request_body_schema: Optional[SchemaNode] = None
    request_body_required: bool = False
    request_body_content_types: tuple[str, ...] = ()
    responses: dict[str, ResponseSpec] = Field(default_factory=dict)
    deprecated: bool = False

    @property
    def key(self) -> str:
        """``"GET /products/{id}"`` -- the human-readable operation key."""
        return f"{self.method.value.upper()} {self.path}"

    @property
    def placeholder_count(self) -> int:
        return sum(1 for segment in self.segments if segment.is_placeholder)

    def parameters_in(self, location: ParameterLocation) -> list[ParameterSpec]:
        """Return the parameters declared for *location*, in declaration order."""
        return [p for p in self.parameters if p.location == location]


class APIInfo(BaseModel):
    """API metadata extracted from the OpenAPI spec's *Info Object*."""

    model_config = ConfigDict(frozen=True)

    title: str
    version: str
    description: Optional[str] = None


class ServerInfo(BaseModel):
    """A server entry from the OpenAPI spec's ``servers`` array."""

    model_config = ConfigDict(frozen=True)

    url: str
    description: Optional[str] = None

    @property
    def base_path(self) -> str:
        """Path component of :attr:`url` without a trailing slash (``""`` for root)."""
        return urlsplit(self.url).path.rstrip("/")


class SpecDocument(BaseModel):
    """Complete, linked representation of an OpenAPI specification.

    Produced by :func:`~specgate.parser.load_document` and consumed by the
    matcher and validators. Every schema reachable from :attr:`operations`
    or :attr:`schemas` is fully linked (no :class:`RefSchema` nodes).

    See Also:
        :class:`Operation`: Individual operation within the document.
    """

    model_config = ConfigDict(frozen=True)

    info: APIInfo
    openapi_version: str
    servers: tuple[ServerInfo, ...] = ()
    operations: tuple[Operation, ...] = ()
    schemas: dict[str, SchemaNode] = Field(default_factory=dict)

    def get_operation(self, method: str, path: str) -> Optional[Operation]:
        """Look up an operation by method and exact path template."""
        wanted = method.lower()
        for operation in self.operations:
            if operation.method.value == wanted and operation.path == path:
                return operation
        return None

    @property
    def base_paths(self) -> list[str]:
        """Distinct non-root server base paths, longest first."""
        paths = {server.base_path for server in self.servers if server.base_path}
        return sorted(paths, key=len, reverse=True)


# --- Validation ---


class ViolationKind(str, enum.Enum):
    """Category of a single contract deviation."""

    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    TYPE_MISMATCH = "TypeMismatch"
    ENUM_VIOLATION = "EnumViolation"
    RANGE_VIOLATION = "RangeViolation"
    UNKNOWN_OPERATION = "UnknownOperation"
    NO_MATCHING_ALTERNATIVE = "NoMatchingAlternative"


class Violation(BaseModel):
    """A single, localized deviation of an observed value from its schema."""

    model_config = ConfigDict(frozen=True)

    path: str
    message: str
    kind: ViolationKind

    def describe(self) -> str:
        return f"{self.path or '<root>'}: {self.message}"


class ValidationResult(BaseModel):
    """Outcome of validating one request or one response."""

    model_config = ConfigDict(frozen=True)

    violations: tuple[Violation, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid(self) -> bool:
        return not self.violations

    @classmethod
    def from_violations(cls, violations: list[Violation]) -> ValidationResult:
        return cls(violations=tuple(violations))

    def of_kind(self, kind: ViolationKind) -> list[Violation]:
        """Return the violations of *kind*, preserving order."""
        return [v for v in self.violations if v.kind == kind]


class MatchResult(BaseModel):
    """An operation resolved by the matcher plus its bound path parameters."""

    model_config = ConfigDict(frozen=True)

    operation: Operation
    path_params: dict[str, str] = Field(default_factory=dict)


class RecordedRequest(BaseModel):
    """An observed HTTP request with an already-decoded body."""

    method: str
    path: str
    query: dict[str, Union[str, list[str]]] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None


class RecordedResponse(BaseModel):
    """An observed HTTP response with an already-decoded body."""

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None


class Exchange(BaseModel):
    """A request and (optionally) the response it produced."""

    request: RecordedRequest
    response: Optional[RecordedResponse] = None


class ExchangeResult(BaseModel):
    """Validation outcome for a whole :class:`Exchange`."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    operation: Optional[str] = Field(
        default=None, description="Matched operation key, e.g. 'GET /users'"
    )
    request: ValidationResult = Field(default_factory=ValidationResult)
    response: Optional[ValidationResult] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid(self) -> bool:
        return self.request.valid and (self.response is None or self.response.valid)

    @property
    def violations(self) -> list[Violation]:
        """Request violations followed by response violations."""
        collected = list(self.request.violations)
        if self.response is not None:
            collected.extend(self.response.violations)
        return collected
