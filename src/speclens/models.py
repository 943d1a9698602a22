"""Canonical Pydantic models shared across all speclens modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into four groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig`, :class:`CacheConfig`, :class:`ProcessingConfig`,
    and :class:`GlobalConfig`.

**Unified spec models** -- produced by every format parser:
    :class:`SpecFormat`, :class:`RawSpecDocument`, :class:`SchemaNode`,
    :class:`SchemaRef`, :class:`Parameter`, :class:`RequestBody`,
    :class:`Response`, :class:`Endpoint`, :class:`SecurityScheme`,
    :class:`ServerInfo`, and :class:`UnifiedSpec`.

**Analysis and processing models** -- metrics, strategy, chunks and results:
    :class:`ComplexityTier`, :class:`SpecMetrics`,
    :class:`OptimizationStrategy`, :class:`ProcessingChunk`,
    :class:`NamedSchema`, :class:`EndpointItem`, :class:`ModelItem`,
    :class:`ProgressEvent`, :class:`SpecIndex`, and
    :class:`ProcessingResult`.

**Pattern models** -- detector output:
    :class:`AuthPattern` and :class:`PaginationPattern`.

All models use Pydantic v2. Schema nodes form a tagged variant
(``SchemaNode | SchemaRef``) discriminated on ``kind``; a ``SchemaRef``
marks a cyclic edge or a dangling reference and is never expanded in place.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Config ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class CacheConfig(BaseModel):
    """Analysis cache settings stored in :class:`GlobalConfig`."""

    enabled: bool = Field(default=True, description="Enable analysis caching")
    ttl_seconds: int = Field(default=3600, description="Cache TTL in seconds")


class ProcessingConfig(BaseModel):
    """Tuning knobs for the chunked processor and the document loader."""

    chunk_size: int = Field(default=100, ge=1, description="Items per chunk")
    max_parallel_chunks: int = Field(
        default=4, ge=1, description="Upper bound on chunks running in one batch"
    )
    http_timeout: float = Field(
        default=30.0, gt=0, description="Timeout in seconds for URL sources"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/speclens/config.json``.

    Loaded and saved by :func:`~speclens.config.load_global_config` and
    :func:`~speclens.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~speclens.config.resolve_config`
    for the full precedence chain.
    """

    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)


# --- Input ---


class SpecFormat(str, enum.Enum):
    """Wire formats understood by :func:`~speclens.parser.parse_spec`."""

    OPENAPI = "openapi"
    ASYNCAPI = "asyncapi"
    POSTMAN = "postman"
    GRAPHQL = "graphql"


class RawSpecDocument(BaseModel):
    """Immutable input text plus its declared format and version.

    Consumed once by :func:`~speclens.parser.parse_spec`. ``format`` may be
    left unset, in which case the format is sniffed from the decoded
    document.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    format: Optional[SpecFormat] = None
    version: Optional[str] = None


# --- Schema nodes ---


class SchemaRef(BaseModel):
    """Placeholder for a named schema that was not expanded in place.

    Produced when a reference points at a schema that is still being built
    (a cycle) or at a name that is not declared at all (a dangling
    reference).
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["reference"] = "reference"
    name: str


class SchemaNode(BaseModel):
    """A parsed type descriptor.

    ``origin`` records the named component the node was built from. It is
    bookkeeping for :func:`~speclens.parser.resolver.resolve` and is left
    out of the canonical serialisation, so two structurally equal schemas
    declared under different names still compare equal.
    """

    kind: Literal["schema"] = "schema"
    type: Optional[str] = None
    format: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    properties: dict[str, SchemaLike] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    items: Optional[SchemaLike] = None
    enum: Optional[list[Any]] = None
    nullable: bool = False
    read_only: bool = False
    write_only: bool = False
    deprecated: bool = False
    default: Any = None
    example: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: Optional[float] = None
    exclusive_maximum: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    pattern: Optional[str] = None
    additional_properties: Optional[Union[bool, SchemaLike]] = None
    all_of: list[SchemaLike] = Field(default_factory=list)
    one_of: list[SchemaLike] = Field(default_factory=list)
    any_of: list[SchemaLike] = Field(default_factory=list)
    origin: Optional[str] = None


SchemaLike = Annotated[Union[SchemaNode, SchemaRef], Field(discriminator="kind")]

SchemaNode.model_rebuild()


# --- Unified spec ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised as operations in an OpenAPI path item."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


class Parameter(BaseModel):
    """A single endpoint parameter (query, header, path, or cookie)."""

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_: Optional[SchemaLike] = Field(default=None, alias="schema")
    example: Any = None
    deprecated: bool = False

    model_config = {"populate_by_name": True}


class MediaType(BaseModel):
    """Schema and example for one content type of a body or response."""

    schema_: Optional[SchemaLike] = Field(default=None, alias="schema")
    example: Any = None

    model_config = {"populate_by_name": True}


class RequestBody(BaseModel):
    """Request payload accepted by an :class:`Endpoint`."""

    description: Optional[str] = None
    required: bool = False
    content: dict[str, MediaType] = Field(default_factory=dict)


class Response(BaseModel):
    """One declared response of an :class:`Endpoint`, keyed by status code."""

    status_code: str
    description: Optional[str] = None
    content: dict[str, MediaType] = Field(default_factory=dict)
    headers: dict[str, SchemaLike] = Field(default_factory=dict)


class Endpoint(BaseModel):
    """One operation: a path plus a method.

    ``method`` is an upper-case verb. REST formats use HTTP verbs, AsyncAPI
    uses ``PUBLISH``/``SUBSCRIBE`` and GraphQL uses ``QUERY``/``MUTATION``/
    ``SUBSCRIPTION``.
    """

    path: str
    method: str
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = None
    responses: list[Response] = Field(default_factory=list)
    security: list[str] = Field(
        default_factory=list, description="Names of the security schemes that apply"
    )
    tags: list[str] = Field(default_factory=list)
    deprecated: bool = False

    @property
    def key(self) -> str:
        """Stable ``"METHOD path"`` identifier used by indexes and detectors."""
        return f"{self.method.upper()} {self.path}"


class ServerInfo(BaseModel):
    """A server entry. AsyncAPI servers also carry a name and a protocol."""

    url: str
    description: Optional[str] = None
    name: Optional[str] = None
    protocol: Optional[str] = None


class OAuthFlow(BaseModel):
    """Endpoints and scopes of one OAuth 2.0 flow."""

    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    refresh_url: Optional[str] = None
    scopes: dict[str, str] = Field(default_factory=dict)


class SecurityScheme(BaseModel):
    """A declared authentication mechanism.

    The ``type`` field discriminates between ``apiKey``, ``http``, ``oauth2``,
    and ``openIdConnect`` schemes (AsyncAPI adds types such as
    ``userPassword`` or ``X509``). Only the fields relevant to the active
    scheme type are populated. Vendor ``x-*`` keys are kept in
    ``extensions`` because they often carry signing hints.
    """

    name: str
    type: str
    description: Optional[str] = None
    # apiKey
    param_name: Optional[str] = None
    location: Optional[str] = None  # header, query, cookie
    # http
    scheme: Optional[str] = None  # bearer, basic
    bearer_format: Optional[str] = None
    # oauth2
    flows: dict[str, OAuthFlow] = Field(default_factory=dict)
    # openIdConnect
    openid_connect_url: Optional[str] = None
    extensions: dict[str, Any] = Field(default_factory=dict)


class UnifiedSpec(BaseModel):
    """Format-agnostic representation of one API description.

    ``schemas`` preserves declaration order, which drives the keep-first
    policy of :func:`~speclens.parser.resolver.deduplicate_schemas`.
    """

    title: str
    version: str
    description: Optional[str] = None
    source_format: SpecFormat
    source_version: Optional[str] = Field(
        default=None, description="Declared format version, e.g. '3.0.3'"
    )
    servers: list[ServerInfo] = Field(default_factory=list)
    endpoints: list[Endpoint] = Field(default_factory=list)
    schemas: dict[str, SchemaLike] = Field(default_factory=dict)
    security_schemes: list[SecurityScheme] = Field(default_factory=list)
    global_security: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


# --- Analysis ---


class ComplexityTier(str, enum.Enum):
    """Discrete size classification, ordered from smallest to largest."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    XLARGE = "xlarge"


class SpecMetrics(BaseModel):
    """Size and complexity measurements computed by :func:`~speclens.analysis.analyze`."""

    model_config = ConfigDict(frozen=True)

    endpoint_count: int
    model_count: int
    total_size_bytes: int
    complexity_tier: ComplexityTier
    estimated_processing_time_ms: int


class OptimizationStrategy(BaseModel):
    """Six independent switches selected from :class:`SpecMetrics`."""

    model_config = ConfigDict(frozen=True)

    chunking: bool = False
    streaming: bool = False
    caching: bool = False
    parallelization: bool = False
    compression: bool = False
    indexing: bool = False

    def enabled(self) -> list[str]:
        """Return the names of the switches that are on, in field order."""
        return [name for name, value in self.model_dump().items() if value]


# --- Processing ---


class ChunkKind(str, enum.Enum):
    """Collections a :class:`ProcessingChunk` can be cut from."""

    ENDPOINTS = "endpoints"
    MODELS = "models"


class NamedSchema(BaseModel):
    """A named model as it travels through chunks and streams."""

    name: str
    schema_: SchemaLike = Field(alias="schema")

    model_config = {"populate_by_name": True}


class ProcessingChunk(BaseModel):
    """A bounded slice of endpoints or models processed as one unit.

    ``index`` is the creation position among all chunks of a run; results
    are reassembled by it regardless of execution order.
    """

    id: str
    index: int
    kind: ChunkKind
    items: list[Union[Endpoint, NamedSchema]] = Field(default_factory=list)
    size: int
    priority: int


class EndpointItem(BaseModel):
    """Stream element wrapping an :class:`Endpoint`."""

    kind: Literal["endpoint"] = "endpoint"
    endpoint: Endpoint


class ModelItem(BaseModel):
    """Stream element wrapping a :class:`NamedSchema`."""

    kind: Literal["model"] = "model"
    model: NamedSchema


StreamItem = Annotated[Union[EndpointItem, ModelItem], Field(discriminator="kind")]


class ProgressEvent(BaseModel):
    """One progress notification: an integer percentage and a stage label."""

    model_config = ConfigDict(frozen=True)

    percent: int = Field(ge=0, le=100)
    stage: str


class SpecIndex(BaseModel):
    """Lookup tables built when ``indexing`` is enabled."""

    endpoints: dict[str, Endpoint] = Field(default_factory=dict)
    models: dict[str, SchemaLike] = Field(default_factory=dict)
    tags: dict[str, list[str]] = Field(default_factory=dict)


class ProcessingResult(BaseModel):
    """Output of :func:`~speclens.processing.process_spec`."""

    spec: UnifiedSpec
    endpoints: list[Endpoint] = Field(default_factory=list)
    models: list[NamedSchema] = Field(default_factory=list)
    mode: Literal["standard", "chunked", "streaming"]
    index: Optional[SpecIndex] = None
    chunk_count: int = 0
    elapsed_ms: float = 0.0


# --- Patterns ---


class AuthParameter(BaseModel):
    """A credential-bearing parameter that an auth pattern expects."""

    name: str
    location: str
    required: bool = True
    format: Optional[str] = None
    example: Optional[str] = None


class AuthHeader(BaseModel):
    """A header that an auth pattern sends."""

    name: str
    format: str
    required: bool = True


class AuthPattern(BaseModel):
    """A detected authentication style with its confidence."""

    type: Literal["oauth2", "api_key", "jwt", "basic", "hmac", "custom", "hybrid"]
    subtype: Optional[str] = None
    flow: Optional[str] = None
    scheme_name: Optional[str] = None
    parameters: list[AuthParameter] = Field(default_factory=list)
    headers: list[AuthHeader] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    complexity: Literal["simple", "moderate", "complex"] = "simple"


class PaginationPattern(BaseModel):
    """A detected pagination style for one endpoint.

    ``matched`` lists the parameter or response-field names that triggered
    the rule.
    """

    type: Literal[
        "offset", "cursor", "compound_cursor", "token", "timestamp", "hybrid"
    ]
    parameters: list[str] = Field(default_factory=list)
    response_fields: list[str] = Field(default_factory=list)
    next_page_logic: str = ""
    matched: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)


class PipelineResult(BaseModel):
    """Everything :func:`~speclens.pipeline.run_pipeline` hands to code generation."""

    spec: UnifiedSpec
    metrics: SpecMetrics
    strategy: OptimizationStrategy
    processing: ProcessingResult
    auth_patterns: list[AuthPattern] = Field(default_factory=list)
    pagination: dict[str, list[PaginationPattern]] = Field(default_factory=dict)
