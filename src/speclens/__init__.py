"""speclens -- ingest, normalize and analyze API descriptions at any scale.

This package turns OpenAPI 3.x, AsyncAPI 2.x, Postman v2.x collections and
GraphQL schema ASTs into one format-agnostic :class:`~speclens.models.UnifiedSpec`,
measures how large the result is, picks a processing strategy, processes it
(chunked and parallel, streamed, or in one pass), and detects the
authentication and pagination styles the API uses.

Typical usage::

    from speclens.pipeline import run_pipeline

    result = run_pipeline(open("openapi.json").read())
    print(result.metrics.complexity_tier, [p.type for p in result.auth_patterns])

or from the shell::

    speclens analyze openapi.json
    speclens process big-api.json

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    parser: Source loading, format parsers and schema reference resolution.
    analysis: Complexity metrics and strategy selection.
    processing: Chunked, streaming and standard processing.
    patterns: Authentication and pagination detectors.
    pipeline: End-to-end parse/analyze/process/detect.
    config: XDG-aware configuration.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
