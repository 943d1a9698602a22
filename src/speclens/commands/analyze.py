"""``speclens analyze`` and ``speclens process``.

``analyze`` measures a document and shows which optimizations a run would
use; results are kept in the analysis cache. ``process`` runs the whole
pipeline with a progress bar and prints a summary.
"""

from __future__ import annotations

from typing import Any

import typer

from speclens.commands.common import input_format, read_source, report_errors
from speclens.models import OptimizationStrategy, PipelineResult, SpecMetrics
from speclens.output import OutputFormat, debug, format_response, get_output, success


def _analysis_rows(metrics: SpecMetrics, strategy: OptimizationStrategy) -> list[list[str]]:
    return [
        ["Endpoints", str(metrics.endpoint_count)],
        ["Models", str(metrics.model_count)],
        ["Size (bytes)", str(metrics.total_size_bytes)],
        ["Tier", metrics.complexity_tier.value],
        ["Estimated time (ms)", str(metrics.estimated_processing_time_ms)],
        ["Optimizations", ", ".join(strategy.enabled()) or "-"],
    ]


def analyze_command(
    ctx: typer.Context,
    source: str = typer.Argument(help="File path, http(s) URL, or '-' for stdin."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the analysis cache."),
) -> None:
    """Show size metrics, complexity tier and the selected strategy for SOURCE.

    Example::

        speclens analyze openapi.json
        speclens --json analyze https://example.com/openapi.json
    """
    from speclens.analysis import analyze, select_strategy
    from speclens.cache import AnalysisCache
    from speclens.config import get_cache_dir, resolve_config
    from speclens.parser import parse_spec

    fmt = input_format(ctx)
    with report_errors():
        config = resolve_config(cli_no_cache=no_cache)
    text = read_source(source, config)

    cache = AnalysisCache(get_cache_dir(), config.cache)
    try:
        hit = cache.get(text, fmt)
        cached = hit is not None
        if hit is not None:
            debug("Analysis cache hit")
            metrics, strategy = hit
        else:
            with report_errors():
                spec = parse_spec(text, fmt)
            metrics = analyze(spec)
            strategy = select_strategy(metrics)
            cache.set(text, metrics, strategy, fmt)
    finally:
        cache.close()

    output = get_output()
    if output.format == OutputFormat.JSON:
        format_response(
            {
                "metrics": metrics.model_dump(mode="json"),
                "strategy": strategy.model_dump(mode="json"),
                "cached": cached,
            }
        )
    else:
        output.print_table(
            ["Metric", "Value"], _analysis_rows(metrics, strategy), title="Analysis"
        )


def _summary(result: PipelineResult) -> dict[str, Any]:
    processing = result.processing
    return {
        "title": result.spec.title,
        "version": result.spec.version,
        "format": result.spec.source_format.value,
        "tier": result.metrics.complexity_tier.value,
        "mode": processing.mode,
        "endpoints": len(processing.endpoints),
        "models": len(processing.models),
        "chunks": processing.chunk_count,
        "elapsed_ms": round(processing.elapsed_ms, 1),
        "optimizations": result.strategy.enabled(),
        "auth": [p.type for p in result.auth_patterns],
        "paginated_endpoints": len(result.pagination),
    }


def process_command(
    ctx: typer.Context,
    source: str = typer.Argument(help="File path, http(s) URL, or '-' for stdin."),
    full: bool = typer.Option(
        False, "--full", help="Print the complete pipeline result instead of a summary."
    ),
) -> None:
    """Run the full pipeline on SOURCE and print a summary.

    Example::

        speclens process big-api.json
        speclens --json process big-api.json --full > result.json
    """
    from speclens.config import resolve_config
    from speclens.pipeline import run_pipeline

    with report_errors():
        config = resolve_config()
    text = read_source(source, config)

    with report_errors(), get_output().progress_bar("Processing") as sink:
        result = run_pipeline(
            text, input_format(ctx), progress=sink, config=config.processing
        )

    if full:
        format_response(result.model_dump(mode="json", by_alias=True, exclude_none=True))
    else:
        format_response(_summary(result))
    success(f"Processed {result.spec.title} in {result.processing.mode} mode")
