"""End-to-end pipeline: parse, analyze, select, process, detect.

:func:`arun_pipeline` is the coroutine; :func:`run_pipeline` drives it with
``asyncio.run`` for synchronous callers such as the CLI.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from speclens.analysis import analyze, select_strategy
from speclens.models import PipelineResult, ProcessingConfig, RawSpecDocument, SpecFormat
from speclens.parser import parse_spec
from speclens.patterns import detect_auth_patterns, detect_spec_pagination
from speclens.processing import CancellationToken, SpecProcessor
from speclens.processing.progress import ProgressSink

logger = logging.getLogger(__name__)


async def arun_pipeline(
    source: Union[str, RawSpecDocument],
    format: Optional[Union[SpecFormat, str]] = None,
    progress: Optional[ProgressSink] = None,
    cancel: Optional[CancellationToken] = None,
    config: Optional[ProcessingConfig] = None,
) -> PipelineResult:
    """Run every stage on *source* and collect the results.

    Args:
        source: Raw document text or a :class:`~speclens.models.RawSpecDocument`.
        format: Declared format; detected from the document when omitted.
        progress: Optional progress sink for the processing stage.
        cancel: Optional cancellation token for the processing stage.
        config: Chunk size and parallelism; defaults when omitted.

    Returns:
        The parsed spec, its metrics and strategy, the processing result,
        and the detected patterns. Patterns are detected on the normalized
        spec.
    """
    spec = parse_spec(source, format)
    metrics = analyze(spec)
    strategy = select_strategy(metrics)
    logger.debug(
        "Spec %r is %s (%d endpoints, %d bytes); strategy: %s",
        spec.title,
        metrics.complexity_tier.value,
        metrics.endpoint_count,
        metrics.total_size_bytes,
        ", ".join(strategy.enabled()) or "none",
    )

    processor = SpecProcessor.from_config(config or ProcessingConfig())
    processing = await processor.process(spec, strategy, progress=progress, cancel=cancel)
    normalized = processing.spec

    result = PipelineResult(
        spec=normalized,
        metrics=metrics,
        strategy=strategy,
        processing=processing,
        auth_patterns=detect_auth_patterns(normalized),
        pagination=detect_spec_pagination(normalized),
    )
    logger.info(
        "Pipeline finished for %r: %d auth pattern(s), %d paginated endpoint(s)",
        spec.title,
        len(result.auth_patterns),
        len(result.pagination),
    )
    return result


def run_pipeline(
    source: Union[str, RawSpecDocument],
    format: Optional[Union[SpecFormat, str]] = None,
    progress: Optional[ProgressSink] = None,
    cancel: Optional[CancellationToken] = None,
    config: Optional[ProcessingConfig] = None,
) -> PipelineResult:
    """Synchronous wrapper around :func:`arun_pipeline`."""
    return asyncio.run(
        arun_pipeline(source, format, progress=progress, cancel=cancel, config=config)
    )
