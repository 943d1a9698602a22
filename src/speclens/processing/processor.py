"""Scale-adaptive processing of a :class:`~speclens.models.UnifiedSpec`.

:class:`SpecProcessor` runs the steps switched on by an
:class:`~speclens.models.OptimizationStrategy`, in this order:

1. **indexing** -- build a :class:`~speclens.models.SpecIndex` (progress 10);
2. **compression** -- :func:`~speclens.processing.compression.compress_spec`
   (progress 20);
3. one processing mode -- *chunked* when ``chunking`` is set, else
   *streaming* when ``streaming`` is set, else *standard*;
4. finalize (progress 95) and complete (progress 100).

Chunked mode cuts the endpoints and models into chunks and, with
``parallelization``, runs them in batches on worker threads via
``asyncio.to_thread`` and ``asyncio.gather``. A batch is awaited in full
before the next one starts. Results are reassembled by chunk creation
index, so every mode produces the same items in the same order.

Cancellation is cooperative: the token is checked before each batch (or
chunk, or streamed item). When it fires, :class:`~speclens.exceptions.CancelledError`
propagates, any partial output is discarded, and no further progress is
reported.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Union

from speclens.models import (
    ChunkKind,
    Endpoint,
    EndpointItem,
    NamedSchema,
    OptimizationStrategy,
    ProcessingChunk,
    ProcessingConfig,
    ProcessingResult,
    SpecIndex,
    UnifiedSpec,
)
from speclens.processing.chunks import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_PARALLEL,
    batch_width,
    create_chunks,
    iter_batches,
    named_schemas,
    order_chunks,
)
from speclens.processing.compression import compress_spec
from speclens.processing.index import build_index
from speclens.processing.normalize import ModelNormalizer, normalize_endpoint
from speclens.processing.progress import CancellationToken, ProgressReporter, ProgressSink
from speclens.processing.stream import SpecStream

logger = logging.getLogger(__name__)

ChunkOutput = list[Union[Endpoint, NamedSchema]]


class SpecProcessor:
    """Process specs with a fixed chunk size and parallelism bound.

    Args:
        chunk_size: Maximum items per chunk.
        max_parallel: Upper bound on chunks run together in one batch.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if max_parallel < 1:
            raise ValueError(f"max_parallel must be positive, got {max_parallel}")
        self.chunk_size = chunk_size
        self.max_parallel = max_parallel

    @classmethod
    def from_config(cls, config: ProcessingConfig) -> "SpecProcessor":
        return cls(chunk_size=config.chunk_size, max_parallel=config.max_parallel_chunks)

    async def process(
        self,
        spec: UnifiedSpec,
        strategy: OptimizationStrategy,
        progress: Optional[ProgressSink] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ProcessingResult:
        """Process *spec* according to *strategy*.

        Args:
            spec: The parsed spec. It is not modified.
            strategy: Switches selecting the steps and mode.
            progress: Optional sink receiving :class:`~speclens.models.ProgressEvent`.
            cancel: Optional token; triggering it aborts the run.

        Returns:
            The normalized spec together with the processed items.

        Raises:
            CancelledError: If *cancel* was triggered before completion.
        """
        reporter = ProgressReporter(progress)
        token = cancel or CancellationToken()
        started = time.perf_counter()
        try:
            result = await self._run(spec, strategy, reporter, token)
        except BaseException:
            reporter.fail()
            raise
        reporter.complete()
        result.elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Processed %r in %s mode: %d endpoint(s), %d model(s), %.1f ms",
            spec.title,
            result.mode,
            len(result.endpoints),
            len(result.models),
            result.elapsed_ms,
        )
        return result

    async def _run(
        self,
        spec: UnifiedSpec,
        strategy: OptimizationStrategy,
        reporter: ProgressReporter,
        token: CancellationToken,
    ) -> ProcessingResult:
        token.raise_if_cancelled()
        index: Optional[SpecIndex] = None

        if strategy.indexing:
            index = build_index(spec)
            reporter.report(10, "Creating index")
            token.raise_if_cancelled()

        if strategy.compression:
            spec = compress_spec(spec)
            reporter.report(20, "Compressing data")
            token.raise_if_cancelled()

        normalizer = ModelNormalizer(spec.schemas, memoize=strategy.caching)
        chunk_count = 0
        if strategy.chunking:
            mode = "chunked"
            endpoints, models, chunk_count = await self._process_chunked(
                spec, normalizer, strategy.parallelization, reporter, token
            )
        elif strategy.streaming:
            mode = "streaming"
            endpoints, models = await self._process_streaming(
                spec, normalizer, reporter, token
            )
        else:
            mode = "standard"
            endpoints, models = self._process_standard(spec, normalizer, reporter, token)

        token.raise_if_cancelled()
        normalized = spec.model_copy(update={"endpoints": endpoints})
        if index is not None:
            index = build_index(normalized)
        reporter.report(95, "Finalizing")

        return ProcessingResult(
            spec=normalized,
            endpoints=endpoints,
            models=models,
            mode=mode,
            index=index,
            chunk_count=chunk_count,
        )

    # ------------------------------------------------------------------ #
    # Modes
    # ------------------------------------------------------------------ #

    def _process_standard(
        self,
        spec: UnifiedSpec,
        normalizer: ModelNormalizer,
        reporter: ProgressReporter,
        token: CancellationToken,
    ) -> tuple[list[Endpoint], list[NamedSchema]]:
        endpoints = [normalize_endpoint(ep) for ep in spec.endpoints]
        reporter.report(30, "Processing endpoints")
        token.raise_if_cancelled()
        models = [normalizer(m) for m in named_schemas(spec)]
        reporter.report(60, "Processing models")
        return endpoints, models

    async def _process_chunked(
        self,
        spec: UnifiedSpec,
        normalizer: ModelNormalizer,
        parallel: bool,
        reporter: ProgressReporter,
        token: CancellationToken,
    ) -> tuple[list[Endpoint], list[NamedSchema], int]:
        chunks = create_chunks(spec.endpoints, named_schemas(spec), self.chunk_size)
        ordered = order_chunks(chunks)
        total = len(ordered)
        width = batch_width(total, self.max_parallel) if parallel else 1
        logger.debug("Processing %d chunk(s) in batches of %d", total, width)
        reporter.report(30, "Processing chunks")

        outputs: dict[int, ChunkOutput] = {}
        done = 0
        for batch in iter_batches(ordered, width):
            token.raise_if_cancelled()
            if parallel:
                settled = await asyncio.gather(
                    *(asyncio.to_thread(self._process_chunk, c, normalizer) for c in batch),
                    return_exceptions=True,
                )
                # Every worker of the batch has finished before an error propagates.
                for outcome in settled:
                    if isinstance(outcome, BaseException):
                        raise outcome
                results = settled
            else:
                results = [self._process_chunk(c, normalizer) for c in batch]
            for chunk, result in zip(batch, results):
                outputs[chunk.index] = result
            done += len(batch)
            reporter.report(30 + done / total * 60, f"Processing chunks ({done}/{total})")

        endpoints: list[Endpoint] = []
        models: list[NamedSchema] = []
        for chunk in chunks:
            target = endpoints if chunk.kind == ChunkKind.ENDPOINTS else models
            target.extend(outputs[chunk.index])
        return endpoints, models, total

    @staticmethod
    def _process_chunk(chunk: ProcessingChunk, normalizer: ModelNormalizer) -> ChunkOutput:
        started = time.perf_counter()
        if chunk.kind == ChunkKind.ENDPOINTS:
            output: ChunkOutput = [normalize_endpoint(ep) for ep in chunk.items]
        else:
            output = [normalizer(m) for m in chunk.items]
        logger.debug(
            "Processed chunk %s (%d items) in %.1f ms",
            chunk.id,
            chunk.size,
            (time.perf_counter() - started) * 1000,
        )
        return output

    async def _process_streaming(
        self,
        spec: UnifiedSpec,
        normalizer: ModelNormalizer,
        reporter: ProgressReporter,
        token: CancellationToken,
    ) -> tuple[list[Endpoint], list[NamedSchema]]:
        stream = SpecStream(spec)
        total = len(stream)
        reporter.report(30, "Streaming processing")

        endpoints: list[Endpoint] = []
        models: list[NamedSchema] = []
        for processed, item in enumerate(stream, start=1):
            token.raise_if_cancelled()
            if isinstance(item, EndpointItem):
                endpoints.append(normalize_endpoint(item.endpoint))
            else:
                models.append(normalizer(item.model))
            reporter.report(
                30 + processed / total * 60,
                f"Streaming processing ({processed}/{total})",
                throttle=True,
            )
            await asyncio.sleep(0)
        return endpoints, models


async def process_spec(
    spec: UnifiedSpec,
    strategy: OptimizationStrategy,
    progress: Optional[ProgressSink] = None,
    cancel: Optional[CancellationToken] = None,
) -> ProcessingResult:
    """Process *spec* with the default chunk size and parallelism."""
    return await SpecProcessor().process(spec, strategy, progress=progress, cancel=cancel)
