"""Scale-adaptive processing: chunking, streaming, compression and indexing.

Typical usage::

    from speclens.analysis import analyze, select_strategy
    from speclens.processing import process_spec

    strategy = select_strategy(analyze(spec))
    result = asyncio.run(process_spec(spec, strategy, progress=print))
"""

from speclens.processing.chunks import create_chunks, order_chunks
from speclens.processing.compression import compress_spec
from speclens.processing.index import build_index
from speclens.processing.processor import SpecProcessor, process_spec
from speclens.processing.progress import CancellationToken, ProgressReporter
from speclens.processing.stream import SpecStream

__all__ = [
    "SpecProcessor",
    "process_spec",
    "create_chunks",
    "order_chunks",
    "compress_spec",
    "build_index",
    "CancellationToken",
    "ProgressReporter",
    "SpecStream",
]
