"""Progress reporting and cooperative cancellation.

A progress *sink* is any callable taking a
:class:`~speclens.models.ProgressEvent`. Processing code never calls the
sink directly; it goes through :class:`ProgressReporter`, which enforces
the delivery contract:

* percentages are integers in ``[0, 100]`` and never decrease;
* ``100`` is delivered exactly once, by :meth:`ProgressReporter.complete`;
* after :meth:`ProgressReporter.fail` nothing more is delivered.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from speclens.exceptions import CancelledError
from speclens.models import ProgressEvent

logger = logging.getLogger(__name__)

ProgressSink = Callable[[ProgressEvent], None]


class CancellationToken:
    """Thread-safe flag a caller sets to stop a running job.

    Example::

        token = CancellationToken()
        threading.Timer(5.0, token.cancel).start()
        await process_spec(spec, strategy, cancel=token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`~speclens.exceptions.CancelledError` if cancelled."""
        if self._event.is_set():
            raise CancelledError()


class ProgressReporter:
    """Wrap an optional sink and enforce the progress contract.

    Args:
        sink: Callable receiving each event, or ``None`` to report nothing.
    """

    def __init__(self, sink: Optional[ProgressSink] = None) -> None:
        self._sink = sink
        self._last = -1
        self._done = False

    @property
    def last_percent(self) -> int:
        return max(self._last, 0)

    def report(self, percent: float, stage: str, *, throttle: bool = False) -> None:
        """Deliver an intermediate event.

        *percent* is truncated to an integer, clamped to ``[0, 99]`` and
        raised to the last delivered value if it would go backwards. With
        *throttle*, an event whose percentage equals the previous one is
        dropped.
        """
        if self._done:
            return
        value = min(max(int(percent), 0, self._last), 99)
        if throttle and value == self._last:
            return
        self._emit(value, stage)

    def complete(self, stage: str = "Complete") -> None:
        """Deliver the single ``100`` event and close the reporter."""
        if self._done:
            return
        self._emit(100, stage)
        self._done = True

    def fail(self) -> None:
        """Close the reporter without delivering anything further."""
        self._done = True

    def _emit(self, percent: int, stage: str) -> None:
        self._last = percent
        if self._sink is None:
            return
        logger.debug("Progress %d%%: %s", percent, stage)
        self._sink(ProgressEvent(percent=percent, stage=stage))
