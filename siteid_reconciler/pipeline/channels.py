"""
Concurrency primitives for the reconciliation pipeline.

- Channel: FIFO handoff between stages; iteration ends once closed and drained.
- WaitGroup: counting barrier (add on dispatch, done on finish, wait until zero).
- FatalSignal: first fatal error wins; every stage polls it to stop early.

All three are thread-safe. Stages are plain threads running blocking calls.
"""
from __future__ import annotations

import queue
import threading
from typing import Generic, Iterator, Optional, TypeVar

from ..core.errors import ChannelClosedError, FatalPipelineError

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """
    Single-writer FIFO channel.

    Unbounded, so send() never blocks. close() enqueues an end marker; consumers iterating
    the channel see every item sent before close() and then stop.
    """

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, item: T) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosedError(f"send on closed channel {self.name!r}")
            self._queue.put(item)

    def close(self) -> None:
        """Close the channel. Idempotent: safe to call multiple times."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[T]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # Re-queue the marker so other consumers also stop.
                self._queue.put(_CLOSED)
                return
            yield item  # type: ignore[misc]


class WaitGroup:
    """Counting barrier: add() before starting work, done() when it finishes, wait() until zero."""

    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def add(self, n: int = 1) -> None:
        with self._cond:
            if self._count + n < 0:
                raise ValueError("WaitGroup counter cannot go negative")
            self._count += n
            if self._count == 0:
                self._cond.notify_all()

    def done(self) -> None:
        self.add(-1)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the counter is zero. Returns False if timeout elapsed first."""
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


class FatalSignal:
    """
    Shared fatal-error flag for coordinated shutdown.

    The first error recorded wins; later ones are kept only as a count. Stages
    check `tripped` between units of work instead of killing the process.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._error: Optional[FatalPipelineError] = None
        self._stage: Optional[str] = None
        self.suppressed = 0

    def trip(self, error: FatalPipelineError, stage: Optional[str] = None) -> bool:
        """Record a fatal error. Returns True if this call was the first."""
        with self._lock:
            if self._error is not None:
                self.suppressed += 1
                return False
            self._error = error
            self._stage = stage
        self._event.set()
        return True

    @property
    def tripped(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> Optional[FatalPipelineError]:
        return self._error

    @property
    def stage(self) -> Optional[str]:
        return self._stage

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)
