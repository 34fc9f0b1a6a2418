"""Timed exchange: race a blocking read against a player's time budget.

A blocking read on a pipe cannot be interrupted from outside, so the read
runs on its own daemon thread which takes the stream with it. The result
comes back through a one-shot Future; the caller waits on the Future, not
on the thread. When the deadline passes the thread is abandoned together
with the stream. It finishes on its own once the AI's process group is
terminated and the pipe reaches end of stream.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import BinaryIO, Callable, Generic, TypeVar

from racejudge.core.codec import Message

T = TypeVar("T")


@dataclass(frozen=True)
class ExchangeResult(Generic[T]):
    """Outcome of one timed read.

    ``stream`` is handed back only when the read completed; after a
    timeout it stays with the abandoned reader.
    """

    timed_out: bool
    elapsed_ms: float
    stream: BinaryIO | None = None
    message: Message[T] | None = None


def timed_exchange(
    stream: BinaryIO | None,
    read: Callable[[BinaryIO | None], Message[T]],
    budget_ms: float,
    label: str = "exchange",
) -> ExchangeResult[T]:
    """Run ``read(stream)`` on a reader thread, waiting at most ``budget_ms``."""
    if budget_ms <= 0:
        return ExchangeResult(timed_out=True, elapsed_ms=0.0)

    result: Future = Future()

    def _reader() -> None:
        try:
            message = read(stream)
        except BaseException as exc:  # delivered to the waiter instead
            result.set_exception(exc)
        else:
            result.set_result((stream, message))

    thread = threading.Thread(target=_reader, daemon=True, name=f"reader-{label}")
    start = time.monotonic()
    thread.start()
    try:
        returned, message = result.result(timeout=budget_ms / 1000.0)
    except FutureTimeout:
        elapsed_ms = (time.monotonic() - start) * 1000
        return ExchangeResult(timed_out=True, elapsed_ms=elapsed_ms)
    elapsed_ms = (time.monotonic() - start) * 1000
    thread.join()
    return ExchangeResult(
        timed_out=False,
        elapsed_ms=elapsed_ms,
        stream=returned,
        message=message,
    )
