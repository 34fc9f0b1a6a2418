"""Bounded capture of an AI's stderr into a shared diagnostic sink.

The sink is shared between the capture thread (raw AI bytes) and the
owning player (``[system]`` lines). ``CaptureGate`` serializes the two:
while the player holds the gate ("paused") the capture thread blocks
before its next write, so engine lines never land in the middle of the
AI's output.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import BinaryIO, Iterator

logger = logging.getLogger(__name__)

DEFAULT_CAP = 1 << 15
TEARDOWN_GRACE_S = 0.5


class CaptureGate:
    """Two-state coordination object: capture active or paused.

    ``pause``/``resume`` are called only from the player's control thread
    and are idempotent, so teardown can always call ``resume`` safely.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._paused = False

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        if not self._paused:
            self._lock.acquire()
            self._paused = True

    def resume(self) -> None:
        if self._paused:
            self._paused = False
            self._lock.release()

    @contextmanager
    def holding(self) -> Iterator[None]:
        """Hold the gate for a direct write, whatever the current state."""
        if self._paused:
            yield
            return
        with self._lock:
            yield

    def __enter__(self) -> CaptureGate:
        self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._lock.release()


class BoundedStreamCapture:
    """Copies ``source`` into ``sink`` byte by byte, up to ``cap`` bytes.

    Once the cap is reached a notice line is written and the rest of the
    stream is read and discarded, so the AI never blocks on a full pipe.
    """

    def __init__(
        self,
        source: BinaryIO,
        sink: BinaryIO | None,
        gate: CaptureGate | None = None,
        cap: int = DEFAULT_CAP,
        name: str = "stderr",
    ) -> None:
        self._source = source
        self._sink = sink
        self.gate = gate or CaptureGate()
        self.cap = cap
        self._copied = 0
        self._done = threading.Event()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"capture-{name}",
        )
        self._thread.start()

    @property
    def copied(self) -> int:
        return self._copied

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def close(self, grace_s: float = TEARDOWN_GRACE_S) -> bool:
        """Release the gate and wait for the copy to finish.

        Returns False when the thread was still blocked after ``grace_s``;
        it is then left behind as a daemon.
        """
        self.gate.resume()
        if self._done.wait(grace_s):
            self._thread.join()
            return True
        logger.info("%s still open after %.0f ms, detaching", self._thread.name, grace_s * 1000)
        return False

    def _run(self) -> None:
        try:
            self._copy()
            self._drain()
        except (OSError, ValueError) as exc:
            logger.debug("%s stopped: %s", self._thread.name, exc)
        finally:
            if self._sink is not None:
                try:
                    with self.gate:
                        self._sink.flush()
                except (OSError, ValueError):
                    pass  # caller closed the sink first
            self._done.set()

    def _copy(self) -> None:
        if self._sink is None:
            return
        while self._copied < self.cap:
            c = self._source.read(1)
            if not c:
                return
            with self.gate:
                self._sink.write(c)
            self._copied += 1
        with self.gate:
            self._sink.write(b"\n")
            self._sink.write(
                f"[system] stderr output has reached the limit "
                f"(MAX_SIZE={self.cap} bytes)\n".encode()
            )

    def _drain(self) -> None:
        while self._source.read1(4096):
            pass
