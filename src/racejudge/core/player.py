"""Player: one AI subprocess driven over stdin/stdout.

Owns the process, its pipes, its stderr capture and its time budget.
Construction performs the handshake; ``plan`` runs one turn exchange.
Every AI fault (bad token, timeout, crash, out-of-range value) ends up as
a ``ResultCategory`` or a phase change, never as an exception.

Diagnostics are written twice: to the process log through ``logging`` and,
prefixed with ``[system]``, to the optional stderr sink where they
interleave with the AI's own stderr output.
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
from dataclasses import dataclass
from typing import BinaryIO, Callable, TypeVar

from racejudge.core.capture import DEFAULT_CAP, BoundedStreamCapture, CaptureGate
from racejudge.core.codec import (
    Message,
    encode_handshake,
    encode_turn,
    read_acceleration,
    read_int,
)
from racejudge.core.exchange import ExchangeResult, timed_exchange
from racejudge.core.hooks import run_hook
from racejudge.core.types import (
    Acceleration,
    PlayerPhase,
    PlayerState,
    Position,
    RaceCourse,
    ResultCategory,
    Velocity,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# How long a process that closed its stdout gets to finish exiting
_EXIT_GRACE_S = 0.1
_REAP_TIMEOUT_S = 0.5


@dataclass
class PlayerOptions:
    """Optional per-player sinks and instrumentation hooks.

    Both logs are binary streams owned by the caller. ``stdin_log``
    receives every byte sent to the AI; ``stderr_log`` receives the AI's
    stderr merged with ``[system]`` lines from the judge.
    """

    stdin_log: BinaryIO | None = None
    stderr_log: BinaryIO | None = None
    pause_command: str | None = None
    resume_command: str | None = None
    stderr_cap: int = DEFAULT_CAP


@dataclass(frozen=True)
class PlanResult:
    """Outcome of one turn. ``acceleration`` is set only for NORMAL."""

    category: ResultCategory
    acceleration: Acceleration | None = None
    time_used_ms: float = 0.0
    diagnostics: tuple[str, ...] = ()


class Player:
    """A contestant backed by an external AI program."""

    def __init__(
        self,
        command: str,
        name: str,
        course: RaceCourse,
        xpos: int,
        options: PlayerOptions | None = None,
    ) -> None:
        self.name = name
        self.options = options or PlayerOptions()
        self.state = PlayerState(
            phase=PlayerPhase.RACING,
            position=Position(xpos, 0),
            velocity=Velocity(0, 0),
            time_left_ms=float(course.think_time),
        )
        self._process: subprocess.Popen | None = None
        self._pgid: int | None = None
        self._to_ai: BinaryIO | None = None
        self._from_ai: BinaryIO | None = None
        self._gate = CaptureGate()
        self._capture: BoundedStreamCapture | None = None
        self._terminated = False
        self._diagnostics: list[str] = []

        if not command:
            # Deliberately absent contestant
            self.state.phase = PlayerPhase.ALREADY_DISQUALIFIED
            return

        if not self._spawn(command):
            self.state.phase = PlayerPhase.ALREADY_DISQUALIFIED
            return
        self._handshake(course)

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> Player:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def phase(self) -> PlayerPhase:
        return self.state.phase

    @property
    def racing(self) -> bool:
        return self.state.racing

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def diagnostics(self) -> list[str]:
        """Diagnostics from the handshake or the most recent turn."""
        return list(self._diagnostics)

    def disqualify(self, reason: str | None = None) -> None:
        """Take the player out of the race (called by the match loop)."""
        if self.state.phase is PlayerPhase.ALREADY_DISQUALIFIED:
            return
        self.state.phase = PlayerPhase.ALREADY_DISQUALIFIED
        if reason:
            self._system(f'your AI: "{self.name}" disqualified: {reason}')

    def plan(
        self,
        step: int,
        opponent: Player,
        course: RaceCourse,
        visibility: int,
    ) -> PlanResult:
        """Send the turn state and read back an acceleration."""
        self._diagnostics = []
        if self._process is None:
            return PlanResult(ResultCategory.NO_PLAY)

        self._system("================================")
        self._system(f"turn: {step}")
        request = encode_turn(step, self.state, opponent.state, course, visibility)

        outcome = self._exchange(read_acceleration, f"{self.name}-step-{step}", request)
        used = outcome.elapsed_ms

        if outcome.timed_out:
            self._report(f'player "{self.name}" did not respond in time at step {step}')
            return self._result(ResultCategory.TIMED_OUT, used)

        message = outcome.message
        self._surface(message)
        if message.ok:
            accel = message.value
            if not accel.is_legal():
                self._report(
                    f"acceleration value must be from -1 to 1 each axis, "
                    f'but player "{self.name}" said: ({accel.x}, {accel.y})'
                )
                return self._result(ResultCategory.INVALID, used)
            return self._result(ResultCategory.NORMAL, used, accel)

        if not self._alive():
            self._report_death()
            return self._result(ResultCategory.DIED, used)
        return self._result(ResultCategory.INVALID, used)

    def terminate(self) -> None:
        """Send SIGTERM to the AI's whole process group."""
        if self._process is None or self._terminated:
            return
        self._terminated = True
        # A reaped leader can still leave children behind in its group
        try:
            os.killpg(self._pgid, signal.SIGTERM)
        except ProcessLookupError as exc:
            code, text = exc.errno, exc.strerror
            if self._process.returncode is not None:
                text = f"{text} (process group already gone)"
        except OSError as exc:
            code, text = exc.errno, exc.strerror
        else:
            code, text = 0, "Success"
        logger.info(
            'terminate player "%s": error code %s, message "%s"', self.name, code, text
        )
        self._system(f'terminate your AI: "{self.name}"')
        self._system(f"\terror code: {code}")
        self._system(f'\tmessage: "{text}"')

    def close(self) -> None:
        """Terminate the AI, release pipes and stop the stderr capture."""
        if self._process is None:
            return
        self.terminate()
        for stream in (self._to_ai, self._from_ai):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                pass  # broken pipe to an already dead AI
        self._to_ai = None
        self._from_ai = None
        try:
            self._process.wait(timeout=_REAP_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            logger.warning(
                'player "%s" (pid %d) still running after SIGTERM',
                self.name, self._process.pid,
            )
        if self._capture is not None:
            self._capture.close()

    # ------------------------------------------------------------------
    # Internal: lifecycle
    # ------------------------------------------------------------------

    def _spawn(self, command: str) -> bool:
        try:
            argv = shlex.split(command)
            self._process = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            self._report(f'could not launch player "{self.name}": {exc}')
            return False
        logger.info('spawned player "%s" (pid %d)', self.name, self._process.pid)
        # start_new_session makes the child lead its own group
        self._pgid = self._process.pid
        self._to_ai = self._process.stdin
        self._from_ai = self._process.stdout
        self._system("Try: hand shake")
        self._capture = BoundedStreamCapture(
            self._process.stderr,
            self.options.stderr_log,
            gate=self._gate,
            cap=self.options.stderr_cap,
            name=self.name,
        )
        return True

    def _handshake(self, course: RaceCourse) -> None:
        outcome = self._exchange(
            read_int, f"{self.name}-handshake", encode_handshake(course)
        )

        if outcome.timed_out:
            self.state.phase = PlayerPhase.ALREADY_DISQUALIFIED
            self._report(
                f'player "{self.name}" did not respond in time during initiation'
            )
            return

        answer = outcome.message
        self._surface(answer)
        if answer.value == 0:
            self._system("Success!: hand shake")
            return

        self._system("Failed...: hand shake")
        self.state.phase = PlayerPhase.ALREADY_DISQUALIFIED
        if not self._alive():
            self._report_death()
        elif answer.ok:
            self._report(
                f'response at initialization of player "{self.name}": '
                f"({answer.value}) is non-zero"
            )

    # ------------------------------------------------------------------
    # Internal: I/O
    # ------------------------------------------------------------------

    def _exchange(
        self,
        read: Callable[[BinaryIO | None], Message[T]],
        label: str,
        request: str,
    ) -> ExchangeResult[T]:
        """Send ``request`` and read the reply, all within the time budget.

        The write runs on the reader thread ahead of the read, so a blocked
        write counts against the budget. On timeout both pipes stay with the
        abandoned thread.
        """
        data = request.encode("ascii")
        if self.options.stdin_log is not None:
            self.options.stdin_log.write(data)
            self.options.stdin_log.flush()

        writer, self._to_ai = self._to_ai, None
        stream, self._from_ai = self._from_ai, None
        write_errors: list[str] = []

        def send_then_read(source: BinaryIO | None) -> Message[T]:
            if writer is not None:
                try:
                    writer.write(data)
                    writer.flush()
                except (OSError, ValueError) as exc:
                    write_errors.append(str(exc))
            return read(source)

        self._gate.resume()
        if self.options.resume_command:
            run_hook(self.options.resume_command, "resume", self.name)

        outcome = timed_exchange(
            stream, send_then_read, self.state.time_left_ms, label=label
        )
        self.state.time_left_ms -= outcome.elapsed_ms

        self._gate.pause()
        self._system(
            f"spend time: {outcome.elapsed_ms:.0f}, remain: {self.state.time_left_ms:.0f}"
        )
        if self.options.pause_command:
            run_hook(self.options.pause_command, "pause", self.name)

        if not outcome.timed_out:
            self._to_ai = writer
            self._from_ai = outcome.stream
            for error in write_errors:
                self._report(f'could not write to player "{self.name}": {error}')
        return outcome

    def _alive(self) -> bool:
        try:
            self._process.wait(timeout=_EXIT_GRACE_S)
        except subprocess.TimeoutExpired:
            return True
        return False

    # ------------------------------------------------------------------
    # Internal: diagnostics
    # ------------------------------------------------------------------

    def _system(self, line: str) -> None:
        sink = self.options.stderr_log
        if sink is None:
            return
        with self._gate.holding():
            sink.write(f"[system] {line}\n".encode())
            sink.flush()

    def _report(self, line: str) -> None:
        logger.warning("%s", line)
        self._system(line)
        self._diagnostics.append(line)

    def _surface(self, message: Message) -> None:
        for line in message.diagnostics:
            self._report(line)

    def _report_death(self) -> None:
        self._report(
            f'player "{self.name}" died. exit code: {self._process.returncode}'
        )

    def _result(
        self,
        category: ResultCategory,
        used: float,
        acceleration: Acceleration | None = None,
    ) -> PlanResult:
        return PlanResult(
            category=category,
            acceleration=acceleration,
            time_used_ms=used,
            diagnostics=tuple(self._diagnostics),
        )
