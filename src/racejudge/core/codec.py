"""Wire codec for the judge <-> AI text protocol.

Outbound messages are newline/space separated decimal integers. Inbound
replies are whitespace-delimited integer tokens. Decoding never raises:
a malformed token yields no value plus one diagnostic line, so errors can
be carried out of a background reader without crossing the timeout
boundary as an exception.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import BinaryIO, Generic, TypeVar

from racejudge.core.types import Acceleration, PlayerState, RaceCourse

T = TypeVar("T")

INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

# Cells beyond the visibility depth are sent as this value
MASKED_CELL = -1

_CLIP_LENGTH = 100
_INT_RE = re.compile(rb"[+-]?[0-9]+")
_WHITESPACE = b" \t\n\r\v\f"


@dataclass
class Message(Generic[T]):
    """A parsed value (or None) plus the diagnostics produced on the way."""

    value: T | None
    diagnostics: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None


# ------------------------------------------------------------------
# Encoding
# ------------------------------------------------------------------

def encode_handshake(course: RaceCourse) -> str:
    """Course parameters sent once after spawn."""
    return (
        f"{course.think_time}\n"
        f"{course.step_limit}\n"
        f"{course.width} {course.length}\n"
        f"{course.vision}\n"
    )


def encode_turn(
    step: int,
    state: PlayerState,
    opponent: PlayerState,
    course: RaceCourse,
    visibility: int,
) -> str:
    """Per-turn request: step, budget, both cars, then the masked grid."""
    lines = [
        str(step),
        str(math.floor(state.time_left_ms)),
        _encode_car(state),
    ]
    if opponent.racing:
        lines.append(_encode_car(opponent))
    else:
        # Absent or finished opponent: park it on the goal line
        lines.append(f"0 {course.length} 0 0")
    for y, row in enumerate(course.squares):
        cells = row if y < visibility else (MASKED_CELL,) * course.width
        lines.append(" ".join(str(c) for c in cells))
    return "\n".join(lines) + "\n"


def _encode_car(state: PlayerState) -> str:
    return (
        f"{state.position.x} {state.position.y} "
        f"{state.velocity.x} {state.velocity.y}"
    )


# ------------------------------------------------------------------
# Decoding
# ------------------------------------------------------------------

def read_token(stream: BinaryIO) -> bytes:
    """Read one whitespace-delimited token; empty at end of stream."""
    token = bytearray()
    while True:
        c = stream.read(1)
        if not c:
            return bytes(token)
        if c in _WHITESPACE:
            if token:
                return bytes(token)
            continue
        token += c


def read_int(stream: BinaryIO | None) -> Message[int]:
    """Decode a single signed 32-bit integer token."""
    if stream is None:
        return Message(None, ["input stream is closed"])
    try:
        raw = read_token(stream)
    except (OSError, ValueError) as exc:
        return Message(None, [f"input stream is closed ({exc})"])

    if not _INT_RE.fullmatch(raw):
        return Message(None, [_describe(raw, "invalid argument", "not a decimal integer")])
    digits = raw.lstrip(b"+-").lstrip(b"0")
    # Short-circuit before int() so huge tokens never hit the str->int limit
    if len(digits) > 10:
        return Message(None, [_describe(raw, "out of int range value", "too many digits")])
    value = int(raw)
    if not INT_MIN <= value <= INT_MAX:
        return Message(
            None,
            [_describe(raw, "out of int range value", f"outside [{INT_MIN}, {INT_MAX}]")],
        )
    return Message(value)


def read_acceleration(stream: BinaryIO | None) -> Message[Acceleration]:
    """Decode ``ax ay``. Present only if both components parsed."""
    ax = read_int(stream)
    ay = read_int(stream)
    diagnostics = ax.diagnostics + ay.diagnostics
    if ax.ok and ay.ok:
        return Message(Acceleration(ax.value, ay.value), diagnostics)
    return Message(None, diagnostics)


def _describe(raw: bytes, kind: str, reason: str) -> str:
    text = raw.decode("ascii", errors="replace")
    clipped = ""
    if len(text) >= _CLIP_LENGTH:
        text = text[:_CLIP_LENGTH] + "..."
        clipped = "(clipped)"
    return f'input {kind} from AI: "{text}"{clipped} reason: {reason}'
