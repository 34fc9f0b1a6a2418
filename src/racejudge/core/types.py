"""Shared value types: vectors, lifecycle phases, result categories, courses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Vector:
    """Integer 2-vector."""

    x: int = 0
    y: int = 0


class Position(Vector):
    pass


class Velocity(Vector):
    pass


class Acceleration(Vector):
    """Per-turn acceleration command. Each axis must be in {-1, 0, 1}."""

    def is_legal(self) -> bool:
        return -1 <= self.x <= 1 and -1 <= self.y <= 1


class PlayerPhase(Enum):
    RACING = "racing"
    ALREADY_DISQUALIFIED = "already_disqualified"


class ResultCategory(Enum):
    """Outcome of one turn.

    The player engine only produces NORMAL, TIMED_OUT, DIED and INVALID
    (plus NO_PLAY for a contestant without a process). The remaining
    categories are assigned by the physics collaborator after the
    acceleration has been applied.
    """

    NORMAL = "normal"
    FINISHED = "finished"
    GONE_OFF = "goneoff"
    OBSTACLED = "obstacled"
    COLLIDED = "collided"
    NO_PLAY = "noplay"
    TIMED_OUT = "timedout"
    DIED = "died"
    INVALID = "invalid"


def category_name(category: ResultCategory) -> str:
    """Return the display name used in logs and reports."""
    return category.value


@dataclass
class PlayerState:
    """Mutable per-player race state.

    ``time_left_ms`` only ever decreases. Position and velocity belong to
    the physics collaborator, which updates them between turns.
    """

    phase: PlayerPhase
    position: Position
    velocity: Velocity
    time_left_ms: float

    @property
    def racing(self) -> bool:
        return self.phase is PlayerPhase.RACING


@dataclass(frozen=True)
class RaceCourse:
    """Read-only course description.

    ``squares[y][x]`` holds the cell value for row ``y`` (0 is the start
    line) and column ``x``.
    """

    width: int
    length: int
    vision: int
    think_time: int
    step_limit: int
    squares: tuple[tuple[int, ...], ...] = field(default=())

    def __post_init__(self) -> None:
        if self.width <= 0 or self.length <= 0:
            raise ValueError(
                f"course must be at least 1x1, got {self.width}x{self.length}"
            )
        rows = tuple(tuple(int(c) for c in row) for row in self.squares)
        if not rows:
            rows = tuple((0,) * self.width for _ in range(self.length))
        if len(rows) != self.length:
            raise ValueError(
                f"course has {len(rows)} rows, expected length {self.length}"
            )
        for y, row in enumerate(rows):
            if len(row) != self.width:
                raise ValueError(
                    f"course row {y} has {len(row)} cells, expected width {self.width}"
                )
        object.__setattr__(self, "squares", rows)
