"""RehearsalEngine: protocol conformance run for AI programs.

Stands in for the match loop without any physics: players are spawned
(handshake), then asked to plan turn after turn against a static course
until the step limit or until nobody is still racing. Positions and
velocities never change. Any non-NORMAL outcome takes the player out.
Every turn is written to JSONL telemetry.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

from racejudge.config import MatchConfig, PlayerConfig
from racejudge.core.player import Player, PlayerOptions
from racejudge.core.referee import Referee
from racejudge.core.telemetry import TelemetryLogger, TurnRecord
from racejudge.core.types import PlayerPhase, ResultCategory, category_name

logger = logging.getLogger(__name__)


@dataclass
class RehearsalResult:
    """Result of one rehearsal run."""

    match_id: str
    steps: int
    telemetry_path: Path
    fidelity: dict
    phases: dict[str, PlayerPhase]
    time_left_ms: dict[str, float]


class RehearsalEngine:
    """Runs a rehearsal defined by a MatchConfig."""

    def __init__(self, config: MatchConfig) -> None:
        self.config = config
        self.output_dir = Path(config.output_dir or "output")
        self.telemetry_dir = self.output_dir / "telemetry"
        self.log_dir = self.output_dir / "logs"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> RehearsalResult:
        course = self.config.course
        match_id = self.config.name
        referee = Referee()
        telemetry = TelemetryLogger(self.telemetry_dir, match_id)

        with ExitStack() as stack:
            players: list[Player] = []
            for index, pcfg in enumerate(self.config.players):
                options = self._build_options(pcfg, stack)
                player = Player(
                    pcfg.command,
                    pcfg.name,
                    course,
                    self._start_column(index, pcfg),
                    options,
                )
                stack.callback(player.close)
                referee.register(player.name)
                if not player.racing:
                    referee.disqualify(player.name, "handshake")
                    logger.warning('player "%s" failed the handshake', player.name)
                players.append(player)

            # A lone player races against an absent ghost
            ghost = Player("", "ghost", course, 0)
            step = 0
            while step < course.step_limit and any(p.racing for p in players):
                for index, player in enumerate(players):
                    if not player.racing:
                        continue
                    opponent = (
                        players[(index + 1) % len(players)] if len(players) > 1 else ghost
                    )
                    visibility = min(
                        course.length, player.state.position.y + course.vision + 1
                    )
                    result = player.plan(step, opponent, course, visibility)
                    telemetry.log_turn(TurnRecord(
                        step=step,
                        player=player.name,
                        result=category_name(result.category),
                        acceleration=(
                            [result.acceleration.x, result.acceleration.y]
                            if result.acceleration else None
                        ),
                        time_used_ms=round(result.time_used_ms, 3),
                        time_left_ms=round(player.state.time_left_ms, 3),
                        diagnostics=list(result.diagnostics),
                    ))
                    referee.record(player.name, result.category)
                    if result.category is not ResultCategory.NORMAL:
                        player.disqualify(category_name(result.category))
                step += 1

            phases = {p.name: p.phase for p in players}
            time_left = {p.name: p.state.time_left_ms for p in players}

        fidelity = referee.get_fidelity_report()
        telemetry.finalize_match(
            fidelity,
            extra={
                "steps": step,
                "course": {
                    "width": course.width,
                    "length": course.length,
                    "vision": course.vision,
                    "think_time": course.think_time,
                    "step_limit": course.step_limit,
                },
                "phases": {name: phase.value for name, phase in phases.items()},
            },
        )
        return RehearsalResult(
            match_id=match_id,
            steps=step,
            telemetry_path=telemetry.file_path,
            fidelity=fidelity,
            phases=phases,
            time_left_ms=time_left,
        )

    # ------------------------------------------------------------------
    # Internal: setup
    # ------------------------------------------------------------------

    def _start_column(self, index: int, pcfg: PlayerConfig) -> int:
        if pcfg.x is not None:
            return pcfg.x
        n = len(self.config.players)
        return (2 * index + 1) * self.config.course.width // (2 * n)

    def _build_options(self, pcfg: PlayerConfig, stack: ExitStack) -> PlayerOptions:
        logs = self.config.logs
        options = PlayerOptions(
            pause_command=self.config.hooks.pause,
            resume_command=self.config.hooks.resume,
            stderr_cap=logs.stderr_cap,
        )
        if not pcfg.command:
            return options
        if logs.capture_stdin or logs.capture_stderr:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        prefix = self.log_dir / f"{self.config.name}-{pcfg.name}"
        if logs.capture_stdin:
            options.stdin_log = stack.enter_context(open(f"{prefix}.stdin.log", "wb"))
        if logs.capture_stderr:
            options.stderr_log = stack.enter_context(open(f"{prefix}.stderr.log", "wb"))
        return options
