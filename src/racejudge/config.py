"""Match configuration loader."""

from dataclasses import dataclass, field
from pathlib import Path

import jsonschema
import yaml

from racejudge.core.capture import DEFAULT_CAP
from racejudge.core.types import RaceCourse


class ConfigError(ValueError):
    """Raised when a match config file is missing fields or malformed."""


_INT = {"type": "integer"}
_COMMAND = {"type": ["string", "null"]}

CONFIG_SCHEMA = {
    "type": "object",
    "required": ["course", "players"],
    "properties": {
        "match": {
            "type": "object",
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "output_dir": {"type": "string"},
            },
        },
        "course": {
            "type": "object",
            "required": ["think_time", "step_limit", "vision", "squares"],
            "properties": {
                "think_time": {"type": "integer", "minimum": 0},
                "step_limit": {"type": "integer", "minimum": 1},
                "vision": {"type": "integer", "minimum": 0},
                "squares": {
                    "type": "array",
                    "minItems": 1,
                    "items": {"type": "array", "minItems": 1, "items": _INT},
                },
            },
        },
        "players": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "command": _COMMAND,
                    "x": _INT,
                },
            },
        },
        "hooks": {
            "type": "object",
            "properties": {"pause": _COMMAND, "resume": _COMMAND},
        },
        "logs": {
            "type": "object",
            "properties": {
                "capture_stdin": {"type": "boolean"},
                "capture_stderr": {"type": "boolean"},
                "stderr_cap": {"type": "integer", "minimum": 0},
            },
        },
    },
}


@dataclass
class PlayerConfig:
    name: str
    command: str = ""  # empty = absent contestant
    x: int | None = None  # start column; spread evenly when None


@dataclass
class HookConfig:
    pause: str | None = None
    resume: str | None = None


@dataclass
class LogConfig:
    capture_stdin: bool = True
    capture_stderr: bool = True
    stderr_cap: int = DEFAULT_CAP


@dataclass
class MatchConfig:
    name: str
    course: RaceCourse
    players: list[PlayerConfig] = field(default_factory=list)
    hooks: HookConfig = field(default_factory=HookConfig)
    logs: LogConfig = field(default_factory=LogConfig)
    output_dir: Path | None = None


def load_config(path: Path) -> MatchConfig:
    """Load match config from YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f)
    return parse_config(raw, default_name=Path(path).stem)


def parse_config(raw: dict, default_name: str = "match") -> MatchConfig:
    """Validate an already-parsed config mapping and build a MatchConfig."""
    try:
        jsonschema.validate(raw, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"{where}: {e.message}") from e

    m = raw.get("match", {})
    c = raw["course"]
    squares = c["squares"]
    try:
        course = RaceCourse(
            width=len(squares[0]),
            length=len(squares),
            vision=c["vision"],
            think_time=c["think_time"],
            step_limit=c["step_limit"],
            squares=squares,
        )
    except ValueError as e:
        raise ConfigError(f"course: {e}") from e

    names = [p["name"] for p in raw["players"]]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigError(f"players: duplicate names {duplicates}")

    players = [
        PlayerConfig(name=p["name"], command=p.get("command") or "", x=p.get("x"))
        for p in raw["players"]
    ]
    for p in players:
        if p.x is not None and not 0 <= p.x < course.width:
            raise ConfigError(
                f"players: {p.name} starts at x={p.x}, outside width {course.width}"
            )

    h = raw.get("hooks", {})
    lg = raw.get("logs", {})
    output_dir = m.get("output_dir")

    return MatchConfig(
        name=m.get("name", default_name),
        course=course,
        players=players,
        hooks=HookConfig(pause=h.get("pause"), resume=h.get("resume")),
        logs=LogConfig(
            capture_stdin=lg.get("capture_stdin", True),
            capture_stderr=lg.get("capture_stderr", True),
            stderr_cap=lg.get("stderr_cap", DEFAULT_CAP),
        ),
        output_dir=Path(output_dir) if output_dir else None,
    )
