"""TelemetryLogger: JSONL turn logging.

One logger per match. Writes one JSONL line per player turn plus a match
summary as the final line. All entries include schema version and match ID.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import racejudge

_SCHEMA_VERSION = "1.0.0"


@dataclass
class TurnRecord:
    """One player turn."""

    step: int
    player: str
    result: str
    acceleration: list[int] | None
    time_used_ms: float
    time_left_ms: float
    diagnostics: list[str] = field(default_factory=list)


class TelemetryLogger:
    """Writes JSONL telemetry for a single match."""

    def __init__(self, output_dir: Path, match_id: str):
        self._output_dir = Path(output_dir)
        self._match_id = match_id
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._output_dir / f"{match_id}.jsonl"

    @property
    def file_path(self) -> Path:
        return self._file_path

    def log_turn(self, record: TurnRecord) -> None:
        entry = asdict(record)
        entry["schema_version"] = _SCHEMA_VERSION
        entry["match_id"] = self._match_id
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._append(entry)

    def finalize_match(self, fidelity: dict, extra: dict | None = None) -> None:
        entry = {
            "schema_version": _SCHEMA_VERSION,
            "record_type": "match_summary",
            "match_id": self._match_id,
            "fidelity_report": fidelity,
            "engine_version": racejudge.__version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if extra:
            entry.update(extra)
        self._append(entry)

    def _append(self, entry: dict) -> None:
        with open(self._file_path, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")
