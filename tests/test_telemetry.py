"""Tests for TelemetryLogger: JSONL turn logging."""

import json

import pytest

from racejudge.core.telemetry import TelemetryLogger, TurnRecord


@pytest.fixture
def logger(tmp_path):
    return TelemetryLogger(output_dir=tmp_path, match_id="test-match-001")


class TestTelemetryLogger:
    def test_log_turn_creates_file(self, logger, tmp_path):
        logger.log_turn(_make_record(step=0))
        assert (tmp_path / "test-match-001.jsonl").exists()
        assert logger.file_path == tmp_path / "test-match-001.jsonl"

    def test_log_turn_writes_valid_jsonl(self, logger):
        logger.log_turn(_make_record(step=0))
        logger.log_turn(_make_record(step=1))
        lines = logger.file_path.read_text().strip().split("\n")
        assert len(lines) == 2
        for line in lines:
            parsed = json.loads(line)
            assert "step" in parsed
            assert "schema_version" in parsed

    def test_log_turn_contains_all_fields(self, logger):
        logger.log_turn(_make_record(step=0))
        parsed = json.loads(logger.file_path.read_text().strip())
        for field in (
            "schema_version", "match_id", "timestamp", "step", "player",
            "result", "acceleration", "time_used_ms", "time_left_ms",
            "diagnostics",
        ):
            assert field in parsed, f"Missing field: {field}"
        assert parsed["acceleration"] == [1, 0]

    def test_finalize_match_appends_summary(self, logger):
        logger.log_turn(_make_record(step=0))
        logger.finalize_match(
            fidelity={"alpha": {"turns": 1, "normal": 1}},
            extra={"steps": 1},
        )
        lines = logger.file_path.read_text().strip().split("\n")
        assert len(lines) == 2
        summary = json.loads(lines[-1])
        assert summary["record_type"] == "match_summary"
        assert summary["fidelity_report"]["alpha"]["normal"] == 1
        assert summary["steps"] == 1
        assert "engine_version" in summary

    def test_match_id_in_every_line(self, logger):
        logger.log_turn(_make_record(step=0))
        logger.log_turn(_make_record(step=1))
        for line in logger.file_path.read_text().strip().split("\n"):
            assert json.loads(line)["match_id"] == "test-match-001"


def _make_record(step: int = 0) -> TurnRecord:
    return TurnRecord(
        step=step,
        player="alpha",
        result="normal",
        acceleration=[1, 0],
        time_used_ms=12.3,
        time_left_ms=987.7,
        diagnostics=[],
    )
