"""Tests for pause/resume hook invocation."""

import logging

from racejudge.core.hooks import run_hook


class TestRunHook:
    def test_success(self):
        result = run_hook("true", "pause", "alpha")
        assert result.returncode == 0
        assert result.ok is True

    def test_failure_is_reported_not_raised(self, caplog):
        with caplog.at_level(logging.INFO, logger="racejudge.core.hooks"):
            result = run_hook("exit 5", "resume", "alpha")
        assert result.returncode == 5
        assert result.ok is False
        assert "[resume] (alpha) return code: 5" in caplog.text

    def test_output_is_captured(self, capfd):
        run_hook("echo from-hook; echo oops >&2", "pause", "alpha")
        out, err = capfd.readouterr()
        assert "from-hook" not in out
        assert "oops" not in err
