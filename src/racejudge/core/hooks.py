"""Pause/resume shell hooks run around every blocking wait.

Hooks exist for external instrumentation (e.g. freezing the AI process
while the judge is busy). Their outcome is logged and never changes
control flow.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HookResult:
    returncode: int | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0


def run_hook(command: str, label: str, player_name: str) -> HookResult:
    """Run ``command`` through the shell and log its status."""
    try:
        proc = subprocess.run(
            command, shell=True, capture_output=True, text=True, check=False,
        )
    except OSError as exc:
        logger.warning("[%s] (%s) failed to run %r: %s", label, player_name, command, exc)
        return HookResult(returncode=None, error=str(exc))

    logger.info("[%s] (%s) return code: %d", label, player_name, proc.returncode)
    if proc.stdout.strip():
        logger.debug("[%s] (%s) stdout: %s", label, player_name, proc.stdout.strip())
    if proc.stderr.strip():
        logger.debug("[%s] (%s) stderr: %s", label, player_name, proc.stderr.strip())
    return HookResult(returncode=proc.returncode)
