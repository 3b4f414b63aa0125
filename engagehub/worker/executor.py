"""Prediction executor - runs the virality model for one job input."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

from engagehub.core.config import get_settings

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124


@dataclass
class ExecutionOutcome:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class PredictionExecutor(Protocol):
    def execute(self, job_input: Dict[str, Any]) -> ExecutionOutcome: ...


class SubprocessExecutor:
    """
    Runs ``<python> <script> '<json input>'`` and captures its output.

    Spawn failures (missing interpreter, bad script path) raise ``OSError``;
    the processor treats that like a failed attempt.
    """

    def __init__(
        self,
        python: Optional[str] = None,
        script: Optional[str] = None,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        settings = get_settings()
        self.python = python or settings.PREDICTOR_PYTHON
        self.script = script or settings.PREDICTOR_SCRIPT
        timeout = settings.PREDICTOR_TIMEOUT_SEC if timeout is None else timeout
        self.timeout = timeout if timeout and timeout > 0 else None
        self.env = env

    def build_command(self, job_input: Dict[str, Any]) -> Sequence[str]:
        payload = json.dumps(job_input or {}, separators=(",", ":"), ensure_ascii=False)
        return [self.python, self.script, payload]

    def execute(self, job_input: Dict[str, Any]) -> ExecutionOutcome:
        cmd = self.build_command(job_input)
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                # Undecodable bytes become U+FFFD so output always reaches the caller.
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                env=self.env if self.env is not None else os.environ.copy(),
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Predictor timed out after {self.timeout}s")
            return ExecutionOutcome(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr) or f"Predictor timed out after {self.timeout}s",
            )
        return ExecutionOutcome(exit_code=proc.returncode, stdout=proc.stdout or "", stderr=proc.stderr or "")


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
