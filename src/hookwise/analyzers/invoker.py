"""Run analyzers as isolated subprocesses.

Each analyzer gets the file path as its only argument, an empty stdin and
environment flags marking the run as non-interactive. Its stdout is parsed
with the Suggestion Protocol; the wait for it is bounded by a timeout and
interruptible by a cancel event.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..exceptions import AnalyzerProcessError, AnalyzerTimeoutError
from ..logging_config import get_logger
from ..models import AnalyzerResult, AnalyzerStatus, CandidateFile
from ..protocol import parse_output
from .base import Analyzer

logger = get_logger(__name__)

NONINTERACTIVE_ENV = {
    "INTERACTIVE_MODE": "false",
    "HOOKWISE_NONINTERACTIVE": "1",
}

# How often a running analyzer is checked for timeout/cancellation
_POLL_SECONDS = 0.1
# Grace period for collecting a killed process
_REAP_SECONDS = 2.0
_STDERR_TAIL = 500


class AnalyzerCancelled(Exception):
    """The run was cancelled while an analyzer was running."""


class ProcessAnalyzer(Analyzer):
    """An analyzer implemented as an external command."""

    def __init__(
        self,
        name: str,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        self.name = name
        self.command = list(command)
        self.cwd = cwd
        self.env = env

    def __repr__(self) -> str:
        return f"ProcessAnalyzer({self.name!r}, {self.command!r})"

    def _environment(self) -> Dict[str, str]:
        env = dict(os.environ if self.env is None else self.env)
        env.update(NONINTERACTIVE_ENV)
        env["HOOKWISE_ANALYZER"] = self.name
        return env

    def invoke(
        self,
        candidate: CandidateFile,
        timeout_seconds: float,
        cancel: Optional[threading.Event] = None,
    ) -> AnalyzerResult:
        started = time.monotonic()

        def result(status: AnalyzerStatus, **kwargs) -> AnalyzerResult:
            return AnalyzerResult(
                analyzer_name=self.name,
                file_path=candidate.path,
                status=status,
                elapsed=time.monotonic() - started,
                **kwargs,
            )

        argv = self.command + [str(candidate.path)]
        logger.debug("Running analyzer %s: %s", self.name, argv)
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=self.cwd,
                env=self._environment(),
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            err = AnalyzerProcessError(self.name, candidate.path, f"cannot start: {e}")
            logger.warning("%s", err)
            return result(AnalyzerStatus.ERROR, message=str(err))

        try:
            stdout, stderr = _communicate(proc, timeout_seconds, cancel)
        except subprocess.TimeoutExpired:
            err = AnalyzerTimeoutError(self.name, candidate.path, timeout_seconds)
            logger.warning("%s", err)
            return result(AnalyzerStatus.TIMEOUT, message=str(err))
        except AnalyzerCancelled:
            logger.info("Analyzer %s cancelled on %s", self.name, candidate.path)
            return result(AnalyzerStatus.SKIPPED, message="cancelled")

        suggestions, malformed = parse_output(stdout, self.name)
        rc = proc.returncode

        if rc != 0 and not suggestions:
            reason = stderr.strip()[-_STDERR_TAIL:] or f"exit code {rc}"
            if malformed:
                reason = f"{reason}; {malformed} malformed suggestion line(s) ignored"
            err = AnalyzerProcessError(self.name, candidate.path, reason, returncode=rc)
            logger.warning("%s", err)
            return result(
                AnalyzerStatus.ERROR, message=str(err), malformed_lines=malformed, returncode=rc
            )

        message = None
        if rc != 0:
            message = f"exited with code {rc}; partial output honored"
        elif malformed and not suggestions:
            message = f"{malformed} malformed suggestion line(s) ignored"
        if malformed:
            logger.debug("Analyzer %s: %d malformed line(s) on %s", self.name, malformed, candidate.path)

        return result(
            AnalyzerStatus.OK,
            suggestions=tuple(suggestions),
            message=message,
            malformed_lines=malformed,
            returncode=rc,
        )


def _communicate(proc: subprocess.Popen, timeout_seconds: float, cancel: Optional[threading.Event]):
    """Collect output, polling so a timeout or cancellation can kill the process.

    Raises:
        subprocess.TimeoutExpired: the deadline passed (process killed)
        AnalyzerCancelled: ``cancel`` was set (process killed)
    """
    deadline = time.monotonic() + timeout_seconds
    while True:
        if cancel is not None and cancel.is_set():
            _kill(proc)
            raise AnalyzerCancelled()
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            _kill(proc)
            raise subprocess.TimeoutExpired(proc.args, timeout_seconds)
        try:
            return proc.communicate(timeout=min(_POLL_SECONDS, remaining))
        except subprocess.TimeoutExpired:
            continue


def _kill(proc: subprocess.Popen) -> None:
    """Kill the analyzer and anything it spawned, then reap it."""
    try:
        if os.name == "posix":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except (ProcessLookupError, PermissionError):
        pass
    try:
        proc.communicate(timeout=_REAP_SECONDS)
    except subprocess.TimeoutExpired:
        logger.debug("Analyzer process %s did not exit after kill", proc.pid)


def invoke(
    analyzer_name: str,
    file_path: Path,
    content: str,
    timeout_seconds: float,
    command: List[str],
    cancel: Optional[threading.Event] = None,
) -> AnalyzerResult:
    """Run one analyzer command against one file."""
    candidate = CandidateFile(path=Path(file_path), content=content)
    return ProcessAnalyzer(analyzer_name, command).invoke(candidate, timeout_seconds, cancel)
