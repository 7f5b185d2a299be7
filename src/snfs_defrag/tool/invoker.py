"""Subprocess runner for the external snfsdefrag utility."""

from __future__ import annotations

import errno
import logging
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from snfs_defrag.errors import FailureKind

logger = logging.getLogger(__name__)

EXIT_CODE_TIMEOUT = 124
EXIT_CODE_NOT_EXECUTABLE = 126
EXIT_CODE_NOT_FOUND = 127


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    """Outcome of one utility invocation."""

    command: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    launch_error: str | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and self.launch_error is None

    @property
    def failure_kind(self) -> FailureKind | None:
        if self.success:
            return None
        if self.launch_error is not None:
            return FailureKind.LAUNCH_FAILURE
        if self.timed_out:
            return FailureKind.TIMEOUT
        return FailureKind.REPORTED_FAILURE

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


class CommandInvoker:
    """Runs the utility with an explicit argument vector, one process per call."""

    def __init__(self, executable_path: Path | str, *, timeout_seconds: float | None = None) -> None:
        self.executable_path = Path(executable_path)
        self.timeout_seconds = timeout_seconds

    def run(self, tokens: Sequence[str]) -> ExecutionResult:
        command = (str(self.executable_path), *(str(token) for token in tokens))
        logger.debug("Executing: %s", shlex.join(command))
        try:
            completed = subprocess.run(  # noqa: S603
                command,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as error:
            logger.warning(
                "Timed out after %ss: %s",
                self.timeout_seconds,
                shlex.join(command),
            )
            return ExecutionResult(
                command=command,
                exit_code=EXIT_CODE_TIMEOUT,
                stdout=_decode(error.stdout),
                stderr=_decode(error.stderr),
                timed_out=True,
            )
        except OSError as error:
            logger.error("Failed to start %s: %s", command[0], error)
            return ExecutionResult(
                command=command,
                exit_code=_launch_exit_code(error),
                launch_error=str(error),
            )

        logger.debug("Response: %s", completed.stdout)
        if completed.returncode != 0:
            logger.debug("Exit code %d, stderr: %s", completed.returncode, completed.stderr)
        return ExecutionResult(
            command=command,
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


def _launch_exit_code(error: OSError) -> int:
    if isinstance(error, FileNotFoundError) or error.errno == errno.ENOENT:
        return EXIT_CODE_NOT_FOUND
    return EXIT_CODE_NOT_EXECUTABLE


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
